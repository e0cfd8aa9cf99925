from types import SimpleNamespace

import pytest
import requests
import stripe

API = "/api/v1"


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")

    def json(self):
        return self.payload


@pytest.fixture
def onesignal(monkeypatch):
    calls = []
    responses = {}

    def fake_request(self, method, url, **kwargs):
        calls.append({"method": method, "url": url, **kwargs})
        return responses.get((method, url.rsplit("/", 1)[-1]), FakeResponse({}, 404))

    monkeypatch.setattr(requests.Session, "request", fake_request)
    return SimpleNamespace(calls=calls, responses=responses)


def test_send_notification_stores_campaign(client, db, onesignal):
    onesignal.responses[("POST", "notifications")] = FakeResponse({"id": "os-123"})

    response = client.post(
        f"{API}/notification/send-notification",
        json={"title": "Sale", "description": "Half price today", "imageUrl": "http://x/sale.png"},
    )
    body = response.get_json()
    assert response.status_code == 200, body
    assert body["data"]["notificationId"] == "os-123"
    assert db.notifications.count_documents({"notificationId": "os-123"}) == 1

    sent = onesignal.calls[0]
    assert sent["headers"]["Authorization"] == "Basic onesignal-key"
    assert sent["json"]["included_segments"] == ["All"]
    assert sent["json"]["headings"] == {"en": "Sale"}
    assert sent["json"]["big_picture"] == "http://x/sale.png"


def test_send_notification_requires_title_and_description(client, onesignal):
    response = client.post(f"{API}/notification/send-notification", json={"title": "Sale"})
    assert response.status_code == 400
    assert onesignal.calls == []


def test_gateway_failure_is_a_server_error(client, db, onesignal):
    onesignal.responses[("POST", "notifications")] = FakeResponse({"errors": ["bad"]}, 400)

    response = client.post(
        f"{API}/notification/send-notification",
        json={"title": "Sale", "description": "Half price today"},
    )
    body = response.get_json()
    assert response.status_code == 500
    assert body["success"] is False
    assert body["message"].startswith("Push notification service error")
    assert db.notifications.count_documents({}) == 0


def test_track_notification_reports_android_stats(client, onesignal):
    onesignal.responses[("GET", "os-9")] = FakeResponse(
        {"platform_delivery_stats": {"android": {"successful": 7, "failed": 1, "converted": 2}}}
    )

    data = client.get(f"{API}/notification/track-notification/os-9").get_json()["data"]
    assert data == {
        "platform": "Android",
        "success_delivery": 7,
        "failed_delivery": 1,
        "errored_delivery": 0,
        "opened_notification": 2,
    }
    assert onesignal.calls[0]["params"] == {"app_id": "onesignal-app"}


def test_list_and_delete_notifications(client, db):
    first = db.notifications.insert_one({"notificationId": "a", "title": "Hello", "description": "x"})
    db.notifications.insert_one({"notificationId": "b", "title": "Bye", "description": "y"})

    listing = client.get(f"{API}/notification/all-notification?search=hello").get_json()
    assert [item["notificationId"] for item in listing["data"]] == ["a"]

    deleted = client.delete(f"{API}/notification/delete-notification/{first.inserted_id}")
    assert deleted.status_code == 200
    assert db.notifications.count_documents({}) == 1


@pytest.fixture
def stripe_api(monkeypatch):
    calls = {}

    def recorder(name, result):
        def create(**kwargs):
            calls[name] = kwargs
            return result

        return create

    monkeypatch.setattr(stripe.Customer, "create", recorder("customer", SimpleNamespace(id="cus_1")))
    monkeypatch.setattr(
        stripe.EphemeralKey, "create", recorder("ephemeral_key", SimpleNamespace(secret="ek_1"))
    )
    monkeypatch.setattr(
        stripe.PaymentIntent,
        "create",
        recorder("payment_intent", SimpleNamespace(client_secret="pi_1_secret")),
    )
    return calls


def test_stripe_payment_sheet(client, stripe_api):
    response = client.post(
        f"{API}/payment/stripe",
        json={"email": "Buyer@Example.com", "name": "Buyer", "amount": 2599, "currency": "USD"},
    )
    body = response.get_json()
    assert response.status_code == 200, body
    assert body["data"] == {
        "paymentIntent": "pi_1_secret",
        "ephemeralKey": "ek_1",
        "customer": "cus_1",
        "publishableKey": "pk_test_123",
    }
    assert stripe_api["customer"]["email"] == "buyer@example.com"
    assert stripe_api["payment_intent"]["amount"] == 2599
    assert stripe_api["payment_intent"]["currency"] == "usd"
    assert stripe_api["payment_intent"]["automatic_payment_methods"] == {"enabled": True}
    assert stripe_api["ephemeral_key"]["customer"] == "cus_1"


def test_stripe_rejects_bad_amount(client, stripe_api):
    response = client.post(
        f"{API}/payment/stripe",
        json={"email": "buyer@example.com", "name": "Buyer", "amount": "-5", "currency": "usd"},
    )
    assert response.status_code == 400
    assert stripe_api == {}


def test_stripe_errors_become_server_errors(client, monkeypatch):
    def decline(**kwargs):
        raise stripe.InvalidRequestError("No such customer", param="customer")

    monkeypatch.setattr(stripe.Customer, "create", decline)
    response = client.post(
        f"{API}/payment/stripe",
        json={"email": "buyer@example.com", "name": "Buyer", "amount": 100, "currency": "usd"},
    )
    assert response.status_code == 500
    assert response.get_json()["message"] == "No such customer"


def test_razorpay_key(client):
    body = client.post(f"{API}/payment/razorpay").get_json()
    assert body["data"] == {"key": "rzp_test_123"}
