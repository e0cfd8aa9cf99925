import mongomock
import pytest

from ewa_backend import AppConfig, create_app

API = "/api/v1"


@pytest.fixture
def db():
    return mongomock.MongoClient().ewa_dash_test


@pytest.fixture
def config(tmp_path):
    return AppConfig(
        jwt_secret_key="test-secret-key-that-is-long-enough-for-hs256",
        jwt_cookie_secure=False,
        upload_root=str(tmp_path / "public"),
        trusted_proxy_hops=0,
        onesignal_app_id="onesignal-app",
        onesignal_api_key="onesignal-key",
        stripe_secret_key="sk_test_123",
        stripe_publishable_key="pk_test_123",
        razorpay_key="rzp_test_123",
        log_level="WARNING",
        testing=True,
    )


@pytest.fixture
def app(config, db):
    return create_app(config, database=db)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def register_user(client):
    def register(name="Ada Admin", email="ada@example.com", password="secret123"):
        response = client.post(
            f"{API}/users/register",
            json={"name": name, "email": email, "password": password},
        )
        assert response.status_code == 201, response.get_json()
        return response.get_json()["data"]

    return register


@pytest.fixture
def auth_headers(client, register_user):
    register_user()
    response = client.post(
        f"{API}/users/login", json={"email": "ada@example.com", "password": "secret123"}
    )
    assert response.status_code == 200, response.get_json()
    token = response.get_json()["data"]["accessToken"]
    return {"Authorization": f"Bearer {token}"}
