from typing import Dict, Optional

import requests

from .errors import GatewayError

REQUEST_TIMEOUT_SECONDS = 15


class OneSignalClient:

    def __init__(self, app_id: str, api_key: str, base_url: str, logger, session=None):
        self.app_id = app_id
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.logger = logger
        self.session = session or requests.Session()

    def _require_configuration(self):
        if not self.app_id or not self.api_key:
            raise GatewayError("Push notification configuration is incomplete.")

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Basic {self.api_key}",
            "Content-Type": "application/json; charset=utf-8",
        }

    def _request(self, method: str, path: str, **kwargs) -> Dict:
        self._require_configuration()
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method, url, headers=self._headers(), timeout=REQUEST_TIMEOUT_SECONDS, **kwargs
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as exc:
            self.logger.error("OneSignal request %s %s failed: %s", method, path, exc)
            raise GatewayError(f"Push notification service error: {exc}")
        except ValueError as exc:
            self.logger.error("OneSignal returned an unreadable response: %s", exc)
            raise GatewayError("Push notification service returned an invalid response.")

    def send_to_all(self, title: str, description: str, image_url: Optional[str] = None) -> str:
        payload = {
            "app_id": self.app_id,
            "contents": {"en": description},
            "headings": {"en": title},
            "included_segments": ["All"],
        }
        if image_url:
            payload["big_picture"] = image_url

        body = self._request("POST", "/notifications", json=payload)
        notification_id = body.get("id")
        if not notification_id:
            raise GatewayError("Push notification service did not return an id.")
        return notification_id

    def view(self, notification_id: str) -> Dict:
        return self._request(
            "GET", f"/notifications/{notification_id}", params={"app_id": self.app_id}
        )


def android_delivery_stats(notification: Dict) -> Dict:
    stats = (notification.get("platform_delivery_stats") or {}).get("android") or {}
    return {
        "platform": "Android",
        "success_delivery": stats.get("successful", 0),
        "failed_delivery": stats.get("failed", 0),
        "errored_delivery": stats.get("errored", 0),
        "opened_notification": stats.get("converted", 0),
    }
