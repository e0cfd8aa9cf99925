import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, Optional, Tuple

from dotenv import load_dotenv


def _env_str(name: str, default: str = "") -> str:
    return (os.getenv(name, default) or default).strip()


def _env_int(name: str, default: int, minimum: Optional[int] = None) -> int:
    raw_value = os.getenv(name)
    try:
        value = int(str(raw_value).strip()) if raw_value is not None else default
    except (TypeError, ValueError):
        value = default
    if minimum is not None:
        value = max(minimum, value)
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None or not raw_value.strip():
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str) -> Tuple[str, ...]:
    raw_value = os.getenv(name, "")
    return tuple(item.strip() for item in raw_value.split(",") if item.strip())


@dataclass(frozen=True)
class AppConfig:
    mongo_uri: str = "mongodb://localhost:27017/ewa_dash"
    jwt_secret_key: str = "change-me-in-production"
    access_token_expires_minutes: int = 60
    refresh_token_expires_days: int = 10
    jwt_cookie_secure: bool = True
    api_prefix: str = "/api/v1"
    upload_root: str = "public"
    max_upload_size_mb: int = 5
    public_base_url: str = ""
    cors_origins: Tuple[str, ...] = ()
    trusted_proxy_hops: int = 1
    stripe_secret_key: str = ""
    stripe_publishable_key: str = ""
    stripe_api_version: str = "2023-10-16"
    razorpay_key: str = ""
    onesignal_app_id: str = ""
    onesignal_api_key: str = ""
    onesignal_api_url: str = "https://onesignal.com/api/v1"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 5000
    testing: bool = False
    extra: Dict[str, object] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "AppConfig":
        load_dotenv()
        return cls(
            mongo_uri=_env_str("MONGO_URI", cls.mongo_uri),
            jwt_secret_key=_env_str("JWT_SECRET_KEY", cls.jwt_secret_key),
            access_token_expires_minutes=_env_int(
                "ACCESS_TOKEN_EXPIRES_MINUTES", cls.access_token_expires_minutes, 1
            ),
            refresh_token_expires_days=_env_int(
                "REFRESH_TOKEN_EXPIRES_DAYS", cls.refresh_token_expires_days, 1
            ),
            jwt_cookie_secure=_env_bool("JWT_COOKIE_SECURE", cls.jwt_cookie_secure),
            api_prefix=_env_str("API_URL_ENDPOINT", cls.api_prefix).rstrip("/"),
            upload_root=_env_str("UPLOAD_ROOT", cls.upload_root),
            max_upload_size_mb=_env_int("MAX_UPLOAD_SIZE_MB", cls.max_upload_size_mb, 1),
            public_base_url=_env_str("PUBLIC_BASE_URL"),
            cors_origins=_env_list("CORS_ALLOWED_ORIGINS"),
            trusted_proxy_hops=_env_int("TRUSTED_PROXY_HOPS", cls.trusted_proxy_hops, 0),
            stripe_secret_key=_env_str("STRIPE_SECRET_KEY"),
            stripe_publishable_key=_env_str("STRIPE_PUBLISHABLE_KEY"),
            stripe_api_version=_env_str("STRIPE_API_VERSION", cls.stripe_api_version),
            razorpay_key=_env_str("RAZORPAY_KEY"),
            onesignal_app_id=_env_str("ONE_SIGNAL_APP_ID"),
            onesignal_api_key=_env_str("ONE_SIGNAL_REST_API_KEY"),
            log_level=_env_str("LOG_LEVEL", cls.log_level).upper(),
            host=_env_str("HOST", cls.host),
            port=_env_int("PORT", cls.port, 1),
        )

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    def flask_settings(self) -> Dict[str, object]:
        settings: Dict[str, object] = {
            "MONGO_URI": self.mongo_uri,
            "JWT_SECRET_KEY": self.jwt_secret_key,
            "JWT_ACCESS_TOKEN_EXPIRES": timedelta(minutes=self.access_token_expires_minutes),
            "JWT_REFRESH_TOKEN_EXPIRES": timedelta(days=self.refresh_token_expires_days),
            "JWT_TOKEN_LOCATION": ["headers", "cookies"],
            "JWT_ACCESS_COOKIE_NAME": "accessToken",
            "JWT_REFRESH_COOKIE_NAME": "refreshToken",
            "JWT_COOKIE_SECURE": self.jwt_cookie_secure,
            "JWT_COOKIE_CSRF_PROTECT": False,
            "MAX_CONTENT_LENGTH": self.max_upload_bytes * 10,
            "TESTING": self.testing,
        }
        settings.update(self.extra)
        return settings
