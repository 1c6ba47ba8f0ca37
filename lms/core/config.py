from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]
DocumentStoreKind = Literal["memory", "firestore"]
IdentityProviderKind = Literal["local", "firebase"]

# 3 days, the lifetime the news feed was always cached for in the browser.
DEFAULT_NEWS_CACHE_TTL = 3 * 24 * 60 * 60


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it's easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


def _getbool(name: str, default: bool) -> bool:
    raw = _getenv(name, "true" if default else "false").lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    redis_url: str | None
    document_store: DocumentStoreKind = "memory"
    identity_provider: IdentityProviderKind = "local"
    firebase_credentials: str | None = None
    firebase_project_id: str | None = None
    news_api_key: str | None = None
    news_api_url: str = "https://newsapi.org/v2"
    news_cache_ttl_seconds: int = DEFAULT_NEWS_CACHE_TTL
    cloudinary_cloud_name: str | None = None
    cloudinary_upload_preset: str = "ml_default"
    cors_origins: tuple[str, ...] = ("http://localhost:3000",)
    certificate_verify_url: str = "iofellowship.org/verify"
    smtp_host: str | None = None
    smtp_port: int = 465
    smtp_username: str | None = None
    smtp_password: str | None = None
    mail_from: str = "no-reply@iofellowship.org"
    password_reset_url: str = "http://localhost:3000/reset-password"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    port_raw = _getenv("PORT", "8000")
    store_raw = _getenv("DOCUMENT_STORE", "memory").lower()
    identity_raw = _getenv("IDENTITY_PROVIDER", "local").lower()
    ttl_raw = _getenv("NEWS_CACHE_TTL_SECONDS", str(DEFAULT_NEWS_CACHE_TTL))
    smtp_port_raw = _getenv("SMTP_PORT", "465")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    if store_raw not in ("memory", "firestore"):
        raise ValueError(f"DOCUMENT_STORE must be memory|firestore (got {store_raw!r})")

    if identity_raw not in ("local", "firebase"):
        raise ValueError(
            f"IDENTITY_PROVIDER must be local|firebase (got {identity_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    try:
        news_ttl = int(ttl_raw)
    except ValueError:
        raise ValueError(
            f"NEWS_CACHE_TTL_SECONDS must be an integer (got {ttl_raw!r})"
        ) from None
    if news_ttl <= 0:
        raise ValueError(f"NEWS_CACHE_TTL_SECONDS must be positive (got {news_ttl})")

    try:
        smtp_port = int(smtp_port_raw)
    except ValueError:
        raise ValueError(f"SMTP_PORT must be an integer (got {smtp_port_raw!r})") from None

    cors_origins = tuple(
        origin.strip()
        for origin in _getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
        if origin.strip()
    )

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getbool("LOG_JSON", False),
        port=port,
        redis_url=_getenv("REDIS_URL", "") or None,
        document_store=store_raw,
        identity_provider=identity_raw,
        firebase_credentials=_getenv("FIREBASE_CREDENTIALS", "") or None,
        firebase_project_id=_getenv("FIREBASE_PROJECT_ID", "") or None,
        news_api_key=_getenv("NEWS_API_KEY", "") or None,
        news_api_url=_getenv("NEWS_API_URL", "https://newsapi.org/v2").rstrip("/"),
        news_cache_ttl_seconds=news_ttl,
        cloudinary_cloud_name=_getenv("CLOUDINARY_CLOUD_NAME", "") or None,
        cloudinary_upload_preset=_getenv("CLOUDINARY_UPLOAD_PRESET", "ml_default"),
        cors_origins=cors_origins,
        certificate_verify_url=_getenv(
            "CERTIFICATE_VERIFY_URL", "iofellowship.org/verify"
        ).rstrip("/"),
        smtp_host=_getenv("SMTP_HOST", "") or None,
        smtp_port=smtp_port,
        smtp_username=_getenv("SMTP_USERNAME", "") or None,
        smtp_password=_getenv("SMTP_PASSWORD", "") or None,
        mail_from=_getenv("MAIL_FROM", "no-reply@iofellowship.org"),
        password_reset_url=_getenv(
            "PASSWORD_RESET_URL", "http://localhost:3000/reset-password"
        ),
    )


# Optional: module-level singleton so imports are cheap
SETTINGS = load_settings()
