from __future__ import annotations

import pytest

from lms.core.config import DEFAULT_NEWS_CACHE_TTL, AppEnv, Settings, load_settings

# ---- valid values ----


def test_load_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "APP_ENV",
        "LOG_LEVEL",
        "DOCUMENT_STORE",
        "IDENTITY_PROVIDER",
        "NEWS_CACHE_TTL_SECONDS",
        "CORS_ORIGINS",
        "REDIS_URL",
    ):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings()
    assert settings.app_env == "dev"
    assert settings.log_level == "info"
    assert settings.document_store == "memory"
    assert settings.identity_provider == "local"
    assert settings.redis_url is None
    assert settings.news_cache_ttl_seconds == DEFAULT_NEWS_CACHE_TTL == 259200
    assert settings.cors_origins == ("http://localhost:3000",)


def test_load_settings_respects_env_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "prod")
    monkeypatch.setenv("LOG_LEVEL", "error")
    monkeypatch.setenv("DOCUMENT_STORE", "firestore")
    monkeypatch.setenv("IDENTITY_PROVIDER", "firebase")
    monkeypatch.setenv("LOG_JSON", "true")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
    monkeypatch.setenv("CERTIFICATE_VERIFY_URL", "verify.example/check/")
    settings = load_settings()
    assert settings.app_env == "prod"
    assert settings.log_level == "error"
    assert settings.document_store == "firestore"
    assert settings.identity_provider == "firebase"
    assert settings.log_json is True
    assert settings.cors_origins == ("https://a.example", "https://b.example")
    assert settings.certificate_verify_url == "verify.example/check"


def test_load_settings_normalizes_case(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "PROD")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    settings = load_settings()
    assert settings.app_env == "prod"
    assert settings.log_level == "debug"


def test_load_settings_strips_whitespace(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "  test  ")
    monkeypatch.setenv("LOG_LEVEL", "  warning  ")
    settings = load_settings()
    assert settings.app_env == "test"
    assert settings.log_level == "warning"


def test_load_settings_reads_mail_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
    monkeypatch.setenv("SMTP_PORT", "2465")
    monkeypatch.setenv("SMTP_USERNAME", "bot")
    monkeypatch.setenv("MAIL_FROM", "learn@example.com")
    monkeypatch.setenv("PASSWORD_RESET_URL", "https://learn.example/reset")
    settings = load_settings()
    assert settings.smtp_host == "smtp.example.com"
    assert settings.smtp_port == 2465
    assert settings.smtp_username == "bot"
    assert settings.mail_from == "learn@example.com"
    assert settings.password_reset_url == "https://learn.example/reset"


# ---- invalid values ----


@pytest.mark.parametrize(
    ("name", "value", "message"),
    [
        ("APP_ENV", "staging", "APP_ENV must be dev|test|prod"),
        ("APP_ENV", "", "APP_ENV must be dev|test|prod"),
        ("LOG_LEVEL", "verbose", "LOG_LEVEL must be debug|info|warning|error"),
        ("DOCUMENT_STORE", "postgres", "DOCUMENT_STORE must be memory|firestore"),
        ("IDENTITY_PROVIDER", "okta", "IDENTITY_PROVIDER must be local|firebase"),
        ("PORT", "eighty", "PORT must be an integer"),
        ("NEWS_CACHE_TTL_SECONDS", "0", "NEWS_CACHE_TTL_SECONDS must be positive"),
        ("NEWS_CACHE_TTL_SECONDS", "soon", "NEWS_CACHE_TTL_SECONDS must be an integer"),
        ("LOG_JSON", "maybe", "LOG_JSON must be a boolean"),
        ("SMTP_PORT", "ssl", "SMTP_PORT must be an integer"),
    ],
)
def test_load_settings_rejects_invalid_values(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str, message: str
) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError, match=message.replace("|", r"\|")):
        load_settings()


# ---- Settings properties ----


def _make_settings(app_env: AppEnv = "dev") -> Settings:
    return Settings(  # type: ignore[arg-type]
        app_env=app_env,
        log_level="info",
        log_json=False,
        port=8000,
        redis_url=None,
    )


def test_settings_env_flags() -> None:
    assert _make_settings("dev").is_dev
    assert _make_settings("test").is_test
    prod = _make_settings("prod")
    assert prod.is_prod and not prod.is_dev and not prod.is_test


def test_settings_is_frozen() -> None:
    s = _make_settings()
    with pytest.raises(AttributeError):
        s.app_env = "prod"  # type: ignore[misc]
