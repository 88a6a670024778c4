from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Core
    http_dir: str = os.getenv("HDR_HTTP_DIR", "http.d")
    share_dir: str = os.getenv("HDR_SHARE_DIR", ".")
    ticker_interval_s: int = _env_int("HDR_TICKER_INTERVAL_S", 300)
    db_path: str = os.getenv("HDR_DB_PATH", "hdr.db")

    # Workers
    http_timeout_s: int = _env_int("HDR_HTTP_TIMEOUT_S", 10)
    stop_timeout_s: int = _env_int("HDR_STOP_TIMEOUT_S", 5)

    # Status API
    api_host: str = os.getenv("HDR_API_HOST", "127.0.0.1")
    api_port: int = _env_int("HDR_API_PORT", 8000)

    # Email alerting (optional)
    enable_email: bool = _env_bool("HDR_ENABLE_EMAIL", False)
    smtp_host: str = os.getenv("HDR_SMTP_HOST", "smtp.gmail.com")
    smtp_port: int = _env_int("HDR_SMTP_PORT", 587)
    smtp_user: str | None = os.getenv("HDR_SMTP_USER")
    smtp_password: str | None = os.getenv("HDR_SMTP_PASSWORD")
    email_from: str | None = os.getenv("HDR_EMAIL_FROM")
    email_to: str | None = os.getenv("HDR_EMAIL_TO")


settings = Settings()
