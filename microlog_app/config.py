"""Configuration helpers."""
from __future__ import annotations

import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

_env_path = Path(__file__).resolve().parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class BaseConfig:
    """Default configuration that can be overridden per environment."""

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", "sqlite:///microlog.db"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Wall-clock zone for created_at stamps and the dashboard calendar.
    APP_TIMEZONE = os.environ.get("APP_TIMEZONE", "Europe/Athens")

    # Sliding idle timeout: the cookie is refreshed on every request.
    PERMANENT_SESSION_LIFETIME = timedelta(
        seconds=int(os.environ.get("SESSION_LIFETIME", 1800))
    )
    SESSION_REFRESH_EACH_REQUEST = True
    SESSION_COOKIE_NAME = os.environ.get("SESSION_COOKIE_NAME", "MICAPPSESSID")
    SESSION_COOKIE_HTTPONLY = _env_bool("SESSION_COOKIE_HTTPONLY", True)
    SESSION_COOKIE_SECURE = _env_bool("SESSION_COOKIE_SECURE", False)
    SESSION_COOKIE_SAMESITE = "Lax"

    # Login throttling.
    LOGIN_MAX_ATTEMPTS = int(os.environ.get("LOGIN_MAX_ATTEMPTS", 5))
    LOGIN_LOCKOUT_MINUTES = int(os.environ.get("LOGIN_LOCKOUT_MINUTES", 15))

    # CSRF + WTF config.
    WTF_CSRF_TIME_LIMIT = None

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    WTF_CSRF_ENABLED = False
    APP_TIMEZONE = "UTC"
    LOG_LEVEL = "DEBUG"
