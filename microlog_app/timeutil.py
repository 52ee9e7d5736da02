"""Application wall-clock helpers."""
from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

from flask import current_app, has_app_context

from .incubation import start_of_day


def app_timezone() -> ZoneInfo:
    name = "UTC"
    if has_app_context():
        name = current_app.config.get("APP_TIMEZONE", name)
    return ZoneInfo(name)


def local_now() -> datetime:
    """Naive "now" in the application time zone, as stored in created_at."""
    return datetime.now(app_timezone()).replace(tzinfo=None)


def local_today() -> date:
    return local_now().date()


def today_window_start() -> datetime:
    return start_of_day(local_now())
