"""Incubation due-date projection for the dashboard calendar.

Every log sheet records which analytes were plated (its incubation profile)
and when it was created. Each analyte becomes readable a fixed number of
hours later; this module projects those due times into a rolling 7-day
window starting at local midnight.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Sequence

WINDOW_DAYS = 7
DAY_KEY_FORMAT = "%Y-%m-%d"


@dataclass(frozen=True)
class IncubationProfile:
    key: str
    label: str
    hours_until_due: int


INCUBATION_PROFILES: Mapping[str, IncubationProfile] = MappingProxyType(
    {
        "enterobacteriacea": IncubationProfile("enterobacteriacea", "Enterobacteriacea", 24),
        "tmc_30": IncubationProfile("tmc_30", "Total mesophilic count 30°C", 3 * 24),
        "yeasts_molds": IncubationProfile("yeasts_molds", "Yeasts / molds", 5 * 24),
        "bacillus": IncubationProfile("bacillus", "Bacillus", 26),
    }
)


@dataclass(frozen=True)
class LogSheet:
    table_name: str
    table_date: date | str | None
    description: str
    incubation_profile_keys: tuple[str, ...] = field(default_factory=tuple)
    created_at: datetime | str | None = None


@dataclass(frozen=True)
class DueEvent:
    table_name: str
    table_date: date | str | None
    description: str
    profile_key: str
    profile_label: str
    due_at: datetime

    @property
    def day_key(self) -> str:
        return self.due_at.strftime(DAY_KEY_FORMAT)

    def to_dict(self) -> dict:
        table_date = self.table_date
        if isinstance(table_date, date):
            table_date = table_date.isoformat()
        return {
            "table_name": self.table_name,
            "table_date": table_date,
            "description": self.description,
            "profile_key": self.profile_key,
            "profile_label": self.profile_label,
            "due_at": self.due_at.isoformat(),
            "due_time": self.due_at.strftime("%H:%M"),
        }


@dataclass(frozen=True)
class CalendarDay:
    key: str
    label: str
    day: date


def parse_profile_keys(value: str | Iterable[str] | None) -> tuple[str, ...]:
    """Split a stored profile ("enterobacteriacea,yeasts_molds") into keys."""
    if not value:
        return ()
    tokens = value.split(",") if isinstance(value, str) else value
    cleaned = (token.strip() for token in tokens if isinstance(token, str))
    return tuple(dict.fromkeys(token for token in cleaned if token))


def parse_timestamp(value: datetime | str | None) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None


def _is_aware(moment: datetime) -> bool:
    return moment.tzinfo is not None and moment.utcoffset() is not None


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def window_bounds(window_start: datetime) -> tuple[datetime, datetime]:
    """Return the inclusive ``(start, end)`` of the 7-day display window."""
    last_day = window_start + timedelta(days=WINDOW_DAYS - 1)
    return window_start, last_day.replace(hour=23, minute=59, second=59, microsecond=0)


def calendar_days(window_start: datetime) -> list[CalendarDay]:
    days = []
    for offset in range(WINDOW_DAYS):
        moment = window_start + timedelta(days=offset)
        days.append(
            CalendarDay(
                key=moment.strftime(DAY_KEY_FORMAT),
                label=moment.strftime("%a %d-%m"),
                day=moment.date(),
            )
        )
    return days


def due_event_for(sheet: LogSheet, profile_key: str) -> Optional[DueEvent]:
    """Project one ``(sheet, profile)`` pair, or ``None`` when it cannot be."""
    profile = INCUBATION_PROFILES.get(profile_key)
    if profile is None:
        return None
    created_at = parse_timestamp(sheet.created_at)
    if created_at is None:
        return None
    return DueEvent(
        table_name=sheet.table_name,
        table_date=sheet.table_date,
        description=sheet.description,
        profile_key=profile.key,
        profile_label=profile.label,
        due_at=created_at + timedelta(hours=profile.hours_until_due),
    )


def project_due_events(
    sheets: Sequence[LogSheet], window_start: datetime
) -> dict[str, list[DueEvent]]:
    """Bucket every due check of ``sheets`` into the 7 days from ``window_start``.

    The result holds all 7 day keys in order; days without checks map to an
    empty list. Events inside a day are ordered by due time, keeping input
    order for equal times. Sheets with an unusable creation time and unknown
    profile keys contribute nothing.
    """
    start, end = window_bounds(window_start)
    calendar: dict[str, list[DueEvent]] = {
        day.key: [] for day in calendar_days(window_start)
    }

    for sheet in sheets:
        for key in parse_profile_keys(sheet.incubation_profile_keys):
            event = due_event_for(sheet, key)
            if event is None or _is_aware(event.due_at) != _is_aware(start):
                continue
            if event.due_at < start or event.due_at > end:
                continue
            calendar.setdefault(event.day_key, []).append(event)

    for day_key, events in calendar.items():
        calendar[day_key] = sorted(events, key=lambda event: event.due_at)
    return calendar
