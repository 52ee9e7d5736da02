"""Input validation and sanitization for form and JSON payloads."""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Optional

from .numeric import parse_decimal

RESULT_MAX_LENGTH = 32
QUALIFIERS = ("<", ">")
DATE_FORMAT = "%Y-%m-%d"

# Comments and tags only; entities and whitespace are kept as typed.
TAG_RE = re.compile(r"<!--.*?-->|</?[A-Za-z!?][^>]*>", re.DOTALL)


class Validator:
    """Collects field errors while sanitizing one request's input."""

    def __init__(self) -> None:
        self._errors: dict[str, str] = {}

    def sanitize_string(self, value: Any, max_length: int = 255) -> str:
        if value is None:
            return ""
        cleaned = TAG_RE.sub("", str(value)).strip()
        if max_length > 0 and len(cleaned) > max_length:
            cleaned = cleaned[:max_length]
        return cleaned

    def sanitize_date(self, value: Any) -> Optional[date]:
        if isinstance(value, date):
            return value
        if not value or not isinstance(value, str):
            return None
        value = value.strip()
        try:
            parsed = datetime.strptime(value, DATE_FORMAT)
        except ValueError:
            return None
        if parsed.strftime(DATE_FORMAT) != value:
            return None
        return parsed.date()

    def sanitize_result(self, field: str, value: Any, label: str | None = None) -> Optional[str]:
        """Keep a lab result as entered, provided it reads as one.

        Accepts non-negative decimals (comma or dot) and qualified readings
        such as ``<1``; anything else records a field error.
        """
        if value is None:
            return None
        cleaned = self.sanitize_string(value, RESULT_MAX_LENGTH)
        if not cleaned:
            return None
        if cleaned.startswith(QUALIFIERS):
            return cleaned
        number = parse_decimal(cleaned)
        if number is None or number < 0:
            self._errors[field] = f"{label or field} must be zero or greater"
            return None
        return cleaned

    def validate_required(self, field: str, value: Any, label: str | None = None) -> bool:
        if not value:
            self._errors[field] = f"{label or field} is required"
            return False
        return True

    def validate_date(self, field: str, value: Any, label: str | None = None) -> bool:
        if not value:
            return True
        if self.sanitize_date(value) is None:
            self._errors[field] = f"{label or field} must be a valid date (YYYY-MM-DD)"
            return False
        return True

    def has_errors(self) -> bool:
        return bool(self._errors)

    @property
    def errors(self) -> dict[str, str]:
        return dict(self._errors)

    def first_error(self) -> Optional[str]:
        return next(iter(self._errors.values()), None)
