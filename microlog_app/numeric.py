"""Strict decimal parsing for lab result cells."""
from __future__ import annotations

import math
import re
from typing import Optional

# Optional sign, then "12", "12.", "12.5" or ".5". No exponent, qualifier or unit.
_DECIMAL_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")


def parse_decimal(raw: str | float | int | None) -> Optional[float]:
    """Parse a lab value as entered into a float.

    Comma decimal separators are accepted (``"1,5"`` -> ``1.5``). Values with a
    qualifier such as ``"<1"`` are not numbers and yield ``None``, as does any
    empty or malformed input. Never raises.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
        if math.isnan(value) or math.isinf(value):
            return None
        return value
    if not isinstance(raw, str):
        return None

    cleaned = raw.strip()
    if not cleaned:
        return None
    cleaned = cleaned.replace(",", ".")
    if not _DECIMAL_RE.fullmatch(cleaned):
        return None
    return float(cleaned)


def is_decimal(raw: str | float | int | None) -> bool:
    return parse_decimal(raw) is not None
