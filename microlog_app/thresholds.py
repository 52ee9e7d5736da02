"""Out-of-spec classification of microbiology results."""
from __future__ import annotations

import enum
import operator
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional

from .numeric import parse_decimal


class Analyte(str, enum.Enum):
    ENTERO = "entero"
    TMC30 = "tmc30"
    YEASTS_MOLDS = "yeasts_molds"
    BACILLUS = "bacillus"


@dataclass(frozen=True)
class ThresholdRule:
    analyte: Analyte
    operator: str
    limit: float

    def breached_by(self, value: float) -> bool:
        return _COMPARATORS[self.operator](value, self.limit)


_COMPARATORS: Mapping[str, Callable[[float, float], bool]] = MappingProxyType(
    {">=": operator.ge, ">": operator.gt}
)

# TMC 30°C is informational only and has no rule.
THRESHOLD_RULES: Mapping[Analyte, ThresholdRule] = MappingProxyType(
    {
        Analyte.ENTERO: ThresholdRule(Analyte.ENTERO, ">=", 1.0),
        Analyte.BACILLUS: ThresholdRule(Analyte.BACILLUS, ">=", 1.0),
        Analyte.YEASTS_MOLDS: ThresholdRule(Analyte.YEASTS_MOLDS, ">", 40.0),
    }
)

# Row column holding each analyte's result.
ANALYTE_COLUMNS: Mapping[str, Analyte] = MappingProxyType(
    {
        "enterobacteriacea": Analyte.ENTERO,
        "tmc_30": Analyte.TMC30,
        "yeasts_molds": Analyte.YEASTS_MOLDS,
        "bacillus": Analyte.BACILLUS,
    }
)

_ALIASES: Mapping[str, Analyte] = MappingProxyType(
    {
        "yeastsMolds": Analyte.YEASTS_MOLDS,
        "enterobacteriacea": Analyte.ENTERO,
        "tmc_30": Analyte.TMC30,
    }
)


def resolve_analyte(kind: Analyte | str) -> Optional[Analyte]:
    if isinstance(kind, Analyte):
        return kind
    try:
        return Analyte(kind)
    except ValueError:
        return _ALIASES.get(kind)


def is_out_of_spec(kind: Analyte | str, raw: str | float | int | None) -> bool:
    """Return True when ``raw`` breaches the rule for ``kind``.

    Missing, blank or non-numeric values (``"<1"`` included) are never out of
    spec, and neither is any analyte without a rule.
    """
    analyte = resolve_analyte(kind)
    if analyte is None:
        return False
    rule = THRESHOLD_RULES.get(analyte)
    if rule is None:
        return False
    value = parse_decimal(raw)
    if value is None:
        return False
    return rule.breached_by(value)


def flag_row(row: Mapping[str, Any]) -> dict[str, bool]:
    """Per-cell highlight flags for one sample row, keyed by column name."""
    return {
        column: is_out_of_spec(analyte, row.get(column))
        for column, analyte in ANALYTE_COLUMNS.items()
    }


def flagged_columns(row: Mapping[str, Any]) -> list[str]:
    return [column for column, flagged in flag_row(row).items() if flagged]


def count_out_of_spec(rows: Iterable[Mapping[str, Any]]) -> dict[Analyte, int]:
    counts = {analyte: 0 for analyte in THRESHOLD_RULES}
    for row in rows:
        for column, analyte in ANALYTE_COLUMNS.items():
            if analyte in counts and is_out_of_spec(analyte, row.get(column)):
                counts[analyte] += 1
    return counts
