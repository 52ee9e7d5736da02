"""Per-product aggregation of microbiology results."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Mapping, Optional

from .numeric import parse_decimal
from .thresholds import ANALYTE_COLUMNS, THRESHOLD_RULES, Analyte, is_out_of_spec

NO_PRODUCT = "(no product)"


@dataclass(frozen=True)
class ValueSummary:
    count: int
    avg: float
    min: float
    max: float

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "avg": round(self.avg, 2),
            "min": self.min,
            "max": self.max,
        }


def summarize_values(values: list[float]) -> Optional[ValueSummary]:
    if not values:
        return None
    return ValueSummary(
        count=len(values),
        avg=sum(values) / len(values),
        min=min(values),
        max=max(values),
    )


def out_of_spec_percentage(flagged: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(flagged / total * 100, 1)


@dataclass
class ProductStats:
    product: str
    count_rows: int = 0
    min_date: Optional[date] = None
    max_date: Optional[date] = None
    values: dict[Analyte, list[float]] = field(
        default_factory=lambda: {analyte: [] for analyte in Analyte}
    )
    out_of_spec: dict[Analyte, int] = field(
        default_factory=lambda: {analyte: 0 for analyte in THRESHOLD_RULES}
    )

    def add_row(self, row: Mapping[str, Any]) -> None:
        self.count_rows += 1

        table_date = row.get("table_date")
        if table_date:
            if self.min_date is None or table_date < self.min_date:
                self.min_date = table_date
            if self.max_date is None or table_date > self.max_date:
                self.max_date = table_date

        for column, analyte in ANALYTE_COLUMNS.items():
            raw = row.get(column)
            value = parse_decimal(raw)
            if value is not None:
                self.values[analyte].append(value)
            if analyte in self.out_of_spec and is_out_of_spec(analyte, raw):
                self.out_of_spec[analyte] += 1

    def summary(self, analyte: Analyte) -> Optional[ValueSummary]:
        return summarize_values(self.values[analyte])

    def percentage(self, analyte: Analyte) -> float:
        return out_of_spec_percentage(self.out_of_spec.get(analyte, 0), self.count_rows)

    def to_dict(self) -> dict:
        results = {}
        for analyte in Analyte:
            summary = self.summary(analyte)
            entry: dict[str, Any] = {"summary": summary.to_dict() if summary else None}
            if analyte in self.out_of_spec:
                entry["out_of_spec"] = self.out_of_spec[analyte]
                entry["out_of_spec_pct"] = self.percentage(analyte)
            results[analyte.value] = entry
        return {
            "product": self.product,
            "count_rows": self.count_rows,
            "min_date": _iso(self.min_date),
            "max_date": _iso(self.max_date),
            "analytes": results,
        }


def summarize_by_product(rows: Iterable[Mapping[str, Any]]) -> list[ProductStats]:
    """Group rows by product, preserving first-seen order."""
    grouped: dict[str, ProductStats] = {}
    for row in rows:
        name = row.get("product") or NO_PRODUCT
        stats = grouped.get(name)
        if stats is None:
            stats = grouped[name] = ProductStats(product=name)
        stats.add_row(row)
    return list(grouped.values())


def _iso(value: Optional[date]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, date):
        return value.isoformat()
    return str(value)
