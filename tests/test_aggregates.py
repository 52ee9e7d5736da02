from __future__ import annotations

from datetime import date

from microlog_app.aggregates import (
    NO_PRODUCT,
    out_of_spec_percentage,
    summarize_by_product,
    summarize_values,
)
from microlog_app.thresholds import Analyte


def test_percentage_guards_zero_rows():
    assert out_of_spec_percentage(0, 0) == 0.0
    assert out_of_spec_percentage(1, 3) == 33.3
    assert out_of_spec_percentage(2, 2) == 100.0


def test_summarize_values():
    assert summarize_values([]) is None
    summary = summarize_values([1.0, 2.0, 6.0])
    assert (summary.count, summary.avg, summary.min, summary.max) == (3, 3.0, 1.0, 6.0)


def test_summarize_by_product_groups_and_counts():
    rows = [
        {"product": "Feta", "table_date": date(2025, 1, 3), "enterobacteriacea": "2", "yeasts_molds": "10"},
        {"product": "Feta", "table_date": date(2025, 1, 1), "enterobacteriacea": "<1", "yeasts_molds": "45"},
        {"product": "Feta", "table_date": date(2025, 1, 2), "enterobacteriacea": "0,5", "bacillus": "1"},
        {"product": "", "table_date": date(2025, 1, 2), "tmc_30": "300"},
    ]
    feta, unnamed = summarize_by_product(rows)

    assert feta.product == "Feta"
    assert feta.count_rows == 3
    assert (feta.min_date, feta.max_date) == (date(2025, 1, 1), date(2025, 1, 3))
    assert feta.out_of_spec == {Analyte.ENTERO: 1, Analyte.BACILLUS: 1, Analyte.YEASTS_MOLDS: 1}
    assert feta.percentage(Analyte.ENTERO) == 33.3
    assert feta.summary(Analyte.ENTERO).count == 2
    assert feta.summary(Analyte.TMC30) is None

    assert unnamed.product == NO_PRODUCT
    assert unnamed.summary(Analyte.TMC30).max == 300.0

    payload = feta.to_dict()
    assert payload["min_date"] == "2025-01-01"
    assert payload["analytes"]["yeasts_molds"]["out_of_spec_pct"] == 33.3
    assert "out_of_spec" not in payload["analytes"]["tmc30"]
