from __future__ import annotations

import pytest

from microlog_app.numeric import parse_decimal
from microlog_app.thresholds import (
    THRESHOLD_RULES,
    Analyte,
    count_out_of_spec,
    flag_row,
    is_out_of_spec,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1", 1.0),
        (" 2.5 ", 2.5),
        ("1,5", 1.5),
        ("-3", -3.0),
        ("+4.", 4.0),
        (".5", 0.5),
        (7, 7.0),
        (0.25, 0.25),
    ],
)
def test_parse_decimal_accepts_plain_numbers(raw, expected):
    assert parse_decimal(raw) == expected


@pytest.mark.parametrize(
    "raw",
    [None, "", "   ", "<1", ">300", "abc", "1e3", "1.2.3", "1,000.5", "5 cfu", ".", "-", True, float("nan")],
)
def test_parse_decimal_rejects_everything_else(raw):
    assert parse_decimal(raw) is None


@pytest.mark.parametrize("analyte", list(Analyte))
@pytest.mark.parametrize("raw", [None, "", "  ", "n/a", "<1", "1e5"])
def test_unparseable_values_are_never_flagged(analyte, raw):
    assert is_out_of_spec(analyte, raw) is False


@pytest.mark.parametrize("raw", ["0", "1", "40.01", "1000000", "-5", "9,9"])
def test_tmc30_is_informational_only(raw):
    assert is_out_of_spec(Analyte.TMC30, raw) is False
    assert is_out_of_spec("tmc30", raw) is False


def test_entero_threshold_is_inclusive():
    assert is_out_of_spec("entero", "1") is True
    assert is_out_of_spec("entero", "0.99") is False
    assert is_out_of_spec("entero", "1,5") is True


def test_yeasts_threshold_is_exclusive():
    assert is_out_of_spec(Analyte.YEASTS_MOLDS, "40") is False
    assert is_out_of_spec(Analyte.YEASTS_MOLDS, "40.01") is True
    assert is_out_of_spec("yeastsMolds", "41") is True


def test_bacillus_qualified_value_is_compliant():
    assert is_out_of_spec("bacillus", "<1") is False
    assert is_out_of_spec("bacillus", "1.0") is True


def test_unknown_analyte_has_no_rule():
    assert is_out_of_spec("listeria", "500") is False


def test_rules_table_is_read_only():
    assert set(THRESHOLD_RULES) == {Analyte.ENTERO, Analyte.BACILLUS, Analyte.YEASTS_MOLDS}
    with pytest.raises(TypeError):
        THRESHOLD_RULES[Analyte.TMC30] = THRESHOLD_RULES[Analyte.ENTERO]


def test_flag_row_marks_each_result_column():
    flags = flag_row(
        {"enterobacteriacea": "2", "tmc_30": "900", "yeasts_molds": "40", "bacillus": None}
    )
    assert flags == {
        "enterobacteriacea": True,
        "tmc_30": False,
        "yeasts_molds": False,
        "bacillus": False,
    }


def test_count_out_of_spec_over_rows():
    rows = [
        {"enterobacteriacea": "1", "yeasts_molds": "41", "bacillus": "<1"},
        {"enterobacteriacea": "0", "yeasts_molds": "100", "bacillus": "3"},
        {},
    ]
    assert count_out_of_spec(rows) == {
        Analyte.ENTERO: 1,
        Analyte.BACILLUS: 1,
        Analyte.YEASTS_MOLDS: 2,
    }
