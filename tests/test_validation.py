from __future__ import annotations

from datetime import date

from microlog_app.failed_login import FailedLoginTracker
from microlog_app.validation import Validator


def test_sanitize_string_strips_tags_and_truncates():
    validator = Validator()
    assert validator.sanitize_string("  <b>Feta</b> ") == "Feta"
    assert validator.sanitize_string("abcdef", 3) == "abc"
    assert validator.sanitize_string(None) == ""


def test_sanitize_string_keeps_whitespace_and_entities():
    validator = Validator()
    assert validator.sanitize_string("line one\nline two") == "line one\nline two"
    assert validator.sanitize_string("a <i>b</i>  c<!-- note -->") == "a b  c"
    escaped = "&lt;script&gt;alert(1)&lt;/script&gt;"
    assert validator.sanitize_string(escaped) == escaped
    assert validator.sanitize_string("<1 cfu") == "<1 cfu"


def test_sanitize_date_is_strict():
    validator = Validator()
    assert validator.sanitize_date("2025-02-28") == date(2025, 2, 28)
    assert validator.sanitize_date("2025-02-30") is None
    assert validator.sanitize_date("28-02-2025") is None
    assert validator.sanitize_date("2025-1-5") is None
    assert validator.sanitize_date(" 2025-01-05 ") == date(2025, 1, 5)
    assert validator.sanitize_date("") is None


def test_sanitize_result_keeps_text_as_entered():
    validator = Validator()
    assert validator.sanitize_result("entero", " 1,5 ") == "1,5"
    assert validator.sanitize_result("bacillus", "<1") == "<1"
    assert validator.sanitize_result("tmc_30", "") is None
    assert not validator.has_errors()


def test_sanitize_result_rejects_garbage_and_negatives():
    validator = Validator()
    assert validator.sanitize_result("entero", "abc", "Enterobacteriacea") is None
    assert validator.sanitize_result("bacillus", "-2", "Bacillus") is None
    assert validator.errors == {
        "entero": "Enterobacteriacea must be zero or greater",
        "bacillus": "Bacillus must be zero or greater",
    }
    assert validator.first_error() == "Enterobacteriacea must be zero or greater"


def test_required_and_date_validators():
    validator = Validator()
    assert validator.validate_required("table_name", "", "Table name") is False
    assert validator.validate_date("table_date", "", "Table date") is True
    assert validator.validate_date("exp", "2025-13-01", "Expiration date") is False
    assert set(validator.errors) == {"table_name", "exp"}


def test_failed_login_tracker_locks_and_expires():
    now = [1000.0]
    tracker = FailedLoginTracker(max_attempts=3, lockout_seconds=60, clock=lambda: now[0])

    assert tracker.increment("nikos") == 1
    assert tracker.remaining_attempts("nikos") == 2
    tracker.increment("nikos")
    assert not tracker.is_locked("nikos")
    tracker.increment("nikos")
    assert tracker.is_locked("nikos")
    assert tracker.lockout_remaining("nikos") == 60

    now[0] += 61
    assert not tracker.is_locked("nikos")
    assert tracker.get_attempts("nikos") == 0


def test_failed_login_tracker_reset():
    tracker = FailedLoginTracker()
    tracker.increment("maria")
    tracker.reset("maria")
    assert tracker.get_attempts("maria") == 0
