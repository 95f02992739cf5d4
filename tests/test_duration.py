"""Payment duration value object and the remaining-days countdown."""
from datetime import datetime, timedelta, timezone

import pytest

from paybox.core.errors import MissingFieldError
from paybox.services.duration import (
    PaymentDuration,
    days_elapsed,
    is_expired,
    remaining_days,
    window_ends_at,
)

START = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "kind,days",
    [("24h", 1), ("3days", 3), ("7days", 7), ("1month", 30)],
)
def test_fixed_choices_resolve_day_count(kind, days):
    d = PaymentDuration.from_choice(kind)
    assert d.kind == kind
    assert d.days == days
    assert d.has_countdown


def test_custom_uses_given_days():
    d = PaymentDuration.from_choice("custom", 12)
    assert (d.kind, d.days) == ("custom", 12)


def test_custom_without_days_is_missing():
    with pytest.raises(MissingFieldError) as exc:
        PaymentDuration.from_choice("custom")
    assert exc.value.field == "custom_days"


@pytest.mark.parametrize("days", [0, -3, 366])
def test_custom_out_of_range(days):
    with pytest.raises(MissingFieldError):
        PaymentDuration.from_choice("custom", days)


def test_custom_rejects_booleans():
    with pytest.raises(MissingFieldError):
        PaymentDuration.from_choice("custom", True)


def test_unknown_or_empty_kind():
    with pytest.raises(MissingFieldError):
        PaymentDuration.from_choice("2weeks")
    with pytest.raises(MissingFieldError):
        PaymentDuration.from_choice("  ")


def test_fixed_kind_rejects_mismatched_days():
    with pytest.raises(MissingFieldError):
        PaymentDuration("7days", 3)


def test_no_time_has_no_countdown():
    d = PaymentDuration.from_choice("no_time")
    assert d.days == 0
    assert not d.has_countdown
    later = START + timedelta(days=400)
    assert remaining_days(START, 0, later, "no_time") is None
    assert is_expired(START, 0, later, "no_time") is False


def test_days_elapsed_truncates():
    assert days_elapsed(START, START + timedelta(hours=23, minutes=59)) == 0
    assert days_elapsed(START, START + timedelta(days=1)) == 1
    assert days_elapsed(START, START - timedelta(hours=30)) == -1


def test_remaining_days_none_before_start():
    assert remaining_days(None, 7, START) is None
    assert remaining_days(START, None, START) is None
    assert is_expired(None, 7, START) is False


def test_remaining_days_counts_down_and_floors_at_zero():
    assert remaining_days(START, 7, START) == 7
    assert remaining_days(START, 7, START + timedelta(days=2, hours=5)) == 5
    assert remaining_days(START, 7, START + timedelta(days=6, hours=23)) == 1
    assert remaining_days(START, 7, START + timedelta(days=7)) == 0
    assert remaining_days(START, 7, START + timedelta(days=90)) == 0


def test_expiry_is_exactly_at_window_end():
    assert not is_expired(START, 3, START + timedelta(days=3) - timedelta(seconds=1))
    assert is_expired(START, 3, START + timedelta(days=3))
    assert window_ends_at(START, 3) == START + timedelta(days=3)


def test_remaining_days_is_monotonic():
    previous = None
    for hours in range(0, 24 * 10, 7):
        left = remaining_days(START, 7, START + timedelta(hours=hours))
        assert left >= 0
        if previous is not None:
            assert left <= previous
        previous = left
