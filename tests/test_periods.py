from datetime import date, datetime, timedelta, timezone

import pytest

from periods import MonthKey, current_month, local_date, resolve_month


def test_month_key_parse_and_format() -> None:
    key = MonthKey.parse("2026-03")
    assert key == MonthKey(2026, 3)
    assert str(key) == "2026-03"
    assert str(MonthKey.parse("2026-3")) == "2026-03"


@pytest.mark.parametrize("value", ["", "2026", "2026-13", "2026-00", "03-2026", "abc"])
def test_month_key_parse_rejects_malformed_values(value: str) -> None:
    with pytest.raises(ValueError):
        MonthKey.parse(value)


def test_previous_month_of_january_is_december_of_prior_year() -> None:
    assert MonthKey(2026, 1).previous() == MonthKey(2025, 12)
    assert MonthKey(2026, 7).previous() == MonthKey(2026, 6)
    assert MonthKey(2025, 12).next() == MonthKey(2026, 1)


def test_days_in_month_handles_leap_years() -> None:
    assert MonthKey(2024, 2).days_in_month == 29
    assert MonthKey(2026, 2).days_in_month == 28
    assert MonthKey(2026, 10).days_in_month == 31
    assert MonthKey(2026, 2).end == date(2026, 2, 28)


def test_aware_timestamps_are_bucketed_in_owner_timezone() -> None:
    owner_tz = timezone(timedelta(hours=-5))
    just_after_midnight_utc = datetime(2026, 10, 1, 2, 0, tzinfo=timezone.utc)

    assert local_date(just_after_midnight_utc, owner_tz) == date(2026, 9, 30)
    assert MonthKey.of(just_after_midnight_utc, owner_tz) == MonthKey(2026, 9)
    assert not MonthKey(2026, 10).contains(just_after_midnight_utc, owner_tz)


def test_naive_timestamps_keep_their_wall_clock_date() -> None:
    late_evening = datetime(2026, 9, 30, 23, 59)
    assert local_date(late_evening, timezone.utc) == date(2026, 9, 30)
    assert local_date(date(2026, 9, 30)) == date(2026, 9, 30)


def test_resolve_month_defaults_to_current_month() -> None:
    today = date(2026, 10, 19)
    assert current_month(today) == MonthKey(2026, 10)
    assert resolve_month(None, today=today) == MonthKey(2026, 10)
    assert resolve_month("2025-12", today=today) == MonthKey(2025, 12)
