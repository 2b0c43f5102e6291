from datetime import date, datetime, timezone

import pytest

from categories import Category
from kpis import ProjectionMethod, calculate_kpis, project_month_total
from models import Expense, ExpenseType


UTC = timezone.utc


def _expense(amount: int, when: datetime) -> Expense:
    return Expense(
        owner="ana@example.com",
        amount=amount,
        category=Category.groceries,
        type=ExpenseType.individual,
        created_at=when,
    )


def _september_total(amount: int) -> list[Expense]:
    return [_expense(amount, datetime(2026, 9, 15, 12, 0))]


def test_day_two_without_history_is_very_conservative() -> None:
    kpis = calculate_kpis(
        [_expense(4000, datetime(2026, 10, 1, 18, 0))],
        [],
        today=date(2026, 10, 2),
        tz=UTC,
    )
    assert kpis.projection_method == ProjectionMethod.very_conservative
    assert kpis.projected_monthly_total == 8000


def test_fast_early_pace_anchors_to_previous_month() -> None:
    expenses = _september_total(30000) + [
        _expense(10000, datetime(2026, 10, 2, 12, 0)),
    ]
    kpis = calculate_kpis(expenses, [], today=date(2026, 10, 4), tz=UTC)

    assert kpis.projection_method == ProjectionMethod.conservative
    assert kpis.projected_monthly_total == pytest.approx(33000)


def test_normal_early_pace_falls_through_to_hybrid() -> None:
    expenses = _september_total(30000) + [
        _expense(4000, datetime(2026, 10, 2, 12, 0)),
    ]
    kpis = calculate_kpis(expenses, [], today=date(2026, 10, 4), tz=UTC)

    assert kpis.projection_method == ProjectionMethod.hybrid
    simple = 4000 / 4 * 31
    assert kpis.projected_monthly_total == pytest.approx(0.7 * simple + 0.3 * 30000)


def test_normal_pace_on_day_two_with_history_uses_fallback() -> None:
    expenses = _september_total(30000) + [
        _expense(1000, datetime(2026, 10, 1, 12, 0)),
    ]
    kpis = calculate_kpis(expenses, [], today=date(2026, 10, 2), tz=UTC)

    assert kpis.projection_method == ProjectionMethod.very_conservative
    assert kpis.projected_monthly_total == 2000


def test_day_ten_uses_mean_of_seven_most_recent_records() -> None:
    expenses = [
        _expense(day * 100, datetime(2026, 10, day, 12, 0)) for day in range(1, 9)
    ]
    kpis = calculate_kpis(expenses, [], today=date(2026, 10, 10), tz=UTC)

    assert kpis.projection_method == ProjectionMethod.recent_average
    # days 2..8 -> 200..800, mean 500
    assert kpis.projected_monthly_total == pytest.approx(500 * 31)


def test_recent_window_orders_by_timestamp_not_input_order() -> None:
    expenses = [_expense(1000, datetime(2026, 10, 9, 12, 0))]
    expenses += [_expense(10, datetime(2026, 10, 1, 8, minute)) for minute in range(7)]
    projection = project_month_total(
        [expenses[1], expenses[0]] + expenses[2:],
        sum(e.amount for e in expenses),
        0,
        days_elapsed=9,
        days_in_month=31,
        is_current_month=True,
        tz=UTC,
    )
    assert projection.method == ProjectionMethod.recent_average
    # newest (1000) plus six of the 10s
    assert projection.total == pytest.approx((1000 + 6 * 10) / 7 * 31)


def test_day_six_without_records_falls_back_to_hybrid_with_history() -> None:
    kpis = calculate_kpis(_september_total(30000), [], today=date(2026, 10, 7), tz=UTC)
    assert kpis.projection_method == ProjectionMethod.hybrid
    assert kpis.projected_monthly_total == pytest.approx(9000)


def test_intermediate_without_history_is_capped_at_three_times_spend() -> None:
    projection = project_month_total(
        [],
        6000,
        0,
        days_elapsed=4,
        days_in_month=30,
        is_current_month=True,
    )
    assert projection.method == ProjectionMethod.simple_capped
    assert projection.total == 18000


def test_intermediate_without_history_below_cap_uses_linear_pace() -> None:
    projection = project_month_total(
        [],
        1000,
        0,
        days_elapsed=5,
        days_in_month=10,
        is_current_month=True,
    )
    assert projection.method == ProjectionMethod.simple_capped
    assert projection.total == pytest.approx(2000)


def test_completed_month_returns_actual_total() -> None:
    projection = project_month_total(
        [],
        4321,
        9999,
        days_elapsed=30,
        days_in_month=30,
        is_current_month=False,
    )
    assert projection.method == ProjectionMethod.completed
    assert projection.total == 4321
