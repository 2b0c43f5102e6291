"""Monthly spending KPIs, end-of-month projection and insights.

Everything here is a pure function of the records passed in: nothing reads
the database or the clock except through the ``today`` / ``tz`` arguments,
which default to the configured timezone's current date.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, tzinfo
from enum import Enum
from typing import Optional, Sequence

from formatting import format_currency
from models import Budget, Expense, ExpenseType
from periods import MonthKey, current_month, local_datetime, today_local


logger = logging.getLogger(__name__)

NO_EXPENSES = "No expenses"
MAX_INSIGHTS = 3

# Projection tuning.
EARLY_MONTH_DAYS = 5
RECENT_TREND_MIN_DAYS = 6
RECENT_TREND_WINDOW = 7
INTERMEDIATE_MIN_DAYS = 3
ASSUMED_MONTH_LENGTH = 30
PACE_ALERT_FACTOR = 1.5
CONSERVATIVE_FACTOR = 1.1
HYBRID_CURRENT_WEIGHT = 0.7
HYBRID_PREVIOUS_WEIGHT = 0.3
SIMPLE_CAP_FACTOR = 3
FALLBACK_FACTOR = 2


class ProjectionMethod(str, Enum):
    completed = "Month completed"
    conservative = "Conservative (based on previous month)"
    recent_average = "Average of last 7 days"
    hybrid = "Hybrid (current + previous month)"
    simple_capped = "Simple capped"
    very_conservative = "Very conservative (insufficient data)"


@dataclass(frozen=True)
class Projection:
    total: float
    method: ProjectionMethod


@dataclass(frozen=True)
class KPIData:
    month: MonthKey
    total_this_month: int
    total_last_month: int
    avg_daily_spending: float
    total_budget: int
    has_budget: bool
    budget_usage_percent: float
    budget_remaining: int
    top_category: str
    days_elapsed: int
    days_in_month: int
    days_until_month_end: int
    projected_monthly_total: float
    projection_method: ProjectionMethod
    month_over_month_change: Optional[float]
    category_totals: dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> dict[str, object]:
        return {
            "month": str(self.month),
            "total_this_month": self.total_this_month,
            "total_last_month": self.total_last_month,
            "avg_daily_spending": self.avg_daily_spending,
            "total_budget": self.total_budget,
            "has_budget": self.has_budget,
            "budget_usage_percent": self.budget_usage_percent,
            "budget_remaining": self.budget_remaining,
            "top_category": self.top_category,
            "days_elapsed": self.days_elapsed,
            "days_in_month": self.days_in_month,
            "days_until_month_end": self.days_until_month_end,
            "projected_monthly_total": self.projected_monthly_total,
            "projection_method": self.projection_method.value,
            "month_over_month_change": self.month_over_month_change,
            "category_totals": dict(self.category_totals),
        }


def category_label(category: object) -> str:
    if isinstance(category, Enum):
        return str(category.value)
    return str(category)


def partition_by_month(
    expenses: Sequence[Expense], month: MonthKey, tz: Optional[tzinfo] = None
) -> tuple[list[Expense], list[Expense]]:
    previous = month.previous()
    current_items: list[Expense] = []
    previous_items: list[Expense] = []
    for expense in expenses:
        key = MonthKey.of(expense.created_at, tz)
        if key == month:
            current_items.append(expense)
        elif key == previous:
            previous_items.append(expense)
    return current_items, previous_items


def aggregate(expenses: Sequence[Expense]) -> tuple[int, dict[str, int]]:
    total = 0
    by_category: dict[str, int] = {}
    for expense in expenses:
        total += expense.amount
        label = category_label(expense.category)
        by_category[label] = by_category.get(label, 0) + expense.amount
    return total, by_category


def budget_usage(total_spent: int, budgets: Sequence[Budget]) -> tuple[int, float, int]:
    """Return ``(total_budget, usage_percent, remaining)``.

    Usage is 0 when nothing is budgeted, but remaining still counts down from
    zero so overspend without a budget shows up as a negative balance.
    """
    total_budget = sum(b.amount for b in budgets)
    usage = (total_spent / total_budget) * 100 if total_budget > 0 else 0.0
    return total_budget, usage, total_budget - total_spent


def days_elapsed_in(month: MonthKey, today: date) -> int:
    if month == current_month(today):
        return today.day
    return month.days_in_month


def average_daily(total: int, days_elapsed: int) -> float:
    if days_elapsed <= 0:
        return 0.0
    return total / days_elapsed


def project_month_total(
    current_expenses: Sequence[Expense],
    total_this_month: int,
    total_last_month: int,
    *,
    days_elapsed: int,
    days_in_month: int,
    is_current_month: bool,
    tz: Optional[tzinfo] = None,
) -> Projection:
    if not is_current_month:
        return Projection(float(total_this_month), ProjectionMethod.completed)

    has_previous = total_last_month > 0

    if days_elapsed <= EARLY_MONTH_DAYS and has_previous:
        expected = (total_last_month / ASSUMED_MONTH_LENGTH) * days_elapsed
        if total_this_month > expected * PACE_ALERT_FACTOR:
            return Projection(
                total_last_month * CONSERVATIVE_FACTOR, ProjectionMethod.conservative
            )

    if days_elapsed >= RECENT_TREND_MIN_DAYS:
        recent = sorted(
            current_expenses,
            key=lambda e: local_datetime(e.created_at, tz),
            reverse=True,
        )[:RECENT_TREND_WINDOW]
        if recent:
            mean = sum(e.amount for e in recent) / len(recent)
            return Projection(mean * days_in_month, ProjectionMethod.recent_average)

    if days_elapsed >= INTERMEDIATE_MIN_DAYS:
        simple = average_daily(total_this_month, days_elapsed) * days_in_month
        if has_previous:
            blended = (
                HYBRID_CURRENT_WEIGHT * simple
                + HYBRID_PREVIOUS_WEIGHT * total_last_month
            )
            return Projection(blended, ProjectionMethod.hybrid)
        capped = min(simple, float(total_this_month * SIMPLE_CAP_FACTOR))
        return Projection(capped, ProjectionMethod.simple_capped)

    return Projection(
        float(total_this_month * FALLBACK_FACTOR), ProjectionMethod.very_conservative
    )


def top_category(category_totals: dict[str, int]) -> str:
    best: Optional[str] = None
    best_amount = 0
    for label, amount in category_totals.items():
        # strict comparison keeps the first-seen category on ties
        if best is None or amount > best_amount:
            best = label
            best_amount = amount
    return best if best is not None else NO_EXPENSES


def month_over_month_change(total_this_month: int, total_last_month: int) -> Optional[float]:
    if total_last_month <= 0:
        return None
    return (total_this_month - total_last_month) / total_last_month * 100


def calculate_kpis(
    expenses: Sequence[Expense],
    budgets: Sequence[Budget],
    month: Optional[MonthKey] = None,
    *,
    today: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> KPIData:
    today = today or today_local(tz)
    month = month or current_month(today)
    is_current = month == current_month(today)

    this_month, last_month = partition_by_month(expenses, month, tz)
    total_this_month, category_totals = aggregate(this_month)
    total_last_month, _ = aggregate(last_month)

    total_budget, usage, remaining = budget_usage(total_this_month, budgets)
    days_elapsed = days_elapsed_in(month, today)
    days_in_month = month.days_in_month

    projection = project_month_total(
        this_month,
        total_this_month,
        total_last_month,
        days_elapsed=days_elapsed,
        days_in_month=days_in_month,
        is_current_month=is_current,
        tz=tz,
    )
    logger.debug(
        f"kpis: month={month} days_elapsed={days_elapsed} "
        f"projection_method={projection.method.value}"
    )

    return KPIData(
        month=month,
        total_this_month=total_this_month,
        total_last_month=total_last_month,
        avg_daily_spending=average_daily(total_this_month, days_elapsed),
        total_budget=total_budget,
        has_budget=total_budget > 0,
        budget_usage_percent=usage,
        budget_remaining=remaining,
        top_category=top_category(category_totals),
        days_elapsed=days_elapsed,
        days_in_month=days_in_month,
        days_until_month_end=(days_in_month - today.day) if is_current else 0,
        projected_monthly_total=projection.total,
        projection_method=projection.method,
        month_over_month_change=month_over_month_change(
            total_this_month, total_last_month
        ),
        category_totals=category_totals,
    )


def generate_insights(kpis: KPIData, *, limit: int = MAX_INSIGHTS) -> list[str]:
    """Short summaries in fixed rule order; only the first ``limit`` survive."""
    insights: list[str] = []

    usage = kpis.budget_usage_percent
    if usage > 100:
        insights.append(
            f"⚠️ You have exceeded your monthly budget by {usage - 100:.1f}%"
        )
    elif usage > 80:
        insights.append(f"⚡ You have used {usage:.1f}% of your monthly budget")

    change = kpis.month_over_month_change
    if change is not None:
        if change > 20:
            insights.append(
                f"📈 Your spending increased {change:.1f}% compared to last month"
            )
        elif change < -20:
            insights.append(
                f"📉 Great job! You reduced your spending {abs(change):.1f}% this month"
            )

    if kpis.projected_monthly_total > kpis.total_this_month * PACE_ALERT_FACTOR:
        insights.append(
            "🎯 At your current pace you could end the month at "
            f"{format_currency(kpis.projected_monthly_total)} "
            f"({kpis.projection_method.value})"
        )

    if kpis.top_category != NO_EXPENSES:
        insights.append(
            f'🏆 Your largest spending category this month is "{kpis.top_category}"'
        )

    return insights[:limit]


def category_breakdown(expenses: Sequence[Expense]) -> list[dict[str, object]]:
    total, by_category = aggregate(expenses)
    rows = [
        {
            "category": label,
            "total": amount,
            "percentage": (amount / total * 100) if total > 0 else 0.0,
        }
        for label, amount in by_category.items()
    ]
    rows.sort(key=lambda row: row["total"], reverse=True)
    return rows


def monthly_totals(
    expenses: Sequence[Expense], tz: Optional[tzinfo] = None
) -> list[dict[str, object]]:
    totals: dict[MonthKey, int] = {}
    for expense in expenses:
        key = MonthKey.of(expense.created_at, tz)
        totals[key] = totals.get(key, 0) + expense.amount
    return [{"month": str(key), "total": totals[key]} for key in sorted(totals)]


def type_breakdown(expenses: Sequence[Expense]) -> dict[ExpenseType, int]:
    totals = {expense_type: 0 for expense_type in ExpenseType}
    for expense in expenses:
        totals[ExpenseType(expense.type or ExpenseType.individual)] += expense.amount
    return totals


def budget_progress(
    expenses: Sequence[Expense],
    budgets: Sequence[Budget],
    month: MonthKey,
    tz: Optional[tzinfo] = None,
) -> dict[str, object]:
    this_month, _ = partition_by_month(expenses, month, tz)
    _, spent_by_category = aggregate(this_month)
    budget_by_category = {category_label(b.category): b.amount for b in budgets}

    labels = list(spent_by_category)
    labels += [label for label in budget_by_category if label not in spent_by_category]

    rows: list[dict[str, object]] = []
    for label in labels:
        spent = spent_by_category.get(label, 0)
        budget = budget_by_category.get(label, 0)
        rows.append(
            {
                "category": label,
                "spent": spent,
                "budget": budget,
                "percentage": (spent / budget * 100) if budget > 0 else 0.0,
            }
        )

    budgeted = [row for row in rows if row["budget"] > 0]
    unbudgeted = [row for row in rows if row["budget"] <= 0]
    budgeted.sort(key=lambda row: row["percentage"], reverse=True)
    unbudgeted.sort(key=lambda row: row["spent"], reverse=True)

    total_budget = sum(budget_by_category.values())
    total_spent = sum(spent_by_category.values())
    return {
        "month": str(month),
        "rows": budgeted + unbudgeted,
        "total_budget": total_budget,
        "total_spent": total_spent,
        "total_percentage": (total_spent / total_budget * 100)
        if total_budget > 0
        else 0.0,
    }
