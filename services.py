from __future__ import annotations

import logging
from datetime import date, datetime, time, tzinfo
from typing import Optional, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from categories import Category
from config import get_settings
from kpis import (
    KPIData,
    budget_progress,
    calculate_kpis,
    category_breakdown,
    generate_insights,
    monthly_totals,
    partition_by_month,
    type_breakdown,
)
from models import Budget, Expense, ExpenseType
from periods import MonthKey, current_month, default_timezone, local_datetime, today_local
from schemas import BudgetIn, ExpenseFilters, ExpenseIn


logger = logging.getLogger(__name__)


def get_current_owner() -> str:
    return get_settings().default_owner


def describe_store_error(exc: BaseException) -> str:
    """User-facing message for a rejected store operation."""
    if isinstance(exc, IntegrityError):
        text = str(exc.orig) if exc.orig is not None else str(exc)
        if "UNIQUE" in text.upper() or "DUPLICATE" in text.upper():
            return "A record with this data already exists"
        return "The record violates a data constraint"
    if isinstance(exc, PermissionError):
        return "You do not have permission to perform this action"
    message = str(exc).strip()
    return message or "An unexpected error occurred"


class ExpenseService:
    def __init__(
        self,
        session: Session,
        owner: Optional[str] = None,
        tz: Optional[tzinfo] = None,
    ) -> None:
        self.session = session
        self.owner = owner or get_current_owner()
        self.tz = tz or default_timezone()

    def _created_at(self, value: Optional[datetime]) -> datetime:
        if value is None:
            return datetime.now(self.tz).replace(tzinfo=None, microsecond=0)
        return local_datetime(value, self.tz)

    def create(self, data: ExpenseIn) -> Expense:
        expense = Expense(
            owner=self.owner,
            amount=data.amount,
            category=data.category,
            type=data.type or ExpenseType.individual,
            created_at=self._created_at(data.created_at),
            observation=data.observation,
        )
        self.session.add(expense)
        self._commit()
        self.session.refresh(expense)
        logger.info(
            f"expense_created: owner={self.owner} id={expense.id} "
            f"amount={expense.amount} category={expense.category.value}"
        )
        return expense

    def get(self, expense_id: int) -> Expense:
        expense = self.session.get(Expense, expense_id)
        if not expense or expense.owner != self.owner:
            raise ValueError("Expense not found")
        return expense

    def update(self, expense_id: int, data: ExpenseIn) -> Expense:
        expense = self.get(expense_id)
        expense.amount = data.amount
        expense.category = data.category
        if data.type is not None:
            expense.type = data.type
        expense.observation = data.observation
        if data.created_at is not None:
            expense.created_at = self._created_at(data.created_at)
        self._commit()
        self.session.refresh(expense)
        logger.info(f"expense_updated: owner={self.owner} id={expense.id}")
        return expense

    def delete(self, expense_id: int) -> None:
        expense = self.get(expense_id)
        self.session.delete(expense)
        self._commit()
        logger.info(f"expense_deleted: owner={self.owner} id={expense_id}")

    def list(self, filters: Optional[ExpenseFilters] = None) -> list[Expense]:
        filters = filters or ExpenseFilters()
        stmt = select(Expense).where(Expense.owner == self.owner)
        if filters.category is not None:
            stmt = stmt.where(Expense.category == filters.category)
        if filters.type is not None:
            stmt = stmt.where(Expense.type == filters.type)
        if filters.date_from is not None:
            stmt = stmt.where(
                Expense.created_at >= datetime.combine(filters.date_from, time.min)
            )
        if filters.date_to is not None:
            stmt = stmt.where(
                Expense.created_at <= datetime.combine(filters.date_to, time.max)
            )
        stmt = stmt.order_by(Expense.created_at.desc(), Expense.id.desc())
        return list(self.session.scalars(stmt).all())

    def list_all(self) -> list[Expense]:
        return self.list()

    def _commit(self) -> None:
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            logger.warning(f"expense_rejected: owner={self.owner} error={exc.orig}")
            raise ValueError(describe_store_error(exc)) from exc


class BudgetService:
    def __init__(self, session: Session, owner: Optional[str] = None) -> None:
        self.session = session
        self.owner = owner or get_current_owner()

    def list_all(self) -> list[Budget]:
        stmt = (
            select(Budget).where(Budget.owner == self.owner).order_by(Budget.category)
        )
        return list(self.session.scalars(stmt).all())

    def get(self, category: Category) -> Optional[Budget]:
        return self.session.scalar(
            select(Budget).where(
                Budget.owner == self.owner, Budget.category == category
            )
        )

    def upsert(self, data: BudgetIn) -> Optional[Budget]:
        """Create or replace the owner's budget; an amount of 0 removes it."""
        existing = self.get(data.category)
        if data.amount == 0:
            if existing:
                self.session.delete(existing)
                self._commit()
                logger.info(
                    f"budget_removed: owner={self.owner} "
                    f"category={data.category.value}"
                )
            return None

        if existing:
            existing.amount = data.amount
            self._commit()
            self.session.refresh(existing)
            logger.info(
                f"budget_updated: owner={self.owner} "
                f"category={data.category.value} amount={data.amount}"
            )
            return existing

        budget = Budget(owner=self.owner, category=data.category, amount=data.amount)
        self.session.add(budget)
        self._commit()
        self.session.refresh(budget)
        logger.info(
            f"budget_created: owner={self.owner} "
            f"category={data.category.value} amount={data.amount}"
        )
        return budget

    def delete(self, category: Category) -> None:
        budget = self.get(category)
        if not budget:
            raise ValueError("Budget not found")
        self.session.delete(budget)
        self._commit()
        logger.info(f"budget_removed: owner={self.owner} category={category.value}")

    def _commit(self) -> None:
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            logger.warning(f"budget_rejected: owner={self.owner} error={exc.orig}")
            raise ValueError(describe_store_error(exc)) from exc


class ExpenseSource(Protocol):
    def list_all(self) -> Sequence[Expense]: ...


class BudgetSource(Protocol):
    def list_all(self) -> Sequence[Budget]: ...


class StatsService:
    """Fetches a fresh snapshot from the injected sources and runs the KPI engine.

    Nothing is cached: every call reads the sources again, so results are
    only as old as the request that produced them.
    """

    def __init__(
        self,
        expenses: ExpenseSource,
        budgets: BudgetSource,
        *,
        tz: Optional[tzinfo] = None,
    ) -> None:
        self.expenses = expenses
        self.budgets = budgets
        self.tz = tz or default_timezone()

    def kpis(
        self, month: Optional[MonthKey] = None, *, today: Optional[date] = None
    ) -> KPIData:
        today = today or today_local(self.tz)
        month = month or current_month(today)
        result = calculate_kpis(
            self.expenses.list_all(),
            self.budgets.list_all(),
            month,
            today=today,
            tz=self.tz,
        )
        logger.info(
            f"kpis_computed: month={month} total={result.total_this_month} "
            f"projection_method={result.projection_method.value}"
        )
        return result

    def insights(
        self, month: Optional[MonthKey] = None, *, today: Optional[date] = None
    ) -> list[str]:
        return generate_insights(self.kpis(month, today=today))

    def budget_progress(
        self, month: Optional[MonthKey] = None, *, today: Optional[date] = None
    ) -> dict[str, object]:
        month = month or current_month(today or today_local(self.tz))
        return budget_progress(
            self.expenses.list_all(), self.budgets.list_all(), month, self.tz
        )

    def _expenses_for(self, month: Optional[MonthKey]) -> list[Expense]:
        expenses = list(self.expenses.list_all())
        if month is None:
            return expenses
        this_month, _ = partition_by_month(expenses, month, self.tz)
        return this_month

    def category_breakdown(
        self, month: Optional[MonthKey] = None
    ) -> list[dict[str, object]]:
        return category_breakdown(self._expenses_for(month))

    def type_breakdown(self, month: Optional[MonthKey] = None) -> dict[ExpenseType, int]:
        return type_breakdown(self._expenses_for(month))

    def monthly_totals(self) -> list[dict[str, object]]:
        return monthly_totals(self.expenses.list_all(), self.tz)
