from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from categories import Category
from database import Base


class ExpenseType(str, Enum):
    individual = "Individual"
    shared = "Shared"


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


CATEGORY_ENUM = SAEnum(
    Category,
    name="category",
    values_callable=_enum_values,
    validate_strings=True,
)

EXPENSE_TYPE_ENUM = SAEnum(
    ExpenseType,
    name="expensetype",
    values_callable=_enum_values,
    validate_strings=True,
)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class Expense(Base):
    __tablename__ = "expenses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[Category] = mapped_column(CATEGORY_ENUM, nullable=False)
    type: Mapped[ExpenseType] = mapped_column(
        EXPENSE_TYPE_ENUM, nullable=False, default=ExpenseType.individual
    )
    # Local wall-clock time of the expense; decides its month bucket.
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    observation: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        Index("ix_expenses_owner_created_at", "owner", "created_at"),
        Index("ix_expenses_owner_category", "owner", "category"),
        CheckConstraint("amount >= 0", name="ck_expenses_amount_positive"),
    )


class Budget(Base, TimestampMixin):
    __tablename__ = "budgets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[Category] = mapped_column(CATEGORY_ENUM, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("owner", "category", name="uq_budget_owner_category"),
        CheckConstraint("amount > 0", name="ck_budgets_amount_positive"),
    )
