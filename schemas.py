from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from categories import Category, normalize_category
from formatting import parse_amount
from models import ExpenseType

# Largest value a SQLite INTEGER column holds.
MAX_AMOUNT = 2**63 - 1


def _coerce_category(value: object) -> object:
    if isinstance(value, str):
        return normalize_category(value)
    return value


def _coerce_expense_type(value: object) -> object:
    if isinstance(value, str) and not isinstance(value, ExpenseType):
        key = value.strip().casefold()
        for member in ExpenseType:
            if key in (member.name, member.value.casefold()):
                return member
    return value


def _coerce_amount(value: object) -> object:
    if isinstance(value, str):
        return parse_amount(value)
    return value


class ExpenseIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: int = Field(..., ge=0, le=MAX_AMOUNT)
    category: Category
    # None keeps the stored type on update and means Individual on create.
    type: Optional[ExpenseType] = None
    created_at: Optional[datetime] = None
    observation: Optional[str] = Field(default=None, max_length=500)

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category_label(cls, value: object) -> object:
        return _coerce_category(value)

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type_label(cls, value: object) -> object:
        return _coerce_expense_type(value)

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount_text(cls, value: object) -> object:
        return _coerce_amount(value)

    @field_validator("observation")
    @classmethod
    def blank_observation_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None


class BudgetIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    category: Category
    # 0 removes the budget for the category.
    amount: int = Field(..., ge=0, le=MAX_AMOUNT)

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category_label(cls, value: object) -> object:
        return _coerce_category(value)

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount_text(cls, value: object) -> object:
        return _coerce_amount(value)


class ExpenseFilters(BaseModel):
    category: Optional[Category] = None
    type: Optional[ExpenseType] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category_label(cls, value: object) -> object:
        if value == "":
            return None
        return _coerce_category(value)

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type_label(cls, value: object) -> object:
        if value == "":
            return None
        return _coerce_expense_type(value)


class ExpenseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    amount: int
    category: Category
    type: ExpenseType
    created_at: datetime
    observation: Optional[str]


class BudgetOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    category: Category
    amount: int


class KPIOut(BaseModel):
    month: str
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
    projection_method: str
    month_over_month_change: Optional[float]
    category_totals: dict[str, int]
