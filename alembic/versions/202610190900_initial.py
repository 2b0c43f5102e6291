"""expenses and budgets

Revision ID: 202610190900
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "202610190900"
down_revision = None
branch_labels = None
depends_on = None


CATEGORY_VALUES = (
    "Home",
    "Groceries",
    "Restaurant",
    "Hobby",
    "Personal care",
    "Subscriptions",
    "Nightlife",
    "Rent",
    "Bills",
    "Travel",
    "Transport",
    "Pets",
    "Gifts",
    "Other",
)


def upgrade() -> None:
    op.create_table(
        "expenses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("owner", sa.String(length=255), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column(
            "category", sa.Enum(*CATEGORY_VALUES, name="category"), nullable=False
        ),
        sa.Column(
            "type",
            sa.Enum("Individual", "Shared", name="expensetype"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("observation", sa.Text(), nullable=True),
        sa.CheckConstraint("amount >= 0", name="ck_expenses_amount_positive"),
    )
    op.create_index(
        "ix_expenses_owner_created_at", "expenses", ["owner", "created_at"]
    )
    op.create_index("ix_expenses_owner_category", "expenses", ["owner", "category"])

    op.create_table(
        "budgets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("owner", sa.String(length=255), nullable=False),
        sa.Column(
            "category", sa.Enum(*CATEGORY_VALUES, name="category"), nullable=False
        ),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_budgets_amount_positive"),
        sa.UniqueConstraint("owner", "category", name="uq_budget_owner_category"),
    )


def downgrade() -> None:
    op.drop_table("budgets")
    op.drop_index("ix_expenses_owner_category", table_name="expenses")
    op.drop_index("ix_expenses_owner_created_at", table_name="expenses")
    op.drop_table("expenses")
