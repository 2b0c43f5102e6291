import pytest

from categories import (
    Category,
    UnknownCategory,
    category_choices,
    category_emoji,
    normalize_category,
)
from formatting import format_currency, format_month, parse_amount


def test_underscore_and_space_variants_resolve_to_one_category() -> None:
    assert normalize_category("Personal care") == Category.personal_care
    assert normalize_category("personal_care") == Category.personal_care
    assert normalize_category("  PERSONAL-care ") == Category.personal_care


def test_single_typo_is_tolerated() -> None:
    assert normalize_category("Grocerie") == Category.groceries
    assert normalize_category("Subscriptioms") == Category.subscriptions


def test_unknown_category_is_rejected() -> None:
    with pytest.raises(UnknownCategory):
        normalize_category("Cryptocurrency")
    with pytest.raises(UnknownCategory):
        normalize_category("   ")


def test_emoji_lookup_falls_back_to_box() -> None:
    assert category_emoji("Pets") == "🐾"
    assert category_emoji("nonsense category") == "📦"
    labels = [choice["label"] for choice in category_choices()]
    assert labels[0] == "Home"
    assert len(labels) == len(Category)


def test_currency_and_month_formatting() -> None:
    assert format_currency(1234567) == "$1.234.567"
    assert format_currency(0) == "$0"
    assert format_currency(-2500) == "-$2.500"
    assert format_currency(999.6) == "$1.000"
    assert format_month("2026-10") == "October 2026"


def test_parse_amount_strips_formatting() -> None:
    assert parse_amount("$12.500") == 12500
    assert parse_amount(" 1 000 ") == 1000
    assert parse_amount("") == 0
    assert parse_amount(42) == 42
    with pytest.raises(ValueError):
        parse_amount("-300")
    with pytest.raises(ValueError):
        parse_amount("abc")
