import re
from typing import Union

from periods import MonthKey


MONTH_NAMES = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]


def format_currency(amount: Union[int, float]) -> str:
    """Whole currency units with dot thousands separators, e.g. ``$1.234.567``."""
    rounded = int(round(amount))
    sign = "-" if rounded < 0 else ""
    return f"{sign}${abs(rounded):,}".replace(",", ".")


def format_percent(value: float) -> str:
    return f"{value:.1f}%"


def format_month(month: Union[MonthKey, str]) -> str:
    key = month if isinstance(month, MonthKey) else MonthKey.parse(month)
    return f"{MONTH_NAMES[key.month - 1]} {key.year}"


def parse_amount(value: Union[str, int]) -> int:
    if isinstance(value, int):
        if value < 0:
            raise ValueError("Amount must be positive")
        return value
    clean = value.strip()
    if clean.startswith("-"):
        raise ValueError("Amount must be positive")
    digits = re.sub(r"[^\d]", "", clean)
    if not digits:
        if clean:
            raise ValueError("Invalid amount")
        return 0
    return int(digits)
