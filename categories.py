"""The one category universe shared by the store, the API and the KPI engine.

Labels used to drift between screens ("Personal_care" vs "Personal care"), so
every inbound label is routed through :func:`normalize_category`.
"""

import re
from enum import Enum
from typing import Optional

from rapidfuzz.distance import Levenshtein


class Category(str, Enum):
    home = "Home"
    groceries = "Groceries"
    restaurant = "Restaurant"
    hobby = "Hobby"
    personal_care = "Personal care"
    subscriptions = "Subscriptions"
    nightlife = "Nightlife"
    rent = "Rent"
    bills = "Bills"
    travel = "Travel"
    transport = "Transport"
    pets = "Pets"
    gifts = "Gifts"
    other = "Other"


CATEGORY_EMOJIS: dict[Category, str] = {
    Category.home: "🏠",
    Category.groceries: "🛒",
    Category.restaurant: "🍽️",
    Category.hobby: "🎨",
    Category.personal_care: "💅",
    Category.subscriptions: "📱",
    Category.nightlife: "🎉",
    Category.rent: "🏢",
    Category.bills: "📋",
    Category.travel: "✈️",
    Category.transport: "🚗",
    Category.pets: "🐾",
    Category.gifts: "🎁",
    Category.other: "📦",
}

DEFAULT_EMOJI = "📦"


class UnknownCategory(ValueError):
    pass


class CategoryAmbiguous(ValueError):
    pass


def _canonical(value: str) -> str:
    value = re.sub(r"[_\-]+", " ", value.strip())
    return re.sub(r"\s+", " ", value).casefold()


_LOOKUP: dict[str, Category] = {}
for _member in Category:
    _LOOKUP[_canonical(_member.value)] = _member
    _LOOKUP[_canonical(_member.name)] = _member


def normalize_category(raw: "str | Category") -> Category:
    if isinstance(raw, Category):
        return raw
    key = _canonical(raw or "")
    if not key:
        raise UnknownCategory("Category is required")
    exact = _LOOKUP.get(key)
    if exact is not None:
        return exact

    best_distance: Optional[int] = None
    best: list[Category] = []
    for member in Category:
        dist = int(Levenshtein.distance(key, _canonical(member.value)))
        if best_distance is None or dist < best_distance:
            best_distance = dist
            best = [member]
        elif dist == best_distance:
            best.append(member)

    if best_distance is not None and best_distance <= 1:
        if len(best) > 1:
            labels = ", ".join(m.value for m in best)
            raise CategoryAmbiguous(f"Category '{raw}' is ambiguous: {labels}")
        return best[0]
    raise UnknownCategory(f"Unknown category '{raw}'")


def category_emoji(category: "str | Category") -> str:
    try:
        return CATEGORY_EMOJIS[normalize_category(category)]
    except ValueError:
        return DEFAULT_EMOJI


def category_choices() -> list[dict[str, str]]:
    return [
        {"name": member.name, "label": member.value, "emoji": CATEGORY_EMOJIS[member]}
        for member in Category
    ]
