"""Canonical taxonomy definitions for wardrobe records.

This module centralises the canonical labels for clothing categories and
types, occasions, seasons, wear-log moods, trip types and climates. Helper
functions keep validation logic consistent across the record store, the sync
mapping and the recommendation logic.
"""

from typing import Dict, Iterable, List

from models.errors import ValidationFailure


def _normalize_key(value: str) -> str:
    """Normalise a free-form string into a taxonomy key."""

    return value.strip().lower().replace("_", "-").replace(" ", "-")


CATEGORIES: Dict[str, List[str]] = {
    "tops": [
        "t-shirt", "blouse", "sweater", "hoodie", "tank-top",
        "dress-shirt", "polo", "crop-top", "cardigan", "other",
    ],
    "bottoms": ["jeans", "chinos", "shorts", "skirt", "dress-pants", "leggings", "joggers", "cargo", "other"],
    "shoes": ["sneakers", "boots", "heels", "sandals", "loafers", "athletic", "flats", "oxfords", "other"],
    "accessories": ["bag", "jewelry", "hat", "belt", "scarf", "watch", "sunglasses", "wallet", "other"],
    "outerwear": [
        "jacket", "coat", "blazer", "vest", "parka",
        "windbreaker", "denim-jacket", "leather-jacket", "other",
    ],
    "dresses": ["casual-dress", "cocktail-dress", "maxi-dress", "mini-dress", "formal-dress", "sundress", "other"],
    "swimwear": ["bikini", "one-piece", "swim-trunks", "cover-up", "rash-guard", "other"],
}

OCCASIONS = [
    "business", "casual", "athletic", "formal", "swimwear",
    "loungewear", "date-night", "party", "travel",
]
SEASONS = ["spring", "summer", "fall", "winter", "all-season"]
WEAR_MOODS = [
    "confident", "comfortable", "happy", "creative", "relaxed",
    "energized", "professional", "cozy", "bold", "romantic",
]
CONDITIONS = ["new", "like-new", "good", "fair", "worn"]

TRIP_TYPES = ["business", "vacation", "adventure", "beach", "city", "wedding", "other"]
CLIMATES = ["tropical", "desert", "temperate", "cold", "rainy", "mixed"]
PACKING_CATEGORIES = [
    "tops", "bottoms", "shoes", "outerwear", "swimwear",
    "toiletries", "electronics", "documents", "accessories", "other",
]

COLOR_MAP = {
    "navy blue": "navy",
    "navy": "navy",
    "light blue": "light-blue",
    "sky blue": "light-blue",
    "baby blue": "light-blue",
    "blue": "blue",
    "black": "black",
    "white": "white",
    "off white": "cream",
    "off-white": "cream",
    "ivory": "cream",
    "cream": "cream",
    "beige": "beige",
    "khaki": "tan",
    "camel": "tan",
    "tan": "tan",
    "brown": "brown",
    "gray": "gray",
    "grey": "gray",
    "charcoal": "gray",
    "green": "green",
    "olive": "green",
    "red": "red",
    "maroon": "burgundy",
    "burgundy": "burgundy",
    "wine": "burgundy",
    "pink": "pink",
    "purple": "purple",
    "lavender": "purple",
    "gold": "gold",
    "silver": "silver",
    "yellow": "yellow",
    "orange": "orange",
}


def validate_category(value: str) -> str:
    """Validate and normalise a clothing category.

    Raises a :class:`ValidationFailure` if the category is not part of the
    canonical taxonomy.
    """

    key = _normalize_key(str(value))
    if key not in CATEGORIES:
        raise ValidationFailure(
            f"Unsupported category '{value}'. Allowed: {sorted(CATEGORIES)}", field="category"
        )
    return key


def validate_type(category: str, value: str) -> str:
    """Normalise a clothing type; unknown types collapse to ``other``."""

    category_key = validate_category(category)
    type_key = _normalize_key(str(value or "other"))
    return type_key if type_key in CATEGORIES[category_key] else "other"


def validate_choice(value: str, allowed: List[str], field: str) -> str:
    """Validate a single enum-like value against an allowed list."""

    key = _normalize_key(str(value))
    if key not in allowed:
        raise ValidationFailure(f"Unsupported {field} '{value}'. Allowed: {allowed}", field=field)
    return key


def normalize_color_name(raw_string: str) -> str:
    """Map a raw color string to a canonical color name."""

    key = raw_string.strip().lower()
    return COLOR_MAP.get(key, key.replace(" ", "-"))


def normalise_tags(values: Iterable[str], allowed: List[str], field: str) -> List[str]:
    """Normalise and deduplicate tags, rejecting values outside the allowed set."""

    normalised = []
    seen = set()
    for value in values or []:
        key = validate_choice(value, allowed, field)
        if key not in seen:
            normalised.append(key)
            seen.add(key)
    return normalised


def normalise_free_tags(values: Iterable[str]) -> List[str]:
    """Deduplicate free-form user tags, preserving first-seen order."""

    normalised = []
    seen = set()
    for value in values or []:
        tag = str(value).strip()
        if tag and tag.lower() not in seen:
            normalised.append(tag)
            seen.add(tag.lower())
    return normalised


__all__ = [
    "CATEGORIES",
    "OCCASIONS",
    "SEASONS",
    "WEAR_MOODS",
    "CONDITIONS",
    "TRIP_TYPES",
    "CLIMATES",
    "PACKING_CATEGORIES",
    "COLOR_MAP",
    "validate_category",
    "validate_type",
    "validate_choice",
    "normalize_color_name",
    "normalise_tags",
    "normalise_free_tags",
]
