"""Trip packing suggestions derived from trip attributes and the closet."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence, Tuple

from models.records import ClothingItem, PackingItem, PackingList, Trip, generate_id, utcnow
from tools.weather_provider import WeatherProfile

if TYPE_CHECKING:
    from memory.record_store import RecordStore

logger = logging.getLogger(__name__)


def _default_climate_seasons() -> Dict[str, Tuple[str, ...]]:
    return {
        "tropical": ("summer",),
        "desert": ("summer", "spring"),
        "temperate": ("spring", "summer", "fall"),
        "cold": ("winter", "fall"),
        "rainy": ("spring", "fall"),
        "mixed": ("spring", "summer", "fall", "winter"),
    }


@dataclass(frozen=True)
class PackingPolicy:
    """Quantity factors and climate rules for packing suggestions."""

    max_tops: int = 7
    max_bottoms: int = 4
    shoes: int = 2
    adventure_shoes: int = 3
    max_swimwear: int = 2
    generic_swimwear_quantity: int = 2
    outerwear_climates: Tuple[str, ...] = ("cold", "rainy", "temperate")
    swimwear_trip_types: Tuple[str, ...] = ("beach",)
    swimwear_climates: Tuple[str, ...] = ("tropical",)
    cold_below: float = 8.0
    rainy_above: float = 0.5
    tropical_from: float = 27.0
    climate_seasons: Dict[str, Tuple[str, ...]] = field(default_factory=_default_climate_seasons)


DEFAULT_POLICY = PackingPolicy()


@dataclass
class PackingSuggestion:
    name: str
    quantity: int = 1
    closet_item_id: Optional[str] = None


@dataclass
class PackingCategory:
    key: str
    title: str
    suggestions: List[PackingSuggestion] = field(default_factory=list)
    is_essential: bool = False

    def to_dict(self) -> dict:
        return {
            "category": self.title,
            "isEssential": self.is_essential,
            "suggestions": [
                {"name": s.name, "quantity": s.quantity, "closetItemId": s.closet_item_id} for s in self.suggestions
            ],
        }


def effective_climate(trip: Trip, forecast: Optional[WeatherProfile], policy: PackingPolicy = DEFAULT_POLICY) -> str:
    """Climate to pack for; a forecast overrides the trip's declared climate."""

    if forecast is None:
        return trip.climate
    if forecast.average_temperature < policy.cold_below:
        return "cold"
    if forecast.precipitation_probability > policy.rainy_above:
        return "rainy"
    if forecast.average_temperature >= policy.tropical_from:
        return "tropical"
    return trip.climate


def suits_climate(item: ClothingItem, climate: str, policy: PackingPolicy = DEFAULT_POLICY) -> bool:
    if not item.seasons or "all-season" in item.seasons:
        return True
    wanted = policy.climate_seasons.get(climate, ())
    return any(season in wanted for season in item.seasons)


def _closet_name(item: ClothingItem, fallback: str) -> str:
    label = item.type.replace("-", " ") if item.type != "other" else fallback.lower()
    return " ".join(part for part in (item.brand, item.color, label) if part)


def _fill(items: Sequence[ClothingItem], needed: int, fallback: str, generic: bool = True) -> List[PackingSuggestion]:
    suggestions = [
        PackingSuggestion(name=_closet_name(item, fallback), closet_item_id=item.id) for item in items[:needed]
    ]
    if generic:
        suggestions.extend(PackingSuggestion(name=fallback) for _ in range(needed - len(suggestions)))
    return suggestions


def generate_packing_suggestions(
    trip: Trip,
    closet_items: Sequence[ClothingItem],
    policy: PackingPolicy = DEFAULT_POLICY,
    forecast: Optional[WeatherProfile] = None,
) -> List[PackingCategory]:
    """Build categorised packing suggestions for a trip.

    Clothing quantities scale with the trip length and reuse closet pieces that
    suit the climate. Documents are always included and marked essential.
    """

    days = trip.duration_days
    climate = effective_climate(trip, forecast, policy)
    eligible = [item for item in closet_items if suits_climate(item, climate, policy)]

    def owned(category: str) -> List[ClothingItem]:
        return [item for item in eligible if item.category == category]

    categories: List[PackingCategory] = [
        PackingCategory("tops", "Tops", _fill(owned("tops"), min(days + 1, policy.max_tops), "Top")),
        PackingCategory(
            "bottoms", "Bottoms", _fill(owned("bottoms"), min(math.ceil(days / 2) + 1, policy.max_bottoms), "Bottom")
        ),
    ]

    shoes_needed = policy.adventure_shoes if trip.trip_type == "adventure" else policy.shoes
    shoes = _fill(owned("shoes"), shoes_needed, "Shoes", generic=False)
    if shoes:
        categories.append(PackingCategory("shoes", "Shoes", shoes))

    if climate in policy.outerwear_climates:
        categories.append(PackingCategory("outerwear", "Outerwear", _fill(owned("outerwear"), 1, "Jacket/Coat")))

    beach_bound = trip.trip_type in policy.swimwear_trip_types or climate in policy.swimwear_climates
    if beach_bound:
        swimwear = _fill(owned("swimwear"), policy.max_swimwear, "Swimwear", generic=False)
        if not swimwear:
            swimwear = [PackingSuggestion(name="Swimwear", quantity=policy.generic_swimwear_quantity)]
        categories.append(PackingCategory("swimwear", "Swimwear", swimwear))

    categories.append(
        PackingCategory(
            "toiletries",
            "Toiletries",
            [
                PackingSuggestion("Toothbrush & Toothpaste"),
                PackingSuggestion("Deodorant"),
                PackingSuggestion("Shampoo & Conditioner"),
                PackingSuggestion("Skincare"),
                PackingSuggestion("Sunscreen", quantity=2 if beach_bound else 1),
            ],
        )
    )
    categories.append(
        PackingCategory(
            "electronics",
            "Electronics",
            [
                PackingSuggestion("Phone Charger"),
                PackingSuggestion("Power Bank"),
                PackingSuggestion("Headphones"),
                PackingSuggestion("Camera"),
            ],
        )
    )
    categories.append(
        PackingCategory(
            "documents",
            "Documents",
            [
                PackingSuggestion("Passport/ID"),
                PackingSuggestion("Travel Insurance"),
                PackingSuggestion("Boarding Pass"),
                PackingSuggestion("Hotel Confirmation"),
            ],
            is_essential=True,
        )
    )
    logger.debug("Generated packing suggestions", extra={"climate": climate, "days": days})
    return categories


def build_packing_list(
    trip: Trip,
    categories: Sequence[PackingCategory],
    id_factory: Callable[[], str] = generate_id,
) -> PackingList:
    items = [
        PackingItem(
            id=id_factory(),
            name=suggestion.name,
            category=category.key,
            quantity=suggestion.quantity,
            is_essential=category.is_essential,
            closet_item_id=suggestion.closet_item_id,
        )
        for category in categories
        for suggestion in category.suggestions
    ]
    now = utcnow()
    return PackingList(id=id_factory(), trip_id=trip.id, items=items, created_at=now, last_modified=now)


def ensure_packing_list(
    store: "RecordStore",
    trip: Trip,
    policy: PackingPolicy = DEFAULT_POLICY,
    forecast: Optional[WeatherProfile] = None,
) -> PackingList:
    """Return the trip's packing list, generating and saving it on first view."""

    existing = store.get_packing_list_for_trip(trip.id)
    if existing is not None:
        return existing
    categories = generate_packing_suggestions(trip, store.get_clothing_items(), policy, forecast)
    return store.save_packing_list(build_packing_list(trip, categories))


__all__ = [
    "PackingPolicy",
    "PackingSuggestion",
    "PackingCategory",
    "effective_climate",
    "suits_climate",
    "generate_packing_suggestions",
    "build_packing_list",
    "ensure_packing_list",
]
