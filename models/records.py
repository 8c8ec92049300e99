"""Wardrobe record data models and JSON helpers.

Records are plain dataclasses that validate and coerce their fields in
``__post_init__`` so that anything reaching the record store is well formed.
``to_dict`` produces the persisted camelCase JSON shape and ``from_dict``
accepts it back (ISO timestamps are parsed into aware ``datetime`` objects).
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field, fields
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Type, TypeVar
from urllib.parse import urlparse
from uuid import uuid4

from models.errors import ValidationFailure
from models.taxonomy import (
    CLIMATES,
    CONDITIONS,
    OCCASIONS,
    PACKING_CATEGORIES,
    SEASONS,
    TRIP_TYPES,
    WEAR_MOODS,
    normalise_free_tags,
    normalise_tags,
    validate_category,
    validate_choice,
    validate_type,
)

R = TypeVar("R", bound="_Record")

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")
# persisted keys that do not follow the generic camelCase rule
_KEY_ALIASES = {"is_from_ai": "isFromAI"}
_ALIASED_KEYS = {camel: snake for snake, camel in _KEY_ALIASES.items()}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_id() -> str:
    """Return a time-prefixed id with a random suffix."""

    return f"{int(time.time() * 1000)}-{uuid4().hex[:9]}"


def to_camel(name: str) -> str:
    if name in _KEY_ALIASES:
        return _KEY_ALIASES[name]
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def to_snake(name: str) -> str:
    if name in _ALIASED_KEYS:
        return _ALIASED_KEYS[name]
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def parse_timestamp(value: Any, field_name: str) -> datetime:
    """Coerce ISO strings, dates and datetimes into an aware UTC-based datetime."""

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError as exc:
            raise ValidationFailure(f"Invalid timestamp for {field_name}: {value!r}", field=field_name) from exc
    else:
        raise ValidationFailure(f"Missing timestamp for {field_name}", field=field_name)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_day(value: Any, field_name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError as exc:
            raise ValidationFailure(f"Invalid date for {field_name}: {value!r}", field=field_name) from exc
    raise ValidationFailure(f"Missing date for {field_name}", field=field_name)


def _optional_timestamp(value: Any, field_name: str) -> Optional[datetime]:
    if value is None or value == "":
        return None
    return parse_timestamp(value, field_name)


def _require_text(value: Any, field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationFailure(f"{field_name} is required", field=field_name)
    return str(value).strip()


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _optional_text(value: Any) -> Optional[str]:
    text = _text(value)
    return text or None


def _non_negative_number(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        raise ValidationFailure(f"{field_name} must be a number", field=field_name)
    try:
        number = float(value if value is not None else 0)
    except (TypeError, ValueError) as exc:
        raise ValidationFailure(f"{field_name} must be a number", field=field_name) from exc
    if number < 0:
        raise ValidationFailure(f"{field_name} must be >= 0", field=field_name)
    return number


def _non_negative_int(value: Any, field_name: str, minimum: int = 0) -> int:
    if isinstance(value, bool):
        raise ValidationFailure(f"{field_name} must be an integer", field=field_name)
    try:
        number = int(value if value is not None else minimum)
    except (TypeError, ValueError) as exc:
        raise ValidationFailure(f"{field_name} must be an integer", field=field_name) from exc
    if number < minimum:
        raise ValidationFailure(f"{field_name} must be >= {minimum}", field=field_name)
    return number


def _id_list(values: Any, field_name: str, minimum: int = 0) -> List[str]:
    if isinstance(values, str):
        values = [values]
    ids: List[str] = []
    for value in values or []:
        item_id = _text(value)
        if item_id and item_id not in ids:
            ids.append(item_id)
    if len(ids) < minimum:
        raise ValidationFailure(f"{field_name} needs at least {minimum} id(s)", field=field_name)
    return ids


def _validate_link(value: Any) -> Optional[str]:
    link = _optional_text(value)
    if link is None:
        return None
    parsed = urlparse(link)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValidationFailure(f"Unsupported or invalid URL: {link}", field="link")
    return link


def _serialise(value: Any) -> Any:
    if isinstance(value, _Record):
        return value.to_dict()
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, list):
        return [_serialise(item) for item in value]
    if isinstance(value, dict):
        return {key: _serialise(item) for key, item in value.items()}
    return value


class _Record:
    """JSON conversion shared by every record dataclass."""

    def to_dict(self) -> Dict[str, Any]:
        return {to_camel(f.name): _serialise(getattr(self, f.name)) for f in fields(self)}  # type: ignore[arg-type]

    @classmethod
    def from_dict(cls: Type[R], payload: Dict[str, Any]) -> R:
        if not isinstance(payload, dict):
            raise ValidationFailure(f"{cls.__name__} payload must be an object")
        known = {f.name for f in fields(cls)}  # type: ignore[arg-type]
        kwargs = {}
        for key, value in payload.items():
            name = to_snake(key)
            if name in known:
                kwargs[name] = value
        try:
            return cls(**kwargs)
        except TypeError as exc:
            raise ValidationFailure(f"Invalid {cls.__name__} payload: {exc}") from exc


@dataclass
class ClothingItem(_Record):
    """A catalogued piece of clothing owned by the user."""

    id: str
    image_uri: str
    category: str
    type: str
    color: str
    brand: str = ""
    purchase_price: float = 0.0
    tags: List[str] = field(default_factory=list)
    occasions: List[str] = field(default_factory=list)
    seasons: List[str] = field(default_factory=list)
    wear_count: int = 0
    last_worn_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)
    measurements: Optional[Dict[str, str]] = None
    size: Optional[str] = None
    fabric: Optional[str] = None
    condition: Optional[str] = None
    current_value: Optional[float] = None
    is_favorite: bool = False

    def __post_init__(self) -> None:
        self.id = _require_text(self.id, "id")
        self.image_uri = _text(self.image_uri)
        self.category = validate_category(self.category)
        self.type = validate_type(self.category, self.type)
        self.color = _require_text(self.color, "color")
        self.brand = _text(self.brand)
        self.purchase_price = _non_negative_number(self.purchase_price, "purchasePrice")
        self.tags = normalise_free_tags(self.tags)
        self.occasions = normalise_tags(self.occasions, OCCASIONS, "occasions")
        self.seasons = normalise_tags(self.seasons, SEASONS, "seasons")
        self.wear_count = _non_negative_int(self.wear_count, "wearCount")
        self.last_worn_at = _optional_timestamp(self.last_worn_at, "lastWornAt")
        self.created_at = parse_timestamp(self.created_at, "createdAt")
        if self.measurements is not None:
            if not isinstance(self.measurements, dict):
                raise ValidationFailure("measurements must be a mapping", field="measurements")
            self.measurements = {str(k): str(v) for k, v in self.measurements.items()}
        self.size = _optional_text(self.size)
        self.fabric = _optional_text(self.fabric)
        if self.condition is not None:
            self.condition = validate_choice(self.condition, CONDITIONS, "condition")
        if self.current_value is not None:
            self.current_value = _non_negative_number(self.current_value, "currentValue")
        self.is_favorite = bool(self.is_favorite)


@dataclass
class WearLog(_Record):
    """A single wear event covering one or more clothing items."""

    id: str
    date: datetime
    item_ids: List[str]
    notes: Optional[str] = None
    mood_tags: List[str] = field(default_factory=list)
    rating: Optional[int] = None
    occasion: str = ""
    shared_to_community: bool = False
    image_uri: Optional[str] = None
    outfit_id: Optional[str] = None

    def __post_init__(self) -> None:
        self.id = _require_text(self.id, "id")
        self.date = parse_timestamp(self.date, "date")
        self.item_ids = _id_list(self.item_ids, "itemIds", minimum=1)
        self.notes = _optional_text(self.notes)
        self.mood_tags = normalise_tags(self.mood_tags, WEAR_MOODS, "moodTags")
        if self.rating is not None:
            rating = _non_negative_int(self.rating, "rating", minimum=1)
            if rating > 5:
                raise ValidationFailure("rating must be between 1 and 5", field="rating")
            self.rating = rating
        self.occasion = _text(self.occasion)
        self.shared_to_community = bool(self.shared_to_community)
        self.image_uri = _optional_text(self.image_uri)
        self.outfit_id = _optional_text(self.outfit_id)


@dataclass
class Outfit(_Record):
    """A saved combination of clothing items."""

    id: str
    name: str
    item_ids: List[str]
    mood: str = ""
    occasions: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    is_from_ai: bool = False

    def __post_init__(self) -> None:
        self.id = _require_text(self.id, "id")
        self.name = _require_text(self.name, "name")
        self.item_ids = _id_list(self.item_ids, "itemIds", minimum=1)
        self.mood = _text(self.mood)
        self.occasions = normalise_tags(self.occasions, OCCASIONS, "occasions")
        self.created_at = parse_timestamp(self.created_at, "createdAt")
        self.is_from_ai = bool(self.is_from_ai)


@dataclass
class WishlistItem(_Record):
    """A candidate purchase tracked independently of the closet."""

    id: str
    image_uri: str
    name: str
    category: str
    type: str
    color: str
    brand: str = ""
    price: float = 0.0
    link: Optional[str] = None
    occasions: List[str] = field(default_factory=list)
    seasons: List[str] = field(default_factory=list)
    notes: Optional[str] = None
    added_at: datetime = field(default_factory=utcnow)
    is_priority: bool = False

    def __post_init__(self) -> None:
        self.id = _require_text(self.id, "id")
        self.image_uri = _text(self.image_uri)
        self.name = _require_text(self.name, "name")
        self.category = validate_category(self.category)
        self.type = validate_type(self.category, self.type)
        self.color = _require_text(self.color, "color")
        self.brand = _text(self.brand)
        self.price = _non_negative_number(self.price, "price")
        self.link = _validate_link(self.link)
        self.occasions = normalise_tags(self.occasions, OCCASIONS, "occasions")
        self.seasons = normalise_tags(self.seasons, SEASONS, "seasons")
        self.notes = _optional_text(self.notes)
        self.added_at = parse_timestamp(self.added_at, "addedAt")
        self.is_priority = bool(self.is_priority)


@dataclass
class Trip(_Record):
    """A planned trip that may own one packing list."""

    id: str
    name: str
    destination: str
    start_date: date
    end_date: date
    trip_type: str = "other"
    climate: str = "temperate"
    activities: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        self.id = _require_text(self.id, "id")
        self.name = _require_text(self.name, "name")
        self.destination = _require_text(self.destination, "destination")
        self.start_date = parse_day(self.start_date, "startDate")
        self.end_date = parse_day(self.end_date, "endDate")
        if self.end_date < self.start_date:
            raise ValidationFailure("endDate cannot precede startDate", field="endDate")
        self.trip_type = validate_choice(self.trip_type, TRIP_TYPES, "tripType")
        self.climate = validate_choice(self.climate, CLIMATES, "climate")
        self.activities = normalise_free_tags(self.activities)
        self.created_at = parse_timestamp(self.created_at, "createdAt")

    @property
    def duration_days(self) -> int:
        return (self.end_date - self.start_date).days


@dataclass
class PackingItem(_Record):
    """One line of a packing list, optionally backed by a closet item."""

    id: str
    name: str
    category: str
    quantity: int = 1
    is_packed: bool = False
    is_essential: bool = False
    closet_item_id: Optional[str] = None

    def __post_init__(self) -> None:
        self.id = _require_text(self.id, "id")
        self.name = _require_text(self.name, "name")
        self.category = validate_choice(self.category, PACKING_CATEGORIES, "category")
        self.quantity = _non_negative_int(self.quantity, "quantity", minimum=1)
        self.is_packed = bool(self.is_packed)
        self.is_essential = bool(self.is_essential)
        self.closet_item_id = _optional_text(self.closet_item_id)


@dataclass
class PackingList(_Record):
    """The packing checklist owned by a trip."""

    id: str
    trip_id: str
    items: List[PackingItem] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    last_modified: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        self.id = _require_text(self.id, "id")
        self.trip_id = _require_text(self.trip_id, "tripId")
        self.items = [
            item if isinstance(item, PackingItem) else PackingItem.from_dict(item) for item in self.items or []
        ]
        self.created_at = parse_timestamp(self.created_at, "createdAt")
        self.last_modified = parse_timestamp(self.last_modified, "lastModified")


@dataclass(frozen=True)
class ItemReference:
    """A clothing item id resolved against the closet at read time."""

    item_id: str
    item: Optional[ClothingItem] = None

    @property
    def is_resolved(self) -> bool:
        return self.item is not None


__all__ = [
    "ClothingItem",
    "WearLog",
    "Outfit",
    "WishlistItem",
    "Trip",
    "PackingItem",
    "PackingList",
    "ItemReference",
    "generate_id",
    "parse_timestamp",
    "parse_day",
    "to_camel",
    "to_snake",
    "utcnow",
]
