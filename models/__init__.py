"""Model package exports."""

from models.errors import PersistenceFailure, SyncFailure, ValidationFailure
from models.records import (
    ClothingItem,
    ItemReference,
    Outfit,
    PackingItem,
    PackingList,
    Trip,
    WearLog,
    WishlistItem,
    generate_id,
)
from models.taxonomy import *  # noqa: F401,F403

__all__ = [
    "ClothingItem",
    "ItemReference",
    "Outfit",
    "PackingItem",
    "PackingList",
    "Trip",
    "WearLog",
    "WishlistItem",
    "generate_id",
    "PersistenceFailure",
    "SyncFailure",
    "ValidationFailure",
]
