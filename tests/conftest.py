"""Shared fixtures for wardrobe tests."""

from __future__ import annotations

from datetime import date, datetime, timezone
from pathlib import Path
from typing import Callable

import pytest

from memory.record_store import RecordStore
from models.records import ClothingItem, Trip, WearLog, WishlistItem
from wardrobe_app.config import AppConfig
from wardrobe_app.context import AppContext


@pytest.fixture()
def config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        data_dir=str(tmp_path),
        storage_backend="memory",
        remote_backend="sqlite",
        remote_db_path=str(tmp_path / "remote.db"),
    )


@pytest.fixture()
def context(config: AppConfig) -> AppContext:
    return AppContext.initialise(config)


@pytest.fixture()
def store(context: AppContext) -> RecordStore:
    return RecordStore(context)


@pytest.fixture()
def make_item() -> Callable[..., ClothingItem]:
    def _make(item_id: str = "item-1", **overrides) -> ClothingItem:
        fields = {
            "id": item_id,
            "image_uri": "https://cdn.example.com/item.jpg",
            "category": "tops",
            "type": "t-shirt",
            "color": "white",
            "brand": "Uniqlo",
            "purchase_price": 40.0,
            "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
        }
        fields.update(overrides)
        return ClothingItem(**fields)

    return _make


@pytest.fixture()
def make_log() -> Callable[..., WearLog]:
    def _make(log_id: str = "log-1", item_ids=("item-1",), when: datetime | None = None, **overrides) -> WearLog:
        return WearLog(
            id=log_id,
            date=when or datetime(2024, 3, 1, 9, tzinfo=timezone.utc),
            item_ids=list(item_ids),
            **overrides,
        )

    return _make


@pytest.fixture()
def make_wishlist() -> Callable[..., WishlistItem]:
    def _make(item_id: str = "wish-1", **overrides) -> WishlistItem:
        fields = {
            "id": item_id,
            "image_uri": "https://cdn.example.com/wish.jpg",
            "name": "Linen shirt",
            "category": "tops",
            "type": "dress-shirt",
            "color": "navy",
            "price": 60.0,
        }
        fields.update(overrides)
        return WishlistItem(**fields)

    return _make


@pytest.fixture()
def make_trip() -> Callable[..., Trip]:
    def _make(trip_id: str = "trip-1", **overrides) -> Trip:
        fields = {
            "id": trip_id,
            "name": "Winter city break",
            "destination": "Oslo",
            "start_date": date(2024, 12, 1),
            "end_date": date(2024, 12, 8),
            "trip_type": "city",
            "climate": "cold",
        }
        fields.update(overrides)
        return Trip(**fields)

    return _make
