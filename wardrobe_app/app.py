"""Wardrobe app bootstrap."""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from logic.analytics import AnalyticsSummary, ClosetStats, StreakResult, calculate_streak
from logic.packing import PackingPolicy, ensure_packing_list
from logic.wishlist_blend import BlendPolicy, OutfitSuggestion, WishlistBlend, calculate_wishlist_blend, outfit_from_suggestion
from memory.cloud_sync import CloudSyncEngine, SyncResult, format_last_sync
from memory.kv_store import KeyValueStore
from memory.record_store import RecordStore
from models.records import ClothingItem, Outfit, PackingList
from tools.image_integrity import ImageIntegrityChecker
from tools.remote_store import RemoteStore, build_remote_store
from tools.weather_provider import WeatherProvider, build_weather_provider
from wardrobe_app.config import AppConfig
from wardrobe_app.context import AppContext
from wardrobe_app.logging_config import configure_logging, get_logger, log_event, operation_context

LOGGER = get_logger(__name__)


class WardrobeApp:
    """Wires the record store, cloud sync and maintenance tasks together."""

    def __init__(
        self,
        config: AppConfig | None = None,
        kv_store: KeyValueStore | None = None,
        remote: RemoteStore | None = None,
        weather_provider: WeatherProvider | None = None,
        blend_policy: BlendPolicy | None = None,
        packing_policy: PackingPolicy | None = None,
    ) -> None:
        self.config = config or AppConfig.from_env()
        configure_logging()

        self.context = AppContext.initialise(self.config, kv_store)
        self.store = RecordStore(self.context)
        self.remote = remote or self._build_remote()
        self.sync_engine = CloudSyncEngine(self.context, self.store, self.remote) if self.remote else None
        self.image_checker = ImageIntegrityChecker(self.store, timeout_seconds=self.config.image_check_timeout_seconds)
        self.weather_provider = weather_provider or build_weather_provider(
            self.config.weather_api_key, timeout_seconds=self.config.http_timeout_seconds
        )
        self.blend_policy = blend_policy or BlendPolicy()
        self.packing_policy = packing_policy or PackingPolicy()

    def _build_remote(self) -> Optional[RemoteStore]:
        return build_remote_store(
            self.config.remote_backend,
            url=self.config.remote_url,
            api_key=self.config.remote_api_key,
            db_path=self.config.resolve_remote_db_path(),
            timeout_seconds=self.config.http_timeout_seconds,
        )

    # ------------------------------------------------------------ session

    def sign_in(self, user_id: str) -> dict:
        """Record the signed-in user, migrate local records once and heal images."""

        with operation_context("app:sign_in"):
            self.context.user_id = user_id
            log_event(LOGGER, logging.INFO, "user_signed_in", user_id=user_id)
            migration = self.sync_engine.sync_local_storage_to_cloud(user_id) if self.sync_engine else None
            images_fixed = self.image_checker.cleanup_broken_images()
        return {
            "migration": migration.to_dict() if migration else None,
            "imagesFixed": images_fixed,
        }

    def sign_out(self) -> None:
        self.context.user_id = None

    def _sync_user(self, user_id: str | None) -> str | None:
        return user_id or self.context.user_id

    def sync_now(self, user_id: str | None = None) -> SyncResult:
        if self.sync_engine is None:
            return SyncResult(success=False, error="Cloud sync is disabled")
        return self.sync_engine.perform_full_sync(self._sync_user(user_id) or "")

    def migrate_local_storage(self, user_id: str | None = None) -> SyncResult:
        if self.sync_engine is None:
            return SyncResult(success=False, error="Cloud sync is disabled")
        return self.sync_engine.sync_local_storage_to_cloud(self._sync_user(user_id) or "")

    def sync_state(self) -> dict:
        state = self.context.sync_state.load()
        payload = state.to_dict()
        payload["lastSyncLabel"] = format_last_sync(state.last_sync)
        payload["enabled"] = self.sync_engine is not None
        return payload

    # ----------------------------------------------------------- closet

    def load_closet(self) -> List[ClothingItem]:
        """Return the closet after repairing broken image references."""

        self.image_checker.cleanup_broken_images()
        return self.store.get_clothing_items()

    def wishlist_blend(self, wishlist_item_id: str) -> Optional[WishlistBlend]:
        candidate = self.store.get_wishlist_item(wishlist_item_id)
        if candidate is None:
            return None
        return calculate_wishlist_blend(candidate, self.store.get_clothing_items(), self.blend_policy)

    def save_suggested_outfit(self, suggestion: OutfitSuggestion, name: str | None = None) -> Outfit:
        return self.store.save_outfit(outfit_from_suggestion(suggestion, name=name))

    def packing_list_for_trip(self, trip_id: str) -> Optional[PackingList]:
        """Return the trip's packing list, creating it with forecast enrichment if needed."""

        trip = self.store.get_trip(trip_id)
        if trip is None:
            return None
        existing = self.store.get_packing_list_for_trip(trip_id)
        if existing is not None:
            return existing
        forecast = self.weather_provider.get_trip_forecast(trip.destination, trip.start_date, trip.end_date)
        return ensure_packing_list(self.store, trip, self.packing_policy, forecast)

    # -------------------------------------------------------- analytics

    def streak(self, today: date | None = None) -> StreakResult:
        return calculate_streak(self.store.get_wear_logs(), today=today)

    def closet_stats(self) -> ClosetStats:
        return self.store.get_closet_stats()

    def analytics_summary(self) -> AnalyticsSummary:
        return self.store.get_analytics_summary()


__all__ = ["WardrobeApp"]
