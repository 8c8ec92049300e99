"""Explicit application context shared by the record store and sync engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from wardrobe_app.config import AppConfig
from wardrobe_app.logging_config import get_logger
from memory.kv_store import KeyValueStore, build_kv_store
from memory.sync_state import SyncStateStore

LOGGER = get_logger(__name__)


@dataclass
class AppContext:
    """Durable state handed to components at construction time.

    ``user_id`` is set by the authentication collaborator once a user signs in
    and is the partition key for cloud sync.
    """

    config: AppConfig
    kv_store: KeyValueStore
    sync_state: SyncStateStore
    user_id: Optional[str] = None

    @classmethod
    def initialise(cls, config: AppConfig, kv_store: KeyValueStore | None = None) -> "AppContext":
        """Build the context on app start and load the persisted sync state."""

        store = kv_store or build_kv_store(config.storage_backend, config.resolve_storage_path())
        sync_state = SyncStateStore(store, config.key_namespace)
        state = sync_state.load()
        if state.status == "syncing":
            LOGGER.warning(
                "Previous sync did not finish; the next sync will overwrite the stale status",
                extra={"pending_changes": state.pending_changes},
            )
        return cls(config=config, kv_store=store, sync_state=sync_state)

    def notify_local_change(self) -> None:
        self.sync_state.mark_pending_change()

    @property
    def is_signed_in(self) -> bool:
        return bool(self.user_id)


__all__ = ["AppContext"]
