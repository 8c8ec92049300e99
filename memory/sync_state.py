"""Persisted sync bookkeeping: status, last sync timestamp and pending changes."""
from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import List, Literal, Optional

from models.errors import PersistenceFailure, ValidationFailure
from models.records import parse_timestamp
from memory.kv_store import KeyValueStore

LOGGER = logging.getLogger(__name__)

SyncStatus = Literal["idle", "syncing", "success", "error"]
SYNC_STATUSES = ("idle", "syncing", "success", "error")


@dataclass
class SyncState:
    """Snapshot of the sync bookkeeping exposed to callers."""

    status: SyncStatus = "idle"
    last_sync: Optional[datetime] = None
    pending_changes: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "lastSync": self.last_sync.isoformat() if self.last_sync else None,
            "pendingChanges": self.pending_changes,
            "error": self.error,
        }


class SyncStateStore:
    """Reads and writes sync metadata under three namespaced keys.

    The last error message is kept in memory only so that the persisted layout
    stays at exactly three keys; a restarted process reports ``error`` without
    the message until the next sync attempt.
    """

    def __init__(self, kv_store: KeyValueStore, namespace: str) -> None:
        self.kv_store = kv_store
        self.last_sync_key = f"{namespace}_last_sync"
        self.status_key = f"{namespace}_sync_status"
        self.pending_key = f"{namespace}_pending_changes"
        self.migrated_key = f"{namespace}_migrated_users"
        self._lock = threading.Lock()
        self._last_error: Optional[str] = None

    def load(self) -> SyncState:
        """Return the persisted state, failing open to ``idle`` on read errors."""

        try:
            raw_status = self.kv_store.get(self.status_key)
            raw_last_sync = self.kv_store.get(self.last_sync_key)
            raw_pending = self.kv_store.get(self.pending_key)
        except PersistenceFailure as exc:
            LOGGER.warning("Failed to read sync state: %s", exc)
            return SyncState(status="error", error="Failed to read sync state")

        status = raw_status if raw_status in SYNC_STATUSES else "idle"
        last_sync = None
        if raw_last_sync:
            try:
                last_sync = parse_timestamp(raw_last_sync, "lastSync")
            except ValidationFailure:
                LOGGER.warning("Ignoring unparseable last sync timestamp %r", raw_last_sync)
        return SyncState(
            status=status,  # type: ignore[arg-type]
            last_sync=last_sync,
            pending_changes=self._parse_pending(raw_pending),
            error=self._last_error if status == "error" else None,
        )

    @staticmethod
    def _parse_pending(raw: Optional[str]) -> int:
        try:
            return max(0, int(raw or "0"))
        except ValueError:
            return 0

    def mark_pending_change(self) -> None:
        """Increment the pending-change counter; a failure is logged, not raised."""

        with self._lock:
            try:
                current = self._parse_pending(self.kv_store.get(self.pending_key))
                self.kv_store.set(self.pending_key, str(current + 1))
            except PersistenceFailure as exc:
                LOGGER.error("Failed to mark pending change: %s", exc)

    def set_status(self, status: SyncStatus, error: Optional[str] = None) -> None:
        self._last_error = error if status == "error" else None
        self.kv_store.set(self.status_key, status)

    def pending_changes(self) -> int:
        return self._parse_pending(self.kv_store.get(self.pending_key))

    def record_success(self, completed_at: datetime, settled_changes: Optional[int] = None) -> None:
        """Persist a successful sync.

        ``settled_changes`` is the pending count observed when the sync started;
        it is subtracted so that edits made while the sync ran stay pending.
        """

        with self._lock:
            self.kv_store.set(self.last_sync_key, completed_at.isoformat())
            if settled_changes is not None:
                current = self._parse_pending(self.kv_store.get(self.pending_key))
                self.kv_store.set(self.pending_key, str(max(0, current - settled_changes)))
        self.set_status("success")

    def migrated_users(self) -> List[str]:
        raw = self.kv_store.get(self.migrated_key)
        if not raw:
            return []
        try:
            users = json.loads(raw)
        except json.JSONDecodeError:
            LOGGER.warning("Ignoring corrupted migration marker")
            return []
        return [str(user) for user in users] if isinstance(users, list) else []

    def mark_migrated(self, user_id: str) -> None:
        users = self.migrated_users()
        if user_id not in users:
            users.append(user_id)
            self.kv_store.set(self.migrated_key, json.dumps(users))


__all__ = ["SyncState", "SyncStateStore", "SyncStatus", "SYNC_STATUSES"]
