"""Cloud reconciliation between the local record store and the remote store."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from memory.record_store import RecordStore
from memory.sync_state import SyncState
from models.errors import PersistenceFailure, SyncFailure, ValidationFailure
from models.records import utcnow
from models.remote_mapping import REMOTE_TABLES, record_to_row, rows_to_records
from tools.observability import instrument_operation
from tools.remote_store import RemoteStore
from wardrobe_app.logging_config import log_event

if TYPE_CHECKING:
    from wardrobe_app.context import AppContext

LOGGER = logging.getLogger(__name__)

_SYNC_ERRORS = (SyncFailure, PersistenceFailure, ValidationFailure, TypeError, ValueError)


@dataclass
class SyncResult:
    """Outcome of one sync operation."""

    success: bool
    error: Optional[str] = None
    uploaded: int = 0
    downloaded: int = 0
    skipped: int = 0
    deleted: int = 0
    rejected: bool = False

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "error": self.error,
            "uploaded": self.uploaded,
            "downloaded": self.downloaded,
            "skipped": self.skipped,
            "deleted": self.deleted,
            "rejected": self.rejected,
        }


def format_last_sync(last_sync: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Human readable age of the last successful sync."""

    if last_sync is None:
        return "Never synced"
    now = now or utcnow()
    minutes = int((now - last_sync).total_seconds() // 60)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes} min ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour ago" if hours == 1 else f"{hours} hours ago"
    days = hours // 24
    if days < 7:
        return f"{days} day ago" if days == 1 else f"{days} days ago"
    return last_sync.date().isoformat()


class CloudSyncEngine:
    """Upload, download and migrate records for a signed-in user.

    Only one sync runs at a time per engine. A request that arrives while
    another sync is in flight is rejected instead of queued and leaves the sync
    state untouched. Local writes are not blocked while a sync runs.
    """

    def __init__(
        self,
        context: "AppContext",
        store: RecordStore,
        remote: RemoteStore,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self.context = context
        self.store = store
        self.remote = remote
        self.now = now
        self.sync_state = context.sync_state
        self._guard = threading.Lock()

    # ------------------------------------------------------------------ state

    def get_sync_state(self) -> SyncState:
        return self.sync_state.load()

    def mark_pending_change(self) -> None:
        self.context.notify_local_change()

    # ------------------------------------------------------------- operations

    @instrument_operation("upload_to_cloud")
    def upload_to_cloud(self, user_id: str) -> SyncResult:
        return self._exclusive("upload", lambda: self._upload(user_id))

    @instrument_operation("download_from_cloud")
    def download_from_cloud(self, user_id: str) -> SyncResult:
        return self._exclusive("download", lambda: self._download(user_id))

    @instrument_operation("perform_full_sync")
    def perform_full_sync(self, user_id: str) -> SyncResult:
        """Upload then download; a failed upload is returned without downloading."""

        def run() -> SyncResult:
            uploaded = self._upload(user_id)
            if not uploaded.success:
                return uploaded
            downloaded = self._download(user_id)
            return SyncResult(
                success=downloaded.success,
                error=downloaded.error,
                uploaded=uploaded.uploaded,
                downloaded=downloaded.downloaded,
                skipped=downloaded.skipped,
                deleted=uploaded.deleted,
            )

        return self._exclusive("full_sync", run)

    @instrument_operation("sync_local_storage_to_cloud")
    def sync_local_storage_to_cloud(self, user_id: str) -> SyncResult:
        """One-time upload of pre-sign-in records that the remote does not have."""

        return self._exclusive("migration", lambda: self._migrate(user_id))

    # --------------------------------------------------------------- internals

    def _exclusive(self, operation: str, run: Callable[[], SyncResult]) -> SyncResult:
        if not self._guard.acquire(blocking=False):
            log_event(LOGGER, logging.WARNING, "sync_rejected", operation=operation)
            return SyncResult(success=False, error="A sync is already in progress", rejected=True)
        try:
            return run()
        finally:
            self._guard.release()

    @staticmethod
    def _require_user(user_id: str) -> Optional[SyncResult]:
        if not user_id:
            return SyncResult(success=False, error="A signed-in user is required to sync")
        return None

    def _fail(self, operation: str, exc: Exception) -> SyncResult:
        message = str(exc) or exc.__class__.__name__
        log_event(LOGGER, logging.ERROR, "sync_failed", operation=operation, error=message)
        try:
            self.sync_state.set_status("error", message)
        except PersistenceFailure:
            LOGGER.error("Failed to persist sync error status", exc_info=True)
        return SyncResult(success=False, error=message)

    def _upload(self, user_id: str) -> SyncResult:
        early = self._require_user(user_id)
        if early:
            return early
        try:
            self.sync_state.set_status("syncing")
            settled = self.sync_state.pending_changes()
            snapshot = self.store.snapshot()
            rows_by_table: Dict[str, List[dict]] = {
                table: [record_to_row(record, user_id) for record in snapshot.collection(table)]
                for table in REMOTE_TABLES
            }
            # read after the snapshot so a record deleted in between is still removed remotely
            deletions = self.store.pending_deletions()
            uploaded = 0
            for table, rows in rows_by_table.items():
                uploaded += self.remote.upsert_rows(table, rows)
            deleted = 0
            for table, ids in deletions.items():
                deleted += self.remote.delete_rows(table, user_id, ids)
            self.store.clear_deletions(deletions)
            self.sync_state.record_success(self.now(), settled_changes=settled)
        except _SYNC_ERRORS as exc:
            return self._fail("upload", exc)
        LOGGER.info("Uploaded %s row(s) and removed %s from the cloud", uploaded, deleted)
        return SyncResult(success=True, uploaded=uploaded, deleted=deleted)

    def _download(self, user_id: str) -> SyncResult:
        early = self._require_user(user_id)
        if early:
            return early
        try:
            self.sync_state.set_status("syncing")
            prefer_local = self.sync_state.pending_changes() > 0
            fetched: Dict[str, list] = {}
            skipped = 0
            for table in REMOTE_TABLES:
                records, invalid = rows_to_records(table, self.remote.fetch_rows(table, user_id))
                fetched[table] = records
                skipped += invalid
            downloaded = 0
            for table, records in fetched.items():
                downloaded += self.store.merge_records(table, records, prefer_local=prefer_local)
            self.sync_state.record_success(self.now())
        except _SYNC_ERRORS as exc:
            return self._fail("download", exc)
        LOGGER.info("Merged %s record(s) from the cloud", downloaded)
        return SyncResult(success=True, downloaded=downloaded, skipped=skipped)

    def _migrate(self, user_id: str) -> SyncResult:
        if user_id and user_id in self.sync_state.migrated_users():
            LOGGER.info("Local records already migrated for this user")
            return SyncResult(success=True)
        early = self._require_user(user_id)
        if early:
            return early
        try:
            self.sync_state.set_status("syncing")
            snapshot = self.store.snapshot()
            uploaded = 0
            for table in REMOTE_TABLES:
                existing = set(self.remote.fetch_ids(table, user_id))
                rows = [
                    record_to_row(record, user_id)
                    for record in snapshot.collection(table)
                    if record.id not in existing
                ]
                uploaded += self.remote.upsert_rows(table, rows)
            self.sync_state.mark_migrated(user_id)
            self.sync_state.record_success(self.now())
        except _SYNC_ERRORS as exc:
            return self._fail("migration", exc)
        log_event(LOGGER, logging.INFO, "local_storage_migrated", uploaded=uploaded)
        return SyncResult(success=True, uploaded=uploaded)


__all__ = ["CloudSyncEngine", "SyncResult", "format_last_sync"]
