"""Remote relational store adapters used by cloud sync.

Rows are keyed by ``id`` and partitioned by ``user_id``. Writes are upserts,
local deletions are replayed by id and reads are ordered by each table's
relevant date column.
"""
from __future__ import annotations

import json
import logging
import sqlite3
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import requests
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from models.errors import SyncFailure
from models.remote_mapping import REMOTE_TABLES, get_table, sort_key

LOGGER = logging.getLogger(__name__)


class _RemoteRow(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    user_id: str


class _RemoteId(BaseModel):
    id: str


_ROWS = TypeAdapter(List[_RemoteRow])
_IDS = TypeAdapter(List[_RemoteId])


class RemoteStore(ABC):
    """Interface for the remote relational store."""

    @abstractmethod
    def upsert_rows(self, table: str, rows: Sequence[Dict[str, Any]]) -> int:
        """Insert or update rows by id and return how many were written."""

    @abstractmethod
    def delete_rows(self, table: str, user_id: str, ids: Sequence[str]) -> int:
        """Delete rows by id for ``user_id``; ids the remote does not hold are ignored."""

    @abstractmethod
    def fetch_rows(self, table: str, user_id: str) -> List[Dict[str, Any]]:
        """Return every row owned by ``user_id`` in the table's read order."""

    @abstractmethod
    def fetch_ids(self, table: str, user_id: str) -> List[str]:
        """Return the ids of every row owned by ``user_id``."""


class SupabaseRemoteStore(RemoteStore):
    """PostgREST client for a hosted Supabase project."""

    def __init__(self, base_url: str, api_key: str, timeout_seconds: float = 10.0, session: requests.Session | None = None) -> None:
        if not base_url or not api_key:
            raise ValueError("Supabase remote store requires a URL and an API key")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    def _headers(self, prefer: str | None = None) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _endpoint(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{get_table(table).name}"

    def _request(self, method: str, table: str, **kwargs: Any) -> requests.Response:
        try:
            response = self.session.request(method, self._endpoint(table), timeout=self.timeout_seconds, **kwargs)
        except requests.RequestException as exc:
            LOGGER.error("Remote store unreachable", extra={"table": table, "error": str(exc)})
            raise SyncFailure(f"Network error talking to {table}: {exc}", table=table) from exc

        if not 200 <= response.status_code < 300:
            LOGGER.warning("Remote store rejected request", extra={"table": table, "status_code": response.status_code})
            raise SyncFailure(f"Remote {table} request failed: HTTP {response.status_code}", table=table)
        return response

    def upsert_rows(self, table: str, rows: Sequence[Dict[str, Any]]) -> int:
        if not rows:
            return 0
        self._request(
            "POST",
            table,
            params={"on_conflict": "id"},
            headers=self._headers("resolution=merge-duplicates,return=minimal"),
            data=json.dumps(list(rows)),
        )
        return len(rows)

    def delete_rows(self, table: str, user_id: str, ids: Sequence[str]) -> int:
        if not ids:
            return 0
        quoted = ",".join(json.dumps(str(record_id)) for record_id in ids)
        self._request(
            "DELETE",
            table,
            params={"user_id": f"eq.{user_id}", "id": f"in.({quoted})"},
            headers=self._headers("return=minimal"),
        )
        # return=minimal gives no body, so the requested count is reported
        return len(ids)

    def fetch_rows(self, table: str, user_id: str) -> List[Dict[str, Any]]:
        spec = get_table(table)
        direction = "desc" if spec.descending else "asc"
        response = self._request(
            "GET",
            table,
            params={"select": "*", "user_id": f"eq.{user_id}", "order": f"{spec.order_by}.{direction}"},
            headers=self._headers(),
        )
        try:
            rows = _ROWS.validate_python(response.json())
        except (ValueError, ValidationError) as exc:
            raise SyncFailure(f"Unexpected payload from {table}: {exc}", table=table) from exc
        return [row.model_dump() for row in rows]

    def fetch_ids(self, table: str, user_id: str) -> List[str]:
        response = self._request(
            "GET",
            table,
            params={"select": "id", "user_id": f"eq.{user_id}"},
            headers=self._headers(),
        )
        try:
            rows = _IDS.validate_python(response.json())
        except (ValueError, ValidationError) as exc:
            raise SyncFailure(f"Unexpected payload from {table}: {exc}", table=table) from exc
        return [row.id for row in rows]


class SQLiteRemoteStore(RemoteStore):
    """SQLite stand-in for the hosted store, one table per entity."""

    def __init__(self, database_path: str | Path = "data/remote.db") -> None:
        self.database_path = Path(database_path)
        if self.database_path.parent and not self.database_path.parent.exists():
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_tables()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.database_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_tables(self) -> None:
        with self._connect() as conn:
            for table in REMOTE_TABLES:
                conn.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {table} (
                        id TEXT PRIMARY KEY,
                        user_id TEXT NOT NULL,
                        payload TEXT NOT NULL,
                        sort_key TEXT,
                        updated_at REAL
                    );
                    """
                )

    def upsert_rows(self, table: str, rows: Sequence[Dict[str, Any]]) -> int:
        name = get_table(table).name
        now = time.time()
        try:
            with self._connect() as conn:
                conn.executemany(
                    f"""
                    INSERT INTO {name} (id, user_id, payload, sort_key, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        user_id=excluded.user_id,
                        payload=excluded.payload,
                        sort_key=excluded.sort_key,
                        updated_at=excluded.updated_at
                    """,
                    [(row["id"], row["user_id"], json.dumps(row), sort_key(table, row), now) for row in rows],
                )
        except sqlite3.Error as exc:
            raise SyncFailure(f"Failed to upsert into {table}: {exc}", table=table) from exc
        return len(rows)

    def delete_rows(self, table: str, user_id: str, ids: Sequence[str]) -> int:
        if not ids:
            return 0
        name = get_table(table).name
        placeholders = ", ".join("?" for _ in ids)
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    f"DELETE FROM {name} WHERE user_id = ? AND id IN ({placeholders})",
                    (user_id, *ids),
                )
        except sqlite3.Error as exc:
            raise SyncFailure(f"Failed to delete from {table}: {exc}", table=table) from exc
        return cursor.rowcount

    def fetch_rows(self, table: str, user_id: str) -> List[Dict[str, Any]]:
        spec = get_table(table)
        direction = "DESC" if spec.descending else "ASC"
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    f"SELECT payload FROM {spec.name} WHERE user_id = ? ORDER BY sort_key {direction}, id",
                    (user_id,),
                )
                return [json.loads(row["payload"]) for row in cursor.fetchall()]
        except sqlite3.Error as exc:
            raise SyncFailure(f"Failed to read {table}: {exc}", table=table) from exc

    def fetch_ids(self, table: str, user_id: str) -> List[str]:
        name = get_table(table).name
        try:
            with self._connect() as conn:
                cursor = conn.execute(f"SELECT id FROM {name} WHERE user_id = ? ORDER BY id", (user_id,))
                return [row["id"] for row in cursor.fetchall()]
        except sqlite3.Error as exc:
            raise SyncFailure(f"Failed to read ids from {table}: {exc}", table=table) from exc


def build_remote_store(
    backend: str,
    *,
    url: str | None = None,
    api_key: str | None = None,
    db_path: str | Path | None = None,
    timeout_seconds: float = 10.0,
) -> Optional[RemoteStore]:
    """Return the remote adapter named by configuration, or ``None`` when disabled."""

    if backend == "none":
        return None
    if backend == "sqlite":
        return SQLiteRemoteStore(db_path or "data/remote.db")
    if backend == "supabase":
        return SupabaseRemoteStore(url or "", api_key or "", timeout_seconds=timeout_seconds)
    raise ValueError(f"Unknown remote backend '{backend}'")


__all__ = ["RemoteStore", "SupabaseRemoteStore", "SQLiteRemoteStore", "build_remote_store"]
