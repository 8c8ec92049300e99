"""On-device key-value persistence backends.

Each backend maps a string key to a string value. The record store keeps one
JSON array per collection under a namespaced key, so backends only need whole
value reads and writes.
"""
from __future__ import annotations

import os
import sqlite3
import tempfile
import threading
import time
from pathlib import Path
from typing import Dict, List, Optional

from models.errors import PersistenceFailure


class KeyValueStore:
    """Interface for on-device key-value persistence."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError

    def keys(self) -> List[str]:
        raise NotImplementedError


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store for tests and ephemeral sessions."""

    def __init__(self, initial: Dict[str, str] | None = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._data)


class JSONFileKeyValueStore(KeyValueStore):
    """File-per-key store; writes go through a temp file and an atomic replace."""

    def __init__(self, base_dir: str | Path = "data/local_store") -> None:
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        safe_key = "".join(ch if ch.isalnum() or ch in "-_." else "_" for ch in key)
        return self.base_dir / f"{safe_key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PersistenceFailure(f"Failed to read {key}: {exc}", key=key) from exc

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.base_dir, prefix=f".{path.stem}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, path)
        except OSError as exc:
            raise PersistenceFailure(f"Failed to write {key}: {exc}", key=key) from exc

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceFailure(f"Failed to remove {key}: {exc}", key=key) from exc

    def keys(self) -> List[str]:
        return sorted(path.stem for path in self.base_dir.glob("*.json"))


class SQLiteKeyValueStore(KeyValueStore):
    """SQLite-backed key-value store for lightweight durability."""

    def __init__(self, db_path: str | Path = "data/local_store.db") -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_entries (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at REAL
                );
                """
            )

    def get(self, key: str) -> Optional[str]:
        try:
            with self._connect() as conn:
                row = conn.execute("SELECT value FROM kv_entries WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"Failed to read {key}: {exc}", key=key) from exc
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    "INSERT INTO kv_entries(key, value, updated_at) VALUES (?, ?, ?)\n"
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at",
                    (key, value, time.time()),
                )
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"Failed to write {key}: {exc}", key=key) from exc

    def remove(self, key: str) -> None:
        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM kv_entries WHERE key = ?", (key,))
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"Failed to remove {key}: {exc}", key=key) from exc

    def keys(self) -> List[str]:
        with self._connect() as conn:
            rows = conn.execute("SELECT key FROM kv_entries ORDER BY key").fetchall()
        return [row["key"] for row in rows]


def build_kv_store(backend: str, path: str | Path) -> KeyValueStore:
    """Return the key-value backend named by configuration."""

    if backend == "sqlite":
        return SQLiteKeyValueStore(path)
    if backend == "memory":
        return InMemoryKeyValueStore()
    if backend == "json":
        return JSONFileKeyValueStore(path)
    raise ValueError(f"Unknown storage backend '{backend}'")


__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "JSONFileKeyValueStore",
    "SQLiteKeyValueStore",
    "build_kv_store",
]
