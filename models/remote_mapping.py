"""Mapping between local records and remote table rows.

Remote rows mirror the local record shape field for field with snake_case
column names and an extra ``user_id`` partition column. Nested values such as
packing list items are kept as JSON objects.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Tuple, Type

from models.errors import ValidationFailure
from models.records import (
    ClothingItem,
    Outfit,
    PackingList,
    Trip,
    WearLog,
    WishlistItem,
    to_camel,
    to_snake,
)

logger = logging.getLogger(__name__)

REMOTE_ONLY_COLUMNS = {"user_id", "updated_at"}


@dataclass(frozen=True)
class RemoteTable:
    name: str
    record_type: Type
    order_by: str
    descending: bool = True


REMOTE_TABLES: Dict[str, RemoteTable] = {
    table.name: table
    for table in (
        RemoteTable("clothing_items", ClothingItem, "created_at"),
        RemoteTable("outfits", Outfit, "created_at"),
        RemoteTable("wear_logs", WearLog, "date"),
        RemoteTable("wishlist_items", WishlistItem, "added_at"),
        RemoteTable("trips", Trip, "start_date", descending=False),
        RemoteTable("packing_lists", PackingList, "created_at"),
    )
}


def get_table(name: str) -> RemoteTable:
    try:
        return REMOTE_TABLES[name]
    except KeyError as exc:
        raise ValueError(f"Unknown remote table '{name}'") from exc


def record_to_row(record: Any, user_id: str) -> Dict[str, Any]:
    """Return the remote row for ``record`` owned by ``user_id``."""

    if not user_id:
        raise ValidationFailure("user_id is required for remote rows", field="user_id")
    row = {to_snake(key): value for key, value in record.to_dict().items()}
    row["user_id"] = user_id
    return row


def row_to_record(table: str, row: Dict[str, Any]) -> Any:
    """Rebuild a local record from a remote row; raises ``ValidationFailure``."""

    payload = {to_camel(key): value for key, value in row.items() if key not in REMOTE_ONLY_COLUMNS}
    return get_table(table).record_type.from_dict(payload)


def rows_to_records(table: str, rows: Iterable[Dict[str, Any]]) -> Tuple[List[Any], int]:
    """Map rows to records, skipping invalid rows. Returns ``(records, skipped)``."""

    records: List[Any] = []
    skipped = 0
    for row in rows:
        try:
            records.append(row_to_record(table, row))
        except ValidationFailure as exc:
            skipped += 1
            logger.warning("Skipping invalid remote row", extra={"table": table, "reason": str(exc)})
    return records, skipped


def sort_key(table: str, row: Dict[str, Any]) -> str:
    """Value used to order rows of ``table``; ISO strings sort chronologically."""

    value = row.get(get_table(table).order_by)
    return "" if value is None else str(value)


__all__ = [
    "RemoteTable",
    "REMOTE_TABLES",
    "get_table",
    "record_to_row",
    "row_to_record",
    "rows_to_records",
    "sort_key",
]
