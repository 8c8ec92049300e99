"""Local record store over a key-value backend.

Every collection is persisted as one JSON array under a namespaced key. Writes
read the whole collection, modify it and write it back, so each collection has
its own lock to keep concurrent callers from clobbering each other. Reads fail
open: a corrupted or unreadable collection is reported as empty.
"""
from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Type, TypeVar

from logic.analytics import AnalyticsSummary, ClosetStats, compute_analytics_summary, compute_closet_stats
from models.errors import PersistenceFailure, ValidationFailure
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
    parse_day,
    utcnow,
)

if TYPE_CHECKING:
    from wardrobe_app.context import AppContext

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

# collection name -> (key suffix, record class); names double as remote table names
COLLECTIONS: Dict[str, tuple] = {
    "clothing_items": ("items", ClothingItem),
    "outfits": ("outfits", Outfit),
    "wear_logs": ("wear_logs", WearLog),
    "wishlist_items": ("wishlist", WishlistItem),
    "trips": ("trips", Trip),
    "packing_lists": ("packing_lists", PackingList),
}


@dataclass
class StoreSnapshot:
    """Point-in-time copy of every collection."""

    clothing_items: List[ClothingItem] = field(default_factory=list)
    outfits: List[Outfit] = field(default_factory=list)
    wear_logs: List[WearLog] = field(default_factory=list)
    wishlist_items: List[WishlistItem] = field(default_factory=list)
    trips: List[Trip] = field(default_factory=list)
    packing_lists: List[PackingList] = field(default_factory=list)
    taken_at: datetime = field(default_factory=utcnow)

    def collection(self, name: str) -> list:
        return getattr(self, name)

    def counts(self) -> Dict[str, int]:
        return {name: len(self.collection(name)) for name in COLLECTIONS}


class RecordStore:
    """Typed CRUD over the six wardrobe collections."""

    def __init__(self, context: "AppContext") -> None:
        self.context = context
        self.kv_store = context.kv_store
        namespace = context.config.key_namespace
        self._keys = {name: f"{namespace}_{suffix}" for name, (suffix, _) in COLLECTIONS.items()}
        self._locks = {name: threading.RLock() for name in COLLECTIONS}
        self._deleted_key = f"{namespace}_deleted_ids"
        self._deleted_lock = threading.Lock()

    # ------------------------------------------------------------------ internals

    def storage_key(self, collection: str) -> str:
        return self._keys[collection]

    def _read(self, collection: str, strict: bool = False) -> list:
        key = self._keys[collection]
        record_cls = COLLECTIONS[collection][1]
        try:
            raw = self.kv_store.get(key)
        except PersistenceFailure:
            if strict:
                raise
            LOGGER.warning("Treating unreadable collection %s as empty", key, exc_info=True)
            return []
        if not raw:
            return []
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            LOGGER.warning("Treating corrupted collection %s as empty", key)
            return []
        if not isinstance(payload, list):
            LOGGER.warning("Treating non-list collection %s as empty", key)
            return []

        records = []
        for entry in payload:
            try:
                records.append(record_cls.from_dict(entry))
            except ValidationFailure as exc:
                LOGGER.warning("Skipping invalid %s entry: %s", collection, exc)
        return records

    def _write(self, collection: str, records: Sequence[object]) -> None:
        payload = json.dumps([record.to_dict() for record in records])  # type: ignore[attr-defined]
        self.kv_store.set(self._keys[collection], payload)

    def _changed(self) -> None:
        self.context.notify_local_change()

    # deleted ids are kept per collection until an upload removes them remotely
    def _read_deleted(self) -> Dict[str, List[str]]:
        raw = self.kv_store.get(self._deleted_key)
        if not raw:
            return {}
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            LOGGER.warning("Ignoring corrupted deletion markers under %s", self._deleted_key)
            return {}
        if not isinstance(payload, dict):
            return {}
        return {
            name: [str(record_id) for record_id in ids]
            for name, ids in payload.items()
            if name in COLLECTIONS and isinstance(ids, list)
        }

    def _write_deleted(self, deleted: Dict[str, List[str]]) -> None:
        self.kv_store.set(self._deleted_key, json.dumps({name: ids for name, ids in deleted.items() if ids}))

    def _bury(self, collection: str, record_ids: Sequence[str]) -> None:
        with self._deleted_lock:
            deleted = self._read_deleted()
            ids = deleted.setdefault(collection, [])
            ids.extend(record_id for record_id in record_ids if record_id not in ids)
            self._write_deleted(deleted)

    def _unbury(self, collection: str, record_ids: Sequence[str]) -> None:
        with self._deleted_lock:
            deleted = self._read_deleted()
            ids = deleted.get(collection, [])
            if not any(record_id in ids for record_id in record_ids):
                return
            deleted[collection] = [record_id for record_id in ids if record_id not in record_ids]
            self._write_deleted(deleted)

    def _upsert(self, collection: str, record) -> None:
        with self._locks[collection]:
            records = self._read(collection, strict=True)
            for index, existing in enumerate(records):
                if existing.id == record.id:
                    records[index] = record
                    break
            else:
                records.insert(0, record)
            self._write(collection, records)
            self._unbury(collection, [record.id])
        self._changed()

    def _delete(self, collection: str, record_id: str) -> bool:
        with self._locks[collection]:
            records = self._read(collection, strict=True)
            remaining = [record for record in records if record.id != record_id]
            if len(remaining) == len(records):
                return False
            self._write(collection, remaining)
            self._bury(collection, [record_id])
        self._changed()
        return True

    @staticmethod
    def _find(records: Sequence[T], record_id: str) -> Optional[T]:
        return next((record for record in records if record.id == record_id), None)  # type: ignore[attr-defined]

    # -------------------------------------------------------------- clothing items

    def get_clothing_items(self) -> List[ClothingItem]:
        return self._read("clothing_items")

    def get_clothing_item(self, item_id: str) -> Optional[ClothingItem]:
        return self._find(self.get_clothing_items(), item_id)

    def save_clothing_item(self, item: ClothingItem) -> ClothingItem:
        self._upsert("clothing_items", item)
        return item

    def delete_clothing_item(self, item_id: str) -> bool:
        """Remove an item; wear logs and outfits keep their now dangling ids."""

        return self._delete("clothing_items", item_id)

    def update_item_wear_count(self, item_id: str, worn_at: datetime | None = None) -> bool:
        with self._locks["clothing_items"]:
            items = self._read("clothing_items", strict=True)
            item = self._find(items, item_id)
            if item is None:
                return False
            self._apply_wear(item, worn_at or utcnow())
            self._write("clothing_items", items)
        self._changed()
        return True

    def repair_image(
        self, item_id: str, placeholder: str, tag: str, expected_uri: str | None = None
    ) -> Optional[ClothingItem]:
        """Swap an item's image for ``placeholder`` and tag it, leaving other fields as stored.

        Nothing changes when the item is gone or, with ``expected_uri`` given,
        when its image was replaced since it was checked.
        """

        with self._locks["clothing_items"]:
            items = self._read("clothing_items", strict=True)
            item = self._find(items, item_id)
            if item is None or (expected_uri is not None and item.image_uri != expected_uri):
                return None
            item.image_uri = placeholder
            if tag not in item.tags:
                item.tags.append(tag)
            self._write("clothing_items", items)
        self._changed()
        return item

    @staticmethod
    def _apply_wear(item: ClothingItem, worn_at: datetime) -> None:
        item.wear_count += 1
        if item.last_worn_at is None or worn_at > item.last_worn_at:
            item.last_worn_at = worn_at

    def get_items_by_filter(
        self,
        category: str | None = None,
        type: str | None = None,
        occasion: str | None = None,
        season: str | None = None,
        brand: str | None = None,
    ) -> List[ClothingItem]:
        def matches(item: ClothingItem) -> bool:
            if category and item.category != category:
                return False
            if type and item.type != type:
                return False
            if occasion and occasion not in item.occasions:
                return False
            if season and season not in item.seasons:
                return False
            if brand and item.brand != brand:
                return False
            return True

        return [item for item in self.get_clothing_items() if matches(item)]

    # --------------------------------------------------------------------- outfits

    def get_outfits(self) -> List[Outfit]:
        return self._read("outfits")

    def save_outfit(self, outfit: Outfit) -> Outfit:
        self._upsert("outfits", outfit)
        return outfit

    def delete_outfit(self, outfit_id: str) -> bool:
        return self._delete("outfits", outfit_id)

    # -------------------------------------------------------------------- wear logs

    def get_wear_logs(self) -> List[WearLog]:
        return self._read("wear_logs")

    def save_wear_log(self, log: WearLog) -> WearLog:
        """Upsert a wear log and count the wear on every newly referenced item."""

        with self._locks["wear_logs"], self._locks["clothing_items"]:
            logs = self._read("wear_logs", strict=True)
            previous = self._find(logs, log.id)
            newly_worn = [item_id for item_id in log.item_ids if previous is None or item_id not in previous.item_ids]
            if previous is None:
                logs.insert(0, log)
            else:
                logs[logs.index(previous)] = log
            self._write("wear_logs", logs)

            if newly_worn:
                items = self._read("clothing_items", strict=True)
                touched = False
                for item in items:
                    if item.id in newly_worn:
                        self._apply_wear(item, log.date)
                        touched = True
                if touched:
                    self._write("clothing_items", items)
        self._changed()
        return log

    def delete_wear_log(self, log_id: str) -> bool:
        return self._delete("wear_logs", log_id)

    def get_wear_logs_for_date(self, day: date | datetime | str) -> List[WearLog]:
        target = parse_day(day, "date")
        return [log for log in self.get_wear_logs() if log.date.date() == target]

    # --------------------------------------------------------------------- wishlist

    def get_wishlist_items(self) -> List[WishlistItem]:
        return self._read("wishlist_items")

    def get_wishlist_item(self, item_id: str) -> Optional[WishlistItem]:
        return self._find(self.get_wishlist_items(), item_id)

    def save_wishlist_item(self, item: WishlistItem) -> WishlistItem:
        self._upsert("wishlist_items", item)
        return item

    def delete_wishlist_item(self, item_id: str) -> bool:
        return self._delete("wishlist_items", item_id)

    def toggle_wishlist_priority(self, item_id: str) -> Optional[WishlistItem]:
        with self._locks["wishlist_items"]:
            items = self._read("wishlist_items", strict=True)
            item = self._find(items, item_id)
            if item is None:
                return None
            item.is_priority = not item.is_priority
            self._write("wishlist_items", items)
        self._changed()
        return item

    # ------------------------------------------------------------------------ trips

    def get_trips(self) -> List[Trip]:
        return self._read("trips")

    def get_trip(self, trip_id: str) -> Optional[Trip]:
        return self._find(self.get_trips(), trip_id)

    def save_trip(self, trip: Trip) -> Trip:
        self._upsert("trips", trip)
        return trip

    def delete_trip(self, trip_id: str) -> bool:
        """Delete a trip together with the packing list it owns."""

        with self._locks["trips"], self._locks["packing_lists"]:
            removed = self._delete("trips", trip_id)
            lists = self._read("packing_lists", strict=True)
            orphaned = [packing_list.id for packing_list in lists if packing_list.trip_id == trip_id]
            if orphaned:
                self._write("packing_lists", [pl for pl in lists if pl.trip_id != trip_id])
                self._bury("packing_lists", orphaned)
        if orphaned:
            self._changed()
        return removed or bool(orphaned)

    # ---------------------------------------------------------------- packing lists

    def get_packing_lists(self) -> List[PackingList]:
        return self._read("packing_lists")

    def get_packing_list_for_trip(self, trip_id: str) -> Optional[PackingList]:
        return next((pl for pl in self.get_packing_lists() if pl.trip_id == trip_id), None)

    def save_packing_list(self, packing_list: PackingList) -> PackingList:
        self._upsert("packing_lists", packing_list)
        return packing_list

    def delete_packing_list(self, list_id: str) -> bool:
        return self._delete("packing_lists", list_id)

    def toggle_packing_item_packed(self, list_id: str, item_id: str) -> Optional[PackingItem]:
        with self._locks["packing_lists"]:
            lists = self._read("packing_lists", strict=True)
            packing_list = self._find(lists, list_id)
            if packing_list is None:
                return None
            item = self._find(packing_list.items, item_id)
            if item is None:
                return None
            item.is_packed = not item.is_packed
            packing_list.last_modified = utcnow()
            self._write("packing_lists", lists)
        self._changed()
        return item

    # ------------------------------------------------------------------ references

    def resolve_item_refs(self, item_ids: Sequence[str]) -> List[ItemReference]:
        """Resolve clothing ids, keeping unresolved ids as empty references."""

        by_id = {item.id: item for item in self.get_clothing_items()}
        return [ItemReference(item_id=item_id, item=by_id.get(item_id)) for item_id in item_ids]

    def get_worn_items(self, record: WearLog | Outfit) -> List[ClothingItem]:
        """Return the existing clothing items of a wear log or outfit."""

        return [ref.item for ref in self.resolve_item_refs(record.item_ids) if ref.item is not None]

    def reconcile_wear_counts(self) -> int:
        """Recompute wear counts and last-worn timestamps from the wear logs."""

        with self._locks["wear_logs"], self._locks["clothing_items"]:
            logs = self._read("wear_logs", strict=True)
            items = self._read("clothing_items", strict=True)
            counts: Dict[str, int] = {}
            last_worn: Dict[str, datetime] = {}
            for log in logs:
                for item_id in log.item_ids:
                    counts[item_id] = counts.get(item_id, 0) + 1
                    if item_id not in last_worn or log.date > last_worn[item_id]:
                        last_worn[item_id] = log.date

            fixed = 0
            for item in items:
                expected_count = counts.get(item.id, 0)
                expected_last = last_worn.get(item.id, item.last_worn_at)
                if item.wear_count != expected_count or item.last_worn_at != expected_last:
                    item.wear_count = expected_count
                    item.last_worn_at = expected_last
                    fixed += 1
            if fixed:
                self._write("clothing_items", items)
        if fixed:
            LOGGER.info("Reconciled wear counts for %s item(s)", fixed)
            self._changed()
        return fixed

    # ------------------------------------------------------------ snapshots & sync

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(**{name: self._read(name, strict=True) for name in COLLECTIONS})

    def pending_deletions(self) -> Dict[str, List[str]]:
        """Ids deleted locally that the remote store may still hold, per collection."""

        with self._deleted_lock:
            return {name: ids for name, ids in self._read_deleted().items() if ids}

    def clear_deletions(self, sent: Dict[str, Sequence[str]]) -> None:
        """Forget deletion markers once the remote store has dropped those ids."""

        with self._deleted_lock:
            deleted = self._read_deleted()
            if not deleted:
                return
            for name, ids in sent.items():
                if name in deleted:
                    deleted[name] = [record_id for record_id in deleted[name] if record_id not in ids]
            self._write_deleted(deleted)

    def merge_records(self, collection: str, incoming: Sequence[object], prefer_local: bool) -> int:
        """Merge remote records by id without counting as a local change.

        Records only known remotely are appended unless they were deleted
        locally. On id collisions the remote record wins unless
        ``prefer_local`` is set. Clothing wear counts and last-worn timestamps
        take the maximum of both sides.
        """

        record_cls: Type = COLLECTIONS[collection][1]
        with self._locks[collection]:
            records = self._read(collection, strict=True)
            with self._deleted_lock:
                deleted = set(self._read_deleted().get(collection, []))
            index_by_id = {record.id: position for position, record in enumerate(records)}
            changed = 0
            for remote in incoming:
                if not isinstance(remote, record_cls):
                    raise TypeError(f"Expected {record_cls.__name__}, got {type(remote).__name__}")
                if remote.id in deleted:
                    continue
                position = index_by_id.get(remote.id)
                if position is None:
                    index_by_id[remote.id] = len(records)
                    records.append(remote)
                    changed += 1
                    continue
                local = records[position]
                merged = local if prefer_local else remote
                if collection == "clothing_items":
                    merged = _merge_wear_history(merged, local, remote)
                if merged != local:
                    records[position] = merged
                    changed += 1
            if changed:
                self._write(collection, records)
        return changed

    # ------------------------------------------------------------------- analytics

    def get_closet_stats(self, now: datetime | None = None) -> ClosetStats:
        return compute_closet_stats(self.get_clothing_items(), self.get_wear_logs(), now=now)

    def get_analytics_summary(self, now: datetime | None = None) -> AnalyticsSummary:
        return compute_analytics_summary(self.get_clothing_items(), now=now)

    generate_id = staticmethod(generate_id)


def _merge_wear_history(base: ClothingItem, local: ClothingItem, remote: ClothingItem) -> ClothingItem:
    worn_times = [ts for ts in (local.last_worn_at, remote.last_worn_at) if ts is not None]
    return replace(
        base,
        wear_count=max(local.wear_count, remote.wear_count),
        last_worn_at=max(worn_times) if worn_times else None,
    )


__all__ = ["RecordStore", "StoreSnapshot", "COLLECTIONS", "generate_id"]
