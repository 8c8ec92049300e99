"""Record store CRUD, wear logging and reconciliation tests."""

from __future__ import annotations

import json
import threading
from datetime import datetime, timedelta, timezone

import pytest

from memory.kv_store import InMemoryKeyValueStore
from memory.record_store import RecordStore
from models.errors import PersistenceFailure, ValidationFailure
from models.records import Outfit, PackingItem, PackingList
from wardrobe_app.context import AppContext


class FlakyKeyValueStore(InMemoryKeyValueStore):
    """In-memory store whose reads or writes can be switched off."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_reads = False
        self.fail_writes = False

    def get(self, key):
        if self.fail_reads and not key.endswith("pending_changes"):
            raise PersistenceFailure("disk unavailable", key=key)
        return super().get(key)

    def set(self, key, value):
        if self.fail_writes and not key.endswith("pending_changes"):
            raise PersistenceFailure("disk full", key=key)
        super().set(key, value)


def test_saved_item_round_trips(store: RecordStore, make_item) -> None:
    item = make_item(
        occasions=["casual"], seasons=["summer", "spring"], tags=["cotton"], measurements={"length": "70cm"}
    )
    store.save_clothing_item(item)

    assert store.get_clothing_items() == [item]
    assert store.get_clothing_item("item-1") == item


def test_upsert_replaces_in_place_and_inserts_new_records_first(store: RecordStore, make_item) -> None:
    store.save_clothing_item(make_item("a"))
    store.save_clothing_item(make_item("b"))
    store.save_clothing_item(make_item("a", brand="COS"))
    store.save_clothing_item(make_item("a", brand="COS"))

    items = store.get_clothing_items()
    assert [item.id for item in items] == ["b", "a"]
    assert items[1].brand == "COS"


def test_delete_reports_whether_a_record_was_removed(store: RecordStore, make_item) -> None:
    store.save_clothing_item(make_item("a"))

    assert store.delete_clothing_item("a") is True
    assert store.delete_clothing_item("a") is False
    assert store.get_clothing_items() == []


def test_every_mutation_marks_a_pending_change(store: RecordStore, context: AppContext, make_item) -> None:
    store.save_clothing_item(make_item("a"))
    store.save_outfit(Outfit(id="o", name="Look", item_ids=["a"]))
    store.delete_outfit("o")
    store.delete_outfit("missing")

    assert context.sync_state.load().pending_changes == 3


def test_saving_a_wear_log_counts_wears_once_per_item(store: RecordStore, make_item, make_log) -> None:
    store.save_clothing_item(make_item("a"))
    store.save_clothing_item(make_item("b"))
    worn_at = datetime(2024, 3, 1, 9, tzinfo=timezone.utc)

    log = make_log("log", item_ids=["a", "ghost"], when=worn_at)
    store.save_wear_log(log)
    store.save_wear_log(log)
    store.save_wear_log(make_log("log", item_ids=["a", "b", "ghost"], when=worn_at))

    items = {item.id: item for item in store.get_clothing_items()}
    assert items["a"].wear_count == 1
    assert items["b"].wear_count == 1
    assert items["a"].last_worn_at == worn_at
    assert len(store.get_wear_logs()) == 1


def test_update_item_wear_count(store: RecordStore, make_item) -> None:
    store.save_clothing_item(make_item("a"))

    assert store.update_item_wear_count("a") is True
    assert store.update_item_wear_count("missing") is False
    item = store.get_clothing_item("a")
    assert item.wear_count == 1
    assert item.last_worn_at is not None


def test_deleting_a_worn_item_leaves_dangling_reference(store: RecordStore, make_item, make_log) -> None:
    store.save_clothing_item(make_item("a"))
    store.save_clothing_item(make_item("b"))
    store.save_wear_log(make_log("log", item_ids=["a", "b"]))

    store.delete_clothing_item("a")

    log = store.get_wear_logs()[0]
    assert log.item_ids == ["a", "b"]
    assert [item.id for item in store.get_worn_items(log)] == ["b"]
    refs = store.resolve_item_refs(log.item_ids)
    assert [ref.is_resolved for ref in refs] == [False, True]


def test_corrupted_collection_reads_as_empty(store: RecordStore, context: AppContext, make_item) -> None:
    context.kv_store.set(store.storage_key("clothing_items"), "{not json")

    assert store.get_clothing_items() == []
    store.save_clothing_item(make_item("a"))
    assert [item.id for item in store.get_clothing_items()] == ["a"]


def test_invalid_entries_are_skipped_on_read(store: RecordStore, context: AppContext, make_item) -> None:
    good = make_item("a").to_dict()
    context.kv_store.set(store.storage_key("clothing_items"), json.dumps([{"id": "broken"}, good]))

    assert [item.id for item in store.get_clothing_items()] == ["a"]


def test_backend_failures_fail_open_on_read_and_loud_on_write(config, make_item) -> None:
    kv = FlakyKeyValueStore()
    store = RecordStore(AppContext.initialise(config, kv))
    store.save_clothing_item(make_item("a"))

    kv.fail_reads = True
    assert store.get_clothing_items() == []
    with pytest.raises(PersistenceFailure):
        store.save_clothing_item(make_item("b"))

    kv.fail_reads = False
    kv.fail_writes = True
    with pytest.raises(PersistenceFailure):
        store.delete_clothing_item("a")
    assert [item.id for item in store.get_clothing_items()] == ["a"]


def test_invalid_records_are_rejected_before_persistence(store: RecordStore, make_item) -> None:
    with pytest.raises(ValidationFailure):
        store.save_clothing_item(make_item("a", category="hats"))
    assert store.get_clothing_items() == []


def test_filters_and_date_lookup(store: RecordStore, make_item, make_log) -> None:
    store.save_clothing_item(make_item("a", category="tops", occasions=["business"], seasons=["winter"]))
    store.save_clothing_item(make_item("b", category="bottoms", type="jeans", brand="Levi's"))
    store.save_wear_log(make_log("l1", item_ids=["a"], when=datetime(2024, 3, 1, 23, tzinfo=timezone.utc)))
    store.save_wear_log(make_log("l2", item_ids=["b"], when=datetime(2024, 3, 2, 8, tzinfo=timezone.utc)))

    assert [i.id for i in store.get_items_by_filter(category="tops")] == ["a"]
    assert [i.id for i in store.get_items_by_filter(occasion="business", season="winter")] == ["a"]
    assert [i.id for i in store.get_items_by_filter(brand="Levi's", type="jeans")] == ["b"]
    assert [log.id for log in store.get_wear_logs_for_date("2024-03-02")] == ["l2"]


def test_wishlist_priority_toggle(store: RecordStore, make_wishlist) -> None:
    store.save_wishlist_item(make_wishlist("w"))

    assert store.toggle_wishlist_priority("w").is_priority is True
    assert store.toggle_wishlist_priority("w").is_priority is False
    assert store.toggle_wishlist_priority("missing") is None


def test_trip_deletion_removes_its_packing_list(store: RecordStore, make_trip) -> None:
    store.save_trip(make_trip("t1"))
    store.save_trip(make_trip("t2"))
    store.save_packing_list(PackingList(id="pl1", trip_id="t1"))
    store.save_packing_list(PackingList(id="pl2", trip_id="t2"))

    assert store.delete_trip("t1") is True
    assert [trip.id for trip in store.get_trips()] == ["t2"]
    assert [pl.id for pl in store.get_packing_lists()] == ["pl2"]
    assert store.get_packing_list_for_trip("t2").id == "pl2"


def test_removing_an_orphaned_packing_list_counts_as_a_change(store: RecordStore, context: AppContext) -> None:
    store.save_packing_list(PackingList(id="pl", trip_id="gone"))
    before = context.sync_state.load().pending_changes

    assert store.delete_trip("gone") is True
    assert store.get_packing_lists() == []
    assert context.sync_state.load().pending_changes == before + 1
    assert store.pending_deletions() == {"packing_lists": ["pl"]}


def test_toggle_packing_item_updates_last_modified(store: RecordStore) -> None:
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    store.save_packing_list(
        PackingList(
            id="pl",
            trip_id="t",
            items=[PackingItem(id="p", name="Passport/ID", category="documents")],
            created_at=created,
            last_modified=created,
        )
    )

    toggled = store.toggle_packing_item_packed("pl", "p")

    assert toggled.is_packed is True
    assert store.get_packing_lists()[0].last_modified > created
    assert store.toggle_packing_item_packed("pl", "missing") is None


def test_reconcile_wear_counts_repairs_drift(store: RecordStore, context: AppContext, make_item, make_log) -> None:
    last = datetime(2024, 3, 5, tzinfo=timezone.utc)
    store.save_wear_log(make_log("l1", item_ids=["a"], when=last - timedelta(days=4)))
    store.save_wear_log(make_log("l2", item_ids=["a"], when=last))
    store.save_clothing_item(make_item("a", wear_count=9))
    store.save_clothing_item(make_item("b"))

    assert store.reconcile_wear_counts() == 1
    item = store.get_clothing_item("a")
    assert item.wear_count == 2
    assert item.last_worn_at == last
    assert store.reconcile_wear_counts() == 0


def test_merge_records_policy(store: RecordStore, context: AppContext, make_item) -> None:
    worn = datetime(2024, 5, 1, tzinfo=timezone.utc)
    store.save_clothing_item(make_item("shared", brand="Local", wear_count=5))
    pending_before = context.sync_state.load().pending_changes

    remote = [make_item("shared", brand="Remote", wear_count=2, last_worn_at=worn), make_item("remote-only")]
    assert store.merge_records("clothing_items", remote, prefer_local=False) == 2

    items = {item.id: item for item in store.get_clothing_items()}
    assert items["shared"].brand == "Remote"
    assert items["shared"].wear_count == 5
    assert items["shared"].last_worn_at == worn
    assert "remote-only" in items
    assert context.sync_state.load().pending_changes == pending_before

    store.merge_records("clothing_items", [make_item("shared", brand="Again")], prefer_local=True)
    assert store.get_clothing_item("shared").brand == "Remote"


def test_concurrent_saves_do_not_lose_records(store: RecordStore, make_item) -> None:
    def save_many(prefix: str) -> None:
        for index in range(25):
            store.save_clothing_item(make_item(f"{prefix}-{index}"))

    threads = [threading.Thread(target=save_many, args=(name,)) for name in ("x", "y", "z")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(store.get_clothing_items()) == 75


def test_snapshot_covers_every_collection(store: RecordStore, make_item, make_trip) -> None:
    store.save_clothing_item(make_item("a"))
    store.save_trip(make_trip("t"))

    counts = store.snapshot().counts()

    assert counts["clothing_items"] == 1
    assert counts["trips"] == 1
    assert counts["wear_logs"] == 0
    assert set(counts) == {"clothing_items", "outfits", "wear_logs", "wishlist_items", "trips", "packing_lists"}


def test_closet_stats_delegate(store: RecordStore, make_item) -> None:
    store.save_clothing_item(make_item("a", purchase_price=100, wear_count=4))

    stats = store.get_closet_stats()

    assert stats.total_items == 1
    assert stats.total_value == 100
    assert stats.most_worn_item.id == "a"
