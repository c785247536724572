import json
from decimal import Decimal

import pytest

from conftest import FakeRemoteStore
from silent_auction.errors import ConfigurationError, RemoteStoreError
from silent_auction.models import Attendee, ChangeEvent, ChangeKind, EntityType, Item, WinningBid
from silent_auction.snapshot import LocalSnapshot
from silent_auction.store import AuctionStore
from silent_auction.sync import LoadSource, SyncLayer


def _seed_remote(remote):
    remote.tables["items"] = {
        "002": {"id": "002", "name": "Basket", "section": "", "winning_bid": None},
        "001": {"id": "001", "name": "Painting", "section": "Art", "winning_bid": {"bidNum": "42", "amount": 150}},
    }
    remote.tables["attendees"] = {
        "42": {"bid_num": "42", "name": "Alice", "won_items": ["001"]},
    }


# =============================================================================
# LOAD
# =============================================================================

def test_load_from_remote_orders_by_key_and_persists(sync, store, remote, snapshot):
    _seed_remote(remote)
    result = sync.load()

    assert result.source is LoadSource.REMOTE
    assert result.online and sync.online
    assert (result.item_count, result.attendee_count) == (2, 1)
    assert result.warning is None
    assert list(store.items) == ["001", "002"]
    assert store.items["001"].winning_bid == WinningBid("42", Decimal("150.00"))

    items, attendees = snapshot.load()
    assert [i.id for i in items] == ["001", "002"]
    assert attendees[0].won_items == ("001",)


def test_load_skips_malformed_remote_rows(sync, store, remote):
    _seed_remote(remote)
    remote.tables["items"]["003"] = {"id": "003", "name": "Vase", "winning_bid": {"amount": 5}}
    remote.tables["attendees"]["bad"] = {"name": "No bid number"}

    result = sync.load()

    assert result.source is LoadSource.REMOTE
    assert result.online
    assert (result.item_count, result.attendee_count) == (2, 1)
    assert "Skipped 2 malformed record(s)" in result.warning
    assert list(store.items) == ["001", "002"]
    assert list(store.attendees) == ["42"]


def test_load_falls_back_to_snapshot(store, remote, snapshot):
    snapshot.save([Item("007", "Wine")], [Attendee("9", "Zed")])
    remote.fail_always(RemoteStoreError("Could not reach Supabase"))
    sync = SyncLayer(store, remote=remote, snapshot=snapshot)

    result = sync.load()

    assert result.source is LoadSource.SNAPSHOT
    assert not sync.online
    assert "Could not reach Supabase" in result.warning
    assert not result.configuration_error
    assert list(store.items) == ["007"]
    assert list(store.attendees) == ["9"]


def test_load_missing_table_flags_configuration_error(store, remote, snapshot):
    remote.fail_always(ConfigurationError("Table 'items' does not exist."))
    result = SyncLayer(store, remote=remote, snapshot=snapshot).load()

    assert result.source is LoadSource.EMPTY
    assert result.configuration_error
    assert "No local data available" in result.warning
    assert store.items == {} and store.attendees == {}


def test_load_without_remote_reports_not_configured(store, snapshot):
    result = SyncLayer(store, remote=None, snapshot=snapshot).load()
    assert result.source is LoadSource.EMPTY
    assert result.configuration_error
    assert ".env" in result.warning


def test_load_with_corrupt_snapshot_starts_empty(store, remote, snapshot, tmp_path):
    snapshot.save([Item("1", "x")], [])
    (tmp_path / "snapshot" / "auctionItems.json").write_text("{not json", encoding="utf-8")
    remote.fail_always()

    result = SyncLayer(store, remote=remote, snapshot=snapshot).load()
    assert result.source is LoadSource.EMPTY
    assert store.items == {}


# =============================================================================
# CHANGE FEED
# =============================================================================

def test_apply_remote_change_is_idempotent(sync, store):
    event = ChangeEvent(
        ChangeKind.CREATED, EntityType.ITEM, "003",
        {"id": "003", "name": "Quilt", "section": "Crafts", "winning_bid": None},
    )
    sync.apply_remote_change(event)
    once = store.checkpoint()
    sync.apply_remote_change(event)
    assert store.checkpoint() == once
    assert store.items["003"].name == "Quilt"


def test_apply_remote_update_merges_partial_row(sync, store):
    store.put_attendee(Attendee("42", "Alice", ("001",)))
    sync.apply_remote_change(ChangeEvent(ChangeKind.UPDATED, EntityType.ATTENDEE, "42", {"name": "Alice B."}))
    assert store.attendees["42"] == Attendee("42", "Alice B.", ("001",))


def test_apply_remote_delete_of_missing_key_is_noop(sync, store):
    store.put_item(Item("001", "Painting"))
    sync.apply_remote_change(ChangeEvent(ChangeKind.DELETED, EntityType.ITEM, "999"))
    sync.apply_remote_change(ChangeEvent(ChangeKind.DELETED, EntityType.ITEM, "001"))
    sync.apply_remote_change(ChangeEvent(ChangeKind.DELETED, EntityType.ITEM, "001"))
    assert store.items == {}


def test_apply_remote_change_rejects_mismatched_key(sync):
    event = ChangeEvent(ChangeKind.CREATED, EntityType.ITEM, "001", {"id": "002", "name": "x"})
    with pytest.raises(ValueError):
        sync.apply_remote_change(event)


def test_handle_feed_payload_applies_and_persists(sync, store, snapshot):
    sync.handle_feed_payload("attendees", {
        "data": {"type": "INSERT", "record": {"bid_num": "50", "name": "Eve", "won_items": []}},
    })
    assert store.attendees["50"].name == "Eve"
    _, attendees = snapshot.load()
    assert [a.bid_num for a in attendees] == ["50"]


def test_handle_feed_payload_ignores_malformed(sync, store):
    sync.handle_feed_payload("items", {"data": {"type": "INSERT", "record": {"name": "no id"}}})
    sync.handle_feed_payload("items", {"data": {"type": "INSERT", "record": {"id": "1", "winning_bid": {"amount": 3}}}})
    assert store.items == {}


def test_persist_failure_is_not_raised(store, tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("", encoding="utf-8")
    store.put_item(Item("001", "Painting"))
    # the snapshot directory path is an existing file
    sync = SyncLayer(store, remote=None, snapshot=LocalSnapshot(str(blocker)))
    sync.persist()


# =============================================================================
# MIGRATION
# =============================================================================

def test_migrate_snapshot_skips_existing_records(store, snapshot):
    remote = FakeRemoteStore()
    remote.tables["items"]["001"] = {"id": "001", "name": "Painting", "section": "", "winning_bid": None}
    snapshot.save(
        [Item("001", "Painting"), Item("002", "Basket")],
        [Attendee("42", "Alice")],
    )
    summary = SyncLayer(store, remote=remote, snapshot=snapshot).migrate_snapshot()

    assert summary == {"items_migrated": 1, "attendees_migrated": 1, "skipped": 1, "errors": []}
    assert set(remote.tables["items"]) == {"001", "002"}
    assert set(remote.tables["attendees"]) == {"42"}


def test_migrate_snapshot_collects_errors(store, snapshot):
    remote = FakeRemoteStore()
    remote.fail_when("insert", "attendees", "42", RemoteStoreError("permission denied"))
    snapshot.save([], [Attendee("42", "Alice"), Attendee("43", "Bob")])

    summary = SyncLayer(store, remote=remote, snapshot=snapshot).migrate_snapshot()
    assert summary["attendees_migrated"] == 1
    assert summary["errors"] == ["attendees[42]: permission denied"]


def test_migrate_without_snapshot(store, remote, snapshot):
    summary = SyncLayer(store, remote=remote, snapshot=snapshot).migrate_snapshot()
    assert summary["items_migrated"] == 0
    assert remote.calls == []


def test_snapshot_blob_names(snapshot, tmp_path):
    snapshot.save([Item("001", "Painting")], [])
    rows = json.loads((tmp_path / "snapshot" / "auctionItems.json").read_text(encoding="utf-8"))
    assert rows[0]["id"] == "001"
    assert (tmp_path / "snapshot" / "auctionAttendees.json").exists()
    snapshot.clear()
    assert snapshot.load() is None
