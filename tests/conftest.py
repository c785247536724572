import copy

import pytest

from silent_auction.errors import RemoteStoreError
from silent_auction.ledger import AuctionLedger
from silent_auction.models import Attendee, Item
from silent_auction.snapshot import LocalSnapshot
from silent_auction.store import AuctionStore
from silent_auction.sync import SyncLayer


class FakeRemoteStore:
    """In-memory stand-in for db.Database with failure injection."""

    KEYS = {"items": "id", "attendees": "bid_num"}

    def __init__(self):
        self.tables = {"items": {}, "attendees": {}}
        self.calls = []
        self._failures = []

    def fail_when(self, action, table=None, key=None, error=None):
        """Make the next matching call raise (once)."""
        self._failures.append((action, table, key, error or RemoteStoreError("connection reset")))

    def fail_always(self, error=None):
        self._failures.append(("*", None, None, error or RemoteStoreError("offline"), "sticky"))

    def _check(self, action, table, key):
        for failure in list(self._failures):
            f_action, f_table, f_key, error = failure[:4]
            if f_action in (action, "*") and f_table in (None, table) and f_key in (None, key):
                if len(failure) == 4:
                    self._failures.remove(failure)
                raise error

    def select_all(self, table, order_by):
        self._check("select", table, None)
        return [copy.deepcopy(row) for _, row in sorted(self.tables[table].items())]

    def insert(self, table, row):
        key = str(row[self.KEYS[table]])
        self._check("insert", table, key)
        if key in self.tables[table]:
            raise RemoteStoreError(f"duplicate key {key}")
        self.tables[table][key] = copy.deepcopy(row)
        self.calls.append(("insert", table, key))
        return row

    def update(self, table, key_column, key, fields):
        self._check("update", table, key)
        if key not in self.tables[table]:
            raise RemoteStoreError(f"{table}: no row with {key_column} = {key}")
        self.tables[table][key].update(copy.deepcopy(fields))
        self.calls.append(("update", table, key))

    def delete(self, table, key_column, key):
        self._check("delete", table, key)
        self.tables[table].pop(key, None)
        self.calls.append(("delete", table, key))

    # helpers for assertions
    def items(self):
        return {key: Item.from_dict(row) for key, row in self.tables["items"].items()}

    def attendees(self):
        return {key: Attendee.from_dict(row) for key, row in self.tables["attendees"].items()}


def assert_consistent(ledger):
    """Both directions of the winning-bid reference agree."""
    attendees = {a.bid_num: a for a in ledger.attendees()}
    items = {i.id: i for i in ledger.items()}

    for item in items.values():
        holders = [a.bid_num for a in attendees.values() if item.id in a.won_items]
        if item.winning_bid is None:
            assert holders == [], f"unsold item {item.id} listed by {holders}"
        else:
            assert holders == [item.winning_bid.bidder_ref], f"item {item.id} listed by {holders}"

    for attendee in attendees.values():
        assert len(set(attendee.won_items)) == len(attendee.won_items)
        for item_id in attendee.won_items:
            assert item_id in items
            assert items[item_id].winning_bid.bidder_ref == attendee.bid_num


def assert_remote_matches(ledger, remote):
    assert remote.items() == {i.id: i for i in ledger.items()}
    assert remote.attendees() == {a.bid_num: a for a in ledger.attendees()}


@pytest.fixture
def remote():
    return FakeRemoteStore()


@pytest.fixture
def snapshot(tmp_path):
    return LocalSnapshot(str(tmp_path / "snapshot"))


@pytest.fixture
def store():
    return AuctionStore()


@pytest.fixture
def sync(store, remote, snapshot):
    return SyncLayer(store, remote=remote, snapshot=snapshot)


@pytest.fixture
def ledger(store, sync):
    return AuctionLedger(store, sync)


@pytest.fixture
def seeded(ledger):
    """Item 001 and attendees 42 / 43."""
    ledger.add_item("001", "Painting", "Art")
    ledger.add_item("002", "Gift Basket", "Food")
    ledger.add_attendee("42", "Alice")
    ledger.add_attendee("43", "Bob")
    return ledger
