import csv
import io
from decimal import Decimal

import pytest

from silent_auction.errors import InvalidInput, NotFound
from silent_auction.models import Item, WinningBid
from silent_auction.reports import (
    CSV_COLUMNS,
    build_receipt,
    export_csv,
    format_receipt_text,
    search_items,
    sort_items,
)


def _rows(text):
    return list(csv.reader(io.StringIO(text)))


def test_export_csv_layout(seeded):
    seeded.record_winning_bid("001", "42", 150)

    rows = _rows(export_csv(seeded))

    assert rows[0] == CSV_COLUMNS
    assert rows[1] == ["Item", "001", "Painting", "Art", "Sold", "$150.00", "42", "Alice"]
    assert rows[2] == ["Item", "002", "Gift Basket", "Food", "Available", "-", "-", "-"]
    assert rows[3] == [""] * 8
    assert rows[4] == ["Attendee", "42", "Alice", "", "", "", "", "", "1", "$150.00"]
    assert rows[5] == ["Attendee", "43", "Bob", "", "", "", "", "", "0", "$0.00"]
    assert len(rows) == 6


def test_export_csv_quotes_separators(ledger):
    ledger.add_item("001", 'Dinner for two, "deluxe"', "Food, Wine")
    text = export_csv(ledger)
    assert '"Dinner for two, ""deluxe"""' in text
    assert _rows(text)[1][2] == 'Dinner for two, "deluxe"'


def test_export_csv_empty(ledger):
    assert _rows(export_csv(ledger)) == [CSV_COLUMNS, [""] * 8]


def test_receipt(seeded):
    seeded.record_winning_bid("002", "42", 20)
    seeded.record_winning_bid("001", "42", "150.5")

    receipt = build_receipt(seeded, "42")
    assert [i.id for i in receipt.items] == ["001", "002"]
    assert receipt.total == Decimal("170.50")

    text = format_receipt_text(receipt)
    assert "Name: Alice" in text
    assert "Bid #: 42" in text
    assert "$150.50" in text
    assert "$170.50" in text
    assert text.endswith("Thank you for your participation!")


def test_receipt_without_items(seeded):
    text = format_receipt_text(build_receipt(seeded, "43"))
    assert "(no items won)" in text
    assert "$0.00" in text


def test_receipt_unknown_attendee(seeded):
    with pytest.raises(NotFound):
        build_receipt(seeded, "99")


ITEMS = [
    Item("003", "vase", "Home"),
    Item("001", "Painting", "Art", WinningBid("42", Decimal("1"))),
    Item("002", "Gift Basket", "food"),
]


def test_search_items():
    assert [i.id for i in search_items(ITEMS, "BASK")] == ["002"]
    assert [i.id for i in search_items(ITEMS, "00")] == ["003", "001", "002"]
    assert search_items(ITEMS, "  ") == ITEMS
    assert search_items(ITEMS, "zzz") == []


@pytest.mark.parametrize("key, order, expected", [
    ("id", "asc", ["001", "002", "003"]),
    ("name", "asc", ["002", "001", "003"]),
    ("section", "desc", ["003", "002", "001"]),
    ("status", "asc", ["003", "002", "001"]),
])
def test_sort_items(key, order, expected):
    assert [i.id for i in sort_items(ITEMS, key, order)] == expected


def test_sort_items_rejects_unknown_key():
    with pytest.raises(InvalidInput):
        sort_items(ITEMS, "price")
    with pytest.raises(InvalidInput):
        sort_items(ITEMS, "id", "sideways")
