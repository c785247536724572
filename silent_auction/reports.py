"""
Reports for the Silent Auction admin panel.

Pure functions over ledger reads:
- export_csv(): combined items + attendees CSV summary
- build_receipt() / format_receipt_text(): attendee receipts
- search_items() / sort_items(): item list helpers for the panel
"""

import csv
import io
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .errors import InvalidInput, NotFound
from .ledger import AuctionLedger
from .models import Attendee, Item, format_money

CSV_COLUMNS = [
    "Type",
    "ID",
    "Name",
    "Section",
    "Status",
    "Winning Bid Amount",
    "Winner Bid #",
    "Winner Name",
    "Items Won",
    "Total Spent",
]

SORT_KEYS = ("id", "name", "section", "status")
SORT_ORDERS = ("asc", "desc")


# =============================================================================
# CSV EXPORT
# =============================================================================

def _item_row(item: Item, attendees: dict[str, Attendee]) -> list[str]:
    bid = item.winning_bid
    if bid is None:
        return ["Item", item.id, item.name, item.section, "Available", "-", "-", "-"]
    winner = attendees.get(bid.bidder_ref)
    return [
        "Item",
        item.id,
        item.name,
        item.section,
        "Sold",
        format_money(bid.amount),
        bid.bidder_ref,
        winner.name if winner else "Unknown",
    ]


def export_csv(ledger: AuctionLedger) -> str:
    """
    Render the combined summary.

    A header row, one row per item, an empty separator row, then one row
    per attendee with their items-won count and total spent. Values are
    quoted by the csv module when they contain separators or quotes.

    Returns:
        The CSV document as a string
    """
    items = ledger.items()
    attendees = ledger.attendees()
    by_bid_num = {attendee.bid_num: attendee for attendee in attendees}

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)

    for item in items:
        writer.writerow(_item_row(item, by_bid_num))

    writer.writerow([""] * 8)

    for attendee in attendees:
        won = ledger.items_won_by(attendee.bid_num)
        writer.writerow(
            ["Attendee", attendee.bid_num, attendee.name, "", "", "", "", ""]
            + [str(len(won)), format_money(ledger.total_spent(attendee.bid_num))]
        )

    return buffer.getvalue()


# =============================================================================
# RECEIPTS
# =============================================================================

@dataclass
class Receipt:
    """What an attendee won and what they owe."""
    attendee: Attendee
    items: list[Item]
    total: Decimal


def build_receipt(ledger: AuctionLedger, bid_num: str) -> Receipt:
    """
    Collect an attendee's won items and total.

    Raises:
        NotFound: if the attendee does not exist
    """
    attendee = ledger.find_attendee(bid_num)
    if attendee is None:
        raise NotFound(f"No attendee found with Bid # {bid_num}")
    return Receipt(
        attendee=attendee,
        items=ledger.items_won_by(attendee.bid_num),
        total=ledger.total_spent(attendee.bid_num),
    )


def format_receipt_text(receipt: Receipt) -> str:
    lines = [
        "Silent Auction Receipt",
        "",
        f"Name: {receipt.attendee.name}",
        f"Bid #: {receipt.attendee.bid_num}",
        "",
        "Won Items",
        f"{'Item ID':<10} {'Name':<30} {'Section':<15} {'Bid Amount':>12}",
    ]
    for item in receipt.items:
        lines.append(
            f"{item.id:<10} {item.name:<30} {item.section:<15} {format_money(item.winning_bid.amount):>12}"
        )
    if not receipt.items:
        lines.append("(no items won)")
    lines += [
        f"{'Total':<57} {format_money(receipt.total):>12}",
        "",
        "Thank you for your participation!",
    ]
    return "\n".join(lines)


# =============================================================================
# ITEM LIST HELPERS
# =============================================================================

def search_items(items: list[Item], term: Optional[str]) -> list[Item]:
    """Case-insensitive match on id or name. A blank term matches everything."""
    needle = (term or "").strip().lower()
    if not needle:
        return list(items)
    return [item for item in items if needle in item.id.lower() or needle in item.name.lower()]


def sort_items(items: list[Item], key: str = "id", order: str = "asc") -> list[Item]:
    """
    Sort items by id, name, section or status ("available" before "sold").

    Raises:
        InvalidInput: on an unknown key or order
    """
    if key not in SORT_KEYS:
        raise InvalidInput(f"Cannot sort by {key!r}")
    if order not in SORT_ORDERS:
        raise InvalidInput(f"Unknown sort order {order!r}")
    return sorted(items, key=lambda item: getattr(item, key).lower(), reverse=order == "desc")
