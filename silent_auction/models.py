"""
Data models for the Silent Auction admin panel.

Defines the two auction entities (items and attendees), the change events
delivered by the remote change feed, and the write operations the ledger
sends to the remote store.

Entities are immutable: the ledger replaces records instead of mutating
them, so the presentation layer can hold references without being able to
change the canonical copies.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Optional

from .errors import InvalidInput

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


class EntityType(str, Enum):
    """Entity collections and their remote tables."""
    ITEM = "items"
    ATTENDEE = "attendees"

    @property
    def table(self) -> str:
        return self.value

    @property
    def key_column(self) -> str:
        return "id" if self is EntityType.ITEM else "bid_num"

    @classmethod
    def from_table(cls, table: str) -> "EntityType":
        return cls(table)


class ChangeKind(str, Enum):
    """Kinds of change notification from the remote store."""
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class WriteAction(str, Enum):
    """Remote write primitives."""
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


# =============================================================================
# AMOUNTS
# =============================================================================

def parse_amount(value: Any) -> Decimal:
    """
    Parse a bid amount into a non-negative Decimal rounded to cents.

    Accepts ints, floats, Decimals and numeric strings ("150", "$150.00").

    Raises:
        InvalidInput: if the value is missing, not a number, not finite,
            or negative
    """
    if value is None or isinstance(value, bool):
        raise InvalidInput("Please enter a valid bid amount")

    if isinstance(value, str):
        text = value.strip().lstrip("$").replace(",", "")
        if not text:
            raise InvalidInput("Please enter a valid bid amount")
        value = text

    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise InvalidInput(f"Please enter a valid bid amount (got {value!r})")

    if not amount.is_finite():
        raise InvalidInput(f"Please enter a valid bid amount (got {value!r})")
    if amount < 0:
        raise InvalidInput("Bid amount cannot be negative")

    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def format_money(amount: Decimal) -> str:
    return f"${amount:.2f}"


# =============================================================================
# ENTITIES
# =============================================================================

@dataclass(frozen=True)
class WinningBid:
    """The bidder and amount attached to a sold item."""
    bidder_ref: str
    amount: Decimal

    def to_dict(self) -> dict:
        # Stored as JSON in the winning_bid column; "bidNum" matches the
        # existing table schema.
        return {
            "bidNum": self.bidder_ref,
            "amount": float(self.amount),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WinningBid":
        bidder_ref = data.get("bidNum", data.get("bidderRef"))
        if bidder_ref is None:
            raise InvalidInput(f"Winning bid without a bidder: {data!r}")
        return cls(
            bidder_ref=str(bidder_ref),
            amount=parse_amount(data.get("amount", 0)),
        )


@dataclass(frozen=True)
class Item:
    """An auctioned object. Unsold while winning_bid is None."""
    id: str
    name: str
    section: str = ""
    winning_bid: Optional[WinningBid] = None

    @property
    def is_sold(self) -> bool:
        return self.winning_bid is not None

    @property
    def status(self) -> str:
        return "sold" if self.winning_bid else "available"

    def to_dict(self) -> dict:
        """Convert to a row for storage."""
        return {
            "id": self.id,
            "name": self.name,
            "section": self.section,
            "winning_bid": self.winning_bid.to_dict() if self.winning_bid else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Item":
        """Create from a row (e.g., from database or snapshot)."""
        winning_bid = data.get("winning_bid")
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            section=data.get("section") or "",
            winning_bid=WinningBid.from_dict(winning_bid) if winning_bid else None,
        )


@dataclass(frozen=True)
class Attendee:
    """A registered bidder and the ids of the items they won."""
    bid_num: str
    name: str
    won_items: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "bid_num": self.bid_num,
            "name": self.name,
            "won_items": list(self.won_items),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Attendee":
        return cls(
            bid_num=str(data["bid_num"]),
            name=data.get("name") or "",
            won_items=tuple(str(item_id) for item_id in data.get("won_items") or ()),
        )


def entity_from_dict(entity: EntityType, data: dict):
    if entity is EntityType.ITEM:
        return Item.from_dict(data)
    return Attendee.from_dict(data)


def entity_key(entity: EntityType, record) -> str:
    return record.id if entity is EntityType.ITEM else record.bid_num


# =============================================================================
# CHANGE FEED & WRITES
# =============================================================================

@dataclass(frozen=True)
class ChangeEvent:
    """A change notification for one record of one collection."""
    kind: ChangeKind
    entity: EntityType
    key: str
    row: Optional[dict] = None

    # Realtime uses Postgres verbs
    _KINDS = {
        "INSERT": ChangeKind.CREATED,
        "UPDATE": ChangeKind.UPDATED,
        "DELETE": ChangeKind.DELETED,
    }

    @classmethod
    def from_realtime(cls, table: str, payload: dict) -> "ChangeEvent":
        """
        Parse a Supabase Realtime postgres_changes payload.

        Accepts both the Python client shape
        ({"data": {"type", "record", "old_record"}}) and the JS shape
        ({"eventType", "new", "old"}).

        Raises:
            ValueError: if the payload has no recognizable event type or key
        """
        entity = EntityType.from_table(table)
        data = payload.get("data", payload)

        event_type = data.get("type") or data.get("eventType")
        if event_type not in cls._KINDS:
            raise ValueError(f"Unknown change event type: {event_type!r}")
        kind = cls._KINDS[event_type]

        record = data.get("record") or data.get("new") or None
        old_record = data.get("old_record") or data.get("old") or {}

        source = old_record if kind is ChangeKind.DELETED else record
        if not source or source.get(entity.key_column) is None:
            raise ValueError(f"Change event on {table} without a key: {payload!r}")

        return cls(
            kind=kind,
            entity=entity,
            key=str(source[entity.key_column]),
            row=None if kind is ChangeKind.DELETED else dict(record),
        )


@dataclass(frozen=True)
class WriteOperation:
    """
    One remote write issued by the ledger.

    For INSERT, row is the full record; for UPDATE, row holds only the
    changed columns; for DELETE, row is None.
    """
    action: WriteAction
    entity: EntityType
    key: str
    row: Optional[dict] = None

    def __str__(self) -> str:
        return f"{self.action.value} {self.entity.table}[{self.key}]"
