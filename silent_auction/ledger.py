"""
Auction Ledger for the Silent Auction admin panel.

Owns every mutating operation on items and attendees and keeps the two
sides of the winning-bid reference consistent:
- an item's winning_bid.bidder_ref names an attendee whose won_items
  contains the item id
- an item id appears in at most one attendee's won_items

Each operation validates, applies the next state to the store, then
sends the matching remote writes through the sync layer. If a write
fails the store is restored to its checkpoint, the writes that already
succeeded are compensated, and RemoteWriteFailed propagates to the caller.
"""

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Any, Callable, Optional

from .errors import DuplicateKey, InvalidInput, NotFound, RemoteWriteFailed
from .models import (
    ZERO,
    Attendee,
    EntityType,
    Item,
    WinningBid,
    WriteAction,
    WriteOperation,
    parse_amount,
)
from .store import AuctionStore
from .sync import SyncLayer

logger = logging.getLogger(__name__)


def _optional(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _required(value: Any, label: str) -> str:
    text = _optional(value)
    if not text:
        raise InvalidInput(f"Please fill in all fields ({label} is required)")
    return text


def _new_key(value: Any, label: str) -> str:
    # Keys are used as single URL path segments by the panel
    key = _required(value, label)
    if "/" in key:
        raise InvalidInput(f"{label} cannot contain '/'")
    return key


# =============================================================================
# RECORD HELPERS
# =============================================================================

def _without_item(attendee: Attendee, item_id: str) -> Attendee:
    return replace(attendee, won_items=tuple(i for i in attendee.won_items if i != item_id))


def _with_item(attendee: Attendee, item_id: str) -> Attendee:
    return replace(attendee, won_items=_without_item(attendee, item_id).won_items + (item_id,))


def _won_items_write(attendee: Attendee) -> WriteOperation:
    return WriteOperation(
        WriteAction.UPDATE, EntityType.ATTENDEE, attendee.bid_num, {"won_items": list(attendee.won_items)}
    )


def _winning_bid_write(item: Item) -> WriteOperation:
    return WriteOperation(
        WriteAction.UPDATE,
        EntityType.ITEM,
        item.id,
        {"winning_bid": item.winning_bid.to_dict() if item.winning_bid else None},
    )


class AuctionLedger:
    """
    Whole-operation mutations and read queries over the auction store.

    Usage:
        ledger = AuctionLedger(store, sync)
        ledger.add_item("001", "Painting", "Art")
        ledger.add_attendee("42", "Alice")
        ledger.record_winning_bid("001", "42", "150.00")
        ledger.total_spent("42")  # Decimal("150.00")
    """

    def __init__(self, store: AuctionStore, sync: SyncLayer):
        self._store = store
        self._sync = sync

    # =========================================================================
    # TRANSACTION
    # =========================================================================

    def _commit(self, description: str, apply: Callable[[], list[WriteOperation]]) -> None:
        """
        Apply a change in memory, then write it remotely.

        Args:
            description: Log line for the change
            apply: Mutates the store and returns the remote writes, in order

        Raises:
            RemoteWriteFailed: after the store was restored and completed
                writes were compensated
        """
        with self._store.lock:
            checkpoint = self._store.checkpoint()
            try:
                writes = apply()
            except Exception:
                self._store.restore(checkpoint)
                raise
            completed: list[WriteOperation] = []
            try:
                for operation in writes:
                    try:
                        self._sync.write(operation)
                    except RemoteWriteFailed:
                        raise
                    except Exception as e:
                        logger.exception(f"Unexpected error during {operation}")
                        raise RemoteWriteFailed(operation, e) from e
                    completed.append(operation)
            except RemoteWriteFailed:
                self._store.restore(checkpoint)
                self._sync.compensate(completed, checkpoint)
                logger.error(f"Rolled back: {description}")
                raise

        self._sync.persist()
        logger.info(description)

    def _require_item(self, item_id: str) -> Item:
        item = self._store.items.get(item_id)
        if item is None:
            raise NotFound(f"No item found with ID {item_id}")
        return item

    def _require_attendee(self, bid_num: str) -> Attendee:
        attendee = self._store.attendees.get(bid_num)
        if attendee is None:
            raise NotFound(f"No attendee found with Bid # {bid_num}")
        return attendee

    def _holders(self, item_id: str, exclude: Optional[str] = None) -> list[Attendee]:
        return [
            attendee for attendee in self._store.list_attendees()
            if item_id in attendee.won_items and attendee.bid_num != exclude
        ]

    def _detach(self, item_id: str, exclude: Optional[str] = None) -> list[WriteOperation]:
        """Remove item_id from every won_items except exclude's; return the writes."""
        writes = []
        for holder in self._holders(item_id, exclude):
            updated = _without_item(holder, item_id)
            self._store.put_attendee(updated)
            writes.append(_won_items_write(updated))
        return writes

    # =========================================================================
    # CREATE
    # =========================================================================

    def add_item(self, item_id: str, name: str, section: str = "") -> Item:
        """
        Register a new unsold item.

        Raises:
            InvalidInput: if id or name is empty, or the id contains "/"
            DuplicateKey: if the id is already used
            RemoteWriteFailed: if the insert was rejected
        """
        item_id = _new_key(item_id, "Item ID")
        name = _required(name, "Item name")
        item = Item(id=item_id, name=name, section=_optional(section))

        with self._store.lock:
            if item_id in self._store.items:
                raise DuplicateKey(f"Item ID {item_id} already exists")

            def apply() -> list[WriteOperation]:
                self._store.put_item(item)
                return [WriteOperation(WriteAction.INSERT, EntityType.ITEM, item_id, item.to_dict())]

            self._commit(f"Added item {item_id} ({name})", apply)
        return item

    def add_attendee(self, bid_num: str, name: str) -> Attendee:
        """
        Register a new attendee with no won items.

        Raises:
            InvalidInput: if bid number or name is empty, or it contains "/"
            DuplicateKey: if the bid number is already assigned
            RemoteWriteFailed: if the insert was rejected
        """
        bid_num = _new_key(bid_num, "Bid #")
        name = _required(name, "Attendee name")
        attendee = Attendee(bid_num=bid_num, name=name)

        with self._store.lock:
            if bid_num in self._store.attendees:
                raise DuplicateKey(f"Bid # {bid_num} already assigned")

            def apply() -> list[WriteOperation]:
                self._store.put_attendee(attendee)
                return [WriteOperation(WriteAction.INSERT, EntityType.ATTENDEE, bid_num, attendee.to_dict())]

            self._commit(f"Added attendee {bid_num} ({name})", apply)
        return attendee

    # =========================================================================
    # WINNING BIDS
    # =========================================================================

    def record_winning_bid(self, item_id: str, bid_num: str, amount: Any) -> Item:
        """
        Attach a winning bid to an item.

        If the item was already won by another attendee, the id is removed
        from that attendee's won items first.

        Raises:
            InvalidInput: on an empty key or an amount that is not a
                non-negative number
            NotFound: if the item or the attendee does not exist
            RemoteWriteFailed: if a write was rejected
        """
        return self._set_winner(item_id, bid_num, amount, "Recorded")

    def edit_winning_bid(self, item_id: str, new_bid_num: str, new_amount: Any) -> Item:
        """Change the winner and/or amount of an item. Same rules as record_winning_bid."""
        return self._set_winner(item_id, new_bid_num, new_amount, "Edited")

    def _set_winner(self, item_id: str, bid_num: str, amount: Any, verb: str) -> Item:
        item_id = _required(item_id, "Item ID")
        bid_num = _required(bid_num, "Bid #")
        amount = parse_amount(amount)

        with self._store.lock:
            item = self._require_item(item_id)
            winner = self._require_attendee(bid_num)
            updated = replace(item, winning_bid=WinningBid(bidder_ref=bid_num, amount=amount))

            def apply() -> list[WriteOperation]:
                self._store.put_item(updated)
                writes = [_winning_bid_write(updated)]
                writes.extend(self._detach(item_id, exclude=bid_num))
                attached = _with_item(winner, item_id)
                self._store.put_attendee(attached)
                writes.append(_won_items_write(attached))
                return writes

            self._commit(f"{verb} winning bid on item {item_id}: Bid # {bid_num} ${amount}", apply)
        return updated

    def clear_winning_bid(self, item_id: str) -> Item:
        """
        Mark an item unsold and detach it from its former winner.

        No-op when the item is already unsold.

        Raises:
            NotFound: if the item does not exist
            RemoteWriteFailed: if a write was rejected
        """
        item_id = _required(item_id, "Item ID")

        with self._store.lock:
            item = self._require_item(item_id)
            if item.winning_bid is None and not self._holders(item_id):
                logger.debug(f"Item {item_id} is already unsold")
                return item

            updated = replace(item, winning_bid=None)

            def apply() -> list[WriteOperation]:
                self._store.put_item(updated)
                return [_winning_bid_write(updated)] + self._detach(item_id)

            self._commit(f"Cleared winning bid on item {item_id}", apply)
        return updated

    # =========================================================================
    # RENAME / REKEY
    # =========================================================================

    def rename_or_rekey_item(self, old_id: str, new_id: str, name: str, section: str = "") -> Item:
        """
        Update an item's name and section, optionally moving it to a new id.

        A new id keeps the winning bid and the item's position; the winner's
        won items entry is rewritten in place. Remotely this is an insert of
        the new row, the winner update, then a delete of the old row.

        Raises:
            InvalidInput: if the new id or name is empty
            NotFound: if old_id does not exist
            DuplicateKey: if new_id is already used by another item
            RemoteWriteFailed: if a write was rejected
        """
        old_id = _required(old_id, "Item ID")
        new_id = _new_key(new_id, "New item ID")
        name = _required(name, "Item name")
        section = _optional(section)

        with self._store.lock:
            item = self._require_item(old_id)
            updated = replace(item, id=new_id, name=name, section=section)

            if new_id == old_id:
                def apply() -> list[WriteOperation]:
                    self._store.put_item(updated)
                    return [WriteOperation(
                        WriteAction.UPDATE, EntityType.ITEM, old_id, {"name": name, "section": section}
                    )]

                self._commit(f"Updated item {old_id}", apply)
                return updated

            if new_id in self._store.items:
                raise DuplicateKey(f"Item ID {new_id} already exists")

            def apply() -> list[WriteOperation]:
                self._store.rekey_item(old_id, updated)
                writes = [WriteOperation(WriteAction.INSERT, EntityType.ITEM, new_id, updated.to_dict())]
                for holder in self._holders(old_id):
                    rewritten = replace(
                        holder, won_items=tuple(new_id if i == old_id else i for i in holder.won_items)
                    )
                    self._store.put_attendee(rewritten)
                    writes.append(_won_items_write(rewritten))
                writes.append(WriteOperation(WriteAction.DELETE, EntityType.ITEM, old_id))
                return writes

            self._commit(f"Moved item {old_id} to {new_id}", apply)
        return updated

    def rename_or_rekey_attendee(self, old_bid_num: str, new_bid_num: str, name: str) -> Attendee:
        """
        Update an attendee's name, optionally moving them to a new bid number.

        A new bid number is propagated to every item they won; their won
        items are carried over unchanged.

        Raises:
            InvalidInput: if the new bid number or name is empty
            NotFound: if old_bid_num does not exist
            DuplicateKey: if new_bid_num is already assigned
            RemoteWriteFailed: if a write was rejected
        """
        old_bid_num = _required(old_bid_num, "Bid #")
        new_bid_num = _new_key(new_bid_num, "New bid #")
        name = _required(name, "Attendee name")

        with self._store.lock:
            attendee = self._require_attendee(old_bid_num)
            updated = replace(attendee, bid_num=new_bid_num, name=name)

            if new_bid_num == old_bid_num:
                def apply() -> list[WriteOperation]:
                    self._store.put_attendee(updated)
                    return [WriteOperation(WriteAction.UPDATE, EntityType.ATTENDEE, old_bid_num, {"name": name})]

                self._commit(f"Updated attendee {old_bid_num}", apply)
                return updated

            if new_bid_num in self._store.attendees:
                raise DuplicateKey(f"Bid # {new_bid_num} already assigned")

            def apply() -> list[WriteOperation]:
                self._store.rekey_attendee(old_bid_num, updated)
                writes = [WriteOperation(WriteAction.INSERT, EntityType.ATTENDEE, new_bid_num, updated.to_dict())]
                for item in self.items_won_by(old_bid_num):
                    moved = replace(item, winning_bid=replace(item.winning_bid, bidder_ref=new_bid_num))
                    self._store.put_item(moved)
                    writes.append(_winning_bid_write(moved))
                writes.append(WriteOperation(WriteAction.DELETE, EntityType.ATTENDEE, old_bid_num))
                return writes

            self._commit(f"Moved attendee {old_bid_num} to {new_bid_num}", apply)
        return updated

    # =========================================================================
    # DELETE
    # =========================================================================

    def delete_item(self, item_id: str) -> None:
        """
        Delete an item, removing it from its winner's won items.

        Raises:
            NotFound: if the item does not exist
            RemoteWriteFailed: if a write was rejected
        """
        item_id = _required(item_id, "Item ID")

        with self._store.lock:
            self._require_item(item_id)

            def apply() -> list[WriteOperation]:
                writes = self._detach(item_id)
                self._store.remove_item(item_id)
                writes.append(WriteOperation(WriteAction.DELETE, EntityType.ITEM, item_id))
                return writes

            self._commit(f"Deleted item {item_id}", apply)

    def delete_attendee(self, bid_num: str) -> None:
        """
        Delete an attendee, marking every item they won as unsold.

        Raises:
            NotFound: if the attendee does not exist
            RemoteWriteFailed: if a write was rejected
        """
        bid_num = _required(bid_num, "Bid #")

        with self._store.lock:
            self._require_attendee(bid_num)

            def apply() -> list[WriteOperation]:
                writes = []
                for item in self.items_won_by(bid_num):
                    unsold = replace(item, winning_bid=None)
                    self._store.put_item(unsold)
                    writes.append(_winning_bid_write(unsold))
                self._store.remove_attendee(bid_num)
                writes.append(WriteOperation(WriteAction.DELETE, EntityType.ATTENDEE, bid_num))
                return writes

            self._commit(f"Deleted attendee {bid_num}", apply)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def find_item(self, item_id: str) -> Optional[Item]:
        return self._store.items.get(_optional(item_id))

    def find_attendee(self, bid_num: str) -> Optional[Attendee]:
        return self._store.attendees.get(_optional(bid_num))

    def items(self) -> list[Item]:
        with self._store.lock:
            return self._store.list_items()

    def attendees(self) -> list[Attendee]:
        with self._store.lock:
            return self._store.list_attendees()

    def items_won_by(self, bid_num: str) -> list[Item]:
        """Items whose winning bid references bid_num, in collection order."""
        bid_num = _optional(bid_num)
        return [
            item for item in self.items()
            if item.winning_bid is not None and item.winning_bid.bidder_ref == bid_num
        ]

    def total_spent(self, bid_num: str) -> Decimal:
        """Sum of winning amounts over the items bid_num won. Recomputed on every call."""
        return sum((item.winning_bid.amount for item in self.items_won_by(bid_num)), ZERO)
