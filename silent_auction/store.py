"""
In-memory store for the two auction collections.

The store is the single owner of the canonical records. The ledger and
the sync layer share one instance; everything else reads immutable
records through the ledger's queries.
"""

import threading
from dataclasses import dataclass
from typing import Optional

from .models import Attendee, EntityType, Item


@dataclass(frozen=True)
class StoreCheckpoint:
    """Copy of both collections taken before a ledger operation."""
    items: dict
    attendees: dict

    def record(self, entity: EntityType, key: str):
        collection = self.items if entity is EntityType.ITEM else self.attendees
        return collection.get(key)


class AuctionStore:
    """
    Items keyed by id and attendees keyed by bid number.

    Insertion order is kept for display. Records are frozen dataclasses,
    so a checkpoint only needs to copy the two dicts.
    """

    def __init__(self) -> None:
        self.items: dict[str, Item] = {}
        self.attendees: dict[str, Attendee] = {}
        # Held for a whole ledger operation or a change-feed application
        self.lock = threading.RLock()

    # ── writes ────────────────────────────────────────────────────────────────

    def replace_all(self, items: list[Item], attendees: list[Attendee]) -> None:
        with self.lock:
            self.items = {item.id: item for item in items}
            self.attendees = {attendee.bid_num: attendee for attendee in attendees}

    def put_item(self, item: Item) -> None:
        self.items[item.id] = item

    def put_attendee(self, attendee: Attendee) -> None:
        self.attendees[attendee.bid_num] = attendee

    def remove_item(self, item_id: str) -> Optional[Item]:
        return self.items.pop(item_id, None)

    def remove_attendee(self, bid_num: str) -> Optional[Attendee]:
        return self.attendees.pop(bid_num, None)

    def put(self, entity: EntityType, record) -> None:
        if entity is EntityType.ITEM:
            self.put_item(record)
        else:
            self.put_attendee(record)

    def remove(self, entity: EntityType, key: str):
        if entity is EntityType.ITEM:
            return self.remove_item(key)
        return self.remove_attendee(key)

    def rekey_item(self, old_id: str, item: Item) -> None:
        """Replace the item stored under old_id, keeping its position."""
        self.items = {
            (item.id if key == old_id else key): (item if key == old_id else value)
            for key, value in self.items.items()
        }

    def rekey_attendee(self, old_bid_num: str, attendee: Attendee) -> None:
        """Replace the attendee stored under old_bid_num, keeping its position."""
        self.attendees = {
            (attendee.bid_num if key == old_bid_num else key): (attendee if key == old_bid_num else value)
            for key, value in self.attendees.items()
        }

    def clear(self) -> None:
        self.items.clear()
        self.attendees.clear()

    # ── rollback ──────────────────────────────────────────────────────────────

    def checkpoint(self) -> StoreCheckpoint:
        return StoreCheckpoint(items=dict(self.items), attendees=dict(self.attendees))

    def restore(self, checkpoint: StoreCheckpoint) -> None:
        self.items = dict(checkpoint.items)
        self.attendees = dict(checkpoint.attendees)

    # ── reads ─────────────────────────────────────────────────────────────────

    def get(self, entity: EntityType, key: str):
        if entity is EntityType.ITEM:
            return self.items.get(key)
        return self.attendees.get(key)

    def list_items(self) -> list[Item]:
        return list(self.items.values())

    def list_attendees(self) -> list[Attendee]:
        return list(self.attendees.values())
