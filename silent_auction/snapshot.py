"""
Local fallback snapshot.

Two named JSON blobs (auctionItems, auctionAttendees) mirror the in-memory
collections after every change. They are read only when the remote store
is unreachable at startup and are never authoritative otherwise.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from .models import Attendee, Item

logger = logging.getLogger(__name__)

ITEMS_BLOB = "auctionItems"
ATTENDEES_BLOB = "auctionAttendees"


class LocalSnapshot:
    """Reads and writes the snapshot blobs in one directory."""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def _path(self, name: str) -> Path:
        return self.directory / f"{name}.json"

    def exists(self) -> bool:
        return self._path(ITEMS_BLOB).exists() or self._path(ATTENDEES_BLOB).exists()

    def _write_blob(self, name: str, rows: list[dict]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f".{name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(rows, f, indent=2)
            os.replace(tmp_path, self._path(name))
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _read_blob(self, name: str) -> Optional[list[dict]]:
        path = self._path(name)
        if not path.exists():
            return None
        with path.open(encoding="utf-8") as f:
            return json.load(f)

    def save(self, items: list[Item], attendees: list[Attendee]) -> None:
        """
        Write both blobs.

        Raises:
            OSError: if the directory or files cannot be written
        """
        self._write_blob(ITEMS_BLOB, [item.to_dict() for item in items])
        self._write_blob(ATTENDEES_BLOB, [attendee.to_dict() for attendee in attendees])
        logger.debug(f"Saved snapshot: {len(items)} items, {len(attendees)} attendees")

    def load(self) -> Optional[tuple[list[Item], list[Attendee]]]:
        """
        Read both blobs.

        Returns:
            (items, attendees), or None if no snapshot has been written yet

        Raises:
            OSError, ValueError: if a blob exists but cannot be read or parsed
        """
        if not self.exists():
            return None
        item_rows = self._read_blob(ITEMS_BLOB) or []
        attendee_rows = self._read_blob(ATTENDEES_BLOB) or []
        return (
            [Item.from_dict(row) for row in item_rows],
            [Attendee.from_dict(row) for row in attendee_rows],
        )

    def clear(self) -> None:
        for name in (ITEMS_BLOB, ATTENDEES_BLOB):
            path = self._path(name)
            if path.exists():
                path.unlink()
