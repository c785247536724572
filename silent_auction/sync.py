"""
Sync layer for the Silent Auction admin panel.

Bridges the in-memory store and the remote store:
1. load() - fetch both collections, falling back to the local snapshot
2. apply_remote_change() - idempotent upsert/remove from the change feed
3. persist() - best-effort mirror to the local snapshot
4. write() - the single remote write primitive used by the ledger
5. compensate() - undo completed writes after a later write failed

The remote store is any object with select_all/insert/update/delete
(see db.Database). It may be None when Supabase is not configured; the
panel then runs read-only from the snapshot.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import ConfigurationError, InvalidInput, RemoteStoreError, RemoteWriteFailed
from .models import (
    ChangeEvent,
    ChangeKind,
    EntityType,
    WriteAction,
    WriteOperation,
    entity_from_dict,
    entity_key,
)
from .snapshot import LocalSnapshot
from .store import AuctionStore, StoreCheckpoint

logger = logging.getLogger(__name__)

NOT_CONFIGURED = "Supabase is not configured. Please check your .env file."


class LoadSource(str, Enum):
    """Where the in-memory collections came from on the last load."""
    REMOTE = "remote"
    SNAPSHOT = "snapshot"
    EMPTY = "empty"


@dataclass
class LoadResult:
    """Outcome of SyncLayer.load()."""
    source: LoadSource
    item_count: int = 0
    attendee_count: int = 0
    warning: Optional[str] = None
    configuration_error: bool = False

    @property
    def online(self) -> bool:
        return self.source is LoadSource.REMOTE


class SyncLayer:
    """
    Keeps the store aligned with the remote store.

    Usage:
        sync = SyncLayer(store, get_db(), LocalSnapshot(".auction_snapshot"))
        result = sync.load()
        if result.warning:
            show_banner(result.warning)
    """

    def __init__(
        self,
        store: AuctionStore,
        remote=None,
        snapshot: Optional[LocalSnapshot] = None,
    ):
        self.store = store
        self.remote = remote
        self.snapshot = snapshot
        self.last_load: Optional[LoadResult] = None

    @property
    def online(self) -> bool:
        return self.last_load is not None and self.last_load.online

    # =========================================================================
    # LOADING
    # =========================================================================

    def load(self) -> LoadResult:
        """
        Fetch both collections ordered by natural key and replace the store.

        Falls back to the local snapshot when the remote store is not
        configured or not reachable. Never raises for remote failures.

        Returns:
            LoadResult describing the source and any warning to surface
        """
        try:
            if self.remote is None:
                raise ConfigurationError(NOT_CONFIGURED)
            item_rows = self.remote.select_all(EntityType.ITEM.table, order_by=EntityType.ITEM.key_column)
            attendee_rows = self.remote.select_all(
                EntityType.ATTENDEE.table, order_by=EntityType.ATTENDEE.key_column
            )
        except RemoteStoreError as e:
            logger.warning(f"Remote load failed, using local snapshot: {e}")
            result = self._load_snapshot(e)
        else:
            items, skipped_items = self._parse_rows(EntityType.ITEM, item_rows)
            attendees, skipped_attendees = self._parse_rows(EntityType.ATTENDEE, attendee_rows)
            self.store.replace_all(items, attendees)
            skipped = skipped_items + skipped_attendees
            result = LoadResult(
                source=LoadSource.REMOTE,
                item_count=len(items),
                attendee_count=len(attendees),
                warning=f"Skipped {skipped} malformed record(s) from Supabase; see the log." if skipped else None,
            )
            logger.info(f"Loaded {len(items)} items and {len(attendees)} attendees from Supabase")
            self.persist()

        self.last_load = result
        return result

    def _parse_rows(self, entity: EntityType, rows: list[dict]) -> tuple[list, int]:
        """Parse remote rows, skipping (and logging) the ones that are malformed."""
        records, skipped = [], 0
        for row in rows:
            try:
                records.append(entity_from_dict(entity, row))
            except (ValueError, KeyError, TypeError, InvalidInput) as e:
                logger.warning(f"Skipping malformed {entity.table} row {row!r}: {e}")
                skipped += 1
        return records, skipped

    def _load_snapshot(self, error: RemoteStoreError) -> LoadResult:
        configuration_error = isinstance(error, ConfigurationError)
        data = None
        if self.snapshot is not None:
            try:
                data = self.snapshot.load()
            except (OSError, ValueError, KeyError, InvalidInput) as e:
                logger.error(f"Local snapshot is unreadable, starting empty: {e}")

        if data is None:
            self.store.replace_all([], [])
            return LoadResult(
                source=LoadSource.EMPTY,
                warning=f"{error} No local data available.",
                configuration_error=configuration_error,
            )

        items, attendees = data
        self.store.replace_all(items, attendees)
        logger.info(f"Loaded {len(items)} items and {len(attendees)} attendees from local snapshot")
        return LoadResult(
            source=LoadSource.SNAPSHOT,
            item_count=len(items),
            attendee_count=len(attendees),
            warning=f"{error} Showing locally saved data; changes cannot be saved until the connection is restored.",
            configuration_error=configuration_error,
        )

    # =========================================================================
    # CHANGE FEED
    # =========================================================================

    def apply_remote_change(self, event: ChangeEvent) -> None:
        """
        Apply one change notification to the store.

        Created/updated rows are upserted by key; an updated row is merged
        over the current record so partial rows keep the other columns.
        Deleting a missing key is a no-op. Applying the same event twice
        leaves the store as applying it once.
        """
        with self.store.lock:
            if event.kind is ChangeKind.DELETED:
                removed = self.store.remove(event.entity, event.key)
                logger.debug(f"Remote delete {event.entity.table}[{event.key}] (present={removed is not None})")
                return

            row = dict(event.row or {})
            current = self.store.get(event.entity, event.key)
            if event.kind is ChangeKind.UPDATED and current is not None:
                row = {**current.to_dict(), **row}
            row.setdefault(event.entity.key_column, event.key)

            record = entity_from_dict(event.entity, row)
            if entity_key(event.entity, record) != event.key:
                raise ValueError(f"Change event key {event.key!r} does not match its row")
            self.store.put(event.entity, record)
            logger.debug(f"Remote {event.kind.value} {event.entity.table}[{event.key}]")

    def handle_feed_payload(self, table: str, payload: dict) -> None:
        """Callback for the change feed: parse, apply and persist."""
        try:
            event = ChangeEvent.from_realtime(table, payload)
            self.apply_remote_change(event)
        except (ValueError, KeyError, InvalidInput) as e:
            logger.warning(f"Ignoring malformed change event on {table}: {e}")
            return
        self.persist()

    # =========================================================================
    # LOCAL SNAPSHOT
    # =========================================================================

    def persist(self) -> None:
        """Mirror the store to the local snapshot. Failures are logged only."""
        if self.snapshot is None:
            return
        with self.store.lock:
            items = self.store.list_items()
            attendees = self.store.list_attendees()
        try:
            self.snapshot.save(items, attendees)
        except OSError as e:
            logger.warning(f"Could not write local snapshot: {e}")

    # =========================================================================
    # REMOTE WRITES
    # =========================================================================

    def write(self, operation: WriteOperation) -> None:
        """
        Perform one remote write.

        Raises:
            RemoteWriteFailed: carrying the operation, if the remote store
                rejected it or is not configured
        """
        if self.remote is None:
            raise RemoteWriteFailed(operation, ConfigurationError(NOT_CONFIGURED))

        entity = operation.entity
        try:
            if operation.action is WriteAction.INSERT:
                self.remote.insert(entity.table, operation.row)
            elif operation.action is WriteAction.UPDATE:
                self.remote.update(entity.table, entity.key_column, operation.key, operation.row)
            else:
                self.remote.delete(entity.table, entity.key_column, operation.key)
        except RemoteStoreError as e:
            logger.error(f"Remote write failed: {operation}: {e}")
            raise RemoteWriteFailed(operation, e) from e

    @staticmethod
    def inverse(operation: WriteOperation, checkpoint: StoreCheckpoint) -> WriteOperation:
        """
        Build the write that undoes a completed operation.

        insert -> delete, delete -> re-insert the previous row,
        update -> update the same columns back to their previous values.
        """
        if operation.action is WriteAction.INSERT:
            return WriteOperation(WriteAction.DELETE, operation.entity, operation.key)

        previous = checkpoint.record(operation.entity, operation.key).to_dict()
        if operation.action is WriteAction.DELETE:
            return WriteOperation(WriteAction.INSERT, operation.entity, operation.key, previous)
        return WriteOperation(
            WriteAction.UPDATE,
            operation.entity,
            operation.key,
            {column: previous[column] for column in operation.row},
        )

    def compensate(self, completed: list[WriteOperation], checkpoint: StoreCheckpoint) -> None:
        """Undo completed writes, newest first. Failures are logged."""
        for operation in reversed(completed):
            undo = self.inverse(operation, checkpoint)
            try:
                self.write(undo)
                logger.info(f"Compensated {operation} with {undo}")
            except RemoteWriteFailed as e:
                logger.error(f"Compensation failed, remote data may be inconsistent: {undo}: {e.cause}")
            except Exception:
                logger.exception(f"Compensation failed, remote data may be inconsistent: {undo}")

    # =========================================================================
    # MIGRATION
    # =========================================================================

    def migrate_snapshot(self) -> dict:
        """
        Push records from the local snapshot that are missing remotely.

        Existing remote records are skipped; per-record failures are
        logged and counted.

        Returns:
            Summary dict with items_migrated, attendees_migrated, skipped, errors

        Raises:
            RemoteStoreError: if the remote collections cannot be read
        """
        summary = {"items_migrated": 0, "attendees_migrated": 0, "skipped": 0, "errors": []}

        data = self.snapshot.load() if self.snapshot is not None else None
        if data is None:
            logger.info("No local snapshot found to migrate")
            return summary
        if self.remote is None:
            raise ConfigurationError(NOT_CONFIGURED)

        items, attendees = data
        for entity, records, counter in (
            (EntityType.ITEM, items, "items_migrated"),
            (EntityType.ATTENDEE, attendees, "attendees_migrated"),
        ):
            logger.info(f"Found {len(records)} {entity.table} to migrate...")
            existing = {
                str(row[entity.key_column])
                for row in self.remote.select_all(entity.table, order_by=entity.key_column)
            }
            for record in records:
                key = entity_key(entity, record)
                if key in existing:
                    logger.info(f"{entity.table}[{key}] already exists, skipping")
                    summary["skipped"] += 1
                    continue
                try:
                    self.remote.insert(entity.table, record.to_dict())
                except RemoteStoreError as e:
                    logger.error(f"Error migrating {entity.table}[{key}]: {e}")
                    summary["errors"].append(f"{entity.table}[{key}]: {e}")
                    continue
                summary[counter] += 1

        logger.info(f"Migration complete: {summary}")
        return summary
