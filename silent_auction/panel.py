"""
Admin panel wiring.

Builds the store, sync layer, ledger and change feed, loads the data and
keeps the panel connected:
- start(): load from Supabase (or the local snapshot) and subscribe to
  the change feed
- a background APScheduler job retries the load and the subscription
  while either is down, and removes itself once both succeed
- close(): release the change feed and stop the scheduler
"""

import logging
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .config import AppConfig, get_app_config
from .db import Database
from .errors import ConfigurationError
from .ledger import AuctionLedger
from .realtime import ChangeFeed
from .snapshot import LocalSnapshot
from .store import AuctionStore
from .sync import LoadResult, SyncLayer

logger = logging.getLogger(__name__)

RECOVER_JOB_ID = "recover_remote"


def _default_remote() -> Optional[Database]:
    try:
        return Database()
    except ConfigurationError as e:
        logger.warning(f"{e} Running from the local snapshot only.")
        return None


class AdminPanel:
    """
    Owns the auction state and its connections for one running panel.

    Usage:
        panel = AdminPanel()
        panel.start()
        panel.ledger.add_item("001", "Painting")
        panel.close()
    """

    def __init__(
        self,
        remote=None,
        snapshot: Optional[LocalSnapshot] = None,
        config: Optional[AppConfig] = None,
        feed_factory: Optional[Callable[[SyncLayer], ChangeFeed]] = None,
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        self.config = config or get_app_config()
        self.store = AuctionStore()
        self.sync = SyncLayer(
            self.store,
            remote=remote,
            snapshot=snapshot or LocalSnapshot(self.config.snapshot_dir),
        )
        self.ledger = AuctionLedger(self.store, self.sync)

        if feed_factory is None and self.config.enable_change_feed:
            feed_factory = self._default_feed
        self._feed_factory = feed_factory
        self._feed: Optional[ChangeFeed] = None
        self._scheduler = scheduler or BackgroundScheduler()

    @classmethod
    def from_env(cls) -> "AdminPanel":
        return cls(remote=_default_remote())

    def _default_feed(self, sync: SyncLayer) -> ChangeFeed:
        return ChangeFeed(sync.handle_feed_payload, connect_timeout=self.config.feed_connect_timeout)

    @property
    def status(self) -> Optional[LoadResult]:
        return self.sync.last_load

    @property
    def feed_running(self) -> bool:
        return self._feed is not None and self._feed.running

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> LoadResult:
        """Load data, subscribe to changes and schedule recovery if needed."""
        result = self.sync.load()
        if result.warning:
            logger.warning(result.warning)

        if result.online:
            self._start_feed()

        if not self._connected():
            self._schedule_recovery()
        return result

    def close(self) -> None:
        """Release the change feed subscription and stop background jobs."""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        if self._feed is not None:
            self._feed.close()
            self._feed = None
        logger.info("Admin panel closed")

    # =========================================================================
    # RECOVERY
    # =========================================================================

    def _connected(self) -> bool:
        if not self.sync.online:
            return False
        return self._feed_factory is None or self.feed_running

    def _start_feed(self) -> bool:
        if self._feed_factory is None or self.feed_running:
            return True
        feed = self._feed_factory(self.sync)
        try:
            feed.start()
        except Exception as e:
            logger.warning(f"Change feed unavailable, will retry: {e}")
            return False
        self._feed = feed
        return True

    def _schedule_recovery(self) -> None:
        if self.sync.remote is None:
            # Nothing to reconnect to until the panel is reconfigured
            return
        self._scheduler.add_job(
            self.recover,
            trigger=IntervalTrigger(seconds=self.config.resync_interval_seconds),
            id=RECOVER_JOB_ID,
            name="Reconnect to Supabase",
            replace_existing=True,
            max_instances=1,
        )
        if not self._scheduler.running:
            self._scheduler.start()
        logger.info(f"Retrying connection every {self.config.resync_interval_seconds}s")

    def recover(self) -> bool:
        """
        Retry the load and the change feed.

        Returns:
            True once both are up (the recovery job is then removed)
        """
        if not self.sync.online:
            result = self.sync.load()
            if not result.online:
                logger.info("Supabase still unreachable")
                return False

        if not self._start_feed():
            return False

        logger.info("Reconnected to Supabase")
        if self._scheduler.get_job(RECOVER_JOB_ID) is not None:
            self._scheduler.remove_job(RECOVER_JOB_ID)
        return True


# Global panel instance (lazy loaded)
_panel: Optional[AdminPanel] = None


def get_panel() -> AdminPanel:
    """Get the started panel instance (singleton)."""
    global _panel
    if _panel is None:
        _panel = AdminPanel.from_env()
        _panel.start()
    return _panel
