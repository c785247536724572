"""
Change feed for the Silent Auction admin panel.

Subscribes to Supabase Realtime postgres_changes for the items and
attendees tables and forwards every payload to a callback (normally
SyncLayer.handle_feed_payload).

Realtime needs the async Supabase client, so the feed runs its own event
loop on a daemon thread. start() blocks until the channels are
subscribed; close() removes them and stops the loop. Callbacks run on the
feed thread.
"""

import asyncio
import logging
import threading
from typing import Awaitable, Callable, Optional

from supabase import AsyncClient, acreate_client

from .config import SupabaseConfig, get_supabase_config
from .errors import ConfigurationError
from .models import EntityType

logger = logging.getLogger(__name__)

PayloadHandler = Callable[[str, dict], None]


class ChangeFeed:
    """
    Realtime subscription for both auction tables.

    Usage:
        feed = ChangeFeed(sync.handle_feed_payload)
        feed.start()
        ...
        feed.close()
    """

    def __init__(
        self,
        on_payload: PayloadHandler,
        config: Optional[SupabaseConfig] = None,
        tables: tuple[str, ...] = (EntityType.ITEM.table, EntityType.ATTENDEE.table),
        connect_timeout: float = 10.0,
        client_factory: Optional[Callable[[], Awaitable[AsyncClient]]] = None,
    ):
        self._on_payload = on_payload
        self._config = config or get_supabase_config()
        self._tables = tables
        self._connect_timeout = connect_timeout
        self._client_factory = client_factory or self._create_client

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._client: Optional[AsyncClient] = None
        self._channels: list = []

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and bool(self._channels)

    async def _create_client(self) -> AsyncClient:
        if not self._config.is_configured:
            raise ConfigurationError("Supabase is not configured; change feed disabled.")
        return await acreate_client(self._config.url, self._config.key)

    def _handler(self, table: str) -> Callable[[dict], None]:
        def handle(payload: dict) -> None:
            logger.debug(f"Change feed event on {table}")
            try:
                self._on_payload(table, payload)
            except Exception:
                # Keep the subscription alive for later events
                logger.exception(f"Change feed handler failed for {table}")
        return handle

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    async def _subscribe(self) -> None:
        self._client = await self._client_factory()
        for table in self._tables:
            channel = self._client.channel(f"{table}-changes")
            channel.on_postgres_changes("*", schema="public", table=table, callback=self._handler(table))
            await channel.subscribe()
            self._channels.append(channel)
            logger.info(f"Subscribed to changes on {table}")

    async def _unsubscribe(self) -> None:
        if self._client is not None:
            await self._client.remove_all_channels()
        self._channels = []
        self._client = None

    def start(self) -> None:
        """
        Start the loop thread and subscribe to both tables.

        Raises:
            ConfigurationError: if Supabase is not configured
            Exception: whatever the client raised while subscribing; the
                feed is stopped again before re-raising
        """
        if self.running:
            return
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run_loop, name="auction-change-feed", daemon=True)
        self._thread.start()

        future = asyncio.run_coroutine_threadsafe(self._subscribe(), self._loop)
        try:
            future.result(timeout=self._connect_timeout)
        except BaseException:
            future.cancel()
            self.close()
            raise

    def close(self) -> None:
        """Unsubscribe and stop the loop thread. Safe to call more than once."""
        if self._loop is None:
            return
        loop, thread = self._loop, self._thread
        self._loop = None
        self._thread = None

        if loop.is_running():
            future = asyncio.run_coroutine_threadsafe(self._unsubscribe(), loop)
            try:
                future.result(timeout=self._connect_timeout)
            except Exception as e:
                logger.warning(f"Error while unsubscribing change feed: {e}")
            loop.call_soon_threadsafe(loop.stop)
        if thread is not None:
            thread.join(timeout=self._connect_timeout)
        loop.close()
        self._channels = []
        logger.info("Change feed closed")
