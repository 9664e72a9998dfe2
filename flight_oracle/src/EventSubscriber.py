"""EventSubscriber: Long-lived subscriptions to contract notification streams.

Architecture:
    - One polling task per stream, so streams never wait on each other
    - Each stream keeps its own block cursor and scans new blocks for logs
    - Every event is handed to its handler in a separate task, so a slow
      handler never delays the stream or other events
    - A failed poll is logged and the stream resubscribes after an
      exponential backoff from the same cursor, so no blocks are skipped
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from .StreamBackoff import StreamBackoff

if TYPE_CHECKING:
    from .FlightSuretyContract import FlightSuretyContract

logger = logging.getLogger(__name__)

ORACLE_REQUEST = "OracleRequest"
FLIGHT_ADDED = "FlightAdded"
FLIGHT_STATUS_INFO = "FlightStatusInfo"
STATUS_UPDATE = "StatusUpdate"
WITHDRAWAL = "Withdrawal"

STREAMS = (ORACLE_REQUEST, FLIGHT_ADDED, FLIGHT_STATUS_INFO, STATUS_UPDATE, WITHDRAWAL)

DEFAULT_POLL_INTERVAL = 2.0

EventHandler = Callable[[Any], Awaitable[None]]


class EventSubscriber:
    """Polls contract event logs and dispatches them to handlers.

    :ivar contract: FlightSuretyApp contract client.
    :ivar handlers: Dict mapping stream (event) names to async handlers.
    :ivar poll_interval: Seconds between polls of a healthy stream.
    :ivar from_block: First block to scan, or None for the current block.
    :ivar backoff: Per-stream failure tracker.
    """

    def __init__(
        self,
        contract: FlightSuretyContract,
        handlers: dict[str, EventHandler],
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        from_block: int | None = None,
        backoff: StreamBackoff | None = None,
    ) -> None:
        """Initialize the subscriber.

        :param contract: FlightSuretyApp contract client.
        :param handlers: Dict mapping event names to async handlers.
        :param poll_interval: Seconds between polls (default: 2.0).
        :param from_block: First block to scan (default: current block).
        :param backoff: Optional failure tracker.
        :raises ValueError: If poll_interval <= 0 or from_block < 0.
        """
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        if from_block is not None and from_block < 0:
            raise ValueError("from_block must not be negative")

        self.contract = contract
        self.handlers = dict(handlers)
        self.poll_interval = poll_interval
        self.from_block = from_block
        self.backoff = backoff or StreamBackoff(list(self.handlers))
        self._tasks: set[asyncio.Task] = set()

    async def run(self) -> None:
        """Watch every stream until cancelled.

        :raises Exception: If the starting block cannot be determined.
        """
        start = self.from_block
        if start is None:
            # Only blocks mined after startup
            start = await self.contract.block_number() + 1

        logger.info(
            f"Subscribing to {', '.join(self.handlers)} from block {start}"
        )
        try:
            await asyncio.gather(
                *(self._watch(stream, start) for stream in self.handlers)
            )
        finally:
            await self.drain()

    async def _watch(self, stream: str, cursor: int) -> None:
        """Poll one stream forever, backing off on failures."""
        while True:
            try:
                cursor = await self.poll_once(stream, cursor)
                self.backoff.record_success(stream)
                delay = self.poll_interval
            except Exception as e:
                delay = self.backoff.record_failure(stream, e)
                logger.warning(
                    f"[{stream}] Subscription error: {e}; resubscribing in {delay:.1f}s"
                )
            await asyncio.sleep(delay)

    async def poll_once(self, stream: str, cursor: int) -> int:
        """Scan new blocks of one stream and dispatch their events.

        :param stream: Event name.
        :param cursor: First block not yet scanned.
        :returns: The next cursor.
        """
        latest = await self.contract.block_number()
        if latest < cursor:
            return cursor

        events = await self.contract.get_events(stream, cursor, latest)
        if events:
            logger.debug(f"[{stream}] {len(events)} events in blocks {cursor}..{latest}")
        for event in events:
            self.dispatch(stream, event)
        return latest + 1

    def dispatch(self, stream: str, event: Any) -> asyncio.Task | None:
        """Run the stream's handler for one event in its own task.

        :param stream: Event name.
        :param event: Decoded event.
        :returns: The handler task, or None if the stream has no handler.
        """
        handler = self.handlers.get(stream)
        if handler is None:
            return None
        task = asyncio.create_task(self._run_handler(stream, handler, event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_handler(self, stream: str, handler: EventHandler, event: Any) -> None:
        try:
            await handler(event)
        except Exception:
            logger.exception(f"[{stream}] Handler failed for event {event!r}")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for in-flight handler tasks to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
