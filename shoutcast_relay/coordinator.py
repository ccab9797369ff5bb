"""Cache coordinator: decides when to re-scrape and serves the cached record.

One coordinator owns one CacheState. Reads and timer ticks both go through
``maybe_refresh()``, which runs at most one refresh at a time. The refreshing
flag is checked and set without an intervening await, so on a single event
loop no lock is needed; callers arriving mid-refresh get the current snapshot
immediately.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from shoutcast_relay.config import RelayConfig
from shoutcast_relay.exceptions import ExtractionFailure
from shoutcast_relay.metrics import MetricsExporter
from shoutcast_relay.models import CacheState, StatusRecord

logger = logging.getLogger(__name__)

Refresher = Callable[[], Awaitable[StatusRecord]]


class CacheCoordinator:
    """Single-flight, bounded-age cache around a refresher.

    States: Idle (``state.refreshing`` is False) and Refreshing.
    A failed refresh leaves ``state.current`` and ``state.last_fetch_at``
    untouched; errors are logged, never raised to readers.
    """

    def __init__(
        self,
        config: RelayConfig,
        refresher: Refresher,
        clock: Callable[[], float] = time.monotonic,
        metrics: Optional[MetricsExporter] = None,
    ):
        """Initialize coordinator.

        Args:
            config: Relay configuration (cache duration, timer period)
            refresher: Coroutine function returning a fresh StatusRecord or
                raising ExtractionFailure
            clock: Monotonic time source in seconds
            metrics: Optional metrics exporter
        """
        self.config = config
        self.refresher = refresher
        self.metrics = metrics
        self._clock = clock
        self.state = CacheState(current=StatusRecord.empty())
        self._timer_task: Optional[asyncio.Task] = None

    def snapshot(self) -> StatusRecord:
        """Current record, without triggering a refresh."""
        return self.state.current

    def is_stale(self) -> bool:
        """True if never fetched or older than the cache duration."""
        if self.state.last_fetch_at is None:
            return True
        return self._clock() - self.state.last_fetch_at > self.config.cache_duration

    async def maybe_refresh(self, force: bool = False) -> bool:
        """Refresh if idle and stale (or ``force``).

        Args:
            force: Skip the staleness check (still single-flight)

        Returns:
            True if this call performed a refresh attempt
        """
        state = self.state
        if state.refreshing:
            return False
        if not force and not self.is_stale():
            return False

        state.refreshing = True
        started = self._clock()
        try:
            record = await self.refresher()
        except ExtractionFailure as e:
            logger.warning(f"Refresh failed, keeping cached record: {e}")
            self._record_failure(started)
        except Exception as e:
            logger.error(f"Unexpected refresh error, keeping cached record: {e}", exc_info=True)
            self._record_failure(started)
        else:
            self._publish(record, started)
        finally:
            state.refreshing = False

        return True

    def _publish(self, record: StatusRecord, started: float) -> None:
        state = self.state
        if state.current_started_at is not None and started < state.current_started_at:
            logger.debug("Discarding refresh result older than the cached record")
            return

        state.current = record
        state.current_started_at = started
        state.last_fetch_at = self._clock()

        if self.metrics:
            self.metrics.record_success(record, state.last_fetch_at - started)

    def _record_failure(self, started: float) -> None:
        if self.metrics:
            self.metrics.record_failure(self._clock() - started)

    async def read(self) -> StatusRecord:
        """Return the cached record, refreshing first if stale and idle."""
        await self.maybe_refresh()
        return self.state.current

    async def tick(self) -> None:
        """Timer callback: refresh if idle and stale, otherwise do nothing."""
        await self.maybe_refresh()

    async def startup(self) -> bool:
        """Unconditional first refresh before the service is ready.

        Returns:
            True if a record was loaded; False leaves the zeroed record in place
        """
        await self.maybe_refresh(force=True)
        loaded = self.state.last_fetch_at is not None
        if loaded:
            logger.info("Initial status loaded")
        else:
            logger.warning("Initial status unavailable, serving empty record until next refresh")
        return loaded

    async def _run_timer(self) -> None:
        interval = self.config.refresh_interval
        logger.info(f"Starting background refresh loop (interval: {interval}s)")

        while True:
            try:
                await asyncio.sleep(interval)
                await self.tick()
            except asyncio.CancelledError:
                logger.info("Background refresh cancelled")
                break
            except Exception as e:
                logger.error(f"Error in background refresh: {e}", exc_info=True)

    def start(self) -> asyncio.Task:
        """Start the background keep-warm timer (idempotent)."""
        if self._timer_task is None or self._timer_task.done():
            self._timer_task = asyncio.create_task(self._run_timer())
        return self._timer_task

    async def stop(self) -> None:
        """Cancel the background timer and wait for it to finish."""
        task = self._timer_task
        self._timer_task = None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
