"""Tests for the cache coordinator."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from prometheus_client import CollectorRegistry

from shoutcast_relay.coordinator import CacheCoordinator
from shoutcast_relay.exceptions import UpstreamTimeout, UpstreamUnreachable
from shoutcast_relay.metrics import MetricsExporter
from shoutcast_relay.models import StatusRecord


class TestCacheCoordinator:
    """Test cases for CacheCoordinator."""

    @pytest.fixture
    def refresher(self, sample_record):
        """Create a refresher that always succeeds."""
        return AsyncMock(return_value=sample_record)

    @pytest.fixture
    def coordinator(self, config, refresher, clock):
        """Create CacheCoordinator instance."""
        return CacheCoordinator(config, refresher, clock=clock)

    def test_initial_snapshot_is_zeroed(self, coordinator):
        """Test the record served before any refresh has zero values."""
        record = coordinator.snapshot()

        assert record.server_status == ""
        assert record.current_listeners == 0
        assert record.is_stream_up is False
        assert all(value is not None for value in record.to_public_dict().values())
        assert coordinator.is_stale() is True

    @pytest.mark.asyncio
    async def test_read_refreshes_when_never_fetched(self, coordinator, refresher, sample_record):
        """Test the first read triggers a refresh."""
        record = await coordinator.read()

        assert record == sample_record
        refresher.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reads_within_duration_fetch_once(self, coordinator, refresher, clock):
        """Test two reads within the cache duration trigger one fetch."""
        await coordinator.read()
        clock.advance(0.5)
        await coordinator.read()

        assert refresher.await_count == 1

    @pytest.mark.asyncio
    async def test_read_after_duration_fetches_again(self, coordinator, refresher, clock):
        """Test a read after the cache duration elapses triggers exactly one fetch."""
        await coordinator.read()
        clock.advance(1.5)
        await coordinator.read()

        assert refresher.await_count == 2

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_record(self, coordinator, refresher, clock, sample_record):
        """Test an upstream timeout leaves the cached record and timestamps untouched."""
        await coordinator.read()
        last_fetch_at = coordinator.state.last_fetch_at

        clock.advance(5)
        refresher.side_effect = UpstreamTimeout("timed out")
        record = await coordinator.read()

        assert record is sample_record
        assert record.last_updated == sample_record.last_updated
        assert coordinator.state.last_fetch_at == last_fetch_at
        assert coordinator.state.refreshing is False

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self, coordinator, refresher):
        """Test a non-extraction error never reaches the reader."""
        refresher.side_effect = RuntimeError("bug")

        record = await coordinator.read()

        assert record == StatusRecord.empty(record.last_updated)
        assert coordinator.state.refreshing is False

    @pytest.mark.asyncio
    async def test_failure_retries_on_next_read(self, coordinator, refresher):
        """Test a failed refresh leaves the cache stale."""
        refresher.side_effect = [UpstreamUnreachable("down"), refresher.return_value]

        await coordinator.read()
        record = await coordinator.read()

        assert refresher.await_count == 2
        assert record.current_song == "Artist - Title"

    @pytest.mark.asyncio
    async def test_single_flight(self, config, clock, sample_record):
        """Test concurrent stale reads trigger exactly one fetch."""
        calls = 0

        async def slow_refresh():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return sample_record

        coordinator = CacheCoordinator(config, slow_refresh, clock=clock)

        results = await asyncio.gather(*(coordinator.read() for _ in range(10)))

        assert calls == 1
        assert results[0] == sample_record
        # Readers arriving mid-refresh get the existing snapshot without waiting
        assert all(r.current_song == "" for r in results[1:])
        assert coordinator.snapshot() == sample_record

    @pytest.mark.asyncio
    async def test_tick_noop_when_fresh(self, coordinator, refresher):
        """Test tick does nothing while the cache is fresh."""
        await coordinator.tick()
        await coordinator.tick()

        assert refresher.await_count == 1

    @pytest.mark.asyncio
    async def test_tick_noop_while_refreshing(self, coordinator, refresher):
        """Test tick does nothing while a refresh is in flight."""
        coordinator.state.refreshing = True

        await coordinator.tick()
        record = await coordinator.read()

        refresher.assert_not_awaited()
        assert record.current_song == ""

    @pytest.mark.asyncio
    async def test_startup_forces_refresh(self, coordinator, refresher, clock):
        """Test startup refreshes even when the cache is fresh."""
        await coordinator.read()
        loaded = await coordinator.startup()

        assert loaded is True
        assert refresher.await_count == 2

    @pytest.mark.asyncio
    async def test_startup_failure_serves_empty_record(self, coordinator, refresher):
        """Test a failed startup keeps the zeroed record."""
        refresher.side_effect = UpstreamTimeout("timed out")

        loaded = await coordinator.startup()

        assert loaded is False
        assert coordinator.snapshot().current_listeners == 0

    @pytest.mark.asyncio
    async def test_older_result_is_discarded(self, coordinator, clock, sample_record):
        """Test a refresh that started before the cached one does not replace it."""
        coordinator.state.current_started_at = clock.now + 10

        await coordinator.maybe_refresh(force=True)

        assert coordinator.snapshot() != sample_record
        assert coordinator.state.last_fetch_at is None

    @pytest.mark.asyncio
    async def test_records_metrics(self, config, clock, sample_record):
        """Test successes and failures are counted."""
        registry = CollectorRegistry()
        metrics = MetricsExporter(registry)
        refresher = AsyncMock(side_effect=[UpstreamTimeout("slow"), sample_record])
        coordinator = CacheCoordinator(config, refresher, clock=clock, metrics=metrics)

        await coordinator.read()
        await coordinator.read()

        assert registry.get_sample_value("shoutcast_scrapes_total", {"result": "failure"}) == 1.0
        assert registry.get_sample_value("shoutcast_scrapes_total", {"result": "success"}) == 1.0
        assert registry.get_sample_value("shoutcast_current_listeners") == 153.0

    @pytest.mark.asyncio
    async def test_background_timer(self, sample_record):
        """Test the timer refreshes in the background and stops cleanly."""
        config = MagicMock()
        config.cache_duration = 0.0
        config.refresh_interval = 0.01
        refresher = AsyncMock(return_value=sample_record)
        coordinator = CacheCoordinator(config, refresher)

        task = coordinator.start()
        assert coordinator.start() is task

        await asyncio.sleep(0.05)
        await coordinator.stop()

        assert refresher.await_count >= 1
        assert task.done()
        assert coordinator.snapshot() == sample_record
