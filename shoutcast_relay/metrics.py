"""Prometheus metrics for scrape health and published listener counts."""

import logging
import time
from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from shoutcast_relay.models import StatusRecord

logger = logging.getLogger(__name__)


class MetricsExporter:
    """Prometheus metrics exporter for the relay.

    Tracks scrape outcomes and durations, and mirrors the listener counts and
    up/down flags of the currently published record.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """Initialize Prometheus metrics.

        Args:
            registry: Registry to register into; the process default when omitted
        """
        self.registry = registry if registry is not None else REGISTRY
        self._last_success: Optional[float] = None

        # Counters
        self.scrapes_total = Counter(
            "shoutcast_scrapes_total",
            "Total number of status page scrapes",
            ["result"],  # success, failure
            registry=self.registry,
        )

        # Histograms
        self.scrape_duration_seconds = Histogram(
            "shoutcast_scrape_duration_seconds",
            "Status page fetch and extraction duration in seconds",
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0),
            registry=self.registry,
        )

        # Gauges
        self.current_listeners = Gauge(
            "shoutcast_current_listeners",
            "Current listeners reported upstream",
            registry=self.registry,
        )

        self.max_listeners = Gauge(
            "shoutcast_max_listeners",
            "Maximum listeners reported upstream",
            registry=self.registry,
        )

        self.unique_listeners = Gauge(
            "shoutcast_unique_listeners",
            "Unique listeners reported upstream",
            registry=self.registry,
        )

        self.server_up = Gauge(
            "shoutcast_server_up",
            "Upstream server status (1=up, 0=down)",
            registry=self.registry,
        )

        self.stream_up = Gauge(
            "shoutcast_stream_up",
            "Upstream stream status (1=up, 0=down)",
            registry=self.registry,
        )

        self.seconds_since_success = Gauge(
            "shoutcast_seconds_since_last_success",
            "Seconds since the last successful scrape (-1 before the first one)",
            registry=self.registry,
        )
        self.seconds_since_success.set_function(self._seconds_since_success)

        logger.info("Prometheus metrics initialized")

    def _seconds_since_success(self) -> float:
        if self._last_success is None:
            return -1.0
        return time.monotonic() - self._last_success

    def record_success(self, record: StatusRecord, duration_seconds: float) -> None:
        """Record a successful scrape and publish its counts.

        Args:
            record: Freshly extracted record
            duration_seconds: Fetch plus extraction time
        """
        self.scrapes_total.labels(result="success").inc()
        self.scrape_duration_seconds.observe(duration_seconds)
        self._last_success = time.monotonic()

        self.current_listeners.set(record.current_listeners)
        self.max_listeners.set(record.max_listeners)
        self.unique_listeners.set(record.unique_listeners)
        self.server_up.set(1 if record.is_server_up else 0)
        self.stream_up.set(1 if record.is_stream_up else 0)

    def record_failure(self, duration_seconds: float) -> None:
        """Record a failed scrape.

        Args:
            duration_seconds: Time spent before the failure
        """
        self.scrapes_total.labels(result="failure").inc()
        self.scrape_duration_seconds.observe(duration_seconds)

    def export(self) -> bytes:
        """Render all metrics in the Prometheus text format."""
        return generate_latest(self.registry)

    @property
    def content_type(self) -> str:
        return CONTENT_TYPE_LATEST
