"""SHOUTcast status relay.

Scrapes a SHOUTcast status page on a timer, normalizes it into a StatusRecord
and republishes it as JSON, with a pass-through relay for the audio stream.

Main Components:
    - extract / StatusExtractor: status page to StatusRecord
    - CacheCoordinator: single-flight refresh with bounded cache age
    - UpstreamClient: status page fetcher
    - RelayConfig: configuration management

Example:
    >>> from shoutcast_relay import extract
    >>> record = extract("<table><tr><td>Current Song:</td><td>Artist - Title</td></tr></table>")
    >>> record.current_song
    'Artist - Title'
"""

__version__ = "1.0.0"

from shoutcast_relay.config import RelayConfig, get_config
from shoutcast_relay.coordinator import CacheCoordinator
from shoutcast_relay.exceptions import (
    ExtractionFailure,
    MalformedDocument,
    RelayError,
    UpstreamBadStatus,
    UpstreamTimeout,
    UpstreamUnreachable,
)
from shoutcast_relay.extractor import StatusExtractor, extract
from shoutcast_relay.models import CacheState, StatusRecord
from shoutcast_relay.parsers import classify_up, parse_count, parse_stream_status
from shoutcast_relay.sanitizer import sanitize
from shoutcast_relay.upstream import UpstreamClient

__all__ = [
    "CacheCoordinator",
    "CacheState",
    "ExtractionFailure",
    "MalformedDocument",
    "RelayConfig",
    "RelayError",
    "StatusExtractor",
    "StatusRecord",
    "UpstreamBadStatus",
    "UpstreamClient",
    "UpstreamTimeout",
    "UpstreamUnreachable",
    "classify_up",
    "extract",
    "get_config",
    "parse_count",
    "parse_stream_status",
    "sanitize",
]
