"""Pytest configuration and fixtures for shoutcast_relay tests."""

from datetime import datetime, timezone

import pytest

from shoutcast_relay.config import RelayConfig
from shoutcast_relay.models import StatusRecord

STATUS_PAGE = """<html><head><title>SHOUTcast Server</title>
<script type="text/javascript">
var streamTitle = "Injected Title";
document.write("Current Song: From Script");
</script>
</head>
<body>
<table width="100%"><tr><td><a href="index.html">Status</a> | <a href="played.html">History</a></td></tr></table>
<table cellpadding="2" cellspacing="0" border="0" align="center">
<tr><td width="130" valign="top">Server Status: </td><td><b>Server is currently up and public.</b></td></tr>
<tr><td width="130" valign="top">Stream Status: </td><td><b>Stream is up at 128 kbps with 153 of 1000 listeners (1 unique)</b></td></tr>
<tr><td width="130" valign="top">Listener Peak: </td><td><b>1.234</b></td></tr>
<tr><td width="130" valign="top">Average Listen Time: </td><td><b>1h 2m 3s</b></td></tr>
<tr><td width="130" valign="top">Stream Title: </td><td><b>Radio Teste FM</b></td></tr>
<tr><td width="130" valign="top">Content Type: </td><td><b>audio/mpeg</b></td></tr>
<tr><td width="130" valign="top">Stream Genre: </td><td><b>Pop, Rock</b></td></tr>
<tr><td width="130" valign="top">Stream URL: </td><td><b><a href="http://www.radioteste.com.br">http://www.radioteste.com.br</a></b></td></tr>
<tr><td width="130" valign="top">Current Song: </td><td><b>Artist - Title</b></td></tr>
</table>
<p><a href="http://stream.radioteste.com.br:8342/;">Listen</a></p>
</body></html>
"""


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def status_page_html():
    """A SHOUTcast v1-style status page with a complete status table."""
    return STATUS_PAGE


@pytest.fixture
def config():
    """Create test configuration."""
    return RelayConfig(
        scrape_url="http://shoutcast.test:8000/index.html",
        cache_ms=1000,
        fetch_timeout_ms=2000,
        user_agent="TestAgent/1.0",
        stream_url="http://shoutcast.test:8000/;",
        stream_chunk_size=4,
    )


@pytest.fixture
def clock():
    """Create a fake monotonic clock."""
    return FakeClock()


@pytest.fixture
def fixed_time():
    """A fixed extraction timestamp."""
    return datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_record(fixed_time):
    """A populated status record."""
    return StatusRecord(
        server_status="Server is currently up and public.",
        is_server_up=True,
        stream_status="Stream is up at 128 kbps with 153 of 1000 listeners (1 unique)",
        is_stream_up=True,
        current_listeners=153,
        max_listeners=1000,
        unique_listeners=1,
        bitrate_kbps="128",
        listener_peak="1234",
        avg_listen_time="1h 2m 3s",
        stream_title="Radio Teste FM",
        stream_genre="Pop, Rock",
        content_type="audio/mpeg",
        stream_url="radioteste.com.br",
        audio_stream_url="http://stream.radioteste.com.br:8342/;",
        current_song="Artist - Title",
        last_updated=fixed_time,
    )
