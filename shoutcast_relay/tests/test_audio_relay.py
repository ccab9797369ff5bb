"""Tests for the audio relay."""

from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from shoutcast_relay.audio_relay import CORS_HEADERS, AudioRelay
from shoutcast_relay.exceptions import RelayError


async def chunks(*parts):
    for part in parts:
        yield part


def make_response(status=200, headers=None, body=(b"ab", b"cd")):
    response = MagicMock()
    response.status = status
    response.headers = headers if headers is not None else {}
    response.content.iter_chunked = MagicMock(return_value=chunks(*body))
    response.close = MagicMock()
    return response


def make_session(response=None, error=None):
    session = MagicMock()
    session.get = AsyncMock(return_value=response, side_effect=error)
    session.close = AsyncMock()
    return session


class TestAudioRelay:
    """Test cases for AudioRelay and RelayStream."""

    @pytest.fixture
    def relay(self, config):
        """Create AudioRelay instance."""
        return AudioRelay(config)

    @pytest.mark.asyncio
    async def test_open_forwards_allowed_headers(self, relay, config):
        """Test only allow-listed headers plus CORS headers are exposed."""
        response = make_response(
            headers={
                "content-type": "audio/mpeg",
                "icy-br": "128",
                "icy-name": "Radio Teste",
                "icy-metaint": "16000",
                "server": "SHOUTcast",
                "set-cookie": "x=1",
            }
        )
        session = make_session(response)

        with patch("aiohttp.ClientSession", return_value=session):
            stream = await relay.open()

        headers = stream.headers
        assert headers["content-type"] == "audio/mpeg"
        assert headers["icy-br"] == "128"
        assert headers["icy-name"] == "Radio Teste"
        assert headers["icy-metaint"] == "16000"
        assert "server" not in headers
        assert "set-cookie" not in headers
        for name, value in CORS_HEADERS.items():
            assert headers[name] == value

        args, kwargs = session.get.call_args
        assert args[0] == config.stream_url
        assert kwargs["headers"]["Icy-MetaData"] == "1"
        assert kwargs["headers"]["User-Agent"] == "StreamProxy/1.0"

    @pytest.mark.asyncio
    async def test_iterates_and_closes(self, relay):
        """Test chunks are yielded and the upstream is closed at the end."""
        response = make_response()
        session = make_session(response)

        with patch("aiohttp.ClientSession", return_value=session):
            stream = await relay.open()

        received = [chunk async for chunk in stream.iter_chunks()]

        assert received == [b"ab", b"cd"]
        response.content.iter_chunked.assert_called_once_with(4)
        response.close.assert_called_once()
        session.close.assert_awaited_once()
        assert stream.closed is True

    @pytest.mark.asyncio
    async def test_downstream_disconnect_closes_upstream(self, relay):
        """Test abandoning the iterator closes the upstream connection."""
        response = make_response(body=(b"a", b"b", b"c"))
        session = make_session(response)

        with patch("aiohttp.ClientSession", return_value=session):
            stream = await relay.open()

        iterator = stream.iter_chunks()
        assert await iterator.__anext__() == b"a"
        await iterator.aclose()

        response.close.assert_called_once()
        session.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_upstream_error_status(self, relay):
        """Test an upstream 4xx/5xx raises RelayError with the status."""
        response = make_response(status=404)
        session = make_session(response)

        with patch("aiohttp.ClientSession", return_value=session):
            with pytest.raises(RelayError) as exc_info:
                await relay.open()

        assert exc_info.value.status == 404
        response.close.assert_called_once()
        session.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connection_failure(self, relay):
        """Test a connection failure raises RelayError without a status."""
        session = make_session(error=aiohttp.ClientConnectionError("refused"))

        with patch("aiohttp.ClientSession", return_value=session):
            with pytest.raises(RelayError) as exc_info:
                await relay.open()

        assert exc_info.value.status is None
        session.close.assert_awaited_once()
