"""Pass-through relay for the upstream audio stream."""

import asyncio
import logging
from typing import AsyncIterator, Dict, Optional

import aiohttp

from shoutcast_relay.config import RelayConfig
from shoutcast_relay.exceptions import RelayError

logger = logging.getLogger(__name__)

# Upstream headers forwarded to the browser
ALLOWED_HEADERS = ("content-type", "icy-metaint", "icy-br", "icy-name", "content-length")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,OPTIONS",
    "Access-Control-Expose-Headers": "icy-metaint,icy-name,Content-Length",
}


class RelayStream:
    """An open upstream audio response.

    Iterating ``iter_chunks()`` to the end, or abandoning it (downstream
    disconnect), closes the upstream connection.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        response: aiohttp.ClientResponse,
        chunk_size: int = 8192,
    ):
        self._session = session
        self._response = response
        self.chunk_size = chunk_size
        self.closed = False

    @property
    def status(self) -> int:
        return self._response.status

    @property
    def headers(self) -> Dict[str, str]:
        """Allow-listed upstream headers plus the cross-origin headers."""
        headers = {}
        for name in ALLOWED_HEADERS:
            value = self._response.headers.get(name)
            if value:
                headers[name] = value
        headers.update(CORS_HEADERS)
        return headers

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.content.iter_chunked(self.chunk_size):
                yield chunk
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Upstream audio stream ended: {e}")
        finally:
            await self.close()

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._response.close()
        await self._session.close()
        logger.debug("Upstream audio connection closed")


class AudioRelay:
    """Opens the configured upstream audio stream."""

    def __init__(self, config: Optional[RelayConfig] = None):
        """Initialize audio relay.

        Args:
            config: Relay configuration
        """
        if config is None:
            from shoutcast_relay.config import get_config

            config = get_config()

        self.config = config

    async def open(self) -> RelayStream:
        """Connect to the upstream audio stream.

        Returns:
            RelayStream ready to be iterated

        Raises:
            RelayError: Connection failed or upstream answered with status >= 400
        """
        url = self.config.stream_url
        session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=None, connect=self.config.stream_timeout)
        )

        try:
            response = await session.get(
                url,
                headers={
                    "User-Agent": self.config.stream_user_agent,
                    "Icy-MetaData": "1",
                },
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            await session.close()
            raise RelayError(f"Could not connect to audio upstream: {e}") from e

        if response.status >= 400:
            response.close()
            await session.close()
            raise RelayError(
                f"Audio upstream returned HTTP {response.status}", status=response.status
            )

        logger.info(f"Relaying audio from {url}")
        return RelayStream(session, response, self.config.stream_chunk_size)
