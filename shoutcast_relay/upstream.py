"""HTTP client for the upstream SHOUTcast status page."""

import asyncio
import logging
from typing import Optional

import aiohttp

from shoutcast_relay.config import RelayConfig
from shoutcast_relay.exceptions import UpstreamBadStatus, UpstreamTimeout, UpstreamUnreachable

logger = logging.getLogger(__name__)


class UpstreamClient:
    """Fetches the status page HTML.

    Every failure mode is raised as an ExtractionFailure subclass:
    - UpstreamTimeout when the fetch timeout fires
    - UpstreamUnreachable for connection, DNS and protocol errors
    - UpstreamBadStatus for non-2xx answers
    """

    def __init__(self, config: Optional[RelayConfig] = None):
        """Initialize upstream client.

        Args:
            config: Relay configuration
        """
        if config is None:
            from shoutcast_relay.config import get_config

            config = get_config()

        self.config = config

    async def fetch_status_page(self) -> str:
        """GET the configured status page.

        Returns:
            Response body decoded as text (undecodable bytes replaced)

        Raises:
            UpstreamTimeout: Request exceeded the fetch timeout
            UpstreamUnreachable: Connection or protocol failure
            UpstreamBadStatus: Non-2xx response
        """
        url = self.config.scrape_url
        headers = {"User-Agent": self.config.user_agent}

        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    url,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=self.config.fetch_timeout),
                ) as response:
                    if not 200 <= response.status < 300:
                        raise UpstreamBadStatus(response.status, url)

                    body = await response.text(errors="replace")
                    logger.debug(f"Fetched {len(body)} characters from {url}")
                    return body

        except asyncio.TimeoutError as e:
            raise UpstreamTimeout(
                f"Upstream timed out after {self.config.fetch_timeout_ms}ms", e
            ) from e
        except aiohttp.ClientError as e:
            raise UpstreamUnreachable(f"Upstream unreachable: {e}", e) from e
