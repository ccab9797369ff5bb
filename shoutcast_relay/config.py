"""Configuration for the SHOUTcast relay service.

Loads configuration from environment variables with validation and defaults.
"""

import os
from dataclasses import dataclass, field
from typing import List
from urllib.parse import urlparse

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
VALID_LOG_FORMATS = ["text", "json"]

# Timer never fires faster than this, whatever the cache duration
MIN_REFRESH_INTERVAL = 0.5  # seconds


@dataclass
class RelayConfig:
    """Configuration for scraping, caching and relaying."""

    # Upstream status page
    scrape_url: str = "http://sonicpanel.oficialserver.com:8342/index.html"
    cache_ms: int = 1000
    fetch_timeout_ms: int = 8000
    user_agent: str = "Mozilla/5.0 (compatible; Scraper/1.0)"

    # Audio relay
    stream_url: str = "http://sonicpanel.oficialserver.com:8342/;"
    stream_timeout_ms: int = 20000
    stream_user_agent: str = "StreamProxy/1.0"
    stream_chunk_size: int = 8192

    # HTTP service
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls) -> "RelayConfig":
        """Create configuration from environment variables.

        Environment variables:
            SCRAPE_URL: Upstream SHOUTcast status page
            CACHE_MS: Cache duration in milliseconds (default: 1000)
            FETCH_TIMEOUT_MS: Upstream fetch timeout in milliseconds (default: 8000)
            USER_AGENT: User agent sent with status page requests
            STREAM_URL: Upstream audio stream URL
            STREAM_TIMEOUT_MS: Audio relay connect timeout (default: 20000)
            STREAM_USER_AGENT: User agent sent with audio requests
            STREAM_CHUNK_SIZE: Relay chunk size in bytes (default: 8192)
            HOST: Listen address (default: 0.0.0.0)
            PORT: Listen port (default: 3000)
            CORS_ORIGINS: Comma-separated allowed origins (default: *)
            LOG_LEVEL: Logging level (default: INFO)
            LOG_FORMAT: "text" or "json" (default: text)

        Returns:
            RelayConfig instance with values from environment
        """
        origins = [
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ]

        return cls(
            scrape_url=os.getenv("SCRAPE_URL", cls.scrape_url),
            cache_ms=int(os.getenv("CACHE_MS", "1000")),
            fetch_timeout_ms=int(os.getenv("FETCH_TIMEOUT_MS", "8000")),
            user_agent=os.getenv("USER_AGENT", cls.user_agent),
            stream_url=os.getenv("STREAM_URL", cls.stream_url),
            stream_timeout_ms=int(os.getenv("STREAM_TIMEOUT_MS", "20000")),
            stream_user_agent=os.getenv("STREAM_USER_AGENT", cls.stream_user_agent),
            stream_chunk_size=int(os.getenv("STREAM_CHUNK_SIZE", "8192")),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3000")),
            cors_origins=origins or ["*"],
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_format=os.getenv("LOG_FORMAT", "text").lower(),
        )

    @property
    def cache_duration(self) -> float:
        """Cache duration in seconds."""
        return self.cache_ms / 1000.0

    @property
    def fetch_timeout(self) -> float:
        """Upstream fetch timeout in seconds."""
        return self.fetch_timeout_ms / 1000.0

    @property
    def stream_timeout(self) -> float:
        """Audio relay connect timeout in seconds."""
        return self.stream_timeout_ms / 1000.0

    @property
    def refresh_interval(self) -> float:
        """Background refresh timer period in seconds."""
        return max(MIN_REFRESH_INTERVAL, self.cache_duration)

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If configuration is invalid
        """
        for name in ("scrape_url", "stream_url"):
            parsed = urlparse(getattr(self, name))
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise ValueError(f"Invalid {name}: {getattr(self, name)!r}")

        if self.cache_ms <= 0:
            raise ValueError(f"cache_ms must be > 0, got {self.cache_ms}")

        if self.fetch_timeout_ms <= 0:
            raise ValueError(f"fetch_timeout_ms must be > 0, got {self.fetch_timeout_ms}")

        if self.stream_timeout_ms <= 0:
            raise ValueError(f"stream_timeout_ms must be > 0, got {self.stream_timeout_ms}")

        if self.stream_chunk_size < 1:
            raise ValueError(f"stream_chunk_size must be >= 1, got {self.stream_chunk_size}")

        if not (1 <= self.port <= 65535):
            raise ValueError(f"Invalid port: {self.port}")

        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log_level: {self.log_level}. Must be one of {VALID_LOG_LEVELS}"
            )

        if self.log_format not in VALID_LOG_FORMATS:
            raise ValueError(
                f"Invalid log_format: {self.log_format}. Must be one of {VALID_LOG_FORMATS}"
            )


def get_config() -> RelayConfig:
    """Get relay configuration from environment.

    Returns:
        RelayConfig instance
    """
    config = RelayConfig.from_env()
    config.validate()
    return config
