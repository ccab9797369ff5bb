"""FastAPI application publishing the scraped SHOUTcast status.

Endpoints:
    GET /, /api/stream-info   current StatusRecord as camelCase JSON
    GET /api/status           liveness with the record's lastUpdated
    GET /metrics              Prometheus metrics
    GET /;                    minimal browser player
    GET /stream/;             audio relay
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, PlainTextResponse, Response, StreamingResponse
from prometheus_client import CollectorRegistry

from shoutcast_relay import __version__
from shoutcast_relay.audio_relay import AudioRelay
from shoutcast_relay.config import RelayConfig, get_config
from shoutcast_relay.coordinator import CacheCoordinator
from shoutcast_relay.error_handlers import setup_exception_handlers
from shoutcast_relay.exceptions import RelayError
from shoutcast_relay.extractor import StatusExtractor
from shoutcast_relay.logging_config import install_crash_handlers, setup_logging
from shoutcast_relay.metrics import MetricsExporter
from shoutcast_relay.models import LivenessResponse, StatusRecord
from shoutcast_relay.upstream import UpstreamClient

logger = logging.getLogger(__name__)

PLAYER_HTML = """<!doctype html>
<html><head><meta name="viewport" content="width=device-width"><meta charset="utf-8"><title>Player</title></head>
<body>
  <audio controls autoplay crossorigin="anonymous">
    <source src="/stream/;" type="audio/mpeg">
    Your browser does not support the audio element.
  </audio>
</body></html>"""


def create_app(
    config: Optional[RelayConfig] = None,
    coordinator: Optional[CacheCoordinator] = None,
    metrics: Optional[MetricsExporter] = None,
    audio_relay: Optional[AudioRelay] = None,
) -> FastAPI:
    """Build the application.

    Collaborators not passed in are created from ``config`` during startup.

    Args:
        config: Relay configuration; loaded from the environment when omitted
        coordinator: Cache coordinator to serve from
        metrics: Metrics exporter (a private registry is used when omitted)
        audio_relay: Audio relay for /stream/;

    Returns:
        Configured FastAPI application
    """
    if config is None:
        config = get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager for startup/shutdown."""
        logger.info("Starting SHOUTcast relay...")
        install_crash_handlers(asyncio.get_running_loop())

        if app.state.metrics is None:
            app.state.metrics = MetricsExporter(CollectorRegistry())

        if app.state.coordinator is None:
            extractor = StatusExtractor(UpstreamClient(config))
            app.state.coordinator = CacheCoordinator(
                config, extractor.scrape, metrics=app.state.metrics
            )

        if app.state.audio_relay is None:
            app.state.audio_relay = AudioRelay(config)

        await app.state.coordinator.startup()
        app.state.coordinator.start()
        logger.info(f"Relay ready, scraping {config.scrape_url}")

        try:
            yield
        finally:
            logger.info("Shutting down SHOUTcast relay...")
            await app.state.coordinator.stop()
            logger.info("Shutdown complete")

    app = FastAPI(
        title="SHOUTcast Relay",
        description="Normalized JSON status and audio relay for a SHOUTcast server",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.coordinator = coordinator
    app.state.metrics = metrics
    app.state.audio_relay = audio_relay

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
    )

    setup_exception_handlers(app)

    @app.get("/", response_model=StatusRecord)
    @app.get("/api/stream-info", response_model=StatusRecord)
    async def stream_info(request: Request) -> StatusRecord:
        """Current status record, refreshed first if stale."""
        return await request.app.state.coordinator.read()

    @app.get("/api/status", response_model=LivenessResponse)
    async def liveness(request: Request) -> LivenessResponse:
        """Liveness probe; never triggers a scrape."""
        record = request.app.state.coordinator.snapshot()
        return LivenessResponse(ok=True, last_updated=record.last_updated)

    @app.get("/metrics")
    async def metrics_endpoint(request: Request) -> Response:
        """Prometheus metrics."""
        exporter = request.app.state.metrics
        if exporter is None:
            return PlainTextResponse("", status_code=status.HTTP_404_NOT_FOUND)
        return Response(content=exporter.export(), media_type=exporter.content_type)

    @app.get("/;", response_class=HTMLResponse)
    async def player() -> HTMLResponse:
        """Browser player for the relayed stream."""
        return HTMLResponse(PLAYER_HTML)

    @app.get("/stream/;")
    async def stream_audio(request: Request) -> Response:
        """Relay the upstream audio stream."""
        try:
            upstream = await request.app.state.audio_relay.open()
        except RelayError as e:
            logger.error(f"Audio relay error: {e}")
            if e.status is not None:
                return PlainTextResponse("Upstream error", status_code=e.status)
            return PlainTextResponse("Proxy error", status_code=status.HTTP_502_BAD_GATEWAY)

        return StreamingResponse(
            upstream.iter_chunks(),
            status_code=upstream.status,
            headers=upstream.headers,
        )

    return app


def main() -> None:
    """Run the relay with uvicorn."""
    import uvicorn

    config = get_config()
    setup_logging(config.log_level, config.log_format)

    uvicorn.run(
        create_app(config),
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
