"""Last-resort error response for route bugs.

Upstream failures never reach here; the coordinator absorbs them and serves
the cached record. Anything that does arrive is answered with a JSON 500.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    """Log the traceback and answer with ``{"ok": false, "error": ...}``."""
    logger.error(
        f"Unhandled error serving {request.method} {request.url.path}: {exc}",
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"ok": False, "error": "Internal server error"},
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the catch-all handler on ``app``."""
    app.add_exception_handler(Exception, unhandled_error)
