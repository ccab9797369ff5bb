"""Error taxonomy for scraping and relaying."""

from typing import Optional, Union


class ExtractionFailure(Exception):
    """A scrape produced no record; the cached record must be kept.

    Attributes:
        cause: Underlying exception or a human-readable reason
    """

    def __init__(self, message: str, cause: Optional[Union[BaseException, str]] = None):
        super().__init__(message)
        self.cause = cause if cause is not None else message


class UpstreamUnreachable(ExtractionFailure):
    """Network or DNS failure talking to the status page."""


class UpstreamTimeout(ExtractionFailure):
    """The status page did not answer within the fetch timeout."""


class UpstreamBadStatus(ExtractionFailure):
    """The status page answered with a non-2xx status."""

    def __init__(self, status: int, url: str = ""):
        message = f"Upstream returned HTTP {status}"
        if url:
            message = f"{message} for {url}"
        super().__init__(message, cause=message)
        self.status = status


class MalformedDocument(ExtractionFailure):
    """The fetched body could not be parsed as a document at all."""


class RelayError(Exception):
    """The upstream audio stream could not be opened."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
