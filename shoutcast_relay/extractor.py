"""Status page extraction.

Turns a SHOUTcast status page into a StatusRecord in three stages:

1. Table pass: label/value rows routed to fields by label substring
   (first matching route wins, rows later in the document overwrite earlier ones).
2. Fallback rules: for each field still unset, an ordered list of pure rules
   scanning the rendered text (or raw HTML) until one yields a value.
3. Zero fill: anything still unset takes the field's zero value.

Fields set by the table pass are never overwritten by a fallback rule.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from shoutcast_relay.exceptions import MalformedDocument
from shoutcast_relay.models import StatusRecord, utc_now
from shoutcast_relay.parsers import (
    SERVER_UP_KEYWORDS,
    STREAM_UP_KEYWORDS,
    classify_up,
    find_count,
    parse_count,
    parse_stream_status,
)
from shoutcast_relay.sanitizer import LABEL_TOKENS, sanitize

logger = logging.getLogger(__name__)

Partial = Dict[str, Any]

_SCRIPT_BLOCKS = re.compile(r"<script[\s\S]*?</script>", re.IGNORECASE)


def strip_scripts(html: str) -> str:
    """Replace every inline <script> block with a space."""
    return _SCRIPT_BLOCKS.sub(" ", html)


def is_unset(value: Any) -> bool:
    """None, empty string and False count as "not found yet"; 0 does not."""
    return value is None or value is False or (isinstance(value, str) and value == "")


@dataclass
class ParsedDocument:
    """A fetched status page in the forms the rules need.

    Attributes:
        raw_html: Body exactly as fetched
        html: Body with script blocks removed
        soup: Parsed tree of ``html``
        text: Rendered text of ``soup``. Rendered without a separator, so
            adjacent block elements run together (``<div>a</div><div>b</div>``
            becomes ``"ab"``); line-bounded patterns only stop at real newlines.
    """

    raw_html: str
    html: str
    soup: BeautifulSoup
    text: str

    @classmethod
    def parse(cls, raw_html: str) -> "ParsedDocument":
        html = strip_scripts(raw_html)
        soup = BeautifulSoup(html, "html.parser")
        return cls(raw_html=raw_html, html=html, soup=soup, text=soup.get_text())


# --------------------------------------------------------------------------
# Table pass
# --------------------------------------------------------------------------


def _route_server_status(value: str, partial: Partial) -> None:
    partial["server_status"] = value
    partial["is_server_up"] = classify_up(value, SERVER_UP_KEYWORDS)


def _route_stream_status(value: str, partial: Partial) -> None:
    partial["stream_status"] = value
    partial["is_stream_up"] = classify_up(value, STREAM_UP_KEYWORDS)

    details = parse_stream_status(value)
    for name in ("bitrate_kbps", "current_listeners", "max_listeners", "unique_listeners"):
        found = getattr(details, name)
        if found is not None:
            partial[name] = found


def _set_count(name: str) -> Callable[[str, Partial], None]:
    def route(value: str, partial: Partial) -> None:
        count = find_count(value)
        if count is not None:
            partial[name] = count

    return route


def _set_text(name: str) -> Callable[[str, Partial], None]:
    def route(value: str, partial: Partial) -> None:
        partial[name] = value

    return route


def _route_listener_peak(value: str, partial: Partial) -> None:
    partial["listener_peak"] = str(parse_count(value))


def _route_genre(value: str, partial: Partial) -> None:
    partial["stream_genre"] = sanitize(value)


# Order matters: the first route whose substring occurs in the label wins.
LABEL_ROUTES: List[Tuple[Tuple[str, ...], Callable[[str, Partial], None]]] = [
    (("server status",), _route_server_status),
    (("stream status",), _route_stream_status),
    (("current listeners",), _set_count("current_listeners")),
    (("max listeners",), _set_count("max_listeners")),
    (("current song", "now playing"), _set_text("current_song")),
    (("stream title", "station name"), _set_text("stream_title")),
    (("content type",), _set_text("content_type")),
    (("stream url", "streamurl"), _set_text("stream_url")),
    (("audio stream",), _set_text("audio_stream_url")),
    (("listener peak", "peak listeners"), _route_listener_peak),
    (("average listen time", "avg listen time"), _set_text("avg_listen_time")),
    (("stream genre", "genre"), _route_genre),
]


def _clean_label(text: str) -> str:
    label = text.strip()
    if label.endswith(":"):
        label = label[:-1].strip()
    return label


def table_pass(soup: BeautifulSoup) -> Partial:
    """Read label/value rows from every table in the document.

    The first cell of a row is the label, the last cell the value.

    Args:
        soup: Parsed, script-free document

    Returns:
        Partial record holding only the fields found
    """
    partial: Partial = {}

    for row in soup.find_all("tr"):
        cells = row.find_all(["td", "th"], recursive=False)
        if not cells:
            continue

        label = _clean_label(cells[0].get_text())
        if not label:
            continue
        value = cells[-1].get_text().strip()
        lowered = label.lower()

        for needles, route in LABEL_ROUTES:
            if any(needle in lowered for needle in needles):
                try:
                    route(value, partial)
                except Exception as e:
                    logger.debug(f"Ignoring unparseable row {label!r}: {e}")
                break

    return partial


# --------------------------------------------------------------------------
# Fallback rules
# --------------------------------------------------------------------------

FallbackRule = Callable[[ParsedDocument, Partial], Optional[Any]]


def _strip(value: str) -> str:
    return value.strip()


def _count_text(value: str) -> str:
    return str(parse_count(value))


def search(
    pattern: str,
    group: int = 1,
    transform: Callable[[str], Any] = _strip,
    source: str = "text",
) -> FallbackRule:
    """Build a rule returning ``transform(match.group(group))`` of the first match.

    Args:
        pattern: Case-insensitive regular expression
        group: Capture group to return (0 for the whole match)
        transform: Conversion applied to the captured text
        source: ParsedDocument attribute to scan ("text", "html" or "raw_html")
    """
    compiled = re.compile(pattern, re.IGNORECASE)

    def rule(doc: ParsedDocument, partial: Partial) -> Optional[Any]:
        match = compiled.search(getattr(doc, source))
        if not match or match.group(group) is None:
            return None
        return transform(match.group(group))

    rule.__name__ = f"search({pattern!r})"
    return rule


def server_status_sentence(doc: ParsedDocument, partial: Partial) -> Optional[str]:
    match = re.search(r"Server is currently (up|down)", doc.text, re.IGNORECASE)
    if not match:
        return None
    return f"Server is currently {match.group(1)}."


def server_up_from_status(doc: ParsedDocument, partial: Partial) -> Optional[bool]:
    return classify_up(partial.get("server_status"), SERVER_UP_KEYWORDS)


def stream_up_from_status(doc: ParsedDocument, partial: Partial) -> Optional[bool]:
    return classify_up(partial.get("stream_status"), STREAM_UP_KEYWORDS)


def host_of_audio_url(doc: ParsedDocument, partial: Partial) -> Optional[str]:
    """Host of the playable URL without a leading ``www.`` label."""
    audio_url = partial.get("audio_stream_url")
    if not audio_url:
        return None
    host = urlparse(audio_url).hostname
    if not host:
        return None
    if host.startswith("www."):
        host = host[len("www."):]
    return host


_GENRE_UNTIL_LABEL = (
    r"(?:Stream Genre|Genre)\s*[:\-]?\s*([\s\S]*?)(?=(?:"
    + "|".join(re.escape(token) for token in LABEL_TOKENS)
    + r"|$))"
)

# Field -> ordered rules. Dict order is execution order: derived fields come
# after the fields they are derived from.
FALLBACK_RULES: Dict[str, List[FallbackRule]] = {
    "stream_title": [
        search(r"(?:Stream Title|Station Name|Stream:)\s*[:\-]?\s*([^\n\r]+)"),
    ],
    "current_song": [
        search(r"(?:Current Song|Now Playing)\s*[:\-]?\s*([^\n\r]+)"),
    ],
    "audio_stream_url": [
        search(r"(https?://[^\s\"'<>]+/;?)", source="raw_html"),
    ],
    "bitrate_kbps": [
        search(r"(\d+)\s*kbps", transform=_count_text),
    ],
    "current_listeners": [
        search(r"(\d+)\s+of\s+(\d+)\s+listeners", group=1, transform=parse_count),
        search(r"(\d+)\s+listeners", transform=parse_count),
    ],
    "max_listeners": [
        search(r"(\d+)\s+of\s+(\d+)\s+listeners", group=2, transform=parse_count),
    ],
    "unique_listeners": [
        search(r"\((\d+)\s*unique\)", transform=parse_count),
    ],
    "listener_peak": [
        search(
            r"(listener peak|peak listeners|peak)\s*[:\-]?\s*(\d[\d.]*)",
            group=2,
            transform=_count_text,
        ),
    ],
    "avg_listen_time": [
        search(r"(?:average|avg) listen time\s*[:\-]?\s*([^\n\r]+)"),
    ],
    "stream_genre": [
        search(_GENRE_UNTIL_LABEL, transform=sanitize, source="html"),
        search(r"(?:Stream Genre|Genre)\s*[:\-]?\s*([^\n\r]*)", transform=sanitize),
    ],
    "server_status": [server_status_sentence],
    "is_server_up": [server_up_from_status],
    "stream_status": [
        search(r"Stream (is|:)\s*([^\n\r]+)", group=0),
    ],
    # Derivations
    "stream_url": [host_of_audio_url],
    "content_type": [search(r"audio/[a-z0-9.+-]+", group=0)],
    "is_stream_up": [stream_up_from_status],
}


def apply_fallbacks(
    doc: ParsedDocument,
    partial: Partial,
    rules: Optional[Dict[str, List[FallbackRule]]] = None,
) -> Partial:
    """Fill unset fields of ``partial`` in place using the ordered rules.

    A rule that raises is treated as "no value"; it never blocks other fields.
    """
    if rules is None:
        rules = FALLBACK_RULES

    for name, field_rules in rules.items():
        if not is_unset(partial.get(name)):
            continue
        for rule in field_rules:
            try:
                value = rule(doc, partial)
            except Exception as e:
                logger.debug(f"Fallback {getattr(rule, '__name__', rule)} for {name} failed: {e}")
                continue
            if not is_unset(value):
                partial[name] = value
                break

    return partial


def extract(html: str, now: Optional[datetime] = None) -> StatusRecord:
    """Build a complete StatusRecord from a status page.

    Args:
        html: Status page body
        now: Timestamp stored as ``last_updated`` (defaults to current UTC time)

    Returns:
        Record with every field populated or zero-valued

    Raises:
        MalformedDocument: If the body is not text or cannot be parsed at all
    """
    if not isinstance(html, str):
        raise MalformedDocument(f"Expected HTML text, got {type(html).__name__}")

    try:
        doc = ParsedDocument.parse(html)
    except Exception as e:
        raise MalformedDocument(f"Could not parse status page: {e}", e) from e

    partial = table_pass(doc.soup)
    apply_fallbacks(doc, partial)

    values = {name: value for name, value in partial.items() if not is_unset(value)}
    return StatusRecord(**values, last_updated=now or utc_now())


class StatusExtractor:
    """Fetches the status page and extracts a record from it."""

    def __init__(self, client):
        """Initialize extractor.

        Args:
            client: Object with an async ``fetch_status_page()`` returning HTML
        """
        self.client = client

    def extract(self, html: str, now: Optional[datetime] = None) -> StatusRecord:
        return extract(html, now)

    async def scrape(self) -> StatusRecord:
        """Fetch and extract one record.

        Raises:
            ExtractionFailure: If the fetch fails or the page is unusable
        """
        html = await self.client.fetch_status_page()
        record = self.extract(html)
        logger.debug(
            f"Extracted status: server_up={record.is_server_up} "
            f"stream_up={record.is_stream_up} listeners={record.current_listeners}"
        )
        return record
