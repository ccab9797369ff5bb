"""Field parsers for SHOUTcast status values.

Pure functions that turn raw cell or sentence text into typed values.
None of them raise on malformed input.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional

_DIGITS = re.compile(r"(\d+)")
_BITRATE = re.compile(r"(\d+)\s*kbps", re.IGNORECASE)
_WITH_OF = re.compile(r"with\s+(\d+)\s+of\s+(\d+)", re.IGNORECASE)
_UNIQUE = re.compile(r"\((\d+)\s*unique\)", re.IGNORECASE)

SERVER_UP_KEYWORDS = frozenset(["up"])
STREAM_UP_KEYWORDS = frozenset(["stream", "up"])


def find_count(raw: Optional[str]) -> Optional[int]:
    """Extract the first digit run, ignoring thousand-separator dots.

    Returns:
        The parsed integer, or None when the input holds no digits
    """
    if raw is None:
        return None
    match = _DIGITS.search(str(raw).replace(".", ""))
    if not match:
        return None
    return int(match.group(1))


def parse_count(raw: Optional[str]) -> int:
    """Like find_count but returns 0 when no digits are present.

    >>> parse_count("1.234 listeners")
    1234
    >>> parse_count("")
    0
    """
    value = find_count(raw)
    return value if value is not None else 0


def classify_up(raw: Optional[str], keywords: Iterable[str]) -> bool:
    """Case-insensitive substring test of ``raw`` against any keyword."""
    if not raw:
        return False
    text = str(raw).lower()
    return any(keyword.lower() in text for keyword in keywords)


@dataclass(frozen=True)
class StreamStatusDetails:
    """Numbers embedded in a "Stream is up at ..." sentence.

    Each field is None when its sub-pattern did not match.
    """

    bitrate_kbps: Optional[str] = None
    current_listeners: Optional[int] = None
    max_listeners: Optional[int] = None
    unique_listeners: Optional[int] = None


def parse_stream_status(raw: Optional[str]) -> StreamStatusDetails:
    """Split a stream status sentence into bitrate and listener counts.

    Format: ``"<adjective> at <N> kbps with <N> of <N> listeners (<N> unique)"``.
    The three sub-patterns are matched independently.
    """
    if not raw:
        return StreamStatusDetails()

    bitrate = None
    current = None
    maximum = None
    unique = None

    match = _BITRATE.search(raw)
    if match:
        bitrate = str(parse_count(match.group(1)))

    match = _WITH_OF.search(raw)
    if match:
        current = parse_count(match.group(1))
        maximum = parse_count(match.group(2))

    match = _UNIQUE.search(raw)
    if match:
        unique = parse_count(match.group(1))

    return StreamStatusDetails(
        bitrate_kbps=bitrate,
        current_listeners=current,
        max_listeners=maximum,
        unique_listeners=unique,
    )
