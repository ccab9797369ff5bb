"""Cleanup for free text recovered from the raw status page."""

import re

# Labels from neighbouring rows that bleed into whole-document captures
LABEL_TOKENS = (
    "Stream URL:",
    "Stream ICQ:",
    "Stream AIM:",
    "Stream IRC:",
    "Current Song:",
    "Content Type:",
    "Server Status:",
    "Stream Status:",
)

_TAGS = re.compile(r"<[^>]+>")
_LABELS = re.compile("|".join(re.escape(token) for token in LABEL_TOKENS), re.IGNORECASE)
_SCRIPT_VARS = re.compile(r"var\s+[a-zA-Z0-9_]+\s*=\s*[^;]+;")
_QUOTES = re.compile(r"['\"`]")
_WHITESPACE = re.compile(r"\s+")


def sanitize(raw) -> str:
    """Strip markup, label leftovers, script assignments and quotes.

    Idempotent: ``sanitize(sanitize(x)) == sanitize(x)``.

    >>> sanitize("Rock <script>var x=1;</script> 'Pop'")
    'Rock Pop'
    """
    if not raw:
        return ""

    text = str(raw)
    # Repeat until stable; removing one fragment can expose another
    while True:
        cleaned = _TAGS.sub(" ", text)
        cleaned = _LABELS.sub(" ", cleaned)
        cleaned = _SCRIPT_VARS.sub(" ", cleaned)
        cleaned = _QUOTES.sub(" ", cleaned)
        cleaned = _WHITESPACE.sub(" ", cleaned).strip()
        if cleaned == text:
            return cleaned
        text = cleaned
