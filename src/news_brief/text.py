"""Text cleanup helpers shared by the fetcher and the synthesizer."""

import html
import re

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")


def clean_text(text: str | None) -> str:
    """Decode HTML entities, strip tags and collapse whitespace.

    Feeds often entity-encode their markup (``&lt;a href=...&gt;``), so
    entities are decoded before tags are removed. Non-breaking spaces
    collapse like any other whitespace.
    """
    if not text:
        return ""
    decoded = html.unescape(text)
    stripped = _TAG_RE.sub(" ", decoded)
    return _WS_RE.sub(" ", stripped).strip()
