"""News sources.

Source registry: maps config names (news.source) to their classes.
"""

from .base import BaseNewsSource, SourceQuery, build_search_query
from .google_news import GoogleNewsRssSource
from .json_source import JsonNewsSource

REGISTRY: dict[str, type[BaseNewsSource]] = {
    "google_news": GoogleNewsRssSource,
    "json": JsonNewsSource,
}

__all__ = [
    "BaseNewsSource",
    "REGISTRY",
    "SourceQuery",
    "build_search_query",
    "GoogleNewsRssSource",
    "JsonNewsSource",
]
