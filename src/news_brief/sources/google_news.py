"""Google News RSS search source.

使用 feedparser 解析 Google News RSS，无需 API key。
Free, no API key, covers every topic; parsed with feedparser.
Feed descriptions carry entity-encoded HTML linking related coverage; the
fetcher cleans that up afterwards.
"""

import logging
from calendar import timegm
from datetime import datetime, timezone

import feedparser

from ..errors import FetchError
from ..models import NewsArticle
from .base import BaseNewsSource, SourceQuery, build_search_query

logger = logging.getLogger(__name__)

GOOGLE_NEWS_RSS = "https://news.google.com/rss/search"


def _parse_published(entry: dict) -> datetime | None:
    """Try to parse the published date from a feed entry."""
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            try:
                return datetime.fromtimestamp(timegm(parsed), tz=timezone.utc)
            except (OverflowError, ValueError):
                continue
    return None


def _source_name(entry: dict) -> str:
    source = entry.get("source") or {}
    return (source.get("title") or "").strip() or "Unknown"


class GoogleNewsRssSource(BaseNewsSource):
    name = "google_news"

    def __init__(self, url: str = "") -> None:
        self.url = url or GOOGLE_NEWS_RSS

    def build_request(self, query: SourceQuery) -> tuple[str, dict[str, str]]:
        lang = query.language
        params = {
            "q": build_search_query(query.keywords),
            "hl": f"{lang}-US",
            "gl": "US",
            "ceid": f"US:{lang}",
        }
        return self.url, params

    def parse(self, body: bytes) -> list[NewsArticle]:
        feed = feedparser.parse(body)

        if feed.bozo and not feed.entries:
            raise FetchError(f"Unparseable RSS from {self.name}: {feed.bozo_exception}")

        articles: list[NewsArticle] = []
        skipped = 0
        for entry in feed.entries:
            title = (entry.get("title") or "").strip()
            link = (entry.get("link") or "").strip()
            if not title or not link:
                skipped += 1
                continue

            description = entry.get("summary", "") or ""
            articles.append(
                NewsArticle(
                    title=title,
                    description=description,
                    content=description,
                    url=link,
                    image_url=None,  # Google News RSS carries no images
                    source=_source_name(entry),
                    published_at=_parse_published(entry) or datetime.now(timezone.utc),
                )
            )

        if skipped:
            logger.debug("Google News: skipped %d malformed items", skipped)
        return articles
