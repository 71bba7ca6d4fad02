"""News fetcher: one query → cleaned, deduplicated, capped articles.

The source adapter does the HTTP call and parsing; this module adds text
cleanup, the time window, URL dedup, the result cap, and the retry policy.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

import httpx

from .config import NewsConfig, Settings
from .dedup import dedupe_articles
from .models import NewsArticle
from .retry import RetryPolicy
from .sources import REGISTRY, BaseNewsSource, SourceQuery
from .text import clean_text

logger = logging.getLogger(__name__)

_HTTP_HEADERS = {
    "User-Agent": "NewsBrief/0.1 (+https://github.com/news-brief)",
    "Accept": "application/rss+xml, application/xml, application/json, text/xml, */*",
}


def _clean(article: NewsArticle) -> NewsArticle | None:
    title = clean_text(article.title)
    if not title:
        return None
    return article.model_copy(
        update={
            "title": title,
            "description": clean_text(article.description),
            "content": clean_text(article.content),
            "source": clean_text(article.source) or "Unknown",
        }
    )


def _in_window(article: NewsArticle, since: datetime | None) -> bool:
    if since is None:
        return True
    published = article.published_at
    if published.tzinfo is None:
        published = published.replace(tzinfo=timezone.utc)
    if since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    return published >= since


class NewsFetcher:
    """Fetch articles for a keyword set from one news source."""

    def __init__(
        self,
        source: BaseNewsSource,
        client: httpx.AsyncClient | None = None,
        retry_policy: RetryPolicy | None = None,
        timeout: float = 30.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.source = source
        self._client = client
        self.retry_policy = retry_policy or RetryPolicy()
        self.timeout = timeout
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        config: NewsConfig,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
    ) -> "NewsFetcher":
        source_cls = REGISTRY.get(config.source)
        if source_cls is None:
            raise ValueError(f"Unknown news source: {config.source} (not in registry)")

        kwargs: dict = {"url": config.url}
        if config.source == "json":
            kwargs["api_key"] = settings.news_api_key

        return cls(
            source=source_cls(**kwargs),
            client=client,
            retry_policy=RetryPolicy(
                max_attempts=config.max_attempts, base_delay=config.base_delay
            ),
            timeout=config.timeout,
        )

    async def _request(self, query: SourceQuery) -> list[NewsArticle]:
        if self._client is not None:
            return await self.source.fetch(self._client, query)
        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers=_HTTP_HEADERS,
            follow_redirects=True,
        ) as client:
            return await self.source.fetch(client, query)

    async def fetch(
        self,
        keywords: list[str],
        since: datetime | None = None,
        max_results: int = 10,
        language: str = "en",
    ) -> list[NewsArticle]:
        """Single attempt. Raises FetchError on any source failure."""
        if not keywords:
            raise ValueError("fetch requires at least one keyword")

        query = SourceQuery(
            keywords=list(keywords),
            since=since,
            max_results=max_results,
            language=language,
        )
        raw = await self._request(query)

        cleaned = [a for a in map(_clean, raw) if a is not None]
        recent = [a for a in cleaned if _in_window(a, since)]
        articles = dedupe_articles(recent)[:max_results]

        logger.debug(
            "%s: %d raw → %d articles for %s",
            self.source.name, len(raw), len(articles), keywords,
        )
        return articles

    async def fetch_with_retry(
        self,
        keywords: list[str],
        since: datetime | None = None,
        max_results: int = 10,
        language: str = "en",
    ) -> list[NewsArticle]:
        """Fetch with exponential backoff; returns [] once attempts run out.

        "No articles" is a normal outcome for callers, so this never raises
        for source failures.
        """
        if not keywords:
            raise ValueError("fetch requires at least one keyword")

        try:
            return await self.retry_policy.run(
                lambda: self.fetch(keywords, since, max_results, language),
                sleep=self._sleep,
            )
        except Exception:
            logger.exception(
                "Failed to fetch news for %s after %d attempts",
                keywords, self.retry_policy.max_attempts,
            )
            return []
