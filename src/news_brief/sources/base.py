"""Base news source abstract class.

A source turns a keyword query into one HTTP request and parses the body into
NewsArticle items. Retry, text cleanup, dedup and limiting live in the
fetcher, so a source only has to know its endpoint and wire format.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

import httpx

from ..errors import FetchError
from ..models import NewsArticle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceQuery:
    keywords: list[str]
    since: datetime | None = None
    max_results: int = 10
    language: str = "en"


def build_search_query(keywords: list[str]) -> str:
    """OR-join keywords; multi-word keywords become exact phrases."""
    return " OR ".join(f'"{kw}"' if " " in kw else kw for kw in keywords)


class BaseNewsSource(ABC):
    """Abstract base class for news sources.

    所有新闻源的统一接口，失败时抛出 FetchError。
    Every source exposes fetch(client, query) -> list[NewsArticle].
    """

    name: str = ""

    @abstractmethod
    def build_request(self, query: SourceQuery) -> tuple[str, dict[str, str]]:
        """Return the (url, params) pair for ``query``."""
        ...

    @abstractmethod
    def parse(self, body: bytes) -> list[NewsArticle]:
        """Parse a response body. Malformed items are skipped, not fatal."""
        ...

    async def fetch(self, client: httpx.AsyncClient, query: SourceQuery) -> list[NewsArticle]:
        url, params = self.build_request(query)
        try:
            resp = await client.get(url, params=params)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"{self.name} returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(f"{self.name} request failed: {e}") from e

        return self.parse(resp.content)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
