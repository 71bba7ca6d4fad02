"""JSON news API source (NewsAPI-compatible wire format).

Expected payload::

    {"status": "ok", "articles": [{"title": ..., "url": ..., "source": {"name": ...}, ...}]}

Every payload is classified before use: ok / recognized error / unrecognized
shape. Only "ok" ever yields articles.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import ValidationError

from ..errors import FetchError
from ..models import NewsArticle
from .base import BaseNewsSource, SourceQuery, build_search_query

logger = logging.getLogger(__name__)

NEWSAPI_EVERYTHING = "https://newsapi.org/v2/everything"


@dataclass
class Payload:
    kind: Literal["ok", "error", "unrecognized"]
    items: list[dict[str, Any]] = field(default_factory=list)
    message: str = ""


def classify_payload(data: Any) -> Payload:
    if not isinstance(data, dict):
        return Payload("unrecognized", message=f"top-level {type(data).__name__}")
    status = data.get("status")
    if status == "error":
        return Payload("error", message=str(data.get("message") or data.get("code") or "unknown"))
    items = data.get("articles")
    if status == "ok" and isinstance(items, list):
        return Payload("ok", items=[i for i in items if isinstance(i, dict)])
    return Payload("unrecognized", message=f"keys={sorted(data)[:5]}")


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
        except ValueError:
            pass
    return datetime.now(timezone.utc)


def _to_article(item: dict[str, Any]) -> NewsArticle | None:
    title = (item.get("title") or "").strip()
    url = (item.get("url") or "").strip()
    if not title or not url:
        return None

    source = item.get("source")
    source_name = source.get("name") if isinstance(source, dict) else source
    if not isinstance(source_name, str) or not source_name.strip():
        source_name = "Unknown"
    try:
        return NewsArticle(
            title=title,
            description=item.get("description") or "",
            content=item.get("content") or item.get("description") or "",
            url=url,
            image_url=item.get("urlToImage") or item.get("image_url"),
            source=source_name.strip(),
            published_at=_parse_timestamp(item.get("publishedAt") or item.get("published_at")),
        )
    except ValidationError:
        return None


class JsonNewsSource(BaseNewsSource):
    name = "json"

    def __init__(self, url: str = "", api_key: str = "") -> None:
        self.url = url or NEWSAPI_EVERYTHING
        self.api_key = api_key

    def build_request(self, query: SourceQuery) -> tuple[str, dict[str, str]]:
        params = {
            "q": build_search_query(query.keywords),
            "language": query.language,
            "pageSize": str(query.max_results),
            "sortBy": "publishedAt",
        }
        if query.since:
            params["from"] = query.since.isoformat()
        if self.api_key:
            params["apiKey"] = self.api_key
        return self.url, params

    def parse(self, body: bytes) -> list[NewsArticle]:
        try:
            data = json.loads(body)
        except ValueError as e:
            raise FetchError(f"{self.name}: response is not JSON") from e

        payload = classify_payload(data)
        if payload.kind == "error":
            raise FetchError(f"{self.name} API error: {payload.message}")
        if payload.kind == "unrecognized":
            raise FetchError(f"{self.name}: unrecognized response shape ({payload.message})")

        articles = [a for a in map(_to_article, payload.items) if a is not None]
        skipped = len(payload.items) - len(articles)
        if skipped:
            logger.debug("JSON source: skipped %d malformed items", skipped)
        return articles
