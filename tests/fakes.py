"""Shared test doubles: article factory, scripted LLM, canned news source."""

from datetime import datetime, timedelta, timezone

from news_brief.errors import FetchError, LlmError
from news_brief.models import NewsArticle, ScoredArticle
from news_brief.sources import BaseNewsSource, SourceQuery

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def make_article(
    title: str = "Test Article",
    url: str = "https://example.com/test",
    source: str = "Example News",
    description: str = "A neutral description of the story.",
    content: str = "",
    published_at: datetime | None = None,
) -> NewsArticle:
    return NewsArticle(
        title=title,
        description=description,
        content=content or description,
        url=url,
        source=source,
        published_at=published_at or datetime.now(timezone.utc) - timedelta(hours=1),
    )


def make_scored(url: str, score: float, title: str = "Scored") -> ScoredArticle:
    return ScoredArticle(**make_article(title=title, url=url).model_dump(), score=score)


class FakeLlm:
    """Returns scripted responses in order; an Exception instance is raised."""

    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.calls: list[dict] = []

    async def complete(self, prompt, max_tokens=1000, temperature=0.7, model=None):
        self.calls.append(
            {"prompt": prompt, "max_tokens": max_tokens, "temperature": temperature, "model": model}
        )
        if not self.responses:
            raise LlmError("no scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeSource(BaseNewsSource):
    """Serves canned articles per keyword tuple; counts requests."""

    name = "fake"

    def __init__(self, articles_by_keywords=None, default=None, fail: bool = False) -> None:
        self.articles_by_keywords = articles_by_keywords or {}
        self.default = default or []
        self.fail = fail
        self.calls: list[SourceQuery] = []

    def build_request(self, query):
        return "https://fake.invalid/search", {}

    def parse(self, body):
        return []

    async def fetch(self, client, query):
        self.calls.append(query)
        if self.fail:
            raise FetchError("fake source is down")
        return list(self.articles_by_keywords.get(tuple(query.keywords), self.default))


async def no_sleep(_delay: float) -> None:
    return None
