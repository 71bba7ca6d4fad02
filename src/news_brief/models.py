"""Data models for News Brief."""

from datetime import date, datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

BriefLength = Literal["short", "medium", "long"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Stored entities
# ---------------------------------------------------------------------------

class Topic(BaseModel):
    """A keyword-tagged interest area users can subscribe to."""

    id: str
    name: str
    category: str = "general"
    keywords: list[str] = []
    description: str = ""
    is_global: bool = False


class Subscription(BaseModel):
    user_id: str
    topic: Topic
    priority: int = Field(default=5, ge=1, le=10)


class UserPreference(BaseModel):
    brief_length: BriefLength = "medium"
    include_global: bool = True
    timezone: str = "America/New_York"
    delivery_hour: int = Field(default=7, ge=0, le=23)


class User(BaseModel):
    id: str
    email: str = ""
    name: str = ""
    preference: UserPreference = UserPreference()


class GlobalEvent(BaseModel):
    title: str
    description: str = ""
    category: str = "general"
    date: datetime
    is_active: bool = True


# ---------------------------------------------------------------------------
# News pipeline (ephemeral)
# ---------------------------------------------------------------------------

class NewsArticle(BaseModel):
    """A single article as returned by the news source."""

    title: str
    description: str = ""
    content: str = ""
    url: str
    image_url: str | None = None
    source: str = "Unknown"
    published_at: datetime = Field(default_factory=_utcnow)


class ScoredArticle(NewsArticle):
    score: float = 0.0  # relevance score, >= 0


class TopicNews(BaseModel):
    """Articles selected for one topic; aggregator output, synthesizer input."""

    topic_id: str
    topic_name: str
    category: str = "general"
    articles: list[ScoredArticle] = []


class ArticleSummary(BaseModel):
    title: str
    summary: str
    source_url: str
    source_name: str
    published_at: datetime
    image_url: str | None = None


class SourceRef(BaseModel):
    name: str
    url: str


class SynthesisResult(BaseModel):
    articles: list[ArticleSummary] = []
    synthesized_summary: str = ""
    sources: list[SourceRef] = []


# ---------------------------------------------------------------------------
# Brief payload
# ---------------------------------------------------------------------------

class TopicSection(BaseModel):
    name: str
    category: str = "general"
    articles: list[ArticleSummary] = []
    synthesized_summary: str = ""
    sources: list[SourceRef] = []


class GlobalEventItem(BaseModel):
    title: str
    description: str
    date: datetime
    category: str


class BriefPayload(BaseModel):
    """Everything the renderer needs for one email."""

    user_name: str
    date: date
    topics: list[TopicSection] = []
    global_events: list[GlobalEventItem] | None = None
    unsubscribe_url: str
    manage_topics_url: str


class BriefData(BaseModel):
    subject: str
    payload: BriefPayload


# ---------------------------------------------------------------------------
# Batch processing
# ---------------------------------------------------------------------------

class BatchError(BaseModel):
    user_id: str
    error: str


class BatchResult(BaseModel):
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[BatchError] = []
