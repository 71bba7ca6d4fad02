"""Relevance scoring for fetched articles.

score = title_match × 5.0 + description_match × 2.0
        + recency × 1.5 + source_reliability × 1.0

Weights and decay rate are configurable (ScoringConfig); the defaults are
hand-tuned, not derived.
"""

import math
import re
from datetime import datetime, timezone

from .config import ScoringConfig, ScoringWeights
from .models import NewsArticle, ScoredArticle

# Outlets that get the full source-reliability bonus (substring match)
TRUSTED_SOURCES: tuple[str, ...] = (
    "BBC News",
    "The New York Times",
    "Reuters",
    "Associated Press",
    "The Guardian",
    "NPR",
    "The Wall Street Journal",
    "Bloomberg",
    "Financial Times",
    "The Economist",
    "CNN",
    "CNBC",
    "TechCrunch",
    "Ars Technica",
    "The Verge",
    "Wired",
)

DEFAULT_WEIGHTS = ScoringWeights()
DEFAULT_DECAY_RATE = 0.02


def keyword_score(text: str, keywords: list[str]) -> float:
    """Keyword density in ``text``, clamped to [0, 1].

    Counts case-insensitive whole-word occurrences of every keyword and
    divides by the field's word count.
    """
    if not text:
        return 0.0

    matches = 0
    for keyword in keywords:
        if not keyword:
            continue
        pattern = re.compile(rf"\b{re.escape(keyword)}\b", re.IGNORECASE)
        matches += len(pattern.findall(text))

    word_count = len(text.split())
    return min(matches / max(word_count, 1), 1.0)


def recency_score(
    published_at: datetime,
    now: datetime | None = None,
    decay_rate: float = DEFAULT_DECAY_RATE,
) -> float:
    """exp(-decay × age in hours): ~1.0 for today, small past 72h, never 0."""
    now = now or datetime.now(timezone.utc)
    if published_at.tzinfo is None:
        published_at = published_at.replace(tzinfo=timezone.utc)
    age_hours = max((now - published_at).total_seconds() / 3600, 0.0)
    return math.exp(-decay_rate * age_hours)


def source_score(source: str) -> float:
    source_lower = source.lower()
    if any(trusted.lower() in source_lower for trusted in TRUSTED_SOURCES):
        return 1.0
    return 0.5


def relevance_score(
    article: NewsArticle,
    keywords: list[str],
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    now: datetime | None = None,
    decay_rate: float = DEFAULT_DECAY_RATE,
) -> float:
    return (
        keyword_score(article.title, keywords) * weights.title_match
        + keyword_score(article.description, keywords) * weights.description_match
        + recency_score(article.published_at, now, decay_rate) * weights.recency
        + source_score(article.source) * weights.source_reliability
    )


def score_articles(
    articles: list[NewsArticle],
    keywords: list[str],
    config: ScoringConfig | None = None,
    now: datetime | None = None,
) -> list[ScoredArticle]:
    """Score articles against ``keywords`` and sort by descending score.

    The sort is stable, so ties keep the fetch order. Pass ``now`` to make
    recency reproducible.
    """
    config = config or ScoringConfig()
    now = now or datetime.now(timezone.utc)

    scored = [
        ScoredArticle(
            **article.model_dump(exclude={"score"}),
            score=relevance_score(
                article, keywords, config.weights, now, config.decay_rate
            ),
        )
        for article in articles
    ]
    scored.sort(key=lambda a: a.score, reverse=True)
    return scored
