"""Article deduplication: within one fetch and across a user's topics.

Two layers:
1. URL normalization: drop query string and trailing slash (article identity)
2. Cross-topic assignment: an article shared by several topics stays only
   under the topic where it scored highest
"""

import logging

from .models import NewsArticle, TopicNews

logger = logging.getLogger(__name__)


# ── URL Normalization ────────────────────────────────────────────────────


def normalize_url(url: str) -> str:
    """Normalize URL for identity comparison.

    Strips the query string, fragment and trailing slash. Scheme and host are
    left alone: the news source returns canonical links already.
    """
    url = url.strip()
    url = url.split("#", 1)[0]
    url = url.split("?", 1)[0]
    return url.rstrip("/")


def article_key(article: NewsArticle) -> str:
    return normalize_url(article.url)


# ── Within-fetch dedup ───────────────────────────────────────────────────


def dedupe_articles(articles: list[NewsArticle]) -> list[NewsArticle]:
    """Remove duplicate URLs, keeping the first occurrence."""
    seen: set[str] = set()
    unique: list[NewsArticle] = []
    for article in articles:
        key = article_key(article)
        if key in seen:
            continue
        seen.add(key)
        unique.append(article)

    if len(unique) < len(articles):
        logger.debug("Dedup: %d → %d articles", len(articles), len(unique))
    return unique


# ── Cross-topic dedup ────────────────────────────────────────────────────


def dedupe_across_topics(topic_news: list[TopicNews]) -> list[TopicNews]:
    """Assign every article to the single topic where it scored best.

    First pass records, per article key, the best (topic, score) seen; ties go
    to the earlier topic (higher subscription priority). Second pass keeps in
    each topic only the articles it won. A topic may end up empty.

    Args:
        topic_news: Scored article lists per topic, in subscription order.

    Returns:
        Same topics, same order, with each article key present at most once.
    """
    # article key → (topic_id, best score)
    winners: dict[str, tuple[str, float]] = {}

    for tn in topic_news:
        for article in tn.articles:
            key = article_key(article)
            existing = winners.get(key)
            if existing is None or article.score > existing[1]:
                winners[key] = (tn.topic_id, article.score)

    result: list[TopicNews] = []
    removed = 0
    for tn in topic_news:
        kept = []
        claimed: set[str] = set()
        for article in tn.articles:
            key = article_key(article)
            # claimed guards against the same URL twice in one topic
            if winners[key][0] == tn.topic_id and key not in claimed:
                kept.append(article)
                claimed.add(key)
            else:
                removed += 1
        result.append(tn.model_copy(update={"articles": kept}))

    if removed:
        logger.info("Cross-topic dedup removed %d duplicate articles", removed)
    return result
