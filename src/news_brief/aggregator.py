"""News aggregation for a user's subscribed topics.

Per topic (concurrently): cache-or-fetch → score → priority limit.
Then, once every topic is in, cross-topic dedup.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from .cache import NewsCache, generate_cache_key
from .config import AppConfig
from .dedup import dedupe_across_topics
from .fetcher import NewsFetcher
from .models import ScoredArticle, Topic, TopicNews
from .scorer import score_articles
from .stores import SubscriptionStore, TopicStore

logger = logging.getLogger(__name__)


def max_articles_for_priority(priority: int) -> int:
    """How many articles a topic contributes to the brief.

    1-3 → 2, 4-6 → 3, 7-9 → 5, 10 → 7.
    """
    if priority >= 10:
        return 7
    if priority >= 7:
        return 5
    if priority >= 4:
        return 3
    return 2


class NewsAggregator:
    def __init__(
        self,
        subscriptions: SubscriptionStore,
        topics: TopicStore,
        fetcher: NewsFetcher,
        cache: NewsCache,
        config: AppConfig | None = None,
    ) -> None:
        self.subscriptions = subscriptions
        self.topics = topics
        self.fetcher = fetcher
        self.cache = cache
        self.config = config or AppConfig()

    async def fetch_topic_news(self, topic: Topic) -> list[ScoredArticle]:
        """Scored articles for one topic, served from cache when fresh.

        The cache holds raw articles; scoring always runs against the
        current time.
        """
        if not topic.keywords:
            logger.warning("Topic %s has no keywords", topic.name)
            return []

        cache_key = generate_cache_key(topic.keywords)
        articles = self.cache.get(cache_key)

        if articles is None:
            news = self.config.news
            articles = await self.fetcher.fetch_with_retry(
                keywords=topic.keywords,
                since=datetime.now(timezone.utc) - timedelta(days=news.window_days),
                max_results=news.max_results,
                language=news.language,
            )
            self.cache.set(cache_key, articles)
        else:
            logger.debug("Cache hit for topic %s (%d articles)", topic.name, len(articles))

        return score_articles(articles, topic.keywords, self.config.scoring)

    async def aggregate_for_user(self, user_id: str) -> list[TopicNews]:
        """Articles per subscribed topic, in subscription-priority order.

        Each topic is truncated to its priority limit before cross-topic
        dedup, so a topic can come back with fewer articles (or none).
        """
        subscriptions = await self.subscriptions.list_subscriptions(user_id)
        if not subscriptions:
            return []

        async def _one(topic: Topic, priority: int) -> TopicNews:
            scored = await self.fetch_topic_news(topic)
            limit = max_articles_for_priority(priority)
            return TopicNews(
                topic_id=topic.id,
                topic_name=topic.name,
                category=topic.category,
                articles=scored[:limit],
            )

        all_topic_news = await asyncio.gather(
            *(_one(sub.topic, sub.priority) for sub in subscriptions)
        )

        result = dedupe_across_topics(list(all_topic_news))
        logger.info(
            "Aggregated %d topics for user %s (%s)",
            len(result), user_id,
            ", ".join(f"{tn.topic_name}={len(tn.articles)}" for tn in result),
        )
        return result

    async def fetch_by_topic_id(self, topic_id: str) -> list[ScoredArticle]:
        """Single-topic preview. Raises NotFoundError for unknown ids."""
        topic = await self.topics.get_topic(topic_id)
        return await self.fetch_topic_news(topic)

    async def fetch_for_topics(self, topic_ids: list[str]) -> list[TopicNews]:
        """Scored news for several topics; unknown ids are ignored."""
        topics = [t for t in await self.topics.list_topics() if t.id in set(topic_ids)]

        async def _one(topic: Topic) -> TopicNews:
            return TopicNews(
                topic_id=topic.id,
                topic_name=topic.name,
                category=topic.category,
                articles=await self.fetch_topic_news(topic),
            )

        return list(await asyncio.gather(*(_one(t) for t in topics)))
