"""Tests for per-user news aggregation."""

import asyncio

import pytest
from fakes import FakeSource, make_article, no_sleep

from news_brief.aggregator import NewsAggregator, max_articles_for_priority
from news_brief.cache import NewsCache
from news_brief.errors import NotFoundError
from news_brief.fetcher import NewsFetcher
from news_brief.models import Topic, User
from news_brief.stores import (
    InMemorySubscriptionStore,
    InMemoryTopicStore,
    InMemoryUserStore,
)


def _many(prefix: str, n: int):
    return [
        make_article(title=f"{prefix} story {i}", url=f"https://{prefix}.com/{i}")
        for i in range(n)
    ]


def _build(topics: list[Topic], subs: list[tuple[str, str, int]], source: FakeSource):
    topic_store = InMemoryTopicStore(topics)
    users = InMemoryUserStore([User(id=uid) for uid in {s[0] for s in subs}])
    sub_store = InMemorySubscriptionStore(topic_store, users)

    async def seed():
        for user_id, topic_id, priority in subs:
            await sub_store.upsert(user_id, topic_id, priority)

    asyncio.run(seed())
    fetcher = NewsFetcher(source, sleep=no_sleep)
    return NewsAggregator(sub_store, topic_store, fetcher, NewsCache())


class TestMaxArticlesForPriority:
    @pytest.mark.parametrize(
        "priority,expected",
        [(10, 7), (9, 5), (8, 5), (7, 5), (6, 3), (5, 3), (4, 3), (3, 2), (2, 2), (1, 2)],
    )
    def test_mapping(self, priority, expected):
        assert max_articles_for_priority(priority) == expected


class TestAggregateForUser:
    def test_priority_limits(self):
        """Priorities 10, 8, 5, 2 → at most 7, 5, 3, 2 articles"""
        topics = [Topic(id=t, name=t.upper(), keywords=[t]) for t in ("p10", "p8", "p5", "p2")]
        source = FakeSource({(t.id,): _many(t.id, 10) for t in topics})
        agg = _build(
            topics,
            [("u1", "p10", 10), ("u1", "p8", 8), ("u1", "p5", 5), ("u1", "p2", 2)],
            source,
        )

        result = asyncio.run(agg.aggregate_for_user("u1"))
        assert [tn.topic_id for tn in result] == ["p10", "p8", "p5", "p2"]
        assert [len(tn.articles) for tn in result] == [7, 5, 3, 2]

    def test_bitcoin_scenario(self):
        """One Bitcoin subscription at priority 5: title matches first, at most 3"""
        articles = [
            make_article(title="Markets close mixed", url="https://n.com/1"),
            make_article(title="Bitcoin hits record high", url="https://n.com/2"),
            make_article(title="Central bank holds rates", url="https://n.com/3"),
            make_article(title="Bitcoin ETF inflows surge", url="https://n.com/4"),
        ]
        topic = Topic(id="crypto", name="Crypto", keywords=["Bitcoin"])
        agg = _build([topic], [("u1", "crypto", 5)], FakeSource({("Bitcoin",): articles}))

        [tn] = asyncio.run(agg.aggregate_for_user("u1"))
        assert len(tn.articles) <= 3
        assert all("Bitcoin" in a.title for a in tn.articles[:2])
        scores = [a.score for a in tn.articles]
        assert scores == sorted(scores, reverse=True)

    def test_cross_topic_dedup(self):
        """An article matching two topics lands under the better-scoring one"""
        shared = make_article(title="Bitcoin and the stock market", url="https://n.com/shared")
        crypto = Topic(id="crypto", name="Crypto", keywords=["Bitcoin"])
        stocks = Topic(id="stocks", name="Stocks", keywords=["stock market", "Dow"])
        source = FakeSource({
            ("Bitcoin",): [shared, make_article(title="Bitcoin dips", url="https://n.com/c")],
            ("stock market", "Dow"): [shared],
        })
        agg = _build([crypto, stocks], [("u1", "crypto", 5), ("u1", "stocks", 5)], source)

        result = asyncio.run(agg.aggregate_for_user("u1"))
        urls = [a.url for tn in result for a in tn.articles]
        assert urls.count("https://n.com/shared") == 1

    def test_topic_category_carried(self):
        topic = Topic(id="crypto", name="Crypto", category="finance", keywords=["Bitcoin"])
        agg = _build([topic], [("u1", "crypto", 5)], FakeSource(default=_many("btc", 2)))
        [tn] = asyncio.run(agg.aggregate_for_user("u1"))
        assert tn.category == "finance"

    def test_no_subscriptions(self):
        agg = _build([], [], FakeSource())
        assert asyncio.run(agg.aggregate_for_user("nobody")) == []

    def test_keywordless_topic_yields_empty(self, caplog):
        topics = [
            Topic(id="empty", name="Empty", keywords=[]),
            Topic(id="ai", name="AI", keywords=["AI"]),
        ]
        source = FakeSource({("AI",): _many("ai", 2)})
        agg = _build(topics, [("u1", "empty", 9), ("u1", "ai", 5)], source)

        result = asyncio.run(agg.aggregate_for_user("u1"))
        assert result[0].articles == []
        assert len(result[1].articles) == 2
        assert "has no keywords" in caplog.text

    def test_failing_source_degrades_to_empty(self):
        topic = Topic(id="ai", name="AI", keywords=["AI"])
        agg = _build([topic], [("u1", "ai", 5)], FakeSource(fail=True))
        [tn] = asyncio.run(agg.aggregate_for_user("u1"))
        assert tn.articles == []


class TestFetchTopicNews:
    def test_cache_hit_skips_fetch(self):
        topic = Topic(id="ai", name="AI", keywords=["AI", "LLM"])
        source = FakeSource(default=_many("ai", 3))
        agg = _build([topic], [], source)

        async def scenario():
            first = await agg.fetch_topic_news(topic)
            reordered = topic.model_copy(update={"keywords": ["LLM", "AI"]})
            second = await agg.fetch_topic_news(reordered)
            return first, second

        first, second = asyncio.run(scenario())
        assert len(source.calls) == 1
        assert [a.url for a in first] == [a.url for a in second]

    def test_fetch_parameters(self):
        topic = Topic(id="ai", name="AI", keywords=["AI"])
        source = FakeSource()
        agg = _build([topic], [], source)
        asyncio.run(agg.fetch_topic_news(topic))

        [query] = source.calls
        assert query.max_results == 20
        assert query.language == "en"
        assert query.since is not None

    def test_fetch_by_topic_id(self):
        topic = Topic(id="ai", name="AI", keywords=["AI"])
        agg = _build([topic], [], FakeSource(default=_many("ai", 2)))
        assert len(asyncio.run(agg.fetch_by_topic_id("ai"))) == 2

    def test_fetch_by_topic_id_not_found(self):
        agg = _build([], [], FakeSource())
        with pytest.raises(NotFoundError):
            asyncio.run(agg.fetch_by_topic_id("missing"))

    def test_fetch_for_topics_ignores_unknown(self):
        topics = [Topic(id="a", name="A", keywords=["a"]), Topic(id="b", name="B", keywords=["b"])]
        agg = _build(topics, [], FakeSource(default=_many("x", 1)))
        result = asyncio.run(agg.fetch_for_topics(["b", "zzz"]))
        assert [tn.topic_id for tn in result] == ["b"]
