"""Tests for within-fetch and cross-topic deduplication."""

from fakes import make_article, make_scored

from news_brief.dedup import (
    article_key,
    dedupe_across_topics,
    dedupe_articles,
    normalize_url,
)
from news_brief.models import TopicNews


def _topic(topic_id: str, *articles) -> TopicNews:
    return TopicNews(topic_id=topic_id, topic_name=topic_id.title(), articles=list(articles))


# ── normalize_url ────────────────────────────────────────────────────────


class TestNormalizeUrl:
    def test_trailing_slash(self):
        assert normalize_url("https://example.com/story/") == normalize_url("https://example.com/story")

    def test_query_string(self):
        assert normalize_url("https://example.com/story?utm_source=x&id=1") == "https://example.com/story"

    def test_fragment(self):
        assert normalize_url("https://example.com/story#comments") == "https://example.com/story"

    def test_query_then_slash(self):
        assert normalize_url("https://example.com/story/?a=1") == "https://example.com/story"

    def test_article_key(self):
        assert article_key(make_article(url="https://example.com/a/?x=1")) == "https://example.com/a"


# ── dedupe_articles ──────────────────────────────────────────────────────


class TestDedupeArticles:
    def test_keeps_first(self):
        first = make_article(title="First", url="https://example.com/a")
        second = make_article(title="Second", url="https://example.com/a/?ref=rss")
        result = dedupe_articles([first, second])
        assert [a.title for a in result] == ["First"]

    def test_no_duplicates(self):
        items = [make_article(url=f"https://example.com/{i}") for i in range(3)]
        assert len(dedupe_articles(items)) == 3

    def test_empty(self):
        assert dedupe_articles([]) == []


# ── dedupe_across_topics ─────────────────────────────────────────────────


class TestDedupeAcrossTopics:
    def test_highest_score_wins(self):
        """Same URL under two topics (8.2 vs 5.1) stays only with the 8.2 topic"""
        shared_high = make_scored("https://news.com/shared", 8.2)
        shared_low = make_scored("https://news.com/shared", 5.1)
        result = dedupe_across_topics([
            _topic("crypto", shared_low, make_scored("https://news.com/c1", 4.0)),
            _topic("markets", shared_high),
        ])
        crypto, markets = result
        assert [a.url for a in crypto.articles] == ["https://news.com/c1"]
        assert [a.url for a in markets.articles] == ["https://news.com/shared"]

    def test_at_most_one_topic_per_url(self):
        topics = [
            _topic("a", make_scored("https://x.com/1", 3), make_scored("https://x.com/2", 9)),
            _topic("b", make_scored("https://x.com/1", 4), make_scored("https://x.com/3", 1)),
            _topic("c", make_scored("https://x.com/2", 2), make_scored("https://x.com/1/", 1)),
        ]
        result = dedupe_across_topics(topics)

        owners: dict[str, list[str]] = {}
        for tn in result:
            for a in tn.articles:
                owners.setdefault(article_key(a), []).append(tn.topic_id)
        assert owners == {
            "https://x.com/1": ["b"],
            "https://x.com/2": ["a"],
            "https://x.com/3": ["b"],
        }

    def test_tie_goes_to_earlier_topic(self):
        """Ties keep the higher-priority (earlier) topic"""
        result = dedupe_across_topics([
            _topic("first", make_scored("https://x.com/1", 5.0)),
            _topic("second", make_scored("https://x.com/1", 5.0)),
        ])
        assert len(result[0].articles) == 1
        assert result[1].articles == []

    def test_topic_can_end_up_empty(self):
        result = dedupe_across_topics([
            _topic("a", make_scored("https://x.com/1", 9.0)),
            _topic("b", make_scored("https://x.com/1", 1.0)),
        ])
        assert [tn.topic_id for tn in result] == ["a", "b"]
        assert result[1].articles == []

    def test_preserves_order_within_topic(self):
        result = dedupe_across_topics([
            _topic("a", make_scored("https://x.com/1", 9.0), make_scored("https://x.com/2", 3.0)),
        ])
        assert [a.score for a in result[0].articles] == [9.0, 3.0]

    def test_empty(self):
        assert dedupe_across_topics([]) == []
