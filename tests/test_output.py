"""Tests for Markdown rendering and local output."""

import json
from datetime import date, datetime, timezone

from news_brief.models import (
    ArticleSummary,
    BriefData,
    BriefPayload,
    GlobalEventItem,
    SourceRef,
    TopicSection,
)
from news_brief.output import render_text, save_brief


def _brief(global_events=None) -> BriefData:
    article = ArticleSummary(
        title="Bitcoin hits record",
        summary="Bitcoin rose.",
        source_url="https://n.com/btc",
        source_name="Reuters",
        published_at=datetime(2026, 10, 19, 8, tzinfo=timezone.utc),
    )
    return BriefData(
        subject="ETFs Land",
        payload=BriefPayload(
            user_name="Ada",
            date=date(2026, 10, 19),
            topics=[
                TopicSection(
                    name="Crypto",
                    articles=[article],
                    synthesized_summary="Bitcoin climbed on ETF inflows.",
                    sources=[SourceRef(name="Reuters", url="https://n.com/btc")],
                ),
                TopicSection(name="AI", articles=[article]),
            ],
            global_events=global_events,
            unsubscribe_url="http://localhost:3000/dashboard/settings",
            manage_topics_url="http://localhost:3000/dashboard",
        ),
    )


class TestRenderText:
    def test_sections(self):
        text = render_text(_brief())
        assert text.startswith("# ETFs Land")
        assert "Good morning, Ada" in text
        assert "## Crypto\n\nBitcoin climbed on ETF inflows." in text
        assert "Sources: [Reuters](https://n.com/btc)" in text
        # no sources: fall back to the article list
        assert "- [Bitcoin hits record](https://n.com/btc) (Reuters)" in text
        assert "Happening today" not in text
        assert text.endswith("Unsubscribe: http://localhost:3000/dashboard/settings")

    def test_global_events(self):
        event = GlobalEventItem(
            title="Rate decision",
            description="The Fed announces rates.",
            date=datetime(2026, 10, 19, 18, tzinfo=timezone.utc),
            category="economy",
        )
        text = render_text(_brief([event]))
        assert "## Happening today" in text
        assert "- **Rate decision**: The Fed announces rates." in text


class TestSaveBrief:
    def test_writes_markdown_and_json(self, tmp_path):
        brief_dir = save_brief(_brief(), "ada@example.com", str(tmp_path))

        assert brief_dir == tmp_path / "2026-10-19" / "ada_example.com"
        assert (brief_dir / "brief.md").read_text(encoding="utf-8").startswith("# ETFs Land")
        payload = json.loads((brief_dir / "brief.json").read_text(encoding="utf-8"))
        assert payload["subject"] == "ETFs Land"
        assert payload["payload"]["date"] == "2026-10-19"
        assert payload["payload"]["topics"][0]["sources"][0]["name"] == "Reuters"
