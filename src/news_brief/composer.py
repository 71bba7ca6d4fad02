"""Brief composition: topic sections + global events + subject line."""

import asyncio
import logging
from datetime import date

from .config import AppConfig
from .errors import LlmError
from .models import (
    BriefData,
    BriefPayload,
    GlobalEvent,
    GlobalEventItem,
    TopicNews,
    TopicSection,
    User,
    UserPreference,
)
from .synthesizer import Synthesizer

logger = logging.getLogger(__name__)

_SUBJECT_TOPICS = 3
_SUBJECT_PREVIEW_CHARS = 100
_SUBJECT_MAX_CHARS = 80
_QUOTE_CHARS = "\"'“”‘’`"

_SUBJECT_PROMPT = """\
Generate a short, catchy email subject line (max 60 characters) for a daily news briefing email.

The brief covers these topics and headlines:
{topic_info}

The subject should be:
- Brief and punchy (under 60 characters)
- Engaging and clickable
- Reflect the most interesting story of the day
- Not use emojis

Just respond with the subject line, nothing else.
"""


def fallback_subject(day: date | None = None) -> str:
    """Templated subject, e.g. "Your Daily Brief — Monday, Oct 19"."""
    day = day or date.today()
    return f"Your Daily Brief — {day.strftime('%A')}, {day.strftime('%b')} {day.day}"


def _subject_topic_info(sections: list[TopicSection]) -> str:
    lines = []
    for section in sections[:_SUBJECT_TOPICS]:
        if section.synthesized_summary:
            preview = section.synthesized_summary[:_SUBJECT_PREVIEW_CHARS]
        else:
            preview = section.articles[0].title if section.articles else ""
        lines.append(f"{section.name}: {preview}")
    return "\n".join(lines)


class BriefComposer:
    def __init__(self, synthesizer: Synthesizer, llm, config: AppConfig | None = None) -> None:
        self.synthesizer = synthesizer
        self.llm = llm
        self.config = config or AppConfig()

    async def compose(
        self,
        user: User,
        topic_news: list[TopicNews],
        global_events: list[GlobalEvent],
        preferences: UserPreference | None = None,
        today: date | None = None,
    ) -> BriefData:
        """Build the subject and payload for one user's brief.

        ``topic_news`` arrives in subscription-priority order and sections keep
        that order. Topics without articles are left out.
        """
        preferences = preferences or user.preference
        today = today or date.today()

        with_articles = [tn for tn in topic_news if tn.articles]
        results = await asyncio.gather(
            *(
                self.synthesizer.synthesize(tn.articles, tn.topic_name, preferences.brief_length)
                for tn in with_articles
            )
        )

        sections: list[TopicSection] = []
        for tn, result in zip(with_articles, results):
            if not result.articles:
                continue
            sections.append(
                TopicSection(
                    name=tn.topic_name,
                    category=tn.category,
                    articles=result.articles,
                    synthesized_summary=result.synthesized_summary,
                    sources=result.sources,
                )
            )

        event_items: list[GlobalEventItem] = []
        if preferences.include_global:
            event_items = [
                GlobalEventItem(
                    title=e.title,
                    description=e.description,
                    date=e.date,
                    category=e.category,
                )
                for e in global_events
            ]

        subject = await self.generate_subject(sections, today)

        app_url = self.config.brief.app_url.rstrip("/")
        payload = BriefPayload(
            user_name=user.name or "there",
            date=today,
            topics=sections,
            global_events=event_items or None,
            unsubscribe_url=f"{app_url}/dashboard/settings",
            manage_topics_url=f"{app_url}/dashboard",
        )
        logger.info(
            "Composed brief for %s: %d sections, %d events, subject=%r",
            user.id, len(sections), len(event_items), subject,
        )
        return BriefData(subject=subject, payload=payload)

    async def generate_subject(self, sections: list[TopicSection], today: date | None = None) -> str:
        """Model-written subject; the templated one on any failure."""
        fallback = fallback_subject(today)
        if not sections:
            return fallback

        prompt = _SUBJECT_PROMPT.format(topic_info=_subject_topic_info(sections))
        try:
            raw = await self.llm.complete(
                prompt,
                max_tokens=self.config.llm.subject_max_tokens,
                temperature=self.config.llm.subject_temperature,
                model=self.config.llm.subject_model,
            )
        except LlmError as e:
            logger.warning("Subject generation failed, using fallback: %s", e)
            return fallback
        except Exception:
            logger.exception("Unexpected subject generation failure")
            return fallback

        if not isinstance(raw, str):
            return fallback
        subject = raw.strip().strip(_QUOTE_CHARS).strip()
        if subject and len(subject) <= _SUBJECT_MAX_CHARS:
            return subject

        logger.warning("Discarding subject of %d chars", len(subject))
        return fallback
