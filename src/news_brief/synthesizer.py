"""Per-topic AI synthesis.

One LLM call per topic turns the candidate articles into a single narrative
paragraph plus the list of articles it drew on:

  candidates → prompt → parse ``USED:`` line → validate
                                   ↘ (any failure) extractive fallback

The model gets more candidates than a reader will see and decides what
matters; the pipeline never drops a topic because the model misbehaved.
"""

import logging
import re

from .config import AppConfig
from .errors import LlmError
from .models import (
    ArticleSummary,
    BriefLength,
    NewsArticle,
    SourceRef,
    SynthesisResult,
)
from .text import clean_text

logger = logging.getLogger(__name__)

# Candidates handed to the model per brief length
CANDIDATE_COUNTS: dict[str, int] = {"short": 5, "medium": 7, "long": 10}

_SENTENCE_GUIDE: dict[str, str] = {
    "short": "2-4 sentences",
    "medium": "4-6 sentences",
    "long": "6-10 sentences",
}

# Cited when the model names no usable articles
_DEFAULT_CITATIONS = 3
_SUMMARY_CHARS = 300
_PROMPT_CONTENT_CHARS = 600


class SynthesisParseError(ValueError):
    """The model answered, but not with a usable synthesis."""


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

_SYNTHESIS_PROMPT = """\
You are the editor of a personal daily news briefing. Below are {count} recent \
articles about "{topic}". Write the "{topic}" section of today's brief.

Instructions:
- Decide which stories actually matter. Skip trivial items, opinion pieces, \
listicles, and articles that repeat the same story as another one.
- Write ONE flowing paragraph of {sentences} that tells the reader what happened \
and why it matters, connecting related stories where it makes sense.
- Neutral, informative tone for a general audience.
- Do not use citation markers such as [1] or (Source 2) in the paragraph, and \
do not add a heading or label.
- After the paragraph, on its own final line, write USED: followed by the \
comma-separated numbers of the articles you drew on, e.g. USED: 1, 3, 4

Articles:
{articles_text}
"""


def _build_articles_text(articles: list[NewsArticle]) -> str:
    parts: list[str] = []
    for i, article in enumerate(articles, 1):
        body = clean_text(article.content) or clean_text(article.description)
        parts.append(
            f"[{i}] {clean_text(article.title)}\n"
            f"    Source: {clean_text(article.source)}\n"
            f"    Published: {article.published_at.strftime('%Y-%m-%d %H:%M UTC')}\n"
            f"    Content: {body[:_PROMPT_CONTENT_CHARS]}"
        )
    return "\n\n".join(parts)


def build_synthesis_prompt(
    articles: list[NewsArticle], topic_name: str, brief_length: BriefLength
) -> str:
    return _SYNTHESIS_PROMPT.format(
        count=len(articles),
        topic=topic_name,
        sentences=_SENTENCE_GUIDE.get(brief_length, _SENTENCE_GUIDE["medium"]),
        articles_text=_build_articles_text(articles),
    )


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

_THINK_RE = re.compile(r"<think>.*?</think>", re.DOTALL)
_USED_RE = re.compile(r"(?:^|(?<=\s))[*_]*USED[*_]*\s*:(.*)$", re.IGNORECASE | re.MULTILINE)
# Inline markers only count when nothing but numbers follows them
_INDEX_LIST_RE = re.compile(r"^[\s*_]*\d+(?:[\s*_]*[,;]?[\s*_]*\d+)*[\s*_.]*$")
_BRACKET_NUM_RE = re.compile(r"\s*\[\d+(?:\s*[,\-–]\s*\d+)*\]")
_LABEL_RE = re.compile(
    r"^[\s*_#]*(?:summary|narrative|paragraph|synthesis|brief|section)[\s*_]*:[\s*_]*",
    re.IGNORECASE,
)
_WS_RE = re.compile(r"\s+")


def _find_used_marker(text: str) -> re.Match | None:
    """Last ``USED:`` marker, on its own line or trailing the paragraph."""
    for match in reversed(list(_USED_RE.finditer(text))):
        line_prefix = text[: match.start()].rsplit("\n", 1)[-1]
        if not line_prefix.strip() or _INDEX_LIST_RE.match(match.group(1)):
            return match
    return None


def parse_synthesis(raw: str, candidate_count: int) -> tuple[str, list[int]]:
    """Split a model response into (narrative, 0-based cited indices).

    The last ``USED:`` marker wins, whether it sits on its own line or at the
    end of the paragraph. Out-of-range and repeated indices are dropped; with
    no marker or no valid indices the first three candidates are cited.
    """
    text = _THINK_RE.sub("", raw).strip()

    indices: list[int] = []
    used = _find_used_marker(text)
    if used is not None:
        narrative = text[: used.start()]
        for token in re.findall(r"\d+", used.group(1)):
            idx = int(token) - 1
            if 0 <= idx < candidate_count and idx not in indices:
                indices.append(idx)
    else:
        narrative = text

    if not indices:
        indices = list(range(min(_DEFAULT_CITATIONS, candidate_count)))

    narrative = _BRACKET_NUM_RE.sub("", narrative)
    narrative = _LABEL_RE.sub("", narrative.strip())
    narrative = _WS_RE.sub(" ", narrative).strip()
    return narrative, indices


# ---------------------------------------------------------------------------
# Fallback
# ---------------------------------------------------------------------------

def fallback_summary(articles: list[NewsArticle], topic_name: str) -> tuple[str, list[SourceRef]]:
    """Extractive paragraph from titles, used whenever synthesis fails."""
    cited = articles[:_DEFAULT_CITATIONS]
    sources = [SourceRef(name=a.source, url=a.url) for a in cited]

    if len(cited) == 1:
        a = cited[0]
        title = clean_text(a.title).rstrip(".")
        return f"Today in {topic_name}, {a.source} reports: {title}.", sources

    headlines = "; ".join(
        f"{clean_text(a.title).rstrip('.')} ({a.source})" for a in cited
    )
    return f"Today in {topic_name}: {headlines}.", sources


def _article_summaries(articles: list[NewsArticle]) -> list[ArticleSummary]:
    return [
        ArticleSummary(
            title=clean_text(a.title),
            summary=(clean_text(a.description) or clean_text(a.content))[:_SUMMARY_CHARS],
            source_url=a.url,
            source_name=a.source,
            published_at=a.published_at,
            image_url=a.image_url,
        )
        for a in articles
    ]


# ---------------------------------------------------------------------------
# Synthesizer
# ---------------------------------------------------------------------------

class Synthesizer:
    """Turns one topic's articles into a SynthesisResult. Never raises."""

    def __init__(self, llm, config: AppConfig | None = None) -> None:
        self.llm = llm
        self.config = config or AppConfig()

    async def synthesize(
        self,
        articles: list[NewsArticle],
        topic_name: str,
        brief_length: BriefLength = "medium",
    ) -> SynthesisResult:
        if not articles:
            return SynthesisResult()

        count = CANDIDATE_COUNTS.get(brief_length, CANDIDATE_COUNTS["medium"])
        candidates = articles[:count]
        summaries = _article_summaries(candidates)

        try:
            narrative, indices = await self._synthesize(candidates, topic_name, brief_length)
        except (LlmError, SynthesisParseError) as e:
            logger.warning("Synthesis for %s fell back to extractive summary: %s", topic_name, e)
            narrative, sources = fallback_summary(candidates, topic_name)
        except Exception:
            logger.exception("Unexpected synthesis failure for %s", topic_name)
            narrative, sources = fallback_summary(candidates, topic_name)
        else:
            sources = [
                SourceRef(name=candidates[i].source, url=candidates[i].url) for i in indices
            ]
            logger.info(
                "Synthesized %s: %d chars from %d/%d articles",
                topic_name, len(narrative), len(indices), len(candidates),
            )

        return SynthesisResult(
            articles=summaries,
            synthesized_summary=narrative,
            sources=sources,
        )

    async def _synthesize(
        self,
        candidates: list[NewsArticle],
        topic_name: str,
        brief_length: BriefLength,
    ) -> tuple[str, list[int]]:
        prompt = build_synthesis_prompt(candidates, topic_name, brief_length)
        raw = await self.llm.complete(
            prompt,
            max_tokens=self.config.llm.synthesis_max_tokens,
            temperature=self.config.llm.synthesis_temperature,
        )
        if not isinstance(raw, str):
            raise SynthesisParseError(f"unexpected response type {type(raw).__name__}")

        narrative, indices = parse_synthesis(raw, len(candidates))
        min_len = self.config.brief.min_summary_length
        if len(narrative) < min_len:
            raise SynthesisParseError(
                f"narrative too short ({len(narrative)} < {min_len} chars)"
            )
        return narrative, indices
