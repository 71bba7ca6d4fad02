"""Local output module.

Renders a composed brief as Markdown and saves it with its JSON payload to
output/YYYY-MM-DD/<user>/. Stands in for email transport when running
locally; the HTML email template lives outside this package.
"""

import json
import logging
import re
from pathlib import Path

from .models import BriefData

logger = logging.getLogger(__name__)

_UNSAFE_RE = re.compile(r"[^A-Za-z0-9_.-]+")


def render_text(brief: BriefData) -> str:
    """Render a brief as Markdown / plain text."""
    payload = brief.payload
    lines: list[str] = []

    lines.append(f"# {brief.subject}")
    lines.append("")
    lines.append(f"Good morning, {payload.user_name}. Here is your brief for {payload.date.isoformat()}.")
    lines.append("")

    for section in payload.topics:
        lines.append(f"## {section.name}")
        lines.append("")
        if section.synthesized_summary:
            lines.append(section.synthesized_summary)
            lines.append("")
        if section.sources:
            lines.append("Sources: " + ", ".join(f"[{s.name}]({s.url})" for s in section.sources))
            lines.append("")
        else:
            for article in section.articles:
                lines.append(f"- [{article.title}]({article.source_url}) ({article.source_name})")
            lines.append("")

    if payload.global_events:
        lines.append("## Happening today")
        lines.append("")
        for event in payload.global_events:
            lines.append(f"- **{event.title}**: {event.description}")
        lines.append("")

    lines.append("---")
    lines.append(f"Manage topics: {payload.manage_topics_url}  ")
    lines.append(f"Unsubscribe: {payload.unsubscribe_url}")
    return "\n".join(lines)


def save_brief(
    brief: BriefData,
    recipient: str,
    output_dir: str = "output",
) -> Path:
    """Save one brief to local files.

    Creates:
        output/YYYY-MM-DD/<recipient>/brief.md    - Markdown brief
        output/YYYY-MM-DD/<recipient>/brief.json  - Full payload

    Returns:
        Path to the recipient's output directory.
    """
    folder = _UNSAFE_RE.sub("_", recipient) or "unknown"
    brief_dir = Path(output_dir) / brief.payload.date.isoformat() / folder
    brief_dir.mkdir(parents=True, exist_ok=True)

    md_path = brief_dir / "brief.md"
    md_path.write_text(render_text(brief), encoding="utf-8")
    logger.info("Saved Markdown brief: %s", md_path)

    json_path = brief_dir / "brief.json"
    json_path.write_text(
        json.dumps(brief.model_dump(mode="json"), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    logger.info("Saved brief payload: %s", json_path)

    return brief_dir


class OutputDirSender:
    """BriefSender that writes messages to disk instead of mailing them."""

    def __init__(self, output_dir: str = "output") -> None:
        self.output_dir = Path(output_dir)

    async def send(self, to: str, subject: str, html: str, text: str) -> str:
        folder = _UNSAFE_RE.sub("_", to) or "unknown"
        message_dir = self.output_dir / "outbox" / folder
        message_dir.mkdir(parents=True, exist_ok=True)

        index = len(list(message_dir.glob("*.md"))) + 1
        path = message_dir / f"{index:03d}.md"
        path.write_text(f"To: {to}\nSubject: {subject}\n\n{text}\n", encoding="utf-8")
        if html:
            path.with_suffix(".html").write_text(html, encoding="utf-8")

        logger.info("Wrote brief for %s to %s", to, path)
        return str(path)
