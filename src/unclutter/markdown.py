"""Markdown rendering of extraction results."""

from __future__ import annotations

import re
from datetime import datetime, timezone

import yaml
from markdownify import markdownify

from unclutter.extractors import ExtractionResult

_BLANK_RUNS = re.compile(r"\n{3,}")
_TRAILING_SPACE = re.compile(r"[ \t]+\n")


def to_markdown(content: str) -> str:
    """Convert extracted HTML to markdown with ATX headings and ``-`` bullets.

    markdownify drops ``<script>`` and ``<style>`` along with their text.
    """
    if not content or not content.strip():
        return ""
    text = markdownify(
        content,
        heading_style="ATX",
        bullets="-",
    )
    text = _TRAILING_SPACE.sub("\n", text)
    return _BLANK_RUNS.sub("\n\n", text).strip() + "\n"


def frontmatter_fields(result: ExtractionResult, created: datetime | None = None) -> dict:
    """The frontmatter values for a result, with empty ones left out."""
    created = created or datetime.now(timezone.utc)
    fields = {
        "title": result.title,
        "author": result.author,
        "published": result.published,
        "source": result.url,
        "domain": result.domain,
        "site": result.site,
        "description": result.description,
        "word_count": result.word_count,
        "created": created.strftime("%Y-%m-%d"),
    }
    return {k: v for k, v in fields.items() if v not in ("", None)}


def build_frontmatter(result: ExtractionResult, created: datetime | None = None) -> str:
    """YAML frontmatter block delimited by ``---`` lines."""
    body = yaml.safe_dump(
        frontmatter_fields(result, created),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=1000,
    )
    return f"---\n{body}---\n"


def render_markdown(result: ExtractionResult, created: datetime | None = None) -> str:
    """Frontmatter, a level-one title heading and the converted content."""
    parts = [build_frontmatter(result, created)]
    if result.title:
        parts.append(f"# {result.title}\n")
    body = to_markdown(result.content)
    if body:
        parts.append(body)
    return "\n".join(parts)
