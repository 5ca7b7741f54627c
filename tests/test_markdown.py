"""Tests for markdown conversion and YAML frontmatter."""

from __future__ import annotations

from datetime import datetime, timezone

import yaml

from unclutter import parse_to_markdown
from unclutter.extractors import ExtractionResult
from unclutter.markdown import build_frontmatter, frontmatter_fields, render_markdown, to_markdown

CREATED = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _result(**overrides) -> ExtractionResult:
    values = {
        "content": "<div><h2>Setup</h2><p>Install <strong>it</strong>.</p>"
                   "<ul><li>one</li><li>two</li></ul></div>",
        "title": "A Post: With Colons",
        "author": "Dana Reyes",
        "url": "https://example.com/post",
        "domain": "example.com",
        "site": "Example",
        "word_count": 6,
    }
    values.update(overrides)
    return ExtractionResult(**values)


def _split(document: str) -> tuple[dict, str]:
    assert document.startswith("---\n")
    _, header, body = document.split("---\n", 2)
    return yaml.safe_load(header), body


class TestToMarkdown:
    def test_headings_and_bullets(self):
        text = to_markdown(_result().content)
        assert "## Setup" in text
        assert "Install **it**." in text
        assert "- one" in text
        assert "- two" in text

    def test_scripts_stripped(self):
        text = to_markdown("<p>keep</p><script>var x = 1;</script>")
        assert "keep" in text
        assert "var x" not in text

    def test_blank_runs_collapsed(self):
        text = to_markdown("<p>a</p><br><br><br><p>b</p>")
        assert "\n\n\n" not in text
        assert text.endswith("b\n")

    def test_empty(self):
        assert to_markdown("") == ""
        assert to_markdown("   ") == ""


class TestFrontmatter:
    def test_fields_skip_empty(self):
        fields = frontmatter_fields(_result(description="", published=""), created=CREATED)
        assert "description" not in fields
        assert "published" not in fields
        assert fields["source"] == "https://example.com/post"
        assert fields["created"] == "2025-03-01"

    def test_field_order(self):
        fields = frontmatter_fields(_result(published="2025-01-20"), created=CREATED)
        assert list(fields) == [
            "title", "author", "published", "source", "domain", "site", "word_count", "created",
        ]

    def test_zero_word_count_kept(self):
        assert frontmatter_fields(_result(word_count=0), created=CREATED)["word_count"] == 0

    def test_yaml_is_valid(self):
        block = build_frontmatter(_result(), created=CREATED)
        assert block.startswith("---\n")
        assert block.endswith("---\n")
        data, _ = _split(block + "body")
        assert data["title"] == "A Post: With Colons"
        assert data["word_count"] == 6


class TestRenderMarkdown:
    def test_document_layout(self):
        data, body = _split(render_markdown(_result(), created=CREATED))
        assert data["author"] == "Dana Reyes"
        assert body.startswith("\n# A Post: With Colons\n")
        assert "## Setup" in body

    def test_untitled(self):
        _, body = _split(render_markdown(_result(title=""), created=CREATED))
        assert not body.lstrip().startswith("# ")

    def test_parse_to_markdown(self, article_html):
        document = parse_to_markdown(article_html, url="https://example.com/blog/post")
        data, body = _split(document)
        assert data["title"] == "Migrating Postgres 14 to 16"
        assert data["domain"] == "example.com"
        assert "# Migrating Postgres 14 to 16" in body
        assert "newsletter" not in body
