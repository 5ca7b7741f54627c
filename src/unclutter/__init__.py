"""unclutter: readable-content extraction for web pages.

Loads HTML into a virtual browser DOM, hands it to the readability
extractor, and returns the article with its title, author and metadata.
"""

from __future__ import annotations

__version__ = "0.1.0"

from unclutter.dom import Window, create_window, setup_dom_interfaces
from unclutter.errors import ExtractionError, FetchError, SitemapError, UnclutterError
from unclutter.extractors import (
    ExtractionResult,
    extract_from_file,
    extract_from_html,
    extract_from_url,
    parse,
)
from unclutter.markdown import build_frontmatter, render_markdown, to_markdown


def parse_to_markdown(markup: str | bytes, url: str | None = None) -> str:
    """Extract readable content and render it as markdown with frontmatter.

    Args:
        markup: Raw HTML.
        url: Address the page came from, if known.

    Returns:
        Markdown document starting with a YAML frontmatter block.
    """
    return render_markdown(parse(markup, url=url))


__all__ = [
    "ExtractionError",
    "ExtractionResult",
    "FetchError",
    "SitemapError",
    "UnclutterError",
    "Window",
    "build_frontmatter",
    "create_window",
    "extract_from_file",
    "extract_from_html",
    "extract_from_url",
    "parse",
    "parse_to_markdown",
    "render_markdown",
    "setup_dom_interfaces",
    "to_markdown",
]
