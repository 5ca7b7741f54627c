"""Content extraction from URLs and HTML."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

import httpx
from lxml import etree, html
from readability import Document
from readability.readability import Unparseable

from unclutter.dom.css import find_hidden_elements
from unclutter.dom.setup import create_window
from unclutter.dom.window import Window
from unclutter.errors import ExtractionError
from unclutter.extractors.metadata import extract_metadata
from unclutter.fetch import DEFAULT_TIMEOUT, fetch, fetch_with_retry

logger = logging.getLogger(__name__)

_LAZY_SRC_ATTRS = ("data-src", "data-lazy-src", "data-original", "data-url")
_LAZY_SRCSET_ATTRS = ("data-srcset", "data-lazy-srcset")


@dataclass
class ExtractionResult:
    """The readable part of a page and what we know about it."""

    content: str
    title: str = ""
    description: str = ""
    domain: str = ""
    favicon: str = ""
    image: str = ""
    published: str = ""
    author: str = ""
    site: str = ""
    language: str = ""
    url: str = ""
    word_count: int = 0
    parse_time: int = 0  # milliseconds
    schema_org_data: list[dict] = field(default_factory=list)
    meta_tags: list[dict] = field(default_factory=list)
    debug: dict | None = None

    # snake_case attribute -> key in the JSON output
    _KEYS = {
        "schema_org_data": "schemaOrgData",
        "meta_tags": "metaTags",
        "word_count": "wordCount",
        "parse_time": "parseTime",
    }

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dict with camelCase keys."""
        data = {}
        for name in self.__dataclass_fields__:
            if name == "debug" and self.debug is None:
                continue
            data[self._KEYS.get(name, name)] = getattr(self, name)
        return data

    def get_property(self, name: str):
        """Look up a field by its snake_case or camelCase name.

        Raises:
            KeyError: If no such field exists.
        """
        for attr in self.__dataclass_fields__:
            if name in (attr, self._KEYS.get(attr)):
                return getattr(self, attr)
        available = ", ".join(self._KEYS.get(a, a) for a in self.__dataclass_fields__)
        raise KeyError(f"Unknown property: {name!r}. Available: {available}")


def _promote_lazy_images(window: Window) -> int:
    promoted = 0
    for img in window.document.iter("img"):
        src = img.get("src") or ""
        if not src or src.startswith("data:"):
            lazy = next((img.get(a) for a in _LAZY_SRC_ATTRS if img.get(a)), None)
            if lazy:
                img.set("src", lazy.strip())
                promoted += 1
        if not img.get("srcset"):
            lazy_set = next((img.get(a) for a in _LAZY_SRCSET_ATTRS if img.get(a)), None)
            if lazy_set:
                img.set("srcset", lazy_set.strip())
    return promoted


def _clean_document(window: Window) -> dict:
    """Prepare the tree for the extraction library. Returns what changed."""
    hidden = find_hidden_elements(window)
    for el in hidden:
        if el.getparent() is not None:
            el.drop_tree()
    promoted = _promote_lazy_images(window)
    if window.url:
        window.document.make_links_absolute(window.url, handle_failures="ignore")
    return {"hidden_removed": len(hidden), "lazy_images": promoted}


def _word_count(content: str) -> int:
    if not content.strip():
        return 0
    return len(html.fromstring(content).text_content().split())


def parse(markup: str | bytes, url: str | None = None, debug: bool = False) -> ExtractionResult:
    """Run a page through the virtual DOM and the readability extractor.

    Args:
        markup: Raw HTML.
        url: Address the page came from; used to resolve links and the domain.
        debug: If True, attach cleanup statistics to the result.

    Raises:
        ExtractionError: If the document is empty or cannot be parsed.
    """
    started = time.perf_counter()
    if not markup or not markup.strip():
        raise ExtractionError("Document is empty")

    try:
        window = create_window(markup, url=url)
    except (ValueError, etree.ParserError) as e:
        raise ExtractionError(f"Could not parse document: {e}") from e

    metadata = extract_metadata(window)
    changes = _clean_document(window)
    logger.debug("Cleaned document: %s", changes)

    prepared = html.tostring(window.document, encoding="unicode")
    try:
        doc = Document(prepared, url=url)
        content = doc.summary(html_partial=True)
        fallback_title = doc.short_title()
    except Unparseable as e:
        raise ExtractionError(f"Could not extract content: {e}") from e

    elapsed = int((time.perf_counter() - started) * 1000)
    logger.debug("Parsed %s in %dms", url or "document", elapsed)

    return ExtractionResult(
        content=content,
        title=metadata["title"] or fallback_title,
        description=metadata["description"],
        domain=metadata["domain"],
        favicon=metadata["favicon"],
        image=metadata["image"],
        published=metadata["published"],
        author=metadata["author"],
        site=metadata["site"],
        language=metadata["language"],
        url=url or "",
        word_count=_word_count(content),
        parse_time=elapsed,
        schema_org_data=metadata["schema_org_data"],
        meta_tags=metadata["meta_tags"],
        debug=changes if debug else None,
    )


def extract_from_html(markup: str | bytes, url: str = "", debug: bool = False) -> ExtractionResult:
    """Extract readable content from an HTML string."""
    return parse(markup, url=url or None, debug=debug)


def extract_from_file(path: str | Path, debug: bool = False) -> ExtractionResult:
    """Read an HTML file and extract its readable content.

    The file is read as bytes so the parser can honour ``<meta charset>``.
    """
    return parse(Path(path).read_bytes(), debug=debug)


def extract_from_url(
    url: str,
    *,
    client: httpx.Client | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = 0,
    backoff: float = 1.0,
    debug: bool = False,
) -> ExtractionResult:
    """Fetch a URL and extract readable content.

    Links are resolved against the final URL after redirects.
    """
    response = fetch_with_retry(
        url, retries=retries, backoff=backoff, client=client, timeout=timeout, fetcher=fetch,
    )
    return parse(response.text, url=str(response.url), debug=debug)


__all__ = [
    "ExtractionResult",
    "extract_from_file",
    "extract_from_html",
    "extract_from_url",
    "parse",
]
