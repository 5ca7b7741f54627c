"""Page metadata: meta tags, JSON-LD and a few well-known elements."""

from __future__ import annotations

import json
import logging
from urllib.parse import urljoin, urlparse

from unclutter.dom.elements import compile_selector
from unclutter.dom.window import Window

logger = logging.getLogger(__name__)

_TITLE_SEPARATORS = (" | ", " - ", " – ", " — ", " · ", " :: ", " / ")


def collect_meta_tags(window: Window) -> list[dict]:
    """Every ``<meta>`` with content, as {name, property, content} dicts."""
    tags = []
    for meta in window.document.iter("meta"):
        content = meta.get("content")
        if content is None:
            continue
        tags.append({
            "name": meta.get("name") or meta.get("itemprop") or meta.get("http-equiv"),
            "property": meta.get("property"),
            "content": content.strip(),
        })
    return tags


def _meta_index(tags: list[dict]) -> dict[str, str]:
    index: dict[str, str] = {}
    for tag in tags:
        for key in (tag["name"], tag["property"]):
            if key and tag["content"]:
                index.setdefault(key.strip().lower(), tag["content"])
    return index


def collect_schema_org(window: Window) -> list[dict]:
    """Parse JSON-LD blocks, flattening ``@graph`` and top-level arrays."""
    items: list[dict] = []
    for script in window.document.iter("script"):
        if (script.get("type") or "").strip().lower() != "application/ld+json":
            continue
        raw = (script.text or "").strip()
        if not raw:
            continue
        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.debug("Skipping malformed JSON-LD block: %s", e)
            continue
        stack = data if isinstance(data, list) else [data]
        for entry in stack:
            if not isinstance(entry, dict):
                continue
            items.append(entry)
            graph = entry.get("@graph")
            if isinstance(graph, list):
                items.extend(g for g in graph if isinstance(g, dict))
    return items


def _name_of(value) -> str:
    """Collapse schema.org values (str, {name}, [..]) into display text."""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, dict):
        return _name_of(value.get("name") or value.get("url") or "")
    if isinstance(value, list):
        names = [n for n in (_name_of(v) for v in value) if n]
        return ", ".join(dict.fromkeys(names))
    return ""


def _schema_field(items: list[dict], key: str) -> str:
    for item in items:
        if key in item:
            value = _name_of(item[key])
            if value:
                return value
    return ""


def _first(*values: str | None) -> str:
    for value in values:
        if value and value.strip():
            return value.strip()
    return ""


def _first_text(window: Window, selector: str) -> str:
    for el in compile_selector(selector)(window.document):
        text = " ".join(el.text_content().split())
        if text:
            return text
    return ""


def clean_title(title: str, site: str) -> str:
    """Drop a leading or trailing site name joined by a common separator."""
    if not title or not site:
        return title
    for sep in _TITLE_SEPARATORS:
        if title.endswith(sep + site):
            return title[: -len(sep + site)].strip()
        if title.startswith(site + sep):
            return title[len(site + sep):].strip()
    return title


def domain_of(url: str | None) -> str:
    host = urlparse(url or "").hostname or ""
    return host[4:] if host.startswith("www.") else host


def _favicon(window: Window) -> str:
    for link in window.document.iter("link"):
        rel = (link.get("rel") or "").lower().split()
        if "icon" in rel and link.get("href"):
            return urljoin(window.url or "", link.get("href").strip())
    if window.url:
        return urljoin(window.url, "/favicon.ico")
    return ""


def extract_metadata(window: Window) -> dict:
    """Read title, author, dates and other page-level fields.

    Returns:
        dict with keys: title, description, author, published, site, image,
        favicon, domain, language, schema_org_data, meta_tags
    """
    tags = collect_meta_tags(window)
    meta = _meta_index(tags)
    schema = collect_schema_org(window)
    doc = window.document

    title_el = next(iter(doc.iter("title")), None)
    page_title = " ".join((title_el.text_content() if title_el is not None else "").split())

    domain = domain_of(window.url)
    site = _first(
        meta.get("og:site_name"),
        meta.get("application-name"),
        _name_of(next((i.get("publisher") for i in schema if "publisher" in i), None)),
    )

    article_author = meta.get("article:author", "")
    if article_author.startswith(("http://", "https://")):
        article_author = ""

    author = _first(
        meta.get("author"),
        article_author,
        meta.get("parsely-author"),
        meta.get("sailthru.author"),
        meta.get("byl"),
        _schema_field(schema, "author"),
        _first_text(window, "[rel~=author]"),
        _first_text(window, "[itemprop=author]"),
    )

    time_el = next((t for t in doc.iter("time") if t.get("datetime")), None)
    published = _first(
        meta.get("article:published_time"),
        meta.get("og:published_time"),
        _schema_field(schema, "datePublished"),
        meta.get("date"),
        meta.get("pubdate"),
        meta.get("dc.date"),
        time_el.get("datetime") if time_el is not None else None,
    )

    title = _first(
        meta.get("og:title"),
        meta.get("twitter:title"),
        _schema_field(schema, "headline"),
        page_title,
    )

    return {
        "title": clean_title(title, site),
        "description": _first(
            meta.get("description"),
            meta.get("og:description"),
            meta.get("twitter:description"),
            _schema_field(schema, "description"),
        ),
        "author": author,
        "published": published,
        "site": site or domain,
        "image": _first(
            meta.get("og:image"),
            meta.get("twitter:image"),
            _schema_field(schema, "image"),
        ),
        "favicon": _favicon(window),
        "domain": domain,
        "language": _first(
            doc.get("lang"),
            meta.get("content-language"),
            meta.get("og:locale"),
        ),
        "schema_org_data": schema,
        "meta_tags": tags,
    }
