"""Sitemap crawling: read a sitemap's URL list and extract every page."""

from __future__ import annotations

import gzip
import json
import logging
import re
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable
from urllib.parse import unquote, urlparse

import httpx
from lxml import etree

from unclutter.errors import ExtractionError, FetchError, SitemapError
from unclutter.extractors import ExtractionResult, parse
from unclutter.fetch import DEFAULT_TIMEOUT, HEADERS, fetch, fetch_with_retry, is_url
from unclutter.markdown import render_markdown

logger = logging.getLogger(__name__)

MAX_DEPTH = 3
FORMATS = {"markdown": ".md", "html": ".html", "json": ".json"}

_xml_parser = etree.XMLParser(recover=True, resolve_entities=False, no_network=True)
_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")
_BOM = b"\xef\xbb\xbf"


@dataclass
class CrawlRecord:
    """Outcome of crawling a single page."""

    url: str
    status: str  # "ok" or "failed"
    path: str | None = None
    title: str = ""
    word_count: int = 0
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    def to_dict(self) -> dict:
        return asdict(self)


def _gunzip(data: bytes) -> bytes:
    if data[:2] == b"\x1f\x8b":
        try:
            return gzip.decompress(data)
        except (OSError, EOFError) as e:
            raise SitemapError(f"Corrupt gzip sitemap: {e}") from e
    return data


def _locs(root: etree._Element, entry: str) -> list[str]:
    found = root.xpath(
        f"./*[local-name()='{entry}']/*[local-name()='loc']/text()"
    )
    return [loc.strip() for loc in found if loc.strip()]


def parse_sitemap(data: bytes | str) -> tuple[list[str], list[str]]:
    """Split a sitemap into (page URLs, child sitemap URLs).

    Accepts ``urlset`` and ``sitemapindex`` documents in any namespace,
    gzip-compressed payloads, and plain-text sitemaps with one URL per line.

    Raises:
        SitemapError: If the payload is neither XML sitemap nor URL list.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    data = _gunzip(data).removeprefix(_BOM).strip()
    if not data:
        return [], []

    if not data.startswith(b"<"):
        lines = data.decode("utf-8", errors="replace").splitlines()
        return [line.strip() for line in lines if is_url(line.strip())], []

    try:
        root = etree.fromstring(data, parser=_xml_parser)
    except etree.XMLSyntaxError as e:
        raise SitemapError(f"Invalid sitemap XML: {e}") from e
    if root is None:
        raise SitemapError("Invalid sitemap XML: no root element")

    tag = etree.QName(root).localname
    if tag == "urlset":
        return _locs(root, "url"), []
    if tag == "sitemapindex":
        return [], _locs(root, "sitemap")
    raise SitemapError(f"Not a sitemap: root element is <{tag}>")


def collect_urls(
    sitemap_url: str,
    *,
    client: httpx.Client | None = None,
    limit: int | None = None,
    include: str | None = None,
    retries: int = 3,
    backoff: float = 1.0,
    timeout: float = DEFAULT_TIMEOUT,
    sleep: Callable[[float], None] = time.sleep,
) -> list[str]:
    """Gather page URLs from a sitemap, following sitemap indexes.

    Indexes are followed up to ``MAX_DEPTH`` levels. Each sitemap is read
    once and page URLs are de-duplicated in order of appearance.

    Raises:
        SitemapError: If the top-level sitemap cannot be fetched or parsed.
    """
    visited: set[str] = set()
    urls: dict[str, None] = {}

    def full() -> bool:
        return limit is not None and len(urls) >= limit

    def visit(url: str, depth: int) -> None:
        if url in visited or full():
            return
        visited.add(url)
        try:
            response = fetch_with_retry(
                url, retries=retries, backoff=backoff, client=client,
                timeout=timeout, fetcher=fetch, sleep=sleep,
            )
            pages, children = parse_sitemap(response.content)
        except (FetchError, SitemapError) as e:
            if depth == 0:
                raise SitemapError(f"Could not read sitemap {url}: {e}") from e
            logger.warning("Skipping sitemap %s: %s", url, e)
            return

        logger.debug("Sitemap %s: %d pages, %d child sitemaps", url, len(pages), len(children))
        for page in pages:
            if include and include not in page:
                continue
            urls.setdefault(page, None)
            if full():
                return

        if children and depth >= MAX_DEPTH:
            logger.warning("Not following %d sitemaps below %s: depth limit reached",
                           len(children), url)
            return
        for child in children:
            visit(child, depth + 1)

    visit(sitemap_url, 0)
    return list(urls)


def output_path(url: str, output_dir: str | Path, fmt: str = "markdown") -> Path:
    """File a page is written to, mirroring its URL path under ``output_dir``."""
    parsed = urlparse(url)
    segments = [s for s in unquote(parsed.path).split("/") if s not in ("", ".", "..")]
    if not segments or parsed.path.endswith("/"):
        segments.append("index")
    segments = [_UNSAFE.sub("-", s).strip("-") or "_" for s in segments]

    stem = re.sub(r"\.(html?|php|aspx?)$", "", segments[-1], flags=re.IGNORECASE) or "index"
    if parsed.query:
        stem = f"{stem}-{_UNSAFE.sub('-', parsed.query).strip('-')}"
    segments[-1] = stem + FORMATS[fmt]
    return Path(output_dir).joinpath(*segments)


def _assign_paths(urls: list[str], output_dir: str | Path, fmt: str) -> dict[str, Path]:
    """Give every URL its own output file.

    URLs that map to a taken file (another host with the same path, or
    ``/a`` next to ``/a.html``) get a numbered suffix: ``a-2.md``, ``a-3.md``.
    """
    paths: dict[str, Path] = {}
    taken: set[Path] = set()
    for url in urls:
        path = output_path(url, output_dir, fmt)
        if path in taken:
            n = 2
            candidate = path.with_name(f"{path.stem}-{n}{path.suffix}")
            while candidate in taken:
                n += 1
                candidate = path.with_name(f"{path.stem}-{n}{path.suffix}")
            logger.warning("%s would overwrite %s, writing %s instead", url, path, candidate)
            path = candidate
        taken.add(path)
        paths[url] = path
    return paths


def render(result: ExtractionResult, fmt: str) -> str:
    if fmt == "markdown":
        return render_markdown(result)
    if fmt == "json":
        return json.dumps(result.to_dict(), indent=2, ensure_ascii=False) + "\n"
    return result.content


def crawl_sitemap(
    sitemap_url: str,
    output_dir: str | Path,
    *,
    fmt: str = "markdown",
    limit: int | None = None,
    include: str | None = None,
    retries: int = 3,
    backoff: float = 1.0,
    delay: float = 0.0,
    timeout: float = DEFAULT_TIMEOUT,
    client: httpx.Client | None = None,
    sleep: Callable[[float], None] = time.sleep,
    on_page: Callable[[CrawlRecord], None] | None = None,
) -> list[CrawlRecord]:
    """Extract every page listed in a sitemap into ``output_dir``.

    Pages that still fail after ``retries`` are recorded as failed and the
    crawl moves on.

    Args:
        sitemap_url: URL of the sitemap or sitemap index.
        output_dir: Directory receiving one file per page.
        fmt: One of "markdown", "html", "json".
        limit: Maximum number of pages.
        include: Only crawl URLs containing this substring.
        retries: Extra attempts per fetch.
        backoff: Base delay for exponential backoff, in seconds.
        delay: Pause between pages, in seconds.
        timeout: Per-request timeout in seconds.
        client: Optional shared ``httpx.Client``.
        sleep: Sleep function, replaceable in tests.
        on_page: Called with each record as soon as the page is done.

    Raises:
        ValueError: If ``fmt`` is unknown.
        SitemapError: If the sitemap itself cannot be read.
    """
    if fmt not in FORMATS:
        raise ValueError(f"Unknown format: {fmt!r}. Available: {', '.join(FORMATS)}")

    own_client = client is None
    if own_client:
        client = httpx.Client(headers=HEADERS, follow_redirects=True, timeout=timeout)
    try:
        urls = collect_urls(
            sitemap_url, client=client, limit=limit, include=include,
            retries=retries, backoff=backoff, timeout=timeout, sleep=sleep,
        )
        logger.info("Found %d pages in %s", len(urls), sitemap_url)

        paths = _assign_paths(urls, output_dir, fmt)
        records = []
        for index, url in enumerate(urls):
            if index and delay > 0:
                sleep(delay)
            record = _crawl_page(url, paths[url], fmt, client=client, retries=retries,
                                 backoff=backoff, timeout=timeout, sleep=sleep)
            records.append(record)
            if on_page is not None:
                on_page(record)
        return records
    finally:
        if own_client:
            client.close()


def _crawl_page(url: str, path: Path, fmt: str, *, client: httpx.Client,
                retries: int, backoff: float, timeout: float,
                sleep: Callable[[float], None]) -> CrawlRecord:
    try:
        response = fetch_with_retry(
            url, retries=retries, backoff=backoff, client=client,
            timeout=timeout, fetcher=fetch, sleep=sleep,
        )
        result = parse(response.text, url=str(response.url))
    except (FetchError, ExtractionError) as e:
        logger.warning("Failed %s: %s", url, e)
        return CrawlRecord(url=url, status="failed", error=str(e))

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render(result, fmt), encoding="utf-8")
    return CrawlRecord(
        url=url, status="ok", path=str(path),
        title=result.title, word_count=result.word_count,
    )
