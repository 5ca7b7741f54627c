"""Shared fixtures for unclutter tests."""

from __future__ import annotations

import httpx
import pytest

ARTICLE_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Migrating Postgres 14 to 16 | Example Blog</title>
  <meta name="description" content="Notes from a three-week cluster upgrade.">
  <meta name="author" content="Dana Reyes">
  <meta property="og:site_name" content="Example Blog">
  <meta property="og:title" content="Migrating Postgres 14 to 16 | Example Blog">
  <meta property="og:image" content="https://example.com/cover.png">
  <meta property="article:published_time" content="2025-01-20T09:00:00Z">
  <link rel="icon" href="/static/favicon.png">
  <style>
    .promo { display: none; }
    @media (max-width: 600px) { .desktop-only { display: none; } }
    @media print { .screen-note { display: none; } }
  </style>
  <script type="application/ld+json">
    {"@context": "https://schema.org", "@type": "BlogPosting",
     "headline": "Migrating Postgres 14 to 16",
     "author": {"@type": "Person", "name": "Dana Reyes"}}
  </script>
</head>
<body>
  <nav><a href="/">Home</a> <a href="/about">About</a></nav>
  <article>
    <h1>Migrating Postgres 14 to 16</h1>
    <p>We migrated our PostgreSQL cluster from 14 to 16 in January 2025. The process
    took three weeks across our twelve-node setup. The key challenge was that our
    custom extensions required version-specific rebuilds before anything else.</p>
    <div class="promo"><p>Subscribe to our newsletter for weekly promotional offers!</p></div>
    <p>Latency improved by approximately eighteen percent on our analytical queries
    due to improved parallel query execution, but we saw a regression in write
    throughput that we traced to changed autovacuum defaults in the new release.</p>
    <p style="display:none">This paragraph is hidden inline and must not survive.</p>
    <p>Logical replication was the main driver for the upgrade, because we needed to
    replicate to our warehouse without extra tooling. It only works for tables without
    generated columns, which forced us to restructure three of our forty tables.</p>
    <p>For teams considering this upgrade, test your extension stack first. The core
    upgrade is smooth, but extension compatibility is where the surprises live.
    Read more in <a href="/notes/extensions">our extension notes</a>.</p>
    <img data-src="/images/chart.png" alt="Latency chart">
  </article>
  <footer>Copyright Example Blog</footer>
</body>
</html>
"""


@pytest.fixture
def article_html() -> str:
    return ARTICLE_HTML


@pytest.fixture
def article_file(tmp_path):
    path = tmp_path / "article.html"
    path.write_text(ARTICLE_HTML, encoding="utf-8")
    return path


def mock_client(routes: dict[str, object]) -> httpx.Client:
    """An httpx.Client answering from ``routes``.

    Values are ``(status, body)`` tuples or lists of them; a list is
    consumed one response per request, repeating its last entry.
    """
    calls: dict[str, int] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url not in routes:
            return httpx.Response(404, text="not found")
        entry = routes[url]
        if isinstance(entry, list):
            index = min(calls.get(url, 0), len(entry) - 1)
            entry = entry[index]
        calls[url] = calls.get(url, 0) + 1
        status, body = entry
        if isinstance(status, type) and issubclass(status, Exception):
            raise status(body, request=request)
        content = body.encode("utf-8") if isinstance(body, str) else body
        return httpx.Response(status, content=content,
                              headers={"Content-Type": "text/html; charset=utf-8"})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    client.calls = calls
    return client


@pytest.fixture
def no_sleep():
    """A sleep replacement recording requested delays."""
    delays: list[float] = []

    def sleep(seconds: float) -> None:
        delays.append(seconds)

    sleep.delays = delays
    return sleep


@pytest.fixture
def make_client():
    clients: list[httpx.Client] = []

    def factory(routes: dict[str, object]) -> httpx.Client:
        client = mock_client(routes)
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.close()
