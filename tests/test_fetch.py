"""Tests for HTTP fetching and retry with exponential backoff."""

from __future__ import annotations

import httpx
import pytest

from unclutter.errors import FetchError
from unclutter.fetch import MAX_BACKOFF, fetch, fetch_html, fetch_with_retry, is_url

URL = "https://example.com/page"


class TestIsUrl:
    @pytest.mark.parametrize("source, expected", [
        ("https://example.com", True),
        ("http://example.com/a", True),
        ("example.com", False),
        ("./page.html", False),
        ("-", False),
    ])
    def test_detection(self, source, expected):
        assert is_url(source) is expected


class TestFetch:
    def test_returns_body(self, make_client):
        client = make_client({URL: (200, "<p>hello</p>")})
        assert fetch_html(URL, client=client) == "<p>hello</p>"

    def test_sends_user_agent(self):
        seen = {}

        def handler(request):
            seen["ua"] = request.headers["user-agent"]
            return httpx.Response(200, text="ok")

        with httpx.Client(transport=httpx.MockTransport(handler)) as client:
            fetch(URL, client=client)
        assert "unclutter" in seen["ua"]

    def test_http_error_status(self, make_client):
        client = make_client({URL: (503, "down")})
        with pytest.raises(FetchError) as exc_info:
            fetch(URL, client=client)
        assert exc_info.value.status_code == 503
        assert str(exc_info.value) == f"Failed to fetch {URL}: HTTP 503"

    def test_network_error(self, make_client):
        client = make_client({URL: (httpx.ConnectError, "connection refused")})
        with pytest.raises(FetchError) as exc_info:
            fetch(URL, client=client)
        assert exc_info.value.status_code is None
        assert "connection refused" in exc_info.value.reason


class TestFetchWithRetry:
    def test_succeeds_after_transient_failures(self, make_client, no_sleep):
        client = make_client({URL: [(500, "err"), (502, "err"), (200, "<p>ok</p>")]})
        body = fetch_with_retry(URL, retries=3, backoff=1.0, client=client, sleep=no_sleep)
        assert body == "<p>ok</p>"
        assert client.calls[URL] == 3
        assert no_sleep.delays == [1, 2]

    def test_gives_up_after_retries(self, make_client, no_sleep):
        client = make_client({URL: (500, "err")})
        with pytest.raises(FetchError) as exc_info:
            fetch_with_retry(URL, retries=2, backoff=0.5, client=client, sleep=no_sleep)
        assert exc_info.value.status_code == 500
        assert client.calls[URL] == 3
        assert no_sleep.delays == [0.5, 1.0]

    def test_zero_retries_means_one_attempt(self, make_client, no_sleep):
        client = make_client({URL: (500, "err")})
        with pytest.raises(FetchError):
            fetch_with_retry(URL, retries=0, client=client, sleep=no_sleep)
        assert client.calls[URL] == 1
        assert no_sleep.delays == []

    def test_client_errors_not_retried(self, make_client, no_sleep):
        client = make_client({URL: (404, "missing")})
        with pytest.raises(FetchError) as exc_info:
            fetch_with_retry(URL, retries=3, client=client, sleep=no_sleep)
        assert exc_info.value.status_code == 404
        assert client.calls[URL] == 1

    def test_rate_limit_retried(self, make_client, no_sleep):
        client = make_client({URL: [(429, "slow down"), (200, "fine")]})
        assert fetch_with_retry(URL, retries=1, client=client, sleep=no_sleep) == "fine"

    def test_network_errors_retried(self, make_client, no_sleep):
        client = make_client({URL: [(httpx.ReadTimeout, "timed out"), (200, "fine")]})
        assert fetch_with_retry(URL, retries=1, client=client, sleep=no_sleep) == "fine"

    def test_backoff_capped(self, make_client, no_sleep):
        client = make_client({URL: (500, "err")})
        with pytest.raises(FetchError):
            fetch_with_retry(URL, retries=4, backoff=10.0, client=client, sleep=no_sleep)
        assert no_sleep.delays == [10, 20, MAX_BACKOFF, MAX_BACKOFF]

    def test_custom_fetcher(self, make_client, no_sleep):
        client = make_client({URL: (200, "body")})
        response = fetch_with_retry(URL, retries=0, client=client, fetcher=fetch, sleep=no_sleep)
        assert response.status_code == 200

    def test_retry_logged(self, make_client, no_sleep, caplog):
        client = make_client({URL: [(500, "err"), (200, "ok")]})
        with caplog.at_level("WARNING", logger="unclutter.fetch"):
            fetch_with_retry(URL, retries=1, client=client, sleep=no_sleep)
        assert "Attempt 1 failed" in caplog.text
