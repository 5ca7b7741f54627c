"""HTTP fetching with retries."""

from __future__ import annotations

import logging
import time
from typing import Callable

import httpx
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from unclutter.errors import FetchError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0
MAX_BACKOFF = 30.0

HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (compatible; unclutter/0.1; +https://github.com/unclutter/unclutter)"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}


def is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def fetch(url: str, client: httpx.Client | None = None,
          timeout: float = DEFAULT_TIMEOUT) -> httpx.Response:
    """GET ``url``, following redirects.

    Raises:
        FetchError: On network failure or a non-2xx status.
    """
    try:
        if client is None:
            response = httpx.get(url, headers=HEADERS, timeout=timeout, follow_redirects=True)
        else:
            response = client.get(url, headers=HEADERS, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        raise FetchError(url, f"HTTP {status}", status_code=status) from e
    except httpx.HTTPError as e:
        raise FetchError(url, str(e) or type(e).__name__) from e
    return response


def fetch_html(url: str, client: httpx.Client | None = None,
               timeout: float = DEFAULT_TIMEOUT) -> str:
    """Fetch a page and return its decoded body."""
    return fetch(url, client=client, timeout=timeout).text


def _is_transient(exc: BaseException) -> bool:
    """Network errors, 429 and 5xx are worth retrying. Other 4xx are not."""
    if not isinstance(exc, FetchError):
        return False
    return exc.status_code is None or exc.status_code == 429 or exc.status_code >= 500


def _log_retry(retry_state) -> None:
    exc = retry_state.outcome.exception()
    logger.warning(
        "Attempt %d failed (%s); retrying in %.1fs",
        retry_state.attempt_number, exc, retry_state.next_action.sleep,
    )


def fetch_with_retry(
    url: str,
    *,
    retries: int = 3,
    backoff: float = 1.0,
    client: httpx.Client | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    fetcher: Callable[..., object] = fetch_html,
    sleep: Callable[[float], None] = time.sleep,
):
    """Call ``fetcher`` for ``url``, retrying transient failures.

    Waits ``backoff * 2**n`` seconds before retry ``n`` (capped at
    ``MAX_BACKOFF``) and re-raises the last error once ``retries`` extra
    attempts are used up.

    Args:
        url: Address to fetch.
        retries: Extra attempts after the first one.
        backoff: Base delay in seconds.
        client: Optional shared ``httpx.Client``.
        timeout: Per-request timeout in seconds.
        fetcher: Function doing a single attempt. Defaults to ``fetch_html``.
        sleep: Sleep function, replaceable in tests.
    """
    retrying = Retrying(
        stop=stop_after_attempt(max(0, retries) + 1),
        wait=wait_exponential(multiplier=backoff, max=MAX_BACKOFF),
        retry=retry_if_exception(_is_transient),
        before_sleep=_log_retry,
        sleep=sleep,
        reraise=True,
    )
    return retrying(fetcher, url, client=client, timeout=timeout)
