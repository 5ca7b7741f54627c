"""Exception types raised by unclutter."""

from __future__ import annotations


class UnclutterError(Exception):
    """Base class for all unclutter errors."""


class FetchError(UnclutterError):
    """A page or sitemap could not be retrieved."""

    def __init__(self, url: str, reason: str, status_code: int | None = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {reason}")


class SitemapError(UnclutterError):
    """A sitemap could not be fetched or parsed."""


class ExtractionError(UnclutterError):
    """The extraction library could not produce readable content."""
