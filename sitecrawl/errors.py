"""Exception types raised by the crawl engine and its collaborators."""

from __future__ import annotations


class CrawlError(Exception):
    """Base class for crawler errors."""


class ConfigurationError(CrawlError, ValueError):
    """A crawl could not be created from the given seeds/limits."""


class FetchFailed(CrawlError):
    """Downloading a page failed (transport error or HTTP error status)."""

    def __init__(self, url: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(f"{url}: {message}")
        self.url = url
        self.status_code = status_code


class UnsupportedContentType(CrawlError):
    """The page was fetched but is not a text document links can be read from."""

    def __init__(self, url: str, content_type: str | None) -> None:
        super().__init__(f"{url}: unsupported content type {content_type!r}")
        self.url = url
        self.content_type = content_type


__all__ = [
    "ConfigurationError",
    "CrawlError",
    "FetchFailed",
    "UnsupportedContentType",
]
