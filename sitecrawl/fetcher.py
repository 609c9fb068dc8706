"""Page fetching and link extraction over `requests` with retry logic."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Protocol

import requests

from .config import CrawlConfig
from .errors import FetchFailed, UnsupportedContentType
from .url import extract_links_from_html


LOGGER = logging.getLogger(__name__)


class LinkSource(Protocol):
    """Anything that can turn a page URL into the links found on it."""

    def extract_links(self, url: str) -> list[str]:
        ...


def is_link_bearing_content_type(content_type: str | None) -> bool:
    """Return True for text and XML documents that may carry hyperlinks."""

    normalized = (content_type or "").split(";", maxsplit=1)[0].strip().lower()
    if not normalized:
        return False
    return normalized.startswith("text/") or "xml" in normalized


class LinkExtractor:
    """Fetch a page and return the absolute http(s) links it contains.

    Concurrency model:
    - One `requests.Session` per worker thread, created lazily, so pool
      threads never share connection state.
    - Transport errors and retryable statuses (408, 429, 5xx) are retried
      with linear backoff; the last failure is raised as `FetchFailed`.
    """

    def __init__(
        self,
        config: CrawlConfig | None = None,
        *,
        strict_content_type: bool = False,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        self.config = config or CrawlConfig()
        self.strict_content_type = strict_content_type

        self._session_factory = session_factory
        self._thread_local = threading.local()

        self._sessions_lock = threading.Lock()
        self._sessions: list[requests.Session] = []

        self._closed = False

    def extract_links(self, url: str) -> list[str]:
        """Fetch `url` and return resolved links in document order.

        Non-text responses yield an empty list (or `UnsupportedContentType`
        when `strict_content_type` is set).
        """

        response = self.fetch(url)

        content_type = response.headers.get("Content-Type")
        if not is_link_bearing_content_type(content_type):
            if self.strict_content_type:
                raise UnsupportedContentType(url, content_type)
            LOGGER.warning("Unhandled content type at %s: %s", url, content_type)
            return []

        base_url = response.url or url
        return extract_links_from_html(response.content or b"", base_url=base_url)

    def fetch(self, url: str) -> requests.Response:
        """GET `url` following redirects, with retries on transient failures."""

        if self._is_closed():
            raise FetchFailed(url, "Extractor is closed")

        attempts = max(1, self.config.retries + 1)
        backoff_seconds = max(0.0, self.config.retry_backoff_seconds)
        attempt = 1
        while True:
            try:
                response = self._fetch_once(url)
            except requests.RequestException as exc:
                error = FetchFailed(url, f"{exc.__class__.__name__}: {exc}")
            else:
                if response.status_code < 400:
                    return response
                error = FetchFailed(
                    url,
                    f"HTTP status {response.status_code}",
                    status_code=response.status_code,
                )
                if not self._is_retryable_status(response.status_code):
                    raise error

            if attempt >= attempts:
                raise error

            attempt += 1
            LOGGER.debug("Retrying %s (attempt %d/%d): %s", url, attempt, attempts, error)
            if backoff_seconds > 0:
                time.sleep(backoff_seconds * (attempt - 1))

    def close(self) -> None:
        """Close every per-thread session opened by this extractor."""

        with self._sessions_lock:
            self._closed = True
            sessions, self._sessions = self._sessions, []

        for session in sessions:
            session.close()

    def __enter__(self) -> "LinkExtractor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _is_closed(self) -> bool:
        with self._sessions_lock:
            return self._closed

    @staticmethod
    def _is_retryable_status(status_code: int) -> bool:
        return status_code in {408, 429} or status_code >= 500

    def _fetch_once(self, url: str) -> requests.Response:
        session = self._thread_local_session()
        return session.get(
            url,
            headers={"User-Agent": self.config.user_agent},
            timeout=self.config.fetch_timeout_seconds,
            allow_redirects=True,
        )

    def _thread_local_session(self) -> requests.Session:
        session = getattr(self._thread_local, "session", None)
        if session is None:
            session = self._session_factory()
            session.headers["User-Agent"] = self.config.user_agent
            self._thread_local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session


__all__ = [
    "LinkExtractor",
    "LinkSource",
    "is_link_bearing_content_type",
]
