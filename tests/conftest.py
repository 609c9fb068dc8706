"""Shared fakes for crawl engine tests.

HTTP is never hit: schedulers get a `FakeExtractor` keyed by URL, and most
tests drive them with an `InlinePool` so every task runs on the submitting
thread and the crawl is deterministic.
"""

from __future__ import annotations

import concurrent.futures as cf
import threading
import time
from typing import Any, Callable, Mapping, Sequence

import pytest

from sitecrawl.config import CrawlConfig
from sitecrawl.errors import FetchFailed
from sitecrawl.pool import WorkerPool


class FakeExtractor:
    """Link source backed by a dict of `url -> links | Exception`.

    Unknown URLs return `default`. A callable value is invoked with the URL,
    which lets a test generate links on the fly (e.g. an endless chain).
    """

    def __init__(
        self,
        pages: Mapping[str, Any] | None = None,
        *,
        default: Sequence[str] | Callable[[str], Sequence[str]] = (),
        delay_seconds: float = 0.0,
    ) -> None:
        self.pages = dict(pages or {})
        self.default = default if callable(default) else list(default)
        self.delay_seconds = delay_seconds
        self.calls: list[str] = []
        self.closed = False
        self._lock = threading.Lock()

    def extract_links(self, url: str) -> list[str]:
        with self._lock:
            self.calls.append(url)

        if self.delay_seconds:
            time.sleep(self.delay_seconds)

        value = self.pages.get(url, self.default)
        if isinstance(value, BaseException):
            raise value
        if callable(value):
            return list(value(url))
        return list(value)

    def close(self) -> None:
        self.closed = True


class InlinePool:
    """Executor that runs every task synchronously in the caller."""

    def __init__(self) -> None:
        self.submitted: list[tuple[Any, ...]] = []

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> cf.Future:
        self.submitted.append(args)
        future: cf.Future = cf.Future()
        future.set_running_or_notify_cancel()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future


def chain_links(url: str) -> list[str]:
    """Return one fresh same-host link per page: /p1 -> /p2 -> /p3 ..."""

    tail = url.rstrip("/").rsplit("/", maxsplit=1)[-1]
    index = int(tail[1:]) if tail.startswith("p") and tail[1:].isdigit() else 0
    host = url.split("/")[2]
    return [f"https://{host}/p{index + 1}"]


@pytest.fixture
def fast_config() -> CrawlConfig:
    return CrawlConfig(
        poll_interval_seconds=0.01,
        drain_grace_seconds=2.0,
        stop_wait_seconds=2.0,
        crawl_timeout_seconds=10.0,
        pool_max_workers=4,
        pool_queue_capacity=16,
    )


@pytest.fixture
def inline_pool() -> InlinePool:
    return InlinePool()


@pytest.fixture
def thread_pool():
    pool = WorkerPool(max_workers=4, queue_capacity=32)
    yield pool
    pool.shutdown(wait=True, timeout=5.0)


@pytest.fixture
def fetch_failed() -> FetchFailed:
    return FetchFailed("https://a.com/broken", "HTTP status 500", status_code=500)
