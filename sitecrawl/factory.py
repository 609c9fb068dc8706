"""Crawl strategy selection behind one capability interface."""

from __future__ import annotations

from typing import Any, Protocol, Sequence

from .config import CrawlConfig
from .fetcher import LinkSource
from .frontier import EnqueueResult
from .pool import TaskExecutor
from .scheduler import CrawlScheduler
from .types import CrawlStatus, CrawlType


class CrawlManager(Protocol):
    """Everything a request-handling layer needs from a running crawl."""

    crawl_id: str

    def start(self) -> CrawlStatus:
        ...

    def stop(self) -> CrawlStatus:
        ...

    def is_running(self) -> bool:
        ...

    def enqueue(self, url: str | None, depth: int, *, referrer: str | None = None) -> EnqueueResult:
        ...

    def status_snapshot(self) -> dict[str, Any]:
        ...

    def results(self) -> dict[str, list[str]]:
        ...

    def visited_urls(self) -> set[str]:
        ...

    def wait(self, timeout: float | None = None) -> bool:
        ...

    @property
    def status(self) -> CrawlStatus:
        ...


def create_scheduler(
    seed_urls: Sequence[str] | None,
    max_pages: int | None = None,
    max_depth: int | None = None,
    timeout_seconds: float | None = None,
    *,
    pool: TaskExecutor,
    crawl_type: CrawlType | str = CrawlType.SINGLE_DOMAIN,
    extractor: LinkSource | None = None,
    config: CrawlConfig | None = None,
    crawl_id: str | None = None,
) -> CrawlManager:
    """Build the crawl manager for `crawl_type`.

    SINGLE_DOMAIN keeps every URL on the seed hosts. MULTI_DOMAIN shares the
    same engine with host scoping switched off; seeds still have to parse.
    Raises `ConfigurationError` before any job exists when the seeds are
    unusable.
    """

    resolved_config = config or CrawlConfig()
    resolved_type = CrawlType.parse(crawl_type)

    return CrawlScheduler(
        seed_urls,
        resolved_config.default_max_pages if max_pages is None else max_pages,
        resolved_config.default_max_depth if max_depth is None else max_depth,
        timeout_seconds,
        pool=pool,
        extractor=extractor,
        config=resolved_config,
        crawl_type=resolved_type,
        crawl_id=crawl_id,
    )


__all__ = [
    "CrawlManager",
    "create_scheduler",
]
