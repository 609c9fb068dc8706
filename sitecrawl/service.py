"""Crawl bookkeeping for a request-handling layer: start, track, stop, history."""

from __future__ import annotations

import logging
import threading
import uuid
from pathlib import Path
from typing import Iterable, Sequence

from .config import CrawlConfig
from .constants import REQUEST_MAX_DEPTH_LIMIT, REQUEST_MAX_PAGES_LIMIT
from .errors import ConfigurationError
from .factory import CrawlManager, create_scheduler
from .fetcher import LinkExtractor, LinkSource
from .pool import TaskExecutor
from .storage import CrawlRepository
from .types import CrawlRecord, CrawlStatus, CrawlType, utc_now_iso


LOGGER = logging.getLogger(__name__)


def parse_url_lines(lines: str | Iterable[str]) -> list[str]:
    """Return one URL per non-blank line, stripped, in input order."""

    if isinstance(lines, str):
        lines = lines.splitlines()
    return [line.strip() for line in lines if line and line.strip()]


def read_url_file(path: str | Path) -> list[str]:
    """Read a newline-separated URL list from a UTF-8 text file."""

    return parse_url_lines(Path(path).read_text(encoding="utf-8"))


def validate_request(urls: Sequence[str] | None, max_pages: int, max_depth: int) -> None:
    """Reject crawl requests outside the accepted bounds."""

    if not urls:
        raise ConfigurationError("URLs list cannot be empty")
    if not 1 <= max_pages <= REQUEST_MAX_PAGES_LIMIT:
        raise ConfigurationError(f"max_pages must be between 1 and {REQUEST_MAX_PAGES_LIMIT}")
    if not 1 <= max_depth <= REQUEST_MAX_DEPTH_LIMIT:
        raise ConfigurationError(f"max_depth must be between 1 and {REQUEST_MAX_DEPTH_LIMIT}")


class CrawlService:
    """Run crawls in the background and keep their records in a repository.

    The worker pool is shared by every crawl the service starts; the caller
    owns it and shuts it down.
    """

    def __init__(
        self,
        pool: TaskExecutor,
        repository: CrawlRepository | None = None,
        config: CrawlConfig | None = None,
        extractor: LinkSource | None = None,
    ) -> None:
        self.config = config or CrawlConfig()
        self.repository = repository or CrawlRepository(max_history=self.config.max_history)

        self._pool = pool
        self._owns_extractor = extractor is None
        self._extractor: LinkSource = extractor or LinkExtractor(self.config)

        self._lock = threading.Lock()
        self._active: dict[str, CrawlManager] = {}
        self._threads: dict[str, threading.Thread] = {}

    def start_crawl(
        self,
        urls: Sequence[str] | None,
        crawl_type: CrawlType | str = CrawlType.SINGLE_DOMAIN,
        max_pages: int | None = None,
        max_depth: int | None = None,
        timeout_seconds: float | None = None,
    ) -> str:
        """Create a crawl, record it as RUNNING, and start it on a background thread."""

        resolved_pages = self.config.default_max_pages if max_pages is None else max_pages
        resolved_depth = self.config.default_max_depth if max_depth is None else max_depth
        validate_request(urls, resolved_pages, resolved_depth)

        crawl_id = str(uuid.uuid4())
        resolved_type = CrawlType.parse(crawl_type)

        try:
            manager = create_scheduler(
                urls,
                resolved_pages,
                resolved_depth,
                timeout_seconds,
                pool=self._pool,
                crawl_type=resolved_type,
                extractor=self._extractor,
                config=self.config,
                crawl_id=crawl_id,
            )
        except ConfigurationError as exc:
            LOGGER.error("Failed to create crawl manager for %s: %s", crawl_id, exc)
            raise

        record = CrawlRecord(
            crawl_id=crawl_id,
            crawl_type=resolved_type,
            status=CrawlStatus.RUNNING,
            start_time=utc_now_iso(),
        )
        record.update_from_snapshot(manager.status_snapshot())
        record.running = True
        self.repository.save(record)

        thread = threading.Thread(
            target=self._run,
            args=(crawl_id, manager),
            name=f"crawl-{crawl_id[:8]}",
            daemon=True,
        )
        with self._lock:
            self._active[crawl_id] = manager
            self._threads[crawl_id] = thread
        thread.start()

        LOGGER.info(
            "Started crawl %s with %d URLs, maxPages: %d, maxDepth: %d",
            crawl_id,
            len(urls or []),
            record.max_pages,
            record.max_depth,
        )
        return crawl_id

    def start_crawl_from_text(
        self,
        text: str,
        crawl_type: CrawlType | str = CrawlType.SINGLE_DOMAIN,
        max_pages: int | None = None,
        max_depth: int | None = None,
        timeout_seconds: float | None = None,
    ) -> str:
        """Start a crawl from a newline-separated URL list (bulk submission)."""

        return self.start_crawl(parse_url_lines(text), crawl_type, max_pages, max_depth, timeout_seconds)

    def get_status(self, crawl_id: str) -> CrawlRecord:
        """Return the live view of an active crawl or its stored record."""

        with self._lock:
            manager = self._active.get(crawl_id)

        record = self.repository.find_by_id(crawl_id)
        if manager is not None:
            if record is None:
                record = CrawlRecord(
                    crawl_id=crawl_id,
                    crawl_type=CrawlType.SINGLE_DOMAIN,
                    status=manager.status,
                    start_time=None,
                )
            record.update_from_snapshot(manager.status_snapshot())
            record.status = manager.status
            return record

        if record is None:
            raise KeyError(f"Crawl ID not found: {crawl_id}")
        return record

    def stop_crawl(self, crawl_id: str) -> bool:
        """Stop an active crawl; returns False if it is unknown or not running."""

        with self._lock:
            manager = self._active.get(crawl_id)
        if manager is None or not manager.is_running():
            return False

        manager.stop()
        self._finalize(crawl_id, manager)
        return True

    def wait(self, crawl_id: str, timeout: float | None = None) -> bool:
        """Block until the crawl's background thread exits."""

        with self._lock:
            thread = self._threads.get(crawl_id)
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def active_crawl_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._active)

    def history(
        self,
        page: int = 0,
        size: int = 20,
        status: CrawlStatus | str | None = None,
    ) -> list[CrawlRecord]:
        return self.repository.find_all(page, size, status)

    def cleanup_history(self) -> list[str]:
        return self.repository.cleanup()

    def shutdown(self, timeout: float | None = None) -> None:
        """Stop every active crawl and release the service's own extractor."""

        for crawl_id in self.active_crawl_ids():
            self.stop_crawl(crawl_id)

        with self._lock:
            threads = list(self._threads.values())
        for thread in threads:
            thread.join(timeout)

        if self._owns_extractor and isinstance(self._extractor, LinkExtractor):
            self._extractor.close()

    def _run(self, crawl_id: str, manager: CrawlManager) -> None:
        try:
            manager.start()
        except Exception:
            LOGGER.exception("Crawl %s failed", crawl_id)
        finally:
            self._finalize(crawl_id, manager)
            with self._lock:
                self._active.pop(crawl_id, None)
                self._threads.pop(crawl_id, None)

    def _finalize(self, crawl_id: str, manager: CrawlManager) -> None:
        record = self.repository.find_by_id(crawl_id)
        if record is None:
            return

        record.update_from_snapshot(manager.status_snapshot())
        # The snapshot drops listings above snapshot_results_limit.
        record.results = manager.results()
        record.visited_urls = sorted(manager.visited_urls())
        status = manager.status
        record.status = CrawlStatus.FAILED if not status.terminal else status
        record.running = False
        if record.end_time is None:
            record.end_time = utc_now_iso()
        self.repository.save(record)

        LOGGER.info(
            "Crawl %s finished with status %s (%d pages)",
            crawl_id,
            record.status.value,
            record.processed_pages,
        )


__all__ = [
    "CrawlService",
    "parse_url_lines",
    "read_url_file",
    "validate_request",
]
