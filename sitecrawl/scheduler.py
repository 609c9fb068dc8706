"""Per-crawl orchestration: frontier, limits, lifecycle, and result aggregation."""

from __future__ import annotations

from collections import defaultdict
import logging
import threading
from typing import Any, Iterable, Sequence
import uuid

from .config import CrawlConfig
from .constants import DETAILED_REPORT_LIMIT
from .errors import ConfigurationError
from .fetcher import LinkExtractor, LinkSource
from .frontier import EnqueueResult, EnqueueStatus, Frontier
from .pool import TaskExecutor
from .types import CrawlStatus, CrawlType, WorkItem, utc_now_iso
from .url import host_from_url, normalize_url
from .worker import crawl_page


LOGGER = logging.getLogger(__name__)


def allowed_hosts_from_seeds(seed_urls: Iterable[str | None]) -> frozenset[str]:
    """Return the normalized hosts of every seed that parses as a URL."""

    hosts = (host_from_url(normalize_url(url)) for url in seed_urls)
    return frozenset(host for host in hosts if host)


class CrawlScheduler:
    """Drive one crawl job over a shared worker pool.

    Lifecycle: IDLE -> RUNNING on the first `start()`, then exactly one of
    COMPLETED, STOPPED, FAILED, or TIMED_OUT. Terminal states are final.

    Thread safety:
    - The frontier owns the visited set and performs atomic test-and-add.
    - `_results_lock` guards `results` and `processed_count` together.
    - `_pending_cond` guards the in-flight task counter and wakes the drain.
    - `_state_lock` guards status, timestamps, and the stop reason.
    """

    def __init__(
        self,
        seed_urls: Sequence[str] | None,
        max_pages: int,
        max_depth: int,
        timeout_seconds: float | None = None,
        *,
        pool: TaskExecutor,
        extractor: LinkSource | None = None,
        config: CrawlConfig | None = None,
        crawl_type: CrawlType | str = CrawlType.SINGLE_DOMAIN,
        crawl_id: str | None = None,
    ) -> None:
        if not seed_urls:
            raise ConfigurationError("At least one start URL must be provided")

        allowed_hosts = allowed_hosts_from_seeds(seed_urls)
        if not allowed_hosts:
            raise ConfigurationError("No valid domains found in start URLs")

        self.config = config or CrawlConfig()
        self.crawl_id = crawl_id or uuid.uuid4().hex
        self.crawl_type = CrawlType.parse(crawl_type)
        self.allowed_hosts = allowed_hosts

        self.max_pages = self.config.clamp_max_pages(max_pages)
        self.max_depth = self.config.clamp_max_depth(max_depth)
        self.timeout_seconds = (
            self.config.crawl_timeout_seconds if timeout_seconds is None else float(timeout_seconds)
        )
        if self.timeout_seconds <= 0:
            raise ConfigurationError("timeout_seconds must be > 0")

        self._pool = pool
        self._owns_extractor = extractor is None
        self._extractor: LinkSource = extractor or LinkExtractor(self.config)

        scope = allowed_hosts if self.crawl_type == CrawlType.SINGLE_DOMAIN else None
        self._frontier = Frontier(
            capacity=self.config.frontier_capacity(self.max_pages),
            max_depth=self.max_depth,
            allowed_hosts=scope,
        )

        self._state_lock = threading.Lock()
        self._status = CrawlStatus.IDLE
        self._stop_reason: CrawlStatus | None = None
        self._start_time: str | None = None
        self._end_time: str | None = None
        self._error: str | None = None

        self._stop_requested = threading.Event()
        self._loop_done = threading.Event()
        self._finished = threading.Event()

        self._pending_cond = threading.Condition()
        self._pending = 0

        self._results_lock = threading.Lock()
        self._results: dict[str, list[str]] = {}
        self._processed = 0

        for url in seed_urls:
            result = self.enqueue(url, 0)
            if result.status == EnqueueStatus.SKIPPED_OUT_OF_SCOPE:
                LOGGER.warning(
                    "Start URL %s is not in allowed domains %s, skipping",
                    url,
                    sorted(self.allowed_hosts),
                )

        LOGGER.info(
            "Initialized crawler %s for domains: %s, maxPages: %d, maxDepth: %d",
            self.crawl_id,
            sorted(self.allowed_hosts),
            self.max_pages,
            self.max_depth,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> CrawlStatus:
        """Run the crawl to a terminal state and return that state.

        Blocks the caller for at most `timeout_seconds` plus
        `stop_wait_seconds`. Calls after the first one are no-ops.
        """

        with self._state_lock:
            if self._status != CrawlStatus.IDLE:
                LOGGER.warning(
                    "Crawl %s already %s for domains: %s, skipping",
                    self.crawl_id,
                    self._status.value,
                    sorted(self.allowed_hosts),
                )
                return self._status
            self._status = CrawlStatus.RUNNING
            self._start_time = utc_now_iso()

        LOGGER.info(
            "Starting crawl %s for domains: %s, maxPages: %d, maxDepth: %d",
            self.crawl_id,
            sorted(self.allowed_hosts),
            self.max_pages,
            self.max_depth,
        )

        driver = threading.Thread(
            target=self._drive,
            name=f"crawl-drive-{self.crawl_id[:8]}",
            daemon=True,
        )
        driver.start()
        driver.join(self.timeout_seconds)

        if driver.is_alive():
            LOGGER.warning("Crawl %s timed out after %.1f seconds", self.crawl_id, self.timeout_seconds)
            self._request_stop(CrawlStatus.TIMED_OUT)
            self._loop_done.wait(self.config.stop_wait_seconds)
            self._finish(CrawlStatus.TIMED_OUT)

        return self.status

    def stop(self) -> CrawlStatus:
        """Ask the drive loop to exit, wait briefly, and mark the job STOPPED."""

        with self._state_lock:
            status = self._status
        if status.terminal:
            return status

        self._request_stop(CrawlStatus.STOPPED)
        if status == CrawlStatus.RUNNING:
            if not self._loop_done.wait(self.config.stop_wait_seconds):
                LOGGER.warning(
                    "Crawl %s did not wind down within %.1f seconds of stop",
                    self.crawl_id,
                    self.config.stop_wait_seconds,
                )

        self._finish(CrawlStatus.STOPPED)
        return self.status

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the job is terminal; returns False on timeout."""

        return self._finished.wait(timeout)

    def is_running(self) -> bool:
        with self._state_lock:
            return self._status == CrawlStatus.RUNNING

    @property
    def status(self) -> CrawlStatus:
        with self._state_lock:
            return self._status

    @property
    def start_time(self) -> str | None:
        with self._state_lock:
            return self._start_time

    @property
    def end_time(self) -> str | None:
        with self._state_lock:
            return self._end_time

    @property
    def error(self) -> str | None:
        with self._state_lock:
            return self._error

    # ------------------------------------------------------------------
    # Operations used by workers and callers
    # ------------------------------------------------------------------

    def enqueue(self, url: str | None, depth: int, *, referrer: str | None = None) -> EnqueueResult:
        """Offer a URL to the frontier if every scope and limit check passes."""

        if url is None:
            return EnqueueResult(EnqueueStatus.SKIPPED_INVALID_URL)
        if self._stop_requested.is_set():
            return EnqueueResult(EnqueueStatus.SKIPPED_CLOSED)
        if self.processed_count >= self.max_pages:
            return EnqueueResult(EnqueueStatus.SKIPPED_BUDGET)

        return self._frontier.offer(url, depth=depth, referrer=referrer)

    def record_result(self, url: str | None, links: Sequence[str] | None, *, depth: int = 0) -> bool:
        """Store the links found on `url` and enqueue them one level deeper.

        Returns False when the result was not stored (duplicate URL, page
        budget exhausted, or job already finished).
        """

        if url is None or links is None:
            LOGGER.warning("Null URL or links provided to record_result")
            return False

        if self.status.terminal:
            LOGGER.debug("Crawl %s finished, discarding late result for %s", self.crawl_id, url)
            return False

        limited = list(links[: self.config.max_links_per_page])

        with self._results_lock:
            if url in self._results:
                LOGGER.debug("Result for %s already recorded, ignoring", url)
                return False
            if self._processed >= self.max_pages:
                LOGGER.debug("Page budget exhausted, discarding result for %s", url)
                return False
            self._results[url] = limited
            self._processed += 1
            processed = self._processed
            total = len(self._results)

        LOGGER.info(
            "Visited [%s]: %s (found %d links) - progress: %d/%d - total results: %d",
            host_from_url(url),
            url,
            len(links),
            processed,
            self.max_pages,
            total,
        )
        if LOGGER.isEnabledFor(logging.DEBUG):
            for link in limited:
                LOGGER.debug("  -> %s", link)

        for link in links:
            if link and link.strip():
                self.enqueue(link, depth + 1, referrer=url)
        return True

    def task_completed(self) -> None:
        """Mark one in-flight worker task as finished."""

        with self._pending_cond:
            if self._pending > 0:
                self._pending -= 1
            remaining = self._pending
            self._pending_cond.notify_all()

        LOGGER.debug(
            "Task completed. Remaining tasks: %d, processed pages: %d",
            remaining,
            self.processed_count,
        )

    def in_scope(self, url: str) -> bool:
        return self._frontier.in_scope(url)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def processed_count(self) -> int:
        with self._results_lock:
            return self._processed

    @property
    def results_count(self) -> int:
        with self._results_lock:
            return len(self._results)

    @property
    def pending_count(self) -> int:
        with self._pending_cond:
            return self._pending

    @property
    def queue_size(self) -> int:
        return self._frontier.qsize()

    def results(self) -> dict[str, list[str]]:
        """Return a copy of the recorded results."""

        with self._results_lock:
            return {url: list(links) for url, links in self._results.items()}

    def visited_urls(self) -> set[str]:
        return self._frontier.visited_urls()

    def status_snapshot(self) -> dict[str, Any]:
        """Return a point-in-time copy of the job state.

        Result and visited-URL listings are replaced by `None` (with the
        matching `*_truncated` flag) once they exceed
        `snapshot_results_limit` entries.
        """

        limit = self.config.snapshot_results_limit

        with self._state_lock:
            status = self._status
            start_time = self._start_time
            end_time = self._end_time
            error = self._error

        with self._results_lock:
            processed = self._processed
            results_count = len(self._results)
            results = None
            if results_count <= limit:
                results = {url: list(links) for url, links in self._results.items()}

        visited = self._frontier.visited_urls()
        frontier_stats = self._frontier.snapshot()

        return {
            "crawl_id": self.crawl_id,
            "crawl_type": self.crawl_type.value,
            "status": status.value,
            "running": status == CrawlStatus.RUNNING,
            "completed": status.terminal,
            "processed_pages": processed,
            "pending_tasks": self.pending_count,
            "queue_size": frontier_stats["queue_size"],
            "visited_urls_count": len(visited),
            "visited_urls": sorted(visited) if len(visited) <= limit else None,
            "visited_urls_truncated": len(visited) > limit,
            "max_pages": self.max_pages,
            "max_depth": self.max_depth,
            "domains": sorted(self.allowed_hosts),
            "results_count": results_count,
            "has_results": results_count > 0,
            "results": results,
            "results_truncated": results is None,
            "start_time": start_time,
            "end_time": end_time,
            "error": error,
            "frontier": frontier_stats,
        }

    # ------------------------------------------------------------------
    # Drive loop internals
    # ------------------------------------------------------------------

    def _drive(self) -> None:
        final_status = CrawlStatus.FAILED
        try:
            try:
                self._run_loop()
            finally:
                self._loop_done.set()
            self._drain()
            with self._state_lock:
                final_status = self._stop_reason or CrawlStatus.COMPLETED
        except Exception as exc:
            LOGGER.exception("Crawl %s execution failed", self.crawl_id)
            with self._state_lock:
                self._error = f"{exc.__class__.__name__}: {exc}"
        finally:
            self._release_extractor()
            self._finish(final_status)

    def _should_continue(self) -> bool:
        return (
            self.is_running()
            and not self._stop_requested.is_set()
            and self.processed_count < self.max_pages
        )

    def _run_loop(self) -> None:
        while self._should_continue():
            item = self._frontier.poll(timeout=self.config.poll_interval_seconds)

            if item is not None:
                if item.depth <= self.max_depth:
                    if not self._should_continue():
                        break
                    self._submit(item)
            elif self.pending_count == 0 and self._frontier.empty():
                # Workers enqueue before they decrement, so an empty frontier
                # observed after pending hit zero is final.
                LOGGER.info("No more URLs to process and no pending tasks. Crawl complete.")
                break

            if self.processed_count >= self.max_pages:
                LOGGER.info("Reached maximum pages limit: %d", self.max_pages)
                break

    def _submit(self, item: WorkItem) -> None:
        with self._pending_cond:
            self._pending += 1
        try:
            self._pool.submit(crawl_page, item.url, item.depth, self, self._extractor)
        except Exception:
            self.task_completed()
            raise

    def _drain(self) -> None:
        pending = self.pending_count
        if pending:
            LOGGER.info(
                "Main crawl loop finished. Waiting for %d pending tasks to complete...",
                pending,
            )

        with self._pending_cond:
            drained = self._pending_cond.wait_for(
                lambda: self._pending == 0,
                timeout=self.config.drain_grace_seconds,
            )

        if not drained:
            LOGGER.warning(
                "Timeout waiting for %d pending tasks to complete",
                self.pending_count,
            )
        else:
            LOGGER.info(
                "All tasks completed. Final processed pages: %d, final results count: %d",
                self.processed_count,
                self.results_count,
            )

    def _request_stop(self, reason: CrawlStatus) -> None:
        with self._state_lock:
            if self._stop_reason is None:
                self._stop_reason = reason
        self._stop_requested.set()

    def _finish(self, status: CrawlStatus) -> bool:
        with self._state_lock:
            if self._status.terminal:
                return False
            never_driven = self._status == CrawlStatus.IDLE
            self._status = status
            self._end_time = utc_now_iso()

        self._frontier.close()
        # A driven crawl releases it on the drive thread after the drain.
        if never_driven:
            self._release_extractor()

        self._report_completion(status)
        self._finished.set()
        return True

    def _release_extractor(self) -> None:
        if self._owns_extractor and isinstance(self._extractor, LinkExtractor):
            self._extractor.close()

    def _report_completion(self, status: CrawlStatus) -> None:
        results = self.results()
        visited = self._frontier.visited_urls()

        LOGGER.info(
            "Crawling finished for domains: %s (status=%s)",
            sorted(self.allowed_hosts),
            status.value,
        )
        LOGGER.info("Total pages crawled: %d", self.processed_count)
        LOGGER.info("Total results collected: %d", len(results))
        LOGGER.info("Pending tasks at shutdown: %d", self.pending_count)

        if not results:
            LOGGER.warning("No results were collected during crawling")

        if len(visited) > DETAILED_REPORT_LIMIT:
            LOGGER.info(
                "Crawled %d URLs across %d domains",
                len(visited),
                len(self.allowed_hosts),
            )
            return

        by_domain: dict[str, list[str]] = defaultdict(list)
        for url in sorted(visited):
            by_domain[host_from_url(url) or "unknown"].append(url)

        LOGGER.info("Visited URLs:")
        for domain, urls in sorted(by_domain.items()):
            LOGGER.info("Domain: %s", domain)
            for url in urls:
                LOGGER.info("  * %s (found %d links)", url, len(results.get(url, [])))


__all__ = [
    "CrawlScheduler",
    "allowed_hosts_from_seeds",
]
