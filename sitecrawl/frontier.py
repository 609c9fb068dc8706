"""Per-crawl frontier: a bounded FIFO of work items plus the visited set."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
import logging
import queue
import threading
from typing import AbstractSet

from .types import WorkItem
from .url import host_from_url, normalize_url


LOGGER = logging.getLogger(__name__)


class EnqueueStatus(str, Enum):
    """Why a URL was or was not added to the frontier."""

    ENQUEUED = "enqueued"
    SKIPPED_INVALID_URL = "skipped_invalid_url"
    SKIPPED_OUT_OF_SCOPE = "skipped_out_of_scope"
    SKIPPED_DEPTH = "skipped_depth"
    SKIPPED_SEEN = "skipped_seen"
    SKIPPED_BUDGET = "skipped_budget"
    SKIPPED_QUEUE_FULL = "skipped_queue_full"
    SKIPPED_CLOSED = "skipped_closed"


@dataclass(frozen=True, slots=True)
class EnqueueResult:
    status: EnqueueStatus
    normalized_url: str | None = None
    item: WorkItem | None = None

    @property
    def accepted(self) -> bool:
        return self.status == EnqueueStatus.ENQUEUED

    def __bool__(self) -> bool:
        return self.accepted


class Frontier:
    """Bounded buffer shared by one crawl's drive loop and its workers.

    A URL is added to `visited` the moment it is accepted and never leaves,
    even when the buffer turns out to be full and the item is dropped.
    `offer` never blocks. `allowed_hosts=None` accepts any host.
    """

    def __init__(
        self,
        *,
        capacity: int,
        max_depth: int,
        allowed_hosts: AbstractSet[str] | None,
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be > 0")

        self.capacity = capacity
        self.max_depth = max_depth
        self.allowed_hosts = None if allowed_hosts is None else frozenset(allowed_hosts)

        self._buffer: queue.Queue[WorkItem] = queue.Queue(maxsize=capacity)
        self._lock = threading.Lock()
        self._visited: set[str] = set()
        self._outcomes: Counter[EnqueueStatus] = Counter()
        self._polled = 0
        self._closed = False

    def offer(self, url: str | None, *, depth: int, referrer: str | None = None) -> EnqueueResult:
        """Normalize `url` and add it unless a depth, scope, or dedup rule refuses it."""

        normalized = normalize_url(url)
        if normalized is None:
            return self._refuse(EnqueueStatus.SKIPPED_INVALID_URL)
        if depth > self.max_depth:
            return self._refuse(EnqueueStatus.SKIPPED_DEPTH, normalized)
        if not self.in_scope(normalized):
            return self._refuse(EnqueueStatus.SKIPPED_OUT_OF_SCOPE, normalized)

        with self._lock:
            if self._closed:
                self._outcomes[EnqueueStatus.SKIPPED_CLOSED] += 1
                return EnqueueResult(EnqueueStatus.SKIPPED_CLOSED, normalized)
            if normalized in self._visited:
                self._outcomes[EnqueueStatus.SKIPPED_SEEN] += 1
                return EnqueueResult(EnqueueStatus.SKIPPED_SEEN, normalized)

            self._visited.add(normalized)
            item = WorkItem(url=normalized, depth=depth, referrer=referrer)
            try:
                self._buffer.put_nowait(item)
            except queue.Full:
                self._outcomes[EnqueueStatus.SKIPPED_QUEUE_FULL] += 1
                LOGGER.debug("URL queue full, skipping: %s", normalized)
                return EnqueueResult(EnqueueStatus.SKIPPED_QUEUE_FULL, normalized)
            self._outcomes[EnqueueStatus.ENQUEUED] += 1

        return EnqueueResult(EnqueueStatus.ENQUEUED, normalized, item)

    def in_scope(self, url: str) -> bool:
        host = host_from_url(url)
        if host is None:
            return False
        return self.allowed_hosts is None or host in self.allowed_hosts

    def poll(self, timeout: float | None = None) -> WorkItem | None:
        """Take the oldest item, waiting up to `timeout` seconds."""

        try:
            item = self._buffer.get(timeout=timeout)
        except queue.Empty:
            return None

        with self._lock:
            self._polled += 1
        return item

    def close(self) -> None:
        """Refuse further offers and discard whatever is still buffered."""

        with self._lock:
            self._closed = True
            discarded = 0
            while True:
                try:
                    self._buffer.get_nowait()
                except queue.Empty:
                    break
                discarded += 1
        if discarded:
            LOGGER.debug("Frontier closed, discarded %d queued URLs", discarded)

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def qsize(self) -> int:
        return self._buffer.qsize()

    def empty(self) -> bool:
        return self._buffer.empty()

    def is_visited(self, url: str) -> bool:
        normalized = normalize_url(url)
        with self._lock:
            return normalized in self._visited

    def visited_count(self) -> int:
        with self._lock:
            return len(self._visited)

    def visited_urls(self) -> set[str]:
        with self._lock:
            return set(self._visited)

    def snapshot(self) -> dict[str, int | bool]:
        """Counters for status reports, one per enqueue outcome."""

        with self._lock:
            stats: dict[str, int | bool] = {
                "closed": self._closed,
                "capacity": self.capacity,
                "queue_size": self._buffer.qsize(),
                "visited": len(self._visited),
                "polled": self._polled,
            }
            for status in EnqueueStatus:
                stats[status.value] = self._outcomes[status]
        return stats

    def _refuse(self, status: EnqueueStatus, normalized: str | None = None) -> EnqueueResult:
        with self._lock:
            self._outcomes[status] += 1
        return EnqueueResult(status, normalized)


__all__ = [
    "EnqueueResult",
    "EnqueueStatus",
    "Frontier",
]
