"""Bounded worker pool shared by every crawl running in the process."""

from __future__ import annotations

import concurrent.futures as cf
import logging
import threading
from typing import Any, Callable, Protocol

from .config import CrawlConfig
from .constants import POOL_MAX_WORKERS, POOL_QUEUE_CAPACITY, POOL_SHUTDOWN_TIMEOUT_SECONDS


LOGGER = logging.getLogger(__name__)


class TaskExecutor(Protocol):
    """The part of a pool the scheduler depends on."""

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> cf.Future:
        ...


class WorkerPool:
    """Thread pool with a bounded backlog and caller-runs saturation policy.

    At most `max_workers + queue_capacity` tasks are accepted at once. A
    submission beyond that runs synchronously on the submitting thread, which
    slows the submitter down instead of rejecting work.

    There is no separate core size: the executor starts threads on demand up
    to `max_workers`.
    """

    def __init__(
        self,
        max_workers: int = POOL_MAX_WORKERS,
        queue_capacity: int = POOL_QUEUE_CAPACITY,
        *,
        thread_name_prefix: str = "crawler-pool",
    ) -> None:
        if max_workers <= 0:
            raise ValueError("max_workers must be > 0")
        if queue_capacity < 0:
            raise ValueError("queue_capacity must be >= 0")

        self.max_workers = max_workers
        self.queue_capacity = queue_capacity

        self._executor = cf.ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix=thread_name_prefix,
        )
        self._slots = threading.BoundedSemaphore(max_workers + queue_capacity)

        self._lock = threading.Lock()
        self._outstanding: set[cf.Future] = set()
        self._submitted_count = 0
        self._caller_runs_count = 0
        self._shutdown = False

    @classmethod
    def from_config(cls, config: CrawlConfig) -> "WorkerPool":
        return cls(
            max_workers=config.pool_max_workers,
            queue_capacity=config.pool_queue_capacity,
        )

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> cf.Future:
        """Schedule `fn(*args, **kwargs)`; returns a future in every case."""

        with self._lock:
            if self._shutdown:
                raise RuntimeError("WorkerPool is shut down")
            self._submitted_count += 1

        if not self._slots.acquire(blocking=False):
            with self._lock:
                self._caller_runs_count += 1
            LOGGER.debug("Worker pool saturated, running task on %s", threading.current_thread().name)
            return self._run_in_caller(fn, args, kwargs)

        try:
            future = self._executor.submit(fn, *args, **kwargs)
        except BaseException:
            self._slots.release()
            raise

        with self._lock:
            self._outstanding.add(future)
        future.add_done_callback(self._on_done)
        return future

    def shutdown(self, wait: bool = True, timeout: float | None = POOL_SHUTDOWN_TIMEOUT_SECONDS) -> None:
        """Stop accepting work; optionally wait up to `timeout` for queued tasks."""

        with self._lock:
            if self._shutdown:
                return
            self._shutdown = True
            outstanding = set(self._outstanding)

        LOGGER.info("Shutting down shared crawler pool (%d outstanding tasks)", len(outstanding))

        if wait and outstanding:
            _, not_done = cf.wait(outstanding, timeout=timeout)
            if not_done:
                LOGGER.warning(
                    "%d pool tasks still running after %.1fs, cancelling queued ones",
                    len(not_done),
                    timeout or 0.0,
                )
                self._executor.shutdown(wait=False, cancel_futures=True)
                return

        self._executor.shutdown(wait=wait, cancel_futures=not wait)

    @property
    def is_shutdown(self) -> bool:
        with self._lock:
            return self._shutdown

    def snapshot(self) -> dict[str, int | bool]:
        """Return pool counters for logs/status reporting."""

        with self._lock:
            return {
                "max_workers": self.max_workers,
                "queue_capacity": self.queue_capacity,
                "outstanding": len(self._outstanding),
                "submitted": self._submitted_count,
                "caller_runs": self._caller_runs_count,
                "shutdown": self._shutdown,
            }

    def __enter__(self) -> "WorkerPool":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    def _on_done(self, future: cf.Future) -> None:
        with self._lock:
            self._outstanding.discard(future)
        self._slots.release()

    @staticmethod
    def _run_in_caller(
        fn: Callable[..., Any],
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> cf.Future:
        future: cf.Future = cf.Future()
        future.set_running_or_notify_cancel()
        try:
            result = fn(*args, **kwargs)
        except Exception as exc:
            future.set_exception(exc)
        else:
            future.set_result(result)
        return future


__all__ = [
    "TaskExecutor",
    "WorkerPool",
]
