"""Tests for the shared worker pool."""

from __future__ import annotations

import threading

import pytest

from sitecrawl.config import CrawlConfig
from sitecrawl.constants import POOL_MAX_WORKERS
from sitecrawl.pool import WorkerPool


class TestWorkerPool:
    """Tests for submission, saturation, and shutdown."""

    def test_runs_tasks_on_pool_threads(self):
        with WorkerPool(max_workers=2, queue_capacity=4) as pool:
            future = pool.submit(lambda: threading.current_thread().name)
            assert future.result(timeout=5).startswith("crawler-pool")

    def test_saturated_pool_runs_task_in_caller(self):
        release = threading.Event()
        pool = WorkerPool(max_workers=1, queue_capacity=0)
        try:
            blocker = pool.submit(release.wait, 5)

            caller = threading.current_thread().name
            future = pool.submit(lambda: threading.current_thread().name)

            assert future.done()
            assert future.result() == caller
            assert pool.snapshot()["caller_runs"] == 1
        finally:
            release.set()
            pool.shutdown(wait=True, timeout=5)
        assert blocker.result() is True

    def test_caller_run_exception_is_captured_in_future(self):
        pool = WorkerPool(max_workers=1, queue_capacity=0)
        release = threading.Event()
        try:
            pool.submit(release.wait, 5)

            def fail():
                raise RuntimeError("boom")

            future = pool.submit(fail)
            with pytest.raises(RuntimeError, match="boom"):
                future.result()
        finally:
            release.set()
            pool.shutdown(wait=True, timeout=5)

    def test_submit_after_shutdown_raises(self):
        pool = WorkerPool(max_workers=1, queue_capacity=1)
        pool.shutdown()

        assert pool.is_shutdown
        with pytest.raises(RuntimeError, match="shut down"):
            pool.submit(print)

    def test_shutdown_waits_for_outstanding_tasks(self):
        pool = WorkerPool(max_workers=2, queue_capacity=2)
        done = []

        for index in range(3):
            pool.submit(done.append, index)
        pool.shutdown(wait=True, timeout=5)

        assert sorted(done) == [0, 1, 2]

    def test_from_config(self):
        pool = WorkerPool.from_config(CrawlConfig(pool_max_workers=3, pool_queue_capacity=7))
        try:
            assert pool.max_workers == 3
            assert pool.queue_capacity == 7
        finally:
            pool.shutdown()

    def test_default_size_follows_cpu_count(self):
        pool = WorkerPool()
        try:
            assert pool.max_workers == POOL_MAX_WORKERS
            assert 2 <= pool.max_workers <= 20
        finally:
            pool.shutdown()

    @pytest.mark.parametrize("kwargs", [{"max_workers": 0}, {"queue_capacity": -1}])
    def test_rejects_invalid_sizes(self, kwargs):
        with pytest.raises(ValueError):
            WorkerPool(**kwargs)
