"""Tests for the per-page crawl task."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from sitecrawl.errors import FetchFailed
from sitecrawl.worker import crawl_page

from .conftest import FakeExtractor


def _scheduler(in_scope_hosts=("a.com",)):
    scheduler = MagicMock()
    scheduler.in_scope.side_effect = lambda url: url.split("/")[2] in in_scope_hosts
    return scheduler


class TestCrawlPage:
    """Tests for crawl_page reporting."""

    def test_records_only_in_scope_links(self):
        scheduler = _scheduler()
        extractor = FakeExtractor({"https://a.com": ["https://a.com/x", "https://other.com/y", ""]})

        crawl_page("https://a.com", 0, scheduler, extractor)

        scheduler.record_result.assert_called_once_with("https://a.com", ["https://a.com/x"], depth=0)
        scheduler.task_completed.assert_called_once_with()

    def test_fetch_failure_counts_as_no_links(self, fetch_failed):
        scheduler = _scheduler()
        extractor = FakeExtractor({"https://a.com/broken": fetch_failed})

        crawl_page("https://a.com/broken", 2, scheduler, extractor)

        scheduler.record_result.assert_called_once_with("https://a.com/broken", [], depth=2)
        scheduler.task_completed.assert_called_once_with()

    def test_unexpected_error_counts_as_no_links(self):
        scheduler = _scheduler()
        extractor = FakeExtractor({"https://a.com": ValueError("bad html")})

        crawl_page("https://a.com", 0, scheduler, extractor)

        scheduler.record_result.assert_called_once_with("https://a.com", [], depth=0)
        scheduler.task_completed.assert_called_once_with()

    def test_task_completed_even_when_recording_fails(self):
        scheduler = _scheduler()
        scheduler.record_result.side_effect = RuntimeError("store broken")

        with pytest.raises(RuntimeError):
            crawl_page("https://a.com", 0, scheduler, FakeExtractor())

        scheduler.task_completed.assert_called_once_with()

    def test_never_enqueues_directly(self):
        scheduler = _scheduler()

        crawl_page("https://a.com", 0, scheduler, FakeExtractor(default=["https://a.com/x"]))

        scheduler.enqueue.assert_not_called()

    def test_fetch_failed_message(self):
        error = FetchFailed("https://a.com", "HTTP status 404", status_code=404)
        assert str(error) == "https://a.com: HTTP status 404"
