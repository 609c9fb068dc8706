"""Tests for crawl strategy selection."""

from __future__ import annotations

import pytest

from sitecrawl.config import CrawlConfig
from sitecrawl.errors import ConfigurationError
from sitecrawl.factory import create_scheduler
from sitecrawl.scheduler import CrawlScheduler
from sitecrawl.types import CrawlStatus, CrawlType

from .conftest import FakeExtractor


class TestCreateScheduler:
    """Tests for create_scheduler."""

    def test_defaults_come_from_config(self, inline_pool):
        config = CrawlConfig(default_max_pages=7, default_max_depth=1)

        manager = create_scheduler(["https://a.com"], pool=inline_pool, extractor=FakeExtractor(), config=config)

        assert isinstance(manager, CrawlScheduler)
        assert manager.max_pages == 7
        assert manager.max_depth == 1
        assert manager.timeout_seconds == config.crawl_timeout_seconds

    @pytest.mark.parametrize("crawl_type", ["multi_domain", "MULTI_DOMAIN", CrawlType.MULTI_DOMAIN])
    def test_crawl_type_accepts_strings(self, inline_pool, crawl_type):
        manager = create_scheduler(
            ["https://a.com"],
            pool=inline_pool,
            extractor=FakeExtractor(),
            crawl_type=crawl_type,
        )
        assert manager.crawl_type == CrawlType.MULTI_DOMAIN

    def test_unknown_crawl_type(self, inline_pool):
        with pytest.raises(ValueError, match="Unknown crawl type"):
            create_scheduler(["https://a.com"], pool=inline_pool, extractor=FakeExtractor(), crawl_type="deep")

    def test_bad_seeds_fail_before_job_exists(self, inline_pool):
        with pytest.raises(ConfigurationError):
            create_scheduler([], pool=inline_pool, extractor=FakeExtractor())

    def test_manager_runs_to_completion(self, inline_pool, fast_config):
        manager = create_scheduler(
            ["https://a.com"],
            5,
            1,
            pool=inline_pool,
            extractor=FakeExtractor({"https://a.com": ["https://a.com/x"]}),
            config=fast_config,
            crawl_id="factory-job",
        )

        assert manager.crawl_id == "factory-job"
        assert manager.start() == CrawlStatus.COMPLETED
        assert manager.status_snapshot()["processed_pages"] == 2
        assert not manager.is_running()
