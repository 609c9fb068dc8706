"""Tests for the sitecrawl command line entrypoint."""

from __future__ import annotations

import json
import logging

import pytest

from sitecrawl import crawl
from sitecrawl.config import CrawlConfig, save_config

from .conftest import FakeExtractor


class _SiteExtractor(FakeExtractor):
    """Stands in for LinkExtractor when the scheduler builds its own."""

    def __init__(self, config=None):
        super().__init__(
            {
                "https://a.com": ["https://a.com/about", "https://other.com/x"],
                "https://a.com/about": ["https://a.com"],
            }
        )


@pytest.fixture
def fast_config_path(tmp_path):
    path = tmp_path / "engine.yaml"
    save_config(
        CrawlConfig(
            poll_interval_seconds=0.01,
            drain_grace_seconds=1.0,
            stop_wait_seconds=1.0,
            pool_max_workers=2,
            pool_queue_capacity=4,
        ),
        path,
    )
    return path


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(crawl, "setup_logging", lambda log_dir, verbose: None)


@pytest.fixture
def fake_extractor(monkeypatch):
    monkeypatch.setattr("sitecrawl.scheduler.LinkExtractor", _SiteExtractor)


class TestParseArgs:
    """Tests for argument parsing."""

    def test_defaults(self):
        args = crawl.parse_args([])
        assert args.seed == []
        assert args.crawl_type == "single_domain"
        assert args.output is None
        assert args.max_pages is None

    def test_repeatable_seed(self):
        args = crawl.parse_args(["--seed", "https://a.com", "--seed", "https://b.com", "--type", "multi_domain"])
        assert args.seed == ["https://a.com", "https://b.com"]
        assert args.crawl_type == "multi_domain"

    def test_rejects_unknown_type(self):
        with pytest.raises(SystemExit):
            crawl.parse_args(["--type", "sideways"])


class TestMain:
    """Tests for main() exit codes and outputs."""

    def test_no_seeds_is_config_error(self):
        assert crawl.main([]) == 2

    def test_bad_config_suffix(self, tmp_path):
        assert crawl.main(["--seed", "https://a.com", "--config", str(tmp_path / "engine.toml")]) == 2

    def test_invalid_seed_is_config_error(self, fast_config_path):
        assert crawl.main(["--seed", "not a url", "--config", str(fast_config_path)]) == 2

    def test_writes_results_file(self, tmp_path, fast_config_path, fake_extractor, capsys):
        output = tmp_path / "out" / "results.json"

        exit_code = crawl.main(
            [
                "--seed",
                "https://a.com",
                "--config",
                str(fast_config_path),
                "--max_pages",
                "10",
                "--max_depth",
                "2",
                "--output",
                str(output),
            ]
        )

        assert exit_code == 0
        results = json.loads(output.read_text(encoding="utf-8"))
        assert results == {
            "https://a.com": ["https://a.com/about"],
            "https://a.com/about": ["https://a.com"],
        }
        assert "=== Crawl Complete ===" in capsys.readouterr().err

    def test_results_to_stdout_with_urls_file(self, tmp_path, fast_config_path, fake_extractor, capsys):
        urls_file = tmp_path / "urls.txt"
        urls_file.write_text("https://a.com\n\n", encoding="utf-8")

        exit_code = crawl.main(
            [
                "--urls_file",
                str(urls_file),
                "--config",
                str(fast_config_path),
                "--max_depth",
                "0",
                "--output",
                "-",
                "--print_status_json",
            ]
        )

        captured = capsys.readouterr()
        assert exit_code == 0
        assert json.loads(captured.out) == {"https://a.com": ["https://a.com/about"]}
        assert "--- Full Status JSON ---" in captured.err
        assert "status: completed" in captured.err


class TestSetupLogging:
    """Tests for root logger configuration."""

    def test_writes_log_file(self, tmp_path, monkeypatch):
        monkeypatch.undo()
        root = logging.getLogger()
        saved_handlers = list(root.handlers)
        saved_level = root.level
        try:
            crawl.setup_logging(tmp_path / "logs", verbose=True)
            logging.getLogger("sitecrawl.test").debug("hello from test")
            for handler in root.handlers:
                handler.flush()

            assert root.level == logging.DEBUG
            assert "hello from test" in (tmp_path / "logs" / "crawl.log").read_text(encoding="utf-8")
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
