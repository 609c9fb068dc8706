"""Default values shared by config, scheduler, fetcher, and CLI."""

from __future__ import annotations

import os


MAX_PAGES_CEILING = 1000
MAX_DEPTH_CEILING = 10
MAX_LINKS_PER_PAGE = 100

DEFAULT_MAX_PAGES = 50
DEFAULT_MAX_DEPTH = 3

FRONTIER_CAPACITY_FACTOR = 2
POLL_INTERVAL_SECONDS = 2.0
DRAIN_GRACE_SECONDS = 30.0
STOP_WAIT_SECONDS = 5.0

FETCH_TIMEOUT_SECONDS = 10.0
CRAWL_TIMEOUT_SECONDS = 15 * 60.0
DEFAULT_USER_AGENT = "WebCrawler/1.0"
DEFAULT_RETRIES = 0
DEFAULT_RETRY_BACKOFF_SECONDS = 0.5

_CPU_COUNT = os.cpu_count() or 1
POOL_MAX_WORKERS = max(2, min(20, _CPU_COUNT * 2))
POOL_QUEUE_CAPACITY = 1000
POOL_SHUTDOWN_TIMEOUT_SECONDS = 30.0

SNAPSHOT_RESULTS_LIMIT = 500
DETAILED_REPORT_LIMIT = 50
MAX_HISTORY = 100

# Request-level bounds accepted by the service before clamping.
REQUEST_MAX_PAGES_LIMIT = 1000
REQUEST_MAX_DEPTH_LIMIT = 50

JSON_INDENT = 2
SUPPORTED_CONFIG_SUFFIXES = (".json", ".yaml", ".yml")
