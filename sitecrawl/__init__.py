"""Site crawler package: engine, shared types, and crawl bookkeeping."""

from .config import CrawlConfig, load_config, save_config
from .errors import ConfigurationError, CrawlError, FetchFailed, UnsupportedContentType
from .factory import CrawlManager, create_scheduler
from .fetcher import LinkExtractor, LinkSource, is_link_bearing_content_type
from .frontier import EnqueueResult, EnqueueStatus, Frontier
from .pool import TaskExecutor, WorkerPool
from .scheduler import CrawlScheduler, allowed_hosts_from_seeds
from .service import CrawlService, parse_url_lines, read_url_file, validate_request
from .storage import CrawlRepository, FileCrawlRepository
from .types import CrawlRecord, CrawlStatus, CrawlType, WorkItem, utc_now_iso
from .url import (
    extract_links_from_html,
    host_from_url,
    is_http_url,
    is_in_scope,
    normalize_url,
    resolve_url,
)
from .worker import crawl_page

__all__ = [
    "ConfigurationError",
    "CrawlConfig",
    "CrawlError",
    "CrawlManager",
    "CrawlRecord",
    "CrawlRepository",
    "CrawlScheduler",
    "CrawlService",
    "CrawlStatus",
    "CrawlType",
    "EnqueueResult",
    "EnqueueStatus",
    "FetchFailed",
    "FileCrawlRepository",
    "Frontier",
    "LinkExtractor",
    "LinkSource",
    "TaskExecutor",
    "UnsupportedContentType",
    "WorkItem",
    "WorkerPool",
    "allowed_hosts_from_seeds",
    "crawl_page",
    "create_scheduler",
    "extract_links_from_html",
    "host_from_url",
    "is_http_url",
    "is_in_scope",
    "is_link_bearing_content_type",
    "load_config",
    "normalize_url",
    "parse_url_lines",
    "read_url_file",
    "resolve_url",
    "save_config",
    "utc_now_iso",
    "validate_request",
]
