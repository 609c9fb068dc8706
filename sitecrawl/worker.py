"""One unit of crawl work: fetch a page, keep in-scope links, report back."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .errors import CrawlError
from .fetcher import LinkSource

if TYPE_CHECKING:
    from .scheduler import CrawlScheduler


LOGGER = logging.getLogger(__name__)


def crawl_page(url: str, depth: int, scheduler: "CrawlScheduler", extractor: LinkSource) -> None:
    """Process `url` for `scheduler`.

    A failed fetch counts as a page with no links. The scheduler is told the
    task finished exactly once, whatever happens. Discovered links are
    re-enqueued by `scheduler.record_result`, never here.
    """

    try:
        try:
            links = extractor.extract_links(url)
        except CrawlError as exc:
            LOGGER.warning("Error processing %s: %s", url, exc)
            links = []
        except Exception as exc:
            LOGGER.error("Unexpected error processing %s: %s", url, exc, exc_info=True)
            links = []

        in_scope = [link for link in links if link and scheduler.in_scope(link)]
        scheduler.record_result(url, in_scope, depth=depth)
    finally:
        scheduler.task_completed()


__all__ = ["crawl_page"]
