"""Shared records and enums for the crawl engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping


class CrawlStatus(str, Enum):
    """Lifecycle states of one crawl job."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    STOPPED = "stopped"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def terminal(self) -> bool:
        return self not in {CrawlStatus.IDLE, CrawlStatus.RUNNING}


class CrawlType(str, Enum):
    """Crawl strategy variants selectable through the factory."""

    SINGLE_DOMAIN = "single_domain"
    MULTI_DOMAIN = "multi_domain"

    @classmethod
    def parse(cls, value: "CrawlType | str") -> "CrawlType":
        if isinstance(value, CrawlType):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown crawl type: {value!r}") from None


JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONDict = dict[str, JSONValue]


def utc_now_iso() -> str:
    """Return an RFC3339-like UTC timestamp string."""

    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass(frozen=True, slots=True)
class WorkItem:
    """A crawl candidate tracked by the frontier."""

    url: str
    depth: int
    referrer: str | None = None
    discovered_at: str = field(default_factory=utc_now_iso)


@dataclass(slots=True)
class CrawlRecord:
    """Persisted summary of one crawl, live or historical."""

    crawl_id: str
    crawl_type: CrawlType
    status: CrawlStatus
    start_time: str | None
    end_time: str | None = None
    processed_pages: int = 0
    max_pages: int = 0
    max_depth: int = 0
    domain: str | None = None
    visited_urls: list[str] = field(default_factory=list)
    results: dict[str, list[str]] = field(default_factory=dict)
    error_message: str | None = None
    running: bool = False
    pending_tasks: int = 0
    queue_size: int = 0

    def update_from_snapshot(self, snapshot: Mapping[str, Any]) -> None:
        """Copy counters and results from a scheduler status snapshot."""

        self.processed_pages = int(snapshot.get("processed_pages", self.processed_pages))
        self.pending_tasks = int(snapshot.get("pending_tasks", 0))
        self.queue_size = int(snapshot.get("queue_size", 0))
        self.running = bool(snapshot.get("running", False))
        self.max_pages = int(snapshot.get("max_pages", self.max_pages))
        self.max_depth = int(snapshot.get("max_depth", self.max_depth))

        domains = snapshot.get("domains")
        if domains:
            self.domain = ", ".join(domains)

        if snapshot.get("visited_urls") is not None:
            self.visited_urls = list(snapshot["visited_urls"])
        if snapshot.get("results") is not None:
            self.results = {url: list(links) for url, links in snapshot["results"].items()}

        if snapshot.get("start_time"):
            self.start_time = snapshot["start_time"]
        if snapshot.get("end_time"):
            self.end_time = snapshot["end_time"]
        if snapshot.get("error"):
            self.error_message = snapshot["error"]

    def to_json(self) -> JSONDict:
        return {
            "crawl_id": self.crawl_id,
            "crawl_type": self.crawl_type.value,
            "status": self.status.value,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "processed_pages": self.processed_pages,
            "max_pages": self.max_pages,
            "max_depth": self.max_depth,
            "domain": self.domain,
            "visited_urls": list(self.visited_urls),
            "results": {url: list(links) for url, links in self.results.items()},
            "error_message": self.error_message,
            "running": self.running,
            "pending_tasks": self.pending_tasks,
            "queue_size": self.queue_size,
        }

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> "CrawlRecord":
        return cls(
            crawl_id=str(payload["crawl_id"]),
            crawl_type=CrawlType.parse(payload.get("crawl_type", CrawlType.SINGLE_DOMAIN)),
            status=CrawlStatus(payload.get("status", CrawlStatus.IDLE.value)),
            start_time=payload.get("start_time"),
            end_time=payload.get("end_time"),
            processed_pages=int(payload.get("processed_pages", 0)),
            max_pages=int(payload.get("max_pages", 0)),
            max_depth=int(payload.get("max_depth", 0)),
            domain=payload.get("domain"),
            visited_urls=[str(url) for url in payload.get("visited_urls") or []],
            results={
                str(url): [str(link) for link in links]
                for url, links in dict(payload.get("results") or {}).items()
            },
            error_message=payload.get("error_message"),
            running=bool(payload.get("running", False)),
            pending_tasks=int(payload.get("pending_tasks", 0)),
            queue_size=int(payload.get("queue_size", 0)),
        )


__all__ = [
    "CrawlRecord",
    "CrawlStatus",
    "CrawlType",
    "JSONDict",
    "JSONPrimitive",
    "JSONValue",
    "WorkItem",
    "utc_now_iso",
]
