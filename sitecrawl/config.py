"""Typed crawler configuration with JSON/YAML load/save helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping

import yaml  # type: ignore

from .constants import (
    CRAWL_TIMEOUT_SECONDS,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_PAGES,
    DEFAULT_RETRIES,
    DEFAULT_RETRY_BACKOFF_SECONDS,
    DEFAULT_USER_AGENT,
    DRAIN_GRACE_SECONDS,
    FETCH_TIMEOUT_SECONDS,
    FRONTIER_CAPACITY_FACTOR,
    JSON_INDENT,
    MAX_DEPTH_CEILING,
    MAX_HISTORY,
    MAX_LINKS_PER_PAGE,
    MAX_PAGES_CEILING,
    POLL_INTERVAL_SECONDS,
    POOL_MAX_WORKERS,
    POOL_QUEUE_CAPACITY,
    SNAPSHOT_RESULTS_LIMIT,
    STOP_WAIT_SECONDS,
    SUPPORTED_CONFIG_SUFFIXES,
)
from .types import JSONDict


def _as_float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid float for '{key}': {value!r}") from exc


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Invalid int for '{key}': {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid int for '{key}': {value!r}") from exc


@dataclass(slots=True)
class CrawlConfig:
    """Engine-wide settings shared by every crawl a process runs.

    Per-crawl inputs (seeds, page/depth limits, timeout) are passed to the
    scheduler directly; this object holds the ceilings and tuning knobs they
    are checked against.
    """

    max_pages_ceiling: int = MAX_PAGES_CEILING
    max_depth_ceiling: int = MAX_DEPTH_CEILING
    max_links_per_page: int = MAX_LINKS_PER_PAGE
    default_max_pages: int = DEFAULT_MAX_PAGES
    default_max_depth: int = DEFAULT_MAX_DEPTH

    frontier_capacity_factor: int = FRONTIER_CAPACITY_FACTOR
    poll_interval_seconds: float = POLL_INTERVAL_SECONDS
    drain_grace_seconds: float = DRAIN_GRACE_SECONDS
    stop_wait_seconds: float = STOP_WAIT_SECONDS
    crawl_timeout_seconds: float = CRAWL_TIMEOUT_SECONDS

    fetch_timeout_seconds: float = FETCH_TIMEOUT_SECONDS
    user_agent: str = DEFAULT_USER_AGENT
    retries: int = DEFAULT_RETRIES
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS

    pool_max_workers: int = POOL_MAX_WORKERS
    pool_queue_capacity: int = POOL_QUEUE_CAPACITY

    snapshot_results_limit: int = SNAPSHOT_RESULTS_LIMIT
    max_history: int = MAX_HISTORY

    def __post_init__(self) -> None:
        if self.max_pages_ceiling <= 0:
            raise ValueError("max_pages_ceiling must be > 0")
        if self.max_depth_ceiling < 0:
            raise ValueError("max_depth_ceiling must be >= 0")
        if self.max_links_per_page <= 0:
            raise ValueError("max_links_per_page must be > 0")
        if self.default_max_pages <= 0:
            raise ValueError("default_max_pages must be > 0")
        if self.default_max_depth < 0:
            raise ValueError("default_max_depth must be >= 0")
        if self.frontier_capacity_factor <= 0:
            raise ValueError("frontier_capacity_factor must be > 0")
        if self.poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be > 0")
        if self.drain_grace_seconds < 0:
            raise ValueError("drain_grace_seconds must be >= 0")
        if self.stop_wait_seconds < 0:
            raise ValueError("stop_wait_seconds must be >= 0")
        if self.crawl_timeout_seconds <= 0:
            raise ValueError("crawl_timeout_seconds must be > 0")
        if self.fetch_timeout_seconds <= 0:
            raise ValueError("fetch_timeout_seconds must be > 0")
        if not self.user_agent.strip():
            raise ValueError("user_agent cannot be empty")
        if self.retries < 0:
            raise ValueError("retries must be >= 0")
        if self.retry_backoff_seconds < 0:
            raise ValueError("retry_backoff_seconds must be >= 0")
        if self.pool_max_workers <= 0:
            raise ValueError("pool_max_workers must be > 0")
        if self.pool_queue_capacity < 0:
            raise ValueError("pool_queue_capacity must be >= 0")
        if self.snapshot_results_limit < 0:
            raise ValueError("snapshot_results_limit must be >= 0")
        if self.max_history <= 0:
            raise ValueError("max_history must be > 0")

    def clamp_max_pages(self, max_pages: int) -> int:
        return max(1, min(int(max_pages), self.max_pages_ceiling))

    def clamp_max_depth(self, max_depth: int) -> int:
        return max(0, min(int(max_depth), self.max_depth_ceiling))

    def frontier_capacity(self, max_pages: int) -> int:
        return max(1, max_pages * self.frontier_capacity_factor)

    def to_dict(self) -> JSONDict:
        return {item.name: getattr(self, item.name) for item in fields(self)}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CrawlConfig":
        """Build config from a parsed mapping.

        Missing keys take their defaults, unknown keys raise `ValueError`, and
        each value is coerced to the field's declared type.
        """

        unknown = sorted(set(payload) - {item.name for item in fields(cls)})
        if unknown:
            raise ValueError(f"Unknown config keys: {unknown}")

        values: dict[str, Any] = {}
        for item in fields(cls):
            if item.name not in payload:
                continue
            coerce = _COERCERS[item.type]
            values[item.name] = coerce(payload[item.name], item.name)
        return cls(**values)


_COERCERS = {
    "int": _as_int,
    "float": _as_float,
    "str": lambda value, key: str(value),
}


def _config_format(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ValueError(
            f"Unsupported config suffix '{suffix}' for {path}; expected one of {SUPPORTED_CONFIG_SUFFIXES}"
        )
    return "json" if suffix == ".json" else "yaml"


def load_config(path: str | Path) -> CrawlConfig:
    """Read engine settings from a `.json`, `.yaml` or `.yml` file.

    An empty YAML document yields the defaults.
    """

    config_path = Path(path)
    text_format = _config_format(config_path)
    text = config_path.read_text(encoding="utf-8")

    payload = json.loads(text) if text_format == "json" else yaml.safe_load(text)
    if payload is None and text_format == "yaml":
        payload = {}
    if not isinstance(payload, dict):
        raise ValueError(f"Config file {config_path} must hold a mapping of settings")

    return CrawlConfig.from_dict(payload)


def save_config(config: CrawlConfig, path: str | Path) -> None:
    config_path = Path(path)
    text_format = _config_format(config_path)

    payload = config.to_dict()
    if text_format == "json":
        text = json.dumps(payload, indent=JSON_INDENT, sort_keys=True) + "\n"
    else:
        text = yaml.safe_dump(payload, sort_keys=False)

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(text, encoding="utf-8")


__all__ = [
    "CrawlConfig",
    "load_config",
    "save_config",
]
