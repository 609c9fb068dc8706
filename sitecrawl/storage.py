"""Crawl history storage: in-memory repository and a JSON-file backed variant."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Mapping

from .constants import MAX_HISTORY
from .types import CrawlRecord, CrawlStatus


LOGGER = logging.getLogger(__name__)


def _recency_key(record: CrawlRecord) -> tuple[bool, str]:
    # Records without a start time sort as the oldest.
    return (record.start_time is not None, record.start_time or "")


class CrawlRepository:
    """Thread-safe in-memory store of crawl records keyed by crawl id."""

    def __init__(self, *, max_history: int = MAX_HISTORY) -> None:
        if max_history <= 0:
            raise ValueError("max_history must be > 0")
        self.max_history = max_history
        self._lock = threading.Lock()
        self._records: dict[str, CrawlRecord] = {}

    def save(self, record: CrawlRecord) -> None:
        with self._lock:
            self._records[record.crawl_id] = CrawlRecord.from_json(record.to_json())
        LOGGER.debug("Saved crawl record for ID: %s", record.crawl_id)

    def find_by_id(self, crawl_id: str) -> CrawlRecord | None:
        """Return a copy of the stored record, or None."""

        with self._lock:
            record = self._records.get(crawl_id)
        return None if record is None else CrawlRecord.from_json(record.to_json())

    def exists_by_id(self, crawl_id: str) -> bool:
        with self._lock:
            return crawl_id in self._records

    def delete_by_id(self, crawl_id: str) -> bool:
        with self._lock:
            removed = self._records.pop(crawl_id, None)
        if removed is not None:
            LOGGER.debug("Deleted crawl record for ID: %s", crawl_id)
        return removed is not None

    def find_all(
        self,
        page: int = 0,
        size: int = 20,
        status: CrawlStatus | str | None = None,
    ) -> list[CrawlRecord]:
        """Return one page of records, newest first, optionally filtered by status."""

        if page < 0:
            raise ValueError("page must be >= 0")
        if size <= 0:
            raise ValueError("size must be > 0")

        wanted = None if status is None else CrawlStatus(str(getattr(status, "value", status)).lower())
        with self._lock:
            records = [
                record
                for record in self._records.values()
                if wanted is None or record.status == wanted
            ]

        records.sort(key=_recency_key, reverse=True)
        start = page * size
        return [CrawlRecord.from_json(record.to_json()) for record in records[start : start + size]]

    def cleanup(self) -> list[str]:
        """Keep only the `max_history` most recent records; return dropped ids."""

        with self._lock:
            if len(self._records) <= self.max_history:
                return []
            ordered = sorted(self._records.values(), key=_recency_key, reverse=True)
            dropped = [record.crawl_id for record in ordered[self.max_history :]]
            for crawl_id in dropped:
                del self._records[crawl_id]

        LOGGER.info("Cleaned up crawl history, keeping %d most recent entries", self.max_history)
        return dropped

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class FileCrawlRepository(CrawlRepository):
    """Repository that also persists each record as `<output_dir>/<crawl_id>.json`.

    Existing records are loaded on construction so history survives restarts.
    """

    def __init__(
        self,
        output_dir: str | Path,
        *,
        max_history: int = MAX_HISTORY,
        load_existing: bool = True,
    ) -> None:
        super().__init__(max_history=max_history)
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self._io_lock = threading.Lock()
        if load_existing:
            self._load_existing()

    def path_for(self, crawl_id: str) -> Path:
        safe = "".join(char if (char.isalnum() or char in {"-", "_"}) else "_" for char in crawl_id)
        return self.output_dir / f"{safe}.json"

    def save(self, record: CrawlRecord) -> None:
        super().save(record)
        with self._io_lock:
            self._atomic_write_json(self.path_for(record.crawl_id), record.to_json())

    def delete_by_id(self, crawl_id: str) -> bool:
        removed = super().delete_by_id(crawl_id)
        self._remove_file(crawl_id)
        return removed

    def cleanup(self) -> list[str]:
        dropped = super().cleanup()
        for crawl_id in dropped:
            self._remove_file(crawl_id)
        return dropped

    def _remove_file(self, crawl_id: str) -> None:
        with self._io_lock:
            try:
                self.path_for(crawl_id).unlink()
            except FileNotFoundError:
                pass

    def _load_existing(self) -> None:
        loaded = 0
        for path in sorted(self.output_dir.glob("*.json")):
            try:
                payload = json.loads(path.read_text(encoding="utf-8"))
                record = CrawlRecord.from_json(payload)
            except (OSError, ValueError, KeyError, TypeError) as exc:
                LOGGER.warning("Skipping unreadable crawl record %s: %s", path, exc)
                continue
            CrawlRepository.save(self, record)
            loaded += 1
        if loaded:
            LOGGER.info("Loaded %d crawl records from %s", loaded, self.output_dir)

    @staticmethod
    def _atomic_write_json(path: Path, payload: Mapping[str, Any]) -> None:
        content = json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n"
        tmp_fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=path.name + ".",
            suffix=".tmp",
        )
        try:
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise


__all__ = [
    "CrawlRepository",
    "FileCrawlRepository",
]
