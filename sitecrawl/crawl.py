"""CLI entrypoint for running a single crawl job."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Any

from .config import CrawlConfig, load_config
from .constants import JSON_INDENT
from .errors import ConfigurationError
from .factory import create_scheduler
from .pool import WorkerPool
from .service import read_url_file
from .types import CrawlStatus, CrawlType


LOGGER = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Crawl a site from seed URLs and report the links found on each page.",
    )

    parser.add_argument(
        "--seed",
        action="append",
        default=[],
        help="Seed URL (repeatable).",
    )
    parser.add_argument(
        "--urls_file",
        type=Path,
        default=None,
        help="Text file with one seed URL per line. Combined with --seed.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to JSON/YAML engine config.",
    )

    parser.add_argument("--max_pages", type=int, default=None)
    parser.add_argument("--max_depth", type=int, default=None)
    parser.add_argument(
        "--timeout_seconds",
        type=float,
        default=None,
        help="Overall crawl timeout. Defaults to crawl_timeout_seconds from config.",
    )
    parser.add_argument(
        "--type",
        dest="crawl_type",
        type=str,
        choices=[crawl_type.value for crawl_type in CrawlType],
        default=CrawlType.SINGLE_DOMAIN.value,
        help="single_domain keeps the crawl on the seed hosts; multi_domain follows any host.",
    )

    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write the page -> links results as JSON to this path, or '-' for stdout.",
    )
    parser.add_argument(
        "--log_dir",
        type=Path,
        default=None,
        help="Also write logs to LOG_DIR/crawl.log.",
    )
    parser.add_argument(
        "--print_status_json",
        action="store_true",
        help="Print the final status snapshot JSON after the run.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging.",
    )

    return parser.parse_args(argv)


def collect_seeds(args: argparse.Namespace) -> list[str]:
    seeds = [seed.strip() for seed in args.seed if seed and seed.strip()]
    if args.urls_file is not None:
        seeds.extend(read_url_file(args.urls_file))
    if not seeds:
        raise ConfigurationError("No seeds provided. Use --seed or --urls_file.")
    return seeds


def build_config(args: argparse.Namespace) -> CrawlConfig:
    if args.config is not None:
        return load_config(args.config)
    return CrawlConfig()


def setup_logging(log_dir: Path | None, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    # stdout is reserved for results.
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / "crawl.log", encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    logging.getLogger("urllib3").setLevel(logging.WARNING)


def write_results(results: dict[str, list[str]], output: str) -> None:
    content = json.dumps(results, indent=JSON_INDENT, sort_keys=True, ensure_ascii=False)
    if output == "-":
        print(content)
        return

    out_path = Path(output)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(content + "\n", encoding="utf-8")


def print_summary(snapshot: dict[str, Any], *, print_status_json: bool, stream=None) -> None:
    stream = stream or sys.stderr

    print("\n=== Crawl Complete ===", file=stream)
    print(f"crawl_id: {snapshot.get('crawl_id')}", file=stream)
    print(f"status: {snapshot.get('status')}", file=stream)
    print(f"domains: {', '.join(snapshot.get('domains') or [])}", file=stream)

    print("\n--- Core Stats ---", file=stream)
    for key in [
        "processed_pages",
        "results_count",
        "visited_urls_count",
        "pending_tasks",
        "max_pages",
        "max_depth",
        "start_time",
        "end_time",
    ]:
        if key in snapshot:
            print(f"{key}: {snapshot[key]}", file=stream)

    if snapshot.get("error"):
        print(f"error: {snapshot['error']}", file=stream)

    if print_status_json:
        print("\n--- Full Status JSON ---", file=stream)
        print(json.dumps(snapshot, indent=JSON_INDENT, sort_keys=True), file=stream)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_dir, verbose=args.verbose)

    try:
        config = build_config(args)
        seeds = collect_seeds(args)
    except (ValueError, OSError) as exc:
        LOGGER.error("Failed to build config: %s", exc)
        return 2

    pool = WorkerPool.from_config(config)
    try:
        scheduler = create_scheduler(
            seeds,
            args.max_pages,
            args.max_depth,
            args.timeout_seconds,
            pool=pool,
            crawl_type=args.crawl_type,
            config=config,
        )
    except ValueError as exc:
        LOGGER.error("Failed to create crawl: %s", exc)
        pool.shutdown(wait=False)
        return 2

    LOGGER.info(
        "Starting crawl %s: type=%s, seeds=%d",
        scheduler.crawl_id,
        args.crawl_type,
        len(seeds),
    )

    try:
        status = scheduler.start()
    except KeyboardInterrupt:
        LOGGER.error("Interrupted by user")
        scheduler.stop()
        return 130
    except Exception:
        LOGGER.exception("Crawl execution failed")
        return 1
    finally:
        pool.shutdown(wait=True)

    snapshot = scheduler.status_snapshot()
    if args.output is not None:
        results = snapshot.get("results")
        if results is None:
            results = scheduler.results()
        write_results(results, args.output)

    print_summary(snapshot, print_status_json=args.print_status_json)
    return 0 if status != CrawlStatus.FAILED else 1


if __name__ == "__main__":
    raise SystemExit(main())
