from __future__ import annotations

import argparse
import asyncio
import logging
import time
from typing import Dict, List, Optional, Sequence

import httpx

from aurcrawl.config import Settings, get_settings
from aurcrawl.db.base import StorageAdapter
from aurcrawl.db.registry import build_adapters
from aurcrawl.errors import CrawlerError, StorageError
from aurcrawl.logging_config import configure_logging

from .base import PageFetcher, create_client
from .loader import load_checkpoints, store_items_async
from .orchestrator import CrawlOrchestrator
from .pipeline import write_checkpoint

logger = logging.getLogger(__name__)


def page_range(start_page: int, end_page: Optional[int]) -> range:
    """1-based, inclusive."""
    end = start_page if end_page is None else end_page
    return range(start_page, end + 1)


async def run_scrape_to_fs(
    settings: Settings,
    pages: range,
    out_dir: str,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, int]:
    start = time.perf_counter()
    counts = {"pages": 0, "failed_pages": 0, "packages": 0}
    async with create_client(settings, transport=transport) as client:
        orchestrator = CrawlOrchestrator(PageFetcher(client, timeout=settings.page_timeout), settings)
        for page in pages:
            url = settings.listing_url(page)
            try:
                items = await orchestrator.crawl_page(url)
            except CrawlerError as exc:
                logger.error("Failed to scrape listing page %d (%s): %s", page, url, exc)
                counts["failed_pages"] += 1
                continue
            path = write_checkpoint(items, out_dir, page)
            logger.info("Saved %d packages to %s", len(items), path)
            counts["pages"] += 1
            counts["packages"] += len(items)
    logger.info("Scraped %d pages of packages in %.2fs", counts["pages"], time.perf_counter() - start)
    return counts


async def run_scrape_to_db(
    settings: Settings,
    pages: range,
    adapters: Sequence[StorageAdapter],
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, int]:
    start = time.perf_counter()
    counts = {"pages": 0, "failed_pages": 0, "packages": 0, "stored": 0, "failed": 0}
    async with create_client(settings, transport=transport) as client:
        orchestrator = CrawlOrchestrator(PageFetcher(client, timeout=settings.page_timeout), settings)
        for page in pages:
            url = settings.listing_url(page)
            try:
                items = await orchestrator.crawl_page(url)
            except CrawlerError as exc:
                logger.error("Failed to scrape listing page %d (%s): %s", page, url, exc)
                counts["failed_pages"] += 1
                continue
            stored = await store_items_async(items, adapters)
            counts["pages"] += 1
            counts["packages"] += len(items)
            counts["stored"] += stored["stored"]
            counts["failed"] += stored["failed"]
    logger.info(
        "Scraped %d pages (%d packages, %d inserts, %d failed) in %.2fs",
        counts["pages"],
        counts["packages"],
        counts["stored"],
        counts["failed"],
        time.perf_counter() - start,
    )
    return counts


def _positive_int(value: str) -> int:
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError("must be >= 1")
    return n


def _non_negative_int(value: str) -> int:
    n = int(value)
    if n < 0:
        raise argparse.ArgumentTypeError("must be >= 0")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="aurcrawl", description="Scrape AUR packages and store them")
    parser.add_argument("--log-level", default="INFO", help="Console log level (default: INFO)")
    parser.add_argument("--error-log", default="logs/errors.log", help="File receiving ERROR records ('' to disable)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    to_fs = sub.add_parser("scrape-to-fs", help="Scrape listing pages and save them as BSON files")
    to_fs.add_argument("--start-page", type=_positive_int, default=1, help="Page number from which scraping will start")
    to_fs.add_argument("--end-page", type=_positive_int, help="Last page to scrape (inclusive)")
    to_fs.add_argument("--path", required=True, help="Directory where BSON files will be stored")

    to_db = sub.add_parser("scrape-to-db", help="Scrape listing pages and store packages in databases")
    to_db.add_argument("--cs", action="append", required=True, help="Database connection string (repeatable)")
    to_db.add_argument("--start-page", type=_positive_int, default=1)
    to_db.add_argument("--end-page", type=_positive_int)

    from_fs = sub.add_parser("load-from-fs", help="Load BSON files from the file system into databases")
    from_fs.add_argument("--path", required=True, help="Directory where BSON files are stored")
    from_fs.add_argument("--start-page", type=_positive_int, help="First page to load (default: every file)")
    from_fs.add_argument("--end-page", type=_positive_int)
    from_fs.add_argument("--cs", action="append", help="Database connection string (repeatable, default: all backends)")
    from_fs.add_argument("--duplicates", type=_non_negative_int, default=0, help="Also store N renamed copies of each package")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, error_log=args.error_log or None)
    settings = get_settings()

    if getattr(args, "end_page", None) is not None and args.start_page is not None and args.end_page < args.start_page:
        parser.error("--end-page must not be lower than --start-page")

    if args.cmd == "scrape-to-fs":
        counts = asyncio.run(run_scrape_to_fs(settings, page_range(args.start_page, args.end_page), args.path))
        return 0 if counts["failed_pages"] == 0 else 1

    try:
        adapters = build_adapters(args.cs, settings)
    except ValueError as exc:
        parser.error(str(exc))
    except StorageError as exc:
        logger.error("Cannot connect to database: %s", exc)
        return 1

    try:
        if args.cmd == "scrape-to-db":
            counts = asyncio.run(run_scrape_to_db(settings, page_range(args.start_page, args.end_page), adapters))
        else:
            pages = None
            if args.start_page is not None or args.end_page is not None:
                pages = page_range(args.start_page or 1, args.end_page)
            start = time.perf_counter()
            counts = load_checkpoints(args.path, adapters, pages=pages, duplicates=args.duplicates)
            logger.info(
                "Loaded %d files (%d packages, %d inserts, %d failed) in %.2fs",
                counts["files"],
                counts["processed"],
                counts["stored"],
                counts["failed"],
                time.perf_counter() - start,
            )
    finally:
        for db in adapters:
            db.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
