"""Main entry point with CLI."""
import argparse
import asyncio
import logging
import sys
import uuid
from pathlib import Path
from typing import Optional

from countdown_scraper.config import config, Config, STORAGE_BACKENDS
from countdown_scraper.logging_conf import setup_logging
from countdown_scraper.fetch.browser import BrowserDriver
from countdown_scraper.fetch.images import ImageMirror
from countdown_scraper.fetch.urls import load_targets, parse_and_categorise_url
from countdown_scraper.jobs.metrics_exporter import MetricsExporter
from countdown_scraper.jobs.runner import ScrapeRunner
from countdown_scraper.parse.models import CategorisedUrl
from countdown_scraper.store.base import StorageBackend
from countdown_scraper.store.reconcile import ReconciliationEngine

logger = logging.getLogger(__name__)


def non_negative_float(value: str) -> float:
    """argparse type for --delay."""
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value}")
    if number < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {value}")
    return number


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Countdown Scraper")

    parser.add_argument(
        "words",
        nargs="*",
        metavar="ARG",
        help="'dry-run-mode', 'reverse', or a single countdown.co.nz url to scrape",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only log scraped products, no reconciliation or storage writes",
    )
    parser.add_argument(
        "--reverse",
        action="store_true",
        help="Scrape the target list in reverse order",
    )
    parser.add_argument(
        "--url",
        default=None,
        help="Scrape a single url instead of the target list",
    )
    parser.add_argument(
        "--urls-file",
        type=Path,
        default=None,
        help=f"Target list file (default: {config.URLS_FILE})",
    )
    parser.add_argument(
        "--backend",
        choices=STORAGE_BACKENDS,
        default=None,
        help=f"Storage backend (default: {config.STORAGE_BACKEND})",
    )
    parser.add_argument(
        "--delay",
        type=non_negative_float,
        default=None,
        help=f"Seconds between page scrapes (default: {config.SECONDS_DELAY_BETWEEN_PAGES})",
    )

    args = parser.parse_args(argv)

    # Positional keywords mirror the flags
    for word in args.words:
        if word == "dry-run-mode":
            args.dry_run = True
        elif word == "reverse":
            args.reverse = True
        elif config.SOURCE_SITE in word:
            args.url = word
        else:
            parser.error(f"Unrecognised argument: {word}")
    return args


def create_store(backend: str) -> StorageBackend:
    """Instantiate the configured storage backend."""
    if backend == "sqlite":
        from countdown_scraper.store.sqlite_store import SQLiteStore
        return SQLiteStore()
    if backend == "supabase":
        from countdown_scraper.store.supabase_store import SupabaseStore
        return SupabaseStore()
    if backend == "frappe":
        from countdown_scraper.store.frappe_store import FrappeStore
        return FrappeStore()
    raise ValueError(f"Unknown storage backend: {backend}")


def resolve_targets(
    url: Optional[str], urls_file: Path
) -> tuple[list[CategorisedUrl], list[CategorisedUrl]]:
    """Return (targets to scrape, all configured targets)."""
    configured: list[CategorisedUrl] = []
    if urls_file.exists():
        configured = load_targets(urls_file)
    elif url is None:
        raise ValueError(f"Configuration errors: target list {urls_file} not found")

    if url is None:
        return configured, configured

    target = parse_and_categorise_url(url)
    if target is None:
        raise ValueError(f"URL invalid: {url}")
    return [target], configured + [target]


def resolve_valid_categories(all_targets: list[CategorisedUrl]) -> set[str]:
    """Configured categories, or every category named by the targets."""
    configured = Config.valid_categories()
    if configured is not None:
        return configured
    return {category for target in all_targets for category in target.categories}


async def run_scraper(
    targets: list[CategorisedUrl],
    valid_categories: set[str],
    dry_run: bool,
    reverse: bool,
    backend: str,
    delay: Optional[float],
) -> None:
    store = None if dry_run else create_store(backend)
    engine = None if dry_run else ReconciliationEngine(valid_categories, Config.day_timezone())
    image_mirror = ImageMirror() if config.UPLOAD_IMAGES and not dry_run else None
    driver = BrowserDriver()
    run_id = str(uuid.uuid4())

    try:
        if store is not None:
            await store.initialize()
        await driver.start()

        runner = ScrapeRunner(
            targets=targets,
            driver=driver,
            store=store,
            engine=engine,
            dry_run=dry_run,
            reverse=reverse,
            delay_seconds=delay,
            image_mirror=image_mirror,
            metrics_exporter=MetricsExporter(run_id),
            run_id=run_id,
        )
        await runner.run()
    finally:
        await driver.close()
        if image_mirror is not None:
            await image_mirror.close()
        if store is not None:
            await store.close()


def main() -> None:
    """Main entry point."""
    setup_logging()

    args = parse_args()
    backend = args.backend or config.STORAGE_BACKEND
    if args.backend:
        Config.STORAGE_BACKEND = args.backend

    try:
        Config.validate(require_storage=not args.dry_run)
        targets, all_targets = resolve_targets(args.url, args.urls_file or config.URLS_FILE)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    if not targets:
        logger.error("No pages to scrape")
        sys.exit(1)

    valid_categories = resolve_valid_categories(all_targets)

    logger.info("=" * 60)
    logger.info("Countdown Scraper Starting")
    logger.info(f"Pages: {len(targets)}")
    logger.info(f"Backend: {'none (dry run)' if args.dry_run else backend}")
    logger.info(f"Reverse: {args.reverse}")
    logger.info(f"Day timezone: {config.DAY_TIMEZONE}")
    logger.info(f"Upload images: {config.UPLOAD_IMAGES and not args.dry_run}")
    logger.info("=" * 60)

    try:
        asyncio.run(
            run_scraper(
                targets=targets,
                valid_categories=valid_categories,
                dry_run=args.dry_run,
                reverse=args.reverse,
                backend=backend,
                delay=args.delay,
            )
        )
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
