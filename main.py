"""CLI entry point for the Dice jobs crawler."""

import argparse
import asyncio
import logging
import sys

from src.core.config import Settings
from src.core.db import init_db
from src.crawler.fetcher import BrowserFetcher
from src.crawler.session import BrowserSession
from src.pipeline.orchestrator import build_start_requests, export_results_json, run_crawl
from src.platforms.dice.searcher import DEFAULT_HEADERS


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Dice.com jobs crawler - search, enrich and store job listings",
    )
    subparsers = parser.add_subparsers(dest="command")

    crawl_parser = subparsers.add_parser("crawl", help="Run a crawl")
    crawl_parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    crawl_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the seed requests without launching a browser",
    )
    crawl_parser.add_argument(
        "--export",
        choices=["json"],
        help="Export stored jobs to format (json)",
    )
    crawl_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    # --- top-level flags for crawl ---
    parser.add_argument("--config", default="config/settings.yaml", help=argparse.SUPPRESS)
    parser.add_argument("--dry-run", action="store_true", help=argparse.SUPPRESS)
    parser.add_argument("--export", choices=["json"], help=argparse.SUPPRESS)
    parser.add_argument("--verbose", "-v", action="store_true", help=argparse.SUPPRESS)

    args = parser.parse_args(argv)

    # Default to crawl when no subcommand given
    if args.command is None:
        args.command = "crawl"

    return args


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def dry_run(settings: Settings) -> None:
    """Print the seed requests without fetching anything."""
    requests = build_start_requests(settings.input)
    print(f"[DRY RUN] {len(requests)} seed requests")
    for request in requests:
        print(f"[DRY RUN] {request.label}: {request.url}")
    max_jobs = settings.input.max_jobs
    print(f"[DRY RUN] Max jobs: {max_jobs or 'unbounded'}")
    print(f"[DRY RUN] Scrape job details: {settings.input.scrape_job_details}")
    print(f"[DRY RUN] Max concurrency: {settings.input.max_concurrency}")


async def run(settings: Settings, export_format: str | None) -> None:
    """Run the crawl with a real browser."""
    conn = init_db(settings.database.path)

    async with BrowserSession(settings.browser, settings.input.proxy) as session:
        fetcher = BrowserFetcher(session, api_headers=DEFAULT_HEADERS)
        stats = await run_crawl(settings, fetcher, conn)

    print(f"\nCrawl complete: {stats.jobs_persisted} jobs stored "
          f"({stats.jobs_with_details} with details), "
          f"{stats.duplicates_skipped} duplicates skipped, "
          f"{stats.errors} errors in {stats.duration_seconds:.2f}s.")

    if export_format == "json":
        print(f"\n{export_results_json(conn)}")

    conn.close()


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = Settings.from_yaml(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    if args.dry_run:
        dry_run(settings)
    else:
        asyncio.run(run(settings, args.export))


if __name__ == "__main__":
    main()
