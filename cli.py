"""
CLI utility for the catalog crawler.

Usage:
    python cli.py crawl --page 1 --num-chapters 5     # Crawl a catalog page, print JSON
    python cli.py crawl --site writerworking --transport browser
    python cli.py sites                               # List site profiles
"""
import argparse
import asyncio
import logging
import sys

from config import settings
from crawler.catalog import crawl_catalog
from crawler.errors import CatalogEmptyError, DiscoveryError
from crawler.sites import SiteRegistry
from schemas import CrawlResponse


def cmd_crawl(args):
    """Crawl one catalog page and print the result."""
    overrides = {
        key: value
        for key, value in {
            'site': args.site,
            'transport': args.transport,
            'max_book_workers': args.book_workers,
            'max_chapter_workers': args.chapter_workers,
        }.items()
        if value is not None
    }
    run_settings = settings.model_copy(update=overrides)

    if run_settings.site not in SiteRegistry.names():
        print(f"Error: unknown site '{run_settings.site}'")
        sys.exit(1)

    num_chapters = args.num_chapters
    if num_chapters is None:
        num_chapters = run_settings.default_num_chapters

    try:
        books = asyncio.run(crawl_catalog(run_settings, args.page, num_chapters))
    except CatalogEmptyError as e:
        print(f"Not found: {e}")
        sys.exit(1)
    except DiscoveryError as e:
        print(f"Error: {e}")
        sys.exit(2)

    print(CrawlResponse(results=books).model_dump_json(indent=2))


def cmd_sites(args):
    """List registered site profiles."""
    print(f"\n{'Name':<16} {'Origin':<40} {'Chapters':<10}")
    print("-" * 66)

    for name in SiteRegistry.names():
        profile = SiteRegistry.get_profile(name)
        print(f"{name:<16} {profile.origin:<40} {profile.chapter_mode:<10}")

    print(f"\nTotal: {len(SiteRegistry.names())} sites")


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Catalog Crawler CLI"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Crawl command
    crawl_parser = subparsers.add_parser("crawl", help="Crawl a catalog page")
    crawl_parser.add_argument("--page", type=int, default=1, help="Catalog page number")
    crawl_parser.add_argument(
        "--num-chapters",
        type=int,
        default=None,
        help="Chapters to fetch per book"
    )
    crawl_parser.add_argument("--site", default=None, help="Site profile name")
    crawl_parser.add_argument(
        "--transport",
        choices=["http", "browser"],
        default=None,
        help="Fetch over plain HTTP or a headless browser"
    )
    crawl_parser.add_argument("--book-workers", type=int, default=None, help="Books crawled at once")
    crawl_parser.add_argument("--chapter-workers", type=int, default=None, help="Chapters per batch")
    crawl_parser.set_defaults(func=cmd_crawl)

    # Sites command
    sites_parser = subparsers.add_parser("sites", help="List site profiles")
    sites_parser.set_defaults(func=cmd_sites)

    # Parse arguments
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )

    # Run command
    args.func(args)


if __name__ == "__main__":
    main()
