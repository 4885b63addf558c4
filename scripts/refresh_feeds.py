#!/usr/bin/env python3
"""Refresh feeds once from the command line."""

import argparse
import asyncio
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from feedsync.config.feeds import seed_feeds
from feedsync.config.log import configure_logging
from feedsync.errors import FeedSyncError
from feedsync.pipeline.driver import run_refresh_all, run_refresh_feed
from feedsync.storage.factory import get_storage


def print_header(title):
    print(f"\n{'='*50}")
    print(f" {title}")
    print('='*50)


def print_stats(storage):
    stats = storage.get_stats()
    print(f"  Database:  {stats['total_feeds']} feeds, {stats['total_articles']} articles, "
          f"{stats['failed_refreshes']}/{stats['refresh_log_entries']} failed refreshes logged")


def main():
    parser = argparse.ArgumentParser(description="Refresh syndication feeds")
    parser.add_argument("--feed-id", help="Refresh only this feed")
    parser.add_argument("--seed", metavar="PATH", nargs="?", const="",
                        help="Register feeds from a JSON file first (default: config/feeds.json)")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    args = parser.parse_args()

    configure_logging(args.log_level)
    storage = get_storage()

    if args.seed is not None:
        created = seed_feeds(storage, args.seed or None)
        print(f"Registered {len(created)} new feed(s)")

    if args.feed_id:
        try:
            result = asyncio.run(run_refresh_feed(args.feed_id, storage))
        except FeedSyncError as e:
            print(f"Refresh failed: {e}", file=sys.stderr)
            return 1

        print_header("FEED REFRESHED")
        print(f"  Articles upserted: {result.articles_upserted}")
        print(f"  Items skipped:     {result.items_skipped}")
        for error in result.errors:
            print(f"  ! {error}")
        print_stats(storage)
        return 0

    stats = asyncio.run(run_refresh_all(storage))

    print_header("REFRESH RESULTS")
    print(f"  Feeds:     {stats['feeds']} ({stats['skipped_disabled']} disabled)")
    print(f"  Refreshed: {stats['refreshed']}")
    print(f"  Failed:    {stats['failed']}")
    print(f"  Articles:  {stats['articles_upserted']} upserted")
    print_stats(storage)
    print(f"  TIME: {stats['elapsed_seconds']:.1f}s\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
