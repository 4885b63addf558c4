"""Refresh orchestration across all feeds."""

import asyncio
import time
from typing import Dict

import structlog

from .refresher import FeedRefresher, RefreshResult
from ..config.settings import settings
from ..errors import FeedNotFound, PersistenceFailure
from ..ingestion.fetcher import RSSFetcher
from ..ingestion.icons import IconResolver
from ..ingestion.interfaces import (
    Feed,
    FeedSourceInterface,
    HttpClientInterface,
    StorageInterface,
)

logger = structlog.get_logger()


class RefreshDriver:
    """Runs FeedRefresher over every feed with bounded concurrency."""

    def __init__(
        self,
        storage: StorageInterface,
        source: FeedSourceInterface,
        http: HttpClientInterface = None,
        concurrency: int = None,
        skip_disabled: bool = None,
    ):
        self.storage = storage
        self.refresher = FeedRefresher(storage, source, IconResolver(http or source))
        self.semaphore = asyncio.Semaphore(concurrency or settings.refresh_concurrency)
        self.skip_disabled = settings.skip_disabled_feeds if skip_disabled is None else skip_disabled
        self._feed_locks: Dict[str, asyncio.Lock] = {}

    async def refresh_feed(self, feed_id: str) -> RefreshResult:
        """Refresh a single feed.

        Raises FeedNotFound for an unknown id, FetchFailure or ParseFailure if
        the feed document can't be downloaded.
        """
        feed = self.storage.get_feed(feed_id)
        if feed is None:
            raise FeedNotFound(f"no feed with id {feed_id}")
        return await self._refresh(feed)

    async def refresh_all(self) -> dict:
        """Refresh every feed. Never raises; failures are logged per feed."""
        start = time.time()
        stats = {
            "feeds": 0,
            "refreshed": 0,
            "failed": 0,
            "skipped_disabled": 0,
            "articles_upserted": 0,
            "elapsed_seconds": 0.0,
        }

        try:
            feeds = self.storage.list_feeds()
        except PersistenceFailure as e:
            logger.error("feed_listing_failed", error=str(e))
            return stats

        stats["feeds"] = len(feeds)
        if self.skip_disabled:
            enabled = [f for f in feeds if not f.disabled]
            stats["skipped_disabled"] = len(feeds) - len(enabled)
            feeds = enabled

        results = await asyncio.gather(
            *(self._refresh(feed) for feed in feeds),
            return_exceptions=True
        )

        for feed, result in zip(feeds, results):
            if isinstance(result, Exception):
                stats["failed"] += 1
                logger.warning("feed_refresh_failed", feed_id=feed.id, url=feed.url, error=str(result))
                continue
            if isinstance(result, BaseException):
                raise result

            stats["refreshed"] += 1
            stats["articles_upserted"] += result.articles_upserted

        stats["elapsed_seconds"] = time.time() - start
        logger.info("all_feeds_refreshed", **stats)
        return stats

    async def _refresh(self, feed: Feed) -> RefreshResult:
        # Refreshes of the same feed never overlap
        lock = self._feed_locks.setdefault(feed.id, asyncio.Lock())
        async with lock, self.semaphore:
            return await self.refresher.refresh(feed)


async def run_refresh_all(storage: StorageInterface = None) -> dict:
    """Refresh every feed using the configured storage."""
    if storage is None:
        from ..storage.factory import get_storage
        storage = get_storage()

    async with RSSFetcher() as fetcher:
        return await RefreshDriver(storage, fetcher).refresh_all()


async def run_refresh_feed(feed_id: str, storage: StorageInterface = None) -> RefreshResult:
    """Refresh one feed using the configured storage."""
    if storage is None:
        from ..storage.factory import get_storage
        storage = get_storage()

    async with RSSFetcher() as fetcher:
        return await RefreshDriver(storage, fetcher).refresh_feed(feed_id)
