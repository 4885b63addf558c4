"""Refresh of a single feed: download, icon, items, audit log."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import structlog

from ..errors import (
    FetchFailure,
    IconResolutionFailure,
    ParseFailure,
    PersistenceFailure,
)
from ..ingestion.icons import IconResolver
from ..ingestion.interfaces import ChannelItem, Channel, Feed, FeedSourceInterface, StorageInterface
from ..ingestion.normalizer import normalize

logger = structlog.get_logger()


class RefreshErrorKind(Enum):
    """Categories of non-fatal refresh errors."""
    ICON = "icon"
    ITEM = "item"
    PERSISTENCE = "persistence"


@dataclass
class RefreshError:
    """A non-fatal error recorded while refreshing a feed."""
    kind: RefreshErrorKind
    message: str
    item: Optional[str] = None  # item link, when known

    def __str__(self) -> str:
        return self.message


@dataclass
class RefreshResult:
    """Outcome of a completed refresh."""
    feed_id: str
    success: bool = True
    errors: List[RefreshError] = field(default_factory=list)
    articles_upserted: int = 0
    items_skipped: int = 0

    @property
    def message(self) -> str:
        """Audit log message: one line per error, empty when clean."""
        return "\n".join(str(e) for e in self.errors)


class FeedRefresher:
    """Refreshes one feed at a time.

    Only a failed channel download is fatal. Icon, item and storage errors
    are collected on the RefreshResult and written to the refresh log.
    """

    def __init__(
        self,
        storage: StorageInterface,
        source: FeedSourceInterface,
        icons: IconResolver,
    ):
        self.storage = storage
        self.source = source
        self.icons = icons

    async def refresh(self, feed: Feed) -> RefreshResult:
        """Refresh feed, raising FetchFailure or ParseFailure if it can't be downloaded."""
        try:
            channel = await self.source.fetch_channel(feed.url)
        except (FetchFailure, ParseFailure) as e:
            logger.warning("feed_download_failed", feed_id=feed.id, url=feed.url, error=str(e))
            self._write_log(feed.id, False, str(e))
            raise

        logger.debug("feed_downloaded", feed_id=feed.id, url=feed.url, items=len(channel.items))
        result = RefreshResult(feed_id=feed.id)

        await self._update_icon(feed, channel, result)

        for index, item in enumerate(channel.items):
            self._process_item(feed, index, item, result)

        self._write_log(feed.id, True, result.message)

        logger.info(
            "feed_refreshed",
            feed_id=feed.id,
            url=feed.url,
            articles=result.articles_upserted,
            skipped=result.items_skipped,
            errors=len(result.errors)
        )
        return result

    async def _update_icon(self, feed: Feed, channel: Channel, result: RefreshResult) -> None:
        try:
            icon = await self.icons.resolve_icon(channel)
        except (IconResolutionFailure, ParseFailure) as e:
            logger.warning("icon_resolution_failed", feed_id=feed.id, url=feed.url, error=str(e))
            result.errors.append(RefreshError(RefreshErrorKind.ICON, f"error getting icon: {e}"))
            return

        if icon is None:
            return

        try:
            self.storage.update_feed_icon(feed.id, icon)
        except PersistenceFailure as e:
            result.errors.append(RefreshError(RefreshErrorKind.PERSISTENCE, str(e)))

    def _process_item(self, feed: Feed, index: int, item: ChannelItem, result: RefreshResult) -> None:
        try:
            self._store_item(feed, item, result)
        except ParseFailure as e:
            logger.warning("item_invalid", feed_id=feed.id, index=index, link=item.link, error=str(e))
            result.errors.append(RefreshError(
                RefreshErrorKind.ITEM,
                f"error reading item {index}: {e}",
                item=item.link,
            ))
        except PersistenceFailure as e:
            result.errors.append(RefreshError(
                RefreshErrorKind.PERSISTENCE,
                str(e),
                item=item.link,
            ))
        except Exception as e:
            # One broken item must not abort the rest of the feed
            logger.error("item_processing_failed", feed_id=feed.id, index=index, error=repr(e))
            result.errors.append(RefreshError(
                RefreshErrorKind.ITEM,
                f"error reading item {index}: {e!r}",
                item=item.link,
            ))

    def _store_item(self, feed: Feed, item: ChannelItem, result: RefreshResult) -> None:
        normalized = normalize(item)

        # Items without a body are not stored
        if normalized.content is None:
            result.items_skipped += 1
            return

        self.storage.upsert_article(
            feed.id,
            normalized.article_key,
            normalized.title,
            normalized.content,
            normalized.link,
            normalized.published,
        )
        result.articles_upserted += 1

    def _write_log(self, feed_id: str, success: bool, message: str) -> None:
        try:
            self.storage.append_refresh_log(feed_id, success, message)
        except PersistenceFailure as e:
            logger.warning("refresh_log_write_failed", feed_id=feed_id, error=str(e))
