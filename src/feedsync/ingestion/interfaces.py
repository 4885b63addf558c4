"""Interface definitions for feed ingestion."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional


class FeedKind(Enum):
    """Syndication format of a feed document."""
    RSS = "rss"
    ATOM = "atom"


@dataclass
class Feed:
    """A registered feed."""
    id: str
    url: str
    title: str
    kind: FeedKind = FeedKind.RSS
    disabled: bool = False
    icon: Optional[str] = None      # data URI or external URL
    html_url: Optional[str] = None  # canonical site URL


@dataclass
class ChannelItem:
    """One raw entry of a channel, as found in the document."""
    guid: Optional[str] = None
    title: Optional[str] = None
    link: Optional[str] = None
    summary: Optional[str] = None
    content: Optional[str] = None
    published: Optional[str] = None  # raw date string


@dataclass
class Channel:
    """A parsed feed document."""
    title: str = ""
    link: Optional[str] = None
    image_url: Optional[str] = None
    kind: FeedKind = FeedKind.RSS
    items: List[ChannelItem] = field(default_factory=list)


@dataclass
class NormalizedItem:
    """Canonical form of a channel item."""
    title: str
    link: Optional[str]
    content: Optional[str]
    article_key: str
    published: datetime


@dataclass
class Article:
    """A stored article."""
    id: str
    feed_id: str
    article_key: str  # unique within a feed only
    title: str
    content: str
    link: Optional[str] = None
    published: Optional[datetime] = None


@dataclass
class RefreshLogEntry:
    """One audit record per refresh attempt."""
    id: str
    feed_id: str
    success: bool
    message: str = ""
    time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class HttpResponse:
    """Minimal response shape returned by an HTTP client."""
    status: int
    headers: Dict[str, str] = field(default_factory=dict)  # lower-cased names
    body: bytes = b""


class FeedSourceInterface:
    """Interface for downloading and parsing feed documents."""

    async def fetch_channel(self, url: str) -> Channel:
        """Download and parse the document at url."""
        raise NotImplementedError


class HttpClientInterface:
    """Interface for plain HTTP GET requests."""

    async def get(self, url: str, timeout: Optional[float] = None) -> HttpResponse:
        """GET url and return the full response."""
        raise NotImplementedError


class StorageInterface:
    """Interface for feed, article and refresh log storage."""

    def list_feeds(self) -> List[Feed]:
        """Return every registered feed in storage order."""
        raise NotImplementedError

    def get_feed(self, feed_id: str) -> Optional[Feed]:
        """Get a feed by id."""
        raise NotImplementedError

    def get_feed_by_url(self, url: str) -> Optional[Feed]:
        """Get a feed by source URL."""
        raise NotImplementedError

    def create_feed(self, url: str, title: str, kind: FeedKind = FeedKind.RSS) -> Feed:
        """Register a new feed."""
        raise NotImplementedError

    def update_feed_icon(self, feed_id: str, icon: str) -> None:
        """Overwrite the icon of a feed."""
        raise NotImplementedError

    def upsert_article(
        self,
        feed_id: str,
        article_key: str,
        title: str,
        content: str,
        link: Optional[str],
        published: datetime,
    ) -> Article:
        """Insert an article, or replace the one stored under (feed_id, article_key)."""
        raise NotImplementedError

    def append_refresh_log(self, feed_id: str, success: bool, message: str) -> RefreshLogEntry:
        """Append an entry to the refresh audit log."""
        raise NotImplementedError

    def get_articles(self, feed_id: str = None) -> List[Article]:
        """Get articles, optionally only those of one feed."""
        raise NotImplementedError

    def get_refresh_logs(self, feed_id: str = None) -> List[RefreshLogEntry]:
        """Get refresh log entries in time order."""
        raise NotImplementedError
