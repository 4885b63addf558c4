"""Data ingestion - fetching, parsing and normalizing feeds."""

from .interfaces import (
    Article, Channel, ChannelItem, Feed, FeedKind, HttpResponse, NormalizedItem, RefreshLogEntry,
    FeedSourceInterface, HttpClientInterface, StorageInterface,
)
from .fetcher import RSSFetcher, parse_channel
from .identifiers import derive_id
from .icons import IconResolver
from .normalizer import normalize

__all__ = [
    "Article", "Channel", "ChannelItem", "Feed", "FeedKind", "HttpResponse",
    "NormalizedItem", "RefreshLogEntry",
    "FeedSourceInterface", "HttpClientInterface", "StorageInterface",
    "RSSFetcher", "parse_channel", "derive_id", "IconResolver", "normalize",
]
