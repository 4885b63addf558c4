"""Exception types raised by the refresh pipeline."""

from typing import Optional


class FeedSyncError(Exception):
    """Base class for all feedsync errors."""


class FetchFailure(FeedSyncError):
    """Network, DNS or timeout failure while downloading a document."""


class ParseFailure(FeedSyncError):
    """Malformed feed document or malformed URL."""


class PersistenceFailure(FeedSyncError):
    """Storage rejected a read or write."""


class IconResolutionFailure(FeedSyncError):
    """The feed icon could not be downloaded."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class FeedNotFound(FeedSyncError):
    """No feed is registered under the requested id."""
