"""Pipeline orchestration - per-feed refresh and refresh-all."""

from .driver import RefreshDriver, run_refresh_all, run_refresh_feed
from .refresher import FeedRefresher, RefreshError, RefreshErrorKind, RefreshResult

__all__ = [
    "RefreshDriver", "run_refresh_all", "run_refresh_feed",
    "FeedRefresher", "RefreshError", "RefreshErrorKind", "RefreshResult",
]
