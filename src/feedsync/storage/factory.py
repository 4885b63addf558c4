"""Shared FeedStorage for the scripts.

The database URL comes from DATABASE_URL, then FEEDSYNC_DATABASE_URL, then
the settings default (SQLite under data/).
"""

import os
from functools import lru_cache

from sqlalchemy.engine import make_url
import structlog

logger = structlog.get_logger()

# Hosting platforms hand out postgres:// URLs; SQLAlchemy only knows postgresql://
_LEGACY_POSTGRES_SCHEME = "postgres://"


def get_database_url() -> str:
    """Resolve the configured database URL in a form SQLAlchemy accepts."""
    url = os.environ.get("DATABASE_URL") or os.environ.get("FEEDSYNC_DATABASE_URL")
    if not url:
        from ..config.settings import settings
        url = settings.database_url

    if url.startswith(_LEGACY_POSTGRES_SCHEME):
        url = "postgresql://" + url[len(_LEGACY_POSTGRES_SCHEME):]
    return url


@lru_cache(maxsize=1)
def get_storage():
    """Get the shared FeedStorage instance."""
    from .database import FeedStorage

    url = get_database_url()
    storage = FeedStorage(url)
    logger.info(
        "using_storage",
        dialect=storage.engine.dialect.name,
        url=make_url(url).render_as_string(hide_password=True),
    )
    return storage


def clear_cache():
    """Forget the shared storage so the next call re-reads the environment."""
    get_storage.cache_clear()
