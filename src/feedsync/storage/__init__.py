"""Database storage and models."""

from .database import FeedStorage
from .models import FeedModel, ArticleModel, FeedLogModel, init_db

__all__ = ["FeedStorage", "FeedModel", "ArticleModel", "FeedLogModel", "init_db"]
