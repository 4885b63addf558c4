"""Database operations for feeds, articles and the refresh log."""

import uuid
from datetime import datetime, timezone
from typing import Optional, List
from pathlib import Path

from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
import structlog

from .models import ArticleModel, FeedLogModel, FeedModel, init_db
from ..config.settings import settings
from ..errors import PersistenceFailure
from ..ingestion.interfaces import (
    Article,
    Feed,
    FeedKind,
    RefreshLogEntry,
    StorageInterface,
)

logger = structlog.get_logger()

# Dialects with INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "sqlite": sqlite_insert,
    "postgresql": postgresql_insert,
}


def _to_db_time(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _from_db_time(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc)


class FeedStorage(StorageInterface):
    """SQLAlchemy storage for feeds, articles and refresh logs."""

    def __init__(self, database_url: str = None):
        if database_url is None:
            database_url = settings.database_url

        # Ensure data directory exists
        if database_url.startswith("sqlite:///"):
            db_path = database_url.replace("sqlite:///", "")
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self.engine = init_db(database_url)
        if self.engine.dialect.name not in _UPSERT_INSERTS:
            raise ValueError(f"unsupported database dialect: {self.engine.dialect.name}")
        self._insert = _UPSERT_INSERTS[self.engine.dialect.name]
        self.Session = sessionmaker(bind=self.engine)

    # Feeds

    def list_feeds(self) -> List[Feed]:
        """Return every registered feed in registration order."""
        session = self.Session()
        try:
            models = session.query(FeedModel)\
                .order_by(FeedModel.created_at)\
                .all()
            return [self._model_to_feed(m) for m in models]
        except SQLAlchemyError as e:
            logger.warning("feed_list_failed", error=str(e))
            raise PersistenceFailure(f"error loading feeds: {e}") from e
        finally:
            session.close()

    def get_feed(self, feed_id: str) -> Optional[Feed]:
        """Get a feed by id."""
        session = self.Session()
        try:
            model = session.get(FeedModel, feed_id)
            return self._model_to_feed(model) if model else None
        except SQLAlchemyError as e:
            logger.warning("feed_get_failed", feed_id=feed_id, error=str(e))
            raise PersistenceFailure(f"error getting feed {feed_id}: {e}") from e
        finally:
            session.close()

    def get_feed_by_url(self, url: str) -> Optional[Feed]:
        """Get a feed by source URL."""
        session = self.Session()
        try:
            model = session.query(FeedModel)\
                .filter(FeedModel.url == url)\
                .first()
            return self._model_to_feed(model) if model else None
        except SQLAlchemyError as e:
            logger.warning("feed_get_failed", url=url, error=str(e))
            raise PersistenceFailure(f"error getting feed {url}: {e}") from e
        finally:
            session.close()

    def create_feed(
        self,
        url: str,
        title: str,
        kind: FeedKind = FeedKind.RSS,
        disabled: bool = False
    ) -> Feed:
        """Register a new feed."""
        session = self.Session()
        try:
            model = FeedModel(
                id=str(uuid.uuid4()),
                url=url,
                title=title,
                kind=kind.value,
                disabled=disabled,
            )
            session.add(model)
            session.commit()
            logger.info("feed_created", id=model.id, url=url)
            return self._model_to_feed(model)
        except SQLAlchemyError as e:
            session.rollback()
            logger.warning("feed_create_failed", url=url, error=str(e))
            raise PersistenceFailure(f"error inserting feed: {e}") from e
        finally:
            session.close()

    def update_feed_icon(self, feed_id: str, icon: str) -> None:
        """Overwrite the icon of a feed."""
        session = self.Session()
        try:
            session.query(FeedModel)\
                .filter(FeedModel.id == feed_id)\
                .update({FeedModel.icon: icon})
            session.commit()
            logger.debug("feed_icon_updated", feed_id=feed_id)
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceFailure(f"error updating icon: {e}") from e
        finally:
            session.close()

    # Articles

    def upsert_article(
        self,
        feed_id: str,
        article_key: str,
        title: str,
        content: str,
        link: Optional[str],
        published: datetime,
    ) -> Article:
        """Insert an article, or replace the one stored under (feed_id, article_key).

        Replacing keeps the stored article's id and overwrites title, content,
        link and published time.
        """
        session = self.Session()
        try:
            stmt = self._insert(ArticleModel).values(
                id=str(uuid.uuid4()),
                feed_id=feed_id,
                article_key=article_key,
                title=title,
                content=content,
                link=link,
                published=_to_db_time(published),
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["feed_id", "article_key"],
                set_={
                    "title": stmt.excluded.title,
                    "content": stmt.excluded.content,
                    "link": stmt.excluded.link,
                    "published": stmt.excluded.published,
                },
            )
            session.execute(stmt)
            session.commit()

            model = session.query(ArticleModel)\
                .filter(ArticleModel.feed_id == feed_id)\
                .filter(ArticleModel.article_key == article_key)\
                .one()
            logger.debug("article_upserted", id=model.id, article_key=article_key[:50])
            return self._model_to_article(model)
        except SQLAlchemyError as e:
            session.rollback()
            logger.warning(
                "article_upsert_failed",
                feed_id=feed_id,
                article_key=article_key[:50],
                error=str(e)
            )
            raise PersistenceFailure(f"error creating article: {e}") from e
        finally:
            session.close()

    def get_articles(self, feed_id: str = None) -> List[Article]:
        """Get articles, optionally only those of one feed."""
        session = self.Session()
        try:
            query = session.query(ArticleModel)
            if feed_id:
                query = query.filter(ArticleModel.feed_id == feed_id)
            models = query.order_by(ArticleModel.published.desc()).all()
            return [self._model_to_article(m) for m in models]
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"error loading articles: {e}") from e
        finally:
            session.close()

    # Refresh log

    def append_refresh_log(self, feed_id: str, success: bool, message: str) -> RefreshLogEntry:
        """Append an entry to the refresh audit log."""
        session = self.Session()
        try:
            model = FeedLogModel(
                id=str(uuid.uuid4()),
                time=datetime.utcnow(),
                feed_id=feed_id,
                success=success,
                message=message,
            )
            session.add(model)
            session.commit()
            return self._model_to_log(model)
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceFailure(f"error creating feed log: {e}") from e
        finally:
            session.close()

    def get_refresh_logs(self, feed_id: str = None) -> List[RefreshLogEntry]:
        """Get refresh log entries in time order."""
        session = self.Session()
        try:
            query = session.query(FeedLogModel)
            if feed_id:
                query = query.filter(FeedLogModel.feed_id == feed_id)
            models = query.order_by(FeedLogModel.time).all()
            return [self._model_to_log(m) for m in models]
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"error loading feed logs: {e}") from e
        finally:
            session.close()

    def get_stats(self) -> dict:
        """Get database statistics."""
        session = self.Session()
        try:
            return {
                "total_feeds": session.query(FeedModel).count(),
                "disabled_feeds": session.query(FeedModel)
                    .filter(FeedModel.disabled == True).count(),
                "total_articles": session.query(ArticleModel).count(),
                "refresh_log_entries": session.query(FeedLogModel).count(),
                "failed_refreshes": session.query(FeedLogModel)
                    .filter(FeedLogModel.success == False).count(),
            }
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"error loading stats: {e}") from e
        finally:
            session.close()

    def _model_to_feed(self, model: FeedModel) -> Feed:
        """Convert database model to Feed."""
        return Feed(
            id=model.id,
            url=model.url,
            title=model.title,
            kind=FeedKind(model.kind),
            disabled=bool(model.disabled),
            icon=model.icon,
            html_url=model.html_url,
        )

    def _model_to_article(self, model: ArticleModel) -> Article:
        """Convert database model to Article."""
        return Article(
            id=model.id,
            feed_id=model.feed_id,
            article_key=model.article_key,
            title=model.title,
            content=model.content,
            link=model.link,
            published=_from_db_time(model.published),
        )

    def _model_to_log(self, model: FeedLogModel) -> RefreshLogEntry:
        """Convert database model to RefreshLogEntry."""
        return RefreshLogEntry(
            id=model.id,
            feed_id=model.feed_id,
            success=bool(model.success),
            message=model.message or "",
            time=_from_db_time(model.time),
        )
