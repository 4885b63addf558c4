"""SQLAlchemy models for the feedsync database."""

from datetime import datetime

from sqlalchemy import create_engine, Column, String, Text, Boolean, DateTime, Index, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class FeedModel(Base):
    """Database model for registered feeds."""
    __tablename__ = "feeds"

    id = Column(String(36), primary_key=True)
    url = Column(String(2048), nullable=False)
    title = Column(Text, nullable=False)
    kind = Column(String(16), nullable=False, default="rss")
    disabled = Column(Boolean, nullable=False, default=False)

    # data: URI or external URL
    icon = Column(Text)
    html_url = Column(String(2048))

    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('idx_feeds_url', 'url'),
    )


class ArticleModel(Base):
    """Database model for articles."""
    __tablename__ = "articles"

    id = Column(String(36), primary_key=True)
    feed_id = Column(String(36), nullable=False)
    article_key = Column(Text, nullable=False)

    title = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    link = Column(String(2048))

    # Stored as naive UTC
    published = Column(DateTime)

    __table_args__ = (
        UniqueConstraint('feed_id', 'article_key', name='uq_articles_feed_key'),
        Index('idx_articles_feed', 'feed_id'),
        Index('idx_articles_published', 'published'),
    )


class FeedLogModel(Base):
    """Database model for the append-only refresh log."""
    __tablename__ = "feed_logs"

    id = Column(String(36), primary_key=True)
    time = Column(DateTime, nullable=False, default=datetime.utcnow)
    feed_id = Column(String(36), nullable=False)
    success = Column(Boolean, nullable=False)
    message = Column(Text)

    __table_args__ = (
        Index('idx_feed_logs_feed', 'feed_id', 'time'),
    )


def init_db(database_url: str):
    """Initialize database and create all tables."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return engine
