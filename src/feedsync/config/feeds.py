"""Feed configuration loader."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import List

import structlog

from ..ingestion.interfaces import Feed, FeedKind, StorageInterface
from .settings import settings

logger = structlog.get_logger()


@dataclass
class FeedSeed:
    """A feed entry from the JSON config file."""
    url: str
    title: str
    kind: FeedKind = FeedKind.RSS
    disabled: bool = False


def load_feeds(config_path: str = None) -> List[FeedSeed]:
    """Load feed entries from a JSON file."""
    if config_path is None:
        config_path = settings.feeds_config

    with open(Path(config_path)) as f:
        data = json.load(f)

    return [
        FeedSeed(
            url=feed_data["url"],
            title=feed_data.get("title", feed_data["url"]),
            kind=FeedKind(feed_data.get("kind", "rss")),
            disabled=feed_data.get("disabled", False),
        )
        for feed_data in data.get("feeds", [])
    ]


def seed_feeds(storage: StorageInterface, config_path: str = None) -> List[Feed]:
    """Register every configured feed whose URL is not yet stored.

    Returns the newly created feeds.
    """
    created = []
    for seed in load_feeds(config_path):
        if storage.get_feed_by_url(seed.url):
            continue
        created.append(storage.create_feed(
            seed.url,
            seed.title,
            kind=seed.kind,
            disabled=seed.disabled,
        ))

    logger.info("feeds_seeded", created=len(created))
    return created
