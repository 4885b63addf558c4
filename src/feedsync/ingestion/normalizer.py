"""Turn raw channel items into canonical article fields."""

import html
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional

import structlog
from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup

from .identifiers import derive_id
from .interfaces import ChannelItem, NormalizedItem
from .urls import normalize_url

logger = structlog.get_logger()

UNTITLED = "Untitled"

# RFC 2822 without the optional weekday and seconds
RSS_TIME_FORMAT = "%d %b %Y %H:%M %z"

# Elements removed from article bodies together with their children
STRIPPED_TAGS = ["script", "style", "iframe", "object", "embed", "noscript"]


def normalize(item: ChannelItem) -> NormalizedItem:
    """Extract title, link, content, key and publish time from an item.

    Raises ParseFailure if the item has a link that is not a valid URL.
    ``content`` is None when the item has neither content nor a summary;
    such items are not stored.
    """
    title = item.title if item.title is not None else UNTITLED
    link = normalize_url(item.link) if item.link else None

    raw_content = item.content if item.content is not None else item.summary
    content = process_content(raw_content) if raw_content is not None else None

    article_key = derive_id(item.guid, link, title, item.summary, content)

    published = parse_published(item.published) if item.published else None
    if published is None:
        if item.published:
            logger.warning(
                "published_date_invalid",
                article_key=article_key,
                value=item.published,
            )
        published = datetime.now(timezone.utc)

    return NormalizedItem(
        title=title,
        link=link,
        content=content,
        article_key=article_key,
        published=published,
    )


def parse_published(value: str) -> Optional[datetime]:
    """Parse a feed date string, returning None if no known format matches.

    The offset of the source is kept. Dates that can't be expressed in UTC
    (year 1 with a positive offset, for example) count as unparseable.
    """
    parsed = _parse_date(value.strip())
    if parsed is None:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        parsed.astimezone(timezone.utc)
    except OverflowError:
        return None
    return parsed


def _parse_date(value: str) -> Optional[datetime]:
    try:
        return datetime.strptime(value, RSS_TIME_FORMAT)
    except ValueError:
        pass

    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError, OverflowError):
        pass

    # Atom documents use RFC 3339
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def process_content(content: str) -> str:
    """Clean up an HTML fragment for display.

    Active elements, inline styles and event handler attributes are removed.
    If the fragment cannot be parsed at all, the text is returned escaped.
    """
    try:
        soup = BeautifulSoup(content, "html.parser")
    except ParserRejectedMarkup as e:
        logger.warning("content_parse_failed", error=str(e))
        return html.escape(content)

    for tag in soup.find_all(STRIPPED_TAGS):
        tag.decompose()

    for tag in soup.find_all(True):
        for attr in list(tag.attrs):
            if attr == "style" or attr.lower().startswith("on"):
                del tag[attr]

    return str(soup).strip()
