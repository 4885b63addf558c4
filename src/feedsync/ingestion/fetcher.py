"""Feed fetcher with async support, timeouts, and retries."""

import asyncio
import time
from typing import Optional, Union

import aiohttp
import feedparser
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential
import structlog

from .interfaces import (
    Channel,
    ChannelItem,
    FeedKind,
    FeedSourceInterface,
    HttpClientInterface,
    HttpResponse,
)
from ..config.settings import settings
from ..errors import FetchFailure, ParseFailure

logger = structlog.get_logger()


class RSSFetcher(FeedSourceInterface, HttpClientInterface):
    """Async feed fetcher; also serves plain GETs for icon downloads."""

    def __init__(self, timeout: float = None):
        self.session: Optional[aiohttp.ClientSession] = None
        self.timeout = timeout if timeout is not None else settings.fetch_timeout_seconds

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            headers={"User-Agent": settings.user_agent}
        )
        return self

    async def __aexit__(self, *args):
        if self.session:
            await self.session.close()

    async def fetch_channel(self, url: str) -> Channel:
        """Download and parse the feed at url.

        Raises FetchFailure for network errors, timeouts and error statuses,
        ParseFailure if the body is not a feed document.
        """
        start_time = time.time()

        try:
            content = await self._download(url)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("feed_fetch_failed", url=url, error=repr(e))
            raise FetchFailure(f"error downloading feed {url}: {e!r}") from e

        channel = parse_channel(content)

        logger.info(
            "feed_fetched",
            url=url,
            items=len(channel.items),
            time_ms=int((time.time() - start_time) * 1000)
        )
        return channel

    async def get(self, url: str, timeout: Optional[float] = None) -> HttpResponse:
        """GET url, returning status, lower-cased headers and body."""
        session = self._require_session()
        kwargs = {}
        if timeout is not None:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=timeout)

        try:
            async with session.get(url, **kwargs) as response:
                body = await response.read()
                return HttpResponse(
                    status=response.status,
                    headers={k.lower(): v for k, v in response.headers.items()},
                    body=body,
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchFailure(f"error requesting {url}: {e!r}") from e

    @retry(
        retry=retry_if_exception_type((aiohttp.ClientConnectionError, asyncio.TimeoutError)),
        stop=stop_after_attempt(settings.fetch_max_retries),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True
    )
    async def _download(self, url: str) -> bytes:
        session = self._require_session()
        async with session.get(url) as response:
            response.raise_for_status()
            return await response.read()

    def _require_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            raise RuntimeError("RSSFetcher must be used as an async context manager")
        return self.session


def parse_channel(content: Union[bytes, str]) -> Channel:
    """Parse a feed document into a Channel.

    Raises ParseFailure if feedparser does not recognize the document.
    """
    parsed = feedparser.parse(content)
    if not parsed.version:
        error = parsed.get("bozo_exception")
        message = "unrecognized feed document"
        if error:
            message = f"{message}: {error}"
        raise ParseFailure(message)

    feed = parsed.feed
    image = feed.get("image") or {}

    items = []
    for entry in parsed.entries:
        content = None
        if entry.get("content"):
            content = entry.content[0].get("value")

        items.append(ChannelItem(
            guid=entry.get("id"),
            title=entry.get("title"),
            link=entry.get("link"),
            summary=entry.get("summary"),
            content=content,
            published=entry.get("published") or entry.get("updated"),
        ))

    return Channel(
        title=feed.get("title", ""),
        link=feed.get("link"),
        image_url=image.get("href") or feed.get("logo") or feed.get("icon"),
        kind=FeedKind.ATOM if parsed.version.startswith("atom") else FeedKind.RSS,
        items=items,
    )
