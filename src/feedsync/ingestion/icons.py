"""Feed icon resolution.

Icons are inlined as ``data:`` URIs so displaying a feed never depends on its
origin server being reachable.
"""

import asyncio
import base64
from typing import Optional

import aiohttp
import structlog

from .interfaces import Channel, HttpClientInterface
from .urls import normalize_url, url_origin
from ..config.settings import settings
from ..errors import FetchFailure, IconResolutionFailure

logger = structlog.get_logger()

FAVICON_PATH = "/favicon.ico"


class IconResolver:
    """Finds a channel's icon and downloads it as a data URI."""

    def __init__(self, http: HttpClientInterface, timeout: float = None):
        self.http = http
        self.timeout = timeout if timeout is not None else settings.icon_timeout_seconds

    @staticmethod
    def candidate_url(channel: Channel) -> Optional[str]:
        """Return the URL the icon should be fetched from, if any.

        An explicit channel image wins; otherwise the conventional favicon
        at the origin of the channel link. Links with an opaque origin have
        no favicon.
        """
        if channel.image_url:
            return normalize_url(channel.image_url)

        if not channel.link:
            return None

        origin = url_origin(channel.link)
        if origin is None:
            return None
        return origin.serialize() + FAVICON_PATH

    async def resolve_icon(self, channel: Channel) -> Optional[str]:
        """Return the channel icon as a data URI, or None if there is none."""
        url = self.candidate_url(channel)
        if url is None:
            return None

        try:
            response = await self.http.get(url, timeout=self.timeout)
        except (FetchFailure, aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise IconResolutionFailure(f"error downloading icon from {url}: {e}") from e

        if response.status != 200:
            logger.warning("icon_download_failed", url=url, status=response.status)
            raise IconResolutionFailure(
                f"error downloading icon ({response.status})",
                status=response.status,
            )

        content_type = response.headers.get("content-type")
        if not content_type:
            logger.debug("icon_missing_content_type", url=url)
            return None

        payload = base64.b64encode(response.body).decode("ascii")
        return f"data:{content_type};base64,{payload}"
