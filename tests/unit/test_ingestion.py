"""Unit tests for feed fetching and parsing."""

import asyncio

import aiohttp
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from structlog.testing import capture_logs
from tenacity import wait_none

from feedsync.config.settings import settings
from feedsync.errors import FetchFailure, ParseFailure
from feedsync.ingestion.fetcher import RSSFetcher, parse_channel
from feedsync.ingestion.interfaces import FeedKind

from conftest import SAMPLE_ATOM, SAMPLE_RSS


class TestParseChannel:
    """Tests for parse_channel."""

    def test_rss_channel_metadata(self):
        """Should read title, link and image of an RSS channel."""
        channel = parse_channel(SAMPLE_RSS)

        assert channel.title == "Example Engineering"
        assert channel.link == "https://example.com/"
        assert channel.image_url == "https://example.com/logo.png"
        assert channel.kind == FeedKind.RSS

    def test_rss_items_in_document_order(self):
        """Items keep the order of the document."""
        channel = parse_channel(SAMPLE_RSS)

        assert [i.title for i in channel.items] == ["Scaling the ingest queue", "Release notes"]
        assert [i.link for i in channel.items] == [
            "https://example.com/posts/1",
            "https://example.com/posts/2",
        ]

    def test_rss_item_fields(self):
        """Should expose guid, raw date, summary and full content."""
        first, second = parse_channel(SAMPLE_RSS).items

        assert first.guid == "urn:example:post:1"
        assert first.published == "Mon, 02 Jan 2023 10:30:00 +0000"
        assert first.summary == "How we scaled ingest"
        assert "sharded" in first.content
        assert second.content is None
        assert second.summary == "Version 2 is out"
        assert second.published == "03 Jan 2023 11:00 +0000"

    def test_atom_channel(self):
        """Atom documents are recognized and their update time is used."""
        channel = parse_channel(SAMPLE_ATOM)

        assert channel.kind == FeedKind.ATOM
        assert channel.link == "https://atom.example.org/"
        assert len(channel.items) == 1
        entry = channel.items[0]
        assert entry.guid == "urn:uuid:1225c695-cfb8-4ebb-aaaa-80da344efa6a"
        assert entry.link == "https://atom.example.org/2023/01/05/entry"
        assert entry.published == "2023-01-05T18:30:02Z"
        assert "Atom body" in entry.content

    def test_not_a_feed(self):
        """Documents feedparser doesn't recognize are a ParseFailure."""
        with pytest.raises(ParseFailure):
            parse_channel(b"this is not a feed document")


@pytest.mark.asyncio
class TestRSSFetcher:
    """Tests for RSSFetcher with the network layer mocked out."""

    async def test_fetch_channel_parses_download(self):
        """Should parse whatever _download returns."""
        async with RSSFetcher() as fetcher:
            with patch.object(fetcher, "_download", AsyncMock(return_value=SAMPLE_RSS)):
                channel = await fetcher.fetch_channel("https://example.com/feed.xml")

        assert len(channel.items) == 2

    async def test_network_error_is_fetch_failure(self):
        """Connection errors surface as FetchFailure."""
        error = aiohttp.ClientConnectionError("connection refused")
        async with RSSFetcher() as fetcher:
            with patch.object(fetcher, "_download", AsyncMock(side_effect=error)):
                with pytest.raises(FetchFailure):
                    await fetcher.fetch_channel("https://unreachable.invalid/feed")

    async def test_timeout_is_fetch_failure(self):
        """Timeouts are treated like any other fetch failure."""
        async with RSSFetcher() as fetcher:
            with patch.object(fetcher, "_download", AsyncMock(side_effect=asyncio.TimeoutError())):
                with pytest.raises(FetchFailure):
                    await fetcher.fetch_channel("https://slow.example.com/feed")

    async def test_malformed_document_is_parse_failure(self):
        async with RSSFetcher() as fetcher:
            with patch.object(fetcher, "_download", AsyncMock(return_value=b"plain text, not a feed")):
                with pytest.raises(ParseFailure):
                    await fetcher.fetch_channel("https://example.com/")

    async def test_requires_context_manager(self):
        """Using the fetcher outside `async with` is a programming error."""
        with pytest.raises(RuntimeError):
            await RSSFetcher().get("https://example.com/")


class FakeResponse:
    """Stands in for the aiohttp response context manager."""

    def __init__(self, status=200, body=b"", headers=None):
        self.status = status
        self.body = body
        self.headers = headers or {}

    def raise_for_status(self):
        if self.status >= 400:
            raise aiohttp.ClientResponseError(
                request_info=MagicMock(), history=(), status=self.status
            )

    async def read(self):
        return self.body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return False


def fetcher_with(*responses):
    """An RSSFetcher whose session.get returns (or raises) responses in turn."""
    fetcher = RSSFetcher()
    fetcher.session = MagicMock()
    fetcher.session.get = MagicMock(side_effect=list(responses))
    return fetcher


@pytest.fixture
def no_retry_wait():
    with patch.object(RSSFetcher._download.retry, "wait", wait_none()):
        yield


@pytest.mark.asyncio
class TestDownloadRetries:
    """Tests for the retry policy around channel downloads."""

    async def test_transient_errors_are_retried(self, no_retry_wait):
        fetcher = fetcher_with(
            aiohttp.ClientConnectionError("connection reset"),
            asyncio.TimeoutError(),
            FakeResponse(body=SAMPLE_RSS),
        )

        channel = await fetcher.fetch_channel("https://example.com/feed.xml")

        assert fetcher.session.get.call_count == 3
        assert len(channel.items) == 2

    async def test_gives_up_after_max_retries(self, no_retry_wait):
        error = aiohttp.ClientConnectionError("connection refused")
        fetcher = fetcher_with(error, error, error, error)

        with pytest.raises(FetchFailure):
            await fetcher.fetch_channel("https://unreachable.invalid/feed")

        assert fetcher.session.get.call_count == settings.fetch_max_retries

    async def test_error_status_is_not_retried(self, no_retry_wait):
        """HTTP error statuses fail at once."""
        fetcher = fetcher_with(FakeResponse(status=404), FakeResponse(body=SAMPLE_RSS))

        with pytest.raises(FetchFailure) as excinfo:
            await fetcher.fetch_channel("https://example.com/missing.xml")

        assert fetcher.session.get.call_count == 1
        assert "404" in str(excinfo.value)

    async def test_fetch_failure_logged_once_by_fetcher(self, no_retry_wait):
        fetcher = fetcher_with(FakeResponse(status=500))

        with capture_logs() as logs:
            with pytest.raises(FetchFailure):
                await fetcher.fetch_channel("https://example.com/feed.xml")

        assert [e["event"] for e in logs] == ["feed_fetch_failed"]

    async def test_get_returns_status_and_lowercased_headers(self):
        fetcher = fetcher_with(
            FakeResponse(status=404, body=b"gone", headers={"Content-Type": "text/plain"})
        )

        response = await fetcher.get("https://example.com/favicon.ico", timeout=5)

        assert response.status == 404
        assert response.headers == {"content-type": "text/plain"}
        assert response.body == b"gone"
