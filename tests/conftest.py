"""Pytest configuration and shared fixtures."""

import pytest
import tempfile
import os
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

# Add src to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from feedsync.ingestion.interfaces import Channel, ChannelItem, HttpResponse


SAMPLE_RSS = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/">
  <channel>
    <title>Example Engineering</title>
    <link>https://example.com/</link>
    <description>Posts from the example team</description>
    <image>
      <url>https://example.com/logo.png</url>
      <title>Example Engineering</title>
      <link>https://example.com/</link>
    </image>
    <item>
      <title>Scaling the ingest queue</title>
      <link>https://example.com/posts/1</link>
      <guid>urn:example:post:1</guid>
      <description>How we scaled ingest</description>
      <content:encoded><![CDATA[<p>We <b>sharded</b> it.</p>]]></content:encoded>
      <pubDate>Mon, 02 Jan 2023 10:30:00 +0000</pubDate>
    </item>
    <item>
      <title>Release notes</title>
      <link>https://example.com/posts/2</link>
      <description>Version 2 is out</description>
      <pubDate>03 Jan 2023 11:00 +0000</pubDate>
    </item>
  </channel>
</rss>
"""


SAMPLE_ATOM = b"""<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Example Atom</title>
  <link href="https://atom.example.org/"/>
  <id>urn:uuid:60a76c80-d399-11d9-b93c-0003939e0af6</id>
  <updated>2023-01-05T18:30:02Z</updated>
  <entry>
    <title>Atom entry</title>
    <link href="https://atom.example.org/2023/01/05/entry"/>
    <id>urn:uuid:1225c695-cfb8-4ebb-aaaa-80da344efa6a</id>
    <updated>2023-01-05T18:30:02Z</updated>
    <content type="html">&lt;p&gt;Atom body&lt;/p&gt;</content>
  </entry>
</feed>
"""


@pytest.fixture
def temp_db():
    """Provide a temporary database file."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    yield f"sqlite:///{db_path}"
    # Cleanup
    try:
        os.unlink(db_path)
    except FileNotFoundError:
        pass


@pytest.fixture
def storage(temp_db):
    """Provide a FeedStorage on a temporary database."""
    from feedsync.storage.database import FeedStorage
    return FeedStorage(temp_db)


def make_item(n: int, **overrides) -> ChannelItem:
    """Build a valid channel item numbered n."""
    fields = dict(
        guid=f"urn:example:item:{n}",
        title=f"Item {n}",
        link=f"https://example.com/items/{n}",
        summary=f"Summary {n}",
        content=f"<p>Body {n}</p>",
        published="Mon, 02 Jan 2023 10:30:00 +0000",
    )
    fields.update(overrides)
    return ChannelItem(**fields)


@pytest.fixture
def sample_channel():
    """Provide a channel with three valid items and no explicit image."""
    return Channel(
        title="Example",
        link="https://example.com/feed",
        items=[make_item(i) for i in range(3)],
    )


@pytest.fixture
def fake_source(sample_channel):
    """Provide a feed source that always returns sample_channel."""
    source = MagicMock()
    source.fetch_channel = AsyncMock(return_value=sample_channel)
    return source


@pytest.fixture
def fake_http():
    """Provide an HTTP client that serves a small PNG icon."""
    http = MagicMock()
    http.get = AsyncMock(return_value=HttpResponse(
        status=200,
        headers={"content-type": "image/png"},
        body=b"\x89PNG\r\n",
    ))
    return http
