"""Stable per-feed article keys."""

import hashlib
from typing import Optional

HASH_SCHEME = "sha256:"


def derive_id(
    explicit_id: Optional[str],
    link: Optional[str],
    title: str,
    summary: Optional[str],
    content: Optional[str],
) -> str:
    """Return the article key for an item.

    The first available of these wins:
      1. the item's own identifier (guid), verbatim
      2. the item link, already normalized by the caller
      3. a SHA-256 digest of title + summary + content, tagged "sha256:"

    An item keyed by hash that later gains a link gets a new key, so it is
    stored as a new article.
    """
    if explicit_id:
        return explicit_id

    if link:
        return link

    digest = hashlib.sha256(
        f"{title or ''}{summary or ''}{content or ''}".encode("utf-8")
    ).hexdigest()
    return f"{HASH_SCHEME}{digest}"
