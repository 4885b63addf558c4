"""feedsync - syndication feed ingestion with idempotent article storage."""

__version__ = "0.1.0"
