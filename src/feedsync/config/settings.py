"""Application settings with environment variable support."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path


# Repository root
_BASE_DIR = Path(__file__).parent.parent.parent.parent.resolve()


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="FEEDSYNC_",  # FEEDSYNC_DATABASE_URL, FEEDSYNC_LOG_LEVEL, etc.
    )

    # Paths
    feeds_config: Path = _BASE_DIR / "config" / "feeds.json"

    # Database
    database_url: str = f"sqlite:///{_BASE_DIR / 'data' / 'feedsync.db'}"

    # Fetching
    fetch_timeout_seconds: float = 30
    icon_timeout_seconds: float = 10
    fetch_max_retries: int = 3
    user_agent: str = "feedsync/1.0"

    # Refresh
    refresh_concurrency: int = 4
    refresh_interval_minutes: int = 10
    skip_disabled_feeds: bool = True

    # Logging
    log_level: str = "INFO"


settings = Settings()
