"""Long-running worker that refreshes all feeds on an interval.

Usage:
    python scripts/worker.py

Environment Variables:
    DATABASE_URL / FEEDSYNC_DATABASE_URL: database connection string
    FEEDSYNC_REFRESH_INTERVAL_MINUTES: minutes between refresh runs
    FEEDSYNC_LOG_LEVEL: DEBUG, INFO, WARNING or ERROR
"""

import asyncio
import signal
import sys
from datetime import datetime
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
import structlog

from feedsync.config.log import configure_logging
from feedsync.config.settings import settings
from feedsync.pipeline.driver import run_refresh_all
from feedsync.storage.factory import get_storage

logger = structlog.get_logger()


class RefreshWorker:
    """Schedules refresh-all runs."""

    def __init__(self, interval_minutes: int = None):
        self.storage = get_storage()
        self.interval_minutes = interval_minutes or settings.refresh_interval_minutes
        self.scheduler = AsyncIOScheduler()
        self.stopped = asyncio.Event()

    def setup_jobs(self):
        """Configure scheduled jobs."""
        self.scheduler.add_job(
            self.refresh_feeds,
            IntervalTrigger(minutes=self.interval_minutes),
            id='refresh_feeds',
            name='Refresh all feeds',
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info("jobs_configured", count=len(self.scheduler.get_jobs()))

    async def refresh_feeds(self):
        """Refresh every feed."""
        logger.info("job_started", job="refresh_feeds")
        start_time = datetime.now()

        stats = await run_refresh_all(self.storage)

        elapsed = (datetime.now() - start_time).total_seconds()
        logger.info("job_completed", job="refresh_feeds",
                   refreshed=stats["refreshed"], failed=stats["failed"],
                   elapsed_seconds=elapsed)
        return stats

    def start(self):
        """Start the worker."""
        self.setup_jobs()
        self.scheduler.start()
        logger.info("worker_started", interval_minutes=self.interval_minutes)

    def stop(self):
        """Stop the worker gracefully."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        self.stopped.set()
        logger.info("worker_stopped")


async def main():
    """Main entry point."""
    configure_logging()
    worker = RefreshWorker()

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, worker.stop)

    worker.start()

    # Run immediately on startup
    logger.info("running_initial_refresh")
    await worker.refresh_feeds()

    await worker.stopped.wait()


if __name__ == "__main__":
    asyncio.run(main())
