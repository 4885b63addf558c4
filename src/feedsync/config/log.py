"""structlog setup for the entry-point scripts."""

import logging

import structlog

from .settings import settings


def configure_logging(level: str = None) -> None:
    """Filter structlog output below the given (or configured) level."""
    level = (level or settings.log_level).upper()
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level, logging.INFO)
        ),
    )
