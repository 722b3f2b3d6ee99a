"""Centralized logging configuration."""

import logging
from typing import Optional

from config import settings

# Third-party loggers that flood INFO with per-request chatter
NOISY_LOGGERS = (
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "httpx",
    "httpcore",
    "urllib3",
    "yfinance",
    "peewee",
)


def setup_logging(level: Optional[str] = None) -> None:
    """Configure root logging for the API process.

    Args:
        level: Explicit level name. Defaults to ``settings.LOG_LEVEL``.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(
        format="%(asctime)s %(levelname)-8s %(name)s  %(message)s",
        datefmt="%H:%M:%S",
        level=getattr(logging, level_name),
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
