"""Logging setup."""

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOG_FILE = "prefetcharr.log"


def setup_logging(
    level: Optional[str] = None,
    log_dir: Optional[Path] = None,
    console: Optional[Console] = None,
) -> logging.Logger:
    """Send prefetcharr logs to stderr and optionally a daily log file.

    Args:
        level: Level name for the prefetcharr loggers, INFO by default
        log_dir: Directory receiving a log file rotated at midnight
        console: Console to render to, stderr by default
    """
    logger = logging.getLogger("prefetcharr")
    logger.setLevel((level or "info").upper())
    logger.handlers.clear()
    logger.propagate = False

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            log_dir / LOG_FILE, when="midnight", encoding="utf-8"
        )
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    logging.getLogger().setLevel(logging.WARNING)
    return logger
