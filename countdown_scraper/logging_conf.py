"""Logging setup."""
import logging

from countdown_scraper.config import config


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger from LOG_LEVEL."""
    log_level = getattr(logging, (level or config.LOG_LEVEL).upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
