"""
Centralized logging configuration.

Every module logs through ``logging.getLogger(__name__)``; this module only
installs the root handler and format once at application start.
"""
import logging
import sys
from typing import Optional

from app.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


def setup_logging(level: Optional[str] = None) -> None:
    """Configure the root logger from LOG_LEVEL (idempotent)."""
    global _configured
    if _configured:
        return

    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    root = logging.getLogger()
    root.setLevel(log_level)
    root.addHandler(handler)

    # Reduce noise from chatty third-party loggers
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    _configured = True