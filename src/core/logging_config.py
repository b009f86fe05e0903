"""Logging setup for the API process."""

import logging
import sys

from config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Install a single stream handler on the root logger.

    Calling this more than once replaces the handler instead of stacking
    duplicates (uvicorn reload imports the app module again).

    Args:
        level: Log level name, e.g. "INFO" or "DEBUG".
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_campus_identity", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._campus_identity = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level.upper())

    # SQL echo stays off unless explicitly requested
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
