"""
Logging configuration for the application.

Sets up structured logging with a consistent format.
Logging must not change program behavior.
Never logs sensitive data (request bodies, secrets, raw payloads).
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that flood the output at INFO.
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "sqlalchemy.pool")
SQL_LOGGER = "sqlalchemy.engine"


def configure_logging(level: str = "INFO", debug: bool = False) -> None:
    """Configure structured logging for the application.

    Args:
        level: The log level string (DEBUG, INFO, WARNING, ERROR).
        debug: Also echo SQL statements issued by the ledger adapters.
    """
    resolved = logging.getLevelName(level.upper())
    known = isinstance(resolved, int)
    logging.basicConfig(
        level=resolved if known else logging.INFO,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        stream=sys.stdout,
        force=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    if debug:
        logging.getLogger(SQL_LOGGER).setLevel(logging.INFO)

    if not known:
        logging.getLogger(__name__).warning("Unknown log level %r, using INFO", level)
