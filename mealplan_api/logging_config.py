"""
Logging setup for the meal plan API.

Usage:
    from mealplan_api.logging_config import setup_logging
    setup_logging()  # once, from mealplan_api.main, before the app is built

Everything under the ``mealplan_api`` logger follows LOG_LEVEL. The client
libraries behind the record stores and the rate limiter (requests/urllib3
for Airtable, SQLAlchemy for the SQL store, slowapi) are held at WARNING
unless LOG_LEVEL is DEBUG, so a plan request logs its own lines rather than
one per Airtable round trip.

Environment variables:
    LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL (default: INFO)
    LOG_SQL: "true" keeps SQLAlchemy statement logging at INFO (default: false)
"""
import logging
import os
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

STORE_CLIENT_LOGGERS = (
    "urllib3",
    "requests",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "slowapi",
)


def resolve_level(level: Optional[str] = None) -> int:
    """Numeric level for ``level`` or LOG_LEVEL; unknown names mean INFO."""
    name = (level or os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    return LEVELS.get(name, logging.INFO)


def setup_logging(level: Optional[str] = None) -> int:
    """
    Configure logging for the service.

    Args:
        level: Log level name. If not provided, reads LOG_LEVEL.

    Returns:
        The numeric level applied to the ``mealplan_api`` logger
    """
    numeric_level = resolve_level(level)

    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        stream=sys.stdout,
    )
    logging.getLogger("mealplan_api").setLevel(numeric_level)

    client_level = logging.DEBUG if numeric_level == logging.DEBUG else max(numeric_level, logging.WARNING)
    for name in STORE_CLIENT_LOGGERS:
        logging.getLogger(name).setLevel(client_level)

    if os.getenv("LOG_SQL", "false").lower() == "true":
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    logging.getLogger(__name__).debug(
        "Logging configured at %s", logging.getLevelName(numeric_level)
    )
    return numeric_level
