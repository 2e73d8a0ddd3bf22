# agenda/utils/my_logging.py
"""Logging configuration"""
import logging
import sys

from agenda.config.settings import get_settings
from agenda.core.middleware import correlation_id_var

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(correlation_id)s] %(name)s - %(message)s"

# Libraries that log every statement or connection at INFO
NOISY_LOGGERS = [
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "alembic",
    "redis",
    "uvicorn.access",
]


class CorrelationIdFilter(logging.Filter):
    """Fill in the current request's correlation id when the call site did not pass one"""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = correlation_id_var.get()
        return True


def setup_logging(verbose=True):
    """Configure application logging"""
    settings = get_settings()
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO) if verbose else logging.WARNING

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.basicConfig(level=level, handlers=[handler], force=True)

    # SQL echo is controlled by DB_ECHO, not the app log level
    quiet_level = logging.WARNING if verbose else logging.ERROR
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)
