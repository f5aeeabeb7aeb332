"""Logging setup and filters for enriching log records with request context.

This module provides a logging filter that injects the current request id
into log records using the ContextVar set by the gateway middleware, and a
helper that installs a JSON handler (python-json-logger) carrying that
filter on the ``marketplace`` logger. Module loggers under the package
(``marketplace.orders``, ``marketplace.service``, ...) propagate to it, so
every record is emitted as one JSON line with a ``request_id`` field.
"""

import logging
from logging import Filter, LogRecord

from pythonjsonlogger import jsonlogger

from .middleware import REQUEST_ID_CTX

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s"


class RequestIdFilter(Filter):
    """Attach a ``request_id`` attribute to log records.

    The value is retrieved from the ``REQUEST_ID_CTX`` ContextVar set by
    ``RequestIdMiddleware``. Outside a request the ContextVar default
    ("-") is used, so formatters can reliably reference ``%(request_id)s``.
    """

    def filter(self, record: LogRecord) -> bool:
        """Populate ``record.request_id`` and allow the record to be logged.

        Args:
            record: The log record to enrich.

        Returns:
            bool: Always True to indicate the record should be processed.
        """
        if not getattr(record, "request_id", None):
            record.request_id = REQUEST_ID_CTX.get()
        return True


def configure_logging(name: str = "marketplace", level: str = "INFO") -> logging.Logger:
    """Install the JSON handler on ``name`` once and return the logger.

    Calling it again only updates the level, so app factories and tests can
    call it freely without stacking handlers.

    Args:
        name: Logger to configure; children propagate to it.
        level: Level name, e.g. ``"INFO"`` or ``"DEBUG"``.

    Returns:
        logging.Logger: The configured logger.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        h = logging.StreamHandler()
        h.setFormatter(jsonlogger.JsonFormatter(LOG_FORMAT))
        h.addFilter(RequestIdFilter())
        logger.addHandler(h)
    logger.setLevel(level.upper())
    return logger
