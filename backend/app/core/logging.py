"""Process-wide logging setup."""
from __future__ import annotations

import logging
from logging.config import dictConfig

from app.core.context import get_request_id, get_user_id

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(request_id)s user=%(user_id)s] %(name)s: %(message)s"

# SDK loggers that echo every HTTP call to the model provider.
NOISY_LOGGERS = ("httpx", "httpcore", "openai")


class RequestContextFilter(logging.Filter):
    """Stamp each record with the ids of the request being served."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - minimal logic
        record.request_id = get_request_id() or "-"
        record.user_id = get_user_id() or "-"
        return True


def configure_logging(*, log_level: str = "INFO") -> None:
    level = log_level.upper()
    quiet = "WARNING" if level != "DEBUG" else "DEBUG"
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"request_context": {"()": RequestContextFilter}},
            "formatters": {"plain": {"format": LOG_FORMAT}},
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "formatter": "plain",
                    "filters": ["request_context"],
                }
            },
            "loggers": {name: {"level": quiet} for name in NOISY_LOGGERS},
            "root": {"handlers": ["stderr"], "level": level},
        }
    )
