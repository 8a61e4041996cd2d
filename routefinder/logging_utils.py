"""JSON logging for the route finder service and the uvicorn server it runs in."""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from logging.config import dictConfig
from math import isfinite
from time import perf_counter
from typing import Any, Dict, Iterator

from .datatypes import ResolvedConfig

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))) | {
    "message",
    "asctime",
}

_SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def _json_default(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


def _finite(value: Any) -> Any:
    """Replace inf/nan (unreachable route distances) with strings JSON can carry."""
    if isinstance(value, float) and not isfinite(value):
        return str(value)
    if isinstance(value, dict):
        return {key: _finite(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_finite(item) for item in value]
    return value


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message and any extra fields."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (key, _finite(value)) for key, value in record.__dict__.items() if key not in _RECORD_ATTRIBUTES
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default, ensure_ascii=False, allow_nan=False)


def configure_logging(level: str = "INFO") -> None:
    """Send application and uvicorn logs through the JSON formatter."""

    level = level.upper()
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"json": {"()": "routefinder.logging_utils.JsonLogFormatter"}},
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "json",
                }
            },
            "loggers": {
                name: {"handlers": ["default"], "level": level, "propagate": False}
                for name in _SERVER_LOGGERS
            },
            "root": {
                "handlers": ["default"],
                "level": level,
            },
        }
    )


def get_logger(name: str = "routefinder") -> logging.Logger:
    """Return a namespaced logger."""

    return logging.getLogger(name)


@contextmanager
def timed_event(logger: logging.Logger, event: str, **fields: Any) -> Iterator[Dict[str, Any]]:
    """Log ``event`` with its duration once the block finishes.

    The yielded dict can be filled with result fields inside the block. A
    block that raises is not logged here; the caller's handler owns that.
    """

    details: Dict[str, Any] = dict(fields)
    started = perf_counter()
    yield details
    details["duration_ms"] = round((perf_counter() - started) * 1000, 3)
    logger.info(event, extra={"event": event, **details})


def log_config_snapshot(config: ResolvedConfig) -> None:
    """Emit the resolved configuration at startup."""

    get_logger("routefinder.config").info(
        "resolved_config",
        extra={"event": "resolved_config", "config": config.redacted_dict()},
    )
