"""Logging for the API process and the maintenance scripts.

Services log with ``logging.getLogger(__name__)`` and pass identifiers
(post_id, user_id, ...) through ``extra``. Both formatters below render
those extras: JSON for deployed environments, ``key=value`` text locally.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Attributes every LogRecord has; anything else on a record came from `extra`
_STANDARD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}

# Request lines come from RequestLoggingMiddleware
_QUIET_LOGGERS = ("uvicorn.access",)


def record_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {key: value for key, value in record.__dict__.items() if key not in _STANDARD_ATTRS}


class JSONFormatter(logging.Formatter):
    def __init__(self, service: str, environment: str) -> None:
        super().__init__()
        self._service = service
        self._environment = environment

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "service": self._service,
            "env": self._environment,
            "msg": record.getMessage(),
            **record_extras(record),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """``12:00:01 INFO socialapp.services.content post created post_id=3 user_id=1``"""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s %(message)s", datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = record_extras(record)
        if not extras:
            return line
        head, sep, tail = line.partition("\n")
        pairs = " ".join(f"{key}={value}" for key, value in extras.items())
        return f"{head} {pairs}{sep}{tail}"


def resolve_level(level: str | None, environment: str) -> int:
    if not level:
        return logging.INFO if environment.lower() == "production" else logging.DEBUG
    return logging.getLevelNamesMapping().get(level.strip().upper(), logging.INFO)


def configure_logging(
    service: str,
    environment: str,
    log_level: str | None = None,
    json_output: bool = True,
) -> None:
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(JSONFormatter(service, environment) if json_output else TextFormatter())

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(resolve_level(log_level, environment))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
