"""Client-wide logging configuration.

Provides a JSON formatter with a minimal, consistent set of fields:
- timestamp (UTC ISO8601), level, logger, service, environment, message
- Structured extras passed via ``logger.info(msg, extra={...})`` are merged
  into the JSON, e.g. ``entry_id`` and ``field_group`` from the mutation
  coordinator.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import IO, Any, Dict, Optional

from journal_client.core.settings import Settings, get_settings

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
    }
)


class _JsonFormatter(logging.Formatter):
    """One-line JSON log formatter with stable keys and UTC timestamps."""

    def __init__(self, settings: Settings) -> None:
        super().__init__()
        self.service = settings.service_name
        self.environment = settings.environment

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        base: Dict[str, Any] = {
            "timestamp": dt.strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "level": record.levelname,
            "logger": record.name,
            "service": self.service,
            "environment": self.environment,
            "message": record.getMessage(),
        }
        for k, v in record.__dict__.items():
            if k in _RESERVED or k in base:
                continue
            base[k] = v
        if record.exc_info and record.exc_info[0] is not None:
            exc = record.exc_info[1]
            base["error"] = {
                "class": record.exc_info[0].__name__,
                "message": str(exc)[:500],
            }
        try:
            return json.dumps(base, ensure_ascii=False)
        except (TypeError, ValueError):
            # Identifiers and enums are not JSON-native; fall back per key
            for k, v in list(base.items()):
                try:
                    json.dumps({k: v})
                except (TypeError, ValueError):
                    base[k] = str(v) if isinstance(v, int) else repr(v)
            return json.dumps(base, ensure_ascii=False)


def setup_logging(settings: Optional[Settings] = None, stream: Optional[IO[str]] = None) -> None:
    """Configure the root logger to output one-line JSON logs."""

    settings = settings or get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(_JsonFormatter(settings))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


__all__ = ["setup_logging"]
