"""Loop Logging: structured records for the `agentloop` logger tree.

Invariants:
    - Every JSON line carries timestamp (record creation time, UTC), level,
      logger and message
    - Loop context passed via `extra=` (agent_id, iteration, tool_name, ...)
      is surfaced only when set
    - configure_logging owns at most one handler on the `agentloop` logger;
      calling it again replaces that handler instead of stacking another

Design Decisions:
    - Level and format default to Settings (LOG_LEVEL, LOG_FORMAT); the host
      application calls configure_logging once at startup
    - Only the package logger is touched: the root logger and the host's
      handlers stay as the application configured them
"""

import json
import logging
from datetime import datetime, timezone
from typing import Iterable

from agentloop.config import Settings, get_settings

LOGGER_NAME = "agentloop"

LOOP_FIELDS = (
    "agent_id", "provider", "iteration", "stop_reason", "tool_name",
    "error_code", "input_tokens", "output_tokens",
)

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(agent_id)s]: %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per record; loop context fields appended when present."""

    def __init__(self, fields: Iterable[str] = LOOP_FIELDS):
        super().__init__()
        self.fields = tuple(fields)

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update({
            key: getattr(record, key)
            for key in self.fields
            if getattr(record, key, None) is not None
        })
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class _AgentIdDefault(logging.Filter):
    """Text format references %(agent_id)s; records logged without it get '-'."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "agent_id", None) is None:
            record.agent_id = "-"
        return True


def build_handler(fmt: str) -> logging.Handler:
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.addFilter(_AgentIdDefault())
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    return handler


def configure_logging(
    level: str | None = None,
    fmt: str | None = None,
    settings: Settings | None = None,
) -> logging.Handler:
    """Install the package handler; unset arguments fall back to Settings."""
    settings = settings or get_settings()
    level = level or settings.log_level
    fmt = fmt or settings.log_format

    logger = logging.getLogger(LOGGER_NAME)
    for existing in list(logger.handlers):
        if getattr(existing, "_agentloop_owned", False):
            logger.removeHandler(existing)

    handler = build_handler(fmt)
    handler._agentloop_owned = True
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler
