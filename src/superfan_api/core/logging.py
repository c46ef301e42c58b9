from __future__ import annotations

import json
import logging
import sys
import traceback
from logging import LogRecord
from typing import Any, Dict

from loguru import logger
from opentelemetry import trace


_STDLIB_RECORD_FIELDS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}

# Loggers that are too chatty at INFO for a ledger service.
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite")


class InterceptHandler(logging.Handler):
    """Forward stdlib logging records (uvicorn, sqlalchemy, alembic) into Loguru."""

    def emit(self, record: LogRecord) -> None:  # pragma: no cover - bridging glue
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STDLIB_RECORD_FIELDS
        }
        message = record.getMessage().replace("{", "{{").replace("}", "}}")

        target = logger.bind(logger_name=record.name, **extra)
        target.opt(depth=6, exception=record.exc_info).log(level, message)


def _render(message: "logger.Message", service: Dict[str, str]) -> None:
    record = message.record
    payload: Dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name.lower(),
        "message": record["message"],
        "logger": record["extra"].pop("logger_name", record["name"]),
        **service,
    }

    span_context = trace.get_current_span().get_span_context()
    if span_context.is_valid:
        payload["trace_id"] = format(span_context.trace_id, "032x")
        payload["span_id"] = format(span_context.span_id, "016x")

    payload.update(record["extra"])
    if record["exception"] is not None:
        payload["exception"] = "".join(
            traceback.format_exception(*record["exception"])
        )

    sys.stdout.write(json.dumps(payload, default=str) + "\n")


def configure_logging(*, service_name: str, environment: str, version: str) -> None:
    """Send every log line to stdout as one JSON document."""

    service = {"service": service_name, "environment": environment, "version": version}

    logger.remove()
    logger.add(lambda message: _render(message, service), level="DEBUG", backtrace=False, diagnose=False)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["InterceptHandler", "configure_logging"]
