"""Loguru configuration: JSON lines in deployed environments, readable lines locally."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, Dict

from loguru import logger
from opentelemetry import trace

# Attributes every stdlib LogRecord carries; anything else came from ``extra=``.
_STANDARD_RECORD_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

_REDACTED_KEYS = ("password", "secret", "api_key", "authorization", "token")

_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[category]}</cyan> | {message} | {extra}"
)


class InterceptHandler(logging.Handler):
    """Route stdlib logging (uvicorn, sqlalchemy, httpx) through Loguru."""

    def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover - bridging glue
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        extra = {key: value for key, value in vars(record).items() if key not in _STANDARD_RECORD_ATTRS}
        extra.setdefault("category", record.name.split(".", 1)[0])

        # Stdlib messages may contain braces that Loguru would try to format.
        message = record.getMessage().replace("{", "{{").replace("}", "}}")
        logger.bind(**extra).opt(depth=6, exception=record.exc_info).log(level, message)


def _redact(extra: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: "***" if any(marker in key.lower() for marker in _REDACTED_KEYS) else value
        for key, value in extra.items()
    }


def _json_sink(metadata: Dict[str, str]):
    def sink(message: "logger.Message") -> None:
        record = message.record
        extra = _redact(dict(record["extra"]))
        payload: Dict[str, Any] = {
            "timestamp": record["time"].isoformat(),
            "level": record["level"].name.lower(),
            "category": extra.pop("category", "app"),
            "message": record["message"],
            "logger": record["name"],
            **metadata,
        }

        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            payload["trace_id"] = f"{span_context.trace_id:032x}"
            payload["span_id"] = f"{span_context.span_id:016x}"

        payload.update(extra)
        if record["exception"] is not None:
            payload["exception"] = repr(record["exception"].value)

        sys.stdout.write(json.dumps(payload, default=str) + "\n")

    return sink


def configure_logging(*, service_name: str, environment: str, version: str, level: str = "INFO") -> None:
    """Install a single Loguru sink and bridge stdlib logging into it."""

    logger.remove()
    logger.configure(extra={"category": "app"})
    if environment == "development":
        logger.add(sys.stderr, level=level, format=_CONSOLE_FORMAT, backtrace=False, diagnose=False)
    else:
        metadata = {"service": service_name, "environment": environment, "version": version}
        logger.add(_json_sink(metadata), level=level, backtrace=False, diagnose=False)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for noisy in ("uvicorn.access", "httpx", "aiosqlite"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
