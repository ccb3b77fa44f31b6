"""
Structured logging for the ingestion, aggregation and cache pipeline.

Every module logs through get_logger(__name__) with a snake_case event name and
keyword fields; the renderer emits one JSON object per line (LOG_FORMAT=json,
the default) or colored console lines. Fields bound with task_context() are
attached to every event logged inside the block, including from other modules.

Imports nothing from backend_insights so any module can import it first.
"""

from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from typing import Any, Iterator, TextIO

import structlog

DEFAULT_LEVEL = "INFO"
DEFAULT_FORMAT = "json"
# Third-party loggers that are chatty at INFO (one line per HTTP request)
QUIET_LOGGERS = ("httpx", "httpcore", "redis")


def _rename_event(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Expose structlog's 'event' as event_type so log pipelines can group on it."""
    event = event_dict.pop("event", None)
    if event is not None:
        event_dict.setdefault("event_type", event)
        event_dict.setdefault("message", str(event))
    return event_dict


def _resolve_level(level: str | None) -> int:
    name = (level or os.getenv("LOG_LEVEL") or DEFAULT_LEVEL).strip().upper()
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.INFO


def configure_structlog(
    level: str | None = None,
    fmt: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """
    (Re)configure structlog and the stdlib root logger.

    level/fmt default to LOG_LEVEL / LOG_FORMAT from the environment. Stdlib
    records (httpx, redis, sqlite adapters) go to the same stream at the same level.
    """
    level_value = _resolve_level(level)
    fmt = (fmt or os.getenv("LOG_FORMAT") or DEFAULT_FORMAT).strip().lower()
    stream = stream or sys.stdout

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _rename_event,
    ]
    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=stream.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )
    logging.basicConfig(level=level_value, format="%(levelname)s %(name)s %(message)s", stream=stream)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level_value, logging.WARNING))


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger for the given module name.

        logger = get_logger(__name__)
        logger.info("ingest_batch_saved", task="payments", inserted=12)

    Output (JSON): {"event_type": "ingest_batch_saved", "inserted": 12, "level": "info",
    "logger": "backend_insights.ingestion.ingestor", "task": "payments", "timestamp": "..."}
    """
    return structlog.get_logger(name).bind(logger=name)


@contextmanager
def task_context(task_name: str, **fields: Any) -> Iterator[None]:
    """Bind task (and any extra fields) to every event logged inside the block."""
    with structlog.contextvars.bound_contextvars(task=task_name, **fields):
        yield
