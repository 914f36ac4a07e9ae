"""Logging setup using structlog.

Every scan logs one event per stage (universe, sentiment, per-timeframe fetch,
ranking) with keyword context. A scan id is bound through contextvars so that
the concurrent per-symbol tasks of one scan can be correlated in the output.
"""

from __future__ import annotations

import logging
import sys
import uuid
from typing import Any

import structlog


def configure_logging(log_level: str = "INFO", *, json_logs: bool = True) -> None:
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    renderer: Any = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str, **kwargs: Any) -> structlog.BoundLogger:
    return structlog.get_logger().bind(component=component, **kwargs)


def bind_scan_context(scan_id: str | None = None) -> str:
    """Bind a scan id to the current context; tasks spawned afterwards inherit it."""
    scan_id = scan_id or uuid.uuid4().hex[:12]
    structlog.contextvars.bind_contextvars(scan_id=scan_id)
    return scan_id


def clear_scan_context() -> None:
    structlog.contextvars.unbind_contextvars("scan_id")
