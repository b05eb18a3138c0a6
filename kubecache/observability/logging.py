"""Structured logging configuration using structlog.

kubecache code logs through structlog; records emitted by libraries on the
standard ``logging`` module (kubernetes-asyncio, aiohttp, uvicorn) are passed
through the same processor chain so stderr carries one JSON format only.
"""

from __future__ import annotations

import logging
import sys

import structlog

_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
]

# Libraries that are chatty at INFO; kept at WARNING unless debugging.
_NOISY_LOGGERS = ("kubernetes_asyncio", "aiohttp.access", "uvicorn.access")


def setup_logging(level: str = "info", cluster_id: str = "") -> None:
    """Configure structlog and stdlib logging for JSON output to stderr."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[*_SHARED_PROCESSORS, structlog.stdlib.add_logger_name],
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.JSONRenderer(),
            ],
        )
    )
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    structlog.contextvars.clear_contextvars()
    if cluster_id:
        structlog.contextvars.bind_contextvars(cluster_id=cluster_id)


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]
