from __future__ import annotations

import logging
import sys
from contextlib import AbstractContextManager
from typing import Any, Mapping, cast

import structlog

_NOISY_LOGGERS = ("httpx", "httpcore", "websockets")


def configure_logging(level: str = "INFO", json: bool = True) -> None:
    """Configure structlog on top of stdlib logging for binbuild.

    Structured events from the instantiate flow and %-style records from the
    API and attach clients end up on the same handler and renderer.

    Args:
        level: Standard logging level string, e.g. "DEBUG", "INFO", "WARNING".
        json: Render JSON lines when True, coloured console output otherwise.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    # Request-level chatter from the HTTP and websocket libraries is only
    # useful when debugging the transport itself.
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a named structlog logger."""
    return cast(structlog.BoundLogger, structlog.get_logger(name))


def build_log_context(**values: Any) -> AbstractContextManager[Mapping[str, Any]]:
    """Attach request-scoped fields (namespace, build config) to log events.

    Use as ``with build_log_context(namespace=ns, build_config=name): ...``;
    the fields are removed again when the block exits.
    """
    return structlog.contextvars.bound_contextvars(**values)
