"""Structlog setup for faultline's own diagnostics.

Faultline logs through ``structlog.get_logger("faultline.*")``.  Host
applications that already configure structlog need nothing else;
:func:`configure_logging` is a small default for those that do not.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import orjson
import structlog
from structlog.contextvars import merge_contextvars


def _orjson_serializer(obj: object, **_kw: object) -> str:
    """Serialize *obj* to a JSON string using orjson."""
    return orjson.dumps(obj, default=str).decode()


def _to_logging_level(level_name: str) -> int:
    """Convert a human-readable level name to its :mod:`logging` constant."""
    upper_level = level_name.upper()
    if upper_level == "WARN":
        return logging.WARNING
    result: int = getattr(logging, upper_level, logging.INFO)
    return result


def configure_logging(
    *,
    level: str = "INFO",
    json_logs: bool = True,
    stream: Any = None,
    logger_name: str = "faultline",
) -> logging.Handler:
    """Route structlog output through a stdlib handler on *logger_name*.

    Parameters
    ----------
    level:
        Minimum log level (e.g. ``"DEBUG"``, ``"INFO"``).
    json_logs:
        ``True`` for JSON output, ``False`` for console output.
    stream:
        Output stream.  Defaults to ``sys.stderr``.
    logger_name:
        Stdlib logger that receives the handler.

    Returns
    -------
    logging.Handler
        The installed handler.
    """
    if stream is None:
        stream = sys.stderr

    shared_processors: list[structlog.types.Processor] = [
        merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        structlog.processors.EventRenamer("message"),
    ]

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(_to_logging_level(level)),
        cache_logger_on_first_use=True,
    )

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer(serializer=_orjson_serializer)
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False, event_key="message")
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)
    target = logging.getLogger(logger_name)
    target.setLevel(_to_logging_level(level))
    target.addHandler(handler)
    return handler
