"""Structlog processor that captures log events as error events.

Usage::

    from faultline import EventBuilder
    from faultline.processors import EventCaptureProcessor

    structlog.configure(
        processors=[..., EventCaptureProcessor(transport.send, builder=EventBuilder()), ...],
    )

Events at or above ``event_level`` are built into error events and handed
to *transport* as serialized payloads.  The resulting ``event_id`` is added
to the log event so the log line and the report can be correlated.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from typing import Any

import structlog

from faultline.event import EventBuilder
from faultline.merge import RESERVED_KEYS

log = structlog.get_logger("faultline.processors")

_METHOD_TO_LEVEL: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "exception": logging.ERROR,
    "critical": logging.CRITICAL,
    "fatal": logging.CRITICAL,
}

# Event-dict keys that are not copied into the error event's ``extra``.
_SKIP_KEYS: frozenset[str] = RESERVED_KEYS | {"event", "exc_info", "stack_info"}


def _exception_from(exc_info: Any) -> BaseException | None:
    """Return the exception referenced by a structlog ``exc_info`` value."""
    if not exc_info:
        return None
    if isinstance(exc_info, BaseException):
        return exc_info
    if exc_info is True:
        return sys.exc_info()[1]
    if isinstance(exc_info, tuple) and len(exc_info) == 3:
        value = exc_info[1]
        return value if isinstance(value, BaseException) else None
    return None


class EventCaptureProcessor:
    """Build and ship an error event for high-severity log events.

    Parameters
    ----------
    transport:
        Callable receiving the serialized event payload.
    builder:
        The :class:`~faultline.event.EventBuilder` to use.
    event_level:
        Minimum :mod:`logging` level that produces an error event.
    """

    def __init__(
        self,
        transport: Callable[[dict[str, Any]], Any],
        *,
        builder: EventBuilder | None = None,
        event_level: int = logging.ERROR,
    ) -> None:
        self._transport = transport
        self._builder = builder or EventBuilder()
        self._event_level = event_level

    def __call__(
        self,
        logger: Any,
        method_name: str,
        event_dict: dict[str, Any],
    ) -> dict[str, Any]:
        level = _METHOD_TO_LEVEL.get(method_name.lower(), logging.INFO)
        if level < self._event_level:
            return event_dict

        options: dict[str, Any] = {
            "level": method_name,
            "extra": {k: v for k, v in event_dict.items() if k not in _SKIP_KEYS},
        }
        logger_name = event_dict.get("logger") or getattr(logger, "name", None)
        if isinstance(logger_name, str) and logger_name:
            options["logger"] = logger_name

        exc = _exception_from(event_dict.get("exc_info"))
        if exc is not None:
            event = self._builder.from_exception(exc, options)
        else:
            event = self._builder.from_message(str(event_dict.get("event", "")), options)
        if event is None:
            return event_dict

        try:
            self._transport(event.to_dict())
        except Exception:
            # A failing transport must not break the logging call.
            log.debug("Transport failed, event dropped", event_id=event.event_id, exc_info=True)
            return event_dict

        event_dict["event_id"] = event.event_id
        return event_dict
