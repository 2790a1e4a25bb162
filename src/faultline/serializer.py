"""Canonical payload rendering for events.

The payload always carries ``event_id``, ``message``, ``timestamp``,
``time_spent``, ``level``, ``project`` and ``platform``.  Every other key is
present only when its value is non-empty; each attached interface is added
under its payload key (its name, or its alias when it has one, so the
message interface lands under ``logentry`` next to the plain ``message``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import orjson

if TYPE_CHECKING:
    from faultline.event import Event

PLATFORM = "python"

_OPTIONAL_KEYS: tuple[str, ...] = (
    "logger",
    "culprit",
    "server_name",
    "release",
    "fingerprint",
    "modules",
    "extra",
    "tags",
    "user",
    "checksum",
)


def serialize(event: Event) -> dict[str, Any]:
    """Return the transport payload for *event*."""
    data: dict[str, Any] = {
        "event_id": event.event_id,
        "message": event.message,
        "timestamp": event.timestamp,
        "time_spent": event.time_spent,
        "level": event.level,
        "project": event.project,
        "platform": PLATFORM,
    }
    for key in _OPTIONAL_KEYS:
        value = getattr(event, key)
        if value:
            data[key] = value

    breadcrumbs = event.breadcrumbs
    if breadcrumbs is not None and not breadcrumbs.is_empty():
        data["breadcrumbs"] = breadcrumbs.to_list()

    for interface in event.interfaces.values():
        data[interface.payload_key()] = interface.to_dict()
    return data


def to_json(event: Event) -> bytes:
    """Serialize *event* to JSON bytes.  Unknown values are rendered with ``str``."""
    return orjson.dumps(serialize(event), default=str)
