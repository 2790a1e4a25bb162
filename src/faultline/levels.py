"""Severity levels for error events.

Events carry a numeric level.  Callers may pass either a name
(``"warning"``) or the number itself; :func:`normalize_level` accepts both.
"""

from __future__ import annotations

from typing import Any

import structlog

log = structlog.get_logger("faultline.levels")

LOG_LEVELS: dict[str, int] = {
    "debug": 10,
    "info": 20,
    "warn": 30,
    "warning": 30,
    "error": 40,
    "fatal": 50,
    # structlog / stdlib method names
    "critical": 50,
    "exception": 40,
}

DEFAULT_LEVEL = LOG_LEVELS["error"]


def normalize_level(level: Any) -> int:
    """Return the numeric code for *level*.

    Integers (and integral floats) pass through unchanged.  Names are looked
    up case-insensitively; unknown names fall back to ``error``.
    """
    if isinstance(level, int) and not isinstance(level, bool):
        return level
    if isinstance(level, float) and level.is_integer():
        return int(level)
    name = str(level).lower()
    code = LOG_LEVELS.get(name)
    if code is None:
        log.warning("Unknown event level, using error", level=level)
        return DEFAULT_LEVEL
    return code
