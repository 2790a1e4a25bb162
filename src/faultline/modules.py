"""Installed-distribution inventory attached to events."""

from __future__ import annotations

from importlib import metadata

import structlog

log = structlog.get_logger("faultline.modules")


def list_distributions() -> dict[str, str] | None:
    """Return ``{distribution name: version}`` for the running interpreter.

    Returns ``None`` when the inventory cannot be read.
    """
    try:
        modules: dict[str, str] = {}
        for dist in metadata.distributions():
            name = dist.metadata["Name"]
            if name:
                modules[name] = dist.version
        return modules
    except Exception:
        log.debug("Module inventory unavailable", exc_info=True)
        return None
