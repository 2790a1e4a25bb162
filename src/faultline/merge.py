"""Merging of user, extra and tag context for one event.

Layers are applied in order, later layers winning on key collisions:

1. the context snapshot taken when the event is built;
2. configuration defaults (tags only);
3. values supplied for this event.

Merges are shallow.  :func:`deep_merge` is only used to fold context
attached to an exception under the caller's options.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from faultline.context import Context

log = structlog.get_logger("faultline.merge")

# Top-level payload keys that may not appear inside user/extra/tags.
RESERVED_KEYS: frozenset[str] = frozenset(
    {
        "event_id",
        "message",
        "timestamp",
        "time_spent",
        "level",
        "project",
        "platform",
        "logger",
        "culprit",
        "server_name",
        "release",
        "fingerprint",
        "modules",
        "extra",
        "tags",
        "user",
        "breadcrumbs",
        "checksum",
    }
)


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Return *base* recursively updated with *override*; *override* wins."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _without_reserved(kind: str, data: dict[str, Any]) -> dict[str, Any]:
    dropped = sorted(k for k in data if k in RESERVED_KEYS)
    if not dropped:
        return data
    log.debug("Dropping reserved keys from event context", section=kind, keys=dropped)
    return {k: v for k, v in data.items() if k not in RESERVED_KEYS}


def merge_context(
    context: Context,
    config_tags: Mapping[str, Any] | None = None,
    *,
    user: Mapping[str, Any] | None = None,
    extra: Mapping[str, Any] | None = None,
    tags: Mapping[str, Any] | None = None,
) -> tuple[dict[str, Any], dict[str, Any], dict[str, str]]:
    """Return the final ``(user, extra, tags)`` maps for one event."""
    merged_user = {**context.user, **(user or {})}
    merged_extra = {**context.extra, **(extra or {})}
    merged_tags = {**context.tags, **(config_tags or {}), **(tags or {})}
    return (
        _without_reserved("user", merged_user),
        _without_reserved("extra", merged_extra),
        {k: str(v) for k, v in _without_reserved("tags", merged_tags).items()},
    )
