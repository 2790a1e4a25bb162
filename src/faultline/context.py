"""Context and breadcrumb collaborators.

An event never reads shared state directly.  The builder asks for a
:class:`Context` once per event and works on a copy of it; breadcrumbs are
read once, when the event is serialized.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeAlias, runtime_checkable

from structlog.contextvars import get_contextvars


@dataclass(frozen=True)
class Context:
    """User, extra and tag values plus the current request, if any.

    ``request`` is a WSGI environ; when present and no ``http`` interface
    was attached explicitly, the event gets one built from it.
    """

    user: Mapping[str, Any] = field(default_factory=dict)
    extra: Mapping[str, Any] = field(default_factory=dict)
    tags: Mapping[str, Any] = field(default_factory=dict)
    request: Mapping[str, Any] | None = None

    def snapshot(self) -> Context:
        """Return a copy whose maps are detached from this context."""
        return Context(
            user=dict(self.user),
            extra=dict(self.extra),
            tags=dict(self.tags),
            request=dict(self.request) if self.request is not None else None,
        )

    @classmethod
    def from_contextvars(cls) -> Context:
        """Build a context whose ``extra`` holds structlog's bound contextvars."""
        return cls(extra=get_contextvars())


ContextSource: TypeAlias = "Context | Callable[[], Context]"


def resolve_context(source: ContextSource | None) -> Context:
    """Return a snapshot of *source* (a context or a factory for one)."""
    if source is None:
        context = Context.from_contextvars()
    elif isinstance(source, Context):
        context = source
    else:
        context = source()
    return context.snapshot()


@runtime_checkable
class BreadcrumbStore(Protocol):
    """Read side of a breadcrumb buffer."""

    def is_empty(self) -> bool: ...

    def to_list(self) -> list[dict[str, Any]]: ...
