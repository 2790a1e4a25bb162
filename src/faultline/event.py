"""Error event construction.

:class:`EventBuilder` turns an exception or a message into an
:class:`Event`::

    from faultline import EventBuilder

    builder = EventBuilder()
    try:
        do_work()
    except Exception as exc:
        event = builder.from_exception(exc, {"tags": {"job": "nightly"}})
        if event is not None:
            transport(event.to_dict())

Fields are staged on an :class:`EventDraft`.  Timestamp, level and
time-spent are coerced exactly once, when the draft is built.
"""

from __future__ import annotations

import hashlib
import re
import uuid
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any

import structlog

from faultline.backtrace import StacktraceParser
from faultline.chain import exception_interface_from
from faultline.config import Configuration
from faultline.context import BreadcrumbStore, Context, ContextSource, resolve_context
from faultline.culprit import get_culprit
from faultline.errors import FaultlineError
from faultline.interfaces import ExceptionInterface, Interface, find_interface
from faultline.levels import normalize_level
from faultline.merge import deep_merge, merge_context
from faultline.modules import list_distributions
from faultline.serializer import PLATFORM, serialize
from faultline.sources import SourceContextProvider

log = structlog.get_logger("faultline.event")

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Event fields a caller may set through options.
OVERRIDABLE_FIELDS: frozenset[str] = frozenset(
    {
        "message",
        "timestamp",
        "time_spent",
        "level",
        "logger",
        "culprit",
        "server_name",
        "release",
        "project",
        "modules",
        "user",
        "extra",
        "tags",
        "checksum",
        "fingerprint",
    }
)

# Options read by the builder itself rather than copied onto the event.
_CONSUMED_OPTIONS: frozenset[str] = frozenset({"configuration", "backtrace"})

__all__ = ["PLATFORM", "Event", "EventBuilder", "EventDraft", "generate_event_id"]


def generate_event_id() -> str:
    """Return a random event id: the MD5 hex digest of a fresh UUID4."""
    return hashlib.md5(str(uuid.uuid4()).encode()).hexdigest()  # noqa: S324


def _format_timestamp(value: Any) -> str:
    """Render *value* as a UTC timestamp string.

    Accepts a ``datetime``, a ``date`` (midnight), epoch seconds, or an
    already formatted string.  Anything else is replaced by the current time.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = datetime.fromtimestamp(value, timezone.utc)
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    elif not isinstance(value, datetime):
        log.warning("Unsupported timestamp, using current time", timestamp=repr(value))
        value = datetime.now(timezone.utc)
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(TIMESTAMP_FORMAT)


def _coerce_time_spent(value: Any) -> Any:
    if isinstance(value, float):
        return int(value * 1000)
    return value


def _interface(interfaces: dict[str, Interface], name: str, value: Any) -> Interface | None:
    cls = find_interface(name)
    if value is not None:
        interfaces[cls.name] = cls.build(value)
    return interfaces.get(cls.name)


@dataclass
class Event:
    """A fully built error event.

    ``event_id`` is fixed at construction.  Interfaces are reached through
    :meth:`interface` or item access; unknown interface names raise
    :class:`~faultline.errors.UnknownInterfaceError`.
    """

    event_id: str
    timestamp: str
    level: int
    message: str | None = None
    time_spent: int | None = None
    project: str | None = None
    logger: str = ""
    culprit: str | None = None
    server_name: str | None = None
    release: str | None = None
    checksum: str | None = None
    fingerprint: list[str] | None = None
    modules: dict[str, str] | None = None
    user: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)
    tags: dict[str, str] = field(default_factory=dict)
    breadcrumbs: BreadcrumbStore | None = field(default=None, repr=False)
    interfaces: dict[str, Interface] = field(default_factory=dict)

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "event_id" and "event_id" in self.__dict__:
            msg = "event_id is read-only"
            raise AttributeError(msg)
        super().__setattr__(name, value)

    def interface(self, name: str, value: Any = None) -> Interface | None:
        """Return the *name* interface, attaching *value* first when given."""
        return _interface(self.interfaces, name, value)

    def __getitem__(self, name: str) -> Interface | None:
        return self.interface(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.interface(name, value)

    def to_dict(self) -> dict[str, Any]:
        return serialize(self)


class EventDraft:
    """Mutable staging area for one event.

    Starts from the configuration defaults.  ``timestamp``, ``level`` and
    ``time_spent`` accept raw values (a :class:`~datetime.datetime`, a level
    name, fractional seconds) which :meth:`build` coerces.
    """

    def __init__(
        self,
        configuration: Configuration,
        context: Context,
        breadcrumbs: BreadcrumbStore | None = None,
    ) -> None:
        self.configuration = configuration
        self.context = context
        self.breadcrumbs = breadcrumbs
        self.event_id = generate_event_id()
        self.timestamp: Any = datetime.now(timezone.utc)
        self.level: Any = "error"
        self.time_spent: Any = None
        self.message: str | None = None
        self.project = configuration.project
        self.logger = ""
        self.culprit: str | None = None
        self.server_name = configuration.server_name
        self.release = configuration.release
        self.modules = list_distributions() if configuration.send_modules else None
        self.user: dict[str, Any] = {}
        self.extra: dict[str, Any] = {}
        self.tags: dict[str, Any] = {}
        self.checksum: str | None = None
        self.fingerprint: list[str] | None = None
        self.interfaces: dict[str, Interface] = {}

    def interface(self, name: str, value: Any = None) -> Interface | None:
        return _interface(self.interfaces, name, value)

    def __getitem__(self, name: str) -> Interface | None:
        return self.interface(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.interface(name, value)

    def apply(self, options: Mapping[str, Any]) -> None:
        """Copy whitelisted fields from *options* onto the draft."""
        for key, value in options.items():
            if key in OVERRIDABLE_FIELDS:
                setattr(self, key, value)
            elif key not in _CONSUMED_OPTIONS:
                log.debug("Ignoring unknown event option", option=key)

    def build(self) -> Event:
        """Merge context, coerce fields and return the finished :class:`Event`."""
        request = self.context.request
        if request is not None and "http" not in self.interfaces:
            self.interface("http", lambda http: http.from_environ(request))

        user, extra, tags = merge_context(
            self.context,
            self.configuration.tags,
            user=self.user,
            extra=self.extra,
            tags=self.tags,
        )
        return Event(
            event_id=self.event_id,
            timestamp=_format_timestamp(self.timestamp),
            level=normalize_level(self.level),
            message=self.message,
            time_spent=_coerce_time_spent(self.time_spent),
            project=self.project,
            logger=self.logger,
            culprit=self.culprit,
            server_name=self.server_name,
            release=self.release,
            checksum=self.checksum,
            fingerprint=self.fingerprint,
            modules=self.modules,
            user=user,
            extra=extra,
            tags=tags,
            breadcrumbs=self.breadcrumbs,
            interfaces=dict(self.interfaces),
        )


def get_exception_context(exc: BaseException) -> dict[str, Any]:
    """Return context attached to *exc*, or an empty dict.

    Looks for a ``__faultline_context__`` attribute first, then a
    ``faultline_context`` attribute or zero-argument method.
    """
    context = getattr(exc, "__faultline_context__", None)
    if context is None:
        accessor = getattr(exc, "faultline_context", None)
        context = accessor() if callable(accessor) else accessor
    return dict(context) if isinstance(context, Mapping) else {}


def _exclusion_matches(entry: Any, exc: BaseException) -> bool:
    exc_type = type(exc)
    names = {
        exc_type.__name__,
        exc_type.__qualname__,
        f"{exc_type.__module__}.{exc_type.__qualname__}",
    }
    if isinstance(entry, str):
        return entry in names
    if isinstance(entry, re.Pattern):
        return any(entry.fullmatch(name) for name in names)
    if isinstance(entry, type):
        return isinstance(exc, entry)
    return False


def is_excluded(exc: BaseException, excluded: Iterable[Any]) -> bool:
    """Return ``True`` when *exc* matches an entry of *excluded*.

    An entry that fails to match cleanly counts as a non-match.
    """
    for entry in excluded:
        try:
            if _exclusion_matches(entry, exc):
                return True
        except Exception:
            log.debug("Exclusion entry failed to match", entry=repr(entry), exc_info=True)
    return False


def _newest_culprit(exc_interface: ExceptionInterface) -> str | None:
    for value in reversed(exc_interface.values):
        if value.stacktrace is not None and value.stacktrace.frames:
            return get_culprit(value.stacktrace.frames)
    return None


class EventBuilder:
    """Build events from exceptions and messages.

    Parameters
    ----------
    configuration:
        Defaults and policies.  A per-call ``options["configuration"]``
        replaces it for that event.
    context:
        A :class:`~faultline.context.Context` or a zero-argument callable
        returning one.  Defaults to structlog's bound contextvars.
    breadcrumbs:
        Breadcrumb store attached to every event.
    source:
        Line lookup for source context around frames.
    """

    def __init__(
        self,
        configuration: Configuration | None = None,
        *,
        context: ContextSource | None = None,
        breadcrumbs: BreadcrumbStore | None = None,
        source: SourceContextProvider | None = None,
    ) -> None:
        self.configuration = configuration or Configuration()
        self._context = context
        self._breadcrumbs = breadcrumbs
        self._source = source

    def _draft(self, configuration: Configuration) -> EventDraft:
        return EventDraft(configuration, resolve_context(self._context), self._breadcrumbs)

    def from_exception(
        self,
        exc: BaseException,
        options: Mapping[str, Any] | None = None,
        finalize: Callable[[EventDraft], None] | None = None,
    ) -> Event | None:
        """Build an event for *exc*.

        Returns ``None`` when *exc* is a faultline error or matches the
        configured exclusions.  *finalize* may adjust the draft before the
        options and context are applied.
        """
        opts = deep_merge(get_exception_context(exc), options or {})
        configuration: Configuration = opts.get("configuration") or self.configuration

        if isinstance(exc, FaultlineError):
            log.info("Refusing to capture faultline error", error=repr(exc))
            return None
        if is_excluded(exc, configuration.excluded_exceptions):
            log.info("User excluded error", error=repr(exc))
            return None

        draft = self._draft(configuration)
        draft.message = f"{type(exc).__name__}: {exc}"
        draft.level = opts.get("level") or "error"

        parser = StacktraceParser(configuration, self._source)
        exc_interface = exception_interface_from(exc, parser.stacktrace_from)
        draft.interface("exception", exc_interface)
        draft.culprit = _newest_culprit(exc_interface)

        if finalize is not None:
            finalize(draft)

        draft.apply(opts)
        return draft.build()

    def from_message(self, message: str, options: Mapping[str, Any] | None = None) -> Event:
        """Build an event for *message*.

        ``options["backtrace"]`` (a traceback, stack summary or raw lines)
        adds a stacktrace interface.
        """
        opts = dict(options or {})
        configuration: Configuration = opts.get("configuration") or self.configuration

        draft = self._draft(configuration)
        draft.message = message
        draft.level = opts.get("level") or "error"
        draft.interface("message", {"message": message})

        backtrace = opts.get("backtrace")
        if backtrace is not None:
            stacktrace = StacktraceParser(configuration, self._source).stacktrace_from(backtrace)
            draft.interface("stacktrace", stacktrace)
            draft.culprit = get_culprit(stacktrace.frames)

        draft.apply(opts)
        return draft.build()

    capture_exception = from_exception
    capture_message = from_message
