"""Structured sub-payloads attached to an event.

Each interface kind is a small dataclass with a ``name`` and a
``to_dict()`` method.  :data:`INTERFACES` is the dispatch table from kind
name to class; looking up a name that is not registered is an error.

Usage::

    event.interface("message", {"message": "disk full"})
    event.interface("http", lambda http: http.from_environ(environ))
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any, ClassVar
from urllib.parse import quote

from faultline.errors import UnknownInterfaceError


class Interface:
    """Base class for interface kinds."""

    name: ClassVar[str]
    # Payload key, when it differs from ``name``.
    alias: ClassVar[str | None] = None

    @classmethod
    def payload_key(cls) -> str:
        return cls.alias or cls.name

    @classmethod
    def build(cls, value: Any) -> Interface:
        """Create an instance from *value*.

        *value* may already be an instance, a mapping of field values, or a
        callable that fills in a fresh instance.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            return cls(**value)
        if callable(value):
            instance = cls()
            value(instance)
            return instance
        msg = f"Cannot build {cls.name!r} interface from {type(value).__name__}"
        raise TypeError(msg)

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


@dataclass
class MessageInterface(Interface):
    name: ClassVar[str] = "message"
    alias: ClassVar[str | None] = "logentry"

    message: str | None = None
    params: list[Any] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "params": list(self.params)}


@dataclass
class Frame:
    """One stack frame, as stored in a stacktrace."""

    abs_path: str | None = None
    filename: str | None = None
    function: str | None = None
    lineno: int | None = None
    in_app: bool = False
    module: str | None = None
    pre_context: list[str] | None = None
    context_line: str | None = None
    post_context: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact({f.name: getattr(self, f.name) for f in fields(self)})


@dataclass
class StacktraceInterface(Interface):
    """Frames ordered oldest call first."""

    name: ClassVar[str] = "stacktrace"

    frames: list[Frame] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"frames": [frame.to_dict() for frame in self.frames]}


@dataclass
class SingleExceptionInterface:
    """One link in a cause chain."""

    type: str | None = None
    value: str | None = None
    module: str | None = None
    stacktrace: StacktraceInterface | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type, "value": self.value, "module": self.module}
        if self.stacktrace is not None:
            data["stacktrace"] = self.stacktrace.to_dict()
        return data


@dataclass
class ExceptionInterface(Interface):
    """A cause chain, root cause first."""

    name: ClassVar[str] = "exception"

    values: list[SingleExceptionInterface] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"values": [value.to_dict() for value in self.values]}


# WSGI environ keys copied into ``env`` besides the HTTP_* headers.
_ENV_KEYS: tuple[str, ...] = ("REMOTE_ADDR", "SERVER_NAME", "SERVER_PORT")


@dataclass
class HttpInterface(Interface):
    name: ClassVar[str] = "http"

    url: str | None = None
    method: str | None = None
    data: Any = None
    query_string: str | None = None
    cookies: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    env: dict[str, str] = field(default_factory=dict)

    def from_environ(self, environ: Mapping[str, Any]) -> HttpInterface:
        """Fill this interface from a WSGI *environ*."""
        scheme = environ.get("wsgi.url_scheme", "http")
        host = environ.get("HTTP_HOST") or environ.get("SERVER_NAME", "")
        path = quote(environ.get("SCRIPT_NAME", "") + environ.get("PATH_INFO", ""))
        self.url = f"{scheme}://{host}{path}" if host else path
        self.method = environ.get("REQUEST_METHOD")
        self.query_string = environ.get("QUERY_STRING") or None
        self.cookies = environ.get("HTTP_COOKIE") or None

        for key, value in environ.items():
            if key.startswith("HTTP_") and key != "HTTP_COOKIE":
                self.headers[key[5:].replace("_", "-").title()] = str(value)
            elif key in ("CONTENT_TYPE", "CONTENT_LENGTH") and value:
                self.headers[key.replace("_", "-").title()] = str(value)
        for key in _ENV_KEYS:
            if key in environ:
                self.env[key] = str(environ[key])
        return self

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "url": self.url,
                "method": self.method,
                "data": self.data,
                "query_string": self.query_string,
                "cookies": self.cookies,
                "headers": dict(self.headers),
                "env": dict(self.env),
            }
        )


INTERFACES: dict[str, type[Interface]] = {
    cls.name: cls
    for cls in (MessageInterface, ExceptionInterface, StacktraceInterface, HttpInterface)
}


def register_interface(cls: type[Interface]) -> type[Interface]:
    """Add *cls* to :data:`INTERFACES` under ``cls.name``.  Usable as a decorator."""
    INTERFACES[cls.name] = cls
    return cls


def find_interface(name: str) -> type[Interface]:
    """Return the interface class registered as *name* or aliased as *name*."""
    key = str(name)
    if key in INTERFACES:
        return INTERFACES[key]
    for cls in INTERFACES.values():
        if cls.alias == key:
            return cls
    raise UnknownInterfaceError(key)
