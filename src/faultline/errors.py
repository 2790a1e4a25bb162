"""Exception types raised by faultline itself.

Anything deriving from :class:`FaultlineError` is never captured as an
error event, which keeps a broken reporter from reporting on itself.
"""

from __future__ import annotations


class FaultlineError(Exception):
    """Base class for errors raised by faultline."""


class UnknownInterfaceError(FaultlineError, KeyError):
    """Raised when attaching an interface name that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown interface: {self.name}"
