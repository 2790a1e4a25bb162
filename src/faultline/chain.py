"""Exception cause-chain extraction.

Walks ``__cause__`` / ``__context__`` links from the raised exception back
to the root cause, guarding against cycles by identity, and turns the chain
into an :class:`~faultline.interfaces.ExceptionInterface`.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from faultline.interfaces import ExceptionInterface, SingleExceptionInterface, StacktraceInterface


def exception_cause(exc: BaseException) -> BaseException | None:
    """Return the exception *exc* was raised from, if any.

    An explicit ``raise ... from`` cause wins; otherwise the implicit
    ``__context__`` is used unless it was suppressed with ``from None``.
    """
    cause = exc.__cause__
    if cause is None and not exc.__suppress_context__:
        cause = exc.__context__
    return cause


def walk_chain(exc: BaseException) -> list[BaseException]:
    """Return the exceptions in *exc*'s chain, root cause first.

    Each exception appears once.  The walk stops at the first cause that was
    already seen, so cyclic chains terminate.
    """
    chain = [exc]
    seen = {id(exc)}
    cause = exception_cause(exc)
    while cause is not None and id(cause) not in seen:
        chain.append(cause)
        seen.add(id(cause))
        cause = exception_cause(cause)
    chain.reverse()
    return chain


def exception_module(exc_type: type[BaseException]) -> str:
    """Return the qualified type name of *exc_type* without its last segment."""
    qualified = f"{exc_type.__module__}.{exc_type.__qualname__}"
    return qualified.rsplit(".", 1)[0]


def exception_interface_from(
    exc: BaseException,
    parse: Callable[[Any], StacktraceInterface],
) -> ExceptionInterface:
    """Build the exception interface for *exc* and its causes.

    *parse* turns a traceback into a stacktrace.  A traceback object shared
    by several exceptions in the chain is parsed for the first one only; the
    others carry no stacktrace.
    """
    values = []
    parsed: set[int] = set()
    for link in walk_chain(exc):
        tb = link.__traceback__
        stacktrace = None
        if tb is not None and id(tb) not in parsed:
            parsed.add(id(tb))
            stacktrace = parse(tb)
        exc_type = type(link)
        values.append(
            SingleExceptionInterface(
                type=exc_type.__name__,
                value=str(link),
                module=exception_module(exc_type),
                stacktrace=stacktrace,
            )
        )
    return ExceptionInterface(values=values)
