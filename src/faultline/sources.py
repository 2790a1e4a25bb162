"""Source-context lookup for stack frames.

Faultline never reads or caches files on its own.  It asks a
:class:`SourceContextProvider` for individual lines and treats any failure
as "no context available".  :class:`LineCacheSource` adapts the standard
library :mod:`linecache` module to that protocol.
"""

from __future__ import annotations

import linecache
import os
from typing import Protocol, TypeAlias, runtime_checkable

import structlog

log = structlog.get_logger("faultline.sources")

FileContext: TypeAlias = "tuple[list[str] | None, str | None, list[str] | None]"

_NO_CONTEXT: FileContext = (None, None, None)


@runtime_checkable
class SourceContextProvider(Protocol):
    """Line lookup capability used to attach source context to frames."""

    def is_valid_file(self, path: str) -> bool: ...

    def getline(self, path: str, lineno: int) -> str | None: ...


class LineCacheSource:
    """:class:`SourceContextProvider` backed by :mod:`linecache`."""

    def is_valid_file(self, path: str) -> bool:
        if not path:
            return False
        if linecache.getlines(path):
            return True
        return os.path.isfile(path)

    def getline(self, path: str, lineno: int) -> str | None:
        if lineno < 1:
            return None
        line = linecache.getline(path, lineno)
        if not line:
            return None
        return line.rstrip("\r\n")


def get_file_context(
    source: SourceContextProvider,
    path: str,
    lineno: int,
    context: int,
) -> FileContext:
    """Return ``(pre_context, context_line, post_context)`` around *lineno*.

    Up to ``2 * context + 1`` lines are requested.  When the file is not
    valid, or the line itself is out of range, all three parts are ``None``.
    Missing lines at the edges of the file are left out of the pre/post
    lists.
    """
    if context < 1:
        return _NO_CONTEXT
    try:
        if not source.is_valid_file(path):
            return _NO_CONTEXT
        window = [source.getline(path, lineno - context + i) for i in range(2 * context + 1)]
    except Exception:
        log.debug("Source context unavailable", path=path, lineno=lineno, exc_info=True)
        return _NO_CONTEXT

    context_line = window[context]
    if context_line is None:
        return _NO_CONTEXT
    pre = [line for line in window[:context] if line is not None]
    post = [line for line in window[context + 1 :] if line is not None]
    return pre, context_line, post
