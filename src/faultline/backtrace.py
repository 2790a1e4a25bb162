"""Parsing raw backtraces into stack frames.

A raw backtrace is a sequence of ``<file>:<line>[:in <function>]`` strings,
innermost call first.  Python tracebacks are rendered into that form by
:func:`lines_from_traceback`, so every source of frames goes through the
same parser.  Text produced by :func:`traceback.format_stack` or
:func:`traceback.format_exc` (``File "<file>", line <n>, in <function>``,
oldest call first) is accepted as well.
"""

from __future__ import annotations

import re
import traceback
from collections.abc import Iterator
from dataclasses import dataclass
from types import TracebackType
from typing import Any

import structlog

from faultline.config import Configuration, PathClassifier
from faultline.interfaces import Frame, StacktraceInterface
from faultline.sources import LineCacheSource, SourceContextProvider, get_file_context

log = structlog.get_logger("faultline.backtrace")

BACKTRACE_RE = re.compile(r"^(?P<file>.+?):(?P<lineno>\d+)(?::in [`']?(?P<function>.+?)'?)?$")
PYTHON_TRACE_RE = re.compile(r'^File "(?P<file>.+?)", line (?P<lineno>\d+)(?:, in (?P<function>.+))?$')


def _format_line(filename: str, lineno: int | None, name: str) -> str:
    return f"{filename}:{lineno or 0}:in `{name}'"


def lines_from_traceback(tb: TracebackType | traceback.StackSummary | None) -> list[str]:
    """Render *tb* as raw backtrace lines, innermost call first."""
    if tb is None:
        return []
    summary = tb if isinstance(tb, traceback.StackSummary) else traceback.extract_tb(tb)
    return [_format_line(fs.filename, fs.lineno, fs.name) for fs in reversed(summary)]


def _classify(classifier: PathClassifier, path: str) -> tuple[bool, str | None]:
    try:
        return classifier.classify(path)
    except Exception:
        log.debug("Path classification failed", path=path, exc_info=True)
        return False, None


@dataclass(frozen=True)
class Line:
    """One parsed backtrace line."""

    file: str
    number: int
    method: str | None = None
    in_app: bool = False
    module_name: str | None = None

    @classmethod
    def parse(cls, unparsed: str, classifier: PathClassifier) -> Line | None:
        """Parse *unparsed*, returning ``None`` when it is not a trace line."""
        stripped = unparsed.strip()
        match = PYTHON_TRACE_RE.match(stripped) or BACKTRACE_RE.match(stripped)
        if match is None:
            return None
        file = match.group("file")
        in_app, module_name = _classify(classifier, file)
        return cls(
            file=file,
            number=int(match.group("lineno")),
            method=match.group("function"),
            in_app=in_app,
            module_name=module_name,
        )


class Backtrace:
    """An ordered list of :class:`Line`, in raw (innermost first) order."""

    def __init__(self, lines: list[Line]) -> None:
        self.lines = lines

    def __len__(self) -> int:
        return len(self.lines)

    def __iter__(self) -> Iterator[Line]:
        return iter(self.lines)

    @classmethod
    def parse(cls, raw: Any, classifier: PathClassifier | None = None) -> Backtrace:
        """Parse *raw* into a :class:`Backtrace`.

        *raw* may be a traceback object, a :class:`traceback.StackSummary`,
        a newline separated string, or an iterable of line strings.  Python
        formatted tracebacks are recognized by their ``File "..."`` lines;
        only those lines are parsed, and their order is flipped to innermost
        first.
        """
        classifier = classifier or PathClassifier()
        unparsed_lines = _raw_lines(raw)
        python_lines = [u for u in unparsed_lines if PYTHON_TRACE_RE.match(u.strip())]
        if python_lines:
            unparsed_lines = python_lines[::-1]
        parsed = []
        for unparsed in unparsed_lines:
            line = Line.parse(unparsed, classifier)
            if line is not None:
                parsed.append(line)
        return cls(parsed)


def _raw_lines(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, (TracebackType, traceback.StackSummary)):
        return lines_from_traceback(raw)
    if isinstance(raw, str):
        return raw.splitlines()
    # format_stack() entries carry their source line after a newline
    return [part for entry in raw for part in str(entry).splitlines()]


class StacktraceParser:
    """Build :class:`StacktraceInterface` objects from raw backtraces.

    Parameters
    ----------
    configuration:
        Supplies the path classifier and ``context_lines``.
    source:
        Line lookup used for source context.  Defaults to
        :class:`~faultline.sources.LineCacheSource`.
    """

    def __init__(
        self,
        configuration: Configuration,
        source: SourceContextProvider | None = None,
    ) -> None:
        self._configuration = configuration
        self._classifier = configuration.path_classifier or PathClassifier()
        self._source = source or LineCacheSource()

    def frames_from(self, raw: Any) -> list[Frame]:
        """Return frames for *raw*, oldest call first."""
        backtrace = Backtrace.parse(raw, self._classifier)
        context_lines = self._configuration.context_lines or 0

        frames: list[Frame] = []
        for line in reversed(backtrace.lines):
            frame = Frame(
                abs_path=line.file,
                filename=self._relative_path(line.file),
                function=line.method,
                lineno=line.number,
                in_app=line.in_app,
                module=line.module_name,
            )
            if not frame.filename:
                continue
            if context_lines > 0:
                frame.pre_context, frame.context_line, frame.post_context = get_file_context(
                    self._source, line.file, line.number, context_lines
                )
            frames.append(frame)
        return frames

    def stacktrace_from(self, raw: Any) -> StacktraceInterface:
        return StacktraceInterface(frames=self.frames_from(raw))

    def _relative_path(self, path: str) -> str | None:
        try:
            return self._classifier.relative_path(path)
        except Exception:
            log.debug("Could not shorten path", path=path, exc_info=True)
            return path or None
