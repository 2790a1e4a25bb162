"""Configuration for event construction.

A :class:`Configuration` carries the defaults every event starts from
(server name, release, project, tags), the exception exclusion list, and
the knobs for stack-frame enrichment.  :meth:`Configuration.from_env`
builds one from ``FAULTLINE_*`` environment variables:

- ``FAULTLINE_PROJECT``
- ``FAULTLINE_RELEASE``
- ``FAULTLINE_SERVER_NAME`` (default: the host name)
- ``FAULTLINE_CONTEXT_LINES`` (default: ``3``; ``0`` disables source context)
- ``FAULTLINE_SEND_MODULES`` (``"0"`` disables the module inventory)
- ``FAULTLINE_TAGS`` (``"key=value,other=value"``)
- ``FAULTLINE_EXCLUDED_EXCEPTIONS`` (comma separated class names)
"""

from __future__ import annotations

import os
import re
import socket
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

log = structlog.get_logger("faultline.config")

DEFAULT_EXCLUDED_EXCEPTIONS: tuple[str, ...] = ("KeyboardInterrupt", "SystemExit")

# Path segments that mark third-party code.
_LIBRARY_MARKERS: frozenset[str] = frozenset({"site-packages", "dist-packages"})


def _strip_prefix(path: str, prefixes: Sequence[str]) -> str | None:
    """Return *path* relative to the longest matching prefix, or ``None``."""
    best: str | None = None
    for prefix in prefixes:
        if not prefix:
            continue
        prefix = prefix.rstrip("/\\")
        if path.startswith(prefix + os.sep) or path.startswith(prefix + "/"):
            if best is None or len(prefix) > len(best):
                best = prefix
    if best is None:
        return None
    return path[len(best) + 1 :]


class PathClassifier:
    """Decide whether a file belongs to the application and name its module.

    Parameters
    ----------
    project_root:
        Directory holding the application's own code.
    app_dirs_pattern:
        Optional regex matched against the path relative to *project_root*;
        only matching paths count as in-app.
    search_paths:
        Import roots used to derive dotted module names.  Defaults to
        :data:`sys.path` at classification time.
    """

    def __init__(
        self,
        project_root: str | None = None,
        *,
        app_dirs_pattern: re.Pattern[str] | None = None,
        search_paths: Sequence[str] | None = None,
    ) -> None:
        self._root = project_root.rstrip("/\\") if project_root else None
        self._pattern = app_dirs_pattern
        self._search_paths = search_paths

    def _prefixes(self) -> list[str]:
        paths = list(self._search_paths if self._search_paths is not None else sys.path)
        if self._root:
            paths.append(self._root)
        return [p for p in paths if p]

    def relative_path(self, path: str) -> str | None:
        """Return *path* shortened to its import root, or as-is."""
        if not path:
            return None
        return _strip_prefix(path, self._prefixes()) or path

    def classify(self, path: str) -> tuple[bool, str | None]:
        """Return ``(in_app, module_name)`` for *path*."""
        return self._in_app(path), self._module_name(path)

    def _in_app(self, path: str) -> bool:
        # <string>, <stdin>, <frozen runpy> and other generated code
        if path.startswith("<") and path.endswith(">"):
            return False
        parts = set(re.split(r"[/\\]", path))
        if parts & _LIBRARY_MARKERS:
            return False
        if os.path.isabs(path):
            if not self._root:
                return False
            relative = _strip_prefix(path, [self._root])
            if relative is None:
                return False
        else:
            relative = path
        if self._pattern is None:
            return True
        return self._pattern.match(relative) is not None

    def _module_name(self, path: str) -> str | None:
        if not path.endswith(".py"):
            return None
        relative = _strip_prefix(path, self._prefixes())
        if relative is None:
            return None
        segments = re.split(r"[/\\]", relative[: -len(".py")])
        if segments and segments[-1] == "__init__":
            segments.pop()
        if not segments or not all(s.isidentifier() for s in segments):
            return None
        return ".".join(segments)


@dataclass
class Configuration:
    """Defaults and policies applied to every event.

    ``excluded_exceptions`` entries may be class-name strings, exception
    classes, or compiled regexes matched against the qualified class name.
    """

    project: str | None = None
    server_name: str | None = field(default_factory=socket.gethostname)
    release: str | None = None
    tags: dict[str, str] = field(default_factory=dict)
    excluded_exceptions: list[Any] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_EXCEPTIONS))
    context_lines: int | None = 3
    send_modules: bool = True
    project_root: str | None = field(default_factory=os.getcwd)
    app_dirs_pattern: re.Pattern[str] | None = None
    path_classifier: PathClassifier | None = None

    def __post_init__(self) -> None:
        if self.path_classifier is None:
            self.path_classifier = PathClassifier(
                self.project_root,
                app_dirs_pattern=self.app_dirs_pattern,
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> Configuration:
        """Build a configuration from ``FAULTLINE_*`` variables.

        Keyword *overrides* win over the environment.
        """
        env = os.environ if environ is None else environ
        kwargs: dict[str, Any] = {}

        for key, name in (
            ("project", "FAULTLINE_PROJECT"),
            ("release", "FAULTLINE_RELEASE"),
            ("server_name", "FAULTLINE_SERVER_NAME"),
        ):
            if env.get(name):
                kwargs[key] = env[name]

        raw_lines = env.get("FAULTLINE_CONTEXT_LINES")
        if raw_lines:
            try:
                kwargs["context_lines"] = int(raw_lines)
            except ValueError:
                log.warning("Ignoring invalid FAULTLINE_CONTEXT_LINES", value=raw_lines)

        if "FAULTLINE_SEND_MODULES" in env:
            kwargs["send_modules"] = env["FAULTLINE_SEND_MODULES"] != "0"

        raw_tags = env.get("FAULTLINE_TAGS")
        if raw_tags:
            kwargs["tags"] = _parse_tags(raw_tags)

        raw_excluded = env.get("FAULTLINE_EXCLUDED_EXCEPTIONS")
        if raw_excluded:
            kwargs["excluded_exceptions"] = [n.strip() for n in raw_excluded.split(",") if n.strip()]

        kwargs.update(overrides)
        return cls(**kwargs)


def _parse_tags(raw: str) -> dict[str, str]:
    """Parse ``"a=1,b=2"`` into a tag mapping, skipping malformed pairs."""
    tags: dict[str, str] = {}
    for pair in raw.split(","):
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            continue
        tags[key.strip()] = value.strip()
    return tags
