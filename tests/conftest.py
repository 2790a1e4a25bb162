"""Shared fixtures for faultline tests."""

from __future__ import annotations

import logging
from typing import Any

import pytest
import structlog
from structlog.contextvars import clear_contextvars

from faultline.config import Configuration, PathClassifier
from faultline.context import Context


@pytest.fixture(autouse=True)
def _reset_logging() -> None:  # type: ignore[misc]
    """Reset faultline and root logger handlers after each test."""
    loggers = [logging.getLogger(), logging.getLogger("faultline")]
    saved = [(lg, list(lg.handlers), lg.level) for lg in loggers]

    yield  # type: ignore[misc]

    for lg, handlers, level in saved:
        lg.handlers[:] = handlers
        lg.setLevel(level)


@pytest.fixture(autouse=True)
def _reset_structlog() -> None:  # type: ignore[misc]
    """Reset structlog configuration and bound contextvars after each test."""
    yield  # type: ignore[misc]
    structlog.reset_defaults()
    clear_contextvars()


class FakeSource:
    """In-memory SourceContextProvider."""

    def __init__(self, files: dict[str, list[str]]) -> None:
        self.files = files

    def is_valid_file(self, path: str) -> bool:
        return path in self.files

    def getline(self, path: str, lineno: int) -> str | None:
        lines = self.files.get(path, [])
        if 1 <= lineno <= len(lines):
            return lines[lineno - 1]
        return None


class FakeBreadcrumbs:
    def __init__(self, crumbs: list[dict[str, Any]] | None = None) -> None:
        self.crumbs = crumbs or []

    def is_empty(self) -> bool:
        return not self.crumbs

    def to_list(self) -> list[dict[str, Any]]:
        return list(self.crumbs)


@pytest.fixture
def configuration() -> Configuration:
    return Configuration(
        server_name="web-1",
        release="1.2.3",
        project="42",
        send_modules=False,
        context_lines=1,
        project_root="/srv/app",
        path_classifier=PathClassifier("/srv/app", search_paths=["/srv/app", "/usr/lib/python3/site-packages"]),
    )


@pytest.fixture
def empty_context() -> Context:
    return Context()
