"""Tests for faultline.sources."""

from __future__ import annotations

from pathlib import Path

from conftest import FakeSource

from faultline.sources import LineCacheSource, SourceContextProvider, get_file_context

LINES = [f"line {n}" for n in range(1, 8)]


class TestGetFileContext:
    def test_window_around_line(self) -> None:
        source = FakeSource({"a.py": LINES})
        pre, line, post = get_file_context(source, "a.py", 4, 2)
        assert pre == ["line 2", "line 3"]
        assert line == "line 4"
        assert post == ["line 5", "line 6"]

    def test_invalid_file(self) -> None:
        source = FakeSource({})
        assert get_file_context(source, "missing.py", 4, 2) == (None, None, None)

    def test_line_out_of_range(self) -> None:
        source = FakeSource({"a.py": LINES})
        assert get_file_context(source, "a.py", 99, 2) == (None, None, None)

    def test_edges_are_trimmed(self) -> None:
        source = FakeSource({"a.py": LINES})
        pre, line, post = get_file_context(source, "a.py", 1, 2)
        assert pre == []
        assert line == "line 1"
        assert post == ["line 2", "line 3"]

    def test_zero_context(self) -> None:
        source = FakeSource({"a.py": LINES})
        assert get_file_context(source, "a.py", 4, 0) == (None, None, None)

    def test_provider_error_degrades(self) -> None:
        class Broken:
            def is_valid_file(self, path: str) -> bool:
                return True

            def getline(self, path: str, lineno: int) -> str | None:
                raise OSError("gone")

        assert get_file_context(Broken(), "a.py", 4, 1) == (None, None, None)


class TestLineCacheSource:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(LineCacheSource(), SourceContextProvider)

    def test_reads_lines(self, tmp_path: Path) -> None:
        path = tmp_path / "mod.py"
        path.write_text("first\nsecond\n", encoding="utf-8")
        source = LineCacheSource()
        assert source.is_valid_file(str(path))
        assert source.getline(str(path), 2) == "second"
        assert source.getline(str(path), 3) is None
        assert source.getline(str(path), 0) is None

    def test_missing_file(self, tmp_path: Path) -> None:
        source = LineCacheSource()
        assert source.is_valid_file(str(tmp_path / "nope.py")) is False
        assert source.is_valid_file("") is False
