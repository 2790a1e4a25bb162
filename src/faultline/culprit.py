"""Culprit inference from stack frames."""

from __future__ import annotations

from collections.abc import Sequence

from faultline.interfaces import Frame


def get_culprit(frames: Sequence[Frame]) -> str | None:
    """Describe the frame most likely responsible for an error.

    *frames* are ordered oldest call first.  The newest in-app frame wins;
    without one, the newest frame is used.  Returns ``None`` for no frames.
    """
    if not frames:
        return None
    culprit = next((f for f in reversed(frames) if f.in_app), frames[-1])
    lineno = "" if culprit.lineno is None else culprit.lineno
    return f"{culprit.filename or ''} in {culprit.function or ''} at line {lineno}"
