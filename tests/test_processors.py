"""Tests for faultline.processors."""

from __future__ import annotations

import logging
from typing import Any
from unittest.mock import MagicMock

from conftest import FakeSource
from structlog.testing import capture_logs

from faultline.config import Configuration
from faultline.context import Context
from faultline.event import EventBuilder
from faultline.processors import EventCaptureProcessor, _exception_from


def _builder(configuration: Configuration) -> EventBuilder:
    return EventBuilder(configuration, context=Context(), source=FakeSource({}))


class TestExceptionFrom:
    def test_instance(self) -> None:
        exc = ValueError("x")
        assert _exception_from(exc) is exc

    def test_tuple(self) -> None:
        exc = ValueError("x")
        assert _exception_from((ValueError, exc, None)) is exc

    def test_true_uses_current_exception(self) -> None:
        try:
            raise KeyError("k")
        except KeyError as exc:
            assert _exception_from(True) is exc

    def test_falsy_and_malformed(self) -> None:
        assert _exception_from(None) is None
        assert _exception_from(False) is None
        assert _exception_from(("x", "y")) is None


class TestEventCaptureProcessor:
    def test_below_level_passthrough(self, configuration: Configuration) -> None:
        transport = MagicMock()
        proc = EventCaptureProcessor(transport, builder=_builder(configuration))
        ed: dict = {"event": "hello"}
        result = proc(None, "info", ed)
        assert result is ed
        assert "event_id" not in result
        transport.assert_not_called()

    def test_captures_message(self, configuration: Configuration) -> None:
        sent: list[dict[str, Any]] = []
        proc = EventCaptureProcessor(sent.append, builder=_builder(configuration))
        result = proc(None, "error", {"event": "payment failed", "order_id": 7, "logger": "billing"})

        (payload,) = sent
        assert payload["message"] == "payment failed"
        assert payload["level"] == 40
        assert payload["logger"] == "billing"
        assert payload["extra"] == {"order_id": 7}
        assert result["event_id"] == payload["event_id"]

    def test_captures_exception(self, configuration: Configuration) -> None:
        sent: list[dict[str, Any]] = []
        proc = EventCaptureProcessor(sent.append, builder=_builder(configuration))
        try:
            raise RuntimeError("boom")
        except RuntimeError as exc:
            proc(None, "exception", {"event": "job crashed", "exc_info": exc})

        (payload,) = sent
        assert payload["message"] == "RuntimeError: boom"
        assert payload["exception"]["values"][0]["type"] == "RuntimeError"
        assert "exc_info" not in payload.get("extra", {})

    def test_critical_level(self, configuration: Configuration) -> None:
        sent: list[dict[str, Any]] = []
        proc = EventCaptureProcessor(sent.append, builder=_builder(configuration))
        proc(None, "critical", {"event": "down"})
        assert sent[0]["level"] == 50

    def test_custom_event_level(self, configuration: Configuration) -> None:
        transport = MagicMock()
        proc = EventCaptureProcessor(transport, builder=_builder(configuration), event_level=logging.WARNING)
        proc(None, "warning", {"event": "slow"})
        transport.assert_called_once()
        assert transport.call_args.args[0]["level"] == 30

    def test_suppressed_exception(self, configuration: Configuration) -> None:
        configuration.excluded_exceptions = ["ValueError"]
        transport = MagicMock()
        proc = EventCaptureProcessor(transport, builder=_builder(configuration))
        result = proc(None, "error", {"event": "x", "exc_info": ValueError("v")})
        transport.assert_not_called()
        assert "event_id" not in result

    def test_transport_failure_does_not_raise(self, configuration: Configuration) -> None:
        transport = MagicMock(side_effect=ConnectionError("down"))
        proc = EventCaptureProcessor(transport, builder=_builder(configuration))
        result = proc(None, "error", {"event": "x"})
        assert "event_id" not in result

    def test_transport_failure_is_logged(self, configuration: Configuration) -> None:
        transport = MagicMock(side_effect=ConnectionError("down"))
        proc = EventCaptureProcessor(transport, builder=_builder(configuration))
        with capture_logs() as logs:
            proc(None, "error", {"event": "x"})
        (entry,) = [e for e in logs if e["event"] == "Transport failed, event dropped"]
        assert entry["log_level"] == "debug"
        assert len(entry["event_id"]) == 32

    def test_logger_name_from_bound_logger(self, configuration: Configuration) -> None:
        sent: list[dict[str, Any]] = []
        proc = EventCaptureProcessor(sent.append, builder=_builder(configuration))
        proc(logging.getLogger("shop.payments"), "error", {"event": "x"})
        assert sent[0]["logger"] == "shop.payments"
