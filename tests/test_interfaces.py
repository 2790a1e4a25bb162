"""Tests for faultline.interfaces."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

import pytest

from faultline.errors import FaultlineError, UnknownInterfaceError
from faultline.interfaces import (
    INTERFACES,
    ExceptionInterface,
    Frame,
    HttpInterface,
    Interface,
    MessageInterface,
    SingleExceptionInterface,
    StacktraceInterface,
    find_interface,
    register_interface,
)


class TestRegistry:
    def test_builtin_kinds(self) -> None:
        assert set(INTERFACES) >= {"message", "exception", "stacktrace", "http"}

    def test_find_interface(self) -> None:
        assert find_interface("http") is HttpInterface

    def test_find_by_alias(self) -> None:
        assert find_interface("logentry") is MessageInterface
        assert MessageInterface.payload_key() == "logentry"
        assert HttpInterface.payload_key() == "http"

    def test_unknown_interface(self) -> None:
        with pytest.raises(UnknownInterfaceError, match="Unknown interface: bogus"):
            find_interface("bogus")

    def test_unknown_interface_error_types(self) -> None:
        err = UnknownInterfaceError("bogus")
        assert isinstance(err, FaultlineError)
        assert isinstance(err, KeyError)

    def test_register_interface(self) -> None:
        @register_interface
        @dataclass
        class TemplateInterface(Interface):
            name: ClassVar[str] = "template"
            filename: str | None = None

            def to_dict(self) -> dict[str, Any]:
                return {"filename": self.filename}

        try:
            assert find_interface("template") is TemplateInterface
        finally:
            INTERFACES.pop("template", None)


class TestBuild:
    def test_from_mapping(self) -> None:
        interface = MessageInterface.build({"message": "hi", "params": [1]})
        assert interface == MessageInterface(message="hi", params=[1])

    def test_from_callable(self) -> None:
        def fill(int_: MessageInterface) -> None:
            int_.message = "filled"

        assert MessageInterface.build(fill).message == "filled"  # type: ignore[attr-defined]

    def test_instance_passthrough(self) -> None:
        interface = MessageInterface(message="x")
        assert MessageInterface.build(interface) is interface

    def test_rejects_other_values(self) -> None:
        with pytest.raises(TypeError):
            MessageInterface.build(42)


class TestToDict:
    def test_frame_omits_missing_fields(self) -> None:
        frame = Frame(abs_path="/a.py", filename="a.py", function="f", lineno=3)
        assert frame.to_dict() == {
            "abs_path": "/a.py",
            "filename": "a.py",
            "function": "f",
            "lineno": 3,
            "in_app": False,
        }

    def test_exception_chain(self) -> None:
        stacktrace = StacktraceInterface(frames=[Frame(filename="a.py", lineno=1, in_app=True)])
        interface = ExceptionInterface(
            values=[
                SingleExceptionInterface(type="KeyError", value="'k'", module="builtins"),
                SingleExceptionInterface(
                    type="ValueError", value="bad", module="builtins", stacktrace=stacktrace
                ),
            ]
        )
        data = interface.to_dict()
        assert "stacktrace" not in data["values"][0]
        assert data["values"][1]["stacktrace"] == {
            "frames": [{"filename": "a.py", "lineno": 1, "in_app": True}]
        }


class TestHttpInterface:
    def test_from_environ(self) -> None:
        environ = {
            "wsgi.url_scheme": "https",
            "HTTP_HOST": "shop.example.com",
            "SCRIPT_NAME": "",
            "PATH_INFO": "/cart/add",
            "REQUEST_METHOD": "POST",
            "QUERY_STRING": "id=7",
            "HTTP_COOKIE": "session=abc",
            "HTTP_USER_AGENT": "curl/8",
            "CONTENT_TYPE": "application/json",
            "REMOTE_ADDR": "10.0.0.1",
        }
        http = HttpInterface().from_environ(environ)
        assert http.url == "https://shop.example.com/cart/add"
        assert http.method == "POST"
        assert http.query_string == "id=7"
        assert http.cookies == "session=abc"
        assert http.headers == {
            "Host": "shop.example.com",
            "User-Agent": "curl/8",
            "Content-Type": "application/json",
        }
        assert http.env == {"REMOTE_ADDR": "10.0.0.1"}

    def test_to_dict_omits_none(self) -> None:
        data = HttpInterface(url="/x", method="GET").to_dict()
        assert data == {"url": "/x", "method": "GET", "headers": {}, "env": {}}
