"""faultline — error event construction for error-reporting clients."""

from faultline.backtrace import Backtrace, Line, StacktraceParser, lines_from_traceback
from faultline.chain import exception_interface_from, walk_chain
from faultline.config import Configuration, PathClassifier
from faultline.context import BreadcrumbStore, Context
from faultline.culprit import get_culprit
from faultline.errors import FaultlineError, UnknownInterfaceError
from faultline.event import Event, EventBuilder, EventDraft
from faultline.interfaces import (
    ExceptionInterface,
    Frame,
    HttpInterface,
    MessageInterface,
    SingleExceptionInterface,
    StacktraceInterface,
    register_interface,
)
from faultline.levels import LOG_LEVELS, normalize_level
from faultline.log import configure_logging
from faultline.merge import deep_merge, merge_context
from faultline.processors import EventCaptureProcessor
from faultline.serializer import PLATFORM, serialize, to_json
from faultline.sources import LineCacheSource, SourceContextProvider

__version__ = "0.1.0"

__all__ = [
    "LOG_LEVELS",
    "PLATFORM",
    "Backtrace",
    "BreadcrumbStore",
    "Configuration",
    "Context",
    "Event",
    "EventBuilder",
    "EventCaptureProcessor",
    "EventDraft",
    "ExceptionInterface",
    "FaultlineError",
    "Frame",
    "HttpInterface",
    "Line",
    "LineCacheSource",
    "MessageInterface",
    "PathClassifier",
    "SingleExceptionInterface",
    "SourceContextProvider",
    "StacktraceInterface",
    "StacktraceParser",
    "UnknownInterfaceError",
    "configure_logging",
    "deep_merge",
    "exception_interface_from",
    "get_culprit",
    "lines_from_traceback",
    "merge_context",
    "normalize_level",
    "register_interface",
    "serialize",
    "to_json",
    "walk_chain",
]
