"""Failure handlers - What happens when a constraint does not match.

Handlers form a chain of responsibility: each one does its job and then
passes the failure on to its successor, so a chain can log, break into the
debugger and raise, in that order or any other.

Usage:
    chain = build_chain([LoggingHandler(), ExceptionHandler()])
    chain.handle(constraint, "Order total for {0}", order_id)
"""

from __future__ import annotations

import logging
import sys
from abc import ABC, abstractmethod
import traceback
from pathlib import Path
from typing import Any, Callable

from ensurance.constraints import Constraint
from ensurance.models import LogSeverity, WriterSettings
from ensurance.writer import TextMessageWriter

logger = logging.getLogger(__name__)

# Frames from files in this directory are library frames
_PACKAGE_DIR = Path(__file__).resolve().parent

_SEVERITY_LEVELS = {
    LogSeverity.DEBUG: logging.DEBUG,
    LogSeverity.INFO: logging.INFO,
    LogSeverity.WARN: logging.WARNING,
    LogSeverity.ERROR: logging.ERROR,
    LogSeverity.FATAL: logging.CRITICAL,
}


class EnsuranceError(AssertionError):
    """Raised when an ensured constraint is not satisfied.

    The message is the rendered failure text, e.g.:

          Expected: 5
          But was:  4
    """


def render_failure(
    constraint: Constraint,
    message: str | None = None,
    args: tuple[Any, ...] = (),
    settings: WriterSettings | None = None,
) -> str:
    """Render the optional user message line followed by the constraint's message."""
    writer = TextMessageWriter(settings=settings)
    if message:
        writer.write_message_line(message, *args)
    constraint.write_message_to(writer)
    return str(writer)


# =============================================================================
# Handler Base
# =============================================================================


class FailureHandler(ABC):
    """Link in a failure-handler chain.

    Subclasses override _handle(); handle() always passes the failure on
    to the successor afterwards, even when _handle() raises.
    """

    def __init__(self) -> None:
        self.successor: FailureHandler | None = None

    def handle(self, constraint: Constraint, message: str | None = None, *args: Any) -> None:
        try:
            self._handle(constraint, message, args)
        finally:
            if self.successor is not None:
                self.successor.handle(constraint, message, *args)

    @abstractmethod
    def _handle(self, constraint: Constraint, message: str | None, args: tuple[Any, ...]) -> None: ...


def build_chain(handlers: list[FailureHandler]) -> FailureHandler:
    """Link handlers in list order and return the head of the chain.

    Raises:
        ValueError: If handlers is empty.
    """
    if not handlers:
        raise ValueError("A failure-handler chain needs at least one handler")

    for current, successor in zip(handlers, handlers[1:]):
        current.successor = successor
    handlers[-1].successor = None

    logger.debug("Built failure-handler chain: %s", " -> ".join(type(h).__name__ for h in handlers))
    return handlers[0]


# =============================================================================
# Handlers
# =============================================================================


class ExceptionHandler(FailureHandler):
    """Raises EnsuranceError carrying the rendered failure message."""

    def __init__(self, settings: WriterSettings | None = None) -> None:
        super().__init__()
        self._settings = settings

    def _handle(self, constraint: Constraint, message: str | None, args: tuple[Any, ...]) -> None:
        raise EnsuranceError(render_failure(constraint, message, args, self._settings))


class LoggingHandler(FailureHandler):
    """Logs the rendered failure message and the caller's stack."""

    def __init__(
        self,
        log: logging.Logger | None = None,
        severity: LogSeverity = LogSeverity.ERROR,
        settings: WriterSettings | None = None,
    ) -> None:
        super().__init__()
        self._log = log or logging.getLogger("ensurance")
        self.severity = severity
        self._settings = settings

    def _handle(self, constraint: Constraint, message: str | None, args: tuple[Any, ...]) -> None:
        rendered = render_failure(constraint, message, args, self._settings)
        stack = StackTraceWriter().format()
        self._log.log(_SEVERITY_LEVELS[self.severity], "%s%s", rendered, stack)


class DebuggerHandler(FailureHandler):
    """Breaks into the debugger when one is attached.

    A debugger counts as attached when a trace function is installed.
    Both the check and the break are injectable.
    """

    def __init__(
        self,
        is_attached: Callable[[], bool] | None = None,
        break_into: Callable[[], None] | None = None,
    ) -> None:
        super().__init__()
        self._is_attached = is_attached or (lambda: sys.gettrace() is not None)
        self._break_into = break_into or breakpoint

    def _handle(self, constraint: Constraint, message: str | None, args: tuple[Any, ...]) -> None:
        if self._is_attached():
            self._break_into()


class StackTraceWriter(FailureHandler):
    """Formats the caller's stack, skipping frames inside this library.

    As a handler it writes the trace to a text stream (stderr by default).
    """

    def __init__(self, stream: Any = None) -> None:
        super().__init__()
        self._stream = stream

    def format(self) -> str:
        frames = [
            frame
            for frame in traceback.extract_stack()
            if not _is_library_frame(frame.filename)
        ]
        lines = [f"at\t{frame.name} ({frame.filename}:{frame.lineno})\n" for frame in reversed(frames)]
        return "".join(lines)

    def _handle(self, constraint: Constraint, message: str | None, args: tuple[Any, ...]) -> None:
        stream = self._stream if self._stream is not None else sys.stderr
        stream.write(self.format())


def _is_library_frame(filename: str) -> bool:
    try:
        return Path(filename).resolve().parent == _PACKAGE_DIR
    except OSError:
        return False
