"""File comparisons - Ensure two files or binary streams hold the same bytes.

Paths are opened in binary mode for the duration of the check; streams are
compared as given and are not closed.

Usage:
    FileEnsure().are_equal("expected.bin", output_path)
    FileEnsure().are_not_equal(io.BytesIO(b"abc"), response_stream)
"""

from __future__ import annotations

import os
from contextlib import ExitStack
from typing import Any, BinaryIO

from ensurance.constraints import ConstraintUsageError, EqualConstraint, NotConstraint
from ensurance.ensure import Ensure
from ensurance.values import is_stream


class FileEnsure:
    """Byte-for-byte comparison of files and binary streams."""

    def __init__(self, ensure: Ensure | None = None) -> None:
        self._ensure = ensure or Ensure()

    def are_equal(self, expected: Any, actual: Any, message: str | None = None, *args: Any) -> None:
        with ExitStack() as stack:
            stream_e = _open(expected, stack)
            stream_a = _open(actual, stack)
            self._ensure.that(stream_a, EqualConstraint(stream_e), message, *args)

    def are_not_equal(self, expected: Any, actual: Any, message: str | None = None, *args: Any) -> None:
        with ExitStack() as stack:
            stream_e = _open(expected, stack)
            stream_a = _open(actual, stack)
            self._ensure.that(stream_a, NotConstraint(EqualConstraint(stream_e)), message, *args)


def _open(source: Any, stack: ExitStack) -> BinaryIO:
    if isinstance(source, (str, os.PathLike)):
        return stack.enter_context(open(source, "rb"))
    if is_stream(source):
        return source
    raise ConstraintUsageError(
        f"Expected a path or a binary stream, got {type(source).__name__}"
    )
