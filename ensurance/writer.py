"""Message writers - Render constraint descriptions and failure diagnostics.

A MessageWriter accumulates text; constraints call its low-level methods
(write_predicate, write_expected_value, ...) to describe themselves, and
the high-level display_* methods lay out the familiar two-line message:

      Expected: 5
      But was:  4
"""

from __future__ import annotations

import io
import math
from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, TextIO

import numpy as np

from ensurance import msg_utils
from ensurance.models import WriterSettings
from ensurance.values import as_scalar, count_of, is_array, is_collection, iter_elements

if TYPE_CHECKING:
    from ensurance.constraints import Constraint


# =============================================================================
# Abstract Writer
# =============================================================================


class MessageWriter(ABC):
    """Base class for writers that render constraint failures as text."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else io.StringIO()

    @property
    @abstractmethod
    def max_line_length(self) -> int:
        """Maximum width of a rendered line."""

    @property
    def diff_preview(self) -> int:
        """Elements shown after 'Missing:' or 'Extra:'."""
        return 3

    def write(self, text: str) -> None:
        self._stream.write(text)

    def write_line(self, text: str = "") -> None:
        self._stream.write(text + "\n")

    @abstractmethod
    def write_message_line(self, message: str | None, *args: Any, level: int = 0) -> None:
        """Write an indented message line, formatting args into it."""

    @abstractmethod
    def display_differences(self, constraint: Constraint) -> None:
        """Write the expected line (constraint description) and the actual line."""

    @abstractmethod
    def display_value_differences(self, expected: Any, actual: Any, tolerance: Any = None) -> None:
        """Write expected and actual values, with an optional tolerance."""

    @abstractmethod
    def display_string_differences(
        self, expected: str, actual: str, mismatch: int, ignore_case: bool
    ) -> None:
        """Write two clipped strings and a caret under the first difference."""

    @abstractmethod
    def write_connector(self, connector: str) -> None: ...

    @abstractmethod
    def write_predicate(self, predicate: str) -> None: ...

    @abstractmethod
    def write_modifier(self, modifier: str) -> None: ...

    @abstractmethod
    def write_expected_value(self, expected: Any) -> None: ...

    @abstractmethod
    def write_actual_value(self, actual: Any) -> None: ...

    @abstractmethod
    def write_value(self, value: Any) -> None: ...

    @abstractmethod
    def write_collection_elements(self, collection: Any, start: int, max_count: int) -> None: ...

    def getvalue(self) -> str:
        """Text written so far (only for writers backed by a StringIO)."""
        if isinstance(self._stream, io.StringIO):
            return self._stream.getvalue()
        return ""

    def __str__(self) -> str:
        return self.getvalue()


# =============================================================================
# Text Writer
# =============================================================================


class TextMessageWriter(MessageWriter):
    """Writer producing the standard plain-text failure layout.

    Usage:
        writer = TextMessageWriter()
        constraint.write_message_to(writer)
        print(str(writer))
    """

    PFX_EXPECTED = "  Expected: "
    PFX_ACTUAL = "  But was:  "
    PREFIX_LENGTH = len(PFX_EXPECTED)

    FMT_CONNECTOR = " {} "
    FMT_PREDICATE = "{} "
    FMT_MODIFIER = ", {}"
    FMT_DEFAULT = "<{}>"
    FMT_STRING = '"{}"'
    FMT_NULL = "null"
    FMT_EMPTY_COLLECTION = "<empty>"

    def __init__(
        self,
        stream: TextIO | None = None,
        settings: WriterSettings | None = None,
    ) -> None:
        super().__init__(stream)
        self._settings = settings or WriterSettings()

    @property
    def max_line_length(self) -> int:
        return self._settings.max_line_length

    @property
    def diff_preview(self) -> int:
        return self._settings.diff_preview

    @property
    def settings(self) -> WriterSettings:
        return self._settings

    # ---- High level --------------------------------------------------------

    def write_message_line(self, message: str | None, *args: Any, level: int = 0) -> None:
        if message is None:
            return
        self.write("  " * (level + 1))
        if args:
            message = message.format(*args)
        self.write_line(message)

    def display_differences(self, constraint: Constraint) -> None:
        self.write(self.PFX_EXPECTED)
        constraint.write_description_to(self)
        self.write_line()
        self.write(self.PFX_ACTUAL)
        constraint.write_actual_value_to(self)
        self.write_line()

    def display_value_differences(self, expected: Any, actual: Any, tolerance: Any = None) -> None:
        self.write(self.PFX_EXPECTED)
        self.write_expected_value(expected)
        if tolerance is not None:
            self.write_connector("+/-")
            self.write_expected_value(tolerance)
        self.write_line()
        self._write_actual_line(actual)

    def display_string_differences(
        self, expected: str, actual: str, mismatch: int, ignore_case: bool
    ) -> None:
        # Room left on the line after the prefix and the two quotes
        max_string_length = self.max_line_length - self.PREFIX_LENGTH - 2

        expected = msg_utils.convert_whitespace(
            msg_utils.clip_string(expected, max_string_length, mismatch)
        )
        actual = msg_utils.convert_whitespace(
            msg_utils.clip_string(actual, max_string_length, mismatch)
        )

        # Clipping and escaping move the mismatch
        mismatch = msg_utils.find_mismatch_position(expected, actual, 0, ignore_case)

        self.write(self.PFX_EXPECTED)
        self.write_expected_value(expected)
        if ignore_case:
            self.write_modifier("ignoring case")
        self.write_line()
        self._write_actual_line(actual)
        if mismatch >= 0:
            self._write_caret_line(mismatch)

    # ---- Low level ---------------------------------------------------------

    def write_connector(self, connector: str) -> None:
        self.write(self.FMT_CONNECTOR.format(connector))

    def write_predicate(self, predicate: str) -> None:
        self.write(self.FMT_PREDICATE.format(predicate))

    def write_modifier(self, modifier: str) -> None:
        self.write(self.FMT_MODIFIER.format(modifier))

    def write_expected_value(self, expected: Any) -> None:
        self.write_value(expected)

    def write_actual_value(self, actual: Any) -> None:
        self.write_value(actual)

    def write_value(self, value: Any) -> None:
        value = as_scalar(value)
        if value is None:
            self.write(self.FMT_NULL)
        elif is_array(value):
            self._write_array(value)
        elif is_collection(value):
            self.write_collection_elements(value, 0, self._settings.collection_preview)
        elif isinstance(value, str):
            self.write(self.FMT_STRING.format(value))
        elif isinstance(value, np.float32):
            self._write_float(float(value), str(value), "f")
        elif isinstance(value, (float, np.floating)):
            self._write_float(float(value), repr(float(value)), "d")
        elif isinstance(value, Decimal):
            self.write(_format_decimal(value) + "m")
        elif isinstance(value, datetime):
            self.write(value.strftime("%Y-%m-%d %H:%M:%S.") + f"{value.microsecond // 1000:03d}")
        elif isinstance(value, type):
            self.write(self.FMT_DEFAULT.format(msg_utils.get_type_name(value)))
        elif isinstance(value, (bool, int, complex, np.generic)):
            self.write(str(value))
        elif isinstance(value, (bytes, bytearray)):
            self.write(repr(bytes(value)))
        else:
            self.write(self.FMT_DEFAULT.format(value))

    def write_collection_elements(self, collection: Any, start: int, max_count: int) -> None:
        total = count_of(collection)
        if total == 0:
            self.write(self.FMT_EMPTY_COLLECTION)
            return

        is_mapping = isinstance(collection, Mapping)
        count = 0
        index = 0
        self.write("< ")

        for element in iter_elements(collection):
            index += 1
            if index <= start:
                continue
            if count > 0:
                self.write(", ")
            if is_mapping:
                key, value = element
                self.write_value(key)
                self.write(": ")
                self.write_value(value)
            else:
                self.write_value(element)
            count += 1
            if count >= max_count:
                break

        if index < total:
            self.write(msg_utils.ELLIPSIS)

        self.write(" >")

    # ---- Helpers -----------------------------------------------------------

    def _write_array(self, array: np.ndarray) -> None:
        """Write an array as nested '< ... >' segments, one level per rank."""
        if array.size == 0:
            self.write(self.FMT_EMPTY_COLLECTION)
            return

        rank = array.ndim
        # products[r]: number of elements in one segment at rank r
        products = [0] * rank
        product = 1
        for r in range(rank - 1, -1, -1):
            product *= array.shape[r]
            products[r] = product

        count = 0
        for element in array.flat:
            if count > 0:
                self.write(", ")

            start_segment = False
            for r in range(rank):
                start_segment = start_segment or count % products[r] == 0
                if start_segment:
                    self.write("< ")

            self.write_value(element)
            count += 1

            next_segment = False
            for r in range(rank):
                next_segment = next_segment or count % products[r] == 0
                if next_segment:
                    self.write(" >")

    def _write_float(self, value: float, text: str, suffix: str) -> None:
        """Write the shortest round-trip text of a float with its kind suffix."""
        if math.isnan(value) or math.isinf(value):
            self.write(str(value))
            return
        if text.find(".") > 0:
            self.write(text + suffix)
        else:
            self.write(text + ".0" + suffix)

    def _write_actual_line(self, actual: Any) -> None:
        self.write(self.PFX_ACTUAL)
        self.write_actual_value(actual)
        self.write_line()

    def _write_caret_line(self, mismatch: int) -> None:
        # Minus 2 for the leading blanks, plus 1 for the opening quote
        self.write_line("  " + "-" * (self.PREFIX_LENGTH + mismatch - 2 + 1) + "^")


def _format_decimal(value: Decimal) -> str:
    """Plain notation without trailing zeros: Decimal('1.50') -> '1.5'."""
    if not value.is_finite():
        return str(value)
    normalized = value.normalize()
    if normalized == 0:
        return "0"
    return format(normalized, "f")
