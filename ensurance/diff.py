"""Equality diff engine - Locates and describes the first point of divergence.

compare() walks expected and actual values together (scalars, strings,
byte streams, arrays of any rank, jagged arrays and general ordered
collections) and returns a DiffResult. When the walk fails inside nested
collections, failure_points holds one flat index per nesting level, outer
level first.

display_differences() renders a DiffResult through a MessageWriter. Both
functions are pure with respect to their inputs, so one engine can serve
any number of constraints concurrently.

Example output for [1, 2, 3] vs [1, 5, 3] as int64 arrays:

      Expected and actual are both <int64[3]>
      Values differ at index [1]
      Expected: 2
      But was:  5
"""

from __future__ import annotations

from dataclasses import dataclass
from collections.abc import Mapping
from typing import Any, BinaryIO

from ensurance import msg_utils, numerics
from ensurance.modifiers import DEFAULT_MODIFIERS, Modifiers
from ensurance.values import (
    as_binary_stream,
    as_scalar,
    count_of,
    element_at,
    is_array,
    is_ordered_collection,
    is_stream,
    iter_elements,
    rank_of,
    stream_length,
)
from ensurance.writer import MessageWriter

BUFFER_SIZE = 4096

# Message formats
FMT_COLLECTION_TYPE_SAME = "Expected and actual are both {0}"
FMT_COLLECTION_TYPE_DIFFERENT = "Expected is {0}, actual is {1}"
FMT_WITH_ELEMENTS = " with {0} elements"
FMT_VALUES_DIFFER = "Values differ at index {0}"
FMT_VALUES_DIFFER_BOTH = "Values differ at expected index {0}, actual index {1}"
FMT_STRINGS_SAME_LENGTH = "String lengths are both {0}. Strings differ at index {1}."
FMT_STRINGS_DIFFERENT_LENGTH = "Expected string length {0} but was {1}. Strings differ at index {2}."
FMT_STREAMS_SAME_LENGTH = "Stream lengths are both {0}. Streams differ at offset {1}."
FMT_STREAMS_DIFFERENT_LENGTH = "Expected Stream length {0} but was {1}."
PFX_EXTRA = "  Extra:    "
PFX_MISSING = "  Missing:  "


@dataclass(frozen=True)
class DiffResult:
    """Outcome of an equality walk.

    Attributes:
        equal: Whether expected and actual are equal.
        failure_points: Flat index of the first mismatch at each nesting
            level, outermost first. Empty when equal, and also when the
            values differ without a locatable element (e.g. array rank).
    """

    equal: bool
    failure_points: tuple[int, ...] = ()


NO_RESULT = DiffResult(equal=False)


# =============================================================================
# Comparison
# =============================================================================


def compare(
    expected: Any,
    actual: Any,
    modifiers: Modifiers | None = None,
    buffer_size: int = BUFFER_SIZE,
) -> DiffResult:
    """Compare expected with actual and locate the first difference.

    Args:
        expected: Expected value.
        actual: Actual value.
        modifiers: Case, tolerance, as-collection and comparer settings.
        buffer_size: Block size used when comparing byte streams.

    Returns:
        DiffResult with equality and failure points.
    """
    walker = _EqualityWalker(modifiers or DEFAULT_MODIFIERS, buffer_size)
    equal = walker.objects_equal(expected, actual)
    return DiffResult(equal=equal, failure_points=tuple(walker.failure_points))


class _EqualityWalker:
    """Single-use recursive equality test collecting failure points."""

    def __init__(self, modifiers: Modifiers, buffer_size: int) -> None:
        self._modifiers = modifiers
        self._buffer_size = buffer_size
        self.failure_points: list[int] = []

    def objects_equal(self, expected: Any, actual: Any) -> bool:
        if expected is None and actual is None:
            return True
        if expected is None or actual is None:
            return False
        expected, actual = as_scalar(expected), as_scalar(actual)

        if is_array(expected) and is_array(actual) and not self._modifiers.as_collection:
            return self._arrays_equal(expected, actual)

        if is_ordered_collection(expected) and is_ordered_collection(actual):
            return self._collections_equal(expected, actual)

        if is_stream(expected) and is_stream(actual):
            return self._streams_equal(expected, actual)

        if self._modifiers.comparer is not None:
            return self._modifiers.comparer(expected, actual) == 0

        if numerics.is_numeric(expected) and numerics.is_numeric(actual):
            return numerics.are_equal(expected, actual, self._modifiers.tolerance)

        if isinstance(expected, str) and isinstance(actual, str):
            if self._modifiers.ignore_case:
                return expected.lower() == actual.lower()
            return expected == actual

        if isinstance(expected, Mapping) and isinstance(actual, Mapping):
            return self._mappings_equal(expected, actual)

        # Elementwise == on a lone array has no single truth value
        if is_array(expected) or is_array(actual):
            return False

        return bool(expected == actual)

    def _arrays_equal(self, expected: Any, actual: Any) -> bool:
        # Ranks and every dimension past the first must agree; a first
        # dimension mismatch surfaces as a count mismatch in the walk.
        if expected.ndim != actual.ndim:
            return False
        if expected.shape[1:] != actual.shape[1:]:
            return False
        return self._collections_equal(expected, actual)

    def _collections_equal(self, expected: Any, actual: Any) -> bool:
        count = 0
        for e, a in zip(iter_elements(expected), iter_elements(actual)):
            if not self.objects_equal(e, a):
                break
            count += 1

        if count == count_of(expected) and count == count_of(actual):
            return True

        self.failure_points.insert(0, count)
        return False

    def _mappings_equal(self, expected: Mapping, actual: Mapping) -> bool:
        if expected.keys() != actual.keys():
            return False
        # Values have no flat index, so failure points found inside them are dropped
        return all(
            _EqualityWalker(self._modifiers, self._buffer_size).objects_equal(expected[key], actual[key])
            for key in expected
        )

    def _streams_equal(self, expected: Any, actual: Any) -> bool:
        length = stream_length(expected)
        if length != stream_length(actual):
            return False

        stream_e = as_binary_stream(expected)
        stream_a = as_binary_stream(actual)
        position_e = stream_e.tell()
        position_a = stream_a.tell()
        try:
            stream_e.seek(0)
            stream_a.seek(0)
            return self._blocks_equal(stream_e, stream_a, length)
        finally:
            stream_e.seek(position_e)
            stream_a.seek(position_a)

    def _blocks_equal(self, stream_e: BinaryIO, stream_a: BinaryIO, length: int) -> bool:
        offset = 0
        while offset < length:
            block_e = _read_block(stream_e, self._buffer_size)
            block_a = _read_block(stream_a, self._buffer_size)
            if block_e != block_a:
                self.failure_points.insert(0, offset + _first_difference(block_e, block_a))
                return False
            if not block_e:
                break
            offset += len(block_e)
        return True


def _read_block(stream: BinaryIO, size: int) -> bytes:
    """Read up to size bytes, retrying short reads until EOF."""
    chunks = []
    remaining = size
    while remaining > 0:
        chunk = stream.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def _first_difference(a: bytes, b: bytes) -> int:
    for i, (x, y) in enumerate(zip(a, b)):
        if x != y:
            return i
    return min(len(a), len(b))


# =============================================================================
# Rendering
# =============================================================================


def display_differences(
    writer: MessageWriter,
    expected: Any,
    actual: Any,
    result: DiffResult | None = None,
    modifiers: Modifiers | None = None,
) -> None:
    """Render the differences between expected and actual.

    Args:
        writer: Destination writer.
        expected: Expected value.
        actual: Actual value.
        result: Result of compare() for the same values. Without one the
            output has no failure-point lines.
        modifiers: Modifiers used for the comparison.
    """
    renderer = _DiffRenderer(writer, result or NO_RESULT, modifiers or DEFAULT_MODIFIERS)
    renderer.display(expected, actual, 0)


class _DiffRenderer:
    def __init__(self, writer: MessageWriter, result: DiffResult, modifiers: Modifiers) -> None:
        self._writer = writer
        self._failure_points = result.failure_points
        self._modifiers = modifiers

    def display(self, expected: Any, actual: Any, depth: int) -> None:
        if isinstance(expected, str) and isinstance(actual, str):
            self._display_string_differences(expected, actual)
        elif is_ordered_collection(expected) and is_ordered_collection(actual):
            self._display_collection_differences(expected, actual, depth)
        elif is_stream(expected) and is_stream(actual):
            self._display_stream_differences(expected, actual, depth)
        else:
            self._writer.display_value_differences(expected, actual, self._modifiers.tolerance)

    def _failure_point(self, depth: int) -> int:
        if len(self._failure_points) > depth:
            return self._failure_points[depth]
        return -1

    def _display_string_differences(self, expected: str, actual: str) -> None:
        ignore_case = self._modifiers.ignore_case
        mismatch = msg_utils.find_mismatch_position(expected, actual, 0, ignore_case)

        if len(expected) == len(actual):
            self._writer.write_message_line(FMT_STRINGS_SAME_LENGTH, len(expected), mismatch)
        else:
            self._writer.write_message_line(
                FMT_STRINGS_DIFFERENT_LENGTH, len(expected), len(actual), mismatch
            )

        self._writer.display_string_differences(expected, actual, mismatch, ignore_case)

    def _display_stream_differences(self, expected: Any, actual: Any, depth: int) -> None:
        length_e = stream_length(expected)
        length_a = stream_length(actual)

        if length_e != length_a:
            self._writer.write_message_line(FMT_STREAMS_DIFFERENT_LENGTH, length_e, length_a)
            return

        offset = self._failure_point(depth)
        if offset < 0:
            self._writer.display_value_differences(expected, actual)
            return
        self._writer.write_message_line(FMT_STREAMS_SAME_LENGTH, length_e, offset)

    def _display_collection_differences(self, expected: Any, actual: Any, depth: int) -> None:
        failure_point = self._failure_point(depth)

        self._display_types_and_sizes(expected, actual, depth)

        if failure_point < 0:
            return

        self._display_failure_point(expected, actual, failure_point, depth)

        count_e = count_of(expected)
        count_a = count_of(actual)
        preview = self._writer.diff_preview

        if failure_point < count_e and failure_point < count_a:
            self.display(
                element_at(expected, failure_point),
                element_at(actual, failure_point),
                depth + 1,
            )
        elif count_e < count_a:
            self._writer.write(PFX_EXTRA)
            self._writer.write_collection_elements(actual, failure_point, preview)
        else:
            self._writer.write(PFX_MISSING)
            self._writer.write_collection_elements(expected, failure_point, preview)

    def _display_types_and_sizes(self, expected: Any, actual: Any, indent: int) -> None:
        """One line naming both sides' type and size, collapsed when identical."""
        s_expected = _describe_collection(expected)
        s_actual = _describe_collection(actual)

        if s_expected == s_actual:
            self._writer.write_message_line(FMT_COLLECTION_TYPE_SAME, s_expected, level=indent)
        else:
            self._writer.write_message_line(
                FMT_COLLECTION_TYPE_DIFFERENT, s_expected, s_actual, level=indent
            )

    def _display_failure_point(self, expected: Any, actual: Any, failure_point: int, indent: int) -> None:
        """One line with the mismatch position; both positions if the shapes differ."""
        use_one_index = rank_of(expected) == rank_of(actual)

        if use_one_index and is_array(expected) and is_array(actual):
            use_one_index = expected.shape[1:] == actual.shape[1:]

        expected_indices = msg_utils.get_array_indices_from_collection_index(expected, failure_point)
        if use_one_index:
            self._writer.write_message_line(
                FMT_VALUES_DIFFER,
                msg_utils.get_array_indices_as_string(expected_indices),
                level=indent,
            )
        else:
            actual_indices = msg_utils.get_array_indices_from_collection_index(actual, failure_point)
            self._writer.write_message_line(
                FMT_VALUES_DIFFER_BOTH,
                msg_utils.get_array_indices_as_string(expected_indices),
                msg_utils.get_array_indices_as_string(actual_indices),
                level=indent,
            )


def _describe_collection(collection: Any) -> str:
    description = msg_utils.get_type_representation(collection)
    if not is_array(collection):
        description += FMT_WITH_ELEMENTS.format(count_of(collection))
    return description
