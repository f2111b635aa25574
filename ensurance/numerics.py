"""Numerics - Type-aware equality and ordering across numeric kinds.

Operands are classified once into a NumericKind, both are promoted to the
kind chosen by promoted_kind(), and the comparison runs on the promoted
representation. Python integers are unbounded so every integral promotion
converts with int() and never loses precision; the integral kinds still
matter for how a tolerance is converted.
"""

from __future__ import annotations

import math
from decimal import Decimal
from enum import Enum
from typing import Any

import numpy as np

from ensurance.values import as_scalar


class NumericKind(Enum):
    """Classification of a numeric operand, in promotion order."""

    INT32 = "int32"
    UINT32 = "uint32"
    INT64 = "int64"
    UINT64 = "uint64"
    DECIMAL = "decimal"
    FLOATING = "floating"


_INT32_RANGE = (-(2**31), 2**31 - 1)
_INT64_RANGE = (-(2**63), 2**63 - 1)
_UINT64_MAX = 2**64 - 1

_INTEGRAL_KINDS = frozenset(
    {NumericKind.INT32, NumericKind.UINT32, NumericKind.INT64, NumericKind.UINT64}
)


# =============================================================================
# Classification
# =============================================================================


def classify(value: Any) -> NumericKind | None:
    """Return the NumericKind of value, or None if it is not numeric.

    Booleans (Python and numpy) are never numeric.
    """
    value = as_scalar(value)
    if isinstance(value, (bool, np.bool_)):
        return None
    if isinstance(value, (float, np.floating)):
        return NumericKind.FLOATING
    if isinstance(value, Decimal):
        return NumericKind.DECIMAL
    if isinstance(value, np.integer):
        return _classify_numpy_integer(value.dtype)
    if isinstance(value, int):
        if _INT32_RANGE[0] <= value <= _INT32_RANGE[1]:
            return NumericKind.INT32
        if _INT64_RANGE[0] <= value <= _INT64_RANGE[1]:
            return NumericKind.INT64
        if 0 <= value <= _UINT64_MAX:
            return NumericKind.UINT64
        # Beyond 64 bits; int() promotion stays exact
        return NumericKind.INT64
    return None


def _classify_numpy_integer(dtype: np.dtype) -> NumericKind:
    signed = dtype.kind == "i"
    if dtype.itemsize == 8:
        return NumericKind.INT64 if signed else NumericKind.UINT64
    if dtype.itemsize == 4 and not signed:
        return NumericKind.UINT32
    # 8/16-bit values of either sign widen to int32
    return NumericKind.INT32


def is_numeric(value: Any) -> bool:
    return classify(value) is not None


def is_floating(value: Any) -> bool:
    return classify(value) is NumericKind.FLOATING


def is_fixed(value: Any) -> bool:
    kind = classify(value)
    return kind is not None and kind is not NumericKind.FLOATING


def promoted_kind(a: NumericKind, b: NumericKind) -> NumericKind:
    """Return the common kind two operands are promoted to before comparing.

    Floating wins over everything, then decimal, then the widest integral
    kind either side needs: uint64, int64, uint32, int32.
    """
    kinds = {a, b}
    for kind in (
        NumericKind.FLOATING,
        NumericKind.DECIMAL,
        NumericKind.UINT64,
        NumericKind.INT64,
        NumericKind.UINT32,
    ):
        if kind in kinds:
            return kind
    return NumericKind.INT32


def convert(value: Any, kind: NumericKind) -> Any:
    """Convert a numeric value into the representation of kind."""
    if kind is NumericKind.FLOATING:
        return float(value)
    if kind is NumericKind.DECIMAL:
        if isinstance(value, (float, np.floating)):
            return Decimal(str(float(value)))
        if isinstance(value, Decimal):
            return value
        return Decimal(int(value))
    if isinstance(value, (float, np.floating, Decimal)):
        # Banker's rounding, as a tolerance of 0.5 on integers means 0
        return int(round(value))
    return int(value)


# =============================================================================
# Equality and Ordering
# =============================================================================


def are_equal(expected: Any, actual: Any, tolerance: Any = None) -> bool:
    """Test two numeric values for equality, optionally within a tolerance.

    Args:
        expected: Expected numeric value.
        actual: Actual numeric value.
        tolerance: Optional maximum allowed difference. None or a
            non-positive value means exact equality.

    Returns:
        True if the promoted values are equal (within tolerance).

    Raises:
        TypeError: If either operand is not numeric.
    """
    expected, actual = as_scalar(expected), as_scalar(actual)
    kind = _promoted_kind_of(expected, actual)

    if kind is NumericKind.FLOATING:
        return _floats_equal(float(expected), float(actual), tolerance)

    e = convert(expected, kind)
    a = convert(actual, kind)
    if kind is NumericKind.DECIMAL and (e.is_nan() or a.is_nan()):
        return e.is_nan() and a.is_nan()
    if _has_tolerance(tolerance):
        return abs(e - a) <= convert(tolerance, kind)
    return e == a


def compare(expected: Any, actual: Any) -> int:
    """Three-way compare of expected against actual.

    Returns:
        Negative if expected < actual, zero if equal, positive if
        expected > actual.

    Raises:
        ValueError: If either operand is None.
        TypeError: If non-numeric operands do not support ordering.
    """
    if expected is None or actual is None:
        raise ValueError("Cannot compare using a null reference")
    expected, actual = as_scalar(expected), as_scalar(actual)

    if not (is_numeric(expected) and is_numeric(actual)):
        return _native_compare(expected, actual)

    kind = _promoted_kind_of(expected, actual)
    if kind is NumericKind.FLOATING:
        return _compare_floats(float(expected), float(actual))

    e = convert(expected, kind)
    a = convert(actual, kind)
    if kind is NumericKind.DECIMAL and (e.is_nan() or a.is_nan()):
        return _compare_nans(e.is_nan(), a.is_nan())
    return _native_compare(e, a)


def _promoted_kind_of(expected: Any, actual: Any) -> NumericKind:
    kind_e = classify(expected)
    kind_a = classify(actual)
    if kind_e is None or kind_a is None:
        raise TypeError(
            f"Both operands must be numeric, got {type(expected).__name__} "
            f"and {type(actual).__name__}"
        )
    return promoted_kind(kind_e, kind_a)


def _has_tolerance(tolerance: Any) -> bool:
    if tolerance is None:
        return False
    try:
        return tolerance > 0
    except TypeError:
        return False


def _floats_equal(expected: float, actual: float, tolerance: Any) -> bool:
    if math.isnan(expected) and math.isnan(actual):
        return True
    # Tolerance is ignored when subtraction would yield NaN
    if math.isinf(expected) or math.isnan(expected) or math.isnan(actual):
        return expected == actual
    if _has_tolerance(tolerance):
        return abs(expected - actual) <= float(tolerance)
    return expected == actual


def _compare_floats(expected: float, actual: float) -> int:
    e_nan = math.isnan(expected)
    a_nan = math.isnan(actual)
    if e_nan or a_nan:
        return _compare_nans(e_nan, a_nan)
    return _native_compare(expected, actual)


def _compare_nans(e_nan: bool, a_nan: bool) -> int:
    # NaN sorts below every number and equals itself
    if e_nan and a_nan:
        return 0
    return -1 if e_nan else 1


def _native_compare(expected: Any, actual: Any) -> int:
    if expected < actual:
        return -1
    if expected > actual:
        return 1
    return 0
