"""Constraints - Composable predicates that can describe their own failure.

A Constraint tests an actual value with matches(), recording the value for
diagnostics. On failure, write_message_to() renders the familiar
"Expected: / But was:" message through a MessageWriter.

Modifiers (ignore_case, as_collection, within, using) never mutate a
constraint: each returns a modified copy, so a constraint can be shared
and refined freely:

    exact = EqualConstraint("Hello")
    relaxed = exact.ignore_case()     # exact is unchanged

Constraints compose with &, | and ~:

    between = GreaterThanConstraint(40) & LessThanConstraint(50)
"""

from __future__ import annotations

import copy
import re
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any

from ensurance import diff, msg_utils, numerics
from ensurance.accessors import NOT_FOUND, PropertyAccessor, default_accessor
from ensurance.modifiers import DEFAULT_MODIFIERS, Comparer, Modifiers
from ensurance.values import count_of, is_collection, iter_elements
from ensurance.writer import MessageWriter


# =============================================================================
# Exceptions
# =============================================================================


class ConstraintUsageError(ValueError):
    """A constraint was used incorrectly (a defect in the test, not the code under test)."""


# =============================================================================
# Sentinel for Unset Actual Values
# =============================================================================


class _Unset:
    """Sentinel for 'matches() has not been called yet' (distinct from None)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "<UNSET>"


UNSET = _Unset()

IGNORING_CASE = "ignoring case"


def _require_writer(writer: MessageWriter | None) -> MessageWriter:
    if writer is None:
        raise ConstraintUsageError("A message writer is required")
    return writer


# =============================================================================
# Constraint Base
# =============================================================================


class Constraint(ABC):
    """Base class for all constraints.

    Attributes:
        actual: Value passed to the most recent matches() call, or UNSET.
        modifiers: Comparison modifiers for this constraint.
    """

    def __init__(self) -> None:
        self.actual: Any = UNSET
        self.modifiers: Modifiers = DEFAULT_MODIFIERS

    # ---- Modifiers ---------------------------------------------------------

    def ignore_case(self) -> Constraint:
        """Copy of this constraint comparing strings case-insensitively."""
        return self.with_modifiers(replace(self.modifiers, ignore_case=True))

    def as_collection(self) -> Constraint:
        """Copy of this constraint comparing arrays as flat sequences."""
        return self.with_modifiers(replace(self.modifiers, as_collection=True))

    def within(self, tolerance: Any) -> Constraint:
        """Copy of this constraint accepting numeric differences up to tolerance."""
        return self.with_modifiers(replace(self.modifiers, tolerance=tolerance))

    def using(self, comparer: Comparer) -> Constraint:
        """Copy of this constraint using a three-way comparer for values."""
        return self.with_modifiers(replace(self.modifiers, comparer=comparer))

    def with_modifiers(self, modifiers: Modifiers) -> Constraint:
        clone = self._clone()
        clone.modifiers = modifiers
        return clone

    def _clone(self) -> Constraint:
        return copy.copy(self)

    @property
    def case_insensitive(self) -> bool:
        return self.modifiers.ignore_case

    @property
    def tolerance(self) -> Any:
        return self.modifiers.tolerance

    # ---- Matching and description -----------------------------------------

    @abstractmethod
    def matches(self, actual: Any) -> bool:
        """Test actual against this constraint, recording it in self.actual."""

    def write_description_to(self, writer: MessageWriter) -> None:
        """Write the expected side of the failure message."""
        self._write_description(_require_writer(writer))

    def write_message_to(self, writer: MessageWriter) -> None:
        """Write the complete failure message."""
        self._write_message(_require_writer(writer))

    def write_actual_value_to(self, writer: MessageWriter) -> None:
        """Write the actual side of the failure message."""
        self._write_actual_value(_require_writer(writer))

    @abstractmethod
    def _write_description(self, writer: MessageWriter) -> None: ...

    def _write_message(self, writer: MessageWriter) -> None:
        writer.display_differences(self)

    def _write_actual_value(self, writer: MessageWriter) -> None:
        writer.write_actual_value(self.actual)

    # ---- Composition -------------------------------------------------------

    def __and__(self, other: Constraint) -> Constraint:
        return AndConstraint(self, other)

    def __or__(self, other: Constraint) -> Constraint:
        return OrConstraint(self, other)

    def __invert__(self) -> Constraint:
        return NotConstraint(self)


# =============================================================================
# Binary Operations
# =============================================================================


class BinaryOperation(Constraint):
    """Base for constraints combining two others."""

    CONNECTOR = ""

    def __init__(self, left: Constraint, right: Constraint) -> None:
        super().__init__()
        self.left = left
        self.right = right

    def _clone(self) -> Constraint:
        clone = super()._clone()
        clone.left = self.left._clone()
        clone.right = self.right._clone()
        return clone

    def _write_description(self, writer: MessageWriter) -> None:
        self.left.write_description_to(writer)
        writer.write_connector(self.CONNECTOR)
        self.right.write_description_to(writer)


class AndConstraint(BinaryOperation):
    """Succeeds if both sides succeed; the right side is skipped when the left fails."""

    CONNECTOR = "and"

    def matches(self, actual: Any) -> bool:
        self.actual = actual
        return self.left.matches(actual) and self.right.matches(actual)


class OrConstraint(BinaryOperation):
    """Succeeds if either side succeeds; the right side is skipped when the left succeeds."""

    CONNECTOR = "or"

    def matches(self, actual: Any) -> bool:
        self.actual = actual
        return self.left.matches(actual) or self.right.matches(actual)


# =============================================================================
# Prefix Constraints
# =============================================================================


class PrefixConstraint(Constraint):
    """Base for constraints wrapping a single base constraint.

    Modifiers applied to the wrapper are passed down to the base before
    every match, so Has.all.starts_with("ba").ignore_case() ignores case
    for every item.
    """

    def __init__(self, base_constraint: Constraint | None) -> None:
        super().__init__()
        self.base_constraint = base_constraint

    def _clone(self) -> Constraint:
        clone = super()._clone()
        if self.base_constraint is not None:
            clone.base_constraint = self.base_constraint._clone()
        return clone

    def _pass_modifiers_to_base(self) -> None:
        if self.base_constraint is None or self.modifiers.is_default:
            return
        base = self.base_constraint
        self.base_constraint = base.with_modifiers(self.modifiers.applied_to(base.modifiers))


class NotConstraint(PrefixConstraint):
    """Negates its base constraint. A None base means 'equal to None'."""

    def __init__(self, base_constraint: Constraint | None) -> None:
        super().__init__(base_constraint if base_constraint is not None else EqualConstraint(None))

    def matches(self, actual: Any) -> bool:
        self.actual = actual
        self._pass_modifiers_to_base()
        return not self.base_constraint.matches(actual)

    def _write_description(self, writer: MessageWriter) -> None:
        writer.write_predicate("not")
        self.base_constraint.write_description_to(writer)

    def _write_actual_value(self, writer: MessageWriter) -> None:
        self.base_constraint.write_actual_value_to(writer)


class _ItemsConstraint(PrefixConstraint):
    PREDICATE = ""

    def _items(self, actual: Any) -> Any:
        if not is_collection(actual):
            raise ConstraintUsageError("The actual value must be a collection")
        return iter_elements(actual)

    def _write_description(self, writer: MessageWriter) -> None:
        writer.write_predicate(self.PREDICATE)
        self.base_constraint.write_description_to(writer)


class AllItemsConstraint(_ItemsConstraint):
    """Succeeds if every item of a collection matches the base constraint."""

    PREDICATE = "all items"

    def matches(self, actual: Any) -> bool:
        self.actual = actual
        self._pass_modifiers_to_base()
        return all(self.base_constraint.matches(item) for item in self._items(actual))


class SomeItemsConstraint(_ItemsConstraint):
    """Succeeds if at least one item of a collection matches the base constraint."""

    PREDICATE = "some item"

    def matches(self, actual: Any) -> bool:
        self.actual = actual
        self._pass_modifiers_to_base()
        return any(self.base_constraint.matches(item) for item in self._items(actual))


class NoItemConstraint(_ItemsConstraint):
    """Succeeds if no item of a collection matches the base constraint."""

    PREDICATE = "no item"

    def matches(self, actual: Any) -> bool:
        self.actual = actual
        self._pass_modifiers_to_base()
        return not any(self.base_constraint.matches(item) for item in self._items(actual))


class PropertyConstraint(PrefixConstraint):
    """Tests a named property of the actual value.

    A missing property (or a None actual) fails without raising. Without a
    base constraint, the property merely has to exist.
    """

    FMT_PROPERTY = 'Property "{}"'

    def __init__(
        self,
        name: str,
        base_constraint: Constraint | None = None,
        accessor: PropertyAccessor | None = None,
    ) -> None:
        super().__init__(base_constraint)
        self.name = name
        self._accessor = accessor or default_accessor()
        self._property_value: Any = NOT_FOUND

    @property
    def property_exists(self) -> bool:
        return self._property_value is not NOT_FOUND

    def matches(self, actual: Any) -> bool:
        self.actual = actual
        self._property_value = NOT_FOUND

        if actual is None:
            return False

        self._property_value = self._accessor.try_get(actual, self.name)
        if self._property_value is NOT_FOUND:
            return False

        if self.base_constraint is None:
            return True

        self._pass_modifiers_to_base()
        return self.base_constraint.matches(self._property_value)

    def _write_description(self, writer: MessageWriter) -> None:
        if self.base_constraint is None:
            writer.write(self.FMT_PROPERTY.format(self.name))
            return
        writer.write_predicate(self.FMT_PROPERTY.format(self.name))
        self.base_constraint.write_description_to(writer)

    def _write_actual_value(self, writer: MessageWriter) -> None:
        if self.property_exists:
            writer.write_actual_value(self._property_value)
        elif self.actual is None or self.actual is UNSET:
            writer.write_actual_value(None)
        else:
            writer.write_actual_value(type(self.actual))


# =============================================================================
# Equality
# =============================================================================


class EqualConstraint(Constraint):
    """Tests for equality, with structural diagnostics on failure.

    Strings, arrays of any rank, jagged arrays, ordered collections and
    byte streams are compared structurally; the failure message points at
    the first difference. Numbers of different kinds compare by value.
    """

    BUFFER_SIZE = 4096

    def __init__(self, expected: Any) -> None:
        super().__init__()
        self.expected = expected
        self._result: diff.DiffResult | None = None

    @property
    def failure_points(self) -> list[int]:
        """Failure points of the most recent match, outermost first."""
        if self._result is None:
            return []
        return list(self._result.failure_points)

    def matches(self, actual: Any) -> bool:
        self.actual = actual
        self._result = diff.compare(self.expected, actual, self.modifiers, self.BUFFER_SIZE)
        return self._result.equal

    def _write_message(self, writer: MessageWriter) -> None:
        diff.display_differences(writer, self.expected, self.actual, self._result, self.modifiers)

    def _write_description(self, writer: MessageWriter) -> None:
        writer.write_expected_value(self.expected)

        if self.modifiers.tolerance is not None:
            writer.write_connector("+/-")
            writer.write_expected_value(self.modifiers.tolerance)

        if self.modifiers.ignore_case:
            writer.write_modifier(IGNORING_CASE)


class SameAsConstraint(Constraint):
    """Tests for identity (the same object, not an equal one)."""

    def __init__(self, expected: Any) -> None:
        super().__init__()
        self.expected = expected

    def matches(self, actual: Any) -> bool:
        self.actual = actual
        return actual is self.expected

    def _write_description(self, writer: MessageWriter) -> None:
        writer.write_predicate("same as")
        writer.write_expected_value(self.expected)


# =============================================================================
# Comparison
# =============================================================================


class ComparisonConstraint(Constraint):
    """Orders expected against actual and accepts a subset of {less, equal, greater}.

    The flags say which outcomes succeed, seen from the actual value: with
    greater_ok, an actual greater than expected succeeds. A comparer
    modifier replaces the numeric-aware ordering.
    """

    def __init__(
        self,
        expected: Any,
        less_ok: bool,
        equal_ok: bool,
        greater_ok: bool,
        predicate: str,
    ) -> None:
        super().__init__()
        self.expected = expected
        self.less_ok = less_ok
        self.equal_ok = equal_ok
        self.greater_ok = greater_ok
        self.predicate = predicate

    def matches(self, actual: Any) -> bool:
        self.actual = actual
        if self.modifiers.comparer is not None:
            icomp = self.modifiers.comparer(self.expected, actual)
        else:
            icomp = numerics.compare(self.expected, actual)
        return (
            (icomp < 0 and self.greater_ok)
            or (icomp == 0 and self.equal_ok)
            or (icomp > 0 and self.less_ok)
        )

    def _write_description(self, writer: MessageWriter) -> None:
        writer.write_predicate(self.predicate)
        writer.write_expected_value(self.expected)


class GreaterThanConstraint(ComparisonConstraint):
    def __init__(self, expected: Any) -> None:
        super().__init__(expected, False, False, True, "greater than")


class GreaterThanOrEqualConstraint(ComparisonConstraint):
    def __init__(self, expected: Any) -> None:
        super().__init__(expected, False, True, True, "greater than or equal to")


class LessThanConstraint(ComparisonConstraint):
    def __init__(self, expected: Any) -> None:
        super().__init__(expected, True, False, False, "less than")


class LessThanOrEqualConstraint(ComparisonConstraint):
    def __init__(self, expected: Any) -> None:
        super().__init__(expected, True, True, False, "less than or equal to")


class RangeConstraint(Constraint):
    """Tests that actual lies between two bounds of its own type.

    By default the low bound is inclusive and the high bound exclusive.
    An actual of a different type than the bounds does not match.
    """

    def __init__(
        self,
        low: Any,
        high: Any,
        include_low: bool = True,
        include_high: bool = False,
    ) -> None:
        super().__init__()
        if type(low) is not type(high):
            raise ConstraintUsageError(
                f"Range bounds must have the same type, got {type(low).__name__} "
                f"and {type(high).__name__}"
            )
        self.low = low
        self.high = high
        self.include_low = include_low
        self.include_high = include_high

    def matches(self, actual: Any) -> bool:
        self.actual = actual
        if actual is None or type(actual) is not type(self.low):
            return False

        low_compare = numerics.compare(self.low, actual)
        if low_compare > 0 or (not self.include_low and low_compare == 0):
            return False

        high_compare = numerics.compare(self.high, actual)
        return high_compare > 0 or (self.include_high and high_compare == 0)

    def _write_description(self, writer: MessageWriter) -> None:
        writer.write_predicate("between")
        writer.write_expected_value(self.low)
        writer.write_connector("and")
        writer.write_expected_value(self.high)


# =============================================================================
# Type Constraints
# =============================================================================


class TypeConstraint(Constraint):
    """Base for type tests; failures show the actual's type, not its value."""

    def __init__(self, expected_type: type) -> None:
        super().__init__()
        self.expected_type = expected_type

    def _write_actual_value(self, writer: MessageWriter) -> None:
        if self.actual is None or self.actual is UNSET:
            writer.write_actual_value(None)
        else:
            writer.write_actual_value(type(self.actual))


class ExactTypeConstraint(TypeConstraint):
    def matches(self, actual: Any) -> bool:
        self.actual = actual
        return actual is not None and type(actual) is self.expected_type

    def _write_description(self, writer: MessageWriter) -> None:
        writer.write_expected_value(self.expected_type)


class InstanceOfTypeConstraint(TypeConstraint):
    def matches(self, actual: Any) -> bool:
        self.actual = actual
        return actual is not None and isinstance(actual, self.expected_type)

    def _write_description(self, writer: MessageWriter) -> None:
        writer.write_predicate("instance of")
        writer.write_expected_value(self.expected_type)


class AssignableFromConstraint(TypeConstraint):
    """Succeeds if a value of expected_type could stand in for actual."""

    def matches(self, actual: Any) -> bool:
        self.actual = actual
        return actual is not None and issubclass(self.expected_type, type(actual))

    def _write_description(self, writer: MessageWriter) -> None:
        writer.write_predicate("Type assignable from")
        writer.write_expected_value(self.expected_type)


# =============================================================================
# String Constraints
# =============================================================================


class StringConstraint(Constraint):
    """Base for string tests. Non-string actual values never match."""

    PREDICATE = ""

    def __init__(self, expected: str) -> None:
        super().__init__()
        self.expected = expected

    def matches(self, actual: Any) -> bool:
        self.actual = actual
        if not isinstance(actual, str):
            return False
        if self.modifiers.ignore_case:
            return self._test(actual.lower(), self.expected.lower())
        return self._test(actual, self.expected)

    @abstractmethod
    def _test(self, actual: str, expected: str) -> bool: ...

    def _write_description(self, writer: MessageWriter) -> None:
        writer.write_predicate(self.PREDICATE)
        writer.write_expected_value(self._displayed_expected(writer))
        if self.modifiers.ignore_case:
            writer.write_modifier(IGNORING_CASE)

    def _displayed_expected(self, writer: MessageWriter) -> str:
        return self.expected


class SubstringConstraint(StringConstraint):
    PREDICATE = "String containing"

    def _test(self, actual: str, expected: str) -> bool:
        return expected in actual


class StartsWithConstraint(StringConstraint):
    PREDICATE = "String starting with"

    def _test(self, actual: str, expected: str) -> bool:
        return actual.startswith(expected)

    def _displayed_expected(self, writer: MessageWriter) -> str:
        return msg_utils.clip_string(self.expected, writer.max_line_length - 40, 0)


class EndsWithConstraint(StringConstraint):
    PREDICATE = "String ending with"

    def _test(self, actual: str, expected: str) -> bool:
        return actual.endswith(expected)


class RegexConstraint(StringConstraint):
    """Succeeds if the pattern matches anywhere in the actual string."""

    PREDICATE = "String matching"

    def matches(self, actual: Any) -> bool:
        self.actual = actual
        if not isinstance(actual, str):
            return False
        return self._test(actual, self.expected)

    def _test(self, actual: str, expected: str) -> bool:
        flags = re.IGNORECASE if self.modifiers.ignore_case else 0
        return re.search(expected, actual, flags) is not None


# =============================================================================
# Emptiness
# =============================================================================


class EmptyConstraint(Constraint):
    """Succeeds for an empty string or an empty collection."""

    def matches(self, actual: Any) -> bool:
        self.actual = actual
        if isinstance(actual, str):
            return len(actual) == 0
        return is_collection(actual) and count_of(actual) == 0

    def _write_description(self, writer: MessageWriter) -> None:
        writer.write("<empty>")
