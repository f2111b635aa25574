"""Fluent syntax for building constraints.

    that(5, Is.greater_than(3))
    that("Hello", Is.not_.equal_to("hello"))
    that(["ab", "ba"], Has.some.starts_with("BA").ignore_case())
    that(words, Has.all.property_("length", 3))
    that(order, Has.property_("total"))
    that("abc", Text.does_not_contain("x"))

A ConstraintBuilder collects prefix operations (not_, all, some, none,
property_) and a terminal method builds the leaf constraint and wraps it
in those prefixes, the first prefix outermost.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import Any

from ensurance.accessors import NOT_FOUND, PropertyAccessor, default_accessor
from ensurance.collection_constraints import (
    CollectionContainsConstraint,
    CollectionEquivalentConstraint,
    CollectionSubsetConstraint,
    ContainsConstraint,
    UniqueItemsConstraint,
)
from ensurance.constraints import (
    AllItemsConstraint,
    AssignableFromConstraint,
    Constraint,
    ConstraintUsageError,
    EmptyConstraint,
    EndsWithConstraint,
    EqualConstraint,
    ExactTypeConstraint,
    GreaterThanConstraint,
    GreaterThanOrEqualConstraint,
    InstanceOfTypeConstraint,
    LessThanConstraint,
    LessThanOrEqualConstraint,
    NoItemConstraint,
    NotConstraint,
    PropertyConstraint,
    RangeConstraint,
    RegexConstraint,
    SameAsConstraint,
    SomeItemsConstraint,
    StartsWithConstraint,
    SubstringConstraint,
)
from ensurance.values import iter_elements


class _NoValue:
    def __repr__(self) -> str:
        return "<NO_VALUE>"


_NO_VALUE = _NoValue()

_PREFIXES = {
    "not": NotConstraint,
    "all": AllItemsConstraint,
    "some": SomeItemsConstraint,
    "none": NoItemConstraint,
}


# =============================================================================
# Constraint Builder
# =============================================================================


class ConstraintBuilder:
    """Accumulates prefix operations until a terminal method builds the constraint."""

    def __init__(self) -> None:
        # (kind, property name or None), outermost first
        self._ops: list[tuple[str, str | None]] = []

    def _push(self, kind: str, name: str | None = None) -> ConstraintBuilder:
        self._ops.append((kind, name))
        return self

    def _resolve(self, constraint: Constraint) -> Constraint:
        for kind, name in reversed(self._ops):
            if kind == "property":
                constraint = PropertyConstraint(name, constraint)
            else:
                constraint = _PREFIXES[kind](constraint)
        return constraint

    def resolve(self) -> Constraint:
        """Build a constraint from a builder ending in property_(name).

        The property then only has to exist.

        Raises:
            ConstraintUsageError: If the expression has no terminal.
        """
        if not self._ops or self._ops[-1][0] != "property":
            raise ConstraintUsageError("Incomplete constraint expression")
        _, name = self._ops.pop()
        return self._resolve(PropertyConstraint(name))

    # ---- Prefix operations -------------------------------------------------

    @property
    def not_(self) -> ConstraintBuilder:
        return self._push("not")

    @property
    def no(self) -> ConstraintBuilder:
        return self._push("not")

    @property
    def all(self) -> ConstraintBuilder:
        return self._push("all")

    @property
    def some(self) -> ConstraintBuilder:
        return self._push("some")

    @property
    def none(self) -> ConstraintBuilder:
        return self._push("none")

    def property_(self, name: str, expected: Any = _NO_VALUE) -> Any:
        """Prefix (without expected) or terminal (with expected) on a named property."""
        if expected is _NO_VALUE:
            return self._push("property", name)
        return self._resolve(PropertyConstraint(name, EqualConstraint(expected)))

    # ---- Constraints without arguments -------------------------------------

    def null(self) -> Constraint:
        return self._resolve(EqualConstraint(None))

    def true(self) -> Constraint:
        return self._resolve(EqualConstraint(True))

    def false(self) -> Constraint:
        return self._resolve(EqualConstraint(False))

    def nan(self) -> Constraint:
        return self._resolve(EqualConstraint(math.nan))

    def empty(self) -> Constraint:
        return self._resolve(EmptyConstraint())

    def unique(self) -> Constraint:
        return self._resolve(UniqueItemsConstraint())

    # ---- Equality, identity and comparison ---------------------------------

    def equal_to(self, expected: Any) -> Constraint:
        return self._resolve(EqualConstraint(expected))

    def same_as(self, expected: Any) -> Constraint:
        return self._resolve(SameAsConstraint(expected))

    def greater_than(self, expected: Any) -> Constraint:
        return self._resolve(GreaterThanConstraint(expected))

    def greater_than_or_equal_to(self, expected: Any) -> Constraint:
        return self._resolve(GreaterThanOrEqualConstraint(expected))

    def at_least(self, expected: Any) -> Constraint:
        return self.greater_than_or_equal_to(expected)

    def less_than(self, expected: Any) -> Constraint:
        return self._resolve(LessThanConstraint(expected))

    def less_than_or_equal_to(self, expected: Any) -> Constraint:
        return self._resolve(LessThanOrEqualConstraint(expected))

    def at_most(self, expected: Any) -> Constraint:
        return self.less_than_or_equal_to(expected)

    def in_range(self, low: Any, high: Any, include_low: bool = True, include_high: bool = False) -> Constraint:
        return self._resolve(RangeConstraint(low, high, include_low, include_high))

    # ---- Types -------------------------------------------------------------

    def type_of(self, expected_type: type) -> Constraint:
        return self._resolve(ExactTypeConstraint(expected_type))

    def instance_of_type(self, expected_type: type) -> Constraint:
        return self._resolve(InstanceOfTypeConstraint(expected_type))

    def assignable_from(self, expected_type: type) -> Constraint:
        return self._resolve(AssignableFromConstraint(expected_type))

    # ---- Collections -------------------------------------------------------

    def equivalent_to(self, expected: Iterable[Any]) -> Constraint:
        return self._resolve(CollectionEquivalentConstraint(expected))

    def subset_of(self, expected: Iterable[Any]) -> Constraint:
        return self._resolve(CollectionSubsetConstraint(expected))

    def member(self, expected: Any) -> Constraint:
        return self._resolve(CollectionContainsConstraint(expected))

    def length(self, length: int) -> Constraint:
        return self.property_("length", length)

    def count(self, count: int) -> Constraint:
        return self.property_("count", count)

    # ---- Strings -----------------------------------------------------------

    def contains(self, expected: Any) -> Constraint:
        """Substring for strings, membership for collections."""
        return self._resolve(ContainsConstraint(expected))

    def starts_with(self, expected: str) -> Constraint:
        return self._resolve(StartsWithConstraint(expected))

    def ends_with(self, expected: str) -> Constraint:
        return self._resolve(EndsWithConstraint(expected))

    def matches(self, pattern: str) -> Constraint:
        return self._resolve(RegexConstraint(pattern))


# =============================================================================
# Entry Points
# =============================================================================


class SyntaxHelper:
    """Entry point whose exposed attributes start a fresh ConstraintBuilder."""

    EXPOSED: frozenset[str] = frozenset()

    def __getattr__(self, name: str) -> Any:
        if name not in self.EXPOSED:
            raise AttributeError(f"{type(self).__name__} has no attribute '{name}'")
        return getattr(ConstraintBuilder(), name)


class IsSyntax(SyntaxHelper):
    EXPOSED = frozenset({
        "not_", "all",
        "null", "true", "false", "nan", "empty", "unique",
        "equal_to", "same_as",
        "greater_than", "greater_than_or_equal_to", "at_least",
        "less_than", "less_than_or_equal_to", "at_most", "in_range",
        "type_of", "instance_of_type", "assignable_from",
        "equivalent_to", "subset_of",
    })


class HasSyntax(SyntaxHelper):
    EXPOSED = frozenset({"no", "all", "some", "none", "property_", "length", "count", "member"})


class TextSyntax(SyntaxHelper):
    """String constraints, including negated forms."""

    EXPOSED = frozenset({"all"})

    def contains(self, substring: str) -> Constraint:
        return SubstringConstraint(substring)

    def does_not_contain(self, substring: str) -> Constraint:
        return NotConstraint(self.contains(substring))

    def starts_with(self, prefix: str) -> Constraint:
        return StartsWithConstraint(prefix)

    def does_not_start_with(self, prefix: str) -> Constraint:
        return NotConstraint(self.starts_with(prefix))

    def ends_with(self, suffix: str) -> Constraint:
        return EndsWithConstraint(suffix)

    def does_not_end_with(self, suffix: str) -> Constraint:
        return NotConstraint(self.ends_with(suffix))

    def matches(self, pattern: str) -> Constraint:
        return RegexConstraint(pattern)

    def does_not_match(self, pattern: str) -> Constraint:
        return NotConstraint(self.matches(pattern))


Is = IsSyntax()
Has = HasSyntax()
Text = TextSyntax()


# =============================================================================
# List Mapping
# =============================================================================


class ListMapper:
    """Projects one property from every item of a collection."""

    def __init__(self, original: Any, accessor: PropertyAccessor | None = None) -> None:
        self._original = original
        self._accessor = accessor or default_accessor()

    def property_(self, name: str) -> list[Any]:
        """Return the named property of every item.

        Raises:
            ConstraintUsageError: If an item has no such property.
        """
        values = []
        for item in iter_elements(self._original):
            value = self._accessor.try_get(item, name)
            if value is NOT_FOUND:
                raise ConstraintUsageError(f"{item!r} does not have a {name} property")
            values.append(value)
        return values


class List:
    @staticmethod
    def map(collection: Any) -> ListMapper:
        return ListMapper(collection)
