"""Ensure - The assertion entry point.

An Ensure object owns a failure-handler chain and evaluates constraints
against actual values. Failures go to the chain; by default that raises
EnsuranceError with the rendered message.

Usage:
    from ensurance.ensure import that
    from ensurance.syntax import Is

    that(total, Is.greater_than(0))
    that(name, Is.equal_to("widget").ignore_case(), "Name of item {0}", item_id)

Custom chains are injected, never configured globally:
    ensure = Ensure([LoggingHandler(), ExceptionHandler()])
    ensure.that(rows, Has.count(3))
"""

from __future__ import annotations

import math
from typing import Any, Iterable

from ensurance.collection_constraints import (
    CollectionContainsConstraint,
    CollectionEquivalentConstraint,
    CollectionSubsetConstraint,
    UniqueItemsConstraint,
)
from ensurance.config_loader import build_handlers
from ensurance.constraints import (
    AssignableFromConstraint,
    Constraint,
    ConstraintUsageError,
    EmptyConstraint,
    EqualConstraint,
    GreaterThanConstraint,
    GreaterThanOrEqualConstraint,
    InstanceOfTypeConstraint,
    LessThanConstraint,
    LessThanOrEqualConstraint,
    NotConstraint,
    SameAsConstraint,
)
from ensurance.handlers import ExceptionHandler, FailureHandler, build_chain
from ensurance.models import EnsuranceSettings
from ensurance.syntax import ConstraintBuilder


class _FailConstraint(Constraint):
    """Never matches; used by Ensure.fail() to route a bare message."""

    def matches(self, actual: Any) -> bool:
        self.actual = actual
        return False

    def _write_description(self, writer) -> None:
        pass

    def _write_message(self, writer) -> None:
        pass


class Ensure:
    """Evaluates constraints and hands failures to a handler chain.

    Args:
        handlers: Handlers to link into a chain, in order. Takes
            precedence over settings.
        settings: Settings used to build the chain when handlers is None.
            With neither, the chain is a single ExceptionHandler.
    """

    def __init__(
        self,
        handlers: list[FailureHandler] | None = None,
        settings: EnsuranceSettings | None = None,
    ) -> None:
        if handlers is not None:
            self._chain = build_chain(list(handlers))
        elif settings is not None:
            self._chain = build_chain(build_handlers(settings))
        else:
            self._chain = build_chain([ExceptionHandler()])

    @property
    def chain(self) -> FailureHandler:
        return self._chain

    def that(
        self,
        actual: Any,
        constraint: Constraint | None,
        message: str | None = None,
        *args: Any,
    ) -> None:
        """Ensure actual satisfies constraint.

        Args:
            actual: Value under test.
            constraint: Constraint to evaluate.
            message: Optional message shown above the failure text; args
                are formatted into it with str.format.

        Raises:
            ConstraintUsageError: If constraint is None.
            EnsuranceError: On failure, with the default chain.
        """
        if constraint is None:
            raise ConstraintUsageError("A constraint is required")
        if isinstance(constraint, ConstraintBuilder):
            constraint = constraint.resolve()

        if not constraint.matches(actual):
            self._chain.handle(constraint, message, *args)

    def fail(self, message: str | None = None, *args: Any) -> None:
        """Report a failure unconditionally."""
        self._chain.handle(_FailConstraint(), message, *args)

    # ---- Conditions --------------------------------------------------------

    def is_true(self, condition: bool, message: str | None = None, *args: Any) -> None:
        self.that(condition, EqualConstraint(True), message, *args)

    def is_false(self, condition: bool, message: str | None = None, *args: Any) -> None:
        self.that(condition, EqualConstraint(False), message, *args)

    def is_null(self, actual: Any, message: str | None = None, *args: Any) -> None:
        self.that(actual, EqualConstraint(None), message, *args)

    def is_not_null(self, actual: Any, message: str | None = None, *args: Any) -> None:
        self.that(actual, NotConstraint(EqualConstraint(None)), message, *args)

    def is_nan(self, actual: float, message: str | None = None, *args: Any) -> None:
        self.that(actual, EqualConstraint(math.nan), message, *args)

    def is_empty(self, actual: Any, message: str | None = None, *args: Any) -> None:
        self.that(actual, EmptyConstraint(), message, *args)

    def is_not_empty(self, actual: Any, message: str | None = None, *args: Any) -> None:
        self.that(actual, NotConstraint(EmptyConstraint()), message, *args)

    # ---- Equality and identity ---------------------------------------------

    def are_equal(
        self,
        expected: Any,
        actual: Any,
        message: str | None = None,
        *args: Any,
        tolerance: Any = None,
    ) -> None:
        constraint = EqualConstraint(expected)
        if tolerance is not None:
            constraint = constraint.within(tolerance)
        self.that(actual, constraint, message, *args)

    def are_not_equal(self, expected: Any, actual: Any, message: str | None = None, *args: Any) -> None:
        self.that(actual, NotConstraint(EqualConstraint(expected)), message, *args)

    def are_same(self, expected: Any, actual: Any, message: str | None = None, *args: Any) -> None:
        self.that(actual, SameAsConstraint(expected), message, *args)

    def are_not_same(self, expected: Any, actual: Any, message: str | None = None, *args: Any) -> None:
        self.that(actual, NotConstraint(SameAsConstraint(expected)), message, *args)

    # ---- Comparisons -------------------------------------------------------

    def greater(self, arg1: Any, arg2: Any, message: str | None = None, *args: Any) -> None:
        """Ensure arg1 > arg2."""
        self.that(arg1, GreaterThanConstraint(arg2), message, *args)

    def greater_or_equal(self, arg1: Any, arg2: Any, message: str | None = None, *args: Any) -> None:
        """Ensure arg1 >= arg2."""
        self.that(arg1, GreaterThanOrEqualConstraint(arg2), message, *args)

    def less(self, arg1: Any, arg2: Any, message: str | None = None, *args: Any) -> None:
        """Ensure arg1 < arg2."""
        self.that(arg1, LessThanConstraint(arg2), message, *args)

    def less_or_equal(self, arg1: Any, arg2: Any, message: str | None = None, *args: Any) -> None:
        """Ensure arg1 <= arg2."""
        self.that(arg1, LessThanOrEqualConstraint(arg2), message, *args)

    # ---- Types -------------------------------------------------------------

    def is_instance_of_type(self, expected: type, actual: Any, message: str | None = None, *args: Any) -> None:
        self.that(actual, InstanceOfTypeConstraint(expected), message, *args)

    def is_not_instance_of_type(self, expected: type, actual: Any, message: str | None = None, *args: Any) -> None:
        self.that(actual, NotConstraint(InstanceOfTypeConstraint(expected)), message, *args)

    def is_assignable_from(self, expected: type, actual: Any, message: str | None = None, *args: Any) -> None:
        self.that(actual, AssignableFromConstraint(expected), message, *args)

    def is_not_assignable_from(self, expected: type, actual: Any, message: str | None = None, *args: Any) -> None:
        self.that(actual, NotConstraint(AssignableFromConstraint(expected)), message, *args)

    # ---- Collections -------------------------------------------------------

    def contains(self, expected: Any, collection: Any, message: str | None = None, *args: Any) -> None:
        self.that(collection, CollectionContainsConstraint(expected), message, *args)

    def all_items_unique(self, collection: Any, message: str | None = None, *args: Any) -> None:
        self.that(collection, UniqueItemsConstraint(), message, *args)

    def are_equivalent(self, expected: Iterable[Any], actual: Any, message: str | None = None, *args: Any) -> None:
        self.that(actual, CollectionEquivalentConstraint(expected), message, *args)

    def is_subset_of(self, subset: Any, superset: Iterable[Any], message: str | None = None, *args: Any) -> None:
        self.that(subset, CollectionSubsetConstraint(superset), message, *args)


_default_ensure = Ensure()


def that(actual: Any, constraint: Constraint | None, message: str | None = None, *args: Any) -> None:
    """Ensure actual satisfies constraint, raising EnsuranceError on failure."""
    _default_ensure.that(actual, constraint, message, *args)
