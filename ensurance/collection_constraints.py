"""Collection constraints - Containment, uniqueness, equivalence and subsets.

Every constraint here requires a collection as the actual value and raises
ConstraintUsageError otherwise. ContainsConstraint is the exception: it
picks substring or collection containment from the actual value.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from collections.abc import Iterable
from typing import Any

from ensurance import diff
from ensurance.constraints import Constraint, ConstraintUsageError, SubstringConstraint
from ensurance.values import count_of, is_collection, iter_elements
from ensurance.writer import MessageWriter

logger = logging.getLogger(__name__)


# =============================================================================
# Tally
# =============================================================================


class CollectionTally:
    """Multiset of values built from one pass over an iterable.

    Hashable values are counted in a dict (None is an ordinary key).
    Unhashable values such as lists or arrays are counted in a side list
    and matched with the diff engine's equality.
    """

    def __init__(self, items: Iterable[Any]) -> None:
        self._counts: dict[Any, int] = {}
        self._unhashable: list[list[Any]] = []  # [value, count] pairs
        for item in items:
            self._set(item, self[item] + 1)

    def __getitem__(self, item: Any) -> int:
        if _is_hashable(item):
            return self._counts.get(item, 0)
        entry = self._unhashable_entry(item)
        return entry[1] if entry is not None else 0

    def _set(self, item: Any, tally: int) -> None:
        if _is_hashable(item):
            self._counts[item] = tally
            return
        entry = self._unhashable_entry(item)
        if entry is None:
            self._unhashable.append([item, tally])
        else:
            entry[1] = tally

    def _unhashable_entry(self, item: Any) -> list[Any] | None:
        for entry in self._unhashable:
            if diff.compare(entry[0], item).equal:
                return entry
        return None

    def can_remove(self, items: Iterable[Any]) -> bool:
        """Remove one occurrence per item; False as soon as one is not present.

        Counts never go negative, so a False result leaves the tally
        partially consumed.
        """
        for item in items:
            tally = self[item]
            if tally <= 0:
                return False
            self._set(item, tally - 1)
        return True

    def all_counts_equal_to(self, count: int) -> bool:
        counts = list(self._counts.values()) + [entry[1] for entry in self._unhashable]
        return all(c == count for c in counts)


# =============================================================================
# Collection Constraints
# =============================================================================


class CollectionConstraint(Constraint):
    """Base for constraints that only apply to collections."""

    def matches(self, actual: Any) -> bool:
        self.actual = actual
        if not is_collection(actual):
            raise ConstraintUsageError("The actual value must be a collection")
        return self._do_match(actual)

    @abstractmethod
    def _do_match(self, collection: Any) -> bool: ...


class UniqueItemsConstraint(CollectionConstraint):
    def _do_match(self, collection: Any) -> bool:
        return CollectionTally(iter_elements(collection)).all_counts_equal_to(1)

    def _write_description(self, writer: MessageWriter) -> None:
        writer.write("all items unique")


class CollectionContainsConstraint(CollectionConstraint):
    """Succeeds if any item equals expected (by value, honoring modifiers)."""

    def __init__(self, expected: Any) -> None:
        super().__init__()
        self.expected = expected

    def _do_match(self, collection: Any) -> bool:
        return any(
            diff.compare(item, self.expected, self.modifiers).equal
            for item in iter_elements(collection)
        )

    def _write_description(self, writer: MessageWriter) -> None:
        writer.write_predicate("collection containing")
        writer.write_expected_value(self.expected)


class CollectionEquivalentConstraint(CollectionConstraint):
    """Succeeds if actual holds the same items as expected, in any order."""

    def __init__(self, expected: Iterable[Any]) -> None:
        super().__init__()
        self.expected = expected

    def _do_match(self, collection: Any) -> bool:
        if is_collection(self.expected) and count_of(collection) != count_of(self.expected):
            return False
        tally = CollectionTally(iter_elements(self.expected))
        return tally.can_remove(iter_elements(collection)) and tally.all_counts_equal_to(0)

    def _write_description(self, writer: MessageWriter) -> None:
        writer.write_predicate("equivalent to")
        writer.write_expected_value(self.expected)


class CollectionSubsetConstraint(CollectionConstraint):
    """Succeeds if every actual item is in expected, with enough multiplicity."""

    def __init__(self, expected: Iterable[Any]) -> None:
        super().__init__()
        self.expected = expected

    def _do_match(self, collection: Any) -> bool:
        return CollectionTally(iter_elements(self.expected)).can_remove(iter_elements(collection))

    def _write_description(self, writer: MessageWriter) -> None:
        writer.write_predicate("subset of")
        writer.write_expected_value(self.expected)


# =============================================================================
# Polymorphic Contains
# =============================================================================


class ContainsConstraint(Constraint):
    """Substring test for string values, item test for collections.

    The choice is made on the first match (or description) and kept for
    the lifetime of the constraint.
    """

    def __init__(self, expected: Any) -> None:
        super().__init__()
        self.expected = expected
        self._real_constraint: Constraint | None = None

    def _clone(self) -> Constraint:
        clone = super()._clone()
        clone._real_constraint = None
        return clone

    @property
    def real_constraint(self) -> Constraint:
        if self._real_constraint is None:
            if isinstance(self.actual, str):
                real: Constraint = SubstringConstraint(self.expected)
            else:
                real = CollectionContainsConstraint(self.expected)
            logger.debug(
                "Contains resolved to %s for %s", type(real).__name__, type(self.actual).__name__
            )
            self._real_constraint = real.with_modifiers(self.modifiers)
        return self._real_constraint

    def matches(self, actual: Any) -> bool:
        self.actual = actual
        return self.real_constraint.matches(actual)

    def _write_description(self, writer: MessageWriter) -> None:
        self.real_constraint.write_description_to(writer)


def _is_hashable(item: Any) -> bool:
    try:
        hash(item)
    except TypeError:
        return False
    return True
