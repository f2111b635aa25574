"""Comparison modifiers carried by every constraint."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable

# Three-way comparer: negative, zero or positive, like functools.cmp_to_key input
Comparer = Callable[[Any, Any], int]


@dataclass(frozen=True)
class Modifiers:
    """Settings that change how a constraint compares values.

    Attributes:
        ignore_case: Compare strings case-insensitively.
        as_collection: Compare arrays as flat element sequences, ignoring rank and shape.
        tolerance: Maximum numeric difference still treated as equal (None for exact).
        comparer: Three-way comparer overriding the built-in equality rules.
    """

    ignore_case: bool = False
    as_collection: bool = False
    tolerance: Any = None
    comparer: Comparer | None = None

    def applied_to(self, other: Modifiers) -> Modifiers:
        """Return other with every modifier that is set here layered on top."""
        result = other
        if self.ignore_case:
            result = replace(result, ignore_case=True)
        if self.as_collection:
            result = replace(result, as_collection=True)
        if self.tolerance is not None:
            result = replace(result, tolerance=self.tolerance)
        if self.comparer is not None:
            result = replace(result, comparer=self.comparer)
        return result

    @property
    def is_default(self) -> bool:
        return self == DEFAULT_MODIFIERS


DEFAULT_MODIFIERS = Modifiers()
