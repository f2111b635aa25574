"""Property accessors - Look up a named property on an arbitrary value.

PropertyConstraint and ListMapper never inspect objects themselves; they
ask a PropertyAccessor, which answers with the value or NOT_FOUND.
"""

from __future__ import annotations

from collections.abc import Mapping, Sized
from typing import Any, Protocol

from jsonpath_ng import parse as jsonpath_parse
from jsonpath_ng.exceptions import JsonPathLexerError, JsonPathParserError


class JSONPathError(ValueError):
    """Invalid JSONPath property name."""


# =============================================================================
# Sentinel for Missing Properties
# =============================================================================


class _NotFound:
    """Sentinel for a missing property (distinct from a property set to None)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "<NOT_FOUND>"


NOT_FOUND = _NotFound()


# =============================================================================
# Accessors
# =============================================================================


class PropertyAccessor(Protocol):
    def try_get(self, obj: Any, name: str) -> Any:
        """Return the property value, or NOT_FOUND if obj has no such property."""
        ...


class AttributeAccessor:
    """Resolve properties as mapping keys or attributes.

    Lookup order: mapping key, then attribute (public or underscore
    prefixed), then the length aliases. "length" and "count" resolve to
    len(obj) for sized objects that have no plain attribute of that name,
    so list.count (a method) does not shadow the alias.
    """

    LENGTH_ALIASES = frozenset({"length", "count", "Length", "Count"})

    def try_get(self, obj: Any, name: str) -> Any:
        if obj is None:
            return NOT_FOUND

        if isinstance(obj, Mapping) and name in obj:
            return obj[name]

        value = getattr(obj, name, NOT_FOUND)
        if value is NOT_FOUND:
            value = getattr(obj, f"_{name}", NOT_FOUND)

        if name in self.LENGTH_ALIASES and isinstance(obj, Sized):
            if value is NOT_FOUND or callable(value):
                return len(obj)

        return value


class JsonPathAccessor:
    """Resolve '$'-prefixed names as JSONPath expressions.

    The first match wins; no match is NOT_FOUND. Names that do not start
    with '$' are never found.
    """

    def __init__(self) -> None:
        # Cache compiled JSONPath expressions
        self._jsonpath_cache: dict[str, Any] = {}

    def try_get(self, obj: Any, name: str) -> Any:
        if not name.startswith("$") or obj is None:
            return NOT_FOUND

        matches = self._compile(name).find(obj)
        if not matches:
            return NOT_FOUND
        return matches[0].value

    def _compile(self, path: str) -> Any:
        if path not in self._jsonpath_cache:
            try:
                self._jsonpath_cache[path] = jsonpath_parse(path)
            except (JsonPathLexerError, JsonPathParserError) as e:
                raise JSONPathError(f"Invalid JSONPath '{path}': {e}") from e
        return self._jsonpath_cache[path]


class ChainedAccessor:
    """Try several accessors in order; the first hit wins."""

    def __init__(self, *accessors: PropertyAccessor) -> None:
        self._accessors = accessors

    def try_get(self, obj: Any, name: str) -> Any:
        for accessor in self._accessors:
            value = accessor.try_get(obj, name)
            if value is not NOT_FOUND:
                return value
        return NOT_FOUND


_DEFAULT_ACCESSOR = ChainedAccessor(JsonPathAccessor(), AttributeAccessor())


def default_accessor() -> PropertyAccessor:
    """JSONPath names first, then keys and attributes."""
    return _DEFAULT_ACCESSOR
