"""Text helpers shared by the message writer and the diff engine."""

from __future__ import annotations

import builtins
from typing import Any

from ensurance.values import is_array

ELLIPSIS = "..."


def get_type_name(cls: type) -> str:
    """Builtins are unqualified, everything else is module.QualName."""
    if cls.__module__ == builtins.__name__:
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def get_type_representation(obj: Any) -> str:
    """Describe the type (and shape, for arrays) of obj.

    Examples:
        [1, 2]                      -> "<list>"
        np.zeros((2, 3), np.int64)  -> "<int64[2,3]>"
    """
    if not is_array(obj):
        return f"<{get_type_name(type(obj))}>"
    dims = ",".join(str(length) for length in obj.shape)
    return f"<{obj.dtype.name}[{dims}]>"


def convert_whitespace(s: str | None) -> str | None:
    """Escape backslashes and the \\r, \\n and \\t control characters."""
    if s is not None:
        s = s.replace("\\", "\\\\")
        s = s.replace("\r", "\\r")
        s = s.replace("\n", "\\n")
        s = s.replace("\t", "\\t")
    return s


def get_array_indices_as_string(indices: list[int]) -> str:
    return "[" + ",".join(str(i) for i in indices) + "]"


def get_array_indices_from_collection_index(collection: Any, index: int) -> list[int]:
    """Convert a flat row-major index into per-dimension indices.

    Non-array collections and rank-1 arrays yield a single index.
    """
    if not is_array(collection) or collection.ndim == 1:
        return [index]

    result = [0] * collection.ndim
    for r in range(collection.ndim - 1, 0, -1):
        length = collection.shape[r]
        result[r] = index % length
        index //= length
    result[0] = index
    return result


def clip_string(s: str, max_string_length: int, mismatch: int) -> str:
    """Clip a string to max_string_length, keeping the mismatch visible.

    When the mismatch lies beyond the clippable prefix, the window is
    centred on it and an ellipsis marks each clipped end.
    """
    clip_length = max_string_length - len(ELLIPSIS)

    if mismatch >= clip_length:
        clip_start = mismatch - clip_length // 2

        if len(s) - clip_start > max_string_length:
            return ELLIPSIS + s[clip_start:clip_start + clip_length - len(ELLIPSIS)] + ELLIPSIS
        return ELLIPSIS + s[clip_start:]

    if len(s) > max_string_length:
        return s[:clip_length] + ELLIPSIS
    return s


def find_mismatch_position(expected: str, actual: str, start: int = 0, ignore_case: bool = False) -> int:
    """Index of the first differing character, or -1 for equal strings.

    If one string is a prefix of the other the mismatch is reported at the
    end of the shorter one.
    """
    length = min(len(expected), len(actual))

    s1 = expected.lower() if ignore_case else expected
    s2 = actual.lower() if ignore_case else actual

    for i in range(start, length):
        if s1[i] != s2[i]:
            return i

    if len(expected) != len(actual):
        return length
    return -1
