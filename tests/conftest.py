"""Pytest configuration and shared helpers for ensurance tests.

This file provides:
- describe / failure_message: Render a constraint through a TextMessageWriter
- make_array / make_jagged: Build numpy arrays the way diagnostics expect them
"""

from __future__ import annotations

from typing import Any

import numpy as np

from ensurance.constraints import Constraint
from ensurance.writer import TextMessageWriter


def describe(constraint: Constraint) -> str:
    """Return the expected-side description of a constraint."""
    writer = TextMessageWriter()
    constraint.write_description_to(writer)
    return str(writer)


def failure_message(constraint: Constraint, actual: Any) -> str:
    """Match actual (which must fail) and return the rendered failure message.

    Prefer this over calling write_message_to directly - it asserts the
    precondition that the constraint actually failed.
    """
    assert not constraint.matches(actual), "constraint unexpectedly matched"
    writer = TextMessageWriter()
    constraint.write_message_to(writer)
    return str(writer)


def make_array(values: Any, shape: tuple[int, ...] | None = None) -> np.ndarray:
    """Create an int64 array, optionally reshaped."""
    array = np.array(values, dtype=np.int64)
    if shape is not None:
        array = array.reshape(shape)
    return array


def make_jagged(*rows: Any) -> np.ndarray:
    """Create a rank-1 object array whose elements are int64 arrays."""
    jagged = np.empty(len(rows), dtype=object)
    for i, row in enumerate(rows):
        jagged[i] = make_array(row)
    return jagged
