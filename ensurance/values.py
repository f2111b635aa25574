"""Runtime kinds of values handled by constraints and the diff engine.

Arrays are numpy ndarrays of rank one or more. Collections are sized
containers other than strings and byte sequences. Byte sources (bytes-like
objects and binary streams) are compared as streams.
"""

from __future__ import annotations

import io
from collections.abc import Collection, Iterator, Mapping, Sequence, Set
from itertools import islice
from typing import Any, BinaryIO

import numpy as np

_BYTES_LIKE = (bytes, bytearray, memoryview)


def is_array(value: Any) -> bool:
    """True for numpy arrays of rank one or more."""
    return isinstance(value, np.ndarray) and value.ndim > 0


def as_scalar(value: Any) -> Any:
    """Unwrap a 0-d numpy array into its numpy scalar; other values pass through."""
    if isinstance(value, np.ndarray) and value.ndim == 0:
        return value[()]
    return value


def is_string(value: Any) -> bool:
    return isinstance(value, str)


def is_collection(value: Any) -> bool:
    """True for arrays and sized containers that are not strings or bytes."""
    if is_array(value):
        return True
    # A 0-d array is sized in name only
    if isinstance(value, (np.ndarray, str, *_BYTES_LIKE)):
        return False
    return isinstance(value, Collection)


def is_ordered_collection(value: Any) -> bool:
    """True for collections whose iteration order is meaningful."""
    return is_collection(value) and not isinstance(value, (Set, Mapping))


def is_stream(value: Any) -> bool:
    """True for bytes-like objects and binary io streams."""
    if isinstance(value, _BYTES_LIKE):
        return True
    return isinstance(value, io.IOBase) and not isinstance(value, io.TextIOBase)


def count_of(collection: Any) -> int:
    if is_array(collection):
        return int(collection.size)
    return len(collection)


def rank_of(collection: Any) -> int:
    """Array rank; every other collection has rank 1."""
    return collection.ndim if is_array(collection) else 1


def iter_elements(collection: Any) -> Iterator[Any]:
    """Iterate a collection as a flat sequence.

    Arrays walk in row-major order whatever their rank. Mappings yield
    their (key, value) items.
    """
    if is_array(collection):
        return iter(collection.flat)
    if isinstance(collection, Mapping):
        return iter(collection.items())
    return iter(collection)


def element_at(collection: Any, index: int) -> Any:
    """Return the element at a flat index of a collection."""
    if is_array(collection):
        return collection.flat[index]
    if isinstance(collection, Sequence):
        return collection[index]
    return next(islice(iter_elements(collection), index, None))


# =============================================================================
# Streams
# =============================================================================


def as_binary_stream(source: Any) -> BinaryIO:
    """Return a readable binary stream over a byte source."""
    if isinstance(source, _BYTES_LIKE):
        return io.BytesIO(bytes(source))
    return source


def stream_length(source: Any) -> int:
    """Total length in bytes of a byte source.

    For seekable streams the current position is preserved.
    """
    if isinstance(source, _BYTES_LIKE):
        return memoryview(source).nbytes
    position = source.tell()
    try:
        return source.seek(0, io.SEEK_END)
    finally:
        source.seek(position)
