"""Slice encoded upload payloads into bounded chunks.

The chunk sink accepts at most ``chunk_size`` characters of base64 text
per request.  These helpers compute the slice boundaries so the upload loop
and its tests agree on the arithmetic.
"""

from __future__ import annotations


def count_chunks(length: int, size: int) -> int:
    """Return how many chunks of at most *size* cover *length* characters.

    An empty payload needs zero chunks.

    Raises
    ------
    ValueError
        If *size* is less than 1 or *length* is negative.

    Examples
    --------
    >>> count_chunks(10, 5)
    2
    >>> count_chunks(11, 5)
    3
    >>> count_chunks(0, 5)
    0
    """
    if size < 1:
        raise ValueError(f"size must be >= 1, got {size}")
    if length < 0:
        raise ValueError(f"length must be >= 0, got {length}")
    return -(-length // size)


def slice_end(cursor: int, length: int, size: int) -> int:
    """End offset of the chunk starting at *cursor*, clamped to *length*."""
    return min(length, cursor + size)
