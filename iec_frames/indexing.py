"""indexing.py - Regular Grid Index Linearization

Conversion between 3D indices (e0, e1, e2) of a regular grid and the
position in a flat, row-major (C ordered) array: the last dimension is
contiguous in memory. For DICOM images stacked by slice position, dimension
0 is the slice index, 1 the row index and 2 the column index.
"""
from __future__ import annotations

import numpy.typing as npt

import operator
import typing as typ

import numpy as np

from iec_frames.errors import IndexOutOfRangeError

__all__ = ['to_linear_index', 'from_linear_index',
           'to_linear_indices', 'from_linear_indices']

def _integer(value) -> int:
    try:
        return operator.index(value)
    except TypeError:
        raise TypeError(f"Index {value!r} is not an integer") from None

def _integer_array(values: npt.ArrayLike) -> np.ndarray:
    values = np.asarray(values)
    if values.size and not np.issubdtype(values.dtype, np.integer):
        raise TypeError(f"Indices must be integers, got dtype {values.dtype}")
    return values.astype(np.int64)

def _extents(extents: typ.Sequence[int]) -> tuple[int, int, int]:
    if len(extents) != 3:
        raise ValueError(f"Expected three extents, got {len(extents)}")
    n0, n1, n2 = (_integer(n) for n in extents)
    if min(n0, n1, n2) < 0:
        raise ValueError(f"Extents ({n0},{n1},{n2}) must not be negative")
    return n0, n1, n2

def to_linear_index(index: typ.Sequence[int], extents: typ.Sequence[int]) -> int:
    """Converts a 3D grid index to its linear position in a row-major flat array

    :param index: Indices (e0, e1, e2) in each dimension
    :type index: typing.Sequence[int]

    :param extents: Number of elements (n0, n1, n2) in each dimension
    :type extents: typing.Sequence[int]

    :raises IndexOutOfRangeError: If any index is negative or not below its extent
    :raises TypeError: If an index is not an integer

    :return: Linear index starting at zero
    :rtype: int
    """
    n0, n1, n2 = _extents(extents)
    if len(index) != 3:
        raise ValueError(f"Expected three indices, got {len(index)}")
    e0, e1, e2 = (_integer(e) for e in index)

    if not (0 <= e0 < n0 and 0 <= e1 < n1 and 0 <= e2 < n2):
        raise IndexOutOfRangeError(
            f"Indices ({e0},{e1},{e2}) out of range ({n0},{n1},{n2})")

    return e0*n1*n2 + e1*n2 + e2

def from_linear_index(linear: int, extents: typ.Sequence[int]) -> tuple[int, int, int]:
    """Converts a linear position in a row-major flat array to a 3D grid index

    :param linear: Linear index starting at zero
    :type linear: int

    :param extents: Number of elements (n0, n1, n2) in each dimension
    :type extents: typing.Sequence[int]

    :raises IndexOutOfRangeError: If the index is negative or not below n0*n1*n2
    :raises TypeError: If the index is not an integer

    :return: Indices (e0, e1, e2)
    :rtype: tuple[int, int, int]
    """
    n0, n1, n2 = _extents(extents)
    linear = _integer(linear)
    total = n0*n1*n2
    if not 0 <= linear < total:
        raise IndexOutOfRangeError(f"Index ({linear}) out of range (total elements = {total})")

    return (linear // n2) // n1, (linear // n2) % n1, linear % n2

# %% Vectorized
def to_linear_indices(indices: npt.ArrayLike, extents: typ.Sequence[int]) -> np.ndarray:
    """Vectorized :func:`to_linear_index` for an index array of shape :math:`(n,3)`"""
    indices = np.atleast_2d(_integer_array(indices))
    shape = _extents(extents)
    if indices.shape[-1] != 3:
        raise ValueError(f"Expected index array of shape (n,3), got {indices.shape}")

    try:
        return np.ravel_multi_index(tuple(indices.T), shape).astype(np.uint64)
    except ValueError as err:
        raise IndexOutOfRangeError(f"Indices out of range {shape}: {err}") from err

def from_linear_indices(linear: npt.ArrayLike, extents: typ.Sequence[int]) -> np.ndarray:
    """Vectorized :func:`from_linear_index`, returns an array of shape :math:`(n,3)`"""
    linear = np.atleast_1d(_integer_array(linear))
    shape = _extents(extents)

    try:
        return np.column_stack(np.unravel_index(linear, shape))
    except ValueError as err:
        raise IndexOutOfRangeError(f"Index out of range {shape}: {err}") from err
