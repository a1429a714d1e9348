"""
Compressed Structure Validation

Checks that three raw buffers describe a well formed compressed matrix and
reports the first violated invariant as a typed ``StructureError``.

Checks, in order:
    0. buffers are 1-D, index buffers have an integer dtype
    1. len(indptr) == outer_dims + 1
    2. len(indices) == len(data), indptr[-1] == len(indices)
    3. indptr is monotonic nondecreasing
    4. offsets are non-negative, at most nnz and at most half the maximum
       of the index dtype
    5. per outer slice: indices strictly ascending, then within
       [0, inner_dims)
"""

import logging
from typing import Any, Tuple

import numpy as np

from ..error import StructureErrorKind, structure_error
from ._storage import CompressedStorage, inner_dimension, outer_dimension
from ._vector import SparseVecView

__all__ = ['check_compressed_structure', 'check_buffer_layout']

logger = logging.getLogger("cstore.sparse.validate")


def _check_index_dtype(name: str, arr: np.ndarray) -> None:
    if arr.shape[0] and not np.issubdtype(arr.dtype, np.integer):
        raise structure_error(
            StructureErrorKind.INVALID_INDEX_DTYPE,
            f"{name} has dtype {arr.dtype}",
        )


def check_buffer_layout(indptr: np.ndarray, indices: np.ndarray, data: np.ndarray) -> None:
    """
    Check that all buffers are 1-D and that non-empty index buffers are integers.

    Raises:
        StructureError: ``INDPTR_LENGTH_MISMATCH`` or ``DATA_INDICES_MISMATCH``
            for a buffer of the wrong rank, ``INVALID_INDEX_DTYPE`` for a
            non-integer index buffer.
    """
    if indptr.ndim != 1:
        raise structure_error(
            StructureErrorKind.INDPTR_LENGTH_MISMATCH, f"indptr must be 1-D, got {indptr.ndim}-D"
        )
    if indices.ndim != 1 or data.ndim != 1:
        raise structure_error(
            StructureErrorKind.DATA_INDICES_MISMATCH, "indices and data must be 1-D"
        )
    _check_index_dtype("indptr", indptr)
    _check_index_dtype("indices", indices)


def check_compressed_structure(
    storage: CompressedStorage,
    shape: Tuple[int, int],
    indptr: Any,
    indices: Any,
    data: Any,
) -> None:
    """
    Validate raw compressed buffers.

    Args:
        storage: CSR or CSC.
        shape: (rows, cols).
        indptr: Offsets of each outer slice.
        indices: Inner indices.
        data: Values.

    Raises:
        StructureError: For the first violated invariant; ``err.kind``
            identifies which.

    Example:
        >>> check_compressed_structure(CSR, (3, 3), [0, 1, 2, 3], [0, 1, 2], [1., 1., 1.])
        >>> check_compressed_structure(CSR, (3, 3), [0, 1, 2], [0, 1], [1., 1.])
        Traceback (most recent call last):
        ...
        StructureError: ... Indptr length does not match the outer dimension ...
    """
    rows, cols = shape
    outer = outer_dimension(storage, rows, cols)
    inner = inner_dimension(storage, rows, cols)

    indptr = np.asarray(indptr)
    indices = np.asarray(indices)
    data = np.asarray(data)
    check_buffer_layout(indptr, indices, data)

    # 1. offsets length
    if indptr.shape[0] != outer + 1:
        raise structure_error(
            StructureErrorKind.INDPTR_LENGTH_MISMATCH,
            f"expected {outer + 1}, got {indptr.shape[0]}",
        )

    # 2. parallel buffers and nnz
    if indices.shape[0] != data.shape[0]:
        raise structure_error(
            StructureErrorKind.DATA_INDICES_MISMATCH,
            f"{indices.shape[0]} indices, {data.shape[0]} values",
        )
    nnz = indices.shape[0]
    if int(indptr[-1]) != nnz:
        raise structure_error(
            StructureErrorKind.NNZ_MISMATCH,
            f"indptr ends at {int(indptr[-1])}, {nnz} indices stored",
        )

    # 3. monotonic offsets
    if outer > 0 and np.any(indptr[1:] < indptr[:-1]):
        raise structure_error(StructureErrorKind.UNSORTED_INDPTR)

    # 4. offset bounds
    max_offset = int(indptr.max())
    if int(indptr.min()) < 0 or max_offset > nnz:
        raise structure_error(
            StructureErrorKind.OUT_OF_BOUNDS_INDPTR, f"offsets must lie in [0, {nnz}]"
        )
    if max_offset > np.iinfo(indptr.dtype).max // 2:
        raise structure_error(
            StructureErrorKind.OUT_OF_BOUNDS_INDPTR,
            f"offset {max_offset} exceeds half of the {indptr.dtype} range",
        )

    # 5. per-slice index runs
    base = int(indptr[0])
    run = indices[base:]
    if run.shape[0] == 0:
        return
    slice_of = np.repeat(np.arange(outer), np.diff(indptr).astype(np.intp, copy=False))
    bad = (run < 0) | (run >= inner)
    if run.shape[0] > 1:
        same_slice = slice_of[1:] == slice_of[:-1]
        bad[1:] |= same_slice & (run[1:] <= run[:-1])
    if not bad.any():
        return

    first = int(slice_of[int(np.argmax(bad))])
    start, end = int(indptr[first]), int(indptr[first + 1])
    logger.debug("Structure check failed in outer slice %d", first)
    SparseVecView(inner, indices[start:end], data[start:end]).check_structure()
