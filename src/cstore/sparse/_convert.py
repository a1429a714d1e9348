"""
Storage Conversion (CSR <-> CSC)

Counting-sort transpose of the compressed structure:

    1. histogram of inner indices -> sizes of the destination slices
    2. exclusive prefix sum -> destination offsets (last must equal nnz)
    3. scatter in original outer order -> each destination slice receives
       its old outer indices in increasing order

The third step is what makes the output sorted within every slice; no
sort of the result is needed. Input indices do not have to be sorted.
"""

import logging
from typing import Any, Optional, Tuple

import numpy as np

from ..error import ContractViolation, check_contract
from ._storage import CompressedStorage, inner_dimension, outer_dimension

__all__ = ['convert_storage', 'convert_mat_storage']

logger = logging.getLogger("cstore.sparse.convert")


def _output(out: Optional[np.ndarray], name: str, size: int, dtype) -> np.ndarray:
    if out is None:
        return np.empty(size, dtype=dtype)
    if out.ndim != 1 or out.shape[0] != size:
        raise ContractViolation(f"{name} output must be 1-D of length {size}, got shape {out.shape}")
    return out


def convert_storage(
    storage: CompressedStorage,
    shape: Tuple[int, int],
    indptr: Any,
    indices: Any,
    data: Any,
    out_indptr: Optional[np.ndarray] = None,
    out_indices: Optional[np.ndarray] = None,
    out_data: Optional[np.ndarray] = None,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Convert raw buffers of a ``storage`` matrix into the opposite storage.

    ``indptr`` may be a window whose first offset is non-zero; only the
    positions it covers are read.

    Args:
        storage: Storage of the input buffers.
        shape: (rows, cols), unchanged by the conversion.
        indptr, indices, data: Input buffers.
        out_indptr, out_indices, out_data: Optional preallocated outputs of
            lengths inner_dims + 1, nnz and nnz. Filled in place.

    Returns:
        (indptr, indices, data) of the converted matrix.

    Example:
        >>> convert_storage(CSR, (2, 3), [0, 2, 3], [0, 2, 1], [1., 2., 3.])
        (array([0, 1, 2, 3]), array([0, 1, 0]), array([1., 3., 2.]))
    """
    rows, cols = shape
    outer = outer_dimension(storage, rows, cols)
    inner = inner_dimension(storage, rows, cols)

    indptr = np.asarray(indptr)
    indices = np.asarray(indices)
    data = np.asarray(data)
    check_contract(indptr.shape[0] == outer + 1, "indptr length does not match the outer dimension")

    start, end = int(indptr[0]), int(indptr[-1])
    run_indices = indices[start:end]
    run_data = data[start:end]
    nnz = end - start

    index_dtype = indptr.dtype if np.issubdtype(indptr.dtype, np.integer) else np.int64
    new_indptr = _output(out_indptr, "indptr", inner + 1, index_dtype)
    new_indices = _output(out_indices, "indices", nnz, index_dtype)
    new_data = _output(out_data, "data", nnz, data.dtype)

    # histogram + exclusive prefix sum
    slots = run_indices.astype(np.intp, copy=False)
    counts = np.bincount(slots, minlength=inner) if nnz else np.zeros(inner, dtype=np.int64)
    check_contract(counts.shape[0] == inner, "an inner index exceeds the inner dimension")
    new_indptr[0] = 0
    new_indptr[1:] = np.cumsum(counts)
    check_contract(int(new_indptr[-1]) == nnz, "offset prefix sum does not match nnz")

    # scatter in outer order: every destination cursor advances once per
    # placed non-zero, so each new slice receives its outer indices ascending
    cursor = np.array(new_indptr[:-1], dtype=np.intp)
    bounds = (indptr.astype(np.intp) - start).tolist()
    for outer_idx in range(outer):
        lo, hi = bounds[outer_idx], bounds[outer_idx + 1]
        if lo == hi:
            continue
        targets = slots[lo:hi]
        dest = cursor[targets]
        new_indices[dest] = outer_idx
        new_data[dest] = run_data[lo:hi]
        cursor[targets] += 1
    check_contract(np.array_equal(cursor, new_indptr[1:]),
                   "an inner index repeats within an outer slice")

    logger.debug("Converted %s matrix %s with %d non-zeros to %s",
                 storage.name, shape, nnz, storage.other_storage().name)
    return new_indptr, new_indices, new_data


def convert_mat_storage(mat) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Convert a matrix' buffers into the opposite storage.

    Returns:
        (indptr, indices, data) describing the same matrix in
        ``mat.storage.other_storage()`` order.
    """
    return convert_storage(mat.storage, mat.shape, mat.indptr, mat.indices, mat.data)
