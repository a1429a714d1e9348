"""
Numeric Operations and Interop

Dense materialization, arithmetic kernels and scipy conversion for
``CsMatrix``. Sparse kernels wrap the compressed buffers in scipy matrices
(without copying where scipy accepts the arrays as they are), let
``scipy.sparse`` do the arithmetic and bring the result back as an owned
``CsMatrix`` in the storage of the left operand.

Example:
    >>> a = CsMatrix.eye(3)
    >>> b = multiply(a, a)          # sparse x sparse -> CsMatrix
    >>> y = multiply_dense(a, x)    # sparse x dense  -> ndarray
    >>> s = to_scipy(a)             # scipy.sparse.csr_matrix
"""

import logging
from typing import Any, TYPE_CHECKING

import numpy as np
import scipy.sparse as sp

from ..error import (
    CSTORE_ERROR_DIMENSION_MISMATCH,
    ContractViolation,
)
from ._storage import CSR, CompressedStorage

if TYPE_CHECKING:
    from ._matrix import CsMatrix

__all__ = [
    'assign_to_dense',
    'to_dense',
    'multiply',
    'multiply_dense',
    'add_same_storage',
    'sub_same_storage',
    'add_dense',
    'scalar_mul',
    'to_scipy',
    'from_scipy',
]

logger = logging.getLogger("cstore.sparse.ops")


def _dimension_mismatch(message: str) -> ContractViolation:
    return ContractViolation(message, code=CSTORE_ERROR_DIMENSION_MISMATCH)


def _rebased(mat: 'CsMatrix'):
    """Buffers of ``mat`` with offsets starting at zero."""
    indptr = mat.indptr
    start, end = int(indptr[0]), int(indptr[-1])
    if start == 0 and end == mat.indices.shape[0]:
        return indptr, mat.indices, mat.data
    return indptr - start, mat.indices[start:end], mat.data[start:end]


# =============================================================================
# Dense Materialization
# =============================================================================

def assign_to_dense(out: np.ndarray, mat: 'CsMatrix') -> None:
    """
    Write the stored values of ``mat`` into ``out``.

    ``out`` is not zeroed first: locations without a stored value keep
    their previous content.

    Args:
        out: 2-D array of shape ``mat.shape``.
        mat: Source matrix.
    """
    if out.shape != mat.shape:
        raise _dimension_mismatch(f"dense output shape {out.shape} != matrix shape {mat.shape}")
    indptr, indices, data = _rebased(mat)
    outer_of = np.repeat(np.arange(mat.outer_dims), np.diff(indptr).astype(np.intp, copy=False))
    if mat.storage is CSR:
        out[outer_of, indices] = data
    else:
        out[indices, outer_of] = data


def to_dense(mat: 'CsMatrix') -> np.ndarray:
    """Dense 2-D copy of ``mat``."""
    out = np.zeros(mat.shape, dtype=mat.dtype)
    assign_to_dense(out, mat)
    return out


# =============================================================================
# Scipy Interop
# =============================================================================

def to_scipy(mat: 'CsMatrix', copy: bool = False) -> Any:
    """
    Convert to scipy.sparse.csr_matrix or csc_matrix.

    With ``copy=False`` the value buffer is shared. scipy may still pick a
    narrower index dtype and copy the index arrays; sub-matrix windows are
    always rebased into fresh offsets.

    Returns:
        scipy CSR matrix for CSR storage, CSC matrix otherwise.
    """
    indptr, indices, data = _rebased(mat)
    cls = sp.csr_matrix if mat.storage is CSR else sp.csc_matrix
    return cls((data, indices, indptr), shape=mat.shape, copy=copy)


def from_scipy(mat: Any, copy: bool = True) -> 'CsMatrix':
    """
    Create CsMatrix from a scipy sparse matrix.

    CSR input gives CSR storage and CSC input CSC storage; any other scipy
    format is converted to CSR first.

    Args:
        mat: scipy sparse matrix.
        copy: If True, copy into an owned matrix (duplicates are summed,
              indices sorted). If False, return a validated borrowed view
              over scipy's arrays.

    Returns:
        CsMatrix.

    Raises:
        TypeError: If ``mat`` is not a scipy sparse matrix.
        StructureError: If ``copy=False`` and scipy's arrays are not in
            canonical form.

    Example:
        >>> import scipy.sparse as sp
        >>> mat = from_scipy(sp.csr_matrix([[1, 0], [0, 2]]))
    """
    from ._matrix import CsMatrix

    if not sp.issparse(mat):
        raise TypeError(f"Expected scipy sparse matrix, got {type(mat).__name__}")

    if mat.format not in ('csr', 'csc'):
        mat = mat.tocsr()
        copy = True
    storage = CompressedStorage(mat.format)

    if not copy:
        return CsMatrix._borrow(storage, mat.shape, mat.indptr, mat.indices, mat.data, source=mat)

    if not mat.has_canonical_format:
        mat = mat.copy()
        mat.sum_duplicates()
    return CsMatrix.new(mat.shape, mat.indptr, mat.indices, mat.data, storage=storage)


def _from_scipy_result(result: Any, storage: CompressedStorage) -> 'CsMatrix':
    return from_scipy(result.asformat(storage.value), copy=True)


# =============================================================================
# Arithmetic Kernels
# =============================================================================

def multiply(lhs: 'CsMatrix', rhs: 'CsMatrix') -> 'CsMatrix':
    """Sparse x sparse product, in the storage of ``lhs``."""
    if lhs.cols != rhs.rows:
        raise _dimension_mismatch(f"cannot multiply {lhs.shape} by {rhs.shape}")
    result = to_scipy(lhs) @ to_scipy(rhs)
    logger.debug("Sparse product %s x %s -> nnz=%d", lhs.shape, rhs.shape, result.nnz)
    return _from_scipy_result(result, lhs.storage)


def multiply_dense(mat: 'CsMatrix', dense: Any) -> np.ndarray:
    """Sparse x dense product; ``dense`` is 1-D or 2-D, the result is dense."""
    dense = np.asarray(dense)
    if dense.ndim not in (1, 2):
        raise _dimension_mismatch(f"dense operand must be 1-D or 2-D, got {dense.ndim}-D")
    if dense.shape[0] != mat.cols:
        raise _dimension_mismatch(f"cannot multiply {mat.shape} by {dense.shape}")
    return np.asarray(to_scipy(mat) @ dense)


def _check_same_storage(lhs: 'CsMatrix', rhs: 'CsMatrix') -> None:
    if lhs.storage is not rhs.storage:
        raise ContractViolation(f"storage mismatch: {lhs.storage.name} and {rhs.storage.name}")
    if lhs.shape != rhs.shape:
        raise _dimension_mismatch(f"shape mismatch: {lhs.shape} and {rhs.shape}")


def add_same_storage(lhs: 'CsMatrix', rhs: 'CsMatrix') -> 'CsMatrix':
    """Sum of two matrices sharing storage and shape."""
    _check_same_storage(lhs, rhs)
    return _from_scipy_result(to_scipy(lhs) + to_scipy(rhs), lhs.storage)


def sub_same_storage(lhs: 'CsMatrix', rhs: 'CsMatrix') -> 'CsMatrix':
    """Difference of two matrices sharing storage and shape."""
    _check_same_storage(lhs, rhs)
    return _from_scipy_result(to_scipy(lhs) - to_scipy(rhs), lhs.storage)


def add_dense(mat: 'CsMatrix', dense: Any) -> np.ndarray:
    """Sparse + dense, giving a dense array."""
    dense = np.asarray(dense)
    if dense.shape != mat.shape:
        raise _dimension_mismatch(f"shape mismatch: {mat.shape} and {dense.shape}")
    out = dense.astype(np.result_type(dense.dtype, mat.dtype), copy=True)
    indptr, indices, data = _rebased(mat)
    outer_of = np.repeat(np.arange(mat.outer_dims), np.diff(indptr).astype(np.intp, copy=False))
    if mat.storage is CSR:
        out[outer_of, indices] += data
    else:
        out[indices, outer_of] += data
    return out


def scalar_mul(mat: 'CsMatrix', factor: Any) -> 'CsMatrix':
    """New owned matrix with every stored value multiplied by ``factor``."""
    from ._matrix import CsMatrix

    indptr, indices, data = _rebased(mat)
    return CsMatrix._from_trusted(mat.storage, mat.shape, indptr, indices, data * factor)
