"""
Compressed Sparse Matrix

``CsMatrix`` stores a sparse matrix in compressed row (CSR) or compressed
column (CSC) order using three parallel buffers:

    - indptr[outer_dims + 1]: offsets of each outer slice
    - indices[nnz]: inner index of every stored value, ascending per slice
    - data[nnz]: stored values

A matrix either owns growable buffers (and may be mutated structurally),
borrows caller-supplied arrays, or is a view derived from another matrix.
See ``cstore.sparse._ownership`` for the safety model.

Example:
    >>> mat = CsMatrix.eye(3)
    >>> mat.insert(0, 2, 5.0)
    >>> mat.get(0, 2)
    5.0
    >>> csc = mat.to_csc()
    >>> for vec in csc.outer_iterator():
    ...     print(vec.indices, vec.data)
"""

import logging
from typing import Any, Callable, Iterator, Optional, Tuple, Union

import numpy as np

from .._config import _get_index_dtype, _get_value_dtype
from ..error import (
    CSTORE_ERROR_DIMENSION_MISMATCH,
    ContractViolation,
    MissingNonzeroError,
    OutOfBoundsError,
    ReadOnlyViewError,
    StructureError,
    check_contract,
)
from . import _ops
from ._backend import BorrowedStorage, OwnedStorage, Storage
from ._convert import convert_mat_storage
from ._index import NonzeroIndex, check_handle
from ._iterators import OuterBlockIterator, OuterIterator, OuterIteratorMut, OuterIteratorPerm
from ._ownership import Ownership, OwnershipTracker
from ._permutation import Permutation
from ._storage import (
    CSC,
    CSR,
    CompressedStorage,
    inner_dimension,
    outer_dimension,
    outer_inner,
    row_col,
)
from ._validate import check_buffer_layout, check_compressed_structure as validate_structure
from ._vector import SparseVecView, SparseVecViewMut, check_scalable

__all__ = ['CsMatrix']

logger = logging.getLogger("cstore.sparse.matrix")


# =============================================================================
# Helpers
# =============================================================================

def _readonly(arr: np.ndarray) -> np.ndarray:
    out = arr.view()
    out.flags.writeable = False
    return out


def _as_shape(shape: Any) -> Tuple[int, int]:
    rows, cols = shape
    rows, cols = int(rows), int(cols)
    if rows < 0 or cols < 0:
        raise ContractViolation(f"shape must be non-negative, got {(rows, cols)}")
    return rows, cols


def _sort_slices(indptr: np.ndarray, indices: np.ndarray, data: np.ndarray) -> int:
    """
    Sort every outer slice by inner index, co-permuting values.

    Stable, so duplicate indices stay adjacent for the structure check to
    report. Returns the number of slices that had to be reordered.
    """
    nnz = indices.shape[0]
    outer = indptr.shape[0] - 1
    if nnz < 2 or outer < 1 or int(indptr[-1]) != nnz:
        return 0
    lengths = np.diff(indptr).astype(np.intp, copy=False)
    if np.any(lengths < 0) or int(indptr[0]) != 0:
        return 0

    slice_of = np.repeat(np.arange(outer), lengths)
    descending = (indices[1:] < indices[:-1]) & (slice_of[1:] == slice_of[:-1])
    unsorted = np.unique(slice_of[1:][descending])
    if unsorted.shape[0] == 0:
        return 0

    longest = int(lengths[unsorted].max())
    scratch_indices = np.empty(longest, dtype=indices.dtype)
    scratch_data = np.empty(longest, dtype=data.dtype)
    for outer_idx in unsorted.tolist():
        start, end = int(indptr[outer_idx]), int(indptr[outer_idx + 1])
        n = end - start
        order = np.argsort(indices[start:end], kind='stable')
        np.take(indices[start:end], order, out=scratch_indices[:n])
        np.take(data[start:end], order, out=scratch_data[:n])
        indices[start:end] = scratch_indices[:n]
        data[start:end] = scratch_data[:n]
    return unsorted.shape[0]


# =============================================================================
# CsMatrix
# =============================================================================

class CsMatrix:
    """
    Compressed sparse matrix in CSR or CSC storage.

    Instances are created through the classmethod constructors
    (``new``, ``new_csc``, ``new_view``, ``eye``, ``from_dense``, ...), never
    by calling the class directly.

    Attributes:
        storage: CompressedStorage.CSR or CompressedStorage.CSC.
        shape: (rows, cols).
        indptr, indices, data: Read-only numpy views of the buffers.
        ownership: OWNED, BORROWED or VIEW.

    Memory Model:
        - OWNED: growable buffers; supports insert, append_outer, reserve_*.
        - BORROWED: caller-supplied arrays, read-only.
        - VIEW: derived from another matrix; becomes stale when the owner
          is structurally modified.
    """

    __slots__ = ('_storage', '_shape', '_buffers', '_ownership', '__weakref__')

    # defer ``ndarray <op> CsMatrix`` to our reflected operators
    __array_ufunc__ = None

    def __init__(
        self,
        storage: CompressedStorage,
        shape: Tuple[int, int],
        buffers: Storage,
        ownership: OwnershipTracker,
    ):
        self._storage = storage
        self._shape = shape
        self._buffers = buffers
        self._ownership = ownership

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def _from_trusted(cls, storage, shape, indptr, indices, data, copy=True) -> 'CsMatrix':
        """Owned matrix from buffers already known to be valid."""
        buffers = OwnedStorage.from_numpy(
            indptr, indices, data, index_dtype=_get_index_dtype(), copy=copy
        )
        return cls(storage, _as_shape(shape), buffers, OwnershipTracker.owned())

    @classmethod
    def _borrow(cls, storage, shape, indptr, indices, data, source=None,
                check: bool = True) -> 'CsMatrix':
        """Borrowed read-only matrix over caller arrays."""
        shape = _as_shape(shape)
        indptr = np.asarray(indptr)
        indices = np.asarray(indices)
        data = np.asarray(data)
        if check:
            validate_structure(storage, shape, indptr, indices, data)
        buffers = BorrowedStorage(_readonly(indptr), _readonly(indices), _readonly(data),
                                  _source_ref=source)
        return cls(storage, shape, buffers, OwnershipTracker.borrowed(source))

    @classmethod
    def new(
        cls,
        shape: Tuple[int, int],
        indptr: Any,
        indices: Any,
        data: Any,
        storage: CompressedStorage = CSR,
    ) -> 'CsMatrix':
        """
        Create an owned matrix from raw buffers.

        The buffers are copied and each outer slice is sorted by inner index,
        so unsorted input is accepted.

        Args:
            shape: (rows, cols).
            indptr: Offsets, length outer_dims + 1.
            indices: Inner indices.
            data: Values.
            storage: CSR (default) or CSC.

        Raises:
            ContractViolation: For any other malformed input (lengths,
                offsets, out-of-range or duplicate indices). The underlying
                StructureError is attached as ``__cause__``.

        Example:
            >>> mat = CsMatrix.new((2, 3), [0, 2, 3], [2, 0, 1], [1., 2., 3.])
            >>> mat.indices
            array([0, 2, 1])
        """
        shape = _as_shape(shape)
        indptr = np.asarray(indptr)
        indices = np.asarray(indices)
        data = np.asarray(data)
        try:
            check_buffer_layout(indptr, indices, data)
            buffers = OwnedStorage.from_numpy(indptr, indices, data, index_dtype=_get_index_dtype())
            resorted = _sort_slices(buffers.indptr, buffers.indices, buffers.data)
            if resorted:
                logger.debug("Sorted indices of %d outer slices on construction", resorted)
            validate_structure(storage, shape, buffers.indptr, buffers.indices, buffers.data)
        except StructureError as err:
            raise ContractViolation(f"invalid compressed input: {err.message}") from err
        return cls(storage, shape, buffers, OwnershipTracker.owned())

    @classmethod
    def new_csc(cls, shape: Tuple[int, int], indptr: Any, indices: Any, data: Any) -> 'CsMatrix':
        """Create an owned CSC matrix from raw buffers (see ``new``)."""
        return cls.new(shape, indptr, indices, data, storage=CSC)

    @classmethod
    def new_view(
        cls,
        storage: CompressedStorage,
        shape: Tuple[int, int],
        indptr: Any,
        indices: Any,
        data: Any,
    ) -> 'CsMatrix':
        """
        Create a validated read-only view over caller arrays.

        Raises:
            StructureError: First structural invariant the buffers violate.
        """
        return cls._borrow(storage, shape, indptr, indices, data)

    @classmethod
    def new_view_unchecked(
        cls,
        storage: CompressedStorage,
        shape: Tuple[int, int],
        indptr: Any,
        indices: Any,
        data: Any,
    ) -> 'CsMatrix':
        """
        Create a read-only view without validating the buffers.

        The caller guarantees every invariant of ``check_compressed_structure``;
        algorithms rely on them without further checks.
        """
        return cls._borrow(storage, shape, indptr, indices, data, check=False)

    @classmethod
    def empty(cls, storage: CompressedStorage, inner_size: int) -> 'CsMatrix':
        """Owned matrix with no outer slice, for incremental building."""
        shape = row_col(storage, 0, inner_size)
        index_dtype = _get_index_dtype()
        return cls._from_trusted(
            storage, shape,
            np.zeros(1, dtype=index_dtype),
            np.empty(0, dtype=index_dtype),
            np.empty(0, dtype=_get_value_dtype()),
            copy=False,
        )

    @classmethod
    def zero(cls, shape: Tuple[int, int]) -> 'CsMatrix':
        """Owned CSR matrix of the given shape with no stored value."""
        rows, cols = _as_shape(shape)
        index_dtype = _get_index_dtype()
        return cls._from_trusted(
            CSR, (rows, cols),
            np.zeros(rows + 1, dtype=index_dtype),
            np.empty(0, dtype=index_dtype),
            np.empty(0, dtype=_get_value_dtype()),
            copy=False,
        )

    @classmethod
    def eye(cls, n: int, storage: CompressedStorage = CSR) -> 'CsMatrix':
        """Owned ``n x n`` identity."""
        index_dtype = _get_index_dtype()
        return cls._from_trusted(
            storage, (n, n),
            np.arange(n + 1, dtype=index_dtype),
            np.arange(n, dtype=index_dtype),
            np.ones(n, dtype=_get_value_dtype()),
            copy=False,
        )

    @classmethod
    def eye_csc(cls, n: int) -> 'CsMatrix':
        """Owned ``n x n`` identity in CSC storage."""
        return cls.eye(n, storage=CSC)

    @classmethod
    def from_dense(cls, array: Any, storage: CompressedStorage = CSR) -> 'CsMatrix':
        """
        Owned matrix holding the non-zero entries of a 2-D array.

        Example:
            >>> CsMatrix.from_dense([[1, 0], [0, 2]]).nnz
            2
        """
        array = np.asarray(array)
        if array.ndim != 2:
            raise ContractViolation(f"from_dense expects a 2-D array, got {array.ndim}-D")
        oriented = array if storage is CSR else array.T
        outer_idx, inner_idx = np.nonzero(oriented)
        index_dtype = _get_index_dtype()
        indptr = np.zeros(oriented.shape[0] + 1, dtype=index_dtype)
        indptr[1:] = np.cumsum(np.bincount(outer_idx, minlength=oriented.shape[0]))
        return cls._from_trusted(
            storage, array.shape, indptr, inner_idx.astype(index_dtype),
            oriented[outer_idx, inner_idx], copy=False,
        )

    @classmethod
    def from_scipy(cls, mat: Any, copy: bool = True) -> 'CsMatrix':
        """Create from a scipy sparse matrix (see ``cstore.sparse.from_scipy``)."""
        return _ops.from_scipy(mat, copy=copy)

    # =========================================================================
    # Capacity
    # =========================================================================

    def _owned_buffers(self, operation: str) -> OwnedStorage:
        if not self._ownership.is_owned:
            raise ReadOnlyViewError(f"{operation} requires an owned matrix, got {self.ownership.value}")
        return self._buffers

    def reserve_outer_dim(self, n: int) -> None:
        """Reserve room for ``n`` more outer slices."""
        self._owned_buffers("reserve_outer_dim").reserve_outer(n)

    def reserve_nnz(self, n: int) -> None:
        """Reserve room for ``n`` more stored values."""
        self._owned_buffers("reserve_nnz").reserve_nnz(n)

    def reserve_outer_dim_exact(self, n: int) -> None:
        """Reserve exactly ``n`` more outer slices, without growth slack."""
        self._owned_buffers("reserve_outer_dim_exact").reserve_outer_exact(n)

    def reserve_nnz_exact(self, n: int) -> None:
        """Reserve exactly ``n`` more stored values, without growth slack."""
        self._owned_buffers("reserve_nnz_exact").reserve_nnz_exact(n)

    # =========================================================================
    # Properties
    # =========================================================================

    def _arrays(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        self._ownership.ensure_valid()
        buffers = self._buffers
        return buffers.indptr, buffers.indices, buffers.data

    @property
    def storage(self) -> CompressedStorage:
        return self._storage

    @property
    def shape(self) -> Tuple[int, int]:
        return self._shape

    @property
    def rows(self) -> int:
        return self._shape[0]

    @property
    def cols(self) -> int:
        return self._shape[1]

    @property
    def outer_dims(self) -> int:
        return outer_dimension(self._storage, *self._shape)

    @property
    def inner_dims(self) -> int:
        return inner_dimension(self._storage, *self._shape)

    @property
    def nnz(self) -> int:
        """Number of stored values."""
        indptr = self._arrays()[0]
        return int(indptr[-1] - indptr[0])

    @property
    def is_csr(self) -> bool:
        return self._storage is CSR

    @property
    def is_csc(self) -> bool:
        return self._storage is CSC

    @property
    def density(self) -> float:
        """Fraction of stored values, 0.0 for an empty shape."""
        size = self._shape[0] * self._shape[1]
        return self.nnz / size if size else 0.0

    @property
    def ownership(self) -> Ownership:
        return self._ownership.ownership

    @property
    def is_owned(self) -> bool:
        return self._ownership.is_owned

    @property
    def is_view(self) -> bool:
        """True for borrowed matrices and derived views."""
        return not self._ownership.is_owned

    @property
    def is_writeable(self) -> bool:
        """Whether stored values may be modified through this matrix."""
        return self._ownership.writeable

    @property
    def generation(self) -> int:
        """Structural mutation counter of the underlying buffers."""
        return self._ownership.generation

    @property
    def indptr(self) -> np.ndarray:
        """Offsets of the outer slices (read-only)."""
        return _readonly(self._arrays()[0])

    @property
    def indices(self) -> np.ndarray:
        """Inner indices (read-only)."""
        return _readonly(self._arrays()[1])

    @property
    def data(self) -> np.ndarray:
        """Stored values (read-only); see ``data_mut`` for writing."""
        return _readonly(self._arrays()[2])

    def data_mut(self) -> np.ndarray:
        """
        Writeable view of the stored values.

        Raises:
            ReadOnlyViewError: If the matrix is a read-only view.
        """
        if not self._ownership.writeable:
            raise ReadOnlyViewError("matrix values are read-only; use view_mut() or an owned matrix")
        return self._arrays()[2]

    @property
    def dtype(self) -> np.dtype:
        return self._buffers.data.dtype

    @property
    def index_dtype(self) -> np.dtype:
        return self._buffers.indices.dtype

    # =========================================================================
    # Element Access
    # =========================================================================

    def _position(self, outer: int, inner: int) -> Optional[int]:
        if not (0 <= outer < self.outer_dims and 0 <= inner < self.inner_dims):
            return None
        indptr, indices, _ = self._arrays()
        start, end = int(indptr[outer]), int(indptr[outer + 1])
        pos = start + int(np.searchsorted(indices[start:end], inner))
        if pos < end and indices[pos] == inner:
            return pos
        return None

    def get_outer_inner(self, outer: int, inner: int):
        """Stored value at (outer, inner), or None."""
        pos = self._position(outer, inner)
        if pos is None:
            return None
        return self._arrays()[2][pos]

    def get(self, row: int, col: int):
        """
        Stored value at (row, col), or None when nothing is stored there.

        O(log s) in the length s of the addressed outer slice.
        """
        return self.get_outer_inner(*outer_inner(self._storage, row, col))

    def get_mut(self, row: int, col: int) -> Optional[np.ndarray]:
        """One-element writeable window on the value at (row, col), or None."""
        values = self.data_mut()
        pos = self._position(*outer_inner(self._storage, row, col))
        if pos is None:
            return None
        return values[pos:pos + 1]

    def set(self, row: int, col: int, value) -> None:
        """
        Overwrite an existing stored value.

        Raises:
            MissingNonzeroError: If nothing is stored at (row, col).
            ReadOnlyViewError: If the matrix is read-only.
        """
        values = self.data_mut()
        pos = self._position(*outer_inner(self._storage, row, col))
        if pos is None:
            raise MissingNonzeroError(row, col)
        values[pos] = value

    def nonzero_index_outer_inner(self, outer: int, inner: int) -> Optional[NonzeroIndex]:
        pos = self._position(outer, inner)
        if pos is None:
            return None
        return NonzeroIndex(pos, self._ownership.generation)

    def nonzero_index(self, row: int, col: int) -> Optional[NonzeroIndex]:
        """
        Locate the stored value at (row, col).

        Returns:
            A NonzeroIndex for O(1) access through ``mat[handle]``, or None.
        """
        return self.nonzero_index_outer_inner(*outer_inner(self._storage, row, col))

    def __getitem__(self, key):
        if isinstance(key, NonzeroIndex):
            return self._arrays()[2][check_handle(key, self._ownership.generation)]
        row, col = key
        value = self.get(row, col)
        if value is None:
            raise MissingNonzeroError(row, col)
        return value

    def __setitem__(self, key, value) -> None:
        if isinstance(key, NonzeroIndex):
            values = self.data_mut()
            values[check_handle(key, self._ownership.generation)] = value
            return
        row, col = key
        self.set(row, col, value)

    def iter_nonzeros(self) -> Iterator[Tuple[Any, Tuple[int, int]]]:
        """Yield ``(value, (row, col))`` in storage order."""
        for pos, (row, col) in self._iter_positions():
            yield self._arrays()[2][pos], (row, col)

    def iter_nonzero_indices(self) -> Iterator[Tuple[Tuple[int, int], NonzeroIndex]]:
        """Yield ``((row, col), NonzeroIndex)`` in storage order."""
        for pos, (row, col) in self._iter_positions():
            yield (row, col), NonzeroIndex(pos, self._ownership.generation)

    def _iter_positions(self) -> Iterator[Tuple[int, Tuple[int, int]]]:
        indptr, indices, _ = self._arrays()
        bounds = indptr.tolist()
        inner = indices.tolist()
        for outer in range(len(bounds) - 1):
            for pos in range(bounds[outer], bounds[outer + 1]):
                yield pos, row_col(self._storage, outer, inner[pos])

    # =========================================================================
    # Structural Mutation (owners only)
    # =========================================================================

    def _set_dims(self, outer: int, inner: int) -> None:
        self._shape = row_col(self._storage, outer, inner)

    def insert(self, row: int, col: int, value) -> None:
        """
        Insert or overwrite the value at (row, col).

        Appending in outer order is amortized O(1); inserting in the middle
        of the buffers is O(nnz). Coordinates past the current shape grow
        the matrix.

        Raises:
            ReadOnlyViewError: If the matrix does not own its buffers.
            OutOfBoundsError: For negative coordinates.
        """
        buffers = self._owned_buffers("insert")
        if row < 0 or col < 0:
            raise OutOfBoundsError(f"cannot insert at negative location ({row}, {col})")
        outer, inner = outer_inner(self._storage, row, col)
        outer_dims, inner_dims = self.outer_dims, self.inner_dims

        if inner >= inner_dims:
            inner_dims = inner + 1

        if outer >= outer_dims:
            last = int(buffers.indptr[-1])
            for _ in range(outer - outer_dims):
                buffers.push_offset(last)
            buffers.append_nonzero(inner, value)
            buffers.push_offset(last + 1)
            if outer > outer_dims:
                logger.debug("Insert grew outer dimension from %d to %d", outer_dims, outer + 1)
            outer_dims = outer + 1
        else:
            indptr = buffers.indptr
            start, end = int(indptr[outer]), int(indptr[outer + 1])
            pos = start + int(np.searchsorted(buffers.indices[start:end], inner))
            if pos < end and buffers.indices[pos] == inner:
                buffers.data[pos] = value
                self._set_dims(outer_dims, inner_dims)
                return
            if pos < buffers.nnz:
                logger.debug("Out-of-order insert at (%d, %d): shifting %d values",
                             row, col, buffers.nnz - pos)
            buffers.insert_nonzero(pos, inner, value)
            buffers.indptr[outer + 1:] += 1

        self._set_dims(outer_dims, inner_dims)
        self._ownership.bump()

    def append_outer(self, values: Any) -> 'CsMatrix':
        """
        Append one outer slice from dense values, keeping the non-zeros.

        Args:
            values: 1-D array of length ``inner_dims``.

        Returns:
            self, for chaining.
        """
        buffers = self._owned_buffers("append_outer")
        values = np.asarray(values)
        if values.ndim != 1 or values.shape[0] != self.inner_dims:
            raise ContractViolation(
                f"append_outer expects {self.inner_dims} values, got shape {values.shape}",
                code=CSTORE_ERROR_DIMENSION_MISMATCH,
            )
        nz = np.flatnonzero(values)
        buffers.extend_nonzeros(nz, values[nz])
        buffers.push_offset(buffers.nnz)
        self._set_dims(self.outer_dims + 1, self.inner_dims)
        self._ownership.bump()
        return self

    def append_outer_sparse(self, vec: SparseVecView) -> 'CsMatrix':
        """
        Append one outer slice from a sparse vector of dimension ``inner_dims``.

        Returns:
            self, for chaining.
        """
        buffers = self._owned_buffers("append_outer_sparse")
        if vec.dim != self.inner_dims:
            raise ContractViolation(
                f"vector dimension {vec.dim} does not match inner dimension {self.inner_dims}",
                code=CSTORE_ERROR_DIMENSION_MISMATCH,
            )
        try:
            vec.check_structure()
        except StructureError as err:
            raise ContractViolation(f"invalid sparse vector: {err.message}") from err
        buffers.extend_nonzeros(vec.indices, vec.data)
        buffers.push_offset(buffers.nnz)
        self._set_dims(self.outer_dims + 1, self.inner_dims)
        self._ownership.bump()
        return self

    def transpose_mut(self) -> None:
        """Transpose in place by flipping the storage; O(1), no data moves."""
        self._owned_buffers("transpose_mut")
        rows, cols = self._shape
        self._storage = self._storage.other_storage()
        self._shape = (cols, rows)
        self._ownership.bump()

    def transpose_into(self) -> 'CsMatrix':
        """Transpose in place and return self."""
        self.transpose_mut()
        return self

    def transpose_view(self) -> 'CsMatrix':
        """Read-only transposed view sharing the buffers."""
        rows, cols = self._shape
        return self._derive(self._storage.other_storage(), (cols, rows), self._arrays()[0])

    # =========================================================================
    # Value Transforms
    # =========================================================================

    def scale(self, factor) -> None:
        """
        Multiply every stored value by ``factor`` in place.

        The value dtype is kept, so a factor that would promote it (a float
        factor on integer data) raises ContractViolation; use ``map`` instead.
        """
        values = self.data_mut()
        check_scalable(values, factor)
        values *= factor

    def map(self, f: Callable[[np.ndarray], Any]) -> 'CsMatrix':
        """
        New owned matrix with the same pattern and values ``f(data)``.

        ``f`` receives the whole value array. Results equal to zero stay
        stored.
        """
        indptr, indices, data = _ops._rebased(self)
        mapped = np.asarray(f(data))
        check_contract(mapped.shape == data.shape,
                       f"map function returned shape {mapped.shape}, expected {data.shape}")
        return CsMatrix._from_trusted(self._storage, self._shape, indptr, indices, mapped)

    def map_inplace(self, f: Callable[[np.ndarray], Any]) -> None:
        """Replace the stored values by ``f(data)``; the pattern is unchanged."""
        values = self.data_mut()
        start, end = int(self._arrays()[0][0]), int(self._arrays()[0][-1])
        window = values[start:end]
        window[:] = f(window)

    # =========================================================================
    # Views
    # =========================================================================

    def _derive(self, storage: CompressedStorage, shape: Tuple[int, int],
                indptr: np.ndarray, writeable: bool = False) -> 'CsMatrix':
        _, indices, data = self._arrays()
        tracker = OwnershipTracker.view(self, writeable=writeable)
        if not tracker.writeable:
            data = _readonly(data)
        buffers = BorrowedStorage(_readonly(indptr), _readonly(indices), data)
        return CsMatrix(storage, shape, buffers, tracker)

    def view(self) -> 'CsMatrix':
        """Read-only view of the whole matrix."""
        return self._derive(self._storage, self._shape, self._arrays()[0])

    def view_mut(self) -> 'CsMatrix':
        """View whose values (but not structure) may be modified."""
        if not self._ownership.writeable:
            raise ReadOnlyViewError("cannot create a mutable view of a read-only matrix")
        return self._derive(self._storage, self._shape, self._arrays()[0], writeable=True)

    def to_owned(self) -> 'CsMatrix':
        """Deep copy into a new owned matrix."""
        indptr, indices, data = _ops._rebased(self)
        return CsMatrix._from_trusted(self._storage, self._shape, indptr, indices, data)

    def _outer_vec(self, i: int, mutable: bool) -> Optional[SparseVecView]:
        if not 0 <= i < self.outer_dims:
            return None
        indptr, indices, data = self._arrays()
        start, end = int(indptr[i]), int(indptr[i + 1])
        tracker = OwnershipTracker.view(self, writeable=mutable)
        if mutable:
            return SparseVecViewMut(self.inner_dims, _readonly(indices[start:end]), data[start:end],
                                    offset=start, _ownership=tracker)
        return SparseVecView(self.inner_dims, _readonly(indices[start:end]),
                             _readonly(data[start:end]), offset=start, _ownership=tracker)

    def outer_view(self, i: int) -> Optional[SparseVecView]:
        """Sparse vector view of outer slice ``i``, or None when out of range."""
        return self._outer_vec(i, mutable=False)

    def outer_view_mut(self, i: int) -> Optional[SparseVecViewMut]:
        """Mutable sparse vector view of outer slice ``i``, or None when out of range."""
        self.data_mut()
        return self._outer_vec(i, mutable=True)

    def middle_outer_views(self, start: int, count: int) -> 'CsMatrix':
        """
        Sub-matrix view over outer slices ``start .. start + count``.

        The view shares the full ``indices`` / ``data`` buffers and a window
        of ``indptr``; O(1).

        Raises:
            ContractViolation: If ``count`` is 0.
            OutOfBoundsError: If the range exceeds the outer dimension.
        """
        if count == 0:
            raise ContractViolation("middle_outer_views requires a non-empty range")
        end = start + count
        if start < 0 or count < 0 or start >= self.outer_dims or end > self.outer_dims:
            raise OutOfBoundsError(
                f"outer range [{start}, {end}) out of bounds for {self.outer_dims} slices"
            )
        indptr = self._arrays()[0][start:end + 1]
        shape = row_col(self._storage, count, self.inner_dims)
        return self._derive(self._storage, shape, indptr)

    # =========================================================================
    # Iteration
    # =========================================================================

    def outer_iterator(self) -> OuterIterator:
        """Iterate outer slices as SparseVecView (double ended)."""
        self._ownership.ensure_valid()
        return OuterIterator(self)

    def outer_iterator_perm(self, perm: Permutation) -> OuterIteratorPerm:
        """Iterate outer slices in permuted order, yielding (outer, SparseVecView)."""
        self._ownership.ensure_valid()
        return OuterIteratorPerm(self, perm)

    def outer_iterator_mut(self) -> OuterIteratorMut:
        """Iterate outer slices as SparseVecViewMut."""
        self._ownership.ensure_valid()
        return OuterIteratorMut(self)

    def outer_block_iter(self, block_size: int) -> OuterBlockIterator:
        """Iterate sub-matrix views of ``block_size`` outer slices."""
        self._ownership.ensure_valid()
        return OuterBlockIterator(self, block_size)

    # =========================================================================
    # Conversion
    # =========================================================================

    def to_other_storage(self) -> 'CsMatrix':
        """Same matrix in the opposite storage, as a new owned matrix."""
        indptr, indices, data = convert_mat_storage(self)
        return CsMatrix._from_trusted(self._storage.other_storage(), self._shape,
                                      indptr, indices, data, copy=False)

    def to_csr(self) -> 'CsMatrix':
        """New owned CSR matrix (copy when already CSR)."""
        return self.to_owned() if self.is_csr else self.to_other_storage()

    def to_csc(self) -> 'CsMatrix':
        """New owned CSC matrix (copy when already CSC)."""
        return self.to_owned() if self.is_csc else self.to_other_storage()

    def to_dense(self) -> np.ndarray:
        """Dense 2-D numpy array."""
        return _ops.to_dense(self)

    def to_scipy(self, copy: bool = False) -> Any:
        """scipy.sparse csr_matrix / csc_matrix (see ``cstore.sparse.to_scipy``)."""
        return _ops.to_scipy(self, copy=copy)

    def check_compressed_structure(self) -> None:
        """
        Validate the buffers of this matrix.

        Raises:
            StructureError: First violated invariant.
        """
        indptr, indices, data = _ops._rebased(self)
        validate_structure(self._storage, self._shape, indptr, indices, data)

    # =========================================================================
    # Operators
    # =========================================================================

    def __matmul__(self, other):
        if isinstance(other, CsMatrix):
            return _ops.multiply(self, other)
        if isinstance(other, (np.ndarray, list, tuple)):
            return _ops.multiply_dense(self, other)
        return NotImplemented

    def __mul__(self, other):
        if np.isscalar(other):
            return _ops.scalar_mul(self, other)
        return NotImplemented

    __rmul__ = __mul__

    def __add__(self, other):
        if isinstance(other, CsMatrix):
            if other.storage is not self._storage:
                other = other.to_other_storage()
            return _ops.add_same_storage(self, other)
        if isinstance(other, np.ndarray):
            return _ops.add_dense(self, other)
        return NotImplemented

    def __radd__(self, other):
        if isinstance(other, np.ndarray):
            return _ops.add_dense(self, other)
        return NotImplemented

    def __sub__(self, other):
        if isinstance(other, CsMatrix):
            if other.storage is not self._storage:
                other = other.to_other_storage()
            return _ops.sub_same_storage(self, other)
        return NotImplemented

    def __eq__(self, other) -> bool:
        if not isinstance(other, CsMatrix):
            return NotImplemented
        if self._storage is not other._storage or self._shape != other._shape:
            return False
        mine = _ops._rebased(self)
        theirs = _ops._rebased(other)
        return all(np.array_equal(a, b) for a, b in zip(mine, theirs))

    __hash__ = None

    def __repr__(self) -> str:
        return (
            f"CsMatrix(storage={self._storage.name}, shape={self._shape}, "
            f"nnz={self.nnz}, ownership={self.ownership.value})"
        )
