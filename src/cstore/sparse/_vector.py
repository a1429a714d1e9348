"""
Sparse Vector Views

Views over a single outer slice of a compressed matrix (or over any pair of
parallel index / value arrays). A view never copies: ``indices`` and
``data`` are windows of the parent buffers, ``offset`` is the position of
the first element inside those buffers.
"""

from typing import Any, Callable, Iterator, Optional, Tuple

import numpy as np

from ..error import (
    MissingNonzeroError,
    ReadOnlyViewError,
    StructureErrorKind,
    check_contract,
    structure_error,
)

__all__ = ['SparseVecView', 'SparseVecViewMut']


def check_scalable(values: np.ndarray, factor) -> None:
    """Reject factors whose product cannot be stored back into ``values``."""
    result = np.result_type(values.dtype, factor)
    check_contract(
        np.can_cast(result, values.dtype, casting="same_kind"),
        f"cannot scale {values.dtype} values in place by a {result} factor",
    )


class SparseVecView:
    """
    Read-only sparse vector.

    Attributes:
        dim: Logical length of the vector.
        indices: Sorted positions of stored values.
        data: Stored values, parallel to ``indices``.
        offset: Position of ``indices[0]`` in the parent buffers.

    Example:
        >>> vec = SparseVecView(5, np.array([1, 3]), np.array([2.0, 4.0]))
        >>> vec.get(3)
        4.0
        >>> list(vec)
        [(1, 2.0), (3, 4.0)]
    """

    __slots__ = ('_dim', '_indices', '_data', '_offset', '_ownership')

    def __init__(self, dim: int, indices: Any, data: Any, offset: int = 0,
                 _ownership: Any = None):
        self._dim = int(dim)
        self._indices = np.asarray(indices)
        self._data = np.asarray(data)
        self._offset = int(offset)
        self._ownership = _ownership

    def _check_alive(self) -> None:
        if self._ownership is not None:
            self._ownership.ensure_valid()

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def dim(self) -> int:
        return self._dim

    @property
    def nnz(self) -> int:
        return self._indices.shape[0]

    @property
    def indices(self) -> np.ndarray:
        self._check_alive()
        return self._indices

    @property
    def data(self) -> np.ndarray:
        self._check_alive()
        return self._data

    @property
    def offset(self) -> int:
        return self._offset

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def nonzero_index(self, index: int) -> Optional[int]:
        """Local position of ``index`` in the stored run, or None (O(log nnz))."""
        self._check_alive()
        pos = int(np.searchsorted(self._indices, index))
        if pos < self._indices.shape[0] and self._indices[pos] == index:
            return pos
        return None

    def get(self, index: int):
        """Stored value at ``index``, or None."""
        pos = self.nonzero_index(index)
        if pos is None:
            return None
        return self._data[pos]

    def __iter__(self) -> Iterator[Tuple[int, Any]]:
        self._check_alive()
        for idx, value in zip(self._indices.tolist(), self._data):
            yield idx, value

    def __len__(self) -> int:
        return self.nnz

    # -------------------------------------------------------------------------
    # Conversion / Validation
    # -------------------------------------------------------------------------

    def to_dense(self) -> np.ndarray:
        """Dense 1-D copy of the vector."""
        self._check_alive()
        out = np.zeros(self._dim, dtype=self._data.dtype)
        out[self._indices] = self._data
        return out

    def check_structure(self) -> None:
        """
        Validate the stored run.

        Raises:
            StructureError: ``DATA_INDICES_MISMATCH`` when lengths differ,
                ``NON_SORTED_INDICES`` when indices are not strictly
                ascending, ``OUT_OF_BOUNDS_INDEX`` when an index lies
                outside ``[0, dim)``.
        """
        indices = self._indices
        if indices.shape[0] != self._data.shape[0]:
            raise structure_error(
                StructureErrorKind.DATA_INDICES_MISMATCH,
                f"{indices.shape[0]} indices, {self._data.shape[0]} values",
            )
        if indices.shape[0] == 0:
            return
        if indices.shape[0] > 1 and np.any(indices[1:] <= indices[:-1]):
            raise structure_error(StructureErrorKind.NON_SORTED_INDICES)
        # sorted, so the extremes are at the ends
        if indices[0] < 0 or indices[-1] >= self._dim:
            raise structure_error(
                StructureErrorKind.OUT_OF_BOUNDS_INDEX,
                f"index outside [0, {self._dim})",
            )

    def __eq__(self, other) -> bool:
        if not isinstance(other, SparseVecView):
            return NotImplemented
        return (
            self._dim == other._dim
            and np.array_equal(self._indices, other._indices)
            and np.array_equal(self._data, other._data)
        )

    __hash__ = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(dim={self._dim}, nnz={self.nnz})"


class SparseVecViewMut(SparseVecView):
    """
    Sparse vector whose values may be modified in place.

    The sparsity pattern stays read-only; only ``data`` is writeable.
    """

    __slots__ = ()

    def __init__(self, dim: int, indices: Any, data: Any, offset: int = 0,
                 _ownership: Any = None):
        super().__init__(dim, indices, data, offset, _ownership)
        if not self._data.flags.writeable:
            raise ReadOnlyViewError("SparseVecViewMut requires writeable data")

    def get_mut(self, index: int) -> Optional[np.ndarray]:
        """One-element writeable window on the value at ``index``, or None."""
        pos = self.nonzero_index(index)
        if pos is None:
            return None
        return self._data[pos:pos + 1]

    def set(self, index: int, value) -> None:
        """Overwrite the stored value at ``index``; it must exist."""
        pos = self.nonzero_index(index)
        if pos is None:
            raise MissingNonzeroError(index)
        self._data[pos] = value

    def scale(self, factor) -> None:
        self._check_alive()
        check_scalable(self._data, factor)
        self._data *= factor

    def map_inplace(self, f: Callable[[np.ndarray], Any]) -> None:
        """Replace values by ``f(values)``; zeros are kept as stored entries."""
        self._check_alive()
        self._data[:] = f(self._data)
