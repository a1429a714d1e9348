"""Buffer Storage Abstraction.

A compressed matrix keeps its three buffers (indptr, indices, data) in one
of two storage objects sharing the same read interface:

    - OwnedStorage: growable ``Array`` buffers the matrix may extend
      (insert, append, reserve).
    - BorrowedStorage: fixed numpy arrays supplied by the caller or taken
      from another matrix (views, windows, scipy buffers).

Both expose ``indptr``, ``indices`` and ``data`` as numpy arrays over the
live elements. For owned storage these are fresh views of the current
allocation and must be re-fetched after any growth.
"""

from dataclasses import dataclass, field
from typing import Any, Union

import numpy as np

from ._array import Array

__all__ = [
    'OwnedStorage',
    'BorrowedStorage',
    'Storage',
]


# =============================================================================
# Owned Storage (Growable Arrays)
# =============================================================================

@dataclass
class OwnedStorage:
    """Storage for owning matrices.

    Attributes:
        indptr_buf: Offsets, length outer_dims + 1.
        indices_buf: Inner indices, length nnz.
        data_buf: Values, parallel to indices.

    Example:
        >>> storage = OwnedStorage.from_numpy(indptr, indices, data)
        >>> storage.append_nonzero(3, 1.5)
        >>> storage.push_offset(storage.nnz)
    """
    indptr_buf: Array
    indices_buf: Array
    data_buf: Array

    @classmethod
    def from_numpy(cls, indptr: Any, indices: Any, data: Any,
                   index_dtype: Union[str, np.dtype, None] = None,
                   copy: bool = True) -> 'OwnedStorage':
        """Build owned growable arrays from raw buffers.

        With ``copy=False`` the arrays are adopted as they are; only pass
        arrays nothing else references.
        """
        make = Array.from_numpy if copy else Array.adopt
        return cls(
            indptr_buf=make(indptr, dtype=index_dtype),
            indices_buf=make(indices, dtype=index_dtype),
            data_buf=make(data),
        )

    # -------------------------------------------------------------------------
    # Read Interface
    # -------------------------------------------------------------------------

    @property
    def indptr(self) -> np.ndarray:
        return self.indptr_buf.view()

    @property
    def indices(self) -> np.ndarray:
        return self.indices_buf.view()

    @property
    def data(self) -> np.ndarray:
        return self.data_buf.view()

    @property
    def nnz(self) -> int:
        return self.indices_buf.size

    @property
    def is_owned(self) -> bool:
        return True

    # -------------------------------------------------------------------------
    # Growth
    # -------------------------------------------------------------------------

    def push_offset(self, offset: int) -> None:
        """Append one entry to indptr, opening a new outer slice."""
        self.indptr_buf.append(offset)

    def append_nonzero(self, index: int, value) -> None:
        """Append one (index, value) pair at the end of the last slice."""
        self.indices_buf.append(index)
        self.data_buf.append(value)

    def extend_nonzeros(self, indices: np.ndarray, values: np.ndarray) -> None:
        """Append a run of (index, value) pairs."""
        self.indices_buf.extend(indices)
        self.data_buf.extend(values)

    def insert_nonzero(self, position: int, index: int, value) -> None:
        """Splice one (index, value) pair before ``position``."""
        self.indices_buf.insert(position, index)
        self.data_buf.insert(position, value)

    def reserve_outer(self, additional: int) -> None:
        self.indptr_buf.reserve(additional)

    def reserve_outer_exact(self, additional: int) -> None:
        self.indptr_buf.reserve_exact(self.indptr_buf.size + additional)

    def reserve_nnz(self, additional: int) -> None:
        self.indices_buf.reserve(additional)
        self.data_buf.reserve(additional)

    def reserve_nnz_exact(self, additional: int) -> None:
        self.indices_buf.reserve_exact(self.indices_buf.size + additional)
        self.data_buf.reserve_exact(self.data_buf.size + additional)

    def __repr__(self) -> str:
        return (
            f"OwnedStorage(outer={self.indptr_buf.size - 1}, nnz={self.nnz}, "
            f"capacity={self.indices_buf.capacity})"
        )


# =============================================================================
# Borrowed Storage (Fixed Arrays)
# =============================================================================

@dataclass
class BorrowedStorage:
    """Storage for borrowed buffers and views.

    ``indptr`` may be a window into a larger offsets array whose first
    entry is non-zero; ``indices`` and ``data`` are then the full buffers
    of the source.

    Attributes:
        indptr: Offsets (read-only).
        indices: Inner indices (read-only).
        data: Values; writeable only for mutable views.
        _source_ref: Object kept alive alongside the arrays.
    """
    indptr: np.ndarray
    indices: np.ndarray
    data: np.ndarray
    _source_ref: Any = field(default=None, repr=False)

    @property
    def nnz(self) -> int:
        if self.indptr.shape[0] == 0:
            return 0
        return int(self.indptr[-1] - self.indptr[0])

    @property
    def is_owned(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"BorrowedStorage(outer={self.indptr.shape[0] - 1}, nnz={self.nnz})"


Storage = Union[OwnedStorage, BorrowedStorage]
