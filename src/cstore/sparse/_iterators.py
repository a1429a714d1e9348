"""
Outer Iteration

Iterators over the outer slices of a compressed matrix. None of them copy:
each step yields a view whose ``indices`` / ``data`` are windows of the
matrix buffers.

    OuterIterator       -> SparseVecView per outer index, double ended
    OuterIteratorPerm   -> (permuted outer index, SparseVecView)
    OuterIteratorMut    -> SparseVecViewMut with a writeable data window
    OuterBlockIterator  -> sub-matrix views of block_size outer slices
"""

from typing import Iterator, Optional, Tuple

from ..error import ContractViolation
from ._ownership import OwnershipTracker
from ._permutation import Permutation
from ._storage import CSR
from ._vector import SparseVecView, SparseVecViewMut

__all__ = [
    'OuterIterator',
    'OuterIteratorPerm',
    'OuterIteratorMut',
    'OuterBlockIterator',
]


class OuterIterator:
    """
    Iterate the outer slices of a matrix in ascending order.

    Front and back advance independently; ``len()`` is the number of slices
    not yet yielded from either end.

    Example:
        >>> it = mat.outer_iterator()
        >>> first = next(it)
        >>> last = it.next_back()
        >>> len(it) == mat.outer_dims - 2
        True
    """

    _vector_type = SparseVecView

    def __init__(self, mat):
        self._inner = mat.inner_dims
        self._indptr = mat.indptr
        self._indices = mat.indices
        self._data = self._values(mat)
        self._ownership = OwnershipTracker.view(mat, writeable=self._data.flags.writeable)
        self._front = 0
        self._back = mat.outer_dims

    def _values(self, mat):
        return mat.data

    def _make(self, outer: int) -> SparseVecView:
        self._ownership.ensure_valid()
        start, end = int(self._indptr[outer]), int(self._indptr[outer + 1])
        return self._vector_type(self._inner, self._indices[start:end], self._data[start:end],
                                 offset=start, _ownership=self._ownership)

    def __iter__(self) -> Iterator[SparseVecView]:
        return self

    def __next__(self) -> SparseVecView:
        if self._front >= self._back:
            raise StopIteration
        vec = self._make(self._front)
        self._front += 1
        return vec

    def next_back(self) -> Optional[SparseVecView]:
        """Yield the last remaining slice, or None when exhausted."""
        if self._front >= self._back:
            return None
        self._back -= 1
        return self._make(self._back)

    def __reversed__(self) -> Iterator[SparseVecView]:
        while True:
            vec = self.next_back()
            if vec is None:
                return
            yield vec

    def reversed(self) -> Iterator[SparseVecView]:
        return self.__reversed__()

    def __len__(self) -> int:
        return self._back - self._front


class OuterIteratorMut(OuterIterator):
    """
    Outer iteration yielding mutable vector views.

    Each yielded ``SparseVecViewMut`` owns a disjoint window of the values
    buffer, so writes through different views never alias.
    """

    _vector_type = SparseVecViewMut

    def _values(self, mat):
        return mat.data_mut()


class OuterIteratorPerm:
    """
    Outer iteration in permuted order.

    For CSR the permutation is applied directly; for CSC its inverse is
    used. Step ``i`` yields ``(p, view of slice p)`` with ``p`` the
    oriented permutation at ``i``.
    """

    def __init__(self, mat, perm: Permutation):
        if perm.dim != mat.outer_dims:
            raise ContractViolation(
                f"permutation dimension {perm.dim} does not match outer dimension {mat.outer_dims}"
            )
        self._inner = mat.inner_dims
        self._indptr = mat.indptr
        self._indices = mat.indices
        self._data = mat.data
        self._perm = perm if mat.storage is CSR else perm.inv()
        self._ownership = OwnershipTracker.view(mat)
        self._pos = 0

    def __iter__(self) -> Iterator[Tuple[int, SparseVecView]]:
        return self

    def __next__(self) -> Tuple[int, SparseVecView]:
        if self._pos >= self._perm.dim:
            raise StopIteration
        self._ownership.ensure_valid()
        outer = self._perm.at(self._pos)
        self._pos += 1
        start, end = int(self._indptr[outer]), int(self._indptr[outer + 1])
        vec = SparseVecView(self._inner, self._indices[start:end], self._data[start:end],
                            offset=start, _ownership=self._ownership)
        return outer, vec

    def __len__(self) -> int:
        return self._perm.dim - self._pos


class OuterBlockIterator:
    """
    Iterate contiguous blocks of ``block_size`` outer slices.

    Yields ``middle_outer_views`` sub-matrices; the last block holds the
    remaining slices. A ``block_size`` of 0 yields nothing.

    Example:
        >>> [b.shape for b in CsMatrix.eye(5).outer_block_iter(2)]
        [(2, 5), (2, 5), (1, 5)]
    """

    def __init__(self, mat, block_size: int):
        if block_size < 0:
            raise ContractViolation(f"block_size must be non-negative, got {block_size}")
        self._mat = mat
        self._block_size = block_size
        self._cur = 0

    def __iter__(self):
        return self

    def __next__(self):
        outer = self._mat.outer_dims
        if self._block_size == 0 or self._cur >= outer:
            raise StopIteration
        count = min(self._block_size, outer - self._cur)
        block = self._mat.middle_outer_views(self._cur, count)
        self._cur += count
        return block

    def __len__(self) -> int:
        if self._block_size == 0:
            return 0
        remaining = max(self._mat.outer_dims - self._cur, 0)
        return -(-remaining // self._block_size)
