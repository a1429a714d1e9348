"""
Permutation View

A permutation of ``0..n-1`` stored together with its inverse, so that both
directions and the inverse permutation itself are O(1) to obtain.
"""

from typing import Any, Optional

import numpy as np

from .._config import _get_index_dtype
from ..error import ContractViolation, OutOfBoundsError

__all__ = ['Permutation']


class Permutation:
    """
    Permutation of the integers ``0..dim-1``.

    ``at(i)`` returns ``perm[i]``; ``at_inv(i)`` returns ``perm_inv[i]``.

    Example:
        >>> p = Permutation([2, 0, 1])
        >>> p.at(0), p.at_inv(2)
        (2, 0)
        >>> p.inv().at(2)
        0
    """

    __slots__ = ('_perm', '_perm_inv')

    def __init__(self, perm: Any, _perm_inv: Optional[np.ndarray] = None):
        perm = np.asarray(perm, dtype=_get_index_dtype())
        if perm.ndim != 1:
            raise ContractViolation(f"permutation must be 1-D, got {perm.ndim}-D")
        if _perm_inv is None:
            n = perm.shape[0]
            seen = np.zeros(n, dtype=bool)
            if n and (perm.min() < 0 or perm.max() >= n):
                raise ContractViolation(f"permutation entries must lie in [0, {n})")
            seen[perm] = True
            if not seen.all():
                raise ContractViolation("permutation contains duplicate entries")
            _perm_inv = np.empty_like(perm)
            _perm_inv[perm] = np.arange(n, dtype=perm.dtype)
        perm.flags.writeable = False
        _perm_inv.flags.writeable = False
        self._perm = perm
        self._perm_inv = _perm_inv

    @classmethod
    def identity(cls, n: int) -> 'Permutation':
        """Identity permutation of dimension ``n``."""
        ident = np.arange(n, dtype=_get_index_dtype())
        return cls(ident, ident.copy())

    def inv(self) -> 'Permutation':
        """Inverse permutation, sharing both arrays."""
        return Permutation(self._perm_inv, self._perm)

    @property
    def dim(self) -> int:
        return self._perm.shape[0]

    @property
    def perm(self) -> np.ndarray:
        return self._perm

    @property
    def perm_inv(self) -> np.ndarray:
        return self._perm_inv

    def at(self, index: int) -> int:
        if not 0 <= index < self.dim:
            raise OutOfBoundsError(f"permutation index {index} out of bounds [0, {self.dim})")
        return int(self._perm[index])

    def at_inv(self, index: int) -> int:
        if not 0 <= index < self.dim:
            raise OutOfBoundsError(f"permutation index {index} out of bounds [0, {self.dim})")
        return int(self._perm_inv[index])

    def __len__(self) -> int:
        return self.dim

    def __repr__(self) -> str:
        return f"Permutation({self._perm.tolist()})"
