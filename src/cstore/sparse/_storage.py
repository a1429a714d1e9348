"""
Compressed Storage Orientation

A compressed matrix is either stored row by row (CSR) or column by column
(CSC). All algorithms are written once in terms of an *outer* dimension
(the one iterated slice by slice) and an *inner* dimension (the one
addressed inside a slice); the helpers below translate between
(row, col) and (outer, inner) for a given orientation.

    CSR: outer = row,    inner = col
    CSC: outer = col,    inner = row
"""

from enum import Enum
from typing import Tuple

__all__ = [
    'CompressedStorage',
    'CSR',
    'CSC',
    'outer_dimension',
    'inner_dimension',
    'outer_inner',
    'row_col',
]


class CompressedStorage(Enum):
    """Storage order of a compressed matrix."""
    CSR = 'csr'
    CSC = 'csc'

    def other_storage(self) -> 'CompressedStorage':
        """Return CSC for CSR and vice versa."""
        return CompressedStorage.CSC if self is CompressedStorage.CSR else CompressedStorage.CSR

    def __repr__(self) -> str:
        return f"CompressedStorage.{self.name}"


CSR = CompressedStorage.CSR
CSC = CompressedStorage.CSC


def outer_dimension(storage: CompressedStorage, rows: int, cols: int) -> int:
    """Size (or coordinate) along the outer dimension."""
    return rows if storage is CSR else cols


def inner_dimension(storage: CompressedStorage, rows: int, cols: int) -> int:
    """Size (or coordinate) along the inner dimension."""
    return cols if storage is CSR else rows


def outer_inner(storage: CompressedStorage, row: int, col: int) -> Tuple[int, int]:
    """Map (row, col) to (outer, inner)."""
    return (row, col) if storage is CSR else (col, row)


def row_col(storage: CompressedStorage, outer: int, inner: int) -> Tuple[int, int]:
    """Map (outer, inner) back to (row, col)."""
    return (outer, inner) if storage is CSR else (inner, outer)
