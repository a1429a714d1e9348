"""
cstore - Compressed Sparse Matrix Storage

Storage engine for matrices dominated by zero entries:
- CSR / CSC compressed storage in one matrix type
- Owned (growable) and borrowed / view buffers
- Structural validation with typed errors
- Counting-sort CSR <-> CSC conversion
- Incremental building through insert and append
- Outer iteration (plain, reversed, permuted, mutable, blocked)

Modules:
- sparse: matrix, views, iterators and algorithms
- error: error codes and exception hierarchy

Architecture:
    ┌──────────────────────────────────────────────┐
    │            CsMatrix (CSR | CSC)              │
    ├──────────────────────────────────────────────┤
    │  Buffers: OwnedStorage | BorrowedStorage     │
    │  Ownership: OWNED | BORROWED | VIEW          │
    └──────────────────────────────────────────────┘

Example:
    >>> import cstore
    >>> from cstore.sparse import CsMatrix
    >>>
    >>> mat = CsMatrix.eye(3)
    >>> mat.insert(0, 2, 4.0)
    >>> view = mat.view()
    >>> print(view.ownership)  # Ownership.VIEW
    >>>
    >>> owned = view.to_csc()
    >>> print(owned.ownership)  # Ownership.OWNED
"""

__version__ = '0.1.0'

from . import error
from . import sparse

from ._config import (
    ValueType,
    IndexType,
    get_config,
    set_precision,
    get_precision,
)

from .error import (
    SparseError,
    StructureError,
    StructureErrorKind,
    ContractViolation,
    MissingNonzeroError,
    OutOfBoundsError,
    ReadOnlyViewError,
    StaleViewError,
    StaleHandleError,
)

from .sparse import (
    CsMatrix,
    CompressedStorage,
    CSR,
    CSC,
    Ownership,
    NonzeroIndex,
    Permutation,
    SparseVecView,
    SparseVecViewMut,
    check_compressed_structure,
    from_scipy,
    to_scipy,
)

__all__ = [
    # Version
    '__version__',

    # Modules
    'error',
    'sparse',

    # Configuration
    'ValueType',
    'IndexType',
    'get_config',
    'set_precision',
    'get_precision',

    # Errors
    'SparseError',
    'StructureError',
    'StructureErrorKind',
    'ContractViolation',
    'MissingNonzeroError',
    'OutOfBoundsError',
    'ReadOnlyViewError',
    'StaleViewError',
    'StaleHandleError',

    # Core types
    'CsMatrix',
    'CompressedStorage',
    'CSR',
    'CSC',
    'Ownership',
    'NonzeroIndex',
    'Permutation',
    'SparseVecView',
    'SparseVecViewMut',

    # Functions
    'check_compressed_structure',
    'from_scipy',
    'to_scipy',
]
