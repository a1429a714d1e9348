"""cstore Sparse Matrix Module.

Compressed sparse row / column storage with owned and borrowed buffers,
structural validation, storage conversion and outer iteration.

Type Overview:

    CsMatrix                          # CSR or CSC, owned / borrowed / view
    ├── storage: CompressedStorage    # CSR | CSC
    ├── buffers: OwnedStorage         # growable Array buffers
    │        or  BorrowedStorage      # fixed numpy arrays
    └── ownership: OwnershipTracker   # OWNED | BORROWED | VIEW + generation
    SparseVecView / SparseVecViewMut  # one outer slice
    NonzeroIndex                      # O(1) handle to a stored value
    Permutation                       # permutation with cached inverse

Quick Start:
    >>> from cstore.sparse import CsMatrix, CSR
    >>>
    >>> mat = CsMatrix.empty(CSR, 4)
    >>> mat.insert(0, 1, 2.0)
    >>> mat.insert(2, 3, 1.0)          # grows the outer dimension
    >>> csc = mat.to_csc()
    >>> view = CsMatrix.new_view(CSR, (1, 2), [0, 1], [1], [3.0])

Key Functions:
    - check_compressed_structure: validate raw buffers
    - convert_storage, convert_mat_storage: CSR <-> CSC counting sort
    - from_scipy, to_scipy: scipy interop
"""

# =============================================================================
# Array (Foundation)
# =============================================================================
from ._array import (
    Array,
    zeros,
    empty,
    from_list,
    from_numpy,
)

# =============================================================================
# Storage & Ownership
# =============================================================================
from ._storage import (
    CompressedStorage,
    CSR,
    CSC,
    outer_dimension,
    inner_dimension,
    outer_inner,
    row_col,
)

from ._backend import (
    OwnedStorage,
    BorrowedStorage,
)

from ._ownership import (
    Ownership,
    RefChain,
    OwnershipTracker,
    ensure_alive,
)

# =============================================================================
# Collaborators
# =============================================================================
from ._permutation import Permutation
from ._vector import SparseVecView, SparseVecViewMut
from ._index import NonzeroIndex

# =============================================================================
# Algorithms
# =============================================================================
from ._validate import check_compressed_structure
from ._convert import convert_storage, convert_mat_storage

# =============================================================================
# Matrix
# =============================================================================
from ._matrix import CsMatrix

from ._iterators import (
    OuterIterator,
    OuterIteratorPerm,
    OuterIteratorMut,
    OuterBlockIterator,
)

# =============================================================================
# Operations
# =============================================================================
from ._ops import (
    assign_to_dense,
    to_dense,
    multiply,
    multiply_dense,
    add_same_storage,
    sub_same_storage,
    add_dense,
    scalar_mul,
    to_scipy,
    from_scipy,
)

__all__ = [
    # Array
    'Array',
    'zeros',
    'empty',
    'from_list',
    'from_numpy',

    # Storage
    'CompressedStorage',
    'CSR',
    'CSC',
    'outer_dimension',
    'inner_dimension',
    'outer_inner',
    'row_col',
    'OwnedStorage',
    'BorrowedStorage',

    # Ownership
    'Ownership',
    'RefChain',
    'OwnershipTracker',
    'ensure_alive',

    # Collaborators
    'Permutation',
    'SparseVecView',
    'SparseVecViewMut',
    'NonzeroIndex',

    # Algorithms
    'check_compressed_structure',
    'convert_storage',
    'convert_mat_storage',

    # Matrix & iteration
    'CsMatrix',
    'OuterIterator',
    'OuterIteratorPerm',
    'OuterIteratorMut',
    'OuterBlockIterator',

    # Operations
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
