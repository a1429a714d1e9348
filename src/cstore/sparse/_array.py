"""
Growable Array Container

Contiguous numpy-backed buffer with a separate length and capacity, used as
the owned storage of compressed matrices. Appends are amortized O(1);
``insert`` shifts the tail in place inside the reserved capacity.

The live elements are always exposed as a numpy view ``buffer[:len]``.
Views obtained before a reallocation keep pointing at the previous
allocation, so callers must treat them as invalid after any growth.
"""

from typing import Any, Optional, Sequence, Union

import numpy as np

__all__ = ['Array', 'empty', 'zeros', 'from_list', 'from_numpy']


_MIN_CAPACITY = 4


class Array:
    """
    Growable contiguous array.

    Attributes:
        dtype (np.dtype): Element type.
        size (int): Number of live elements.
        capacity (int): Number of allocated elements.

    Example:
        >>> arr = Array.zeros(1, dtype='int64')
        >>> arr.append(3)
        >>> arr.view()
        array([0, 3])
    """

    __slots__ = ('_buf', '_size')

    def __init__(self, size: int = 0, dtype: Union[str, np.dtype] = 'float64',
                 capacity: Optional[int] = None):
        """
        Allocate an uninitialized array.

        Args:
            size: Number of live elements.
            dtype: Element dtype.
            capacity: Allocated elements (at least ``size``).
        """
        if size < 0:
            raise ValueError(f"Array size must be non-negative, got {size}")
        if capacity is None or capacity < size:
            capacity = size
        self._buf = np.empty(capacity, dtype=dtype)
        self._size = size

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def size(self) -> int:
        """Number of live elements."""
        return self._size

    @property
    def capacity(self) -> int:
        """Number of allocated elements."""
        return self._buf.shape[0]

    @property
    def dtype(self) -> np.dtype:
        """Element dtype."""
        return self._buf.dtype

    @property
    def nbytes(self) -> int:
        """Bytes used by live elements."""
        return self._size * self._buf.itemsize

    # -------------------------------------------------------------------------
    # Initialization Methods
    # -------------------------------------------------------------------------

    @classmethod
    def zeros(cls, size: int, dtype: Union[str, np.dtype] = 'float64') -> 'Array':
        """Create zero-initialized array."""
        arr = cls(size, dtype)
        arr._buf[:] = 0
        return arr

    @classmethod
    def from_numpy(cls, values: Any, dtype: Union[str, np.dtype, None] = None) -> 'Array':
        """Create array holding a copy of ``values``."""
        src = np.asarray(values, dtype=dtype)
        if src.ndim != 1:
            raise ValueError(f"Array requires 1-D input, got {src.ndim}-D")
        arr = cls(src.shape[0], src.dtype)
        arr._buf[:] = src
        return arr

    @classmethod
    def adopt(cls, values: np.ndarray, dtype: Union[str, np.dtype, None] = None) -> 'Array':
        """Take over a freshly allocated 1-D array as the buffer (no copy when contiguous)."""
        buf = np.ascontiguousarray(values, dtype=dtype)
        if buf.ndim != 1:
            raise ValueError(f"Array requires 1-D input, got {buf.ndim}-D")
        if not buf.flags.writeable:
            buf = buf.copy()
        arr = cls.__new__(cls)
        arr._buf = buf
        arr._size = buf.shape[0]
        return arr

    @classmethod
    def from_list(cls, data: Sequence, dtype: Union[str, np.dtype] = 'float64') -> 'Array':
        """Create array from Python list."""
        return cls.from_numpy(np.asarray(data, dtype=dtype))

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def view(self, writeable: bool = True) -> np.ndarray:
        """Numpy view of the live elements (no copy)."""
        out = self._buf[:self._size]
        if not writeable:
            out.flags.writeable = False
        return out

    def to_numpy(self) -> np.ndarray:
        """Copy of the live elements."""
        return self._buf[:self._size].copy()

    def tolist(self) -> list:
        return self._buf[:self._size].tolist()

    # -------------------------------------------------------------------------
    # Capacity
    # -------------------------------------------------------------------------

    def _reallocate(self, capacity: int) -> None:
        new_buf = np.empty(capacity, dtype=self._buf.dtype)
        new_buf[:self._size] = self._buf[:self._size]
        self._buf = new_buf

    def reserve(self, additional: int) -> None:
        """Ensure room for ``additional`` more elements, growing geometrically."""
        needed = self._size + additional
        if needed <= self.capacity:
            return
        self._reallocate(max(needed, 2 * self.capacity, _MIN_CAPACITY))

    def reserve_exact(self, capacity: int) -> None:
        """Ensure a capacity of at least ``capacity`` elements, without slack."""
        if capacity > self.capacity:
            self._reallocate(capacity)

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def append(self, value) -> None:
        """Append one element (amortized O(1))."""
        self.reserve(1)
        self._buf[self._size] = value
        self._size += 1

    def extend(self, values) -> None:
        """Append several elements."""
        values = np.asarray(values)
        n = values.shape[0] if values.ndim else 1
        self.reserve(n)
        self._buf[self._size:self._size + n] = values
        self._size += n

    def insert(self, position: int, value) -> None:
        """Insert one element before ``position``, shifting the tail by one."""
        if position < 0 or position > self._size:
            raise IndexError(f"Insert position {position} out of bounds [0, {self._size}]")
        self.reserve(1)
        # numpy resolves the overlapping copy
        self._buf[position + 1:self._size + 1] = self._buf[position:self._size]
        self._buf[position] = value
        self._size += 1

    # -------------------------------------------------------------------------
    # Element Access
    # -------------------------------------------------------------------------

    def __getitem__(self, idx):
        return self.view()[idx]

    def __setitem__(self, idx, value):
        self.view()[idx] = value

    def __len__(self) -> int:
        return self._size

    def copy(self) -> 'Array':
        """Create a deep copy (capacity trimmed to size)."""
        return Array.from_numpy(self.view())

    def __repr__(self) -> str:
        if self._size <= 6:
            data_str = str(self.tolist())
        else:
            values = self.tolist()
            data_str = str(values[:3] + ['...'] + values[-3:])
        return f"Array({data_str}, dtype={self.dtype})"


# =============================================================================
# Factory Functions
# =============================================================================

def empty(size: int, dtype: Union[str, np.dtype] = 'float64') -> Array:
    """Create uninitialized array."""
    return Array(size, dtype)


def zeros(size: int, dtype: Union[str, np.dtype] = 'float64') -> Array:
    """Create zero-initialized array."""
    return Array.zeros(size, dtype)


def from_list(data: Sequence, dtype: Union[str, np.dtype] = 'float64') -> Array:
    """Create array from Python list."""
    return Array.from_list(data, dtype)


def from_numpy(values: Any, dtype: Union[str, np.dtype, None] = None) -> Array:
    """Create array holding a copy of a numpy array."""
    return Array.from_numpy(values, dtype)
