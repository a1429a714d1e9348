"""Ownership and Reference Management.

This module tracks who owns the buffers of a compressed matrix and keeps
views from outliving, or silently diverging from, their source.

Key Concepts:
    - Reference Chain: A view holds a strong reference to the matrix it
      was derived from, so the source buffers cannot be garbage collected.
      Nested chains are flattened to the root owner.
    - Generation: Every owner carries a counter of structural mutations
      (insert, append, resort, in-place transpose). A view records the
      counter of its root owner when created; once the counter moves on,
      the view is stale and any checked access raises StaleViewError.

Safety Model:
    1. OWNED data: the matrix owns growable buffers and may mutate them.
    2. BORROWED data: caller-supplied arrays; the caller promises not to
       modify them structurally while the matrix is alive.
    3. VIEW data: derived from another matrix; reference chain plus
       generation stamp.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from .._config import get_config
from ..error import StaleViewError

__all__ = [
    'Ownership',
    'RefChain',
    'OwnershipTracker',
    'ensure_alive',
]


class Ownership(Enum):
    """Data ownership model.

    Attributes:
        OWNED: Matrix owns the underlying buffers and may grow them.
               Created by: new(), empty(), eye(), to_owned(), conversions.
        BORROWED: Matrix wraps caller-supplied arrays.
                  Created by: new_view(), new_view_unchecked(),
                  from_scipy(copy=False).
        VIEW: Matrix is derived from another matrix.
              Created by: view(), transpose_view(), middle_outer_views().
    """
    OWNED = 'owned'
    BORROWED = 'borrowed'
    VIEW = 'view'


# =============================================================================
# Reference Chain
# =============================================================================

@dataclass
class RefChain:
    """Maintains reference chain for view matrices.

    RefChain stores strong references to all ancestors in the view
    hierarchy so that the root buffers stay alive as long as any view
    does.

    Example:
        >>> mat = CsMatrix.eye(4)
        >>> block = mat.middle_outer_views(0, 2)   # refs: [mat]
        >>> tview = block.transpose_view()          # refs: [block, mat]
        >>> del mat, block                          # tview still valid
    """
    _refs: List[Any] = field(default_factory=list)

    def add(self, source: Any) -> None:
        """Add source to reference chain, flattening its own chain."""
        if source is None:
            return
        if any(ref is source for ref in self._refs):
            return
        self._refs.append(source)
        tracker = getattr(source, '_ownership', None)
        if tracker is not None:
            for ancestor in tracker.ref_chain._refs:
                if not any(ref is ancestor for ref in self._refs):
                    self._refs.append(ancestor)

    @property
    def count(self) -> int:
        """Number of held references."""
        return len(self._refs)

    @property
    def is_empty(self) -> bool:
        return len(self._refs) == 0

    def __repr__(self) -> str:
        return f"RefChain(count={self.count})"


# =============================================================================
# Ownership Tracker
# =============================================================================

class OwnershipTracker:
    """Tracks ownership, writeability and freshness of a matrix' buffers.

    Attributes:
        ownership: OWNED, BORROWED or VIEW.
        writeable: Whether values may be modified through this matrix.
        ref_chain: Strong references to ancestors (views only).

    Example:
        >>> tracker = OwnershipTracker.view(owner)
        >>> owner.insert(0, 0, 1.0)     # bumps owner's generation
        >>> tracker.is_valid
        False
    """

    __slots__ = ('_ownership', '_writeable', '_generation', '_root', '_stamp', 'ref_chain')

    def __init__(
        self,
        ownership: Ownership,
        writeable: bool,
        root: Optional['OwnershipTracker'] = None,
    ):
        self._ownership = ownership
        self._writeable = writeable
        self._generation = 0
        self._root = root
        self._stamp = root._generation if root is not None else 0
        self.ref_chain = RefChain()

    @classmethod
    def owned(cls) -> 'OwnershipTracker':
        """Create tracker for owned data."""
        return cls(Ownership.OWNED, writeable=True)

    @classmethod
    def borrowed(cls, source: Any = None, writeable: bool = False) -> 'OwnershipTracker':
        """Create tracker for caller-supplied buffers.

        Args:
            source: Object to keep alive (e.g. a scipy matrix).
            writeable: Whether values may be modified.
        """
        tracker = cls(Ownership.BORROWED, writeable=writeable)
        tracker.ref_chain.add(source)
        return tracker

    @classmethod
    def view(cls, source: Any, writeable: bool = False) -> 'OwnershipTracker':
        """Create tracker for a view derived from ``source`` (a matrix)."""
        parent = source._ownership
        root = parent if parent._root is None else parent._root
        if parent._ownership is Ownership.BORROWED:
            root = None
        tracker = cls(Ownership.VIEW, writeable=writeable and parent._writeable, root=root)
        tracker.ref_chain.add(source)
        return tracker

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def ownership(self) -> Ownership:
        return self._ownership

    @property
    def is_owned(self) -> bool:
        return self._ownership is Ownership.OWNED

    @property
    def is_borrowed(self) -> bool:
        return self._ownership is Ownership.BORROWED

    @property
    def is_view(self) -> bool:
        return self._ownership is Ownership.VIEW

    @property
    def writeable(self) -> bool:
        return self._writeable

    @property
    def generation(self) -> int:
        """Current generation of the buffers this tracker refers to."""
        if self._root is not None:
            return self._root._generation
        return self._generation

    @property
    def is_valid(self) -> bool:
        """False once the root owner was structurally modified."""
        if self._root is None:
            return True
        return self._root._generation == self._stamp

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def bump(self) -> None:
        """Record a structural mutation (owners only)."""
        self._generation += 1

    def ensure_valid(self) -> None:
        """Raise if the source of this view was structurally modified.

        Raises:
            StaleViewError: If generation checks are enabled and the view
                is stale.
        """
        if self._root is not None and get_config().check_generations and not self.is_valid:
            raise StaleViewError(
                f"view created at generation {self._stamp} but its source is at "
                f"generation {self._root._generation}; recreate the view"
            )

    def __repr__(self) -> str:
        if self.is_owned:
            return f"OwnershipTracker(owned, generation={self._generation})"
        if self.is_borrowed:
            return f"OwnershipTracker(borrowed, writeable={self._writeable})"
        state = "valid" if self.is_valid else "stale"
        return f"OwnershipTracker(view, {state}, writeable={self._writeable})"


# =============================================================================
# Utility Functions
# =============================================================================

def ensure_alive(obj: Any) -> None:
    """Ensure object's data source is still valid.

    Args:
        obj: Object carrying an ``_ownership`` tracker.

    Raises:
        StaleViewError: If the source was structurally modified.
    """
    tracker = getattr(obj, '_ownership', None)
    if tracker is not None:
        tracker.ensure_valid()
