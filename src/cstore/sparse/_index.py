"""
Non-zero Index Handle

``NonzeroIndex`` is the result of a logarithmic lookup: the flat position of
a stored element inside the ``indices`` / ``data`` buffers. Reading or
writing through it afterwards is O(1).

A handle records the generation of the matrix buffers at lookup time.
Insertions, appends and in-place transposition move elements around, so a
handle created before such a change is rejected with ``StaleHandleError``
(unless generation checks are disabled).
"""

from dataclasses import dataclass

from .._config import get_config
from ..error import StaleHandleError

__all__ = ['NonzeroIndex', 'check_handle']


@dataclass(frozen=True)
class NonzeroIndex:
    """
    Opaque position of a stored element.

    Attributes:
        position: Flat position in the matrix buffers.
        generation: Buffer generation at lookup time.
    """
    position: int
    generation: int = 0


def check_handle(handle: NonzeroIndex, generation: int) -> int:
    """
    Return the handle's position after checking it is not stale.

    Raises:
        StaleHandleError: If generation checks are enabled and the matrix was
            structurally modified after the lookup.
    """
    if handle.generation != generation and get_config().check_generations:
        raise StaleHandleError(
            f"NonzeroIndex from generation {handle.generation} used at generation {generation}"
        )
    return handle.position
