"""
Error handling for cstore.

Two tiers of failure exist:

- Recoverable validation failures (``StructureError``) raised by checked
  constructors and explicit structure checks.
- Programmer errors (``ContractViolation`` and subclasses) raised when a
  caller breaks a documented precondition: malformed owned input, access to
  a location that is not stored, mutation through a read-only view, or use
  of a view / handle after its source was structurally modified.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


# =============================================================================
# Error Codes
# =============================================================================

# Success
CSTORE_OK = 0

# General errors (1-9)
CSTORE_ERROR_UNKNOWN = 1
CSTORE_ERROR_INTERNAL = 2

# Argument errors (10-19)
CSTORE_ERROR_INVALID_ARGUMENT = 10
CSTORE_ERROR_DIMENSION_MISMATCH = 11
CSTORE_ERROR_INDEX_OUT_OF_BOUNDS = 14

# Structure errors (20-29)
CSTORE_ERROR_INDPTR_LENGTH = 20
CSTORE_ERROR_DATA_INDICES_LENGTH = 21
CSTORE_ERROR_NNZ_MISMATCH = 22
CSTORE_ERROR_UNSORTED_INDPTR = 23
CSTORE_ERROR_INDPTR_OUT_OF_BOUNDS = 24
CSTORE_ERROR_UNSORTED_INDICES = 25
CSTORE_ERROR_INDEX_OUT_OF_RANGE = 26
CSTORE_ERROR_INDEX_DTYPE = 27

# Access errors (30-39)
CSTORE_ERROR_MISSING_NONZERO = 30
CSTORE_ERROR_READ_ONLY = 31
CSTORE_ERROR_STALE_VIEW = 32
CSTORE_ERROR_STALE_HANDLE = 33
CSTORE_ERROR_CONTRACT = 39


_ERROR_MESSAGES = {
    CSTORE_OK: "Success",
    CSTORE_ERROR_UNKNOWN: "Unknown error",
    CSTORE_ERROR_INTERNAL: "Internal error",
    CSTORE_ERROR_INVALID_ARGUMENT: "Invalid argument",
    CSTORE_ERROR_DIMENSION_MISMATCH: "Dimension mismatch",
    CSTORE_ERROR_INDEX_OUT_OF_BOUNDS: "Index out of bounds",
    CSTORE_ERROR_INDPTR_LENGTH: "Indptr length does not match the outer dimension",
    CSTORE_ERROR_DATA_INDICES_LENGTH: "Indices and data lengths do not match",
    CSTORE_ERROR_NNZ_MISMATCH: "Indices length and indptr's nnz do not match",
    CSTORE_ERROR_UNSORTED_INDPTR: "Indptr is not sorted",
    CSTORE_ERROR_INDPTR_OUT_OF_BOUNDS: "An indptr value is out of bounds",
    CSTORE_ERROR_UNSORTED_INDICES: "Indices are not sorted within an outer slice",
    CSTORE_ERROR_INDEX_OUT_OF_RANGE: "An index is out of the inner dimension",
    CSTORE_ERROR_INDEX_DTYPE: "Index buffers must have an integer dtype",
    CSTORE_ERROR_MISSING_NONZERO: "No non-zero element stored at this location",
    CSTORE_ERROR_READ_ONLY: "Matrix is not writeable",
    CSTORE_ERROR_STALE_VIEW: "View used after its source was structurally modified",
    CSTORE_ERROR_STALE_HANDLE: "Non-zero index used after a structural modification",
    CSTORE_ERROR_CONTRACT: "Contract violation",
}


def error_message(code: int) -> str:
    """Return the default message for an error code."""
    return _ERROR_MESSAGES.get(code, f"Unknown error (code={code})")


# =============================================================================
# Structure Error Kinds
# =============================================================================

class StructureErrorKind(Enum):
    """Which structural invariant a compressed matrix violates."""
    INDPTR_LENGTH_MISMATCH = CSTORE_ERROR_INDPTR_LENGTH
    DATA_INDICES_MISMATCH = CSTORE_ERROR_DATA_INDICES_LENGTH
    NNZ_MISMATCH = CSTORE_ERROR_NNZ_MISMATCH
    UNSORTED_INDPTR = CSTORE_ERROR_UNSORTED_INDPTR
    OUT_OF_BOUNDS_INDPTR = CSTORE_ERROR_INDPTR_OUT_OF_BOUNDS
    NON_SORTED_INDICES = CSTORE_ERROR_UNSORTED_INDICES
    OUT_OF_BOUNDS_INDEX = CSTORE_ERROR_INDEX_OUT_OF_RANGE
    INVALID_INDEX_DTYPE = CSTORE_ERROR_INDEX_DTYPE

    @property
    def code(self) -> int:
        return self.value


# =============================================================================
# Exception Classes
# =============================================================================

class SparseError(Exception):
    """
    Base exception for all cstore errors.

    Attributes:
        code: Numeric error code (``CSTORE_ERROR_*``).
        message: Human readable description.
    """

    def __init__(self, code: int, message: Optional[str] = None):
        self.code = code
        if message is None:
            message = error_message(code)
        self.message = message
        super().__init__(f"cstore error {code}: {message}")

    @classmethod
    def from_code(cls, code: int, context: str = "") -> "SparseError":
        """Create exception from error code with optional context."""
        base_msg = error_message(code)
        msg = f"{context}: {base_msg}" if context else base_msg
        return cls(code, msg)


class StructureError(SparseError, ValueError):
    """
    Recoverable structural validation failure.

    Raised by checked view construction and explicit structure checks.
    Compare ``err.kind`` against ``StructureErrorKind`` members to find out
    which invariant failed.
    """

    def __init__(self, kind: StructureErrorKind, message: Optional[str] = None):
        self.kind = kind
        super().__init__(kind.code, message)


class ContractViolation(SparseError, AssertionError):
    """
    A caller broke a documented precondition.

    These errors signal bugs in the calling code and are not meant to be
    caught as part of normal control flow.
    """

    def __init__(self, message: Optional[str] = None, code: int = CSTORE_ERROR_CONTRACT):
        super().__init__(code, message)


class MissingNonzeroError(ContractViolation, LookupError):
    """Accessed a location with no stored value.

    ``location`` is ``(row, col)`` for matrices and ``(index,)`` for
    sparse vectors.
    """

    def __init__(self, *location: int):
        self.location = location
        where = location[0] if len(location) == 1 else location
        super().__init__(
            f"no non-zero element stored at {where}",
            code=CSTORE_ERROR_MISSING_NONZERO,
        )


class OutOfBoundsError(ContractViolation, IndexError):
    """Index outside of the matrix dimensions."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, code=CSTORE_ERROR_INDEX_OUT_OF_BOUNDS)


class ReadOnlyViewError(ContractViolation):
    """Mutation attempted through a read-only or non-owning matrix."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, code=CSTORE_ERROR_READ_ONLY)


class StaleViewError(ContractViolation):
    """View used after its source buffers were structurally modified."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, code=CSTORE_ERROR_STALE_VIEW)


class StaleHandleError(ContractViolation):
    """NonzeroIndex used after a structural modification of its matrix."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, code=CSTORE_ERROR_STALE_HANDLE)


# =============================================================================
# Helpers
# =============================================================================

def structure_error(kind: StructureErrorKind, detail: str = "") -> StructureError:
    """Build a StructureError with the default message plus optional detail."""
    msg = error_message(kind.code)
    if detail:
        msg = f"{msg} ({detail})"
    return StructureError(kind, msg)


def check_contract(condition: bool, message: str) -> None:
    """Raise ContractViolation when ``condition`` does not hold."""
    if not condition:
        raise ContractViolation(message)
