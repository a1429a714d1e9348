"""
Global configuration for cstore.

Provides:
- Default precision settings (value type, index type)
- Runtime generation checks for views and non-zero handles
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Tuple, Union

import numpy as np

logger = logging.getLogger("cstore.config")


# =============================================================================
# Precision Types
# =============================================================================

class ValueType(Enum):
    """Default value (floating-point) precision."""
    FLOAT32 = "f32"
    FLOAT64 = "f64"

    @property
    def numpy_dtype(self) -> np.dtype:
        return np.dtype(np.float32) if self == ValueType.FLOAT32 else np.dtype(np.float64)


class IndexType(Enum):
    """Index (integer) precision."""
    INT32 = "i32"
    INT64 = "i64"

    @property
    def numpy_dtype(self) -> np.dtype:
        return np.dtype(np.int32) if self == IndexType.INT32 else np.dtype(np.int64)


def _generation_checks_from_env() -> bool:
    """Generation checks are on unless CSTORE_NO_GENERATION_CHECKS is set."""
    disabled = os.environ.get('CSTORE_NO_GENERATION_CHECKS', '').lower() in ('1', 'true', 'yes')
    if disabled:
        logger.warning(
            "Generation checks disabled via CSTORE_NO_GENERATION_CHECKS: "
            "stale views and non-zero indices will not be detected"
        )
    return not disabled


# =============================================================================
# Global Configuration State
# =============================================================================

class _Config:
    """
    Global configuration singleton.

    Manages default precision for newly allocated buffers and whether
    views / non-zero handles verify that their source was not structurally
    modified since they were created.
    """

    def __init__(self):
        # Default: float64 + int64 (most compatible)
        self._default_value = ValueType.FLOAT64
        self._default_index = IndexType.INT64
        self._check_generations = _generation_checks_from_env()

    @property
    def default_value(self) -> ValueType:
        """Get default value type."""
        return self._default_value

    @default_value.setter
    def default_value(self, value: Union[ValueType, str]):
        """Set default value type."""
        if isinstance(value, str):
            value = ValueType(value) if value in ('f32', 'f64') else \
                    ValueType.FLOAT32 if '32' in value else \
                    ValueType.FLOAT64
        self._default_value = value

    @property
    def default_index(self) -> IndexType:
        """Get default index type."""
        return self._default_index

    @default_index.setter
    def default_index(self, value: Union[IndexType, str]):
        """Set default index type."""
        if isinstance(value, str):
            value = IndexType(value) if value in ('i32', 'i64') else \
                    IndexType.INT32 if '32' in value else \
                    IndexType.INT64
        self._default_index = value

    @property
    def check_generations(self) -> bool:
        """Whether stale views and non-zero indices are detected."""
        return self._check_generations

    @check_generations.setter
    def check_generations(self, value: bool):
        self._check_generations = bool(value)


# Global config instance
_config = _Config()


# =============================================================================
# Public API
# =============================================================================

def get_config() -> _Config:
    """Get global configuration instance."""
    return _config


def set_precision(
    value: Union[ValueType, str, None] = None,
    index: Union[IndexType, str, None] = None,
) -> None:
    """
    Set default precision for newly allocated buffers.

    Args:
        value: Value type ('float32', 'float64', 'f32', 'f64')
        index: Index type ('int32', 'int64', 'i32', 'i64')

    Example:
        >>> cstore.set_precision(value='float32', index='int32')
        >>> eye = CsMatrix.eye(3)   # float32 data, int32 indices
    """
    if value is not None:
        _config.default_value = value
    if index is not None:
        _config.default_index = index


def get_precision() -> Tuple[ValueType, IndexType]:
    """
    Get current default precision.

    Returns:
        Tuple of (value_type, index_type)
    """
    return (_config.default_value, _config.default_index)


# =============================================================================
# Internal Helpers
# =============================================================================

def _get_value_dtype() -> np.dtype:
    """Get NumPy dtype for current default value type."""
    return _config.default_value.numpy_dtype


def _get_index_dtype() -> np.dtype:
    """Get NumPy dtype for current default index type."""
    return _config.default_index.numpy_dtype
