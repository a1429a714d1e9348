"""
Pytest configuration and shared fixtures for cstore tests.
"""

import pytest
import numpy as np
from pathlib import Path
import sys

# Add src to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root / "src"))

import scipy.sparse as sp

from cstore import get_config
from cstore.sparse import CsMatrix, CSR, CSC


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def generation_checks():
    """Run every test with generation checks on, restoring the setting after."""
    config = get_config()
    previous = config.check_generations
    config.check_generations = True
    yield config
    config.check_generations = previous


@pytest.fixture
def dense_matrix_small():
    """Small dense reference matrix (3x4).

    Matrix:
    [[1, 0, 2, 0],
     [0, 3, 0, 4],
     [5, 0, 0, 6]]
    """
    return np.array([
        [1, 0, 2, 0],
        [0, 3, 0, 4],
        [5, 0, 0, 6]
    ], dtype=np.float64)


@pytest.fixture
def small_csr_matrix():
    """Owned CSR version of ``dense_matrix_small``."""
    return CsMatrix.new(
        (3, 4),
        [0, 2, 4, 6],
        [0, 2, 1, 3, 0, 3],
        [1.0, 2.0, 3.0, 4.0, 5.0, 6.0],
    )


@pytest.fixture
def small_csc_matrix():
    """Owned CSC version of ``dense_matrix_small``."""
    return CsMatrix.new_csc(
        (3, 4),
        [0, 2, 3, 4, 6],
        [0, 2, 1, 0, 1, 2],
        [1.0, 5.0, 3.0, 2.0, 4.0, 6.0],
    )


@pytest.fixture
def mat1():
    """5x5 CSR matrix used by the structure and conversion tests.

    Matrix:
    [[0, 0, 3, 4, 0],
     [0, 0, 0, 2, 5],
     [0, 0, 5, 0, 0],
     [0, 8, 0, 0, 0],
     [0, 0, 0, 7, 0]]
    """
    return CsMatrix.new(
        (5, 5),
        [0, 2, 4, 5, 6, 7],
        [2, 3, 3, 4, 2, 1, 3],
        [3.0, 4.0, 2.0, 5.0, 5.0, 8.0, 7.0],
    )


@pytest.fixture
def mat1_dense():
    return np.array([
        [0, 0, 3, 4, 0],
        [0, 0, 0, 2, 5],
        [0, 0, 5, 0, 0],
        [0, 8, 0, 0, 0],
        [0, 0, 0, 7, 0],
    ], dtype=np.float64)


@pytest.fixture
def scipy_csr_matrix(dense_matrix_small):
    """scipy CSR matrix for interop testing."""
    return sp.csr_matrix(dense_matrix_small)


@pytest.fixture
def scipy_csc_matrix(dense_matrix_small):
    """scipy CSC matrix for interop testing."""
    return sp.csc_matrix(dense_matrix_small)


@pytest.fixture
def random_sparse_matrix():
    """Random 100x200 CSR matrix with about 10% density."""
    rng = np.random.default_rng(42)
    return sp.random(100, 200, density=0.1, format='csr', random_state=rng, dtype=np.float64)


# =============================================================================
# Helper Functions
# =============================================================================

def assert_array_equal(a1, a2, rtol=1e-5, atol=1e-8):
    """Assert two arrays are approximately equal."""
    np.testing.assert_allclose(np.asarray(a1), np.asarray(a2), rtol=rtol, atol=atol)


def assert_matrices_equal(mat1, mat2, rtol=1e-5):
    """Assert two sparse matrices have equal values."""
    assert mat1.shape == mat2.shape
    assert mat1.nnz == mat2.nnz
    np.testing.assert_allclose(mat1.to_dense(), mat2.to_dense(), rtol=rtol)


def assert_sorted_slices(mat):
    """Assert indices are strictly ascending inside every outer slice."""
    indptr, indices = mat.indptr, mat.indices
    for i in range(mat.outer_dims):
        run = indices[indptr[i]:indptr[i + 1]]
        assert np.all(np.diff(run) > 0), f"slice {i} not sorted: {run}"
