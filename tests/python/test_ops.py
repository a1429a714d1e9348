"""
Tests for sparse matrix operations.

Tests the operation functions in cstore.sparse._ops:
- Dense materialization: to_dense, assign_to_dense
- Arithmetic: @, *, +, -
- Conversion: from_scipy, to_scipy
"""

import pytest
import numpy as np
import scipy.sparse as sp

from cstore import ContractViolation
from cstore.error import CSTORE_ERROR_DIMENSION_MISMATCH
from cstore.sparse import (
    CsMatrix,
    CSR,
    CSC,
    Ownership,
    assign_to_dense,
    from_scipy,
    to_scipy,
)
from conftest import assert_array_equal, assert_sorted_slices


# =============================================================================
# Dense Materialization Tests
# =============================================================================

class TestDense:
    """Dense output."""

    def test_to_dense(self, small_csr_matrix, small_csc_matrix, dense_matrix_small):
        np.testing.assert_array_equal(small_csr_matrix.to_dense(), dense_matrix_small)
        np.testing.assert_array_equal(small_csc_matrix.to_dense(), dense_matrix_small)

    def test_assign_does_not_clear(self, mat1):
        """Locations without a stored value keep their previous content."""
        out = np.full((5, 5), -1.0)
        assign_to_dense(out, mat1)
        assert out[0, 0] == -1.0
        assert out[0, 2] == 3.0
        assert out[3, 1] == 8.0

    def test_assign_shape_mismatch(self, mat1):
        with pytest.raises(ContractViolation):
            assign_to_dense(np.zeros((4, 5)), mat1)


# =============================================================================
# Arithmetic Tests
# =============================================================================

class TestMatmul:
    """Sparse and dense products."""

    def test_sparse_product(self, mat1, mat1_dense):
        product = mat1 @ mat1
        assert isinstance(product, CsMatrix)
        assert product.storage is CSR
        assert product.ownership is Ownership.OWNED
        np.testing.assert_array_equal(product.to_dense(), mat1_dense @ mat1_dense)
        assert_sorted_slices(product)

    def test_result_storage_follows_lhs(self, mat1, mat1_dense):
        product = mat1.to_csc() @ mat1
        assert product.storage is CSC
        np.testing.assert_array_equal(product.to_dense(), mat1_dense @ mat1_dense)

    def test_identity(self, small_csr_matrix):
        assert small_csr_matrix @ CsMatrix.eye(4) == small_csr_matrix

    def test_dense_vector(self, mat1, mat1_dense):
        result = mat1 @ np.ones(5)
        assert isinstance(result, np.ndarray)
        assert result.shape == (5,)
        np.testing.assert_array_equal(result, mat1_dense.sum(axis=1))

    def test_dense_matrix(self, small_csr_matrix, dense_matrix_small):
        rhs = np.arange(8, dtype=np.float64).reshape(4, 2)
        np.testing.assert_array_equal(small_csr_matrix @ rhs, dense_matrix_small @ rhs)

    def test_list_operand(self, mat1, mat1_dense):
        np.testing.assert_array_equal(mat1 @ [1, 0, 0, 0, 0], mat1_dense[:, 0])

    def test_dimension_mismatch(self, mat1):
        with pytest.raises(ContractViolation) as excinfo:
            mat1 @ CsMatrix.eye(3)
        assert excinfo.value.code == CSTORE_ERROR_DIMENSION_MISMATCH
        with pytest.raises(ContractViolation):
            mat1 @ np.ones(3)

    def test_random_against_scipy(self, random_sparse_matrix):
        mat = CsMatrix.from_scipy(random_sparse_matrix)
        product = mat @ mat.transpose_view()
        expected = (random_sparse_matrix @ random_sparse_matrix.T).toarray()
        assert_array_equal(product.to_dense(), expected)


class TestScalarAndSum:
    """Scalar scaling, addition and subtraction."""

    def test_scalar_mul(self, small_csr_matrix, dense_matrix_small):
        doubled = small_csr_matrix * 2.0
        np.testing.assert_array_equal(doubled.to_dense(), dense_matrix_small * 2)
        np.testing.assert_array_equal(small_csr_matrix.to_dense(), dense_matrix_small)

    def test_reflected_scalar_mul(self, small_csr_matrix, dense_matrix_small):
        np.testing.assert_array_equal((3 * small_csr_matrix).to_dense(), dense_matrix_small * 3)

    def test_scalar_mul_on_window(self, mat1, mat1_dense):
        window = mat1.middle_outer_views(2, 3)
        np.testing.assert_array_equal((window * 2).to_dense(), mat1_dense[2:] * 2)

    def test_add(self, mat1, mat1_dense):
        total = mat1 + mat1
        assert total.storage is CSR
        np.testing.assert_array_equal(total.to_dense(), mat1_dense * 2)

    def test_add_mixed_storage(self, small_csr_matrix, small_csc_matrix, dense_matrix_small):
        """The right operand is converted to the storage of the left one."""
        total = small_csr_matrix + small_csc_matrix
        assert total.storage is CSR
        np.testing.assert_array_equal(total.to_dense(), dense_matrix_small * 2)

    def test_sub(self, mat1):
        diff = (mat1 * 3) - mat1
        np.testing.assert_array_equal(diff.to_dense(), (mat1 * 2).to_dense())

    def test_sub_self_is_zero(self, small_csc_matrix):
        np.testing.assert_array_equal((small_csc_matrix - small_csc_matrix).to_dense(), np.zeros((3, 4)))

    def test_add_dense(self, mat1, mat1_dense):
        result = mat1 + np.ones((5, 5))
        assert isinstance(result, np.ndarray)
        np.testing.assert_array_equal(result, mat1_dense + 1)

    def test_dense_plus_sparse(self, small_csc_matrix, dense_matrix_small):
        result = np.ones((3, 4)) + small_csc_matrix
        np.testing.assert_array_equal(result, dense_matrix_small + 1)

    def test_add_shape_mismatch(self, mat1):
        with pytest.raises(ContractViolation) as excinfo:
            mat1 + CsMatrix.eye(3)
        assert excinfo.value.code == CSTORE_ERROR_DIMENSION_MISMATCH
        with pytest.raises(ContractViolation):
            mat1 + np.ones((2, 2))

    def test_unsupported_operand(self, mat1):
        with pytest.raises(TypeError):
            mat1 + 1


# =============================================================================
# Scipy Interop Tests
# =============================================================================

class TestScipyInterop:
    """from_scipy / to_scipy."""

    def test_to_scipy_csr(self, small_csr_matrix, dense_matrix_small):
        result = to_scipy(small_csr_matrix)
        assert isinstance(result, sp.csr_matrix)
        np.testing.assert_array_equal(result.toarray(), dense_matrix_small)

    def test_to_scipy_csc(self, small_csc_matrix, dense_matrix_small):
        result = small_csc_matrix.to_scipy()
        assert isinstance(result, sp.csc_matrix)
        np.testing.assert_array_equal(result.toarray(), dense_matrix_small)

    def test_to_scipy_copy(self, small_csr_matrix):
        result = to_scipy(small_csr_matrix, copy=True)
        assert not np.shares_memory(result.data, small_csr_matrix.data)

    def test_to_scipy_window(self, mat1, mat1_dense):
        result = mat1.middle_outer_views(1, 2).to_scipy()
        assert result.shape == (2, 5)
        np.testing.assert_array_equal(result.toarray(), mat1_dense[1:3])

    def test_from_scipy_csr(self, scipy_csr_matrix, small_csr_matrix):
        mat = from_scipy(scipy_csr_matrix)
        assert mat.storage is CSR
        assert mat.ownership is Ownership.OWNED
        assert mat == small_csr_matrix

    def test_from_scipy_csc(self, scipy_csc_matrix, small_csc_matrix):
        mat = CsMatrix.from_scipy(scipy_csc_matrix)
        assert mat.storage is CSC
        assert mat == small_csc_matrix

    def test_from_scipy_other_format(self, dense_matrix_small):
        mat = from_scipy(sp.coo_matrix(dense_matrix_small))
        assert mat.storage is CSR
        np.testing.assert_array_equal(mat.to_dense(), dense_matrix_small)

    def test_from_scipy_sums_duplicates(self):
        raw = sp.csr_matrix((np.array([1.0, 2.0]), np.array([1, 1]), np.array([0, 2])), shape=(1, 3))
        mat = from_scipy(raw)
        assert mat.nnz == 1
        assert mat.get(0, 1) == 3.0

    def test_from_scipy_borrowed(self, scipy_csr_matrix):
        mat = from_scipy(scipy_csr_matrix, copy=False)
        assert mat.ownership is Ownership.BORROWED
        assert not mat.is_writeable
        assert np.shares_memory(mat.data, scipy_csr_matrix.data)

    def test_from_scipy_rejects_dense(self, dense_matrix_small):
        with pytest.raises(TypeError):
            from_scipy(dense_matrix_small)

    def test_round_trip(self, random_sparse_matrix):
        mat = from_scipy(random_sparse_matrix)
        back = mat.to_scipy()
        assert (back != random_sparse_matrix).nnz == 0
