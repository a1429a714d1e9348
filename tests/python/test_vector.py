"""
Tests for sparse vector views and permutations.
"""

import pytest
import numpy as np

from cstore import ContractViolation, MissingNonzeroError, OutOfBoundsError, ReadOnlyViewError
from cstore.sparse import CsMatrix, CSR, Permutation, SparseVecView, SparseVecViewMut


class TestSparseVecView:
    """Read-only vector."""

    def test_lookup(self):
        vec = SparseVecView(6, [1, 3, 5], [10.0, 30.0, 50.0])
        assert vec.nnz == 3
        assert len(vec) == 3
        assert vec.get(3) == 30.0
        assert vec.get(2) is None
        assert vec.nonzero_index(5) == 2
        assert vec.nonzero_index(6) is None

    def test_to_dense(self):
        vec = SparseVecView(4, [0, 2], [1.0, 2.0])
        np.testing.assert_array_equal(vec.to_dense(), [1.0, 0.0, 2.0, 0.0])

    def test_empty(self):
        vec = SparseVecView(3, np.empty(0, dtype=np.int64), np.empty(0))
        assert vec.nnz == 0
        assert list(vec) == []
        vec.check_structure()

    def test_equality(self):
        a = SparseVecView(4, [0, 2], [1.0, 2.0])
        assert a == SparseVecView(4, [0, 2], [1.0, 2.0])
        assert a != SparseVecView(5, [0, 2], [1.0, 2.0])
        assert a != SparseVecView(4, [0, 2], [1.0, 3.0])

    def test_matches_matrix_slice(self, mat1):
        assert mat1.outer_view(0) == SparseVecView(5, [2, 3], [3.0, 4.0])


class TestSparseVecViewMut:
    """Mutable vector."""

    def test_set_and_get_mut(self):
        vec = SparseVecViewMut(4, [0, 2], [1.0, 2.0])
        vec.set(2, 5.0)
        cell = vec.get_mut(0)
        cell[0] = 7.0
        np.testing.assert_array_equal(vec.data, [7.0, 5.0])
        assert vec.get_mut(1) is None

    def test_set_missing(self):
        vec = SparseVecViewMut(4, [0, 2], [1.0, 2.0])
        with pytest.raises(MissingNonzeroError) as excinfo:
            vec.set(1, 1.0)
        assert excinfo.value.location == (1,)

    def test_map_keeps_zeros(self):
        vec = SparseVecViewMut(4, [0, 2], [1.0, 2.0])
        vec.map_inplace(lambda values: values * 0)
        assert vec.nnz == 2
        np.testing.assert_array_equal(vec.data, [0.0, 0.0])

    def test_scale_rejects_promoting_factor(self):
        vec = SparseVecViewMut(4, [0, 2], np.array([1, 2]))
        with pytest.raises(ContractViolation):
            vec.scale(1.5)
        vec.scale(2)
        np.testing.assert_array_equal(vec.data, [2, 4])

    def test_requires_writeable_data(self):
        data = np.array([1.0])
        data.flags.writeable = False
        with pytest.raises(ReadOnlyViewError):
            SparseVecViewMut(2, [0], data)


class TestPermutation:
    """Permutation with cached inverse."""

    def test_at_and_inverse(self):
        perm = Permutation([2, 0, 1])
        assert [perm.at(i) for i in range(3)] == [2, 0, 1]
        assert [perm.at_inv(i) for i in range(3)] == [1, 2, 0]
        assert len(perm) == perm.dim == 3

    def test_inv_swaps_arrays(self):
        perm = Permutation([2, 0, 1])
        inv = perm.inv()
        np.testing.assert_array_equal(inv.perm, perm.perm_inv)
        np.testing.assert_array_equal(inv.perm_inv, perm.perm)

    def test_identity(self):
        perm = Permutation.identity(4)
        assert [perm.at(i) for i in range(4)] == [0, 1, 2, 3]
        assert [perm.at_inv(i) for i in range(4)] == [0, 1, 2, 3]

    def test_arrays_are_read_only(self):
        perm = Permutation([1, 0])
        with pytest.raises(ValueError):
            perm.perm[0] = 0

    def test_rejects_duplicates(self):
        with pytest.raises(ContractViolation):
            Permutation([0, 0, 1])

    def test_rejects_out_of_range(self):
        with pytest.raises(ContractViolation):
            Permutation([0, 3, 1])

    def test_at_out_of_bounds(self):
        perm = Permutation([1, 0])
        with pytest.raises(OutOfBoundsError):
            perm.at(2)
        with pytest.raises(OutOfBoundsError):
            perm.at_inv(-1)

    def test_repr(self):
        assert repr(Permutation([1, 0])) == "Permutation([1, 0])"


class TestAppendSparse:
    """Building a matrix from sparse vectors."""

    def test_append_outer_sparse(self):
        mat = CsMatrix.empty(CSR, 4)
        mat.append_outer_sparse(SparseVecView(4, [1, 3], [1.0, 2.0]))
        mat.append_outer_sparse(SparseVecView(4, np.empty(0, dtype=np.int64), np.empty(0)))
        assert mat.shape == (2, 4)
        np.testing.assert_array_equal(mat.to_dense(), [[0, 1, 0, 2], [0, 0, 0, 0]])

    def test_unsorted_vector_rejected(self):
        mat = CsMatrix.zero((0, 4))
        with pytest.raises(ContractViolation):
            mat.append_outer_sparse(SparseVecView(4, [3, 1], [1.0, 2.0]))
