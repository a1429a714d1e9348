"""
Tests for NonzeroIndex handles.
"""

import dataclasses

import pytest
import numpy as np

from cstore import MissingNonzeroError, ReadOnlyViewError, StaleHandleError
from cstore.sparse import CsMatrix, NonzeroIndex


class TestLookup:
    """nonzero_index returns a handle or None."""

    def test_handle_reads_value(self, mat1):
        handle = mat1.nonzero_index(1, 4)
        assert handle == NonzeroIndex(3, 0)
        assert mat1[handle] == 5.0

    def test_missing_location(self, mat1):
        assert mat1.nonzero_index(0, 0) is None

    def test_out_of_range_location(self, mat1):
        assert mat1.nonzero_index(9, 9) is None

    def test_outer_inner_lookup(self, mat1):
        csc = mat1.to_csc()
        by_outer_inner = csc.nonzero_index_outer_inner(4, 1)
        assert csc[by_outer_inner] == 5.0
        assert by_outer_inner == csc.nonzero_index(1, 4)

    def test_iter_nonzero_indices(self, mat1):
        """Every handle reads back the value stored at its location."""
        seen = 0
        for (row, col), handle in mat1.iter_nonzero_indices():
            assert mat1[handle] == mat1.get(row, col)
            seen += 1
        assert seen == mat1.nnz

    def test_handle_is_frozen(self):
        handle = NonzeroIndex(2, 1)
        with pytest.raises(dataclasses.FrozenInstanceError):
            handle.position = 3


class TestWriteThroughHandle:
    """Assignment through ``mat[handle]``."""

    def test_write(self, mat1):
        handle = mat1.nonzero_index(2, 2)
        mat1[handle] = 50.0
        assert mat1.get(2, 2) == 50.0

    def test_coordinate_access(self, mat1):
        mat1[3, 1] = -8.0
        assert mat1[3, 1] == -8.0
        with pytest.raises(MissingNonzeroError):
            mat1[0, 0]
        with pytest.raises(MissingNonzeroError):
            mat1[0, 0] = 1.0

    def test_read_only_view(self, mat1):
        view = mat1.view()
        handle = view.nonzero_index(1, 4)
        assert view[handle] == 5.0
        with pytest.raises(ReadOnlyViewError):
            view[handle] = 1.0


class TestStaleHandles:
    """Structural changes invalidate earlier handles."""

    def test_insert_invalidates(self, mat1):
        handle = mat1.nonzero_index(1, 4)
        mat1.insert(0, 0, 1.0)
        with pytest.raises(StaleHandleError):
            mat1[handle]
        with pytest.raises(StaleHandleError):
            mat1[handle] = 2.0

    def test_overwrite_keeps_handles(self, mat1):
        """Inserting over an existing value does not move anything."""
        handle = mat1.nonzero_index(1, 4)
        mat1.insert(1, 3, 20.0)
        mat1.set(0, 2, 30.0)
        assert mat1[handle] == 5.0

    def test_append_invalidates(self, mat1):
        handle = mat1.nonzero_index(0, 2)
        mat1.append_outer(np.zeros(5))
        with pytest.raises(StaleHandleError):
            mat1[handle]

    def test_transpose_invalidates(self, mat1):
        handle = mat1.nonzero_index(0, 2)
        mat1.transpose_mut()
        with pytest.raises(StaleHandleError):
            mat1[handle]

    def test_fresh_lookup_after_insert(self, mat1):
        mat1.insert(0, 0, 1.0)
        handle = mat1.nonzero_index(1, 4)
        assert handle.generation == mat1.generation
        assert mat1[handle] == 5.0

    def test_checks_disabled(self, mat1, generation_checks):
        """Without generation checks a stale handle reads whatever is now there."""
        handle = mat1.nonzero_index(1, 4)
        mat1.insert(0, 0, 1.0)
        generation_checks.check_generations = False
        assert mat1[handle] == mat1.data[handle.position]

    def test_other_matrix_generation(self):
        """Handles compare generations, not identities."""
        a = CsMatrix.eye(3)
        b = CsMatrix.eye(3)
        assert b[a.nonzero_index(1, 1)] == 1.0
