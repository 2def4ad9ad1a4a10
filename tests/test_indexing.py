"""Index linearization tests"""
import pytest

import itertools as itl

import numpy as np
from numpy.testing import assert_array_equal

from iec_frames.errors import IndexOutOfRangeError
from iec_frames.indexing import (to_linear_index, from_linear_index,
                                 to_linear_indices, from_linear_indices)

__all__ = ['TestLinearIndex', 'TestVectorized']

EXTENTS = (4, 5, 6)

class TestLinearIndex():
    def test_scenario(self):
        assert to_linear_index((1, 2, 3), EXTENTS) == 1*5*6 + 2*6 + 3 == 45
        assert from_linear_index(45, EXTENTS) == (1, 2, 3)

    def test_row_major(self):
        """Last dimension is contiguous"""
        assert to_linear_index((0, 0, 1), EXTENTS) == 1
        assert to_linear_index((0, 1, 0), EXTENTS) == 6
        assert to_linear_index((1, 0, 0), EXTENTS) == 30
        assert to_linear_index((3, 4, 5), EXTENTS) == 4*5*6 - 1

    def test_round_trip(self):
        for index in itl.product(*(range(n) for n in EXTENTS)):
            assert from_linear_index(to_linear_index(index, EXTENTS), EXTENTS) == index

    def test_matches_numpy(self):
        for index in [(0, 0, 0), (2, 3, 4), (3, 0, 5)]:
            assert to_linear_index(index, EXTENTS) == np.ravel_multi_index(index, EXTENTS)

    def test_large_extents(self):
        extents = (65535, 65535, 65535)
        index = (65534, 65534, 65534)
        linear = to_linear_index(index, extents)
        assert linear == 65535**3 - 1
        assert from_linear_index(linear, extents) == index

    @pytest.mark.parametrize('index', [(4, 0, 0), (0, 5, 0), (0, 0, 6), (-1, 0, 0)])
    def test_index_out_of_range(self, index):
        with pytest.raises(IndexOutOfRangeError, match='out of range'):
            to_linear_index(index, EXTENTS)

    @pytest.mark.parametrize('linear', [120, 121, -1])
    def test_linear_out_of_range(self, linear):
        with pytest.raises(IndexOutOfRangeError):
            from_linear_index(linear, EXTENTS)

    def test_error_is_index_error(self):
        with pytest.raises(IndexError):
            to_linear_index((9, 9, 9), EXTENTS)

    def test_malformed_arguments(self):
        with pytest.raises(ValueError):
            to_linear_index((1, 2), EXTENTS)
        with pytest.raises(ValueError):
            from_linear_index(0, (1, 2))

    @pytest.mark.parametrize('index', [(3.9, 4.9, 5.9), (1.0, 2, 3), (1, 2, np.float64(3))])
    def test_non_integer_index(self, index):
        with pytest.raises(TypeError):
            to_linear_index(index, EXTENTS)

    @pytest.mark.parametrize('linear', [119.5, 45.0, '45'])
    def test_non_integer_linear(self, linear):
        with pytest.raises(TypeError):
            from_linear_index(linear, EXTENTS)

    def test_numpy_integers(self):
        assert to_linear_index(np.array([1, 2, 3]), EXTENTS) == 45
        assert from_linear_index(np.int64(45), EXTENTS) == (1, 2, 3)

class TestVectorized():
    def test_round_trip(self):
        indices = np.array(list(itl.product(*(range(n) for n in EXTENTS))))
        linear = to_linear_indices(indices, EXTENTS)
        assert_array_equal(linear, np.arange(np.prod(EXTENTS)))
        assert_array_equal(from_linear_indices(linear, EXTENTS), indices)

    def test_single(self):
        assert_array_equal(to_linear_indices([1, 2, 3], EXTENTS), [45])
        assert_array_equal(from_linear_indices(45, EXTENTS), [[1, 2, 3]])

    def test_out_of_range(self):
        with pytest.raises(IndexOutOfRangeError):
            to_linear_indices([[0, 0, 0], [4, 0, 0]], EXTENTS)
        with pytest.raises(IndexOutOfRangeError):
            from_linear_indices([0, 120], EXTENTS)

    def test_non_integer(self):
        with pytest.raises(TypeError):
            to_linear_indices([[0.5, 0, 0]], EXTENTS)
        with pytest.raises(TypeError):
            from_linear_indices([0, 119.5], EXTENTS)
