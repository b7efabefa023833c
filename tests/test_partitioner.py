import numpy as np
import pytest

from cartforest._partitioner import partition_array, partition_order
from cartforest.exceptions import PartitionError


class TestPartitionArray:
    """Stable partition of a range around a precomputed pivot."""

    def test_stable_partition(self):
        a = np.arange(10, dtype=np.intp)
        buffer = np.empty(10, dtype=np.intp)
        partition_array(a, 0, 5, 10, lambda row: row % 2 == 0, buffer)
        assert a.tolist() == [0, 2, 4, 6, 8, 1, 3, 5, 7, 9]

    def test_only_range_is_touched(self):
        a = np.array([9, 3, 1, 4, 2, 8], dtype=np.intp)
        buffer = np.empty(6, dtype=np.intp)
        partition_array(a, 1, 3, 5, lambda row: row < 3, buffer)
        assert a.tolist() == [9, 1, 2, 3, 4, 8]

    def test_pivot_mismatch_raises(self):
        a = np.arange(6, dtype=np.intp)
        buffer = np.empty(6, dtype=np.intp)
        with pytest.raises(PartitionError, match="Messed up partition"):
            partition_array(a, 0, 2, 6, lambda row: row < 4, buffer)


class TestPartitionOrder:
    def test_columns_and_index_stay_aligned(self):
        goes_left = np.array([True, False, True, False, True]).__getitem__
        sample_index = np.arange(5, dtype=np.intp)
        order = {
            0: np.array([4, 3, 2, 1, 0], dtype=np.intp),
            2: np.array([1, 0, 3, 2, 4], dtype=np.intp),
        }
        partition_order(order, sample_index, 0, 3, 5, goes_left)

        assert sample_index.tolist() == [0, 2, 4, 1, 3]
        assert order[0].tolist() == [4, 2, 0, 3, 1]
        assert order[2].tolist() == [0, 2, 4, 1, 3]
        for column in order.values():
            assert set(column[:3]) == set(sample_index[:3])
            assert set(column[3:]) == set(sample_index[3:])
