"""Partition samples in the construction of a tree.

This module contains the algorithm for moving sample indices to the true
(left) and false (right) child of a node once the splitter decided on a
split. Partitioning is stable: within each side the relative order of the
rows is kept, so that every column of the order matrix stays sorted and no
column ever has to be re-sorted.
"""
import numpy as np

from .exceptions import PartitionError


def partition_array(a, low, pivot, high, goes_left, buffer):
    """Stable partition of ``a[low:high]`` around ``pivot``.

    Rows for which ``goes_left(row)`` holds end up in ``a[low:pivot]`` and
    the others in ``a[pivot:high]``. ``pivot`` must be known in advance; a
    mismatch means the ordering is corrupt and raises ``PartitionError``.
    """
    j = low
    k = 0
    end = min(high, a.shape[0])
    for i in range(low, end):
        row = a[i]
        if goes_left(row):
            a[j] = row
            j += 1
        else:
            buffer[k] = row
            k += 1

    if k != high - pivot or j != pivot:
        raise PartitionError(
            "Messed up partition.. low=%d, pivot=%d, high=%d ended up splitting at %d"
            % (low, pivot, high, j))

    a[pivot:pivot + k] = buffer[:k]


def partition_order(order, sample_index, low, pivot, high, goes_left):
    """Partition every order column and the sample index on ``[low, high)``."""
    buffer = np.empty(high - pivot, dtype=np.intp)
    for column in order.values():
        partition_array(column, low, pivot, high, goes_left, buffer)
    partition_array(sample_index, low, pivot, high, goes_left, buffer)
