# _splitter.py
import math

import numpy as np

from ._criterion import impurity, which_max
from ._utils import sample_variables


class SplitRecord:
    """Record of the best split found for a node."""

    __slots__ = ('feature', 'quantitative', 'value', 'score',
                 'true_output', 'false_output')

    def __init__(self):
        self.feature = -1
        self.quantitative = True
        self.value = math.nan
        self.score = 0.0
        self.true_output = -1
        self.false_output = -1

    def __repr__(self):
        return (f"SplitRecord(feature={self.feature}, quantitative={self.quantitative}, "
                f"value={self.value:.4f}, score={self.score:.4f})")

    @property
    def found(self):
        return self.feature != -1

    def copy_from(self, other):
        """Copy data from another SplitRecord."""
        self.feature = other.feature
        self.quantitative = other.quantitative
        self.value = other.value
        self.score = other.score
        self.true_output = other.true_output
        self.false_output = other.false_output


class Splitter:
    """Best splitter over the samples of one tree.

    Splitters are called by the tree builder to find the best split of a
    node ``sample_index[low:high]``, one node at a time. All arrays are
    owned by the tree being built except ``X`` and ``y`` which are shared
    read-only.
    """

    def __init__(self, X, y, samples, sample_index, order, nominal_attrs,
                 n_classes, num_vars, min_split, rule, random_state):
        self.X = X
        self.y = y
        self.samples = samples
        self.sample_index = sample_index
        self.order = order
        self.nominal_attrs = nominal_attrs
        self.n_classes = n_classes
        self.num_vars = num_vars
        self.min_split = min_split
        self.rule = rule
        self.random_state = random_state
        self._columns = {}

    def column(self, j):
        """Values of column ``j`` for all rows; missing cells are NaN."""
        values = self._columns.get(j)
        if values is None:
            values = self.X.column_values(j)
            if self.X.is_sparse:
                self._columns[j] = values
        return values

    def count_samples(self, low, high, count):
        """Fill the weighted class counts of a node; return True if it is pure."""
        sample_index = self.sample_index
        samples = self.samples
        y = self.y
        pure = True
        label = -1
        for i in range(low, high):
            index = sample_index[i]
            y_i = y[index]
            count[y_i] += samples[index]
            if label == -1:
                label = y_i
            elif y_i != label:
                pure = False
        return pure

    def variable_index(self, low, high):
        """Draw the candidate features for a node."""
        X = self.X
        if X.is_sparse:
            # sample columns from the observed columns of the node's rows
            cols = set()
            sample_index = self.sample_index
            for i in range(low, high):
                cols.update(X.each_column_index_in_row(sample_index[i]).tolist())
            candidates = sorted(cols)
        else:
            candidates = range(X.num_columns)
        return sample_variables(list(candidates), self.num_vars, self.random_state)

    def node_split(self, low, high, n, count):
        """Find the best split of ``sample_index[low:high]``.

        ``n`` is the weighted number of samples and ``count`` their weighted
        class counts. Returns a SplitRecord whose ``feature`` is -1 when no
        candidate improves purity.
        """
        node_impurity = impurity(count, n, self.rule)
        false_count = np.zeros(self.n_classes, dtype=np.int64)

        best = SplitRecord()
        for j in self.variable_index(low, high):
            j = int(j)
            if j in self.nominal_attrs:
                current = self._split_nominal(low, high, n, count, false_count,
                                              node_impurity, j)
            else:
                current = self._split_quantitative(low, high, n, count, false_count,
                                                   node_impurity, j)
            if current.score > best.score:
                best.copy_from(current)
        return best

    def _split_nominal(self, low, high, n, count, false_count, node_impurity, j):
        samples = self.samples
        sample_index = self.sample_index
        y = self.y
        classes = self.n_classes
        min_split = self.min_split
        rule = self.rule
        values = self.column(j)

        split = SplitRecord()
        true_count = {}
        for i in range(low, high):
            index = sample_index[i]
            num_samples = samples[index]
            if num_samples == 0:
                continue
            v = values[index]
            if math.isnan(v):
                continue
            x_ij = int(v)
            tc_x = true_count.get(x_ij)
            if tc_x is None:
                tc_x = np.zeros(classes, dtype=np.int64)
                true_count[x_ij] = tc_x
            tc_x[y[index]] += num_samples

        for category, true_count_l in true_count.items():
            tc = int(true_count_l.sum())
            fc = n - tc
            # skip splitting on this category
            if tc < min_split or fc < min_split:
                continue
            np.subtract(count, true_count_l, out=false_count)
            gain = (node_impurity
                    - tc / n * impurity(true_count_l, tc, rule)
                    - fc / n * impurity(false_count, fc, rule))
            if gain > split.score:
                split.feature = j
                split.quantitative = False
                split.value = float(category)
                split.score = gain
                split.true_output = which_max(true_count_l)
                split.false_output = which_max(false_count)
        return split

    def _split_quantitative(self, low, high, n, count, false_count, node_impurity, j):
        split = SplitRecord()
        column = self.order.get(j)
        if column is None:
            # no observed value in this column
            return split

        samples = self.samples
        y = self.y
        min_split = self.min_split
        rule = self.rule
        values = self.column(j)

        true_count = np.zeros(self.n_classes, dtype=np.int64)
        tc = 0
        prev_x = math.nan
        prev_y = -1
        for i in column[low:high]:
            num_samples = samples[i]
            if num_samples == 0:
                continue
            x_ij = values[i]
            if math.isnan(x_ij):
                continue
            y_i = y[i]
            # equal values and runs of the same label are never cut apart
            if not (math.isnan(prev_x) or x_ij == prev_x or y_i == prev_y):
                fc = n - tc
                if tc >= min_split and fc >= min_split:
                    np.subtract(count, true_count, out=false_count)
                    gain = (node_impurity
                            - tc / n * impurity(true_count, tc, rule)
                            - fc / n * impurity(false_count, fc, rule))
                    if gain > split.score:
                        split.feature = j
                        split.quantitative = True
                        split.value = (x_ij + prev_x) / 2.0
                        split.score = gain
                        split.true_output = which_max(true_count)
                        split.false_output = which_max(false_count)
            prev_x = x_ij
            prev_y = y_i
            true_count[y_i] += num_samples
            tc += num_samples
        return split
