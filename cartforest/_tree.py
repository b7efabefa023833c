# cartforest/_tree.py
import heapq
import itertools
import logging

import numpy as np

from ._criterion import which_max
from ._matrix import as_feature_matrix, as_row_vector
from ._node import Node, export_graphviz, export_javascript, make_split
from ._partitioner import partition_order
from ._serialize import deserialize_tree, serialize_tree
from ._splitter import Splitter
from ._utils import create_random_state, order_for_samples, sort_attributes
from .config import TreeConfig
from .exceptions import InvalidConfigurationError, InvalidSplitError

logger = logging.getLogger(__name__)


class TrainNode:
    """A node under construction, owning the samples ``sample_index[low:high]``.

    The range bounds only live as long as the build; the finished Node keeps
    its split and children alone.
    """

    __slots__ = ('tree', 'node', 'depth', 'low', 'high', 'samples', 'sequence')

    def __init__(self, tree, node, depth, low, high, samples):
        if low >= high:
            raise ValueError(
                "Unexpected condition was met. low=%d, high=%d" % (low, high))
        self.tree = tree
        self.node = node
        self.depth = depth
        self.low = low
        self.high = high
        self.samples = samples
        self.sequence = next(tree._sequence)

    def __lt__(self, other):
        # heapq pops the smallest: highest gain first, then creation order
        return (-self.score, self.sequence) < (-other.score, other.sequence)

    @property
    def score(self):
        split = self.node.split
        return 0.0 if split is None else split.score

    def find_best_split(self):
        """Search the best split of this node and record it on the node.

        Returns False when the node has to stay a leaf.
        """
        tree = self.tree
        config = tree.config

        # avoid split if tree depth is larger than threshold
        if self.depth >= config.max_depth:
            return False
        # avoid split if the number of samples is less than threshold
        if self.samples <= config.min_split:
            return False

        count = np.zeros(tree.n_classes, dtype=np.int64)
        # if all instances have same label, stop splitting
        if tree.splitter.count_samples(self.low, self.high, count):
            return False

        best = tree.splitter.node_split(self.low, self.high, self.samples, count)
        if not best.found:
            return False
        self.node.split = make_split(best.feature, best.quantitative, best.value,
                                     best.score, best.true_output, best.false_output)
        return True

    def split(self, next_splits=None):
        """Apply the recorded split and grow the children.

        Children are grown recursively when ``next_splits`` is None, and
        pushed onto the ``next_splits`` heap otherwise. Returns False when
        the node ends up a leaf.
        """
        node = self.node
        split = node.split
        if split is None or not node.is_leaf:
            raise InvalidSplitError("Split a node with invalid feature.")

        tree = self.tree
        config = tree.config
        goes_left = self._predicate(split)

        tc, fc, pivot, true_posteriori, false_posteriori = self._split_samples(goes_left)
        if tc < config.min_samples_leaf or fc < config.min_samples_leaf:
            node.mark_as_leaf()
            return False
        # tc and fc are at least min_samples_leaf >= 1
        true_posteriori /= tc
        false_posteriori /= fc

        partition_order(tree.order, tree.sample_index, self.low, pivot, self.high, goes_left)

        leaves = 0
        node.true_child = Node(split.true_output, true_posteriori)
        true_child = TrainNode(tree, node.true_child, self.depth + 1, self.low, pivot, tc)
        if tc >= config.min_split and true_child.find_best_split():
            if next_splits is not None:
                heapq.heappush(next_splits, true_child)
            elif not true_child.split(None):
                leaves += 1
        else:
            leaves += 1

        node.false_child = Node(split.false_output, false_posteriori)
        false_child = TrainNode(tree, node.false_child, self.depth + 1, pivot, self.high, fc)
        if fc >= config.min_split and false_child.find_best_split():
            if next_splits is not None:
                heapq.heappush(next_splits, false_child)
            elif not false_child.split(None):
                leaves += 1
        else:
            leaves += 1

        # Prune meaningless branches: both children are leaves of the same class
        if leaves == 2 and node.true_child.output == node.false_child.output:
            node.mark_as_leaf()
            return False

        tree._importance[split.feature] += split.score
        # a posteriori is not needed for internal nodes
        node.posteriori = None
        return True

    def _predicate(self, split):
        """Row predicate of ``split`` precomputed over this node's rows."""
        tree = self.tree
        rows = tree.sample_index[self.low:self.high]
        values = tree.splitter.column(split.feature)[rows]
        mask = np.zeros(tree.X.num_rows, dtype=np.bool_)
        if split.quantitative:
            mask[rows] = values <= split.threshold
        else:
            mask[rows] = values == split.category
        return mask.__getitem__

    def _split_samples(self, goes_left):
        tree = self.tree
        sample_index = tree.sample_index
        samples = tree.samples
        y = tree.y

        tc = 0
        fc = 0
        pivot = self.low
        true_posteriori = np.zeros(tree.n_classes, dtype=np.float64)
        false_posteriori = np.zeros(tree.n_classes, dtype=np.float64)
        for k in range(self.low, self.high):
            i = sample_index[k]
            num_samples = samples[i]
            y_i = y[i]
            if goes_left(i):
                tc += num_samples
                true_posteriori[y_i] += num_samples
                pivot += 1
            else:
                fc += num_samples
                false_posteriori[y_i] += num_samples
        return int(tc), int(fc), pivot, true_posteriori, false_posteriori


class TreeBuilder:
    """Interface for different tree building strategies."""

    def build(self, tree, root):
        """Grow ``tree`` from its root TrainNode."""
        raise NotImplementedError()


class DepthFirstTreeBuilder(TreeBuilder):
    """Build a decision tree in depth-first fashion (unbounded leaves)."""

    def build(self, tree, root):
        if root.find_best_split():
            root.split(None)


class BestFirstTreeBuilder(TreeBuilder):
    """Build a decision tree in best-first fashion, bounded by ``max_leafs``."""

    def __init__(self, max_leafs):
        self.max_leafs = max_leafs

    def build(self, tree, root):
        # Priority queue for best-first tree growing
        frontier = []
        if root.find_best_split():
            heapq.heappush(frontier, root)

        # Pop the best leaf, split it and push its children until the
        # maximum number of leaves is reached
        leaves = 1
        while leaves < self.max_leafs and frontier:
            parent = heapq.heappop(frontier)
            if parent.split(frontier):
                leaves += 1

        # nodes still waiting for a split are finalized as leaves
        for pending in frontier:
            pending.node.mark_as_leaf()


def _check_argument(X, y, samples):
    if X.num_rows != y.shape[0]:
        raise InvalidConfigurationError(
            "The sizes of X and Y don't match: %d != %d" % (X.num_rows, y.shape[0]))
    if y.shape[0] == 0:
        raise InvalidConfigurationError("No training example given")
    if np.any(y < 0):
        raise InvalidConfigurationError("Only one class or negative class labels.")
    if np.unique(y).shape[0] < 2:
        raise InvalidConfigurationError("Only one class or negative class labels.")
    if samples is not None:
        if samples.shape[0] != y.shape[0]:
            raise InvalidConfigurationError(
                "The sizes of samples and Y don't match: %d != %d"
                % (samples.shape[0], y.shape[0]))
        if np.any(samples < 0):
            raise InvalidConfigurationError("Sample weights must be non-negative")
        if not np.any(samples > 0):
            raise InvalidConfigurationError("No training example given")


class DecisionTree:
    """Classification tree grown by recursive partitioning (CART).

    Parameters
    ----------
    X : array-like, scipy sparse matrix, DenseMatrix or CSRMatrix
        Training features, shared read-only.
    y : array-like of int
        Class labels in ``[0, k)``.
    config : TreeConfig, optional
    nominal_attrs : set of int, optional
        Indices of nominal (categorical) columns; others are quantitative.
    samples : array-like of int, optional
        Number of times each row is sampled; 0 excludes a row.
    order : dict, optional
        Precomputed order matrix as returned by ``sort_attributes``.
    random_state : int, RandomState or None
        Drives the sampling of candidate features.
    """

    def __init__(self, X, y, config=None, nominal_attrs=None, samples=None,
                 order=None, random_state=None):
        self.config = config if config is not None else TreeConfig()
        X = as_feature_matrix(X)
        y = np.asarray(y, dtype=np.intp)
        if samples is not None:
            samples = np.asarray(samples, dtype=np.int64)
        _check_argument(X, y, samples)
        num_vars = self.config.resolve_num_vars(X.num_columns)

        self.X = X
        self.y = y
        self.n_classes = int(y.max()) + 1
        self.nominal_attrs = frozenset(nominal_attrs or ())
        self.random_state = create_random_state(random_state)
        self._importance = np.zeros(X.num_columns, dtype=np.float64)
        self._sequence = itertools.count()

        if samples is None:
            samples = np.ones(y.shape[0], dtype=np.int64)
        self.samples = samples
        self.sample_index = np.flatnonzero(samples > 0).astype(np.intp)

        if order is None:
            order = sort_attributes(self.nominal_attrs, X)
        self.order = order_for_samples(order, samples)

        self.splitter = Splitter(X, y, samples, self.sample_index, self.order,
                                 self.nominal_attrs, self.n_classes, num_vars,
                                 self.config.min_split, self.config.rule,
                                 self.random_state)

        count = np.bincount(y, weights=samples, minlength=self.n_classes).astype(np.int64)
        total = int(count.sum())
        self.root = Node(which_max(count), count / total)
        train_root = TrainNode(self, self.root, 1, 0, self.sample_index.shape[0], total)

        if self.config.best_first:
            builder = BestFirstTreeBuilder(self.config.max_leafs)
        else:
            builder = DepthFirstTreeBuilder()
        builder.build(self, train_root)

        # training state is not needed once the node graph is complete
        self.splitter = None
        self.order = None
        self.sample_index = None

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Built DecisionTree: %d nodes, %d leaves, depth %d",
                         self.root.count_nodes(), self.root.count_leaves(), self.root.depth())

    def importance(self):
        """Variable importance: the sum of split gains per feature."""
        return self._importance

    def predict(self, x, handler=None):
        """Predict the class of ``x``; ``handler(output, posteriori)`` is optional."""
        return self.root.predict(as_row_vector(x), handler)

    def predict_proba(self, x):
        return self.root.leaf_for(as_row_vector(x)).posteriori

    def predict_matrix(self, X):
        X = as_feature_matrix(X)
        return np.array([self.root.predict(X.row(i)) for i in range(X.num_rows)],
                        dtype=np.intp)

    def serialize(self, compress=False):
        return serialize_tree(self.root, compress)

    @staticmethod
    def deserialize(data, compressed=False):
        """Decode the root Node of a serialized tree."""
        return deserialize_tree(data, compressed)

    def export_javascript(self, feature_names=None, class_names=None):
        builder = []
        export_javascript(self.root, builder, feature_names, class_names)
        return "".join(builder)

    def export_graphviz(self, feature_names=None, class_names=None, output_name="class"):
        builder = [
            "digraph Tree {\n",
            ' node [shape=box, style="filled, rounded", color="black", fontname=helvetica];\n',
            " edge [fontname=helvetica];\n",
        ]
        export_graphviz(self.root, builder, feature_names, class_names, output_name,
                        self.n_classes)
        builder.append("}\n")
        return "".join(builder)

    def __str__(self):
        return self.export_javascript()
