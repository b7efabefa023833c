"""Random forest training driver.

Each tree is grown on its own bootstrap sample of the shared training data.
Trees are built concurrently and every finished tree is emitted as one
``ForestModelRow``; the row emitted last also carries the out-of-bag error
of the whole forest.
"""
import dataclasses
import logging
import threading
import time
import uuid

import numpy as np

from ._criterion import which_max
from ._executor import TaskExecutor
from ._matrix import as_feature_matrix, as_row_vector
from ._serialize import decode_model, deserialize_tree, encode_model
from ._tree import DecisionTree
from ._utils import (compute_num_input_vars, create_random_state, derive_seed,
                     generate_seed, resolve_attributes, sort_attributes,
                     tree_seed)
from .config import ForestConfig
from .exceptions import InvalidConfigurationError

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class ForestModelRow:
    """One emitted tree of a forest."""

    model_id: str
    tree_error: float
    serialized_model: str
    """Text-safe encoding of the serialized tree."""

    variable_importance: list[float]
    oob_error: float
    """Misclassified out-of-bag rows of the whole forest, set on the last row only."""

    oob_test_count: int
    compressed: bool = True

    def load_tree(self):
        """Decode the root Node of this row's tree."""
        return deserialize_tree(decode_model(self.serialized_model), self.compressed)


class OutOfBagAccumulator:
    """Per-row class votes of the trees for which the row was out of bag."""

    def __init__(self, n_rows, n_classes):
        self.votes = np.zeros((n_rows, n_classes), dtype=np.int64)
        self.counts = np.zeros(n_rows, dtype=np.int64)
        self._lock = threading.Lock()

    def add(self, rows, predictions):
        with self._lock:
            np.add.at(self.votes, (rows, predictions), 1)
            np.add.at(self.counts, rows, 1)

    def evaluate(self, y):
        """Return ``(oob_error, oob_test_count)`` over the rows seen so far."""
        with self._lock:
            tested = np.flatnonzero(self.counts > 0)
            majority = np.argmax(self.votes[tested], axis=1)
            errors = int(np.count_nonzero(majority != y[tested]))
            return errors, int(tested.shape[0])


class RemainingTasks:
    """Countdown of the trees still being built."""

    def __init__(self, n):
        self._remaining = n
        self._lock = threading.Lock()

    def decrement(self):
        with self._lock:
            self._remaining -= 1
            return self._remaining


class RandomForestClassifierTrainer:
    """Train a random forest of classification trees.

    Parameters
    ----------
    config : ForestConfig, optional
    emitter : callable, optional
        Receives every ForestModelRow; calls are never concurrent. Defaults
        to collecting the rows into the list returned by ``train``.
    executor : TaskExecutor, optional
        Defaults to a TaskExecutor sized by ``config.n_jobs``.
    """

    def __init__(self, config=None, emitter=None, executor=None):
        self.config = config if config is not None else ForestConfig()
        self.emitter = emitter
        if executor is None:
            executor = TaskExecutor(self.config.n_jobs, self.config.allow_threads)
        self.executor = executor
        self._emit_lock = threading.Lock()

    def train(self, X, y, attributes=None, order=None):
        """Build ``config.num_trees`` trees over ``(X, y)`` and emit them.

        ``attributes`` is a set of nominal column indices or an attribute
        string such as ``"Q,C,Q"``; it overrides ``config.attribute_types``.
        ``order`` is a precomputed order matrix. Returns the emitted rows.
        """
        config = self.config
        X = as_feature_matrix(X)
        y = np.asarray(y, dtype=np.intp)
        if X.num_rows != y.shape[0]:
            raise InvalidConfigurationError(
                "The sizes of X and Y don't match: %d != %d" % (X.num_rows, y.shape[0]))
        if y.shape[0] == 0:
            raise InvalidConfigurationError("No training example given")
        if np.any(y < 0) or np.unique(y).shape[0] < 2:
            raise InvalidConfigurationError("Only one class or negative class labels.")

        if attributes is None:
            nominal_attrs = config.nominal_attributes
        elif isinstance(attributes, str):
            nominal_attrs = resolve_attributes(attributes)
        else:
            nominal_attrs = frozenset(attributes)
        nominal_attrs = nominal_attrs or frozenset()

        num_vars = compute_num_input_vars(config.num_vars, X)
        # reject bad tree options before any task starts
        tree_config = config.tree_config(num_vars)
        if order is None:
            order = sort_attributes(nominal_attrs, X)

        logger.info(
            "numTrees: %d, numVars: %d, maxDepth: %d, maxLeafNodes: %s, minSamplesSplit: %d, "
            "minSamplesLeaf: %d, splitRule: %s, seed: %d",
            config.num_trees, num_vars, config.max_depth, config.max_leaf_nodes,
            config.min_split, config.min_samples_leaf, config.rule.name, config.seed)

        n_classes = int(y.max()) + 1
        oob = OutOfBagAccumulator(X.num_rows, n_classes)
        remaining = RemainingTasks(config.num_trees)
        rows = []
        emit = self.emitter if self.emitter is not None else rows.append

        tasks = [
            _TrainingTask(self, i, X, y, tree_config, nominal_attrs, order,
                          -1 if config.seed == -1 else tree_seed(config.seed, i),
                          oob, remaining, emit)
            for i in range(config.num_trees)
        ]
        self.executor.run(tasks)
        return rows

    def _forward(self, task, error, model, importance):
        # the last task to count down is also the last one to emit
        with self._emit_lock:
            remain = task.remaining.decrement()
            if remain == 0:
                oob_error, oob_test_count = task.oob.evaluate(task.y)
            else:
                oob_error, oob_test_count = 0, 0
            row = ForestModelRow(str(uuid.uuid4()), float(error), model, importance,
                                 float(oob_error), oob_test_count, self.config.compress)
            task.emit(row)
            logger.info("Forwarded %d-th DecisionTree out of %d",
                        task.task_id + 1, self.config.num_trees)
        return remain


class _TrainingTask:
    """Build, evaluate and emit a single tree of the forest."""

    def __init__(self, trainer, task_id, X, y, tree_config, nominal_attrs, order,
                 seed, oob, remaining, emit):
        self.trainer = trainer
        self.task_id = task_id
        self.X = X
        self.y = y
        self.tree_config = tree_config
        self.nominal_attrs = nominal_attrs
        self.order = order
        self.seed = seed
        self.oob = oob
        self.remaining = remaining
        self.emit = emit

    def __call__(self):
        X = self.X
        y = self.y
        if self.seed == -1:
            s = generate_seed()
        else:
            s = derive_seed(create_random_state(self.seed))
        rnd1 = create_random_state(s)
        rnd2 = create_random_state(derive_seed(rnd1))
        n = X.num_rows

        # Training samples drawn with replacement
        samples = np.bincount(rnd1.randint(0, n, size=n), minlength=n)

        start = time.perf_counter()
        tree = DecisionTree(X, y, self.tree_config, nominal_attrs=self.nominal_attrs,
                            samples=samples, order=self.order, random_state=rnd2)
        logger.debug("Tree %d built in %.3f sec", self.task_id + 1, time.perf_counter() - start)

        # out-of-bag prediction
        oob_rows = np.flatnonzero(samples == 0)
        error = 0.0
        if oob_rows.shape[0] > 0:
            predictions = np.array([tree.root.predict(X.row(i)) for i in oob_rows],
                                   dtype=np.intp)
            self.oob.add(oob_rows, predictions)
            error = np.count_nonzero(predictions != y[oob_rows]) / oob_rows.shape[0]

        start = time.perf_counter()
        model = encode_model(tree.serialize(self.trainer.config.compress))
        importance = tree.importance().tolist()
        tree = None

        remain = self.trainer._forward(self, error, model, importance)
        logger.debug("Tree %d serialized in %.3f sec", self.task_id + 1,
                     time.perf_counter() - start)
        return remain


def predict_forest(rows, x):
    """Majority vote of the trees in ``rows`` for instance ``x``.

    Ties go to the smallest class id.
    """
    x = as_row_vector(x)
    votes = {}
    for row in rows:
        output = row.load_tree().predict(x)
        votes[output] = votes.get(output, 0) + 1
    if not votes:
        raise ValueError("No tree given")
    count = np.zeros(max(votes) + 1, dtype=np.int64)
    for output, n in votes.items():
        count[output] = n
    return which_max(count)
