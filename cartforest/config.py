# config.py
import dataclasses
import math

from ._criterion import SplitRule
from ._utils import MAX_INT, resolve_attributes
from .exceptions import InvalidConfigurationError


def _is_unbounded(value: float) -> bool:
    return value >= MAX_INT or math.isinf(value)


@dataclasses.dataclass(frozen=True)
class TreeConfig:
    """Hyper-parameters of a single decision tree."""

    num_vars: int | None = None
    """Number of variables examined at each split, None for all columns."""

    max_depth: int = MAX_INT
    """Maximum depth of the tree; the root has depth 1."""

    max_leafs: float = MAX_INT
    """Maximum number of leaves; MAX_INT or inf grows depth-first."""

    min_split: int = 2
    """A node with no more than `min_split` samples is not split."""

    min_samples_leaf: int = 1
    """Minimum weighted number of samples in a leaf."""

    rule: SplitRule = SplitRule.GINI

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "rule", SplitRule.resolve(self.rule))
        except ValueError as e:
            raise InvalidConfigurationError(str(e)) from e
        if self.max_depth < 2:
            raise InvalidConfigurationError(
                f"maxDepth should be greater than 1: {self.max_depth}"
            )
        if self.max_leafs < 2:
            raise InvalidConfigurationError(f"Invalid maximum leaves: {self.max_leafs}")
        if self.min_split < 2:
            raise InvalidConfigurationError(
                "Invalid minimum number of samples required to split an internal node: "
                f"{self.min_split}"
            )
        if self.min_samples_leaf < 1:
            raise InvalidConfigurationError(
                f"Invalid minimum size of leaf nodes: {self.min_samples_leaf}"
            )

    @property
    def best_first(self) -> bool:
        """True when the number of leaves bounds the growth."""
        return not _is_unbounded(self.max_leafs)

    def resolve_num_vars(self, num_columns: int) -> int:
        num_vars = num_columns if self.num_vars is None else self.num_vars
        if num_vars <= 0 or num_vars > num_columns:
            raise InvalidConfigurationError(
                f"Invalid number of variables to split on at a node of the tree: {num_vars}"
            )
        return int(num_vars)


@dataclasses.dataclass(frozen=True)
class ForestConfig:
    """Hyper-parameters of a random forest training run."""

    num_trees: int = 50
    num_vars: float = -1.0
    """<= 0: ceil(sqrt(d)), (0, 1]: fraction of d, otherwise a count."""

    max_depth: int = MAX_INT
    max_leaf_nodes: float = MAX_INT
    min_split: int = 5
    min_samples_leaf: int = 1
    seed: int = -1
    """-1 draws an independent seed per tree, otherwise tree i uses (seed + i) mod 2**32."""

    attribute_types: str | None = None
    """Comma separated Q (quantitative) / C (categorical) flags, e.g. "Q,C,Q"."""

    rule: SplitRule = SplitRule.GINI
    n_jobs: int = 1
    """Size of the worker pool, <= 0 for one worker per CPU."""

    allow_threads: bool = True
    """False when the host forbids spawning threads."""

    compress: bool = True

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "rule", SplitRule.resolve(self.rule))
        except ValueError as e:
            raise InvalidConfigurationError(str(e)) from e
        if self.num_trees < 1:
            raise InvalidConfigurationError(f"Invalid number of trees: {self.num_trees}")
        if self.min_split <= 0:
            raise InvalidConfigurationError(f"Invalid minSamplesSplit: {self.min_split}")
        if self.max_depth < 1:
            raise InvalidConfigurationError(f"Invalid maxDepth: {self.max_depth}")
        if self.seed < -1:
            raise InvalidConfigurationError(f"Invalid seed: {self.seed}")

    @property
    def nominal_attributes(self) -> frozenset[int] | None:
        return resolve_attributes(self.attribute_types)

    def tree_config(self, num_vars: int) -> TreeConfig:
        """Per-tree hyper-parameters once `num_vars` is resolved."""
        return TreeConfig(
            num_vars=num_vars,
            max_depth=self.max_depth,
            max_leafs=self.max_leaf_nodes,
            min_split=self.min_split,
            min_samples_leaf=self.min_samples_leaf,
            rule=self.rule,
        )
