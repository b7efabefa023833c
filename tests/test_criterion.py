import math

import numpy as np
import pytest

from cartforest._criterion import SplitRule, impurity, which_max


class TestImpurity:
    """Impurity of a node from its class counts."""

    def test_gini_balanced(self):
        assert impurity(np.array([5, 5]), 10, SplitRule.GINI) == pytest.approx(0.5)

    def test_entropy_balanced(self):
        assert impurity(np.array([5, 5]), 10, SplitRule.ENTROPY) == pytest.approx(1.0)

    def test_classification_error_balanced(self):
        value = impurity(np.array([5, 5]), 10, SplitRule.CLASSIFICATION_ERROR)
        assert value == pytest.approx(0.5)

    @pytest.mark.parametrize("rule", list(SplitRule))
    def test_pure_node_is_zero(self, rule):
        assert impurity(np.array([0, 7, 0]), 7, rule) == pytest.approx(0.0)

    def test_entropy_ignores_empty_classes(self):
        value = impurity(np.array([2, 0, 2]), 4, SplitRule.ENTROPY)
        assert value == pytest.approx(1.0)
        assert not math.isnan(value)

    def test_gini_three_classes(self):
        value = impurity(np.array([1, 1, 2]), 4, SplitRule.GINI)
        assert value == pytest.approx(1.0 - (0.0625 + 0.0625 + 0.25))


class TestSplitRule:
    def test_resolve_by_name(self):
        assert SplitRule.resolve("GINI") is SplitRule.GINI
        assert SplitRule.resolve("entropy") is SplitRule.ENTROPY
        assert SplitRule.resolve("classification_error") is SplitRule.CLASSIFICATION_ERROR

    def test_resolve_member(self):
        assert SplitRule.resolve(SplitRule.ENTROPY) is SplitRule.ENTROPY

    def test_resolve_unknown(self):
        with pytest.raises(ValueError):
            SplitRule.resolve("variance")


class TestWhichMax:
    def test_first_index_wins_ties(self):
        assert which_max(np.array([1, 3, 3])) == 1

    def test_single_max(self):
        assert which_max(np.array([4, 0, 1])) == 0
