import math

import numpy as np
import pytest
from scipy.sparse import csr_matrix

from cartforest._matrix import CSRMatrix, DenseMatrix, as_feature_matrix, as_row_vector
from cartforest._utils import (compute_num_input_vars, create_random_state,
                               order_for_samples, resolve_attributes,
                               sample_variables, sort_attributes,
                               tree_seed)


class TestResolveAttributes:
    """Parsing of Q/C attribute strings."""

    def test_nominal_columns(self):
        assert resolve_attributes("Q,C,Q") == frozenset({1})

    def test_case_insensitive(self):
        assert resolve_attributes("c,q,C") == frozenset({0, 2})

    def test_brackets(self):
        assert resolve_attributes("[C,Q]") == frozenset({0})

    def test_invalid_token_yields_empty_set(self):
        assert resolve_attributes("Q,Q,3,Q") == frozenset()

    def test_none(self):
        assert resolve_attributes(None) is None


class TestComputeNumInputVars:
    @pytest.mark.parametrize(
        "num_vars, expected",
        [(-1, 4), (0, 4), (0.5, 5), (1, 10), (3, 3), (0.01, 1), (20, 10)],
    )
    def test_resolution(self, num_vars, expected):
        X = DenseMatrix(np.zeros((2, 10)))
        assert compute_num_input_vars(num_vars, X) == expected


class TestSortAttributes:
    def test_missing_values_last_and_ties_stable(self):
        X = DenseMatrix(np.array([[3.0], [np.nan], [1.0], [3.0], [2.0]]))
        order = sort_attributes(frozenset(), X)
        assert order[0].tolist() == [2, 4, 0, 3, 1]

    def test_nominal_and_unobserved_columns_left_out(self):
        X = DenseMatrix(np.array([[1.0, 0.0, np.nan], [2.0, 1.0, np.nan]]))
        order = sort_attributes(frozenset({1}), X)
        assert list(order) == [0]

    def test_sparse_columns_without_values_left_out(self):
        X = CSRMatrix(csr_matrix(np.array([[0.0, 2.0], [0.0, 1.0]])))
        order = sort_attributes(frozenset(), X)
        assert list(order) == [1]
        assert order[1].tolist() == [1, 0]

    def test_order_for_samples_drops_unsampled_rows(self):
        order = {0: np.array([3, 0, 2, 1], dtype=np.intp)}
        restricted = order_for_samples(order, np.array([1, 0, 2, 1]))
        assert restricted[0].tolist() == [3, 0, 2]
        assert order[0].tolist() == [3, 0, 2, 1]


class TestRandomHelpers:
    def test_sample_variables_sorted_without_replacement(self):
        picked = sample_variables(list(range(10)), 4, create_random_state(7))
        assert len(picked) == 4
        assert len(set(picked.tolist())) == 4
        assert picked.tolist() == sorted(picked.tolist())

    def test_sample_variables_all_candidates(self):
        picked = sample_variables([5, 1, 3], 5, create_random_state(7))
        assert picked.tolist() == [1, 3, 5]

    def test_tree_seed_wraps_around(self):
        assert tree_seed(7, 3) == 10
        assert tree_seed(2 ** 32 - 1, 0) == 2 ** 32 - 1
        assert tree_seed(2 ** 32 - 1, 2) == 1

    def test_same_seed_same_draw(self):
        a = sample_variables(list(range(20)), 5, create_random_state(3))
        b = sample_variables(list(range(20)), 5, create_random_state(3))
        assert a.tolist() == b.tolist()


class TestFeatureMatrix:
    def test_dense_get_missing(self):
        X = as_feature_matrix(np.array([[1.0, np.nan]]))
        assert X.get(0, 0) == 1.0
        assert X.get(0, 1, -1.0) == -1.0

    def test_dense_is_read_only(self):
        X = as_feature_matrix([[1.0, 2.0]])
        with pytest.raises(ValueError):
            X.X[0, 0] = 5.0

    def test_sparse_absent_cell_is_missing(self):
        X = as_feature_matrix(csr_matrix(np.array([[0.0, 2.0], [3.0, 0.0]])))
        assert X.is_sparse
        assert X.get(0, 1) == 2.0
        assert math.isnan(X.get(0, 0))
        assert X.get(1, 1, 9.0) == 9.0
        assert X.each_column_index_in_row(1).tolist() == [0]

    def test_sparse_column_values(self):
        X = as_feature_matrix(csr_matrix(np.array([[0.0, 2.0], [3.0, 0.0]])))
        values = X.column_values(1)
        assert values[0] == 2.0
        assert math.isnan(values[1])

    def test_row_vector_from_mapping(self):
        x = as_row_vector({2: 1.5})
        assert x.get(2) == 1.5
        assert math.isnan(x.get(0))

    def test_rejects_non_matrix(self):
        with pytest.raises(ValueError):
            as_feature_matrix(np.zeros(3))
