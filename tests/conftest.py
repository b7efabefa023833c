import numpy as np
import pytest


@pytest.fixture
def separable_dataset() -> tuple[np.ndarray, np.ndarray]:
    """One feature 1..10: class 0 up to 5, class 1 above"""
    features = np.arange(1, 11, dtype=np.float64).reshape(-1, 1)
    labels = np.array([0, 0, 0, 0, 0, 1, 1, 1, 1, 1])
    return features, labels


@pytest.fixture
def prunable_dataset() -> tuple[np.ndarray, np.ndarray]:
    """Best split leaves class 0 the majority on both sides"""
    features = np.arange(1, 11, dtype=np.float64).reshape(-1, 1)
    labels = np.array([0, 0, 0, 1, 0, 0, 0, 0, 0, 1])
    return features, labels


@pytest.fixture
def nominal_dataset() -> tuple[np.ndarray, np.ndarray]:
    """Categories 0, 1, 2 repeated; only category 2 is class 1"""
    features = np.array([[0], [1], [2]] * 3, dtype=np.float64)
    labels = np.array([0, 0, 1] * 3)
    return features, labels


@pytest.fixture
def missing_value_dataset() -> tuple[np.ndarray, np.ndarray]:
    """A NaN cell among quantitative values"""
    features = np.array([[1.0], [2.0], [3.0], [np.nan], [10.0], [11.0], [12.0]])
    labels = np.array([0, 0, 0, 1, 1, 1, 1])
    return features, labels


@pytest.fixture
def random_dataset() -> tuple[np.ndarray, np.ndarray]:
    """100 rows, 4 features, label depends on the first two features"""
    rng = np.random.RandomState(0)
    features = rng.rand(100, 4)
    labels = (features[:, 0] + features[:, 1] > 1.0).astype(int)
    return features, labels


@pytest.fixture
def noisy_dataset() -> tuple[np.ndarray, np.ndarray]:
    """200 rows with random labels, grows deep trees"""
    rng = np.random.RandomState(1)
    features = rng.rand(200, 4)
    labels = rng.randint(0, 3, size=200)
    return features, labels
