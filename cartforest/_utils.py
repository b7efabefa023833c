# _utils.py
import math

import numpy as np
from sklearn.utils import check_random_state

# Largest value of a 32-bit signed int, the unbounded default of size options
MAX_INT = 2 ** 31 - 1

# Upper bound (exclusive) of derived seeds
SEED_MAX = np.iinfo(np.int32).max

# Seeds accepted by numpy.random.RandomState are in [0, 2**32)
SEED_RANGE = 2 ** 32

# Attribute kind tags written into serialized nodes
NUMERIC = 1
NOMINAL = 2


# =============================================================================
# Random helpers
# =============================================================================

def generate_seed():
    """Draw a fresh seed from OS entropy."""
    return int(np.random.SeedSequence().generate_state(1)[0] % SEED_MAX)


def derive_seed(random_state):
    """Draw the seed of a child generator from ``random_state``."""
    return int(random_state.randint(0, SEED_MAX))


def tree_seed(seed, index):
    """Seed of the ``index``-th tree of a forest seeded with ``seed``."""
    return (seed + index) % SEED_RANGE


def create_random_state(seed=None):
    """Return a ``numpy.random.RandomState``; ``None`` or -1 means unseeded."""
    if seed is None or (isinstance(seed, (int, np.integer)) and seed == -1):
        seed = generate_seed()
    return check_random_state(seed)


def sample_variables(candidates, num_vars, random_state):
    """Draw up to ``num_vars`` of ``candidates`` without replacement.

    The result is sorted so that features are always scanned in index order.
    """
    candidates = np.asarray(candidates, dtype=np.intp)
    if candidates.shape[0] <= num_vars:
        return np.sort(candidates)
    picked = random_state.choice(candidates.shape[0], size=num_vars, replace=False)
    return np.sort(candidates[picked])


# =============================================================================
# Attribute helpers
# =============================================================================

def resolve_attributes(attribute_types):
    """Parse a comma separated attribute string such as ``"Q,C,Q"``.

    ``Q`` marks a quantitative variable and ``C`` a categorical one. Returns
    the set of nominal column indices; an unparsable string yields an empty
    set, ``None`` yields ``None``.
    """
    if attribute_types is None:
        return None
    text = attribute_types.strip()
    if text.startswith('[') and text.endswith(']'):
        text = text[1:-1]
    if not text:
        return frozenset()

    nominal = set()
    for i, token in enumerate(text.split(',')):
        token = token.strip().upper()
        if token == 'C':
            nominal.add(i)
        elif token != 'Q':
            return frozenset()
    return frozenset(nominal)


def sort_attributes(nominal_attrs, X):
    """Compute the order matrix of the quantitative columns of ``X``.

    Each entry maps a column to all row indices sorted ascending by value.
    Ties keep their row order and missing values are placed last. Nominal
    columns and columns without any observed value are left out.
    """
    nominal_attrs = nominal_attrs or frozenset()
    order = {}
    for j in X.observed_columns():
        j = int(j)
        if j in nominal_attrs:
            continue
        order[j] = np.argsort(X.column_values(j), kind='stable').astype(np.intp)
    return order


def order_for_samples(order, samples):
    """Working copy of ``order`` restricted to rows with a positive weight."""
    active = samples > 0
    return {j: column[active[column]].copy() for j, column in order.items()}


def compute_num_input_vars(num_vars, X):
    """Resolve the number of variables examined at each split.

    ``num_vars <= 0`` means ``ceil(sqrt(d))``, a value in ``(0, 1]`` is a
    fraction of the ``d`` columns and anything larger is taken as is.
    """
    num_columns = X.num_columns
    if num_vars <= 0:
        num_input_vars = int(math.ceil(math.sqrt(num_columns)))
    elif num_vars <= 1:
        num_input_vars = int(num_vars * num_columns)
    else:
        num_input_vars = int(num_vars)
    return max(1, min(num_input_vars, num_columns))
