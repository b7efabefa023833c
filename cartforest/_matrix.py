# _matrix.py
"""Read-only feature matrices shared by every tree of a forest.

Dense input is kept as a 2-D float64 ndarray where NaN marks a missing
value. Sparse input is kept in Compressed Sparse Row (CSR) format; a cell
that is not stored is *missing*, not zero, so ``get`` returns the caller's
default for it.
"""
import numpy as np
from scipy.sparse import issparse, csr_matrix

DTYPE = np.float64


class RowVector:
    """A single row with random access by column."""

    __slots__ = ('_values', '_sparse')

    def __init__(self, values, sparse=False):
        self._values = values
        self._sparse = sparse

    def get(self, col, default=np.nan):
        if self._sparse:
            return self._values.get(col, default)
        if col < 0 or col >= self._values.shape[0]:
            return default
        return self._values[col]


def as_row_vector(x):
    """Wrap ``x`` (RowVector, mapping or 1-D array-like) for prediction."""
    if isinstance(x, RowVector):
        return x
    if isinstance(x, dict):
        return RowVector({int(k): float(v) for k, v in x.items()}, sparse=True)
    if issparse(x):
        row = csr_matrix(x)
        if row.shape[0] != 1:
            raise ValueError("Expected a single row, got shape %s" % (row.shape,))
        return RowVector(dict(zip(row.indices.tolist(), row.data.tolist())), sparse=True)
    return RowVector(np.asarray(x, dtype=DTYPE).ravel())


class DenseMatrix:
    """Row-addressable dense matrix."""

    is_sparse = False

    def __init__(self, X):
        X = np.array(X, dtype=DTYPE)
        if X.ndim != 2:
            raise ValueError("X should be a 2-d array, got %d dimension(s)" % X.ndim)
        self.X = X
        self.X.setflags(write=False)

    @property
    def num_rows(self):
        return self.X.shape[0]

    @property
    def num_columns(self):
        return self.X.shape[1]

    def get(self, row, col, default=np.nan):
        value = self.X[row, col]
        if np.isnan(value):
            return default
        return value

    def row(self, row):
        return RowVector(self.X[row])

    def each_column_index_in_row(self, row):
        return np.arange(self.X.shape[1])

    def column_values(self, col):
        return self.X[:, col]

    def observed_columns(self):
        return np.flatnonzero(~np.all(np.isnan(self.X), axis=0))


class CSRMatrix:
    """Row-addressable sparse matrix in CSR format."""

    is_sparse = True

    def __init__(self, X):
        X = csr_matrix(X, dtype=DTYPE)
        X.sort_indices()
        self.X = X
        self.X_data = X.data
        self.X_indices = X.indices
        self.X_indptr = X.indptr

    @property
    def num_rows(self):
        return self.X.shape[0]

    @property
    def num_columns(self):
        return self.X.shape[1]

    def get(self, row, col, default=np.nan):
        start = self.X_indptr[row]
        end = self.X_indptr[row + 1]
        k = start + np.searchsorted(self.X_indices[start:end], col)
        if k < end and self.X_indices[k] == col:
            value = self.X_data[k]
            if not np.isnan(value):
                return value
        return default

    def row(self, row):
        start = self.X_indptr[row]
        end = self.X_indptr[row + 1]
        return RowVector(
            dict(zip(self.X_indices[start:end].tolist(), self.X_data[start:end].tolist())),
            sparse=True)

    def each_column_index_in_row(self, row):
        return self.X_indices[self.X_indptr[row]:self.X_indptr[row + 1]]

    def column_values(self, col):
        """Dense copy of a column; cells that are not stored are NaN."""
        column = self.X.getcol(col).tocoo()
        values = np.full(self.X.shape[0], np.nan, dtype=DTYPE)
        values[column.row] = column.data
        return values

    def observed_columns(self):
        """Columns with at least one stored value."""
        return np.unique(self.X_indices)


def as_feature_matrix(X):
    """Return a DenseMatrix or CSRMatrix view of ``X``."""
    if isinstance(X, (DenseMatrix, CSRMatrix)):
        return X
    if issparse(X):
        return CSRMatrix(X)
    return DenseMatrix(X)
