import math
import struct
import zlib

import numpy as np
import pytest

from cartforest import DecisionTree, TreeConfig
from cartforest._matrix import as_feature_matrix
from cartforest._serialize import (decode_model, deserialize_tree, encode_model,
                                   serialize_tree)
from cartforest._utils import NOMINAL, NUMERIC
from cartforest.exceptions import SerializationError


def _predictions(root, X):
    X = as_feature_matrix(X)
    return [root.predict(X.row(i)) for i in range(X.num_rows)]


class TestTreeSerialization:
    """Binary encoding of the node graph."""

    def test_leaf_layout(self, prunable_dataset):
        X, y = prunable_dataset
        tree = DecisionTree(X, y, TreeConfig(max_depth=2))
        p0, p1 = tree.root.posteriori.tolist()
        expected = struct.pack('>ibd?iidd', -1, NUMERIC, math.nan, True, 0, 2, p0, p1)
        assert tree.serialize() == expected

    def test_internal_node_layout(self, nominal_dataset):
        X, y = nominal_dataset
        data = DecisionTree(X, y, nominal_attrs={0}).serialize()
        feature, kind, value, is_leaf = struct.unpack('>ibd?', data[:14])
        assert (feature, kind, value, is_leaf) == (0, NOMINAL, 2.0, False)
        # presence flag of the true child
        assert data[14:15] == b'\x01'

    def test_round_trip(self, random_dataset):
        X, y = random_dataset
        tree = DecisionTree(X, y)
        root = DecisionTree.deserialize(tree.serialize())
        assert _predictions(root, X) == tree.predict_matrix(X).tolist()
        assert root.count_nodes() == tree.root.count_nodes()

    def test_compressed_round_trip(self, random_dataset):
        X, y = random_dataset
        tree = DecisionTree(X, y)
        data = tree.serialize(compress=True)
        assert zlib.decompress(data) == tree.serialize()
        root = DecisionTree.deserialize(data, compressed=True)
        assert _predictions(root, X) == tree.predict_matrix(X).tolist()

    def test_leaf_posteriori_kept(self, separable_dataset):
        X, y = separable_dataset
        tree = DecisionTree(X, y)
        root = deserialize_tree(serialize_tree(tree.root))
        assert root.posteriori is None
        assert root.true_child.posteriori.tolist() == pytest.approx([1.0, 0.0])
        assert root.split.threshold == pytest.approx(5.5)


class TestSerializationErrors:
    def test_truncated(self, separable_dataset):
        X, y = separable_dataset
        data = DecisionTree(X, y).serialize()
        with pytest.raises(SerializationError) as excinfo:
            deserialize_tree(data[:-3])
        assert excinfo.value.__cause__ is not None

    def test_bad_compressed_payload(self):
        with pytest.raises(SerializationError):
            deserialize_tree(b'not deflate', compressed=True)

    def test_unknown_attribute_kind(self):
        data = struct.pack('>ibd?', 0, 7, 1.0, False)
        with pytest.raises(SerializationError):
            deserialize_tree(data)


class TestModelText:
    def test_encode_decode(self):
        data = bytes(range(256))
        text = encode_model(data)
        assert isinstance(text, str)
        assert decode_model(text) == data

    def test_malformed_text(self):
        with pytest.raises(SerializationError):
            decode_model("***")
