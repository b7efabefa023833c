# _serialize.py
"""Binary encoding of decision trees.

A node is written in pre-order as::

    [int splitFeature][byte attributeKind][double splitValue][bool isLeaf]

followed, for a leaf, by ``[int output][int len][double x len]`` (the
posterior) and, for an internal node, by
``[bool hasTrueChild][child...][bool hasFalseChild][child...]``.
All numbers are big-endian.
"""
import base64
import binascii
import io
import math
import struct
import zlib

from .exceptions import SerializationError
from ._node import Node, make_split
from ._utils import NOMINAL, NUMERIC

_INT = struct.Struct('>i')
_BYTE = struct.Struct('>b')
_DOUBLE = struct.Struct('>d')
_BOOL = struct.Struct('>?')


def _write_node(out, node):
    split = node.split
    if split is None:
        out.write(_INT.pack(-1))
        out.write(_BYTE.pack(NUMERIC))
        out.write(_DOUBLE.pack(math.nan))
    else:
        out.write(_INT.pack(split.feature))
        out.write(_BYTE.pack(split.attribute_kind))
        out.write(_DOUBLE.pack(split.value))

    if node.is_leaf:
        out.write(_BOOL.pack(True))
        out.write(_INT.pack(node.output))
        out.write(_INT.pack(len(node.posteriori)))
        for p in node.posteriori:
            out.write(_DOUBLE.pack(p))
    else:
        out.write(_BOOL.pack(False))
        for child in (node.true_child, node.false_child):
            if child is None:
                out.write(_BOOL.pack(False))
            else:
                out.write(_BOOL.pack(True))
                _write_node(out, child)


def _read(buf, fmt):
    data = buf.read(fmt.size)
    if len(data) != fmt.size:
        raise EOFError("Unexpected end of serialized tree")
    return fmt.unpack(data)[0]


def _read_node(buf):
    feature = _read(buf, _INT)
    kind = _read(buf, _BYTE)
    value = _read(buf, _DOUBLE)
    if _read(buf, _BOOL):
        output = _read(buf, _INT)
        size = _read(buf, _INT)
        posteriori = [_read(buf, _DOUBLE) for _ in range(size)]
        return Node(output, posteriori)

    if kind not in (NUMERIC, NOMINAL):
        raise ValueError("Unknown attribute kind: %d" % kind)
    node = Node()
    node.split = make_split(feature, kind == NUMERIC, value)
    if _read(buf, _BOOL):
        node.true_child = _read_node(buf)
    if _read(buf, _BOOL):
        node.false_child = _read_node(buf)
    return node


def serialize_tree(root, compress=False):
    """Encode the node graph rooted at ``root`` into bytes."""
    try:
        out = io.BytesIO()
        _write_node(out, root)
        data = out.getvalue()
        if compress:
            data = zlib.compress(data)
        return data
    except (struct.error, zlib.error, OverflowError, TypeError) as e:
        raise SerializationError("Exception caused while serializing DecisionTree object") from e


def deserialize_tree(data, compressed=False):
    """Decode a node graph produced by ``serialize_tree``."""
    try:
        if compressed:
            data = zlib.decompress(data)
        return _read_node(io.BytesIO(data))
    except (EOFError, struct.error, zlib.error, ValueError) as e:
        raise SerializationError("Exception caused while deserializing DecisionTree object") from e


def encode_model(data):
    """Text-safe representation of serialized model bytes."""
    return base64.b64encode(data).decode('ascii')


def decode_model(text):
    try:
        return base64.b64decode(text.encode('ascii'), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise SerializationError("Malformed model text") from e
