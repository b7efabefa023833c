# _node.py
import math

import numpy as np

from ._utils import NOMINAL, NUMERIC


class QuantitativeSplit:
    """Split ``x[feature] <= threshold`` on a quantitative feature."""

    __slots__ = ('feature', 'threshold', 'score', 'true_output', 'false_output')

    attribute_kind = NUMERIC
    quantitative = True
    operator = '<='

    def __init__(self, feature, threshold, score=0.0, true_output=-1, false_output=-1):
        self.feature = feature
        self.threshold = threshold
        self.score = score
        self.true_output = true_output
        self.false_output = false_output

    @property
    def value(self):
        return self.threshold

    def goes_left(self, x):
        # NaN compares false, so missing values take the false branch
        return x <= self.threshold

    def __repr__(self):
        return f"QuantitativeSplit(x[{self.feature}] <= {self.threshold!r}, score={self.score:.4f})"


class NominalSplit:
    """Split ``x[feature] == category`` on a nominal feature."""

    __slots__ = ('feature', 'category', 'score', 'true_output', 'false_output')

    attribute_kind = NOMINAL
    quantitative = False
    operator = '=='

    def __init__(self, feature, category, score=0.0, true_output=-1, false_output=-1):
        self.feature = feature
        self.category = category
        self.score = score
        self.true_output = true_output
        self.false_output = false_output

    @property
    def value(self):
        return self.category

    def goes_left(self, x):
        return x == self.category

    def __repr__(self):
        return f"NominalSplit(x[{self.feature}] == {self.category!r}, score={self.score:.4f})"


def make_split(feature, quantitative, value, score=0.0, true_output=-1, false_output=-1):
    """Build the split variant matching the attribute kind."""
    if quantitative:
        return QuantitativeSplit(feature, value, score, true_output, false_output)
    return NominalSplit(feature, value, score, true_output, false_output)


class Node:
    """Classification tree node.

    A leaf carries the predicted class ``output`` and its a posteriori class
    probabilities. An internal node carries a ``split`` and owns its two
    children; its ``posteriori`` is None.
    """

    __slots__ = ('output', 'posteriori', 'split', 'true_child', 'false_child')

    def __init__(self, output=-1, posteriori=None):
        self.output = output
        self.posteriori = None if posteriori is None else np.asarray(posteriori, dtype=np.float64)
        self.split = None
        self.true_child = None
        self.false_child = None

    @property
    def is_leaf(self):
        return self.posteriori is not None

    def mark_as_leaf(self):
        self.split = None
        self.true_child = None
        self.false_child = None

    def __repr__(self):
        if self.is_leaf:
            return f"Node(output={self.output}, posteriori={self.posteriori})"
        return f"Node(split={self.split!r})"

    def leaf_for(self, x):
        """Walk down from this node to the leaf reached by row ``x``."""
        node = self
        while node.true_child is not None or node.false_child is not None:
            split = node.split
            if split.goes_left(x.get(split.feature, math.nan)):
                node = node.true_child
            else:
                node = node.false_child
        return node

    def predict(self, x, handler=None):
        """Evaluate the tree over an instance.

        ``handler``, when given, is called with ``(output, posteriori)`` of
        the leaf that is reached.
        """
        leaf = self.leaf_for(x)
        if handler is not None:
            handler(leaf.output, leaf.posteriori)
        return leaf.output

    def _walk(self):
        """Yield ``(node, depth)`` for every node below this one, root at depth 1."""
        stack = [(self, 1)]
        while stack:
            node, depth = stack.pop()
            yield node, depth
            for child in (node.false_child, node.true_child):
                if child is not None:
                    stack.append((child, depth + 1))

    def count_nodes(self):
        return sum(1 for _ in self._walk())

    def count_leaves(self):
        return sum(1 for node, _ in self._walk()
                   if node.true_child is None and node.false_child is None)

    def depth(self):
        return max(depth for _, depth in self._walk())


# =============================================================================
# Exporters
# =============================================================================

def _resolve_feature_name(index, feature_names):
    if feature_names is None or index >= len(feature_names):
        return "x[%d]" % index
    return feature_names[index]


def _resolve_name(index, names):
    if names is None or index < 0 or index >= len(names):
        return str(index)
    return names[index]


def _format_value(value):
    return repr(float(value))


def export_javascript(node, builder, feature_names=None, class_names=None, depth=0):
    """Append JavaScript-like nested if/else code for ``node`` to ``builder``."""
    indent = "  " * depth
    if node.true_child is None and node.false_child is None:
        builder.append("%s%s;\n" % (indent, _resolve_name(node.output, class_names)))
        return

    split = node.split
    builder.append("%sif( %s %s %s ) {\n" % (
        indent, _resolve_feature_name(split.feature, feature_names),
        split.operator, _format_value(split.value)))
    export_javascript(node.true_child, builder, feature_names, class_names, depth + 1)
    builder.append("%s} else  {\n" % indent)
    export_javascript(node.false_child, builder, feature_names, class_names, depth + 1)
    builder.append("%s}\n" % indent)


def export_graphviz(node, builder, feature_names=None, class_names=None,
                    output_name="class", n_classes=None, node_id=0, parent_id=0):
    """Append DOT statements for ``node``; returns the next free node id."""
    my_id = node_id
    if node.true_child is None and node.false_child is None:
        n_classes = n_classes or (len(node.posteriori) if node.posteriori is not None else 1)
        hue = node.output / max(n_classes, 1)
        saturation = float(np.max(node.posteriori)) if node.posteriori is not None else 1.0
        builder.append(' %d [label=<%s = %s>, fillcolor="%.3f %.3f 1.000", shape=ellipse];\n' % (
            my_id, output_name, _resolve_name(node.output, class_names), hue, saturation))
    else:
        split = node.split
        operator = "&le;" if split.quantitative else "="
        builder.append(' %d [label=<%s %s %s>, fillcolor="#00000000"];\n' % (
            my_id, _resolve_feature_name(split.feature, feature_names), operator,
            _format_value(split.value)))

    if my_id != parent_id:
        edge = " %d -> %d" % (parent_id, my_id)
        if parent_id == 0:
            # only draw edge labels on top
            if my_id == 1:
                edge += ' [labeldistance=2.5, labelangle=45, headlabel="True"]'
            else:
                edge += ' [labeldistance=2.5, labelangle=-45, headlabel="False"]'
        builder.append(edge + ";\n")

    next_id = my_id + 1
    if node.true_child is not None or node.false_child is not None:
        next_id = export_graphviz(node.true_child, builder, feature_names, class_names,
                                  output_name, n_classes, next_id, my_id)
        next_id = export_graphviz(node.false_child, builder, feature_names, class_names,
                                  output_name, n_classes, next_id, my_id)
    return next_id
