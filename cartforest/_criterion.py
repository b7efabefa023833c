# _criterion.py
import enum
import math

import numpy as np


class SplitRule(enum.Enum):
    """The criterion to choose variable to split instances."""

    # CART: how often a randomly chosen element would be mislabeled if it
    # were labeled according to the class distribution of the node.
    GINI = "gini"
    # ID3, C4.5 and C5.0.
    ENTROPY = "entropy"
    CLASSIFICATION_ERROR = "classification_error"

    @classmethod
    def resolve(cls, rule):
        """Accept a SplitRule or its (case-insensitive) name."""
        if isinstance(rule, cls):
            return rule
        if isinstance(rule, str):
            key = rule.strip().lower()
            for member in cls:
                if member.value == key or member.name.lower() == key:
                    return member
        raise ValueError("Unsupported split rule: %r" % (rule,))


def impurity(count, n, rule):
    """Impurity of a node holding the per-class weighted ``count`` out of ``n``.

    Parameters
    ----------
    count : array-like of int
        Weighted number of samples of each class.
    n : int
        Total weighted number of samples, never 0.
    rule : SplitRule
    """
    if rule is SplitRule.GINI:
        value = 1.0
        for count_i in count:
            if count_i > 0:
                p = count_i / n
                value -= p * p
        return value

    if rule is SplitRule.ENTROPY:
        value = 0.0
        for count_i in count:
            if count_i > 0:
                p = count_i / n
                value -= p * math.log2(p)
        return value

    if rule is SplitRule.CLASSIFICATION_ERROR:
        value = 0.0
        for count_i in count:
            if count_i > 0:
                value = max(value, count_i / n)
        return abs(1.0 - value)

    raise ValueError("Unsupported split rule: %r" % (rule,))


def which_max(count):
    """Index of the largest entry; the first one wins ties."""
    return int(np.argmax(count))
