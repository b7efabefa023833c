"""
cartforest - CART decision trees and random forests of classification trees
"""

from ._criterion import SplitRule
from ._tree import DecisionTree
from .config import ForestConfig, TreeConfig
from .forest import ForestModelRow, RandomForestClassifierTrainer, predict_forest

__all__ = [
    'DecisionTree',
    'ForestConfig',
    'ForestModelRow',
    'RandomForestClassifierTrainer',
    'SplitRule',
    'TreeConfig',
    'predict_forest',
]
