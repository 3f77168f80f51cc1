"""
Monte Carlo Tree Search モジュール

PUCT選択・符号反転バックプロパゲーションによるMCTSと、
差し替え可能な葉ノード評価器を提供
"""

from .evaluator import Evaluator, GuidedEvaluator, RolloutEvaluator, random_rollout
from .mcts import MCTS
from .node import Edge, EdgeStatistics, Node

__all__ = [
    "MCTS",
    "Node",
    "Edge",
    "EdgeStatistics",
    "Evaluator",
    "RolloutEvaluator",
    "GuidedEvaluator",
    "random_rollout",
]
