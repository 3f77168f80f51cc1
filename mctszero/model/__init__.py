"""
Neural Network モジュール

GuidedEvaluator 用の Dual-Head ネットワークを提供
"""

from .net import (
    TicTacToeNet,
    PolicyHead,
    ValueHead,
    create_model,
    load_model,
)

__all__ = [
    "TicTacToeNet",
    "PolicyHead",
    "ValueHead",
    "create_model",
    "load_model",
]
