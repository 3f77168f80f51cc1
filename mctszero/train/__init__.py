"""
Training モジュール

自己対戦による学習データ生成と学習ループを提供
"""

from .buffer import ReplayBuffer
from .self_play import GameStep, SelfPlayWorker
from .trainer import Trainer

__all__ = [
    "ReplayBuffer",
    "GameStep",
    "SelfPlayWorker",
    "Trainer",
]
