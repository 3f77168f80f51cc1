"""
ゲームモジュール

MCTSが利用するゲームのインターフェースとリファレンス実装を提供
"""

from .base import (
    ContractViolation,
    Game,
    GameStatus,
    Player,
    VictoryState,
    score_terminal_victory_state,
)
from .tictactoe import TicTacToe

__all__ = [
    "ContractViolation",
    "Game",
    "GameStatus",
    "Player",
    "VictoryState",
    "score_terminal_victory_state",
    "TicTacToe",
]
