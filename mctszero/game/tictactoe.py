"""
三目並べ (3x3 TicTacToe)

MCTSの動作確認用のリファレンス実装
盤面: numpy 配列 (3, 3)  1: X, -1: O, 0: 空き
"""

from typing import List, Tuple

import numpy as np

from .base import Game, Player, VictoryState

Action = Tuple[int, int]

BOARD_SIZE = 3

# 勝利ライン（行・列・対角線）のセル番号
_LINES = np.array([
    [0, 1, 2], [3, 4, 5], [6, 7, 8],
    [0, 3, 6], [1, 4, 7], [2, 5, 8],
    [0, 4, 8], [2, 4, 6],
])


class TicTacToe(Game):
    """
    三目並べの盤面

    先手は X。行動は (row, col) のタプルで、合法手は行優先で列挙される
    """

    def __init__(self, exploration_factor: float = 1.0):
        """
        Args:
            exploration_factor (float): PUCT式の探索定数
        """
        self.board = np.zeros((BOARD_SIZE, BOARD_SIZE), dtype=np.int8)
        self.current_player = Player.X
        self.move_count = 0
        self._exploration_factor = exploration_factor

    def get_actions(self) -> List[Action]:
        if self.winner() is not None:
            return []
        rows, cols = np.nonzero(self.board == 0)
        return [(int(r), int(c)) for r, c in zip(rows, cols)]

    def apply_action(self, action: Action):
        row, col = action
        if self.board[row, col] != 0:
            raise ValueError(f"Cell {action} is already occupied")

        self.board[row, col] = int(self.current_player)
        self.current_player = self.current_player.opponent()
        self.move_count += 1

    def winner(self):
        """揃ったラインの持ち主。なければ None"""
        sums = self.board.reshape(-1)[_LINES].sum(axis=1)
        if (sums == 3).any():
            return Player.X
        if (sums == -3).any():
            return Player.O
        return None

    def get_victory_state(self) -> VictoryState:
        winner = self.winner()
        if winner is not None:
            return VictoryState.won(winner)
        if not (self.board == 0).any():
            return VictoryState.draw()
        return VictoryState.in_progress()

    def get_player(self) -> Player:
        return self.current_player

    def exploration_factor(self) -> float:
        return self._exploration_factor

    def copy(self) -> "TicTacToe":
        new = TicTacToe(exploration_factor=self._exploration_factor)
        new.board = self.board.copy()
        new.current_player = self.current_player
        new.move_count = self.move_count
        return new

    @property
    def action_size(self) -> int:
        return BOARD_SIZE * BOARD_SIZE

    def action_to_index(self, action: Action) -> int:
        row, col = action
        return row * BOARD_SIZE + col

    def index_to_action(self, index: int) -> Action:
        return divmod(int(index), BOARD_SIZE)

    def get_tensor_input(self) -> np.ndarray:
        """
        盤面をNN入力ベクトルに変換

        Returns:
            np.ndarray: (9,) float32  X: 1.0, O: -1.0, 空き: 0.0
        """
        return self.board.flatten().astype(np.float32)

    def __eq__(self, other) -> bool:
        if not isinstance(other, TicTacToe):
            return NotImplemented
        return (
            np.array_equal(self.board, other.board)
            and self.current_player == other.current_player
        )

    def __str__(self) -> str:
        symbols = {1: "X", -1: "O", 0: "•"}
        rows = ["".join(symbols[int(v)] for v in row) for row in self.board]
        return "\n".join(rows) + "\n"

    def __repr__(self) -> str:
        return f"TicTacToe(player={self.current_player.name}, moves={self.move_count})"
