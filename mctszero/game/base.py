"""
ゲーム抽象化

MCTSで探索可能な二人零和完全情報ゲームが満たすべきインターフェース
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, List, Optional

import numpy as np


class ContractViolation(RuntimeError):
    """
    ゲーム実装の契約違反

    終局していない盤面の採点、空の合法手リストからの選択など、
    プログラムの誤りを示す。探索は中断され、呼び出し元に伝播する
    """


class Player(IntEnum):
    """手番 (1: 先手X, -1: 後手O)"""

    X = 1
    O = -1

    def opponent(self) -> "Player":
        return Player(-self.value)


class GameStatus(Enum):
    IN_PROGRESS = "in_progress"
    DRAW = "draw"
    WON = "won"


@dataclass(frozen=True)
class VictoryState:
    """
    勝敗状態

    Attributes:
        status: 進行中 / 引き分け / 勝敗決着
        winner: 勝者（status が WON の場合のみ）
    """
    status: GameStatus
    winner: Optional[Player] = None

    @classmethod
    def in_progress(cls) -> "VictoryState":
        return cls(GameStatus.IN_PROGRESS)

    @classmethod
    def draw(cls) -> "VictoryState":
        return cls(GameStatus.DRAW)

    @classmethod
    def won(cls, player: Player) -> "VictoryState":
        return cls(GameStatus.WON, Player(player))

    @property
    def is_terminal(self) -> bool:
        """終局かどうか"""
        return self.status is not GameStatus.IN_PROGRESS


class Game(ABC):
    """
    ゲームの基底クラス

    インスタンス自体が盤面状態を保持し、apply_action で破壊的に更新される。
    探索側は copy() で複製してから着手する

    契約:
        - apply_action には直前の get_actions() に含まれる行動のみを渡す
        - 終局状態では get_actions() は空リストを返す
        - ランダムに着手を続ければ必ず終局に到達する
    """

    @abstractmethod
    def get_actions(self) -> List[Any]:
        """現在の盤面の合法手リスト"""

    @abstractmethod
    def apply_action(self, action: Any):
        """着手して手番を進める（破壊的）"""

    @abstractmethod
    def get_victory_state(self) -> VictoryState:
        """勝敗状態を取得"""

    @abstractmethod
    def get_player(self) -> Player:
        """現在の手番"""

    @abstractmethod
    def copy(self) -> "Game":
        """盤面の複製"""

    def exploration_factor(self) -> float:
        """PUCT式の探索定数（ゲームごとに調整可能）"""
        return 1.0

    # 以下はニューラルネットワーク評価用のフック
    # GuidedEvaluator を使わないゲームは実装しなくてよい

    @property
    def action_size(self) -> int:
        """方策ベクトルの長さ"""
        raise NotImplementedError(f"{type(self).__name__} does not define action_size")

    def action_to_index(self, action: Any) -> int:
        """行動 -> 方策ベクトルのインデックス"""
        raise NotImplementedError(f"{type(self).__name__} does not define action_to_index")

    def index_to_action(self, index: int) -> Any:
        """方策ベクトルのインデックス -> 行動"""
        raise NotImplementedError(f"{type(self).__name__} does not define index_to_action")

    def get_tensor_input(self) -> np.ndarray:
        """
        盤面を固定長の数値ベクトルに変換

        Returns:
            np.ndarray: float32 の1次元配列
        """
        raise NotImplementedError(f"{type(self).__name__} does not define get_tensor_input")


def score_terminal_victory_state(state: Game, player: Player) -> float:
    """
    終局盤面を指定プレイヤー視点で採点

    Args:
        state (Game): 終局した盤面
        player (Player): 採点の基準となるプレイヤー

    Returns:
        float: 勝ち 1.0, 負け -1.0, 引き分け 0.0
    """
    victory_state = state.get_victory_state()

    if victory_state.status is GameStatus.IN_PROGRESS:
        raise ContractViolation(f"Cannot score a game that is still in progress:\n{state}")
    if victory_state.status is GameStatus.DRAW:
        return 0.0
    return 1.0 if victory_state.winner == player else -1.0
