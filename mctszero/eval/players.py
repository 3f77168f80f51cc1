"""
プレイヤークラス

評価用のプレイヤーを実装:
- RandomPlayer: ランダムに着手
- MCTSPlayer: MCTSベースのAI（ロールアウト評価 / ニューラルネットワーク評価）
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

import numpy as np
import torch

from mctszero.game.base import Game
from mctszero.mcts.evaluator import GuidedEvaluator, RolloutEvaluator
from mctszero.mcts.mcts import MCTS


class Player(ABC):
    """
    プレイヤーの基底クラス
    """

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def get_action(self, state: Game) -> Any:
        """
        着手を選択

        Args:
            state: 現在の盤面（変更してはならない）

        Returns:
            合法手の1つ
        """

    def reset(self):
        """ゲーム開始時の初期化（必要に応じてオーバーライド）"""
        pass


class RandomPlayer(Player):
    """
    ランダムプレイヤー

    合法手の中から一様に選択
    """

    def __init__(self, name: str = "Random", rng: Optional[np.random.Generator] = None):
        super().__init__(name)
        self.rng = rng if rng is not None else np.random.default_rng()

    def get_action(self, state: Game) -> Any:
        actions = state.get_actions()
        return actions[self.rng.integers(len(actions))]


class MCTSPlayer(Player):
    """
    MCTSベースのAIプレイヤー

    最も訪問回数の多い手を選ぶ
    """

    def __init__(
        self,
        mcts: MCTS,
        num_simulations: int = 100,
        name: str = "MCTS-AI",
    ):
        """
        Args:
            mcts: MCTS インスタンス
            num_simulations: 1手あたりのシミュレーション回数
            name: プレイヤー名
        """
        super().__init__(name)
        self.mcts = mcts
        self.num_simulations = num_simulations

    def get_action(self, state: Game) -> Any:
        return self.mcts.get_best_action(state, num_simulations=self.num_simulations)

    @classmethod
    def rollout(
        cls,
        num_simulations: int = 1000,
        prior_noise: float = 0.001,
        seed: Optional[int] = None,
    ) -> "MCTSPlayer":
        """ランダムプレイアウト評価のMCTSPlayerを作成"""
        evaluator = RolloutEvaluator(prior_noise=prior_noise, seed=seed)
        return cls(
            mcts=MCTS(evaluator),
            num_simulations=num_simulations,
            name=f"MCTS-Rollout-{num_simulations}sim",
        )

    @classmethod
    def from_checkpoint(
        cls,
        checkpoint_path: str,
        device: torch.device,
        num_simulations: int = 100,
    ) -> "MCTSPlayer":
        """
        チェックポイントからMCTSPlayerを作成

        Args:
            checkpoint_path: モデルチェックポイントのパス
            device: torch.device
            num_simulations: MCTSシミュレーション回数

        Returns:
            MCTSPlayer: インスタンス
        """
        from mctszero.model.net import load_model

        model = load_model(checkpoint_path, device)

        return cls(
            mcts=MCTS(GuidedEvaluator(model, device)),
            num_simulations=num_simulations,
            name=f"MCTS-AI-{num_simulations}sim",
        )
