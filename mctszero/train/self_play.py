"""
Self-Play ワーカー

MCTS を使って自己対戦を行い、学習データを生成する

データ形式:
- state: (input_size,) - NN入力ベクトル
- policy: (action_size,) - MCTS訪問回数分布
- value: 1, -1, 0 - 最終的な勝敗（その局面の手番視点）
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import numpy as np

from mctszero.game.base import Game, Player, score_terminal_victory_state


@dataclass
class GameStep:
    """ゲームの1ステップのデータ"""
    state: np.ndarray  # (input_size,)
    policy: np.ndarray  # (action_size,)
    player: Player  # 手番


class SelfPlayWorker:
    """
    自己対戦ワーカー

    MCTS を使って1ゲームをプレイし、学習データを生成する
    """

    def __init__(
        self,
        game_factory: Callable[[], Game],
        mcts,
        num_simulations: int = 100,
        temperature_threshold: int = 4,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Args:
            game_factory: 初期盤面を生成する関数（TicTacToe クラスなど）
            mcts: MCTS インスタンス
            num_simulations (int): 1手あたりのMCTSシミュレーション回数
            temperature_threshold (int): 温度を下げる手数の閾値
                （この手数以降は決定的な選択になる）
            rng (np.random.Generator, optional): 着手サンプリング用の乱数生成器
        """
        self.game_factory = game_factory
        self.mcts = mcts
        self.num_simulations = num_simulations
        self.temperature_threshold = temperature_threshold
        self.rng = rng if rng is not None else np.random.default_rng()

    def execute_episode(
        self,
        add_dirichlet_noise: bool = True,
    ) -> List[Tuple[np.ndarray, np.ndarray, float]]:
        """
        1エピソード（1ゲーム）を実行

        Args:
            add_dirichlet_noise (bool): ディリクレノイズを追加するか
                （学習時はTrue、評価時はFalse）

        Returns:
            List[Tuple[np.ndarray, np.ndarray, float]]:
                [(state, policy, value), ...]
        """
        state = self.game_factory()
        game_history: List[GameStep] = []
        move_count = 0

        while not state.get_victory_state().is_terminal:
            # 序盤は確率的、以降は決定的
            temperature = 1.0 if move_count < self.temperature_threshold else 0.0

            policy, _ = self.mcts.get_action_probs(
                state,
                num_simulations=self.num_simulations,
                temperature=temperature,
                add_dirichlet_noise=add_dirichlet_noise,
            )

            game_history.append(GameStep(
                state=state.get_tensor_input().copy(),
                policy=policy.copy(),
                player=state.get_player(),
            ))

            if temperature == 0:
                action_index = int(np.argmax(policy))
            else:
                p = policy.astype(np.float64)
                action_index = int(self.rng.choice(len(p), p=p / p.sum()))

            state.apply_action(state.index_to_action(action_index))
            move_count += 1

        # 各局面の手番視点で最終結果を価値とする
        return [
            (step.state, step.policy, score_terminal_victory_state(state, step.player))
            for step in game_history
        ]

    def execute_episodes(
        self,
        num_episodes: int,
        add_dirichlet_noise: bool = True,
    ) -> List[Tuple[np.ndarray, np.ndarray, float]]:
        """
        複数エピソードを実行

        Returns:
            List[Tuple[np.ndarray, np.ndarray, float]]:
                すべてのエピソードの学習データ
        """
        all_data = []

        for episode_idx in range(num_episodes):
            episode_data = self.execute_episode(add_dirichlet_noise=add_dirichlet_noise)
            all_data.extend(episode_data)

            if (episode_idx + 1) % 10 == 0:
                print(f"Self-Play: {episode_idx + 1}/{num_episodes} episodes completed")

        return all_data
