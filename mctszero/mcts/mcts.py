"""
モンテカルロ木探索 (Monte Carlo Tree Search)

探索ドライバ:
- ルート盤面ごとに新しい探索木を作成（木の再利用はしない）
- walk_to_leaf を指定回数だけ逐次実行して統計を蓄積
- ルートの訪問回数・平均価値から行動選択用の情報を取り出す
- ディリクレノイズによる探索促進（学習時）
"""

from typing import Any, Optional, Tuple

import numpy as np

from mctszero.game.base import ContractViolation, Game
from .evaluator import Evaluator
from .node import Node


class MCTS:
    """
    モンテカルロ木探索

    1. Select: PUCT値が最大の Edge を選択
    2. Expand & Evaluate: 未展開の Edge を評価器で展開
    3. Backpropagate: 価値を符号反転しながら親へ伝播
    """

    def __init__(
        self,
        evaluator: Evaluator,
        num_simulations: int = 100,
        dirichlet_alpha: float = 0.3,
        dirichlet_epsilon: float = 0.25,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Args:
            evaluator (Evaluator): 葉ノードの評価器
            num_simulations (int): デフォルトのシミュレーション回数
            dirichlet_alpha (float): ディリクレ分布のパラメータ
            dirichlet_epsilon (float): ノイズの混合比率
            rng (np.random.Generator, optional): ディリクレノイズ用の乱数生成器
        """
        self.evaluator = evaluator
        self.num_simulations = num_simulations
        self.dirichlet_alpha = dirichlet_alpha
        self.dirichlet_epsilon = dirichlet_epsilon
        self.rng = rng if rng is not None else np.random.default_rng()

    def search(
        self,
        state: Game,
        num_simulations: Optional[int] = None,
        add_dirichlet_noise: bool = False,
    ) -> Node:
        """
        MCTS探索を実行し、統計の入ったルートノードを返す

        Args:
            state (Game): ルート盤面（変更されない）
            num_simulations (int, optional): シミュレーション回数
            add_dirichlet_noise (bool): ルートノードにディリクレノイズを追加するか

        Returns:
            Node: ルートノード
        """
        if state.get_victory_state().is_terminal:
            raise ContractViolation("Cannot search from a terminal state")

        if num_simulations is None:
            num_simulations = self.num_simulations

        root, _ = self.evaluator.create_node(state.copy())

        if add_dirichlet_noise:
            self._add_dirichlet_noise(root)

        for _ in range(num_simulations):
            root.walk_to_leaf(self.evaluator)

        return root

    def get_action_probs(
        self,
        state: Game,
        num_simulations: Optional[int] = None,
        temperature: float = 1.0,
        add_dirichlet_noise: bool = False,
    ) -> Tuple[np.ndarray, float]:
        """
        MCTS探索を実行し、方策分布とルートの価値を返す

        Args:
            state (Game): ルート盤面
            num_simulations (int, optional): シミュレーション回数
            temperature (float): 温度パラメータ（0で決定的）
            add_dirichlet_noise (bool): ディリクレノイズを追加するか

        Returns:
            tuple: (policy_distribution, root_value)
                - policy_distribution (np.ndarray): 方策分布 (action_size,)
                - root_value (float): ルート手番視点の価値推定
        """
        root = self.search(state, num_simulations, add_dirichlet_noise)
        return root.get_policy_distribution(temperature), self.root_value(root)

    def get_best_action(self, state: Game, num_simulations: Optional[int] = None) -> Any:
        """
        MCTS探索を実行し、最も訪問された行動を返す（推論用）

        Returns:
            最良の行動（同数の場合は先に列挙された行動）
        """
        root = self.search(state, num_simulations)
        counts = [edge.visit_count for edge in root.children]
        return root.children[int(np.argmax(counts))].action

    @staticmethod
    def root_value(root: Node) -> float:
        """ルートの全 Edge の訪問回数で重み付けした平均価値"""
        if root.visit_count == 0:
            return 0.0
        return sum(edge.total_value for edge in root.children) / root.visit_count

    def _add_dirichlet_noise(self, root: Node):
        """
        ルートノードの事前確率にディリクレノイズを追加

        探索を促進するため、学習時に使用する
        """
        if root.is_terminal():
            return

        noise = self.rng.dirichlet([self.dirichlet_alpha] * len(root.children))

        for edge, eta in zip(root.children, noise):
            edge.prior_probability = (1 - self.dirichlet_epsilon) * edge.prior_probability + \
                                     self.dirichlet_epsilon * float(eta)
