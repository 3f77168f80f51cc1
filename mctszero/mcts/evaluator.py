"""
葉ノードの評価器

新しく到達した盤面に対して、事前確率付きの Node と価値推定を返す
- RolloutEvaluator: 均等な事前確率 + ランダムプレイアウトによる価値
- GuidedEvaluator: ニューラルネットワークの方策・価値出力

どちらの価値も [-1, 1] の範囲で、その盤面の手番プレイヤー視点
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

import numpy as np
import torch

from mctszero.game.base import ContractViolation, Game, score_terminal_victory_state
from .node import Edge, Node


class Evaluator(ABC):
    """評価器の基底クラス"""

    @abstractmethod
    def create_node(self, state: Game) -> Tuple[Node, float]:
        """
        新しい盤面のノードを生成

        Args:
            state (Game): 評価する盤面（生成されるノードが所有する）

        Returns:
            tuple: (node, value)
                - node (Node): 全合法手の Edge を持つノード
                - value (float): 手番プレイヤー視点の価値 [-1, 1]
        """


def _legal_actions(state: Game) -> list:
    """合法手を取得し、合法手なしで終局していない盤面を契約違反とする"""
    actions = state.get_actions()
    if len(actions) == 0 and not state.get_victory_state().is_terminal:
        raise ContractViolation(f"State has no legal actions but is not terminal:\n{state}")
    return actions


def random_rollout(state: Game, rng: np.random.Generator):
    """
    終局までランダムに着手する（破壊的）

    Args:
        state (Game): 開始盤面
        rng (np.random.Generator): 乱数生成器
    """
    while not state.get_victory_state().is_terminal:
        actions = state.get_actions()
        if len(actions) == 0:
            raise ContractViolation(f"State has no legal actions but is not terminal:\n{state}")
        state.apply_action(actions[rng.integers(len(actions))])


class RolloutEvaluator(Evaluator):
    """
    ランダムプレイアウト評価器

    事前確率は 1/|actions| に小さなノイズ（同値の手を区別するため）を加えたもの。
    価値は終局までランダムに打った結果を、生成時の手番プレイヤー視点で採点する
    """

    def __init__(
        self,
        prior_noise: float = 0.001,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        """
        Args:
            prior_noise (float): 事前確率に加えるノイズの大きさ (ε・U(0,1))
            rng (np.random.Generator, optional): 乱数生成器
            seed (int, optional): rng 未指定時のシード値
        """
        self.prior_noise = prior_noise
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    def create_node(self, state: Game) -> Tuple[Node, float]:
        actions = _legal_actions(state)

        children: List[Edge] = []
        if actions:
            prior = 1.0 / len(actions)
            noise = self.rng.random(len(actions)) * self.prior_noise
            children = [
                Edge(action, prior + float(eps)) for action, eps in zip(actions, noise)
            ]

        node = Node(state, children)

        # ノードの盤面は残したまま、複製した盤面でプレイアウト
        rollout_state = state.copy()
        random_rollout(rollout_state, self.rng)
        value = score_terminal_victory_state(rollout_state, state.get_player())

        return node, value


class GuidedEvaluator(Evaluator):
    """
    ニューラルネットワーク評価器

    盤面ベクトルを1回 forward し、方策出力を事前確率、価値出力を価値推定とする。
    プレイアウトは行わない
    """

    def __init__(self, model, device: Optional[torch.device] = None, mask_illegal: bool = False):
        """
        Args:
            model: (log方策, 価値) を返すニューラルネットワーク (TicTacToeNet など)
            device: torch.device
            mask_illegal (bool): 合法手のみで事前確率を正規化し直すか
        """
        self.model = model
        self.device = device if device is not None else torch.device("cpu")
        self.mask_illegal = mask_illegal

    def create_node(self, state: Game) -> Tuple[Node, float]:
        actions = _legal_actions(state)

        policy_probs, value = self._predict(self._get_board_tensor(state))

        if policy_probs.shape != (state.action_size,):
            raise ValueError(
                f"Predictor returned policy of shape {policy_probs.shape}, "
                f"expected ({state.action_size},)"
            )
        if not -1.0 <= value <= 1.0:
            raise ValueError(f"Predictor returned value {value} outside [-1, 1]")

        priors = np.array(
            [policy_probs[state.action_to_index(action)] for action in actions],
            dtype=np.float64,
        )

        if self.mask_illegal and len(actions) > 0:
            prob_sum = priors.sum()
            if prob_sum > 0:
                priors /= prob_sum
            else:
                priors[:] = 1.0 / len(actions)

        children = [Edge(action, float(p)) for action, p in zip(actions, priors)]

        return Node(state, children), value

    def _predict(self, board_tensor: torch.Tensor) -> Tuple[np.ndarray, float]:
        """
        ニューラルネットワークで方策と価値を予測

        Args:
            board_tensor (torch.Tensor): 盤面テンソル (1, input_size)

        Returns:
            tuple: (policy_probs, value)
                - policy_probs (np.ndarray): 方策確率 (action_size,)
                - value (float): 価値推定
        """
        self.model.eval()
        with torch.no_grad():
            policy_logits, value = self.model(board_tensor)

            # Log確率 -> 確率
            policy_probs = torch.exp(policy_logits).squeeze(0).cpu().numpy()

        return policy_probs, float(value.reshape(-1)[0].item())

    def _get_board_tensor(self, state: Game) -> torch.Tensor:
        """
        盤面をニューラルネットワーク用のテンソルに変換

        Returns:
            torch.Tensor: (1, input_size) - バッチ次元付き
        """
        tensor = torch.from_numpy(state.get_tensor_input()).float().unsqueeze(0)
        return tensor.to(self.device)
