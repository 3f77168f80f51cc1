"""
MCTSノード定義

探索木は Node（盤面）と Edge（行動）の交互構造で表現する
- Node: 盤面と、生成時に確定する全合法手の Edge を保持
- Edge: 1つの行動の統計情報と、初回通過時に一度だけ生成される子 Node を保持

価値は常に「その Node で手番を持つプレイヤー」視点で扱い、
1手ごとに符号を反転して伝播する
"""

import math
from typing import Any, Dict, List, NamedTuple, Optional

import numpy as np

from mctszero.game.base import ContractViolation, Game, score_terminal_victory_state

# 未訪問時でも事前確率が選択に効くように加える定数
EXPLORATION_EPSILON = 1e-4


class EdgeStatistics(NamedTuple):
    """ルートの統計情報（行動選択・学習データ生成用）"""
    action: Any
    visit_count: float
    expected_reward: float
    prior_probability: float


class Edge:
    """
    Node から出る1つの行動

    統計情報:
    - 訪問回数 (N)
    - 累積価値 (W)
    - 平均価値 (Q = W / N)
    - 事前確率 (P)
    """

    def __init__(self, action: Any, prior_probability: float):
        """
        Args:
            action: この Edge に対応する行動
            prior_probability (float): 評価器が与える事前確率
        """
        self.action = action
        self.prior_probability = prior_probability

        # 子ノード（初回通過時に一度だけ展開される）
        self.node: Optional["Node"] = None

        self.visit_count = 0.0
        self.total_value = 0.0
        self.expected_reward = 0.0

    def is_expanded(self) -> bool:
        return self.node is not None

    def update(self, value: float):
        """
        バックプロパゲーション

        Args:
            value (float): 親ノードの手番視点での価値
        """
        self.total_value += value
        self.visit_count += 1.0
        self.expected_reward = self.total_value / self.visit_count

    def __repr__(self) -> str:
        return (f"Edge(action={self.action!r}, "
                f"P={self.prior_probability:.4f}, "
                f"N={self.visit_count:g}, "
                f"W={self.total_value:.3f}, "
                f"Q={self.expected_reward:.3f}, "
                f"expanded={self.is_expanded()})")


class Node:
    """
    探索木のノード

    children が空なら終局盤面。子の Edge は生成時に確定し、以後増減しない

    PUCT式:
        Q(s,a) + c * P(s,a) * (sqrt(N(s)) / (1 + N(s,a)) + ε)
    """

    def __init__(self, state: Game, children: List[Edge]):
        """
        Args:
            state (Game): このノードの盤面（ノードが所有する）
            children (List[Edge]): 合法手ごとの Edge
        """
        self.state = state
        self.children = children
        self.visit_count = 0.0

    def is_terminal(self) -> bool:
        return len(self.children) == 0

    def choose_edge_index(self) -> int:
        """
        PUCT値が最大の Edge を選択

        同じ値の場合はインデックスの小さい方を選ぶ

        Returns:
            int: 選択された Edge のインデックス
        """
        if not self.children:
            raise ContractViolation("Cannot select an edge from a node without children")

        c = self.state.exploration_factor()
        sqrt_visits = math.sqrt(self.visit_count)

        best_index = 0
        best_score = -math.inf

        for i, edge in enumerate(self.children):
            explore = c * edge.prior_probability * (
                sqrt_visits / (1.0 + edge.visit_count) + EXPLORATION_EPSILON
            )
            score = edge.expected_reward + explore

            if score > best_score:
                best_index = i
                best_score = score

        return best_index

    def walk_to_leaf(self, evaluator) -> float:
        """
        1回のシミュレーションを実行

        Select -> (Expand & Evaluate) -> Backpropagate を再帰で行う

        Args:
            evaluator (Evaluator): 新しい盤面のノード生成と価値推定を行う評価器

        Returns:
            float: このノードの手番視点での価値
        """
        # 終局: 統計は更新せず、ここで手番を持つプレイヤー視点の結果を返す
        if self.is_terminal():
            return score_terminal_victory_state(self.state, self.state.get_player())

        edge = self.children[self.choose_edge_index()]

        # 交互手番なので子の視点の価値を反転する
        if edge.node is not None:
            value = -edge.node.walk_to_leaf(evaluator)
        else:
            new_state = self.state.copy()
            new_state.apply_action(edge.action)
            new_node, child_value = evaluator.create_node(new_state)
            edge.node = new_node
            value = -child_value

        edge.update(value)
        self.visit_count += 1.0

        return value

    def get_statistics(self) -> List[EdgeStatistics]:
        """
        各 Edge の統計情報を取得

        Returns:
            List[EdgeStatistics]: 合法手の列挙順
        """
        return [
            EdgeStatistics(
                action=edge.action,
                visit_count=edge.visit_count,
                expected_reward=edge.expected_reward,
                prior_probability=edge.prior_probability,
            )
            for edge in self.children
        ]

    def get_visit_counts(self) -> Dict[Any, float]:
        """
        子 Edge の訪問回数を取得

        Returns:
            Dict[Any, float]: {action: visit_count}
        """
        return {edge.action: edge.visit_count for edge in self.children}

    def get_policy_distribution(self, temperature: float = 1.0) -> np.ndarray:
        """
        訪問回数に基づく方策分布を生成

        温度パラメータ:
        - temperature = 1.0: 訪問回数に比例した確率
        - temperature → 0: 最大訪問回数の手に確率を集中（決定的）
        - temperature → ∞: 均等分布

        Args:
            temperature (float): 温度パラメータ

        Returns:
            np.ndarray: 方策分布 (action_size,)
        """
        if temperature < 0:
            raise ValueError(f"temperature must be non-negative, got {temperature}")

        policy = np.zeros(self.state.action_size, dtype=np.float32)

        if self.is_terminal():
            return policy

        indices = [self.state.action_to_index(edge.action) for edge in self.children]
        counts = np.array([edge.visit_count for edge in self.children], dtype=np.float64)

        if temperature == 0 or counts.sum() == 0:
            # 決定的な選択（未探索なら先頭の合法手）
            policy[indices[int(np.argmax(counts))]] = 1.0
            return policy

        # 桁あふれ防止のため最大値で正規化してから累乗する
        counts = (counts / counts.max()) ** (1.0 / temperature)
        counts /= counts.sum()
        for index, prob in zip(indices, counts):
            policy[index] = prob

        return policy

    def describe(self, max_depth: int = 1) -> str:
        """
        デバッグ用に部分木を文字列化

        Args:
            max_depth (int): 展開して表示する深さ

        Returns:
            str: インデント付きの複数行文字列
        """
        lines = str(self.state).rstrip("\n").split("\n")
        lines.append(
            f"This node has {len(self.children)} children "
            f"with a total of {self.visit_count:g} visits"
        )

        for edge in self.children:
            if edge.node is None:
                lines.append(
                    f"Action {edge.action!r}, prior probability "
                    f"{edge.prior_probability:.4f}, unexpanded node."
                )
                continue

            lines.append(
                f"Action {edge.action!r}, prior probability {edge.prior_probability:.4f}, "
                f"visit count {edge.visit_count:g}, total value {edge.total_value:.4f}, "
                f"expected reward {edge.expected_reward:+.4f}"
            )
            if max_depth > 1:
                for line in edge.node.describe(max_depth - 1).split("\n"):
                    lines.append("  " + line)

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (f"Node(N={self.visit_count:g}, "
                f"children={len(self.children)}, "
                f"expanded={sum(1 for e in self.children if e.is_expanded())})")
