"""
MCTSのテストケース

- Node / Edge の基本機能テスト
- 探索木の統計の整合性（訪問回数・平均価値）
- 符号反転と終局ノードの扱い
- 探索ドライバと三目並べでの統合テスト
"""

import numpy as np
import pytest

from mctszero.game.base import ContractViolation, Game, Player, VictoryState
from mctszero.game.tictactoe import TicTacToe
from mctszero.mcts.evaluator import RolloutEvaluator
from mctszero.mcts.mcts import MCTS
from mctszero.mcts.node import EXPLORATION_EPSILON, Edge, Node


class TwoPlyGame(Game):
    """
    2手で終わる決定的なゲーム

    X が 0 か 1 を選び、O は 0 しか選べない。
    X が 0 を選んでいれば X の勝ち、1 なら O の勝ち
    """

    def __init__(self):
        self.moves = []

    def get_actions(self):
        if len(self.moves) == 0:
            return [0, 1]
        if len(self.moves) == 1:
            return [0]
        return []

    def apply_action(self, action):
        self.moves.append(action)

    def get_victory_state(self):
        if len(self.moves) < 2:
            return VictoryState.in_progress()
        return VictoryState.won(Player.X if self.moves[0] == 0 else Player.O)

    def get_player(self):
        return Player.X if len(self.moves) % 2 == 0 else Player.O

    def copy(self):
        new = TwoPlyGame()
        new.moves = list(self.moves)
        return new


class StuckGame(TwoPlyGame):
    """合法手がないのに終局しない壊れたゲーム"""

    def get_actions(self):
        return []

    def get_victory_state(self):
        return VictoryState.in_progress()


def iter_nodes(node):
    """展開済みのノードを深さ優先で列挙"""
    yield node
    for edge in node.children:
        if edge.node is not None:
            yield from iter_nodes(edge.node)


def play(state, moves):
    for move in moves:
        state.apply_action(move)
    return state


class TestEdge:
    """Edge の基本機能テスト"""

    def test_edge_initialization(self):
        edge = Edge((1, 1), prior_probability=0.25)

        assert edge.action == (1, 1)
        assert edge.prior_probability == 0.25
        assert edge.visit_count == 0.0
        assert edge.total_value == 0.0
        assert edge.expected_reward == 0.0
        assert edge.node is None
        assert not edge.is_expanded()

    def test_edge_update(self):
        edge = Edge(0, prior_probability=0.5)

        edge.update(1.0)
        assert edge.visit_count == 1.0
        assert edge.total_value == 1.0
        assert edge.expected_reward == 1.0

        edge.update(-1.0)
        edge.update(-1.0)
        assert edge.visit_count == 3.0
        assert edge.total_value == -1.0
        assert edge.expected_reward == pytest.approx(-1.0 / 3.0)


class TestNodeSelection:
    """PUCT選択のテスト"""

    def test_ties_resolve_to_lowest_index(self):
        """統計が同一なら常に先頭の Edge を選ぶ"""
        node = Node(TicTacToe(), [Edge(a, 0.2) for a in [(0, 0), (0, 1), (0, 2)]])
        assert node.choose_edge_index() == 0

        node.visit_count = 12.0
        for edge in node.children:
            edge.update(0.5)
            edge.update(-0.5)
        assert node.choose_edge_index() == 0

    def test_prior_matters_before_any_visit(self):
        """訪問回数0でも事前確率の大きい手が選ばれる"""
        node = Node(TicTacToe(), [Edge((0, 0), 0.1), Edge((0, 1), 0.3), Edge((0, 2), 0.2)])
        assert node.choose_edge_index() == 1

    def test_selects_maximum_puct_score(self):
        node = Node(TicTacToe(exploration_factor=1.5), [
            Edge((0, 0), 0.5),
            Edge((0, 1), 0.3),
            Edge((0, 2), 0.2),
        ])
        node.visit_count = 10.0
        stats = [(5, 2.5), (3, 1.5), (2, -1.0)]
        for edge, (n, w) in zip(node.children, stats):
            edge.visit_count = float(n)
            edge.total_value = w
            edge.expected_reward = w / n

        scores = [
            e.expected_reward + 1.5 * e.prior_probability * (
                np.sqrt(10.0) / (1.0 + e.visit_count) + EXPLORATION_EPSILON
            )
            for e in node.children
        ]
        assert node.choose_edge_index() == int(np.argmax(scores))

    def test_empty_children_raises(self):
        node = Node(TicTacToe(), [])
        with pytest.raises(ContractViolation):
            node.choose_edge_index()


class TestWalkToLeaf:
    """1回のシミュレーションのテスト"""

    @pytest.fixture
    def evaluator(self):
        return RolloutEvaluator(prior_noise=0.0, seed=0)

    def test_sign_alternation_two_ply(self, evaluator):
        """勝ち筋の価値は1手ごとに符号が反転して伝播する"""
        root, _ = evaluator.create_node(TwoPlyGame())

        # 1回目: X の手 0 を展開。O 視点のプレイアウト結果 -1 を反転
        assert root.walk_to_leaf(evaluator) == 1.0
        winning_edge = root.children[0]
        middle = winning_edge.node
        assert middle.state.get_player() == Player.O

        # 2回目: 終局ノードを展開。X 視点 +1 -> O の Edge は -1 -> X の Edge は +1
        assert root.walk_to_leaf(evaluator) == 1.0
        terminal = middle.children[0].node
        assert terminal.is_terminal()
        assert middle.children[0].expected_reward == -1.0

        terminal_value = terminal.walk_to_leaf(evaluator)
        assert terminal_value == 1.0

        middle_value = middle.walk_to_leaf(evaluator)
        assert middle_value == -terminal_value

        root_value = root.walk_to_leaf(evaluator)
        assert root_value == -middle_value
        assert winning_edge.expected_reward == 1.0

    def test_terminal_node_is_immutable(self, evaluator):
        """終局ノードは統計を変更せず、手番視点の結果を返す"""
        state = play(TicTacToe(), [(0, 0), (1, 0), (0, 1), (1, 1), (0, 2)])
        node, _ = evaluator.create_node(state)

        assert node.is_terminal()
        for _ in range(3):
            # X の勝ちで O の手番
            assert node.walk_to_leaf(evaluator) == -1.0
        assert node.visit_count == 0.0

    def test_terminal_draw_returns_zero(self, evaluator):
        state = play(TicTacToe(), [
            (0, 0), (0, 1), (0, 2),
            (1, 1), (1, 0), (1, 2),
            (2, 1), (2, 0), (2, 2),
        ])
        node, _ = evaluator.create_node(state)
        assert node.walk_to_leaf(evaluator) == 0.0
        assert node.visit_count == 0.0

    def test_childless_non_terminal_node_raises(self, evaluator):
        node = Node(TicTacToe(), [])
        with pytest.raises(ContractViolation):
            node.walk_to_leaf(evaluator)

    def test_edge_expands_only_once(self, evaluator):
        root, _ = evaluator.create_node(TwoPlyGame())
        root.walk_to_leaf(evaluator)
        child = root.children[0].node

        for _ in range(10):
            root.walk_to_leaf(evaluator)

        assert root.children[0].node is child
        assert len(root.children) == 2

    def test_root_state_is_not_mutated(self, evaluator):
        root, _ = evaluator.create_node(TicTacToe())
        for _ in range(50):
            root.walk_to_leaf(evaluator)

        assert root.state == TicTacToe()


class TestTreeStatistics:
    """探索木全体の統計の整合性テスト"""

    @pytest.fixture
    def root(self):
        evaluator = RolloutEvaluator(seed=1)
        root, _ = evaluator.create_node(TicTacToe())
        for _ in range(500):
            root.walk_to_leaf(evaluator)
        return root

    def test_node_visits_equal_edge_visits(self, root):
        for node in iter_nodes(root):
            assert node.visit_count == sum(edge.visit_count for edge in node.children)

    def test_expected_reward_is_exact_ratio(self, root):
        for node in iter_nodes(root):
            for edge in node.children:
                if edge.visit_count > 0:
                    assert edge.expected_reward == edge.total_value / edge.visit_count
                    assert -1.0 <= edge.expected_reward <= 1.0

    def test_root_visit_count(self, root):
        assert root.visit_count == 500.0

    def test_get_statistics(self, root):
        stats = root.get_statistics()

        assert [s.action for s in stats] == TicTacToe().get_actions()
        assert sum(s.visit_count for s in stats) == 500.0
        for s, edge in zip(stats, root.children):
            assert s.visit_count == edge.visit_count
            assert s.expected_reward == edge.expected_reward
            assert s.prior_probability == edge.prior_probability

    def test_get_policy_distribution(self, root):
        policy = root.get_policy_distribution(temperature=1.0)

        assert policy.shape == (9,)
        assert np.isclose(policy.sum(), 1.0)
        counts = root.get_visit_counts()
        best = max(counts, key=counts.get)
        assert np.argmax(policy) == TicTacToe().action_to_index(best)

        deterministic = root.get_policy_distribution(temperature=0.0)
        assert deterministic.sum() == 1.0
        assert np.argmax(deterministic) == np.argmax(policy)

    def test_negative_temperature_raises(self, root):
        with pytest.raises(ValueError):
            root.get_policy_distribution(temperature=-1.0)

    def test_describe(self, root):
        text = root.describe(max_depth=2)

        assert "This node has 9 children with a total of 500 visits" in text
        assert "expected reward" in text


class TestMCTS:
    """探索ドライバのテスト"""

    @pytest.fixture
    def mcts(self):
        return MCTS(RolloutEvaluator(seed=7), num_simulations=200, rng=np.random.default_rng(7))

    def test_search_does_not_mutate_state(self, mcts):
        state = play(TicTacToe(), [(1, 1)])
        before = state.copy()

        root = mcts.search(state)

        assert state == before
        assert root.visit_count == 200.0

    def test_search_from_terminal_raises(self, mcts):
        state = play(TicTacToe(), [(0, 0), (1, 0), (0, 1), (1, 1), (0, 2)])
        with pytest.raises(ContractViolation):
            mcts.search(state)

    def test_get_action_probs(self, mcts):
        state = play(TicTacToe(), [(1, 1)])
        policy, value = mcts.get_action_probs(state, num_simulations=100)

        assert policy.shape == (9,)
        assert np.isclose(policy.sum(), 1.0)
        assert policy[4] == 0.0
        assert -1.0 <= value <= 1.0

    def test_dirichlet_noise_keeps_priors_normalized(self, mcts):
        root = mcts.search(TicTacToe(), num_simulations=0, add_dirichlet_noise=True)
        priors = [edge.prior_probability for edge in root.children]

        # ロールアウトの事前確率ノイズ分だけ1からずれる
        assert sum(priors) == pytest.approx(1.0, abs=0.01)
        assert len(set(priors)) == 9

    def test_finds_immediate_win(self, mcts):
        """1手で勝てる局面では勝ちの手を選ぶ"""
        # X X .
        # O O .
        # . . .
        state = play(TicTacToe(), [(0, 0), (1, 0), (0, 1), (1, 1)])

        assert mcts.get_best_action(state, num_simulations=300) == (0, 2)

        root = mcts.search(state, num_simulations=300)
        winning = next(e for e in root.children if e.action == (0, 2))
        assert winning.expected_reward == 1.0
        assert winning.node.walk_to_leaf(mcts.evaluator) == -1.0

    def test_blocks_immediate_loss(self, mcts):
        """相手の勝ちを防ぐ手を選ぶ"""
        # X X .
        # . O .
        # . . .   O の手番
        state = play(TicTacToe(), [(0, 0), (1, 1), (0, 1)])

        assert mcts.get_best_action(state, num_simulations=2000) == (0, 2)

    def test_seeded_search_is_reproducible(self):
        roots = []
        for _ in range(2):
            mcts = MCTS(RolloutEvaluator(seed=123))
            roots.append(mcts.search(TicTacToe(), num_simulations=1000))

        assert roots[0].get_statistics() == roots[1].get_statistics()

    def test_root_value(self):
        root = Node(TicTacToe(), [Edge((0, 0), 0.5), Edge((0, 1), 0.5)])
        assert MCTS.root_value(root) == 0.0

        root.children[0].update(1.0)
        root.children[0].update(1.0)
        root.children[1].update(-1.0)
        root.visit_count = 3.0
        assert MCTS.root_value(root) == pytest.approx(1.0 / 3.0)


class TestTicTacToeScenario:
    """空の盤面から10,000回探索した結果のテスト"""

    CENTER_AND_CORNERS = [(1, 1), (0, 0), (0, 2), (2, 0), (2, 2)]
    EDGE_MIDPOINTS = [(0, 1), (1, 0), (1, 2), (2, 1)]

    @pytest.fixture(scope="class")
    def roots(self):
        roots = []
        for seed in (0, 1, 2):
            mcts = MCTS(RolloutEvaluator(seed=seed))
            roots.append(mcts.search(TicTacToe(exploration_factor=1.0), num_simulations=10_000))
        return roots

    def test_every_opening_is_visited(self, roots):
        for root in roots:
            assert len(root.children) == 9
            assert all(edge.visit_count > 0 for edge in root.children)
            assert root.visit_count == 10_000.0

    def test_center_and_corners_beat_edge_midpoints(self, roots):
        rewards = {}
        for root in roots:
            for edge in root.children:
                rewards.setdefault(edge.action, []).append(edge.expected_reward)

        strong = np.mean([np.mean(rewards[a]) for a in self.CENTER_AND_CORNERS])
        weak = np.mean([np.mean(rewards[a]) for a in self.EDGE_MIDPOINTS])

        assert strong > weak
