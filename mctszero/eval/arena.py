"""
対戦管理システム (Arena)

2つのプレイヤーを対戦させ、結果を記録する
"""

import time
from dataclasses import dataclass
from typing import Callable, List

from mctszero.game.base import Game, GameStatus, Player as Side
from .players import Player


@dataclass
class MatchResult:
    """
    対戦結果

    Attributes:
        player1_name: プレイヤー1の名前
        player2_name: プレイヤー2の名前
        winner: 勝者 (1: player1, -1: player2, 0: 引き分け)
        num_moves: 総手数
        duration: 対戦時間（秒）
    """
    player1_name: str
    player2_name: str
    winner: int
    num_moves: int
    duration: float

    def __str__(self) -> str:
        if self.winner == 1:
            result = f"{self.player1_name} wins"
        elif self.winner == -1:
            result = f"{self.player2_name} wins"
        else:
            result = "Draw"

        return f"{result} | Moves: {self.num_moves} | Time: {self.duration:.2f}s"


class Arena:
    """
    対戦管理システム
    """

    def __init__(self, game_factory: Callable[[], Game], verbose: bool = True):
        """
        Args:
            game_factory: 初期盤面を生成する関数
            verbose: 詳細な出力を行うか
        """
        self.game_factory = game_factory
        self.verbose = verbose

    def play_game(
        self,
        player1: Player,
        player2: Player,
        starting_player: int = 1,
    ) -> MatchResult:
        """
        1ゲームを実行

        Args:
            player1: プレイヤー1
            player2: プレイヤー2
            starting_player: 先手 (1: player1, -1: player2)

        Returns:
            MatchResult: 対戦結果
        """
        state = self.game_factory()

        player1.reset()
        player2.reset()

        # 先手のプレイヤーが X を持つ
        first, second = (player1, player2) if starting_player == 1 else (player2, player1)
        seats = {Side.X: first, Side.O: second}

        start_time = time.time()
        num_moves = 0

        while not state.get_victory_state().is_terminal:
            current = seats[state.get_player()]
            action = current.get_action(state)

            if self.verbose:
                print(f"{current.name} plays: {action}")

            state.apply_action(action)
            num_moves += 1

        duration = time.time() - start_time

        victory_state = state.get_victory_state()
        if victory_state.status is GameStatus.DRAW:
            winner = 0
        elif seats[victory_state.winner] is player1:
            winner = 1
        else:
            winner = -1

        result = MatchResult(
            player1_name=player1.name,
            player2_name=player2.name,
            winner=winner,
            num_moves=num_moves,
            duration=duration,
        )

        if self.verbose:
            print(f"\n{state}\n{result}\n")

        return result

    def play_matches(
        self,
        player1: Player,
        player2: Player,
        num_games: int = 10,
        alternate_colors: bool = True,
    ) -> List[MatchResult]:
        """
        複数ゲームを実行

        Args:
            player1: プレイヤー1
            player2: プレイヤー2
            num_games: ゲーム数
            alternate_colors: 先後を交代するか

        Returns:
            List[MatchResult]: 対戦結果のリスト
        """
        results = []

        for game_idx in range(num_games):
            if self.verbose:
                print(f"=== Game {game_idx + 1}/{num_games} ===")

            if alternate_colors:
                starting_player = 1 if (game_idx % 2 == 0) else -1
            else:
                starting_player = 1

            results.append(self.play_game(player1, player2, starting_player))

        if self.verbose:
            self._print_summary(results, player1.name, player2.name)

        return results

    def _print_summary(
        self,
        results: List[MatchResult],
        player1_name: str,
        player2_name: str,
    ):
        """対戦結果のサマリーを表示"""
        total_games = len(results)
        if total_games == 0:
            return

        player1_wins = sum(1 for r in results if r.winner == 1)
        player2_wins = sum(1 for r in results if r.winner == -1)
        draws = total_games - player1_wins - player2_wins

        print("\n" + "=" * 70)
        print("Match Summary")
        print("=" * 70)
        print(f"\nTotal Games: {total_games}")
        print(f"{player1_name}: {player1_wins} wins ({player1_wins / total_games * 100:.1f}%)")
        print(f"{player2_name}: {player2_wins} wins ({player2_wins / total_games * 100:.1f}%)")
        print(f"Draws: {draws}")
        print(f"\nAverage Moves: {sum(r.num_moves for r in results) / total_games:.1f}")
        print("=" * 70 + "\n")


def evaluate_player(
    game_factory: Callable[[], Game],
    player: Player,
    opponent: Player,
    num_games: int = 10,
    verbose: bool = True,
) -> dict:
    """
    プレイヤーを評価

    Returns:
        dict: 評価結果
            - win_rate: 勝率
            - draw_rate: 引き分け率
            - loss_rate: 負け率
            - avg_moves: 平均手数
            - results: 対戦結果リスト
    """
    arena = Arena(game_factory, verbose=verbose)
    results = arena.play_matches(player, opponent, num_games=num_games)

    if num_games == 0:
        return {"win_rate": 0.0, "draw_rate": 0.0, "loss_rate": 0.0, "avg_moves": 0.0, "results": results}

    return {
        "win_rate": sum(1 for r in results if r.winner == 1) / num_games,
        "draw_rate": sum(1 for r in results if r.winner == 0) / num_games,
        "loss_rate": sum(1 for r in results if r.winner == -1) / num_games,
        "avg_moves": sum(r.num_moves for r in results) / num_games,
        "results": results,
    }
