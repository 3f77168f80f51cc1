"""
mctszero - CLIエントリポイント

探索・学習・評価用のコマンドラインインターフェース
"""

import argparse
import functools

import numpy as np
import torch
import yaml

from mctszero.game.tictactoe import TicTacToe
from mctszero.mcts.evaluator import GuidedEvaluator, RolloutEvaluator
from mctszero.mcts.mcts import MCTS
from mctszero.model.net import create_model, load_model
from mctszero.train.buffer import ReplayBuffer
from mctszero.train.self_play import SelfPlayWorker
from mctszero.train.trainer import Trainer


def load_config(config_path: str) -> dict:
    """
    YAML設定ファイルを読み込む

    Args:
        config_path: 設定ファイルのパス

    Returns:
        dict: 設定辞書
    """
    with open(config_path, 'r', encoding='utf-8') as f:
        config = yaml.safe_load(f)
    return config


def setup_device(config: dict) -> torch.device:
    """設定に従ってデバイスを選択"""
    device_config = config.get('system', {}).get('device', 'auto')

    if device_config == 'auto':
        device = torch.device('cuda' if torch.cuda.is_available() else 'cpu')
    else:
        device = torch.device(device_config)

    print(f"Device: {device}")
    return device


def set_seed(seed: int):
    """
    乱数シードを設定

    Args:
        seed: シード値
    """
    torch.manual_seed(seed)
    np.random.seed(seed)
    if torch.cuda.is_available():
        torch.cuda.manual_seed(seed)


def make_game_factory(config: dict):
    """設定の探索定数で初期盤面を作る関数"""
    exploration_factor = config.get('game', {}).get('exploration_factor', 1.0)
    return functools.partial(TicTacToe, exploration_factor=exploration_factor)


def print_root_statistics(root):
    """ルートの各行動の統計を表示"""
    for stats in root.get_statistics():
        print(
            f"Action {stats.action} has value {stats.expected_reward:+.4f} "
            f"and was visited {stats.visit_count:g} times. "
            f"(Prior: {stats.prior_probability:.4f})"
        )


def search_command(args):
    """
    探索コマンド

    初期盤面（または --moves で指定した局面）から探索し、ルートの統計を表示する
    """
    config = load_config(args.config)
    seed = config.get('system', {}).get('seed', 42)
    set_seed(seed)

    state = make_game_factory(config)()
    for move in args.moves:
        row, col = map(int, move.split(','))
        state.apply_action((row, col))

    if args.checkpoint:
        device = setup_device(config)
        evaluator = GuidedEvaluator(load_model(args.checkpoint, device), device)
    else:
        evaluator = RolloutEvaluator(
            prior_noise=config['mcts'].get('prior_noise', 0.001),
            seed=seed,
        )

    mcts = MCTS(evaluator, num_simulations=args.simulations)
    root = mcts.search(state)

    print(state)
    print(f"Evaluator: {evaluator.__class__.__name__}  Simulations: {args.simulations}")
    print_root_statistics(root)
    print(f"Root value: {MCTS.root_value(root):+.4f}")

    if args.verbose:
        print()
        print(root.describe(max_depth=2))


def train_command(args):
    """
    学習コマンド

    Args:
        args: argparseの引数
    """
    config = load_config(args.config)
    print(f"Loaded config: {args.config}")

    seed = config.get('system', {}).get('seed', 42)
    set_seed(seed)
    print(f"Random seed: {seed}")

    device = setup_device(config)

    model = create_model(config.get('model', {}))
    model.to(device)
    print(f"Model: {model.__class__.__name__}  Parameters: {model.get_param_count()['total']:,}")

    mcts = MCTS(
        GuidedEvaluator(model, device),
        num_simulations=config['mcts']['num_simulations'],
        dirichlet_alpha=config['mcts']['dirichlet_alpha'],
        dirichlet_epsilon=config['mcts'].get('dirichlet_epsilon', 0.25),
        rng=np.random.default_rng(seed),
    )

    self_play_worker = SelfPlayWorker(
        game_factory=make_game_factory(config),
        mcts=mcts,
        num_simulations=config['mcts']['num_simulations'],
        temperature_threshold=config['self_play'].get('temperature_threshold', 4),
        rng=np.random.default_rng(seed + 1),
    )

    replay_buffer = ReplayBuffer(max_size=config['training']['replay_buffer_size'])

    trainer = Trainer(
        model=model,
        device=device,
        replay_buffer=replay_buffer,
        self_play_worker=self_play_worker,
        config=config['training'],
        checkpoint_dir=config['paths']['checkpoint_dir'],
        log_dir=config['paths']['log_dir'],
    )

    trainer.train(
        num_iterations=config['training']['num_iterations'],
        self_play_episodes_per_iter=config['training']['self_play_episodes_per_iter'],
        train_epochs_per_iter=config['training']['train_epochs_per_iter'],
        batch_size=config['training']['batch_size'],
        checkpoint_interval=config['training']['checkpoint_interval'],
    )


def eval_command(args):
    """
    評価コマンド

    ランダムプレイヤーおよびロールアウトMCTSと対戦させる
    """
    from mctszero.eval.arena import evaluate_player
    from mctszero.eval.players import MCTSPlayer, RandomPlayer

    config = load_config(args.config)
    seed = config.get('system', {}).get('seed', 42)
    set_seed(seed)
    device = setup_device(config)

    if args.checkpoint:
        ai_player = MCTSPlayer.from_checkpoint(args.checkpoint, device, args.simulations)
    else:
        ai_player = MCTSPlayer.rollout(num_simulations=args.simulations, seed=seed)
    print(f"Player: {ai_player.name}")

    opponents = [
        RandomPlayer(name="Random", rng=np.random.default_rng(seed)),
        MCTSPlayer.rollout(num_simulations=args.opponent_simulations, seed=seed + 1),
    ]

    for opponent in opponents:
        result = evaluate_player(
            make_game_factory(config),
            ai_player,
            opponent,
            num_games=args.games,
            verbose=args.verbose,
        )
        print(f"vs {opponent.name:25s}: "
              f"win {result['win_rate'] * 100:5.1f}%  "
              f"draw {result['draw_rate'] * 100:5.1f}%  "
              f"loss {result['loss_rate'] * 100:5.1f}%")


def main():
    """メインエントリポイント"""
    parser = argparse.ArgumentParser(description="mctszero - CLI")

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    search_parser = subparsers.add_parser('search', help='Run MCTS from a position')
    search_parser.add_argument('--config', type=str, default='configs/default.yaml')
    search_parser.add_argument(
        '--simulations',
        type=int,
        default=10000,
        help='Number of simulations (default: 10000)'
    )
    search_parser.add_argument(
        '--checkpoint',
        type=str,
        default=None,
        help='Use a trained model instead of random rollouts'
    )
    search_parser.add_argument(
        '--moves',
        nargs='*',
        default=[],
        help='Moves to play before searching, as row,col'
    )
    search_parser.add_argument('--verbose', action='store_true', help='Print the search tree')
    search_parser.set_defaults(func=search_command)

    train_parser = subparsers.add_parser('train', help='Train the model')
    train_parser.add_argument(
        '--config',
        type=str,
        default='configs/default.yaml',
        help='Path to config file (default: configs/default.yaml)'
    )
    train_parser.set_defaults(func=train_command)

    eval_parser = subparsers.add_parser('eval', help='Evaluate a player')
    eval_parser.add_argument('--config', type=str, default='configs/default.yaml')
    eval_parser.add_argument('--checkpoint', type=str, default=None)
    eval_parser.add_argument('--games', type=int, default=20)
    eval_parser.add_argument('--simulations', type=int, default=200)
    eval_parser.add_argument('--opponent-simulations', type=int, default=50)
    eval_parser.add_argument('--verbose', action='store_true', help='Show detailed game progress')
    eval_parser.set_defaults(func=eval_command)

    args = parser.parse_args()

    if hasattr(args, 'func'):
        args.func(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
