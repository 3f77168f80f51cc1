"""
Trainer

学習ループ全体のオーケストレーション:
1. Self-Play でデータ生成
2. Replay Buffer に格納
3. ミニバッチで学習
4. チェックポイント保存
5. TensorBoard ロギング
"""

import time
from collections import deque
from pathlib import Path

import torch
import torch.nn as nn
import torch.optim as optim
from torch.utils.tensorboard import SummaryWriter


class Trainer:
    """
    Self-Play → Replay Buffer → Train のサイクルを管理
    """

    def __init__(
        self,
        model: nn.Module,
        device: torch.device,
        replay_buffer,
        self_play_worker,
        config: dict,
        checkpoint_dir: str = "data/models",
        log_dir: str = "data/logs",
    ):
        """
        Args:
            model: TicTacToeNet
            device: torch.device
            replay_buffer: ReplayBuffer
            self_play_worker: SelfPlayWorker
            config: 設定辞書（training セクション）
            checkpoint_dir: チェックポイント保存先
            log_dir: TensorBoard ログ保存先
        """
        self.model = model
        self.device = device
        self.replay_buffer = replay_buffer
        self.self_play_worker = self_play_worker
        self.config = config

        self.checkpoint_dir = Path(checkpoint_dir)
        self.checkpoint_dir.mkdir(parents=True, exist_ok=True)

        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.optimizer = optim.SGD(
            model.parameters(),
            lr=config.get("lr", 0.01),
            momentum=config.get("momentum", 0.9),
            weight_decay=config.get("weight_decay", 0.0001),
        )

        self.scheduler = optim.lr_scheduler.StepLR(
            self.optimizer,
            step_size=config.get("lr_step_size", 100),
            gamma=config.get("lr_gamma", 0.1),
        )

        self.writer = SummaryWriter(log_dir=str(self.log_dir))

        self.global_step = 0
        self.epoch = 0
        self.loss_history: deque = deque(maxlen=20)

    def train(
        self,
        num_iterations: int,
        self_play_episodes_per_iter: int = 20,
        train_epochs_per_iter: int = 10,
        batch_size: int = 64,
        checkpoint_interval: int = 10,
    ):
        """
        学習ループを実行

        Args:
            num_iterations (int): 学習イテレーション数
            self_play_episodes_per_iter (int): イテレーションあたりのSelf-Playエピソード数
            train_epochs_per_iter (int): イテレーションあたりの学習エポック数
            batch_size (int): バッチサイズ
            checkpoint_interval (int): チェックポイント保存間隔（イテレーション）
        """
        print("=" * 70)
        print("Training Started")
        print("=" * 70)
        print(f"Device: {self.device}")
        print(f"Model: {self.model.__class__.__name__}")
        print(f"Batch Size: {batch_size}")
        print(f"Iterations: {num_iterations}")
        print("=" * 70)

        start_time = time.time()

        for iteration in range(1, num_iterations + 1):
            self_play_start = time.time()
            training_data = self.self_play_worker.execute_episodes(
                num_episodes=self_play_episodes_per_iter,
                add_dirichlet_noise=True,
            )
            self.replay_buffer.add(training_data)
            self_play_time = time.time() - self_play_start

            avg_loss = 0.0
            if self.replay_buffer.is_ready(batch_size):
                avg_loss = self._train_epochs(train_epochs_per_iter, batch_size)
                self.scheduler.step()
                self.loss_history.append(avg_loss)

                self.writer.add_scalar("Loss/train", avg_loss, iteration)
                self.writer.add_scalar("Time/self_play", self_play_time, iteration)
                self.writer.add_scalar("Buffer/size", len(self.replay_buffer), iteration)

                buffer_stats = self.replay_buffer.get_statistics()
                self.writer.add_scalar("Buffer/value_mean", buffer_stats["value_mean"], iteration)
                self.writer.add_scalar("Buffer/value_std", buffer_stats["value_std"], iteration)

            print(f"Iter {iteration}/{num_iterations}  "
                  f"Loss: {avg_loss:.4f}  |  "
                  f"Buffer: {len(self.replay_buffer):,}  |  "
                  f"Self-Play: {self_play_time:.1f}s")

            if iteration % checkpoint_interval == 0:
                self.save_checkpoint(f"checkpoint_iter_{iteration}.pt")

        print("=" * 70)
        print(f"Training Completed! Total Time: {time.time() - start_time:.0f}s")
        print("=" * 70)

        self.save_checkpoint("final_model.pt")
        self.writer.close()

    def _train_epochs(self, num_epochs: int, batch_size: int) -> float:
        """
        指定エポック数だけ学習

        Returns:
            float: 平均損失
        """
        self.model.train()
        total_loss = 0.0

        for _ in range(num_epochs):
            states, target_policies, target_values = self.replay_buffer.sample(batch_size)

            states = torch.from_numpy(states).to(self.device)
            target_policies = torch.from_numpy(target_policies).to(self.device)
            target_values = torch.from_numpy(target_values).to(self.device)

            total_loss += self._train_step(states, target_policies, target_values)

            self.global_step += 1
            self.epoch += 1

        return total_loss / num_epochs

    def _train_step(
        self,
        states: torch.Tensor,
        target_policies: torch.Tensor,
        target_values: torch.Tensor,
    ) -> float:
        """
        1回の学習ステップ

        Args:
            states: (batch_size, input_size)
            target_policies: (batch_size, action_size)
            target_values: (batch_size, 1)

        Returns:
            float: 損失
        """
        self.optimizer.zero_grad()

        policy_logits, value_pred = self.model(states)

        policy_loss = self._policy_loss(policy_logits, target_policies)
        value_loss = nn.functional.mse_loss(value_pred, target_values)
        total_loss = policy_loss + value_loss

        total_loss.backward()
        self.optimizer.step()

        return total_loss.item()

    def _policy_loss(
        self,
        policy_logits: torch.Tensor,
        target_policies: torch.Tensor,
    ) -> torch.Tensor:
        """
        方策損失（クロスエントロピー）

        policy_logits は LogSoftmax 出力なので -sum(target * log(pred)) をそのまま計算する
        """
        return -torch.mean(torch.sum(target_policies * policy_logits, dim=1))

    def save_checkpoint(self, filename: str) -> Path:
        """
        チェックポイントを保存

        Args:
            filename: ファイル名

        Returns:
            Path: 保存先のパス
        """
        checkpoint_path = self.checkpoint_dir / filename

        checkpoint = {
            "model_state_dict": self.model.state_dict(),
            "optimizer_state_dict": self.optimizer.state_dict(),
            "scheduler_state_dict": self.scheduler.state_dict(),
            "global_step": self.global_step,
            "epoch": self.epoch,
            "config": self.config,
        }

        torch.save(checkpoint, checkpoint_path)
        print(f"  Checkpoint saved: {checkpoint_path}")
        return checkpoint_path

    def load_checkpoint(self, checkpoint_path: str):
        """
        チェックポイントを読み込み

        Args:
            checkpoint_path: チェックポイントファイルパス
        """
        checkpoint = torch.load(checkpoint_path, map_location=self.device)

        self.model.load_state_dict(checkpoint["model_state_dict"])
        self.optimizer.load_state_dict(checkpoint["optimizer_state_dict"])
        self.scheduler.load_state_dict(checkpoint["scheduler_state_dict"])
        self.global_step = checkpoint["global_step"]
        self.epoch = checkpoint["epoch"]

        print(f"Checkpoint loaded: {checkpoint_path}")
        print(f"  Global Step: {self.global_step}")
        print(f"  Epoch: {self.epoch}")
