"""
Replay Buffer

自己対戦で生成した学習データを保持するバッファ

機能:
- 固定サイズのバッファでデータを循環管理
- ランダムサンプリングでミニバッチを生成
- 古いデータを自動的に破棄
"""

import random
from collections import deque
from typing import List, Optional, Tuple

import numpy as np


class ReplayBuffer:
    """
    リプレイバッファ

    (state, policy, value) のタプルを保存し、
    ランダムサンプリングでミニバッチを提供する
    """

    def __init__(self, max_size: int = 100000, rng: Optional[random.Random] = None):
        """
        Args:
            max_size (int): バッファの最大サイズ
                古いデータは自動的に破棄される
            rng (random.Random, optional): サンプリング用の乱数生成器
        """
        self.max_size = max_size
        self.buffer = deque(maxlen=max_size)
        self.rng = rng if rng is not None else random.Random()

    def add(self, data: List[Tuple[np.ndarray, np.ndarray, float]]):
        """
        データをバッファに追加

        Args:
            data: [(state, policy, value), ...]
                - state: (input_size,)
                - policy: (action_size,)
                - value: float
        """
        for item in data:
            self.buffer.append(item)

    def add_single(self, state: np.ndarray, policy: np.ndarray, value: float):
        """単一のデータをバッファに追加"""
        self.buffer.append((state, policy, value))

    def sample(self, batch_size: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        ランダムサンプリングでミニバッチを生成

        Args:
            batch_size (int): バッチサイズ

        Returns:
            Tuple[np.ndarray, np.ndarray, np.ndarray]:
                - states: (batch_size, input_size)
                - policies: (batch_size, action_size)
                - values: (batch_size, 1)
        """
        if len(self.buffer) < batch_size:
            raise ValueError(
                f"Buffer size ({len(self.buffer)}) is smaller than batch size ({batch_size})"
            )

        samples = self.rng.sample(list(self.buffer), batch_size)

        states = np.array([s[0] for s in samples], dtype=np.float32)
        policies = np.array([s[1] for s in samples], dtype=np.float32)
        values = np.array([[s[2]] for s in samples], dtype=np.float32)

        return states, policies, values

    def __len__(self) -> int:
        return len(self.buffer)

    def clear(self):
        """バッファをクリア"""
        self.buffer.clear()

    def is_ready(self, min_size: int) -> bool:
        """バッファサイズが min_size 以上なら True"""
        return len(self.buffer) >= min_size

    def get_statistics(self) -> dict:
        """
        バッファの統計情報を取得

        Returns:
            dict: size, max_size, fill_rate, value_mean, value_std
        """
        if len(self.buffer) == 0:
            return {
                "size": 0,
                "max_size": self.max_size,
                "fill_rate": 0.0,
                "value_mean": 0.0,
                "value_std": 0.0,
            }

        values = [item[2] for item in self.buffer]

        return {
            "size": len(self.buffer),
            "max_size": self.max_size,
            "fill_rate": len(self.buffer) / self.max_size,
            "value_mean": float(np.mean(values)),
            "value_std": float(np.std(values)),
        }
