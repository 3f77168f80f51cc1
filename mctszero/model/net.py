"""
TicTacToeNet - Dual-Head 多層パーセプトロン

GuidedEvaluator 用の予測器:
- 共有の全結合層 × 2 + PolicyHead + ValueHead
- 入力は盤面ベクトル（1マス1スカラ）
"""

import torch
import torch.nn as nn
import torch.nn.functional as F


class PolicyHead(nn.Module):
    """
    方策ヘッド (Policy Head)
    出力: action_size 次元のLog確率

    構造: FC(action_size) -> LogSoftmax
    """

    def __init__(self, hidden_size: int, action_size: int):
        super().__init__()
        self.fc = nn.Linear(hidden_size, action_size)

    def forward(self, x):
        return F.log_softmax(self.fc(x), dim=1)


class ValueHead(nn.Module):
    """
    価値ヘッド (Value Head)
    出力: スカラ値 [-1, 1]（手番視点の勝率推定）

    構造: FC(1) -> Tanh
    """

    def __init__(self, hidden_size: int):
        super().__init__()
        self.fc = nn.Linear(hidden_size, 1)

    def forward(self, x):
        return torch.tanh(self.fc(x))


class TicTacToeNet(nn.Module):
    """
    方策と価値を同時に出力するネットワーク

    入力: (Batch, input_size)
        - 各マス: 1.0 (X), -1.0 (O), 0.0 (空き)

    出力:
        - policy_logits: (Batch, action_size) - Log確率分布
        - value: (Batch, 1) - 価値推定 [-1, 1]

    Args:
        input_size (int): 盤面ベクトルの長さ（デフォルト: 9）
        hidden_size (int): 隠れ層のユニット数（デフォルト: 128）
        action_size (int): 行動数（デフォルト: 9）
    """

    def __init__(
        self,
        input_size: int = 9,
        hidden_size: int = 128,
        action_size: int = 9,
    ):
        super().__init__()

        self.input_size = input_size
        self.hidden_size = hidden_size
        self.action_size = action_size

        self.fc1 = nn.Linear(input_size, hidden_size)
        self.fc2 = nn.Linear(hidden_size, hidden_size)

        # Dual Head
        self.policy_head = PolicyHead(hidden_size, action_size)
        self.value_head = ValueHead(hidden_size)

    def forward(self, x):
        """
        Forward pass

        Args:
            x (torch.Tensor): 入力テンソル (Batch, input_size)

        Returns:
            Tuple[torch.Tensor, torch.Tensor]:
                - policy_logits: (Batch, action_size)
                - value: (Batch, 1)
        """
        x = F.relu(self.fc1(x))
        x = F.relu(self.fc2(x))

        return self.policy_head(x), self.value_head(x)

    def predict(self, board_tensor):
        """
        盤面テンソルから方策と価値を予測（推論用ヘルパー）

        Args:
            board_tensor (torch.Tensor): (input_size,) or (Batch, input_size)

        Returns:
            Tuple[torch.Tensor, torch.Tensor]:
                - policy_probs: (action_size,) or (Batch, action_size) - 確率分布
                - value: (1,) or (Batch, 1) - 価値推定
        """
        if board_tensor.dim() == 1:
            board_tensor = board_tensor.unsqueeze(0)
            squeeze_output = True
        else:
            squeeze_output = False

        self.eval()
        with torch.no_grad():
            policy_logits, value = self.forward(board_tensor)
            policy_probs = torch.exp(policy_logits)

        if squeeze_output:
            policy_probs = policy_probs.squeeze(0)
            value = value.squeeze(0)

        return policy_probs, value

    def get_param_count(self):
        """モデルのパラメータ数を取得"""
        total = sum(p.numel() for p in self.parameters())
        trainable = sum(p.numel() for p in self.parameters() if p.requires_grad)
        return {"total": total, "trainable": trainable}


def create_model(config: dict) -> TicTacToeNet:
    """
    設定ファイルからモデルを作成

    Args:
        config (dict): 設定辞書
            例: {"hidden_size": 128}

    Returns:
        TicTacToeNet: インスタンス化されたモデル
    """
    return TicTacToeNet(
        input_size=config.get("input_size", 9),
        hidden_size=config.get("hidden_size", 128),
        action_size=config.get("action_size", 9),
    )


def load_model(checkpoint_path: str, device: torch.device) -> TicTacToeNet:
    """
    チェックポイントからモデルを読み込む

    Args:
        checkpoint_path: Trainer.save_checkpoint で保存したファイル
        device: torch.device

    Returns:
        TicTacToeNet: eval モードのモデル
    """
    checkpoint = torch.load(checkpoint_path, map_location=device)
    state_dict = checkpoint["model_state_dict"]

    # 重みの形状からモデル設定を推測
    hidden_size, input_size = state_dict["fc1.weight"].shape
    action_size = state_dict["policy_head.fc.weight"].shape[0]

    model = TicTacToeNet(
        input_size=input_size,
        hidden_size=hidden_size,
        action_size=action_size,
    )
    model.load_state_dict(state_dict)
    model.to(device)
    model.eval()

    return model
