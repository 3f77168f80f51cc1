"""
mctszero - 二人零和ゲームのためのモンテカルロ木探索

評価器（ランダムプレイアウト / ニューラルネットワーク）を差し替え可能なPUCT探索
"""

__version__ = "0.1.0"
