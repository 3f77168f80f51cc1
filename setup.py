"""mctszero のインストールスクリプト

使用方法:
    pip install -e .
    pip install -e ".[test]"
"""

from setuptools import find_packages, setup

setup(
    name="mctszero",
    version="0.1.0",
    description="PUCT Monte Carlo Tree Search with rollout and neural network evaluators",
    packages=find_packages(include=["mctszero", "mctszero.*"]),
    python_requires=">=3.9",
    install_requires=[
        "numpy",
        "torch",
        "tensorboard",  # torch.utils.tensorboard.SummaryWriter
        "PyYAML",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
