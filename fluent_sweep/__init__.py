"""Fluent 多网格雷诺数批量计算与收敛判定工具。"""

from .pipeline import BatchConfig, run_sweep

__all__ = ["BatchConfig", "run_sweep"]

__version__ = "0.1.0"
