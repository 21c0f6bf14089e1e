"""绘制单个工况的连续性残差收敛曲线。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence

import matplotlib

matplotlib.use("Agg")  # 批处理通常运行在无图形界面的计算节点上
import matplotlib.pyplot as plt

from .convergence import IterationRecord

LOGGER = logging.getLogger(__name__)

PLOT_NAME = "residuals.png"


def plot_residual_history(
    records: Sequence[IterationRecord],
    output_path: Path,
    *,
    threshold: Optional[float] = None,
    title: str = "",
    dpi: int = 150,
) -> Optional[Path]:
    """按对数坐标绘制残差历史，没有记录时不生成图片。"""

    if not records:
        LOGGER.info("没有迭代记录，跳过残差曲线: %s", output_path)
        return None

    iterations = [record.iteration for record in records]
    residuals = [record.residual for record in records]

    fig, ax = plt.subplots(figsize=(8, 4))
    ax.semilogy(iterations, residuals, label="continuity")
    if threshold is not None:
        ax.axhline(threshold, color="tab:red", linestyle="--", linewidth=1.0, label="threshold")
    ax.set_xlabel("迭代步")
    ax.set_ylabel("残差 (对数坐标)")
    ax.set_title(title or "连续性残差收敛历史")
    ax.grid(True, which="both")
    ax.legend()

    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(output_path, dpi=dpi)
    plt.close(fig)
    LOGGER.info("已保存残差曲线: %s", output_path)
    return output_path


__all__ = ["PLOT_NAME", "plot_residual_history"]
