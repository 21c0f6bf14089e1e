"""收敛判定模块

Fluent 控制台每步迭代输出一行残差记录，例如::

      iter  continuity  x-velocity  y-velocity  z-velocity     time/iter
       847  2.3400e-02  1.2000e-04  1.1000e-04  9.8000e-05  0:00:01  153

取日志中最后一条迭代记录，第 1 列为迭代步数，第 2 列为连续性残差，与阈值比较
得出工况的最终状态。只检查最终状态，不分析残差趋势或其他方程的残差。
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

LOGGER = logging.getLogger(__name__)

# 前导空白 + 整数迭代步 + 空白 + 以数字开头的第二列
ITERATION_LINE_RE = re.compile(r"^\s*[0-9]+\s+[0-9]")


class CaseStatus(str, enum.Enum):
    """工况终态。"""

    CONVERGED = "CONVERGED"
    NOT_CONVERGED = "NOT_CONVERGED"
    PARSE_ERROR = "PARSE_ERROR"
    FAILED = "FAILED"


@dataclass(frozen=True)
class IterationRecord:
    iteration: int
    residual: float


@dataclass(frozen=True)
class Classification:
    """从日志解析得到的判定结果。"""

    status: CaseStatus
    actual_iterations: int
    final_residual: Optional[float]
    max_iterations: Optional[int] = None


def _parse_fields(line: str) -> Optional[IterationRecord]:
    fields = line.split()
    try:
        return IterationRecord(iteration=int(fields[0]), residual=float(fields[1]))
    except (IndexError, ValueError):
        return None


def _iteration_lines(lines: Iterable[str]) -> List[str]:
    return [line for line in lines if ITERATION_LINE_RE.match(line)]


def parse_iteration_records(text: str) -> List[IterationRecord]:
    """解析全部迭代记录，第二列无法转换为数值的行被忽略。"""

    records: List[IterationRecord] = []
    for line in _iteration_lines(text.splitlines()):
        record = _parse_fields(line)
        if record is not None:
            records.append(record)
    return records


def parse_last_iteration_record(text: str) -> Optional[IterationRecord]:
    """返回最后一条匹配的迭代记录；没有匹配或该行残差不是数值时返回 ``None``。"""

    matches = _iteration_lines(text.splitlines())
    if not matches:
        return None
    return _parse_fields(matches[-1])


def classify_record(record: Optional[IterationRecord], threshold: float) -> Classification:
    """残差严格小于阈值视为收敛。"""

    if record is None:
        return Classification(CaseStatus.PARSE_ERROR, actual_iterations=0, final_residual=None)
    status = CaseStatus.CONVERGED if record.residual < threshold else CaseStatus.NOT_CONVERGED
    return Classification(status, actual_iterations=record.iteration, final_residual=record.residual)


def classify_transcript(
    transcript: Path,
    threshold: float,
    max_iterations: Optional[int] = None,
) -> Classification:
    """读取控制台日志并判定收敛状态，日志不可读时按解析失败处理。"""

    try:
        text = Path(transcript).read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        LOGGER.warning("无法读取日志 %s: %s", transcript, exc)
        text = ""

    result = classify_record(parse_last_iteration_record(text), threshold)
    if result.status is CaseStatus.PARSE_ERROR:
        LOGGER.warning("日志中未找到有效的迭代记录: %s", transcript)
    return Classification(
        result.status,
        actual_iterations=result.actual_iterations,
        final_residual=result.final_residual,
        max_iterations=max_iterations,
    )


__all__ = [
    "CaseStatus",
    "Classification",
    "IterationRecord",
    "classify_record",
    "classify_transcript",
    "parse_iteration_records",
    "parse_last_iteration_record",
]
