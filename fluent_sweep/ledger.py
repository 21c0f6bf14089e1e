"""批次运行台账

``RunLedger`` 是不可变的结果序列，编排器每完成一个工况就生成一个追加了新结果的
新台账；``LedgerWriter`` 负责把每条结果立即写入 ``batch_summary.log``，
即使批次中途被打断，已完成的工况记录也不会丢失。
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

from .case.parameters import CaseSpec, format_reynolds
from .post.convergence import CaseStatus

LOGGER = logging.getLogger(__name__)

LEDGER_NAME = "batch_summary.log"
LEDGER_HEADER = ("Mesh", "Re", "Velocity", "MaxIters", "ActualIters", "FinalResidual", "Status", "Time")
MISSING = "N/A"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class CaseResult:
    """单个工况的最终结果，写入台账后不再修改。"""

    case: CaseSpec
    status: CaseStatus
    actual_iterations: Optional[int]
    final_residual: Optional[float]
    elapsed_seconds: float
    transcript: Optional[Path] = None

    def to_row(self) -> Tuple[str, ...]:
        """转换为台账中的一行 CSV 字段。"""

        return (
            self.case.mesh.name,
            format_reynolds(self.case.reynolds),
            repr(self.case.velocity),
            str(self.case.max_iterations),
            MISSING if self.actual_iterations is None else str(self.actual_iterations),
            MISSING if self.final_residual is None else repr(self.final_residual),
            self.status.value,
            f"{int(round(self.elapsed_seconds))}s",
        )


@dataclass(frozen=True)
class RunLedger:
    """按执行顺序排列的工况结果与批次起止时间。"""

    started_at: datetime
    results: Tuple[CaseResult, ...] = ()
    ended_at: Optional[datetime] = None

    def append(self, result: CaseResult) -> "RunLedger":
        return replace(self, results=self.results + (result,))

    def finish(self, ended_at: datetime) -> "RunLedger":
        return replace(self, ended_at=ended_at)

    def with_status(self, *statuses: CaseStatus) -> Tuple[CaseResult, ...]:
        return tuple(result for result in self.results if result.status in statuses)

    @property
    def converged(self) -> Tuple[CaseResult, ...]:
        return self.with_status(CaseStatus.CONVERGED)

    @property
    def not_converged(self) -> Tuple[CaseResult, ...]:
        """未收敛的工况，解析失败也计入此类。"""

        return self.with_status(CaseStatus.NOT_CONVERGED, CaseStatus.PARSE_ERROR)

    @property
    def failed(self) -> Tuple[CaseResult, ...]:
        return self.with_status(CaseStatus.FAILED)


class LedgerWriter:
    """以追加方式写台账文件，每条记录写完立即落盘。"""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def start(self, started_at: datetime) -> None:
        """覆盖旧台账，写入批次开始时间与表头。"""

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", newline="", encoding="utf-8") as fh:
            fh.write(f"Batch started: {started_at.strftime(TIMESTAMP_FORMAT)}\n")
            csv.writer(fh, lineterminator="\n").writerow(LEDGER_HEADER)
        LOGGER.debug("台账已创建: %s", self.path)

    def write(self, result: CaseResult) -> None:
        with self.path.open("a", newline="", encoding="utf-8") as fh:
            csv.writer(fh, lineterminator="\n").writerow(result.to_row())
            fh.flush()

    def finish(self, ended_at: datetime) -> None:
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(f"Batch ended: {ended_at.strftime(TIMESTAMP_FORMAT)}\n")


__all__ = ["CaseResult", "LEDGER_HEADER", "LEDGER_NAME", "LedgerWriter", "RunLedger"]
