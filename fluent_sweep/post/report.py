"""批处理过程的控制台播报与最终汇总。"""

from __future__ import annotations

import io
import sys
from pathlib import Path
from typing import Optional, Sequence, TextIO

import pandas as pd

from ..case.parameters import CaseSpec, MeshSpec, RunConfig, format_reynolds
from ..ledger import CaseResult, RunLedger
from .convergence import CaseStatus

BANNER = "=" * 42
RULE = "─" * 40
BATCH_MARKERS = ("Batch started:", "Batch ended:")


class RunReporter:
    """把批次进度逐行打印到控制台。"""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream = stream if stream is not None else sys.stdout

    def _print(self, text: str = "") -> None:
        print(text, file=self.stream)

    def batch_started(self, run_config: RunConfig, reynolds: Sequence[float], mesh_count: int) -> None:
        self._print(BANNER)
        self._print("   FLUENT 多网格雷诺数批量计算")
        self._print(BANNER)
        self._print(f"水力直径:   {run_config.diameter} m")
        self._print(f"密度:       {run_config.density} kg/m³")
        self._print(f"动力粘度:   {run_config.viscosity} Pa·s")
        self._print(f"运动粘度:   {run_config.kinematic_viscosity} m²/s")
        self._print(f"雷诺数列表: {' '.join(format_reynolds(re) for re in reynolds)}")
        self._print(f"收敛阈值:   {run_config.convergence_threshold}")
        self._print(f"网格数量:   {mesh_count}")
        self._print(BANNER)

    def mesh_started(self, mesh: MeshSpec) -> None:
        self._print()
        self._print("#" * 44)
        self._print(f"  网格: {mesh.name}")
        self._print("#" * 44)

    def mesh_skipped(self, mesh: MeshSpec) -> None:
        self._print(f"  ✗ 网格文件不存在: '{mesh.path}'，跳过该网格的全部工况")

    def case_started(self, index: int, total: int, case: CaseSpec) -> None:
        self._print(RULE)
        self._print(f"[{index}/{total}] {case.mesh.name} | Re = {format_reynolds(case.reynolds)}")
        self._print(f"  入口速度:   {case.velocity!r} m/s")
        self._print(f"  最大迭代:   {case.max_iterations}")
        self._print(RULE)

    def case_finished(self, result: CaseResult) -> None:
        elapsed = f"{result.elapsed_seconds:.0f}s"
        if result.status is CaseStatus.CONVERGED:
            self._print(f"  ✓ 已收敛，迭代 {result.actual_iterations} 步 ({elapsed})")
        elif result.status is CaseStatus.FAILED:
            self._print(f"  ✗ 计算失败 (请检查 {result.transcript})")
        elif result.status is CaseStatus.PARSE_ERROR:
            self._print(f"  ⚠ 未能从日志解析迭代记录 (请检查 {result.transcript})")
        else:
            self._print(
                f"  ⚠ 未收敛，迭代 {result.actual_iterations} 步 (残差: {result.final_residual!r})"
            )

    def batch_finished(self, ledger: RunLedger, skipped_meshes: int = 0, ledger_path: Optional[Path] = None) -> None:
        print_summary(
            self.stream,
            total=len(ledger.results),
            converged=len(ledger.converged),
            not_converged=[result.case.case_id for result in ledger.not_converged],
            failed=[result.case.case_id for result in ledger.failed],
            skipped_meshes=skipped_meshes,
            ledger_path=ledger_path,
        )


def print_summary(
    stream: TextIO,
    *,
    total: int,
    converged: int,
    not_converged: Sequence[str],
    failed: Sequence[str],
    skipped_meshes: int = 0,
    ledger_path: Optional[Path] = None,
) -> None:
    """打印批次汇总及需要关注的工况列表。"""

    lines = [
        "",
        BANNER,
        "           批量计算完成",
        BANNER,
        f"工况总数:   {total}",
        f"已收敛:     {converged}",
        f"未收敛:     {len(not_converged)}",
        f"失败:       {len(failed)}",
    ]
    if skipped_meshes:
        lines.append(f"跳过网格:   {skipped_meshes}")

    if not_converged:
        lines.extend(["", "⚠ 需要关注的工况 (未收敛):"])
        lines.extend(f"  {case_id}" for case_id in not_converged)

    if failed:
        lines.extend(["", "✗ 失败工况:"])
        lines.extend(f"  {case_id}" for case_id in failed)

    if ledger_path is not None:
        lines.extend(["", f"结果目录: {ledger_path.parent}", f"汇总台账: {ledger_path}"])

    print("\n".join(lines), file=stream)


def load_ledger(ledger_path: Path) -> pd.DataFrame:
    """读取 ``batch_summary.log``，忽略批次起止时间行，所有字段保留为字符串。"""

    with Path(ledger_path).open("r", encoding="utf-8") as fh:
        rows = [line for line in fh if not line.startswith(BATCH_MARKERS)]
    return pd.read_csv(io.StringIO("".join(rows)), dtype=str, keep_default_na=False)


def summarize_ledger_file(ledger_path: Path, stream: Optional[TextIO] = None) -> pd.DataFrame:
    """根据已有台账重新输出汇总，批次被中断时也可用于查看进度。"""

    df = load_ledger(ledger_path)
    case_ids = df["Mesh"] + "_Re" + df["Re"]
    not_converged_mask = df["Status"].isin([CaseStatus.NOT_CONVERGED.value, CaseStatus.PARSE_ERROR.value])
    failed_mask = df["Status"] == CaseStatus.FAILED.value

    print_summary(
        stream if stream is not None else sys.stdout,
        total=int(df.shape[0]),
        converged=int((df["Status"] == CaseStatus.CONVERGED.value).sum()),
        not_converged=case_ids[not_converged_mask].tolist(),
        failed=case_ids[failed_mask].tolist(),
        ledger_path=Path(ledger_path),
    )
    return df


__all__ = ["RunReporter", "load_ledger", "print_summary", "summarize_ledger_file"]
