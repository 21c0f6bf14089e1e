"""批量工况编排：网格 × 雷诺数 双层扫描。

外层遍历网格、内层遍历雷诺数，每个工况依次执行：推导参数 → 生成 journal →
调用 Fluent → 判定收敛 → 写入台账。单个工况失败不会中断批次；只有结果目录无法
创建、配置错误或模板缺失这类批次级问题才会抛出异常。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TextIO, Tuple

from .case.journal import load_template, write_case_script
from .case.parameters import CaseSpec, MeshSpec, RunConfig, derive_case
from .cfd.cfd import SolverRun, run_solver, transcript_path
from .ledger import LEDGER_NAME, CaseResult, LedgerWriter, RunLedger
from .post.convergence import CaseStatus, classify_transcript, parse_iteration_records
from .post.plotting import PLOT_NAME, plot_residual_history
from .post.report import RunReporter
from .utils.config import (
    ConfigError,
    ensure_directory,
    load_config,
    optional_section,
    path_value,
    resolve_path,
)

LOGGER = logging.getLogger(__name__)

CONFIG_PATH = Path(__file__).resolve().parent / "config.yaml"

Invoker = Callable[..., SolverRun]


@dataclass(frozen=True)
class BatchConfig:
    """一次批处理的全部配置，启动时构造一次并传给各环节。"""

    run: RunConfig
    meshes: Tuple[MeshSpec, ...]
    reynolds: Tuple[float, ...]
    template: Path
    work_dir: Path
    results_dir: Path
    solver_executable: str = "fluent"
    cleanup_journals: bool = False
    plot_residuals: bool = False

    @property
    def ledger_path(self) -> Path:
        return self.results_dir / LEDGER_NAME

    @property
    def total_cases(self) -> int:
        return len(self.meshes) * len(self.reynolds)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Path) -> "BatchConfig":
        project = optional_section(data, "project")
        solver = optional_section(data, "solver")
        post = optional_section(data, "post")

        work_dir = resolve_path(base_dir, path_value(project, "work_dir", "."))
        return cls(
            run=RunConfig.from_dict(data),
            meshes=tuple(MeshSpec(resolve_path(base_dir, _mesh_value(mesh))) for mesh in _require_list(data, "meshes")),
            reynolds=tuple(_reynolds_value(value) for value in _require_list(data, "reynolds")),
            template=resolve_path(base_dir, path_value(project, "template", "bifurcation_template.jou")),
            work_dir=work_dir,
            results_dir=resolve_path(work_dir, path_value(project, "results_dir", "results")),
            solver_executable=path_value(solver, "executable", "fluent"),
            cleanup_journals=bool(project.get("cleanup_journals", False)),
            plot_residuals=bool(post.get("plot_residuals", False)),
        )

    @classmethod
    def load(cls, config_path: Path = CONFIG_PATH) -> "BatchConfig":
        data, base_dir = load_config(config_path)
        return cls.from_dict(data, base_dir)


def _require_list(data: Dict[str, Any], key: str) -> list:
    values = data.get(key)
    if not isinstance(values, list) or not values:
        raise ConfigError(f"配置项 '{key}' 必须是非空列表")
    return values


def _mesh_value(value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise ConfigError(f"网格路径必须是非空字符串: {value!r}")
    return value


def _reynolds_value(value: Any) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"雷诺数不是合法数值: {value!r}")
    try:
        reynolds = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"雷诺数不是合法数值: {value!r}") from exc
    if reynolds < 0:
        raise ConfigError(f"雷诺数不能为负: {reynolds}")
    return reynolds


def _plot_residuals(config: BatchConfig, case: CaseSpec, transcript: Path) -> None:
    try:
        records = parse_iteration_records(transcript.read_text(encoding="utf-8", errors="replace"))
        plot_residual_history(
            records,
            transcript.parent / PLOT_NAME,
            threshold=config.run.convergence_threshold,
            title=case.case_id,
        )
    except Exception as exc:  # noqa: BLE001 - 绘图失败不影响工况状态
        LOGGER.warning("工况 %s 的残差曲线绘制失败: %s", case.case_id, exc)


def run_case(
    config: BatchConfig,
    case: CaseSpec,
    template: str,
    *,
    invoker: Invoker = run_solver,
    console: Optional[TextIO] = None,
) -> CaseResult:
    """执行单个工况并返回结果，任何工况级失败都记为 FAILED 而不是抛出。"""

    transcript = transcript_path(config.results_dir, case.mesh.name, case.re_label)
    ensure_directory(transcript.parent)

    try:
        script = write_case_script(template, case, config.work_dir, case.mesh.path.as_posix())
    except OSError as exc:
        LOGGER.error("工况 %s 的 journal 写出失败: %s", case.case_id, exc)
        return CaseResult(case, CaseStatus.FAILED, None, None, 0.0, transcript)

    solver_run = invoker(
        script,
        transcript,
        executable=config.solver_executable,
        cwd=config.work_dir,
        console=console,
    )

    if not solver_run.succeeded:
        result = CaseResult(case, CaseStatus.FAILED, None, None, solver_run.elapsed_seconds, transcript)
    else:
        classification = classify_transcript(
            transcript, config.run.convergence_threshold, case.max_iterations
        )
        result = CaseResult(
            case,
            classification.status,
            classification.actual_iterations,
            classification.final_residual,
            solver_run.elapsed_seconds,
            transcript,
        )
        if config.plot_residuals:
            _plot_residuals(config, case, transcript)

    if config.cleanup_journals:
        try:
            script.unlink(missing_ok=True)
        except OSError as exc:
            LOGGER.warning("工况 %s 的 journal 删除失败: %s", case.case_id, exc)
    return result


def run_sweep(
    config: BatchConfig,
    *,
    invoker: Invoker = run_solver,
    reporter: Optional[RunReporter] = None,
    console: Optional[TextIO] = None,
) -> RunLedger:
    """按网格优先、雷诺数其次的顺序串行执行全部工况，返回完整台账。"""

    reporter = reporter or RunReporter()
    ensure_directory(config.results_dir)
    template = load_template(config.template)

    writer = LedgerWriter(config.ledger_path)
    ledger = RunLedger(started_at=datetime.now())
    writer.start(ledger.started_at)
    reporter.batch_started(config.run, config.reynolds, len(config.meshes))

    total = config.total_cases
    index = 0
    skipped_meshes = 0
    for mesh in config.meshes:
        reporter.mesh_started(mesh)
        if not mesh.exists():
            LOGGER.warning("网格文件不存在，跳过: %s", mesh.path)
            reporter.mesh_skipped(mesh)
            skipped_meshes += 1
            continue

        for reynolds in config.reynolds:
            index += 1
            case = derive_case(config.run, mesh, reynolds)
            reporter.case_started(index, total, case)
            result = run_case(config, case, template, invoker=invoker, console=console)
            ledger = ledger.append(result)
            writer.write(result)
            reporter.case_finished(result)

    ledger = ledger.finish(datetime.now())
    writer.finish(ledger.ended_at)
    reporter.batch_finished(ledger, skipped_meshes, config.ledger_path)
    return ledger


__all__ = ["BatchConfig", "CONFIG_PATH", "run_case", "run_sweep"]
