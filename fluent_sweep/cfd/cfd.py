"""Fluent 求解器调用模块

以批处理模式（三维双精度、无图形界面、固定线程数）启动 Fluent，读取生成的
journal 文件，把合并后的标准输出/错误实时写到控制台，同时原样保存到工况目录下的
``console.log``。求解器无法启动与求解器返回非零退出码在调用方看来是同一类失败。
"""

from __future__ import annotations

import logging
import subprocess
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, TextIO

from .tee import TeeWriter

LOGGER = logging.getLogger(__name__)

# 3ddp: 三维双精度; -g: 无 GUI; -t4: 4 线程; -i: 读取 journal
SOLVER_FLAGS = ("3ddp", "-g", "-t4")
TRANSCRIPT_NAME = "console.log"


@dataclass(frozen=True)
class SolverRun:
    """一次求解器调用的结果。"""

    exit_code: Optional[int]
    elapsed_seconds: float
    transcript: Path
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


def build_command(executable: str, script: Path) -> List[str]:
    return [str(executable), *SOLVER_FLAGS, "-i", str(script)]


def transcript_path(results_dir: Path, mesh_name: str, re_label: str) -> Path:
    """``results/<网格名>/Re<雷诺数>/console.log``。"""

    return Path(results_dir) / mesh_name / re_label / TRANSCRIPT_NAME


def run_solver(
    script: Path,
    transcript: Path,
    *,
    executable: str = "fluent",
    cwd: Optional[Path] = None,
    console: Optional[TextIO] = None,
) -> SolverRun:
    """运行 Fluent 并等待其结束，不设超时。

    参数:
        script: 工况 journal 文件。
        transcript: 控制台输出的保存路径，父目录会自动创建。
        executable: Fluent 可执行文件名或路径。
        cwd: 求解器工作目录，默认使用当前目录。
        console: 实时输出的目标流，默认 ``sys.stdout``。

    返回:
        :class:`SolverRun`，包含退出码（无法启动时为 ``None``）与耗时。
    """

    console = console if console is not None else sys.stdout
    transcript.parent.mkdir(parents=True, exist_ok=True)
    command = build_command(executable, script)
    LOGGER.debug("执行命令: %s", " ".join(command))

    with transcript.open("w", encoding="utf-8") as log_file:
        tee = TeeWriter(console, log_file)
        start_time = time.perf_counter()
        try:
            process = subprocess.Popen(
                command,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except OSError as exc:
            elapsed = time.perf_counter() - start_time
            message = f"无法启动求解器 {executable}: {exc}"
            LOGGER.error(message)
            tee.write(message + "\n")
            tee.flush()
            return SolverRun(exit_code=None, elapsed_seconds=elapsed, transcript=transcript, error=message)

        try:
            for line in process.stdout:  # type: ignore[union-attr]
                tee.write(line)
                tee.flush()
        finally:
            if process.stdout:
                process.stdout.close()
            exit_code = process.wait()
        elapsed = time.perf_counter() - start_time

    if exit_code != 0:
        LOGGER.warning("求解器退出码 %d，详见 %s", exit_code, transcript)
    return SolverRun(exit_code=exit_code, elapsed_seconds=elapsed, transcript=transcript)


__all__ = ["SOLVER_FLAGS", "SolverRun", "build_command", "run_solver", "transcript_path"]
