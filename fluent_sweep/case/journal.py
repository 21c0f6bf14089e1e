"""Fluent 日志 (journal) 文件生成模块。

模板中的占位符会被替换为工况参数：

- ``MESH_FILE``: 网格文件路径
- ``MESH_NAME``: 网格名（去掉扩展名）
- ``VALUE_VELOCITY``: 入口速度
- ``VALUE_RE``: 雷诺数
- ``VALUE_ITERS``: 最大迭代步数
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, Optional

from .parameters import CaseSpec, format_reynolds

LOGGER = logging.getLogger(__name__)

PLACEHOLDERS = ("MESH_FILE", "MESH_NAME", "VALUE_VELOCITY", "VALUE_RE", "VALUE_ITERS")

# 占位符前后不能紧邻大写字母，避免 VALUE_RE 命中 VALUE_REF 之类的无关标识
_PLACEHOLDER_RE = re.compile(
    r"(?<![A-Z])(" + "|".join(sorted(PLACEHOLDERS, key=len, reverse=True)) + r")(?![A-Z])"
)


class TemplateMissing(FileNotFoundError):
    """模板文件不存在或无法读取。"""


def load_template(path: Path) -> str:
    """读取 journal 模板文本。"""

    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise TemplateMissing(f"无法读取 journal 模板: {path}") from exc


def journal_path(case: CaseSpec, work_dir: Path) -> Path:
    return Path(work_dir) / f"run_{case.case_id}.jou"


def placeholder_values(case: CaseSpec, mesh_file: Optional[str] = None) -> Dict[str, str]:
    """工况参数到占位符文本的映射。"""

    return {
        "MESH_FILE": mesh_file if mesh_file is not None else case.mesh.path.as_posix(),
        "MESH_NAME": case.mesh.name,
        "VALUE_VELOCITY": repr(case.velocity),
        "VALUE_RE": format_reynolds(case.reynolds),
        "VALUE_ITERS": str(case.max_iterations),
    }


def render_journal(template: str, case: CaseSpec, mesh_file: Optional[str] = None) -> str:
    """单次扫描替换全部占位符，替换后的内容不会被再次扫描。"""

    values = placeholder_values(case, mesh_file)
    return _PLACEHOLDER_RE.sub(lambda match: values[match.group(1)], template)


def write_case_script(
    template: str,
    case: CaseSpec,
    work_dir: Path,
    mesh_file: Optional[str] = None,
) -> Path:
    """写出工况 journal 文件，同名文件直接覆盖。"""

    output = journal_path(case, work_dir)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(render_journal(template, case, mesh_file), encoding="utf-8")
    LOGGER.debug("已生成 journal: %s", output)
    return output
