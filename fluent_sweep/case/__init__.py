"""工况参数推导与 journal 生成子模块。"""

from .journal import TemplateMissing, load_template, render_journal, write_case_script
from .parameters import CaseSpec, MeshSpec, RunConfig, derive_case, iteration_budget, velocity

__all__ = [
    "CaseSpec",
    "MeshSpec",
    "RunConfig",
    "TemplateMissing",
    "derive_case",
    "iteration_budget",
    "load_template",
    "render_journal",
    "velocity",
    "write_case_script",
]
