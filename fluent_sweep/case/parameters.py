"""工况参数推导模块

根据雷诺数与固定的流体/几何常数推导每个工况的入口速度与最大迭代步数。
本模块内的函数均为纯函数，不做任何 I/O，同样的输入永远得到同样的输出。
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Union

from ..utils.config import positive_float, require_section

# 网格文件可能带有的扩展名，按顺序剥离
MESH_SUFFIXES = (".msh.h5", ".msh")

# (雷诺数上限, 迭代步数)，超过最后一个上限时使用 DEFAULT_MAX_ITERATIONS
ITERATION_STEPS = (
    (500, 1000),
    (1000, 1500),
    (1500, 2000),
)
DEFAULT_MAX_ITERATIONS = 2500


@dataclass(frozen=True)
class RunConfig:
    """整个批次共享的物理常数与收敛判据，批次运行期间保持不变。"""

    diameter: float
    density: float
    viscosity: float
    convergence_threshold: float

    @property
    def kinematic_viscosity(self) -> float:
        """运动粘度 = 动力粘度 / 密度。"""

        return kinematic_viscosity(self.viscosity, self.density)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunConfig":
        fluid = require_section(data, "fluid")
        convergence = require_section(data, "convergence")
        return cls(
            diameter=positive_float(fluid, "diameter"),
            density=positive_float(fluid, "density"),
            viscosity=positive_float(fluid, "viscosity"),
            convergence_threshold=positive_float(convergence, "threshold"),
        )


@dataclass(frozen=True)
class MeshSpec:
    """一个网格输入文件。"""

    path: Path

    @property
    def name(self) -> str:
        """去掉已知网格扩展名后的文件名，用于目录与文件命名。"""

        name = self.path.name
        for suffix in MESH_SUFFIXES:
            if name.endswith(suffix):
                name = name[: -len(suffix)]
        return name

    def exists(self) -> bool:
        return self.path.is_file()


@dataclass(frozen=True)
class CaseSpec:
    """单个 (网格, 雷诺数) 工况及其推导参数。"""

    mesh: MeshSpec
    reynolds: float
    velocity: float
    max_iterations: int

    @property
    def re_label(self) -> str:
        return f"Re{format_reynolds(self.reynolds)}"

    @property
    def case_id(self) -> str:
        """形如 ``<网格名>_Re<雷诺数>`` 的工况标识。"""

        return f"{self.mesh.name}_{self.re_label}"


def format_reynolds(reynolds: Union[int, float]) -> str:
    """整数雷诺数不带小数点输出，例如 ``50`` 而不是 ``50.0``。"""

    value = float(reynolds)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def kinematic_viscosity(viscosity: float, density: float) -> float:
    return viscosity / density


def velocity(reynolds: float, kinematic_visc: float, diameter: float) -> float:
    """由雷诺数定义反解入口速度: U = Re * nu / D。"""

    return reynolds * kinematic_visc / diameter


def iteration_budget(reynolds: float) -> int:
    """按雷诺数分段给出最大迭代步数，雷诺数越高分配的迭代越多。"""

    for upper, iterations in ITERATION_STEPS:
        if reynolds <= upper:
            return iterations
    return DEFAULT_MAX_ITERATIONS


def derive_case(run_config: RunConfig, mesh: MeshSpec, reynolds: Union[int, float]) -> CaseSpec:
    """为一个网格与雷诺数组合生成完整的工况描述。"""

    return CaseSpec(
        mesh=mesh,
        reynolds=reynolds,
        velocity=velocity(reynolds, run_config.kinematic_viscosity, run_config.diameter),
        max_iterations=iteration_budget(reynolds),
    )
