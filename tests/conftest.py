"""测试公共夹具：批次配置工厂、伪求解器调用器与伪 Fluent 可执行文件。"""

from __future__ import annotations

import io
import stat
import sys
import textwrap
from pathlib import Path

import pytest

from fluent_sweep.case.parameters import MeshSpec, RunConfig
from fluent_sweep.cfd.cfd import SolverRun
from fluent_sweep.pipeline import BatchConfig
from fluent_sweep.post.report import RunReporter

TEMPLATE_TEXT = "read MESH_FILE\nname MESH_NAME\nvelocity VALUE_VELOCITY\nre VALUE_RE\niterate VALUE_ITERS\n"


def _transcript_text(iteration: int, residual: str) -> str:
    return textwrap.dedent(
        f"""\
        Welcome to ANSYS Fluent
          iter  continuity  x-velocity  y-velocity  z-velocity     time/iter
             1  1.0000e+00  2.1000e-02  1.9000e-02  1.7000e-02  0:00:10  {iteration - 1}
        {iteration:>6}  {residual}  1.2000e-04  1.1000e-04  9.8000e-05  0:00:00    0
        Writing data file...
        """
    )


@pytest.fixture
def make_transcript():
    """生成一段包含迭代记录的 Fluent 控制台输出。"""

    return _transcript_text


@pytest.fixture
def run_config() -> RunConfig:
    return RunConfig(diameter=0.017638075, density=998.2, viscosity=0.001003, convergence_threshold=0.05)


@pytest.fixture
def make_batch(tmp_path, run_config):
    """构造批次配置，默认网格文件存在、模板已写好。"""

    def factory(reynolds=(50, 100), meshes=("vessel.msh.h5",), missing=(), **kwargs) -> BatchConfig:
        template = tmp_path / "template.jou"
        template.write_text(TEMPLATE_TEXT, encoding="utf-8")
        mesh_specs = []
        for name in meshes:
            path = tmp_path / name
            if name not in missing:
                path.write_text("mesh", encoding="utf-8")
            mesh_specs.append(MeshSpec(path))
        options = dict(
            run=run_config,
            meshes=tuple(mesh_specs),
            reynolds=tuple(float(re) for re in reynolds),
            template=template,
            work_dir=tmp_path,
            results_dir=tmp_path / "results",
        )
        options.update(kwargs)
        return BatchConfig(**options)

    return factory


class FakeInvoker:
    """按调用顺序返回预设结果，并写出对应的控制台日志。"""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.scripts = []

    def __call__(self, script, transcript, *, executable="fluent", cwd=None, console=None):
        self.scripts.append(Path(script))
        exit_code, text = self.outcomes.pop(0)
        transcript.write_text(text, encoding="utf-8")
        return SolverRun(exit_code=exit_code, elapsed_seconds=2.0, transcript=transcript)


@pytest.fixture
def fake_invoker():
    return FakeInvoker


@pytest.fixture
def quiet_reporter():
    return RunReporter(io.StringIO())


@pytest.fixture
def fake_fluent(tmp_path):
    """写出一个伪 Fluent 可执行脚本。

    脚本读取 ``-i`` 指定的 journal，从 ``re`` 行取雷诺数：Re=150 时以退出码 3 失败，
    Re<100 时输出收敛的残差，其余输出未收敛的残差。
    """

    if sys.platform.startswith("win"):
        pytest.skip("伪求解器依赖 shebang 脚本")

    script = tmp_path / "bin" / "fake_fluent"
    script.parent.mkdir()
    script.write_text(
        f"#!{sys.executable}\n"
        + textwrap.dedent(
            """\
            import sys

            journal = sys.argv[sys.argv.index("-i") + 1]
            values = dict(line.split(" ", 1) for line in open(journal).read().splitlines() if " " in line)
            re = float(values["re"])
            print("fake fluent " + " ".join(sys.argv[1:]))
            print("  iter  continuity  x-velocity")
            if re == 150:
                sys.stderr.write("Error: solver diverged\\n")
                sys.exit(3)
            print("     1  1.0000e+00  1.0e-02")
            residual = "2.3400e-02" if re < 100 else "1.2000e-01"
            print("   847  " + residual + "  1.0e-04")
            """
        ),
        encoding="utf-8",
    )
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script
