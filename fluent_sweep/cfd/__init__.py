"""CFD 求解子模块。"""

from .cfd import SOLVER_FLAGS, SolverRun, build_command, run_solver, transcript_path
from .tee import TeeWriter

__all__ = [
    "SOLVER_FLAGS",
    "SolverRun",
    "TeeWriter",
    "build_command",
    "run_solver",
    "transcript_path",
]
