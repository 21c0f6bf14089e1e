"""收敛判定与结果汇总子模块。"""

from .convergence import (
    CaseStatus,
    Classification,
    IterationRecord,
    classify_transcript,
    parse_iteration_records,
    parse_last_iteration_record,
)

__all__ = [
    "CaseStatus",
    "Classification",
    "IterationRecord",
    "classify_transcript",
    "parse_iteration_records",
    "parse_last_iteration_record",
]
