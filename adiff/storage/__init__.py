from .report_store import ReportStore
from .models import (
    DiffOutcome,
    FileDiffReport,
    FunctionDiff,
    PairFailure,
    TreeDiffReport,
)

__all__ = [
    "DiffOutcome",
    "FileDiffReport",
    "FunctionDiff",
    "PairFailure",
    "ReportStore",
    "TreeDiffReport",
]
