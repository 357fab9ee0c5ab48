from .differ import (
    DiffView,
    RESIDUE_NAME,
    compare_pair,
    compare_regions,
    diff_functions,
    diff_residue,
)

__all__ = [
    "DiffView",
    "RESIDUE_NAME",
    "compare_pair",
    "compare_regions",
    "diff_functions",
    "diff_residue",
]
