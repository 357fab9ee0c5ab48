from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional, Sequence

DiffStatus = Literal["unchanged", "changed", "deleted", "added"]


@dataclass(frozen=True)
class DiffOutcome:
    """Result of comparing two regions: same, or the first divergence."""

    changed: bool
    offset_a: Optional[int] = None  # First divergence in file A
    offset_b: Optional[int] = None  # First divergence in file B

    @classmethod
    def same(cls) -> "DiffOutcome":
        return cls(changed=False)

    @classmethod
    def diverged(cls, offset_a: int, offset_b: int) -> "DiffOutcome":
        return cls(changed=True, offset_a=offset_a, offset_b=offset_b)


@dataclass()
class FunctionDiff:
    """Normalized per-function result of a file pair comparison."""

    name: str
    status: DiffStatus
    offset_a: Optional[int] = None
    offset_b: Optional[int] = None
    line_a: Optional[int] = None  # 1-based
    line_b: Optional[int] = None  # 1-based


@dataclass()
class FileDiffReport:
    """Everything reported for one pair of files."""

    path_a: str
    path_b: str
    functions: Sequence[FunctionDiff]
    residue: FunctionDiff  # Code outside every function, as one pseudo-function
    warnings: Sequence[str] = ()

    @property
    def differs(self) -> bool:
        return self.residue.status != "unchanged" or any(
            f.status != "unchanged" for f in self.functions
        )


@dataclass()
class PairFailure:
    """A file pair whose analysis aborted."""

    path_a: str
    path_b: str
    error: str


@dataclass()
class TreeDiffReport:
    """Aggregate of a directory comparison."""

    root_a: str
    root_b: str
    pairs: list[FileDiffReport] = field(default_factory=list)
    failures: list[PairFailure] = field(default_factory=list)
