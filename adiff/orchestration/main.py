from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Optional

from ..config import DiffConfig, RuntimeConfig
from ..errors import AdiffError
from ..pipelines.function_diff import FunctionDiffPipeline
from ..storage.models import FileDiffReport, FunctionDiff, PairFailure, TreeDiffReport
from ..storage.report_store import ReportStore

logger = logging.getLogger(__name__)

STARTED = "Processing functions in two files started"
FINISHED = "Processing functions in two files finished"


def render_function(diff: FunctionDiff, show_all: bool = False) -> Optional[str]:
    """One result line, or None when the result is not shown."""
    if diff.status == "changed":
        return f'Function "{diff.name}" is changed at lines ({diff.line_a}, {diff.line_b})'
    if diff.status == "deleted":
        return f'Function "{diff.name}" is deleted at line {diff.line_a}'
    if diff.status == "added":
        return f'Function "{diff.name}" is added at line {diff.line_b}'
    if show_all:
        return f'Function "{diff.name}" is the same'
    return None


def render_report(report: FileDiffReport, show_all: bool = False) -> list[str]:
    """Text output for one file pair, headers included."""
    lines = [STARTED]
    lines.extend(f"WARNING: {warning}" for warning in report.warnings)
    for diff in [*report.functions, report.residue]:
        line = render_function(diff, show_all)
        if line is not None:
            lines.append(line)
    lines.append(FINISHED)
    return lines


class AdiffOrchestrator:
    """
    Coordinates one comparison run.

    Responsibilities:
        * Compare a single pair of files, or every C source of two trees.
        * Print the text report for each pair.
        * Persist the structured report when a destination is configured.
    """

    def __init__(
        self,
        config: DiffConfig,
        runtime: Optional[RuntimeConfig] = None,
        pipeline: Optional[FunctionDiffPipeline] = None,
        store: Optional[ReportStore] = None,
        emit: Callable[[str], None] = print,
    ) -> None:
        self.config = config
        self.runtime = runtime or RuntimeConfig()
        self.pipeline = pipeline or FunctionDiffPipeline(config)
        if store is None and self.runtime.report_path is not None:
            store = ReportStore(self.runtime.report_path)
        self.store = store
        self.emit = emit

    def run_pair(self, path_a: str | Path, path_b: str | Path) -> FileDiffReport:
        """
        Compare two files and print the result.

        Raises:
            AdiffError: either file cannot be analyzed
        """
        report = self._compare(path_a, path_b)
        if self.store is not None:
            self.store.persist_pair(report)
        return report

    def run_tree(self, root_a: Path, root_b: Path) -> TreeDiffReport:
        """
        Compare every C source of two directory trees, pairing by relative path.

        A failing pair is reported and skipped; the walk continues.
        """
        tree = TreeDiffReport(root_a=str(root_a), root_b=str(root_b))
        for relative in self.collect_sources(root_a, root_b):
            path_a = root_a / relative
            path_b = root_b / relative
            self.emit(f"Comparing files {path_a} and {path_b}")
            try:
                tree.pairs.append(self._compare(path_a, path_b))
            except AdiffError as e:
                logger.debug(f"Pair {relative} failed: {e}")
                self.emit(f"ERROR: {e}")
                tree.failures.append(PairFailure(str(path_a), str(path_b), str(e)))

        if self.store is not None:
            self.store.persist_tree(tree)
        return tree

    def collect_sources(self, root_a: Path, root_b: Path) -> list[Path]:
        """Relative paths of the C sources found under either root, sorted."""
        found: set[Path] = set()
        for root in (root_a, root_b):
            for dirpath, _dirnames, filenames in os.walk(root):
                for name in filenames:
                    if self.runtime.is_source_file(name):
                        found.add((Path(dirpath) / name).relative_to(root))
        return sorted(found)

    def _compare(self, path_a: str | Path, path_b: str | Path) -> FileDiffReport:
        report = self.pipeline.execute(path_a, path_b)
        for line in render_report(report, self.config.show_all):
            self.emit(line)
        return report
