from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from .models import FileDiffReport, FunctionDiff, TreeDiffReport


class ReportStore:
    """Filesystem-backed persistence of diff reports as YAML."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def persist_pair(self, report: FileDiffReport) -> None:
        payload: dict[str, Any] = {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            **self._pair_payload(report),
        }
        self._write(payload)

    def persist_tree(self, report: TreeDiffReport) -> None:
        payload: dict[str, Any] = {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "root_a": report.root_a,
            "root_b": report.root_b,
            "pairs": [self._pair_payload(pair) for pair in report.pairs],
            "failures": [
                {"path_a": f.path_a, "path_b": f.path_b, "error": f.error}
                for f in report.failures
            ],
        }
        self._write(payload)

    def _write(self, payload: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as fp:
            yaml.safe_dump(payload, fp, sort_keys=False)

    @staticmethod
    def _function_payload(diff: FunctionDiff) -> dict[str, Any]:
        return {
            "name": diff.name,
            "status": diff.status,
            "offset_a": diff.offset_a,
            "offset_b": diff.offset_b,
            "line_a": diff.line_a,
            "line_b": diff.line_b,
        }

    def _pair_payload(self, report: FileDiffReport) -> dict[str, Any]:
        return {
            "path_a": report.path_a,
            "path_b": report.path_b,
            "differs": report.differs,
            "functions": [self._function_payload(f) for f in report.functions],
            "residue": self._function_payload(report.residue),
            "warnings": list(report.warnings),
        }
