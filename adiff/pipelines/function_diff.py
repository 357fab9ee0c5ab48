from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..analysis.c_parser import CParser
from ..config import DiffConfig
from ..storage.models import FileDiffReport
from ..tools.differ import diff_functions, diff_residue

logger = logging.getLogger(__name__)


class FunctionDiffPipeline:
    """Extracts the functions of two files and compares them."""

    def __init__(self, config: DiffConfig, parser: Optional[CParser] = None) -> None:
        self.config = config
        self.parser = parser or CParser(config)

    def execute(self, path_a: str | Path, path_b: str | Path) -> FileDiffReport:
        parsed_a = self.parser.parse_file(path_a)
        parsed_b = self.parser.parse_file(path_b)

        functions = diff_functions(
            parsed_a, parsed_b, nested_comments=self.config.nested_comments
        )
        residue = diff_residue(
            parsed_a, parsed_b, nested_comments=self.config.nested_comments
        )
        logger.debug(
            f"{path_a} vs {path_b}: {len(functions)} function result(s), "
            f"residue {residue.status}"
        )

        return FileDiffReport(
            path_a=str(path_a),
            path_b=str(path_b),
            functions=functions,
            residue=residue,
            warnings=[*parsed_a.warnings, *parsed_b.warnings],
        )
