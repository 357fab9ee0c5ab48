"""
Function boundary extraction for C source files.

Finds named function definitions with token and bracket heuristics rather
than a grammar. Conditional-compilation branches are not evaluated: the file
is analyzed once per branch choice (see ``directives``) and each function's
extents are merged across every choice that produced it, so the reported
footprint does not depend on which branches a build would take.
"""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import Optional, Sequence

from ..config import DiffConfig
from ..errors import AdiffError, ExtractionError, MalformedInputError, MissingBodyError
from .brackets import find_token, match_bracket
from .data import ChoiceFailure, FunctionEntry, ParsedFile, SourceBuffer, blank_spans
from .directives import analyze_directives
from .literals import find_comments_and_literals
from .scanner import Data, Token, next_token

logger = logging.getLogger(__name__)


class CParser:
    """
    Extracts function extents from C source files.

    Usage:
        parser = CParser(DiffConfig(body_only=True))
        parsed = parser.parse_file("old/net.c")
        for warning in parsed.warnings:
            print(f"WARNING: {warning}")
        for func in parsed.functions:
            print(func.name, func.begin, func.end)
    """

    def __init__(self, config: Optional[DiffConfig] = None) -> None:
        self.config = config or DiffConfig()

    def parse_file(self, file_path: str | Path, source: Optional[bytes] = None) -> ParsedFile:
        """
        Read a file (unless ``source`` is given) and extract its functions.

        A missing file is analyzed as empty input and reported as a warning.

        Raises:
            AdiffError: the file exists but cannot be read
            MalformedInputError: unterminated comment or broken directive
                nesting
            ExtractionError: no branch choice could be parsed
        """
        path_str = str(file_path)
        warnings: list[str] = []
        if source is None:
            try:
                source = Path(file_path).read_bytes()
            except FileNotFoundError:
                warnings.append(f"File {path_str} is missing, treating it as empty")
                source = b""
            except OSError as e:
                raise AdiffError(f"Error reading file {path_str}: {e}") from e

        parsed = self.parse_source(path_str, source)
        parsed.warnings[:0] = warnings
        return parsed

    def parse_source(self, path: str, source: bytes) -> ParsedFile:
        """Extract functions from in-memory source bytes."""
        buffer = SourceBuffer(source)
        buffer.blank(
            find_comments_and_literals(
                buffer.original,
                literals=True,
                comments=True,
                escapes=True,
                nested_comments=self.config.nested_comments,
            )
        )
        layout = analyze_directives(buffer.working, buffer.original, buffer.lines)
        buffer.blank(layout.items)

        total = layout.choice_count
        limit = min(total, self.config.choice_limit)
        parsed = ParsedFile(path=path, buffer=buffer, choices_total=total, choices_evaluated=limit)
        parsed.branch_directives = [item.range for item in layout.items if item.kind.is_branching]
        if total > limit:
            parsed.warnings.append(
                f"search space for directives in {path} is too large "
                f"(number of choices = {total}), reducing it to {limit}: "
                f"RESULTS CAN BE INCORRECT"
            )

        per_choice: list[list[FunctionEntry]] = []
        for choice in range(limit):
            unselected = layout.unselected(choice)
            scratch = buffer.scratch()
            blank_spans(scratch, unselected)
            try:
                per_choice.append(self._extract(scratch, buffer))
                parsed.choice_spans.append(unselected)
            except MalformedInputError as e:
                logger.debug(f"Parse error in branch choice {choice} of {path}: {e}")
                parsed.choice_failures.append(ChoiceFailure(choice, str(e)))

        if not per_choice:
            raise ExtractionError(parsed.choice_failures[-1].message)

        parsed.functions = merge_function_sets(per_choice)

        duplicates = find_duplicate_names(per_choice)
        if duplicates:
            parsed.warnings.append(
                f"duplicate function names found in {path} "
                f"({', '.join(duplicates)}): RESULTS CAN BE INCORRECT"
            )
        overlaps = find_overlaps(parsed.functions)
        if overlaps:
            pairs = ", ".join(f"{a.name}/{b.name}" for a, b in overlaps)
            parsed.warnings.append(
                f"function declarations overlapped in {path} ({pairs}): "
                f"RESULTS can show more changed functions than necessary"
            )

        logger.debug(
            f"{path}: {parsed.function_count} function(s) from "
            f"{len(per_choice)}/{limit} branch choice(s)"
        )
        return parsed

    def _extract(self, data: bytearray, buffer: SourceBuffer) -> list[FunctionEntry]:
        """Extract functions from one scratch copy, in source order."""
        functions: list[FunctionEntry] = []
        index = 0
        prev_end = -1
        while True:
            found = self._next_function(data, buffer, index, prev_end)
            if found is None:
                return functions
            func, index = found
            logger.debug(
                f"Found function '{func.name}' in lines "
                f"{buffer.line_of(func.begin)} ... {buffer.line_of(func.end)}"
            )
            functions.append(func)
            prev_end = func.end

    def _next_function(
        self, data: Data, buffer: SourceBuffer, index: int, prev_end: int
    ) -> Optional[tuple[FunctionEntry, int]]:
        """
        Scan from ``index`` for the next ``IDENT ( ... ) ... { ... }``.

        Returns:
            The function and the offset to resume scanning from, or None when
            the input holds no further function
        """
        previous: Optional[Token] = None
        while True:
            token = next_token(data, index)
            if token is None:
                return None
            index = token.end + 1

            if token.text == b"(":
                close = match_bracket(data, token.begin, b"(", b")")
                index = close + 1
                if previous is None or not previous.is_identifier:
                    previous = Token(close, close, b")")
                    continue

                after = next_token(data, index)
                name = previous.text.decode("utf-8", errors="replace")
                if after is not None and after.text in (b";", b","):
                    # Prototype or call, not a definition
                    previous = after
                    index = after.end + 1
                    continue

                body = find_token(data, index, b"{")
                if body is None:
                    raise MissingBodyError(name, buffer.line_of(previous.begin))

                begin = body if self.config.body_only else self._declaration_start(
                    data, token.begin, prev_end
                )
                end = match_bracket(data, body, b"{", b"}")
                return FunctionEntry(name, begin, end), end + 1

            if token.text == b"[":
                close = match_bracket(data, token.begin, b"[", b"]")
                index = close + 1
                previous = Token(close, close, b"]")
                continue

            if token.text == b"{":
                close = match_bracket(data, token.begin, b"{", b"}")
                index = close + 1
                previous = Token(close, close, b"}")
                continue

            previous = token

    @staticmethod
    def _declaration_start(data: Data, paren: int, prev_end: int) -> int:
        """First token after the nearest ';' between the previous function and the name."""
        semicolon = data.rfind(b";", prev_end + 1, paren)
        start = semicolon + 1 if semicolon >= 0 else prev_end + 1
        first = next_token(data, start)
        # The name itself lies between start and paren, so a token always exists
        return first.begin if first is not None else paren


def merge_function_sets(per_choice: Sequence[Sequence[FunctionEntry]]) -> list[FunctionEntry]:
    """
    Union each function's extents across branch choices.

    For every distinct name the merged begin is the minimum of all begins and
    the merged end the maximum of all ends. Order is first discovery.
    """
    merged: dict[str, FunctionEntry] = {}
    for functions in per_choice:
        for func in functions:
            current = merged.get(func.name)
            if current is None:
                merged[func.name] = FunctionEntry(func.name, func.begin, func.end)
            else:
                current.begin = min(current.begin, func.begin)
                current.end = max(current.end, func.end)
    return list(merged.values())


def find_duplicate_names(per_choice: Sequence[Sequence[FunctionEntry]]) -> list[str]:
    """Names defined more than once within a single branch choice."""
    duplicates: dict[str, None] = {}
    for functions in per_choice:
        counts = Counter(func.name for func in functions)
        for name, count in counts.items():
            if count > 1:
                duplicates[name] = None
    return list(duplicates)


def find_overlaps(functions: Sequence[FunctionEntry]) -> list[tuple[FunctionEntry, FunctionEntry]]:
    """Pairs of distinct functions whose ranges intersect."""
    overlaps: list[tuple[FunctionEntry, FunctionEntry]] = []
    for i, first in enumerate(functions):
        for second in functions[i + 1:]:
            if first.overlaps(second) or second.overlaps(first):
                overlaps.append((first, second))
    return overlaps


# Module-level convenience function
def parse_c_file(
    file_path: str | Path,
    source: Optional[bytes] = None,
    config: Optional[DiffConfig] = None,
) -> ParsedFile:
    """
    Parse a C source file and extract all functions.

    Example:
        >>> source = b"#if 1\nint g(){return 1;}\n#else\nint g(){return 2;}\n#endif"
        >>> parsed = parse_c_file("g.c", source=source)
        >>> for func in parsed.functions:
        ...     print(func.name, func.begin, func.end, parsed.buffer.line_of(func.begin))
        g 6 48 2
    """
    return CParser(config).parse_file(file_path, source)
