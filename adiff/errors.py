"""
Error types raised by the analysis stages.

Scanner-level helpers raise; the caller that owns the scope decides whether
the failure drops a single branch choice or aborts the whole run.
"""

from __future__ import annotations


class AdiffError(Exception):
    """Base class for every failure reported by adiff."""


class MalformedInputError(AdiffError):
    """The source text cannot be given a defined structure."""


class UnterminatedCommentError(MalformedInputError):
    def __init__(self, line: int) -> None:
        super().__init__(f"No matching closing comment for comment opened at line {line}")
        self.line = line


class UnbalancedBracketError(MalformedInputError):
    """A bracket pair has no match before the end of input."""

    def __init__(self, opening: str, line: int, detail: str = "") -> None:
        message = f"Cannot find token matching '{opening}' opened at line {line}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.opening = opening
        self.line = line


class DirectiveNestingError(MalformedInputError):
    """#else/#endif without #if, or #if without #endif."""

    def __init__(self, message: str, line: int) -> None:
        super().__init__(f"{message} at line {line}")
        self.line = line


class ExtractionError(AdiffError):
    """No branch choice produced a usable function set."""


class MissingBodyError(MalformedInputError):
    """A call-like ``name(...)`` is followed by neither ``;`` nor a body."""

    def __init__(self, name: str, line: int) -> None:
        super().__init__(f"Cannot find function body for '{name}' at line {line}")
        self.name = name
        self.line = line
