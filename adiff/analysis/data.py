"""
Data structures for function-level source comparison.

A file is held as a SourceBuffer: the original bytes plus a same-length
working copy. Recognized spans (comments, literals, directives, unselected
branches) are blanked to spaces in the working copy, never removed, so every
offset computed against one copy is valid in the other.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

import numpy as np

NEWLINE = ord("\n")
BLANK = ord(" ")


@dataclass(frozen=True)
class SourceRange:
    """
    An inclusive byte range within a source buffer.

    ``end < begin`` denotes an empty range (e.g. the whole of an empty file).
    """
    begin: int
    end: int

    @property
    def length(self) -> int:
        return max(0, self.end - self.begin + 1)

    @property
    def is_empty(self) -> bool:
        return self.end < self.begin

    def contains(self, other: Union["SourceRange", "Item"]) -> bool:
        """True if ``other`` lies entirely inside this range."""
        return self.begin <= other.begin and other.end <= self.end

    def slice(self, source: Union[bytes, bytearray]) -> bytes:
        """Extract the content from source using this range."""
        return bytes(source[self.begin:self.end + 1])


class ItemKind(enum.Enum):
    """Classification of a span of source text."""

    DIRECTIVE_IF = "directive-if"
    DIRECTIVE_ELSE = "directive-else"
    DIRECTIVE_ENDIF = "directive-endif"
    DIRECTIVE_OTHER = "directive-other"
    STRING = "string-literal"
    CHAR = "char-literal"
    COMMENT = "comment"
    ESCAPE = "escape-sequence"
    PLAIN = "plain"

    @property
    def is_literal(self) -> bool:
        return self in (ItemKind.STRING, ItemKind.CHAR)

    @property
    def is_branching(self) -> bool:
        return self in (
            ItemKind.DIRECTIVE_IF,
            ItemKind.DIRECTIVE_ELSE,
            ItemKind.DIRECTIVE_ENDIF,
        )


@dataclass(frozen=True)
class Item:
    """A classified span ``[begin, end]`` (inclusive) of source text."""
    begin: int
    end: int
    kind: ItemKind

    @property
    def range(self) -> SourceRange:
        return SourceRange(self.begin, self.end)

    @property
    def length(self) -> int:
        return self.end - self.begin + 1


@dataclass
class FunctionEntry:
    """
    A function found in a file.

    Attributes:
        name: Function name as written in the source
        begin: Offset of the first byte of the declaration (or of the body's
               opening brace in body-only mode)
        end: Offset of the body's closing brace
    """
    name: str
    begin: int
    end: int

    @property
    def range(self) -> SourceRange:
        return SourceRange(self.begin, self.end)

    def overlaps(self, other: "FunctionEntry") -> bool:
        """True if either end of this function falls inside ``other``."""
        return (
            other.begin <= self.begin <= other.end
            or other.begin <= self.end <= other.end
        )


@dataclass(frozen=True)
class ChoiceFailure:
    """A branch choice whose extraction was dropped."""
    choice: int
    message: str


class LineIndex:
    """Maps byte offsets to 1-based line numbers."""

    def __init__(self, data: bytes) -> None:
        if not data:
            self._newlines = np.empty(0, dtype=np.intp)
            return
        view = np.frombuffer(data, dtype=np.uint8)
        self._newlines = np.flatnonzero(view == NEWLINE)

    def line_of(self, offset: int) -> int:
        """Count of newline bytes strictly before ``offset``, plus one."""
        return int(np.searchsorted(self._newlines, offset, side="left")) + 1


def blank_spans(buffer: bytearray, spans: Iterable[Union[SourceRange, Item]]) -> None:
    """Overwrite each span with spaces, keeping length and offsets intact."""
    size = len(buffer)
    for span in spans:
        begin = max(span.begin, 0)
        end = min(span.end, size - 1)
        if end >= begin:
            buffer[begin:end + 1] = b" " * (end - begin + 1)


class SourceBuffer:
    """Original bytes of one file plus a mutable working copy of equal length."""

    def __init__(self, original: Union[bytes, bytearray]) -> None:
        self.original = bytes(original)
        self.working = bytearray(self.original)
        self._lines: Optional[LineIndex] = None

    def __len__(self) -> int:
        return len(self.original)

    @property
    def whole(self) -> SourceRange:
        return SourceRange(0, len(self.original) - 1)

    def blank(self, spans: Iterable[Union[SourceRange, Item]]) -> None:
        blank_spans(self.working, spans)

    def scratch(self) -> bytearray:
        """A private copy of the working buffer for one analysis pass."""
        return bytearray(self.working)

    def text(self, span: Union[SourceRange, Item]) -> bytes:
        return self.original[span.begin:span.end + 1]

    @property
    def lines(self) -> LineIndex:
        if self._lines is None:
            self._lines = LineIndex(self.original)
        return self._lines

    def line_of(self, offset: int) -> int:
        return self.lines.line_of(offset)


@dataclass
class ParsedFile:
    """
    A source file with its merged function set.

    Attributes:
        path: File path (for messages)
        buffer: The file's bytes; ``buffer.working`` has comments, literals
                and escapes blanked
        functions: Merged functions, unique by name, in discovery order
        warnings: Non-fatal diagnostics, in the order they were raised
        choice_failures: Branch choices dropped because extraction failed
        choices_total: Size of the branch choice space (width ** depth)
        choices_evaluated: Number of choices actually tried
        branch_directives: Ranges of the #if/#else/#endif lines
        choice_spans: For each surviving choice, the branch ranges it blanked
    """
    path: str
    buffer: SourceBuffer
    functions: list[FunctionEntry] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    choice_failures: list[ChoiceFailure] = field(default_factory=list)
    choices_total: int = 1
    choices_evaluated: int = 1
    branch_directives: list[SourceRange] = field(default_factory=list)
    choice_spans: list[list[SourceRange]] = field(default_factory=list)

    @property
    def function_count(self) -> int:
        return len(self.functions)

    @property
    def truncated(self) -> bool:
        return self.choices_evaluated < self.choices_total

    def get_function_by_name(self, name: str) -> Optional[FunctionEntry]:
        """Find a function by name."""
        for func in self.functions:
            if func.name == name:
                return func
        return None
