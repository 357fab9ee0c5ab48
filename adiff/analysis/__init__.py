"""
Analysis module for C source text.

Token and bracket heuristics (no grammar) that classify comments, literals
and directives, enumerate conditional-compilation branch choices, and
extract function extents.
"""

from .data import FunctionEntry, Item, ItemKind, ParsedFile, SourceBuffer, SourceRange
from .c_parser import CParser, parse_c_file

__all__ = [
    "FunctionEntry",
    "Item",
    "ItemKind",
    "ParsedFile",
    "SourceBuffer",
    "SourceRange",
    "CParser",
    "parse_c_file",
]
