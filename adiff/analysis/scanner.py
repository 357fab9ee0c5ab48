"""
Lexical scanner for C-family source text.

A basic token is a maximal run of non-delimiter bytes, or a single delimiter
byte. ``next_token`` fetches one basic token and, when the following basic
token abuts it and the pair spells a multi-character operator, returns the
two as one compound token. Bracket matching depends on this: ``/*``, ``*/``,
``->`` and friends must be seen as one token.

Whitespace between tokens is skipped and never returned.
"""

from __future__ import annotations

import re
from typing import Iterator, NamedTuple, Optional, Union

Data = Union[bytes, bytearray]

DELIMITERS = b"!@#$%^&*()-+=|\\`~[]{};:'\"<>,.?/ \t\r\n"
SPACES = b" \t\r\n"

_SPACE_RUN_RE = re.compile(rb"[ \t\r\n]*")
_WORD_RE = re.compile(rb"[^!@#$%^&*()\-+=|\\`~\[\]{};:'\"<>,.?/ \t\r\n]+")

# Operators that take a trailing '=' (e.g. "+=", "<=", "==", "!=")
_ASSIGNING = b"<>=+-/*&|%^~!"
_DIGRAPHS = (b"<<", b">>", b"->", b"++", b"--", b"||", b"&&", b"*/", b"/*")


def _build_merge_pairs() -> frozenset[bytes]:
    pairs = {bytes([c]) + b"=" for c in _ASSIGNING}
    pairs.update(_DIGRAPHS)
    # Either order is accepted, e.g. "=<" merges as well as "<="
    return frozenset(pairs | {p[::-1] for p in pairs})


MERGE_PAIRS = _build_merge_pairs()


class Token(NamedTuple):
    """A token spanning ``[begin, end]`` (inclusive) of the scanned buffer."""

    begin: int
    end: int
    text: bytes

    @property
    def is_identifier(self) -> bool:
        return is_identifier(self.text)


def is_delimiter(byte: int) -> bool:
    return byte in DELIMITERS


def is_space(byte: int) -> bool:
    return byte in SPACES


def is_identifier(text: bytes) -> bool:
    """Non-empty and made only of non-delimiter bytes (so "42" qualifies)."""
    return bool(text) and _WORD_RE.fullmatch(text) is not None


def skip_spaces(data: Data, index: int) -> int:
    return _SPACE_RUN_RE.match(data, index).end()


def simple_token(data: Data, index: int) -> Optional[Token]:
    """Return the basic token at or after ``index``, or None at end of input."""
    if index < 0 or index >= len(data):
        return None
    begin = skip_spaces(data, index)
    if begin >= len(data):
        return None
    match = _WORD_RE.match(data, begin)
    end = match.end() - 1 if match else begin
    return Token(begin, end, bytes(data[begin:end + 1]))


def can_merge(first: bytes, second: bytes) -> bool:
    """True if two single-byte delimiter tokens form a compound operator."""
    if len(first) != 1 or len(second) != 1:
        return False
    return first + second in MERGE_PAIRS


def next_token(data: Data, index: int) -> Optional[Token]:
    """
    Return the next (possibly compound) token at or after ``index``.

    A lone ``#`` followed by an identifier on the same line merges with it
    even across blanks, so ``#  ifdef`` reads as ``#ifdef``.
    """
    first = simple_token(data, index)
    if first is None:
        return None
    second = simple_token(data, first.end + 1)
    if second is None:
        return first

    if first.text == b"#":
        if second.is_identifier and data.find(b"\n", first.end, second.begin) < 0:
            return Token(first.begin, second.end, first.text + second.text)
        return first

    if second.begin == first.end + 1 and can_merge(first.text, second.text):
        return Token(first.begin, second.end, first.text + second.text)
    return first


def iter_tokens(data: Data, index: int = 0) -> Iterator[Token]:
    """Yield every token from ``index`` to the end of ``data``."""
    while True:
        token = next_token(data, index)
        if token is None:
            return
        yield token
        index = token.end + 1
