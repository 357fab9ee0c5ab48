"""
Comment, literal and escape classification.

One left-to-right pass over the original bytes. Every construct that is
recognized is skipped in full whether or not its Item is recorded, so the
pass stays linear and a quote inside a comment never opens a literal.
"""

from __future__ import annotations

import logging
import re

from ..errors import UnbalancedBracketError, UnterminatedCommentError
from .brackets import match_bracket
from .data import Item, ItemKind
from .scanner import Data

logger = logging.getLogger(__name__)

BACKSLASH = ord("\\")
DOUBLE_QUOTE = ord('"')
SINGLE_QUOTE = ord("'")
SLASH = ord("/")
STAR = ord("*")

_INTERESTING_RE = re.compile(rb"[\"'/\\]")


def match_quote(data: Data, index: int) -> int:
    """
    Find the end of the literal whose opening quote is at ``index``.

    A quote closes the literal unless it is preceded by an odd number of
    consecutive backslashes. An unterminated literal runs to the end of the
    buffer.

    Returns:
        Offset one past the closing quote (or ``len(data)``)
    """
    quote = data[index]
    pos = index + 1
    while True:
        found = data.find(quote, pos)
        if found < 0:
            return len(data)
        backslashes = 0
        k = found - 1
        while k > index and data[k] == BACKSLASH:
            backslashes += 1
            k -= 1
        if backslashes % 2 == 0:
            return found + 1
        pos = found + 1


def _comment_end(data: Data, index: int, nested: bool) -> int:
    """Offset of the last byte of the comment opened at ``index``."""
    if nested:
        try:
            closing = match_bracket(data, index, b"/*", b"*/")
        except UnbalancedBracketError:
            raise UnterminatedCommentError(data.count(b"\n", 0, index) + 1) from None
        return closing + 1

    closing = data.find(b"*/", index + 2)
    if closing < 0:
        raise UnterminatedCommentError(data.count(b"\n", 0, index) + 1)
    return closing + 1


def find_comments_and_literals(
    data: Data,
    *,
    literals: bool = True,
    comments: bool = True,
    escapes: bool = False,
    nested_comments: bool = True,
) -> list[Item]:
    """
    Classify string literals, character literals, comments and escapes.

    Args:
        data: Source bytes
        literals: Record string and character literals
        comments: Record ``/* ... */`` comments
        escapes: Record a backslash outside literals as a two-byte span
        nested_comments: Close a comment only after every inner ``/*`` has
                         been closed; otherwise the first ``*/`` closes it

    Returns:
        Items in ascending offset order

    Raises:
        UnterminatedCommentError: a comment never closes
    """
    items: list[Item] = []
    size = len(data)
    i = 0
    while i < size:
        match = _INTERESTING_RE.search(data, i)
        if match is None:
            break
        i = match.start()
        byte = data[i]

        if byte == DOUBLE_QUOTE or byte == SINGLE_QUOTE:
            end = match_quote(data, i)
            if literals:
                kind = ItemKind.STRING if byte == DOUBLE_QUOTE else ItemKind.CHAR
                items.append(Item(i, end - 1, kind))
            i = end
        elif byte == SLASH:
            if i + 1 < size and data[i + 1] == STAR:
                end = _comment_end(data, i, nested_comments)
                if comments:
                    items.append(Item(i, end, ItemKind.COMMENT))
                i = end + 1
            else:
                i += 1
        else:
            if escapes:
                items.append(Item(i, min(i + 1, size - 1), ItemKind.ESCAPE))
            i += 2

    logger.debug(f"Classified {len(items)} comment/literal/escape item(s) in {size} bytes")
    return items
