"""
Generic nested-pair matching over the token stream.

Used for ``(``/``)``, ``[``/``]``, ``{``/``}`` and ``/*``/``*/``. Matching is
token based, so compound tokens such as ``*/`` are only counted when the
scanner produced them as one token.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..errors import UnbalancedBracketError
from .scanner import Data, next_token

logger = logging.getLogger(__name__)


def _line_at(data: Data, index: int) -> int:
    return data.count(b"\n", 0, max(index, 0)) + 1


def match_bracket(data: Data, index: int, opening: bytes, closing: bytes) -> int:
    """
    Find the token that closes the group opened at ``index``.

    The first token at or after ``index`` must be ``opening``. Tokens are then
    counted (+1 for ``opening``, -1 for ``closing``) until the count returns
    to zero.

    Returns:
        Offset of the first byte of the matching closing token

    Raises:
        UnbalancedBracketError: the first token is not ``opening``, or the
            input ends before the group closes
    """
    start = index
    depth = 0
    first = True
    while True:
        token = next_token(data, index)
        if token is None:
            raise UnbalancedBracketError(opening.decode("latin-1"), _line_at(data, start))
        if first and token.text != opening:
            raise UnbalancedBracketError(
                opening.decode("latin-1"),
                _line_at(data, token.begin),
                detail=f"found '{token.text.decode('latin-1')}' instead",
            )
        first = False

        if token.text == opening:
            depth += 1
        elif token.text == closing:
            depth -= 1

        if depth == 0:
            logger.debug(
                f"Matched {opening!r}..{closing!r} at offsets [{start}, {token.begin}]"
            )
            return token.begin
        index = token.end + 1


def find_token(data: Data, index: int, target: bytes) -> Optional[int]:
    """Offset of the first token equal to ``target`` at or after ``index``."""
    while True:
        token = next_token(data, index)
        if token is None:
            return None
        if token.text == target:
            return token.begin
        index = token.end + 1
