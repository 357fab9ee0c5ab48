"""
Tests for the lexical scanner and the bracket matcher.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

# Add the repository root to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest

from adiff.analysis.brackets import find_token, match_bracket
from adiff.analysis.scanner import (
    Token,
    is_identifier,
    iter_tokens,
    next_token,
    simple_token,
)
from adiff.errors import UnbalancedBracketError


# Debug helper
DEBUG = os.environ.get("DEBUG", "").lower() in ("1", "true", "yes")

def debug_print(*args, **kwargs):
    """Print only if DEBUG is enabled."""
    if DEBUG:
        print(*args, **kwargs)


def texts(data: bytes) -> list[bytes]:
    return [token.text for token in iter_tokens(data)]


# =============================================================================
# Test: basic tokens
# =============================================================================

class TestSimpleToken:
    def test_word(self):
        assert simple_token(b"  int x", 0) == Token(2, 4, b"int")

    def test_delimiter_is_single_byte(self):
        assert simple_token(b"==", 0) == Token(0, 0, b"=")

    def test_end_of_input(self):
        assert simple_token(b"   \r\n\t", 0) is None
        assert simple_token(b"abc", 3) is None

    def test_identifier_rules(self):
        assert is_identifier(b"foo_1")
        assert is_identifier(b"42")
        assert not is_identifier(b"+")
        assert not is_identifier(b"")


# =============================================================================
# Test: compound tokens
# =============================================================================

class TestNextToken:
    @pytest.mark.parametrize(
        "operator",
        [b"==", b"!=", b"<=", b">=", b"&&", b"||", b"++", b"--", b"->", b"<<", b">>", b"+="],
    )
    def test_operators_merge(self, operator):
        data = b"a" + operator + b"b"
        assert texts(data) == [b"a", operator, b"b"]

    def test_comment_markers_merge(self):
        assert texts(b"/* x */") == [b"/*", b"x", b"*/"]

    def test_merge_requires_adjacency(self):
        assert texts(b"a = = b") == [b"a", b"=", b"=", b"b"]

    def test_reversed_pair_merges(self):
        assert texts(b"a=<b") == [b"a", b"=<", b"b"]

    def test_brackets_never_merge(self):
        assert texts(b"((x))") == [b"(", b"(", b"x", b")", b")"]

    def test_hash_merges_across_blanks(self):
        token = next_token(b"#  ifdef FOO", 0)
        assert token == Token(0, 7, b"#ifdef")

    def test_hash_does_not_merge_across_lines(self):
        assert next_token(b"#\nifdef", 0) == Token(0, 0, b"#")

    def test_function_header(self):
        data = b"int main(void) { return 0; }"
        tokens = texts(data)
        debug_print(f"  tokens: {tokens}")
        assert tokens == [
            b"int", b"main", b"(", b"void", b")", b"{", b"return", b"0", b";", b"}",
        ]

    def test_works_on_bytearray(self):
        assert next_token(bytearray(b"  x->y"), 0) == Token(2, 2, b"x")
        assert next_token(bytearray(b"  x->y"), 3) == Token(3, 4, b"->")


# =============================================================================
# Test: bracket matching
# =============================================================================

class TestMatchBracket:
    def test_nested_parentheses(self):
        assert match_bracket(b"f(a, (b)) x", 1, b"(", b")") == 8

    def test_starts_at_next_token(self):
        assert match_bracket(b"  { { } }", 0, b"{", b"}") == 8

    def test_compound_delimiters(self):
        data = b"/* a /* b */ c */ d"
        assert match_bracket(data, 0, b"/*", b"*/") == 15

    def test_unbalanced_reports_opening_line(self):
        with pytest.raises(UnbalancedBracketError, match=r"matching '\(' opened at line 2"):
            match_bracket(b"x;\nf(a, (b)", 4, b"(", b")")

    def test_wrong_first_token(self):
        with pytest.raises(UnbalancedBracketError, match="found 'x' instead"):
            match_bracket(b"x(", 0, b"(", b")")

    def test_find_token(self):
        assert find_token(b"int f() { }", 0, b"{") == 8
        assert find_token(b"int f();", 0, b"{") is None
