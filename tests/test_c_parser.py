"""
Comprehensive tests for the C function extractor.

Covers declaration boundaries, prototypes, branch choice enumeration, the
cross-choice merge and the non-fatal diagnostics.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

# Add the repository root to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest

from adiff.analysis.c_parser import (
    CParser,
    find_duplicate_names,
    find_overlaps,
    merge_function_sets,
    parse_c_file,
)
from adiff.analysis.data import FunctionEntry, ParsedFile, SourceBuffer, SourceRange
from adiff.config import DiffConfig
from adiff.errors import (
    DirectiveNestingError,
    ExtractionError,
    UnterminatedCommentError,
)


# Debug helper
DEBUG = os.environ.get("DEBUG", "").lower() in ("1", "true", "yes")

def debug_print(*args, **kwargs):
    """Print only if DEBUG is enabled."""
    if DEBUG:
        print(*args, **kwargs)


def parse(source: bytes, **config) -> ParsedFile:
    return parse_c_file("test.c", source=source, config=DiffConfig(**config))


def names(parsed: ParsedFile) -> list[str]:
    return [func.name for func in parsed.functions]


# =============================================================================
# Sample C Code for Testing
# =============================================================================

SIMPLE_C_CODE = b"""
#include <stdio.h>

void hello(void) {
    printf("Hello, world!\\n");
}

int main(int argc, char **argv) {
    hello();
    return 0;
}
"""

PROTOTYPE_CODE = b"""
int proto(int x);
static int table[3] = {1, 2, 3};

int real(void) {
    return proto(table[0]);
}
"""

NESTED_BRACES_CODE = b"""
void complex_function(int x) {
    if (x > 0) {
        for (int i = 0; i < x; i++) {
            if (i % 2 == 0) {
                printf("even: %d\\n", i);
            } else {
                printf("odd: %d}\\n", i);
            }
        }
    } else {
        printf("negative\\n");
    }
}
"""

# Offsets: "#if 1\n" 0-5, first g 6-23, "#else\n" 25-30, second g 31-48
BRANCHED_CODE = b"#if 1\nint g(){return 1;}\n#else\nint g(){return 2;}\n#endif"

DEEP_CODE = b"""
#ifdef A
#ifdef B
#ifdef C
int f(void) { return 1; }
#else
int f(void) { return 2; }
#endif
#endif
#endif
int g(void) { return 0; }
"""

OVERLAP_CODE = b"""
#if X
int a(void) { return 1; }
int b(void) { return 2; }
#else
int b(void) { return 3; }
int a(void) { return 4; }
#endif
"""

BROKEN_BRANCH_CODE = b"""
#if X
int f(void) { return 1;
#else
int f(void) { return 2; }
#endif
"""


# =============================================================================
# Test: ParsedFile
# =============================================================================

class TestParsedFile:
    def test_get_function_by_name(self):
        parsed = parse(SIMPLE_C_CODE)
        assert parsed.get_function_by_name("main").name == "main"
        assert parsed.get_function_by_name("missing") is None

    def test_source_range(self):
        r = SourceRange(7, 11)
        assert r.length == 5
        assert r.slice(b"Hello, World!") == b"World"
        assert SourceRange(0, -1).is_empty


# =============================================================================
# Test: extraction
# =============================================================================

class TestExtraction:
    def test_simple_functions(self):
        parsed = parse(SIMPLE_C_CODE)
        assert names(parsed) == ["hello", "main"]
        hello = parsed.functions[0]
        debug_print(f"  hello: {parsed.buffer.text(hello.range)!r}")
        assert parsed.buffer.line_of(hello.begin) == 4
        assert parsed.buffer.text(hello.range).startswith(b"void hello(void)")
        assert parsed.buffer.text(hello.range).endswith(b"}")

    def test_declaration_starts_after_previous_function(self):
        parsed = parse(SIMPLE_C_CODE)
        main = parsed.get_function_by_name("main")
        assert parsed.buffer.text(main.range).startswith(b"int main(")

    def test_body_only(self):
        parsed = parse(SIMPLE_C_CODE, body_only=True)
        for func in parsed.functions:
            assert parsed.buffer.original[func.begin:func.begin + 1] == b"{"

    def test_prototypes_and_tables_are_skipped(self):
        parsed = parse(PROTOTYPE_CODE)
        assert names(parsed) == ["real"]
        real = parsed.functions[0]
        assert parsed.buffer.text(real.range).startswith(b"int real(void)")

    def test_brace_inside_string_does_not_close_body(self):
        parsed = parse(NESTED_BRACES_CODE)
        assert names(parsed) == ["complex_function"]
        func = parsed.functions[0]
        assert func.end == NESTED_BRACES_CODE.rstrip().rindex(b"}")

    def test_empty_source(self):
        parsed = parse(b"")
        assert parsed.functions == []
        assert parsed.warnings == []

    def test_directive_inside_comment_is_not_a_branch(self):
        parsed = parse(b"/*\n#if X\n*/\nint a(void) { return 0; }\n")
        assert parsed.choices_total == 1
        assert names(parsed) == ["a"]

    def test_not_nested_comments(self):
        source = b"/* a /* b */ int f(void) { return 0; }\n"
        assert names(parse(source, nested_comments=False)) == ["f"]
        with pytest.raises(UnterminatedCommentError):
            parse(source, nested_comments=True)


# =============================================================================
# Test: branch choices and merging
# =============================================================================

class TestBranchChoices:
    def test_extent_covers_every_branch(self):
        parsed = parse(BRANCHED_CODE)
        assert parsed.choices_total == 2
        assert len(parsed.choice_spans) == 2
        g = parsed.get_function_by_name("g")
        assert (g.begin, g.end) == (6, 48)

    def test_merge_takes_min_begin_and_max_end(self):
        merged = merge_function_sets([
            [FunctionEntry("f", 10, 20)],
            [FunctionEntry("f", 5, 15), FunctionEntry("h", 30, 40)],
            [FunctionEntry("f", 12, 30)],
        ])
        assert merged == [FunctionEntry("f", 5, 30), FunctionEntry("h", 30, 40)]

    def test_merge_does_not_mutate_inputs(self):
        first = FunctionEntry("f", 10, 20)
        merge_function_sets([[first], [FunctionEntry("f", 0, 30)]])
        assert (first.begin, first.end) == (10, 20)

    def test_choice_cap_warns_and_continues(self):
        parsed = parse(DEEP_CODE, choice_limit=4)
        debug_print(f"  warnings: {parsed.warnings}")
        assert parsed.choices_total == 8
        assert parsed.choices_evaluated == 4
        assert parsed.truncated
        assert names(parsed) == ["f", "g"]
        assert any(
            "too large (number of choices = 8), reducing it to 4" in w
            for w in parsed.warnings
        )

    def test_failed_choice_is_dropped(self):
        parsed = parse(BROKEN_BRANCH_CODE)
        assert [failure.choice for failure in parsed.choice_failures] == [0]
        assert "Cannot find token matching '{'" in parsed.choice_failures[0].message
        f = parsed.get_function_by_name("f")
        assert parsed.buffer.text(f.range) == b"int f(void) { return 2; }"

    def test_every_choice_failing_is_fatal(self):
        with pytest.raises(ExtractionError, match="Cannot find token matching '{'"):
            parse(b"int f(void) { return 1;\n")

    def test_missing_body(self):
        with pytest.raises(ExtractionError, match="Cannot find function body for 'f' at line 1"):
            parse(b"int x = f(1)\n")

    def test_directive_nesting_error_aborts(self):
        with pytest.raises(DirectiveNestingError):
            parse(b"#endif\nint f(void) { return 0; }\n")


# =============================================================================
# Test: diagnostics
# =============================================================================

class TestDiagnostics:
    def test_duplicate_names(self):
        parsed = parse(b"int d(void) { return 1; }\nint d(void) { return 2; }\n")
        assert names(parsed) == ["d"]
        assert any("duplicate function names found in test.c (d)" in w for w in parsed.warnings)

    def test_find_duplicate_names(self):
        per_choice = [
            [FunctionEntry("a", 0, 1), FunctionEntry("a", 2, 3)],
            [FunctionEntry("b", 0, 1)],
        ]
        assert find_duplicate_names(per_choice) == ["a"]

    def test_overlapping_functions(self):
        parsed = parse(OVERLAP_CODE)
        assert names(parsed) == ["a", "b"]
        assert any("function declarations overlapped in test.c (a/b)" in w for w in parsed.warnings)

    def test_find_overlaps(self):
        a = FunctionEntry("a", 0, 10)
        b = FunctionEntry("b", 5, 20)
        c = FunctionEntry("c", 30, 40)
        assert find_overlaps([a, b, c]) == [(a, b)]

    def test_missing_file_is_empty_input(self, tmp_path):
        path = tmp_path / "absent.c"
        parsed = CParser().parse_file(path)
        assert parsed.functions == []
        assert parsed.warnings == [f"File {path} is missing, treating it as empty"]

    def test_reads_file_from_disk(self, tmp_path):
        path = tmp_path / "simple.c"
        path.write_bytes(SIMPLE_C_CODE)
        parsed = parse_c_file(path)
        assert names(parsed) == ["hello", "main"]
        assert parsed.path == str(path)

    def test_buffer_offsets_survive_blanking(self):
        buffer = SourceBuffer(b'a = "x"; /* c */')
        buffer.blank([SourceRange(4, 6), SourceRange(9, 15)])
        assert len(buffer.working) == len(buffer.original)
        assert bytes(buffer.working) == b"a =    ;" + b" " * 8
