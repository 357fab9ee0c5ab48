"""
Whitespace-insensitive, literal-sensitive comparison of function bodies.

Two regions are compared in two stages. First their string and character
literals are compared verbatim, in order. If those agree, the regions are
compared with comments and literals blanked, ignoring every space, tab and
newline. The result is either "same" or the first pair of offsets at which
the two sides diverge.

Collapsing a conditional is not a change: when only one of the two regions
still shows branching directives and every variant of the new region also
occurs in the old one, the pair is reported as the same. When both regions
show directives, the as-written comparison stands, so swapped branches and
edited conditions are reported.

The residue of a file (everything outside its functions) is compared the
same way, as one pseudo-function.
"""

from __future__ import annotations

import bisect
import logging
from typing import Iterable, Sequence

import numpy as np

from ..analysis.data import (
    FunctionEntry,
    Item,
    ItemKind,
    ParsedFile,
    SourceBuffer,
    SourceRange,
    blank_spans,
)
from ..analysis.literals import find_comments_and_literals
from ..storage.models import DiffOutcome, FunctionDiff

logger = logging.getLogger(__name__)

RESIDUE_NAME = "#DATA DECLARATIONS OUTSIDE OF FUNCTIONS#"

Fingerprint = tuple[tuple[tuple[ItemKind, bytes], ...], bytes]

# Bytes skipped by the lock-step walk
SKIPPED = np.array([ord(" "), ord("\t"), ord("\n")], dtype=np.uint8)


# ==============================================================================
# Comparable view of one file
# ==============================================================================

class DiffView:
    """
    One file prepared for comparison.

    Holds the file's literal Items, a copy of its bytes with comments and
    literals blanked, and the offsets of every byte the lock-step walk does
    not skip. ``excluded`` spans are blanked as well and their literals are
    dropped, which is how the residue view hides function bodies.
    """

    def __init__(
        self,
        buffer: SourceBuffer,
        *,
        nested_comments: bool = True,
        excluded: Iterable[SourceRange] = (),
    ) -> None:
        self.buffer = buffer
        excluded = list(excluded)

        items = find_comments_and_literals(
            buffer.original,
            literals=True,
            comments=True,
            escapes=False,
            nested_comments=nested_comments,
        )
        blanked = bytearray(buffer.original)
        blank_spans(blanked, items)
        blank_spans(blanked, excluded)

        if blanked:
            self.data = np.frombuffer(bytes(blanked), dtype=np.uint8)
        else:
            self.data = np.empty(0, dtype=np.uint8)
        hidden = np.zeros(len(blanked), dtype=bool)
        for span in excluded:
            hidden[max(span.begin, 0):span.end + 1] = True
        self.hidden = hidden

        self.literals: list[Item] = [
            item for item in items if item.kind.is_literal and not hidden[item.begin]
        ]
        self._literal_begins = [item.begin for item in self.literals]
        self.significant = np.flatnonzero(~np.isin(self.data, SKIPPED))

    def literals_in(self, region: SourceRange) -> list[Item]:
        """Literal Items lying entirely inside ``region``, in source order."""
        lo = bisect.bisect_left(self._literal_begins, region.begin)
        hi = bisect.bisect_right(self._literal_begins, region.end)
        return [item for item in self.literals[lo:hi] if region.contains(item)]

    def significant_in(self, region: SourceRange) -> np.ndarray:
        """Offsets of the non-skipped bytes inside ``region``."""
        lo = np.searchsorted(self.significant, region.begin, side="left")
        hi = np.searchsorted(self.significant, region.end, side="right")
        return self.significant[lo:hi]

    def fingerprint(self, region: SourceRange, hidden: Sequence[SourceRange] = ()) -> Fingerprint:
        """
        What the comparison sees of ``region`` with ``hidden`` spans removed.

        Two regions compare as the same exactly when their fingerprints are
        equal.
        """
        literals = tuple(
            (item.kind, self.buffer.text(item))
            for item in self.literals_in(region)
            if not any(span.begin <= item.begin <= span.end for span in hidden)
        )
        positions = self.significant_in(region)
        keep = np.ones(len(positions), dtype=bool)
        for span in hidden:
            keep &= (positions < span.begin) | (positions > span.end)
        return literals, self.data[positions[keep]].tobytes()

    def is_visible(self, span: SourceRange) -> bool:
        """True if ``span`` starts outside every excluded span."""
        return 0 <= span.begin < len(self.hidden) and not self.hidden[span.begin]

    def line_of(self, offset: int) -> int:
        return self.buffer.line_of(offset)


# ==============================================================================
# Region comparison
# ==============================================================================

def _region_end(region: SourceRange) -> int:
    return max(region.end, 0)


def compare_regions(
    view_a: DiffView,
    region_a: SourceRange,
    view_b: DiffView,
    region_b: SourceRange,
) -> DiffOutcome:
    """
    Compare one region of each file.

    Returns:
        ``DiffOutcome.same()`` or the first divergence. When one side runs
        out of literals or significant bytes before the other, its divergence
        offset is the end of its region.
    """
    lits_a = view_a.literals_in(region_a)
    lits_b = view_b.literals_in(region_b)
    for lit_a, lit_b in zip(lits_a, lits_b):
        if (
            lit_a.kind != lit_b.kind
            or lit_a.length != lit_b.length
            or view_a.buffer.text(lit_a) != view_b.buffer.text(lit_b)
        ):
            logger.debug(f"Literal mismatch at {lit_a.begin}/{lit_b.begin}")
            return DiffOutcome.diverged(lit_a.begin, lit_b.begin)

    if len(lits_a) != len(lits_b):
        common = min(len(lits_a), len(lits_b))
        offset_a = lits_a[common].begin if len(lits_a) > common else _region_end(region_a)
        offset_b = lits_b[common].begin if len(lits_b) > common else _region_end(region_b)
        logger.debug(f"Literal count mismatch: {len(lits_a)} vs {len(lits_b)}")
        return DiffOutcome.diverged(offset_a, offset_b)

    pos_a = view_a.significant_in(region_a)
    pos_b = view_b.significant_in(region_b)
    common = min(len(pos_a), len(pos_b))
    mismatch = np.flatnonzero(view_a.data[pos_a[:common]] != view_b.data[pos_b[:common]])
    if mismatch.size:
        k = int(mismatch[0])
        return DiffOutcome.diverged(int(pos_a[k]), int(pos_b[k]))

    if len(pos_a) != len(pos_b):
        offset_a = int(pos_a[common]) if len(pos_a) > common else _region_end(region_a)
        offset_b = int(pos_b[common]) if len(pos_b) > common else _region_end(region_b)
        return DiffOutcome.diverged(offset_a, offset_b)

    return DiffOutcome.same()


# ==============================================================================
# Branch variants
# ==============================================================================

def _overlaps(span: SourceRange, region: SourceRange) -> bool:
    return span.begin <= region.end and span.end >= region.begin


def has_branches(view: DiffView, parsed: ParsedFile, region: SourceRange) -> bool:
    """True if a branching directive line shows in ``region`` of ``view``."""
    return any(
        _overlaps(span, region) and view.is_visible(span)
        for span in parsed.branch_directives
    )


def variant_spans(parsed: ParsedFile, region: SourceRange) -> list[list[SourceRange]]:
    """
    The distinct sets of spans hidden by the branch choices realized in ``region``.

    Each set holds the branching directive lines plus the unselected branches
    of one surviving choice, clipped to ``region``. Choices that differ only
    outside ``region`` yield the same set.
    """
    directives = [span for span in parsed.branch_directives if _overlaps(span, region)]
    seen: dict[tuple[SourceRange, ...], None] = {}
    for spans in parsed.choice_spans or [[]]:
        key = tuple(
            SourceRange(max(span.begin, region.begin), min(span.end, region.end))
            for span in spans
            if _overlaps(span, region)
        )
        seen.setdefault(key, None)
    return [directives + list(key) for key in seen]


def variants_covered(
    view_a: DiffView,
    parsed_a: ParsedFile,
    region_a: SourceRange,
    view_b: DiffView,
    parsed_b: ParsedFile,
    region_b: SourceRange,
) -> bool:
    """True if every branch variant of B's region equals some variant of A's."""
    realized_a = {view_a.fingerprint(region_a, hidden) for hidden in variant_spans(parsed_a, region_a)}
    for hidden in variant_spans(parsed_b, region_b):
        if view_b.fingerprint(region_b, hidden) not in realized_a:
            return False
    return True


def compare_pair(
    view_a: DiffView,
    parsed_a: ParsedFile,
    region_a: SourceRange,
    view_b: DiffView,
    parsed_b: ParsedFile,
    region_b: SourceRange,
) -> DiffOutcome:
    """
    Compare two regions, then forgive a conditional collapsed on one side.

    The regions are first compared as written. If they differ and exactly
    one region shows branching directives, the branch variants are compared:
    when every variant of B also occurs in A the pair is the same. Otherwise
    the divergence of the first comparison is reported.
    """
    outcome = compare_regions(view_a, region_a, view_b, region_b)
    if not outcome.changed:
        return outcome
    if has_branches(view_a, parsed_a, region_a) == has_branches(view_b, parsed_b, region_b):
        return outcome
    if variants_covered(view_a, parsed_a, region_a, view_b, parsed_b, region_b):
        logger.debug(f"Regions {region_a} / {region_b} differ only by a collapsed conditional")
        return DiffOutcome.same()
    return outcome


# ==============================================================================
# File-level comparison
# ==============================================================================

def _result(name: str, outcome: DiffOutcome, view_a: DiffView, view_b: DiffView) -> FunctionDiff:
    if not outcome.changed:
        return FunctionDiff(name=name, status="unchanged")
    return FunctionDiff(
        name=name,
        status="changed",
        offset_a=outcome.offset_a,
        offset_b=outcome.offset_b,
        line_a=view_a.line_of(outcome.offset_a),
        line_b=view_b.line_of(outcome.offset_b),
    )


def diff_functions(
    parsed_a: ParsedFile,
    parsed_b: ParsedFile,
    *,
    nested_comments: bool = True,
) -> list[FunctionDiff]:
    """
    Pair functions by name and compare each pair.

    Results follow file A's function order (changed, unchanged or deleted),
    then the functions only file B defines (added), in file B's order.
    """
    view_a = DiffView(parsed_a.buffer, nested_comments=nested_comments)
    view_b = DiffView(parsed_b.buffer, nested_comments=nested_comments)
    by_name_b = {func.name: func for func in parsed_b.functions}

    results: list[FunctionDiff] = []
    for func_a in parsed_a.functions:
        func_b = by_name_b.get(func_a.name)
        if func_b is None:
            results.append(
                FunctionDiff(
                    name=func_a.name,
                    status="deleted",
                    offset_a=func_a.begin,
                    line_a=view_a.line_of(func_a.begin),
                )
            )
            continue
        outcome = compare_pair(view_a, parsed_a, func_a.range, view_b, parsed_b, func_b.range)
        logger.debug(f"Function '{func_a.name}': {outcome}")
        results.append(_result(func_a.name, outcome, view_a, view_b))

    names_a = {func.name for func in parsed_a.functions}
    for func_b in parsed_b.functions:
        if func_b.name not in names_a:
            results.append(
                FunctionDiff(
                    name=func_b.name,
                    status="added",
                    offset_b=func_b.begin,
                    line_b=view_b.line_of(func_b.begin),
                )
            )
    return results


def _function_spans(functions: Sequence[FunctionEntry]) -> list[SourceRange]:
    return [func.range for func in functions]


def diff_residue(
    parsed_a: ParsedFile,
    parsed_b: ParsedFile,
    *,
    nested_comments: bool = True,
) -> FunctionDiff:
    """Compare everything outside the merged functions of each file."""
    view_a = DiffView(
        parsed_a.buffer,
        nested_comments=nested_comments,
        excluded=_function_spans(parsed_a.functions),
    )
    view_b = DiffView(
        parsed_b.buffer,
        nested_comments=nested_comments,
        excluded=_function_spans(parsed_b.functions),
    )
    outcome = compare_pair(
        view_a, parsed_a, parsed_a.buffer.whole, view_b, parsed_b, parsed_b.buffer.whole
    )
    logger.debug(f"Residue: {outcome}")
    return _result(RESIDUE_NAME, outcome, view_a, view_b)
