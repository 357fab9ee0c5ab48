"""
Conditional-compilation directives: discovery, tree parsing and branch
selection.

Branching directives (``#if``/``#ifdef``/``#ifndef``, ``#else``/``#elif``,
``#endif``) are parsed into an AND/OR tree::

    SEQUENCE    := GROUP*                         (AND node)
    GROUP       := text | CONDITIONAL
    CONDITIONAL := #if SEQUENCE (#else SEQUENCE)* #endif   (OR node)

Conditions are never evaluated. Instead every combination of branch choices
is enumerated: a choice index is decoded into one selector digit per nesting
level, and every branch not selected is blanked before functions are
extracted. The size of the choice space is ``width ** depth`` using the
widest conditional and the deepest nesting anywhere in the file. That over-
or under-counts when conditionals differ in shape; callers merge function
extents across all evaluated choices, which tolerates redundant or partial
coverage.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..errors import DirectiveNestingError
from .data import Item, ItemKind, LineIndex, SourceRange
from .scanner import Data, next_token

logger = logging.getLogger(__name__)

_DIRECTIVE_KINDS = {
    b"#if": ItemKind.DIRECTIVE_IF,
    b"#ifdef": ItemKind.DIRECTIVE_IF,
    b"#ifndef": ItemKind.DIRECTIVE_IF,
    b"#else": ItemKind.DIRECTIVE_ELSE,
    b"#elif": ItemKind.DIRECTIVE_ELSE,
    b"#endif": ItemKind.DIRECTIVE_ENDIF,
    b"#define": ItemKind.DIRECTIVE_OTHER,
    b"#undef": ItemKind.DIRECTIVE_OTHER,
}


# ==============================================================================
# Discovery
# ==============================================================================

def directive_kind(first_token: bytes) -> Optional[ItemKind]:
    """Classify a line by its first token; None if it is not a directive."""
    kind = _DIRECTIVE_KINDS.get(first_token)
    if kind is not None:
        return kind
    if first_token.startswith(b"#"):
        return ItemKind.DIRECTIVE_OTHER
    return None


def _line_end(data: Data, begin: int) -> int:
    newline = data.find(b"\n", begin)
    return len(data) - 1 if newline < 0 else newline


def _continues(original: bytes, end: int) -> bool:
    """True if the line ending at ``end`` is joined to the next by a backslash."""
    if end >= len(original) or original[end] != ord("\n"):
        return False
    k = end - 1
    if k >= 0 and original[k] == ord("\r"):
        k -= 1
    return k >= 0 and original[k] == ord("\\")


def find_directives(working: Data, original: bytes) -> list[Item]:
    """
    Find every directive line.

    ``working`` must already have comments and literals blanked so that a
    ``#`` inside them is not mistaken for a directive. Each Item spans the
    whole line including its newline, plus any backslash-continued lines.
    """
    items: list[Item] = []
    size = len(working)
    begin = 0
    while begin < size:
        end = _line_end(working, begin)
        token = next_token(working[begin:end + 1], 0)
        kind = directive_kind(token.text) if token is not None else None
        if kind is not None:
            while end + 1 < size and _continues(original, end):
                end = _line_end(working, end + 1)
            items.append(Item(begin, end, kind))
        begin = end + 1
    return items


# ==============================================================================
# Tree
# ==============================================================================

class NodeKind(enum.Enum):
    AND = "and"
    OR = "or"


@dataclass
class DirectiveNode:
    """
    One element of the directive tree.

    Attributes:
        kind: AND (a sequence) or OR (a conditional; children are branches)
        pid: Index of the introducing directive in the control list (-1 for
             the root sequence)
        close: Index of the directive that ends this branch or conditional
        children: Owned child nodes in source order
        text: Source range covered by the node
        directive: Source range of the introducing directive line
    """
    kind: NodeKind
    pid: int = -1
    close: int = -1
    children: list["DirectiveNode"] = field(default_factory=list)
    text: SourceRange = SourceRange(-1, -1)
    directive: Optional[SourceRange] = None

    @property
    def width(self) -> int:
        return len(self.children) if self.kind is NodeKind.OR else 0


@dataclass(frozen=True)
class DepthWidth:
    """Deepest OR nesting and widest OR node found in a tree."""
    depth: int
    width: int

    @property
    def choice_count(self) -> int:
        return self.width ** self.depth


class _TreeParser:
    def __init__(self, control: Sequence[Item], lines: Optional[LineIndex]) -> None:
        self.items = control
        self.lines = lines

    def _line(self, index: int) -> int:
        if self.lines is None:
            return -1
        return self.lines.line_of(self.items[index].begin)

    def parse_sequence(self, begin: int, end: int, pid: int) -> DirectiveNode:
        node = DirectiveNode(NodeKind.AND, pid=pid)
        index = begin
        while index <= end:
            if self.items[index].kind is not ItemKind.DIRECTIVE_IF:
                raise DirectiveNestingError("#else or #endif appears without #if", self._line(index))
            child, index = self.parse_conditional(index, end)
            node.children.append(child)
            index += 1
        return node

    def parse_conditional(self, begin: int, end: int) -> tuple[DirectiveNode, int]:
        """Parse the conditional opened at ``begin``; return it and its #endif index."""
        node = DirectiveNode(NodeKind.OR, pid=begin)
        opener = begin
        while True:
            separator = self._find_separator(opener + 1, end)
            if separator is None:
                raise DirectiveNestingError(
                    "Cannot find matching #else or #endif for #if", self._line(begin)
                )
            branch = self.parse_sequence(opener + 1, separator - 1, pid=opener)
            branch.close = separator
            node.children.append(branch)
            if self.items[separator].kind is ItemKind.DIRECTIVE_ENDIF:
                node.close = separator
                return node, separator
            opener = separator

    def _find_separator(self, start: int, end: int) -> Optional[int]:
        """First #else/#elif/#endif at the current nesting level."""
        depth = 0
        for index in range(start, end + 1):
            kind = self.items[index].kind
            if kind is ItemKind.DIRECTIVE_IF:
                depth += 1
            elif kind is ItemKind.DIRECTIVE_ELSE:
                if depth == 0:
                    return index
            elif kind is ItemKind.DIRECTIVE_ENDIF:
                if depth == 0:
                    return index
                depth -= 1
        return None


def _fill_ranges(node: DirectiveNode, control: Sequence[Item]) -> None:
    """Derive each node's covered range bottom-up."""
    for child in node.children:
        _fill_ranges(child, control)

    if node.pid >= 0:
        node.directive = control[node.pid].range

    if node.kind is NodeKind.OR:
        node.text = SourceRange(node.children[0].text.begin, node.children[-1].text.end)
    elif node.pid >= 0:
        # A branch runs from its own directive up to the next one at its level
        node.text = SourceRange(control[node.pid].begin, control[node.close].begin - 1)
    elif node.children:
        node.text = SourceRange(node.children[0].text.begin, node.children[-1].text.end)


def parse_directive_tree(
    control: Sequence[Item], lines: Optional[LineIndex] = None
) -> DirectiveNode:
    """
    Parse branching directive Items (in source order) into a tree.

    Raises:
        DirectiveNestingError: #else/#endif without #if, or #if without #endif
    """
    for item in control:
        if not item.kind.is_branching:
            raise ValueError(f"not a branching directive: {item.kind.value}")
    root = _TreeParser(control, lines).parse_sequence(0, len(control) - 1, pid=-1)
    _fill_ranges(root, control)
    return root


def depth_width(node: DirectiveNode) -> DepthWidth:
    depth = 0
    width = 0
    for child in node.children:
        sub = depth_width(child)
        depth = max(depth, sub.depth)
        width = max(width, sub.width)
    if node.kind is NodeKind.OR:
        depth += 1
        width = max(width, len(node.children))
    return DepthWidth(depth, width)


def selectors(shape: DepthWidth, choice: int) -> list[int]:
    """Decode a choice index into one digit per depth level, most significant first."""
    digits: list[int] = []
    for level in range(shape.depth):
        power = shape.width ** (shape.depth - 1 - level)
        digits.append((choice // power) % shape.width)
    return digits


def select_branches(root: DirectiveNode, digits: Sequence[int]) -> list[SourceRange]:
    """
    Keep one branch per conditional and return the ranges of all the others.

    At each OR node the branch ``digits[depth]`` survives (clamped to the
    node's last branch) and the walk continues into it one level deeper.
    """
    unselected: list[SourceRange] = []
    _select(root, digits, 0, unselected)
    return unselected


def _select(
    node: DirectiveNode, digits: Sequence[int], depth: int, unselected: list[SourceRange]
) -> None:
    if node.kind is NodeKind.OR:
        chosen = min(digits[depth], len(node.children) - 1)
        for index, branch in enumerate(node.children):
            if index != chosen:
                unselected.append(branch.text)
        _select(node.children[chosen], digits, depth + 1, unselected)
    else:
        for child in node.children:
            _select(child, digits, depth, unselected)


def describe_tree(node: DirectiveNode, source: bytes, indent: int = 0) -> str:
    """Render the tree as indented text, one node per line."""
    directive = b""
    if node.directive is not None:
        directive = node.directive.slice(source).replace(b"\n", b" ").strip()
    line = (
        f"{' ' * indent}{node.kind.value.upper()} pid={node.pid} "
        f"directive={directive.decode('utf-8', errors='replace')!r} "
        f"text=[{node.text.begin}, {node.text.end}]"
    )
    return "\n".join(
        [line] + [describe_tree(child, source, indent + 1) for child in node.children]
    )


# ==============================================================================
# Per-file layout
# ==============================================================================

@dataclass
class DirectiveLayout:
    """Directive lines of one file and the branch choice space they define."""

    items: list[Item]
    tree: Optional[DirectiveNode] = None
    shape: DepthWidth = DepthWidth(0, 0)

    @property
    def choice_count(self) -> int:
        return self.shape.choice_count

    def unselected(self, choice: int) -> list[SourceRange]:
        """Ranges to blank for branch choice ``choice``."""
        if self.tree is None:
            return []
        digits = selectors(self.shape, choice)
        logger.debug(f"Choice {choice}: selectors {digits}")
        return select_branches(self.tree, digits)


def analyze_directives(
    working: Data, original: bytes, lines: Optional[LineIndex] = None
) -> DirectiveLayout:
    """Find directive lines and parse the branching ones into a tree."""
    items = find_directives(working, original)
    control = [item for item in items if item.kind.is_branching]
    layout = DirectiveLayout(items=items)
    if control:
        layout.tree = parse_directive_tree(control, lines)
        layout.shape = depth_width(layout.tree)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Directive tree:\n" + describe_tree(layout.tree, original))
    logger.debug(
        f"Found {len(items)} directive(s), {len(control)} branching; "
        f"depth={layout.shape.depth} width={layout.shape.width} "
        f"choices={layout.choice_count}"
    )
    return layout
