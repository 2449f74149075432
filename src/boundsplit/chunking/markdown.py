"""
Markdown block structure for the Markdown splitter.

The document is parsed with markdown-it-py (CommonMark plus GFM tables). Block
tokens carry line maps, which are converted to character offsets into the
original string.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Tuple

import regex
from markdown_it import MarkdownIt

from ..core.logging import get_logger
from .boundaries import (
    Finder,
    PARAGRAPH_BREAK_RE,
    merge_spans,
    offsets_finder,
    text_finders,
)
from .levels import MarkdownLevel

# Same line splitting as markdown-it's input normalization
NEWLINE_RE = regex.compile(r"\r\n?|\n")
ATX_MARKER_RE = regex.compile(r"#{1,6}(?:[ \t]+|(?=\r|\n|$))")
LIST_MARKER_RE = regex.compile(r"[ \t>]*(?:[-+*]|\d{1,9}[.)])(?:[ \t]+|(?=\r|\n|$))")
QUOTE_MARKER_RE = regex.compile(r"(?:[ \t]{0,3}>[ \t]?)+")
FENCE_LINE_RE = regex.compile(r"[ \t>]*(?:`{3,}|~{3,})")
# Longest inline element recognized; bounds the work done per opening marker
INLINE_SPAN_MAX = 256
INLINE_RE = regex.compile(
    (
        r"(?<!`)(?P<ticks>`+)(?=[^`\n])[^\n]{{1,{n}}}?(?<=[^`])(?P=ticks)(?!`)"  # code span
        r"|!?\[[^\]\n]{{0,{n}}}\]\([^)\n]{{0,{n}}}\)"  # link or image
        r"|<(?:https?|mailto|ftp):[^>\s]{{1,{n}}}>"  # autolink
        r"|(?P<strong>\*\*|__)(?=\S)[^\n]{{1,{n}}}?(?<=\S)(?P=strong)"
        r"|(?P<em>[*_])(?=[^\s*_])[^*_\n]{{1,{n}}}?(?<=[^\s*_])(?P=em)"
    ).format(n=INLINE_SPAN_MAX)
)

BLOCK_KINDS = {
    "paragraph_open": "paragraph",
    "fence": "code_fence",
    "code_block": "code_block",
    "html_block": "html",
    "table_open": "table",
    "tr_open": "table_row",
    "blockquote_open": "block_quote",
    "list_item_open": "list_item",
    "heading_open": "heading",
    "hr": "thematic_break",
}

_PARSER = MarkdownIt("commonmark").enable("table")
log = get_logger(__name__)


@dataclass(frozen=True)
class MarkdownNode:
    """A block-level node with character offsets into the source."""

    kind: str
    start: int
    end: int
    depth: int = 0  # heading depth, 0 for other kinds


@dataclass
class MarkdownStructure:
    """Parsed structure: nodes, protected syntax and code regions."""

    nodes: List[MarkdownNode]
    protected: List[Tuple[int, int]] = field(default_factory=list)
    code_regions: List[Tuple[int, int]] = field(default_factory=list)

    def starts(self, *kinds: str, depth: int = 0) -> List[int]:
        return sorted(
            {
                node.start
                for node in self.nodes
                if node.kind in kinds and (not depth or node.depth == depth)
            }
        )


def line_starts(text: str) -> List[int]:
    """Offset of the first character of every line."""
    starts = [0]
    starts.extend(match.end() for match in NEWLINE_RE.finditer(text))
    return starts


def _line_content_end(text: str, starts: List[int], line: int) -> int:
    """Offset just before the line's terminator."""
    if line + 1 < len(starts):
        end = starts[line + 1]
        while end > starts[line] and text[end - 1] in "\r\n":
            end -= 1
        return end
    return len(text)


def parse_markdown(text: str) -> MarkdownStructure:
    """Parse ``text`` into block nodes with character offsets."""
    starts = line_starts(text)

    def offset(line: int) -> int:
        return starts[line] if line < len(starts) else len(text)

    nodes = [MarkdownNode("document", 0, len(text))]
    protected: List[Tuple[int, int]] = []
    code_regions: List[Tuple[int, int]] = []

    for token in _PARSER.parse(text):
        kind = BLOCK_KINDS.get(token.type)
        if kind is None or token.map is None:
            continue
        first, last = token.map
        start, end = offset(first), offset(last)
        depth = int(token.tag[1]) if kind == "heading" else 0
        nodes.append(MarkdownNode(kind, start, end, depth))

        if kind == "heading":
            if token.markup.startswith("#"):
                marker = ATX_MARKER_RE.search(text, start, _line_content_end(text, starts, first))
                if marker:
                    protected.append((marker.start(), marker.end()))
            elif last - 1 > first:
                # Setext underline
                underline = last - 1
                protected.append((offset(underline), _line_content_end(text, starts, underline)))
        elif kind == "list_item":
            marker = LIST_MARKER_RE.match(text, start, _line_content_end(text, starts, first))
            if marker:
                protected.append((start, marker.end()))
        elif kind == "block_quote":
            for line in range(first, min(last, len(starts))):
                line_end = _line_content_end(text, starts, line)
                marker = QUOTE_MARKER_RE.match(text, starts[line], line_end)
                if marker and marker.end() > marker.start():
                    protected.append((marker.start(), marker.end()))
        elif kind == "thematic_break":
            protected.append((start, _line_content_end(text, starts, first)))
        elif kind == "code_fence":
            protected.append((start, _line_content_end(text, starts, first)))
            body_end = end
            closing = last - 1
            if closing > first and closing < len(starts):
                closing_end = _line_content_end(text, starts, closing)
                if FENCE_LINE_RE.match(text, starts[closing], closing_end):
                    protected.append((starts[closing], closing_end))
                    body_end = starts[closing]
            code_regions.append((offset(first + 1), body_end))
        elif kind == "code_block":
            code_regions.append((start, end))

    log.debug(
        "markdown.parsed",
        nodes=len(nodes),
        protected=len(protected),
        code_regions=len(code_regions),
    )
    return MarkdownStructure(
        nodes=nodes,
        protected=merge_spans(protected),
        code_regions=merge_spans(code_regions),
    )


def _inline_finder(code_regions: List[Tuple[int, int]]) -> Finder:
    def finder(text: str, pos: int, end: int) -> Iterator[int]:
        region = 0
        for match in INLINE_RE.finditer(text, pos, end):
            while region < len(code_regions) and code_regions[region][1] <= match.start():
                region += 1
            if region < len(code_regions) and code_regions[region][0] < match.end():
                continue
            yield match.start()
            yield match.end()

    return finder


def _code_break_offsets(text: str, code_regions: List[Tuple[int, int]]) -> List[int]:
    offsets: List[int] = []
    for start, end in code_regions:
        offsets.extend(match.end() for match in PARAGRAPH_BREAK_RE.finditer(text, start, end))
    return offsets


def markdown_finders(text: str, structure: MarkdownStructure) -> Dict[MarkdownLevel, Finder]:
    """Raw finders for every Markdown level that has its own boundaries."""
    finders: Dict[MarkdownLevel, Finder] = dict(text_finders(MarkdownLevel))
    finders[MarkdownLevel.INLINE] = _inline_finder(structure.code_regions)
    finders[MarkdownLevel.CODE_FENCE] = offsets_finder(
        _code_break_offsets(text, structure.code_regions)
    )
    finders[MarkdownLevel.TABLE_ROW] = offsets_finder(structure.starts("table_row"))
    finders[MarkdownLevel.BLOCK] = offsets_finder(
        structure.starts("paragraph", "code_fence", "code_block", "html", "table")
    )
    finders[MarkdownLevel.LIST_ITEM] = offsets_finder(structure.starts("list_item"))
    finders[MarkdownLevel.BLOCK_QUOTE] = offsets_finder(structure.starts("block_quote"))
    for depth in range(1, 7):
        finders[MarkdownLevel.heading(depth)] = offsets_finder(
            structure.starts("heading", depth=depth)
        )
    finders[MarkdownLevel.THEMATIC_BREAK] = offsets_finder(structure.starts("thematic_break"))
    return finders
