"""
Semantic level hierarchy.

Levels are ordered finest to coarsest. A boundary recognized at one level is
also a valid cut point at every finer level.
"""

from enum import IntEnum
from typing import Tuple, Type


class TextLevel(IntEnum):
    """Boundary granularities for plain text."""

    GRAPHEME = 0
    WORD = 1
    SENTENCE = 2
    LINE_BREAK = 3
    PARAGRAPH = 4


class MarkdownLevel(IntEnum):
    """Plain-text ladder with Markdown structure layered above it.

    CODE_FENCE cuts at blank lines inside fenced or indented code, TABLE_ROW
    before table rows; BLOCK and the coarser levels cut before the nodes they
    name.
    """

    GRAPHEME = 0
    WORD = 1
    SENTENCE = 2
    LINE_BREAK = 3
    INLINE = 4
    CODE_FENCE = 5
    TABLE_ROW = 6
    BLOCK = 7
    LIST_ITEM = 8
    BLOCK_QUOTE = 9
    HEADING_6 = 10
    HEADING_5 = 11
    HEADING_4 = 12
    HEADING_3 = 13
    HEADING_2 = 14
    HEADING_1 = 15
    THEMATIC_BREAK = 16
    DOCUMENT = 17

    @classmethod
    def heading(cls, depth: int) -> "MarkdownLevel":
        """Level for a heading of depth 1-6."""
        depth = min(max(depth, 1), 6)
        return cls(cls.HEADING_1 - (depth - 1))


def ladder(levels: Type[IntEnum]) -> Tuple[IntEnum, ...]:
    """All levels of a hierarchy, coarsest first."""
    return tuple(sorted(levels, reverse=True))
