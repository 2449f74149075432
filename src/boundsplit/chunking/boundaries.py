"""
Boundary detection for each semantic level.

Raw finders recognize the cut points of a single level. ``BoundaryIndex``
memoizes them for one split call and merges a level with every coarser level,
since a cut that is acceptable at a coarse level is acceptable at a finer one.
"""

from __future__ import annotations

import heapq
from bisect import bisect_right
from enum import IntEnum
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Type

import regex

from .levels import TextLevel

Finder = Callable[[str, int, int], Iterator[int]]

GRAPHEME_RE = regex.compile(r"\X")
# Default Unicode word boundaries; whitespace stays attached to the word before it
WORD_BOUNDARY_RE = regex.compile(r"\b(?!\s)", flags=regex.WORD)
SENTENCE_END_RE = regex.compile(
    r"(?<![.!?…。！？])[.!?…。！？]+[\"'’”)\]]*(?:\s+|$)"
)
LINE_BREAK_RE = regex.compile(r"\r\n|\r|\n")
PARAGRAPH_BREAK_RE = regex.compile(r"(?:\r\n|\r|\n)(?:[ \t]*(?:\r\n|\r|\n))+")


def is_grapheme_edge(text: str, offset: int) -> bool:
    """True when ``offset`` does not fall inside a grapheme cluster."""
    if offset <= 0 or offset >= len(text):
        return True
    before, after = text[offset - 1], text[offset]
    if before < "\x80" and after < "\x80":
        return not (before == "\r" and after == "\n")

    window_start = max(0, offset - 16)
    for match in GRAPHEME_RE.finditer(text, window_start, min(len(text), offset + 16)):
        if match.start() < offset < match.end():
            return False
        if match.start() >= offset:
            break
    return True


def find_graphemes(text: str, pos: int, end: int) -> Iterator[int]:
    for match in GRAPHEME_RE.finditer(text, pos, end):
        yield match.end()


def find_words(text: str, pos: int, end: int) -> Iterator[int]:
    for match in WORD_BOUNDARY_RE.finditer(text, pos, end):
        yield match.start()


def _match_ends(pattern: regex.Pattern) -> Finder:
    def finder(text: str, pos: int, end: int) -> Iterator[int]:
        for match in pattern.finditer(text, pos, end):
            yield match.end()

    return finder


find_sentences = _match_ends(SENTENCE_END_RE)
find_line_breaks = _match_ends(LINE_BREAK_RE)
find_paragraphs = _match_ends(PARAGRAPH_BREAK_RE)

TEXT_FINDERS: Dict[str, Finder] = {
    "GRAPHEME": find_graphemes,
    "WORD": find_words,
    "SENTENCE": find_sentences,
    "LINE_BREAK": find_line_breaks,
    "PARAGRAPH": find_paragraphs,
}


def text_finders(levels: Type[IntEnum]) -> Dict[IntEnum, Finder]:
    """Generic text finders keyed by the matching members of ``levels``."""
    return {
        levels[name]: finder
        for name, finder in TEXT_FINDERS.items()
        if name in levels.__members__
    }


def offsets_finder(offsets: Sequence[int]) -> Finder:
    """Finder over precomputed, sorted offsets."""

    def finder(text: str, pos: int, end: int) -> Iterator[int]:
        for offset in offsets[bisect_right(offsets, pos) :]:
            if offset > end:
                return
            yield offset

    return finder


def merge_spans(spans: Sequence[Tuple[int, int]]) -> List[Tuple[int, int]]:
    """Sort spans and merge the ones that overlap or touch."""
    merged: List[Tuple[int, int]] = []
    for start, end in sorted(spans):
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


class _LevelScan:
    """Memoized scan of a single raw level over one text."""

    def __init__(self, finder: Finder, text: str, check_edges: bool):
        self._finder = finder
        self._text = text
        self._check_edges = check_edges
        self._found: List[int] = []
        self._iter: Optional[Iterator[int]] = None
        self._last = -1
        self._exhausted = False

    def _discard_through(self, cursor: int) -> None:
        passed = bisect_right(self._found, cursor)
        if passed:
            del self._found[:passed]
        if not self._found and not self._exhausted and self._last < cursor:
            # Nothing buffered and the scan is behind the cursor: resume there
            self._iter = self._finder(self._text, cursor, len(self._text))
            self._last = cursor

    def after(self, cursor: int) -> Iterator[int]:
        """Boundaries strictly after ``cursor``, in increasing order."""
        self._discard_through(cursor)
        index = 0
        while True:
            if index < len(self._found):
                yield self._found[index]
                index += 1
                continue
            if self._exhausted or self._iter is None:
                return
            offset = next(self._iter, None)
            if offset is None:
                self._exhausted = True
                return
            if offset <= self._last:
                continue
            self._last = offset
            if self._check_edges and not is_grapheme_edge(self._text, offset):
                continue
            self._found.append(offset)


class BoundaryIndex:
    """Lazy boundary scanner shared by all levels of one split call.

    ``finders`` maps each level that recognizes its own boundaries to a raw
    finder. ``protected`` spans hold syntax that no level above the finest may
    cut into: a boundary ``b`` is dropped when ``start < b <= end``.
    """

    def __init__(
        self,
        text: str,
        finders: Dict[IntEnum, Finder],
        protected: Sequence[Tuple[int, int]] = (),
    ):
        self.text = text
        self.finest = min(finders)
        self._scans = {
            level: _LevelScan(finder, text, check_edges=level != self.finest)
            for level, finder in sorted(finders.items(), reverse=True)
        }
        self._protected = merge_spans(protected)
        self._protected_starts = [start for start, _ in self._protected]

    def is_protected(self, offset: int) -> bool:
        i = bisect_right(self._protected_starts, offset - 1) - 1
        if i < 0:
            return False
        start, end = self._protected[i]
        return start < offset <= end

    def iter_boundaries(self, level: IntEnum, cursor: int) -> Iterator[int]:
        """Cut points at ``level`` after ``cursor``, ending with the text end."""
        end = len(self.text)
        if cursor >= end:
            return
        sources = [scan.after(cursor) for lvl, scan in self._scans.items() if lvl >= level]
        check_protected = level != self.finest and bool(self._protected)
        last = cursor
        for offset in heapq.merge(*sources):
            if offset >= end:
                break
            if offset <= last:
                continue
            if check_protected and self.is_protected(offset):
                continue
            last = offset
            yield offset
        yield end


def iter_boundaries(
    text: str, level: IntEnum = TextLevel.WORD, start: int = 0
) -> Iterator[int]:
    """Plain-text cut points at ``level`` for a whole string.

    A fresh scan each call; the sequence is not restartable in place.
    """
    index = BoundaryIndex(text, text_finders(type(level)))
    return index.iter_boundaries(level, start)
