"""
Public splitting API.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Iterator, NamedTuple, Optional, Tuple, Type, Union

from .boundaries import BoundaryIndex, text_finders
from .capacity import ChunkCapacity
from .engine import ChunkCursor
from .levels import MarkdownLevel, TextLevel, ladder
from .markdown import markdown_finders, parse_markdown
from .sizers import Characters, ChunkSizer

CapacityLike = Union[ChunkCapacity, int, Tuple[int, int]]


class Chunk(NamedTuple):
    """A chunk of the source text; ``text == source[start:end]``."""

    start: int
    end: int
    text: str


def trim_chunk(chunk: Chunk, keep_indent: bool = False) -> Optional[Chunk]:
    """Strip boundary whitespace; None when nothing but whitespace remains.

    With ``keep_indent`` only whole leading blank lines are removed, so the
    indentation of the first line survives.
    """
    text = chunk.text
    stripped = text.lstrip()
    if not stripped:
        return None
    lead = len(text) - len(stripped)
    if keep_indent:
        newline = max(text.rfind("\n", 0, lead), text.rfind("\r", 0, lead))
        lead = newline + 1
    text = text[lead:].rstrip()
    start = chunk.start + lead
    return Chunk(start, start + len(text), text)


class TextSplitter:
    """Splits plain text into chunks bounded by a capacity.

    The configuration (sizer, trim flag) is fixed at construction and can be
    shared across calls. Sharing a splitter between threads is safe when the
    sizer is.
    """

    levels: Type[IntEnum] = TextLevel

    def __init__(self, sizer: Optional[ChunkSizer] = None, trim: bool = False):
        self._sizer = sizer if sizer is not None else Characters()
        self._trim = bool(trim)

    @property
    def sizer(self) -> ChunkSizer:
        return self._sizer

    @property
    def trim(self) -> bool:
        return self._trim

    def with_trim(self, trim: bool = True) -> "TextSplitter":
        """Copy of this splitter with trimming switched on or off."""
        return type(self)(self._sizer, trim=trim)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(sizer={self._sizer!r}, trim={self._trim})"

    def _boundary_index(self, text: str) -> BoundaryIndex:
        return BoundaryIndex(text, text_finders(self.levels))

    def _trim_chunk(self, chunk: Chunk) -> Optional[Chunk]:
        return trim_chunk(chunk)

    def chunk_spans(self, text: str, capacity: CapacityLike) -> Iterator[Chunk]:
        """Lazily yield ``Chunk`` spans covering ``text`` in order."""
        capacity = ChunkCapacity.coerce(capacity)
        cursor = ChunkCursor(
            text,
            capacity,
            self._sizer,
            self._boundary_index(text),
            ladder(self.levels),
        )
        for start, end in cursor:
            chunk: Optional[Chunk] = Chunk(start, end, text[start:end])
            if self._trim:
                chunk = self._trim_chunk(chunk)
                if chunk is None:
                    continue
            yield chunk

    def chunks(self, text: str, capacity: CapacityLike) -> Iterator[str]:
        """Lazily yield chunk texts."""
        for chunk in self.chunk_spans(text, capacity):
            yield chunk.text

    def chunk_indices(self, text: str, capacity: CapacityLike) -> Iterator[Tuple[int, str]]:
        """Lazily yield ``(start offset, chunk text)`` pairs."""
        for chunk in self.chunk_spans(text, capacity):
            yield chunk.start, chunk.text


class MarkdownSplitter(TextSplitter):
    """Splits CommonMark documents, preferring block structure boundaries.

    Whole structural nodes are kept together when they fit; an oversize node is
    subdivided with the plain-text ladder. Heading, list, block-quote and fence
    markers are only cut into when a single grapheme is all that fits.
    """

    levels = MarkdownLevel

    def _boundary_index(self, text: str) -> BoundaryIndex:
        structure = parse_markdown(text)
        return BoundaryIndex(
            text, markdown_finders(text, structure), protected=structure.protected
        )

    def _trim_chunk(self, chunk: Chunk) -> Optional[Chunk]:
        return trim_chunk(chunk, keep_indent=True)
