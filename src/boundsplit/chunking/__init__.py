"""
boundsplit chunking package

Semantic-boundary chunking with hard size caps: a level hierarchy from
graphemes up to Markdown sections, a pluggable sizer, and a lossless
partition of the input.
"""

from .capacity import ChunkCapacity, ChunkSize, Fit
from .levels import MarkdownLevel, TextLevel
from .sizers import (
    Bytes,
    CallableSizer,
    Characters,
    ChunkSizer,
    Graphemes,
    HuggingFaceSizer,
    TiktokenSizer,
    sizer_from_name,
)
from .splitter import Chunk, MarkdownSplitter, TextSplitter
from .verify import calculate_coverage, verify_partition

__all__ = [
    "Bytes",
    "CallableSizer",
    "Characters",
    "Chunk",
    "ChunkCapacity",
    "ChunkSize",
    "ChunkSizer",
    "Fit",
    "Graphemes",
    "HuggingFaceSizer",
    "MarkdownLevel",
    "MarkdownSplitter",
    "TextLevel",
    "TextSplitter",
    "TiktokenSizer",
    "calculate_coverage",
    "sizer_from_name",
    "verify_partition",
]
