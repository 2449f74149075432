"""boundsplit: split long text and Markdown into bounded, semantically coherent chunks."""

from .chunking import (
    Bytes,
    CallableSizer,
    Characters,
    Chunk,
    ChunkCapacity,
    ChunkSize,
    ChunkSizer,
    Fit,
    Graphemes,
    HuggingFaceSizer,
    MarkdownSplitter,
    TextSplitter,
    TiktokenSizer,
)

__version__ = "0.1.0"

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
    "MarkdownSplitter",
    "TextSplitter",
    "TiktokenSizer",
    "__version__",
]
