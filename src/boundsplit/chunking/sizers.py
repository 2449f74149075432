"""
Pluggable size measurement for chunk assembly.

Any object with a ``chunk_size(chunk, capacity)`` method satisfies the
``ChunkSizer`` protocol. Implementations must be pure functions of the chunk
text; the engine assumes sizes do not shrink as text is appended, which lets it
binary-search over boundaries.
"""

from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable

from ..core.errors import SizerContractError, SizerLoadError
from .boundaries import GRAPHEME_RE
from .capacity import ChunkCapacity, ChunkSize


@runtime_checkable
class ChunkSizer(Protocol):
    def chunk_size(self, chunk: str, capacity: ChunkCapacity) -> ChunkSize: ...


def _checked(size: Any, sizer: object) -> int:
    if isinstance(size, bool) or not isinstance(size, int) or size < 0:
        raise SizerContractError(
            f"{type(sizer).__name__} returned invalid size {size!r}"
        )
    return size


class Characters:
    """Counts characters (Unicode code points)."""

    def chunk_size(self, chunk: str, capacity: ChunkCapacity) -> ChunkSize:
        return ChunkSize.from_size(len(chunk), capacity)

    def __repr__(self) -> str:
        return "Characters()"


class Graphemes:
    """Counts user-perceived characters (extended grapheme clusters)."""

    def chunk_size(self, chunk: str, capacity: ChunkCapacity) -> ChunkSize:
        count = sum(1 for _ in GRAPHEME_RE.finditer(chunk))
        return ChunkSize.from_size(count, capacity)

    def __repr__(self) -> str:
        return "Graphemes()"


class Bytes:
    """Counts encoded bytes."""

    def __init__(self, encoding: str = "utf-8"):
        "".encode(encoding)  # fail early on unknown codecs
        self.encoding = encoding

    def chunk_size(self, chunk: str, capacity: ChunkCapacity) -> ChunkSize:
        return ChunkSize.from_size(len(chunk.encode(self.encoding)), capacity)

    def __repr__(self) -> str:
        return f"Bytes({self.encoding!r})"


class CallableSizer:
    """Adapts any ``str -> int`` function into a sizer."""

    def __init__(self, func: Callable[[str], int]):
        self.func = func

    def chunk_size(self, chunk: str, capacity: ChunkCapacity) -> ChunkSize:
        return ChunkSize.from_size(_checked(self.func(chunk), self), capacity)


class TiktokenSizer:
    """Counts tokens of a tiktoken encoding."""

    def __init__(self, encoding: Any):
        self.encoding = encoding

    @classmethod
    def from_name(cls, name: str = "cl100k_base") -> "TiktokenSizer":
        """Load an encoding by encoding name or, failing that, by model name."""
        try:
            import tiktoken
        except ImportError as e:
            raise SizerLoadError("tiktoken is not installed") from e

        try:
            return cls(tiktoken.get_encoding(name))
        except ValueError:
            pass  # not an encoding name; try it as a model name
        except Exception as e:
            raise SizerLoadError(f"Unable to load tiktoken encoding {name!r}: {e}") from e
        try:
            return cls(tiktoken.encoding_for_model(name))
        except Exception as e:
            raise SizerLoadError(f"Unable to load tiktoken encoding {name!r}: {e}") from e

    def chunk_size(self, chunk: str, capacity: ChunkCapacity) -> ChunkSize:
        tokens = self.encoding.encode(chunk, disallowed_special=())
        return ChunkSize.from_size(len(tokens), capacity)

    def __repr__(self) -> str:
        return f"TiktokenSizer({getattr(self.encoding, 'name', self.encoding)!r})"


class HuggingFaceSizer:
    """Counts tokens of a Hugging Face tokenizer, without special tokens.

    Accepts a ``tokenizers.Tokenizer`` or a ``transformers`` tokenizer; both
    expose ``encode``.
    """

    def __init__(self, tokenizer: Any):
        self.tokenizer = tokenizer

    @classmethod
    def from_pretrained(cls, name: str) -> "HuggingFaceSizer":
        try:
            from tokenizers import Tokenizer
        except ImportError as e:
            raise SizerLoadError(
                "tokenizers is not installed; install boundsplit[huggingface]"
            ) from e

        try:
            return cls(Tokenizer.from_pretrained(name))
        except Exception as e:
            raise SizerLoadError(f"Unable to load tokenizer {name!r}: {e}") from e

    def chunk_size(self, chunk: str, capacity: ChunkCapacity) -> ChunkSize:
        encoded = self.tokenizer.encode(chunk, add_special_tokens=False)
        ids = getattr(encoded, "ids", encoded)
        return ChunkSize.from_size(len(ids), capacity)


SIZER_KINDS = ("characters", "graphemes", "bytes", "tiktoken", "huggingface")


def sizer_from_name(kind: str, model: str = "cl100k_base") -> ChunkSizer:
    """Build a sizer from its configuration name."""
    kind = kind.lower()
    if kind == "characters":
        return Characters()
    if kind == "graphemes":
        return Graphemes()
    if kind == "bytes":
        return Bytes()
    if kind == "tiktoken":
        return TiktokenSizer.from_name(model)
    if kind == "huggingface":
        return HuggingFaceSizer.from_pretrained(model)
    raise SizerLoadError(
        f"Unknown sizer {kind!r}; expected one of: {', '.join(SIZER_KINDS)}"
    )
