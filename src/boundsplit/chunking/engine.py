"""
Chunk assembly engine.

For the unconsumed rest of the text, levels are tried coarsest first. At each
level the boundaries after the cursor are searched for the furthest one whose
prefix still fits the capacity; a level whose first segment is already too
large is skipped in favor of the next finer one.

The finest level is searched first: the first boundary it finds oversize bounds
the search at every coarser level, so long unbroken stretches are never
measured whole. The finest level always makes progress, emitting one grapheme
even when it alone exceeds the capacity.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Dict, List, Optional, Sequence, Tuple

from ..core.errors import SizerContractError
from ..core.logging import get_logger
from .boundaries import BoundaryIndex
from .capacity import ChunkCapacity, ChunkSize, Fit
from .sizers import ChunkSizer

log = get_logger(__name__)


class ChunkCursor:
    """One-shot iterator of ``(start, end)`` spans partitioning ``text``.

    Args:
        text: Text to partition
        capacity: Size constraint for every span
        sizer: Measures candidate spans
        index: Boundary scanner for ``text``
        levels: Semantic levels to try, coarsest first
    """

    def __init__(
        self,
        text: str,
        capacity: ChunkCapacity,
        sizer: ChunkSizer,
        index: BoundaryIndex,
        levels: Sequence[IntEnum],
    ):
        self.text = text
        self.capacity = capacity
        self.sizer = sizer
        self.index = index
        self.levels = tuple(levels)
        self.cursor = 0

    def __iter__(self) -> "ChunkCursor":
        return self

    def __next__(self) -> Tuple[int, int]:
        if self.cursor >= len(self.text):
            raise StopIteration
        start = self.cursor
        end = self._next_end(start)
        self.cursor = end
        return start, end

    def _measure(self, start: int, end: int, cache: Dict[int, ChunkSize]) -> ChunkSize:
        measured = cache.get(end)
        if measured is None:
            measured = self.sizer.chunk_size(self.text[start:end], self.capacity)
            size = getattr(measured, "size", None)
            if (
                isinstance(size, bool)
                or not isinstance(size, int)
                or size < 0
                or not isinstance(getattr(measured, "fits", None), Fit)
            ):
                raise SizerContractError(
                    f"{type(self.sizer).__name__} returned invalid measurement {measured!r}"
                )
            cache[end] = measured
        return measured

    def _next_end(self, start: int) -> int:
        cache: Dict[int, ChunkSize] = {}

        # The finest level bounds every cut: anything at or past its first
        # oversize boundary is oversize at every level
        end = self._furthest_fit(self.index.finest, start, cache, None)
        if end is None:
            end = next(self.index.iter_boundaries(self.index.finest, start))
            measured = self._measure(start, end, cache)
            log.debug(
                "split.oversize_grapheme",
                start=start,
                end=end,
                size=measured.size,
                max=self.capacity.max,
            )
            return end
        over = min((offset for offset, m in cache.items() if m.fits is Fit.OVER), default=None)
        if over is None:
            return end

        # Below the minimum at every level: the finest cut is the furthest
        fallback = end
        for level in self.levels:
            end = self._furthest_fit(level, start, cache, over)
            if end is None:
                continue
            if cache[end].fits is Fit.WITHIN or end == len(self.text):
                return end
        return fallback

    def _furthest_fit(
        self,
        level: IntEnum,
        start: int,
        cache: Dict[int, ChunkSize],
        over: Optional[int],
    ) -> Optional[int]:
        """Furthest boundary at ``level`` whose prefix fits, or None.

        Boundaries at or beyond ``over`` are known not to fit and are not
        measured.
        """
        source = self.index.iter_boundaries(level, start)
        bounds: List[int] = []

        def boundary(i: int) -> Optional[int]:
            while len(bounds) <= i:
                offset = next(source, None)
                if offset is None:
                    return None
                bounds.append(offset)
            return bounds[i]

        def fits(i: int) -> bool:
            if over is not None and bounds[i] >= over:
                return False
            return self._measure(start, bounds[i], cache).fits.is_fit()

        if boundary(0) is None or not fits(0):
            return None

        # Gallop to bracket the last fitting boundary, then bisect
        low, high = 0, None
        step = 1
        while high is None:
            ahead = low + step
            if boundary(ahead) is None:
                last = len(bounds) - 1
                if last == low:
                    return bounds[low]
                if fits(last):
                    return bounds[last]
                high = last
            elif fits(ahead):
                low = ahead
                step *= 2
            else:
                high = ahead

        while high - low > 1:
            mid = (low + high) // 2
            if fits(mid):
                low = mid
            else:
                high = mid
        return bounds[low]
