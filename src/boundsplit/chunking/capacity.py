"""
Capacity model: the size constraint a chunk has to satisfy.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Tuple, Union


class Fit(IntEnum):
    """Verdict of a measurement against a capacity.

    Ordered so that ``fit <= Fit.WITHIN`` reads as "fits under max".
    """

    UNDER = -1  # fits under max, below an active minimum
    WITHIN = 0
    OVER = 1

    def is_fit(self) -> bool:
        return self is not Fit.OVER


@dataclass(frozen=True)
class ChunkCapacity:
    """Fixed maximum, or inclusive ``[min, max]`` range.

    Inverted ranges are normalized to ``[lesser, greater]`` instead of being
    rejected. Sizes must be non-negative.
    """

    max: int
    min: Optional[int] = None

    def __post_init__(self) -> None:
        if self.max < 0 or (self.min is not None and self.min < 0):
            raise ValueError(
                f"Capacity sizes must be non-negative, got max={self.max} min={self.min}"
            )
        if self.min is not None and self.min > self.max:
            lower, upper = self.max, self.min
            object.__setattr__(self, "min", lower)
            object.__setattr__(self, "max", upper)

    @classmethod
    def coerce(
        cls, value: Union["ChunkCapacity", int, Tuple[int, int]]
    ) -> "ChunkCapacity":
        """Build a capacity from an int, a ``(a, b)`` pair or a capacity."""
        if isinstance(value, ChunkCapacity):
            return value
        if isinstance(value, bool):
            raise TypeError("Capacity cannot be a bool")
        if isinstance(value, int):
            return cls(max=value)
        if isinstance(value, (tuple, list)) and len(value) == 2:
            a, b = int(value[0]), int(value[1])
            return cls(max=max(a, b), min=min(a, b))
        raise TypeError(
            f"Capacity must be an int, a (min, max) pair or ChunkCapacity, got {value!r}"
        )

    @property
    def is_range(self) -> bool:
        return self.min is not None

    def effective_max(self) -> int:
        return self.max

    def satisfies_min(self, value: int) -> bool:
        """True when ``value`` meets the lower bound (always for a fixed max)."""
        return self.min is None or value >= self.min

    def fits(self, value: int) -> Fit:
        if value > self.max:
            return Fit.OVER
        if not self.satisfies_min(value):
            return Fit.UNDER
        return Fit.WITHIN


@dataclass(frozen=True)
class ChunkSize:
    """Measured size of a span together with its verdict."""

    size: int
    fits: Fit

    @classmethod
    def from_size(cls, size: int, capacity: ChunkCapacity) -> "ChunkSize":
        return cls(size=size, fits=capacity.fits(size))
