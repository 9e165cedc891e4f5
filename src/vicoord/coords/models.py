"""
Data models for genome coordinates.

A coordinate segment is a closed, 1-based interval with a strand. Segments
keep their biological 5'->3' orientation: on the plus strand ``start <= stop``,
on the minus strand ``start >= stop``. Algebraic operations work on the
canonical ``(low, high)`` view.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from ..errors import MalformedCoordinatesError


class Strand(Enum):
    """Strand of a segment or, for MIXED, of a multi-segment feature."""
    PLUS = "+"
    MINUS = "-"
    UNCERTAIN = "?"
    MIXED = "!"


@dataclass(frozen=True)
class CoordsSegment:
    """A single contiguous stretch of positions on one strand.

    Attributes:
        start: 5'-most position (1-based)
        stop: 3'-most position (1-based)
        strand: Strand of the segment

    Raises:
        MalformedCoordinatesError: If a position is < 1, the orientation
            contradicts the strand, or the strand is MIXED
    """
    start: int
    stop: int
    strand: Strand = Strand.PLUS

    def __post_init__(self):
        if self.start < 1 or self.stop < 1:
            raise MalformedCoordinatesError(
                f"Positions must be >= 1, got {self.start}..{self.stop}"
            )
        if self.strand == Strand.MIXED:
            raise MalformedCoordinatesError("A single segment cannot have mixed strand")
        if self.strand == Strand.PLUS and self.start > self.stop:
            raise MalformedCoordinatesError(
                f"Plus strand segment has start > stop: {self.start}..{self.stop}"
            )
        if self.strand == Strand.MINUS and self.start < self.stop:
            raise MalformedCoordinatesError(
                f"Minus strand segment has start < stop: {self.start}..{self.stop}"
            )

    @property
    def low(self) -> int:
        """Smaller of the two endpoints."""
        return min(self.start, self.stop)

    @property
    def high(self) -> int:
        """Larger of the two endpoints."""
        return max(self.start, self.stop)

    @property
    def bounds(self) -> Tuple[int, int]:
        """Canonical ``(low, high)`` pair."""
        return self.low, self.high

    @property
    def length(self) -> int:
        """Number of positions covered."""
        return abs(self.start - self.stop) + 1

    def __len__(self) -> int:
        return self.length

    def __str__(self) -> str:
        return f"{self.start}..{self.stop}:{self.strand.value}"


# 5'->3' ordered list of segments making up one feature or alignment span
CoordsString = List[CoordsSegment]
