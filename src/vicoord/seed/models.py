"""
Data models for seeds: indel tokens, ungapped segment pairs and flank requests.

A seed is the part of an approximate (fast) alignment that is trusted
verbatim. The sequence outside it is handed to an accurate aligner as
flank subsequences that overlap the seed by an overhang.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from ..coords import CoordsSegment, Strand, coords_length
from ..errors import InvariantViolationError


class IndelKind(Enum):
    """Kind of indel, keyed by the sign used in the token text."""
    INSERTION = "+"
    DELETION = "-"


class FlankSide(Enum):
    """Which part of a sequence a flank request covers."""
    FIVE_PRIME = "5p"
    THREE_PRIME = "3p"
    FULL = "full"


@dataclass(frozen=True)
class IndelToken:
    """One insertion or deletion reported by the approximate aligner.

    After sequence position ``seq_pos`` and model position ``model_pos``,
    ``length`` residues exist only in the sequence (insertion) or only in
    the model (deletion).

    Attributes:
        seq_pos: Sequence position the event follows
        model_pos: Model position the event follows
        length: Number of residues inserted or deleted
        kind: INSERTION or DELETION
    """
    seq_pos: int
    model_pos: int
    length: int
    kind: IndelKind

    def __str__(self) -> str:
        return f"Q{self.seq_pos}:S{self.model_pos}{self.kind.value}{self.length}"


@dataclass(frozen=True)
class UngappedSegmentPair:
    """An indel-free aligned block: a model segment and the sequence segment on it.

    Attributes:
        model_segment: Model positions of the block
        seq_segment: Sequence positions of the block

    Raises:
        InvariantViolationError: If the two segments differ in length
    """
    model_segment: CoordsSegment
    seq_segment: CoordsSegment

    def __post_init__(self):
        if self.model_segment.length != self.seq_segment.length:
            raise InvariantViolationError(
                f"Ungapped pair lengths differ: model {self.model_segment} "
                f"({self.model_segment.length}) vs sequence {self.seq_segment} "
                f"({self.seq_segment.length})"
            )

    @property
    def length(self) -> int:
        return self.seq_segment.length

    @property
    def diagonal(self) -> int:
        """Constant ``model_pos - seq_pos`` along the block."""
        return self.model_segment.start - self.seq_segment.start

    @classmethod
    def from_positions(
        cls, model_start: int, model_stop: int, seq_start: int, seq_stop: int
    ) -> "UngappedSegmentPair":
        """Build a plus-strand pair from raw start/stop positions."""
        return cls(
            CoordsSegment(model_start, model_stop, Strand.PLUS),
            CoordsSegment(seq_start, seq_stop, Strand.PLUS),
        )


@dataclass(frozen=True)
class Seed:
    """The trusted region of an alignment, one or more ordered ungapped pairs.

    With a single pair the seed is ungapped. With several, the gaps between
    consecutive pairs are insertions (sequence-only residues) and deletions
    (model-only positions).

    Attributes:
        pairs: Ungapped pairs in 5'->3' order
    """
    pairs: Tuple[UngappedSegmentPair, ...]

    def __post_init__(self):
        if not self.pairs:
            raise InvariantViolationError("A seed needs at least one ungapped pair")
        for prev, cur in zip(self.pairs, self.pairs[1:]):
            if (cur.seq_segment.start <= prev.seq_segment.stop
                    or cur.model_segment.start <= prev.model_segment.stop):
                raise InvariantViolationError(
                    f"Seed segments out of order or overlapping: "
                    f"seq {prev.seq_segment} -> {cur.seq_segment}, "
                    f"model {prev.model_segment} -> {cur.model_segment}"
                )

    @classmethod
    def from_pair(cls, pair: UngappedSegmentPair) -> "Seed":
        return cls((pair,))

    @property
    def seq_start(self) -> int:
        return self.pairs[0].seq_segment.start

    @property
    def seq_stop(self) -> int:
        return self.pairs[-1].seq_segment.stop

    @property
    def model_start(self) -> int:
        return self.pairs[0].model_segment.start

    @property
    def model_stop(self) -> int:
        return self.pairs[-1].model_segment.stop

    @property
    def seq_span(self) -> CoordsSegment:
        return CoordsSegment(self.seq_start, self.seq_stop, Strand.PLUS)

    @property
    def model_span(self) -> CoordsSegment:
        return CoordsSegment(self.model_start, self.model_stop, Strand.PLUS)

    @property
    def is_ungapped(self) -> bool:
        return len(self.pairs) == 1

    @property
    def seq_segments(self) -> Tuple[CoordsSegment, ...]:
        return tuple(pair.seq_segment for pair in self.pairs)

    @property
    def model_segments(self) -> Tuple[CoordsSegment, ...]:
        return tuple(pair.model_segment for pair in self.pairs)

    @property
    def model_coverage(self) -> int:
        """Number of model positions aligned to sequence residues."""
        return coords_length(self.model_segments)


@dataclass(frozen=True)
class FlankRequest:
    """A subsequence the accurate aligner still has to align.

    Attributes:
        seq_name: Name of the full sequence
        side: Which flank (or the whole sequence) this covers
        start: First sequence position of the subsequence (1-based)
        stop: Final sequence position of the subsequence
    """
    seq_name: str
    side: FlankSide
    start: int
    stop: int

    @property
    def name(self) -> str:
        """Subsequence name, ``<seq_name>/<start>-<stop>``."""
        return f"{self.seq_name}/{self.start}-{self.stop}"

    @property
    def length(self) -> int:
        return self.stop - self.start + 1

    @property
    def seq_span(self) -> CoordsSegment:
        return CoordsSegment(self.start, self.stop, Strand.PLUS)
