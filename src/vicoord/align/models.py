"""
Data models for alignments of one sequence to a model.

An alignment is held as a triple of equal-width lines: the aligned sequence,
the model (reference) line and an optional per-column confidence line.
Model positions that the sequence skips are gap characters in the sequence
line; sequence residues inserted relative to the model are gap characters
in the model line and are also listed as insert records.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from ..coords import CoordsSegment
from ..errors import InvariantViolationError
from ..seed.models import FlankSide

GAP_CHARS = frozenset("-.~")

# Confidence marker for seed columns, and filler for synthesized gap columns
CERTAIN = "*"
NO_CONFIDENCE = "."


def is_gap(char: str) -> bool:
    return char in GAP_CHARS


@dataclass(frozen=True)
class AlignmentTriple:
    """One aligned sequence with its model line and optional confidence line.

    Attributes:
        sequence_line: Aligned sequence, gaps as '-', '.' or '~'
        model_line: Model consensus/reference line, insert columns as gaps
        confidence_line: Per-column confidence (posterior probability)
            characters, or None if the aligner does not report them

    Raises:
        InvariantViolationError: If the lines differ in width
    """
    sequence_line: str
    model_line: str
    confidence_line: Optional[str] = None

    def __post_init__(self):
        widths = {len(self.sequence_line), len(self.model_line)}
        if self.confidence_line is not None:
            widths.add(len(self.confidence_line))
        if len(widths) != 1:
            raise InvariantViolationError(
                f"Alignment lines differ in width: sequence {len(self.sequence_line)}, "
                f"model {len(self.model_line)}, confidence "
                f"{len(self.confidence_line) if self.confidence_line is not None else '-'}"
            )

    def __len__(self) -> int:
        return len(self.sequence_line)

    @property
    def width(self) -> int:
        return len(self.sequence_line)

    def get_ungapped_sequence(self) -> str:
        """Return the aligned residues without gap characters."""
        return "".join(c for c in self.sequence_line if not is_gap(c))

    def get_ungapped_length(self) -> int:
        return len(self.get_ungapped_sequence())

    @property
    def model_length(self) -> int:
        """Number of model positions (non-gap model columns)."""
        return sum(1 for c in self.model_line if not is_gap(c))


@dataclass(frozen=True)
class InsertRecord:
    """Residues in the sequence that no model position accounts for.

    Attributes:
        model_pos: Model position the insert follows (0 = before position 1)
        seq_pos: Unaligned sequence position of the first inserted residue
        length: Number of inserted residues
    """
    model_pos: int
    seq_pos: int
    length: int

    def shifted(self, offset: int) -> "InsertRecord":
        """Same insert with its sequence position moved by ``offset``."""
        return InsertRecord(self.model_pos, self.seq_pos + offset, self.length)

    def __str__(self) -> str:
        return f"{self.model_pos}:{self.seq_pos}:{self.length}"


@dataclass(frozen=True)
class InsertMap:
    """Insert records of one alignment plus its first/last aligned model positions.

    Attributes:
        model_start: First model position aligned to a residue (spos)
        model_stop: Final model position aligned to a residue (epos)
        records: Inserts in sequence order
        seq_len: Length of the aligned sequence, if known
    """
    model_start: int
    model_stop: int
    records: Tuple[InsertRecord, ...] = ()
    seq_len: Optional[int] = None

    def insert_string(self) -> str:
        """Inserts as ``<mdlpos>:<uapos>:<len>;`` repeated."""
        return "".join(f"{rec};" for rec in self.records)

    @property
    def total_inserted(self) -> int:
        return sum(rec.length for rec in self.records)


@dataclass(frozen=True)
class FlankAlignment:
    """The accurate aligner's result for one flank subsequence.

    Attributes:
        side: FIVE_PRIME or THREE_PRIME
        triple: Alignment of the subsequence
        model_span: First..final model position aligned to a residue
        seq_span: The subsequence's position in the full sequence
        inserts: Insert records in subsequence coordinates (1 = first
            residue of the subsequence)
        model_line_start: Model position of the first non-gap model column
            of ``triple`` (1 for full-width aligner output)
    """
    side: FlankSide
    triple: AlignmentTriple
    model_span: CoordsSegment
    seq_span: CoordsSegment
    inserts: Tuple[InsertRecord, ...] = ()
    model_line_start: int = 1


@dataclass(frozen=True)
class SpliceFailure:
    """Why a flank alignment could not be joined to the seed.

    Attributes:
        side: Flank that failed
        reason: Human-readable cause
        expected_offset: Seed diagonal ``model_pos - seq_pos`` the flank must end on
        observed_offset: Diagonal found at the flank boundary, None if the
            boundary residue is not aligned to a model position
        flank_model_span: Model span of the flank alignment
        flank_seq_span: Sequence span of the flank subsequence
        seed_model_span: Model span of the seed
        seed_seq_span: Sequence span of the seed
    """
    side: FlankSide
    reason: str
    expected_offset: Optional[int]
    observed_offset: Optional[int]
    flank_model_span: CoordsSegment
    flank_seq_span: CoordsSegment
    seed_model_span: CoordsSegment
    seed_seq_span: CoordsSegment

    @property
    def message(self) -> str:
        label = "5'" if self.side == FlankSide.FIVE_PRIME else "3'"
        return (
            f"{label} aligned region (mdl:{self.flank_model_span}, seq:{self.flank_seq_span}) "
            f"unjoinable with seed (mdl:{self.seed_model_span.start}..{self.seed_model_span.stop}, "
            f"seq:{self.seed_seq_span.start}..{self.seed_seq_span.stop}): {self.reason}"
        )


@dataclass(frozen=True)
class JoinResult:
    """Outcome of splicing flanks and seed for one sequence.

    At most one of (``alignment`` and ``inserts``) or ``failures`` is set;
    neither is set when the join was not attempted.

    Attributes:
        alignment: Joined full-length alignment, None if unjoinable
        inserts: Insert map in full-sequence coordinates, None if unjoinable
        failures: SpliceFailures, one per flank that failed
    """
    alignment: Optional[AlignmentTriple] = None
    inserts: Optional[InsertMap] = None
    failures: Tuple[SpliceFailure, ...] = ()

    @property
    def is_joined(self) -> bool:
        return self.alignment is not None

    @property
    def failure_message(self) -> str:
        return "; ".join(failure.message for failure in self.failures)
