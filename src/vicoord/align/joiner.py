"""
Splicing of flank alignments and a seed into one full-length alignment.

The seed is trusted verbatim. The accurate aligner realigned the 5' and 3'
flank subsequences, each overlapping the seed by an overhang. A flank can be
joined only if its boundary residue (the last residue of the 5' flank, the
first residue of the 3' flank) sits on the seed's diagonal, i.e.
``model_pos - seq_pos`` at the boundary equals the seed's offset. The joined
alignment then takes:

    5' flank up to its boundary | seed residues between the flanks | 3' flank from its boundary

A side without a flank (the seed reaches that end of the sequence) is
filled with the uncovered model consensus against sequence gaps.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from ..errors import InvariantViolationError
from ..seed.models import FlankSide, Seed
from .models import (
    CERTAIN,
    NO_CONFIDENCE,
    AlignmentTriple,
    FlankAlignment,
    InsertMap,
    InsertRecord,
    JoinResult,
    SpliceFailure,
    is_gap,
)

logger = logging.getLogger(__name__)


@dataclass
class _Columns:
    """Mutable column buffers used while assembling an alignment."""
    seq: List[str]
    model: List[str]
    conf: List[str]

    @classmethod
    def empty(cls) -> "_Columns":
        return cls([], [], [])

    def extend(self, seq: Sequence[str], model: Sequence[str], conf: Sequence[str]) -> None:
        self.seq.extend(seq)
        self.model.extend(model)
        self.conf.extend(conf)

    def gap_run(self, consensus_span: str) -> None:
        """Append model positions that no residue aligns to."""
        n = len(consensus_span)
        self.extend("-" * n, consensus_span, NO_CONFIDENCE * n)


@dataclass(frozen=True)
class _Boundary:
    column: int
    seq_pos: int
    model_pos: Optional[int]

    @property
    def offset(self) -> Optional[int]:
        if self.model_pos is None:
            return None
        return self.model_pos - self.seq_pos


def _drop_empty_columns(triple: AlignmentTriple) -> AlignmentTriple:
    """Remove columns that are gaps in both the sequence and model lines."""
    keep = [
        i for i, (s, m) in enumerate(zip(triple.sequence_line, triple.model_line))
        if not (is_gap(s) and is_gap(m))
    ]
    if len(keep) == triple.width:
        return triple
    conf = triple.confidence_line
    return AlignmentTriple(
        "".join(triple.sequence_line[i] for i in keep),
        "".join(triple.model_line[i] for i in keep),
        "".join(conf[i] for i in keep) if conf is not None else None,
    )


def _residue_columns(flank: FlankAlignment, triple: AlignmentTriple) -> List[_Boundary]:
    """Every residue column of a flank with its full-sequence and model positions."""
    boundaries = []
    model_pos = flank.model_line_start - 1
    seq_pos = flank.seq_span.start - 1
    for col, (s, m) in enumerate(zip(triple.sequence_line, triple.model_line)):
        model_gap = is_gap(m)
        if not model_gap:
            model_pos += 1
        if not is_gap(s):
            seq_pos += 1
            boundaries.append(_Boundary(col, seq_pos, None if model_gap else model_pos))
    return boundaries


def _check_preconditions(
    seed: Seed,
    seed_sequence: str,
    consensus: str,
    seq_len: int,
    five_prime: Optional[FlankAlignment],
    three_prime: Optional[FlankAlignment],
) -> None:
    if len(seed_sequence) != seed.seq_stop - seed.seq_start + 1:
        raise InvariantViolationError(
            f"Seed sequence has {len(seed_sequence)} residues but the seed spans "
            f"{seed.seq_start}..{seed.seq_stop}"
        )
    if seed.seq_stop > seq_len or seed.model_stop > len(consensus):
        raise InvariantViolationError(
            f"Seed (mdl:{seed.model_start}..{seed.model_stop}, seq:{seed.seq_start}..{seed.seq_stop}) "
            f"exceeds model length {len(consensus)} or sequence length {seq_len}"
        )
    if (five_prime is not None) == (seed.seq_start == 1):
        raise InvariantViolationError(
            f"Seed starts at sequence position {seed.seq_start} but a 5' flank is "
            f"{'present' if five_prime is not None else 'missing'}"
        )
    if (three_prime is not None) == (seed.seq_stop == seq_len):
        raise InvariantViolationError(
            f"Seed ends at sequence position {seed.seq_stop} of {seq_len} but a 3' flank is "
            f"{'present' if three_prime is not None else 'missing'}"
        )

    for flank in (five_prime, three_prime):
        if flank is None:
            continue
        ungapped = flank.triple.get_ungapped_length()
        if ungapped != flank.seq_span.length:
            raise InvariantViolationError(
                f"Flank alignment has {ungapped} residues but its subsequence "
                f"{flank.seq_span} has {flank.seq_span.length}"
            )

    if five_prime is not None:
        span = five_prime.seq_span
        if span.start != 1 or not seed.seq_start <= span.stop <= seed.seq_stop:
            raise InvariantViolationError(
                f"5' flank {span} must start at 1 and overlap seed "
                f"{seed.seq_start}..{seed.seq_stop}"
            )
    if three_prime is not None:
        span = three_prime.seq_span
        if span.stop != seq_len or not seed.seq_start <= span.start <= seed.seq_stop:
            raise InvariantViolationError(
                f"3' flank {span} must end at {seq_len} and overlap seed "
                f"{seed.seq_start}..{seed.seq_stop}"
            )
    if five_prime is not None and three_prime is not None:
        if five_prime.seq_span.stop >= three_prime.seq_span.start:
            raise InvariantViolationError(
                f"5' flank {five_prime.seq_span} and 3' flank {three_prime.seq_span} overlap"
            )


def _seed_columns(
    seed: Seed, seed_sequence: str, consensus: str
) -> Tuple[_Columns, List[InsertRecord]]:
    """Columns of the seed alone, plus the inserts between its blocks."""
    cols = _Columns.empty()
    inserts: List[InsertRecord] = []
    seq_offset = seed.seq_start

    def residues(start: int, stop: int) -> str:
        return seed_sequence[start - seq_offset:stop - seq_offset + 1]

    for i, pair in enumerate(seed.pairs):
        if i > 0:
            prev = seed.pairs[i - 1]
            ins_len = pair.seq_segment.start - prev.seq_segment.stop - 1
            del_len = pair.model_segment.start - prev.model_segment.stop - 1
            if ins_len > 0:
                cols.extend(
                    residues(prev.seq_segment.stop + 1, pair.seq_segment.start - 1),
                    "." * ins_len,
                    CERTAIN * ins_len,
                )
                inserts.append(InsertRecord(prev.model_segment.stop, prev.seq_segment.stop + 1, ins_len))
            if del_len > 0:
                cols.gap_run(consensus[prev.model_segment.stop:pair.model_segment.start - 1])
        seg_seq, seg_model = pair.seq_segment, pair.model_segment
        cols.extend(
            residues(seg_seq.start, seg_seq.stop),
            consensus[seg_model.start - 1:seg_model.stop],
            CERTAIN * pair.length,
        )
    return cols, inserts


def _failure(
    side: FlankSide,
    flank: FlankAlignment,
    seed: Seed,
    reason: str,
    expected: Optional[int],
    observed: Optional[int],
) -> SpliceFailure:
    return SpliceFailure(
        side=side,
        reason=reason,
        expected_offset=expected,
        observed_offset=observed,
        flank_model_span=flank.model_span,
        flank_seq_span=flank.seq_span,
        seed_model_span=seed.model_span,
        seed_seq_span=seed.seq_span,
    )


def _check_boundary(
    side: FlankSide, flank: FlankAlignment, boundary: _Boundary, expected: int, seed: Seed
) -> Optional[SpliceFailure]:
    if boundary.model_pos is None:
        return _failure(
            side, flank, seed,
            f"boundary residue {boundary.seq_pos} is not aligned to a model position",
            expected, None,
        )
    if boundary.offset != expected:
        return _failure(
            side, flank, seed,
            f"boundary (mdl:{boundary.model_pos}, seq:{boundary.seq_pos}) is on diagonal "
            f"{boundary.offset}, seed diagonal is {expected}",
            expected, boundary.offset,
        )
    return None


def join_alignments(
    seed: Seed,
    seed_sequence: str,
    consensus: str,
    seq_len: int,
    five_prime: Optional[FlankAlignment] = None,
    three_prime: Optional[FlankAlignment] = None,
) -> JoinResult:
    """Splice flank alignments and a seed into one alignment of the whole sequence.

    Args:
        seed: The trusted seed
        seed_sequence: Raw residues of the seed's sequence span
        consensus: Full model consensus; its length is the model length
        seq_len: Length of the full sequence
        five_prime: Alignment of the 5' flank, required iff the seed does not
            start at sequence position 1
        three_prime: Alignment of the 3' flank, required iff the seed does
            not end at ``seq_len``

    Returns:
        JoinResult with the joined alignment and rebased inserts, or with a
        SpliceFailure for each flank that does not meet the seed's diagonal

    Raises:
        InvariantViolationError: If the inputs are inconsistent with each
            other or the joined alignment fails its post-conditions
    """
    model_len = len(consensus)
    _check_preconditions(seed, seed_sequence, consensus, seq_len, five_prime, three_prime)

    diag_5p = seed.model_start - seed.seq_start
    diag_3p = seed.model_stop - seed.seq_stop

    failures: List[SpliceFailure] = []
    triple_5p = triple_3p = None
    boundary_5p = boundary_3p = None

    if five_prime is not None:
        triple_5p = _drop_empty_columns(five_prime.triple)
        boundary_5p = _residue_columns(five_prime, triple_5p)[-1]
        failure = _check_boundary(FlankSide.FIVE_PRIME, five_prime, boundary_5p, diag_5p, seed)
        if failure is None and five_prime.seq_span.stop - seed.seq_start + 1 > seed.pairs[0].length:
            failure = _failure(
                FlankSide.FIVE_PRIME, five_prime, seed,
                "overhang extends past the first ungapped seed block",
                diag_5p, boundary_5p.offset,
            )
        if failure is not None:
            failures.append(failure)

    if three_prime is not None:
        triple_3p = _drop_empty_columns(three_prime.triple)
        boundary_3p = _residue_columns(three_prime, triple_3p)[0]
        failure = _check_boundary(FlankSide.THREE_PRIME, three_prime, boundary_3p, diag_3p, seed)
        if failure is None and seed.seq_stop - three_prime.seq_span.start + 1 > seed.pairs[-1].length:
            failure = _failure(
                FlankSide.THREE_PRIME, three_prime, seed,
                "overhang extends past the final ungapped seed block",
                diag_3p, boundary_3p.offset,
            )
        if failure is not None:
            failures.append(failure)

    if failures:
        for failure in failures:
            logger.debug(failure.message)
        return JoinResult(failures=tuple(failures))

    joined = _Columns.empty()
    inserts: List[InsertRecord] = []
    with_confidence = all(
        flank.triple.confidence_line is not None
        for flank in (five_prime, three_prime) if flank is not None
    )

    # 5' piece
    trim_5p = 0
    if five_prime is not None:
        joined.gap_run(consensus[:five_prime.model_line_start - 1])
        end = boundary_5p.column + 1
        conf = triple_5p.confidence_line or NO_CONFIDENCE * triple_5p.width
        joined.extend(triple_5p.sequence_line[:end], triple_5p.model_line[:end], conf[:end])
        offset = five_prime.seq_span.start - 1
        inserts.extend(rec.shifted(offset) for rec in five_prime.inserts)
        trim_5p = five_prime.seq_span.stop - seed.seq_start + 1
    else:
        joined.gap_run(consensus[:seed.model_start - 1])

    # Seed piece, minus the residues the flanks already aligned
    seed_cols, seed_inserts = _seed_columns(seed, seed_sequence, consensus)
    trim_3p = seed.seq_stop - three_prime.seq_span.start + 1 if three_prime is not None else 0
    stop = len(seed_cols.seq) - trim_3p
    joined.extend(seed_cols.seq[trim_5p:stop], seed_cols.model[trim_5p:stop], seed_cols.conf[trim_5p:stop])
    inserts.extend(seed_inserts)

    # 3' piece
    if three_prime is not None:
        start = boundary_3p.column
        conf = triple_3p.confidence_line or NO_CONFIDENCE * triple_3p.width
        joined.extend(triple_3p.sequence_line[start:], triple_3p.model_line[start:], conf[start:])
        last_model_pos = boundary_3p.model_pos - 1 + sum(
            1 for m in triple_3p.model_line[start:] if not is_gap(m)
        )
        joined.gap_run(consensus[last_model_pos:])
        offset = three_prime.seq_span.start - 1
        inserts.extend(rec.shifted(offset) for rec in three_prime.inserts)
    else:
        joined.gap_run(consensus[seed.model_stop:])

    alignment = AlignmentTriple(
        "".join(joined.seq),
        "".join(joined.model),
        "".join(joined.conf) if with_confidence else None,
    )
    if alignment.get_ungapped_length() != seq_len:
        raise InvariantViolationError(
            f"Joined alignment has {alignment.get_ungapped_length()} residues, expected {seq_len}"
        )
    if alignment.model_length != model_len:
        raise InvariantViolationError(
            f"Joined alignment covers {alignment.model_length} model positions, expected {model_len}"
        )

    insert_map = InsertMap(
        model_start=five_prime.model_span.start if five_prime is not None else seed.model_start,
        model_stop=three_prime.model_span.stop if three_prime is not None else seed.model_stop,
        records=tuple(sorted(inserts, key=lambda rec: rec.seq_pos)),
        seq_len=seq_len,
    )
    return JoinResult(alignment=alignment, inserts=insert_map)
