"""
Decomposition of an approximate alignment into ungapped aligned blocks,
and selection of the seed from those blocks.
"""

import logging
import re
from typing import List, Optional, Sequence

from ..coords import CoordsSegment, Strand, overlap_interval
from ..errors import InvariantViolationError, MalformedIndelTokenError
from .models import IndelKind, IndelToken, Seed, UngappedSegmentPair

logger = logging.getLogger(__name__)

_CIGAR_RE = re.compile(r"^(\d+[MIDSH])+$")
_CIGAR_OP_RE = re.compile(r"(\d+)([MIDSH])")


def _make_pair(
    model_start: int,
    model_stop: int,
    seq_start: int,
    seq_stop: int,
    breakpoint: Optional[IndelToken],
) -> UngappedSegmentPair:
    model_len = model_stop - model_start + 1
    seq_len = seq_stop - seq_start + 1
    where = f"before {breakpoint}" if breakpoint is not None else "at alignment end"
    if model_len != seq_len:
        raise InvariantViolationError(
            f"Ungapped block {where} has model length {model_len} "
            f"({model_start}..{model_stop}) but sequence length {seq_len} "
            f"({seq_start}..{seq_stop})"
        )
    if seq_len < 1:
        raise InvariantViolationError(
            f"Empty or inverted ungapped block {where}: "
            f"model {model_start}..{model_stop}, sequence {seq_start}..{seq_stop}"
        )
    return UngappedSegmentPair.from_positions(model_start, model_stop, seq_start, seq_stop)


def find_ungapped_regions(
    model_span: CoordsSegment,
    seq_span: CoordsSegment,
    insertions: Sequence[IndelToken],
    deletions: Sequence[IndelToken],
) -> List[UngappedSegmentPair]:
    """Split an aligned span into its ungapped blocks.

    Insertion and deletion tokens are merged into one stream ordered by
    ``(seq_pos, model_pos)`` and walked left to right. Between consecutive
    breakpoints one block is emitted; an insertion then moves the sequence
    cursor past the inserted residues, a deletion moves the model cursor past
    the deleted positions.

    Args:
        model_span: Aligned model positions (plus strand)
        seq_span: Aligned sequence positions (plus strand)
        insertions: Insertion tokens, any order
        deletions: Deletion tokens, any order

    Returns:
        Ungapped pairs in 5'->3' order covering the whole span

    Raises:
        InvariantViolationError: If a span is not on the plus strand, two
            tokens share both positions, or a block's model and sequence
            lengths disagree
    """
    if model_span.strand != Strand.PLUS or seq_span.strand != Strand.PLUS:
        raise InvariantViolationError(
            f"Ungapped regions need plus strand spans, got model {model_span} "
            f"and sequence {seq_span}"
        )

    tokens = sorted(
        list(insertions) + list(deletions),
        key=lambda tok: (tok.seq_pos, tok.model_pos),
    )
    for prev, cur in zip(tokens, tokens[1:]):
        if (prev.seq_pos, prev.model_pos) == (cur.seq_pos, cur.model_pos):
            raise InvariantViolationError(
                f"Indel tokens {prev} and {cur} occur at the same position"
            )

    pairs: List[UngappedSegmentPair] = []
    cur_model = model_span.start
    cur_seq = seq_span.start
    for tok in tokens:
        pairs.append(_make_pair(cur_model, tok.model_pos, cur_seq, tok.seq_pos, tok))
        if tok.kind == IndelKind.INSERTION:
            cur_model = tok.model_pos + 1
            cur_seq = tok.seq_pos + tok.length + 1
        else:
            cur_model = tok.model_pos + tok.length + 1
            cur_seq = tok.seq_pos + 1

    pairs.append(_make_pair(cur_model, model_span.stop, cur_seq, seq_span.stop, None))
    return pairs


def argmax_by_length(pairs: Sequence[UngappedSegmentPair]) -> UngappedSegmentPair:
    """Longest pair by sequence length; the first one wins ties."""
    if not pairs:
        raise InvariantViolationError("No ungapped pairs to choose a seed from")
    best = pairs[0]
    for pair in pairs[1:]:
        if pair.length > best.length:
            best = pair
    return best


def pairs_from_cigar(cigar: str, model_start: int) -> List[UngappedSegmentPair]:
    """Ungapped pairs of a minimap2-style CIGAR alignment.

    The query (sequence) is assumed to start at position 1 and the reference
    (model) at ``model_start``. ``M`` blocks become pairs, ``I``, ``S`` and
    ``H`` consume sequence, ``D`` consumes model.

    Raises:
        MalformedIndelTokenError: If the CIGAR is malformed, has zero-length
            operations, has clipping anywhere but the ends, or aligns nothing
    """
    if not _CIGAR_RE.match(cigar):
        raise MalformedIndelTokenError(f"Unable to parse CIGAR string: {cigar!r}")

    ops = [(int(n), op) for n, op in _CIGAR_OP_RE.findall(cigar)]
    pairs: List[UngappedSegmentPair] = []
    cur_model = model_start
    cur_seq = 1
    for i, (op_len, op) in enumerate(ops):
        if op_len == 0:
            raise MalformedIndelTokenError(f"Zero-length operation in CIGAR: {cigar}")
        if op in "SH" and 0 < i < len(ops) - 1:
            raise MalformedIndelTokenError(
                f"Clipping not at the beginning or end of CIGAR: {cigar}"
            )
        if op == "M":
            pairs.append(UngappedSegmentPair.from_positions(
                cur_model, cur_model + op_len - 1, cur_seq, cur_seq + op_len - 1
            ))
            cur_model += op_len
            cur_seq += op_len
        elif op == "D":
            cur_model += op_len
        else:
            cur_seq += op_len

    if not pairs:
        raise MalformedIndelTokenError(f"CIGAR has no aligned block: {cigar}")
    return pairs


def prune_short_segments(
    pairs: Sequence[UngappedSegmentPair], min_len: int
) -> List[UngappedSegmentPair]:
    """Keep the longest pair and its contiguous neighbours of length >= ``min_len``."""
    if not pairs:
        return []
    best = argmax_by_length(pairs)
    best_idx = list(pairs).index(best)
    too_short = [pair.length < min_len for pair in pairs]
    if not any(too_short):
        return list(pairs)

    first = best_idx
    for i in range(best_idx - 1, -1, -1):
        if too_short[i]:
            break
        first = i
    last = best_idx
    for i in range(best_idx + 1, len(pairs)):
        if too_short[i]:
            break
        last = i
    return list(pairs[first:last + 1])


def prune_terminal_short_segments(
    pairs: Sequence[UngappedSegmentPair],
    min_len: float,
    seq_len: int,
    model_len: int,
) -> List[UngappedSegmentPair]:
    """Drop short pairs at seed ends that will be realigned as flanks anyway.

    Only an end that does not reach the sequence end is pruned. When the
    seed already reaches the model end on that side, the threshold for the
    outermost pair grows by twice the number of unaligned sequence residues
    beyond it.

    Returns:
        Remaining pairs; may be empty
    """
    pairs = list(pairs)
    if not pairs:
        return pairs
    seq_start = pairs[0].seq_segment.start
    seq_stop = pairs[-1].seq_segment.stop
    model_start = pairs[0].model_segment.start
    model_stop = pairs[-1].model_segment.stop

    if seq_start > 1:
        nremove = 0
        for i, pair in enumerate(pairs):
            threshold = min_len
            if i == 0 and model_start == 1:
                threshold += 2 * (seq_start - 1)
            if pair.length < threshold:
                nremove += 1
            else:
                break
        pairs = pairs[nremove:]

    if seq_stop < seq_len:
        nremove = 0
        last = len(pairs) - 1
        for i in range(last, -1, -1):
            threshold = min_len
            if i == last and model_stop == model_len:
                threshold += 2 * (seq_len - seq_stop)
            if pairs[i].length < threshold:
                nremove += 1
            else:
                break
        pairs = pairs[:len(pairs) - nremove]

    return pairs


def gaps_overlap_codons(
    pairs: Sequence[UngappedSegmentPair], codon_segments: Sequence[CoordsSegment]
) -> bool:
    """Whether a model gap between consecutive pairs overlaps any codon."""
    for prev, cur in zip(pairs, pairs[1:]):
        gap_start = prev.model_segment.stop + 1
        gap_stop = cur.model_segment.start - 1
        if gap_stop < gap_start:
            continue
        for codon in codon_segments:
            if overlap_interval(gap_start, gap_stop, codon.low, codon.high)[0] > 0:
                return True
    return False


def select_seed(
    pairs: Sequence[UngappedSegmentPair],
    mode: str = "ungapped",
    min_segment_length: int = 10,
    terminal_segment_length: float = 120.0,
    seq_len: Optional[int] = None,
    model_len: Optional[int] = None,
    codon_segments: Sequence[CoordsSegment] = (),
    check_codon_gaps: bool = True,
) -> Seed:
    """Choose the seed from an alignment's ungapped pairs.

    In "ungapped" mode the seed is the longest pair. In "gapped" mode short
    interior pairs and short terminal pairs are pruned and the remaining
    run is kept, unless a model gap touches a start or stop codon, in which
    case the longest pair is used so the codon gets realigned.

    Args:
        pairs: Ungapped pairs of the alignment, 5'->3'
        mode: "ungapped" or "gapped"
        min_segment_length: Interior pruning threshold (gapped mode)
        terminal_segment_length: Terminal pruning threshold (gapped mode)
        seq_len: Sequence length (required in gapped mode)
        model_len: Model length (required in gapped mode)
        codon_segments: Model start/stop codon segments
        check_codon_gaps: Whether to apply the codon gap rule

    Returns:
        The selected Seed
    """
    best = argmax_by_length(pairs)
    if mode == "ungapped":
        return Seed.from_pair(best)
    if mode != "gapped":
        raise ValueError(f"Unknown seed mode: {mode}")
    if seq_len is None or model_len is None:
        raise ValueError("Gapped seeds need seq_len and model_len")

    if check_codon_gaps and gaps_overlap_codons(pairs, codon_segments):
        logger.debug("Seed gap overlaps a start/stop codon, keeping longest block only")
        return Seed.from_pair(best)

    kept = prune_short_segments(pairs, min_segment_length)
    kept = prune_terminal_short_segments(kept, terminal_segment_length, seq_len, model_len)
    if not kept:
        return Seed.from_pair(best)
    return Seed(tuple(kept))


def pick_best_seed(first: Optional[Seed], second: Optional[Seed]) -> Optional[Seed]:
    """Pick the seed covering more model positions; ``second`` wins ties."""
    if second is None:
        return first
    if first is None:
        return second
    return second if second.model_coverage >= first.model_coverage else first
