"""
Coordinate algebra over 1-based, stranded, possibly circular genome positions.

All functions are pure and operate on ``CoordsSegment`` values or 5'->3'
ordered lists of them.
"""

from typing import List, Optional, Sequence, Tuple

from ..errors import MalformedCoordinatesError
from .models import CoordsSegment, CoordsString, Strand

_FLIPPED = {
    Strand.PLUS: Strand.MINUS,
    Strand.MINUS: Strand.PLUS,
    Strand.UNCERTAIN: Strand.UNCERTAIN,
}


def length(segment: CoordsSegment) -> int:
    """Number of positions in a segment, ``|start - stop| + 1``."""
    return abs(segment.start - segment.stop) + 1


def coords_length(segments: Sequence[CoordsSegment]) -> int:
    """Total number of positions over all segments."""
    return sum(length(seg) for seg in segments)


def overlap_interval(
    start1: int, stop1: int, start2: int, stop2: int
) -> Tuple[int, Optional[Tuple[int, int]]]:
    """Overlap of two closed integer intervals given in either orientation.

    Returns:
        Tuple of (number of overlapping positions, (low, high) or None)
    """
    low = max(min(start1, stop1), min(start2, stop2))
    high = min(max(start1, stop1), max(start2, stop2))
    if low > high:
        return 0, None
    return high - low + 1, (low, high)


def overlap(
    a: CoordsSegment, b: CoordsSegment
) -> Tuple[int, Optional[Tuple[int, int]]]:
    """Overlap of two segments on their canonical ``(low, high)`` intervals.

    Symmetric in ``a`` and ``b``; strands are not compared.

    Returns:
        Tuple of (overlap length, overlapping (low, high) or None if disjoint)
    """
    return overlap_interval(a.low, a.high, b.low, b.high)


def adjacent(
    a: CoordsSegment,
    b: CoordsSegment,
    strand: Optional[Strand] = None,
    total_len: Optional[int] = None,
) -> bool:
    """Whether ``b`` continues directly 3' of ``a``.

    On the plus strand ``a.stop + 1 == b.start``; on the minus strand
    ``a.stop - 1 == b.start``. With ``total_len`` given, the circular
    wraparound pair (plus: ``a`` ends at ``total_len`` and ``b`` starts at 1;
    minus: ``a`` ends at 1 and ``b`` starts at ``total_len``) is adjacent too.

    Args:
        a: Upstream segment
        b: Candidate downstream segment
        strand: Strand to reason on (defaults to ``a.strand``)
        total_len: Sequence length, for circular sequences
    """
    if strand is None:
        strand = a.strand

    if strand == Strand.MINUS:
        if a.stop - 1 == b.start:
            return True
        return total_len is not None and a.stop == 1 and b.start == total_len

    if a.stop + 1 == b.start:
        return True
    return total_len is not None and a.stop == total_len and b.start == 1


def detect_and_merge_spanning_segments(
    starts: Sequence[int],
    stops: Sequence[int],
    strand: Strand,
    total_len: int,
) -> Optional[CoordsSegment]:
    """Merge two segments that together cross the origin of a circular sequence.

    Plus strand: ``stops[0] == total_len`` and ``starts[1] == 1`` become
    ``starts[0]..stops[1] + total_len``. Minus strand, in 5'->3' order:
    ``stops[0] == 1`` and ``starts[1] == total_len`` become
    ``starts[0] + total_len..stops[1]``.

    Example:
        >>> detect_and_merge_spanning_segments([2309, 1], [3182, 1625], Strand.PLUS, 3182)
        CoordsSegment(start=2309, stop=4807, strand=<Strand.PLUS: '+'>)

    Returns:
        The merged segment, or None if the segments do not span the origin
    """
    if len(starts) != len(stops):
        raise ValueError(f"starts and stops differ in length: {len(starts)} vs {len(stops)}")
    if len(starts) != 2:
        return None

    if strand == Strand.PLUS:
        if stops[0] == total_len and starts[1] == 1:
            return CoordsSegment(starts[0], stops[1] + total_len, Strand.PLUS)
    elif strand == Strand.MINUS:
        if stops[0] == 1 and starts[1] == total_len:
            return CoordsSegment(starts[0] + total_len, stops[1], Strand.MINUS)
    return None


def merge_spanning(segments: Sequence[CoordsSegment], total_len: int) -> CoordsString:
    """Return ``segments`` with an origin-spanning pair collapsed to one segment."""
    if len(segments) == 2 and segments[0].strand == segments[1].strand:
        merged = detect_and_merge_spanning_segments(
            [seg.start for seg in segments],
            [seg.stop for seg in segments],
            segments[0].strand,
            total_len,
        )
        if merged is not None:
            return [merged]
    return list(segments)


def reverse_complement(segments: Sequence[CoordsSegment]) -> CoordsString:
    """Reverse segment order and flip each segment to the other strand."""
    return [
        CoordsSegment(seg.stop, seg.start, _FLIPPED[seg.strand])
        for seg in reversed(segments)
    ]


def summary_strand(segments: Sequence[CoordsSegment]) -> Strand:
    """Common strand of all segments, MIXED if they disagree."""
    strands = {seg.strand for seg in segments}
    if len(strands) == 1:
        return strands.pop()
    if not strands:
        raise ValueError("Cannot summarize strand of an empty coordinate string")
    return Strand.MIXED


def merge_adjacent_segments(segments: Sequence[CoordsSegment]) -> CoordsString:
    """Fuse consecutive same-strand segments that abut each other."""
    merged: CoordsString = []
    for seg in segments:
        if merged:
            prev = merged[-1]
            if prev.strand == seg.strand and adjacent(prev, seg):
                merged[-1] = CoordsSegment(prev.start, seg.stop, seg.strand)
                continue
        merged.append(seg)
    return merged


def max_length_segment(segments: Sequence[CoordsSegment]) -> CoordsSegment:
    """Longest segment; the first one wins ties."""
    if not segments:
        raise ValueError("Cannot pick the longest segment of an empty list")
    best = segments[0]
    for seg in segments[1:]:
        if length(seg) > length(best):
            best = seg
    return best


def spans(outer: Sequence[CoordsSegment], inner: Sequence[CoordsSegment]) -> bool:
    """Whether every inner segment lies entirely within one outer segment."""
    for inner_seg in inner:
        contained = any(
            outer_seg.strand == inner_seg.strand
            and overlap(outer_seg, inner_seg)[0] == length(inner_seg)
            for outer_seg in outer
        )
        if not contained:
            return False
    return True


def missing(
    segments: Sequence[CoordsSegment], strand: Strand, total_len: int
) -> CoordsString:
    """Stretches of ``1..total_len`` on ``strand`` that no segment covers.

    Returns:
        Uncovered segments in 5'->3' order for ``strand``
    """
    covered = [False] * (total_len + 1)
    for seg in segments:
        if seg.high > total_len:
            raise MalformedCoordinatesError(
                f"Segment {seg} exceeds sequence length {total_len}"
            )
        if seg.strand == strand:
            for pos in range(seg.low, seg.high + 1):
                covered[pos] = True

    gaps: CoordsString = []
    pos = 1
    while pos <= total_len:
        if covered[pos]:
            pos += 1
            continue
        gap_start = pos
        while pos + 1 <= total_len and not covered[pos + 1]:
            pos += 1
        gaps.append(CoordsSegment(gap_start, pos, Strand.PLUS))
        pos += 1

    if strand == Strand.MINUS:
        return reverse_complement(gaps)
    if strand == Strand.UNCERTAIN:
        return [CoordsSegment(g.start, g.stop, Strand.UNCERTAIN) for g in gaps]
    return gaps


def relative_to_absolute(
    abs_segments: Sequence[CoordsSegment], rel_segment: CoordsSegment
) -> CoordsString:
    """Map a range given relative to a spliced feature onto absolute positions.

    Position 1 of the relative frame is the 5'-most position of
    ``abs_segments``. A relative range crossing an exon boundary comes back as
    several segments.

    Args:
        abs_segments: The feature's absolute segments, 5'->3'
        rel_segment: Plus or minus segment in feature-relative coordinates

    Returns:
        Absolute segments, adjacent pieces merged
    """
    if rel_segment.strand not in (Strand.PLUS, Strand.MINUS):
        raise MalformedCoordinatesError(
            f"Relative segment {rel_segment} must be on the plus or minus strand"
        )
    abs_len = coords_length(abs_segments)
    rel_low, rel_high = rel_segment.bounds
    if rel_high > abs_len:
        raise MalformedCoordinatesError(
            f"Relative position {rel_high} exceeds feature length {abs_len}"
        )

    remaining = rel_high - rel_low + 1
    offset = rel_low - 1
    pieces: CoordsString = []
    for seg in abs_segments:
        if remaining <= 0:
            break
        seg_len = length(seg)
        if offset < seg_len:
            if seg.strand == Strand.PLUS:
                conv_start = seg.start + offset
                conv_stop = min(conv_start + remaining - 1, seg.stop)
            elif seg.strand == Strand.MINUS:
                conv_start = seg.start - offset
                conv_stop = max(conv_start - remaining + 1, seg.stop)
            else:
                raise MalformedCoordinatesError(
                    f"Absolute segment {seg} must be on the plus or minus strand"
                )
            remaining -= abs(conv_stop - conv_start) + 1
            pieces.append(CoordsSegment(conv_start, conv_stop, seg.strand))
        offset = max(offset - seg_len, 0)

    if rel_segment.strand == Strand.MINUS:
        pieces = reverse_complement(pieces)
    return merge_adjacent_segments(pieces)


def five_prime_most(segments: Sequence[CoordsSegment]) -> int:
    """First position of the 5'-most segment."""
    return segments[0].start


def three_prime_most(segments: Sequence[CoordsSegment]) -> int:
    """Final position of the 3'-most segment."""
    return segments[-1].stop


def starts_stops(segments: Sequence[CoordsSegment]) -> Tuple[List[int], List[int]]:
    """Parallel start and stop lists, 5'->3'."""
    return [seg.start for seg in segments], [seg.stop for seg in segments]
