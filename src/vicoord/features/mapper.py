"""
Feature coordinate mapping and composition checks.

Maps annotated feature coordinates onto the model (merging features that
cross the origin of circular genomes), computes overlap and adjacency
between features, and checks that mature peptides tile their parent CDS.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd

from ..coords import (
    CoordsSegment,
    CoordsString,
    Strand,
    adjacent,
    detect_and_merge_spanning_segments,
    format_coords,
    overlap,
    parse_coords,
    starts_stops,
    summary_strand,
)
from ..errors import (
    InvariantViolationError,
    MalformedCoordinatesError,
    MalformedFeatureMapError,
)
from .models import (
    CompositionCheck,
    CompositionMismatch,
    FeatureTable,
    PeptideMap,
)

logger = logging.getLogger(__name__)

# Length of the stop codon that ends a CDS but no mature peptide
STOP_CODON_LEN = 3

SegmentsLike = Union[CoordsSegment, Sequence[CoordsSegment]]


def _as_segments(item: SegmentsLike) -> Tuple[CoordsSegment, ...]:
    if isinstance(item, CoordsSegment):
        return (item,)
    return tuple(item)


def segments_for(coords_text: str, total_len: int, circular: bool = False) -> CoordsString:
    """Parse a feature's coordinates against a sequence of length ``total_len``.

    Two segments that together cross the origin are merged into one segment
    extending past ``total_len`` when ``circular`` is True.

    Raises:
        MalformedCoordinatesError: If the text is malformed, a segment lies
            beyond ``total_len``, or the feature crosses the origin of a
            sequence that is not circular
    """
    segments = parse_coords(coords_text)
    for seg in segments:
        if seg.high > total_len:
            raise MalformedCoordinatesError(
                f"Segment {seg} of {coords_text!r} exceeds sequence length {total_len}"
            )

    strand = summary_strand(segments)
    if len(segments) == 2 and strand in (Strand.PLUS, Strand.MINUS):
        starts, stops = starts_stops(segments)
        merged = detect_and_merge_spanning_segments(starts, stops, strand, total_len)
        if merged is not None:
            if not circular:
                raise MalformedCoordinatesError(
                    f"Coordinates {coords_text!r} cross the origin of a "
                    f"non-circular sequence of length {total_len}"
                )
            logger.debug(f"Merged origin-spanning segments {coords_text} -> {merged}")
            return [merged]
    return segments


def validate_tiling(
    cds_segments: SegmentsLike, children: Sequence[SegmentsLike]
) -> CompositionCheck:
    """Check that child features exactly tile a CDS, leaving only its stop codon.

    The first child must start where the CDS starts, each following child
    must start right after the previous one stops, and the final child must
    stop three positions before the CDS stops. On the minus strand
    positions run downwards.

    Example:
        >>> from vicoord.coords import parse_segment
        >>> cds = parse_segment("1..300")
        >>> kids = [parse_segment(t) for t in ("1..150", "152..223", "224..297")]
        >>> validate_tiling(cds, kids).mismatch
        CompositionMismatch(expected=151, actual=152, index=1, boundary='start')

    Returns:
        CompositionCheck with the first mismatch, if any
    """
    feature = _as_segments(cds_segments)
    kids = tuple(_as_segments(child) for child in children)
    step = -1 if summary_strand(feature) == Strand.MINUS else 1

    mismatch: Optional[CompositionMismatch] = None
    if kids:
        expected = feature[0].start
        for i, child in enumerate(kids):
            if child[0].start != expected:
                mismatch = CompositionMismatch(expected, child[0].start, i, "start")
                break
            expected = child[-1].stop + step
        else:
            expected_stop = feature[-1].stop - step * STOP_CODON_LEN
            last = len(kids) - 1
            if kids[last][-1].stop != expected_stop:
                mismatch = CompositionMismatch(expected_stop, kids[last][-1].stop, last, "stop")

    return CompositionCheck(feature, kids, mismatch)


def pairwise_relations(
    segments: Sequence[SegmentsLike], total_len: Optional[int] = None
) -> Tuple[List[List[int]], List[List[bool]]]:
    """Overlap lengths and adjacency between every pair of features.

    Each item is a segment or a feature's list of segments. The overlap of
    two features sums the overlaps of their segments (strand is ignored);
    two features are adjacent when they share a strand and the 3'-most
    segment of either directly precedes the 5'-most segment of the other.
    The diagonal holds each feature's own length and False.

    Returns:
        Tuple of (overlap matrix, adjacency matrix), indexed like ``segments``

    Raises:
        InvariantViolationError: If either matrix is not symmetric
    """
    features = [_as_segments(item) for item in segments]
    n = len(features)
    overlaps = [[0] * n for _ in range(n)]
    adjacency = [[False] * n for _ in range(n)]

    for i in range(n):
        for j in range(n):
            a, b = features[i], features[j]
            overlaps[i][j] = sum(overlap(x, y)[0] for x in a for y in b)
            if i == j:
                continue
            strand_a, strand_b = summary_strand(a), summary_strand(b)
            if strand_a != strand_b:
                continue
            adjacency[i][j] = (
                adjacent(a[-1], b[0], strand_a, total_len)
                or adjacent(b[-1], a[0], strand_a, total_len)
            )

    for i in range(n):
        for j in range(i + 1, n):
            if overlaps[i][j] != overlaps[j][i] or adjacency[i][j] != adjacency[j][i]:
                raise InvariantViolationError(
                    f"Feature relations not symmetric for features {i} and {j}: "
                    f"overlap {overlaps[i][j]}/{overlaps[j][i]}, "
                    f"adjacent {adjacency[i][j]}/{adjacency[j][i]}"
                )
    return overlaps, adjacency


def load_feature_table(
    filepath: Union[str, Path],
    total_len: Optional[int] = None,
    circular: bool = False,
) -> FeatureTable:
    """Load a model feature TSV (columns ``type``, ``coords``, optional ``product``).

    Raises:
        FileNotFoundError: If file doesn't exist
        MalformedFeatureMapError: If a required column is missing
        MalformedCoordinatesError: If a coordinate string is invalid
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Feature table not found: {filepath}")

    df = pd.read_csv(path, sep="\t", comment="#", dtype=str)
    table = FeatureTable.from_dataframe(df, total_len=total_len, circular=circular)
    logger.debug(
        f"Loaded {len(table)} features ({len(table.cds())} CDS, "
        f"{len(table.mature_peptides())} mature peptides) from {path.name}"
    )
    return table


def _parse_indices(text: str, line_no: int, filepath: Union[str, Path]) -> Tuple[int, ...]:
    try:
        values = [int(v) for v in text.split(":")]
    except ValueError:
        raise MalformedFeatureMapError(
            f"Non-integer peptide index on line {line_no} of {filepath}: {text}"
        )
    if any(v < 1 for v in values):
        raise MalformedFeatureMapError(
            f"Peptide indices are 1-based, got {text} on line {line_no} of {filepath}"
        )
    return tuple(v - 1 for v in values)


def parse_peptide_map(filepath: Union[str, Path]) -> PeptideMap:
    """Parse a CDS -> mature peptide map.

    Each non-comment line reads ``<cds-idx> primary|all i:j:k`` with 1-based
    indices. Every CDS listed needs exactly one ``primary`` and one ``all``
    line, and its ``all`` peptides must include its ``primary`` peptides.

    Raises:
        FileNotFoundError: If file doesn't exist
        MalformedFeatureMapError: If the file breaks any of these rules
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Peptide map not found: {filepath}")

    primary: Dict[int, Tuple[int, ...]] = {}
    all_peptides: Dict[int, Tuple[int, ...]] = {}

    with open(path, "r") as f:
        for line_no, line in enumerate(f, 1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            fields = line.split()
            if len(fields) != 3:
                raise MalformedFeatureMapError(
                    f"Expected 3 fields on line {line_no} of {filepath}, got {len(fields)}: {line}"
                )
            cds_text, kind, indices_text = fields
            (cds_idx,) = _parse_indices(cds_text, line_no, filepath)
            indices = _parse_indices(indices_text, line_no, filepath)

            if kind == "primary":
                target = primary
            elif kind == "all":
                target = all_peptides
            else:
                raise MalformedFeatureMapError(
                    f"Second field must be 'primary' or 'all' on line {line_no} of "
                    f"{filepath}, got {kind!r}"
                )
            if cds_idx in target:
                raise MalformedFeatureMapError(
                    f"Two {kind} lines for CDS {cds_idx + 1} in {filepath}"
                )
            target[cds_idx] = indices

    for cds_idx in sorted(set(primary) | set(all_peptides)):
        if cds_idx not in primary or cds_idx not in all_peptides:
            kind = "primary" if cds_idx not in primary else "all"
            raise MalformedFeatureMapError(f"No {kind} line for CDS {cds_idx + 1} in {filepath}")
        extra = set(primary[cds_idx]) - set(all_peptides[cds_idx])
        if extra:
            raise MalformedFeatureMapError(
                f"Primary peptides {sorted(i + 1 for i in extra)} of CDS {cds_idx + 1} "
                f"are missing from its 'all' line in {filepath}"
            )

    return PeptideMap(primary=primary, all=all_peptides)


def validate_feature_table(table: FeatureTable, peptide_map: PeptideMap) -> List[CompositionCheck]:
    """Check the primary peptides of every mapped CDS tile it.

    Mismatches are reported in the returned checks, one per CDS in the
    map's CDS order, and logged as warnings.

    Raises:
        MalformedFeatureMapError: If the map names a CDS or peptide the
            table does not have
    """
    cds_records = table.cds()
    peptides = table.mature_peptides()
    checks = []

    for cds_idx in peptide_map.cds_indices:
        if cds_idx >= len(cds_records):
            raise MalformedFeatureMapError(
                f"Peptide map names CDS {cds_idx + 1}, table has {len(cds_records)}"
            )
        for pep_idx in peptide_map.all[cds_idx]:
            if pep_idx >= len(peptides):
                raise MalformedFeatureMapError(
                    f"Peptide map names mature peptide {pep_idx + 1} for CDS {cds_idx + 1}, "
                    f"table has {len(peptides)}"
                )

        cds = cds_records[cds_idx]
        children = [peptides[i].segments for i in peptide_map.primary[cds_idx]]
        check = validate_tiling(cds.segments, children)
        if not check.ok:
            logger.warning(
                f"Mature peptides do not tile CDS {cds_idx + 1} "
                f"({format_coords(list(cds.segments))}): {check.mismatch}"
            )
        checks.append(check)

    return checks
