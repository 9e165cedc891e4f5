"""
VICOORD Coordinates Module: segment algebra over stranded, circular genomes.

Key Features:
- Parse and format GenBank-style and strand-tagged coordinate strings
- Overlap, adjacency and containment tests between segments
- Detect and merge features that span the origin of circular genomes
- Map feature-relative ranges onto absolute coordinates

Example Usage:
    >>> from vicoord.coords import parse_coords, merge_spanning, format_coords
    >>> segments = parse_coords("join(2309..3182, 1..1625)")
    >>> format_coords(merge_spanning(segments, total_len=3182))
    '2309..4807'
"""

# Data models
from .models import CoordsSegment, CoordsString, Strand

# Algebra
from .algebra import (
    adjacent,
    coords_length,
    detect_and_merge_spanning_segments,
    five_prime_most,
    length,
    max_length_segment,
    merge_adjacent_segments,
    merge_spanning,
    missing,
    overlap,
    overlap_interval,
    relative_to_absolute,
    reverse_complement,
    spans,
    starts_stops,
    summary_strand,
    three_prime_most,
)

# Text forms
from .location import (
    format_coords,
    format_segment,
    format_tagged,
    parse_coords,
    parse_segment,
)


__all__ = [
    # Models
    "CoordsSegment",
    "CoordsString",
    "Strand",
    # Algebra
    "adjacent",
    "coords_length",
    "detect_and_merge_spanning_segments",
    "five_prime_most",
    "length",
    "max_length_segment",
    "merge_adjacent_segments",
    "merge_spanning",
    "missing",
    "overlap",
    "overlap_interval",
    "relative_to_absolute",
    "reverse_complement",
    "spans",
    "starts_stops",
    "summary_strand",
    "three_prime_most",
    # Text forms
    "format_coords",
    "format_segment",
    "format_tagged",
    "parse_coords",
    "parse_segment",
]
