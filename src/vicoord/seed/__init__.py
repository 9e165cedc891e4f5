"""
VICOORD Seed Module: from approximate alignments to trusted seeds and flank requests.

Key Features:
- Parse insertion/deletion descriptions (``Q<seq>:S<mdl>+<len>``) and CIGARs
- Decompose alignments into ungapped (model, sequence) block pairs
- Select ungapped or pruned gapped seeds
- Choose the 5'/3' flank subsequences that need accurate realignment

Example Usage:
    >>> from vicoord.coords import parse_segment
    >>> from vicoord.seed import parse_indel_strings, find_ungapped_regions, argmax_by_length
    >>> ins, dels = parse_indel_strings("Q41:S46+1", "")
    >>> pairs = find_ungapped_regions(parse_segment("6..200"), parse_segment("1..196"), ins, dels)
    >>> argmax_by_length(pairs).seq_segment
    CoordsSegment(start=43, stop=196, strand=<Strand.PLUS: '+'>)
"""

# Data models
from .models import (
    FlankRequest,
    FlankSide,
    IndelKind,
    IndelToken,
    Seed,
    UngappedSegmentPair,
)

# Indel parsing
from .indels import (
    NO_INDELS,
    parse_indel_string,
    parse_indel_strings,
    parse_indel_token,
)

# Ungapped regions and seeds
from .ungapped import (
    argmax_by_length,
    find_ungapped_regions,
    gaps_overlap_codons,
    pairs_from_cigar,
    pick_best_seed,
    prune_short_segments,
    prune_terminal_short_segments,
    select_seed,
)

# Flank selection
from .selector import select_flanks


__all__ = [
    # Models
    "FlankRequest",
    "FlankSide",
    "IndelKind",
    "IndelToken",
    "Seed",
    "UngappedSegmentPair",
    # Indels
    "NO_INDELS",
    "parse_indel_string",
    "parse_indel_strings",
    "parse_indel_token",
    # Ungapped regions
    "argmax_by_length",
    "find_ungapped_regions",
    "gaps_overlap_codons",
    "pairs_from_cigar",
    "pick_best_seed",
    "prune_short_segments",
    "prune_terminal_short_segments",
    "select_seed",
    # Flanks
    "select_flanks",
]
