"""
VICOORD Align Module: alignment triples, splicing and alignment file I/O.

Key Features:
- Equal-width (sequence, model, confidence) alignment triples
- Join realigned 5'/3' flanks onto a trusted seed, checking the seed diagonal
- Insert maps rebased into full-sequence coordinates
- Stockholm, insert-file and FASTA readers/writers

Example Usage:
    >>> from vicoord.align import join_alignments
    >>> from vicoord.seed import Seed, UngappedSegmentPair
    >>> seed = Seed.from_pair(UngappedSegmentPair.from_positions(1, 8, 1, 8))
    >>> result = join_alignments(seed, "ACGTACGT", consensus="acgtacgt", seq_len=8)
    >>> result.alignment.sequence_line
    'ACGTACGT'
"""

# Data models
from .models import (
    CERTAIN,
    GAP_CHARS,
    NO_CONFIDENCE,
    AlignmentTriple,
    FlankAlignment,
    InsertMap,
    InsertRecord,
    JoinResult,
    SpliceFailure,
    is_gap,
)

# Splicing
from .joiner import join_alignments

# File I/O
from .alignment_io import (
    format_stockholm_triple,
    read_insert_file,
    read_sequences,
    read_stockholm_triples,
    write_aligned_fasta,
    write_insert_file,
    write_sequences,
    write_stockholm_triples,
)


__all__ = [
    # Models
    "CERTAIN",
    "GAP_CHARS",
    "NO_CONFIDENCE",
    "AlignmentTriple",
    "FlankAlignment",
    "InsertMap",
    "InsertRecord",
    "JoinResult",
    "SpliceFailure",
    "is_gap",
    # Splicing
    "join_alignments",
    # I/O
    "format_stockholm_triple",
    "read_insert_file",
    "read_sequences",
    "read_stockholm_triples",
    "write_aligned_fasta",
    "write_insert_file",
    "write_sequences",
    "write_stockholm_triples",
]
