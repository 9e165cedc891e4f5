"""
VICOORD Features Module: model feature tables and composition checks.

Key Features:
- Typed, validated feature tables loaded from TSV
- Origin-spanning feature coordinates on circular genomes
- Pairwise overlap and adjacency between features
- Mature peptide tiling checks against their parent CDS

Example Usage:
    >>> from vicoord.features import segments_for
    >>> segments_for("join(2309..3182,1..1625)", total_len=3182, circular=True)
    [CoordsSegment(start=2309, stop=4807, strand=<Strand.PLUS: '+'>)]
"""

# Data models
from .models import (
    CDS_TYPE,
    MAT_PEPTIDE_TYPE,
    CompositionCheck,
    CompositionMismatch,
    FeatureRecord,
    FeatureTable,
    PeptideMap,
)

# Mapping and checks
from .mapper import (
    STOP_CODON_LEN,
    load_feature_table,
    pairwise_relations,
    parse_peptide_map,
    segments_for,
    validate_feature_table,
    validate_tiling,
)


__all__ = [
    # Models
    "CDS_TYPE",
    "MAT_PEPTIDE_TYPE",
    "CompositionCheck",
    "CompositionMismatch",
    "FeatureRecord",
    "FeatureTable",
    "PeptideMap",
    # Mapping
    "STOP_CODON_LEN",
    "load_feature_table",
    "pairwise_relations",
    "parse_peptide_map",
    "segments_for",
    "validate_feature_table",
    "validate_tiling",
]
