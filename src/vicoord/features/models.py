"""
Data models for annotated model features and their composition checks.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from ..coords import CoordsSegment, CoordsString, Strand, parse_coords, summary_strand
from ..errors import MalformedCoordinatesError, MalformedFeatureMapError

CDS_TYPE = "CDS"
MAT_PEPTIDE_TYPE = "mat_peptide"

FEATURE_COLUMNS = ("type", "coords")


@dataclass(frozen=True)
class CompositionMismatch:
    """First place where child features fail to tile their parent.

    Attributes:
        expected: Position the child boundary should be at
        actual: Position it is at
        index: 0-based index of the offending child
        boundary: "start" or "stop"
    """
    expected: int
    actual: int
    index: int
    boundary: str = "start"

    def __str__(self) -> str:
        return (
            f"child {self.index + 1} {self.boundary} is {self.actual}, "
            f"expected {self.expected}"
        )


@dataclass(frozen=True)
class CompositionCheck:
    """Result of checking that child features tile a parent feature.

    Attributes:
        feature_segments: Segments of the parent feature
        children: Segments of each child, in order
        mismatch: The first mismatch, None if the children tile the parent
    """
    feature_segments: Tuple[CoordsSegment, ...]
    children: Tuple[Tuple[CoordsSegment, ...], ...]
    mismatch: Optional[CompositionMismatch] = None

    @property
    def ok(self) -> bool:
        return self.mismatch is None


@dataclass(frozen=True)
class FeatureRecord:
    """One model feature.

    Attributes:
        index: 0-based position of the feature in its table
        type: Feature type, e.g. "CDS" or "mat_peptide"
        segments: Feature coordinates, 5'->3'
        product: Product name, None if not annotated
    """
    index: int
    type: str
    segments: Tuple[CoordsSegment, ...]
    product: Optional[str] = None

    @property
    def strand(self) -> Strand:
        return summary_strand(self.segments)

    @property
    def start(self) -> int:
        return self.segments[0].start

    @property
    def stop(self) -> int:
        return self.segments[-1].stop


@dataclass(frozen=True)
class FeatureTable:
    """Typed, indexable collection of the features of one model.

    Validated once at construction: record indices run 0..n-1 in order,
    every feature has at least one segment and, when ``total_len`` is
    given, no segment extends past it (origin-spanning segments may reach
    ``2 * total_len``).

    Raises:
        MalformedCoordinatesError: If a feature's coordinates are invalid
    """
    records: Tuple[FeatureRecord, ...]
    total_len: Optional[int] = None
    _by_type: Dict[str, Tuple[FeatureRecord, ...]] = field(
        default_factory=dict, repr=False, compare=False
    )

    def __post_init__(self):
        for i, record in enumerate(self.records):
            if record.index != i:
                raise MalformedCoordinatesError(
                    f"Feature record at position {i} has index {record.index}"
                )
            if not record.segments:
                raise MalformedCoordinatesError(f"Feature {i} ({record.type}) has no segments")
            if self.total_len is not None:
                for seg in record.segments:
                    if seg.high > 2 * self.total_len or (
                        len(record.segments) > 1 and seg.high > self.total_len
                    ):
                        raise MalformedCoordinatesError(
                            f"Feature {i} ({record.type}) segment {seg} exceeds "
                            f"sequence length {self.total_len}"
                        )

        by_type: Dict[str, List[FeatureRecord]] = {}
        for record in self.records:
            by_type.setdefault(record.type, []).append(record)
        self._by_type.update({k: tuple(v) for k, v in by_type.items()})

    def __len__(self) -> int:
        return len(self.records)

    def __getitem__(self, index: int) -> FeatureRecord:
        return self.records[index]

    def __iter__(self):
        return iter(self.records)

    def of_type(self, feature_type: str) -> Tuple[FeatureRecord, ...]:
        return self._by_type.get(feature_type, ())

    def cds(self) -> Tuple[FeatureRecord, ...]:
        return self.of_type(CDS_TYPE)

    def mature_peptides(self) -> Tuple[FeatureRecord, ...]:
        return self.of_type(MAT_PEPTIDE_TYPE)

    @classmethod
    def from_segments(
        cls,
        features: Sequence[Tuple[str, CoordsString, Optional[str]]],
        total_len: Optional[int] = None,
    ) -> "FeatureTable":
        """Build a table from (type, segments, product) tuples."""
        records = tuple(
            FeatureRecord(i, ftype, tuple(segments), product)
            for i, (ftype, segments, product) in enumerate(features)
        )
        return cls(records, total_len)

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        total_len: Optional[int] = None,
        circular: bool = False,
    ) -> "FeatureTable":
        """Build a table from a DataFrame with ``type``, ``coords`` and optional ``product``.

        Raises:
            MalformedFeatureMapError: If a required column is missing
            MalformedCoordinatesError: If a coordinate string is invalid
        """
        # Local import, mapper imports this module
        from .mapper import segments_for

        missing_cols = [col for col in FEATURE_COLUMNS if col not in df.columns]
        if missing_cols:
            raise MalformedFeatureMapError(
                f"Feature table is missing column(s): {', '.join(missing_cols)}"
            )

        features = []
        for _, row in df.iterrows():
            coords_text = str(row["coords"]).strip()
            if total_len is not None:
                segments = segments_for(coords_text, total_len, circular)
            else:
                segments = parse_coords(coords_text)
            product = row.get("product")
            if product is None or pd.isna(product) or not str(product).strip():
                product = None
            else:
                product = str(product).strip()
            features.append((str(row["type"]).strip(), segments, product))
        return cls.from_segments(features, total_len)


@dataclass(frozen=True)
class PeptideMap:
    """Which mature peptides make up each CDS.

    Indices are 0-based: keys index ``FeatureTable.cds()`` and values index
    ``FeatureTable.mature_peptides()``.

    Attributes:
        primary: Peptides that tile the CDS, 5'->3'
        all: Every peptide cleaved from the CDS; a superset of ``primary``
    """
    primary: Dict[int, Tuple[int, ...]]
    all: Dict[int, Tuple[int, ...]]

    @property
    def cds_indices(self) -> List[int]:
        return sorted(self.primary)
