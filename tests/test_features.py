"""
Tests for model feature tables and composition checks.

Tests cover:
- Parsing feature coordinates, including origin-spanning features
- Mature peptide tiling of a CDS on both strands
- Pairwise overlap and adjacency
- Loading feature tables and peptide maps from files
"""

import random
import sys
from pathlib import Path

import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from vicoord.coords import CoordsSegment, Strand, parse_segment
from vicoord.errors import MalformedCoordinatesError, MalformedFeatureMapError
from vicoord.features import (
    CompositionMismatch,
    FeatureTable,
    PeptideMap,
    load_feature_table,
    pairwise_relations,
    parse_peptide_map,
    segments_for,
    validate_feature_table,
    validate_tiling,
)

MINUS = Strand.MINUS


def _segments(*texts):
    return [parse_segment(text) for text in texts]


class TestSegmentsFor:
    """Tests for segments_for."""

    def test_plain(self):
        """Test a simple feature parses unchanged."""
        assert segments_for("join(10..50,60..90)", 100) == _segments("10..50", "60..90")

    def test_origin_spanning_circular(self):
        """Test a feature crossing the origin merges on a circular genome."""
        assert segments_for("join(2309..3182,1..1625)", 3182, circular=True) == [
            CoordsSegment(2309, 4807)
        ]

    def test_origin_spanning_minus(self):
        """Test a minus strand feature crossing the origin merges too."""
        segments = segments_for("complement(join(2309..3182,1..1625))", 3182, circular=True)
        assert segments == [CoordsSegment(4807, 2309, MINUS)]

    def test_origin_spanning_linear(self):
        """Test a feature crossing the origin of a linear genome is rejected."""
        with pytest.raises(MalformedCoordinatesError):
            segments_for("join(2309..3182,1..1625)", 3182)

    def test_exceeds_length(self):
        """Test a segment past the sequence end is rejected."""
        with pytest.raises(MalformedCoordinatesError):
            segments_for("1..120", 100)


class TestValidateTiling:
    """Tests for validate_tiling."""

    def test_exact_tiling(self):
        """Test peptides that tile the CDS up to its stop codon."""
        check = validate_tiling(parse_segment("1..300"), _segments("1..150", "151..223", "224..297"))
        assert check.ok
        assert check.mismatch is None
        assert len(check.children) == 3

    def test_gap_between_children(self):
        """Test a gap between two peptides is reported at the second one."""
        check = validate_tiling(parse_segment("1..300"), _segments("1..150", "152..223", "224..297"))
        assert not check.ok
        assert check.mismatch == CompositionMismatch(expected=151, actual=152, index=1)

    def test_first_child_start(self):
        """Test the first peptide must start with the CDS."""
        check = validate_tiling(parse_segment("1..300"), _segments("4..150", "151..297"))
        assert check.mismatch == CompositionMismatch(1, 4, 0, "start")

    def test_final_stop(self):
        """Test the last peptide must stop before the stop codon."""
        check = validate_tiling(parse_segment("1..300"), _segments("1..150", "151..223", "224..296"))
        assert check.mismatch == CompositionMismatch(297, 296, 2, "stop")
        assert str(check.mismatch) == "child 3 stop is 296, expected 297"

    def test_minus_strand(self):
        """Test positions run downwards on the minus strand."""
        cds = parse_segment("complement(1..300)")
        kids = _segments("complement(151..300)", "complement(78..150)", "complement(4..77)")
        assert validate_tiling(cds, kids).ok

    def test_multi_segment_cds(self):
        """Test a spliced CDS is checked from its first to its final segment."""
        cds = _segments("1..100", "200..400")
        kids = [_segments("1..100", "200..250"), _segments("251..397")]
        assert validate_tiling(cds, kids).ok

    def test_no_children(self):
        """Test a CDS without peptides has nothing to mismatch."""
        assert validate_tiling(parse_segment("1..300"), []).ok


class TestPairwiseRelations:
    """Tests for pairwise_relations."""

    def test_relations(self):
        """Test overlap lengths and adjacency of a small feature set."""
        features = [
            parse_segment("1..10"),
            parse_segment("11..20"),
            parse_segment("15..30"),
            parse_segment("complement(21..30)"),
        ]
        overlaps, adjacency = pairwise_relations(features)
        assert [overlaps[i][i] for i in range(4)] == [10, 10, 16, 10]
        assert overlaps[0][1] == 0
        assert overlaps[1][2] == 6
        assert overlaps[2][3] == overlaps[3][2] == 10
        assert adjacency[0][1] and adjacency[1][0]
        assert not adjacency[1][2]
        assert not adjacency[1][3]
        assert not any(adjacency[i][i] for i in range(4))

    def test_multi_segment_features(self):
        """Test overlaps of spliced features add up over their segments."""
        spliced = _segments("1..10", "21..30")
        overlaps, adjacency = pairwise_relations([spliced, parse_segment("5..25")])
        assert overlaps[0][1] == 6 + 5
        assert overlaps[0][0] == 20

    def test_circular_adjacency(self):
        """Test features meeting at the origin are adjacent on a circular genome."""
        features = [parse_segment("900..1000"), parse_segment("1..50")]
        _, linear = pairwise_relations(features)
        _, circular = pairwise_relations(features, total_len=1000)
        assert not linear[0][1]
        assert circular[0][1] and circular[1][0]

    def test_symmetric(self):
        """Test both matrices are symmetric for random features."""
        rng = random.Random(11)
        features = []
        for _ in range(40):
            low = rng.randint(1, 500)
            high = low + rng.randint(0, 100)
            if rng.random() < 0.5:
                features.append(CoordsSegment(low, high))
            else:
                features.append(CoordsSegment(high, low, MINUS))
        overlaps, adjacency = pairwise_relations(features, total_len=600)
        for i in range(len(features)):
            for j in range(len(features)):
                assert overlaps[i][j] == overlaps[j][i]
                assert adjacency[i][j] == adjacency[j][i]


class TestFeatureTable:
    """Tests for FeatureTable and load_feature_table."""

    def test_from_dataframe(self):
        """Test rows become typed records."""
        df = pd.DataFrame({
            "type": ["CDS", "mat_peptide", "mat_peptide"],
            "coords": ["1..300", "1..150", "151..297"],
            "product": ["polyprotein", None, "protein 2"],
        })
        table = FeatureTable.from_dataframe(df, total_len=400)
        assert len(table) == 3
        assert [r.index for r in table] == [0, 1, 2]
        assert table.cds()[0].product == "polyprotein"
        assert table.mature_peptides()[0].product is None
        assert table[2].start == 151 and table[2].stop == 297
        assert table.of_type("gene") == ()

    def test_missing_column(self):
        """Test a table without coordinates is rejected."""
        with pytest.raises(MalformedFeatureMapError):
            FeatureTable.from_dataframe(pd.DataFrame({"type": ["CDS"]}))

    def test_segment_past_length(self):
        """Test features past the sequence end are rejected."""
        with pytest.raises(MalformedCoordinatesError):
            FeatureTable.from_segments([("CDS", _segments("1..900"), None)], total_len=400)
        with pytest.raises(MalformedCoordinatesError):
            FeatureTable.from_segments([("CDS", _segments("1..100", "200..500"), None)], total_len=400)

    def test_load_circular(self, tmp_path):
        """Test loading a TSV with an origin-spanning CDS."""
        path = tmp_path / "features.tsv"
        path.write_text(
            "# model features\n"
            "type\tcoords\tproduct\n"
            "CDS\tjoin(2309..3182,1..1625)\tP protein\n"
            "CDS\t157..837\t\n"
        )
        table = load_feature_table(path, total_len=3182, circular=True)
        assert table.cds()[0].segments == (CoordsSegment(2309, 4807),)
        assert table.cds()[1].product is None

    def test_load_missing_file(self, tmp_path):
        """Test a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_feature_table(tmp_path / "absent.tsv")


class TestPeptideMap:
    """Tests for parse_peptide_map and validate_feature_table."""

    def _write(self, tmp_path, text):
        path = tmp_path / "peptides.txt"
        path.write_text(text)
        return path

    def test_parse(self, tmp_path):
        """Test indices are read 1-based and stored 0-based."""
        path = self._write(tmp_path, "# cds kind peptides\n1 primary 1:2:3\n1 all 1:2:3:4\n")
        peptide_map = parse_peptide_map(path)
        assert peptide_map.primary == {0: (0, 1, 2)}
        assert peptide_map.all == {0: (0, 1, 2, 3)}
        assert peptide_map.cds_indices == [0]

    @pytest.mark.parametrize("text", [
        "1 primary 1:2\n",
        "1 all 1:2\n",
        "1 primary 1:2\n1 all 1\n",
        "1 primary 1:2\n1 primary 1:2\n1 all 1:2\n",
        "1 secondary 1:2\n",
        "1 primary 0:1\n1 all 0:1\n",
        "1 primary a:b\n1 all a:b\n",
        "1 primary\n",
    ])
    def test_malformed(self, tmp_path, text):
        """Test maps breaking the primary/all rules are rejected."""
        with pytest.raises(MalformedFeatureMapError):
            parse_peptide_map(self._write(tmp_path, text))

    def test_validate_feature_table(self):
        """Test each mapped CDS is checked against its primary peptides."""
        table = FeatureTable.from_segments([
            ("CDS", _segments("1..300"), None),
            ("mat_peptide", _segments("1..150"), None),
            ("mat_peptide", _segments("151..223"), None),
            ("mat_peptide", _segments("224..297"), None),
            ("mat_peptide", _segments("100..200"), None),
        ], total_len=300)
        peptide_map = PeptideMap(primary={0: (0, 1, 2)}, all={0: (0, 1, 2, 3)})
        (check,) = validate_feature_table(table, peptide_map)
        assert check.ok

        peptide_map = PeptideMap(primary={0: (0, 3)}, all={0: (0, 3)})
        (check,) = validate_feature_table(table, peptide_map)
        assert check.mismatch == CompositionMismatch(151, 100, 1, "start")

    def test_validate_unknown_index(self):
        """Test a map naming a missing CDS is rejected."""
        table = FeatureTable.from_segments([("CDS", _segments("1..300"), None)])
        with pytest.raises(MalformedFeatureMapError):
            validate_feature_table(table, PeptideMap(primary={1: (0,)}, all={1: (0,)}))
        with pytest.raises(MalformedFeatureMapError):
            validate_feature_table(table, PeptideMap(primary={0: (0,)}, all={0: (0,)}))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
