"""
Tests for splicing flank alignments onto seeds.

Tests cover:
- Alignment triple invariants
- Seed-only joins (ungapped and gapped seeds)
- 5' and 3' flank joins with confidence lines and rebased inserts
- Splice failures on the seed diagonal
- Precondition checks
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from vicoord.align import (
    AlignmentTriple,
    FlankAlignment,
    InsertMap,
    InsertRecord,
    join_alignments,
)
from vicoord.coords import CoordsSegment
from vicoord.errors import InvariantViolationError
from vicoord.seed import FlankSide, Seed, UngappedSegmentPair

CONSENSUS = ("acgt" * 8)[:30]


def _seed(*blocks):
    return Seed(tuple(UngappedSegmentPair.from_positions(*block) for block in blocks))


def _raw(n):
    return ("TTGCA" * 10)[:n]


class TestAlignmentTriple:
    """Tests for AlignmentTriple."""

    def test_widths_must_match(self):
        """Test lines of different widths are rejected."""
        with pytest.raises(InvariantViolationError):
            AlignmentTriple("AC-T", "acg")
        with pytest.raises(InvariantViolationError):
            AlignmentTriple("AC-T", "acgt", "***")

    def test_ungapped(self):
        """Test gap characters are stripped from the sequence line."""
        triple = AlignmentTriple("AC-.T~", "ac.gt-")
        assert triple.get_ungapped_sequence() == "ACT"
        assert triple.get_ungapped_length() == 3
        assert triple.model_length == 4
        assert len(triple) == triple.width == 6

    def test_insert_map_string(self):
        """Test insert records render as mdlpos:uapos:len;."""
        insert_map = InsertMap(1, 30, (InsertRecord(15, 16, 2), InsertRecord(20, 23, 1)))
        assert insert_map.insert_string() == "15:16:2;20:23:1;"
        assert insert_map.total_inserted == 3


class TestSeedOnlyJoin:
    """Tests for joins without flanks."""

    def test_identity(self):
        """Test a whole-sequence seed reproduces the raw sequence."""
        raw = _raw(30)
        result = join_alignments(_seed((1, 30, 1, 30)), raw, CONSENSUS, seq_len=30)
        assert result.is_joined
        assert result.alignment.sequence_line == raw
        assert result.alignment.get_ungapped_sequence() == raw
        assert result.alignment.model_line == CONSENSUS
        assert result.alignment.confidence_line == "*" * 30
        assert result.inserts == InsertMap(1, 30, (), seq_len=30)

    def test_gapped_seed_insertion(self):
        """Test residues between seed blocks become insert columns."""
        raw = _raw(32)
        seed = _seed((1, 15, 1, 15), (16, 30, 18, 32))
        result = join_alignments(seed, raw, CONSENSUS, seq_len=32)
        assert result.alignment.get_ungapped_sequence() == raw
        assert result.alignment.model_line == CONSENSUS[:15] + ".." + CONSENSUS[15:]
        assert result.inserts.records == (InsertRecord(15, 16, 2),)

    def test_gapped_seed_deletion(self):
        """Test model positions between seed blocks become sequence gaps."""
        raw = _raw(27)
        seed = _seed((1, 10, 1, 10), (14, 30, 11, 27))
        result = join_alignments(seed, raw, CONSENSUS, seq_len=27)
        assert result.alignment.sequence_line == raw[:10] + "---" + raw[10:]
        assert result.alignment.model_line == CONSENSUS
        assert result.alignment.confidence_line == "*" * 10 + "..." + "*" * 17


class TestFlankJoin:
    """Tests for joins with realigned flanks."""

    def _five_prime(self, raw, shift=0, confidence=True):
        """Flank 1..15 aligned on the diagonal, or ``shift`` model positions off it."""
        seq_line = "-" * shift + raw[:15] + "-" * (15 - shift)
        conf = ("." * shift + "9" * 15 + "." * (15 - shift)) if confidence else None
        return FlankAlignment(
            side=FlankSide.FIVE_PRIME,
            triple=AlignmentTriple(seq_line, CONSENSUS, conf),
            model_span=CoordsSegment(1 + shift, 15 + shift),
            seq_span=CoordsSegment(1, 15),
        )

    def test_five_prime_join(self):
        """Test a 5' flank on the seed diagonal joins cleanly."""
        raw = _raw(30)
        seed = _seed((11, 30, 11, 30))
        result = join_alignments(seed, raw[10:], CONSENSUS, 30, five_prime=self._five_prime(raw))
        assert result.is_joined
        assert result.alignment.sequence_line == raw
        assert result.alignment.model_line == CONSENSUS
        assert result.alignment.confidence_line == "9" * 15 + "*" * 15
        assert result.inserts.model_start == 1

    def test_missing_confidence(self):
        """Test the confidence line is dropped if a flank has none."""
        raw = _raw(30)
        seed = _seed((11, 30, 11, 30))
        flank = self._five_prime(raw, confidence=False)
        result = join_alignments(seed, raw[10:], CONSENSUS, 30, five_prime=flank)
        assert result.alignment.confidence_line is None

    def test_off_by_one_five_prime(self):
        """Test a 5' flank one position off the diagonal is a splice failure."""
        raw = _raw(30)
        seed = _seed((11, 30, 11, 30))
        result = join_alignments(seed, raw[10:], CONSENSUS, 30,
                                 five_prime=self._five_prime(raw, shift=1))
        assert not result.is_joined
        assert result.alignment is None
        assert result.inserts is None
        (failure,) = result.failures
        assert failure.side == FlankSide.FIVE_PRIME
        assert failure.expected_offset == 0
        assert failure.observed_offset == 1
        assert "5' aligned region" in result.failure_message
        assert "seq:11..30" in failure.message

    def test_boundary_in_insert(self):
        """Test a boundary residue in an insert column is a splice failure."""
        raw = _raw(30)
        seed = _seed((11, 30, 11, 30))
        flank = FlankAlignment(
            side=FlankSide.FIVE_PRIME,
            triple=AlignmentTriple(raw[:15] + "-" * 16, CONSENSUS[:14] + "." + CONSENSUS[14:]),
            model_span=CoordsSegment(1, 14),
            seq_span=CoordsSegment(1, 15),
        )
        result = join_alignments(seed, raw[10:], CONSENSUS, 30, five_prime=flank)
        assert result.failures[0].observed_offset is None

    def test_three_prime_join_with_insert(self):
        """Test a 3' flank joins and its inserts move to full-sequence positions."""
        raw = _raw(31)
        seed = _seed((1, 20, 1, 20))
        seq_line = "-" * 15 + raw[15:25] + raw[25] + raw[26:31]
        model_line = CONSENSUS[:25] + "." + CONSENSUS[25:]
        flank = FlankAlignment(
            side=FlankSide.THREE_PRIME,
            triple=AlignmentTriple(seq_line, model_line),
            model_span=CoordsSegment(16, 30),
            seq_span=CoordsSegment(16, 31),
            inserts=(InsertRecord(25, 11, 1),),
        )
        result = join_alignments(seed, raw[:20], CONSENSUS, 31, three_prime=flank)
        assert result.is_joined
        assert result.alignment.get_ungapped_sequence() == raw
        assert result.alignment.model_length == 30
        assert result.inserts.records == (InsertRecord(25, 26, 1),)
        assert (result.inserts.model_start, result.inserts.model_stop) == (1, 30)

    def test_both_flanks_fail(self):
        """Test failures on both sides are all reported."""
        raw = _raw(30)
        seed = _seed((11, 20, 11, 20))
        three = FlankAlignment(
            side=FlankSide.THREE_PRIME,
            triple=AlignmentTriple("-" * 16 + raw[15:29], CONSENSUS),
            model_span=CoordsSegment(17, 30),
            seq_span=CoordsSegment(16, 29),
        )
        five = FlankAlignment(
            side=FlankSide.FIVE_PRIME,
            triple=AlignmentTriple("-" + raw[:14] + "-" * 15, CONSENSUS),
            model_span=CoordsSegment(2, 15),
            seq_span=CoordsSegment(1, 14),
        )
        result = join_alignments(seed, raw[10:20], CONSENSUS, 29, five_prime=five, three_prime=three)
        assert [f.side for f in result.failures] == [FlankSide.FIVE_PRIME, FlankSide.THREE_PRIME]

    def test_overhang_past_gapped_seed_block(self):
        """Test the flank overlap must stay inside the first seed block."""
        raw = _raw(32)
        seed = _seed((11, 13, 11, 13), (14, 30, 16, 32))
        result = join_alignments(seed, raw[10:], CONSENSUS, 32, five_prime=self._five_prime(raw))
        assert not result.is_joined
        assert "first ungapped seed block" in result.failures[0].reason


class TestPreconditions:
    """Tests for inconsistent join inputs."""

    def test_missing_flank(self):
        """Test a seed not starting at 1 needs a 5' flank."""
        with pytest.raises(InvariantViolationError):
            join_alignments(_seed((11, 30, 11, 30)), _raw(20), CONSENSUS, 30)

    def test_unexpected_flank(self):
        """Test a seed starting at 1 must not get a 5' flank."""
        raw = _raw(30)
        flank = FlankAlignment(
            side=FlankSide.FIVE_PRIME,
            triple=AlignmentTriple(raw[:15] + "-" * 15, CONSENSUS),
            model_span=CoordsSegment(1, 15),
            seq_span=CoordsSegment(1, 15),
        )
        with pytest.raises(InvariantViolationError):
            join_alignments(_seed((1, 30, 1, 30)), raw, CONSENSUS, 30, five_prime=flank)

    def test_seed_sequence_length(self):
        """Test the seed residues must match the seed span."""
        with pytest.raises(InvariantViolationError):
            join_alignments(_seed((1, 30, 1, 30)), _raw(29), CONSENSUS, 30)

    def test_flank_residue_count(self):
        """Test a flank alignment must hold every residue of its subsequence."""
        raw = _raw(30)
        three = FlankAlignment(
            side=FlankSide.THREE_PRIME,
            triple=AlignmentTriple("-" * 16 + raw[16:], CONSENSUS),
            model_span=CoordsSegment(17, 30),
            seq_span=CoordsSegment(16, 30),
        )
        with pytest.raises(InvariantViolationError):
            join_alignments(_seed((1, 20, 1, 20)), raw[:20], CONSENSUS, 30, three_prime=three)

    def test_seed_past_model_end(self):
        """Test a seed beyond the consensus is rejected."""
        with pytest.raises(InvariantViolationError):
            join_alignments(_seed((1, 31, 1, 31)), _raw(31), CONSENSUS, 31)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
