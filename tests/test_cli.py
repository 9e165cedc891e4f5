"""
Tests for the vicoord-validate, vicoord-plan and vicoord-join commands.
"""

import random
import sys
from pathlib import Path

import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from vicoord.align import (
    AlignmentTriple,
    InsertMap,
    read_sequences,
    read_stockholm_triples,
    write_insert_file,
    write_sequences,
    write_stockholm_triples,
)
from vicoord.cli import join_main, plan_main, validate_main
from vicoord.config import reset_config

CONSENSUS = "".join(random.Random(9).choice("acgt") for _ in range(400))


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Fresh global configuration for every command."""
    for var in ("VICOORD_OVERHANG", "VICOORD_THREADS", "VICOORD_SEED_MODE"):
        monkeypatch.delenv(var, raising=False)
    reset_config()
    yield
    reset_config()


def _exit_code(main, argv):
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    return excinfo.value.code


def _diagonal_alignments(flanks_path):
    """Align each flank subsequence on the main diagonal, as an exact aligner would."""
    alignments, inserts = [], []
    for name, residues in read_sequences(flanks_path).items():
        start, stop = (int(v) for v in name.rsplit("/", 1)[1].split("-"))
        seq_line = "-" * (start - 1) + residues + "-" * (len(CONSENSUS) - stop)
        alignments.append((name, AlignmentTriple(seq_line, CONSENSUS)))
        inserts.append((name, InsertMap(start, stop, (), seq_len=len(residues))))
    return alignments, inserts


class TestValidateCommand:
    """Tests for vicoord-validate."""

    def test_config_only(self):
        """Test the default configuration validates."""
        assert _exit_code(validate_main, []) == 0

    def test_invalid_config(self, monkeypatch):
        """Test an invalid configuration fails."""
        monkeypatch.setenv("VICOORD_SEED_MODE", "fast")
        reset_config()
        assert _exit_code(validate_main, []) == 1

    def test_features(self, tmp_path):
        """Test a feature table whose peptides tile the CDS."""
        features = tmp_path / "model.features.tsv"
        features.write_text(
            "type\tcoords\tproduct\n"
            "CDS\t1..300\tpolyprotein\n"
            "mat_peptide\t1..150\tC\n"
            "mat_peptide\t151..297\tE\n"
        )
        peptides = tmp_path / "model.matpept"
        peptides.write_text("1 primary 1:2\n1 all 1:2\n")
        argv = ["--features", str(features), "--peptide-map", str(peptides), "--total-len", "400"]
        assert _exit_code(validate_main, argv) == 0

        peptides.write_text("1 primary 2\n1 all 2\n")
        assert _exit_code(validate_main, argv) == 1

    def test_features_without_map(self, tmp_path):
        """Test --features alone is a usage error."""
        assert _exit_code(validate_main, ["--features", str(tmp_path / "f.tsv")]) == 2


class TestPlanAndJoin:
    """Tests for vicoord-plan followed by vicoord-join."""

    def test_round_trip(self, tmp_path):
        """Test planning, aligning flanks and joining a small batch."""
        raw = CONSENSUS.upper()
        consensus = tmp_path / "model.fa"
        sequences = tmp_path / "seqs.fa"
        indel_table = tmp_path / "hits.indel"
        write_sequences([("NC_000001", CONSENSUS)], consensus)
        write_sequences([("s1", raw), ("s2", raw)], sequences)
        indel_table.write_text(
            "NC_000001 s1 1..400:+ 400 1..400:+ 400 BLASTNULL BLASTNULL\n"
            "NC_000001 s2 51..350:+ 400 51..350:+ 400 BLASTNULL BLASTNULL\n"
        )
        prefix = tmp_path / "run1"

        argv = [str(indel_table), str(sequences), str(consensus), "-o", str(prefix), "--threads", "1"]
        assert _exit_code(plan_main, argv) == 0

        seeds = pd.read_csv(f"{prefix}.seeds.tsv", sep="\t", dtype=str, keep_default_na=False)
        assert list(seeds["seq_name"]) == ["s1", "s2"]
        assert list(read_sequences(f"{prefix}.flanks.fa")) == ["s2/1-150", "s2/251-400"]

        alignments, inserts = _diagonal_alignments(f"{prefix}.flanks.fa")
        write_stockholm_triples(alignments, tmp_path / "flanks.stk")
        write_insert_file(inserts, tmp_path / "flanks.ifile")

        reset_config()
        argv = [
            f"{prefix}.seeds.tsv", str(sequences), str(consensus),
            str(tmp_path / "flanks.stk"), str(tmp_path / "flanks.ifile"),
            "-o", str(prefix), "--threads", "1", "--fasta",
        ]
        assert _exit_code(join_main, argv) == 0

        joined = read_stockholm_triples(f"{prefix}.stk")
        assert joined["s2"].get_ungapped_sequence() == raw
        assert joined["s2"].model_line == CONSENSUS
        assert read_sequences(f"{prefix}.aligned.fa")["s1"] == raw
        report = pd.read_csv(f"{prefix}.joined.tsv", sep="\t", dtype=str, keep_default_na=False)
        assert list(report["joined"]) == ["yes", "yes"]
        assert (tmp_path / "run1.ifile").read_text().splitlines()[0] == "model 400"

    def test_minimap2_seed(self, tmp_path):
        """Test --minimap2 replaces a shorter approximate seed."""
        consensus = tmp_path / "model.fa"
        sequences = tmp_path / "seqs.fa"
        indel_table = tmp_path / "hits.indel"
        sam = tmp_path / "seqs.sam"
        write_sequences([("NC_000001", CONSENSUS)], consensus)
        write_sequences([("s2", CONSENSUS.upper())], sequences)
        indel_table.write_text("NC_000001 s2 51..350:+ 400 51..350:+ 400 BLASTNULL BLASTNULL\n")
        sam.write_text(
            "@HD\tVN:1.6\tSO:unsorted\n"
            "@SQ\tSN:NC_000001\tLN:400\n"
            "@PG\tID:minimap2\tPN:minimap2\n"
            "s2\t0\tNC_000001\t1\t60\t400M\t*\t0\t0\t*\t*\n"
        )
        prefix = tmp_path / "run1"

        argv = [
            str(indel_table), str(sequences), str(consensus), "-o", str(prefix),
            "--threads", "1", "--minimap2", str(sam),
        ]
        assert _exit_code(plan_main, argv) == 0

        seeds = pd.read_csv(f"{prefix}.seeds.tsv", sep="\t", dtype=str, keep_default_na=False)
        assert list(seeds["seed_seq_coords"]) == ["1..400:+"]
        assert list(seeds["flank_5p"]) == [""]

    def test_missing_input(self, tmp_path):
        """Test a missing input file fails cleanly."""
        argv = [
            str(tmp_path / "absent.indel"), str(tmp_path / "seqs.fa"),
            str(tmp_path / "model.fa"), "-o", str(tmp_path / "run1"),
        ]
        assert _exit_code(plan_main, argv) == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
