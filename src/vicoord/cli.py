"""
VICOORD Command-Line Interface

Entry points for vicoord-validate, vicoord-plan and vicoord-join commands.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

import pandas as pd

from vicoord.logging import setup_logging


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--overhang', type=int,
                        help='Flank overhang width in nt (default: config, 100)')
    parser.add_argument('--seed-mode', choices=['ungapped', 'gapped'],
                        help='Seed selection mode (default: config, ungapped)')
    parser.add_argument('--threads', type=int,
                        help='Number of worker processes (default: config, 4)')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Show debug output')


def _configure(args):
    """Global config with command-line overrides applied."""
    from vicoord.config import get_config

    config = get_config()
    if getattr(args, 'overhang', None) is not None:
        config.overhang_width = args.overhang
    if getattr(args, 'seed_mode', None) is not None:
        config.seed_mode = args.seed_mode
    if getattr(args, 'threads', None) is not None:
        config.worker_concurrency = args.threads
    return config


def _read_consensus(path: str) -> str:
    from vicoord.align import read_sequences

    records = read_sequences(path)
    if len(records) != 1:
        raise ValueError(f"Consensus file {path} must hold exactly one sequence, found {len(records)}")
    return next(iter(records.values()))


def validate_main(argv: Optional[List[str]] = None):
    """Entry point for vicoord-validate command."""
    from vicoord.config import get_config
    from vicoord.errors import VicoordError
    from vicoord.features import load_feature_table, parse_peptide_map, validate_feature_table

    parser = argparse.ArgumentParser(
        description='Check VICOORD configuration and, optionally, a model feature table',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Configuration only
  vicoord-validate

  # Check that mature peptides tile their CDS
  vicoord-validate --features model.features.tsv --peptide-map model.matpept --total-len 10735
        """
    )
    parser.add_argument('--features', help='Model feature TSV (type, coords, product)')
    parser.add_argument('--peptide-map', help='CDS to mature peptide map')
    parser.add_argument('--total-len', type=int, help='Model length, enables bounds checks')
    parser.add_argument('--verbose', '-v', action='store_true', help='Show debug output')
    args = parser.parse_args(argv)

    logger = setup_logging("vicoord", verbose=args.verbose)

    logger.info("VICOORD Configuration Validation")
    logger.info("================================")

    config = get_config()
    config.print_status()

    is_valid, errors = config.validate()

    if errors:
        logger.error("\nConfiguration Errors:")
        for error in errors:
            logger.error(f"  ✗ {error}")
        sys.exit(1)
    logger.info("\n✓ Configuration is valid")

    if args.features and args.peptide_map:
        try:
            table = load_feature_table(args.features, total_len=args.total_len, circular=config.circular)
            checks = validate_feature_table(table, parse_peptide_map(args.peptide_map))
        except (VicoordError, FileNotFoundError, ValueError) as e:
            logger.error(f"✗ {e}")
            sys.exit(1)

        failed = [check for check in checks if not check.ok]
        if failed:
            logger.error(f"✗ {len(failed)}/{len(checks)} CDS not tiled by their mature peptides")
            sys.exit(1)
        logger.info(f"✓ {len(checks)} CDS tiled by their mature peptides")
    elif args.features or args.peptide_map:
        logger.error("--features and --peptide-map must be given together")
        sys.exit(2)

    sys.exit(0)


def plan_main(argv: Optional[List[str]] = None):
    """Entry point for vicoord-plan command."""
    from vicoord.align import read_sequences, write_sequences
    from vicoord.errors import VicoordError
    from vicoord.pipeline import (
        SeedSplicePipeline, flank_subsequences, read_indel_table, read_minimap2_sam, seed_table,
    )

    parser = argparse.ArgumentParser(
        description='Pick seeds from approximate alignments and write the flank subsequences to realign',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  vicoord-plan hits.indel.tsv seqs.fa model.consensus.fa -o run1
  vicoord-plan hits.indel.tsv seqs.fa model.consensus.fa --minimap2 seqs.sam -o run1

Writes run1.seeds.tsv (one row per sequence) and run1.flanks.fa (subsequences
named <seq>/<start>-<stop>) for the accurate aligner.
        """
    )
    parser.add_argument('indel_table', help='Approximate aligner indel summary')
    parser.add_argument('sequences', help='FASTA of the full sequences')
    parser.add_argument('consensus', help='FASTA holding the model consensus')
    parser.add_argument('--output', '-o', required=True, help='Output prefix')
    parser.add_argument('--minimap2', metavar='SAM',
                        help='minimap2 SAM of the same sequences; a longer primary alignment replaces the seed')
    _add_common_arguments(parser)
    args = parser.parse_args(argv)

    logger = setup_logging("vicoord", verbose=args.verbose)
    config = _configure(args)

    try:
        consensus = _read_consensus(args.consensus)
        sequences = read_sequences(args.sequences)
        hits = read_indel_table(args.indel_table)
        mapped = read_minimap2_sam(args.minimap2) if args.minimap2 else None
        pipeline = SeedSplicePipeline(consensus, config)
        plans = pipeline.plan(hits, mapped)
    except (VicoordError, FileNotFoundError, ValueError) as e:
        logger.error(f"✗ {e}")
        sys.exit(1)

    seeds_path = Path(f"{args.output}.seeds.tsv")
    flanks_path = Path(f"{args.output}.flanks.fa")
    seed_table(plans).to_csv(seeds_path, sep="\t", index=False)
    n_flanks = write_sequences(flank_subsequences(plans, sequences), flanks_path)

    logger.info(f"✓ {len(plans)} seed(s) written to {seeds_path}")
    logger.info(f"✓ {n_flanks} flank subsequence(s) written to {flanks_path}")
    sys.exit(0)


def join_main(argv: Optional[List[str]] = None):
    """Entry point for vicoord-join command."""
    from vicoord.align import (
        read_sequences,
        write_aligned_fasta,
        write_insert_file,
        write_stockholm_triples,
    )
    from vicoord.errors import VicoordError
    from vicoord.pipeline import PrecomputedAligner, SeedSplicePipeline, plans_from_seed_table, seed_table

    parser = argparse.ArgumentParser(
        description='Join accurate flank alignments onto their seeds',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  vicoord-join run1.seeds.tsv seqs.fa model.consensus.fa flanks.stk flanks.ifile -o run1

Writes run1.stk, run1.ifile and run1.joined.tsv. Use the same --overhang as
vicoord-plan.
        """
    )
    parser.add_argument('seed_table', help='Seed table written by vicoord-plan')
    parser.add_argument('sequences', help='FASTA of the full sequences')
    parser.add_argument('consensus', help='FASTA holding the model consensus')
    parser.add_argument('flank_alignments', help='Stockholm alignments of the flank subsequences')
    parser.add_argument('flank_inserts', help='Insert file of the flank subsequences')
    parser.add_argument('--output', '-o', required=True, help='Output prefix')
    parser.add_argument('--fasta', action='store_true', help='Also write aligned FASTA')
    _add_common_arguments(parser)
    args = parser.parse_args(argv)

    logger = setup_logging("vicoord", verbose=args.verbose)
    config = _configure(args)

    try:
        consensus = _read_consensus(args.consensus)
        sequences = read_sequences(args.sequences)
        df = pd.read_csv(args.seed_table, sep="\t", dtype={"seq_name": str})
        plans = plans_from_seed_table(df, config.overhang_width)
        pipeline = SeedSplicePipeline(consensus, config)
        requests = [req for plan in plans for req in plan.requests]
        aligner = PrecomputedAligner(args.flank_alignments, args.flank_inserts)
        flanks = aligner.align(requests, sequences) if requests else {}
        reports = pipeline.join(plans, sequences, flanks)
    except (VicoordError, FileNotFoundError, ValueError) as e:
        logger.error(f"✗ {e}")
        sys.exit(1)

    joined = [(r.seq_name, r.result) for r in reports if r.is_joined]
    stk_path = Path(f"{args.output}.stk")
    ifile_path = Path(f"{args.output}.ifile")
    write_stockholm_triples([(name, result.alignment) for name, result in joined], stk_path)
    write_insert_file([(name, result.inserts) for name, result in joined], ifile_path,
                      model_name=Path(args.consensus).stem, model_len=len(consensus))
    if args.fasta:
        write_aligned_fasta([(name, result.alignment) for name, result in joined],
                            Path(f"{args.output}.aligned.fa"))
    seed_table(reports).to_csv(Path(f"{args.output}.joined.tsv"), sep="\t", index=False)

    logger.info(f"✓ {len(joined)}/{len(reports)} sequence(s) joined, written to {stk_path}")
    sys.exit(0)


if __name__ == "__main__":
    validate_main()
