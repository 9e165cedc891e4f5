"""
VICOORD Seed-and-Splice Pipeline

Drives a batch of sequences through the two halves of fast alignment:

1. plan: approximate-aligner hit -> ungapped regions -> seed -> flank requests
   (a read mapper's primary alignment may supply a longer seed)
2. join: seed + accurate flank alignments -> one full-length alignment

Each sequence is independent. Batches run on a process pool bounded by
``Config.worker_concurrency`` and results come back in input order. A
flank that cannot be joined, or that the accurate aligner returned nothing
for, becomes an alert on that sequence's report. Malformed input and internal
inconsistencies abort the batch.
"""

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd
import pysam

from .align import (
    AlignmentTriple,
    FlankAlignment,
    InsertMap,
    JoinResult,
    join_alignments,
    read_insert_file,
    read_stockholm_triples,
)
from .config import Config, get_config
from .coords import CoordsSegment, Strand, format_tagged, parse_coords, parse_segment
from .errors import InvariantViolationError
from .logging import sequence_logger
from .seed import (
    FlankRequest,
    FlankSide,
    Seed,
    UngappedSegmentPair,
    find_ungapped_regions,
    pairs_from_cigar,
    parse_indel_strings,
    pick_best_seed,
    select_flanks,
    select_seed,
)

logger = logging.getLogger(__name__)

INDEL_COLUMNS = [
    "model", "seq", "mdl_coords", "mdl_len", "seq_coords", "seq_len", "ins", "del"
]

# Alert code for a sequence whose flanks could not be joined to its seed
UNJOINABLE = "unjoinbl"
# Alert code for a requested flank the accurate aligner returned no alignment for
NO_FLANK_ALIGNMENT = "noflkaln"

PathLike = Union[str, Path]


@dataclass(frozen=True)
class ApproxHit:
    """One approximate-aligner hit of a sequence to a model.

    Attributes:
        seq_name: Sequence name
        model_name: Model name
        model_span: Model positions covered by the hit
        model_len: Model length
        seq_span: Sequence positions covered by the hit
        seq_len: Sequence length
        insertions: Insertion string, None if there are none
        deletions: Deletion string, None if there are none
    """
    seq_name: str
    model_name: str
    model_span: CoordsSegment
    model_len: int
    seq_span: CoordsSegment
    seq_len: int
    insertions: Optional[str] = None
    deletions: Optional[str] = None


@dataclass(frozen=True)
class MappedHit:
    """Primary alignment of a sequence reported by a read mapper (minimap2).

    Attributes:
        seq_name: Sequence name
        model_name: Reference (model) name
        pairs: Ungapped blocks of the alignment, 5'->3'
    """
    seq_name: str
    model_name: str
    pairs: Tuple[UngappedSegmentPair, ...]


@dataclass(frozen=True)
class SeedPlan:
    """Seed and flank requests chosen for one sequence."""
    seq_name: str
    seq_len: int
    model_len: int
    pairs: Tuple[UngappedSegmentPair, ...]
    seed: Seed
    requests: Tuple[FlankRequest, ...]

    @property
    def is_full_realignment(self) -> bool:
        return any(req.side == FlankSide.FULL for req in self.requests)

    def request(self, side: FlankSide) -> Optional[FlankRequest]:
        for req in self.requests:
            if req.side == side:
                return req
        return None


@dataclass(frozen=True)
class SequenceAlert:
    """Recoverable problem recorded against one sequence."""
    code: str
    message: str

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


@dataclass(frozen=True)
class SequenceReport:
    """Outcome of joining one sequence.

    Attributes:
        plan: The plan the join followed
        result: Join result; failures are also listed as alerts
        alerts: Recoverable problems for this sequence
    """
    plan: SeedPlan
    result: JoinResult
    alerts: Tuple[SequenceAlert, ...] = field(default_factory=tuple)

    @property
    def seq_name(self) -> str:
        return self.plan.seq_name

    @property
    def is_joined(self) -> bool:
        return self.result.is_joined


class AccurateAligner(ABC):
    """Aligns flank subsequences accurately against the model."""

    @abstractmethod
    def align(
        self, requests: Sequence[FlankRequest], sequences: Dict[str, str]
    ) -> Dict[str, FlankAlignment]:
        """Align each requested subsequence.

        Args:
            requests: Flank requests of the batch
            sequences: Full sequences by name

        Returns:
            Dict mapping request name (``FlankRequest.name``) to its alignment
        """


class PrecomputedAligner(AccurateAligner):
    """Serves flank alignments an external aligner already wrote to disk.

    Args:
        stockholm_path: Stockholm file with one alignment per subsequence
        insert_path: Insert file for the same subsequences
    """

    def __init__(self, stockholm_path: PathLike, insert_path: PathLike):
        self.stockholm_path = Path(stockholm_path)
        self.insert_path = Path(insert_path)

    def align(
        self, requests: Sequence[FlankRequest], sequences: Dict[str, str]
    ) -> Dict[str, FlankAlignment]:
        return load_flank_alignments(self.stockholm_path, self.insert_path, requests)


def _optional_text(value) -> Optional[str]:
    if value is None or pd.isna(value) or not str(value).strip():
        return None
    return str(value).strip()


def read_indel_table(filepath: PathLike) -> List[ApproxHit]:
    """Read the approximate aligner's per-hit indel summary.

    Whitespace-separated columns: model, sequence, model coords, model
    length, sequence coords, sequence length, insertions, deletions.
    Coordinates are strand-tagged (``"5..7513:+"``). Only the first hit of
    each sequence is used, and only if both spans are on the plus strand.

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If a length column is not an integer
        MalformedCoordinatesError: If a coordinate column is malformed
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Indel table not found: {filepath}")

    try:
        df = pd.read_csv(
            path, sep=r"\s+", comment="#", header=None, names=INDEL_COLUMNS,
            dtype=str, keep_default_na=False,
        )
    except pd.errors.EmptyDataError:
        return []

    hits: List[ApproxHit] = []
    seen = set()
    for _, row in df.iterrows():
        seq_name = row["seq"]
        if seq_name in seen:
            continue
        seen.add(seq_name)

        model_span = parse_segment(row["mdl_coords"])
        seq_span = parse_segment(row["seq_coords"])
        if model_span.strand != Strand.PLUS or seq_span.strand != Strand.PLUS:
            log = sequence_logger(logger, seq_name, row["model"])
            log.debug("first hit is not plus/plus, no seed")
            continue
        try:
            model_len = int(row["mdl_len"])
            seq_len = int(row["seq_len"])
        except ValueError:
            raise ValueError(
                f"Non-integer length for {seq_name} in indel table {filepath}: "
                f"{row['mdl_len']}, {row['seq_len']}"
            )

        hits.append(ApproxHit(
            seq_name=seq_name,
            model_name=row["model"],
            model_span=model_span,
            model_len=model_len,
            seq_span=seq_span,
            seq_len=seq_len,
            insertions=_optional_text(row["ins"]),
            deletions=_optional_text(row["del"]),
        ))
    return hits


def read_minimap2_sam(filepath: PathLike) -> Dict[str, MappedHit]:
    """Read minimap2 SAM output into per-sequence ungapped blocks.

    Only the first primary, forward-strand alignment of each sequence is
    used. Unmapped, secondary and supplementary records are skipped.

    Args:
        filepath: SAM file written by minimap2 (header included)

    Returns:
        Dict mapping sequence name to its MappedHit

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If pysam cannot parse the file
        MalformedIndelTokenError: If a CIGAR string is malformed
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"SAM file not found: {filepath}")

    records = []
    try:
        with pysam.AlignmentFile(str(path), "r") as samfile:
            for read in samfile:
                if read.is_unmapped or read.is_secondary or read.is_supplementary:
                    continue
                if read.is_reverse:
                    sequence_logger(logger, read.query_name, read.reference_name).debug(
                        "primary alignment is on the minus strand, no seed"
                    )
                    continue
                records.append((
                    read.query_name, read.reference_name,
                    read.reference_start + 1, read.cigarstring,
                ))
    except (ValueError, OSError) as e:
        raise ValueError(f"Failed to parse SAM file {filepath}: {e}")

    hits: Dict[str, MappedHit] = {}
    for seq_name, model_name, model_start, cigar in records:
        if seq_name in hits:
            continue
        pairs = pairs_from_cigar(cigar, model_start)
        hits[seq_name] = MappedHit(seq_name, model_name, tuple(pairs))
    logger.debug(f"Read {len(hits)} primary alignment(s) from {filepath}")
    return hits


def _seed_from(pairs, hit: ApproxHit, config: Config, codon_segments) -> Seed:
    return select_seed(
        pairs,
        mode=config.seed_mode,
        min_segment_length=config.min_segment_length,
        terminal_segment_length=config.terminal_segment_length,
        seq_len=hit.seq_len,
        model_len=hit.model_len,
        codon_segments=codon_segments,
        check_codon_gaps=config.check_codon_gaps,
    )


def plan_sequence(
    hit: ApproxHit,
    config: Config,
    codon_segments: Sequence[CoordsSegment] = (),
    mapped: Optional[MappedHit] = None,
) -> SeedPlan:
    """Find the seed of one hit and the flanks that must be realigned around it.

    With a ``mapped`` alignment of the same sequence, its seed is used
    instead when it covers at least as many model positions.

    Raises:
        InvariantViolationError: If ``mapped`` belongs to another sequence or
            model, or runs past the sequence or model end
    """
    log = sequence_logger(logger, hit.seq_name, hit.model_name)
    insertions, deletions = parse_indel_strings(hit.insertions, hit.deletions)
    pairs = find_ungapped_regions(hit.model_span, hit.seq_span, insertions, deletions)
    seed = _seed_from(pairs, hit, config, codon_segments)

    if mapped is not None:
        if (mapped.seq_name, mapped.model_name) != (hit.seq_name, hit.model_name):
            raise InvariantViolationError(
                f"{hit.seq_name}: mapped alignment is of {mapped.seq_name} to "
                f"{mapped.model_name}, hit is to {hit.model_name}"
            )
        mapped_seed = _seed_from(mapped.pairs, hit, config, codon_segments)
        if mapped_seed.seq_stop > hit.seq_len or mapped_seed.model_stop > hit.model_len:
            raise InvariantViolationError(
                f"{hit.seq_name}: mapped seed seq:{mapped_seed.seq_start}..{mapped_seed.seq_stop} "
                f"mdl:{mapped_seed.model_start}..{mapped_seed.model_stop} runs past "
                f"sequence length {hit.seq_len} or model length {hit.model_len}"
            )
        if pick_best_seed(seed, mapped_seed) is mapped_seed:
            log.debug(
                f"mapped seed covers {mapped_seed.model_coverage} model positions, "
                f"approximate seed {seed.model_coverage}; using mapped seed"
            )
            pairs, seed = list(mapped.pairs), mapped_seed

    requests = select_flanks(
        hit.seq_name,
        hit.seq_len,
        seed.seq_span,
        config.overhang_width,
        seed_model_span=seed.model_span,
        model_len=hit.model_len,
    )
    log.debug(
        f"seed seq:{seed.seq_start}..{seed.seq_stop} "
        f"mdl:{seed.model_start}..{seed.model_stop} ({len(seed.pairs)} block(s)), "
        f"{len(requests)} flank request(s)"
    )
    return SeedPlan(
        seq_name=hit.seq_name,
        seq_len=hit.seq_len,
        model_len=hit.model_len,
        pairs=tuple(pairs),
        seed=seed,
        requests=tuple(requests),
    )


def _flank_for(plan: SeedPlan, side: FlankSide, flanks: Dict[str, FlankAlignment]):
    req = plan.request(side)
    if req is None:
        return None
    return flanks[req.name]


def join_sequence(
    plan: SeedPlan,
    raw_seq: str,
    consensus: str,
    flanks: Dict[str, FlankAlignment],
) -> SequenceReport:
    """Join the seed of one sequence with its flank alignments.

    Args:
        plan: The sequence's plan
        raw_seq: The full sequence
        consensus: Model consensus
        flanks: Flank alignments keyed by request name

    Returns:
        SequenceReport; an unjoinable sequence carries an ``unjoinbl`` alert,
        one with a requested flank missing from ``flanks`` a ``noflkaln``
        alert per missing flank and no alignment
    """
    if len(raw_seq) != plan.seq_len:
        raise InvariantViolationError(
            f"{plan.seq_name}: sequence has length {len(raw_seq)}, plan expects {plan.seq_len}"
        )
    if len(consensus) != plan.model_len:
        raise InvariantViolationError(
            f"{plan.seq_name}: consensus has length {len(consensus)}, model length is {plan.model_len}"
        )

    missing = [req for req in plan.requests if req.name not in flanks]
    if missing:
        alerts = tuple(
            SequenceAlert(NO_FLANK_ALIGNMENT, f"no alignment returned for subsequence {req.name}")
            for req in missing
        )
        return SequenceReport(plan, JoinResult(), alerts)

    if plan.is_full_realignment:
        full = _flank_for(plan, FlankSide.FULL, flanks)
        if full.triple.get_ungapped_length() != plan.seq_len:
            raise InvariantViolationError(
                f"{plan.seq_name}: full alignment has {full.triple.get_ungapped_length()} "
                f"residues, expected {plan.seq_len}"
            )
        inserts = InsertMap(full.model_span.start, full.model_span.stop, full.inserts, plan.seq_len)
        return SequenceReport(plan, JoinResult(alignment=full.triple, inserts=inserts))

    seed = plan.seed
    result = join_alignments(
        seed,
        raw_seq[seed.seq_start - 1:seed.seq_stop],
        consensus,
        plan.seq_len,
        five_prime=_flank_for(plan, FlankSide.FIVE_PRIME, flanks),
        three_prime=_flank_for(plan, FlankSide.THREE_PRIME, flanks),
    )
    alerts = tuple(SequenceAlert(UNJOINABLE, failure.message) for failure in result.failures)
    return SequenceReport(plan, result, alerts)


def _run_batch(fn: Callable, jobs: Sequence[tuple], workers: int) -> list:
    """Apply ``fn`` to each argument tuple, returning results in job order."""
    if workers <= 1 or len(jobs) <= 1:
        return [fn(*args) for args in jobs]

    results: list = [None] * len(jobs)
    with ProcessPoolExecutor(max_workers=min(workers, len(jobs))) as executor:
        future_to_index = {executor.submit(fn, *args): i for i, args in enumerate(jobs)}
        for future in as_completed(future_to_index):
            exc = future.exception()
            if exc is not None:
                for pending in future_to_index:
                    pending.cancel()
                raise exc
            results[future_to_index[future]] = future.result()
    return results


class SeedSplicePipeline:
    """Plans seeds and joins flank alignments for a batch of sequences.

    Args:
        consensus: Model consensus sequence
        config: Pipeline configuration (global config if None)
        codon_segments: Model start/stop codon segments, for gapped seeds
    """

    def __init__(
        self,
        consensus: str,
        config: Optional[Config] = None,
        codon_segments: Sequence[CoordsSegment] = (),
    ):
        self.consensus = consensus
        self.config = config or get_config()
        self.codon_segments = tuple(codon_segments)

        is_valid, errors = self.config.validate()
        if not is_valid:
            raise ValueError("Invalid configuration: " + "; ".join(errors))

    @property
    def model_len(self) -> int:
        return len(self.consensus)

    def plan(
        self,
        hits: Sequence[ApproxHit],
        mapped: Optional[Dict[str, MappedHit]] = None,
    ) -> List[SeedPlan]:
        """Plan every hit, in input order.

        ``mapped`` holds read-mapper alignments by sequence name; a sequence
        with a mapped alignment but no hit is not planned.
        """
        mapped = mapped or {}
        for hit in hits:
            if hit.model_len != self.model_len:
                raise InvariantViolationError(
                    f"{hit.seq_name}: hit model length {hit.model_len} differs from "
                    f"consensus length {self.model_len}"
                )
        jobs = [
            (hit, self.config, self.codon_segments, mapped.get(hit.seq_name))
            for hit in hits
        ]
        plans = _run_batch(plan_sequence, jobs, self.config.worker_concurrency)
        logger.info(f"Planned {len(plans)} seed(s), "
                    f"{sum(len(p.requests) for p in plans)} flank request(s)")
        return plans

    def join(
        self,
        plans: Sequence[SeedPlan],
        sequences: Dict[str, str],
        flanks: Dict[str, FlankAlignment],
    ) -> List[SequenceReport]:
        """Join every planned sequence, in input order."""
        jobs = []
        for plan in plans:
            if plan.seq_name not in sequences:
                raise InvariantViolationError(f"No sequence named {plan.seq_name}")
            needed = {req.name: flanks[req.name] for req in plan.requests if req.name in flanks}
            jobs.append((plan, sequences[plan.seq_name], self.consensus, needed))

        reports = _run_batch(join_sequence, jobs, self.config.worker_concurrency)
        n_joined = sum(1 for report in reports if report.is_joined)
        logger.info(f"Joined {n_joined}/{len(reports)} sequence(s)")
        for report in reports:
            for alert in report.alerts:
                sequence_logger(logger, report.seq_name).warning(str(alert))
        return reports

    def run(
        self,
        hits: Sequence[ApproxHit],
        sequences: Dict[str, str],
        aligner: AccurateAligner,
        mapped: Optional[Dict[str, MappedHit]] = None,
    ) -> List[SequenceReport]:
        """Plan, align flanks with ``aligner`` and join a whole batch."""
        plans = self.plan(hits, mapped)
        requests = [req for plan in plans for req in plan.requests]
        flanks = aligner.align(requests, sequences) if requests else {}
        return self.join(plans, sequences, flanks)


def flank_subsequences(plans: Sequence[SeedPlan], sequences: Dict[str, str]) -> List[Tuple[str, str]]:
    """(name, residues) of every flank request, for the accurate aligner's input."""
    subsequences = []
    for plan in plans:
        raw = sequences[plan.seq_name]
        for req in plan.requests:
            subsequences.append((req.name, raw[req.start - 1:req.stop]))
    return subsequences


def load_flank_alignments(
    stockholm_path: PathLike,
    insert_path: PathLike,
    requests: Sequence[FlankRequest],
) -> Dict[str, FlankAlignment]:
    """Pair the aligner's Stockholm and insert output with the flank requests.

    Requests the aligner produced nothing for are left out of the result.

    Raises:
        FileNotFoundError: If either file doesn't exist
        ValueError: If a subsequence has an alignment but no insert line, or
            its recorded length disagrees with its request
    """
    triples = read_stockholm_triples(stockholm_path)
    insert_maps = read_insert_file(insert_path)

    flanks: Dict[str, FlankAlignment] = {}
    for req in requests:
        triple: Optional[AlignmentTriple] = triples.get(req.name)
        if triple is None:
            continue
        insert_map = insert_maps.get(req.name)
        if insert_map is None:
            raise ValueError(f"No insert line for {req.name} in {insert_path}")
        if insert_map.seq_len is not None and insert_map.seq_len != req.length:
            raise ValueError(
                f"{req.name}: insert file records length {insert_map.seq_len}, "
                f"request covers {req.length}"
            )
        flanks[req.name] = FlankAlignment(
            side=req.side,
            triple=triple,
            model_span=CoordsSegment(insert_map.model_start, insert_map.model_stop, Strand.PLUS),
            seq_span=req.seq_span,
            inserts=insert_map.records,
        )
    return flanks


SEED_TABLE_COLUMNS = [
    "seq_name", "seq_len", "model_len", "seed_seq_coords", "seed_mdl_coords",
    "flank_5p", "flank_3p", "full", "joined", "alerts",
]


def seed_table(items: Sequence[Union[SeedPlan, SequenceReport]]) -> pd.DataFrame:
    """Summarize plans or reports, one row per sequence.

    Seed coordinates are strand-tagged, one segment per seed block; flank
    columns hold request names. ``joined`` and ``alerts`` are empty for
    plans that have not been joined.
    """
    rows = []
    for item in items:
        report = item if isinstance(item, SequenceReport) else None
        plan = report.plan if report is not None else item
        full = plan.request(FlankSide.FULL)
        five = plan.request(FlankSide.FIVE_PRIME)
        three = plan.request(FlankSide.THREE_PRIME)
        rows.append({
            "seq_name": plan.seq_name,
            "seq_len": plan.seq_len,
            "model_len": plan.model_len,
            "seed_seq_coords": format_tagged(list(plan.seed.seq_segments)),
            "seed_mdl_coords": format_tagged(list(plan.seed.model_segments)),
            "flank_5p": five.name if five else "",
            "flank_3p": three.name if three else "",
            "full": full.name if full else "",
            "joined": ("yes" if report.is_joined else "no") if report else "",
            "alerts": "; ".join(str(a) for a in report.alerts) if report else "",
        })
    return pd.DataFrame(rows, columns=SEED_TABLE_COLUMNS)


def plans_from_seed_table(df: pd.DataFrame, overhang: int) -> List[SeedPlan]:
    """Rebuild plans from a seed table written by ``seed_table``.

    Flank requests are recomputed from the seed with ``overhang``, which
    must be the overhang the table was planned with.

    Raises:
        ValueError: If a required column is missing
        MalformedCoordinatesError: If a seed coordinate column is malformed
    """
    missing_cols = [col for col in SEED_TABLE_COLUMNS[:5] if col not in df.columns]
    if missing_cols:
        raise ValueError(f"Seed table is missing column(s): {', '.join(missing_cols)}")

    plans = []
    for row in df.itertuples(index=False):
        seq_segments = parse_coords(row.seed_seq_coords)
        model_segments = parse_coords(row.seed_mdl_coords)
        if len(seq_segments) != len(model_segments):
            raise ValueError(
                f"{row.seq_name}: seed has {len(seq_segments)} sequence and "
                f"{len(model_segments)} model segments"
            )
        pairs = tuple(UngappedSegmentPair(m, s) for m, s in zip(model_segments, seq_segments))
        seed = Seed(pairs)
        seq_len, model_len = int(row.seq_len), int(row.model_len)
        requests = select_flanks(
            row.seq_name, seq_len, seed.seq_span, overhang,
            seed_model_span=seed.model_span, model_len=model_len,
        )
        plans.append(SeedPlan(row.seq_name, seq_len, model_len, pairs, seed, tuple(requests)))
    return plans
