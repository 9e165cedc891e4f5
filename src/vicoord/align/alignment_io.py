"""
Reading and writing alignments, insert files and sequences.

Stockholm files from the accurate aligner hold one or more alignments, read
and written with Biopython's AlignIO. Within an alignment, the model line is
the ``#=GC RF`` annotation and confidence lines are ``#=GR <name> PP``.
Biopython reads ``.`` gaps in sequence lines as ``-``.

Insert files list, per aligned sequence::

    <name> <seq_len> <spos> <epos> [<mdlpos> <uapos> <inslen>]...

with ``#`` comments, a ``<model> <model_len>`` header line and ``//``.
"""

from io import StringIO
from pathlib import Path
from typing import Dict, Iterable, Optional, TextIO, Tuple, Union

from Bio import AlignIO, SeqIO
from Bio.Align import MultipleSeqAlignment
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from .models import AlignmentTriple, InsertMap, InsertRecord

PathLike = Union[str, Path]

# Biopython annotation keys for the #=GC RF and #=GR PP lines
MODEL_ANNOTATION = "reference_annotation"
CONFIDENCE_ANNOTATION = "posterior_probability"


def _to_alignment(name: str, triple: AlignmentTriple) -> MultipleSeqAlignment:
    """Build a one-sequence Biopython alignment carrying the RF and PP lines."""
    letter_annotations = {}
    if triple.confidence_line is not None:
        letter_annotations[CONFIDENCE_ANNOTATION] = triple.confidence_line
    record = SeqRecord(
        Seq(triple.sequence_line),
        id=name,
        description="",
        letter_annotations=letter_annotations,
    )
    return MultipleSeqAlignment([record], column_annotations={MODEL_ANNOTATION: triple.model_line})


def read_stockholm_triples(filepath: PathLike) -> Dict[str, AlignmentTriple]:
    """Parse a Stockholm file into one alignment triple per sequence.

    Args:
        filepath: Path to the Stockholm file

    Returns:
        Dict mapping sequence name to its AlignmentTriple, in file order

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If file is malformed, an alignment has no RF line or a
            name occurs in two alignments
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Stockholm file not found: {filepath}")

    try:
        alignments = list(AlignIO.parse(str(path), "stockholm"))
    except Exception as e:
        raise ValueError(f"Failed to parse Stockholm alignment {filepath}: {e}")

    triples: Dict[str, AlignmentTriple] = {}
    for alignment in alignments:
        model_line = alignment.column_annotations.get(MODEL_ANNOTATION)
        if model_line is None:
            raise ValueError(f"Alignment without a #=GC RF line in Stockholm file: {filepath}")
        for record in alignment:
            if record.id in triples:
                raise ValueError(
                    f"Sequence {record.id} occurs in more than one alignment in {filepath}"
                )
            seq_line = str(record.seq)
            if len(seq_line) != len(model_line):
                raise ValueError(
                    f"Inconsistent line widths for {record.id} in Stockholm file {filepath}: "
                    f"sequence {len(seq_line)}, RF {len(model_line)}"
                )
            triples[record.id] = AlignmentTriple(
                seq_line, model_line, record.letter_annotations.get(CONFIDENCE_ANNOTATION)
            )

    if not triples:
        raise ValueError(f"No sequences found in Stockholm file: {filepath}")
    return triples


def format_stockholm_triple(name: str, triple: AlignmentTriple) -> str:
    """Format one alignment triple as a complete Stockholm alignment."""
    handle = StringIO()
    AlignIO.write(_to_alignment(name, triple), handle, "stockholm")
    return handle.getvalue()


def write_stockholm_triples(
    alignments: Iterable[Tuple[str, AlignmentTriple]],
    output: Union[PathLike, TextIO],
) -> int:
    """Write alignments as consecutive Stockholm alignments, one per sequence.

    Args:
        alignments: (name, triple) pairs, written in the given order
        output: Output path or open text handle

    Returns:
        Number of alignments written
    """
    msas = [_to_alignment(name, triple) for name, triple in alignments]
    if hasattr(output, "write"):
        return AlignIO.write(msas, output, "stockholm")
    with open(Path(output), "w") as f:
        return AlignIO.write(msas, f, "stockholm")


def read_insert_file(filepath: PathLike) -> Dict[str, InsertMap]:
    """Parse an insert file.

    Returns:
        Dict mapping sequence name to its InsertMap

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If a line has an unexpected number of fields
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Insert file not found: {filepath}")

    maps: Dict[str, InsertMap] = {}
    with open(path, "r") as f:
        for line_no, line in enumerate(f, 1):
            line = line.strip()
            if not line or line.startswith("#") or line == "//":
                continue
            fields = line.split()
            if len(fields) == 2:
                # model name and length
                continue
            if len(fields) < 4 or (len(fields) - 4) % 3 != 0:
                raise ValueError(
                    f"Unexpected number of fields ({len(fields)}) on line {line_no} "
                    f"of insert file {filepath}: {line}"
                )
            try:
                values = [int(v) for v in fields[1:]]
            except ValueError:
                raise ValueError(
                    f"Non-integer field on line {line_no} of insert file {filepath}: {line}"
                )
            seq_len, spos, epos = values[:3]
            records = tuple(
                InsertRecord(model_pos=values[i], seq_pos=values[i + 1], length=values[i + 2])
                for i in range(3, len(values), 3)
            )
            maps[fields[0]] = InsertMap(spos, epos, records, seq_len=seq_len)
    return maps


def write_insert_file(
    maps: Iterable[Tuple[str, InsertMap]],
    filepath: PathLike,
    model_name: Optional[str] = None,
    model_len: Optional[int] = None,
) -> None:
    """Write insert maps in insert-file format, in the given order."""
    lines = []
    if model_name is not None and model_len is not None:
        lines.append(f"{model_name} {model_len}")
    for name, insert_map in maps:
        fields = [name, str(insert_map.seq_len if insert_map.seq_len is not None else 0),
                  str(insert_map.model_start), str(insert_map.model_stop)]
        for rec in insert_map.records:
            fields.extend([str(rec.model_pos), str(rec.seq_pos), str(rec.length)])
        lines.append(" ".join(fields))
    lines.append("//")
    with open(Path(filepath), "w") as f:
        f.write("\n".join(lines) + "\n")


def read_sequences(filepath: PathLike) -> Dict[str, str]:
    """Read a FASTA file into an ordered name -> sequence dict.

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If the file has no records or repeats a name
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"FASTA file not found: {filepath}")

    sequences: Dict[str, str] = {}
    for record in SeqIO.parse(str(path), "fasta"):
        if record.id in sequences:
            raise ValueError(f"Duplicate sequence name {record.id} in {filepath}")
        sequences[record.id] = str(record.seq)

    if not sequences:
        raise ValueError(f"No sequences found in FASTA file: {filepath}")
    return sequences


def write_sequences(sequences: Iterable[Tuple[str, str]], filepath: PathLike) -> int:
    """Write (name, sequence) pairs as FASTA.

    Returns:
        Number of records written
    """
    records = [SeqRecord(Seq(seq), id=name, description="") for name, seq in sequences]
    with open(Path(filepath), "w") as f:
        return SeqIO.write(records, f, "fasta")


def write_aligned_fasta(
    alignments: Iterable[Tuple[str, AlignmentTriple]],
    filepath: PathLike,
) -> int:
    """Write the aligned sequence lines as (gapped) FASTA.

    Returns:
        Number of records written
    """
    records = [
        SeqRecord(Seq(triple.sequence_line), id=name, description="")
        for name, triple in alignments
    ]
    with open(Path(filepath), "w") as f:
        return SeqIO.write(records, f, "fasta")
