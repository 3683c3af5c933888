"""
Seed alignment import

Turns a pre-aligned set of sequences (all rows sharing one column frame,
e.g. an aligned FASTA or Stockholm file) into a MultipleAlignment.

Some alignments were built around an anchor sequence that is left out of
the output, which leaves prefix/suffix gap occupancy on the rows:

    seq1  --ACCATATGGTCC
    seq2  ACACCGTATGC---

Those edge runs are discarded (only blanks are discarded with
keep_edge_gaps) and the stripped column counts become the instance's
alignment start/end.
"""

import logging
import re
from typing import Optional, Sequence, Tuple

from .errors import InvalidArgument, MissingParameter, ParseError
from .identifiers import parse_identifier
from .model import AlignedSequence, MultipleAlignment, Orientation, ReferenceSequence


logger = logging.getLogger(__name__)

_EDGE_GAPS = '.- \t\r\n'
_EDGE_BLANKS = ' \t\r\n'
_RF_GAPS = '.-~'
_RF_MARKS = 'xX.-~'


def _instance_coordinates(name: str, residues: int, entry: tuple) -> Tuple[str, int, int]:
    """(name, start, end) from an explicit tuple, an identifier, or 1..residues"""
    if len(entry) == 4:
        return name, int(entry[2]), int(entry[3])
    try:
        ident = parse_identifier(name)
    except ParseError:
        return name, 1, residues
    if ident.orientation == Orientation.REVERSE:
        return ident.name, ident.end, ident.start
    return ident.name, ident.start, ident.end


def _reference_from_rf(rf_line: str, consensus: str) -> str:
    """Gapped reference from an RF line (residues, or x/. column marks)"""
    if all(c in _RF_MARKS for c in rf_line):
        consensus = consensus.ljust(len(rf_line), 'N')
        return ''.join('-' if c in _RF_GAPS else consensus[i] for i, c in enumerate(rf_line))
    return ''.join('-' if c in _RF_GAPS else c for c in rf_line)


def import_aligned_seqs(sequences: Sequence[tuple],
                        reference: Optional[str] = None,
                        keep_edge_gaps: bool = False,
                        reference_name: str = "",
                        rf_line: Optional[str] = None) -> MultipleAlignment:
    """
    Build a MultipleAlignment from seed rows.

    Args:
        sequences: (name, gapped_seq) or (name, gapped_seq, start, end) tuples;
            start > end marks the reverse strand
        reference: Gapped reference in the same column frame; the consensus
            of the rows is used when omitted
        keep_edge_gaps: Keep prefix/suffix '-' and '.' runs (blanks are
            always stripped)
        reference_name: Name given to the reference
        rf_line: Stockholm '#=GC RF' annotation, used when no reference is
            given.  Residues are taken as the reference itself; 'x' marks
            take the consensus base and '.' marks become reference gaps

    Returns:
        MultipleAlignment with reference start 1
    """
    if sequences is None:
        raise MissingParameter("import_aligned_seqs() requires a list of sequences")
    sequences = list(sequences)

    strip_chars = _EDGE_BLANKS if keep_edge_gaps else _EDGE_GAPS
    msa = MultipleAlignment(ReferenceSequence(name=reference_name))

    for entry in sequences:
        if len(entry) not in (2, 4):
            raise InvalidArgument(
                f"Seed entries must be (name, seq) or (name, seq, start, end); got {len(entry)} fields")
        name, gapped = entry[0], entry[1]

        residues = len(re.sub(r'[\.\-\s]', '', gapped))
        if residues == 0:
            logger.warning(f"Skipping {name}: row contains no residues")
            continue

        stripped = gapped.lstrip(strip_chars)
        align_start = len(gapped) - len(stripped)
        stripped = stripped.rstrip(strip_chars)
        align_end = align_start + len(stripped) - 1
        seq = stripped.replace('.', '-')

        name, start, end = _instance_coordinates(name, residues, entry)
        orientation = Orientation.FORWARD
        if start > end:
            orientation = Orientation.REVERSE
            start, end = end, start

        msa.add(AlignedSequence(
            seq=seq,
            align_start=align_start,
            align_end=align_end,
            seq_start=start,
            seq_end=end,
            name=name,
            orientation=orientation
        ))

    columns = max((len(entry[1]) for entry in sequences), default=0)
    if reference:
        if len(reference) != columns:
            raise InvalidArgument(
                f"Reference has {len(reference)} columns but the aligned rows have {columns}")
        msa.reference_seq = reference
    elif rf_line:
        if len(rf_line) != columns:
            raise InvalidArgument(
                f"RF annotation has {len(rf_line)} columns but the aligned rows have {columns}")
        msa.reference_seq = _reference_from_rf(rf_line, msa.consensus())
    else:
        msa.reference_seq = msa.consensus()
    msa.reference_start = 1

    logger.info(f"Imported {msa.count()} aligned sequences ({msa.gapped_reference_length()} columns)")
    return msa
