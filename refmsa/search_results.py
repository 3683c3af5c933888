"""
Pairwise search result records

Handles:
- Parsing tabular BLAST-style hit output into pairwise records
- Anchoring a record so one side (query or subject) plays the reference
"""

import logging
from pathlib import Path
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterable, List, Optional, Union

from .errors import InvalidArgument, ParseError
from .model import Orientation, reverse_complement


logger = logging.getLogger(__name__)

TABULAR_FIELDS = ('qseqid sseqid qstart qend sstart send qseq sseq '
                  'evalue bitscore pident qlen slen')


class ReferenceRole(Enum):
    """Which side of a pairwise record supplies the reference coordinates"""
    QUERY = auto()
    SUBJECT = auto()

    @classmethod
    def parse(cls, value) -> 'ReferenceRole':
        if isinstance(value, ReferenceRole):
            return value
        if isinstance(value, str):
            key = value.strip().upper()
            if key in ('QUERY', 'Q'):
                return cls.QUERY
            if key in ('SUBJECT', 'SUBJ', 'S'):
                return cls.SUBJECT
        raise InvalidArgument(f"Reference role {value!r} is not recognized (expected query or subject)")


@dataclass
class AnchoredRecord:
    """A pairwise record seen from the reference side"""
    ref_seq: str
    ref_start: int
    ref_end: int
    ref_name: str
    ref_remaining: Optional[int]
    inst_seq: str
    inst_start: int
    inst_end: int
    inst_name: str
    inst_remaining: Optional[int]
    orientation: Orientation
    pct_diverge: Optional[float] = None


@dataclass
class PairwiseRecord:
    """
    One pairwise alignment.

    Coordinates are 1-based with start <= end on both sides; the query
    string is always forward strand and orientation 'C' marks a subject
    aligned on the reverse strand.
    """
    query_id: str
    subject_id: str
    query_start: int
    query_end: int
    subject_start: int
    subject_end: int
    query_seq: str  # Aligned sequence with gaps
    subject_seq: str  # Aligned sequence with gaps
    orientation: str = '+'
    query_remaining: Optional[int] = None
    subject_remaining: Optional[int] = None
    pct_diverge: Optional[float] = None
    evalue: Optional[float] = None
    bitscore: Optional[float] = None

    @property
    def is_complement(self) -> bool:
        return self.orientation == 'C'

    def anchored(self, role: Union[ReferenceRole, str] = ReferenceRole.QUERY) -> AnchoredRecord:
        """
        View this record with the requested side as the reference.

        When the subject is the reference and the match is on the reverse
        strand both strings are reverse complemented so the reference reads
        forward.
        """
        role = ReferenceRole.parse(role)
        orientation = Orientation.from_symbol('C' if self.is_complement else '+')

        if role == ReferenceRole.QUERY:
            return AnchoredRecord(
                ref_seq=self.query_seq,
                ref_start=self.query_start,
                ref_end=self.query_end,
                ref_name=self.query_id,
                ref_remaining=self.query_remaining,
                inst_seq=self.subject_seq,
                inst_start=self.subject_start,
                inst_end=self.subject_end,
                inst_name=self.subject_id,
                inst_remaining=self.subject_remaining,
                orientation=orientation,
                pct_diverge=self.pct_diverge
            )

        ref_seq, inst_seq = self.subject_seq, self.query_seq
        if self.is_complement:
            ref_seq = reverse_complement(ref_seq)
            inst_seq = reverse_complement(inst_seq)
        return AnchoredRecord(
            ref_seq=ref_seq,
            ref_start=self.subject_start,
            ref_end=self.subject_end,
            ref_name=self.subject_id,
            ref_remaining=self.subject_remaining,
            inst_seq=inst_seq,
            inst_start=self.query_start,
            inst_end=self.query_end,
            inst_name=self.query_id,
            inst_remaining=self.query_remaining,
            orientation=orientation,
            pct_diverge=self.pct_diverge
        )


def parse_tabular_line(line: str) -> PairwiseRecord:
    """
    Parse one line of tabular hit output.

    Expected columns (tab separated):
        qseqid sseqid qstart qend sstart send qseq sseq evalue bitscore pident [qlen slen]
    Reversed subject coordinates mark a reverse strand match.
    """
    fields = line.rstrip('\n').split('\t')
    if len(fields) < 11:
        raise ParseError(f"Expected at least 11 tab separated fields ({TABULAR_FIELDS}), "
                         f"found {len(fields)}", line.strip())

    try:
        query_start, query_end = int(fields[2]), int(fields[3])
        subject_start, subject_end = int(fields[4]), int(fields[5])
        evalue = float(fields[8])
        bitscore = float(fields[9])
        identity = float(fields[10])
        query_len = int(fields[11]) if len(fields) > 11 and fields[11] else None
        subject_len = int(fields[12]) if len(fields) > 12 and fields[12] else None
    except ValueError as e:
        raise ParseError(f"Malformed numeric field ({e})", line.strip())

    orientation = '+'
    if subject_start > subject_end:
        orientation = 'C'
        subject_start, subject_end = subject_end, subject_start

    return PairwiseRecord(
        query_id=fields[0],
        subject_id=fields[1],
        query_start=query_start,
        query_end=query_end,
        subject_start=subject_start,
        subject_end=subject_end,
        query_seq=fields[6],
        subject_seq=fields[7],
        orientation=orientation,
        query_remaining=query_len - query_end if query_len is not None else None,
        subject_remaining=subject_len - subject_end if subject_len is not None else None,
        pct_diverge=100.0 - identity,
        evalue=evalue,
        bitscore=bitscore
    )


def parse_tabular_hits(lines: Iterable[str]) -> List[PairwiseRecord]:
    """Parse tabular hit lines, skipping blank and '#' comment lines"""
    records = []
    for line in lines:
        if not line.strip() or line.startswith('#'):
            continue
        records.append(parse_tabular_line(line))
    logger.debug(f"Parsed {len(records)} pairwise records")
    return records


def read_tabular_hits(filepath: Path) -> List[PairwiseRecord]:
    """Read a tabular hit file"""
    with open(filepath, 'r') as f:
        return parse_tabular_hits(f)
