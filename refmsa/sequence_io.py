"""
Sequence I/O utilities for ref-msa

Handles:
- FASTA parsing
- Reading seed alignments (aligned FASTA, Stockholm)
- A FASTA backed sequence database for flanking sequence lookups
- Writing alignments (aligned FASTA, Stockholm)
"""

import logging
import re
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .errors import InvalidArgument, ParseError
from .identifiers import format_identifier
from .model import MultipleAlignment


logger = logging.getLogger(__name__)

_ALIGNED_DNA = re.compile(r'^[AGCTYRWSKMDVHBNagctyrwskmdvhbn.\-]+$')
MAX_STOCKHOLM_NAME_LEN = 255
_REF_NAME = re.compile(r'refName=(\S+)')


@dataclass
class Sequence:
    """Simple sequence container"""
    id: str
    description: str
    seq: str

    @property
    def full_header(self) -> str:
        if self.description:
            return f"{self.id} {self.description}"
        return self.id

    def __len__(self) -> int:
        return len(self.seq)


@dataclass
class SeedRecords:
    """Rows of a seed alignment ready for import_aligned_seqs()"""
    id: str
    rows: List[Tuple[str, str]] = field(default_factory=list)
    rf_line: Optional[str] = None
    reference_name: str = ""


def parse_fasta(filepath: Path) -> List[Sequence]:
    """
    Parse a FASTA file into a list of Sequence objects.

    Handles:
    - Standard FASTA format
    - Multi-line sequences
    - Various line endings
    """
    sequences = []
    current_id = None
    current_desc = ""
    current_seq_parts = []

    with open(filepath, 'r') as f:
        for line in f:
            line = line.rstrip('\n\r')

            if line.startswith('>'):
                # Save previous sequence if exists
                if current_id is not None:
                    sequences.append(Sequence(
                        id=current_id,
                        description=current_desc,
                        seq=''.join(current_seq_parts).upper()
                    ))

                header = line[1:].strip()
                parts = header.split(None, 1)  # Split on first whitespace
                current_id = parts[0] if parts else "unnamed"
                current_desc = parts[1] if len(parts) > 1 else ""
                current_seq_parts = []

            elif line and not line.startswith(';'):  # Skip empty lines and comments
                current_seq_parts.append(re.sub(r'[\s\d]', '', line))

    # Don't forget the last sequence
    if current_id is not None:
        sequences.append(Sequence(
            id=current_id,
            description=current_desc,
            seq=''.join(current_seq_parts).upper()
        ))

    return sequences


def _check_aligned(name: str, seq: str) -> None:
    if not _ALIGNED_DNA.match(seq):
        raise ParseError(f"Sequence {name} contains characters other than DNA/IUB codes, '.' or '-'",
                         seq[:60])


def read_aligned_fasta(filepath: Path) -> SeedRecords:
    """Read an aligned FASTA file; every row must share one column frame"""
    filepath = Path(filepath)
    records = SeedRecords(id=filepath.stem)
    for seq in parse_fasta(filepath):
        _check_aligned(seq.id, seq.seq)
        records.rows.append((seq.id, seq.seq))
    return records


def read_stockholm(filepath: Path) -> SeedRecords:
    """
    Read the first alignment of a Stockholm file.

    Interleaved blocks are concatenated per sequence name; a name may occur
    only once per block.  '#=GF ID' sets the record id, '#=GC RF' is kept
    as the reference frame annotation and a 'refName=' entry on a '#=GF CC'
    line names the reference.  Other markup lines are ignored.
    """
    filepath = Path(filepath)
    records = SeedRecords(id=filepath.stem)
    rows: Dict[str, List[str]] = {}
    rf_parts: List[str] = []
    block_names = set()

    with open(filepath, 'r') as f:
        for line in f:
            line = line.rstrip('\n\r')
            if not line.strip():
                block_names = set()
                continue
            if line.startswith('//'):
                break
            if line.startswith('#=GF ID'):
                records.id = line[7:].strip()
                continue
            if line.startswith('#=GF CC'):
                match = _REF_NAME.search(line)
                if match:
                    records.reference_name = match.group(1)
                continue
            if line.startswith('#=GC RF'):
                rf_parts.append(line[7:].strip())
                continue
            if line.startswith('#'):
                continue
            parts = line.split()
            if len(parts) != 2:
                raise ParseError("Expected 'name sequence' alignment row", line)
            name, seq = parts
            if name in block_names:
                raise ParseError(f"Sequence name {name} occurs more than once in an alignment block", line)
            block_names.add(name)
            rows.setdefault(name, []).append(seq)

    for name, parts in rows.items():
        seq = ''.join(parts)
        _check_aligned(name, seq)
        records.rows.append((name, seq))
    if rf_parts:
        records.rf_line = ''.join(rf_parts)
    return records


def read_seed_alignment(filepath: Path, format: Optional[str] = None) -> SeedRecords:
    """Read a seed alignment, inferring the format from the extension"""
    filepath = Path(filepath)
    if format is None:
        format = format_from_extension(filepath)
    format = format.lower()

    if format == 'fasta':
        records = read_aligned_fasta(filepath)
    elif format == 'stockholm':
        records = read_stockholm(filepath)
    else:
        raise InvalidArgument(f"Unknown alignment format: {format}. Supported: fasta, stockholm")

    logger.info(f"Read {len(records.rows)} aligned sequences from {filepath}")
    return records


class FastaSequenceDatabase:
    """
    In-memory sequence lookup over a FASTA file.

    Provides the get_seq_length()/get_substr() interface the builder uses
    to fetch flanking sequence.  Substring starts are 0-based.
    """

    def __init__(self, filepath: Path):
        self.sequences = {s.id: s.seq for s in parse_fasta(filepath)}
        logger.debug(f"Loaded {len(self.sequences)} sequences from {filepath}")

    def get_seq_length(self, seq_id: str) -> int:
        return len(self.sequences.get(seq_id, ''))

    def get_substr(self, seq_id: str, start: int, length: int) -> str:
        seq = self.sequences.get(seq_id, '')
        if start < 0 or length <= 0:
            return ''
        return seq[start:start + length]


def _instance_rows(msa: MultipleAlignment, gap: str) -> List[Tuple[str, str]]:
    """(identifier, row padded to the gapped reference length) per instance"""
    width = msa.gapped_reference_length()
    rows = []
    for inst in msa:
        row = gap * inst.align_start + inst.seq
        row = re.sub(r'[\-\s]', gap, row)
        row += gap * (width - len(row))
        rows.append((format_identifier(inst.name, inst.seq_start, inst.seq_end, inst.orientation), row))
    return rows


def _fixed_flank(flank: str, size: int, left: bool) -> str:
    """Clip or gap-pad a flank to exactly size bases, keeping the bases nearest the instance"""
    if left:
        return flank[-size:].rjust(size, '-')
    return flank[:size].ljust(size, '-')


def write_fasta(msa: MultipleAlignment, filepath: Path, wrap_width: int = 80,
                include_reference: bool = True, include_flanking: int = 0,
                include_consensus: bool = False) -> None:
    """
    Write the alignment as aligned FASTA (all rows share one length).

    With include_flanking > 0 each instance row carries (up to) that many
    bases of its stored left and right flanking sequence, gap padded where
    less is available, and the consensus/reference rows are padded with
    the same number of gap columns on either side.
    """
    flank = max(include_flanking, 0)
    edge = '-' * flank

    rows = []
    if include_consensus:
        rows.append(('consensus', edge + msa.consensus() + edge))
    if include_reference:
        rows.append((msa.reference_name or 'reference', edge + msa.reference_seq.replace(' ', 'N') + edge))
    for inst, (name, seq) in zip(msa, _instance_rows(msa, '-')):
        if flank:
            seq = _fixed_flank(inst.left_flank, flank, True) + seq + _fixed_flank(inst.right_flank, flank, False)
            name = f"{name} - including (up to) {flank}bp of flanking sequence"
        rows.append((name, seq))

    with open(filepath, 'w') as f:
        for name, seq in rows:
            f.write(f">{name}\n")

            if wrap_width > 0:
                for i in range(0, len(seq), wrap_width):
                    f.write(seq[i:i+wrap_width] + '\n')
            else:
                f.write(seq + '\n')


def write_stockholm(msa: MultipleAlignment, filepath: Path, id: Optional[str] = None,
                    rf_residues: bool = False) -> None:
    """
    Write the alignment in Stockholm format.

    The '#=GC RF' line marks reference occupied columns with 'x' and
    reference insertion columns with '.'.  With rf_residues the reference
    bases themselves are written in place of the 'x' marks, so reading the
    file back restores the reference.
    """
    if id is None:
        id = msa.reference_name
    rows = _instance_rows(msa, '.')

    name_len = max([len(name) for name, _ in rows] + [len('#=GC RF')])
    if name_len > MAX_STOCKHOLM_NAME_LEN:
        logger.warning(f"Truncating ids longer than {MAX_STOCKHOLM_NAME_LEN} characters")
        name_len = MAX_STOCKHOLM_NAME_LEN

    if rf_residues:
        rf = msa.reference_seq.replace('-', '.').replace(' ', 'N')
    else:
        rf = ''.join('.' if c == '-' else 'x' for c in msa.reference_seq)

    with open(filepath, 'w') as f:
        f.write("# STOCKHOLM 1.0\n")
        f.write(f"#=GF ID {id}\n")
        f.write(f"#=GF CC refLength={msa.gapped_reference_length()} refName={msa.reference_name}\n")
        f.write("#=GF BM ref-msa\n")
        f.write(f"#=GF SQ {msa.count()}\n")
        f.write(f"{'#=GC RF'.ljust(name_len)}  {rf}\n")
        for name, seq in rows:
            f.write(f"{name[:name_len].ljust(name_len)}  {seq}\n")
        f.write("//\n")


def write_alignment(msa: MultipleAlignment, filepath: Path,
                    format: str = "stockholm", wrap_width: int = 80,
                    include_flanking: int = 0, include_consensus: bool = False,
                    rf_residues: bool = False) -> None:
    """
    Write alignment to file in specified format.

    Args:
        msa: MultipleAlignment to write
        filepath: Output file path
        format: One of 'fasta', 'stockholm'
        wrap_width: Line width for wrapping (FASTA only)
        include_flanking: Flanking bases written either side of each
            instance (FASTA only)
        include_consensus: Add a consensus row (FASTA only)
        rf_residues: Write reference bases on the RF line (Stockholm only)
    """
    filepath = Path(filepath)
    format = format.lower()

    if format == 'fasta':
        write_fasta(msa, filepath, wrap_width, include_flanking=include_flanking,
                    include_consensus=include_consensus)
    elif format == 'stockholm':
        if include_flanking:
            logger.warning("Flanking sequence is only written to FASTA output")
        write_stockholm(msa, filepath, rf_residues=rf_residues)
    else:
        raise InvalidArgument(f"Unknown format: {format}. Supported: fasta, stockholm")


def format_from_extension(filepath: Path, default: str = 'fasta') -> str:
    """Infer alignment format from file extension"""
    ext = Path(filepath).suffix.lower()
    mapping = {
        '.fasta': 'fasta',
        '.fa': 'fasta',
        '.fna': 'fasta',
        '.afa': 'fasta',
        '.stk': 'stockholm',
        '.sto': 'stockholm',
        '.stockholm': 'stockholm',
    }
    return mapping.get(ext, default)
