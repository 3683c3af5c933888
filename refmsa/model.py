"""
Multiple alignment model anchored to a reference sequence

Handles:
- The reference sequence and its gapped coordinate frame
- Per-instance alignment and source-sequence coordinates
- Coordinate mutators (trim, reverse complement, block slicing)
- Instance filtering on per-instance metrics

All instance coordinates share one frame: column j of the gapped reference
string.  An instance occupies columns align_start..align_end (inclusive) and
its gapped string is exactly that many characters long.
"""

import logging
import re
from collections import Counter
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

from .errors import IndexOutOfBounds, InvalidArgument, MissingParameter
from .consensus import ConsensusParams, build_consensus_from_array
from .matrices import ScoringMatrix


logger = logging.getLogger(__name__)

# Characters treated as padding at the edges of an aligned row
EDGE_CHARS = '.- \t'

_COMPLEMENT = str.maketrans('ACGTRYKMSWBDHVacgtrykmswbdhv',
                             'TGCAYRMKWSVHDBtgcayrmkwsvhdb')


def reverse_complement(seq: str) -> str:
    """Reverse complement a DNA string (IUB aware, case and gaps preserved)"""
    return seq.translate(_COMPLEMENT)[::-1]


def ungapped_length(seq: str) -> int:
    """Number of residues in a gapped string"""
    return len(seq) - sum(seq.count(c) for c in EDGE_CHARS)


class Orientation(Enum):
    """Direction of an instance's source sequence relative to the reference"""
    FORWARD = '+'
    REVERSE = '-'

    @classmethod
    def from_symbol(cls, symbol) -> 'Orientation':
        """Accepts '+', '-' or the search-result complement flag 'C'"""
        if isinstance(symbol, Orientation):
            return symbol
        if symbol == '+':
            return cls.FORWARD
        if symbol in ('-', 'C', 'c'):
            return cls.REVERSE
        raise InvalidArgument(f"Unknown orientation: {symbol!r} (expected '+', '-' or 'C')")

    def flipped(self) -> 'Orientation':
        if self is Orientation.FORWARD:
            return Orientation.REVERSE
        return Orientation.FORWARD


@dataclass
class ReferenceSequence:
    """Gapped reference string plus its 1-based start in the source sequence"""
    seq: str = ""
    start: int = 1
    name: str = ""


@dataclass
class AlignedSequence:
    """
    One aligned instance.

    align_start/align_end index the gapped reference (0-based, inclusive).
    seq_start/seq_end are 1-based positions in the ungapped source sequence,
    always stored with seq_start <= seq_end; orientation records the strand.
    """
    seq: str
    align_start: int
    align_end: int
    seq_start: int = 1
    seq_end: int = 0
    name: str = ""
    orientation: Orientation = Orientation.FORWARD
    divergence: Optional[float] = None
    gc_background: Optional[float] = None
    transitions: Optional[int] = None
    transversions: Optional[int] = None
    src_divergence: Optional[float] = None
    left_flank: str = ""
    right_flank: str = ""

    @property
    def length(self) -> int:
        return len(self.seq)

    def ungapped(self) -> str:
        return re.sub(r'[\.\-\s]', '', self.seq)


_INSTANCE_FIELDS = frozenset(f.name for f in fields(AlignedSequence))
_REQUIRED_FIELDS = frozenset(
    ['seq', 'align_start', 'align_end', 'seq_start', 'seq_end', 'orientation']
)


class MultipleAlignment:
    """
    A reference sequence plus N instances aligned to its gapped frame.

    The reference is not counted among the instances: count() == N and
    instance indices run 0..N-1.
    """

    def __init__(self, reference: Optional[ReferenceSequence] = None,
                 instances: Optional[List[AlignedSequence]] = None):
        self._reference = reference if reference is not None else ReferenceSequence()
        self._instances: List[AlignedSequence] = list(instances) if instances else []
        self._gapped_length: Optional[int] = None

    # ------------------------------------------------------------------
    # Reference
    # ------------------------------------------------------------------

    @property
    def reference(self) -> ReferenceSequence:
        """A copy of the reference; edit it through reference_seq/start/name"""
        return replace(self._reference)

    @property
    def reference_seq(self) -> str:
        return self._reference.seq

    @reference_seq.setter
    def reference_seq(self, value: str) -> None:
        if value is None:
            raise MissingParameter("reference_seq requires a value")
        self._reference.seq = value
        self._gapped_length = None

    @property
    def reference_start(self) -> int:
        return self._reference.start

    @reference_start.setter
    def reference_start(self, value: int) -> None:
        if value is None:
            raise MissingParameter("reference_start requires a value")
        self._reference.start = value

    @property
    def reference_name(self) -> str:
        return self._reference.name

    @reference_name.setter
    def reference_name(self, value: str) -> None:
        self._reference.name = value

    def gapped_reference_length(self) -> int:
        """Length of the gapped reference string (memoized)"""
        if self._gapped_length is None:
            self._gapped_length = len(self._reference.seq)
        return self._gapped_length

    def ungapped_reference(self) -> str:
        return re.sub(r'[\-\s]', '', self._reference.seq)

    # ------------------------------------------------------------------
    # Instances
    # ------------------------------------------------------------------

    def count(self) -> int:
        """Number of aligned instances (the reference is not counted)"""
        return len(self._instances)

    def __len__(self) -> int:
        return len(self._instances)

    def __iter__(self) -> Iterator[AlignedSequence]:
        return iter(self._instances)

    def __getitem__(self, index: int) -> AlignedSequence:
        return self.get(index)

    def get(self, index: int) -> AlignedSequence:
        """Bounds-checked instance access; negative indices are rejected"""
        if not isinstance(index, int) or index < 0 or index >= len(self._instances):
            raise IndexOutOfBounds(index, len(self._instances))
        return self._instances[index]

    def add(self, instance: AlignedSequence) -> int:
        """Append an instance, returning its index"""
        self._instances.append(instance)
        return len(self._instances) - 1

    def update(self, index: int, **values) -> AlignedSequence:
        """
        Set one or more attributes of an instance.

        Unknown attribute names raise InvalidArgument; an empty update or a
        None for a coordinate/sequence field raises MissingParameter.
        """
        instance = self.get(index)
        if not values:
            raise MissingParameter("update() requires at least one field=value pair")

        unknown = sorted(set(values) - _INSTANCE_FIELDS)
        if unknown:
            raise InvalidArgument(f"Unknown aligned sequence field(s): {', '.join(unknown)}")

        for name, value in values.items():
            if value is None and name in _REQUIRED_FIELDS:
                raise MissingParameter(f"update(): missing value for '{name}'")
        if 'orientation' in values:
            values['orientation'] = Orientation.from_symbol(values['orientation'])

        for name, value in values.items():
            setattr(instance, name, value)
        return instance

    def ungapped_seq(self, index: int) -> str:
        return self.get(index).ungapped()

    def validate(self) -> None:
        """Raise InvalidArgument if any positional invariant is broken"""
        ref_len = self.gapped_reference_length()
        for n, inst in enumerate(self._instances):
            if len(inst.seq) != inst.align_end - inst.align_start + 1:
                raise InvalidArgument(
                    f"Instance {n} ({inst.name}): length {len(inst.seq)} does not match "
                    f"align range {inst.align_start}-{inst.align_end}")
            if not 0 <= inst.align_start <= inst.align_end < ref_len:
                raise InvalidArgument(
                    f"Instance {n} ({inst.name}): align range {inst.align_start}-"
                    f"{inst.align_end} outside reference of length {ref_len}")
            if inst.seq_start > inst.seq_end:
                raise InvalidArgument(
                    f"Instance {n} ({inst.name}): seq_start {inst.seq_start} > seq_end {inst.seq_end}")

    # ------------------------------------------------------------------
    # Coordinate queries
    # ------------------------------------------------------------------

    def inst_ref_start(self, index: int) -> int:
        """Ungapped reference position (0-based) where the instance starts"""
        inst = self.get(index)
        return inst.align_start - self._reference.seq[:inst.align_start].count('-')

    def inst_ref_end(self, index: int) -> int:
        """Ungapped reference position (0-based) where the instance ends"""
        inst = self.get(index)
        return inst.align_end - self._reference.seq[:inst.align_end].count('-')

    def align_pos_from_bp_pos(self, pos: int) -> int:
        """Translate a 1-based reference base position into a gapped column count"""
        bp_pos = self._reference.start
        align_pos = 0
        ref = self._reference.seq
        while bp_pos < pos and align_pos < len(ref):
            if ref[align_pos] != '-':
                bp_pos += 1
            align_pos += 1
        return align_pos

    def padded_rows(self, include_reference: bool = False) -> List[str]:
        """Instance strings left-padded with blanks to their alignment start"""
        rows = []
        if include_reference:
            rows.append(self._reference.seq)
        for inst in self._instances:
            rows.append(' ' * inst.align_start + inst.seq)
        return rows

    def profile(self, include_reference: bool = False) -> List[Counter]:
        """Per-column symbol counts over the gapped frame"""
        width = self.gapped_reference_length()
        for inst in self._instances:
            width = max(width, inst.align_end + 1)

        columns = [Counter() for _ in range(width)]
        if include_reference:
            for j, char in enumerate(self._reference.seq):
                columns[j][char] += 1
        for inst in self._instances:
            for offset, char in enumerate(inst.seq):
                columns[inst.align_start + offset][char] += 1
        return columns

    def coverage(self) -> List[int]:
        """Number of instances occupying each column of the gapped reference"""
        profile = self.profile()
        return [sum(profile[j].values()) for j in range(self.gapped_reference_length())]

    def consensus(self, include_reference: bool = False,
                  matrix: Optional[ScoringMatrix] = None,
                  params: Optional[ConsensusParams] = None) -> str:
        """Call a CpG-corrected consensus over the alignment"""
        return build_consensus_from_array(
            self.padded_rows(include_reference),
            matrix=matrix,
            params=params,
            width=self.gapped_reference_length()
        )

    def consensus_without_insertions(self) -> Tuple[str, str]:
        """
        Return (consensus, consensus with reference insertion columns gapped).
        """
        consensus = self.consensus()
        reference = self._reference.seq
        masked = ''.join(
            '-' if j < len(reference) and reference[j] == '-' else base
            for j, base in enumerate(consensus)
        )
        return consensus, masked

    def sequence_duplicates(self) -> Dict[str, List[int]]:
        """Names that occur more than once, mapped to their instance indices"""
        names: Dict[str, List[int]] = {}
        for n, inst in enumerate(self._instances):
            names.setdefault(inst.name, []).append(n)
        return {name: idx for name, idx in names.items() if len(idx) > 1}

    def normalize_seq_refs(self) -> int:
        """
        Rewrite "prefix_start_end[_R]" names into prefix + absolute coordinates.

        Instances named after an excised source region (e.g.
        chrUn_KK085329v1_11857_12355_R) hold coordinates relative to that
        region; they are translated back onto the named sequence.  Returns the
        number of instances renamed.
        """
        renamed = 0
        for inst in self._instances:
            match = re.match(r'^(\S+)_(\d+)_(\d+)(_R)?', inst.name)
            if not match:
                continue
            prefix, start, end, rev = match.groups()
            start, end = int(start), int(end)
            if rev:
                inst.seq_start, inst.seq_end = end - inst.seq_end + 1, end - inst.seq_start + 1
                inst.orientation = inst.orientation.flipped()
            else:
                inst.seq_start, inst.seq_end = start + inst.seq_start - 1, start + inst.seq_end - 1
            inst.name = prefix
            renamed += 1
        return renamed

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    def _filter_on(self, attribute: str, low: float, high: float,
                   high_inclusive: bool) -> int:
        kept = []
        removed = 0
        for inst in self._instances:
            value = getattr(inst, attribute)
            if value is None:
                logger.warning(f"Instance {inst.name} has no {attribute} value; removing it")
                removed += 1
                continue
            too_high = value > high if high_inclusive else value >= high
            if value < low or too_high:
                removed += 1
                continue
            kept.append(inst)
        self._instances = kept
        return removed

    def filter_on_gc(self, low: float, high: float) -> int:
        """Keep instances with low <= gc_background < high; returns removed count"""
        return self._filter_on('gc_background', low, high, high_inclusive=False)

    def filter_on_div(self, low: float, high: float) -> int:
        """Keep instances with low <= divergence <= high; returns removed count"""
        return self._filter_on('divergence', low, high, high_inclusive=True)

    def filter_on_src_div(self, low: float, high: float) -> int:
        """Keep instances with low <= src_divergence <= high; returns removed count"""
        return self._filter_on('src_divergence', low, high, high_inclusive=True)

    # ------------------------------------------------------------------
    # Coordinate mutators
    # ------------------------------------------------------------------

    def trim(self, left: Optional[int] = None,
             right: Optional[int] = None) -> Tuple[int, int]:
        """
        Trim the alignment on the left and/or right by consensus bases.

        Given:

            Cons:  T-AA--CTG...
            Seq1:  TAAA--CAG...
            Seq2:  T-CA--CTG...

        trim(left=2) leaves:

            Cons:  A--CTG...
            Seq1:  A--CAG...
            Seq2:  A--CTG...

        A negative count trims back to the first unambiguous (A/C/G/T)
        consensus base; zero trims nothing.  Instances that fall entirely
        inside a trimmed region are removed.

        Returns:
            (left_columns, right_columns) removed from the gapped frame
        """
        if left is None and right is None:
            raise MissingParameter("trim() requires a 'left' or 'right' value")

        ma_len = self.gapped_reference_length()
        consensus = self.consensus(include_reference=False)[:ma_len]

        left_cols = _edge_columns(consensus, left or 0)
        right_cols = _edge_columns(consensus[::-1], right or 0)
        right_cols = min(right_cols, ma_len - left_cols)
        cutoff = ma_len - right_cols

        kept = []
        for inst in self._instances:
            if _clip_instance(inst, left_cols, cutoff):
                kept.append(inst)
            else:
                logger.debug(f"trim: removing {inst.name}, contained in trimmed region")
        self._instances = kept

        reference = self._reference.seq
        self._reference.start += ungapped_length(reference[:left_cols])
        self.reference_seq = reference[left_cols:cutoff]
        return left_cols, right_cols

    def reverse_complement(self) -> None:
        """
        Reverse complement the reference and every instance in place.

        Alignment coordinates are mirrored across the gapped frame and each
        orientation flag is flipped; source-sequence coordinates are
        unchanged.
        """
        ref_len = len(self._reference.seq)
        self.reference_seq = reverse_complement(self._reference.seq)

        for inst in self._instances:
            length = len(inst.seq)
            inst.align_start = ref_len - (inst.align_start + length)
            inst.align_end = inst.align_start + length - 1
            inst.seq = reverse_complement(inst.seq)
            inst.orientation = inst.orientation.flipped()
            inst.left_flank, inst.right_flank = (
                reverse_complement(inst.right_flank),
                reverse_complement(inst.left_flank)
            )

    def alignment_block(self, start: int, end: int,
                        raw: bool = False) -> Tuple[str, List[str]]:
        """
        Slice columns start..end (inclusive) out of the alignment.

        Returns the reference substring and the substrings of every instance
        that spans the whole range (gaps removed when raw is True).
        """
        if start is None or end is None:
            raise MissingParameter("alignment_block() requires start and end")
        if start > end:
            raise InvalidArgument(f"alignment_block(): start {start} > end {end}")

        block = []
        for inst in self._instances:
            if start >= inst.align_start and end <= inst.align_end:
                offset = start - inst.align_start
                piece = inst.seq[offset:offset + end - start + 1]
                if raw:
                    piece = piece.replace('-', '')
                block.append(piece)

        return self._reference.seq[start:end + 1], block

    def __repr__(self) -> str:
        return (f"MultipleAlignment(reference={self._reference.name!r}, "
                f"length={self.gapped_reference_length()}, instances={len(self._instances)})")


def _edge_columns(consensus: str, bases: int) -> int:
    """
    Count the columns to remove from the start of consensus.

    A positive count stops on the (bases+1)-th consensus base so that
    exactly `bases` bases are cut; a negative count stops on the first
    unambiguous base.
    """
    if bases == 0:
        return 0
    seen = 0
    for col, base in enumerate(consensus):
        if bases > 0:
            if base != '-':
                seen += 1
                if seen == bases + 1:
                    return col
        elif base.upper() in 'ACGT':
            return col
    return len(consensus)


def _clip_instance(inst: AlignedSequence, left_cols: int, cutoff: int) -> bool:
    """
    Clip one instance to columns [left_cols, cutoff) and shift it left.

    Returns False when nothing of the instance survives.
    """
    start, end, seq = inst.align_start, inst.align_end, inst.seq
    if start >= cutoff or end < left_cols:
        return False

    cut_right = 0
    if end >= cutoff:
        trim_len = end - cutoff + 1
        cut_right = ungapped_length(seq[len(seq) - trim_len:])
        seq = seq[:len(seq) - trim_len]
        stripped = seq.rstrip(EDGE_CHARS)
        end -= trim_len + (len(seq) - len(stripped))
        seq = stripped

    cut_left = 0
    if start < left_cols:
        trim_len = left_cols - start
        cut_left = ungapped_length(seq[:trim_len])
        seq = seq[trim_len:]
        stripped = seq.lstrip(EDGE_CHARS)
        start += trim_len + (len(seq) - len(stripped))
        seq = stripped

    if not seq:
        return False

    inst.seq = seq
    inst.align_start = start - left_cols
    inst.align_end = end - left_cols

    # The cut edges map onto opposite ends of a reverse strand source
    if inst.orientation == Orientation.FORWARD:
        inst.seq_start += cut_left
        inst.seq_end -= cut_right
    else:
        inst.seq_start += cut_right
        inst.seq_end -= cut_left
    return True
