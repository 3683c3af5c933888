"""
Pairwise-to-multiple alignment builder

Merges many pairwise alignments that share a reference sequence into one
reference-anchored multiple alignment.

Each pairwise record may insert a different number of gaps into the
reference at a given position.  The merged reference takes the largest
insertion seen at every position, and each instance is re-emitted with the
shortfall between its own insertion and the merged one filled with gaps.

    gapped seq: --ACGC--GCA---CGGTGC-CGT-C-
    sequence:   ACGCGCACGGTGCCGTC
    gapPattern: 200020030000010011
"""

import logging
import re
from typing import List, Optional, Protocol, Sequence, Union

from .errors import EmptyInput, InvalidArgument, MissingParameter
from .model import AlignedSequence, MultipleAlignment, ReferenceSequence
from .search_results import AnchoredRecord, PairwiseRecord, ReferenceRole


logger = logging.getLogger(__name__)

DEFAULT_MAX_FLANKING_LEN = 50


class SequenceDatabase(Protocol):
    """Source of flanking sequence (0-based substrings)"""

    def get_seq_length(self, seq_id: str) -> int:
        ...

    def get_substr(self, seq_id: str, start: int, length: int) -> str:
        ...


def gap_pattern(ref_seq: str, offset: int = 0) -> List[int]:
    """
    Gap run length preceding each ungapped base of ref_seq.

    The final entry holds the trailing gap run; offset zeros are prepended
    so the pattern is indexed by combined reference position.
    """
    runs = [len(run) for run in re.split(r'[^-]', ref_seq)]
    return [0] * offset + runs


class MultipleAlignmentBuilder:
    """
    Builds a MultipleAlignment from pairwise records.

    1. Combine the ungapped reference pieces (or use a supplied reference)
    2. Take the elementwise maximum of every record's gap pattern
    3. Emit the gapped reference and re-emit each instance against it
    """

    def __init__(self, reference_role: Union[ReferenceRole, str] = ReferenceRole.QUERY,
                 legacy_gap_offsets: bool = False,
                 flanking_db: Optional[SequenceDatabase] = None,
                 max_flanking_len: int = DEFAULT_MAX_FLANKING_LEN):
        self.reference_role = ReferenceRole.parse(reference_role)
        self.legacy_gap_offsets = legacy_gap_offsets
        self.flanking_db = flanking_db
        self.max_flanking_len = max_flanking_len if max_flanking_len and max_flanking_len > 0 else -1

    def build(self, records: Sequence[PairwiseRecord],
              reference_seq: Optional[str] = None) -> MultipleAlignment:
        """
        Merge pairwise records into a multiple alignment.

        Args:
            records: Pairwise records sharing one reference sequence
            reference_seq: Optional full ungapped reference; coordinates are
                then taken relative to its first base

        Returns:
            MultipleAlignment with one instance per record, in input order
        """
        if records is None:
            raise MissingParameter("build() requires a collection of pairwise records")
        records = list(records)
        if not records:
            raise EmptyInput("The pairwise record collection must contain at least one alignment")

        anchored = [record.anchored(self.reference_role) for record in records]

        if reference_seq:
            combined = reference_seq
            t_min = 1
        else:
            combined, t_min = self._combine_reference(anchored)

        patterns = [gap_pattern(rec.ref_seq, rec.ref_start - t_min) for rec in anchored]
        ref_gaps = self._merge_gap_patterns(patterns, len(combined))
        gapped_reference = self._gapped_reference(combined, ref_gaps)
        total_gaps = self._cumulative_gaps(ref_gaps)

        msa = MultipleAlignment(ReferenceSequence(
            seq=gapped_reference,
            start=t_min,
            name=anchored[0].ref_name
        ))

        for rec, pattern in zip(anchored, patterns):
            offset = rec.ref_start - t_min
            align_start = offset + total_gaps[offset]
            # A record whose own reference opens with an insertion starts at
            # the head of that insertion block
            if not self.legacy_gap_offsets and pattern[offset] > 0:
                align_start -= ref_gaps[offset]
            seq = self._reemit_instance(rec, pattern, ref_gaps, offset)

            msa.add(AlignedSequence(
                seq=seq,
                align_start=align_start,
                align_end=align_start + len(seq) - 1,
                seq_start=rec.inst_start,
                seq_end=rec.inst_end,
                name=rec.inst_name,
                orientation=rec.orientation,
                src_divergence=rec.pct_diverge
            ))

        if self.flanking_db is not None:
            self._load_flanking(msa, anchored)

        logger.info(f"Built alignment of {msa.count()} instances against "
                    f"{msa.reference_name} ({msa.gapped_reference_length()} columns)")
        return msa

    def _combine_reference(self, records: List[AnchoredRecord]):
        """Lay each record's ungapped reference piece onto one buffer"""
        t_min = min(rec.ref_start for rec in records)
        t_max = max(rec.ref_end for rec in records)

        buffer = [' '] * (t_max - t_min + 1)
        for rec in records:
            piece = rec.ref_seq.replace('-', '')
            if len(piece) != rec.ref_end - rec.ref_start + 1:
                raise InvalidArgument(
                    f"Record {rec.inst_name}: reference range {rec.ref_start}-{rec.ref_end} "
                    f"does not match its {len(piece)} ungapped reference bases")
            offset = rec.ref_start - t_min
            buffer[offset:offset + len(piece)] = piece
        combined = ''.join(buffer)

        if ' ' in combined:
            logger.warning(
                f"Reference sequence is incomplete: no coverage is available for "
                f"at least one subregion of {records[0].ref_name}")
        return combined, t_min

    @staticmethod
    def _merge_gap_patterns(patterns: List[List[int]], length: int) -> List[int]:
        """Elementwise maximum over positions 0..length (inclusive)"""
        merged = [0] * (length + 1)
        for pattern in patterns:
            for j, gaps in enumerate(pattern[:length + 1]):
                if gaps > merged[j]:
                    merged[j] = gaps
        return merged

    @staticmethod
    def _gapped_reference(combined: str, ref_gaps: List[int]) -> str:
        parts = []
        for j, base in enumerate(combined):
            parts.append('-' * ref_gaps[j])
            parts.append(base)
        parts.append('-' * ref_gaps[len(combined)])
        return ''.join(parts)

    def _cumulative_gaps(self, ref_gaps: List[int]) -> List[int]:
        """
        totalGaps[j]: reference gap columns up to position j.

        The corrected form includes the insertion preceding j; the legacy
        form lags by one position and is kept to reproduce older outputs.
        """
        total = [0] * len(ref_gaps)
        if self.legacy_gap_offsets:
            for j in range(1, len(ref_gaps)):
                total[j] = total[j - 1] + ref_gaps[j - 1]
        else:
            total[0] = ref_gaps[0]
            for j in range(1, len(ref_gaps)):
                total[j] = total[j - 1] + ref_gaps[j]
        return total

    def _reemit_instance(self, rec: AnchoredRecord, pattern: List[int],
                         ref_gaps: List[int], offset: int) -> str:
        """Copy the instance string, padding each reference base's shortfall"""
        length = len(rec.inst_seq)
        k = offset
        out = []
        for j in range(length + 1):
            ref_char = rec.ref_seq[j] if j < len(rec.ref_seq) else ''
            if ref_char != '-':
                if self.legacy_gap_offsets or 0 < j < length:
                    own = pattern[k] if k < len(pattern) else 0
                    shortfall = ref_gaps[k] - own if k < len(ref_gaps) else 0
                    out.append('-' * shortfall)
                k += 1
            if j < length:
                out.append(rec.inst_seq[j])
        return ''.join(out)

    def _load_flanking(self, msa: MultipleAlignment, records: List[AnchoredRecord]) -> None:
        """Fetch up to max_flanking_len bases either side of each instance"""
        max_len = self.max_flanking_len
        for index, rec in enumerate(records):
            seq_len = self.flanking_db.get_seq_length(rec.inst_name)
            if not seq_len or seq_len <= 0:
                logger.debug(f"No flanking sequence available for {rec.inst_name}")
                continue

            remaining = rec.inst_remaining
            if remaining is None:
                remaining = seq_len - rec.inst_end

            # Left flank (0-based, fully closed)
            start = 0
            end = rec.inst_start - 2
            if max_len > -1 and rec.inst_start > max_len:
                start = rec.inst_start - max_len - 1
            left = self.flanking_db.get_substr(rec.inst_name, start, end - start + 1) if end >= start else ''

            # Right flank
            start = rec.inst_end
            end = rec.inst_end + remaining - 1
            if max_len > -1 and remaining > max_len:
                end = rec.inst_end + max_len - 1
            right = self.flanking_db.get_substr(rec.inst_name, start, end - start + 1) if end >= start else ''

            msa.update(index, left_flank=left, right_flank=right)


def build_from_pairwise(records: Sequence[PairwiseRecord],
                        reference_seq: Optional[str] = None,
                        reference_role: Union[ReferenceRole, str] = ReferenceRole.QUERY,
                        legacy_gap_offsets: bool = False,
                        flanking_db: Optional[SequenceDatabase] = None,
                        max_flanking_len: int = DEFAULT_MAX_FLANKING_LEN) -> MultipleAlignment:
    """Convenience wrapper around MultipleAlignmentBuilder.build()"""
    builder = MultipleAlignmentBuilder(
        reference_role=reference_role,
        legacy_gap_offsets=legacy_gap_offsets,
        flanking_db=flanking_db,
        max_flanking_len=max_flanking_len
    )
    return builder.build(records, reference_seq)
