"""
Text view of a multiple alignment

Handles:
- Fixed width blocks with name and sequence coordinate columns
- Orientation aware source coordinates per block
- Optional consensus row and vertically printed column scores

Example (block_size=10):

    ref:fam1  1 ACGT--ACGT    8
    seq1     10 ACGTAAACGT    19 [1]
    seq2     57   GT--ACG     53 [2]
"""

import logging
from typing import List, Optional

from .column_scorer import low_scoring_columns
from .matrices import ScoringMatrix
from .model import MultipleAlignment, Orientation


logger = logging.getLogger(__name__)

DEFAULT_BLOCK_SIZE = 50


def _letters(seq: str) -> int:
    return sum(1 for c in seq if c.isalpha())


def _row(name: str, start: int, seq: str, end: int, id_len: int, coord_len: int,
         block_size: int) -> str:
    return f"{name.ljust(id_len)} {str(start).rjust(coord_len)} {seq.ljust(block_size)}    {end}"


def format_alignment_view(msa: MultipleAlignment,
                          block_size: int = DEFAULT_BLOCK_SIZE,
                          show_consensus: bool = False,
                          consensus_includes_reference: bool = False,
                          show_score: bool = False,
                          original_order: bool = False,
                          matrix: Optional[ScoringMatrix] = None) -> str:
    """
    Render the alignment as blocks of block_size columns.

    Each block holds the reference row ("ref:<name>") followed by every
    instance overlapping the block, each with its first and last source
    coordinate in the block and a line id in brackets.  Instances are listed
    by alignment start unless original_order is set.  With show_score the
    low scoring column mask is printed above each block, one digit per row.
    """
    if block_size <= 0:
        block_size = DEFAULT_BLOCK_SIZE

    width = msa.gapped_reference_length()
    order = list(range(msa.count()))
    if not original_order:
        order.sort(key=lambda n: msa[n].align_start)
    line_ids = {n: i + 1 for i, n in enumerate(order)}

    ref_name = f"ref:{msa.reference_name}"
    id_len = max([len(ref_name), len('consensus') if show_consensus else 0] +
                 [len(msa[n].name) for n in order])

    ref_end = msa.reference_start + _letters(msa.reference_seq) - 1
    coord_len = max([len(str(msa.reference_start)), len(str(ref_end))] +
                    [len(str(c)) for n in order for c in (msa[n].seq_start, msa[n].seq_end)])

    # Next source coordinate of each instance, walking in its orientation
    next_coord = {}
    for n in order:
        inst = msa[n]
        next_coord[n] = inst.seq_end if inst.orientation == Orientation.REVERSE else inst.seq_start

    scores: List[str] = []
    if show_score:
        mask = low_scoring_columns(msa, matrix=matrix).mask
        scores = [f"{value:0.1f}" for value in mask]
    score_len = max([len(s) for s in scores] + [0])
    score_indent = ' ' * (id_len + coord_len + 2)

    consensus = msa.consensus(include_reference=consensus_includes_reference) if show_consensus else ''

    lines = []
    ref_pos = msa.reference_start
    cons_pos = 1
    for line_start in range(0, width, block_size):
        line_end = line_start + block_size - 1

        for row in range(score_len):
            digits = []
            for col in range(line_start, min(line_end + 1, len(scores))):
                digits.append(scores[col].rjust(score_len)[row])
            lines.append(score_indent + ''.join(digits))

        if consensus:
            seq = consensus[line_start:line_end + 1]
            end = cons_pos + _letters(seq) - 1
            lines.append(_row('consensus', cons_pos, seq, end, id_len, coord_len, block_size))
            cons_pos = end + 1

        seq = msa.reference_seq[line_start:line_end + 1]
        end = ref_pos + _letters(seq) - 1
        lines.append(_row(ref_name, ref_pos, seq, end, id_len, coord_len, block_size))
        ref_pos = end + 1

        for n in order:
            inst = msa[n]
            if inst.align_start > line_end or inst.align_end < line_start:
                continue

            first = max(line_start - inst.align_start, 0)
            last = min(line_end - inst.align_start, len(inst.seq) - 1)
            seq = ' ' * max(inst.align_start - line_start, 0) + inst.seq[first:last + 1]

            letters = _letters(seq)
            step = letters - 1 if letters else 0
            start = next_coord[n]
            if inst.orientation == Orientation.REVERSE:
                if not letters:
                    start += 1
                end = start - step
                next_coord[n] -= letters
            else:
                if not letters:
                    start -= 1
                end = start + step
                next_coord[n] += letters

            lines.append(_row(inst.name, start, seq, end, id_len, coord_len, block_size) +
                         f" [{line_ids[n]}]")
        lines.append('')

    logger.debug(f"Rendered {msa.count()} instances in blocks of {block_size} columns")
    return '\n'.join(lines) + '\n'
