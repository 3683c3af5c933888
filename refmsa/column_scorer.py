"""
Low scoring column detection

Handles:
- Per-column average score of the instances against the reference
- Ruzzo-Tompa maximal scoring subsequences (linear time)
- Reporting runs of poorly supported columns

For example, given the instances:

      AACT-TTGACC---CCacta
    GAAAGT-TTCTCCAGTCCacta
    G-AACTATTC-CCA--CCacta
    GAAACT-TTG-CC-----acta

and the reference GAAACT-TTN-CCA--CCACTA, the seventh column holds three
gap/gap pairs (score 0) and one indel opening (-40), giving -10.  The
profile is negated so that the worst regions become the maximal scoring
subsequences.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .matrices import ScoringMatrix, comparison_matrix
from .model import MultipleAlignment


logger = logging.getLogger(__name__)


@dataclass
class RuzzoTompaResult:
    """
    All maximal scoring subsequences of a score array.

    intervals are half-open [start, end) column ranges in left-to-right
    order; mask[j] holds the score of the interval covering j (0 elsewhere).
    """
    subsequences: List[List[float]]
    intervals: List[List[int]]
    scores: List[float]
    mask: List[float]


@dataclass
class ColumnScores:
    """Low scoring column blocks (inclusive ranges) plus the score mask"""
    blocks: List[Tuple[int, int]]
    mask: List[float]
    profile: List[float] = field(default_factory=list)


def ruzzo_tompa(scores: Sequence[float]) -> RuzzoTompaResult:
    """
    Find all maximal scoring subsequences (Ruzzo & Tompa, 1999).

    Candidates are kept on a stack with their cumulative score before (L)
    and after (R) the candidate.  Each candidate also stores a link to the
    nearest earlier candidate with a smaller L, so the leftward search skips
    whole runs and the pass stays amortized linear.
    """
    starts: List[int] = []
    ends: List[int] = []
    left: List[float] = []
    right: List[float] = []
    pred: List[int] = []

    total = 0.0
    for i, value in enumerate(scores):
        total += value
        if value <= 0:
            continue

        # New candidate [i, i+1)
        k = len(starts)
        starts.append(i)
        ends.append(i + 1)
        left.append(total - value)
        right.append(total)
        pred.append(-1)

        while True:
            j = k - 1
            while j >= 0 and left[j] >= left[k]:
                j = pred[j]
            pred[k] = j

            if j >= 0 and right[j] < right[k]:
                # Extend candidate j through i and drop everything above it
                ends[j] = i + 1
                right[j] = total
                del starts[j + 1:], ends[j + 1:], left[j + 1:], right[j + 1:], pred[j + 1:]
                k = j
            else:
                break

    mask = [0.0] * len(scores)
    subsequences = []
    intervals = []
    interval_scores = []
    for start, end, lo, hi in zip(starts, ends, left, right):
        score = hi - lo
        intervals.append([start, end])
        interval_scores.append(score)
        subsequences.append(list(scores[start:end]))
        for j in range(start, end):
            mask[j] = score

    return RuzzoTompaResult(subsequences, intervals, interval_scores, mask)


def column_profile(msa: MultipleAlignment,
                   matrix: Optional[ScoringMatrix] = None,
                   gap_initiation_penalty: float = -40,
                   gap_extension_penalty: float = -15) -> np.ndarray:
    """
    Average score of every instance against the reference at each column.

    An indel column (exactly one side gapped) scores the initiation penalty
    when it opens a gap run and the extension penalty while the run
    continues.  Gap/gap columns count toward the average with score 0, and
    symbol pairs missing from the matrix score 0.
    """
    if matrix is None:
        matrix = comparison_matrix()

    reference = msa.reference_seq.upper()
    width = max([len(reference)] + [inst.align_end + 1 for inst in msa])
    totals = np.zeros(width)
    counts = np.zeros(width)

    for inst in msa:
        ref_region = reference[inst.align_start:inst.align_start + len(inst.seq)]
        in_gap = False
        for offset, (ref_base, base) in enumerate(zip(ref_region, inst.seq.upper())):
            col = inst.align_start + offset
            counts[col] += 1
            if (ref_base == '-') != (base == '-'):
                if in_gap:
                    totals[col] += gap_extension_penalty
                else:
                    totals[col] += gap_initiation_penalty
                    in_gap = True
            elif ref_base == '-':
                continue
            else:
                totals[col] += matrix.score(ref_base, base, default=0)
                in_gap = False

    covered = counts > 0
    totals[covered] = totals[covered] / counts[covered]
    return totals


def low_scoring_columns(msa: MultipleAlignment,
                        matrix: Optional[ScoringMatrix] = None,
                        gap_initiation_penalty: float = -40,
                        gap_extension_penalty: float = -15,
                        threshold: float = 1.0) -> ColumnScores:
    """
    Find blocks of poorly supported alignment columns.

    The column profile is negated and run through ruzzo_tompa(); every run
    of columns whose mask value is at or above threshold is reported as an
    inclusive (start, end) block.
    """
    profile = column_profile(msa, matrix, gap_initiation_penalty, gap_extension_penalty)
    inverted = -profile
    result = ruzzo_tompa(inverted.tolist())

    blocks = []
    block_start = -1
    for col, value in enumerate(result.mask):
        if value >= threshold:
            if block_start == -1:
                block_start = col
        elif block_start != -1:
            blocks.append((block_start, col - 1))
            block_start = -1
    if block_start != -1:
        blocks.append((block_start, len(result.mask) - 1))

    logger.debug(f"{len(blocks)} low scoring blocks over {len(result.mask)} columns")
    return ColumnScores(blocks=blocks, mask=result.mask, profile=profile.tolist())
