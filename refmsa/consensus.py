"""
CpG-aware consensus calling

Handles:
- Column profiles from padded, gapped sequences
- First-pass consensus (highest lineup matrix score wins)
- CpG correction of adjacent consensus di-nucleotides

CpG sites mutate quickly through methylated cytosine deamination, so an
ancestral CG is usually observed as TG or CA in the instances.  The second
pass scores every consensus di-nucleotide against the hypothesis that it
was a CG and rewrites it when that hypothesis scores higher.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .errors import InvalidArgument, MissingParameter
from .matrices import ScoringMatrix, lineup_matrix


logger = logging.getLogger(__name__)


@dataclass
class ConsensusParams:
    """CpG scoring parameters (tuned for the default lineup matrix)"""
    cg_param: float = 12          # observed TG or CA
    ta_param: float = -5          # observed TA, two steps from CG
    cg_trans_param: float = 2     # transition at one side of a CpG site


def _profile_counts(sequences: Sequence[str], matrix: ScoringMatrix,
                    width: int) -> np.ndarray:
    """Symbol counts per column, shape (width, len(alphabet))"""
    counts = np.zeros((width, len(matrix.alphabet)))
    for seq in sequences:
        for col, char in enumerate(seq):
            if char == ' ':
                continue
            idx = matrix.index(char)
            if idx is None:
                raise InvalidArgument(
                    f"Matrix alphabet does not include symbol '{char}' (column {col})")
            counts[col, idx] += 1
    return counts


def _first_pass(counts: np.ndarray, matrix: ScoringMatrix) -> List[str]:
    """Highest scoring symbol per column; N wins when it ties the maximum"""
    # scores[col, a] = sum_b counts[col, b] * M[a, b]
    scores = counts @ matrix.scores.T
    best = np.argmax(scores, axis=1)

    n_index = matrix.index('N')
    consensus = []
    for col, idx in enumerate(best):
        if n_index is not None and scores[col, n_index] == scores[col, idx]:
            idx = n_index
        consensus.append(matrix.alphabet[idx])
    return consensus


def _cpg_score(left: str, right: str, matrix: ScoringMatrix,
               params: ConsensusParams) -> float:
    """Score an observed di-nucleotide under the CpG-origin hypothesis"""
    pair = left + right
    if pair in ('CA', 'TG'):
        return params.cg_param
    if pair == 'TA':
        return params.ta_param
    if pair in ('TC', 'TT'):
        return params.cg_trans_param + matrix.score('G', right, default=0)
    if pair in ('AA', 'GA'):
        return params.cg_trans_param + matrix.score('C', left, default=0)
    return matrix.score('C', left, default=0) + matrix.score('G', right, default=0)


def _cpg_pass(consensus: List[str], sequences: List[str],
              matrix: ScoringMatrix, params: ConsensusParams) -> int:
    """Rewrite consensus pairs to CG where the CpG hypothesis wins"""
    changed = 0
    length = len(consensus)
    for i in range(length - 1):
        if consensus[i] == '-':
            continue

        # Gaps between the pair are allowed: CG, C-G and C---G all qualify
        k = i + 1
        while k < length and consensus[k] == '-':
            k += 1
        if k >= length:
            break

        cons_left, cons_right = consensus[i], consensus[k]
        dn_score = 0.0
        cg_score = 0.0
        for seq in sequences:
            if i >= len(seq) or seq[i] == ' ':
                continue
            if k >= len(seq) or seq[k] == ' ':
                continue
            left, right = seq[i], seq[k]
            dn_score += matrix.score(cons_left, left, default=0)
            dn_score += matrix.score(cons_right, right, default=0)
            cg_score += _cpg_score(left, right, matrix, params)

        if cg_score > dn_score:
            consensus[i] = 'C'
            consensus[k] = 'G'
            changed += 1
    return changed


def build_consensus_from_array(sequences: Sequence[str],
                               matrix: Optional[ScoringMatrix] = None,
                               params: Optional[ConsensusParams] = None,
                               width: int = 0) -> str:
    """
    Call a consensus from pre-aligned sequences.

    Args:
        sequences: Gapped strings left-padded with blanks so that column j
            of every string is column j of the alignment
        matrix: Lineup matrix; defaults to the AT-biased matrix with gap scores
        params: CpG parameters; required when a custom matrix is supplied
        width: Minimum consensus length (e.g. the gapped reference length)

    Returns:
        Consensus string, one symbol per column
    """
    if matrix is None:
        matrix = lineup_matrix()
        if params is None:
            params = ConsensusParams()
    elif params is None:
        raise MissingParameter(
            "CpG parameters (cg_param, ta_param, cg_trans_param) are required "
            "when a matrix is supplied")

    rows = [seq.upper() for seq in sequences]
    width = max([width] + [len(seq) for seq in rows])
    if width == 0:
        return ''

    counts = _profile_counts(rows, matrix, width)
    consensus = _first_pass(counts, matrix)
    changed = _cpg_pass(consensus, rows, matrix, params)
    logger.debug(f"Consensus of {len(rows)} sequences, {width} columns, {changed} CpG corrections")
    return ''.join(consensus)
