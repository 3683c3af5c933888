"""
Nucleotide scoring matrices

Handles:
- A small square matrix type keyed by an IUB alphabet
- The AT-biased lineup matrix used for consensus calling
- The comparison matrix used to score alignment columns
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from .errors import InvalidArgument


@dataclass
class ScoringMatrix:
    """
    Square substitution matrix.

    scores[i, j] is the score of row symbol alphabet[i] against column
    symbol alphabet[j].
    """
    alphabet: List[str]
    scores: np.ndarray

    def __post_init__(self):
        self.alphabet = [a.upper() for a in self.alphabet]
        self.scores = np.asarray(self.scores, dtype=float)
        n = len(self.alphabet)
        if self.scores.shape != (n, n):
            raise InvalidArgument(
                f"Matrix shape {self.scores.shape} does not match alphabet of {n} symbols")
        self._index: Dict[str, int] = {a: i for i, a in enumerate(self.alphabet)}

    def index(self, symbol: str) -> Optional[int]:
        return self._index.get(symbol.upper())

    def __contains__(self, symbol: str) -> bool:
        return symbol.upper() in self._index

    def score(self, row: str, col: str, default: Optional[float] = None) -> float:
        """Score row vs col; unknown symbols return default or raise"""
        i = self._index.get(row.upper())
        j = self._index.get(col.upper())
        if i is None or j is None:
            if default is not None:
                return default
            raise InvalidArgument(f"Matrix alphabet does not include: {row} -> {col}")
        return float(self.scores[i, j])

    @classmethod
    def from_rows(cls, alphabet: str, rows: str) -> 'ScoringMatrix':
        """Build from whitespace separated symbols and one text line per row"""
        symbols = alphabet.split()
        values = [[int(v) for v in line.split()] for line in rows.strip().splitlines()]
        return cls(symbols, np.array(values))


# AT-biased lineup matrix (mammalian genomes)
_LINEUP_ALPHABET = "A R G C Y T K M S W N X Z V H D B"
_LINEUP_ROWS = """
  9   0  -8 -15 -16 -17 -13  -3 -11  -4  -2  -7  -3  -3  -3  -3  -3
  2   1   1 -15 -15 -16  -7  -6  -6  -7  -2  -7  -3  -3  -3  -3  -3
 -4   3  10 -14 -14 -15  -2  -9  -2  -9  -2  -7  -3  -3  -3  -3  -3
-15 -14 -14  10   3  -4  -9  -2  -2  -9  -2  -7  -3  -3  -3  -3  -3
-16 -15 -15   1   1   2  -6  -7  -6  -7  -2  -7  -3  -3  -3  -3  -3
-17 -16 -15  -8   0   9  -3 -13 -11  -4  -2  -7  -3  -3  -3  -3  -3
-11  -6  -2 -11  -7  -3  -2 -11  -6  -7  -2  -7  -3  -3  -3  -3  -3
 -3  -7 -11  -2  -6 -11 -11  -2  -6  -7  -2  -7  -3  -3  -3  -3  -3
 -9  -5  -2  -2  -5  -9  -5  -5  -2  -9  -2  -7  -3  -3  -3  -3  -3
 -4  -8 -11 -11  -8  -4  -8  -8 -11  -4  -2  -7  -3  -3  -3  -3  -3
 -2  -2  -2  -2  -2  -2  -2  -2  -2  -2  -1  -7  -3  -3  -3  -3  -3
 -7  -7  -7  -7  -7  -7  -7  -7  -7  -7  -7  -7  -3  -3  -3  -3  -3
 -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3
 -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3
 -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3
 -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3
 -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3  -3
"""

GAP_SCORE = -6
GAP_GAP_SCORE = 3

# Comparison matrix for column scoring
_COMPARISON_ALPHABET = "A R G C Y T K M S W N V H D B"
_COMPARISON_ROWS = """
  9   1  -6 -15 -16 -17 -12  -2 -10  -4  -1  -2  -2  -2  -2
  1   1   1 -15 -15 -16  -6  -6  -6  -7  -1  -2  -2  -2  -2
 -6   1  10 -15 -15 -15  -2 -10  -2 -10  -1  -2  -2  -2  -2
-15 -15 -15  10   2  -6  -9  -2  -2  -9  -1  -2  -2  -2  -2
-16 -15 -15   1   1   1  -6  -7  -7  -7  -1  -2  -2  -2  -2
-17 -16 -15  -6   1   9  -2 -12 -11  -4  -1  -2  -2  -2  -2
-12  -6  -2 -11  -6  -2  -2 -11  -7  -7  -1  -2  -2  -2  -2
 -2  -6 -10  -2  -7 -12 -11  -2  -7  -7  -1  -2  -2  -2  -2
-10  -6  -2  -2  -7 -11  -7  -7  -2 -10  -1  -2  -2  -2  -2
 -4  -7 -10 -11  -7  -4  -7  -7 -10  -4  -1  -2  -2  -2  -2
 -1  -1  -1  -1  -1  -1  -1  -1  -1  -1  -1  -2  -2  -2  -2
 -2  -2  -2  -2  -2  -2  -2  -2  -2  -2  -2  -2  -2  -2  -2
 -2  -2  -2  -2  -2  -2  -2  -2  -2  -2  -2  -2  -2  -2  -2
 -2  -2  -2  -2  -2  -2  -2  -2  -2  -2  -2  -2  -2  -2  -2
 -2  -2  -2  -2  -2  -2  -2  -2  -2  -2  -2  -2  -2  -2  -2
"""


def lineup_matrix() -> ScoringMatrix:
    """The consensus lineup matrix extended with a gap row and column"""
    base = ScoringMatrix.from_rows(_LINEUP_ALPHABET, _LINEUP_ROWS)
    n = len(base.alphabet)
    scores = np.full((n + 1, n + 1), GAP_SCORE, dtype=float)
    scores[:n, :n] = base.scores
    scores[n, n] = GAP_GAP_SCORE
    return ScoringMatrix(base.alphabet + ['-'], scores)


def comparison_matrix() -> ScoringMatrix:
    """The matrix used to score instances against the reference per column"""
    return ScoringMatrix.from_rows(_COMPARISON_ALPHABET, _COMPARISON_ROWS)
