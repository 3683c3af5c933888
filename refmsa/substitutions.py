"""
Substitution frequency tallies

Handles:
- Mono- and tri-nucleotide substitution counts of instances vs the reference
- Strand symmetric counts (each site also tallied as its reverse complement)
- Per-position aligned/analyzed totals and an analysis consensus

A three base window (left flank, site, right flank) slides over the
ungapped reference.  A site is tallied for an instance only when the
instance spans both flanks, has a base at the site and at both flanks,
and carries no insertion between the flanks and the site:

    ref   A C - G T      neither C nor G is analyzed: the inserted A
    inst  A C A G T      sits between each of them and its flank
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Set, Tuple

from .model import MultipleAlignment, reverse_complement


logger = logging.getLogger(__name__)

_SKIP = '-*'


@dataclass
class SubstitutionFrequencies:
    """
    Tallies from substitution_frequencies().

    Mono keys are reference base + instance base ("CT"); tri keys are
    reference triplet + instance triplet ("ACGATG").  The *_single_counts
    hold forward strand tallies only, the others add the reverse
    complement of every site.  tri_position_counts is keyed by
    (reference triplet, site column) and counts the instance base.
    Per-position totals are keyed by ungapped reference base number.
    """
    mono_counts: Counter = field(default_factory=Counter)
    mono_single_counts: Counter = field(default_factory=Counter)
    tri_counts: Counter = field(default_factory=Counter)
    tri_single_counts: Counter = field(default_factory=Counter)
    tri_position_counts: Dict[Tuple[str, int], Counter] = field(default_factory=dict)
    mono_alphabet: Set[str] = field(default_factory=set)
    tri_alphabet: Set[str] = field(default_factory=set)
    total_bases_aligned: int = 0
    total_bases_analyzed: int = 0
    aligned_per_position: Counter = field(default_factory=Counter)
    analyzed_per_position: Counter = field(default_factory=Counter)
    analysis_consensus: str = ""

    def substitution_fraction(self) -> float:
        """Fraction of analyzed forward strand sites where the bases differ"""
        if not self.total_bases_analyzed:
            return 0.0
        changed = sum(n for key, n in self.mono_single_counts.items() if key[0] != key[1])
        return changed / self.total_bases_analyzed


def _flank_column(ref: str, col: int, step: int) -> int:
    """Nearest non-gap reference column from col in direction step, or -1"""
    col += step
    while 0 <= col < len(ref) and ref[col] == '-':
        col += step
    return col if 0 <= col < len(ref) else -1


def substitution_frequencies(msa: MultipleAlignment) -> SubstitutionFrequencies:
    """Tally substitutions of every instance against the reference"""
    ref = msa.reference_seq
    freqs = SubstitutionFrequencies()
    analysis = list(ref.lower())

    base_number = 0
    for col, ref_char in enumerate(ref):
        if ref_char == '-':
            continue
        base_number += 1

        left = _flank_column(ref, col, -1)
        right = _flank_column(ref, col, 1)
        if left < 0 or right < 0:
            continue

        ref_tri = (ref[left] + ref_char + ref[right]).upper()
        if not ref_tri.isalpha():
            continue
        ref_base = ref_tri[1]

        for inst in msa:
            start = inst.align_start
            if left < start or right > start + len(inst.seq) - 1:
                continue

            base = inst.seq[col - start].upper()
            if base in _SKIP:
                continue
            freqs.total_bases_aligned += 1
            freqs.aligned_per_position[base_number] += 1

            if inst.seq[left + 1 - start:col - start].strip('-'):
                continue
            if inst.seq[col + 1 - start:right - start].strip('-'):
                continue
            left_base = inst.seq[left - start].upper()
            right_base = inst.seq[right - start].upper()
            if left_base in _SKIP or right_base in _SKIP:
                continue

            analysis[col] = ref_base
            inst_tri = left_base + base + right_base
            ref_tri_rc = reverse_complement(ref_tri)
            inst_tri_rc = reverse_complement(inst_tri)

            freqs.mono_alphabet.update(
                [ref_base, reverse_complement(ref_base), base, reverse_complement(base)])
            freqs.tri_alphabet.update([ref_tri, ref_tri_rc, inst_tri, inst_tri_rc])

            freqs.mono_single_counts[ref_base + base] += 1
            freqs.mono_counts[ref_base + base] += 1
            freqs.mono_counts[reverse_complement(ref_base) + reverse_complement(base)] += 1

            freqs.tri_single_counts[ref_tri + inst_tri] += 1
            freqs.tri_counts[ref_tri + inst_tri] += 1
            freqs.tri_counts[ref_tri_rc + inst_tri_rc] += 1

            freqs.tri_position_counts.setdefault((ref_tri, col), Counter())[base] += 1
            freqs.tri_position_counts.setdefault((ref_tri_rc, col), Counter())[reverse_complement(base)] += 1

            freqs.total_bases_analyzed += 1
            freqs.analyzed_per_position[base_number] += 1

    freqs.analysis_consensus = ''.join(analysis)
    logger.debug(f"Analyzed {freqs.total_bases_analyzed} of {freqs.total_bases_aligned} aligned bases")
    return freqs
