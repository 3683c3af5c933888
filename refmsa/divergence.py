"""
Divergence calculators

Handles:
- Simple mismatch divergence of each instance against a consensus
- Kimura two-parameter divergence (basic)
- Kimura two-parameter divergence with CpG site down-weighting

The two Kimura variants count different position sets and are not
numerically interchangeable.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

from .model import MultipleAlignment


logger = logging.getLogger(__name__)

TRANSITIONS = frozenset(['CT', 'TC', 'AG', 'GA'])
TRANSVERSIONS = frozenset(['GT', 'TG', 'GC', 'CG', 'CA', 'AC', 'AT', 'TA'])
WELL_CHARACTERIZED = frozenset('ACGT')


@dataclass
class KimuraSummary:
    """Totals over all instances from kimura_divergence()"""
    substitutions: int
    total_divergence: float
    average_divergence: float


@dataclass
class KimuraAltResult:
    """Per-instance result of the CpG-adjusted Kimura calculation"""
    transitions: int
    transversions: int
    transitions_cpg: float
    kimura: float
    kimura_cpg: float
    cpg_sites: int
    well_characterized_bases: int


def kimura_distance(p: float, q: float) -> Optional[float]:
    """
    Kimura two-parameter distance from transition (p) and transversion (q)
    fractions.  Returns None when the log operand is not positive.
    """
    operand = (1 - 2 * p - q) * math.sqrt(1 - 2 * q) if q <= 0.5 else 0.0
    if operand <= 0:
        return None
    return abs(-0.5 * math.log(operand))


def simple_divergence(msa: MultipleAlignment, consensus: Optional[str] = None) -> None:
    """
    Set each instance's divergence to mismatches / compared positions.

    Positions with a gap on either side are not compared.  An instance with
    no comparable positions is assigned 1.0.
    """
    if consensus is None:
        consensus = msa.reference_seq
    consensus = consensus.upper()

    for inst in msa:
        total = 0
        changes = 0
        for offset, base in enumerate(inst.seq.upper()):
            col = inst.align_start + offset
            cons = consensus[col] if col < len(consensus) else '-'
            if cons == '-' or base == '-':
                continue
            total += 1
            if cons != base:
                changes += 1
        if total == 0:
            logger.warning(f"{inst.name}: no comparable positions, divergence set to 1.0")
            inst.divergence = 1.0
        else:
            inst.divergence = changes / total


def kimura_divergence(msa: MultipleAlignment,
                      consensus: Optional[str] = None) -> KimuraSummary:
    """
    Kimura two-parameter divergence of every instance against the consensus.

    Gap and mask ('*') positions on either side are ignored.  The divergence
    is clamped to 1 when transversions exceed half the aligned bases, when the
    log operand is not positive, or when nothing aligns.  Each instance gets
    divergence, transitions and transversions set.
    """
    if not consensus:
        consensus = msa.reference_seq
    consensus = consensus.upper()

    substitutions = 0
    total_div = 0.0
    for inst in msa:
        aligned = 0
        transitions = 0
        transversions = 0
        for offset, base in enumerate(inst.seq.upper()):
            col = inst.align_start + offset
            cons = consensus[col] if col < len(consensus) else '-'
            if cons in '-*' or base in '-*':
                continue
            pair = cons + base
            if pair in TRANSITIONS:
                transitions += 1
            elif pair in TRANSVERSIONS:
                transversions += 1
            aligned += 1

        div = None
        if aligned > 0:
            div = kimura_distance(transitions / aligned, transversions / aligned)
        inst.divergence = 1.0 if div is None else div
        inst.transitions = transitions
        inst.transversions = transversions

        total_div += inst.divergence
        substitutions += transitions + transversions

    average = round(total_div / len(msa), 2) if len(msa) else 0.0
    return KimuraSummary(substitutions, total_div, average)


def kimura_divergence_alt(msa: MultipleAlignment, index: int,
                          consensus: Optional[str] = None) -> KimuraAltResult:
    """
    CpG-adjusted Kimura divergence for one instance (percent scale).

    Only well-characterized pairs (both bases A/C/G/T) count toward the
    denominator.  Transitions at a consensus CpG site are folded: two
    transitions at one site count as one, a single one counts as 1/10.
    Both Kimura values are 100.0 when no well-characterized base exists or
    the log operand is not positive.
    """
    inst = msa.get(index)
    if consensus is None:
        consensus = msa.reference_seq
    region = consensus[inst.align_start:inst.align_end + 1].upper()
    seq = inst.seq.upper()

    transitions = 0
    transversions = 0
    transitions_mod = 0.0
    cpg_sites = 0
    well_characterized = 0
    prev_cons = ''
    prev_trans = 0.0

    for cons, base in zip(region, seq):
        if cons == '-':
            continue
        if cons in WELL_CHARACTERIZED and base in WELL_CHARACTERIZED:
            well_characterized += 1

        pair = base + cons
        if prev_cons == 'C' and cons == 'G':
            cpg_sites += 1
            if pair in TRANSITIONS:
                prev_trans += 1
                transitions += 1
            elif pair in TRANSVERSIONS:
                transversions += 1

            if prev_trans == 2:
                prev_trans = 1
            elif prev_trans == 1:
                prev_trans = 1 / 10
        else:
            transitions_mod += prev_trans
            prev_trans = 0
            if pair in TRANSITIONS:
                # Held back until the next base shows whether this was a CpG
                prev_trans = 1
                transitions += 1
            elif pair in TRANSVERSIONS:
                transversions += 1
        prev_cons = cons
    transitions_mod += prev_trans

    kimura = 100.0
    kimura_cpg = 100.0
    if well_characterized >= 1:
        q = transversions / well_characterized
        div = kimura_distance(transitions / well_characterized, q)
        if div is not None:
            kimura = div * 100
        div = kimura_distance(transitions_mod / well_characterized, q)
        if div is not None:
            kimura_cpg = div * 100

    return KimuraAltResult(
        transitions=transitions,
        transversions=transversions,
        transitions_cpg=transitions_mod,
        kimura=kimura,
        kimura_cpg=kimura_cpg,
        cpg_sites=cpg_sites,
        well_characterized_bases=well_characterized
    )
