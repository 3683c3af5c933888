"""Pytest configuration and fixtures for ref-msa tests."""

from typing import List

import pytest

from refmsa import (
    AlignedSequence,
    MultipleAlignment,
    Orientation,
    PairwiseRecord,
    ReferenceSequence,
)


@pytest.fixture
def small_msa() -> MultipleAlignment:
    """Ungapped 10 column reference with three instances."""
    msa = MultipleAlignment(ReferenceSequence(seq="ACGTACGTAC", start=1, name="ref"))
    msa.add(AlignedSequence("ACGTACGTAC", 0, 9, seq_start=1, seq_end=10, name="a"))
    msa.add(AlignedSequence("ACGTTCGTAC", 0, 9, seq_start=101, seq_end=110, name="b",
                            orientation=Orientation.REVERSE))
    msa.add(AlignedSequence("GTAC", 2, 5, seq_start=5, seq_end=8, name="c"))
    return msa


@pytest.fixture
def example_records() -> List[PairwiseRecord]:
    """Two pairwise records inserting gaps at different reference positions."""
    return [
        PairwiseRecord("ref", "seq1", 1, 4, 10, 14, "ACGT-", "ACGTA", pct_diverge=20.0),
        PairwiseRecord("ref", "seq2", 1, 4, 20, 24, "AC-GT", "ACAGT", pct_diverge=10.0),
    ]


@pytest.fixture
def trim_rows():
    """Seed rows whose consensus is T-AA--CTG."""
    return [
        ("seq1", "TAAA--CAG"),
        ("seq2", "T-CA--CTG"),
        ("seq3", "T-AAC-CTG"),
        ("seq4", "T-AA-TCTG"),
    ]


class DictSequenceDatabase:
    """In-memory flanking sequence source."""

    def __init__(self, sequences):
        self.sequences = sequences

    def get_seq_length(self, seq_id):
        return len(self.sequences.get(seq_id, ""))

    def get_substr(self, seq_id, start, length):
        return self.sequences[seq_id][start:start + length]


@pytest.fixture
def sequence_db():
    return DictSequenceDatabase({"chr1": "ACGTACGTACGTACGTACGTACGTACGTAC"})
