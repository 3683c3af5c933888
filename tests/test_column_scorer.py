"""Tests for Ruzzo-Tompa and low scoring column detection."""

import pytest

from refmsa import (
    AlignedSequence,
    MultipleAlignment,
    ReferenceSequence,
    column_profile,
    low_scoring_columns,
    ruzzo_tompa,
)


class TestRuzzoTompa:
    """Tests for maximal scoring subsequences."""

    def test_worked_example(self):
        result = ruzzo_tompa([4, -5, 3, -3, 1, 2, -2, 2, -2, 1, 5])
        assert result.intervals == [[0, 1], [2, 3], [4, 11]]
        assert result.scores == [4, 3, 7]
        assert result.mask == [4, 0, 3, 0, 7, 7, 7, 7, 7, 7, 7]
        assert result.subsequences[1] == [3]

    def test_all_negative(self):
        result = ruzzo_tompa([-1, -2, -3])
        assert result.intervals == []
        assert result.mask == [0, 0, 0]

    def test_empty(self):
        result = ruzzo_tompa([])
        assert result.intervals == []
        assert result.mask == []

    def test_intervals_disjoint_and_sorted(self):
        scores = [3, -1, -4, 2, 2, -7, 1, -1, 5, -9, 6, -2, 1]
        result = ruzzo_tompa(scores)
        previous_end = 0
        for start, end in result.intervals:
            assert start >= previous_end
            assert start < end
            previous_end = end

    def test_intervals_are_maximal(self):
        scores = [3, -1, -4, 2, 2, -7, 1, -1, 5, -9, 6, -2, 1]
        result = ruzzo_tompa(scores)
        for (start, end), score in zip(result.intervals, result.scores):
            assert sum(scores[start:end]) == pytest.approx(score)
            # No proper sub-range scores higher
            for i in range(start, end):
                for j in range(i + 1, end + 1):
                    assert sum(scores[i:j]) <= score + 1e-9

    def test_single_positive_run(self):
        result = ruzzo_tompa([1, 1, 1])
        assert result.intervals == [[0, 3]]
        assert result.mask == [3, 3, 3]


class TestColumnScores:
    """Tests for the alignment column profile."""

    @pytest.fixture
    def gapped_msa(self):
        msa = MultipleAlignment(ReferenceSequence("AC--GT"))
        msa.add(AlignedSequence("A-CCGT", 0, 5))
        msa.add(AlignedSequence("AC--GT", 0, 5))
        return msa

    def test_profile(self, gapped_msa):
        profile = column_profile(gapped_msa)
        assert list(profile) == pytest.approx([9, -15, -7.5, -7.5, 10, 9])

    def test_custom_penalties(self, gapped_msa):
        profile = column_profile(gapped_msa, gap_initiation_penalty=-20, gap_extension_penalty=-5)
        assert list(profile) == pytest.approx([9, -5, -2.5, -2.5, 10, 9])

    def test_low_scoring_blocks(self, gapped_msa):
        scores = low_scoring_columns(gapped_msa)
        assert scores.blocks == [(1, 3)]
        assert scores.mask[1] == pytest.approx(30)

    def test_threshold(self, gapped_msa):
        scores = low_scoring_columns(gapped_msa, threshold=100)
        assert scores.blocks == []

    def test_clean_alignment(self, small_msa):
        small_msa.update(1, seq="ACGTACGTAC")
        scores = low_scoring_columns(small_msa)
        assert scores.blocks == []

    def test_block_reaching_last_column(self):
        msa = MultipleAlignment(ReferenceSequence("ACGTAA"))
        msa.add(AlignedSequence("ACGTCC", 0, 5))
        scores = low_scoring_columns(msa)
        assert scores.blocks == [(4, 5)]
