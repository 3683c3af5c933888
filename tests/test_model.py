"""Tests for the alignment model."""

import logging

import pytest

from refmsa import (
    AlignedSequence,
    IndexOutOfBounds,
    InvalidArgument,
    MissingParameter,
    MultipleAlignment,
    Orientation,
    ReferenceSequence,
)


class TestOrientation:
    """Tests for orientation symbols."""

    def test_symbols(self):
        assert Orientation.from_symbol('+') == Orientation.FORWARD
        assert Orientation.from_symbol('-') == Orientation.REVERSE
        assert Orientation.from_symbol('C') == Orientation.REVERSE

    def test_unknown_symbol(self):
        with pytest.raises(InvalidArgument):
            Orientation.from_symbol('x')

    def test_flipped(self):
        assert Orientation.FORWARD.flipped() == Orientation.REVERSE
        assert Orientation.REVERSE.flipped() == Orientation.FORWARD


class TestInstanceAccess:
    """Tests for bounds-checked access and updates."""

    def test_count_excludes_reference(self, small_msa):
        assert small_msa.count() == 3
        assert len(small_msa) == 3

    def test_get(self, small_msa):
        assert small_msa[1].name == "b"
        assert small_msa.get(2).seq == "GTAC"

    @pytest.mark.parametrize("index", [-1, 3, 100])
    def test_out_of_bounds(self, small_msa, index):
        with pytest.raises(IndexOutOfBounds):
            small_msa.get(index)

    def test_out_of_bounds_is_index_error(self, small_msa):
        with pytest.raises(IndexError):
            small_msa[5]

    def test_update(self, small_msa):
        small_msa.update(0, name="renamed", divergence=0.25, orientation='-')
        assert small_msa[0].name == "renamed"
        assert small_msa[0].divergence == 0.25
        assert small_msa[0].orientation == Orientation.REVERSE

    def test_update_unknown_field(self, small_msa):
        with pytest.raises(InvalidArgument):
            small_msa.update(0, colour="red")

    def test_update_requires_fields(self, small_msa):
        with pytest.raises(MissingParameter):
            small_msa.update(0)

    def test_update_missing_required_value(self, small_msa):
        with pytest.raises(MissingParameter):
            small_msa.update(0, seq=None)
        # Nothing was applied
        assert small_msa[0].seq == "ACGTACGTAC"

    def test_update_out_of_bounds(self, small_msa):
        with pytest.raises(IndexOutOfBounds):
            small_msa.update(3, name="x")

    def test_ungapped_seq(self):
        msa = MultipleAlignment(ReferenceSequence("ACGT"))
        msa.add(AlignedSequence("A-GT", 0, 3))
        assert msa.ungapped_seq(0) == "AGT"


class TestReference:
    """Tests for reference accessors and coordinate queries."""

    def test_gapped_length_memo_invalidated(self, small_msa):
        assert small_msa.gapped_reference_length() == 10
        small_msa.reference_seq = "AC-GT"
        assert small_msa.gapped_reference_length() == 5

    def test_reference_is_a_copy(self, small_msa):
        assert small_msa.gapped_reference_length() == 10
        reference = small_msa.reference
        reference.seq = "AC"
        assert small_msa.reference_seq == "ACGTACGTAC"
        assert small_msa.gapped_reference_length() == 10
        assert (reference.start, reference.name) == (1, "ref")

    def test_ungapped_reference(self):
        msa = MultipleAlignment(ReferenceSequence("AC--GT"))
        assert msa.ungapped_reference() == "ACGT"

    def test_inst_ref_start_end(self):
        msa = MultipleAlignment(ReferenceSequence("AC-GT-"))
        msa.add(AlignedSequence("GT", 3, 4))
        assert msa.inst_ref_start(0) == 2
        assert msa.inst_ref_end(0) == 3

    def test_align_pos_from_bp_pos(self):
        msa = MultipleAlignment(ReferenceSequence("AC-GT", start=1))
        assert msa.align_pos_from_bp_pos(1) == 0
        assert msa.align_pos_from_bp_pos(3) == 2
        assert msa.align_pos_from_bp_pos(4) == 4


class TestProfile:
    """Tests for profiles, coverage and consensus."""

    def test_coverage(self, small_msa):
        assert small_msa.coverage() == [2, 2, 3, 3, 3, 3, 2, 2, 2, 2]

    def test_profile_counts(self, small_msa):
        profile = small_msa.profile()
        assert profile[4]['A'] == 2
        assert profile[4]['T'] == 1

    def test_profile_with_reference(self, small_msa):
        profile = small_msa.profile(include_reference=True)
        assert sum(profile[0].values()) == 3

    def test_consensus(self, small_msa):
        assert small_msa.consensus() == "ACGTACGTAC"

    def test_consensus_without_insertions(self):
        msa = MultipleAlignment(ReferenceSequence("AC-GT"))
        msa.add(AlignedSequence("ACAGT", 0, 4))
        msa.add(AlignedSequence("ACAGT", 0, 4))
        consensus, masked = msa.consensus_without_insertions()
        assert consensus == "ACAGT"
        assert masked == "AC-GT"


class TestBookkeeping:
    """Tests for duplicate detection, identifier normalization and filters."""

    def test_sequence_duplicates(self, small_msa):
        small_msa.update(2, name="a")
        assert small_msa.sequence_duplicates() == {"a": [0, 2]}

    def test_normalize_forward(self):
        msa = MultipleAlignment(ReferenceSequence("ACGT"))
        msa.add(AlignedSequence("ACGT", 0, 3, seq_start=1, seq_end=10, name="chr1_100_200"))
        assert msa.normalize_seq_refs() == 1
        assert msa[0].name == "chr1"
        assert (msa[0].seq_start, msa[0].seq_end) == (100, 109)

    def test_normalize_reverse(self):
        msa = MultipleAlignment(ReferenceSequence("ACGT"))
        msa.add(AlignedSequence("ACGT", 0, 3, seq_start=1, seq_end=10, name="chr1_100_200_R"))
        msa.normalize_seq_refs()
        assert msa[0].name == "chr1"
        assert (msa[0].seq_start, msa[0].seq_end) == (191, 200)
        assert msa[0].orientation == Orientation.REVERSE

    def test_filter_on_gc(self, small_msa):
        for i, gc in enumerate([0.30, 0.50, 0.45]):
            small_msa.update(i, gc_background=gc)
        removed = small_msa.filter_on_gc(0.3, 0.5)
        assert removed == 1
        assert [inst.name for inst in small_msa] == ["a", "c"]

    def test_filter_on_div_inclusive(self, small_msa):
        for i, div in enumerate([0.1, 0.2, 0.3]):
            small_msa.update(i, divergence=div)
        assert small_msa.filter_on_div(0.1, 0.2) == 1
        assert [inst.name for inst in small_msa] == ["a", "b"]

    def test_filter_missing_metric(self, small_msa, caplog):
        small_msa.update(0, src_divergence=5.0)
        with caplog.at_level(logging.WARNING):
            removed = small_msa.filter_on_src_div(0, 10)
        assert removed == 2
        assert small_msa.count() == 1
        assert "src_divergence" in caplog.text


class TestValidate:
    """Tests for positional invariants."""

    def test_valid(self, small_msa):
        small_msa.validate()

    def test_length_equation(self, small_msa):
        small_msa.update(2, align_end=6)
        with pytest.raises(InvalidArgument):
            small_msa.validate()

    def test_outside_reference(self, small_msa):
        small_msa.update(2, align_start=8, align_end=11)
        with pytest.raises(InvalidArgument):
            small_msa.validate()


class TestReverseComplementCase:
    """Reverse complementing keeps soft-masked (lowercase) bases."""

    def test_mixed_case_twice_is_identity(self):
        msa = MultipleAlignment(ReferenceSequence("acgtACGT"))
        msa.add(AlignedSequence("acgtacgt", 0, 7))
        msa.add(AlignedSequence("acgtaCgt", 0, 7))
        msa.reverse_complement()
        assert msa.reference_seq == "ACGTacgt"
        assert [inst.seq for inst in msa] == ["acgtacgt", "acGtacgt"]
        msa.reverse_complement()
        assert msa.reference_seq == "acgtACGT"
        assert [inst.seq for inst in msa] == ["acgtacgt", "acgtaCgt"]
