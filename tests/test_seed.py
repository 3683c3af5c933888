"""Tests for importing seed alignments."""

import logging

import pytest

from refmsa import InvalidArgument, MissingParameter, Orientation, import_aligned_seqs


class TestImport:
    """Tests for import_aligned_seqs()."""

    def test_edge_gaps_stripped(self):
        msa = import_aligned_seqs([("s1", "--ACG-T."), ("s2", "TTACGATA")])
        first = msa[0]
        assert first.seq == "ACG-T"
        assert (first.align_start, first.align_end) == (2, 6)
        assert (first.seq_start, first.seq_end) == (1, 4)
        msa.validate()

    def test_keep_edge_gaps(self):
        msa = import_aligned_seqs([("s1", "--ACG-T."), ("s2", "TTACGATA")], keep_edge_gaps=True)
        first = msa[0]
        assert first.seq == "--ACG-T-"
        assert (first.align_start, first.align_end) == (0, 7)

    def test_dots_become_gaps(self):
        msa = import_aligned_seqs([("s1", "AC..GT")])
        assert msa[0].seq == "AC--GT"

    def test_coordinates_from_identifier(self):
        msa = import_aligned_seqs([("hg38:chr1:1103-1100", "ACGT")])
        inst = msa[0]
        assert inst.name == "hg38:chr1"
        assert (inst.seq_start, inst.seq_end) == (1100, 1103)
        assert inst.orientation == Orientation.REVERSE

    def test_coordinates_from_tuple(self):
        msa = import_aligned_seqs([("x", "ACGT", 10, 7), ("y", "ACGT", 3, 6)])
        assert (msa[0].seq_start, msa[0].seq_end) == (7, 10)
        assert msa[0].orientation == Orientation.REVERSE
        assert (msa[1].seq_start, msa[1].seq_end) == (3, 6)
        assert msa[1].orientation == Orientation.FORWARD

    def test_default_coordinates(self):
        msa = import_aligned_seqs([("plain", "-AC-GT")])
        assert (msa[0].seq_start, msa[0].seq_end) == (1, 4)
        assert msa[0].name == "plain"

    def test_all_gap_row_skipped(self, caplog):
        with caplog.at_level(logging.WARNING):
            msa = import_aligned_seqs([("empty", "----"), ("s", "ACGT")])
        assert msa.count() == 1
        assert "empty" in caplog.text

    def test_reference_is_consensus(self, trim_rows):
        msa = import_aligned_seqs(trim_rows)
        assert msa.reference_seq == "T-AA--CTG"
        assert msa.reference_start == 1

    def test_supplied_reference(self):
        msa = import_aligned_seqs([("s", "ACGT")], reference="ACCT", reference_name="fam1")
        assert msa.reference_seq == "ACCT"
        assert msa.reference_name == "fam1"

    def test_missing_sequences(self):
        with pytest.raises(MissingParameter):
            import_aligned_seqs(None)

    def test_bad_tuple(self):
        with pytest.raises(InvalidArgument):
            import_aligned_seqs([("s", "ACGT", 1)])

    def test_reference_width_mismatch(self, trim_rows):
        with pytest.raises(InvalidArgument):
            import_aligned_seqs(trim_rows, reference="TAACTG")

    def test_reference_from_rf_residues(self, trim_rows):
        msa = import_aligned_seqs(trim_rows, rf_line="TTAA..CTG")
        assert msa.reference_seq == "TTAA--CTG"

    def test_supplied_reference_wins_over_rf(self, trim_rows):
        msa = import_aligned_seqs(trim_rows, reference="TTAAGGCTG", rf_line="x.xx..xxx")
        assert msa.reference_seq == "TTAAGGCTG"
