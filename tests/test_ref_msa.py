"""Tests for the ref_msa command line driver."""

import argparse

import pytest

import ref_msa
from refmsa import MultAlignError


def _args(input_path, output_path, **overrides):
    values = dict(
        input=input_path,
        output=output_path,
        format=None,
        params=None,
        pairwise=False,
        reference_fasta=None,
        reference_role=None,
        legacy_gap_offsets=False,
        flanking_fasta=None,
        max_flanking_len=None,
        keep_edge_gaps=False,
        trim_left=None,
        trim_right=None,
        recall_consensus=False,
        include_flanking=0,
        include_consensus=False,
        rf_residues=False,
        low_scoring=False,
        stats=False,
        view=False,
        view_scores=False,
        subst_freq=False,
    )
    values.update(overrides)
    return argparse.Namespace(**values)


class TestRun:
    """Tests for the ref_msa driver."""

    @pytest.fixture
    def seed_file(self, tmp_path, trim_rows):
        path = tmp_path / "seed.fa"
        path.write_text("".join(f">{name}\n{seq}\n" for name, seq in trim_rows))
        return path

    @pytest.fixture
    def flanked_hits(self, tmp_path):
        hits = tmp_path / "hits.tsv"
        hits.write_text("ref\tchr1\t1\t4\t11\t14\tACGT\tACGT\t1e-5\t40\t100\n")
        genome = tmp_path / "genome.fa"
        genome.write_text(">chr1\nGGGGGGGGGCACGTAAAAA\n")
        return hits, genome

    def test_seed_to_stockholm(self, seed_file, tmp_path, capsys):
        output = tmp_path / "out" / "aligned.stk"
        assert ref_msa.run(_args(seed_file, output, stats=True)) == 0
        text = output.read_text()
        assert text.startswith("# STOCKHOLM 1.0")
        assert "#=GF SQ 4" in text
        captured = capsys.readouterr().out
        assert "Sequences: 4" in captured
        assert "Alignment length: 9" in captured

    def test_trim_and_fasta(self, seed_file, tmp_path):
        output = tmp_path / "aligned.fa"
        ref_msa.run(_args(seed_file, output, trim_left=2))
        lines = output.read_text().splitlines()
        assert lines[1] == "A--CTG"

    def test_pairwise(self, tmp_path):
        hits = tmp_path / "hits.tsv"
        hits.write_text(
            "ref\tseq1\t1\t4\t10\t14\tACGT-\tACGTA\t1e-5\t40\t80\n"
            "ref\tseq2\t1\t4\t20\t24\tAC-GT\tACAGT\t1e-5\t40\t90\n"
        )
        output = tmp_path / "aligned.stk"
        ref_msa.run(_args(hits, output, pairwise=True))
        rf = [line for line in output.read_text().splitlines() if line.startswith("#=GC RF")][0]
        assert rf.split()[-1] == "xx.xx."

    def test_reference_fasta_width_mismatch(self, seed_file, tmp_path):
        reference = tmp_path / "ref.fa"
        reference.write_text(">ref\nACGT\n")
        with pytest.raises(MultAlignError):
            ref_msa.run(_args(seed_file, tmp_path / "aligned.stk", reference_fasta=reference))

    def test_reference_round_trips_through_stockholm(self, seed_file, tmp_path):
        reference = tmp_path / "ref.fa"
        reference.write_text(">fam1\nTTAAGGCTG\n")
        stockholm = tmp_path / "aligned.stk"
        ref_msa.run(_args(seed_file, stockholm, reference_fasta=reference, rf_residues=True))

        fasta = tmp_path / "again.fa"
        ref_msa.run(_args(stockholm, fasta))
        lines = fasta.read_text().splitlines()
        assert lines[1] == "TTAAGGCTG"

    def test_flanking_in_fasta(self, flanked_hits, tmp_path):
        hits, genome = flanked_hits
        output = tmp_path / "aligned.fa"
        ref_msa.run(_args(hits, output, pairwise=True, flanking_fasta=genome, include_flanking=3))
        lines = output.read_text().splitlines()
        assert lines[0] == ">ref"
        assert lines[1] == "---ACGT---"
        assert lines[2] == ">chr1:11-14 - including (up to) 3bp of flanking sequence"
        assert lines[3] == "GGCACGTAAA"

    def test_view_and_substitutions(self, seed_file, tmp_path, capsys):
        ref_msa.run(_args(seed_file, tmp_path / "aligned.stk", view=True, subst_freq=True))
        captured = capsys.readouterr().out
        assert "ref:seed" in captured
        assert "[4]" in captured
        assert "Substitution frequencies:" in captured
