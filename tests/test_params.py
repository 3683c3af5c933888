"""Tests for parameter files."""

import pytest

import ref_msa
from refmsa import InvalidArgument, MsaParams, load_params
from refmsa.params import parse_params


class TestParams:
    """Tests for .params parsing."""

    def test_missing_file_gives_defaults(self, tmp_path):
        params = load_params(tmp_path / "absent.params")
        assert params == MsaParams()
        assert params.cg_param == 12
        assert params.reference_role == 'query'

    def test_values_typed(self, tmp_path):
        path = tmp_path / "test.params"
        path.write_text(
            "# comment\n"
            "[consensus]\n"
            "cg_param = 20\n"
            "legacy_gap_offsets = yes\n"
            "max_flanking_sequence_len = 0\n"
            "default_format = fasta\n"
        )
        params = load_params(path)
        assert params.cg_param == 20.0
        assert params.legacy_gap_offsets is True
        assert params.max_flanking_sequence_len == 0
        assert params.default_format == 'fasta'

    def test_aliases(self):
        params = parse_params("CGparam = 14\nTAparam = -3\ngapInitiationPenalty = -30")
        assert params.consensus_params().cg_param == 14
        assert params.consensus_params().ta_param == -3
        assert params.gap_initiation_penalty == -30

    def test_bundled_file_matches_defaults(self):
        assert load_params(ref_msa.SCRIPT_DIR / "ref_msa.params") == MsaParams()

    @pytest.mark.parametrize("content", [
        "unknown_key = 1",
        "legacy_gap_offsets = maybe",
        "wrap_width = wide",
        "cg_param 12",
    ])
    def test_invalid(self, content):
        with pytest.raises(InvalidArgument):
            parse_params(content)
