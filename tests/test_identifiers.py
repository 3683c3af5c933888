"""Tests for the sequence identifier grammar."""

import pytest

from refmsa import Orientation, ParseError, format_identifier, parse_identifier


class TestParseIdentifier:
    """Tests for parse_identifier()."""

    def test_full_form(self):
        ident = parse_identifier("hg38:chr1:1100-1103")
        assert ident.assembly_name == "hg38"
        assert ident.sequence_name == "chr1"
        assert (ident.start, ident.end) == (1100, 1103)
        assert ident.orientation == Orientation.FORWARD
        assert ident.name == "hg38:chr1"

    def test_short_form(self):
        ident = parse_identifier("chr7:5-90")
        assert ident.assembly_name == ""
        assert ident.name == "chr7"
        assert (ident.start, ident.end) == (5, 90)

    def test_reversed_range(self):
        ident = parse_identifier("hg38:chr1:1103-500")
        assert (ident.start, ident.end) == (500, 1103)
        assert ident.orientation == Orientation.REVERSE

    @pytest.mark.parametrize("text,orientation", [
        ("hg38:chr1:10-20_+", Orientation.FORWARD),
        ("hg38:chr1:10-20_-", Orientation.REVERSE),
        ("chr1:10-20_-", Orientation.REVERSE),
    ])
    def test_orientation_suffix(self, text, orientation):
        ident = parse_identifier(text)
        assert ident.orientation == orientation
        assert (ident.start, ident.end) == (10, 20)

    @pytest.mark.parametrize("text", ["chr1", "chr1:10", "chr1:a-b", "hg38:chr1:10-20_x", ""])
    def test_malformed(self, text):
        with pytest.raises(ParseError):
            parse_identifier(text)


class TestFormatIdentifier:
    """Tests for format_identifier()."""

    def test_forward(self):
        assert format_identifier("chr1", 10, 20) == "chr1:10-20"

    def test_reverse_writes_end_first(self):
        assert format_identifier("hg38:chr1", 10, 20, Orientation.REVERSE) == "hg38:chr1:20-10"

    def test_parse_inverts_format(self):
        text = format_identifier("hg38:chr2", 5, 50, Orientation.REVERSE)
        ident = parse_identifier(text)
        assert ident.name == "hg38:chr2"
        assert (ident.start, ident.end, ident.orientation) == (5, 50, Orientation.REVERSE)
