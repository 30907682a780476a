"""Tests for folder name formatting."""

import pytest

from src.sync.naming import format_name


class TestFormatName:
    """Tests for format_name."""

    def test_full_example(self):
        """Should decode, strip parentheticals, split underscores and uppercase."""
        assert (
            format_name("9000549_1", "Smith &amp; Sons (Lot 4) Survey_Job")
            == "9000549_1 - SMITH & SONS SURVEY - JOB"
        )

    @pytest.mark.parametrize(
        "title,expected",
        [
            ("A &lt;B&gt;", "A <B>"),
            ("&quot;Quoted&quot;", '"QUOTED"'),
            ("O&#39;Brien", "O'BRIEN"),
            ("&amp;lt;", "<"),
        ],
    )
    def test_html_entities(self, title, expected):
        """Should decode the supported entities, &amp; first."""
        assert format_name("2000001", title) == f"2000001 - {expected}"

    def test_unknown_entity_left_alone(self):
        """Should not decode entities outside the supported set."""
        assert format_name("2000001", "Caf&eacute;") == "2000001 - CAF&EACUTE;"

    def test_multiple_parentheticals(self):
        """Should remove every parenthesized segment and its leading space."""
        assert format_name("3000002", "Site (A) Works (stage 2) North") == "3000002 - SITE WORKS NORTH"

    def test_whitespace_collapsed(self):
        """Should collapse runs of whitespace and trim the ends."""
        assert format_name("4000003", "  Lot   12 \t Main  Rd ") == "4000003 - LOT 12 MAIN RD"

    def test_underscores_become_separators(self):
        """Should turn each underscore into a spaced hyphen."""
        assert format_name("5000004", "East_West_Link") == "5000004 - EAST - WEST - LINK"

    def test_identifier_kept_verbatim(self):
        """Should not alter the identifier, even with a suffix."""
        assert format_name("8000005_2", "x").startswith("8000005_2 - ")

    def test_empty_title(self):
        """Should still produce a name with an empty title."""
        assert format_name("6000006", "") == "6000006 - "

    def test_only_parenthetical(self):
        """Should yield an empty title part when nothing else remains."""
        assert format_name("6000007", "(internal)") == "6000007 - "
