"""Tests for version parsing and ordering."""

import pytest

from depresolver.version import UNKNOWN, VersionGeneric, VersionNumber, parse_version


class TestVersionNumberParsing:
    """Tests for the numeric version grammar."""

    def test_parse_full_version(self):
        """Test that major, minor, revision and qualifier are split."""
        version = VersionNumber.parse("1.2.3-beta")
        assert version.major == 1
        assert version.minor == 2
        assert version.revision == 3
        assert version.qualifier == "beta"
        assert version.separator == "-"

    def test_parse_partial_versions(self):
        """Test that absent parts stay absent."""
        assert VersionNumber.parse("1") == VersionNumber(1)
        assert VersionNumber.parse("1").minor is None
        assert VersionNumber.parse("1.2").revision is None
        assert VersionNumber.parse("1.2-rc1") == VersionNumber(1, 2, None, "rc1")

    def test_parse_dotted_qualifier(self):
        """Test that a fourth numeric part becomes a dotted qualifier."""
        version = VersionNumber.parse("1.0.0.0")
        assert version == VersionNumber(1, 0, 0, "0")
        assert version.separator == "."

    def test_parse_underscore_qualifier(self):
        assert VersionNumber.parse("1.2.3_4") == VersionNumber(1, 2, None, "3_4")

    def test_parse_letters_after_minor(self):
        assert VersionNumber.parse("1.54b") == VersionNumber(1, None, None, "54b")

    def test_parse_leading_zero_parts(self):
        """Test that a zero-padded part ends the numeric section."""
        version = VersionNumber.parse("2024.02")
        assert version.major == 2024
        assert version.minor is None
        assert version.qualifier == "02"
        assert str(version) == "2024.02"

    def test_parse_multi_segment_qualifier(self):
        version = VersionNumber.parse("1.2.3.4-rc1-SNAPSHOT")
        assert version == VersionNumber(1, 2, 3, "4-rc1-SNAPSHOT")
        assert version.is_snapshot()

    @pytest.mark.parametrize("text", [
        "", None, "1.", "1.2.3-", ".", "_", "-", ".1", "a.1", "1_2", "foo", "v3-rev20240514-2.0.0",
    ])
    def test_parse_invalid(self, text):
        """Test that text without the numeric shape yields UNKNOWN."""
        assert VersionNumber.parse(text) is UNKNOWN

    @pytest.mark.parametrize("text", [
        "1", "1.2", "1.2.3", "1.2.3-beta", "1.0.0.0", "2024.02", "1.2.3.4-rc1-SNAPSHOT", "11.0.14", "1.2.3_4",
    ])
    def test_round_trip(self, text):
        """Test that rendering a parsed version gives back the text."""
        version = parse_version(text)
        assert str(version) == text
        assert parse_version(str(version)) == version


class TestVersionNumberOrdering:
    """Tests for the qualifier ladder and numeric comparison."""

    def test_numeric_parts(self):
        assert parse_version("1.2.3") < parse_version("1.2.4")
        assert parse_version("1.10") > parse_version("1.9")
        assert parse_version("2") > parse_version("1.99.99")

    def test_missing_parts_equal_zero(self):
        assert parse_version("1") == parse_version("1.0.0")
        assert hash(parse_version("1")) == hash(parse_version("1.0.0"))

    def test_pre_release_ladder(self):
        """Test alpha < beta < milestone < rc < snapshot < release < sp."""
        ladder = ["1.1.1-alpha", "1.1.1-beta", "1.1.1-milestone", "1.1.1-rc",
                  "1.1.1-SNAPSHOT", "1.1.1", "1.1.1-sp"]
        versions = [parse_version(text) for text in ladder]
        for lower, higher in zip(versions, versions[1:]):
            assert lower < higher
        assert sorted(reversed(versions)) == versions

    def test_release_synonyms(self):
        """Test that release, final and ga equal a plain version."""
        plain = parse_version("1.1.1")
        for text in ("1.1.1-RELEASE", "1.1.1.Final", "1.1.1-ga"):
            assert parse_version(text) == plain
            assert hash(parse_version(text)) == hash(plain)

    def test_cr_equals_rc_rank(self):
        assert parse_version("1.0-cr1") < parse_version("1.0")
        assert parse_version("1.0-CR1") > parse_version("1.0-beta2")

    def test_unrecognized_qualifier(self):
        """Test that unknown qualifiers sit between rc and a plain version."""
        assert parse_version("1.0-rc1") < parse_version("1.0-jre")
        assert parse_version("1.0-jre") < parse_version("1.0")
        assert parse_version("1.0-android") < parse_version("1.0-jre")

    def test_unrecognized_qualifiers_compare_as_text(self):
        assert parse_version("1.0-foo10") < parse_version("1.0-foo9")
        assert parse_version("1.0-Foo9") > parse_version("1.0-foo10")
        assert parse_version("1.0-JRE") == parse_version("1.0-jre")
        assert hash(parse_version("1.0-JRE")) == hash(parse_version("1.0-jre"))

    def test_qualifier_numbers(self):
        assert parse_version("1.0-rc2") < parse_version("1.0-rc10")
        assert parse_version("1.0-beta-2") > parse_version("1.0-beta-1")

    def test_qualifier_case_insensitive(self):
        assert parse_version("1.0-RC1") == parse_version("1.0-rc1")

    def test_dotted_numeric_qualifier_above_release(self):
        assert parse_version("1.2.3.4") > parse_version("1.2.3")
        assert parse_version("1.2.3.4") < parse_version("1.2.3-sp")

    def test_snapshot_of_release_candidate(self):
        assert parse_version("1.0-rc1-SNAPSHOT") < parse_version("1.0-rc1")

    def test_unknown_is_lowest(self):
        assert UNKNOWN < parse_version("0.0.1")
        assert str(UNKNOWN) == "0.0.0"


class TestVersionGeneric:
    """Tests for the generic version fallback."""

    def test_parse_falls_back(self):
        version = parse_version("v3-rev20240514-2.0.0")
        assert isinstance(version, VersionGeneric)
        assert str(version) == "v3-rev20240514-2.0.0"

    def test_underscore_numbers(self):
        assert isinstance(parse_version("1_2"), VersionGeneric)
        assert parse_version("1_2") < parse_version("1_10")

    def test_padding(self):
        assert VersionGeneric("1.0.0") == VersionGeneric("1")
        assert VersionGeneric("1-0") == VersionGeneric("1")
        assert hash(VersionGeneric("1.0.0")) == hash(VersionGeneric("1"))

    def test_qualifiers(self):
        assert VersionGeneric("1-alpha") < VersionGeneric("1-beta")
        assert VersionGeneric("1-beta") < VersionGeneric("1")
        assert VersionGeneric("1") < VersionGeneric("1-sp")
        assert VersionGeneric("1-final") == VersionGeneric("1")

    def test_shorthand_qualifiers(self):
        assert VersionGeneric("1a1") == VersionGeneric("1-alpha-1")
        assert VersionGeneric("1b2") == VersionGeneric("1-beta-2")
        assert VersionGeneric("1m3") == VersionGeneric("1-milestone-3")

    def test_strings_above_qualifiers(self):
        assert VersionGeneric("1-foo") > VersionGeneric("1-sp")
        assert VersionGeneric("1-foo") < VersionGeneric("1.1")

    def test_min_max(self):
        assert VersionGeneric("1.min") < VersionGeneric("1.0-alpha")
        assert VersionGeneric("1.max") > VersionGeneric("1.99999999999")

    def test_leading_zeros(self):
        assert VersionGeneric("1.007") == VersionGeneric("1.7")

    def test_large_numbers(self):
        assert VersionGeneric("1.12345678901234567890") > VersionGeneric("1.9999999999")

    def test_compare_with_number(self):
        """Test that numeric and generic versions can be mixed."""
        assert parse_version("1_2") > parse_version("1.0")
        assert parse_version("1.0") < parse_version("1_2")
