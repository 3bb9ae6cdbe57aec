"""Tests for version normalization, stability and comparison."""

import pytest

from versioning.parser import compare_versions, is_branch, normalize_version, parse_stability, version_key


class TestNormalizeVersion:
    """Canonical version forms."""

    @pytest.mark.parametrize("raw,expected", [
        ("1.2", "1.2.0"),
        ("1", "1.0.0"),
        ("v2.0.0-RC1", "2.0.0rc1"),
        ("1.0.0-beta2", "1.0.0b2"),
        ("1.0.x-dev", "1.0.9999999.dev0"),
        ("dev-feature", "dev-feature"),
        ("master", "dev-master"),
    ])
    def test_normalize(self, raw, expected):
        """Test release, pre-release, numeric branch and named branch forms."""
        assert normalize_version(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", "not a version"])
    def test_invalid_versions_raise(self, raw):
        """Test that empty and unparsable strings raise ValueError."""
        with pytest.raises(ValueError):
            normalize_version(raw)

    def test_is_branch(self):
        """Test branch detection."""
        assert is_branch("dev-master")
        assert not is_branch("1.0.0")


class TestStability:
    """Stability tiers."""

    @pytest.mark.parametrize("version,stability", [
        ("1.0.0", "stable"),
        ("1.0.0rc1", "RC"),
        ("1.0.0-beta2", "beta"),
        ("1.0.0a1", "alpha"),
        ("dev-master", "dev"),
        ("1.0.x-dev", "dev"),
        ("1.0.9999999.dev0", "dev"),
    ])
    def test_parse_stability(self, version, stability):
        """Test the tier derived from pretty and normalized versions."""
        assert parse_stability(version) == stability


class TestCompareVersions:
    """Version ordering."""

    def test_numeric_ordering(self):
        """Test that versions compare numerically, not lexically."""
        assert compare_versions("1.10.0", "1.9.0", ">")
        assert compare_versions("1.0.0", "1.0.0", "==")
        assert compare_versions("1.0.0rc1", "1.0.0", "<")

    def test_branches_only_compare_for_equality(self):
        """Test that ordering involving a branch is always False."""
        assert compare_versions("dev-master", "dev-master", "==")
        assert compare_versions("dev-master", "dev-next", "!=")
        assert not compare_versions("dev-master", "1.0.0", "<")
        assert not compare_versions("dev-master", "1.0.0", ">")

    def test_branches_sort_lowest(self):
        """Test that named branches sort below every numbered version."""
        ordered = sorted(["2.0.0", "dev-master", "1.0.0"], key=version_key)
        assert ordered == ["dev-master", "1.0.0", "2.0.0"]

    def test_invalid_operator_raises(self):
        """Test that unknown operators are rejected."""
        with pytest.raises(ValueError):
            compare_versions("1.0.0", "1.0.0", "~=")
