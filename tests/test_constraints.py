"""Tests for constraint parsing and intersection."""

import pytest

from versioning.constraints import (
    EmptyConstraint,
    MultiConstraint,
    VersionConstraint,
    exact,
    parse_constraints,
)


def _allows(text, version):
    return parse_constraints(text).matches(exact(version))


class TestVersionConstraint:
    """Single comparisons."""

    def test_operator_aliases(self):
        """Test that = and <> are normalized."""
        assert VersionConstraint("=", "1.0.0").operator == "=="
        assert VersionConstraint("<>", "1.0.0").operator == "!="

    def test_invalid_operator(self):
        """Test that unknown operators raise ValueError."""
        with pytest.raises(ValueError):
            VersionConstraint("~=", "1.0.0")

    def test_shared_edge_is_excluded(self):
        """Test that >= 1.0 and < 1.0 do not intersect."""
        assert not VersionConstraint(">=", "1.0.0").matches(VersionConstraint("<", "1.0.0"))
        assert VersionConstraint(">=", "1.0.0").matches(VersionConstraint("<=", "1.0.0"))

    def test_same_direction_bounds_overlap(self):
        """Test that two upper bounds always intersect."""
        assert VersionConstraint("<=", "2.0.0").matches(VersionConstraint("<", "1.0.0"))

    def test_not_equal(self):
        """Test that != only excludes one version."""
        assert not VersionConstraint("!=", "1.0.0").matches(exact("1.0.0"))
        assert VersionConstraint("!=", "1.0.0").matches(exact("1.0.1"))
        assert VersionConstraint("!=", "1.0.0").matches(VersionConstraint(">", "0.5.0"))


class TestParseConstraints:
    """The constraint string grammar."""

    @pytest.mark.parametrize("text,version,expected", [
        ("1.2.3", "1.2.3", True),
        ("1.2.3", "1.2.4", False),
        (">=1.0", "1.5.0", True),
        (">= 1.0", "0.9.0", False),
        ("^1.2", "1.9.9", True),
        ("^1.2", "2.0.0", False),
        ("^0.3", "0.3.5", True),
        ("^0.3", "0.4.0", False),
        ("~1.2", "1.9.0", True),
        ("~1.2.3", "1.2.9", True),
        ("~1.2.3", "1.3.0", False),
        ("1.2.*", "1.2.7", True),
        ("1.2.*", "1.3.0", False),
        (">=1.0 <2.0", "1.5.0", True),
        (">=1.0, <2.0", "2.0.0", False),
        ("^1.0 || ^2.0", "2.3.0", True),
        ("^1.0 | ^2.0", "3.0.0", False),
        ("1.0 - 2.0", "2.0.0", True),
        ("1.0 - 2.0", "2.0.1", False),
        ("dev-master", "dev-master", True),
        ("dev-master", "dev-other", False),
        ("1.0@beta", "1.0.0", True),
        ("dev-master#abc123", "dev-master", True),
    ])
    def test_matches(self, text, version, expected):
        """Test which versions each constraint form allows."""
        assert _allows(text, version) is expected

    def test_wildcards(self):
        """Test that * and a bare stability flag match anything."""
        assert isinstance(parse_constraints("*"), EmptyConstraint)
        assert _allows("@dev", "dev-master")

    def test_inline_alias_requires_alias_version(self):
        """Test that "x as y" constrains to the alias version y."""
        constraint = parse_constraints("dev-master as 1.0.x-dev")
        assert constraint.matches(exact("1.0.9999999.dev0"))
        assert not constraint.matches(exact("dev-master"))

    def test_conjunction_and_disjunction_types(self):
        """Test the structure produced for and/or groups."""
        conjunctive = parse_constraints(">=1.0 <2.0")
        disjunctive = parse_constraints("1.0 || 2.0")
        assert isinstance(conjunctive, MultiConstraint) and conjunctive.conjunctive
        assert isinstance(disjunctive, MultiConstraint) and not disjunctive.conjunctive

    def test_pretty_string_is_kept(self):
        """Test that the original text is the pretty string."""
        assert parse_constraints("^1.2").pretty_string == "^1.2"

    @pytest.mark.parametrize("text", ["", "  ", ">=banana"])
    def test_invalid(self, text):
        """Test that unparsable constraints raise ValueError."""
        with pytest.raises(ValueError):
            parse_constraints(text)
