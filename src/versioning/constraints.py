"""Version constraint model.

A constraint describes a set of versions. ``matches(other)`` answers whether
two constraints have at least one version in common, which is what the pool
needs to decide if a candidate (pinned with ``==``) or a provided link
satisfies a requirement.
"""

import re
from typing import List, Optional, Sequence

from .parser import compare_versions, normalize_version

OPERATORS = ("==", "!=", "<", "<=", ">", ">=")


class Constraint:
    """Base class for all constraints."""

    def __init__(self) -> None:
        self._pretty_string: Optional[str] = None

    @property
    def pretty_string(self) -> str:
        """Human readable form, defaulting to the canonical one."""
        return self._pretty_string if self._pretty_string is not None else str(self)

    @pretty_string.setter
    def pretty_string(self, value: Optional[str]) -> None:
        self._pretty_string = value

    def matches(self, provider: "Constraint") -> bool:  # pragma: no cover - abstract
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self}>"


class EmptyConstraint(Constraint):
    """Matches every version."""

    def matches(self, provider: Constraint) -> bool:
        return True

    def __str__(self) -> str:
        return "*"


class VersionConstraint(Constraint):
    """A single ``<operator> <normalized version>`` comparison."""

    def __init__(self, operator: str, version: str):
        super().__init__()
        if operator in ("=", ""):
            operator = "=="
        elif operator == "<>":
            operator = "!="
        if operator not in OPERATORS:
            raise ValueError(f'Invalid operator "{operator}"')
        self.operator = operator
        self.version = version

    def matches(self, provider: Constraint) -> bool:
        if isinstance(provider, VersionConstraint):
            return self._match_specific(provider)
        return provider.matches(self)

    def _match_specific(self, provider: "VersionConstraint") -> bool:
        no_equal_op = self.operator.replace("=", "")
        provider_no_equal_op = provider.operator.replace("=", "")

        is_equal_op = self.operator == "=="
        is_non_equal_op = self.operator == "!="
        is_provider_equal_op = provider.operator == "=="
        is_provider_non_equal_op = provider.operator == "!="

        # != intersects everything except the single excluded version
        if is_non_equal_op or is_provider_non_equal_op:
            return (not is_equal_op and not is_provider_equal_op) or \
                compare_versions(provider.version, self.version, "!=")

        # Two bounds pointing the same way always overlap, e.g. <= 2.0 and < 1.0
        if not is_equal_op and no_equal_op == provider_no_equal_op:
            return True

        if compare_versions(provider.version, self.version, self.operator):
            # >= 1.0 against < 1.0: the shared edge is excluded by the provider
            if (provider.version == self.version
                    and provider.operator == provider_no_equal_op
                    and self.operator != no_equal_op):
                return False
            return True

        return False

    def __str__(self) -> str:
        return f"{self.operator} {self.version}"


class MultiConstraint(Constraint):
    """Conjunction (AND) or disjunction (OR) of constraints."""

    def __init__(self, constraints: Sequence[Constraint], conjunctive: bool = True):
        super().__init__()
        self.constraints: List[Constraint] = list(constraints)
        self.conjunctive = conjunctive

    def matches(self, provider: Constraint) -> bool:
        if not self.conjunctive:
            return any(c.matches(provider) for c in self.constraints)
        return all(c.matches(provider) for c in self.constraints)

    def __str__(self) -> str:
        glue = ", " if self.conjunctive else " || "
        return "[" + glue.join(str(c) for c in self.constraints) + "]"


def exact(version: str, pretty: Optional[str] = None) -> VersionConstraint:
    """Return an ``==`` constraint pinning version."""
    constraint = VersionConstraint("==", version)
    if pretty is not None:
        constraint.pretty_string = pretty
    return constraint


_OPERATOR_SPACE_RE = re.compile(r"(<>|!=|>=|<=|==|=|<|>)\s+")
_HYPHEN_RE = re.compile(r"^\s*(\S+)\s+-\s+(\S+)\s*$")
_SIMPLE_RE = re.compile(r"^(<>|!=|>=?|<=?|==?)?\s*(\S+)$")
_PARTS_RE = re.compile(r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?", re.IGNORECASE)
_WILDCARD_RE = re.compile(r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?\.[x*]$", re.IGNORECASE)
_INLINE_ALIAS_RE = re.compile(r"^[^,\s]+\s+as\s+([^,\s]+)$")


def _bump(parts: List[int], position: int) -> str:
    """Increment parts[position], zero what follows, return as dev lower bound."""
    bumped = parts[:position] + [parts[position] + 1]
    bumped += [0] * (3 - len(bumped))
    return normalize_version(".".join(str(p) for p in bumped) + "-dev")


def _range(lower: str, upper: str, pretty: str) -> Constraint:
    constraint = MultiConstraint([
        VersionConstraint(">=", lower),
        VersionConstraint("<", upper),
    ])
    constraint.pretty_string = pretty
    return constraint


def _strip_flags(text: str) -> str:
    """Remove ``@stability`` and ``#reference`` suffixes from a constraint."""
    text = text.split("#", 1)[0]
    if "@" in text:
        text = text.split("@", 1)[0] or "*"
    return text


def _parse_single(text: str) -> Constraint:
    if text in ("*", "x", "X"):
        return EmptyConstraint()

    match = _WILDCARD_RE.match(text)
    if match:
        parts = [int(p) for p in match.groups() if p is not None]
        lower = normalize_version(".".join(str(p) for p in parts) + "-dev")
        return _range(lower, _bump(parts, len(parts) - 1), text)

    if text[0] in "^~":
        match = _PARTS_RE.match(text[1:])
        if not match:
            raise ValueError(f'Could not parse version constraint "{text}"')
        parts = [int(p) for p in match.groups() if p is not None]
        lower = normalize_version(text[1:])
        if text[0] == "^":
            # The first non-zero component may not change
            position = next((i for i, p in enumerate(parts) if p != 0), len(parts) - 1)
        else:
            # ~1.2 allows 1.x, ~1.2.3 allows 1.2.x
            position = max(len(parts) - 2, 0)
        parts += [0] * (3 - len(parts))
        return _range(lower, _bump(parts, position), text)

    match = _SIMPLE_RE.match(text)
    if not match:
        raise ValueError(f'Could not parse version constraint "{text}"')
    constraint = VersionConstraint(match.group(1) or "==", normalize_version(match.group(2)))
    constraint.pretty_string = text
    return constraint


def parse_constraints(text: str) -> Constraint:
    """Parse a constraint string into a Constraint.

    Supports exact versions, comparison operators, ``*`` and ``1.2.*``
    wildcards, ``^`` and ``~`` ranges, hyphen ranges, ``,``/space
    conjunctions and ``||`` disjunctions. Stability flags (``@dev``) and
    reference suffixes (``#abc123``) are ignored here.

    Raises:
        ValueError: If any part cannot be parsed.
    """
    cleaned = text.strip()
    if not cleaned:
        raise ValueError("Empty version constraint")
    alias = _INLINE_ALIAS_RE.match(cleaned)
    if alias:
        # "dev-master as 1.0.x-dev" requires the alias version
        cleaned = alias.group(1)

    or_constraints: List[Constraint] = []
    for group in re.split(r"\s*\|\|?\s*", cleaned):
        if not group:
            continue
        hyphen = _HYPHEN_RE.match(group)
        if hyphen:
            and_constraints: List[Constraint] = [
                VersionConstraint(">=", normalize_version(_strip_flags(hyphen.group(1)))),
                VersionConstraint("<=", normalize_version(_strip_flags(hyphen.group(2)))),
            ]
        else:
            group = _OPERATOR_SPACE_RE.sub(r"\1", group)
            parts = [p for p in re.split(r"\s*,\s*|\s+", group) if p]
            and_constraints = [_parse_single(_strip_flags(p)) for p in parts]
        if len(and_constraints) == 1:
            or_constraints.append(and_constraints[0])
        else:
            or_constraints.append(MultiConstraint(and_constraints, conjunctive=True))

    if not or_constraints:
        raise ValueError(f'Could not parse version constraint "{text}"')
    if len(or_constraints) == 1:
        result = or_constraints[0]
    else:
        result = MultiConstraint(or_constraints, conjunctive=False)
    result.pretty_string = text
    return result
