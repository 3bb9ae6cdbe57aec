"""Version string parsing utilities.

Normalizes version strings into a comparable canonical form, derives the
stability tier of a version and orders versions. Release versions go through
``packaging``; branch versions (``dev-<branch>``) only compare for equality.
"""

import re
from typing import Tuple

from packaging.version import InvalidVersion, Version

# Numeric placeholder used for the open component of "1.2.x-dev" branches
BRANCH_PLACEHOLDER = "9999999"

_BRANCH_RE = re.compile(r"^v?(\d+)(?:\.(\d+|[x*]))?(?:\.(\d+|[x*]))?(?:\.(\d+|[x*]))?$", re.IGNORECASE)
_PRE_RELEASE_NAMES = {"a": "alpha", "b": "beta", "rc": "RC"}

_ZERO = Version("0")


def is_branch(version: str) -> bool:
    """Return True for named branch versions such as ``dev-master``."""
    return version.lower().startswith("dev-")


def _normalize_release(text: str) -> str:
    try:
        parsed = Version(text)
    except InvalidVersion as exc:
        raise ValueError(f'Invalid version string "{text}"') from exc

    release = list(parsed.release) + [0] * (3 - len(parsed.release))
    normalized = ".".join(str(part) for part in release)
    if parsed.epoch:
        normalized = f"{parsed.epoch}!{normalized}"
    if parsed.pre:
        normalized += f"{parsed.pre[0]}{parsed.pre[1]}"
    if parsed.post is not None:
        normalized += f".post{parsed.post}"
    if parsed.dev is not None:
        normalized += f".dev{parsed.dev}"
    return normalized


def normalize_branch(name: str) -> str:
    """Normalize a branch name into a version.

    Numeric branches ("1.2", "1.x") become dev versions of their highest
    possible release; everything else becomes ``dev-<name>``.
    """
    name = name.strip()
    if name.lower() in ("master", "trunk", "default"):
        return f"dev-{name}"

    match = _BRANCH_RE.match(name)
    if match:
        parts = [p for p in match.groups() if p is not None]
        parts = [BRANCH_PLACEHOLDER if p.lower() in ("x", "*") else p for p in parts]
        while len(parts) < 3:
            parts.append(BRANCH_PLACEHOLDER)
        return _normalize_release(".".join(parts) + "-dev")

    return f"dev-{name}"


def normalize_version(version: str) -> str:
    """Return the canonical form of a version string.

    Examples:
        "1.2"          -> "1.2.0"
        "v2.0.0-RC1"   -> "2.0.0rc1"
        "1.0.x-dev"    -> "1.0.9999999.dev0"
        "dev-feature"  -> "dev-feature"

    Raises:
        ValueError: If the string is not a recognizable version.
    """
    text = version.strip()
    if not text:
        raise ValueError("Empty version string")

    if is_branch(text):
        return "dev-" + text[4:]
    if text.lower() in ("master", "trunk", "default"):
        return f"dev-{text}"

    lowered = text.lower()
    if lowered.endswith(".x-dev") or lowered.endswith(".*-dev"):
        return normalize_branch(text[:-4])

    return _normalize_release(text)


def parse_stability(version: str) -> str:
    """Return the stability tier of a (pretty or normalized) version."""
    text = version.strip().lower()
    if text.startswith("dev-") or text.endswith("-dev"):
        return "dev"
    try:
        parsed = Version(text)
    except InvalidVersion:
        return "stable"
    if parsed.dev is not None:
        return "dev"
    if parsed.pre:
        return _PRE_RELEASE_NAMES.get(parsed.pre[0], "stable")
    return "stable"


def version_key(version: str) -> Tuple[int, Version, str]:
    """Sort key placing branches below every numbered version."""
    if is_branch(version):
        return 0, _ZERO, version
    try:
        return 1, Version(version), ""
    except InvalidVersion:
        return 0, _ZERO, version


def compare_versions(a: str, b: str, operator: str) -> bool:
    """Evaluate ``a <operator> b``.

    Branch versions only support equality checks; ordering comparisons
    involving a branch are always False.
    """
    if is_branch(a) or is_branch(b):
        if operator in ("==", "="):
            return a == b
        if operator in ("!=", "<>"):
            return a != b
        return False

    ka, kb = version_key(a), version_key(b)
    if operator in ("==", "="):
        return ka == kb
    if operator in ("!=", "<>"):
        return ka != kb
    if operator == "<":
        return ka < kb
    if operator == "<=":
        return ka <= kb
    if operator == ">":
        return ka > kb
    if operator == ">=":
        return ka >= kb
    raise ValueError(f'Invalid operator "{operator}"')
