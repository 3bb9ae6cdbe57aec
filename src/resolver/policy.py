"""Candidate preference policy shared by the solver and dev package reconciliation."""

from __future__ import annotations

from typing import Dict, List, Mapping

from packages.models import AliasPackage, Package
from versioning.parser import version_key


class DefaultPolicy:
    """Prefer exact names, then (optionally) stability, then the highest version.

    Ties go to the installed package, then to the candidate added to the pool
    first.
    """

    def __init__(self, prefer_stable: bool = False):
        self.prefer_stable = prefer_stable

    def _sort_key(self, package: Package, name: str, installed_map: Mapping[int, Package]):
        real = package.alias_of if isinstance(package, AliasPackage) else package
        return (
            package.name != name,
            package.stability_priority if self.prefer_stable else 0,
            _Descending(version_key(package.version)),
            package.id not in installed_map and real.id not in installed_map,
            package.id,
        )

    def select_preferred_packages(self, pool, installed_map: Mapping[int, Package],
                                  literals: List[int], name: str = "") -> List[int]:
        """Return literals ordered best first.

        Args:
            pool: The pool the literals belong to.
            installed_map: Installed packages keyed by literal id.
            literals: Candidate literal ids.
            name: The requested name, so exact matches beat providers.
        """
        packages: Dict[int, Package] = {lit: pool.literal_to_package(lit) for lit in literals}
        ordered = sorted(literals, key=lambda lit: self._sort_key(packages[lit], name, installed_map))
        return ordered


class _Descending:
    """Inverts ordering of a comparable value inside a sort key tuple."""

    __slots__ = ("value",)

    def __init__(self, value):
        self.value = value

    def __lt__(self, other: "_Descending") -> bool:
        return other.value < self.value

    def __eq__(self, other) -> bool:
        return isinstance(other, _Descending) and other.value == self.value
