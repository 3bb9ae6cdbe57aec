"""Candidate pool aggregating packages from several repositories."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional

from constants import Constants
from packages.models import AliasPackage, Package
from versioning.constraints import Constraint

logger = logging.getLogger(__name__)

# name -> normalized version -> alias entry from the root package or lock
RootAliases = Mapping[str, Mapping[str, Mapping[str, str]]]


def index_root_aliases(aliases: Iterable[Mapping[str, str]]) -> Dict[str, Dict[str, Dict[str, str]]]:
    """Turn an alias table into the nested lookup used by ``add_repository``."""
    indexed: Dict[str, Dict[str, Dict[str, str]]] = defaultdict(dict)
    for alias in aliases:
        indexed[alias["package"].lower()][alias["version"]] = {
            "alias": alias["alias"],
            "alias_normalized": alias["alias_normalized"],
        }
    return dict(indexed)


class Pool:
    """Ordered aggregation of candidates with dense literal ids.

    Ids start at 1 and follow insertion order, so repositories added first
    (the installed repository) get the lowest ids.
    """

    def __init__(self, minimum_stability: str = Constants.DEFAULT_MINIMUM_STABILITY,
                 stability_flags: Optional[Mapping[str, str]] = None):
        self.minimum_stability = minimum_stability
        self.stability_flags = {k.lower(): v for k, v in (stability_flags or {}).items()}
        self.repositories: List = []
        self._packages: List[Package] = []
        self._by_name: Dict[str, List[Package]] = defaultdict(list)

    def add_repository(self, repository, root_aliases: Optional[RootAliases] = None) -> None:
        """Add every acceptable package of repository to the pool.

        Installed repositories bypass stability filtering; packages matching
        a root alias also get an alias candidate right after them.
        """
        root_aliases = root_aliases or {}
        self.repositories.append(repository)
        exempt = getattr(repository, "is_installed", False)
        added = 0
        for package in repository.packages:
            if not exempt and not self.is_package_acceptable(package.get_names(), package.stability):
                continue
            self._add(package)
            added += 1
            alias = root_aliases.get(package.name, {}).get(package.version)
            if alias and not isinstance(package, AliasPackage) and not repository.find_packages(
                    package.name, alias["alias_normalized"]):
                alias_package = AliasPackage(package, alias["alias_normalized"], alias["alias"])
                alias_package.is_root_package_alias = True
                alias_package.repository = package.repository
                self._add(alias_package)
        logger.debug("Added %d packages from %r to the pool", added, repository)

    def _add(self, package: Package) -> None:
        self._packages.append(package)
        package.id = len(self._packages)
        for name in package.get_names():
            self._by_name[name].append(package)

    def is_package_acceptable(self, names: Iterable[str], stability: str) -> bool:
        """Check stability against per-package flags, then the minimum."""
        priority = Constants.STABILITIES[stability]
        for name in names:
            if name in self.stability_flags:
                if priority <= Constants.STABILITIES[self.stability_flags[name]]:
                    return True
            elif priority <= Constants.STABILITIES[self.minimum_stability]:
                return True
        return False

    def what_provides(self, name: str, constraint: Optional[Constraint] = None) -> List[Package]:
        """Return candidates that are, provide or replace name under constraint."""
        name = name.lower()
        result = []
        for package in self._by_name.get(name, []):
            if package.name == name:
                if constraint is None or constraint.matches(package.version_constraint()):
                    result.append(package)
                continue
            for link in package.provides + package.replaces:
                if link.target == name and (constraint is None or constraint.matches(link.constraint)):
                    result.append(package)
                    break
        return result

    def literal_to_package(self, literal: int) -> Package:
        return self._packages[abs(literal) - 1]

    @property
    def packages(self) -> List[Package]:
        return list(self._packages)

    def __len__(self) -> int:
        return len(self._packages)
