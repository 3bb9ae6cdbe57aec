"""Build solver requests from the root package, platform facts and run inputs."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from packages.models import AliasPackage, Link, Package, RootPackage
from resolver.request import Request
from versioning.constraints import Constraint, MultiConstraint, VersionConstraint, exact

logger = logging.getLogger(__name__)


def _conjunction(constraints: List[Constraint]) -> Constraint:
    if len(constraints) == 1:
        return constraints[0]
    return MultiConstraint(constraints, conjunctive=True)


class RequestBuilder:
    """Turns the root package and platform facts into solver directives.

    The root is pinned to its exact version and every platform package is
    pinned unless the root provides it with a matching constraint. Other
    directive sources are folded in so each name gets exactly one directive:

    * links on an already pinned platform name are ANDed with the pin,
      links on the root name are ignored;
    * fixed pins are ANDed with any link on the same name;
    * a removal becomes ``remove(== version)``, or ``!= version`` ANDed into
      the install directive when something still requires the name.
    """

    def __init__(self, pool, root_package: RootPackage, platform_repo):
        self.pool = pool
        self.root_package = root_package
        self.platform_repo = platform_repo

    def build(self, links: Iterable[Link] = (), pins: Optional[Mapping[str, Constraint]] = None,
              removals: Iterable[Package] = (), update_all: bool = False) -> Request:
        installs: Dict[str, List[Constraint]] = {}
        root = self.root_package

        installs[root.name] = [exact(root.version, root.pretty_version)]

        for name, constraint in self._platform_pins().items():
            installs.setdefault(name, []).append(constraint)

        for link in links:
            if link.target == root.name:
                continue
            installs.setdefault(link.target, []).append(link.constraint)

        for name, constraint in (pins or {}).items():
            installs.setdefault(name.lower(), []).append(constraint)

        removes: Dict[str, Constraint] = {}
        for package in removals:
            if package.name in installs:
                installs[package.name].append(VersionConstraint("!=", package.version))
            else:
                removes[package.name] = exact(package.version, package.pretty_version)

        request = Request()
        for name, constraints in installs.items():
            request.install(name, _conjunction(constraints))
        for name, constraint in removes.items():
            request.remove(name, constraint)
        if update_all:
            request.set_update_all()

        logger.debug("Built request with %d directives (update all: %s)", len(request), update_all)
        return request

    def _platform_pins(self) -> Dict[str, Constraint]:
        """Pin each platform name to its version, or any of its alias versions."""
        versions: Dict[str, List[Tuple[str, str]]] = {}
        for package in self.platform_repo.packages:
            versions.setdefault(package.name, []).append((package.version, package.pretty_version))

        provided = {link.target: link for link in self.root_package.provides}
        pins: Dict[str, Constraint] = {}
        for name, entries in versions.items():
            exacts = [exact(version, pretty) for version, pretty in entries]
            if name in provided and any(provided[name].constraint.matches(c) for c in exacts):
                continue
            if len(exacts) == 1:
                pins[name] = exacts[0]
            else:
                pins[name] = MultiConstraint(exacts, conjunctive=False)
        return pins


def alias_platform_packages(platform_repo, aliases: Mapping[str, Mapping[str, Mapping[str, str]]]) -> None:
    """Add root alias packages for matching platform packages."""
    for name, versions in aliases.items():
        for version, alias in versions.items():
            for package in platform_repo.find_packages(name, version):
                if isinstance(package, AliasPackage):
                    continue
                alias_package = AliasPackage(package, alias["alias_normalized"], alias["alias"])
                alias_package.is_root_package_alias = True
                platform_repo.add_package(alias_package)
