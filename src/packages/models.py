"""Package, link and alias models."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from constants import Constants
from versioning.constraints import Constraint, exact
from versioning.parser import parse_stability


@dataclass(frozen=True)
class Link:
    """A relation from one package to a named target under a constraint."""

    source: str
    target: str
    constraint: Constraint
    description: str = "relates to"
    pretty_constraint: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "source", self.source.lower())
        object.__setattr__(self, "target", self.target.lower())
        if self.pretty_constraint is None:
            object.__setattr__(self, "pretty_constraint", self.constraint.pretty_string)

    def __str__(self) -> str:
        return f"{self.source} {self.description} {self.target} ({self.pretty_constraint})"


@dataclass(frozen=True)
class PackageLinks:
    """The link metadata of a package, replaced as one unit.

    Dev packages can change their declared links without changing their
    version, so reconciliation swaps this whole slot rather than editing
    individual fields.
    """

    requires: Tuple[Link, ...] = ()
    conflicts: Tuple[Link, ...] = ()
    provides: Tuple[Link, ...] = ()
    replaces: Tuple[Link, ...] = ()


class Package:
    """A concrete version of a package."""

    def __init__(self, name: str, version: str, pretty_version: str):
        self.pretty_name = name
        self.name = name.lower()
        self.version = version
        self.pretty_version = pretty_version
        self.stability = parse_stability(version)
        self.type = "library"
        self.links = PackageLinks()
        self.dev_requires: Tuple[Link, ...] = ()
        self.suggests: Dict[str, str] = {}
        self.source_type: Optional[str] = None
        self.source_url: Optional[str] = None
        self.source_reference: Optional[str] = None
        self.dist_type: Optional[str] = None
        self.dist_url: Optional[str] = None
        self.dist_reference: Optional[str] = None
        self.extra: Dict[str, Any] = {}
        self.id = -1
        self.repository = None

    @property
    def is_dev(self) -> bool:
        return self.stability == "dev"

    @property
    def requires(self) -> Tuple[Link, ...]:
        return self.links.requires

    @property
    def conflicts(self) -> Tuple[Link, ...]:
        return self.links.conflicts

    @property
    def provides(self) -> Tuple[Link, ...]:
        return self.links.provides

    @property
    def replaces(self) -> Tuple[Link, ...]:
        return self.links.replaces

    @property
    def unique_name(self) -> str:
        return f"{self.name}-{self.version}"

    @property
    def stability_priority(self) -> int:
        return Constants.STABILITIES[self.stability]

    def set_links(self, links: PackageLinks) -> None:
        """Replace the whole link slot."""
        self.links = links

    def get_names(self) -> List[str]:
        """Return every name this package can be found by."""
        names = [self.name]
        for link in self.provides + self.replaces:
            if link.target not in names:
                names.append(link.target)
        return names

    def version_constraint(self) -> Constraint:
        """Return an exact constraint pinning this package's version."""
        return exact(self.version, self.pretty_version)

    def equals(self, other: Optional["Package"]) -> bool:
        """Compare package identity, looking through aliases."""
        if other is None:
            return False
        self_package = self.alias_of if isinstance(self, AliasPackage) else self
        other_package = other.alias_of if isinstance(other, AliasPackage) else other
        return self_package is other_package or (
            self_package.unique_name == other_package.unique_name
            and self_package.source_reference == other_package.source_reference
            and self_package.dist_reference == other_package.dist_reference
        )

    def clone(self) -> "Package":
        """Return a detached copy sharing no mutable state."""
        cloned = copy.copy(self)
        cloned.suggests = dict(self.suggests)
        cloned.extra = copy.deepcopy(self.extra)
        cloned.id = -1
        cloned.repository = None
        return cloned

    def __str__(self) -> str:
        return self.unique_name

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.pretty_name} {self.pretty_version}>"

    @property
    def pretty_string(self) -> str:
        return f"{self.pretty_name} ({self.pretty_version})"


class AliasPackage(Package):
    """Presents an existing package under an additional version."""

    def __init__(self, alias_of: Package, version: str, pretty_version: str):
        super().__init__(alias_of.pretty_name, version, pretty_version)
        self.alias_of = alias_of
        self.is_root_package_alias = False
        self.type = alias_of.type
        self.dev_requires = alias_of.dev_requires
        self.suggests = alias_of.suggests

    # Metadata is always read from the aliased package so link replacements
    # on it are visible through the alias as well.
    @property
    def links(self) -> PackageLinks:  # type: ignore[override]
        return self.alias_of.links

    @links.setter
    def links(self, value: PackageLinks) -> None:
        if hasattr(self, "alias_of"):
            self.alias_of.links = value

    @property
    def source_reference(self) -> Optional[str]:  # type: ignore[override]
        return self.alias_of.source_reference

    @source_reference.setter
    def source_reference(self, value: Optional[str]) -> None:
        if hasattr(self, "alias_of"):
            self.alias_of.source_reference = value

    @property
    def dist_reference(self) -> Optional[str]:  # type: ignore[override]
        return self.alias_of.dist_reference

    @dist_reference.setter
    def dist_reference(self, value: Optional[str]) -> None:
        if hasattr(self, "alias_of"):
            self.alias_of.dist_reference = value

    def __str__(self) -> str:
        return f"{self.unique_name} (alias of {self.alias_of.version})"


class RootPackage(Package):
    """The project being installed, read from the manifest."""

    def __init__(self, name: str, version: str, pretty_version: str):
        super().__init__(name, version, pretty_version)
        self.type = "project"
        self.minimum_stability: str = Constants.DEFAULT_MINIMUM_STABILITY
        self.stability_flags: Dict[str, str] = {}
        self.prefer_stable = False
        self.references: Dict[str, str] = {}
        self.aliases: List[Dict[str, str]] = []
        self.scripts: Dict[str, List[str]] = {}
        self.repositories: List[Dict[str, Any]] = []
        self.config: Dict[str, Any] = {}

    def clone(self) -> "RootPackage":
        cloned = super().clone()
        cloned.stability_flags = dict(self.stability_flags)
        cloned.references = dict(self.references)
        cloned.aliases = [dict(a) for a in self.aliases]
        cloned.scripts = {k: list(v) for k, v in self.scripts.items()}
        cloned.config = dict(self.config)
        return cloned  # type: ignore[return-value]


@dataclass
class Suggestion:
    """A package's advice to install another package."""

    source: str
    target: str
    reason: str = field(default="")

    def __str__(self) -> str:
        return f"{self.source} suggests installing {self.target} ({self.reason})"
