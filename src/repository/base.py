"""In-memory package repositories."""

from __future__ import annotations

from typing import Iterable, Iterator, List, Optional

from packages.models import Package


class ArrayRepository:
    """A repository holding packages in memory."""

    # Installed repositories are exempt from stability filtering in the pool
    is_installed = False

    def __init__(self, packages: Optional[Iterable[Package]] = None):
        self._packages: Optional[List[Package]] = None
        if packages is not None:
            self._packages = []
            for package in packages:
                self.add_package(package)

    def _initialize(self) -> None:
        """Populate the repository on first access; a no-op by default."""
        self._packages = []

    @property
    def packages(self) -> List[Package]:
        if self._packages is None:
            self._initialize()
        return list(self._packages or [])

    def add_package(self, package: Package) -> None:
        if self._packages is None:
            self._initialize()
        package.repository = self
        self._packages.append(package)  # type: ignore[union-attr]

    def remove_package(self, package: Package) -> None:
        """Remove the package with package's unique name, if present."""
        for index, candidate in enumerate(self.packages):
            if candidate.unique_name == package.unique_name:
                del self._packages[index]  # type: ignore[union-attr]
                return

    def has_package(self, package: Package) -> bool:
        return any(p.unique_name == package.unique_name for p in self.packages)

    def find_package(self, name: str, version: Optional[str] = None) -> Optional[Package]:
        """Return the first package named name (and at version, if given)."""
        found = self.find_packages(name, version)
        return found[0] if found else None

    def find_packages(self, name: str, version: Optional[str] = None) -> List[Package]:
        name = name.lower()
        return [
            p for p in self.packages
            if p.name == name and (version is None or p.version == version)
        ]

    def __iter__(self) -> Iterator[Package]:
        return iter(self.packages)

    def __len__(self) -> int:
        return len(self.packages)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} ({len(self)} packages)>"


class CompositeRepository:
    """Read-only view over several repositories."""

    is_installed = True

    def __init__(self, repositories: Iterable):
        self.repositories = list(repositories)

    def add_repository(self, repository) -> None:
        self.repositories.append(repository)

    @property
    def packages(self) -> List[Package]:
        result: List[Package] = []
        for repository in self.repositories:
            result.extend(repository.packages)
        return result

    def find_packages(self, name: str, version: Optional[str] = None) -> List[Package]:
        result: List[Package] = []
        for repository in self.repositories:
            result.extend(repository.find_packages(name, version))
        return result

    def find_package(self, name: str, version: Optional[str] = None) -> Optional[Package]:
        for repository in self.repositories:
            found = repository.find_package(name, version)
            if found is not None:
                return found
        return None

    def has_package(self, package: Package) -> bool:
        return any(r.has_package(package) for r in self.repositories)

    def __iter__(self) -> Iterator[Package]:
        return iter(self.packages)

    def __len__(self) -> int:
        return len(self.packages)
