"""Operations produced by the solver and applied by the executor."""

from __future__ import annotations

from typing import Optional

from packages.models import Package


class SolverOperation:
    """Base class for operations."""

    job_type = ""

    def __init__(self, reason: Optional[str] = None):
        self.reason = reason

    @property
    def package(self) -> Package:  # pragma: no cover - abstract
        """The package materialized by this operation."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self}>"


class InstallOperation(SolverOperation):
    job_type = "install"

    def __init__(self, package: Package, reason: Optional[str] = None):
        super().__init__(reason)
        self._package = package

    @property
    def package(self) -> Package:
        return self._package

    def __str__(self) -> str:
        return f"Installing {self._package.pretty_name} ({self._package.pretty_version})"


class UpdateOperation(SolverOperation):
    job_type = "update"

    def __init__(self, initial: Package, target: Package, reason: Optional[str] = None):
        super().__init__(reason)
        self.initial_package = initial
        self.target_package = target

    @property
    def package(self) -> Package:
        return self.target_package

    def __str__(self) -> str:
        initial = self.initial_package
        target = self.target_package
        initial_version = initial.pretty_version
        target_version = target.pretty_version
        if initial_version == target_version and target.source_reference:
            initial_version = f"{initial_version} {initial.source_reference or ''}".strip()
            target_version = f"{target_version} {target.source_reference}"
        return f"Updating {initial.pretty_name} ({initial_version}) to {target.pretty_name} ({target_version})"


class UninstallOperation(SolverOperation):
    job_type = "uninstall"

    def __init__(self, package: Package, reason: Optional[str] = None):
        super().__init__(reason)
        self._package = package

    @property
    def package(self) -> Package:
        return self._package

    def __str__(self) -> str:
        return f"Uninstalling {self._package.pretty_name} ({self._package.pretty_version})"
