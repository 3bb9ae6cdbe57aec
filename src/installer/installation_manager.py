"""Installers applying operations to disk and to the local repository."""

from __future__ import annotations

import logging
import os
import shutil
from typing import List, Optional

from packages.models import AliasPackage, Package
from resolver.operations import SolverOperation

from .downloader import DownloadManager

logger = logging.getLogger(__name__)


class NoopInstaller:
    """Only updates the repository; used for dry runs."""

    def supports(self, package_type: str) -> bool:
        return True

    def is_installed(self, repo, package: Package) -> bool:
        return repo.has_package(package)

    def install(self, repo, package: Package) -> None:
        if not repo.has_package(package):
            repo.add_package(package.clone())

    def update(self, repo, initial: Package, target: Package) -> None:
        if not repo.has_package(initial):
            raise ValueError(f"Package is not installed: {initial.pretty_string}")
        repo.remove_package(initial)
        if not repo.has_package(target):
            repo.add_package(target.clone())

    def uninstall(self, repo, package: Package) -> None:
        if not repo.has_package(package):
            raise ValueError(f"Package is not installed: {package.pretty_string}")
        repo.remove_package(package)

    def get_install_path(self, package: Package) -> Optional[str]:
        return None


class LibraryInstaller(NoopInstaller):
    """Installs packages into ``<vendor-dir>/<name>``.

    Metapackages have no files; only the repository is updated for them.
    """

    def __init__(self, vendor_dir: str, download_manager: DownloadManager,
                 package_types: Optional[List[str]] = None):
        self.vendor_dir = vendor_dir
        self.download_manager = download_manager
        self.package_types = package_types

    def supports(self, package_type: str) -> bool:
        return self.package_types is None or package_type in self.package_types

    def get_install_path(self, package: Package) -> str:
        return os.path.join(self.vendor_dir, *package.pretty_name.split("/"))

    def is_installed(self, repo, package: Package) -> bool:
        if not repo.has_package(package):
            return False
        return package.type == "metapackage" or os.path.isdir(self.get_install_path(package))

    def install(self, repo, package: Package) -> None:
        if package.type != "metapackage":
            self.download_manager.download(package, self.get_install_path(package))
        super().install(repo, package)

    def update(self, repo, initial: Package, target: Package) -> None:
        if not repo.has_package(initial):
            raise ValueError(f"Package is not installed: {initial.pretty_string}")
        initial_path = self.get_install_path(initial)
        target_path = self.get_install_path(target)
        if target.type != "metapackage":
            self.download_manager.download(target, target_path)
        if initial_path != target_path and os.path.isdir(initial_path):
            shutil.rmtree(initial_path)
        super().update(repo, initial, target)

    def uninstall(self, repo, package: Package) -> None:
        if not repo.has_package(package):
            raise ValueError(f"Package is not installed: {package.pretty_string}")
        path = self.get_install_path(package)
        if os.path.isdir(path):
            shutil.rmtree(path)
        self._remove_empty_parent(path)
        super().uninstall(repo, package)

    def _remove_empty_parent(self, path: str) -> None:
        parent = os.path.dirname(path)
        if parent != os.path.normpath(self.vendor_dir) and os.path.isdir(parent) and not os.listdir(parent):
            os.rmdir(parent)


class InstallationManager:
    """Routes operations to the first installer supporting the package type.

    Installers added later take precedence, so a NoopInstaller added for a
    dry run handles every package.
    """

    def __init__(self) -> None:
        self.installers: List[NoopInstaller] = []

    def add_installer(self, installer: NoopInstaller) -> None:
        self.installers.insert(0, installer)

    def get_installer(self, package_type: str) -> NoopInstaller:
        for installer in self.installers:
            if installer.supports(package_type):
                return installer
        raise ValueError(f'Unknown installer type: "{package_type}"')

    def is_package_installed(self, repo, package: Package) -> bool:
        if isinstance(package, AliasPackage):
            return repo.has_package(package)
        return self.get_installer(package.type).is_installed(repo, package)

    def execute(self, repo, operation: SolverOperation) -> None:
        method = getattr(self, operation.job_type)
        method(repo, operation)

    def install(self, repo, operation: SolverOperation) -> None:
        package = operation.package
        self.get_installer(package.type).install(repo, package)

    def update(self, repo, operation: SolverOperation) -> None:
        initial = operation.initial_package  # type: ignore[attr-defined]
        target = operation.target_package  # type: ignore[attr-defined]
        if initial.type == target.type:
            self.get_installer(initial.type).update(repo, initial, target)
        else:
            self.get_installer(initial.type).uninstall(repo, initial)
            self.get_installer(target.type).install(repo, target)

    def uninstall(self, repo, operation: SolverOperation) -> None:
        package = operation.package
        self.get_installer(package.type).uninstall(repo, package)

    def get_install_path(self, package: Package) -> Optional[str]:
        return self.get_installer(package.type).get_install_path(package)
