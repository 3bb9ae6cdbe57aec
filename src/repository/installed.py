"""Repositories describing what is currently installed."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from common.json_file import JsonFile
from packages.loader import dump_package, load_package
from packages.models import AliasPackage, Package

from .base import ArrayRepository

logger = logging.getLogger(__name__)


class InstalledArrayRepository(ArrayRepository):
    """In-memory installed repository; nothing is ever persisted."""

    is_installed = True

    def reload(self) -> None:
        """Nothing to reload for an in-memory repository."""

    def write(self) -> None:
        """Nothing to write for an in-memory repository."""


class InstalledFilesystemRepository(InstalledArrayRepository):
    """The local package store, kept as a JSON list on disk.

    ``write()`` replaces the file atomically and is called after every
    applied operation, so the file never runs ahead of what is installed.
    """

    def __init__(self, path: str, packages: Optional[Iterable[Package]] = None):
        self.file = JsonFile(path)
        super().__init__(packages)

    def _initialize(self) -> None:
        self._packages = []
        if not self.file.exists():
            return
        data = self.file.read()
        if not isinstance(data, list):
            raise ValueError(f'Invalid local package store "{self.file.path}": expected a list')
        for entry in data:
            self.add_package(load_package(entry))

    def reload(self) -> None:
        """Discard in-memory state and read the store again."""
        self._packages = None
        self._initialize()

    def write(self) -> None:
        """Persist every non-alias package, sorted by name."""
        packages = sorted(
            (p for p in self.packages if not isinstance(p, AliasPackage)),
            key=lambda p: p.name,
        )
        self.file.write([dump_package(p) for p in packages])
        logger.debug("Persisted %d installed packages to %s", len(packages), self.file.path)
