"""Reading and writing the lock file."""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from common.json_file import JsonFile
from constants import Constants
from packages.loader import dump_package, load_links, load_package
from packages.models import AliasPackage, Link, Package
from repository.base import ArrayRepository

from .errors import IncompleteLockError

logger = logging.getLogger(__name__)


def content_hash(manifest_contents: str) -> str:
    """Freshness marker for the manifest the lock was written from."""
    return hashlib.md5(manifest_contents.encode("utf-8")).hexdigest()  # nosec - not used for security


class Locker:
    """Access to the lock file of one project."""

    def __init__(self, lock_file: JsonFile, manifest_contents: str):
        self.lock_file = lock_file
        self.hash = content_hash(manifest_contents)
        self._cache: Optional[Dict[str, Any]] = None

    def is_locked(self) -> bool:
        if not self.lock_file.exists():
            return False
        return "packages" in self.get_lock_data()

    def is_fresh(self) -> bool:
        """Whether the lock was written from the current manifest."""
        return self.get_lock_data().get("hash") == self.hash

    def get_lock_data(self) -> Dict[str, Any]:
        if self._cache is None:
            if not self.lock_file.exists():
                raise FileNotFoundError(f"No lock file present at {self.lock_file.path}")
            self._cache = self.lock_file.read()
        return self._cache

    def get_locked_repository(self, with_dev_reqs: bool = False) -> ArrayRepository:
        """Return the locked packages, including dev packages if asked.

        Raises:
            IncompleteLockError: Dev packages were asked for but the lock was
                written without dev information.
        """
        data = self.get_lock_data()
        entries = list(data.get("packages") or [])
        if with_dev_reqs:
            if data.get("packages-dev") is None:
                raise IncompleteLockError(
                    "The lock file does not contain require-dev information, "
                    "run install with --no-dev or run update to install those packages."
                )
            entries += data["packages-dev"]
        return ArrayRepository(load_package(entry) for entry in entries)

    def get_platform_requirements(self, with_dev_reqs: bool = False) -> Tuple[Link, ...]:
        data = self.get_lock_data()
        requirements: Dict[str, str] = dict(data.get("platform") or {})
        if with_dev_reqs:
            requirements.update(data.get("platform-dev") or {})
        return load_links("__root__", "requires", requirements)

    def get_aliases(self) -> List[Dict[str, str]]:
        return list(self.get_lock_data().get("aliases") or [])

    def get_minimum_stability(self) -> str:
        return self.get_lock_data().get("minimum-stability", Constants.DEFAULT_MINIMUM_STABILITY)

    def get_stability_flags(self) -> Dict[str, str]:
        return dict(self.get_lock_data().get("stability-flags") or {})

    def set_lock_data(self, packages: Iterable[Package], dev_packages: Optional[Iterable[Package]],
                      platform_reqs: Mapping[str, str], platform_dev_reqs: Mapping[str, str],
                      aliases: Iterable[Mapping[str, str]], minimum_stability: str,
                      stability_flags: Mapping[str, str]) -> bool:
        """Write the lock if its content changed.

        ``dev_packages`` of None is stored as null: the dev set is unknown.
        Returns True when the file was written.
        """
        lock = {
            "_readme": list(Constants.LOCK_README),
            "hash": self.hash,
            "packages": self._dump_packages(packages),
            "packages-dev": None if dev_packages is None else self._dump_packages(dev_packages),
            "aliases": [dict(a) for a in aliases],
            "minimum-stability": minimum_stability,
            "stability-flags": dict(stability_flags),
            "platform": dict(platform_reqs),
            "platform-dev": dict(platform_dev_reqs),
        }

        if self.lock_file.exists():
            try:
                if self.get_lock_data() == lock:
                    logger.debug("Lock file is up to date")
                    return False
            except ValueError:
                logger.warning("Replacing unreadable lock file %s", self.lock_file.path)

        self.lock_file.write(lock)
        self._cache = None
        return True

    @staticmethod
    def _dump_packages(packages: Iterable[Package]) -> List[Dict[str, Any]]:
        real = [p for p in packages if not isinstance(p, AliasPackage)]
        return [dump_package(p) for p in sorted(real, key=lambda p: p.name)]
