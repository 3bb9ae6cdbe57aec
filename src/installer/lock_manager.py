"""Derive the lock snapshot from what was actually installed."""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Mapping, Optional

from constants import Constants
from packages.models import Link, Package, RootPackage
from resolver.policy import DefaultPolicy
from resolver.pool import Pool, index_root_aliases
from resolver.solver import Solver

from .request_builder import RequestBuilder

logger = logging.getLogger(__name__)

_PLATFORM_RE = re.compile(Constants.PLATFORM_PACKAGE_REGEX, re.IGNORECASE)


def extract_platform_requirements(links: Iterable[Link]) -> Dict[str, str]:
    """Map platform requirement targets to their constraint strings."""
    return {link.target: link.pretty_constraint for link in links if _PLATFORM_RE.match(link.target)}


class LockManager:
    """Writes the lock after a successful, non dry-run install."""

    def __init__(self, locker, root_package: RootPackage, platform_repo):
        self.locker = locker
        self.root_package = root_package
        self.platform_repo = platform_repo

    def should_write(self, update: bool, dry_run: bool) -> bool:
        return not dry_run and (update or not self.locker.is_locked())

    def write(self, local_repo, installed_repo, aliases: List[Mapping[str, str]], dev_mode: bool) -> bool:
        """Reload the local store, split dev packages and write the lock.

        Returns whether the lock file changed.
        """
        local_repo.reload()
        root = self.root_package

        dev_packages: Optional[List[Package]]
        if not dev_mode and root.dev_requires:
            # Unknown, so a later dev install cannot assume there are none
            dev_packages = None
        elif dev_mode and root.dev_requires:
            dev_packages = self._dev_packages(installed_repo, aliases)
        else:
            dev_packages = []

        dev_names = {p.unique_name for p in dev_packages or []}
        packages = [p for p in local_repo.packages if p.unique_name not in dev_names]

        platform_reqs = extract_platform_requirements(root.requires)
        platform_dev_reqs = extract_platform_requirements(root.dev_requires) if dev_mode else {}

        updated = self.locker.set_lock_data(
            packages,
            dev_packages,
            platform_reqs,
            platform_dev_reqs,
            aliases,
            root.minimum_stability,
            root.stability_flags,
        )
        if updated:
            logger.info("Writing lock file")
        return updated

    def _dev_packages(self, installed_repo, aliases: List[Mapping[str, str]]) -> List[Package]:
        """Packages an update without dev requirements would uninstall."""
        root = self.root_package
        pool = Pool(root.minimum_stability, root.stability_flags)
        pool.add_repository(installed_repo, index_root_aliases(aliases))

        request = RequestBuilder(pool, root, self.platform_repo).build(links=root.requires, update_all=True)
        solver = Solver(DefaultPolicy(root.prefer_stable), pool, installed_repo)
        operations = solver.solve(request)
        dev = [op.package for op in operations if op.job_type == "uninstall"]
        logger.debug("Classified %d installed packages as dev", len(dev))
        return dev
