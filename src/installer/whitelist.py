"""Update whitelist expansion.

Only whitelisted packages may move to a new version during a partial
update; everything else is pinned to its locked (or installed) version.
The expansion follows requirement edges from the whitelisted packages, but
stops at packages the root requires directly, so one whitelisted
dependency does not drag unrelated root requirements along.
"""

from __future__ import annotations

import logging
import re
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional, Set

from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants
from packages.models import Link, Package
from resolver.pool import Pool
from versioning.constraints import Constraint, exact

logger = logging.getLogger(__name__)


def _pattern_regex(pattern: str) -> "re.Pattern[str]":
    return re.compile("^" + re.escape(pattern).replace(r"\*", ".*") + "$", re.IGNORECASE)


class UpdateWhitelistExpander:
    """Holds the update whitelist and grows it to its dependency closure."""

    def __init__(self, patterns: Optional[Iterable[str]] = None):
        # dict keeps insertion order; values are unused
        self.whitelist: Dict[str, bool] = {p.lower(): True for p in (patterns or []) if p}
        self.warnings: List[str] = []

    @property
    def enabled(self) -> bool:
        return bool(self.whitelist)

    @property
    def names(self) -> Set[str]:
        return set(self.whitelist)

    def expand(self, local_repo, dev_mode: bool, root_requires: Iterable[Link],
               root_dev_requires: Iterable[Link]) -> Set[str]:
        """Add every dependency of the whitelisted packages to the whitelist.

        Packages required by the root are not traversed into unless they are
        whitelisted themselves. Returns the expanded set.
        """
        if not self.whitelist:
            return set()

        root_requires = list(root_requires)
        root_dev_requires = list(root_dev_requires)
        required_names = {link.target for link in root_requires + root_dev_requires}
        walls = root_requires + root_dev_requires if dev_mode else root_requires
        skip = {link.target for link in walls}

        pool = Pool()
        pool.add_repository(local_repo)
        installed_names = [p.name for p in local_repo.packages]

        seen: Set[int] = set()
        for pattern in list(self.whitelist):
            seeds = pool.what_provides(pattern)
            if not seeds and not self._matches_any(pattern, installed_names) \
                    and pattern not in required_names \
                    and pattern not in Constants.RESERVED_WHITELIST_TOKENS:
                message = f'Package "{pattern}" listed for update is not installed. Ignoring.'
                logger.warning(message)
                self.warnings.append(message)

            queue: Deque[Package] = deque(seeds)
            while queue:
                package = queue.popleft()
                if package.id in seen:
                    continue
                seen.add(package.id)
                self.whitelist[package.name] = True

                requires = list(package.requires)
                if dev_mode:
                    requires += list(package.dev_requires)
                for link in requires:
                    for candidate in pool.what_provides(link.target):
                        if candidate.name in skip:
                            continue
                        queue.append(candidate)

        if is_debug_enabled(logger):
            logger.debug(
                "Expanded update whitelist",
                extra=extra_context(
                    event="whitelist_expanded",
                    component="whitelist",
                    action="expand",
                    count=len(self.whitelist),
                )
            )
        return self.names

    @staticmethod
    def _matches_any(pattern: str, names: Iterable[str]) -> bool:
        if "*" not in pattern:
            return False
        regex = _pattern_regex(pattern)
        return any(regex.match(name) for name in names)

    def is_updateable(self, package: Package) -> bool:
        """Case-insensitive glob test of package's name against the whitelist.

        Raises:
            RuntimeError: If no whitelist is set.
        """
        if not self.whitelist:
            raise RuntimeError("is_updateable requires an update whitelist")
        return any(_pattern_regex(p).match(package.name) for p in self.whitelist)

    def pins(self, candidates: Iterable[str], current_packages: Iterable[Package],
             removed: Optional[Set[str]] = None) -> Dict[str, Constraint]:
        """Exact-version pins for candidates that are not updateable.

        Args:
            candidates: Names to consider (root link targets and installed names).
            current_packages: Locked packages, or installed ones without a lock.
            removed: Names scheduled for removal, never pinned.
        """
        removed = removed or set()
        current: Dict[str, Package] = {}
        for package in current_packages:
            current.setdefault(package.name, package)

        pins: Dict[str, Constraint] = {}
        for name in dict.fromkeys(candidates):
            package = current.get(name)
            if package is None or name in removed or self.is_updateable(package):
                continue
            pins[name] = exact(package.version, package.pretty_version)
        logger.debug("Pinned %d packages outside the update whitelist", len(pins))
        return pins
