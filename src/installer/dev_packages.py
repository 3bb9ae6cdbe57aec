"""Dev package reconciliation.

A dev package keeps its version string while the branch it tracks moves,
so its declared links and content references can go stale. Reconciliation
runs twice per install: FORCE_LINKS before solving refreshes the links so
the solver sees the current dependency set, FORCE_UPDATES after solving
appends updates for packages whose content reference changed.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable, List, Mapping, Optional

from common.logging_utils import extra_context, is_debug_enabled
from packages.models import AliasPackage, Package
from resolver.operations import SolverOperation, UpdateOperation
from versioning.constraints import exact

logger = logging.getLogger(__name__)


class ReconcilePass(Enum):
    """Which reconciliation pass to run.

    Args:
        Enum (string): Pass names.
    """

    FORCE_LINKS = "force-links"
    FORCE_UPDATES = "force-updates"


def _reference_differs(authoritative: Package, installed: Package) -> bool:
    return bool(
        (authoritative.source_reference and authoritative.source_reference != installed.source_reference)
        or (authoritative.dist_reference and authoritative.dist_reference != installed.dist_reference)
    )


class DevPackageReconciler:
    """Keeps installed dev packages in line with their authoritative metadata."""

    def __init__(self, pool, policy, repositories: Optional[Iterable] = None, locked_repository=None,
                 install_from_lock: bool = False, update: bool = False, whitelist=None,
                 references: Optional[Mapping[str, str]] = None):
        """Initialize the reconciler.

        Args:
            pool: Pool holding the installed and remote candidates.
            policy: Policy used to rank remote candidates.
            repositories: Non-local repositories; only their packages are authoritative.
            locked_repository: Locked packages when installing from a lock.
            install_from_lock: Whether this run installs from the lock.
            update: Whether this run updates.
            whitelist: UpdateWhitelistExpander, or None for a full update.
            references: Root package's pinned references by name.
        """
        self.pool = pool
        self.policy = policy
        self.repositories = list(repositories or [])
        self.locked_repository = locked_repository
        self.install_from_lock = install_from_lock
        self.update = update
        self.whitelist = whitelist
        self.references = dict(references or {})

    def reconcile(self, pass_: ReconcilePass, local_repo,
                  operations: Optional[List[SolverOperation]] = None) -> List[SolverOperation]:
        """Run one pass over the local repository's dev packages.

        Returns a new operation list: the given operations plus any updates
        appended by FORCE_UPDATES.

        Raises:
            ValueError: FORCE_UPDATES was called without an operation list.
        """
        if pass_ is ReconcilePass.FORCE_UPDATES and operations is None:
            raise ValueError("The force-updates pass needs the solved operation list")
        result: List[SolverOperation] = list(operations or [])
        subjects = list(result)

        for package in local_repo.packages:
            if not package.is_dev or isinstance(package, AliasPackage):
                continue
            if self._is_subject(package, subjects):
                continue

            if self.install_from_lock:
                authoritative = self._locked_match(package)
            elif self.update:
                if self.whitelist is not None and self.whitelist.enabled \
                        and not self.whitelist.is_updateable(package):
                    continue
                authoritative = self._remote_match(package)
            else:
                authoritative = None

            forced = None
            if authoritative is not None:
                if pass_ is ReconcilePass.FORCE_LINKS:
                    package.set_links(authoritative.links)
                    self._log(package, "links_forced")
                elif _reference_differs(authoritative, package):
                    forced = UpdateOperation(package, authoritative, reason="dev package reference changed")
                    result.append(forced)
                    self._log(package, "update_forced")

            if pass_ is ReconcilePass.FORCE_UPDATES and not self.install_from_lock and forced is None:
                reference = self.references.get(package.name)
                if reference is not None and reference != package.source_reference:
                    # The executor applies the pinned reference to the clone
                    result.append(UpdateOperation(package, package.clone(), reason="pinned reference"))
                    self._log(package, "reference_forced")

        return result

    @staticmethod
    def _is_subject(package: Package, operations: List[SolverOperation]) -> bool:
        for operation in operations:
            if operation.job_type == "update" and operation.initial_package.equals(package):  # type: ignore[attr-defined]
                return True
            if operation.job_type == "uninstall" and operation.package.equals(package):
                return True
        return False

    def _locked_match(self, package: Package) -> Optional[Package]:
        if self.locked_repository is None:
            return None
        for locked in self.locked_repository.find_packages(package.name):
            if locked.is_dev and locked.version == package.version:
                return locked
        return None

    def _remote_match(self, package: Package) -> Optional[Package]:
        matches = [
            candidate.id
            for candidate in self.pool.what_provides(package.name, exact(package.version))
            if any(candidate.repository is repo for repo in self.repositories)
            and candidate.name == package.name
        ]
        if not matches:
            return None
        preferred = self.policy.select_preferred_packages(self.pool, {}, matches, package.name)
        return self.pool.literal_to_package(preferred[0]) if preferred else None

    def _log(self, package: Package, event: str) -> None:
        if is_debug_enabled(logger):
            logger.debug(
                "Reconciled dev package %s", package.pretty_string,
                extra=extra_context(event=event, component="dev_packages", action="reconcile",
                                    target=package.name)
            )
