"""Sequential operation executor.

Operations are applied strictly in order. The local repository is written
after every completed operation, so when operation k fails the store holds
the effects of exactly the k-1 operations before it.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional

from common.logging_utils import Timer, extra_context, is_debug_enabled
from packages.models import Suggestion
from resolver.operations import SolverOperation

from .errors import HookFailureError, MaterializationError
from .events import package_event

logger = logging.getLogger(__name__)


def filter_suggestions(suggestions: Iterable[Suggestion], installed_repo) -> List[Suggestion]:
    """Drop suggestions whose target is already installed under any name.

    Only names are compared; the installed version is not checked.
    """
    installed_names = set()
    for package in installed_repo.packages:
        installed_names.update(package.get_names())
    return [s for s in suggestions if s.target.lower() not in installed_names]


class OperationExecutor:
    """Applies solved operations with hooks and per-operation persistence."""

    def __init__(self, installation_manager, event_dispatcher=None,
                 references: Optional[Mapping[str, str]] = None, install_from_lock: bool = False,
                 dry_run: bool = False, run_scripts: bool = True, verbose: bool = False,
                 dev_mode: bool = True):
        self.installation_manager = installation_manager
        self.event_dispatcher = event_dispatcher
        self.references = dict(references or {})
        self.install_from_lock = install_from_lock
        self.dry_run = dry_run
        self.run_scripts = run_scripts
        self.verbose = verbose
        self.dev_mode = dev_mode

    def execute(self, local_repo, operations: List[SolverOperation]) -> List[Suggestion]:
        """Apply operations in order and return the collected suggestions.

        Raises:
            HookFailureError: A pre or post package hook failed.
            MaterializationError: The installation manager failed.
        """
        suggestions: List[Suggestion] = []
        if not operations:
            logger.info("Nothing to install or update")
            return suggestions

        with Timer() as timer:
            for index, operation in enumerate(operations, start=1):
                self._dispatch(index, operation, "pre")
                self._override_reference(operation)

                if self.dry_run or self.verbose:
                    logger.info("  - %s", operation)
                else:
                    logger.debug("  - %s", operation)

                try:
                    self.installation_manager.execute(local_repo, operation)
                except Exception as exc:
                    raise MaterializationError(index, operation.package, exc) from exc

                if operation.job_type == "install":
                    package = operation.package
                    for target, reason in package.suggests.items():
                        suggestions.append(Suggestion(package.pretty_name, target, reason))

                if not self.dry_run:
                    local_repo.write()

                self._dispatch(index, operation, "post")

        if is_debug_enabled(logger):
            logger.debug(
                "Executed operations",
                extra=extra_context(
                    event="operations_executed",
                    component="executor",
                    action="execute",
                    outcome="success",
                    count=len(operations),
                    duration_ms=timer.duration_ms(),
                )
            )
        return suggestions

    def _dispatch(self, index: int, operation: SolverOperation, stage: str) -> None:
        if self.dry_run or not self.run_scripts or self.event_dispatcher is None:
            return
        event = package_event(operation.job_type, stage)
        if event is None:
            return
        try:
            self.event_dispatcher.dispatch_package_event(event, self.dev_mode, operation)
        except Exception as exc:
            raise HookFailureError(index, operation.package, exc) from exc

    def _override_reference(self, operation: SolverOperation) -> None:
        """Point dev packages at the reference pinned by the root package."""
        if self.install_from_lock or operation.job_type not in ("install", "update"):
            return
        package = operation.package
        if not package.is_dev:
            return
        reference = self.references.get(package.name)
        if reference is not None:
            package.source_reference = reference
            package.dist_reference = reference
