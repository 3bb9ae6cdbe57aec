"""The install/update run driver."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from common.logging_utils import Timer, extra_context, is_debug_enabled
from constants import ScriptEvents
from packages.models import AliasPackage, Package, PackageLinks, RootPackage, Suggestion
from repository.base import CompositeRepository
from repository.installed import InstalledArrayRepository
from repository.platform import PlatformRepository
from resolver.operations import SolverOperation
from resolver.policy import DefaultPolicy
from resolver.pool import Pool, index_root_aliases
from resolver.solver import Solver, SolverProblemsError
from versioning.constraints import Constraint, exact

from .dev_packages import DevPackageReconciler, ReconcilePass
from .errors import IncompleteLockError, UnsatisfiableRequestError
from .executor import OperationExecutor, filter_suggestions
from .installation_manager import NoopInstaller
from .lock_manager import LockManager
from .request_builder import RequestBuilder, alias_platform_packages
from .whitelist import UpdateWhitelistExpander

logger = logging.getLogger(__name__)


@dataclass
class InstallReport:
    """Outcome of a run."""

    operations: List[SolverOperation] = field(default_factory=list)
    suggestions: List[Suggestion] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    lock_updated: bool = False


class Installer:
    """Moves the installed packages to a state satisfying the root package.

    Configure with the ``set_*`` methods, then call ``run()``. An instance
    is meant for a single run.
    """

    def __init__(self, config, root_package: RootPackage, repository_manager, locker,
                 installation_manager, event_dispatcher, download_manager=None,
                 platform_repo: Optional[PlatformRepository] = None):
        self.config = config
        self.root_package = root_package
        self.repository_manager = repository_manager
        self.locker = locker
        self.installation_manager = installation_manager
        self.event_dispatcher = event_dispatcher
        self.download_manager = download_manager
        self.platform_repo = platform_repo

        self.dry_run = False
        self.verbose = False
        self.prefer_source = False
        self.prefer_dist = False
        self.dev_mode = False
        self.run_scripts = True
        self.update = False
        self.whitelist = UpdateWhitelistExpander()
        self.additional_installed_repository = None

    def run(self) -> InstallReport:
        """Execute the run.

        Raises:
            UnsatisfiableRequestError: The requirements cannot be resolved; nothing was changed.
            HookFailureError: A package hook failed.
            MaterializationError: An operation could not be applied.
            IncompleteLockError: Dev install requested from a lock without dev information.
        """
        report = InstallReport()
        if self.dry_run:
            self.verbose = True
            self.run_scripts = False
            self.installation_manager.add_installer(NoopInstaller())
            self._mock_local_repository()

        if self.download_manager is not None:
            self.download_manager.prefer_source = self.prefer_source
            self.download_manager.prefer_dist = self.prefer_dist

        # The installed repository holds the local packages, the root package
        # without its requirements and the platform packages
        installed_root = self.root_package.clone()
        installed_root.set_links(PackageLinks(
            conflicts=installed_root.conflicts,
            provides=installed_root.provides,
            replaces=installed_root.replaces,
        ))
        installed_root.dev_requires = ()

        local_repo = self.repository_manager.local_repository
        platform_repo = self.platform_repo if self.platform_repo is not None else PlatformRepository()
        installed_repo = CompositeRepository([
            local_repo,
            InstalledArrayRepository([installed_root]),
            platform_repo,
        ])
        if self.additional_installed_repository is not None:
            installed_repo.add_repository(self.additional_installed_repository)

        alias_table = self._root_alias_table()
        aliases = index_root_aliases(alias_table)
        alias_platform_packages(platform_repo, aliases)

        if self.run_scripts:
            event = ScriptEvents.PRE_UPDATE_CMD if self.update else ScriptEvents.PRE_INSTALL_CMD
            self.event_dispatcher.dispatch_command_event(event, self.dev_mode)

        with Timer() as timer:
            suggestions = self._do_install(local_repo, installed_repo, platform_repo, aliases, report)

        report.suggestions = filter_suggestions(suggestions, installed_repo)
        for suggestion in report.suggestions:
            logger.info("%s", suggestion)

        if not self.dry_run:
            lock_manager = LockManager(self.locker, self.root_package, platform_repo)
            if lock_manager.should_write(self.update, self.dry_run):
                report.lock_updated = lock_manager.write(local_repo, installed_repo, alias_table, self.dev_mode)

            if self.run_scripts:
                event = ScriptEvents.POST_UPDATE_CMD if self.update else ScriptEvents.POST_INSTALL_CMD
                self.event_dispatcher.dispatch_command_event(event, self.dev_mode)

        if is_debug_enabled(logger):
            logger.debug(
                "Run finished",
                extra=extra_context(
                    event="run_finished",
                    component="installer",
                    action="update" if self.update else "install",
                    outcome="success",
                    count=len(report.operations),
                    duration_ms=timer.duration_ms(),
                )
            )
        return report

    def _do_install(self, local_repo, installed_repo, platform_repo,
                    aliases: Mapping[str, Mapping[str, Mapping[str, str]]],
                    report: InstallReport) -> List[Suggestion]:
        root = self.root_package
        locked_repository = None
        install_from_lock = False
        if not self.update and self.locker.is_locked():
            install_from_lock = True
            locked_repository = self.locker.get_locked_repository(self.dev_mode)

        if self.whitelist.enabled:
            self.whitelist.expand(local_repo, self.dev_mode, root.requires, root.dev_requires)
            report.warnings.extend(self.whitelist.warnings)

        logger.info("Loading repositories with package information")
        policy = DefaultPolicy(root.prefer_stable)
        pool = self._create_pool()
        pool.add_repository(installed_repo, aliases)
        repositories: List = []
        if install_from_lock:
            pool.add_repository(locked_repository, aliases)
        else:
            repositories = self.repository_manager.repositories
            for repository in repositories:
                pool.add_repository(repository, aliases)

        # Installed packages no longer meeting the stability settings are removed
        removed: List[Package] = []
        if not install_from_lock:
            for package in local_repo.packages:
                if not pool.is_package_acceptable([package.name], package.stability) \
                        and self.installation_manager.is_package_installed(local_repo, package):
                    removed.append(package)

        dev_suffix = " (including require-dev)" if self.dev_mode else ""
        links = list(root.requires) + (list(root.dev_requires) if self.dev_mode else [])
        pins: Optional[Dict[str, Constraint]] = None
        if self.update:
            logger.info("Updating dependencies%s", dev_suffix)
            if self.whitelist.enabled:
                candidates = [link.target for link in links] + [p.name for p in local_repo.packages]
                pins = self.whitelist.pins(
                    candidates, self._current_packages(installed_repo), {p.name for p in removed}
                )
        elif install_from_lock:
            logger.info("Installing dependencies%s from lock file", dev_suffix)
            if not self.locker.is_fresh():
                message = ("The lock file is not up to date with the latest changes in the manifest. "
                           "You may be getting outdated dependencies. Run update to update them.")
                logger.warning(message)
                report.warnings.append(message)
            pins = self._locked_pins(locked_repository, aliases)
            links = list(self.locker.get_platform_requirements(self.dev_mode))
        else:
            logger.info("Installing dependencies%s", dev_suffix)

        request = RequestBuilder(pool, root, platform_repo).build(
            links=links, pins=pins, removals=removed, update_all=self.update,
        )

        reconciler = DevPackageReconciler(
            pool, policy,
            repositories=repositories,
            locked_repository=locked_repository,
            install_from_lock=install_from_lock,
            update=self.update,
            whitelist=self.whitelist if self.whitelist.enabled else None,
            references=root.references,
        )
        reconciler.reconcile(ReconcilePass.FORCE_LINKS, local_repo)

        solver = Solver(policy, pool, installed_repo)
        try:
            operations = solver.solve(request)
        except SolverProblemsError as exc:
            logger.error("%s", exc)
            raise UnsatisfiableRequestError(exc) from exc

        operations = reconciler.reconcile(ReconcilePass.FORCE_UPDATES, local_repo, operations)
        report.operations = operations

        executor = OperationExecutor(
            self.installation_manager,
            self.event_dispatcher,
            references=root.references,
            install_from_lock=install_from_lock,
            dry_run=self.dry_run,
            run_scripts=self.run_scripts,
            verbose=self.verbose,
            dev_mode=self.dev_mode,
        )
        return executor.execute(local_repo, operations)

    def _create_pool(self) -> Pool:
        if not self.update and self.locker.is_locked():
            return Pool(self.locker.get_minimum_stability(), self.locker.get_stability_flags())
        return Pool(self.root_package.minimum_stability, self.root_package.stability_flags)

    def _root_alias_table(self) -> List[Dict[str, str]]:
        if not self.update and self.locker.is_locked():
            return self.locker.get_aliases()
        return [dict(a) for a in self.root_package.aliases]

    def _current_packages(self, installed_repo) -> List[Package]:
        """Locked packages (dev-aware), or the installed ones without a lock."""
        if not self.locker.is_locked():
            return installed_repo.packages
        try:
            return self.locker.get_locked_repository(self.dev_mode).packages
        except IncompleteLockError:
            return self.locker.get_locked_repository().packages

    @staticmethod
    def _locked_pins(locked_repository, aliases) -> Dict[str, Constraint]:
        pins: Dict[str, Constraint] = {}
        for package in locked_repository.packages:
            version = package.version
            alias = aliases.get(package.name, {}).get(version)
            if alias:
                version = alias["alias_normalized"]
            pins[package.name] = exact(version, package.pretty_version)
        return pins

    def _mock_local_repository(self) -> None:
        """Swap the local repository for an in-memory copy without aliases."""
        packages = [
            p.clone() for p in self.repository_manager.local_repository.packages
            if not isinstance(p, AliasPackage)
        ]
        self.repository_manager.set_local_repository(InstalledArrayRepository(packages))

    def set_dry_run(self, dry_run: bool = True) -> "Installer":
        self.dry_run = dry_run
        return self

    def set_verbose(self, verbose: bool = True) -> "Installer":
        self.verbose = verbose
        return self

    def set_prefer_source(self, prefer_source: bool = True) -> "Installer":
        self.prefer_source = prefer_source
        return self

    def set_prefer_dist(self, prefer_dist: bool = True) -> "Installer":
        self.prefer_dist = prefer_dist
        return self

    def set_dev_mode(self, dev_mode: bool = True) -> "Installer":
        self.dev_mode = dev_mode
        return self

    def set_run_scripts(self, run_scripts: bool = True) -> "Installer":
        self.run_scripts = run_scripts
        return self

    def set_update(self, update: bool = True) -> "Installer":
        self.update = update
        return self

    def set_update_whitelist(self, packages: Iterable[str]) -> "Installer":
        self.whitelist = UpdateWhitelistExpander(packages)
        return self

    def set_additional_installed_repository(self, repository) -> "Installer":
        self.additional_installed_repository = repository
        return self
