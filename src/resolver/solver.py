"""Default dependency solver.

A greedy solver: requirements are resolved breadth first, each name is
decided once using the policy, and a decision that a later requirement
contradicts restarts the pass with that requirement known up front. It does
not backtrack over alternatives otherwise, so some satisfiable requests can
be reported as problems.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict, deque
from typing import Deque, Dict, List, Optional, Set, Tuple

from common.logging_utils import Timer, extra_context, is_debug_enabled
from constants import Constants
from packages.models import AliasPackage, Package, RootPackage
from versioning.constraints import Constraint

from .operations import InstallOperation, SolverOperation, UninstallOperation, UpdateOperation
from .request import Request

logger = logging.getLogger(__name__)

_PLATFORM_RE = re.compile(Constants.PLATFORM_PACKAGE_REGEX, re.IGNORECASE)


class SolverProblemsError(Exception):
    """The request cannot be satisfied; ``problems`` lists the reasons."""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        lines = "\n".join(f"  Problem {i}: {p}" for i, p in enumerate(self.problems, 1))
        super().__init__(f"Your requirements could not be resolved to an installable set of packages.\n{lines}")


class _Restart(Exception):
    """A decided package violates a newly seen requirement."""


def _satisfies(package: Package, name: str, constraint: Optional[Constraint]) -> bool:
    if constraint is None:
        return True
    if package.name == name:
        return constraint.matches(package.version_constraint())
    return any(
        link.target == name and constraint.matches(link.constraint)
        for link in package.provides + package.replaces
    )


def _is_unremovable(package: Package) -> bool:
    return isinstance(package, RootPackage) or bool(_PLATFORM_RE.match(package.name))


class Solver:
    """Turns a Request into operations over the installed repository."""

    def __init__(self, policy, pool, installed):
        self.policy = policy
        self.pool = pool
        self.installed = installed

    def solve(self, request: Request) -> List[SolverOperation]:
        """Return the operations moving the installed set to a solution.

        Raises:
            SolverProblemsError: If no solution was found.
        """
        with Timer() as timer:
            installed_map = {
                p.id: p for p in self.pool.packages
                if getattr(p.repository, "is_installed", False) and not isinstance(p, AliasPackage)
            }
            learned: Dict[str, List[Constraint]] = defaultdict(list)
            attempts = len(self.pool) + 2
            for _ in range(attempts):
                try:
                    decided, problems = self._run(request, installed_map, learned)
                    break
                except _Restart:
                    continue
            else:
                raise SolverProblemsError(["The solver could not settle on a consistent set of packages."])

            if problems:
                raise SolverProblemsError(problems)
            operations = self._operations(decided, installed_map)

        if is_debug_enabled(logger):
            logger.debug(
                "Solved request",
                extra=extra_context(
                    event="solve",
                    component="solver",
                    action="solve",
                    outcome="success",
                    count=len(operations),
                    duration_ms=timer.duration_ms(),
                )
            )
        return operations

    def _run(self, request: Request, installed_map: Dict[int, Package],
             learned: Dict[str, List[Constraint]]) -> Tuple[Dict[str, Package], List[str]]:
        installed_by_name = {p.name: p for p in installed_map.values()}
        removals = {
            job.package_name: job.constraint
            for job in request.jobs if job.cmd == "remove"
        }
        constraints: Dict[str, List[Constraint]] = defaultdict(list)
        for name, known in learned.items():
            constraints[name].extend(known)

        decided: Dict[str, Package] = {}
        problems: List[str] = []
        queue: Deque[Tuple[str, Optional[Constraint], str]] = deque()
        for job in request.jobs:
            if job.cmd == "install":
                queue.append((job.package_name, job.constraint, "Root request"))

        while queue:
            name, constraint, origin = queue.popleft()
            if constraint is not None and not any(c is constraint for c in constraints[name]):
                constraints[name].append(constraint)

            if name in decided:
                package = decided[name]
                if not _satisfies(package, name, constraint):
                    if not any(c is constraint for c in learned[name]):
                        learned[name].append(constraint)
                        raise _Restart()
                    problems.append(
                        f"{origin} {name} {constraint.pretty_string} conflicts with "
                        f"{package.pretty_string} which is already selected."
                    )
                continue

            candidate = self._select(name, constraints[name], removals.get(name, False),
                                     request.update_all, installed_by_name, installed_map)
            if candidate is None:
                wanted = constraint.pretty_string if constraint is not None else "*"
                if name in removals:
                    problems.append(f"{origin} {name} {wanted} but its removal was requested.")
                else:
                    problems.append(f"{origin} {name} {wanted} -> no matching package found.")
                continue

            for provided in candidate.get_names():
                decided.setdefault(provided, candidate)
            decided[name] = candidate
            for link in candidate.requires:
                queue.append((link.target, link.constraint, f"{candidate.pretty_string} requires"))

        problems.extend(self._conflicts(decided))
        return decided, problems

    def _select(self, name: str, constraints: List[Constraint], removal, update_all: bool,
                installed_by_name: Dict[str, Package], installed_map: Dict[int, Package]) -> Optional[Package]:
        candidates = [
            p for p in self.pool.what_provides(name)
            if all(_satisfies(p, name, c) for c in constraints)
            and (removal is False or (removal is not None and not _satisfies(p, name, removal)))
        ]
        if not candidates:
            return None

        installed = installed_by_name.get(name)
        if installed is not None and not update_all and installed in candidates:
            return installed
        if installed is not None and _is_unremovable(installed):
            same = [p for p in candidates if p is installed or getattr(p, "alias_of", None) is installed]
            return same[0] if same else None

        literals = self.policy.select_preferred_packages(
            self.pool, installed_map, [p.id for p in candidates], name
        )
        return self.pool.literal_to_package(literals[0])

    @staticmethod
    def _conflicts(decided: Dict[str, Package]) -> List[str]:
        problems = []
        chosen = {id(p): p for p in decided.values()}.values()
        for package in chosen:
            for link in package.conflicts:
                other = decided.get(link.target)
                if other is not None and other is not package and _satisfies(other, link.target, link.constraint):
                    problems.append(f"{package.pretty_string} conflicts with {other.pretty_string}.")
        return problems

    def _operations(self, decided: Dict[str, Package], installed_map: Dict[int, Package]) -> List[SolverOperation]:
        installed_by_name = {p.name: p for p in installed_map.values()}
        ordered: List[Package] = []
        seen: Set[int] = set()

        def visit(package: Package) -> None:
            real = package.alias_of if isinstance(package, AliasPackage) else package
            if id(real) in seen:
                return
            seen.add(id(real))
            for link in real.requires:
                dependency = decided.get(link.target)
                if dependency is not None:
                    visit(dependency)
            ordered.append(real)

        for name in sorted(decided):
            visit(decided[name])

        operations: List[SolverOperation] = []
        kept_names = set()
        for package in ordered:
            kept_names.add(package.name)
            if package.id in installed_map:
                continue
            current = installed_by_name.get(package.name)
            if current is None:
                operations.append(InstallOperation(package))
            elif not current.equals(package):
                operations.append(UpdateOperation(current, package))

        for package in installed_map.values():
            if package.name not in kept_names and not _is_unremovable(package):
                operations.append(UninstallOperation(package))
        return operations
