"""Solver request: one directive per package name."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from versioning.constraints import Constraint


class DuplicateDirectiveError(ValueError):
    """A second directive was added for a name that already has one."""


@dataclass(frozen=True)
class Job:
    """An install or remove directive."""

    cmd: str
    package_name: str
    constraint: Optional[Constraint] = None

    def __str__(self) -> str:
        constraint = f" {self.constraint.pretty_string}" if self.constraint is not None else ""
        return f"{self.cmd} {self.package_name}{constraint}"


class Request:
    """Directives handed to the solver.

    Names are case-insensitive. Adding a second directive for a name raises
    DuplicateDirectiveError instead of overwriting the first one.
    """

    def __init__(self) -> None:
        self._jobs: Dict[str, Job] = {}
        self.update_all = False

    def install(self, name: str, constraint: Optional[Constraint] = None) -> None:
        self._add("install", name, constraint)

    def remove(self, name: str, constraint: Optional[Constraint] = None) -> None:
        self._add("remove", name, constraint)

    def set_update_all(self) -> None:
        self.update_all = True

    def _add(self, cmd: str, name: str, constraint: Optional[Constraint]) -> None:
        key = name.lower()
        if key in self._jobs:
            raise DuplicateDirectiveError(
                f'Request already holds "{self._jobs[key]}", refusing to add "{cmd} {key}"'
            )
        self._jobs[key] = Job(cmd, key, constraint)

    @property
    def jobs(self) -> List[Job]:
        return list(self._jobs.values())

    def get(self, name: str) -> Optional[Job]:
        return self._jobs.get(name.lower())

    def has(self, name: str) -> bool:
        return name.lower() in self._jobs

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def __iter__(self) -> Iterator[Job]:
        return iter(self.jobs)

    def __len__(self) -> int:
        return len(self._jobs)
