"""Errors raised by an install run."""

from __future__ import annotations

from typing import Optional

from packages.models import Package


class InstallerError(Exception):
    """Base class for fatal install run errors."""


class UnsatisfiableRequestError(InstallerError):
    """The solver found no consistent operation list. Nothing was changed."""

    def __init__(self, problems_error: Exception):
        self.problems = list(getattr(problems_error, "problems", []))
        super().__init__(str(problems_error))


class OperationError(InstallerError):
    """An operation failed; earlier operations stay applied and persisted."""

    kind = "Operation"

    def __init__(self, index: int, package: Package, cause: Optional[BaseException] = None):
        self.index = index
        self.package = package
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{self.kind} {index} ({package.pretty_string}) failed{detail}")


class HookFailureError(OperationError):
    """A pre or post package hook failed."""

    kind = "Hook for operation"


class MaterializationError(OperationError):
    """Downloading, copying or removing a package failed."""

    kind = "Operation"


class IncompleteLockError(InstallerError):
    """A dev install was requested from a lock written without dev packages."""
