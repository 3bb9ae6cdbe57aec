"""Platform facts exposed as packages.

The interpreter, available extension modules and a few linked libraries are
presented as packages so requirements such as ``python: >=3.9`` or
``ext-sqlite3: *`` can be checked by the solver. They can never be
installed or removed.
"""

from __future__ import annotations

import importlib.util
import logging
import sys
from typing import Mapping, Optional

from packages.models import Package
from versioning.parser import normalize_version

from .base import ArrayRepository

logger = logging.getLogger(__name__)

# Extension modules reported as ext-<name> when importable
EXTENSION_MODULES = ("ssl", "sqlite3", "zlib", "bz2", "lzma", "ctypes", "curses", "readline", "json", "hashlib")


class PlatformRepository(ArrayRepository):
    """Packages describing the running platform."""

    is_installed = True

    def __init__(self, overrides: Optional[Mapping[str, Optional[str]]] = None, detect: bool = True):
        """Initialize the platform repository.

        Args:
            overrides: name -> version replacing or adding platform packages;
                a None version removes the package.
            detect: Whether to inspect the running interpreter.
        """
        self._overrides = {k.lower(): v for k, v in (overrides or {}).items()}
        self._detect = detect
        super().__init__()

    def _initialize(self) -> None:
        self._packages = []
        detected = self._detect_platform() if self._detect else {}
        detected.update(self._overrides)
        for name, pretty_version in detected.items():
            if pretty_version is None:
                continue
            try:
                version = normalize_version(pretty_version)
            except ValueError:
                logger.debug("Skipping platform package %s with unparsable version %s", name, pretty_version)
                continue
            self.add_package(Package(name, version, pretty_version))

    def _detect_platform(self) -> dict:
        python_version = ".".join(str(p) for p in sys.version_info[:3])
        facts = {"python": python_version}
        if sys.maxsize > 2 ** 32:
            facts["python-64bit"] = python_version
        for module in EXTENSION_MODULES:
            if importlib.util.find_spec(module) is not None:
                facts[f"ext-{module}"] = python_version
        if importlib.util.find_spec("ssl") is not None:
            import ssl  # pylint: disable=import-outside-toplevel
            facts["lib-openssl"] = ".".join(str(p) for p in ssl.OPENSSL_VERSION_INFO[:3])
        if importlib.util.find_spec("sqlite3") is not None:
            import sqlite3  # pylint: disable=import-outside-toplevel
            facts["lib-sqlite"] = sqlite3.sqlite_version
        return facts
