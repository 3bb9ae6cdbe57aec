"""Repositories backed by a ``packages.json`` index.

The index maps package names to version entries::

    {"packages": {"acme/log": {"1.0.0": {"name": "acme/log", "version": "1.0.0", ...}}}}

A plain list of package dictionaries under "packages" is accepted as well.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from common.http_client import get_json
from common.json_file import JsonFile
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from packages.loader import load_package

from .base import ArrayRepository

logger = logging.getLogger(__name__)


def _iter_entries(data: Any, origin: str) -> Iterable[Mapping[str, Any]]:
    if not isinstance(data, Mapping) or "packages" not in data:
        raise ValueError(f"{origin} is not a valid package index: missing 'packages'")
    packages = data["packages"]
    if isinstance(packages, list):
        yield from packages
        return
    for name, versions in packages.items():
        for pretty_version, entry in (versions or {}).items():
            merged = dict(entry)
            merged.setdefault("name", name)
            merged.setdefault("version", pretty_version)
            yield merged


class IndexRepository(ArrayRepository):
    """Base for repositories reading a package index on first access."""

    def __init__(self, url: str):
        self.url = url
        super().__init__()

    def _load_index(self) -> Any:  # pragma: no cover - abstract
        raise NotImplementedError

    def _initialize(self) -> None:
        self._packages = []
        data = self._load_index()
        for entry in _iter_entries(data, self.url):
            try:
                self.add_package(load_package(entry))
            except ValueError as exc:
                logger.warning("Skipping invalid package entry in %s: %s", safe_url(self.url), exc)
        if is_debug_enabled(logger):
            logger.debug(
                "Loaded package index",
                extra=extra_context(
                    event="index_loaded",
                    component="repository",
                    action="initialize",
                    target=safe_url(self.url),
                    count=len(self._packages),
                )
            )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {safe_url(self.url)}>"


class FileIndexRepository(IndexRepository):
    """Index stored in a local JSON file."""

    def _load_index(self) -> Any:
        return JsonFile(self.url).read()


class HttpRepository(IndexRepository):
    """Index served over HTTP(S) at ``<url>/packages.json``."""

    def _index_url(self) -> str:
        if self.url.endswith(".json"):
            return self.url
        return self.url.rstrip("/") + "/packages.json"

    def _load_index(self) -> Any:
        index_url = self._index_url()
        status_code, _, data = get_json(index_url)
        if status_code != 200 or data is None:
            raise IOError(f"Could not load package index {safe_url(index_url)} (HTTP {status_code})")
        return data
