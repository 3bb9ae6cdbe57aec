"""Repository manager: the local store plus the configured package sources."""

from __future__ import annotations

import logging
import os
from typing import Any, Iterable, List, Mapping, Optional

from .base import ArrayRepository
from .index import FileIndexRepository, HttpRepository
from .installed import InstalledArrayRepository

logger = logging.getLogger(__name__)

REPOSITORY_TYPES = {
    "http": HttpRepository,
    "file": FileIndexRepository,
}


class RepositoryManager:
    """Holds the local repository and the remote (non-local) repositories."""

    def __init__(self, local_repository: Optional[InstalledArrayRepository] = None,
                 repositories: Optional[Iterable[ArrayRepository]] = None):
        self.local_repository = local_repository if local_repository is not None else InstalledArrayRepository()
        self._repositories: List[ArrayRepository] = list(repositories or [])

    @property
    def repositories(self) -> List[ArrayRepository]:
        return list(self._repositories)

    def add_repository(self, repository: ArrayRepository) -> None:
        self._repositories.append(repository)

    def set_local_repository(self, repository: InstalledArrayRepository) -> None:
        self.local_repository = repository

    def create_repository(self, config: Mapping[str, Any], base_dir: str = ".") -> ArrayRepository:
        """Build a repository from a ``{"type": ..., "url": ...}`` entry.

        Raises:
            ValueError: For unknown types or a missing url.
        """
        repo_type = str(config.get("type", "")).lower()
        if repo_type not in REPOSITORY_TYPES:
            raise ValueError(f'Unknown repository type "{repo_type}", expected one of {sorted(REPOSITORY_TYPES)}')
        url = config.get("url")
        if not url:
            raise ValueError(f"Repository of type {repo_type} requires a url")
        if repo_type == "file" and not os.path.isabs(url):
            url = os.path.join(base_dir, url)
        logger.debug("Configured %s repository %s", repo_type, url)
        return REPOSITORY_TYPES[repo_type](url)
