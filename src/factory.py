"""Wiring an Installer for a project directory."""

from __future__ import annotations

import logging
import os
from typing import Optional

from common.json_file import JsonFile
from config import Config, load_config
from constants import Constants
from installer.downloader import DownloadManager
from installer.events import EventDispatcher
from installer.installation_manager import InstallationManager, LibraryInstaller
from installer.installer import Installer
from installer.lock import Locker
from packages.loader import load_root_package
from repository.installed import InstalledFilesystemRepository
from repository.manager import RepositoryManager
from repository.platform import PlatformRepository

logger = logging.getLogger(__name__)


def read_manifest(base_dir: str):
    """Return (raw contents, parsed manifest) of the project's manifest.

    Raises:
        FileNotFoundError: If there is no manifest.
        ValueError: If the manifest is not valid JSON.
    """
    manifest_file = JsonFile(os.path.join(base_dir, Constants.MANIFEST_FILE))
    if not manifest_file.exists():
        raise FileNotFoundError(f"No {Constants.MANIFEST_FILE} found in {os.path.abspath(base_dir)}")
    with open(manifest_file.path, "r", encoding="utf-8") as fh:
        contents = fh.read()
    return contents, manifest_file.read()


def create_installer(base_dir: str = ".", config_path: Optional[str] = None,
                     config: Optional[Config] = None) -> Installer:
    """Build an Installer from the manifest and configuration in base_dir."""
    contents, manifest = read_manifest(base_dir)
    root = load_root_package(manifest)
    if config is None:
        config = load_config(base_dir, root.config, config_path)

    vendor_dir = config.get_path("vendor-dir")
    local_repo = InstalledFilesystemRepository(
        os.path.join(vendor_dir, Constants.STATE_DIR, Constants.INSTALLED_FILE)
    )
    repository_manager = RepositoryManager(local_repo)
    for entry in root.repositories:
        repository_manager.add_repository(repository_manager.create_repository(entry, base_dir))

    download_manager = DownloadManager(
        prefer_source=config.get_bool("prefer-source"),
        prefer_dist=config.get_bool("prefer-dist"),
        process_timeout=config.get_int("process-timeout"),
    )
    installation_manager = InstallationManager()
    installation_manager.add_installer(LibraryInstaller(vendor_dir, download_manager))

    locker = Locker(JsonFile(os.path.join(base_dir, Constants.LOCK_FILE)), contents)
    dispatcher = EventDispatcher(root, config.get_int("process-timeout"), cwd=os.path.abspath(base_dir))
    platform_repo = PlatformRepository(overrides=config.get("platform") or {})

    logger.debug("Created installer for %s with vendor dir %s", root.pretty_name, vendor_dir)
    installer = Installer(
        config, root, repository_manager, locker, installation_manager, dispatcher,
        download_manager=download_manager, platform_repo=platform_repo,
    )
    installer.set_prefer_source(config.get_bool("prefer-source"))
    installer.set_prefer_dist(config.get_bool("prefer-dist"))
    return installer
