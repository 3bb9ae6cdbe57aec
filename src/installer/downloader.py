"""Fetching package contents into a target directory."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tarfile
import tempfile
import zipfile

from common.http_client import download_file
from common.logging_utils import Timer, extra_context, is_debug_enabled, safe_url
from packages.models import Package

logger = logging.getLogger(__name__)


class DownloadError(RuntimeError):
    """Package contents could not be fetched."""


def _extract_tar(archive: str, target_dir: str) -> None:
    """Extract a tar dist, refusing members that would land outside target_dir."""
    root = os.path.realpath(target_dir)
    with tarfile.open(archive) as tf:
        for member in tf.getmembers():
            destination = os.path.realpath(os.path.join(root, member.name))
            if os.path.commonpath([root, destination]) != root:
                raise DownloadError(f'Archive member "{member.name}" escapes the target directory')
            if member.issym() or member.islnk():
                base = root if member.islnk() else os.path.dirname(destination)
                link = os.path.realpath(os.path.join(base, member.linkname))
                if os.path.commonpath([root, link]) != root:
                    raise DownloadError(f'Archive link "{member.name}" points outside the target directory')
            elif not (member.isfile() or member.isdir()):
                raise DownloadError(f'Archive member "{member.name}" is not a regular file or directory')
        # extraction filters only exist on 3.9.17+, 3.10.12+ and 3.11.4+
        if hasattr(tarfile, "data_filter"):
            tf.extractall(target_dir, filter="data")
        else:
            tf.extractall(target_dir)


class DownloadManager:
    """Chooses between a package's source and dist and fetches it.

    Dev packages default to their source checkout, releases to their dist,
    unless prefer_source or prefer_dist says otherwise.
    """

    def __init__(self, prefer_source: bool = False, prefer_dist: bool = False, process_timeout: int = 300):
        self.prefer_source = prefer_source
        self.prefer_dist = prefer_dist
        self.process_timeout = process_timeout

    def installation_source(self, package: Package) -> str:
        has_source = bool(package.source_type)
        has_dist = bool(package.dist_type)
        if not has_source and not has_dist:
            raise DownloadError(f"Package {package.pretty_string} has no source or dist to install from")
        if (self.prefer_source and has_source) or not has_dist:
            return "source"
        if self.prefer_dist or not package.is_dev or not has_source:
            return "dist"
        return "source"

    def download(self, package: Package, target_dir: str) -> None:
        """Place the package contents in target_dir, replacing what is there."""
        source = self.installation_source(package)
        with Timer() as timer:
            if os.path.isdir(target_dir):
                shutil.rmtree(target_dir)
            parent = os.path.dirname(target_dir)
            if parent:
                os.makedirs(parent, exist_ok=True)
            if source == "source":
                self._download_source(package, target_dir)
            else:
                self._download_dist(package, target_dir)

        logger.info("  - Installed %s from %s", package.pretty_string, source)
        if is_debug_enabled(logger):
            logger.debug(
                "Downloaded package",
                extra=extra_context(
                    event="download",
                    component="downloader",
                    action=source,
                    target=package.name,
                    duration_ms=timer.duration_ms(),
                )
            )

    def _download_source(self, package: Package, target_dir: str) -> None:
        if package.source_type != "git":
            raise DownloadError(f'Unsupported source type "{package.source_type}" for {package.pretty_string}')
        self._git("clone", "--no-checkout", package.source_url, target_dir)
        reference = package.source_reference or "HEAD"
        self._git("checkout", "--quiet", reference, cwd=target_dir)

    def _git(self, *args: str, cwd=None) -> None:
        command = ["git", *args]
        completed = subprocess.run(
            command, cwd=cwd, capture_output=True, text=True, timeout=self.process_timeout or None, check=False,
        )
        if completed.returncode != 0:
            raise DownloadError(f"{' '.join(command)} failed: {completed.stderr.strip()}")

    def _download_dist(self, package: Package, target_dir: str) -> None:
        dist_type = package.dist_type
        url = package.dist_url or ""
        if dist_type == "path":
            path = url[len("file://"):] if url.startswith("file://") else url
            if os.path.isdir(path):
                shutil.copytree(path, target_dir)
            elif os.path.isfile(path):
                os.makedirs(target_dir, exist_ok=True)
                shutil.copy2(path, target_dir)
            else:
                raise DownloadError(f"Path {path} for {package.pretty_string} does not exist")
            return

        if dist_type not in ("zip", "tar"):
            raise DownloadError(f'Unsupported dist type "{dist_type}" for {package.pretty_string}')

        with tempfile.TemporaryDirectory() as tmp:
            archive = os.path.join(tmp, "archive")
            if url.startswith(("http://", "https://")):
                logger.debug("Downloading %s", safe_url(url))
                download_file(url, archive)
            else:
                shutil.copy2(url[len("file://"):] if url.startswith("file://") else url, archive)
            os.makedirs(target_dir, exist_ok=True)
            if dist_type == "zip":
                with zipfile.ZipFile(archive) as zf:
                    zf.extractall(target_dir)
            else:
                _extract_tar(archive, target_dir)
