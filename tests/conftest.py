"""Shared fixtures for the depsync tests."""

import json

import pytest

from packages.loader import load_package, load_root_package
from repository.platform import PlatformRepository


def _package(name, version="1.0.0", **data):
    entry = {"name": name, "version": version}
    for key, value in data.items():
        entry[key.replace("_", "-")] = value
    return load_package(entry)


@pytest.fixture
def make_package():
    """Build a Package from keyword data, e.g. require={"b/b": "^1.0"}."""
    return _package


@pytest.fixture
def make_root():
    """Build a RootPackage from a manifest dict."""
    def _root(**data):
        manifest = {"name": "acme/app", "version": "1.0.0"}
        for key, value in data.items():
            manifest[key.replace("_", "-")] = value
        return load_root_package(manifest)
    return _root


@pytest.fixture
def platform_repo():
    """Platform with a fixed interpreter version and no detection."""
    return PlatformRepository(overrides={"python": "3.11.4"}, detect=False)


@pytest.fixture
def write_index(tmp_path):
    """Write a packages.json index of package dicts and return its path."""
    def _write(*entries, name="packages.json"):
        path = tmp_path / name
        path.write_text(json.dumps({"packages": list(entries)}), encoding="utf-8")
        return str(path)
    return _write
