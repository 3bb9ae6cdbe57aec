"""End-to-end tests for install and update runs on a temporary project."""

import json

import pytest

from config import Config
from constants import ScriptEvents
from factory import create_installer
from installer.errors import UnsatisfiableRequestError
from repository.installed import InstalledFilesystemRepository


def _meta(name, version, **data):
    entry = {"name": name, "version": version, "type": "metapackage"}
    for key, value in data.items():
        entry[key.replace("_", "-")] = value
    return entry


@pytest.fixture
def project(tmp_path):
    """A project with a file index; returns helpers to edit it and build installers."""
    vendored = tmp_path / "src-c"
    vendored.mkdir()
    (vendored / "README").write_text("c/c contents", encoding="utf-8")

    class _Project:
        path = tmp_path
        store = tmp_path / "vendor" / "depsync" / "installed.json"
        lock = tmp_path / "depsync.lock"

        def manifest(self, **data):
            manifest = {
                "name": "acme/app",
                "repositories": [{"type": "file", "url": "packages.json"}],
            }
            manifest.update(data)
            (tmp_path / "depsync.json").write_text(json.dumps(manifest, indent=2), encoding="utf-8")

        def index(self, *entries):
            (tmp_path / "packages.json").write_text(json.dumps({"packages": list(entries)}), encoding="utf-8")

        def installer(self):
            config = Config(str(tmp_path))
            config.merge({"platform": {"python": "3.11.4"}})
            return create_installer(str(tmp_path), config=config)

        def stored(self):
            return sorted((p["name"], p["version"]) for p in json.loads(self.store.read_text(encoding="utf-8")))

        def locked(self):
            return [(p["name"], p["version"]) for p in json.loads(self.lock.read_text(encoding="utf-8"))["packages"]]

    proj = _Project()
    proj.vendored = vendored
    proj.index(
        _meta("a/a", "1.0.0", require={"b/b": "^1.0"}),
        _meta("b/b", "1.0.0"),
        {"name": "c/c", "version": "2.0.0", "dist": {"type": "path", "url": str(vendored)}},
    )
    proj.manifest(require={"a/a": "^1.0", "c/c": "^2.0", "python": ">=3.9"})
    return proj


class TestFactory:
    """Wiring done by create_installer."""

    def test_local_store_is_on_disk_before_first_install(self, project):
        """Test that a project without a store file still gets the filesystem store."""
        assert not project.store.exists()
        local_repo = project.installer().repository_manager.local_repository
        assert isinstance(local_repo, InstalledFilesystemRepository)
        assert local_repo.file.path == str(project.store)
        assert len(local_repo) == 0


class TestInstall:
    """Installing without a lock and from a lock."""

    def test_fresh_install_writes_store_and_lock(self, project):
        """Test that a first install materializes packages and writes the lock."""
        report = project.installer().run()
        assert [str(op) for op in report.operations] == [
            "Installing b/b (1.0.0)",
            "Installing a/a (1.0.0)",
            "Installing c/c (2.0.0)",
        ]
        assert report.lock_updated
        assert project.stored() == [("a/a", "1.0.0"), ("b/b", "1.0.0"), ("c/c", "2.0.0")]
        assert project.locked() == [("a/a", "1.0.0"), ("b/b", "1.0.0"), ("c/c", "2.0.0")]
        assert (project.path / "vendor" / "c" / "c" / "README").read_text(encoding="utf-8") == "c/c contents"

    def test_second_install_is_a_no_op(self, project):
        """Test that installing again from the lock changes nothing."""
        project.installer().run()
        lock_before = project.lock.read_text(encoding="utf-8")
        report = project.installer().run()
        assert report.operations == []
        assert not report.lock_updated
        assert report.warnings == []
        assert project.lock.read_text(encoding="utf-8") == lock_before

    def test_install_from_lock_ignores_newer_versions(self, project):
        """Test that locked versions are installed even when newer ones exist."""
        project.installer().run()
        project.store.unlink()
        project.index(
            _meta("a/a", "1.0.0", require={"b/b": "^1.0"}),
            _meta("a/a", "1.9.0", require={"b/b": "^1.0"}),
            _meta("b/b", "1.0.0"),
            _meta("b/b", "1.5.0"),
        )
        report = project.installer().run()
        assert "Installing a/a (1.0.0)" in [str(op) for op in report.operations]
        assert ("b/b", "1.0.0") in project.stored()

    def test_stale_lock_warns(self, project):
        """Test that a manifest change after locking produces a warning."""
        project.installer().run()
        project.manifest(require={"a/a": "^1.0", "c/c": "^2.0", "python": ">=3.9"}, description="changed")
        report = project.installer().run()
        assert len(report.warnings) == 1
        assert "not up to date" in report.warnings[0]

    def test_unsatisfiable_changes_nothing(self, project):
        """Test that a conflict raises before any file is written."""
        project.manifest(require={"a/a": "^9.0"})
        with pytest.raises(UnsatisfiableRequestError) as excinfo:
            project.installer().run()
        assert excinfo.value.problems
        assert not project.store.exists()
        assert not project.lock.exists()

    def test_dry_run_is_repeatable_and_writes_nothing(self, project):
        """Test that two dry runs report the same operations and touch no file."""
        first = project.installer().set_dry_run().run()
        second = project.installer().set_dry_run().run()
        assert [str(op) for op in first.operations] == [str(op) for op in second.operations]
        assert len(first.operations) == 3
        assert not project.store.exists()
        assert not project.lock.exists()
        assert not (project.path / "vendor").exists()

    def test_command_events(self, project):
        """Test that pre and post install command events are dispatched."""
        installer = project.installer()
        seen = []
        installer.event_dispatcher.add_listener(ScriptEvents.PRE_INSTALL_CMD, lambda e: seen.append(e.name))
        installer.event_dispatcher.add_listener(ScriptEvents.POST_INSTALL_CMD, lambda e: seen.append(e.name))
        installer.run()
        assert seen == ["pre-install-cmd", "post-install-cmd"]


class TestUpdate:
    """Full and partial updates."""

    @pytest.fixture
    def newer(self, project):
        """Install, then publish newer versions of a/a and b/b."""
        project.installer().run()
        project.index(
            _meta("a/a", "1.0.0", require={"b/b": "^1.0"}),
            _meta("a/a", "1.1.0", require={"b/b": "^1.0"}),
            _meta("b/b", "1.0.0"),
            _meta("b/b", "1.2.0"),
            {"name": "c/c", "version": "2.0.0", "dist": {"type": "path", "url": str(project.vendored)}},
        )
        return project

    def test_full_update(self, newer):
        """Test that update moves every package to its newest version."""
        report = newer.installer().set_update().run()
        assert sorted(str(op) for op in report.operations) == [
            "Updating a/a (1.0.0) to a/a (1.1.0)",
            "Updating b/b (1.0.0) to b/b (1.2.0)",
        ]
        assert ("a/a", "1.1.0") in newer.locked()
        assert ("b/b", "1.2.0") in newer.locked()

    def test_whitelisted_update_expands_to_dependencies(self, newer):
        """Test that whitelisting a/a also allows its dependency b/b to move."""
        report = newer.installer().set_update().set_update_whitelist(["a/a"]).run()
        assert len(report.operations) == 2
        assert ("b/b", "1.2.0") in newer.stored()

    def test_whitelist_pins_other_packages(self, newer):
        """Test that packages outside the whitelist keep their locked version."""
        newer.manifest(require={"a/a": "^1.0", "b/b": "^1.0", "c/c": "^2.0", "python": ">=3.9"})
        report = newer.installer().set_update().set_update_whitelist(["a/a"]).run()
        assert [str(op) for op in report.operations] == ["Updating a/a (1.0.0) to a/a (1.1.0)"]
        assert ("b/b", "1.0.0") in newer.locked()

    def test_unknown_whitelist_entry_warns(self, newer):
        """Test that a whitelist entry matching nothing is reported."""
        report = newer.installer().set_update().set_update_whitelist(["nope/nope"]).run()
        assert report.warnings == ['Package "nope/nope" listed for update is not installed. Ignoring.']
        assert report.operations == []
