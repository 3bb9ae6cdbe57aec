"""Tests for the depsync command line."""

import json
from unittest.mock import MagicMock, patch

import pytest

from args import parse_args
from constants import ExitCodes
from depsync import run
from installer.errors import UnsatisfiableRequestError


class TestArgParsing:
    """Options and defaults."""

    def test_defaults(self):
        ns = parse_args(["install"])
        assert ns.action == "install"
        assert ns.packages == []
        assert ns.WORKING_DIR == "."
        assert ns.LOG_LEVEL == "INFO"
        assert not ns.DRY_RUN and not ns.NO_DEV and not ns.NO_SCRIPTS

    def test_update_with_packages(self):
        ns = parse_args(["update", "acme/*", "b/b", "--dry-run", "--no-dev", "-d", "/tmp/proj"])
        assert ns.packages == ["acme/*", "b/b"]
        assert ns.DRY_RUN and ns.NO_DEV
        assert ns.WORKING_DIR == "/tmp/proj"

    def test_prefer_flags_are_exclusive(self):
        with pytest.raises(SystemExit):
            parse_args(["install", "--prefer-source", "--prefer-dist"])

    def test_unknown_action(self):
        with pytest.raises(SystemExit):
            parse_args(["remove"])


class TestRun:
    """Exit codes and installer configuration."""

    def test_packages_only_with_update(self):
        """Test that install rejects package names."""
        assert run(parse_args(["install", "a/a"])) == ExitCodes.FILE_ERROR.value

    def test_missing_manifest(self, tmp_path):
        """Test that a directory without a manifest is a file error."""
        assert run(parse_args(["install", "-d", str(tmp_path)])) == ExitCodes.FILE_ERROR.value

    def test_invalid_manifest(self, tmp_path):
        """Test that an unreadable manifest is a file error."""
        (tmp_path / "depsync.json").write_text("{not json", encoding="utf-8")
        assert run(parse_args(["install", "-d", str(tmp_path)])) == ExitCodes.FILE_ERROR.value

    @patch("depsync.create_installer")
    def test_flags_configure_installer(self, mock_create):
        """Test that CLI flags reach the installer setters."""
        installer = MagicMock()
        installer.set_prefer_source.return_value = installer
        mock_create.return_value = installer
        code = run(parse_args(["update", "a/a", "--no-dev", "--no-scripts", "--prefer-source"]))
        assert code == ExitCodes.SUCCESS.value
        installer.set_dev_mode.assert_called_once_with(False)
        installer.set_run_scripts.assert_called_once_with(False)
        installer.set_update.assert_called_once_with(True)
        installer.set_update_whitelist.assert_called_once_with(["a/a"])
        installer.set_prefer_source.assert_called_once_with(True)
        installer.run.assert_called_once_with()

    @patch("depsync.create_installer")
    def test_install_failure_exit_code(self, mock_create):
        """Test that installer errors map to INSTALL_FAILED."""
        installer = MagicMock()
        installer.run.side_effect = UnsatisfiableRequestError(ValueError("no match"))
        mock_create.return_value = installer
        assert run(parse_args(["install"])) == ExitCodes.INSTALL_FAILED.value

    def test_end_to_end(self, tmp_path):
        """Test a real install of a metapackage through the CLI."""
        (tmp_path / "packages.json").write_text(json.dumps({"packages": [
            {"name": "a/a", "version": "1.0.0", "type": "metapackage"},
        ]}), encoding="utf-8")
        (tmp_path / "depsync.json").write_text(json.dumps({
            "name": "acme/app",
            "require": {"a/a": "^1.0"},
            "repositories": [{"type": "file", "url": "packages.json"}],
        }), encoding="utf-8")
        assert run(parse_args(["install", "-d", str(tmp_path)])) == ExitCodes.SUCCESS.value
        assert (tmp_path / "depsync.lock").exists()
        assert (tmp_path / "vendor" / "depsync" / "installed.json").exists()
