"""Tests for the default solver."""

import pytest

from installer.request_builder import RequestBuilder
from packages.models import PackageLinks
from repository.base import ArrayRepository, CompositeRepository
from repository.installed import InstalledArrayRepository
from resolver.policy import DefaultPolicy
from resolver.pool import Pool
from resolver.solver import Solver, SolverProblemsError


def _solve(root, local, remote, platform_repo, update_all=False, links=None, removals=()):
    installed_root = root.clone()
    installed_root.set_links(PackageLinks(provides=root.provides, replaces=root.replaces))
    installed = CompositeRepository([local, InstalledArrayRepository([installed_root]), platform_repo])
    pool = Pool(root.minimum_stability, root.stability_flags)
    pool.add_repository(installed)
    pool.add_repository(remote)
    request = RequestBuilder(pool, root, platform_repo).build(
        links=root.requires if links is None else links, removals=removals, update_all=update_all,
    )
    return Solver(DefaultPolicy(), pool, installed).solve(request)


def _describe(operations):
    return [str(op) for op in operations]


class TestSolver:
    """Operations produced for common situations."""

    def test_fresh_install_orders_dependencies_first(self, make_root, make_package, platform_repo):
        """Test that dependencies are installed before their dependents."""
        root = make_root(require={"a/a": "^1.0"})
        remote = ArrayRepository([
            make_package("a/a", "1.0.0", require={"b/b": "^2.0"}),
            make_package("a/a", "1.1.0", require={"b/b": "^2.0"}),
            make_package("b/b", "2.0.0"),
            make_package("b/b", "2.3.0"),
        ])
        operations = _solve(root, InstalledArrayRepository(), remote, platform_repo)
        assert _describe(operations) == ["Installing b/b (2.3.0)", "Installing a/a (1.1.0)"]

    def test_installed_package_is_kept_without_update(self, make_root, make_package, platform_repo):
        """Test that a satisfying installed version is kept when not updating."""
        root = make_root(require={"a/a": "^1.0"})
        local = InstalledArrayRepository([make_package("a/a", "1.0.0")])
        remote = ArrayRepository([make_package("a/a", "1.0.0"), make_package("a/a", "1.5.0")])
        assert _solve(root, local, remote, platform_repo) == []

    def test_update_all_moves_to_newest(self, make_root, make_package, platform_repo):
        """Test that update_all picks the newest candidate."""
        root = make_root(require={"a/a": "^1.0"})
        local = InstalledArrayRepository([make_package("a/a", "1.0.0")])
        remote = ArrayRepository([make_package("a/a", "1.0.0"), make_package("a/a", "1.5.0")])
        operations = _solve(root, local, remote, platform_repo, update_all=True)
        assert _describe(operations) == ["Updating a/a (1.0.0) to a/a (1.5.0)"]

    def test_unrequired_packages_are_uninstalled(self, make_root, make_package, platform_repo):
        """Test that installed packages nobody requires are removed."""
        root = make_root(require={})
        local = InstalledArrayRepository([make_package("old/pkg", "1.0.0")])
        operations = _solve(root, local, ArrayRepository(), platform_repo)
        assert _describe(operations) == ["Uninstalling old/pkg (1.0.0)"]
        assert operations[0].job_type == "uninstall"

    def test_platform_and_root_are_never_touched(self, make_root, platform_repo):
        """Test that pinned platform and root packages produce no operations."""
        root = make_root(require={"python": ">=3.9"})
        assert _solve(root, InstalledArrayRepository(), ArrayRepository(), platform_repo, update_all=True) == []

    def test_later_requirement_narrows_earlier_choice(self, make_root, make_package, platform_repo):
        """Test that a requirement seen later still constrains the decided version."""
        root = make_root(require={"b/b": "*", "a/a": "*"})
        remote = ArrayRepository([
            make_package("a/a", "1.0.0", require={"b/b": "<2.0"}),
            make_package("b/b", "1.0.0"),
            make_package("b/b", "2.0.0"),
        ])
        operations = _solve(root, InstalledArrayRepository(), remote, platform_repo)
        assert "Installing b/b (1.0.0)" in _describe(operations)

    def test_missing_package_is_a_problem(self, make_root, platform_repo):
        """Test that an unknown requirement raises SolverProblemsError."""
        root = make_root(require={"nope/nope": "^1.0"})
        with pytest.raises(SolverProblemsError) as excinfo:
            _solve(root, InstalledArrayRepository(), ArrayRepository(), platform_repo)
        assert "nope/nope" in excinfo.value.problems[0]

    def test_unsatisfiable_platform_requirement(self, make_root, platform_repo):
        """Test that a platform requirement the platform does not meet fails."""
        root = make_root(require={"python": ">=4.0"})
        with pytest.raises(SolverProblemsError):
            _solve(root, InstalledArrayRepository(), ArrayRepository(), platform_repo)

    def test_conflicts_are_reported(self, make_root, make_package, platform_repo):
        """Test that declared conflicts between selected packages fail."""
        root = make_root(require={"a/a": "*", "b/b": "*"})
        remote = ArrayRepository([
            make_package("a/a", "1.0.0", conflict={"b/b": "<2.0"}),
            make_package("b/b", "1.0.0"),
        ])
        with pytest.raises(SolverProblemsError):
            _solve(root, InstalledArrayRepository(), remote, platform_repo)

    def test_removed_version_is_replaced_when_still_required(self, make_root, make_package, platform_repo):
        """Test that a removal of a still-required package selects another version."""
        root = make_root(require={"a/a": "*"})
        beta = make_package("a/a", "1.1.0-beta1")
        local = InstalledArrayRepository([beta])
        remote = ArrayRepository([make_package("a/a", "1.0.0")])
        operations = _solve(root, local, remote, platform_repo, removals=[beta])
        assert _describe(operations) == ["Updating a/a (1.1.0-beta1) to a/a (1.0.0)"]
