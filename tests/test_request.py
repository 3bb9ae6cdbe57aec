"""Tests for the solver request and RequestBuilder."""

import pytest

from installer.request_builder import RequestBuilder, alias_platform_packages
from packages.loader import load_links
from repository.platform import PlatformRepository
from resolver.pool import Pool
from resolver.request import DuplicateDirectiveError, Request
from versioning.constraints import exact


class TestRequest:
    """One directive per name."""

    def test_second_directive_for_a_name_is_rejected(self):
        """Test that adding a second directive raises instead of overwriting."""
        request = Request()
        request.install("acme/log", exact("1.0.0"))
        with pytest.raises(DuplicateDirectiveError):
            request.install("acme/log", exact("2.0.0"))
        with pytest.raises(DuplicateDirectiveError):
            request.remove("ACME/Log")
        assert len(request) == 1
        assert request.get("acme/log").constraint.version == "1.0.0"

    def test_duplicate_directive_is_a_value_error(self):
        """Test the error hierarchy callers can rely on."""
        assert issubclass(DuplicateDirectiveError, ValueError)

    def test_update_all_flag(self):
        """Test the global update flag."""
        request = Request()
        assert not request.update_all
        request.set_update_all()
        assert request.update_all

    def test_jobs_keep_insertion_order(self):
        """Test that jobs are returned in the order they were added."""
        request = Request()
        request.install("b/b")
        request.remove("a/a")
        assert [(j.cmd, j.package_name) for j in request.jobs] == [("install", "b/b"), ("remove", "a/a")]
        assert "B/B" in request


class TestRequestBuilder:
    """Root and platform pins plus folded directive sources."""

    def test_root_and_platform_are_pinned(self, make_root, platform_repo):
        """Test that the root and every platform package get exact pins."""
        root = make_root(version="2.1.0")
        request = RequestBuilder(Pool(), root, platform_repo).build()
        root_job = request.get("acme/app")
        assert root_job.cmd == "install"
        assert root_job.constraint.operator == "=="
        assert root_job.constraint.version == "2.1.0"
        assert root_job.constraint.pretty_string == "2.1.0"
        assert request.get("python").constraint.version == "3.11.4"

    def test_platform_provided_by_root_is_not_pinned(self, make_root, platform_repo):
        """Test that a matching root provide suppresses the platform pin."""
        root = make_root(provide={"python": "3.11.*"})
        request = RequestBuilder(Pool(), root, platform_repo).build()
        assert not request.has("python")

    def test_platform_provided_with_other_version_is_pinned(self, make_root, platform_repo):
        """Test that a non-matching root provide keeps the pin."""
        root = make_root(provide={"python": "2.7.*"})
        request = RequestBuilder(Pool(), root, platform_repo).build()
        assert request.has("python")

    def test_links_on_platform_names_are_merged(self, make_root, platform_repo):
        """Test that a requirement on a pinned platform name is ANDed with the pin."""
        root = make_root(require={"python": ">=3.9", "acme/log": "^1.0"})
        request = RequestBuilder(Pool(), root, platform_repo).build(links=root.requires)
        python = request.get("python").constraint
        assert python.matches(exact("3.11.4"))
        assert not python.matches(exact("3.12.0"))
        assert request.get("acme/log").constraint.pretty_string == "^1.0"

    def test_links_on_root_name_are_ignored(self, make_root, platform_repo):
        """Test that a link targeting the root does not replace its pin."""
        root = make_root()
        links = load_links("other/pkg", "requires", {"acme/app": "*"})
        request = RequestBuilder(Pool(), root, platform_repo).build(links=links)
        assert request.get("acme/app").constraint.version == "1.0.0"

    def test_pins_are_combined_with_links(self, make_root, platform_repo):
        """Test that a fixed pin and a link for one name become one directive."""
        root = make_root(require={"acme/log": "^1.0"})
        request = RequestBuilder(Pool(), root, platform_repo).build(
            links=root.requires, pins={"acme/log": exact("1.2.0")},
        )
        constraint = request.get("acme/log").constraint
        assert constraint.matches(exact("1.2.0"))
        assert not constraint.matches(exact("1.3.0"))

    def test_removals(self, make_root, make_package, platform_repo):
        """Test that removals become remove, or != when still required."""
        root = make_root(require={"acme/kept": "*"})
        kept = make_package("acme/kept", "1.0.0-beta1")
        dropped = make_package("acme/dropped", "2.0.0-alpha1")
        request = RequestBuilder(Pool(), root, platform_repo).build(
            links=root.requires, removals=[kept, dropped],
        )
        assert request.get("acme/dropped").cmd == "remove"
        kept_job = request.get("acme/kept")
        assert kept_job.cmd == "install"
        assert not kept_job.constraint.matches(exact(kept.version))
        assert kept_job.constraint.matches(exact("1.0.0"))

    def test_update_all(self, make_root, platform_repo):
        """Test that update_all is forwarded to the request."""
        request = RequestBuilder(Pool(), make_root(), platform_repo).build(update_all=True)
        assert request.update_all

    def test_aliased_platform_package_accepts_both_versions(self, make_root):
        """Test that a root alias on a platform package widens its pin."""
        platform = PlatformRepository(overrides={"ext-foo": "1.0.0"}, detect=False)
        alias_platform_packages(platform, {"ext-foo": {"1.0.0": {"alias": "2.0.0", "alias_normalized": "2.0.0"}}})
        request = RequestBuilder(Pool(), make_root(), platform).build()
        constraint = request.get("ext-foo").constraint
        assert constraint.matches(exact("1.0.0"))
        assert constraint.matches(exact("2.0.0"))
