"""Tests for releasewright.deps."""

from __future__ import annotations

from releasewright.deps import DEV, RUNTIME, dep_canonical_name, direct_dependencies, is_pinned
from releasewright.models import ProjectInfo


class TestDepCanonicalName:
    def test_simple_name(self) -> None:
        assert dep_canonical_name("requests") == "requests"

    def test_with_version_bound(self) -> None:
        assert dep_canonical_name("requests>=2.0,<3.0") == "requests"

    def test_with_extras(self) -> None:
        assert dep_canonical_name("requests[security]>=2.0") == "requests"

    def test_normalizes_underscores(self) -> None:
        assert dep_canonical_name("my_package>=1.0") == "my-package"

    def test_normalizes_case(self) -> None:
        assert dep_canonical_name("MyPackage>=1.0") == "mypackage"


class TestIsPinned:
    def test_exact_version(self) -> None:
        assert is_pinned("requests==2.31.0")

    def test_arbitrary_equality(self) -> None:
        assert is_pinned("requests===2.31.0")

    def test_lower_bound(self) -> None:
        assert not is_pinned("requests>=2.0")

    def test_wildcard(self) -> None:
        assert not is_pinned("requests==2.*")

    def test_unconstrained(self) -> None:
        assert not is_pinned("requests")


class TestDirectDependencies:
    def test_groups(self) -> None:
        project = ProjectInfo(
            name="demo",
            version="1.0.0",
            dependencies=["requests>=2.0", "Click==8.1.0"],
            dev_dependencies=["pytest>=8.0"],
        )
        assert direct_dependencies(project) == {
            "requests": ("requests>=2.0", RUNTIME),
            "click": ("Click==8.1.0", RUNTIME),
            "pytest": ("pytest>=8.0", DEV),
        }

    def test_runtime_wins_over_dev(self) -> None:
        project = ProjectInfo(
            name="demo",
            version="1.0.0",
            dependencies=["requests>=2.0"],
            dev_dependencies=["requests>=2.31"],
        )
        assert direct_dependencies(project)["requests"] == ("requests>=2.0", RUNTIME)

    def test_skips_invalid_entries(self) -> None:
        project = ProjectInfo(
            name="demo", version="1.0.0", dependencies=["not a requirement!!", "six"]
        )
        assert list(direct_dependencies(project)) == ["six"]
