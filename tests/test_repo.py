"""Tests for releasewright.repo."""

from __future__ import annotations

from pathlib import Path

import pytest

from releasewright.context import ReleaseContext
from releasewright.errors import ConfigurationError, PreconditionError
from releasewright.repo import (
    current_branch_status,
    has_upstream,
    is_working_copy_clean,
    parse_branch_listing,
    resolve_stable_branch,
)
from conftest import git, requires_git

LISTING = """\
* develop  1a2b3c4 [ahead 2, behind 1] adds feature
  main     5d6e7f8 1.2.0: first public release
+ docs     9a8b7c6 [behind 3] fixes typo
  old      0f0f0f0 [gone] removed upstream
"""


class TestParseBranchListing:
    def test_parses_all_lines(self) -> None:
        branches = parse_branch_listing(LISTING)
        assert [b.name for b in branches] == ["develop", "main", "docs", "old"]

    def test_current_marker(self) -> None:
        branches = parse_branch_listing(LISTING)
        assert [b.is_current for b in branches] == [True, False, False, False]

    def test_ahead_and_behind(self) -> None:
        develop, main, docs, old = parse_branch_listing(LISTING)
        assert (develop.ahead, develop.behind) == (2, 1)
        assert main.in_sync
        assert (docs.ahead, docs.behind) == (0, 3)
        assert old.in_sync

    def test_detached_head(self) -> None:
        output = "* (HEAD detached at v1.2.0) 5d6e7f8 1.2.0: first public release\n"
        (branch,) = parse_branch_listing(output)
        assert branch.name == "(HEAD detached at v1.2.0)"
        assert branch.is_current

    def test_ignores_noise(self) -> None:
        assert parse_branch_listing("\nnot a branch line\n") == []


class TestCurrentBranchStatus:
    def test_returns_current(self, mock_ctx) -> None:
        ctx = mock_ctx(git_output=lambda args: LISTING)
        assert current_branch_status(ctx).name == "develop"

    def test_detached_fails(self, mock_ctx) -> None:
        ctx = mock_ctx(git_output=lambda args: "* (no branch) 5d6e7f8 subject\n")
        with pytest.raises(PreconditionError):
            current_branch_status(ctx)


class TestResolveStableBranch:
    def test_prefers_main(self, mock_ctx) -> None:
        ctx = mock_ctx(git_output=lambda args: "develop\nmaster\nmain\n")
        assert resolve_stable_branch(ctx) == "main"

    def test_falls_back_to_master(self, mock_ctx) -> None:
        ctx = mock_ctx(git_output=lambda args: "develop\nmaster\n")
        assert resolve_stable_branch(ctx) == "master"

    def test_missing(self, mock_ctx) -> None:
        ctx = mock_ctx(git_output=lambda args: "develop\n")
        with pytest.raises(ConfigurationError, match="no stable branch"):
            resolve_stable_branch(ctx)

    def test_memoized(self, mock_ctx) -> None:
        ctx = mock_ctx(git_output=lambda args: "main\n")
        resolve_stable_branch(ctx)
        resolve_stable_branch(ctx)
        assert ctx.executor.git.call_count == 1
        assert ctx.stable_branch == "main"


@requires_git
class TestWithGit:
    def test_clean_after_commit(self, repo: Path) -> None:
        assert is_working_copy_clean(ReleaseContext(repo))

    def test_untracked_file_is_dirty(self, repo: Path) -> None:
        (repo / "notes.txt").write_text("todo\n")
        assert not is_working_copy_clean(ReleaseContext(repo))

    def test_modified_file_is_dirty(self, repo: Path) -> None:
        (repo / "CHANGELOG.md").write_text("changed\n")
        assert not is_working_copy_clean(ReleaseContext(repo))

    def test_upstream_detection(self, release_repo: Path) -> None:
        git(release_repo, "checkout", "-q", "-b", "dev-local")
        ctx = ReleaseContext(release_repo)
        assert has_upstream(ctx, "develop")
        assert not has_upstream(ctx, "dev-local")

    def test_current_branch(self, release_repo: Path) -> None:
        status = current_branch_status(ReleaseContext(release_repo))
        assert status.name == "develop"
        assert status.in_sync
