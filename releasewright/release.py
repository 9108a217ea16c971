"""Release workflow: check → resolve → merge → bump → merge back → push.

The sequence is fixed:
1. Check the working copy is clean, a development branch is checked out
   and no branch is ahead of or behind its upstream
2. Optionally fast-forward the stable and development branches, then
   check again
3. Resolve the version to release
4. Merge the development branch into the stable branch (no fast-forward)
5. Bump [project].version, commit and tag on the stable branch
6. Merge the stable branch back into development and push everything

Steps 4 and 5 are the only ones that can leave the repository half done;
a failure there resets the stable branch to where it was before the merge
and returns to the development branch before the error is re-raised.
"""

from __future__ import annotations

import shlex
from enum import Enum

from .context import ReleaseContext
from .errors import PreconditionError
from .models import BranchStatus, ReleaseOutcome, ReleaseRequest, VersionInfo
from .repo import (
    branch_snapshot,
    current_branch_status,
    has_upstream,
    head_ref,
    is_working_copy_clean,
    resolve_stable_branch,
)
from .shell import info, step, warn
from .toml import set_project_version
from .versions import resolve


class ReleaseState(Enum):
    IDLE = "idle"
    PRECONDITIONS_CHECKED = "preconditions-checked"
    VERSION_RESOLVED = "version-resolved"
    MERGED = "merged"
    BUMPED = "bumped"
    COMPLETED = "completed"
    ROLLED_BACK = "rolled-back"


class ReleaseRun:
    """One pass through the release sequence.

    Not reentrant: create a new instance per release.

    Attributes:
        state: Last state reached.
        dev_branch: Development branch the release started from.
        version: Resolved versions, once known.
        pre_merge_ref: Commit the stable branch pointed to before the merge.
        tag: Tag created by the bump step.
    """

    def __init__(self, ctx: ReleaseContext, request: ReleaseRequest) -> None:
        self.ctx = ctx
        self.request = request
        self.state = ReleaseState.IDLE
        self.dev_branch: str | None = None
        self.version: VersionInfo | None = None
        self.pre_merge_ref: str | None = None
        self.tag: str | None = None

    @property
    def stable_branch(self) -> str:
        return resolve_stable_branch(self.ctx)

    @property
    def commit_message(self) -> str:
        assert self.version is not None
        return f"{self.version.next}: {self.request.message}"

    def planned_commands(self) -> list[list[str]]:
        """Commands the bump step issues after rewriting pyproject.toml."""
        assert self.version is not None
        return [
            ["git", "commit", "-am", self.commit_message],
            ["git", "tag", "-a", f"v{self.version.next}", "-m", self.commit_message],
        ]

    def check_preconditions(self) -> BranchStatus:
        """Verify the repository can be released from.

        Read-only; running it twice without changes gives the same answer.

        Returns:
            The checked out development branch.

        Raises:
            PreconditionError: On a dirty tree, a detached HEAD, a
                non-development branch or a branch out of sync with its
                upstream.
        """
        step("Checking local git repo status")

        if not is_working_copy_clean(self.ctx):
            raise PreconditionError(
                "Git repo dirty. Commit all changes before attempting release."
            )
        info("Working copy clean")

        current = current_branch_status(self.ctx)
        prefix = self.ctx.settings.dev_prefix
        if not current.name.startswith(prefix):
            raise PreconditionError(
                f"Release is done only from a development branch (name starting with {prefix!r})."
            )

        skewed = [b for b in branch_snapshot(self.ctx) if not b.in_sync]
        if skewed:
            details = ", ".join(f"{b.name} (+{b.ahead}/-{b.behind})" for b in skewed)
            raise PreconditionError(f"There are branches not in sync with upstream: {details}")

        info(f"Branch {current.name} correct")
        self.dev_branch = current.name
        self.state = ReleaseState.PRECONDITIONS_CHECKED
        return current

    def sync_branches(self) -> None:
        """Fast-forward the stable and development branches from upstream."""
        assert self.dev_branch is not None
        step("Fetching latest changes in fast-forward mode only")

        stable = self.stable_branch
        if has_upstream(self.ctx, stable):
            self.ctx.git("checkout", stable)
            try:
                self.ctx.git("pull", "--ff-only")
            finally:
                self.ctx.git("checkout", self.dev_branch)
        if has_upstream(self.ctx, self.dev_branch):
            self.ctx.git("pull", "--ff-only")

    def resolve_version(self) -> VersionInfo:
        self.version = resolve(self.request.specifier, self.ctx.project.version)
        info(f"Releasing {self.version.current} → {self.version.next}")
        self.state = ReleaseState.VERSION_RESOLVED
        return self.version

    def merge(self) -> None:
        """Merge the development branch into stable with a merge commit."""
        assert self.dev_branch is not None
        stable = self.stable_branch
        step(f"Merging {self.dev_branch} into {stable}")

        ref = head_ref(self.ctx, stable)
        self.ctx.git("checkout", stable)
        # Only set once stable is checked out; rollback resets whatever is current.
        self.pre_merge_ref = ref
        self.ctx.git("merge", "--no-ff", "--no-edit", self.dev_branch)
        self.state = ReleaseState.MERGED

    def bump(self) -> str:
        """Write the new version, commit it and tag the commit.

        Returns:
            The created tag name.
        """
        assert self.version is not None
        step(f"Bumping version to {self.version.next}")

        set_project_version(self.ctx.pyproject, self.version.next)
        for command in self.planned_commands():
            self.ctx.executor.execute(*command)
        self.tag = f"v{self.version.next}"
        info(f"Version {self.tag} released")
        self.state = ReleaseState.BUMPED
        return self.tag

    def rollback(self) -> None:
        """Reset stable to its pre-merge commit and return to development."""
        assert self.dev_branch is not None
        warn(f"Error occurred, rolling back {self.stable_branch}")

        self.ctx.executor.execute("git", "merge", "--abort", allow_error=True)
        if self.pre_merge_ref is not None:
            self.ctx.git("reset", "--hard", self.pre_merge_ref)
        self.ctx.git("checkout", self.dev_branch)
        self.state = ReleaseState.ROLLED_BACK

    def finish(self) -> None:
        """Merge stable back into development and push branches and tags."""
        assert self.dev_branch is not None
        stable = self.stable_branch
        step(f"Merging {stable} back into {self.dev_branch}")

        self.ctx.git("checkout", self.dev_branch)
        self.ctx.git("merge", "--no-ff", "--no-edit", stable)

        step("Pushing to upstream")
        self.ctx.git("push", "--all", "--follow-tags")
        self.state = ReleaseState.COMPLETED

    def run(self) -> ReleaseOutcome:
        """Execute the release sequence.

        Returns:
            What was released, or what would be for a dry run.
        """
        resolve_stable_branch(self.ctx)
        self.check_preconditions()
        if self.ctx.settings.pull_before_release and not self.request.dry_run:
            self.sync_branches()
            self.check_preconditions()

        version = self.resolve_version()
        commands = [shlex.join(c) for c in self.planned_commands()]

        if self.request.dry_run:
            info(f"Would set version {version.next} in pyproject.toml and run:")
            for command in commands:
                info(f"$ {command}")
            return ReleaseOutcome(version=version, dry_run=True, commands=commands)

        try:
            self.merge()
            self.bump()
        except Exception:
            self.rollback()
            raise

        self.finish()
        step(f"Released {self.tag}")
        return ReleaseOutcome(version=version, tag=self.tag, commands=commands)


def run_release(ctx: ReleaseContext, request: ReleaseRequest) -> ReleaseOutcome:
    """Execute the full release workflow for request."""
    return ReleaseRun(ctx, request).run()
