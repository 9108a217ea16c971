"""Read-only queries of the git working copy.

Nothing in this module changes repository state; the workflows decide
what to do with the answers.
"""

from __future__ import annotations

import re

from .context import ReleaseContext
from .errors import ConfigurationError, PreconditionError
from .models import BranchStatus

STABLE_BRANCH_CANDIDATES = ("main", "master")

# "* dev  1a2b3c4 [ahead 1, behind 2] subject" as printed by `git branch -v`
_BRANCH_LINE = re.compile(
    r"^(?P<marker>[*+ ])\s(?P<name>\(.+?\)|\S+)\s+(?P<sha>[0-9a-f]+)"
    r"(?:\s+\[(?P<track>(?:ahead|behind|gone)[^\]]*)\])?"
)
_AHEAD = re.compile(r"ahead (\d+)")
_BEHIND = re.compile(r"behind (\d+)")


def is_working_copy_clean(ctx: ReleaseContext) -> bool:
    """True iff there are no uncommitted or untracked changes."""
    return ctx.git("status", "--porcelain") == ""


def parse_branch_listing(output: str) -> list[BranchStatus]:
    """Parse `git branch -v` output into BranchStatus entries.

    A missing bracketed annotation means the branch is in sync (or has
    no upstream); "[gone]" counts as in sync as well.
    """
    branches: list[BranchStatus] = []
    for line in output.splitlines():
        match = _BRANCH_LINE.match(line)
        if not match:
            continue
        track = match.group("track") or ""
        ahead = _AHEAD.search(track)
        behind = _BEHIND.search(track)
        branches.append(
            BranchStatus(
                name=match.group("name"),
                is_current=match.group("marker") == "*",
                ahead=int(ahead.group(1)) if ahead else 0,
                behind=int(behind.group(1)) if behind else 0,
            )
        )
    return branches


def branch_snapshot(ctx: ReleaseContext) -> list[BranchStatus]:
    """Status of every local branch."""
    return parse_branch_listing(ctx.git("branch", "-v"))


def current_branch_status(ctx: ReleaseContext) -> BranchStatus:
    """Status of the checked out branch.

    Raises:
        PreconditionError: If HEAD is detached or no branch is checked out.
    """
    current = [b for b in branch_snapshot(ctx) if b.is_current]
    if not current or current[0].name.startswith("("):
        raise PreconditionError("Not on a branch, check out the development branch first.")
    return current[0]


def list_branches(ctx: ReleaseContext) -> list[str]:
    output = ctx.git("branch", "--list", "--format=%(refname:short)")
    return [line.strip() for line in output.splitlines() if line.strip()]


def resolve_stable_branch(ctx: ReleaseContext) -> str:
    """Name of the stable branch: "main", else "master".

    The answer is memoized on the context for the rest of the run.

    Raises:
        ConfigurationError: If neither branch exists.
    """
    if ctx.stable_branch is None:
        branches = list_branches(ctx)
        for candidate in STABLE_BRANCH_CANDIDATES:
            if candidate in branches:
                ctx.stable_branch = candidate
                break
        else:
            raise ConfigurationError("no stable branch found (expected 'main' or 'master')")
    return ctx.stable_branch


def head_ref(ctx: ReleaseContext, ref: str = "HEAD") -> str:
    """Full commit hash a ref points to."""
    return ctx.git("rev-parse", "--verify", ref)


def has_upstream(ctx: ReleaseContext, branch: str) -> bool:
    result = ctx.executor.execute(
        "git",
        "rev-parse",
        "--abbrev-ref",
        "--symbolic-full-name",
        f"{branch}@{{upstream}}",
        allow_error=True,
    )
    return result.ok
