"""Documentation push workflow.

Regenerates documentation on the development branch, commits it and
carries it over to the stable branch without cutting a release.
"""

from __future__ import annotations

from .context import ReleaseContext
from .errors import PreconditionError, ReleaseError
from .models import MaintenanceOptions
from .repo import (
    branch_snapshot,
    current_branch_status,
    is_working_copy_clean,
    resolve_stable_branch,
)
from .shell import info, step, warn
from .update import run_tests


def check_branch(ctx: ReleaseContext) -> str:
    """Return the current branch if it is a development branch in sync.

    Raises:
        PreconditionError: On another branch, or a branch behind upstream.
    """
    current = current_branch_status(ctx)
    prefix = ctx.settings.dev_prefix
    if not current.name.startswith(prefix):
        raise PreconditionError(
            f"Documentation is pushed only from a development branch (name starting with {prefix!r})."
        )
    behind = [b.name for b in branch_snapshot(ctx) if b.behind]
    if behind:
        raise PreconditionError(
            f"There are branches not in sync with upstream: {', '.join(behind)}"
        )
    return current.name


def run_push_docs(ctx: ReleaseContext, options: MaintenanceOptions) -> None:
    """Commit regenerated docs and merge them into the stable branch.

    Raises:
        PreconditionError: If not on an in-sync development branch.
        ReleaseError: If the working copy was dirty before docs were built.
    """
    if not options.no_push:
        step("Pulling latest changes from repo")
        ctx.git("pull", "--ff-only")

    was_clean = is_working_copy_clean(ctx)

    step("Checking branch correctness")
    dev_branch = check_branch(ctx)
    stable = resolve_stable_branch(ctx)

    if ctx.settings.docs_command:
        step("Building documentation")
        ctx.executor.execute(*ctx.settings.docs_command)

    if not is_working_copy_clean(ctx):
        if options.no_test:
            warn("No test done")
        else:
            info("Test before committing...")
            run_tests(ctx, "Test failed on documentation update")

    if not was_clean:
        raise ReleaseError("Working copy wasn't clean, so not pushing documentation")
    if options.no_push:
        warn("Not committing or pushing (--no-push)")
        return

    step("Committing changes and pushing")
    ctx.git("merge", "--no-edit", stable)
    if is_working_copy_clean(ctx):
        warn("Documentation unchanged, nothing to commit.")
    else:
        ctx.git("add", "--all")
        ctx.git("commit", "-m", "Documentation update.")

    ctx.git("checkout", stable)
    try:
        ctx.git("merge", "--no-edit", dev_branch)
        ctx.git("push")
    finally:
        ctx.git("checkout", dev_branch)
    ctx.git("push")
    info("Done.")
