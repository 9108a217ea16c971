"""Dependency update workflow.

Upgrades outdated direct dependencies one at a time, running the test
suite after each so a breaking upgrade is pinned to the package that
caused it, then commits and pushes the result.
"""

from __future__ import annotations

import json

from packaging.utils import canonicalize_name
from packaging.version import InvalidVersion, Version
from pydantic import ValidationError

from .context import ReleaseContext
from .deps import DEV, direct_dependencies, is_pinned
from .errors import CommandError, NothingToDoError, ReleaseError
from .models import MaintenanceOptions, OutdatedPackage
from .repo import is_working_copy_clean
from .shell import info, step, warn


def run_tests(ctx: ReleaseContext, failure: str) -> None:
    """Run the configured test command.

    Raises:
        CommandError: With failure prepended to its message.
    """
    try:
        ctx.executor.execute(*ctx.settings.test_command)
    except CommandError as exc:
        exc.message = f"{failure}: {exc.message}"
        raise


def list_outdated(ctx: ReleaseContext) -> list[OutdatedPackage]:
    """Packages in the environment with a newer release available.

    Raises:
        CommandError: If the listing command fails without output.
        ReleaseError: If its output is not the expected JSON.
    """
    command = ctx.settings.outdated_command
    result = ctx.executor.execute(*command, allow_error=True)
    if not result.stdout.strip():
        if not result.ok:
            raise CommandError(command, result.exit_code, result.stderr)
        return []
    try:
        entries = json.loads(result.stdout)
        return [OutdatedPackage.model_validate(entry) for entry in entries]
    except (json.JSONDecodeError, TypeError, ValidationError) as exc:
        raise ReleaseError(f"Cannot read outdated packages listing: {exc}") from exc


def _is_newer(pkg: OutdatedPackage) -> bool:
    try:
        return Version(pkg.latest_version) > Version(pkg.version)
    except InvalidVersion:
        return pkg.latest_version != pkg.version


def update_package(ctx: ReleaseContext, pkg: OutdatedPackage, group: str, no_test: bool) -> None:
    """Upgrade one dependency and test it."""
    info(f"Trying to update and test {group} dependency: {pkg.name}")
    command = [*ctx.settings.add_command]
    if group == DEV:
        command.append("--dev")
    command.append(f"{pkg.name}>={pkg.latest_version}")

    try:
        ctx.executor.execute(*command)
    except CommandError as exc:
        exc.message = f"Could not install {pkg.name!r}: {exc.message}"
        raise

    if not no_test:
        run_tests(ctx, f"Test failed on updated {pkg.name!r}")


def run_update(ctx: ReleaseContext, options: MaintenanceOptions) -> list[str]:
    """Update outdated direct dependencies, test, commit and push.

    Returns:
        Names of the updated packages.

    Raises:
        NothingToDoError: If nothing is outdated or everything is pinned.
        ReleaseError: If the working copy was dirty to begin with, or the
            updates left it unchanged.
    """
    if not options.no_push:
        step("Pulling latest changes from repo")
        ctx.git("pull", "--ff-only")

    was_clean = is_working_copy_clean(ctx)
    if not was_clean:
        warn("Working copy not clean, will not commit the update")

    step("Finding dependencies")
    outdated = [pkg for pkg in list_outdated(ctx) if _is_newer(pkg)]
    if not outdated:
        raise NothingToDoError("No outdated packages.")

    direct = direct_dependencies(ctx.project)
    updated: list[str] = []
    # Strictly one at a time: every upgrade changes the working copy.
    for pkg in outdated:
        name = canonicalize_name(pkg.name)
        if name not in direct:
            continue
        dep_str, group = direct[name]
        if is_pinned(dep_str):
            warn(f"Package {pkg.name!r} is pinned")
            continue
        update_package(ctx, pkg, group, options.no_test)
        updated.append(pkg.name)

    step("Running audit")
    try:
        ctx.executor.execute(*ctx.settings.audit_command)
    except CommandError:
        warn("Some vulnerable packages still persist.")

    if not is_working_copy_clean(ctx):
        if options.no_test:
            warn("No final test done")
        else:
            info("One last test before committing...")
            run_tests(ctx, "Test failed on audit")

    if not updated:
        raise NothingToDoError("No packages to update.")
    info(f"Packages updated: {', '.join(updated)}")

    if not was_clean:
        raise ReleaseError("Working copy wasn't clean, so not committing the update")
    if options.no_push:
        warn("Not committing or pushing (--no-push)")
        return updated

    step("Committing changes and pushing")
    if is_working_copy_clean(ctx):
        raise ReleaseError("Changes made but working copy not affected.")
    ctx.git("commit", "-am", "Dependencies update.")
    ctx.git("push")
    return updated
