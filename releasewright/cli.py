"""CLI entry point for releasewright."""

from __future__ import annotations

import threading
import traceback
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import click
from pydantic import BaseModel, ValidationError

from releasewright.changelog import update_changelog
from releasewright.context import ReleaseContext
from releasewright.docs import run_push_docs
from releasewright.errors import DEFAULT_EXIT_CODE, ReleaseError
from releasewright.models import (
    ChangelogRequest,
    MaintenanceOptions,
    PublishOptions,
    ReleaseRequest,
)
from releasewright.publish import run_publish
from releasewright.release import run_release
from releasewright.shell import debug, error
from releasewright.update import run_update

M = TypeVar("M", bound=BaseModel)

# At most one workflow per process.
_guard = threading.Lock()


def run_workflow(func: Callable[..., Any], *args: Any) -> int:
    """Run a workflow and convert its outcome into an exit code.

    Known errors print their message, anything else prints a stack trace.
    A call made while another workflow is running does nothing.

    Returns:
        0 on success, the error's exit code otherwise.
    """
    if not _guard.acquire(blocking=False):
        debug("A workflow is already running in this process, ignoring")
        return 0
    try:
        func(*args)
    except ReleaseError as exc:
        error(exc.format_message())
        return exc.exit_code
    except Exception:
        error(traceback.format_exc())
        return DEFAULT_EXIT_CODE
    finally:
        _guard.release()
    return 0


def _options(model: type[M], **values: Any) -> M:
    """Validate CLI values into an options model."""
    try:
        return model(**values)
    except ValidationError as exc:
        messages = "; ".join(e["msg"] for e in exc.errors())
        raise click.UsageError(messages) from exc


def _finish(ctx: click.Context, code: int) -> None:
    if code:
        ctx.exit(code)


@click.group()
@click.version_option(package_name="releasewright")
@click.option(
    "-C",
    "--directory",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Repository root holding pyproject.toml.",
)
@click.pass_context
def cli(ctx: click.Context, directory: Path) -> None:
    """Release automation for single-repository Python packages."""
    ctx.obj = directory.resolve()


@cli.command()
@click.argument("version")
@click.option("-m", "--message", required=True, help="Release message.")
@click.option("-d", "--dry-run", is_flag=True, help="Show the version command only.")
@click.pass_context
def release(ctx: click.Context, version: str, message: str, dry_run: bool) -> None:
    """Merge development into stable and release VERSION (major|minor|patch|X.Y.Z)."""
    request = _options(ReleaseRequest, specifier=version, message=message, dry_run=dry_run)
    _finish(ctx, run_workflow(run_release, ReleaseContext(ctx.obj), request))


@cli.command()
@click.option("-v", "--version", "version", default=None, help="Version of a new heading.")
@click.option("-m", "--message", default=None, help="Message of a new heading.")
@click.pass_context
def changelog(ctx: click.Context, version: str | None, message: str | None) -> None:
    """Add commits since the last documented release to the changelog."""
    request = _options(ChangelogRequest, version=version, message=message)
    _finish(ctx, run_workflow(update_changelog, ReleaseContext(ctx.obj), request))


@cli.command()
@click.option("-i", "--ignore-ci", is_flag=True, help="Do not wait for the CI build.")
@click.option("-t", "--tag", "dist_tag", default="latest", show_default=True, help="Dist-tag to compare with.")
@click.option("-d", "--dry-run", is_flag=True, help="Build but do not upload.")
@click.pass_context
def publish(ctx: click.Context, ignore_ci: bool, dist_tag: str, dry_run: bool) -> None:
    """Build and publish the newest tagged version."""
    options = _options(PublishOptions, ignore_ci=ignore_ci, dist_tag=dist_tag, dry_run=dry_run)
    _finish(ctx, run_workflow(run_publish, ReleaseContext(ctx.obj), options))


@cli.command()
@click.option("-n", "--no-push", is_flag=True, help="Do not pull, commit or push.")
@click.option("-x", "--no-test", is_flag=True, help="Skip the test runs.")
@click.pass_context
def update(ctx: click.Context, no_push: bool, no_test: bool) -> None:
    """Upgrade outdated dependencies one at a time, testing each."""
    options = _options(MaintenanceOptions, no_push=no_push, no_test=no_test)
    _finish(ctx, run_workflow(run_update, ReleaseContext(ctx.obj), options))


@cli.command("push-docs")
@click.option("-n", "--no-push", is_flag=True, help="Do not pull, commit or push.")
@click.option("-x", "--no-test", is_flag=True, help="Skip the test run.")
@click.pass_context
def push_docs(ctx: click.Context, no_push: bool, no_test: bool) -> None:
    """Commit regenerated docs and carry them to the stable branch."""
    options = _options(MaintenanceOptions, no_push=no_push, no_test=no_test)
    _finish(ctx, run_workflow(run_push_docs, ReleaseContext(ctx.obj), options))
