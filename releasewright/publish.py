"""Publish workflow: wait for CI on the newest tag, then build and upload it.

The package is built from the tagged source archive on GitHub, not from
the working copy, so local state never leaks into a published release.
"""

from __future__ import annotations

import shlex
import tarfile
import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from packaging.version import InvalidVersion, Version

from .context import ReleaseContext
from .errors import ConfigurationError, ReleaseError
from .models import PublishOptions
from .remote import (
    commit_status,
    download,
    github_repo,
    latest_tag,
    poll,
    published_version,
)
from .shell import info, step


def unpack_source(archive: Path, dest: Path) -> Path:
    """Extract a GitHub source tarball and return its top-level directory.

    The "data" extraction filter refuses members and links that escape
    dest, as well as device files.

    Raises:
        ReleaseError: If the archive is unsafe or does not hold exactly one
            directory.
    """
    try:
        with tarfile.open(archive, "r:gz") as tar:
            tar.extractall(dest, filter="data")
    except tarfile.TarError as exc:
        raise ReleaseError(f"Cannot unpack source archive {archive.name}: {exc}") from exc
    roots = [p for p in dest.iterdir() if p.is_dir()]
    if len(roots) != 1:
        raise ReleaseError(f"Unexpected layout of source archive {archive.name}")
    return roots[0]


def run_publish(ctx: ReleaseContext, options: PublishOptions) -> str:
    """Publish the newest tagged version of the package.

    Returns:
        The tag that was published (or would be, for a dry run).

    Raises:
        ReleaseError: If the tagged version is not newer than the one
            already published under the dist-tag.
    """
    step("Finding repo origin")
    project = ctx.project
    settings = ctx.settings
    org, repo = github_repo(ctx)
    info(f"Found repo {org}/{repo}")

    # Independent reads, safe to run side by side.
    with ThreadPoolExecutor(max_workers=2) as pool:
        tag_future = pool.submit(latest_tag, org, repo)
        published_future = pool.submit(published_version, project.name, options.dist_tag)
        tag = tag_future.result()
        published = published_future.result()

    try:
        release_version = Version(tag.removeprefix("v"))
    except InvalidVersion as exc:
        raise ConfigurationError(f"Latest tag {tag} is not a version") from exc
    info(
        f"Latest repo version is {tag}, published under {options.dist_tag!r} "
        f"is {published or '<none>'}"
    )

    if options.ignore_ci:
        info("Skipping build status check")
    else:
        step(f"Checking build status of {tag}")
        poll(
            lambda ref: commit_status(org, repo, ref),
            tag,
            max_attempts=settings.poll_attempts,
            interval=settings.poll_interval,
        )

    if published is not None and release_version <= published:
        raise ReleaseError(f"Newest version of {project.name} already released.")

    with tempfile.TemporaryDirectory(prefix="releasewright-") as tmp:
        tmp_dir = Path(tmp)
        step(f"Fetching source of {project.name}@{release_version}")
        archive = download(
            f"https://github.com/{org}/{repo}/archive/refs/tags/{tag}.tar.gz",
            tmp_dir / "source.tar.gz",
        )
        source = unpack_source(archive, tmp_dir / "src")

        step(f"Building {project.name}@{release_version}")
        ctx.executor.execute(*settings.build_command, cwd=source)

        if options.dry_run:
            info(f"Would run: {shlex.join(settings.publish_command)}")
        else:
            step(f"Publishing {project.name}@{release_version}")
            ctx.executor.execute(*settings.publish_command, cwd=source)

    info("Done.")
    return tag
