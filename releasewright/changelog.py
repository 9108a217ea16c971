"""Changelog synthesis from git history.

Finds the newest release documented in the changelog (the anchor), walks
the commit log back to that release and inserts one line per commit
above the anchor heading. Existing content is never reordered or removed:
the new block is written as a unified diff and applied with `patch`.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from functools import cmp_to_key
from pathlib import Path

from .context import ReleaseContext
from .errors import ChangelogFormatError
from .models import ChangelogEntry, ChangelogRequest, CommitRecord
from .shell import GIT_ENV, debug, info, step
from .toml import nice_name
from .versions import next_version, parse_version

# "## Name 1.2.0 - 1.3.0: notes" → ("1.2.0", "1.3.0", ": notes")
_HEADING_VERSION = re.compile(
    r"(\d+\.\d+(?:\.\d+)?)(?:\s-\s(\d+\.\d+(?:\.\d+)?))?(:.*)?$"
)
LOG_FORMAT = "--format=%h%x09%D%x09%s"
TAG_PREFIX = "tag: v"


def parse_headings(lines: Iterable[str]) -> list[ChangelogEntry]:
    """Extract every heading line that carries a version.

    Headings start with "#"; those without a version token are skipped.
    """
    entries: list[ChangelogEntry] = []
    for offset, line in enumerate(lines):
        if not line.startswith("#"):
            continue
        match = _HEADING_VERSION.search(line.rstrip())
        if not match:
            continue
        entries.append(
            ChangelogEntry(
                version=match.group(1),
                secondary_version=match.group(2),
                heading_text=line,
                line_offset=offset,
            )
        )
    return entries


def _compare(a: ChangelogEntry, b: ChangelogEntry) -> int:
    # Range headings compare by their second token only when both have one.
    if a.secondary_version and b.secondary_version:
        a2, b2 = parse_version(a.secondary_version), parse_version(b.secondary_version)
        if a2 != b2:
            return -1 if a2 > b2 else 1
    a1, b1 = parse_version(a.version), parse_version(b.version)
    if a1 == b1:
        return 0
    return -1 if a1 > b1 else 1


def sort_entries(entries: Iterable[ChangelogEntry]) -> list[ChangelogEntry]:
    """Sort headings newest first."""
    return sorted(entries, key=cmp_to_key(_compare))


def find_anchor(entries: Iterable[ChangelogEntry]) -> ChangelogEntry:
    """The newest documented release.

    Raises:
        ChangelogFormatError: If no heading carries a version.
    """
    ordered = sort_entries(entries)
    if not ordered:
        raise ChangelogFormatError(
            "No version heading found in changelog, expected e.g. '## Name 1.0.0'"
        )
    return ordered[0]


def parse_log_line(line: str) -> CommitRecord | None:
    """Parse one line of `git log` in LOG_FORMAT.

    Only `tag: v<version>` decorations whose version parses count as tags.
    """
    parts = line.split("\t", 2)
    if len(parts) != 3 or not parts[0]:
        return None
    sha, decorations, message = parts

    tag_version = None
    for decoration in decorations.split(","):
        decoration = decoration.strip()
        if not decoration.startswith(TAG_PREFIX):
            continue
        candidate = decoration[len(TAG_PREFIX):]
        try:
            parse_version(candidate)
        except ValueError:
            continue
        tag_version = candidate
        break

    return CommitRecord(sha=sha, tag_version=tag_version, message=message)


def iter_commits(ctx: ReleaseContext, anchor: ChangelogEntry) -> Iterator[CommitRecord]:
    """Commits newer than the anchor, newest first.

    Untagged commits are always included. The walk stops, without
    yielding it, at the first commit tagged with a version that is not
    greater than the anchor's. The underlying `git log` is stopped then.
    """
    limit = parse_version(anchor.latest_version)
    lines = ctx.executor.stream("git", "log", "--no-merges", LOG_FORMAT, env=GIT_ENV)
    try:
        for line in lines:
            record = parse_log_line(line)
            if record is None:
                continue
            if record.tag_version is not None and parse_version(record.tag_version) <= limit:
                debug(f"Stopping at {record.sha} (v{record.tag_version})")
                return
            yield record
    finally:
        close = getattr(lines, "close", None)
        if close is not None:
            close()


def render_heading(name: str, version: str, message: str | None = None) -> list[str]:
    title = f"## {name} {version}: {message}" if message else f"## {name} {version}"
    return ["", title, ""]


def render_commit(record: CommitRecord, name: str) -> list[str]:
    """Changelog lines for one commit.

    Examples:
        tagged, message "1.3.0: adds feature" → "## Name 1.3.0: adds feature"
        tagged v1.3.0, message "adds feature" → "## Name 1.3.0: adds feature"
        untagged → "* 1a2b3c4 - adds feature"
    """
    if record.tag_version and record.message.startswith(record.tag_version):
        return ["", f"## {name} {record.message}", ""]
    if record.tag_version:
        return render_heading(name, record.tag_version, record.message)
    return [f"* {record.sha} - {record.message}"]


def build_patch(
    filename: str, anchor: ChangelogEntry, body: list[str], eol: str = "\n"
) -> list[str]:
    """Unified diff inserting body above the anchor heading.

    The hunk replaces the anchor line with the new block followed by the
    original anchor line. With a CRLF eol every hunk line ends in a
    carriage return so the patched file keeps its line endings.
    """
    cr = eol[:-1]
    hunk = [f"+{line}{cr}" for line in body]
    hunk += [f"+{cr}", f" {anchor.heading_text}{cr}"]
    start = anchor.line_offset + 1
    return [
        f"--- a/{filename}",
        f"+++ b/{filename}",
        f"@@ -{start},1 +{start},{len(hunk)} @@",
        *hunk,
    ]


def apply_patch(ctx: ReleaseContext, path: Path, patch: list[str]) -> None:
    """Apply a unified diff to path with `patch`, reading it from stdin."""
    for line in ctx.executor.stream("patch", "-t", str(path), input_lines=patch):
        debug(line)


def update_changelog(ctx: ReleaseContext, request: ChangelogRequest) -> list[str]:
    """Add the undocumented commits to the changelog.

    Returns:
        The lines inserted above the anchor (empty when up to date).
    """
    step("Reading package and current changelog")

    project = ctx.project
    name = nice_name(project, ctx.settings)
    path = ctx.root / ctx.settings.changelog
    try:
        with path.open(newline="") as fh:
            text = fh.read()
    except FileNotFoundError as exc:
        raise ChangelogFormatError(f"Changelog {path} does not exist") from exc
    eol = "\r\n" if "\r\n" in text else "\n"
    lines = text.splitlines()

    entries = parse_headings(lines)
    anchor = find_anchor(entries)
    info(
        f"Found {len(entries)} versions, newest is {anchor.latest_version} "
        f"in line {anchor.line_offset + 1}"
    )

    body: list[str] = []
    if request.version and request.message:
        new_version = next_version(request.version, project.version)
        body.extend(render_heading(name, new_version, request.message))
    for record in iter_commits(ctx, anchor):
        body.extend(render_commit(record, name))

    if not body:
        info("Changelog already up to date")
        return []

    apply_patch(ctx, path, build_patch(path.name, anchor, body, eol))
    info("Changelog patched!")
    return body
