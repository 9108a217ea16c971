"""Error types for releasewright.

Every workflow failure is one of these. They derive from
click.ClickException so each carries an exit code and a printable
message; the top-level runner turns them into the process exit status.
"""

from __future__ import annotations

from collections.abc import Sequence

import click

DEFAULT_EXIT_CODE = 100


class ReleaseError(click.ClickException):
    """Base class for all expected workflow failures."""

    exit_code = DEFAULT_EXIT_CODE


class CommandError(ReleaseError):
    """An external command exited with a non-zero status.

    Attributes:
        command: The argument vector that was executed.
        returncode: Exit status of the process.
        stderr: Captured standard error (empty when stderr was inherited).
    """

    def __init__(self, command: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.command = tuple(command)
        self.returncode = returncode
        self.stderr = stderr
        message = f"`{' '.join(self.command)}` failed with exit code {returncode}"
        if stderr.strip():
            message += f"\n{stderr.strip()}"
        super().__init__(message)
        self.exit_code = returncode if returncode > 0 else DEFAULT_EXIT_CODE


class PreconditionError(ReleaseError):
    """Repository is not in a state a release can start from."""


class InvalidVersionError(ReleaseError):
    """A release specifier is neither a valid version nor a bump keyword."""


class ConfigurationError(ReleaseError):
    """Missing or invalid project configuration or repository metadata."""


class BuildFailedError(ReleaseError):
    """Remote CI reported a failed build."""


class BuildTimeoutError(ReleaseError):
    """Remote CI did not finish within the attempt ceiling."""


class ChangelogFormatError(ReleaseError):
    """The changelog has no heading a version can be read from."""


class RemoteError(ReleaseError):
    """A remote fetch returned a non-2xx status or an unparsable body."""

    def __init__(self, url: str, message: str, status: int | None = None) -> None:
        self.url = url
        self.status = status
        super().__init__(f"{message} ({url})")


class NothingToDoError(ReleaseError):
    """The workflow found no work to perform."""
