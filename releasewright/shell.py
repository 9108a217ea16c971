"""Shell and output utilities.

Provides the command executor every workflow goes through (the only way
releasewright touches git, uv or patch) plus the console output helpers.
"""

from __future__ import annotations

import os
import subprocess
import threading
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import IO

import click
from pydantic import BaseModel

from .errors import CommandError

DEBUG_ENV = "RELEASEWRIGHT_DEBUG"
# git output is parsed, so it must not be translated.
GIT_ENV = {"LC_ALL": "C"}


def debug_enabled() -> bool:
    """True when the debug switch is set in the environment."""
    return bool(os.environ.get(DEBUG_ENV))


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Used to separate major phases of a workflow in terminal output.
    """
    click.echo(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")


def info(msg: str) -> None:
    click.echo(f"  {msg}")


def warn(msg: str) -> None:
    click.secho(f"WARNING: {msg}", fg="yellow", err=True)


def error(msg: str) -> None:
    click.secho(f"ERROR: {msg}", fg="red", err=True)


def debug(msg: str) -> None:
    """Print a diagnostic line, only when RELEASEWRIGHT_DEBUG is set."""
    if debug_enabled():
        click.secho(msg, dim=True, err=True)


class CommandResult(BaseModel):
    """Outcome of a fully buffered command.

    Attributes:
        exit_code: Process exit status.
        stdout: Captured standard output.
        stderr: Captured standard error.
    """

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class Executor:
    """Runs external commands for one workflow invocation.

    Commands are argument vectors, never shell strings. Mutating commands
    are issued one at a time by the workflows; the executor itself keeps
    no state besides the working directory.
    """

    def __init__(self, cwd: Path | None = None) -> None:
        self.cwd = Path(cwd) if cwd else Path.cwd()

    def execute(
        self,
        *args: str,
        allow_error: bool = False,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        """Run a command synchronously and capture its output.

        Args:
            *args: Command and arguments (e.g., "git", "status").
            allow_error: If True, a non-zero exit is returned as data
                instead of raising.
            cwd: Working directory, defaults to the executor's.
            env: Extra environment variables for the child process.

        Returns:
            CommandResult with exit code, stdout and stderr.

        Raises:
            CommandError: On non-zero exit, unless allow_error is set.
        """
        command = list(args)
        run_env = {**os.environ, **env} if env else None
        try:
            proc = subprocess.run(
                command,
                cwd=cwd or self.cwd,
                env=run_env,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as exc:
            raise CommandError(command, 127, str(exc)) from exc

        debug(f"$ {' '.join(command)} -> {proc.returncode}")
        if proc.stdout:
            debug(proc.stdout.rstrip())

        if proc.returncode != 0 and not allow_error:
            raise CommandError(command, proc.returncode, proc.stderr)
        return CommandResult(
            exit_code=proc.returncode, stdout=proc.stdout, stderr=proc.stderr
        )

    def git(self, *args: str, allow_error: bool = False) -> str:
        """Run a git command in the C locale and return its stripped stdout."""
        return self.execute(
            "git", *args, allow_error=allow_error, env=GIT_ENV
        ).stdout.strip()

    def stream(
        self,
        *args: str,
        input_lines: Iterable[str] | None = None,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> Iterator[str]:
        """Run a command and yield its stdout line by line.

        Standard error is inherited so the user sees diagnostics directly.
        When input_lines is given each item is written to the child's
        stdin followed by a newline. Closing the iterator early terminates
        the child.

        Raises:
            CommandError: If the command exits non-zero after its output
                was fully consumed.
        """
        command = list(args)
        debug(f"$ {' '.join(command)} (streaming)")
        try:
            proc = subprocess.Popen(
                command,
                cwd=cwd or self.cwd,
                stdin=subprocess.PIPE if input_lines is not None else subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                env={**os.environ, **env} if env else None,
                text=True,
            )
        except FileNotFoundError as exc:
            raise CommandError(command, 127, str(exc)) from exc

        feeder = None
        if input_lines is not None:
            feeder = threading.Thread(
                target=_feed, args=(proc.stdin, input_lines), daemon=True
            )
            feeder.start()

        assert proc.stdout is not None
        finished = False
        try:
            for line in proc.stdout:
                yield line.rstrip("\r\n")
            finished = True
        finally:
            if not finished:
                proc.kill()
            proc.stdout.close()
            returncode = proc.wait()
            if feeder is not None:
                feeder.join()

        debug(f"$ {' '.join(command)} -> {returncode}")
        if returncode != 0:
            raise CommandError(command, returncode)


def _feed(pipe: IO[str] | None, lines: Iterable[str]) -> None:
    assert pipe is not None
    try:
        for line in lines:
            pipe.write(line + "\n")
    except BrokenPipeError:
        # Child exited early; its exit status reports the failure.
        return
    finally:
        try:
            pipe.close()
        except BrokenPipeError:
            return
