"""Per-run context passed through every workflow."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path

from .models import ProjectInfo, Settings
from .shell import Executor
from .toml import read_project, read_settings


@dataclass
class ReleaseContext:
    """State scoped to a single workflow invocation.

    Attributes:
        root: Repository root holding pyproject.toml.
        executor: Command executor bound to root.
        stable_branch: Memoized stable branch name, filled in by
            repo.resolve_stable_branch on first use.
    """

    root: Path
    executor: Executor = field(default=None)  # type: ignore[assignment]
    stable_branch: str | None = None

    def __post_init__(self) -> None:
        self.root = Path(self.root)
        if self.executor is None:
            self.executor = Executor(self.root)

    @property
    def pyproject(self) -> Path:
        return self.root / "pyproject.toml"

    @cached_property
    def settings(self) -> Settings:
        return read_settings(self.pyproject)

    @property
    def project(self) -> ProjectInfo:
        """Package metadata, re-read on every access since a run may bump it."""
        return read_project(self.pyproject)

    def git(self, *args: str, allow_error: bool = False) -> str:
        return self.executor.git(*args, allow_error=allow_error)
