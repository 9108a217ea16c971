"""Shared test fixtures."""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Callable, Iterable
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from releasewright.context import ReleaseContext
from releasewright.shell import CommandResult, Executor

PYPROJECT = """\
[project]
name = "demo_pkg"
version = "1.2.0"
dependencies = [
    "requests>=2.0",
    "click==8.1.0",
]

[project.urls]
Repository = "https://github.com/acme/demo-pkg.git"

[dependency-groups]
dev = ["pytest>=8.0"]

[tool.releasewright]
dev-prefix = "dev"
"""

CHANGELOG = """\
# Changelog

## Demo Pkg 1.2.0: first public release

* 1a2b3c4 - initial import
"""

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
requires_patch = pytest.mark.skipif(
    shutil.which("patch") is None, reason="patch not installed"
)


def git(cwd: Path, *args: str) -> str:
    """Run git in cwd for test setup and return stripped stdout."""
    result = subprocess.run(
        ["git", *args], cwd=cwd, capture_output=True, text=True, check=True
    )
    return result.stdout.strip()


def commit_file(cwd: Path, name: str, content: str, message: str) -> str:
    (cwd / name).write_text(content)
    git(cwd, "add", name)
    git(cwd, "commit", "-m", message)
    return git(cwd, "rev-parse", "HEAD")


@pytest.fixture(autouse=True)
def git_identity(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Isolate git from the user's configuration."""
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Release Bot")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "bot@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Release Bot")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "bot@example.com")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(tmp_path / "gitconfig"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.delenv("RELEASEWRIGHT_DEBUG", raising=False)


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A directory with a pyproject.toml and changelog, no git."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "pyproject.toml").write_text(PYPROJECT)
    (root / "CHANGELOG.md").write_text(CHANGELOG)
    return root


@pytest.fixture
def repo(project_dir: Path) -> Path:
    """A git repo on `main` with one commit tagged v1.2.0."""
    git(project_dir, "init", "-q", "-b", "main")
    git(project_dir, "config", "commit.gpgsign", "false")
    git(project_dir, "config", "tag.gpgsign", "false")
    git(project_dir, "add", ".")
    git(project_dir, "commit", "-q", "-m", "1.2.0: first public release")
    git(project_dir, "tag", "-a", "v1.2.0", "-m", "1.2.0: first public release")
    return project_dir


@pytest.fixture
def release_repo(repo: Path, tmp_path: Path) -> Path:
    """The repo with an upstream remote and a `develop` branch, all in sync."""
    remote = tmp_path / "remote.git"
    git(tmp_path, "init", "-q", "--bare", str(remote))
    git(repo, "remote", "add", "origin", str(remote))
    git(repo, "push", "-q", "-u", "origin", "main")
    git(repo, "checkout", "-q", "-b", "develop")
    commit_file(repo, "feature.py", "VALUE = 1\n", "adds feature module")
    git(repo, "push", "-q", "-u", "origin", "develop")
    return repo


def mock_executor(
    git_output: Callable[[tuple[str, ...]], str] | None = None,
    results: Callable[[tuple[str, ...]], CommandResult] | None = None,
    stream_lines: Iterable[str] = (),
) -> MagicMock:
    """A MagicMock standing in for Executor.

    Args:
        git_output: Maps git arguments to stdout; defaults to "".
        results: Maps an execute() argument vector to its result;
            defaults to a successful empty result.
        stream_lines: Lines returned by stream().
    """
    executor = MagicMock(spec=Executor)
    executor.git.side_effect = lambda *args, allow_error=False: (
        git_output(args) if git_output else ""
    )
    executor.execute.side_effect = lambda *args, **kwargs: (
        results(args) if results else CommandResult(exit_code=0)
    )
    executor.stream.side_effect = lambda *args, **kwargs: iter(list(stream_lines))
    return executor


@pytest.fixture
def mock_ctx(project_dir: Path) -> Callable[..., ReleaseContext]:
    """Factory for a context over project_dir with a mocked executor."""

    def factory(**kwargs) -> ReleaseContext:
        return ReleaseContext(root=project_dir, executor=mock_executor(**kwargs))

    return factory
