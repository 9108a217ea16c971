"""Data models for releasewright.

These Pydantic models represent the data flowing through the release
workflows. All of them are created fresh for one run and never persisted.
"""

from __future__ import annotations

from enum import Enum

import semver
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

BUMP_KEYWORDS = ("major", "minor", "patch")


def _is_specifier(value: str) -> bool:
    return value in BUMP_KEYWORDS or semver.Version.is_valid(value)


class ReleaseRequest(BaseModel):
    """Options of one `release` invocation.

    Attributes:
        specifier: Explicit semantic version or one of major|minor|patch.
        message: Release message, used in the version commit and tag.
        dry_run: Stop after computing the version and report the command.
    """

    model_config = ConfigDict(frozen=True)

    specifier: str
    message: str
    dry_run: bool = False

    @field_validator("specifier")
    @classmethod
    def _check_specifier(cls, value: str) -> str:
        value = value.strip()
        if not _is_specifier(value):
            raise ValueError("version must be major|minor|patch or a semantic version")
        return value

    @field_validator("message")
    @classmethod
    def _check_message(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("release message must not be empty")
        return value


class ChangelogRequest(BaseModel):
    """Options of one `changelog` invocation.

    A synthetic heading is only added when both version and message are set.
    """

    model_config = ConfigDict(frozen=True)

    version: str | None = None
    message: str | None = None

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str | None) -> str | None:
        if value is not None and not _is_specifier(value.strip()):
            raise ValueError("version must be major|minor|patch or a semantic version")
        return value.strip() if value is not None else None


class PublishOptions(BaseModel):
    """Options of one `publish` invocation."""

    model_config = ConfigDict(frozen=True)

    ignore_ci: bool = False
    dist_tag: str = "latest"
    dry_run: bool = False


class MaintenanceOptions(BaseModel):
    """Options shared by the `update` and `push-docs` workflows."""

    model_config = ConfigDict(frozen=True)

    no_push: bool = False
    no_test: bool = False


class VersionInfo(BaseModel):
    """Current package version and the version being released.

    Attributes:
        current: Version found in pyproject.toml.
        next: Version to release, always strictly greater than current.
    """

    model_config = ConfigDict(frozen=True)

    current: str
    next: str

    @model_validator(mode="after")
    def _check_increasing(self) -> VersionInfo:
        if semver.Version.parse(self.next) <= semver.Version.parse(self.current):
            raise ValueError(f"{self.next} is not greater than {self.current}")
        return self


class BranchStatus(BaseModel):
    """One local branch as shown by `git branch -v`."""

    name: str
    is_current: bool = False
    ahead: int = 0
    behind: int = 0

    @property
    def in_sync(self) -> bool:
        return self.ahead == 0 and self.behind == 0


class ChangelogEntry(BaseModel):
    """A changelog heading that carries a version.

    Attributes:
        version: First version token of the heading.
        secondary_version: Second token of a range heading ("1.2.0 - 1.3.0").
        heading_text: The full heading line.
        line_offset: Zero-based line number of the heading in the file.
    """

    version: str
    secondary_version: str | None = None
    heading_text: str
    line_offset: int

    @property
    def latest_version(self) -> str:
        """The newest version this heading documents."""
        return self.secondary_version or self.version


class CommitRecord(BaseModel):
    """A commit from `git log`, newest first.

    Attributes:
        sha: Abbreviated commit hash.
        tag_version: Version of a `v<version>` tag on this commit, if any.
        message: Commit subject line.
    """

    sha: str
    tag_version: str | None = None
    message: str


class BuildStatus(str, Enum):
    """Classified remote CI state for a commit or tag."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"


class ReleaseOutcome(BaseModel):
    """What a release run did (or would do, for a dry run)."""

    version: VersionInfo
    tag: str | None = None
    dry_run: bool = False
    commands: list[str] = Field(default_factory=list)


class Settings(BaseModel):
    """The [tool.releasewright] table of pyproject.toml.

    Keys are kebab-case in TOML. Unknown keys are rejected.
    """

    model_config = ConfigDict(
        extra="forbid",
        alias_generator=lambda name: name.replace("_", "-"),
        populate_by_name=True,
    )

    dev_prefix: str = "dev"
    changelog: str = "CHANGELOG.md"
    nice_name: str | None = None
    repository: str | None = None
    test_command: list[str] = Field(default_factory=lambda: ["uv", "run", "pytest"])
    build_command: list[str] = Field(default_factory=lambda: ["uv", "build"])
    publish_command: list[str] = Field(default_factory=lambda: ["uv", "publish"])
    add_command: list[str] = Field(default_factory=lambda: ["uv", "add"])
    audit_command: list[str] = Field(default_factory=lambda: ["uvx", "pip-audit"])
    outdated_command: list[str] = Field(
        default_factory=lambda: ["uv", "pip", "list", "--outdated", "--format", "json"]
    )
    docs_command: list[str] | None = None
    poll_attempts: int = Field(default=60, ge=1)
    poll_interval: float = Field(default=5.0, ge=0)
    pull_before_release: bool = True


class ProjectInfo(BaseModel):
    """Package metadata read from [project].

    Attributes:
        name: Canonical (PEP 503) project name.
        version: Current version string.
        urls: [project.urls] table.
        dependencies: Runtime dependency strings.
        dev_dependencies: Strings from [dependency-groups].dev.
    """

    name: str
    version: str
    urls: dict[str, str] = Field(default_factory=dict)
    dependencies: list[str] = Field(default_factory=list)
    dev_dependencies: list[str] = Field(default_factory=list)


class OutdatedPackage(BaseModel):
    """One entry of the outdated-packages listing."""

    name: str
    version: str
    latest_version: str
