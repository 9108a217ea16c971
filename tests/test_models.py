"""Tests for releasewright.models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from releasewright.models import (
    BranchStatus,
    ChangelogEntry,
    ChangelogRequest,
    ReleaseRequest,
    Settings,
    VersionInfo,
)


class TestReleaseRequest:
    def test_keyword(self) -> None:
        request = ReleaseRequest(specifier="minor", message="adds feature")
        assert request.specifier == "minor"
        assert request.dry_run is False

    def test_explicit_version(self) -> None:
        assert ReleaseRequest(specifier=" 1.3.0 ", message="m").specifier == "1.3.0"

    def test_rejects_bad_specifier(self) -> None:
        with pytest.raises(ValidationError):
            ReleaseRequest(specifier="bigger", message="m")

    def test_rejects_empty_message(self) -> None:
        with pytest.raises(ValidationError):
            ReleaseRequest(specifier="patch", message="  ")

    def test_is_immutable(self) -> None:
        request = ReleaseRequest(specifier="patch", message="m")
        with pytest.raises(ValidationError):
            request.specifier = "major"  # type: ignore[misc]


class TestChangelogRequest:
    def test_defaults(self) -> None:
        request = ChangelogRequest()
        assert request.version is None
        assert request.message is None

    def test_rejects_bad_version(self) -> None:
        with pytest.raises(ValidationError):
            ChangelogRequest(version="1.x")


class TestVersionInfo:
    def test_next_must_be_greater(self) -> None:
        with pytest.raises(ValidationError):
            VersionInfo(current="1.2.0", next="1.1.0")

    def test_valid(self) -> None:
        info = VersionInfo(current="1.2.0", next="1.3.0")
        assert info.next == "1.3.0"


class TestBranchStatus:
    def test_in_sync_by_default(self) -> None:
        assert BranchStatus(name="main").in_sync

    def test_ahead_is_out_of_sync(self) -> None:
        assert not BranchStatus(name="dev", ahead=1).in_sync


class TestChangelogEntry:
    def test_latest_version_prefers_secondary(self) -> None:
        entry = ChangelogEntry(
            version="1.2.0", secondary_version="1.3.0", heading_text="#", line_offset=0
        )
        assert entry.latest_version == "1.3.0"

    def test_latest_version_without_range(self) -> None:
        entry = ChangelogEntry(version="1.2.0", heading_text="#", line_offset=0)
        assert entry.latest_version == "1.2.0"


class TestSettings:
    def test_kebab_case_keys(self) -> None:
        settings = Settings.model_validate({"dev-prefix": "develop", "poll-attempts": 3})
        assert settings.dev_prefix == "develop"
        assert settings.poll_attempts == 3

    def test_defaults(self) -> None:
        settings = Settings()
        assert settings.changelog == "CHANGELOG.md"
        assert settings.test_command == ["uv", "run", "pytest"]

    def test_unknown_key_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings.model_validate({"dev-branch": "dev"})
