"""TOML reading and writing utilities.

Uses tomlkit to preserve formatting and comments when modifying
pyproject.toml. The version bump is the only write releasewright makes to
the manifest.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, cast

import tomlkit
from packaging.utils import canonicalize_name
from pydantic import ValidationError
from tomlkit.exceptions import ParseError

from .errors import ConfigurationError
from .models import ProjectInfo, Settings

TOOL_TABLE = "releasewright"


def load_pyproject(path: Path) -> tomlkit.TOMLDocument:
    """Load and parse a pyproject.toml file.

    Returns a TOMLDocument that preserves formatting when modified and saved.

    Raises:
        ConfigurationError: If the file is missing or not valid TOML.
    """
    try:
        return tomlkit.parse(path.read_text())
    except FileNotFoundError as exc:
        raise ConfigurationError(f"No pyproject.toml found at {path}") from exc
    except ParseError as exc:
        raise ConfigurationError(f"Cannot parse {path}: {exc}") from exc


def save_pyproject(path: Path, doc: tomlkit.TOMLDocument) -> None:
    """Save a TOMLDocument back to disk, preserving original formatting."""
    path.write_text(tomlkit.dumps(doc))


def get_project_name(doc: tomlkit.TOMLDocument) -> str:
    """Extract the canonical package name from [project].name.

    Names are normalized per PEP 503 (lowercase, hyphens instead of
    underscores) for consistent comparison.

    Raises:
        ConfigurationError: If the name is missing.
    """
    name = doc.get("project", {}).get("name")
    if not name:
        raise ConfigurationError("pyproject.toml has no [project].name")
    return canonicalize_name(str(name))


def get_project_version(doc: tomlkit.TOMLDocument) -> str:
    """Extract version from [project].version.

    Raises:
        ConfigurationError: If the version is missing or dynamic.
    """
    version = doc.get("project", {}).get("version")
    if not version:
        raise ConfigurationError(
            "pyproject.toml has no static [project].version to release from"
        )
    return str(version)


def read_project(path: Path) -> ProjectInfo:
    """Collect the package metadata the workflows need."""
    doc = load_pyproject(path)
    project = doc.get("project", {})
    groups = doc.get("dependency-groups", {})
    return ProjectInfo(
        name=get_project_name(doc),
        version=get_project_version(doc),
        urls={str(k): str(v) for k, v in project.get("urls", {}).items()},
        dependencies=[str(d) for d in project.get("dependencies", [])],
        dev_dependencies=[str(d) for d in groups.get("dev", []) if isinstance(d, str)],
    )


def read_settings(path: Path) -> Settings:
    """Validate the [tool.releasewright] table into Settings.

    A missing table yields the defaults.

    Raises:
        ConfigurationError: On unknown keys or invalid values.
    """
    doc = load_pyproject(path)
    table = doc.get("tool", {}).get(TOOL_TABLE, {})
    try:
        return Settings.model_validate(cast(dict[str, Any], table.unwrap() if table else {}))
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid [tool.{TOOL_TABLE}] settings:\n{exc}") from exc


def set_project_version(path: Path, new_version: str) -> None:
    """Rewrite [project].version, keeping the rest of the file intact."""
    doc = load_pyproject(path)
    # Cast needed because tomlkit types are complex unions
    project = cast(dict[str, Any], doc["project"])
    project["version"] = new_version
    save_pyproject(path, doc)


def nice_name(project: ProjectInfo, settings: Settings) -> str:
    """Human readable package name used in changelog headings.

    Examples:
        "my-package" → "My Package"
    """
    if settings.nice_name:
        return settings.nice_name
    return " ".join(part.capitalize() for part in project.name.split("-"))
