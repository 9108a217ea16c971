"""Version parsing, bumping and resolution.

Handles conversion between version strings and semver objects, with
special handling for incomplete version strings (e.g., "1.0" → "1.0.0").
"""

from __future__ import annotations

import semver

from .errors import InvalidVersionError
from .models import BUMP_KEYWORDS, VersionInfo


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Handles incomplete versions by padding with zeros:
    - "1" → "1.0.0"
    - "1.2" → "1.2.0"
    - "v1.2.3" → "1.2.3"

    Full versions keep their prerelease and build parts.

    Raises:
        ValueError: If the string is not a version.
    """
    text = version_str.strip().removeprefix("v")
    if semver.Version.is_valid(text):
        return semver.Version.parse(text)
    parts = text.split(".")
    # Pad with zeros to ensure we have at least 3 parts
    while len(parts) < 3:
        parts.append("0")
    return semver.Version.parse(".".join(parts[:3]))


def bump(version: semver.Version, keyword: str) -> semver.Version:
    """Apply a major|minor|patch increment.

    Examples:
        bump(1.2.3, "patch") → 1.2.4
        bump(1.2.3, "minor") → 1.3.0
        bump(1.2.3, "major") → 2.0.0
    """
    if keyword == "major":
        return version.bump_major()
    if keyword == "minor":
        return version.bump_minor()
    if keyword == "patch":
        return version.bump_patch()
    raise InvalidVersionError(
        f"Unknown bump keyword {keyword!r}, expected one of {'|'.join(BUMP_KEYWORDS)}"
    )


def next_version(specifier: str, current: str) -> str:
    """Compute the version a specifier points to.

    An explicit semantic version is returned verbatim; a bump keyword is
    applied to current. No ordering check is made here.

    Raises:
        InvalidVersionError: If specifier is neither, or current is not
            a version.
    """
    if semver.Version.is_valid(specifier):
        return specifier
    if specifier not in BUMP_KEYWORDS:
        raise InvalidVersionError(
            f"Version must be {'|'.join(BUMP_KEYWORDS)} or semver, got {specifier!r}"
        )
    try:
        base = parse_version(current)
    except ValueError as exc:
        raise InvalidVersionError(f"Current version {current!r} is not valid") from exc
    return str(bump(base, specifier))


def resolve(specifier: str, current: str) -> VersionInfo:
    """Resolve a release specifier against the current package version.

    Raises:
        InvalidVersionError: If the specifier is invalid or does not point
            past the current version.
    """
    target = next_version(specifier, current)
    current_norm = str(parse_version(current))
    if parse_version(target) <= parse_version(current_norm):
        raise InvalidVersionError(
            f"Version {target} is not greater than current version {current_norm}"
        )
    return VersionInfo(current=current_norm, next=target)
