"""Dependency handling utilities.

Provides functions for parsing PEP 508 dependency strings so the update
workflow can tell direct dependencies from transitive ones and leave
pinned dependencies alone.
"""

from __future__ import annotations

from packaging.requirements import InvalidRequirement, Requirement
from packaging.utils import canonicalize_name

from .models import ProjectInfo

RUNTIME = "runtime"
DEV = "dev"


def dep_canonical_name(dep_str: str) -> str:
    """Extract the canonical package name from a PEP 508 dependency string.

    Handles version specifiers, extras, and normalizes the name per PEP 503
    (lowercase, hyphens instead of underscores).

    Examples:
        "requests>=2.0" → "requests"
        "My_Package[extra]~=1.0" → "my-package"
    """
    return canonicalize_name(Requirement(dep_str).name)


def is_pinned(dep_str: str) -> bool:
    """True if the dependency is locked to one exact version.

    Examples:
        "requests==2.31.0" → True
        "requests>=2.0" → False
        "requests==2.*" → False
    """
    req = Requirement(dep_str)
    return any(
        spec.operator == "===" or (spec.operator == "==" and "*" not in spec.version)
        for spec in req.specifier
    )


def direct_dependencies(project: ProjectInfo) -> dict[str, tuple[str, str]]:
    """Map canonical name → (dependency string, group) for direct deps.

    Runtime dependencies win over dev ones when a package is in both.
    Strings that are not valid PEP 508 requirements are skipped.
    """
    found: dict[str, tuple[str, str]] = {}
    for group, deps in ((DEV, project.dev_dependencies), (RUNTIME, project.dependencies)):
        for dep_str in deps:
            try:
                found[dep_canonical_name(dep_str)] = (dep_str, group)
            except InvalidRequirement:
                continue
    return found
