"""Remote API access: GitHub, PyPI and the CI status poller.

All calls here are read-only. Any non-2xx response or unparsable body
fails the call with RemoteError.
"""

from __future__ import annotations

import os
import re
import time
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import requests
from packaging.version import InvalidVersion, Version

from .context import ReleaseContext
from .errors import (
    BuildFailedError,
    BuildTimeoutError,
    ConfigurationError,
    RemoteError,
)
from .models import BuildStatus
from .shell import debug, info

GITHUB_API = "https://api.github.com"
PYPI_API = "https://pypi.org/pypi"
REQUEST_TIMEOUT = 30

_GITHUB_URL = re.compile(r"github\.com[:/]([\w.-]+)/([\w.-]+?)(?:\.git)?/?$")
_URL_KEYS = ("repository", "source", "source code", "homepage")
_PRE_LABELS = {"alpha": "a", "a": "a", "beta": "b", "b": "b", "rc": "rc", "c": "rc"}


def _get(url: str, headers: Mapping[str, str] | None) -> requests.Response:
    try:
        response = requests.get(url, headers=dict(headers or {}), timeout=REQUEST_TIMEOUT)
    except requests.RequestException as exc:
        raise RemoteError(url, f"Request failed: {exc}") from exc
    if not response.ok:
        raise RemoteError(url, f"HTTP {response.status_code}", status=response.status_code)
    return response


def fetch_json(url: str, headers: Mapping[str, str] | None = None) -> Any:
    """GET url and decode the body as JSON."""
    debug(f"Fetching {url} as JSON")
    response = _get(url, headers)
    try:
        return response.json()
    except ValueError as exc:
        raise RemoteError(url, "Response is not valid JSON") from exc


def fetch_text(url: str, headers: Mapping[str, str] | None = None) -> str:
    """GET url and return the body as text."""
    debug(f"Fetching {url} as text")
    return _get(url, headers).text


def github_headers() -> dict[str, str]:
    headers = {"Accept": "application/vnd.github+json"}
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def github_repo(ctx: ReleaseContext) -> tuple[str, str]:
    """Find the (org, repo) pair the project is hosted at.

    Uses the `repository` setting when present, else the first GitHub URL
    among [project.urls].

    Raises:
        ConfigurationError: If no GitHub repository can be identified.
    """
    if ctx.settings.repository:
        org, _, repo = ctx.settings.repository.partition("/")
        candidates = [f"github.com/{org}/{repo}"]
    else:
        urls = {k.lower(): v for k, v in ctx.project.urls.items()}
        candidates = [urls[k] for k in _URL_KEYS if k in urls]

    for url in candidates:
        match = _GITHUB_URL.search(url.strip())
        if match:
            return match.group(1), match.group(2)
    raise ConfigurationError(
        "Must be hosted on GitHub to work: set [project.urls].Repository "
        "or [tool.releasewright].repository"
    )


def classify_status(payload: Any) -> BuildStatus:
    """Map a GitHub combined-status payload onto BuildStatus.

    Anything unrecognised counts as pending.
    """
    state = payload.get("state") if isinstance(payload, dict) else None
    if state == "success":
        return BuildStatus.SUCCESS
    if state in ("failure", "error"):
        return BuildStatus.FAILURE
    return BuildStatus.PENDING


def commit_status(org: str, repo: str, reference: str) -> BuildStatus:
    """Combined CI status for a commit, branch or tag."""
    url = f"{GITHUB_API}/repos/{org}/{repo}/commits/{reference}/status"
    return classify_status(fetch_json(url, github_headers()))


def poll(
    fetch_status: Callable[[str], BuildStatus],
    reference: str,
    max_attempts: int = 60,
    interval: float = 5.0,
    sleep: Callable[[float], Any] = time.sleep,
) -> BuildStatus:
    """Wait for the CI build of reference to finish.

    Fetches at most max_attempts times, sleeping interval seconds between
    attempts (never after the last one).

    Raises:
        BuildFailedError: As soon as the build is reported failed.
        BuildTimeoutError: If the build is still pending after the last attempt.
    """
    for attempt in range(1, max_attempts + 1):
        status = fetch_status(reference)
        if status is BuildStatus.FAILURE:
            raise BuildFailedError(f"Build of {reference} failed, cannot proceed.")
        if status is BuildStatus.SUCCESS:
            info(f"Build of {reference} passing")
            return status
        info(f"Build is {status.value}, attempt {attempt}/{max_attempts}")
        if attempt < max_attempts:
            sleep(interval)
    raise BuildTimeoutError(
        f"Build of {reference} not finished after {max_attempts} attempts"
    )


def latest_tag(org: str, repo: str) -> str:
    """Name of the newest tag of a GitHub repository.

    Raises:
        ConfigurationError: If the repository has no tags.
    """
    tags = fetch_json(f"{GITHUB_API}/repos/{org}/{repo}/tags", github_headers())
    if not isinstance(tags, list) or not tags:
        raise ConfigurationError(f"No tags found in {org}/{repo}")
    return str(tags[0]["name"])


def published_version(name: str, dist_tag: str = "latest") -> Version | None:
    """Version currently published on PyPI under a dist-tag.

    "latest" is the index's current version; "alpha", "beta" and "rc"
    select the newest prerelease of that kind. A project that was never
    published yields None.

    Raises:
        ConfigurationError: For an unknown dist-tag.
    """
    if dist_tag != "latest" and dist_tag not in _PRE_LABELS:
        raise ConfigurationError(
            f"Unknown dist-tag {dist_tag!r}, use latest, alpha, beta or rc"
        )
    try:
        data = fetch_json(f"{PYPI_API}/{name}/json")
    except RemoteError as exc:
        if exc.status == 404:
            return None
        raise

    if dist_tag == "latest":
        return Version(data["info"]["version"])

    label = _PRE_LABELS[dist_tag]
    found: list[Version] = []
    for text in data.get("releases", {}):
        try:
            version = Version(text)
        except InvalidVersion:
            continue
        if version.pre and version.pre[0] == label:
            found.append(version)
    return max(found) if found else None


def download(url: str, dest: Path, headers: Mapping[str, str] | None = None) -> Path:
    """Stream url into the file dest."""
    debug(f"Downloading {url} to {dest}")
    try:
        with requests.get(
            url, headers=dict(headers or {}), stream=True, timeout=REQUEST_TIMEOUT
        ) as response:
            if not response.ok:
                raise RemoteError(url, f"HTTP {response.status_code}", status=response.status_code)
            with dest.open("wb") as fh:
                for chunk in response.iter_content(chunk_size=65536):
                    fh.write(chunk)
    except requests.RequestException as exc:
        raise RemoteError(url, f"Download failed: {exc}") from exc
    return dest
