"""Queries against the PyPI JSON API."""

from __future__ import annotations

import json
import urllib.error
import urllib.request
from collections.abc import Iterable
from dataclasses import dataclass
from functools import cmp_to_key

from depstui.semver import compare, is_stable

HTTP_TIMEOUT = 10.0
_JSON_URL = "https://pypi.org/pypi/{name}/json"


class PyPIError(Exception):
    """Raised when PyPI cannot be reached or answers with something unusable."""


@dataclass
class PackageInfo:
    name: str = ""
    summary: str = ""
    version: str = ""
    license: str = ""
    home_page: str = ""
    author: str = ""
    requires_python: str = ""


def http_get(url: str, accept: str | None = None) -> bytes:
    """GET ``url`` and return the body; raise PyPIError unless the status is 200."""
    headers = {"Accept": accept} if accept else {}
    request = urllib.request.Request(url, headers=headers, method="GET")
    try:
        with urllib.request.urlopen(request, timeout=HTTP_TIMEOUT) as response:
            status = response.status
            body = response.read()
    except urllib.error.HTTPError as exc:
        raise PyPIError(f"PyPI returned status {exc.code}") from exc
    except (urllib.error.URLError, OSError) as exc:
        raise PyPIError(f"fetching {url}: {exc}") from exc
    if status != 200:
        raise PyPIError(f"PyPI returned status {status}")
    return body


def _fetch_pypi(package_name: str) -> dict:
    body = http_get(_JSON_URL.format(name=package_name))
    try:
        data = json.loads(body)
    except ValueError as exc:
        raise PyPIError(f"decoding PyPI response: {exc}") from exc
    if not isinstance(data, dict):
        raise PyPIError("decoding PyPI response: expected an object")
    return data


def _releases(data: dict) -> list[str]:
    return list(data.get("releases") or {})


def stable_versions(releases: Iterable[str]) -> list[str]:
    """Return the versions that are neither pre-releases nor dev releases."""
    return [version for version in releases if is_stable(version)]


def fetch_package_info(package_name: str) -> PackageInfo:
    """Return the summary metadata PyPI publishes for a package."""
    info = _fetch_pypi(package_name).get("info") or {}

    def field(key: str) -> str:
        return info.get(key) or ""

    return PackageInfo(
        name=field("name"),
        summary=field("summary"),
        version=field("version"),
        license=field("license"),
        home_page=field("home_page") or field("project_url"),
        author=field("author"),
        requires_python=field("requires_python"),
    )


def fetch_latest_version(package_name: str) -> str:
    """Return the highest stable release of a package."""
    versions = stable_versions(_releases(_fetch_pypi(package_name)))
    if not versions:
        raise PyPIError("no stable versions found")
    return max(versions, key=cmp_to_key(compare))


def fetch_versions(package_name: str) -> list[str]:
    """Return every release of a package, newest first."""
    versions = _releases(_fetch_pypi(package_name))
    return sorted(versions, key=cmp_to_key(compare), reverse=True)