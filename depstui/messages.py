"""Messages delivered to the interface model and the commands that produce them.

A command is a callable taking no arguments that does blocking work and returns
a message. ``QuitRequested`` itself serves as the command that ends the program.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from depstui.detector import DetectionError, Environment, Package
from depstui.index import (
    IndexNotCachedError,
    IndexSaveError,
    PackageIndex,
    fetch_index,
    load_index,
)
from depstui.pypi import PackageInfo, PyPIError
from depstui.pypi import fetch_latest_version as _fetch_latest_version
from depstui.pypi import fetch_package_info as _fetch_package_info
from depstui.pypi import fetch_versions as _fetch_versions

Command = Callable[[], object]


@dataclass
class PackagesLoaded:
    packages: list[Package] = field(default_factory=list)


@dataclass
class LatestVersionLoaded:
    name: str
    version: str = ""
    error: Exception | None = None


@dataclass
class VersionsLoaded:
    versions: list[str] = field(default_factory=list)
    error: Exception | None = None


@dataclass
class PackageUpdated:
    name: str
    version: str
    error: Exception | None = None


@dataclass
class PypiIndexLoaded:
    index: PackageIndex | None = None
    error: Exception | None = None


@dataclass
class PackageInfoLoaded:
    info: PackageInfo | None = None
    error: Exception | None = None


@dataclass
class WindowResized:
    width: int
    height: int


@dataclass
class QuitRequested:
    """Asks the application loop to stop."""


def load_packages(env: Environment) -> Command:
    """List installed packages; a failure yields an empty list."""

    def command() -> PackagesLoaded:
        try:
            return PackagesLoaded(packages=env.list_packages())
        except DetectionError:
            return PackagesLoaded(packages=[])

    return command


def fetch_latest(name: str) -> Command:
    def command() -> LatestVersionLoaded:
        try:
            return LatestVersionLoaded(name=name, version=_fetch_latest_version(name))
        except PyPIError as exc:
            return LatestVersionLoaded(name=name, error=exc)

    return command


def fetch_versions(name: str) -> Command:
    def command() -> VersionsLoaded:
        try:
            return VersionsLoaded(versions=_fetch_versions(name))
        except PyPIError as exc:
            return VersionsLoaded(error=exc)

    return command


def install_package(env: Environment, name: str, version: str) -> Command:
    def command() -> PackageUpdated:
        try:
            env.install_package(name, version)
        except DetectionError as exc:
            return PackageUpdated(name=name, version=version, error=exc)
        return PackageUpdated(name=name, version=version)

    return command


def fetch_package_info(name: str) -> Command:
    def command() -> PackageInfoLoaded:
        try:
            return PackageInfoLoaded(info=_fetch_package_info(name))
        except PyPIError as exc:
            return PackageInfoLoaded(error=exc)

    return command


def load_pypi_index(force_refresh: bool = False) -> Command:
    """Use the cached index while it is fresh, otherwise download it."""

    def command() -> PypiIndexLoaded:
        if not force_refresh:
            try:
                cached = load_index()
            except (IndexNotCachedError, ValueError, OSError, RuntimeError):
                cached = None
            if cached is not None and not cached.is_expired():
                return PypiIndexLoaded(index=cached)
        try:
            return PypiIndexLoaded(index=fetch_index())
        except IndexSaveError as exc:
            return PypiIndexLoaded(index=exc.index, error=exc)
        except (PyPIError, OSError, RuntimeError) as exc:
            return PypiIndexLoaded(error=exc)

    return command