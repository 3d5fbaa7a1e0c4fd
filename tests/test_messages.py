import json
import urllib.error
from datetime import datetime, timedelta, timezone
from unittest import mock

import pytest

from depstui.detector import DetectionError, Package
from depstui.index import PackageIndex, save_index
from depstui.messages import (
    LatestVersionLoaded,
    PackagesLoaded,
    PackageUpdated,
    fetch_latest,
    fetch_package_info,
    fetch_versions,
    install_package,
    load_packages,
    load_pypi_index,
)
from depstui.pypi import PyPIError


class _Response:
    def __init__(self, body: bytes, status: int = 200) -> None:
        self.body = body
        self.status = status

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def read(self) -> bytes:
        return self.body


def _json_response(payload: dict) -> _Response:
    return _Response(json.dumps(payload).encode())


class _FakeEnv:
    def __init__(self, packages=None, fail: bool = False) -> None:
        self.packages = packages or []
        self.fail = fail
        self.installed = []

    def list_packages(self):
        if self.fail:
            raise DetectionError("boom")
        return self.packages

    def install_package(self, name, version):
        if self.fail:
            raise DetectionError("install failed")
        self.installed.append((name, version))


RELEASES = {"releases": {"1.0": [], "2.0": [], "2.1rc1": []}, "info": {"name": "demo"}}


def test_load_packages_returns_listing():
    pkgs = [Package(name="alpha", installed_version="1.0")]
    msg = load_packages(_FakeEnv(pkgs))()
    assert msg == PackagesLoaded(packages=pkgs)


def test_load_packages_failure_yields_empty_list():
    msg = load_packages(_FakeEnv(fail=True))()
    assert msg.packages == []


def test_install_package_success_and_failure():
    env = _FakeEnv()
    msg = install_package(env, "alpha", "1.2")()
    assert msg == PackageUpdated(name="alpha", version="1.2")
    assert env.installed == [("alpha", "1.2")]

    failed = install_package(_FakeEnv(fail=True), "alpha", "1.2")()
    assert isinstance(failed.error, DetectionError)
    assert failed.name == "alpha"


def test_fetch_latest_picks_highest_stable():
    with mock.patch("urllib.request.urlopen", return_value=_json_response(RELEASES)):
        msg = fetch_latest("demo")()
    assert msg == LatestVersionLoaded(name="demo", version="2.0")


def test_fetch_latest_reports_network_error():
    with mock.patch("urllib.request.urlopen", side_effect=urllib.error.URLError("down")):
        msg = fetch_latest("demo")()
    assert msg.version == ""
    assert isinstance(msg.error, PyPIError)


def test_fetch_versions_newest_first():
    with mock.patch("urllib.request.urlopen", return_value=_json_response(RELEASES)):
        msg = fetch_versions("demo")()
    assert msg.error is None
    assert msg.versions == ["2.1rc1", "2.0", "1.0"]


def test_fetch_package_info_success_and_error():
    with mock.patch("urllib.request.urlopen", return_value=_json_response(RELEASES)):
        msg = fetch_package_info("demo")()
    assert msg.info.name == "demo"

    with mock.patch("urllib.request.urlopen", side_effect=urllib.error.URLError("down")):
        failed = fetch_package_info("demo")()
    assert failed.info is None
    assert isinstance(failed.error, PyPIError)


@pytest.fixture
def cache_home(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path))
    return tmp_path


def test_load_pypi_index_uses_fresh_cache(cache_home):
    save_index(PackageIndex(packages=["alpha", "beta"]))
    with mock.patch("urllib.request.urlopen", side_effect=AssertionError("no network")):
        msg = load_pypi_index(False)()
    assert msg.error is None
    assert msg.index.packages == ["alpha", "beta"]


def test_load_pypi_index_refetches_expired_cache(cache_home):
    stale = datetime.now(timezone.utc) - timedelta(days=8)
    save_index(PackageIndex(packages=["alpha"], updated_at=stale))
    html = b'<html><a href="/simple/beta/">beta</a></html>'
    with mock.patch("urllib.request.urlopen", return_value=_Response(html)):
        msg = load_pypi_index(False)()
    assert msg.index.packages == ["beta"]
    assert not msg.index.is_expired()


def test_force_refresh_reports_fetch_error(cache_home):
    save_index(PackageIndex(packages=["alpha"]))
    with mock.patch("urllib.request.urlopen", side_effect=urllib.error.URLError("down")):
        msg = load_pypi_index(True)()
    assert msg.index is None
    assert isinstance(msg.error, PyPIError)