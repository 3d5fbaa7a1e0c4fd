import json
import urllib.error
from unittest import mock

import pytest

from depstui.pypi import (
    PackageInfo,
    PyPIError,
    fetch_latest_version,
    fetch_package_info,
    fetch_versions,
    http_get,
    stable_versions,
)


class _FakeResponse:
    def __init__(self, body, status=200):
        self._body = body
        self.status = status

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def _serve(payload):
    body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    return mock.patch("urllib.request.urlopen", return_value=_FakeResponse(body))


RELEASES = {"releases": {"1.0": [], "2.0rc1": [], "1.5": [], "1.5.dev3": []}}


def test_stable_versions_filters_prereleases():
    assert stable_versions(["1.0", "1.0a1", "1.0.post1", "2.0.dev1"]) == ["1.0", "1.0.post1"]


def test_fetch_latest_version_picks_highest_stable():
    with _serve(RELEASES) as urlopen:
        assert fetch_latest_version("requests") == "1.5"
    request = urlopen.call_args.args[0]
    assert request.full_url == "https://pypi.org/pypi/requests/json"


def test_fetch_latest_version_without_stable_release():
    with _serve({"releases": {"1.0a1": [], "2.0.dev1": []}}):
        with pytest.raises(PyPIError, match="no stable versions found"):
            fetch_latest_version("requests")


def test_fetch_versions_newest_first():
    with _serve(RELEASES):
        versions = fetch_versions("requests")
    assert sorted(versions) == sorted(RELEASES["releases"])
    assert versions[0] == "2.0rc1"
    assert versions[-1] == "1.0"


def test_fetch_package_info_falls_back_to_project_url():
    info = {
        "name": "requests",
        "summary": "HTTP for Humans.",
        "version": "2.31.0",
        "license": None,
        "home_page": None,
        "project_url": "https://pypi.org/project/requests/",
        "author": "Example Author",
        "requires_python": ">=3.7",
    }
    with _serve({"info": info, "releases": {}}):
        got = fetch_package_info("requests")
    assert got == PackageInfo(
        name="requests",
        summary="HTTP for Humans.",
        version="2.31.0",
        license="",
        home_page="https://pypi.org/project/requests/",
        author="Example Author",
        requires_python=">=3.7",
    )


def test_http_status_error():
    error = urllib.error.HTTPError("https://pypi.org/x", 404, "Not Found", {}, None)
    with mock.patch("urllib.request.urlopen", side_effect=error):
        with pytest.raises(PyPIError, match="status 404"):
            fetch_versions("missing")


def test_network_error():
    with mock.patch("urllib.request.urlopen", side_effect=urllib.error.URLError("down")):
        with pytest.raises(PyPIError):
            http_get("https://pypi.org/simple/")


def test_undecodable_body():
    with _serve(b"<html>"):
        with pytest.raises(PyPIError, match="decoding PyPI response"):
            fetch_package_info("requests")


def test_http_get_sets_accept_header():
    with _serve(b"body") as urlopen:
        assert http_get("https://pypi.org/simple/", accept="text/html") == b"body"
    assert urlopen.call_args.args[0].get_header("Accept") == "text/html"