import os
import platform
import subprocess
import sys
from unittest import mock

import pytest

from depstui.detector import (
    DetectionError,
    Environment,
    Manager,
    Package,
    detect_environment,
)


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_manager_str(workdir):
    assert str(detect_environment(sys.executable, "uv").manager) == "uv"
    assert str(detect_environment(sys.executable, "pip").manager) == "pip"


def test_override_python_reports_its_version(workdir):
    env = detect_environment(sys.executable, "")
    assert env.python_path == sys.executable
    assert env.python_version == platform.python_version()
    assert env.manager is Manager.PIP


def test_uv_lock_selects_uv(workdir):
    (workdir / "uv.lock").write_text("")
    assert detect_environment(sys.executable, "").manager is Manager.UV


def test_pyproject_tool_uv_selects_uv(workdir):
    (workdir / "pyproject.toml").write_text("[project]\nname = 'x'\n\n[tool.uv]\n")
    assert detect_environment(sys.executable, "").manager is Manager.UV


def test_pyproject_without_uv_selects_pip(workdir):
    (workdir / "pyproject.toml").write_text("[project]\nname = 'x'\n")
    assert detect_environment(sys.executable, "").manager is Manager.PIP


@pytest.mark.parametrize(("override", "want"), [("UV", Manager.UV), ("uv", Manager.UV), ("poetry", Manager.PIP)])
def test_manager_override(workdir, override, want):
    (workdir / "uv.lock").write_text("")
    assert detect_environment(sys.executable, override).manager is want


def test_venv_in_current_directory_is_preferred(workdir):
    bin_dir = workdir / ".venv" / "bin"
    bin_dir.mkdir(parents=True)
    os.symlink(sys.executable, bin_dir / "python")
    env = detect_environment("", "")
    assert env.python_path == os.path.join(os.getcwd(), ".venv", "bin", "python")
    assert env.python_version == platform.python_version()


def test_missing_python_in_path(workdir, monkeypatch):
    empty = workdir / "empty"
    empty.mkdir()
    monkeypatch.setenv("PATH", str(empty))
    with pytest.raises(DetectionError, match="python not found in PATH"):
        detect_environment("", "")


def test_bad_override_raises(workdir):
    with pytest.raises(DetectionError, match="detecting python"):
        detect_environment(str(workdir / "nope"), "")


def _completed(stdout, returncode=0):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=b"")


def test_list_packages_pip():
    env = Environment(python_path="/usr/bin/python3", manager=Manager.PIP)
    payload = b'[{"name": "requests", "version": "2.31.0"}]'
    with mock.patch("subprocess.run", return_value=_completed(payload)) as run:
        packages = env.list_packages()
    assert packages == [Package(name="requests", installed_version="2.31.0", latest_version="…")]
    assert run.call_args.args[0][:3] == ["/usr/bin/python3", "-m", "pip"]


def test_list_packages_uv_uses_python_flag():
    env = Environment(python_path="/usr/bin/python3", manager=Manager.UV)
    with mock.patch("subprocess.run", return_value=_completed(b"[]")) as run:
        assert env.list_packages() == []
    cmd = run.call_args.args[0]
    assert cmd[:3] == ["uv", "pip", "list"]
    assert cmd[-2:] == ["--python", "/usr/bin/python3"]


def test_list_packages_command_failure():
    env = Environment(python_path="/usr/bin/python3")
    error = subprocess.CalledProcessError(1, ["pip"])
    with mock.patch("subprocess.run", side_effect=error):
        with pytest.raises(DetectionError, match="listing packages"):
            env.list_packages()


def test_list_packages_bad_json():
    env = Environment(python_path="/usr/bin/python3")
    with mock.patch("subprocess.run", return_value=_completed(b"not json")):
        with pytest.raises(DetectionError, match="parsing package list"):
            env.list_packages()


def test_install_package_pins_version():
    env = Environment(python_path="/usr/bin/python3", manager=Manager.UV)
    with mock.patch("subprocess.run", return_value=_completed(b"ok")) as run:
        result = env.install_package("requests", "2.31.0")
    assert result is None
    assert run.call_args.args[0][:4] == ["uv", "pip", "install", "requests==2.31.0"]
    assert run.call_args.args[0][-2:] == ["--python", "/usr/bin/python3"]


def test_install_package_failure_includes_output():
    env = Environment(python_path="/usr/bin/python3")
    with mock.patch("subprocess.run", return_value=_completed(b"no matching distribution", 1)):
        with pytest.raises(DetectionError) as info:
            env.install_package("requests", "9.9.9")
    assert "requests==9.9.9" in str(info.value)
    assert "no matching distribution" in str(info.value)