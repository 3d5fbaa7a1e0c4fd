"""Discovery of the Python interpreter and package manager to operate on."""

from __future__ import annotations

import enum
import json
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path


class DetectionError(Exception):
    """Raised when the environment cannot be inspected or a manager command fails."""


class Manager(enum.Enum):
    PIP = "pip"
    UV = "uv"

    def __str__(self) -> str:
        return self.value


@dataclass
class Package:
    name: str
    installed_version: str
    latest_version: str = "…"


@dataclass
class Environment:
    python_path: str = ""
    python_version: str = ""
    manager: Manager = Manager.PIP

    def list_packages(self) -> list[Package]:
        """Return the packages installed in this environment."""
        if self.manager is Manager.UV:
            cmd = ["uv", "pip", "list", "--format=json", "--python", self.python_path]
        else:
            cmd = [self.python_path, "-m", "pip", "list", "--format=json"]

        try:
            result = subprocess.run(cmd, capture_output=True, check=True)
        except (OSError, subprocess.CalledProcessError) as exc:
            raise DetectionError(f"listing packages: {exc}") from exc

        try:
            raw = json.loads(result.stdout)
            return [
                Package(name=entry.get("name", ""), installed_version=entry.get("version", ""))
                for entry in raw
            ]
        except (ValueError, TypeError, AttributeError) as exc:
            raise DetectionError(f"parsing package list: {exc}") from exc

    def install_package(self, name: str, version: str) -> None:
        """Install exactly ``name==version`` into this environment."""
        target = f"{name}=={version}"
        if self.manager is Manager.UV:
            cmd = ["uv", "pip", "install", target, "--python", self.python_path]
        else:
            cmd = [self.python_path, "-m", "pip", "install", target]

        try:
            result = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT)
        except OSError as exc:
            raise DetectionError(f"installing {target}: {exc}") from exc

        if result.returncode != 0:
            output = (result.stdout or b"").decode(errors="replace")
            raise DetectionError(
                f"installing {target}: exit status {result.returncode}\n{output}"
            )


def detect_environment(python_override: str = "", manager_override: str = "") -> Environment:
    """Find the interpreter and package manager, honouring explicit overrides."""
    try:
        python_path = _detect_python(python_override)
        version = _fetch_version(python_path)
    except DetectionError as exc:
        raise DetectionError(f"detecting python: {exc}") from exc
    return Environment(
        python_path=python_path,
        python_version=version,
        manager=_detect_manager(manager_override),
    )


def _detect_python(override: str) -> str:
    if override:
        return override

    venv_python = Path(".venv", "bin", "python")
    if venv_python.exists():
        return os.path.abspath(venv_python)

    found = shutil.which("python3") or shutil.which("python")
    if found is None:
        raise DetectionError("python not found in PATH")
    return found


def _fetch_version(python_path: str) -> str:
    try:
        result = subprocess.run([python_path, "--version"], capture_output=True, check=True)
    except (OSError, subprocess.CalledProcessError) as exc:
        raise DetectionError(f"running {python_path} --version: {exc}") from exc
    parts = result.stdout.decode(errors="replace").split()
    return parts[1] if len(parts) >= 2 else ""


def _detect_manager(override: str) -> Manager:
    if override:
        return Manager.UV if override.lower() == "uv" else Manager.PIP

    if Path("uv.lock").exists():
        return Manager.UV

    try:
        pyproject = Path("pyproject.toml").read_text(errors="replace")
    except OSError:
        return Manager.PIP
    return Manager.UV if "[tool.uv]" in pyproject else Manager.PIP