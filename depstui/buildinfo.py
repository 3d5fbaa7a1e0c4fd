"""Identity of the running tool: version plus a short VCS hash."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

SHORT_HASH_LEN = 7


@dataclass(frozen=True)
class BuildInfo:
    """Bare semver version and an optional short commit hash."""

    version: str
    commit: str = ""

    def display(self) -> str:
        """Return "x.y.z (hash)", or just "x.y.z" without a commit."""
        if not self.commit:
            return self.version
        return f"{self.version} ({self.commit})"


def new_build_info(version: str) -> BuildInfo:
    """Build info for the given version with the commit of the source checkout, if any."""
    return BuildInfo(version=version, commit=_vcs_revision())


def extract_revision(settings: Iterable[tuple[str, str]] | None) -> str:
    """Return the short hash from the first usable "vcs.revision" setting."""
    for key, value in settings or ():
        if key == "vcs.revision" and len(value) >= SHORT_HASH_LEN:
            return value[:SHORT_HASH_LEN]
    return ""


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError:
        return ""


def _resolve_ref(git_dir: Path, ref: str) -> str:
    direct = _read_text(git_dir / ref)
    if direct:
        return direct
    for line in _read_text(git_dir / "packed-refs").splitlines():
        if line.startswith(("#", "^")):
            continue
        parts = line.split()
        if len(parts) == 2 and parts[1] == ref:
            return parts[0]
    return ""


def _vcs_revision() -> str:
    git_dir = Path(__file__).resolve().parent.parent / ".git"
    head = _read_text(git_dir / "HEAD")
    if not head:
        return ""
    commit = _resolve_ref(git_dir, head[5:].strip()) if head.startswith("ref:") else head
    return extract_revision([("vcs.revision", commit)])