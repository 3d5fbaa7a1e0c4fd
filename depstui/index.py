"""Local cache of the PyPI package name index and search over it."""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path

from depstui.pypi import http_get

PYPI_SIMPLE_URL = "https://pypi.org/simple/"
INDEX_MAX_AGE = timedelta(days=7)
CACHE_DIR = "deps"
CACHE_FILE_NAME = "pypi_index.json"

_LINK_RE = re.compile(r'<a[^>]+href="/simple/([^/]+)/"')
_TIMESTAMP_RE = re.compile(
    r"(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(?P<frac>\d+))?(?P<tz>Z|[+-]\d{2}:\d{2})?"
)
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class IndexNotCachedError(Exception):
    """Raised when no index cache file exists yet."""

    def __init__(self, message: str = "index not cached") -> None:
        super().__init__(message)


class IndexSaveError(Exception):
    """Raised when a freshly fetched index could not be cached; carries the index."""

    def __init__(self, message: str, index: PackageIndex) -> None:
        super().__init__(message)
        self.index = index


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PackageIndex:
    packages: list[str] = field(default_factory=list)
    updated_at: datetime = field(default_factory=_utcnow)

    def age(self) -> timedelta:
        """Time elapsed since the index was fetched."""
        return _utcnow() - self.updated_at

    def is_expired(self) -> bool:
        return self.age() > INDEX_MAX_AGE


def _parse_timestamp(text: str) -> datetime:
    match = _TIMESTAMP_RE.fullmatch(text.strip())
    if match is None:
        raise ValueError(f"invalid timestamp {text!r}")
    iso = match["base"]
    if match["frac"]:
        iso += "." + match["frac"][:6].ljust(6, "0")
    tz = match["tz"]
    iso += "+00:00" if tz in (None, "Z") else tz
    return datetime.fromisoformat(iso)


def cache_file_path() -> Path:
    """Location of the index cache under the XDG cache directory."""
    cache_home = os.environ.get("XDG_CACHE_HOME", "")
    base = Path(cache_home) if cache_home else Path.home() / ".cache"
    return base / CACHE_DIR / CACHE_FILE_NAME


def load_index() -> PackageIndex:
    """Read the cached index; raise IndexNotCachedError if there is none."""
    path = cache_file_path()
    try:
        data = path.read_bytes()
    except FileNotFoundError as exc:
        raise IndexNotCachedError() from exc

    try:
        raw = json.loads(data)
        stamp = raw.get("updated_at")
        return PackageIndex(
            packages=list(raw.get("packages") or []),
            updated_at=_parse_timestamp(stamp) if stamp else _EPOCH,
        )
    except (ValueError, TypeError, AttributeError) as exc:
        raise ValueError(f"parsing index cache: {exc}") from exc


def parse_index_html(body: bytes | str) -> list[str]:
    """Extract package names from the PyPI simple index page."""
    text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
    return _LINK_RE.findall(text)


def fetch_index() -> PackageIndex:
    """Download the PyPI name index and cache it.

    If caching fails the index is still available on the raised IndexSaveError.
    """
    body = http_get(PYPI_SIMPLE_URL, accept="text/html")
    index = PackageIndex(packages=parse_index_html(body), updated_at=_utcnow())
    try:
        save_index(index)
    except OSError as exc:
        raise IndexSaveError(f"saving index cache: {exc}", index) from exc
    return index


def save_index(idx: PackageIndex) -> None:
    """Write the index to the cache file, creating its directory."""
    path = cache_file_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"packages": idx.packages, "updated_at": idx.updated_at.isoformat()}
    path.write_text(json.dumps(payload), encoding="utf-8")


def search_index(idx: PackageIndex | None, query: str) -> list[str]:
    """Return matches: the exact name, then prefix matches, then substring matches."""
    if idx is None or not query:
        return []

    query = normalize_name(query)
    exact: list[str] = []
    prefix: list[str] = []
    contains: list[str] = []
    for name in idx.packages:
        if name == query:
            exact.append(name)
        elif name.startswith(query):
            prefix.append(name)
        elif query in name:
            contains.append(name)

    return exact + sorted(prefix) + sorted(contains)


def normalize_name(name: str) -> str:
    """Lower-case a name and turn underscores and dots into hyphens."""
    return name.lower().replace("_", "-").replace(".", "-")