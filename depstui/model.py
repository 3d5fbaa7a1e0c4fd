"""State and behaviour of the interactive package table."""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace

from depstui.buildinfo import BuildInfo
from depstui.detector import Environment, Package
from depstui.index import PackageIndex, search_index
from depstui.keys import KEY_ENTER, KEYS, Key
from depstui.messages import (
    Command,
    LatestVersionLoaded,
    PackageInfoLoaded,
    PackagesLoaded,
    PackageUpdated,
    PypiIndexLoaded,
    QuitRequested,
    VersionsLoaded,
    WindowResized,
    fetch_latest,
    fetch_package_info,
    fetch_versions,
    install_package,
    load_packages,
    load_pypi_index,
)
from depstui.pypi import PackageInfo
from depstui.styles import STYLE_SEARCH, STYLE_SEARCH_PROMPT
from depstui.textinput import TextInput

_LOCAL_PROMPT = "  Search [local]: "
_PYPI_PROMPT = "  Search [PyPI]: "
_SEARCH_CHAR_LIMIT = 100


class SortMode(enum.Enum):
    NAME = enum.auto()
    STATUS = enum.auto()


class ViewMode(enum.Enum):
    TABLE = enum.auto()
    SEARCH = enum.auto()
    PYPI_TABLE = enum.auto()
    VERSIONS = enum.auto()
    CONFIRM = enum.auto()
    UPDATING = enum.auto()
    RELOAD_CONFIRM = enum.auto()
    PACKAGE_INFO = enum.auto()


class SearchMode(enum.Enum):
    LOCAL = enum.auto()
    PYPI = enum.auto()


class PackageStatus(enum.Enum):
    UNKNOWN = enum.auto()
    UP_TO_DATE = enum.auto()
    OUTDATED = enum.auto()
    UPDATING = enum.auto()
    ERROR = enum.auto()


_STATUS_ORDER = {
    PackageStatus.OUTDATED: 0,
    PackageStatus.UNKNOWN: 1,
    PackageStatus.UP_TO_DATE: 2,
    PackageStatus.ERROR: 3,
    PackageStatus.UPDATING: 4,
}


def status_order(status: PackageStatus) -> int:
    """Rank used when sorting by status: outdated packages come first."""
    return _STATUS_ORDER.get(status, 5)


def format_age(seconds: float) -> str:
    """Human-readable age such as "just now", "5m ago", "3h ago" or "2d ago"."""
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{int(seconds // 60)}m ago"
    if seconds < 86400:
        return f"{int(seconds // 3600)}h ago"
    return f"{int(seconds // 86400)}d ago"


@dataclass
class PackageItem:
    pkg: Package
    status: PackageStatus = PackageStatus.UNKNOWN
    selected: bool = False
    err_msg: str = ""


@dataclass
class UpdateResult:
    name: str
    to: str
    success: bool
    err_msg: str = ""


class Model:
    """Interface state; ``update`` applies a message and returns commands to run."""

    def __init__(self, env: Environment, build: BuildInfo) -> None:
        self.build = build
        self.env = env
        self.search = TextInput(
            prompt=_LOCAL_PROMPT,
            char_limit=_SEARCH_CHAR_LIMIT,
            prompt_style=STYLE_SEARCH_PROMPT,
            text_style=STYLE_SEARCH,
        )
        self.packages: list[PackageItem] = []
        self.filtered: list[int] = []
        self.cursor = 0
        self.offset = 0
        self.height = 24
        self.width = 80
        self.mode = ViewMode.TABLE
        self.sort_mode = SortMode.NAME
        self.versions: list[str] = []
        self.ver_cursor = 0
        self.ver_offset = 0
        self.confirm_pkgs: list[int] = []
        self.confirm_offset = 0
        self.update_idx = 0
        self.update_done: list[UpdateResult] = []
        self.err_message = ""
        self.search_mode = SearchMode.LOCAL
        self.pypi_index: PackageIndex | None = None
        self.pypi_results: list[str] = []
        self.pypi_cursor = 0
        self.pypi_offset = 0
        self.pypi_install = False
        self.pypi_package_name = ""
        self.pypi_loading = False
        self.package_info: PackageInfo | None = None

    # ----- lifecycle -----

    def init(self) -> list[Command]:
        return [load_packages(self.env)]

    def update(self, msg: object) -> list[Command]:
        """Apply one message and return the commands it triggers."""
        if isinstance(msg, WindowResized):
            self.width = msg.width
            self.height = msg.height
            return []
        if isinstance(msg, PackagesLoaded):
            return self._handle_packages_loaded(msg)
        if isinstance(msg, LatestVersionLoaded):
            self._update_latest_version(msg)
            self._apply_filter()
            return []
        if isinstance(msg, VersionsLoaded):
            return self._handle_versions_loaded(msg)
        if isinstance(msg, PackageInfoLoaded):
            self.pypi_loading = False
            self.pypi_package_name = ""
            if msg.error is not None:
                self.err_message = f"Failed to fetch package info: {msg.error}"
            else:
                self.package_info = msg.info
                self.mode = ViewMode.PACKAGE_INFO
            return []
        if isinstance(msg, PypiIndexLoaded):
            self.pypi_loading = False
            if msg.error is not None:
                self.err_message = f"Failed to load PyPI index: {msg.error}"
            if msg.index is not None:
                self.pypi_index = msg.index
                self._set_search_prompt()
                self._apply_pypi_filter()
            return []
        if isinstance(msg, PackageUpdated):
            return self._handle_package_updated(msg)
        if isinstance(msg, Key):
            return self.handle_key(msg)
        return []

    # ----- geometry and queries -----

    def table_height(self) -> int:
        # header, search bar, table header and footer take two lines each
        return max(3, self.height - 8)

    def popup_max_items(self) -> int:
        # border, title, blank lines and footer hint
        return max(3, self.height - 6)

    def current_package_idx(self) -> int:
        if not self.filtered:
            return -1
        return self.filtered[self.cursor]

    def selected_packages(self) -> list[int]:
        return [idx for idx in self.filtered if self.packages[idx].selected]

    def outdated_packages(self) -> list[int]:
        return [
            idx for idx in self.filtered
            if self.packages[idx].status is PackageStatus.OUTDATED
        ]

    # ----- filtering and sorting -----

    def _set_search_prompt(self) -> None:
        if self.search_mode is SearchMode.PYPI:
            if self.pypi_index is not None:
                age = format_age(self.pypi_index.age().total_seconds())
                self.search.prompt = f"  Search [PyPI] (index: {age}): "
            else:
                self.search.prompt = _PYPI_PROMPT
        else:
            self.search.prompt = _LOCAL_PROMPT

    def _apply_filter(self) -> None:
        query = self.search.value.lower()
        self.filtered = [
            i for i, item in enumerate(self.packages)
            if not query or query in item.pkg.name.lower()
        ]
        self._apply_sort()
        if self.cursor >= len(self.filtered):
            self.cursor = max(0, len(self.filtered) - 1)

    def _apply_pypi_filter(self) -> None:
        self.pypi_results = search_index(self.pypi_index, self.search.value.strip())
        if self.pypi_cursor >= len(self.pypi_results):
            self.pypi_cursor = max(0, len(self.pypi_results) - 1)
        self.pypi_offset = 0

    def _apply_sort(self) -> None:
        if self.sort_mode is SortMode.NAME:
            self.filtered.sort(key=lambda i: self.packages[i].pkg.name.lower())
        else:
            self.filtered.sort(
                key=lambda i: (
                    status_order(self.packages[i].status),
                    self.packages[i].pkg.name.lower(),
                )
            )

    # ----- message handlers -----

    def _handle_packages_loaded(self, msg: PackagesLoaded) -> list[Command]:
        self.packages = [PackageItem(pkg=replace(p)) for p in msg.packages]
        self.filtered = list(range(len(self.packages)))
        self._apply_filter()
        return [fetch_latest(p.name) for p in msg.packages]

    def _handle_versions_loaded(self, msg: VersionsLoaded) -> list[Command]:
        self.pypi_loading = False
        if msg.error is not None:
            self.err_message = f"Failed to fetch versions: {msg.error}"
            self.pypi_install = False
            self.pypi_package_name = ""
            self.mode = ViewMode.SEARCH
            self.search.focus()
            return []
        self.versions = list(msg.versions)
        self.ver_cursor = 0
        self.ver_offset = 0
        self.mode = ViewMode.VERSIONS
        return []

    def _update_latest_version(self, msg: LatestVersionLoaded) -> None:
        item = next((p for p in self.packages if p.pkg.name == msg.name), None)
        if item is None:
            return
        if msg.error is not None:
            item.pkg.latest_version = "?"
            item.status = PackageStatus.ERROR
        else:
            item.pkg.latest_version = msg.version
            if item.pkg.installed_version == msg.version:
                item.status = PackageStatus.UP_TO_DATE
            else:
                item.status = PackageStatus.OUTDATED

    def _handle_package_updated(self, msg: PackageUpdated) -> list[Command]:
        was_new_install = self.pypi_install
        self._apply_package_update(msg)

        if self.mode is ViewMode.UPDATING:
            self.update_done.append(
                UpdateResult(
                    name=msg.name,
                    to=msg.version,
                    success=msg.error is None,
                    err_msg=str(msg.error) if msg.error is not None else "",
                )
            )
            self.update_idx += 1
            if self.update_idx < len(self.confirm_pkgs):
                item = self.packages[self.confirm_pkgs[self.update_idx]]
                return [install_package(self.env, item.pkg.name, item.pkg.latest_version)]

        self._apply_filter()

        if was_new_install:
            self.search_mode = SearchMode.LOCAL
            self._set_search_prompt()
            if msg.error is None:
                self.search.set_value("")
                self._apply_filter()
                return [fetch_latest(msg.name)]
            self.err_message = f"Failed to install {msg.name}: {msg.error}"
            self.search.set_value("")
            self._apply_filter()
        return []

    def _apply_package_update(self, msg: PackageUpdated) -> None:
        item = next((p for p in self.packages if p.pkg.name == msg.name), None)
        if item is not None:
            if msg.error is not None:
                item.status = PackageStatus.ERROR
                item.err_msg = str(msg.error)
            else:
                item.pkg.installed_version = msg.version
                if msg.version == item.pkg.latest_version:
                    item.status = PackageStatus.UP_TO_DATE
                else:
                    item.status = PackageStatus.OUTDATED
        elif msg.error is None:
            # not in the list yet: a fresh install from PyPI
            self.packages.append(
                PackageItem(pkg=Package(name=msg.name, installed_version=msg.version))
            )
        self.pypi_install = False
        self.pypi_package_name = ""

    # ----- keys -----

    def handle_key(self, key: Key) -> list[Command]:
        """Handle a key press according to the current view."""
        self.err_message = ""
        handler = {
            ViewMode.SEARCH: self._handle_search_key,
            ViewMode.PYPI_TABLE: self._handle_pypi_table_key,
            ViewMode.VERSIONS: self._handle_versions_key,
            ViewMode.CONFIRM: self._handle_confirm_key,
            ViewMode.UPDATING: self._handle_updating_key,
            ViewMode.RELOAD_CONFIRM: self._handle_reload_confirm_key,
            ViewMode.PACKAGE_INFO: self._handle_package_info_key,
            ViewMode.TABLE: self._handle_table_key,
        }[self.mode]
        return handler(key)

    def _handle_table_key(self, key: Key) -> list[Command]:
        # ignore keys while an info fetch is in flight, to avoid races
        if self.pypi_loading:
            return [QuitRequested] if KEYS.quit.matches(key) else []

        vim = key.name
        if vim == "k":
            self._move_up()
            return []
        if vim == "j":
            self._move_down()
            return []
        if vim == "l":
            return self._open_versions()
        if vim == "i":
            return self._show_package_info()

        if KEYS.quit.matches(key):
            return [QuitRequested]
        if KEYS.up.matches(key):
            self._move_up()
        elif KEYS.down.matches(key):
            self._move_down()
        elif KEYS.search.matches(key):
            self.mode = ViewMode.SEARCH
            self.search.focus()
        elif KEYS.sort.matches(key):
            self._toggle_sort()
        elif KEYS.select.matches(key):
            self._toggle_select()
        elif KEYS.select_all.matches(key):
            self._toggle_select_outdated()
        elif KEYS.select_all_up.matches(key):
            self._toggle_select_all()
        elif KEYS.enter.matches(key):
            return self._start_update()
        elif KEYS.right.matches(key):
            return self._open_versions()
        elif KEYS.reload.matches(key):
            return self._reload_packages()
        elif KEYS.escape.matches(key):
            self._clear_selection()
        return []

    def _reload_packages(self) -> list[Command]:
        self.packages = []
        self.filtered = []
        self.cursor = 0
        self.offset = 0
        return [load_packages(self.env)]

    def _ensure_cursor_visible(self) -> None:
        th = self.table_height()
        if self.cursor < self.offset:
            self.offset = self.cursor
        if self.cursor >= self.offset + th:
            self.offset = self.cursor - th + 1

    def _move_up(self) -> None:
        if self.cursor > 0:
            self.cursor -= 1
            self._ensure_cursor_visible()

    def _move_down(self) -> None:
        if self.cursor < len(self.filtered) - 1:
            self.cursor += 1
            self._ensure_cursor_visible()

    def _toggle_sort(self) -> None:
        self.sort_mode = SortMode.STATUS if self.sort_mode is SortMode.NAME else SortMode.NAME
        self._apply_filter()

    def _toggle_select(self) -> None:
        idx = self.current_package_idx()
        if idx >= 0:
            self.packages[idx].selected = not self.packages[idx].selected
            self._move_down()

    def _toggle_group(self, indices: list[int]) -> None:
        all_selected = all(self.packages[i].selected for i in indices)
        for i in indices:
            self.packages[i].selected = not all_selected

    def _toggle_select_outdated(self) -> None:
        self._toggle_group(self.outdated_packages())

    def _toggle_select_all(self) -> None:
        self._toggle_group(self.filtered)

    def _clear_selection(self) -> None:
        for item in self.packages:
            item.selected = False

    def _open_versions(self) -> list[Command]:
        idx = self.current_package_idx()
        if idx < 0:
            return []
        return [fetch_versions(self.packages[idx].pkg.name)]

    def _show_package_info(self) -> list[Command]:
        if self.mode is ViewMode.PYPI_TABLE and self.pypi_results:
            name = self.pypi_results[self.pypi_cursor]
        else:
            idx = self.current_package_idx()
            if idx < 0:
                return []
            name = self.packages[idx].pkg.name
        self.pypi_loading = True
        self.pypi_package_name = name
        return [fetch_package_info(name)]

    def _handle_search_key(self, key: Key) -> list[Command]:
        if KEYS.escape.matches(key):
            self.mode = ViewMode.TABLE
            self.search.blur()
            self.search.set_value("")
            self.search_mode = SearchMode.LOCAL
            self._set_search_prompt()
            self._apply_filter()
            return []
        if KEYS.tab.matches(key):
            return self._toggle_search_mode()
        if KEYS.reload.matches(key):
            if self.search_mode is SearchMode.PYPI and self.pypi_index is not None:
                self.mode = ViewMode.RELOAD_CONFIRM
                return []
        elif KEYS.down.matches(key) or KEYS.enter.matches(key):
            if self.search_mode is SearchMode.PYPI:
                if not self.pypi_results:
                    return []
                self.mode = ViewMode.PYPI_TABLE
            else:
                self.mode = ViewMode.TABLE
            self.search.blur()
            return []

        self.search.update(key)
        if self.search_mode is SearchMode.LOCAL:
            self._apply_filter()
        else:
            self._apply_pypi_filter()
        return []

    def _toggle_search_mode(self) -> list[Command]:
        if self.search_mode is SearchMode.LOCAL:
            self.search_mode = SearchMode.PYPI
            self._set_search_prompt()
            self._apply_pypi_filter()
            if self.pypi_index is None:
                self.pypi_loading = True
                return [load_pypi_index(False)]
            return []
        self.search_mode = SearchMode.LOCAL
        self._set_search_prompt()
        self._apply_filter()
        return []

    def _install_pypi_from_search(self) -> list[Command]:
        name = self.pypi_results[self.pypi_cursor]
        self.pypi_install = True
        self.pypi_loading = True
        self.pypi_package_name = name
        self.search.blur()
        self.mode = ViewMode.PYPI_TABLE
        return [fetch_versions(name)]

    def _move_pypi_cursor(self, delta: int) -> None:
        self.pypi_cursor = max(0, self.pypi_cursor + delta)
        if self.pypi_cursor >= len(self.pypi_results):
            self.pypi_cursor = max(0, len(self.pypi_results) - 1)
        th = self.table_height()
        if self.pypi_cursor < self.pypi_offset:
            self.pypi_offset = self.pypi_cursor
        if self.pypi_cursor >= self.pypi_offset + th:
            self.pypi_offset = self.pypi_cursor - th + 1

    def _handle_pypi_table_key(self, key: Key) -> list[Command]:
        # while versions or info are being fetched, late messages would clobber
        # state changed by intermediate keystrokes, so only quit is allowed
        if self.pypi_loading:
            return [QuitRequested] if KEYS.quit.matches(key) else []

        if KEYS.quit.matches(key):
            return [QuitRequested]
        if KEYS.escape.matches(key):
            self.mode = ViewMode.TABLE
            self.search.set_value("")
            self.search_mode = SearchMode.LOCAL
            self._set_search_prompt()
            self.pypi_results = []
            self.pypi_cursor = 0
            self.pypi_offset = 0
            self._apply_filter()
        elif KEYS.search.matches(key):
            self.mode = ViewMode.SEARCH
            self.search.focus()
        elif KEYS.tab.matches(key):
            self.search_mode = SearchMode.LOCAL
            self._set_search_prompt()
            self._apply_filter()
            self.mode = ViewMode.SEARCH
            self.search.focus()
        elif KEYS.reload.matches(key):
            if self.pypi_index is not None:
                self.mode = ViewMode.RELOAD_CONFIRM
        elif KEYS.up.matches(key):
            self._move_pypi_cursor(-1)
        elif KEYS.down.matches(key):
            self._move_pypi_cursor(1)
        elif KEYS.info.matches(key):
            if self.pypi_results:
                return self._show_package_info()
        elif KEYS.enter.matches(key) or KEYS.right.matches(key):
            if self.pypi_results:
                return self._install_pypi_from_search()
        return []

    def _handle_package_info_key(self, key: Key) -> list[Command]:
        if KEYS.escape.matches(key) or key.name == KEY_ENTER:
            self.package_info = None
            if self.search_mode is SearchMode.PYPI:
                self.mode = ViewMode.PYPI_TABLE
            else:
                self.mode = ViewMode.TABLE
        elif KEYS.quit.matches(key):
            return [QuitRequested]
        return []

    def _handle_reload_confirm_key(self, key: Key) -> list[Command]:
        if key.name == KEY_ENTER:
            self.pypi_loading = True
            self.mode = ViewMode.SEARCH
            self.search.focus()
            return [load_pypi_index(True)]
        if KEYS.escape.matches(key):
            self.mode = ViewMode.SEARCH
            self.search.focus()
        elif KEYS.quit.matches(key):
            return [QuitRequested]
        return []

    def _handle_versions_key(self, key: Key) -> list[Command]:
        max_visible = self.popup_max_items()

        if KEYS.escape.matches(key) or KEYS.left.matches(key):
            was_pypi_install = self.pypi_install
            self.pypi_install = False
            self.pypi_package_name = ""
            self.mode = ViewMode.PYPI_TABLE if was_pypi_install else ViewMode.TABLE
        elif KEYS.up.matches(key):
            if self.ver_cursor > 0:
                self.ver_cursor -= 1
                self.ver_offset = min(self.ver_offset, self.ver_cursor)
        elif KEYS.down.matches(key):
            if self.ver_cursor < len(self.versions) - 1:
                self.ver_cursor += 1
                if self.ver_cursor >= self.ver_offset + max_visible:
                    self.ver_offset = self.ver_cursor - max_visible + 1
        elif key.name == KEY_ENTER:
            if self.ver_cursor >= len(self.versions):
                return []
            version = self.versions[self.ver_cursor]
            if self.pypi_install:
                self.search_mode = SearchMode.LOCAL
                self._set_search_prompt()
                self.search.set_value("")
                self._apply_filter()
                self.mode = ViewMode.TABLE
                return [install_package(self.env, self.pypi_package_name, version)]
            idx = self.current_package_idx()
            if idx >= 0:
                self.packages[idx].status = PackageStatus.UPDATING
                self.mode = ViewMode.TABLE
                return [install_package(self.env, self.packages[idx].pkg.name, version)]
        elif KEYS.quit.matches(key):
            return [QuitRequested]
        return []

    def _handle_confirm_key(self, key: Key) -> list[Command]:
        if key.name == KEY_ENTER:
            return self._begin_bulk_update()
        if KEYS.up.matches(key):
            if self.confirm_offset > 0:
                self.confirm_offset -= 1
        elif KEYS.down.matches(key):
            if self.confirm_offset + self.popup_max_items() < len(self.confirm_pkgs):
                self.confirm_offset += 1
        elif KEYS.escape.matches(key):
            self.mode = ViewMode.TABLE
        elif KEYS.quit.matches(key):
            return [QuitRequested]
        return []

    def _handle_updating_key(self, key: Key) -> list[Command]:
        if KEYS.escape.matches(key) or key.name == KEY_ENTER:
            self.mode = ViewMode.TABLE
        elif KEYS.quit.matches(key):
            return [QuitRequested]
        return []

    def _start_update(self) -> list[Command]:
        selected = self.selected_packages()

        if not selected:
            idx = self.current_package_idx()
            if idx < 0 or self.packages[idx].status is not PackageStatus.OUTDATED:
                return []
            item = self.packages[idx]
            item.status = PackageStatus.UPDATING
            return [install_package(self.env, item.pkg.name, item.pkg.latest_version)]

        if len(selected) == 1:
            item = self.packages[selected[0]]
            if item.status is not PackageStatus.OUTDATED:
                return []
            item.status = PackageStatus.UPDATING
            item.selected = False
            return [install_package(self.env, item.pkg.name, item.pkg.latest_version)]

        self.confirm_pkgs = selected
        self.confirm_offset = 0
        self.mode = ViewMode.CONFIRM
        return []

    def _begin_bulk_update(self) -> list[Command]:
        self.mode = ViewMode.UPDATING
        self.update_idx = 0
        self.update_done = []

        for idx in self.confirm_pkgs:
            self.packages[idx].status = PackageStatus.UPDATING
            self.packages[idx].selected = False

        if not self.confirm_pkgs:
            return []
        first = self.packages[self.confirm_pkgs[0]]
        return [install_package(self.env, first.pkg.name, first.pkg.latest_version)]