"""Rendering of the interface model to a screen of styled text."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace

from depstui.model import (
    Model,
    PackageStatus,
    SearchMode,
    SortMode,
    ViewMode,
    format_age,
)
from depstui.styles import (
    STYLE_CURSOR,
    STYLE_DIM,
    STYLE_ERROR,
    STYLE_FOOTER,
    STYLE_HEADER,
    STYLE_OUTDATED,
    STYLE_POPUP_BORDER,
    STYLE_POPUP_TITLE,
    STYLE_SEARCH_PROMPT,
    STYLE_SELECTED,
    STYLE_TABLE_HEADER,
    STYLE_UP_TO_DATE,
    STYLE_UPDATING,
    Style,
    truncate_ansi,
    visible_width,
)

COL_NAME = 28
COL_INSTALLED = 15
COL_LATEST = 15
COL_STATUS = 15

_RULE = "─"


def render(model: Model) -> str:
    """Render the whole screen, with the popup of the current view on top."""
    content = "".join(
        (
            _render_header(model),
            _render_search_bar(model),
            _render_table(model),
            _render_footer(model),
        )
    )
    overlay = _OVERLAYS.get(model.mode)
    if overlay is not None:
        content = overlay(model, content)
    return content


def format_status(status: PackageStatus) -> tuple[str, Style]:
    """Label and style shown in the status column."""
    if status is PackageStatus.UP_TO_DATE:
        return "✓ up to date", STYLE_UP_TO_DATE
    if status is PackageStatus.OUTDATED:
        return "⬆ outdated", STYLE_OUTDATED
    if status is PackageStatus.UPDATING:
        return "⏳ updating…", STYLE_UPDATING
    if status is PackageStatus.ERROR:
        return "✗ error", STYLE_ERROR
    return "… loading", STYLE_DIM


def row_prefix(selected: bool, is_cursor: bool) -> str:
    """Two-cell marker in front of a row for the cursor and the selection."""
    if selected and is_cursor:
        return "▸◉"
    if selected:
        return " ◉"
    if is_cursor:
        return "▸ "
    return "  "


def truncate(s: str, max_len: int) -> str:
    """Shorten ``s`` to ``max_len`` cells, ending with an ellipsis when cut."""
    if visible_width(s) <= max_len:
        return s
    return truncate_ansi(s, max_len, "…")


def place_overlay(width: int, height: int, popup: str, base: str) -> str:
    """Draw ``popup`` centred over ``base`` on a screen of the given size."""
    popup_lines = popup.split("\n")
    base_lines = base.split("\n")

    popup_width = visible_width(popup)
    start_x = max(0, (width - popup_width) // 2)
    start_y = max(0, (height - len(popup_lines)) // 2)

    base_lines.extend([""] * (start_y + len(popup_lines) - len(base_lines)))

    for offset, popup_line in enumerate(popup_lines):
        y = start_y + offset
        base_line = base_lines[y]
        base_width = visible_width(base_line)
        if base_width < start_x:
            base_line += " " * (start_x - base_width)
        base_lines[y] = truncate_ansi(base_line, start_x, "") + popup_line

    return "\n".join(base_lines)


# ----- screen sections -----


def _render_header(model: Model) -> str:
    env = model.env
    title = (
        f" deps {model.build.display()} - {env.python_path} "
        f"({env.python_version}) ({env.manager})"
    )
    return replace(STYLE_HEADER, width=model.width).render(title) + "\n\n"


def _render_search_bar(model: Model) -> str:
    if model.err_message:
        bar = STYLE_ERROR.render("  " + model.err_message)
    elif model.pypi_loading and model.pypi_package_name:
        bar = STYLE_UPDATING.render(
            "  ⏳ Fetching versions for " + model.pypi_package_name + "…"
        )
    elif model.pypi_loading:
        bar = STYLE_UPDATING.render("  ⏳ Loading PyPI package index…")
    elif model.mode in (ViewMode.SEARCH, ViewMode.PYPI_TABLE) or model.search.value:
        bar = model.search.view()
    else:
        bar = STYLE_DIM.render("  / to search")
    return bar + "\n\n"


def _render_table(model: Model) -> str:
    if model.search_mode is SearchMode.PYPI:
        return _render_pypi_table(model)
    return _render_local_table(model)


def _render_local_table(model: Model) -> str:
    sort_label = "Outdated first" if model.sort_mode is SortMode.STATUS else "Name A→Z"
    header = "  " + " ".join(
        (
            "Package".ljust(COL_NAME),
            "Installed".ljust(COL_INSTALLED),
            "Latest".ljust(COL_LATEST),
            "Status".ljust(COL_STATUS),
        )
    )
    out = [
        STYLE_TABLE_HEADER.render(header),
        STYLE_DIM.render("  Sort: " + sort_label),
        "\n",
        STYLE_DIM.render(_RULE * model.width),
        "\n",
    ]

    if not model.filtered:
        out.append(STYLE_DIM.render("  No packages found"))
        if model.mode is ViewMode.SEARCH and model.search.value:
            out.append(STYLE_DIM.render("  —  press "))
            out.append(STYLE_SEARCH_PROMPT.render("Tab"))
            out.append(STYLE_DIM.render(" to search PyPI"))
        out.append("\n")

    end = min(model.offset + model.table_height(), len(model.filtered))
    for row in range(model.offset, end):
        item = model.packages[model.filtered[row]]
        is_cursor = row == model.cursor
        prefix = row_prefix(item.selected, is_cursor)
        status_text, status_style = format_status(item.status)
        line = " ".join(
            (
                truncate(item.pkg.name, COL_NAME - 1).ljust(COL_NAME),
                truncate(item.pkg.installed_version, COL_INSTALLED - 1).ljust(COL_INSTALLED),
                truncate(item.pkg.latest_version, COL_LATEST - 1).ljust(COL_LATEST),
                status_style.render(status_text),
            )
        )
        if is_cursor:
            prefix_style = STYLE_CURSOR
        elif item.selected:
            prefix_style = STYLE_SELECTED
        else:
            prefix_style = STYLE_DIM
        out.append(prefix_style.render(prefix) + " " + line + "\n")

    return "".join(out)


def _render_pypi_table(model: Model) -> str:
    width = COL_NAME + COL_INSTALLED + COL_LATEST + COL_STATUS
    out = [
        STYLE_TABLE_HEADER.render("  " + "Package".ljust(width)),
        "\n",
        STYLE_DIM.render(_RULE * model.width),
        "\n",
    ]
    if model.pypi_loading:
        return "".join(out)

    if not model.pypi_results:
        if not model.search.value:
            out.append(STYLE_DIM.render("  Type to search PyPI packages\n"))
        else:
            out.append(STYLE_DIM.render("  No packages found on PyPI\n"))
        return "".join(out)

    end = min(model.pypi_offset + model.table_height(), len(model.pypi_results))
    for row in range(model.pypi_offset, end):
        name = truncate(model.pypi_results[row], model.width - 6)
        if row == model.pypi_cursor:
            out.append(STYLE_CURSOR.render("▸ " + name) + "\n")
        else:
            out.append(STYLE_DIM.render("  ") + name + "\n")
    return "".join(out)


def _render_footer(model: Model) -> str:
    if model.mode is ViewMode.PYPI_TABLE:
        hints = (
            "↑/↓ navigate  enter/→ install  i info  / search  tab local  "
            "ctrl+r reload  esc back  q quit"
        )
    elif model.mode is ViewMode.SEARCH and model.search_mode is SearchMode.PYPI:
        hints = "esc clear  tab local  ↓/enter results  ctrl+r reload"
    elif model.mode is ViewMode.SEARCH:
        hints = "esc clear  tab PyPI  ↓ table  enter confirm"
    else:
        hints = (
            "↑/↓ navigate  / search  s sort  space select  a outdated  "
            "enter update  → versions  i info  ctrl+r reload  q quit"
        )

    if model.search_mode is SearchMode.PYPI:
        right = f"{len(model.pypi_results)} results"
    else:
        selected = sum(1 for idx in model.filtered if model.packages[idx].selected)
        right = f"{len(model.filtered)} packages"
        if selected:
            right = f"{selected} selected  {right}"

    padding = max(1, model.width - visible_width(hints) - visible_width(right) - 4)
    return (
        "\n  "
        + STYLE_FOOTER.render(hints)
        + " " * padding
        + STYLE_FOOTER.render(right)
    )


# ----- popups -----


def _popup(model: Model, lines: list[str], base: str) -> str:
    popup = STYLE_POPUP_BORDER.render("\n".join(lines))
    return place_overlay(model.width, model.height, popup, base)


def _overlay_reload_confirm(model: Model, base: str) -> str:
    age = "unknown"
    if model.pypi_index is not None:
        age = format_age(model.pypi_index.age().total_seconds())
    lines = [
        STYLE_POPUP_TITLE.render("Reload PyPI index?"),
        "",
        f"  Current index loaded {age}.",
        "  This will download ~5MB of data.",
        "",
        STYLE_FOOTER.render("enter confirm  esc cancel"),
    ]
    return _popup(model, lines, base)


def _overlay_package_info(model: Model, base: str) -> str:
    info = model.package_info
    if info is None:
        return base

    lines = [STYLE_POPUP_TITLE.render(info.name), ""]
    if info.summary:
        lines += ["  " + info.summary, ""]
    if info.version:
        lines.append(STYLE_DIM.render("  Latest: ") + info.version)
    if info.author:
        lines.append(STYLE_DIM.render("  Author: ") + info.author)
    if info.license:
        lines.append(STYLE_DIM.render("  License: ") + truncate(info.license, 40))
    if info.requires_python:
        lines.append(STYLE_DIM.render("  Python: ") + info.requires_python)
    if info.home_page:
        lines.append(STYLE_DIM.render("  Home: ") + truncate(info.home_page, 45))
    lines += ["", STYLE_FOOTER.render("esc/enter close")]
    return _popup(model, lines, base)


def _overlay_versions(model: Model, base: str) -> str:
    installed = ""
    latest = ""
    if model.pypi_install:
        name = model.pypi_package_name
        if model.versions:
            latest = model.versions[0]
    else:
        idx = model.current_package_idx()
        if idx < 0:
            return base
        pkg = model.packages[idx].pkg
        name = pkg.name
        installed = pkg.installed_version
        latest = pkg.latest_version

    title_prefix = "Install" if model.pypi_install else "Versions"
    lines = [STYLE_POPUP_TITLE.render(f"{title_prefix} — {name}"), ""]

    end = min(model.ver_offset + model.popup_max_items(), len(model.versions))
    for i in range(model.ver_offset, end):
        version = model.versions[i]
        is_cursor = i == model.ver_cursor
        prefix = "▸ " if is_cursor else "  "
        if version == latest:
            suffix = STYLE_DIM.render(" (latest)")
        elif installed and version == installed:
            suffix = STYLE_DIM.render(" (installed)")
        else:
            suffix = ""
        if is_cursor:
            lines.append(STYLE_CURSOR.render(prefix + version) + suffix)
        else:
            lines.append(prefix + version + suffix)

    lines += ["", STYLE_FOOTER.render("↑/↓ select  enter install  ← back")]
    return _popup(model, lines, base)


def _package_change_line(model: Model, idx: int) -> str:
    pkg = model.packages[idx].pkg
    return (
        f"{pkg.name}  {STYLE_DIM.render(pkg.installed_version)} → "
        f"{STYLE_OUTDATED.render(pkg.latest_version)}"
    )


def _overlay_confirm(model: Model, base: str) -> str:
    max_visible = model.popup_max_items()
    end = min(model.confirm_offset + max_visible, len(model.confirm_pkgs))

    lines = [
        STYLE_POPUP_TITLE.render(f"Update {len(model.confirm_pkgs)} packages?"),
        "",
    ]
    lines += [
        "  " + _package_change_line(model, idx)
        for idx in model.confirm_pkgs[model.confirm_offset : end]
    ]
    lines.append("")

    hint = "enter confirm  esc cancel"
    if len(model.confirm_pkgs) > max_visible:
        hint = "↑/↓ scroll  " + hint
    lines.append(STYLE_FOOTER.render(hint))
    return _popup(model, lines, base)


def _update_status_icon(model: Model, position: int) -> str:
    done = model.update_done
    if position < len(done) and done[position].success:
        return STYLE_UP_TO_DATE.render("✓")
    if position < len(done):
        return STYLE_ERROR.render("✗")
    if position == len(done):
        return STYLE_UPDATING.render("⏳")
    return STYLE_DIM.render("○")


def _overlay_updating(model: Model, base: str) -> str:
    total = len(model.confirm_pkgs)
    all_done = len(model.update_done) >= total
    title = "Update complete" if all_done else f"Updating {total} packages…"

    max_visible = model.popup_max_items()
    # keep the package being updated in view
    offset = min(model.update_idx, total - max_visible) if total > max_visible else 0
    end = min(offset + max_visible, total)

    lines = [STYLE_POPUP_TITLE.render(title), ""]
    for position in range(offset, end):
        idx = model.confirm_pkgs[position]
        lines.append(
            f"  {_update_status_icon(model, position)} {_package_change_line(model, idx)}"
        )
    lines.append("")
    lines.append(STYLE_FOOTER.render("enter dismiss" if all_done else "esc cancel remaining"))
    return _popup(model, lines, base)


_OVERLAYS: dict[ViewMode, Callable[[Model, str], str]] = {
    ViewMode.VERSIONS: _overlay_versions,
    ViewMode.CONFIRM: _overlay_confirm,
    ViewMode.UPDATING: _overlay_updating,
    ViewMode.RELOAD_CONFIRM: _overlay_reload_confirm,
    ViewMode.PACKAGE_INFO: _overlay_package_info,
}