from datetime import datetime, timezone

import pytest

from depstui.buildinfo import BuildInfo
from depstui.detector import Environment, Manager, Package
from depstui.index import PackageIndex
from depstui.keys import Key
from depstui.messages import (
    LatestVersionLoaded,
    PackageInfoLoaded,
    PackagesLoaded,
    PackageUpdated,
    VersionsLoaded,
)
from depstui.model import Model, PackageStatus, SearchMode, ViewMode
from depstui.pypi import PackageInfo
from depstui.styles import (
    STYLE_DIM,
    STYLE_ERROR,
    STYLE_OUTDATED,
    STYLE_UP_TO_DATE,
    STYLE_UPDATING,
    strip_ansi,
    visible_width,
)
from depstui.view import (
    format_status,
    place_overlay,
    render,
    row_prefix,
    truncate,
)


def make_model(packages=()):
    env = Environment(python_path="/usr/bin/python3", python_version="3.12.0", manager=Manager.PIP)
    model = Model(env, BuildInfo("1.2.3"))
    model.update(PackagesLoaded(packages=list(packages)))
    return model


def outdated_model():
    model = make_model(
        [Package("alpha", "1.0"), Package("beta", "1.0"), Package("gamma", "1.0")]
    )
    for name in ("alpha", "beta", "gamma"):
        model.update(LatestVersionLoaded(name=name, version="2.0"))
    return model


@pytest.mark.parametrize(
    "selected, is_cursor, expected",
    [(True, True, "▸◉"), (True, False, " ◉"), (False, True, "▸ "), (False, False, "  ")],
)
def test_row_prefix(selected, is_cursor, expected):
    assert row_prefix(selected, is_cursor) == expected


@pytest.mark.parametrize(
    "status, text, style",
    [
        (PackageStatus.UP_TO_DATE, "✓ up to date", STYLE_UP_TO_DATE),
        (PackageStatus.OUTDATED, "⬆ outdated", STYLE_OUTDATED),
        (PackageStatus.UPDATING, "⏳ updating…", STYLE_UPDATING),
        (PackageStatus.ERROR, "✗ error", STYLE_ERROR),
        (PackageStatus.UNKNOWN, "… loading", STYLE_DIM),
    ],
)
def test_format_status(status, text, style):
    assert format_status(status) == (text, style)


def test_truncate_keeps_short_text():
    assert truncate("requests", 20) == "requests"


def test_truncate_cuts_long_text_to_width():
    result = truncate("a-really-long-package-name", 10)
    assert visible_width(result) == 10
    assert result.endswith("…")
    assert "a-really-long-package-name".startswith(result[:-1])


def test_place_overlay_centres_popup():
    base = "\n".join(["xxxx", "xxxx"])
    assert place_overlay(4, 2, "ab", base).split("\n")[0] == "xab"


def test_place_overlay_extends_short_base():
    result = place_overlay(10, 10, "p", "")
    lines = result.split("\n")
    assert lines[-1].endswith("p")
    assert all(not line.strip() for line in lines[:-1])


def test_place_overlay_leaves_other_lines_alone():
    base = "\n".join(f"line{i}" for i in range(10))
    lines = place_overlay(20, 10, "P", base).split("\n")
    assert len(lines) == 10
    assert lines[0] == "line0"
    assert sum("P" in line for line in lines) == 1


def test_header_shows_environment():
    text = strip_ansi(render(make_model()))
    assert "deps 1.2.3 - /usr/bin/python3 (3.12.0) (pip)" in text
    assert "/ to search" in text
    assert "No packages found" in text


def test_rows_and_footer_counts():
    model = make_model([Package("requests", "2.0.0"), Package("rich", "13.0")])
    model.update(LatestVersionLoaded(name="requests", version="2.0.0"))
    text = strip_ansi(render(model))
    assert "requests" in text
    assert "✓ up to date" in text
    assert "… loading" in text
    assert "2 packages" in text

    model.handle_key(Key.char(" "))
    assert "1 selected  2 packages" in strip_ansi(render(model))


def test_table_rows_limited_to_table_height():
    model = make_model([Package(f"pkg{i:02d}", "1.0") for i in range(20)])
    model.height = 10
    text = strip_ansi(render(model))
    rows = [line for line in text.split("\n") if "pkg" in line]
    assert len(rows) == model.table_height()


def test_footer_spans_width():
    model = make_model([Package("requests", "2.0.0")])
    model.width = 200
    last = render(model).split("\n")[-1]
    assert visible_width(last) == model.width - 2


def test_error_message_replaces_search_bar():
    model = make_model()
    model.err_message = "boom"
    text = strip_ansi(render(model))
    assert "  boom" in text
    assert "/ to search" not in text


def test_versions_overlay():
    model = make_model([Package("requests", "2.30.0")])
    model.update(LatestVersionLoaded(name="requests", version="2.31.0"))
    model.update(VersionsLoaded(versions=["2.31.0", "2.30.0"]))
    assert model.mode is ViewMode.VERSIONS
    text = strip_ansi(render(model))
    assert "Versions — requests" in text
    assert "▸ 2.31.0 (latest)" in text
    assert "2.30.0 (installed)" in text
    assert "╭" in text


def test_confirm_and_updating_overlays():
    model = outdated_model()
    model.handle_key(Key.char("A"))
    model.handle_key(Key("enter"))
    assert model.mode is ViewMode.CONFIRM
    text = strip_ansi(render(model))
    assert "Update 3 packages?" in text
    assert "alpha  1.0 → 2.0" in text

    model.handle_key(Key("enter"))
    assert model.mode is ViewMode.UPDATING
    text = strip_ansi(render(model))
    assert "Updating 3 packages…" in text
    assert "esc cancel remaining" in text

    for name in ("alpha", "beta", "gamma"):
        model.update(PackageUpdated(name=name, version="2.0"))
    text = strip_ansi(render(model))
    assert "Update complete" in text
    assert "enter dismiss" in text
    assert text.count("✓") == 3


def test_package_info_overlay():
    model = make_model()
    model.update(
        PackageInfoLoaded(
            info=PackageInfo(name="rich", summary="Render rich text", version="13.0.0", license="L" * 60)
        )
    )
    assert model.mode is ViewMode.PACKAGE_INFO
    text = strip_ansi(render(model))
    assert "Render rich text" in text
    assert "Latest: 13.0.0" in text
    assert "License: " + "L" * 39 + "…" in text
    assert "L" * 41 not in text


def test_reload_confirm_overlay():
    model = make_model()
    model.mode = ViewMode.RELOAD_CONFIRM
    assert "Current index loaded unknown." in strip_ansi(render(model))

    model.pypi_index = PackageIndex(packages=[], updated_at=datetime.now(timezone.utc))
    text = strip_ansi(render(model))
    assert "Reload PyPI index?" in text
    assert "Current index loaded just now." in text


def test_pypi_table_rendering():
    model = make_model()
    model.search_mode = SearchMode.PYPI
    model.mode = ViewMode.SEARCH
    text = strip_ansi(render(model))
    assert "Type to search PyPI packages" in text
    assert "0 results" in text

    model.search.focus()
    model.search.set_value("req")
    model.pypi_results = ["requests", "requests-oauthlib"]
    model.mode = ViewMode.PYPI_TABLE
    model.search.blur()
    text = strip_ansi(render(model))
    assert "▸ requests" in text
    assert "2 results" in text
    assert "enter/→ install" in text