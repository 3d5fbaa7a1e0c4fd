# depstui

A keyboard-driven terminal interface for the packages installed in a Python
environment. It lists every installed distribution next to its latest stable
release on PyPI, marks what is outdated, and lets you update one package, a
selection, or several at once. You can also browse all released versions of
a package, install a specific one, look up package metadata, and search the
PyPI name index to install something new.

## How the environment is chosen

`depstui.detector.detect_environment(python_override, manager_override)`
returns an `Environment`:

- **Interpreter**: the override path if given; otherwise `.venv/bin/python`
  in the current directory; otherwise `python3` or `python` from `PATH`.
  Its version is read from `<python> --version`.
- **Installer** (`Manager.PIP` or `Manager.UV`): the override if given
  (`"uv"`, case-insensitive, selects uv; anything else selects pip);
  otherwise uv when the current directory has a `uv.lock`, or a
  `pyproject.toml` containing a `[tool.uv]` section; otherwise pip.

`Environment.list_packages()` runs `pip list --format=json` (or
`uv pip list --format=json --python <path>`) and
`Environment.install_package(name, version)` runs `pip install name==version`
(or `uv pip install`). Failures raise `DetectionError`.

## Starting the interface

The package has no command-line entry point; start the interface from Python:

```python
from depstui.app import run
from depstui.buildinfo import new_build_info
from depstui.detector import detect_environment

env = detect_environment(".venv/bin/python", "uv")
run(env, new_build_info("0.1.0"))
```

`run` takes over the terminal (full screen, raw mode) until you quit.

## Keys

In the package table:

| Key                  | Action                                    |
|----------------------|-------------------------------------------|
| `↑` / `↓`, `k` / `j` | move                                      |
| `/`                  | search                                    |
| `s`                  | toggle sort: name A→Z / outdated first    |
| `space`              | select the package under the cursor       |
| `a`                  | select / unselect all outdated packages   |
| `A`                  | select / unselect all shown packages      |
| `enter`              | update the current or selected packages   |
| `→`, `l`             | list all versions of the package          |
| `i`                  | show package information                  |
| `ctrl+r`             | reload the installed package list         |
| `esc`                | clear the selection                       |
| `q`, `ctrl+c`        | quit                                      |

Selecting more than one package and pressing `enter` asks for confirmation,
then installs the latest version of each in turn and shows the progress.

While searching, `tab` switches between filtering the local list and
searching PyPI. PyPI search uses a cached copy of the PyPI simple index,
stored at `$XDG_CACHE_HOME/deps/pypi_index.json` (or
`~/.cache/deps/pypi_index.json`) and downloaded again once it is older than
seven days; `ctrl+r` in PyPI mode downloads it on request. Results are
ordered: exact match first, then names starting with the query, then names
containing it. From the results, `enter` or `→` lists the versions to
install and `i` shows package information.

## Library use

The pieces behind the interface can be used on their own:

```python
from depstui.pypi import fetch_latest_version, fetch_versions, fetch_package_info
from depstui.index import load_index, fetch_index, search_index

fetch_latest_version("requests")    # highest stable release
fetch_versions("requests")          # all releases, newest first
fetch_package_info("requests").summary
```

Network and HTTP failures raise `PyPIError`; `load_index()` raises
`IndexNotCachedError` when no cache file exists yet.

## Version ordering

Versions are ordered by PEP 440 rules: epochs, release segments,
pre-releases (`a`, `b`, `rc` and their long spellings), post-releases and
dev releases; a local part (`+...`) is ignored. Pre-releases and dev
releases are never offered as the latest version; post-releases are.
Strings that do not parse are compared segment by segment as integers.

```python
from depstui.semver import compare, is_stable

compare("1.0rc1", "1.0")    # -1
compare("1.0.post1", "1.0") # 1
is_stable("1.0b1")          # False
```

## Running the tests

Install the `test` extra and run `pytest` from the project root.