"""Project configuration loading for Odie.

This module only reads `odie.toml` and performs light validation. A site
without an `odie.toml` builds with the defaults below.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from odie.errors import OdieConfigError

CONFIG_NAME = "odie.toml"
EMBED_ROOTS = ("root", "document")


@dataclass(frozen=True)
class PathsConfig:
    extensions: list[str] = field(default_factory=lambda: [".md"])
    exclude: list[str] = field(default_factory=list)
    stylesheet: str = "custom.css"
    header: str = ""
    footer: str = ""
    index: str = "index.html"
    index_template: str = ""


@dataclass(frozen=True)
class RenderConfig:
    close_unterminated: bool = True
    max_line_length: int = 0
    embed_root: str = "root"


@dataclass(frozen=True)
class BuildConfig:
    jobs: int = 4


@dataclass(frozen=True)
class OdieConfig:
    version: int = 1
    paths: PathsConfig = field(default_factory=PathsConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    build: BuildConfig = field(default_factory=BuildConfig)


def find_project_root(start: Path) -> Path:
    """Walk upward from `start` looking for `odie.toml`.

    Falls back to `start` (or its directory) when no config file is found, so
    that running `odie` in any directory builds that directory.
    """

    cur = start
    try:
        if cur.is_file():
            cur = cur.parent
    except OSError:
        cur = cur.parent

    cur = cur.resolve()
    origin = cur
    while True:
        if (cur / CONFIG_NAME).is_file():
            return cur
        if cur.parent == cur:
            break
        cur = cur.parent
    return origin


def _as_table(value: Any, *, name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise OdieConfigError(f"Expected [{name}] to be a table.")
    return value


def _as_str_list(value: Any, *, name: str) -> list[str]:
    if not isinstance(value, list) or any(not isinstance(x, str) for x in value):
        raise OdieConfigError(f"Expected {name} to be a list of strings.")
    return list(value)


def _as_bool(value: Any, *, name: str) -> bool:
    if not isinstance(value, bool):
        raise OdieConfigError(f"Expected {name} to be a boolean.")
    return value


def _as_int(value: Any, *, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise OdieConfigError(f"Expected {name} to be an integer.")
    return value


def _as_str(value: Any, *, name: str) -> str:
    if not isinstance(value, str):
        raise OdieConfigError(f"Expected {name} to be a string.")
    return value


def load_config(*, root: Path | None = None, config_path: Path | None = None) -> OdieConfig:
    """Load and validate `odie.toml`.

    An explicit `config_path` must exist. Otherwise `<root>/odie.toml` is read
    if present and the defaults are returned if not.
    """

    if config_path is None:
        if root is None:
            root = find_project_root(Path.cwd())
        config_path = root / CONFIG_NAME
        if not config_path.is_file():
            return OdieConfig()

    try:
        raw = config_path.read_bytes()
    except FileNotFoundError as e:
        raise OdieConfigError(f"Missing odie.toml at: {config_path}") from e
    except OSError as e:
        raise OdieConfigError(f"Failed reading config file: {config_path}") from e

    try:
        data = tomllib.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise OdieConfigError(f"Config is not valid UTF-8: {config_path}") from e
    except tomllib.TOMLDecodeError as e:
        raise OdieConfigError(f"Invalid TOML in {config_path}: {e}") from e

    version = data.get("version", None)
    if version is None:
        raise OdieConfigError("Missing required `version = 1` in odie.toml.")
    version_i = _as_int(version, name="version")
    if version_i != 1:
        raise OdieConfigError(f"Unsupported config version: {version_i} (expected 1).")

    paths_tbl = _as_table(data.get("paths"), name="paths")
    render_tbl = _as_table(data.get("render"), name="render")
    build_tbl = _as_table(data.get("build"), name="build")

    defaults = OdieConfig()

    if "extensions" in paths_tbl:
        extensions = _as_str_list(paths_tbl["extensions"], name="paths.extensions")
    else:
        extensions = list(defaults.paths.extensions)

    if "exclude" in paths_tbl:
        exclude = _as_str_list(paths_tbl["exclude"], name="paths.exclude")
    else:
        exclude = []

    strs: dict[str, str] = {}
    for key in ("stylesheet", "header", "footer", "index", "index_template"):
        if key in paths_tbl:
            strs[key] = _as_str(paths_tbl[key], name=f"paths.{key}")
        else:
            strs[key] = getattr(defaults.paths, key)

    if "close_unterminated" in render_tbl:
        close_unterminated = _as_bool(
            render_tbl["close_unterminated"], name="render.close_unterminated"
        )
    else:
        close_unterminated = defaults.render.close_unterminated

    if "max_line_length" in render_tbl:
        max_line_length = _as_int(render_tbl["max_line_length"], name="render.max_line_length")
    else:
        max_line_length = defaults.render.max_line_length

    if "embed_root" in render_tbl:
        embed_root = _as_str(render_tbl["embed_root"], name="render.embed_root")
    else:
        embed_root = defaults.render.embed_root

    if "jobs" in build_tbl:
        jobs = _as_int(build_tbl["jobs"], name="build.jobs")
    else:
        jobs = defaults.build.jobs

    # Validation
    if not extensions or any(not ext for ext in extensions):
        raise OdieConfigError("Invalid config: paths.extensions must be non-empty strings.")

    if not strs["index"]:
        raise OdieConfigError("Invalid config: paths.index must not be empty.")

    if max_line_length < 0:
        raise OdieConfigError("Invalid config: render.max_line_length must be >= 0.")

    if embed_root not in EMBED_ROOTS:
        raise OdieConfigError(
            f"Invalid config: render.embed_root must be one of {', '.join(EMBED_ROOTS)}."
        )

    if jobs < 1:
        raise OdieConfigError("Invalid config: jobs must be >= 1.")

    return OdieConfig(
        version=version_i,
        paths=PathsConfig(extensions=extensions, exclude=exclude, **strs),
        render=RenderConfig(
            close_unterminated=close_unterminated,
            max_line_length=max_line_length,
            embed_root=embed_root,
        ),
        build=BuildConfig(jobs=jobs),
    )
