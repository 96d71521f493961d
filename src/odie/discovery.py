"""Discovery helpers: find source documents under a site root."""

from __future__ import annotations

import fnmatch
from collections.abc import Iterable
from pathlib import Path


def is_excluded(rel_posix: str, *, exclude: Iterable[str]) -> bool:
    # Patterns are matched against a posix-style relative path.
    for pat in exclude:
        if fnmatch.fnmatchcase(rel_posix, pat):
            return True

        # `fnmatch` doesn't treat a leading `**/` as "zero or more directories".
        # Normalize by stripping leading `**/`.
        stripped = pat
        while stripped.startswith("**/"):
            stripped = stripped[3:]
            if fnmatch.fnmatchcase(rel_posix, stripped):
                return True

    return False


def is_source_name(name: str, extensions: Iterable[str]) -> bool:
    """Case-sensitive suffix match, so `notes.md.html` is never a source."""

    return any(name.endswith(ext) and name != ext for ext in extensions)


def discover_sources(
    root: Path,
    *,
    extensions: Iterable[str] = (".md",),
    exclude: Iterable[str] = (),
) -> list[Path]:
    """Return every source document under `root`, recursively, sorted."""

    extensions = tuple(extensions)
    exclude = tuple(exclude)
    found: list[Path] = []
    for path in root.rglob("*"):
        if not is_source_name(path.name, extensions):
            continue
        if not path.is_file():
            continue
        if is_excluded(path.relative_to(root).as_posix(), exclude=exclude):
            continue
        found.append(path)
    return sorted(found)
