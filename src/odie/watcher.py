"""Watch mode: rebuild the site when source documents change."""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator, Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from odie.discovery import is_excluded, is_source_name


@dataclass(frozen=True, slots=True)
class WatchEvent:
    """A batch of relevant file changes."""

    changed_paths: frozenset[Path]
    timestamp: float


@dataclass(frozen=True, slots=True)
class WatchCycleResult:
    """Result of a single watch rebuild cycle."""

    exit_code: int
    converted: int
    failed: int
    duration_s: float
    changed_paths: frozenset[Path]


def check_watchfiles_available() -> None:
    """Raise ImportError with a helpful message if watchfiles is not installed."""
    import importlib

    try:
        importlib.import_module("watchfiles")
    except ImportError:
        raise ImportError(
            "watchfiles is required for watch mode. Install it with: pip install odie[watch]"
        ) from None


def filter_site_files(
    changed_paths: frozenset[Path],
    *,
    root: Path,
    extensions: Iterable[str],
    exclude: Iterable[str] = (),
    extra_paths: Iterable[Path] = (),
) -> frozenset[Path]:
    """Keep changed sources under `root` plus any of the `extra_paths` collaborators.

    Rendered `.html` output never matches a source extension, so a rebuild
    does not retrigger itself.
    """
    extensions = tuple(extensions)
    exclude = tuple(exclude)
    extras = set(extra_paths)
    kept: set[Path] = set()
    for p in changed_paths:
        if p in extras:
            kept.add(p)
            continue
        if not is_source_name(p.name, extensions):
            continue
        if not p.is_relative_to(root):
            continue
        if is_excluded(p.relative_to(root).as_posix(), exclude=exclude):
            continue
        kept.add(p)
    return frozenset(kept)


async def run_watch_loop(
    *,
    changes_iter: AsyncIterator[set[tuple[Any, str]]],
    run_cycle: Callable[[WatchEvent], WatchCycleResult],
    on_event: Callable[[str], None],
    on_cycle_result: Callable[[WatchCycleResult], None],
    on_error: Callable[[BaseException], None],
    filter_changes: Callable[[frozenset[Path]], frozenset[Path]],
) -> None:
    """Main watch loop. Consumes changes_iter, filters, and calls run_cycle."""
    async for raw_changes in changes_iter:
        paths = frozenset(Path(p) for _, p in raw_changes)
        relevant = filter_changes(paths)
        if not relevant:
            continue

        event = WatchEvent(changed_paths=relevant, timestamp=time.monotonic())

        names = ", ".join(str(p) for p in sorted(relevant))
        on_event(f"[watch] change detected: {names}")
        on_event("[watch] building...")

        try:
            # The build runs its own event loop, so it must not share this one.
            result = await asyncio.to_thread(run_cycle, event)
        except Exception as exc:
            on_error(exc)
            continue

        on_event(
            f"[watch] done ({result.duration_s:.1f}s, "
            f"{result.converted} converted, {result.failed} failed)"
        )
        on_cycle_result(result)


def build_cycle_runner(
    build: Callable[[], tuple[int, int, int]],
) -> Callable[[WatchEvent], WatchCycleResult]:
    """Wrap `build` (returning exit code, converted count, failed count) as a cycle runner."""

    def runner(event: WatchEvent) -> WatchCycleResult:
        t0 = time.monotonic()
        exit_code, converted, failed = build()
        return WatchCycleResult(
            exit_code=exit_code,
            converted=converted,
            failed=failed,
            duration_s=time.monotonic() - t0,
            changed_paths=event.changed_paths,
        )

    return runner


def make_watchfiles_iter(
    watch_paths: list[Path],
) -> AsyncIterator[set[tuple[Any, str]]]:
    """Create an async iterator using watchfiles.awatch()."""
    import watchfiles  # type: ignore[import-untyped]

    return watchfiles.awatch(*watch_paths, debounce=200)
