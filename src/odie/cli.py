from __future__ import annotations

import argparse
import asyncio
import io
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from odie import __version__
from odie.diagnostics import format_build_failures, format_error_with_hint
from odie.errors import (
    OdieConfigError,
    OdieIndexError,
    OdieInputError,
    OdieLineTooLongError,
)

if TYPE_CHECKING:  # pragma: no cover
    from odie.config import OdieConfig


EXIT_OK = 0
EXIT_FATAL = 1

COMMANDS = ("build", "render", "watch")


def _add_common_flags(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--root",
        type=str,
        default=None,
        help="Site root (defaults to searching upward from cwd for odie.toml, else cwd).",
    )
    p.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to odie.toml (defaults to <root>/odie.toml when present).",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Log debug details to stderr.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="odie")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    build_p = subparsers.add_parser("build", help="Convert every document and write the index.")
    _add_common_flags(build_p)
    build_p.add_argument("--jobs", type=int, default=None, help="Concurrency override.")

    render_p = subparsers.add_parser("render", help="Convert one document to stdout.")
    _add_common_flags(render_p)
    render_p.add_argument("file", type=str, help="Source document to render.")

    watch_p = subparsers.add_parser("watch", help="Rebuild whenever a document changes.")
    _add_common_flags(watch_p)
    watch_p.add_argument("--jobs", type=int, default=None, help="Concurrency override.")

    return parser


def parse_args(argv: list[str]) -> argparse.Namespace:
    # A bare `odie` (or `odie --root ...`) means `odie build`.
    if not argv or (argv[0] not in COMMANDS and argv[0] not in ("-h", "--help", "--version")):
        argv = ["build", *argv]
    return _build_parser().parse_args(argv)


def _configure_logging(verbose: bool) -> None:
    log = logging.getLogger("odie")
    log.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not log.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        log.addHandler(handler)


def _load_config(args: argparse.Namespace) -> tuple[Path, OdieConfig]:
    from odie.config import find_project_root, load_config

    root = Path(args.root).resolve() if args.root else None
    config_path = Path(args.config).resolve() if args.config else None
    if root is None and config_path is None:
        root = find_project_root(Path.cwd())
    elif root is None and config_path is not None:
        root = config_path.parent

    assert root is not None
    if not root.is_dir():
        raise OdieConfigError(f"Site root is not a directory: {root}")
    cfg = load_config(root=root, config_path=config_path)
    return root, cfg


def _eprint(msg: str) -> None:
    print(msg, file=sys.stderr)


def _print_error(e: BaseException) -> None:
    _eprint(format_error_with_hint(e))


def _jobs(args: argparse.Namespace, cfg: OdieConfig) -> int:
    if args.jobs is None:
        return cfg.build.jobs
    if args.jobs < 1:
        raise OdieConfigError("--jobs must be >= 1.")
    return int(args.jobs)


def _run_build(root: Path, cfg: OdieConfig, jobs: int) -> tuple[int, int, int]:
    from odie.site import build_site

    try:
        report = build_site(root, cfg, jobs=jobs)
    except OdieIndexError as e:
        _print_error(e)
        return EXIT_FATAL, 0, 0

    summary = format_build_failures(report.failed)
    if summary:
        _eprint(summary.rstrip("\n"))
    return EXIT_OK, len(report.converted), len(report.failed)


def cmd_build(args: argparse.Namespace) -> int:
    _configure_logging(bool(args.verbose))
    try:
        root, cfg = _load_config(args)
        jobs = _jobs(args, cfg)
    except OdieConfigError as e:
        _print_error(e)
        return EXIT_FATAL

    rc, _, _ = _run_build(root, cfg, jobs)
    return rc


def cmd_render(args: argparse.Namespace) -> int:
    _configure_logging(bool(args.verbose))
    try:
        root, cfg = _load_config(args)
    except OdieConfigError as e:
        _print_error(e)
        return EXIT_FATAL

    from odie.document import ENCODING, ENCODING_ERRORS, write_document
    from odie.site import document_settings, render_context

    src = Path(args.file)
    settings = document_settings(root, cfg)
    ctx = render_context(root, src.resolve(), cfg)
    buf = io.StringIO()
    try:
        with open(src, encoding=ENCODING, errors=ENCODING_ERRORS, newline="") as f:
            write_document(buf, f, settings, ctx)
    except OdieLineTooLongError as e:
        _print_error(OdieInputError(f"{src}: {e}"))
        return EXIT_FATAL
    except OSError as e:
        _print_error(OdieInputError(f"Failed to open input file: {src}: {e.strerror or e}"))
        return EXIT_FATAL

    # Undecodable source bytes survive as surrogates; emit them unchanged.
    sys.stdout.flush()
    sys.stdout.buffer.write(buf.getvalue().encode(ENCODING, ENCODING_ERRORS))
    sys.stdout.buffer.flush()
    return EXIT_OK


def cmd_watch(args: argparse.Namespace) -> int:
    _configure_logging(bool(args.verbose))
    from odie import watcher

    try:
        watcher.check_watchfiles_available()
    except ImportError as e:
        _print_error(e)
        return EXIT_FATAL

    try:
        root, cfg = _load_config(args)
        jobs = _jobs(args, cfg)
    except OdieConfigError as e:
        _print_error(e)
        return EXIT_FATAL

    rc, _, _ = _run_build(root, cfg, jobs)
    if rc != EXIT_OK:
        return rc

    extras = [
        root / rel
        for rel in (cfg.paths.stylesheet, cfg.paths.header, cfg.paths.footer)
        if rel
    ]

    def filter_changes(paths: frozenset[Path]) -> frozenset[Path]:
        return watcher.filter_site_files(
            paths,
            root=root,
            extensions=cfg.paths.extensions,
            exclude=cfg.paths.exclude,
            extra_paths=extras,
        )

    def on_cycle_result(result: watcher.WatchCycleResult) -> None:
        if result.exit_code != EXIT_OK:
            _eprint(f"[watch] build exited with {result.exit_code}")

    _eprint(f"[watch] watching {root} (ctrl-c to stop)")
    try:
        asyncio.run(
            watcher.run_watch_loop(
                changes_iter=watcher.make_watchfiles_iter([root]),
                run_cycle=watcher.build_cycle_runner(lambda: _run_build(root, cfg, jobs)),
                on_event=_eprint,
                on_cycle_result=on_cycle_result,
                on_error=_print_error,
                filter_changes=filter_changes,
            )
        )
    except KeyboardInterrupt:
        pass
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    try:
        args = parse_args(list(sys.argv[1:] if argv is None else argv))
    except SystemExit as e:
        # argparse uses SystemExit for --help/--version and parse errors.
        code = e.code
        return int(code) if isinstance(code, int) else EXIT_FATAL

    if args.command == "build":
        return cmd_build(args)
    if args.command == "render":
        return cmd_render(args)
    if args.command == "watch":
        return cmd_watch(args)

    return EXIT_FATAL


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
