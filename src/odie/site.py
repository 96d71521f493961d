"""Site driver: convert every source document under a root and write the index."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from odie.config import OdieConfig
from odie.discovery import discover_sources
from odie.document import (
    DEFAULT_FOOTER,
    DEFAULT_HEADER,
    ENCODING,
    ENCODING_ERRORS,
    DocumentSettings,
    convert_file,
    load_fragment,
    load_stylesheet,
    output_path_for,
)
from odie.errors import OdieError, OdieIndexError
from odie.escape import escape_text
from odie.inline import RenderContext

logger = logging.getLogger("odie.site")

ENTRIES_PLACEHOLDER = "{entries}"

DEFAULT_INDEX_TEMPLATE = """\
<!-- odie index page - autogenerated -->
<link rel=icon href=data:>
<meta name=viewport content=width=1%>
<pre style=font:unset>
Hi, I'm <a href=a>Name</a>! I like <a href=r>changeme</a>, changeme, changeme,
changeme, changeme, <a href=s>changeme</a>, and changeme

Please sign my <a href=g>Guest Book</a>

site@ts.cli.rs

CV

Jobtitle - Companyname, 'Year-
Jobtitle - Companyname, 'Year-Year
Jobtitle - Companyname, 'Year-Year
Jobtitle - Companyname, 'Year-Year

Blog

{entries}</pre>
"""


@dataclass(frozen=True, slots=True)
class SiteReport:
    converted: dict[Path, Path]
    failed: dict[str, list[str]]


def _optional_path(root: Path, rel: str) -> Path | None:
    return root / rel if rel else None


def document_settings(root: Path, cfg: OdieConfig) -> DocumentSettings:
    """Resolve the stylesheet, header and footer collaborators for a site."""

    return DocumentSettings(
        stylesheet=load_stylesheet(_optional_path(root, cfg.paths.stylesheet)),
        header=load_fragment(_optional_path(root, cfg.paths.header), DEFAULT_HEADER),
        footer=load_fragment(_optional_path(root, cfg.paths.footer), DEFAULT_FOOTER),
        close_unterminated=cfg.render.close_unterminated,
        max_line_length=cfg.render.max_line_length,
    )


def render_context(root: Path, src: Path, cfg: OdieConfig) -> RenderContext:
    if cfg.render.embed_root == "document":
        return RenderContext(base_dir=src.parent)
    return RenderContext(base_dir=root)


async def run_site(
    *,
    root: Path,
    sources: list[Path],
    cfg: OdieConfig,
    settings: DocumentSettings,
    jobs: int = 4,
) -> SiteReport:
    """Convert `sources` with at most `jobs` documents in flight.

    Each source owns a distinct output path, so concurrent jobs never write
    the same file. A failing document is recorded and the batch continues.
    """

    jobs = max(1, int(jobs))
    pending = list(reversed(sources))
    converted: dict[Path, Path] = {}
    failed: dict[str, list[str]] = {}

    in_flight: dict[asyncio.Task[Path], Path] = {}

    while pending or in_flight:
        while pending and len(in_flight) < jobs:
            src = pending.pop()
            t: asyncio.Task[Path] = asyncio.create_task(
                asyncio.to_thread(
                    convert_file,
                    src,
                    output_path_for(src),
                    settings=settings,
                    ctx=render_context(root, src, cfg),
                )
            )
            in_flight[t] = src

        done, _ = await asyncio.wait(in_flight.keys(), return_when=asyncio.FIRST_COMPLETED)
        for t in done:
            src = in_flight.pop(t)
            rel = src.relative_to(root).as_posix()
            try:
                converted[src] = t.result()
            except OdieError as e:
                logger.debug("skipping %s: %s", rel, e)
                failed[rel] = [str(e)]
            except Exception as e:  # noqa: BLE001 - one document never aborts the batch
                logger.debug("skipping %s after unexpected error", rel, exc_info=True)
                failed[rel] = [f"{type(e).__name__}: {e}"]

    return SiteReport(converted=converted, failed=failed)


def format_index(
    root: Path, outputs: Iterable[Path], template: str = DEFAULT_INDEX_TEMPLATE
) -> str:
    """Fill the index template with one anchor per rendered page."""

    entries: list[str] = []
    for out_path in sorted(outputs):
        href = out_path.relative_to(root).as_posix()
        # `notes.md.html` is listed as `notes.md`.
        label = href.removesuffix(".html")
        entries.append(f'<a href="{escape_text(href)}">{escape_text(label)}</a>\n')
    return template.replace(ENTRIES_PLACEHOLDER, "".join(entries))


def write_index(path: Path, content: str) -> None:
    try:
        with open(path, "w", encoding=ENCODING, errors=ENCODING_ERRORS) as f:
            f.write(content)
    except OSError as e:
        raise OdieIndexError(f"Error opening index file {path}: {e.strerror or e}") from e


def _index_template(root: Path, cfg: OdieConfig) -> str:
    path = _optional_path(root, cfg.paths.index_template)
    if path is None:
        return DEFAULT_INDEX_TEMPLATE
    try:
        return path.read_text(encoding=ENCODING, errors=ENCODING_ERRORS)
    except OSError as e:
        raise OdieIndexError(f"Failed reading index template {path}: {e.strerror or e}") from e


def build_site(root: Path, cfg: OdieConfig, *, jobs: int | None = None) -> SiteReport:
    """Discover, convert and index every source document under `root`.

    Raises OdieIndexError if the index cannot be written; per-document
    failures are reported in the returned SiteReport.
    """

    sources = discover_sources(root, extensions=cfg.paths.extensions, exclude=cfg.paths.exclude)
    settings = document_settings(root, cfg)
    logger.debug("found %d source document(s) under %s", len(sources), root)

    report = SiteReport(converted={}, failed={})
    if sources:
        report = asyncio.run(
            run_site(
                root=root,
                sources=sources,
                cfg=cfg,
                settings=settings,
                jobs=jobs if jobs is not None else cfg.build.jobs,
            )
        )

    index_path = root / cfg.paths.index
    template = _index_template(root, cfg)
    write_index(index_path, format_index(root, report.converted.values(), template))
    logger.debug("wrote %s", index_path)
    return report
