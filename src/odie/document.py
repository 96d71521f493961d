"""Document driver: wraps rendered lines in the standalone HTML page shell."""

from __future__ import annotations

import io
import logging
import os
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from odie.block import process_line
from odie.errors import OdieInputError, OdieLineTooLongError, OdieOutputError
from odie.inline import RenderContext
from odie.style import Style, Writer, close_all

logger = logging.getLogger("odie.document")

# Source files are decoded so that any byte sequence survives to the output.
ENCODING = "utf-8"
ENCODING_ERRORS = "surrogateescape"

DEFAULT_STYLESHEET = (
    "body{margin:60 auto;max-width:750px;line-height:1.6;"
    "font-family:Open Sans,Arial;color:#444;padding:0 10px;}"
    "h1,h2,h3{line-height:1.2;padding-top: 14px;}"
)
DEFAULT_HEADER = "<header><p>Custom Header</p></header>"
DEFAULT_FOOTER = "<footer>custom footer injected from odie automatically</footer>"


@dataclass(frozen=True, slots=True)
class DocumentSettings:
    stylesheet: str = DEFAULT_STYLESHEET
    header: str = DEFAULT_HEADER
    footer: str = DEFAULT_FOOTER
    close_unterminated: bool = True
    # 0 disables the limit.
    max_line_length: int = 0


DEFAULT_SETTINGS = DocumentSettings()


def load_fragment(path: Path | None, default: str) -> str:
    """Return the contents of `path`, or `default` if it is unset or unreadable."""

    if path is None:
        return default
    try:
        return path.read_text(encoding=ENCODING, errors=ENCODING_ERRORS)
    except OSError as e:
        logger.debug("using built-in fragment; %s not readable: %s", path, e)
        return default


def load_stylesheet(path: Path | None) -> str:
    return load_fragment(path, DEFAULT_STYLESHEET)


def output_path_for(src: Path) -> Path:
    """`notes.md` renders to `notes.md.html` beside it."""

    return src.with_name(src.name + ".html")


def write_body(
    out: Writer,
    lines: Iterable[str],
    *,
    ctx: RenderContext | None = None,
    close_unterminated: bool = True,
    max_line_length: int = 0,
) -> Style:
    """Thread a fresh style state through every line; return the final state."""

    state = Style(0)
    for lineno, line in enumerate(lines, start=1):
        if max_line_length:
            length = len(line.rstrip("\r\n"))
            if length > max_line_length:
                raise OdieLineTooLongError(
                    f"line {lineno} has {length} characters (limit {max_line_length})"
                )
        state = process_line(out, line, state, ctx)
    if close_unterminated:
        state = close_all(out, state)
    return state


def write_document(
    out: Writer,
    lines: Iterable[str],
    settings: DocumentSettings = DEFAULT_SETTINGS,
    ctx: RenderContext | None = None,
) -> Style:
    out.write('<html><head><meta charset="utf-8"><style>')
    out.write(settings.stylesheet)
    out.write("</style></head><body>")
    out.write(settings.header)
    state = write_body(
        out,
        lines,
        ctx=ctx,
        close_unterminated=settings.close_unterminated,
        max_line_length=settings.max_line_length,
    )
    out.write(settings.footer)
    out.write("</body></html>\n")
    return state


def render_document(
    source: str | Iterable[str],
    settings: DocumentSettings = DEFAULT_SETTINGS,
    ctx: RenderContext | None = None,
) -> str:
    lines = source.splitlines(keepends=True) if isinstance(source, str) else source
    buf = io.StringIO()
    write_document(buf, lines, settings, ctx)
    return buf.getvalue()


def _write_atomic(dest: Path, content: str) -> None:
    # Temp file in the destination directory, then os.replace.
    fd, tmp = tempfile.mkstemp(dir=str(dest.parent), prefix=".odie-tmp-", suffix=".html")
    try:
        with os.fdopen(fd, "w", encoding=ENCODING, errors=ENCODING_ERRORS, newline="") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, dest)
    finally:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass


def convert_file(
    src: Path,
    dest: Path | None = None,
    *,
    settings: DocumentSettings = DEFAULT_SETTINGS,
    ctx: RenderContext | None = None,
) -> Path:
    """Render `src` into an HTML page at `dest` (default: `output_path_for(src)`)."""

    if dest is None:
        dest = output_path_for(src)

    buf = io.StringIO()
    try:
        # newline="" keeps `\r\n` endings byte-identical in the output.
        with open(src, encoding=ENCODING, errors=ENCODING_ERRORS, newline="") as f:
            write_document(buf, f, settings, ctx)
    except OdieLineTooLongError as e:
        raise OdieLineTooLongError(f"{src}: {e}") from e
    except OSError as e:
        raise OdieInputError(f"Failed to open input file: {src}: {e.strerror or e}") from e

    try:
        _write_atomic(dest, buf.getvalue())
    except OSError as e:
        raise OdieOutputError(f"Failed to open output file: {dest}: {e.strerror or e}") from e

    logger.debug("converted %s -> %s", src, dest)
    return dest
