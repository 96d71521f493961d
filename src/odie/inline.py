"""Inline rendering: spans, links and file embeds within a single line of text.

The scanner writes HTML straight to `out` as it goes; there is no intermediate
tree. Toggle markers (`` ` ``, `~~`, `*`, `_`) alternate open/close with no
lookahead, so an unmatched marker leaves its element open in the returned
state.
"""

from __future__ import annotations

import base64
import io
import logging
from dataclasses import dataclass
from pathlib import Path

from odie.escape import escape_char
from odie.style import Style, Writer, toggle

logger = logging.getLogger("odie.inline")

# `:` and `*` keep trailing punctuation and emphasis out of embed names.
EMBED_STOP_CHARS = "\n :]*"
IMAGE_MARKERS = (".png", ".jpg", ".gif")

_TOGGLES: tuple[tuple[str, Style], ...] = (
    ("~~", Style.STRIKE),
    ("*", Style.EM),
    ("_", Style.STRONG),
)


@dataclass(frozen=True, slots=True)
class RenderContext:
    """Per-document rendering environment."""

    base_dir: Path = Path(".")


DEFAULT_CONTEXT = RenderContext()


def copy_until(text: str, pos: int, stops: str) -> tuple[str, int]:
    """Return the raw token starting at `pos` and the index of its terminator.

    A backslash carries the following character into the token, so an escaped
    stop character does not end it. The backslash itself is kept.
    """

    start = pos
    n = len(text)
    while pos < n and text[pos] not in stops:
        if text[pos] == "\\" and pos + 1 < n:
            pos += 1
        pos += 1
    return text[start:pos], pos


def unescape_token(token: str) -> str:
    out: list[str] = []
    i = 0
    while i < len(token):
        if token[i] == "\\" and i + 1 < len(token):
            i += 1
        out.append(token[i])
        i += 1
    return "".join(out)


def is_image_name(name: str) -> bool:
    # Substring match, not a suffix check: `shot.png.txt` is treated as an image.
    return any(marker in name for marker in IMAGE_MARKERS)


def b64encode_payload(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def write_embedded_bytes(out: Writer, name: str, data: bytes) -> None:
    if is_image_name(name):
        out.write(f'<img src="data:image;base64,{b64encode_payload(data)}"/>')
    else:
        # Embedded files are trusted markup and copied byte for byte.
        out.write(data.decode("utf-8", errors="surrogateescape"))


def _write_embed(
    out: Writer, text: str, pos: int, state: Style, ctx: RenderContext
) -> tuple[int, Style]:
    token, pos = copy_until(text, pos, EMBED_STOP_CHARS)
    name = unescape_token(token)
    if name:
        path = ctx.base_dir / name
        try:
            data = path.read_bytes()
        except (OSError, ValueError) as e:  # ValueError: NUL byte in the name
            logger.debug("embed %s not loaded (%s); rendering as text", path, e)
        else:
            write_embedded_bytes(out, name, data)
            return pos, state

    out.write(escape_char("@"))
    return pos, write_inline(out, token, state, ctx)


def _write_link(
    out: Writer, text: str, pos: int, state: Style, ctx: RenderContext
) -> tuple[int, Style]:
    label, pos = copy_until(text, pos, "]")
    if text.startswith("](", pos):
        url, pos = copy_until(text, pos + 2, ")")
        if text.startswith(")", pos):
            pos += 1
        out.write('<a href="')
        write_inline(out, url, Style.PRE, ctx)
        out.write('">')
        # Toggles inside the label do not carry past the anchor.
        write_inline(out, label, state, ctx)
        out.write("</a>")
        return pos, state

    out.write("[")
    return pos, write_inline(out, label, state, ctx)


def write_inline(
    out: Writer, text: str, state: Style, ctx: RenderContext | None = None
) -> Style:
    """Render `text` to `out` starting from `state`; return the resulting state."""

    ctx = ctx or DEFAULT_CONTEXT
    pos = 0
    n = len(text)
    while True:
        if not state & Style.PRE:
            if text.startswith("`", pos):
                state = toggle(out, state, Style.CODE)
                pos += 1
                continue
            if not state & Style.CODE:
                matched = False
                for marker, flag in _TOGGLES:
                    if text.startswith(marker, pos):
                        state = toggle(out, state, flag)
                        pos += len(marker)
                        matched = True
                        break
                if matched:
                    continue
                if text.startswith("@", pos):
                    pos, state = _write_embed(out, text, pos + 1, state, ctx)
                    continue
                if text.startswith("[", pos):
                    pos, state = _write_link(out, text, pos + 1, state, ctx)
                    continue

        if pos < n and text[pos] == "\\":
            pos += 1
        if pos >= n:
            return state
        out.write(escape_char(text[pos]))
        pos += 1


def render_inline(
    text: str, state: Style = Style(0), ctx: RenderContext | None = None
) -> tuple[str, Style]:
    buf = io.StringIO()
    state = write_inline(buf, text, state, ctx)
    return buf.getvalue(), state
