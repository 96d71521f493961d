"""Block rules: the per-line state transition of the renderer."""

from __future__ import annotations

import io

from odie.inline import RenderContext, write_inline
from odie.style import HEADINGS, Style, Writer, toggle

FENCE = "```"
LIST_MARKER = "* "
QUOTE_MARKER = ">"

# Matches C `isspace`; `str.lstrip()` would also eat Unicode spaces.
WHITESPACE = " \t\n\v\f\r"

# Longest marker first, so `## ` is never read as `# ` plus text.
HEADING_MARKERS: tuple[tuple[str, Style], ...] = (
    ("### ", Style.H3),
    ("## ", Style.H2),
    ("# ", Style.H1),
)


def process_line(
    out: Writer, line: str, state: Style, ctx: RenderContext | None = None
) -> Style:
    """Render one source line (newline included) and return the next state."""

    if line.startswith(FENCE):
        return toggle(out, state, Style.PRE)
    if state & Style.PRE:
        return write_inline(out, line, state, ctx)

    line = line.lstrip(WHITESPACE)

    if line.startswith(QUOTE_MARKER):
        if not state & Style.QUOTE:
            state = toggle(out, state, Style.QUOTE)
        line = line[len(QUOTE_MARKER) :].lstrip(WHITESPACE)
    elif state & Style.QUOTE and not line:
        state = toggle(out, state, Style.QUOTE)

    if line.startswith(LIST_MARKER):
        if not state & Style.LIST:
            state = toggle(out, state, Style.LIST)
        out.write("<li>")
        line = line[len(LIST_MARKER) :]
    elif state & Style.LIST and not line:
        state = toggle(out, state, Style.LIST)

    if not line:
        out.write("<p>")

    for marker, flag in HEADING_MARKERS:
        if line.startswith(marker):
            state = toggle(out, state, flag)
            line = line[len(marker) :]
            break

    state = write_inline(out, line, state, ctx)

    # Headings never span lines.
    for flag in HEADINGS:
        if state & flag:
            state = toggle(out, state, flag)
    return state


def render_line(
    line: str, state: Style = Style(0), ctx: RenderContext | None = None
) -> tuple[str, Style]:
    buf = io.StringIO()
    state = process_line(buf, line, state, ctx)
    return buf.getvalue(), state
