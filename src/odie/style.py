"""Style state: one flag per HTML element that may currently be open."""

from __future__ import annotations

import enum
from typing import Protocol


class Writer(Protocol):
    def write(self, s: str, /) -> object: ...


class Style(enum.IntFlag):
    PRE = 1 << 0
    CODE = 1 << 1
    EM = 1 << 2
    STRONG = 1 << 3
    STRIKE = 1 << 4
    H1 = 1 << 5
    H2 = 1 << 6
    H3 = 1 << 7
    LIST = 1 << 8
    QUOTE = 1 << 9


TAGS: dict[Style, str] = {
    Style.PRE: "pre",
    Style.CODE: "code",
    Style.EM: "em",
    Style.STRONG: "strong",
    Style.STRIKE: "strike",
    Style.H1: "h1",
    Style.H2: "h2",
    Style.H3: "h3",
    Style.LIST: "ul",
    Style.QUOTE: "blockquote",
}

HEADINGS = (Style.H1, Style.H2, Style.H3)

# Order used when force-closing at end of input: inline spans first, then
# headings, then the block containers.
CLOSE_ORDER = (
    Style.CODE,
    Style.STRIKE,
    Style.STRONG,
    Style.EM,
    Style.H3,
    Style.H2,
    Style.H1,
    Style.PRE,
    Style.LIST,
    Style.QUOTE,
)


def toggle(out: Writer, state: Style, flag: Style) -> Style:
    """Close `flag`'s element if it is open, otherwise open it."""

    tag = TAGS[flag]
    if state & flag:
        out.write(f"</{tag}>")
        return state & ~flag
    out.write(f"<{tag}>")
    return state | flag


def close_all(out: Writer, state: Style) -> Style:
    """Close every element still open in `state`; returns the empty state.

    Elements are closed in CLOSE_ORDER, not in reverse opening order: the
    flags do not record which element was opened first. A list opened before
    a quote (`* a` then `> b`) therefore closes as `</ul></blockquote>`, and
    a code span left open before a fence closes as `</code></pre>`.
    """

    for flag in CLOSE_ORDER:
        if state & flag:
            state = toggle(out, state, flag)
    return state
