"""HTML escaping for literal text."""

from __future__ import annotations

ENTITIES: dict[str, str] = {
    "<": "&lt;",
    ">": "&gt;",
    "&": "&amp;",
    '"': "&quot;",
    "'": "&apos;",
}


def escape_char(ch: str) -> str:
    return ENTITIES.get(ch, ch)


def escape_text(text: str) -> str:
    return "".join(ENTITIES.get(ch, ch) for ch in text)
