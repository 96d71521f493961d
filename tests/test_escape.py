from __future__ import annotations

import pytest

from odie.escape import escape_char, escape_text
from odie.inline import render_inline
from odie.style import Style


@pytest.mark.parametrize(
    ("ch", "entity"),
    [("<", "&lt;"), (">", "&gt;"), ("&", "&amp;"), ('"', "&quot;"), ("'", "&apos;")],
)
def test_special_characters_map_to_entities(ch: str, entity: str) -> None:
    assert escape_char(ch) == entity
    assert render_inline(f"a{ch}b") == (f"a{entity}b", Style(0))


def test_other_characters_pass_through() -> None:
    for ch in "aZ09 \t\n#!?/=;:%é😀":
        assert escape_char(ch) == ch


def test_escape_text_maps_whole_string() -> None:
    assert escape_text("<a href='x'>&</a>") == "&lt;a href=&apos;x&apos;&gt;&amp;&lt;/a&gt;"


def test_plain_text_renders_unchanged() -> None:
    text = "Nothing to see here, just words and numbers 1234.\n"
    assert render_inline(text) == (text, Style(0))


def test_backslash_escaped_special_character_is_still_escaped() -> None:
    assert render_inline("\\<b\\>") == ("&lt;b&gt;", Style(0))
