from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path

import pytest

from odie.config import OdieConfig, PathsConfig, RenderConfig
from odie.document import DEFAULT_FOOTER, DEFAULT_HEADER, DEFAULT_STYLESHEET
from odie.errors import OdieIndexError
from odie.site import (
    DEFAULT_INDEX_TEMPLATE,
    build_site,
    document_settings,
    format_index,
    render_context,
    run_site,
)


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_build_site_converts_sources_recursively(tmp_path: Path) -> None:
    _write(tmp_path / "a.md", "# A\n")
    _write(tmp_path / "sub" / "b.md", "* b\n")
    _write(tmp_path / "notes.txt", "not a source\n")

    report = build_site(tmp_path, OdieConfig())

    assert set(report.converted) == {tmp_path / "a.md", tmp_path / "sub" / "b.md"}
    assert report.failed == {}
    assert "<h1>A\n</h1>" in (tmp_path / "a.md.html").read_text(encoding="utf-8")
    assert "<ul><li>b\n</ul>" in (tmp_path / "sub" / "b.md.html").read_text(encoding="utf-8")
    assert not (tmp_path / "notes.txt.html").exists()


def test_build_site_writes_index_with_links(tmp_path: Path) -> None:
    _write(tmp_path / "a.md", "a\n")
    _write(tmp_path / "sub" / "b.md", "b\n")

    build_site(tmp_path, OdieConfig())

    index = (tmp_path / "index.html").read_text(encoding="utf-8")
    assert index.startswith("<!-- odie index page - autogenerated -->\n")
    assert '<a href="a.md.html">a.md</a>\n<a href="sub/b.md.html">sub/b.md</a>\n</pre>' in index


def test_rebuild_does_not_pick_up_generated_pages(tmp_path: Path) -> None:
    _write(tmp_path / "a.md", "a\n")

    build_site(tmp_path, OdieConfig())
    report = build_site(tmp_path, OdieConfig())

    assert set(report.converted) == {tmp_path / "a.md"}
    assert not (tmp_path / "a.md.html.html").exists()


def test_build_site_with_no_sources_still_writes_index(tmp_path: Path) -> None:
    report = build_site(tmp_path, OdieConfig())

    assert report.converted == {}
    assert (tmp_path / "index.html").read_text(encoding="utf-8") == DEFAULT_INDEX_TEMPLATE.replace(
        "{entries}", ""
    )


def test_failing_document_does_not_abort_the_batch(tmp_path: Path) -> None:
    _write(tmp_path / "good.md", "short\n")
    _write(tmp_path / "bad.md", "x" * 50 + "\n")
    cfg = OdieConfig(render=RenderConfig(max_line_length=10))

    report = build_site(tmp_path, cfg)

    assert set(report.converted) == {tmp_path / "good.md"}
    assert list(report.failed) == ["bad.md"]
    assert "line 1" in report.failed["bad.md"][0]
    index = (tmp_path / "index.html").read_text(encoding="utf-8")
    assert "good.md.html" in index
    assert "bad.md" not in index


def test_unwritable_output_is_recorded_as_failure(tmp_path: Path) -> None:
    _write(tmp_path / "a.md", "a\n")
    (tmp_path / "a.md.html").mkdir()

    report = build_site(tmp_path, OdieConfig())

    assert "a.md" in report.failed
    assert "Failed to open output file" in report.failed["a.md"][0]


def test_index_write_failure_is_fatal(tmp_path: Path) -> None:
    _write(tmp_path / "a.md", "a\n")
    (tmp_path / "index.html").mkdir()

    with pytest.raises(OdieIndexError):
        build_site(tmp_path, OdieConfig())


def test_custom_index_template(tmp_path: Path) -> None:
    _write(tmp_path / "a.md", "a\n")
    _write(tmp_path / "tpl.html", "<ul>{entries}</ul>\n")
    cfg = OdieConfig(paths=PathsConfig(index="home.html", index_template="tpl.html"))

    build_site(tmp_path, cfg)

    assert (tmp_path / "home.html").read_text(encoding="utf-8") == (
        '<ul><a href="a.md.html">a.md</a>\n</ul>\n'
    )
    assert not (tmp_path / "index.html").exists()


def test_missing_index_template_is_fatal(tmp_path: Path) -> None:
    cfg = OdieConfig(paths=PathsConfig(index_template="nope.html"))
    with pytest.raises(OdieIndexError, match="template"):
        build_site(tmp_path, cfg)


def test_format_index_escapes_names(tmp_path: Path) -> None:
    text = format_index(tmp_path, [tmp_path / "q&a.md.html"], "{entries}")
    assert text == '<a href="q&amp;a.md.html">q&amp;a.md</a>\n'


def test_site_stylesheet_header_and_footer(tmp_path: Path) -> None:
    _write(tmp_path / "custom.css", "p{margin:0}")
    _write(tmp_path / "head.html", "<header>H</header>")
    _write(tmp_path / "a.md", "a\n")
    cfg = OdieConfig(paths=PathsConfig(header="head.html", footer="missing.html"))

    build_site(tmp_path, cfg)

    page = (tmp_path / "a.md.html").read_text(encoding="utf-8")
    assert "<style>p{margin:0}</style>" in page
    assert "<header>H</header>a\n" in page
    assert DEFAULT_FOOTER in page


def test_document_settings_defaults(tmp_path: Path) -> None:
    settings = document_settings(tmp_path, OdieConfig())
    assert settings.stylesheet == DEFAULT_STYLESHEET
    assert settings.header == DEFAULT_HEADER
    assert settings.footer == DEFAULT_FOOTER
    assert settings.close_unterminated is True
    assert settings.max_line_length == 0


def test_embeds_resolve_against_site_root_by_default(tmp_path: Path) -> None:
    _write(tmp_path / "shared.txt", "ROOT")
    _write(tmp_path / "sub" / "shared.txt", "DOC")
    _write(tmp_path / "sub" / "b.md", "@shared.txt\n")

    build_site(tmp_path, OdieConfig())

    assert "ROOT\n" in (tmp_path / "sub" / "b.md.html").read_text(encoding="utf-8")


def test_embeds_can_resolve_against_document_directory(tmp_path: Path) -> None:
    _write(tmp_path / "shared.txt", "ROOT")
    _write(tmp_path / "sub" / "shared.txt", "DOC")
    _write(tmp_path / "sub" / "b.md", "@shared.txt\n")
    cfg = OdieConfig(render=RenderConfig(embed_root="document"))

    build_site(tmp_path, cfg)

    assert "DOC\n" in (tmp_path / "sub" / "b.md.html").read_text(encoding="utf-8")
    assert render_context(tmp_path, tmp_path / "sub" / "b.md", cfg).base_dir == tmp_path / "sub"


def test_run_site_respects_job_limit(tmp_path: Path) -> None:
    sources = []
    for i in range(7):
        p = tmp_path / f"doc{i}.md"
        _write(p, f"_{i}_\n")
        sources.append(p)
    cfg = OdieConfig()

    report = asyncio.run(
        run_site(
            root=tmp_path,
            sources=sources,
            cfg=cfg,
            settings=document_settings(tmp_path, cfg),
            jobs=2,
        )
    )

    assert set(report.converted) == set(sources)
    for i, p in enumerate(sources):
        assert f"<strong>{i}</strong>" in (tmp_path / f"doc{i}.md.html").read_text(encoding="utf-8")


def test_embed_with_nul_byte_does_not_abort_the_batch(tmp_path: Path) -> None:
    (tmp_path / "bad.md").write_bytes(b"@a\x00b\n")
    _write(tmp_path / "good.md", "good\n")

    report = build_site(tmp_path, OdieConfig())

    assert set(report.converted) == {tmp_path / "bad.md", tmp_path / "good.md"}
    assert report.failed == {}
    assert "@a\x00b\n" in (tmp_path / "bad.md.html").read_text(encoding="utf-8")


def test_unexpected_render_error_is_recorded_per_document(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    import odie.site

    _write(tmp_path / "bad.md", "bad\n")
    _write(tmp_path / "good.md", "good\n")
    real_convert = odie.site.convert_file

    def convert(src: Path, dest: Path | None = None, **kwargs: object) -> Path:
        if src.name == "bad.md":
            raise RuntimeError("renderer blew up")
        return real_convert(src, dest, **kwargs)

    monkeypatch.setattr(odie.site, "convert_file", convert)

    report = build_site(tmp_path, OdieConfig())

    assert set(report.converted) == {tmp_path / "good.md"}
    assert report.failed == {"bad.md": ["RuntimeError: renderer blew up"]}
    index = (tmp_path / "index.html").read_text(encoding="utf-8")
    assert "good.md.html" in index
    assert "bad.md" not in index


@pytest.mark.skipif(sys.platform != "linux", reason="needs byte-transparent file names")
def test_index_lists_non_utf8_file_names(tmp_path: Path) -> None:
    name = os.fsdecode(b"caf\xe9.md")
    _write(tmp_path / name, "x\n")

    report = build_site(tmp_path, OdieConfig())

    assert set(report.converted) == {tmp_path / name}
    index = (tmp_path / "index.html").read_bytes()
    assert b'<a href="caf\xe9.md.html">caf\xe9.md</a>\n' in index
