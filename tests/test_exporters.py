"""Tests for export modules: paragraph, table, CSV, Excel, report and renderers."""

import csv
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import openpyxl
import pytest
from docx import Document

from conftest import LME4, MGCV_BOOK, MGCV_PAPER, FakeProvider
from pkgcite.citations.dedup import finalize
from pkgcite.citations.resolver import resolve_all
from pkgcite.core.config import default_config
from pkgcite.core.errors import ConfigurationError, RenderError
from pkgcite.exporters import export_all
from pkgcite.exporters.bibtex import write_bibliography
from pkgcite.exporters.paragraph import (
    combine_words,
    mention,
    nocite_references,
    write_citation_paragraph,
)
from pkgcite.exporters.renderers import (
    BasicRenderer,
    PandocRenderer,
    author_date,
    replace_citations,
    split_template,
)
from pkgcite.exporters.report import build_template, create_report, resolve_style
from pkgcite.exporters.table import HEADERS, build_table_rows
from pkgcite.packages.expander import expand


@pytest.fixture()
def table():
    """Python, JupyterLab, lme4, mgcv (two records) and a package without metadata."""
    provider = FakeProvider(
        entries={"lme4": [LME4], "mgcv": [MGCV_BOOK, MGCV_PAPER]},
        versions={"Python": "3.12.1", "jupyterlab": "4.1.0", "lme4": "1.1.35", "mgcv": "1.9.1"},
    )
    requests = expand(["lme4", "mgcv", "zzghost"], ide="JupyterLab")
    with pytest.warns(UserWarning):
        citations, fallbacks = resolve_all(requests, provider, default_config())
    return finalize(citations, fallbacks)


@pytest.fixture()
def small_table():
    provider = FakeProvider(entries={"lme4": [LME4]}, versions={"Python": "3.12.1", "lme4": "1.1.35"})
    citations, fallbacks = resolve_all(expand(["lme4"]), provider, default_config())
    return finalize(citations, fallbacks)


# ── Paragraph ────────────────────────────────────────────────────────


def test_combine_words():
    assert combine_words([]) == ""
    assert combine_words(["a"]) == "a"
    assert combine_words(["a", "b"]) == "a and b"
    assert combine_words(["a", "b", "c"]) == "a, b, and c"


def test_paragraph_text(table):
    assert write_citation_paragraph(table) == (
        "We used Python v. 3.12.1 [@Python] and the following packages: "
        "lme4 v. 1.1.35 [@lme4], mgcv v. 1.9.1 [@mgcv; @mgcv2], "
        "and zzghost (unknown version) [@zzghost]. "
        "Analyses were conducted in JupyterLab v. 4.1.0 [@JupyterLab]."
    )


def test_paragraph_runtime_only():
    provider = FakeProvider(versions={"Python": "3.12.1"})
    citations, _ = resolve_all(expand([]), provider, default_config())
    assert write_citation_paragraph(finalize(citations)) == "We used Python v. 3.12.1 [@Python]."


def test_mention_package(small_table):
    assert mention(small_table.packages[1]) == "lme4 v. 1.1.35 [@lme4]"


# ── nocite ───────────────────────────────────────────────────────────


def test_nocite_markdown():
    assert nocite_references(["a", "b2"]) == "---\nnocite: |\n  @a, @b2\n---\n"


def test_nocite_latex():
    assert nocite_references(["a", "b2"], fmt="latex") == "\\nocite{a, b2}\n"


def test_nocite_unknown_format():
    with pytest.raises(ConfigurationError):
        nocite_references(["a"], fmt="rst")


# ── Table ────────────────────────────────────────────────────────────


def test_table_rows(table):
    rows = build_table_rows(table)
    assert [r.package for r in rows] == ["Python", "JupyterLab", "lme4", "mgcv", "zzghost"]
    mgcv = rows[3]
    assert mgcv.version == "1.9.1"
    assert mgcv.citekeys == "@mgcv, @mgcv2"
    assert mgcv.citation.startswith("Wood SN (2017). Generalized Additive Models")


def test_table_and_paragraph_name_the_same_packages(table):
    paragraph = write_citation_paragraph(table)
    for row in build_table_rows(table):
        assert row.package in paragraph


def test_export_csv_and_excel(table, tmp_path):
    paths = export_all(table, tmp_path / "out")

    with open(paths["table_csv"], newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == HEADERS
    assert [r[0] for r in rows[1:]] == ["Python", "JupyterLab", "lme4", "mgcv", "zzghost"]

    wb = openpyxl.load_workbook(paths["table_xlsx"])
    assert wb.sheetnames == ["Packages", "References"]
    assert wb["Packages"]["A1"].font.bold
    keys = [row[0].value for row in wb["References"].iter_rows(min_row=2)]
    assert keys == table.citekeys


def test_export_all_paths(table, tmp_path):
    paths = export_all(table, tmp_path)
    assert set(paths) == {"bibliography", "table_csv", "table_xlsx", "paragraph_md"}
    for p in paths.values():
        assert Path(p).exists()
    assert Path(paths["paragraph_md"]).read_text(encoding="utf-8").startswith("We used Python")


# ── Report Template ──────────────────────────────────────────────────


def test_build_template(small_table):
    text = build_template(small_table, "refs.bib", "Software citations", style="apa.csl")
    meta, body = split_template(text)
    assert meta == {"title": "Software citations", "bibliography": "refs.bib", "csl": "apa.csl"}
    assert body.strip().endswith("# References")
    assert "[@lme4]" in body


def test_split_template_without_header():
    assert split_template("plain text") == ({}, "plain text")


def test_resolve_style(tmp_path):
    (tmp_path / "apa.csl").write_text("<style/>")
    assert resolve_style("apa", tmp_path) == (tmp_path / "apa.csl").resolve()
    assert resolve_style(tmp_path / "apa.csl", Path("elsewhere")) == (tmp_path / "apa.csl").resolve()
    assert resolve_style(None, tmp_path) is None


def test_missing_style_raises(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        resolve_style("chicago", tmp_path)


def test_create_report_template_only(small_table, tmp_path):
    bib = write_bibliography(small_table, tmp_path / "refs.bib")
    renderer = MagicMock()
    files = create_report(
        small_table, bib_path=bib, out_dir=tmp_path, template_file="report.md",
        out_name="cites", out_format="template", title="T", renderer=renderer,
    )
    assert files.output == files.template == tmp_path / "report.md"
    renderer.render.assert_not_called()
    meta, _ = split_template(files.template.read_text(encoding="utf-8"))
    assert meta["bibliography"] == "refs.bib"


def test_create_report_calls_renderer(small_table, tmp_path):
    bib = write_bibliography(small_table, tmp_path / "refs.bib")
    renderer = MagicMock()
    renderer.render.side_effect = lambda template, fmt, style, out: out
    files = create_report(
        small_table, bib_path=bib, out_dir=tmp_path, template_file="report.md",
        out_name="cites", out_format="docx", title="T", renderer=renderer,
    )
    assert files.output == tmp_path / "cites.docx"
    renderer.render.assert_called_once_with(tmp_path / "report.md", "docx", None, tmp_path / "cites.docx")


def test_create_report_rejects_unknown_format(small_table, tmp_path):
    with pytest.raises(ConfigurationError):
        create_report(
            small_table, bib_path=tmp_path / "refs.bib", out_dir=tmp_path, template_file="r.md",
            out_name="c", out_format="Rmd", title="T", renderer=MagicMock(),
        )


# ── Basic Renderer ───────────────────────────────────────────────────


def test_author_date(table):
    by_key = {r.key: r for r in table.records()}
    assert author_date(by_key["lme4"]) == "Bates et al. 2015"
    assert author_date(by_key["mgcv"]) == "Wood 2017"
    assert author_date(by_key["Python"]) == "Van Rossum and Drake 2009"


def test_replace_citations(table):
    text = replace_citations("See [@lme4] and [@mgcv; @mgcv2] or [@unknown].", table)
    assert text == "See (Bates et al. 2015) and (Wood 2017; Wood 2011) or [@unknown]."


def _template(table, tmp_path):
    path = tmp_path / "report.md"
    path.write_text(build_template(table, "refs.bib", "Software citations"), encoding="utf-8")
    return path


def test_basic_renderer_docx(table, tmp_path):
    out = BasicRenderer(table).render(_template(table, tmp_path), "docx", None, tmp_path / "r.docx")
    doc = Document(str(out))
    texts = [p.text for p in doc.paragraphs]
    assert texts[0] == "Software citations"
    assert "lme4 v. 1.1.35 (Bates et al. 2015)" in texts[1]
    assert "References" in texts
    assert len(texts) == 3 + len(table.citekeys)


def test_basic_renderer_pdf(table, tmp_path):
    out = BasicRenderer(table).render(_template(table, tmp_path), "pdf", None, tmp_path / "r.pdf")
    assert out.read_bytes().startswith(b"%PDF")


def test_basic_renderer_md(table, tmp_path):
    out = BasicRenderer(table).render(_template(table, tmp_path), "md", None, tmp_path / "r.md")
    text = out.read_text(encoding="utf-8")
    assert text.startswith("# Software citations\n")
    assert "## References" in text
    assert "[@" not in text


def test_basic_renderer_rejects_html(table, tmp_path):
    with pytest.raises(RenderError) as exc_info:
        BasicRenderer(table).render(_template(table, tmp_path), "html", None, tmp_path / "r.html")
    assert exc_info.value.out_format == "html"
    assert "'html'" in str(exc_info.value)


# ── Pandoc Renderer ──────────────────────────────────────────────────


def test_pandoc_missing_raises_render_error(tmp_path):
    with patch("pkgcite.exporters.renderers.shutil.which", return_value=None):
        with pytest.raises(RenderError, match="Rendering to 'pdf' failed"):
            PandocRenderer().render(tmp_path / "r.md", "pdf", None, tmp_path / "r.pdf")


def test_pandoc_command_line(tmp_path):
    template = tmp_path / "r.md"
    template.write_text("x")
    style = tmp_path / "apa.csl"
    output = tmp_path / "r.html"

    def fake_run(cmd, **kwargs):
        output.write_text("<html/>")
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    with patch("pkgcite.exporters.renderers.shutil.which", return_value="/usr/bin/pandoc"), patch(
        "pkgcite.exporters.renderers.subprocess.run", side_effect=fake_run
    ) as run:
        result = PandocRenderer().render(template, "html", style, output)

    cmd = run.call_args.args[0]
    assert cmd[:3] == ["/usr/bin/pandoc", "r.md", "--citeproc"]
    assert cmd[cmd.index("--csl") + 1] == str(style.resolve())
    assert cmd[-2:] == ["--output", str(output.resolve())]
    assert run.call_args.kwargs["cwd"] == str(tmp_path.resolve())
    assert result == output.resolve()


def test_pandoc_failure_names_format(tmp_path):
    failed = subprocess.CompletedProcess([], 83, stdout="", stderr="Error producing PDF.\n")
    with patch("pkgcite.exporters.renderers.shutil.which", return_value="/usr/bin/pandoc"), patch(
        "pkgcite.exporters.renderers.subprocess.run", return_value=failed
    ):
        with pytest.raises(RenderError, match="Rendering to 'pdf' failed: pandoc exited with code 83"):
            PandocRenderer().render(tmp_path / "r.md", "pdf", None, tmp_path / "r.pdf")


def test_pandoc_timeout(tmp_path):
    with patch("pkgcite.exporters.renderers.shutil.which", return_value="/usr/bin/pandoc"), patch(
        "pkgcite.exporters.renderers.subprocess.run",
        side_effect=subprocess.TimeoutExpired("pandoc", 1),
    ):
        with pytest.raises(RenderError, match="timed out"):
            PandocRenderer(timeout_s=1).render(tmp_path / "r.md", "docx", None, tmp_path / "r.docx")


def test_pandoc_missing_output(tmp_path):
    ok = subprocess.CompletedProcess([], 0, stdout="", stderr="")
    with patch("pkgcite.exporters.renderers.shutil.which", return_value="/usr/bin/pandoc"), patch(
        "pkgcite.exporters.renderers.subprocess.run", return_value=ok
    ):
        with pytest.raises(RenderError, match="did not produce"):
            PandocRenderer().render(tmp_path / "r.md", "md", None, tmp_path / "r.out.md")


@pytest.mark.pandoc
def test_pandoc_renders_html(small_table, tmp_path):
    import shutil

    if not shutil.which("pandoc"):
        pytest.skip("pandoc not installed")
    bib = write_bibliography(small_table, tmp_path / "refs.bib")
    files = create_report(
        small_table, bib_path=bib, out_dir=tmp_path, template_file="report.md",
        out_name="cites", out_format="html", title="T", renderer=PandocRenderer(),
    )
    assert "Bates" in files.output.read_text(encoding="utf-8")
