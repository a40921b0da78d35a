"""Document renderers for the citation report.

``PandocRenderer`` runs pandoc with ``--citeproc``, so citation styles (CSL)
are applied by pandoc. ``BasicRenderer`` needs no external tools: it writes
Word (python-docx), PDF (fpdf2) or Markdown with plain author-date citations
and ignores style sheets.
"""

import logging
import re
import shutil
import subprocess
from pathlib import Path
from typing import Protocol

import yaml
from docx import Document
from docx.shared import Pt
from fpdf import FPDF
from fpdf.enums import XPos, YPos

from pkgcite.citations.models import CitationRecord, PackageTable
from pkgcite.core.errors import RenderError

logger = logging.getLogger(__name__)

REFERENCES_HEADING = "# References"

_CITATION_RE = re.compile(r"\[(@[^\]]+)\]")


# ── Interface ────────────────────────────────────────────────────────


class DocumentRenderer(Protocol):
    def render(
        self,
        template_path: Path,
        out_format: str,
        style: Path | None,
        output_path: Path,
    ) -> Path: ...


# ── Pandoc ───────────────────────────────────────────────────────────


class PandocRenderer:
    """Render the Markdown template with pandoc and citeproc."""

    FORMAT_ARGS: dict[str, list[str]] = {
        "html": ["--standalone", "--to", "html5"],
        "docx": ["--to", "docx"],
        "pdf": [],
        "md": ["--to", "markdown-citations"],
    }

    def __init__(self, executable: str = "pandoc", timeout_s: int = 300):
        self.executable = executable
        self.timeout_s = timeout_s

    def render(
        self,
        template_path: Path,
        out_format: str,
        style: Path | None,
        output_path: Path,
    ) -> Path:
        if out_format not in self.FORMAT_ARGS:
            raise RenderError(out_format, "format not supported by the pandoc renderer")

        exe = shutil.which(self.executable)
        if not exe:
            raise RenderError(out_format, f"'{self.executable}' not found on PATH")

        template_path = Path(template_path).resolve()
        output_path = Path(output_path).resolve()
        cmd = [exe, template_path.name, "--citeproc", *self.FORMAT_ARGS[out_format]]
        if style:
            cmd += ["--csl", str(Path(style).resolve())]
        cmd += ["--output", str(output_path)]

        logger.info("Running pandoc for %s output", out_format)
        result = _run_cmd(cmd, cwd=template_path.parent, timeout_s=self.timeout_s)

        if result.get("timeout"):
            raise RenderError(out_format, f"pandoc timed out after {self.timeout_s}s")
        if not result["ok"]:
            raise RenderError(
                out_format,
                f"pandoc exited with code {result['returncode']}: {result['stderr_tail'].strip()}",
            )
        if not output_path.exists():
            raise RenderError(out_format, f"pandoc did not produce {output_path}")

        logger.info("Rendered %s", output_path)
        return output_path


def _tail_text(text: str, max_chars: int = 4000) -> str:
    if not text:
        return ""
    return text[-max_chars:]


def _run_cmd(cmd: list[str], *, cwd: Path, timeout_s: int) -> dict:
    """Run a command and capture output."""
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            text=True,
            encoding="utf-8",
            errors="replace",
            capture_output=True,
            timeout=timeout_s,
        )
    except subprocess.TimeoutExpired:
        return {"ok": False, "returncode": None, "timeout": True, "stderr_tail": ""}
    except OSError as exc:
        return {"ok": False, "returncode": None, "stderr_tail": str(exc)}
    return {
        "ok": proc.returncode == 0,
        "returncode": proc.returncode,
        "stdout_tail": _tail_text(proc.stdout or ""),
        "stderr_tail": _tail_text(proc.stderr or ""),
    }


# ── Basic (offline) ──────────────────────────────────────────────────


class BasicRenderer:
    """Render without pandoc: Word, PDF or Markdown with author-date citations."""

    FORMATS = ("docx", "pdf", "md")

    def __init__(self, table: PackageTable):
        self.table = table

    def render(
        self,
        template_path: Path,
        out_format: str,
        style: Path | None,
        output_path: Path,
    ) -> Path:
        if out_format not in self.FORMATS:
            raise RenderError(
                out_format, "format not supported by the basic renderer; use pandoc"
            )
        if style:
            logger.warning("Basic renderer ignores citation style %s", style)

        meta, body = split_template(Path(template_path).read_text(encoding="utf-8"))
        title = str(meta.get("title") or "")
        body = body.split(REFERENCES_HEADING, 1)[0].strip()
        text = replace_citations(body, self.table)
        references = [rec.text for rec in self.table.records()]

        try:
            match out_format:
                case "docx":
                    _write_docx(title, text, references, output_path)
                case "pdf":
                    _write_pdf(title, text, references, output_path)
                case "md":
                    _write_md(title, text, references, output_path)
        except Exception as exc:
            raise RenderError(out_format, str(exc)) from exc

        logger.info("Rendered %s", output_path)
        return Path(output_path)


def split_template(text: str) -> tuple[dict, str]:
    """Split a Markdown document into its YAML header and body."""
    if not text.startswith("---\n"):
        return {}, text
    header, sep, body = text[4:].partition("\n---\n")
    if not sep:
        return {}, text
    return yaml.safe_load(header) or {}, body


def replace_citations(text: str, table: PackageTable) -> str:
    """'[@lme4; @mgcv]' → '(Bates et al. 2015; Wood 2017)'. Unknown keys are left alone."""
    by_key = {rec.key: rec for rec in table.records()}

    def _sub(match: re.Match) -> str:
        keys = [k.strip().lstrip("@") for k in match.group(1).split(";")]
        if not all(k in by_key for k in keys):
            return match.group(0)
        return "(" + "; ".join(author_date(by_key[k]) for k in keys) + ")"

    return _CITATION_RE.sub(_sub, text)


def author_date(record: CitationRecord) -> str:
    names = [a.name or a.family for a in record.authors]
    if len(names) == 1:
        who = names[0]
    elif len(names) == 2:
        who = f"{names[0]} and {names[1]}"
    else:
        who = f"{names[0]} et al."
    return f"{who} {record.year}"


def _write_docx(title: str, text: str, references: list[str], output_path: Path) -> None:
    doc = Document()

    title_para = doc.add_paragraph()
    run = title_para.add_run(title)
    run.bold = True
    run.font.size = Pt(14)

    doc.add_paragraph(text)

    heading = doc.add_paragraph()
    run = heading.add_run("References")
    run.bold = True
    run.font.size = Pt(12)
    for ref in references:
        para = doc.add_paragraph(ref)
        for r in para.runs:
            r.font.size = Pt(10)

    doc.save(str(output_path))


def _write_pdf(title: str, text: str, references: list[str], output_path: Path) -> None:
    pdf = FPDF()
    pdf.add_page()

    def _block(content: str, size: int, style: str = "", height: float = 6) -> None:
        pdf.set_font("Helvetica", style=style, size=size)
        # Core fonts are latin-1 only
        safe = content.encode("latin-1", "replace").decode("latin-1")
        pdf.multi_cell(w=0, h=height, text=safe, new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    _block(title, 14, "B", 8)
    pdf.ln(4)
    _block(text, 11)
    pdf.ln(4)
    _block("References", 12, "B", 8)
    for ref in references:
        _block(ref, 10, height=5)
        pdf.ln(2)

    pdf.output(str(output_path))


def _write_md(title: str, text: str, references: list[str], output_path: Path) -> None:
    lines = [f"# {title}", "", text, "", "## References", ""]
    lines.extend(f"- {ref}" for ref in references)
    Path(output_path).write_text("\n".join(lines) + "\n", encoding="utf-8")
