"""Citation report: Markdown template with YAML header, rendered to a document."""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel

from pkgcite.citations.models import PackageTable
from pkgcite.core.errors import ConfigurationError, SerializationError
from pkgcite.exporters.paragraph import write_citation_paragraph
from pkgcite.exporters.renderers import REFERENCES_HEADING, DocumentRenderer

logger = logging.getLogger(__name__)

OUT_FORMATS = ("html", "docx", "pdf", "md", "template")
EXTENSIONS = {"html": ".html", "docx": ".docx", "pdf": ".pdf", "md": ".md"}


class ReportFiles(BaseModel):
    """Files written in file mode."""

    bibliography: Path
    template: Path
    output: Path


# ── Template ─────────────────────────────────────────────────────────


def build_template(
    table: PackageTable,
    bibliography: str,
    title: str,
    style: Optional[str] = None,
) -> str:
    """Markdown document: YAML header, citation paragraph, references heading."""
    meta = {"title": title, "bibliography": bibliography}
    if style:
        meta["csl"] = style
    header = yaml.safe_dump(meta, sort_keys=False, allow_unicode=True)
    paragraph = write_citation_paragraph(table)
    return f"---\n{header}---\n\n{paragraph}\n\n{REFERENCES_HEADING}\n"


def resolve_style(style: str | Path | None, out_dir: Path) -> Path | None:
    """Locate a CSL style file, as given or inside ``out_dir``; '.csl' is optional."""
    if style is None:
        return None
    style = Path(style)
    if not style.suffix:
        style = style.with_suffix(".csl")

    candidates = [style] if style.is_absolute() else [style, Path(out_dir) / style]
    for candidate in candidates:
        if candidate.is_file():
            return candidate.resolve()
    raise ConfigurationError(f"Citation style file not found: {style}")


# ── Report ───────────────────────────────────────────────────────────


def create_report(
    table: PackageTable,
    *,
    bib_path: Path,
    out_dir: Path,
    template_file: str,
    out_name: str,
    out_format: str,
    title: str,
    renderer: DocumentRenderer,
    style: Path | None = None,
) -> ReportFiles:
    """Write the template next to the bibliography, then render it.

    With ``out_format="template"`` the editable template is the output.
    """
    if out_format not in OUT_FORMATS:
        raise ConfigurationError(
            f"Unknown output format {out_format!r}: use one of {', '.join(OUT_FORMATS)}"
        )

    out_dir = Path(out_dir)
    template_path = out_dir / template_file
    bib_ref = os.path.relpath(Path(bib_path).resolve(), out_dir.resolve())
    style_ref = os.path.relpath(style, out_dir.resolve()) if style else None

    content = build_template(table, bib_ref, title, style_ref)
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
        template_path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise SerializationError(f"Could not write report template {template_path}: {exc}") from exc
    logger.info("Report template written to %s", template_path)

    if out_format == "template":
        return ReportFiles(bibliography=bib_path, template=template_path, output=template_path)

    output_path = out_dir / f"{out_name}{EXTENSIONS[out_format]}"
    rendered = renderer.render(template_path, out_format, style, output_path)
    return ReportFiles(bibliography=bib_path, template=template_path, output=rendered)
