"""cite_packages: the single entry point tying the citation pipeline together."""

import logging
from pathlib import Path
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pkgcite.citations.dedup import finalize
from pkgcite.citations.metadata import DistributionMetadataProvider, MetadataProvider
from pkgcite.citations.models import PackageTable
from pkgcite.citations.resolver import resolve_all
from pkgcite.core.config import CiteConfig, default_config
from pkgcite.core.errors import ConfigurationError
from pkgcite.exporters.bibtex import write_bibliography
from pkgcite.exporters.paragraph import write_citation_paragraph
from pkgcite.exporters.renderers import DocumentRenderer, PandocRenderer
from pkgcite.exporters.report import ReportFiles, create_report, resolve_style
from pkgcite.exporters.table import TableRow, build_table_rows
from pkgcite.packages.environment import DependencyGraph, DependencyScanner, SessionProvider
from pkgcite.packages.expander import expand

logger = logging.getLogger(__name__)

OUTPUT_MODES = ("file", "paragraph", "table", "citekeys")


# ── Request ──────────────────────────────────────────────────────────


class CiteRequest(BaseModel):
    """Validated arguments of one cite_packages call."""

    model_config = ConfigDict(extra="forbid")

    output: Literal["file", "paragraph", "table", "citekeys"] = "file"
    out_format: Literal["html", "docx", "pdf", "md", "template"] = "html"
    citation_style: Optional[str] = None
    pkgs: Union[Literal["All", "Session"], list[str]] = "All"
    cite_tidyverse: bool = True
    dependencies: bool = False
    include_ide: bool = False
    out_dir: Path = Field(default_factory=Path.cwd)
    bib_file: str = Field(default="pkgcite-refs.bib", min_length=1)
    template_file: str = Field(default="pkgcite-report.md", min_length=1)
    out_name: str = Field(default="pkgcite-citations", min_length=1)
    dependency_options: dict = Field(default_factory=dict)

    @classmethod
    def validated(cls, **kwargs) -> "CiteRequest":
        try:
            return cls(**kwargs)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid cite_packages arguments: {exc}") from exc


# ── Pipeline ─────────────────────────────────────────────────────────


def build_package_table(
    request: CiteRequest,
    config: CiteConfig,
    *,
    provider: MetadataProvider,
    scanner: DependencyScanner | None = None,
    session: SessionProvider | None = None,
    graph: DependencyGraph | None = None,
    project_root: str | Path | None = None,
    max_workers: int = 1,
) -> PackageTable:
    """Expand, resolve and deduplicate: the package table for one run."""
    requests = expand(
        request.pkgs,
        include_dependencies=request.dependencies,
        groups=config.active_groups() if request.cite_tidyverse else (),
        scanner=scanner,
        session=session,
        graph=graph,
        project_root=project_root,
        runtime=config.runtime.name if config.include_runtime else None,
        ide=config.ide.name if request.include_ide else None,
        graph_options=request.dependency_options,
    )
    citations, fallbacks = resolve_all(requests, provider, config, max_workers=max_workers)
    return finalize(citations, fallbacks)


def cite_packages(
    output: str = "file",
    out_format: str = "html",
    citation_style: str | None = None,
    pkgs: str | list[str] = "All",
    cite_tidyverse: bool = True,
    dependencies: bool = False,
    include_ide: bool = False,
    out_dir: str | Path | None = None,
    bib_file: str = "pkgcite-refs.bib",
    template_file: str = "pkgcite-report.md",
    out_name: str = "pkgcite-citations",
    *,
    config: CiteConfig | None = None,
    project_root: str | Path | None = None,
    scanner: DependencyScanner | None = None,
    session: SessionProvider | None = None,
    graph: DependencyGraph | None = None,
    provider: MetadataProvider | None = None,
    renderer: DocumentRenderer | None = None,
    max_workers: int | None = None,
    **dependency_options,
) -> Union[ReportFiles, str, list[TableRow], list[str]]:
    """Cite the packages used in a project.

    Always writes ``bib_file`` into ``out_dir``, then returns according to
    ``output``:

    - "file": renders a report (``out_format``: html, docx, pdf, md or
      template) and returns the written paths as ``ReportFiles``;
    - "paragraph": a paragraph with pandoc citation markers;
    - "table": one ``TableRow`` per package;
    - "citekeys": the flat list of citation keys.

    Citation keys are not stable across runs or package upgrades; keys
    typed into a document by hand may need updating.

    Extra keyword arguments are passed to the dependency graph.
    """
    args = dict(
        output=output,
        out_format=out_format,
        citation_style=citation_style,
        pkgs=pkgs,
        cite_tidyverse=cite_tidyverse,
        dependencies=dependencies,
        include_ide=include_ide,
        bib_file=bib_file,
        template_file=template_file,
        out_name=out_name,
        dependency_options=dependency_options,
    )
    if out_dir is not None:
        args["out_dir"] = out_dir

    config = config or default_config()
    request = CiteRequest.validated(**args)
    style = resolve_style(request.citation_style, request.out_dir) if request.output == "file" else None
    provider = provider or DistributionMetadataProvider(runtime_name=config.runtime.name)
    if max_workers is None:
        max_workers = config.max_workers

    logger.info(
        "Citing packages: output=%s, pkgs=%s, config=%s",
        request.output,
        request.pkgs if isinstance(request.pkgs, str) else f"{len(request.pkgs)} explicit",
        config.config_hash()[:12],
    )

    table = build_package_table(
        request,
        config,
        provider=provider,
        scanner=scanner,
        session=session,
        graph=graph,
        project_root=project_root,
        max_workers=max_workers,
    )
    return present_table(table, request, config, style=style, renderer=renderer)


def present_table(
    table: PackageTable,
    request: CiteRequest,
    config: CiteConfig,
    *,
    style: Path | None = None,
    renderer: DocumentRenderer | None = None,
) -> Union[ReportFiles, str, list[TableRow], list[str]]:
    """Write the bibliography for an already built table and produce ``request.output``."""
    bib_path = write_bibliography(table, request.out_dir / request.bib_file)

    match request.output:
        case "file":
            return create_report(
                table,
                bib_path=bib_path,
                out_dir=request.out_dir,
                template_file=request.template_file,
                out_name=request.out_name,
                out_format=request.out_format,
                title=config.report_title,
                renderer=renderer or PandocRenderer(),
                style=style,
            )
        case "paragraph":
            return write_citation_paragraph(table)
        case "table":
            return build_table_rows(table)
        case "citekeys":
            return list(table.citekeys)
