#!/usr/bin/env python3
"""Command-line runner for cite_packages."""

import argparse
import json
import logging
import sys
import time
from pathlib import Path

# Ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from pkgcite.cite import OUTPUT_MODES, CiteRequest, build_package_table, present_table
from pkgcite.citations.metadata import DistributionMetadataProvider
from pkgcite.core.config import default_config, load_cite_config
from pkgcite.core.errors import PkgciteError
from pkgcite.exporters import export_all
from pkgcite.exporters.renderers import BasicRenderer, PandocRenderer
from pkgcite.exporters.report import OUT_FORMATS, resolve_style
from pkgcite.exporters.table import export_table_csv, export_table_excel

logger = logging.getLogger("pkgcite")


# ── Runner ───────────────────────────────────────────────────────────


def run(args: argparse.Namespace) -> int:
    t_start = time.time()

    config = load_cite_config(args.config) if args.config else default_config()
    logger.info("Config hash: %s", config.config_hash()[:12])

    request = CiteRequest.validated(
        output=args.output,
        out_format=args.format,
        citation_style=args.style,
        pkgs=args.pkgs if args.pkgs else args.mode,
        cite_tidyverse=not args.no_groups,
        dependencies=args.dependencies,
        include_ide=args.include_ide,
        out_dir=Path(args.out_dir),
        bib_file=args.bib_file,
        template_file=args.template_file,
        out_name=args.out_name,
        dependency_options={"include_extras": args.include_extras},
    )
    style = None
    if request.output == "file" and not args.export_all:
        style = resolve_style(request.citation_style, request.out_dir)

    # One table serves the side exports and the requested output
    table = build_package_table(
        request,
        config,
        provider=DistributionMetadataProvider(runtime_name=config.runtime.name),
        project_root=args.project_root,
        max_workers=args.workers or config.max_workers,
    )

    if args.table_csv:
        export_table_csv(table, args.table_csv)
    if args.table_xlsx:
        export_table_excel(table, args.table_xlsx)
    if args.export_all:
        paths = export_all(table, args.export_all, bib_file=args.bib_file)
        for name, path in paths.items():
            logger.info("  %s: %s", name, path)
        return 0

    renderer = None
    if request.output == "file":
        renderer = BasicRenderer(table) if args.renderer == "basic" else PandocRenderer()

    result = present_table(table, request, config, style=style, renderer=renderer)

    if args.output == "file":
        logger.info("Bibliography: %s", result.bibliography)
        logger.info("Template:     %s", result.template)
        logger.info("Output:       %s", result.output)
    elif args.output == "paragraph":
        print(result)
    elif args.output == "table":
        print(json.dumps([row.model_dump() for row in result], indent=2, ensure_ascii=False))
    else:
        print("\n".join(result))

    logger.info("Done in %.1fs", time.time() - t_start)
    return 0


# ── CLI ──────────────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Cite the software packages used in a project")
    parser.add_argument("--output", choices=OUTPUT_MODES, default="file")
    parser.add_argument("--format", choices=OUT_FORMATS, default="html", help="Report format (file output)")
    parser.add_argument("--style", default=None, help="CSL citation style file")
    selection = parser.add_mutually_exclusive_group()
    selection.add_argument("--mode", choices=("All", "Session"), default="All")
    selection.add_argument("--pkgs", nargs="+", help="Explicit package names (name or name>=version)")
    parser.add_argument("--project-root", default=".", help="Project to scan when --mode All")
    parser.add_argument("--no-groups", action="store_true", help="Do not fold tidyverse-style groups")
    parser.add_argument("--dependencies", action="store_true", help="Also cite dependencies")
    parser.add_argument("--include-extras", action="store_true", help="Follow optional (extra) dependencies")
    parser.add_argument("--include-ide", action="store_true", help="Cite the IDE")
    parser.add_argument("--out-dir", default=".")
    parser.add_argument("--bib-file", default="pkgcite-refs.bib")
    parser.add_argument("--template-file", default="pkgcite-report.md")
    parser.add_argument("--out-name", default="pkgcite-citations")
    parser.add_argument("--renderer", choices=("pandoc", "basic"), default="pandoc")
    parser.add_argument("--config", default=None, help="Path to a pkgcite YAML config")
    parser.add_argument("--workers", type=int, default=None, help="Parallel metadata lookups")
    parser.add_argument("--table-csv", default=None, help="Write the package table as CSV")
    parser.add_argument("--table-xlsx", default=None, help="Write the package table as Excel")
    parser.add_argument(
        "--export-all",
        metavar="DIR",
        default=None,
        help="Write bibliography, CSV/Excel table and paragraph into DIR",
    )
    parser.add_argument("--verbose", action="store_true")
    return parser


def main():
    args = build_parser().parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        sys.exit(run(args))
    except PkgciteError as exc:
        logger.error("%s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
