"""Export convenience function."""

import logging
from pathlib import Path

from pkgcite.citations.models import PackageTable
from pkgcite.exporters.bibtex import write_bibliography
from pkgcite.exporters.paragraph import export_paragraph_md
from pkgcite.exporters.table import export_table_csv, export_table_excel

logger = logging.getLogger(__name__)


def export_all(
    table: PackageTable,
    output_dir: str | Path,
    bib_file: str = "pkgcite-refs.bib",
) -> dict:
    """Run all file exports and return dict of file paths created."""
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    paths = {}

    bib_path = out / bib_file
    write_bibliography(table, bib_path)
    paths["bibliography"] = str(bib_path)

    csv_path = str(out / "package_table.csv")
    export_table_csv(table, csv_path)
    paths["table_csv"] = csv_path

    xlsx_path = str(out / "package_table.xlsx")
    export_table_excel(table, xlsx_path)
    paths["table_xlsx"] = xlsx_path

    paragraph_path = str(out / "citation_paragraph.md")
    export_paragraph_md(table, paragraph_path)
    paths["paragraph_md"] = paragraph_path

    logger.info("All exports written to %s", output_dir)
    return paths
