"""Package citation table: rows, CSV and Excel."""

import csv
import logging
from pathlib import Path

import openpyxl
from pydantic import BaseModel

from pkgcite.citations.models import PackageTable

logger = logging.getLogger(__name__)

HEADERS = ["Package", "Version", "Citation keys", "Citation"]


class TableRow(BaseModel):
    """One row per package (not per record)."""

    package: str
    version: str
    citekeys: str
    citation: str

    def as_list(self) -> list[str]:
        return [self.package, self.version, self.citekeys, self.citation]


# ── Rows ─────────────────────────────────────────────────────────────


def build_table_rows(table: PackageTable) -> list[TableRow]:
    return [
        TableRow(
            package=pkg.name,
            version=pkg.version,
            citekeys=", ".join(f"@{k}" for k in pkg.citekeys),
            citation=" ".join(rec.text for rec in pkg.records),
        )
        for pkg in table.packages
    ]


# ── CSV Export ───────────────────────────────────────────────────────


def export_table_csv(table: PackageTable, output_path: str | Path) -> None:
    """Export the package table as CSV."""
    rows = build_table_rows(table)

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(HEADERS)
        writer.writerows(r.as_list() for r in rows)

    logger.info("Package table CSV exported to %s (%d rows)", output_path, len(rows))


# ── Excel Export ─────────────────────────────────────────────────────


def export_table_excel(table: PackageTable, output_path: str | Path) -> None:
    """Export the package table as Excel with 2 sheets: Packages and References."""
    wb = openpyxl.Workbook()

    # Sheet 1: one row per package
    ws1 = wb.active
    ws1.title = "Packages"
    ws1.append(HEADERS)
    for row in build_table_rows(table):
        ws1.append(row.as_list())
    _style_header(ws1)

    # Sheet 2: one row per distinct bibliography entry
    ws2 = wb.create_sheet("References")
    ws2.append(["Key", "Type", "Title", "Year", "Note", "Citation"])
    for rec in table.records():
        ws2.append([rec.key, rec.entry_type, rec.title, rec.year, rec.note, rec.text])
    _style_header(ws2)

    wb.save(output_path)
    logger.info("Package table Excel exported to %s", output_path)


def _style_header(ws) -> None:
    """Bold the header row."""
    from openpyxl.styles import Font
    for cell in ws[1]:
        cell.font = Font(bold=True)
