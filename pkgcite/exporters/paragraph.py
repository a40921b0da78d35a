"""Citation paragraph with inline pandoc citation markers."""

import logging
from pathlib import Path
from typing import Sequence

from pkgcite.citations.models import UNKNOWN_VERSION, PackageCitation, PackageTable
from pkgcite.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


def write_citation_paragraph(table: PackageTable) -> str:
    """One paragraph citing the runtime, every package and any IDE.

    "We used Python v. 3.12.1 [@Python] and the following packages:
    lme4 v. 1.1.35 [@lme4], and mgcv v. 1.9.1 [@mgcv; @mgcv2]."
    """
    runtime = table.runtime
    packages = [p for p in table.packages if p.kind in ("package", "group")]
    ides = [p for p in table.packages if p.kind == "ide"]

    listed = combine_words([mention(p) for p in packages])
    sentences = []
    if runtime and packages:
        sentences.append(f"We used {mention(runtime)} and the following packages: {listed}.")
    elif runtime:
        sentences.append(f"We used {mention(runtime)}.")
    elif packages:
        sentences.append(f"We used the following packages: {listed}.")

    for ide in ides:
        sentences.append(f"Analyses were conducted in {mention(ide)}.")

    return " ".join(sentences)


def mention(pkg: PackageCitation) -> str:
    """'lme4 v. 1.1.35 [@lme4]'"""
    if pkg.version == UNKNOWN_VERSION:
        text = f"{pkg.name} ({UNKNOWN_VERSION})"
    else:
        text = f"{pkg.name} v. {pkg.version}"
    if pkg.citekeys:
        text += " [" + "; ".join(f"@{k}" for k in pkg.citekeys) + "]"
    return text


def combine_words(words: Sequence[str]) -> str:
    """'a', 'a and b', 'a, b, and c'."""
    if len(words) <= 2:
        return " and ".join(words)
    return ", ".join(words[:-1]) + f", and {words[-1]}"


def export_paragraph_md(table: PackageTable, output_path: str | Path) -> None:
    """Write the citation paragraph to a Markdown file."""
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(write_citation_paragraph(table))
        f.write("\n")
    logger.info("Citation paragraph exported to %s", output_path)


# ── nocite ───────────────────────────────────────────────────────────


def nocite_references(citekeys: Sequence[str], fmt: str = "markdown") -> str:
    """List references without citing them in the text.

    ``markdown`` gives a YAML metadata block for pandoc; ``latex`` gives a
    ``\\nocite`` command.
    """
    if fmt == "markdown":
        keys = ", ".join(f"@{k}" for k in citekeys)
        return f"---\nnocite: |\n  {keys}\n---\n"
    if fmt == "latex":
        return "\\nocite{" + ", ".join(citekeys) + "}\n"
    raise ConfigurationError(f"Unknown nocite format {fmt!r}: use 'markdown' or 'latex'")
