"""BibTeX bibliography export."""

import logging
import os
import re
import stat
import tempfile
from pathlib import Path

from pkgcite.citations.models import Author, CitationRecord, PackageTable
from pkgcite.core.errors import SerializationError

logger = logging.getLogger(__name__)

_LATEX_SPECIALS = {
    "\\": r"\textbackslash{}",
    "&": r"\&",
    "%": r"\%",
    "$": r"\$",
    "#": r"\#",
    "_": r"\_",
    "{": r"\{",
    "}": r"\}",
    "~": r"\textasciitilde{}",
    "^": r"\textasciicircum{}",
}
_VERBATIM_FIELDS = {"url", "doi"}
_CORE_FIELDS = ("title", "author", "year", "note")
_NAME_RE = re.compile(r"[^a-z0-9]+")


# ── Rendering ────────────────────────────────────────────────────────


def render_bibtex(table: PackageTable) -> str:
    """All distinct records of the table as BibTeX, in citekey order."""
    return "\n".join(render_entry(rec) for rec in table.records())


def render_entry(record: CitationRecord) -> str:
    entry_type = _NAME_RE.sub("", record.entry_type.lower()) or "misc"
    lines = [
        f"  title = {{{escape_bibtex(record.title)}}},",
        f"  author = {{{' and '.join(_bibtex_name(a) for a in record.authors)}}},",
        f"  year = {{{escape_bibtex(record.year)}}},",
        f"  note = {{{escape_bibtex(record.note)}}},",
    ]
    for name, value in record.fields.items():
        field = _NAME_RE.sub("", name.lower())
        if not field or field in _CORE_FIELDS:
            continue
        if field in _VERBATIM_FIELDS:
            value = value.replace("{", "").replace("}", "")
        else:
            value = escape_bibtex(value)
        lines.append(f"  {field} = {{{value}}},")

    return f"@{entry_type}{{{record.key},\n" + "\n".join(lines) + "\n}\n"


def escape_bibtex(value: str) -> str:
    """Escape LaTeX special characters so a value can sit inside braces."""
    return "".join(_LATEX_SPECIALS.get(ch, ch) for ch in value)


def _bibtex_name(author: Author) -> str:
    if author.name:
        # Braces keep an entity name from being split into given/family parts
        return "{" + escape_bibtex(author.name) + "}"
    if author.given:
        return f"{escape_bibtex(author.family)}, {escape_bibtex(author.given)}"
    return escape_bibtex(author.family)


# ── File Export ──────────────────────────────────────────────────────


def write_bibliography(table: PackageTable, path: str | Path) -> Path:
    """Write the bibliography atomically: temp file in the target dir, then replace."""
    path = Path(path)
    content = render_bibtex(table)
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp_name = tmp.name
            tmp.write(content)
        os.chmod(tmp_name, _target_mode(path))
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name:
            Path(tmp_name).unlink(missing_ok=True)
        raise SerializationError(f"Could not write bibliography {path}: {exc}") from exc

    logger.info("Bibliography exported to %s (%d entries)", path, len(table.citekeys))
    return path


def _target_mode(path: Path) -> int:
    """Keep an existing file's permissions, else the umask default for a new file."""
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask
