"""Citation metadata from installed distributions: CITATION.cff, then core metadata."""

import logging
import platform
import re
from importlib import metadata
from typing import Protocol

import yaml

from pkgcite.citations.models import Author, RawCitationEntry

logger = logging.getLogger(__name__)

_CFF_TYPES = {
    "article": "article",
    "book": "book",
    "conference-paper": "inproceedings",
    "manual": "manual",
    "report": "techreport",
    "thesis": "phdthesis",
    "software": "misc",
}

_EMAIL_NAME_RE = re.compile(r'^\s*"?([^"<]+?)"?\s*<[^>]*>\s*$')


# ── Interface ────────────────────────────────────────────────────────


class MetadataProvider(Protocol):
    def citations_for(self, name: str) -> list[RawCitationEntry]: ...

    def installed_version(self, name: str) -> str | None: ...


# ── Installed Distributions ──────────────────────────────────────────


class DistributionMetadataProvider:
    """Reads citations for installed distributions via importlib.metadata."""

    def __init__(self, runtime_name: str = "Python"):
        self.runtime_name = runtime_name

    def installed_version(self, name: str) -> str | None:
        if name == self.runtime_name == "Python":
            return platform.python_version()
        try:
            return metadata.version(name)
        except metadata.PackageNotFoundError:
            return None

    def citations_for(self, name: str) -> list[RawCitationEntry]:
        """CITATION.cff entries if the distribution ships one, else core metadata."""
        try:
            dist = metadata.distribution(name)
        except metadata.PackageNotFoundError:
            logger.debug("%s is not installed; no citation metadata", name)
            return []

        for path in dist.files or []:
            if path.name.lower() == "citation.cff":
                logger.debug("Reading %s for %s", path, name)
                return parse_cff(path.read_text(encoding="utf-8"))

        entry = _entry_from_core_metadata(dist.metadata)
        return [entry] if entry else []


# ── CITATION.cff ─────────────────────────────────────────────────────


def parse_cff(text: str) -> list[RawCitationEntry]:
    """Preferred citation first (if any), then the software itself."""
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError("CITATION.cff must be a YAML mapping")

    entries = []
    preferred = data.get("preferred-citation")
    if isinstance(preferred, dict) and preferred.get("title"):
        entries.append(_cff_entry(preferred))
    if data.get("title"):
        entries.append(_cff_entry({**data, "type": "software"}))
    return entries


def _cff_entry(block: dict) -> RawCitationEntry:
    year = block.get("year")
    if year is None:
        released = block.get("date-released") or block.get("date-published")
        year = str(released)[:4] if released else None

    fields: dict[str, str] = {}
    for src, dst in (
        ("journal", "journal"),
        ("volume", "volume"),
        ("issue", "number"),
        ("publisher", "publisher"),
        ("doi", "doi"),
        ("url", "url"),
    ):
        value = block.get(src)
        if isinstance(value, dict):
            value = value.get("name")
        if value is not None:
            fields[dst] = str(value)
    if "url" not in fields and block.get("repository-code"):
        fields["url"] = str(block["repository-code"])
    if block.get("start"):
        pages = str(block["start"])
        if block.get("end"):
            pages += f"--{block['end']}"
        fields["pages"] = pages

    return RawCitationEntry(
        entry_type=_CFF_TYPES.get(block.get("type", "software"), "misc"),
        title=str(block["title"]),
        authors=[a for a in (_cff_author(p) for p in block.get("authors") or []) if a],
        year=str(year) if year is not None else None,
        fields=fields,
    )


def _cff_author(person: dict) -> Author | None:
    if not isinstance(person, dict):
        return None
    family = person.get("family-names")
    if family:
        particle = person.get("name-particle")
        if particle:
            family = f"{particle} {family}"
        return Author(family=str(family), given=person.get("given-names"))
    if person.get("name"):
        return Author(name=str(person["name"]))
    return None


# ── Core Metadata ────────────────────────────────────────────────────


def _entry_from_core_metadata(md) -> RawCitationEntry | None:
    name = md.get("Name")
    if not name:
        return None

    summary = (md.get("Summary") or "").strip()
    title = f"{name}: {summary}" if summary else name

    fields = {}
    url = md.get("Home-page") or _first_project_url(md)
    if url:
        fields["url"] = url

    return RawCitationEntry(
        entry_type="misc",
        title=title,
        authors=_core_authors(md),
        fields=fields,
    )


def _core_authors(md) -> list[Author]:
    """Authors from Author, Author-email, then Maintainer fields."""
    for key in ("Author", "Author-email", "Maintainer", "Maintainer-email"):
        raw = md.get(key)
        if not raw:
            continue
        names = []
        for part in re.split(r",|\band\b", raw):
            part = part.strip()
            email = _EMAIL_NAME_RE.match(part)
            if email:
                part = email.group(1).strip()
            if part and "@" not in part:
                names.append(Author.from_string(part))
        if names:
            return names
    return []


def _first_project_url(md) -> str | None:
    for value in md.get_all("Project-URL") or []:
        _, _, url = value.partition(",")
        if url.strip():
            return url.strip()
    return None
