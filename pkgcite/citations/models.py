"""Shared data models for citation resolution and deduplication."""

import hashlib
import re
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

UNKNOWN_VERSION = "unknown version"
UNKNOWN_YEAR = "n.d."


# ── Authors ──────────────────────────────────────────────────────────


class Author(BaseModel):
    """A person (family/given) or a literal entity name such as "R Core Team"."""

    model_config = ConfigDict(frozen=True)

    family: Optional[str] = None
    given: Optional[str] = None
    name: Optional[str] = None

    @model_validator(mode="after")
    def has_a_name(self) -> "Author":
        if not (self.family or self.name):
            raise ValueError("Author needs a family name or a literal name")
        return self

    @classmethod
    def from_string(cls, raw: str) -> "Author":
        """Parse "Family, Given" or "Given Family"; single tokens become literals."""
        raw = raw.strip()
        if "," in raw:
            family, given = raw.split(",", 1)
            return cls(family=family.strip(), given=given.strip() or None)
        parts = raw.split()
        if len(parts) < 2:
            return cls(name=raw)
        return cls(family=parts[-1], given=" ".join(parts[:-1]))

    @property
    def display(self) -> str:
        """Short form used in formatted text: "Bates D"."""
        if self.name:
            return self.name
        if not self.given:
            return self.family
        initials = "".join(part[0] for part in re.split(r"[\s.-]+", self.given) if part)
        return f"{self.family} {initials}"

    @property
    def full(self) -> str:
        if self.name:
            return self.name
        return f"{self.given} {self.family}" if self.given else self.family


# ── Raw Provider Output ──────────────────────────────────────────────


class RawCitationEntry(BaseModel):
    """One bibliographic entry as returned by a metadata provider."""

    entry_type: str = "misc"
    title: str
    authors: list[Author] = Field(default_factory=list)
    year: Optional[str] = None
    fields: dict[str, str] = Field(default_factory=dict)


# ── Citation Record ──────────────────────────────────────────────────


class CitationRecord(BaseModel):
    """A single bibliography entry. Only ``key`` is attached after creation."""

    model_config = ConfigDict(frozen=True)

    key: Optional[str] = None
    entry_type: str = "misc"
    title: str
    authors: list[Author]
    year: str = UNKNOWN_YEAR
    note: str
    fields: dict[str, str] = Field(default_factory=dict)
    text: str = ""

    @property
    def fingerprint(self) -> str:
        return content_fingerprint(self.title, self.authors, self.year)

    def with_key(self, key: str) -> "CitationRecord":
        return self.model_copy(update={"key": key})


# ── Package Citations ────────────────────────────────────────────────


class PackageCitation(BaseModel):
    """One package identity and its ordered citation records."""

    name: str
    version: str = UNKNOWN_VERSION
    kind: Literal["package", "runtime", "group", "ide"] = "package"
    group: Optional[str] = None
    members: list[str] = Field(default_factory=list)
    records: list[CitationRecord] = Field(default_factory=list)
    fallback: bool = False

    @property
    def citekeys(self) -> list[str]:
        return [r.key for r in self.records if r.key]


class PackageTable(BaseModel):
    """Final ordered package citations plus the flat unique citekey sequence."""

    packages: list[PackageCitation]
    citekeys: list[str]
    fallbacks: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def keys_are_consistent(self) -> "PackageTable":
        if len(set(self.citekeys)) != len(self.citekeys):
            raise ValueError("Citation keys must be unique")
        referenced = {k for pkg in self.packages for k in pkg.citekeys}
        if referenced != set(self.citekeys):
            raise ValueError(
                "Citation keys do not match package records: "
                f"{sorted(referenced ^ set(self.citekeys))}"
            )
        return self

    @property
    def runtime(self) -> Optional[PackageCitation]:
        return next((p for p in self.packages if p.kind == "runtime"), None)

    def records(self) -> list[CitationRecord]:
        """Distinct records, in citekey order."""
        by_key: dict[str, CitationRecord] = {}
        for pkg in self.packages:
            for rec in pkg.records:
                by_key.setdefault(rec.key, rec)
        return [by_key[k] for k in self.citekeys]


# ── Helpers ──────────────────────────────────────────────────────────


_PUNCT_RE = re.compile(r"[^\w\s]", re.UNICODE)
_SPACE_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Lowercase, strip punctuation, collapse whitespace."""
    t = text.lower()
    t = _PUNCT_RE.sub("", t)
    t = _SPACE_RE.sub(" ", t).strip()
    return t


def content_fingerprint(title: str, authors: list[Author], year: str) -> str:
    """SHA-256 over normalized title, authors and year."""
    author_text = " ".join(a.full for a in authors)
    blob = "\x1f".join(
        [normalize_text(title), normalize_text(author_text), normalize_text(year or "")]
    )
    return hashlib.sha256(blob.encode()).hexdigest()


def format_author_list(authors: list[Author]) -> str:
    return ", ".join(a.display for a in authors)


def format_citation_text(
    authors: list[Author],
    year: str,
    title: str,
    fields: dict[str, str],
    note: str,
) -> str:
    """Plain-text rendering: 'Bates D, Maechler M (2015). Title. Journal, 67(1). note.'"""
    parts = [f"{format_author_list(authors)} ({year}). {title.rstrip('.')}."]

    container = fields.get("journal") or fields.get("booktitle") or fields.get("publisher")
    if container:
        detail = container
        if fields.get("volume"):
            detail += f", {fields['volume']}"
            if fields.get("number"):
                detail += f"({fields['number']})"
        if fields.get("pages"):
            detail += f", {fields['pages']}"
        parts.append(f"{detail}.")

    if fields.get("doi"):
        parts.append(f"doi:{fields['doi']}.")
    elif fields.get("url"):
        parts.append(f"{fields['url']}.")

    if note:
        parts.append(f"{note}.")
    return " ".join(parts)
