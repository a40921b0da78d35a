"""Cite config: YAML parser, Pydantic models, and config hashing."""

import hashlib
import json
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from pkgcite.citations.models import RawCitationEntry
from pkgcite.core.errors import ConfigurationError
from pkgcite.core.known_citations import KNOWN_GROUPS, KNOWN_IDES, KNOWN_RUNTIMES


# ── Runtime & IDE ────────────────────────────────────────────────────


class RuntimeSpec(BaseModel):
    """The language runtime cited ahead of every package."""

    name: str = Field(default="Python", min_length=1)
    ecosystem: str = Field(
        default="Python", description="Label used in notes, e.g. 'Python package version 1.0'"
    )
    citation: Optional[RawCitationEntry] = None

    def resolved_citation(self) -> Optional[RawCitationEntry]:
        return self.citation or KNOWN_RUNTIMES.get(self.name)


class IdeSpec(BaseModel):
    """Development environment cited when IDE citation is requested."""

    name: str = Field(default="JupyterLab", min_length=1)
    distribution: Optional[str] = Field(
        default="jupyterlab", description="Distribution queried for the IDE version"
    )
    citation: Optional[RawCitationEntry] = None

    def resolved_citation(self) -> Optional[RawCitationEntry]:
        return self.citation or KNOWN_IDES.get(self.name)


# ── Citation Groups ──────────────────────────────────────────────────


class CitationGroup(BaseModel):
    """A set of packages cited as one umbrella package."""

    name: str = Field(min_length=1)
    members: list[str] = Field(min_length=1)
    citation: Optional[RawCitationEntry] = None

    def resolved_citation(self) -> Optional[RawCitationEntry]:
        if self.citation:
            return self.citation
        known = KNOWN_GROUPS.get(self.name)
        return known[1] if known else None


def default_groups() -> list[CitationGroup]:
    return [
        CitationGroup(name=name, members=list(members), citation=citation)
        for name, (members, citation) in KNOWN_GROUPS.items()
    ]


# ── Cite Config (top-level) ──────────────────────────────────────────


class CiteConfig(BaseModel):
    """Top-level configuration for a citation run."""

    runtime: RuntimeSpec = Field(default_factory=RuntimeSpec)
    include_runtime: bool = True
    ide: IdeSpec = Field(default_factory=IdeSpec)
    groups: list[CitationGroup] = Field(default_factory=list)
    use_default_groups: bool = True
    report_title: str = "Software citations"
    max_workers: int = Field(default=1, ge=1)

    @field_validator("groups")
    @classmethod
    def unique_group_names(cls, v: list[CitationGroup]) -> list[CitationGroup]:
        names = [g.name for g in v]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"Duplicate citation group names: {', '.join(dupes)}")
        return v

    def active_groups(self) -> list[CitationGroup]:
        """Configured groups, plus built-in groups they do not override."""
        groups = list(self.groups)
        if self.use_default_groups:
            configured = {g.name for g in groups}
            groups.extend(g for g in default_groups() if g.name not in configured)
        return groups

    def group(self, name: str) -> Optional[CitationGroup]:
        return next((g for g in self.active_groups() if g.name == name), None)

    # ── Config hashing ───────────────────────────────────────────

    def config_hash(self) -> str:
        """SHA-256 of the full configuration (canonical JSON)."""
        return _canonical_hash(self.model_dump())


# ── Helpers ──────────────────────────────────────────────────────────


def _canonical_hash(data: dict) -> str:
    """Deterministic SHA-256 hash of a dict via sorted-key JSON."""
    blob = json.dumps(data, sort_keys=True, default=str).encode()
    return hashlib.sha256(blob).hexdigest()


def default_config() -> CiteConfig:
    return CiteConfig()


def load_cite_config(path: str | Path) -> CiteConfig:
    """Load a YAML cite config from disk and return a validated model."""
    path = Path(path)
    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigurationError(f"Cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Malformed YAML in config file {path}: {exc}") from exc

    try:
        return CiteConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid config file {path}: {exc}") from exc
