"""Resolve each requested package into a PackageCitation."""

import logging
import warnings
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

from packaging.version import InvalidVersion, Version

from pkgcite.citations.metadata import MetadataProvider
from pkgcite.citations.models import (
    UNKNOWN_VERSION,
    UNKNOWN_YEAR,
    Author,
    CitationRecord,
    PackageCitation,
    RawCitationEntry,
    format_citation_text,
)
from pkgcite.core.config import CiteConfig
from pkgcite.core.errors import ResolutionWarning
from pkgcite.core.known_citations import KNOWN_IDES, KNOWN_RUNTIMES
from pkgcite.packages.models import PackageRequest

logger = logging.getLogger(__name__)


# ── Public API ───────────────────────────────────────────────────────


def resolve(
    request: PackageRequest,
    provider: MetadataProvider,
    config: CiteConfig,
) -> PackageCitation:
    """Resolve one package. Never returns zero records.

    Runtime, IDE and group entries use hand-authored citations. Anything
    the provider cannot supply (no entries, or an error) degrades to a
    minimal record and sets ``fallback``.
    """
    version = _installed_version(request, provider, config)
    note = _note(request, version, config)

    entries: list[RawCitationEntry] = []
    fallback = False

    known = _known_citation(request, config)
    if known is not None:
        entries = [known]
    else:
        try:
            entries = list(provider.citations_for(request.name))
        except Exception as exc:
            logger.warning("Citation lookup failed for %s: %s", request.name, exc)
            entries = []

    if not entries:
        fallback = True
        entries = [_minimal_entry(request.name)]

    _check_min_version(request, version)

    return PackageCitation(
        name=request.name,
        version=version,
        kind=request.kind,
        group=request.name if request.kind == "group" else None,
        members=list(request.members),
        records=[_to_record(e, request.name, note) for e in entries],
        fallback=fallback,
    )


def resolve_all(
    requests: Sequence[PackageRequest],
    provider: MetadataProvider,
    config: CiteConfig,
    max_workers: int = 1,
) -> tuple[list[PackageCitation], list[str]]:
    """Resolve every request, keeping discovery order.

    Returns (citations, names of packages that fell back to minimal records).
    """
    if max_workers > 1 and len(requests) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            # map() yields results in submission order
            citations = list(executor.map(lambda r: resolve(r, provider, config), requests))
    else:
        citations = [resolve(r, provider, config) for r in requests]

    fallbacks = [c.name for c in citations if c.fallback]
    if fallbacks:
        message = (
            f"No citation metadata for {len(fallbacks)} package(s), "
            f"using minimal records: {', '.join(fallbacks)}"
        )
        logger.warning(message)
        warnings.warn(message, ResolutionWarning, stacklevel=2)

    logger.info(
        "Resolved %d packages → %d records (%d fallbacks)",
        len(citations),
        sum(len(c.records) for c in citations),
        len(fallbacks),
    )
    return citations, fallbacks


# ── Special Cases ────────────────────────────────────────────────────


def _known_citation(request: PackageRequest, config: CiteConfig) -> RawCitationEntry | None:
    if request.kind == "runtime":
        if request.name == config.runtime.name:
            return config.runtime.resolved_citation()
        return KNOWN_RUNTIMES.get(request.name)
    if request.kind == "ide":
        if request.name == config.ide.name:
            return config.ide.resolved_citation()
        return KNOWN_IDES.get(request.name)
    if request.kind == "group":
        group = config.group(request.name)
        return group.resolved_citation() if group else None
    return None


def _installed_version(
    request: PackageRequest, provider: MetadataProvider, config: CiteConfig
) -> str:
    lookup = request.name
    if request.kind == "ide" and request.name == config.ide.name and config.ide.distribution:
        lookup = config.ide.distribution
    try:
        version = provider.installed_version(lookup)
    except Exception as exc:
        logger.warning("Version lookup failed for %s: %s", lookup, exc)
        version = None
    return version or UNKNOWN_VERSION


def _note(request: PackageRequest, version: str, config: CiteConfig) -> str:
    if request.kind in ("runtime", "ide"):
        label = request.name
    else:
        label = f"{config.runtime.ecosystem} package"
    if version == UNKNOWN_VERSION:
        return f"{label}, {UNKNOWN_VERSION}"
    return f"{label} version {version}"


# ── Records ──────────────────────────────────────────────────────────


def _minimal_entry(name: str) -> RawCitationEntry:
    return RawCitationEntry(title=name)


def _to_record(entry: RawCitationEntry, package: str, note: str) -> CitationRecord:
    authors = entry.authors or [Author(name=f"{package} contributors")]
    year = entry.year or UNKNOWN_YEAR
    return CitationRecord(
        entry_type=entry.entry_type,
        title=entry.title,
        authors=authors,
        year=year,
        note=note,
        fields=dict(entry.fields),
        text=format_citation_text(authors, year, entry.title, entry.fields, note),
    )


def _check_min_version(request: PackageRequest, version: str) -> None:
    if not request.min_version or version == UNKNOWN_VERSION:
        return
    try:
        too_old = Version(version) < Version(request.min_version)
    except InvalidVersion as exc:
        logger.debug("Cannot compare %s versions: %s", request.name, exc)
        return
    if too_old:
        logger.warning(
            "%s %s is older than the requested minimum %s",
            request.name, version, request.min_version,
        )
