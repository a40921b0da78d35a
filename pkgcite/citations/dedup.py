"""Merge duplicate citation records across packages and assign citation keys."""

import logging
import re
from typing import Sequence

from pkgcite.citations.models import CitationRecord, PackageCitation, PackageTable

logger = logging.getLogger(__name__)

_KEY_UNSAFE_RE = re.compile(r"[^A-Za-z0-9_.:-]+")


# ── Public API ───────────────────────────────────────────────────────


def finalize(
    citations: Sequence[PackageCitation],
    fallbacks: Sequence[str] = (),
) -> PackageTable:
    """Deduplicate records by content fingerprint and key the survivors.

    Packages are walked in order and records in priority order. The first
    package to produce a fingerprint owns the record and its key; later
    packages with the same content share that record.
    """
    by_fingerprint: dict[str, CitationRecord] = {}
    used_keys: set[str] = set()
    citekeys: list[str] = []
    packages: list[PackageCitation] = []
    raw_total = 0
    shared = 0

    for pkg in citations:
        records: list[CitationRecord] = []
        for rec in pkg.records:
            raw_total += 1
            fp = rec.fingerprint
            keyed = by_fingerprint.get(fp)
            if keyed is None:
                keyed = rec.with_key(_next_key(pkg.name, used_keys))
                by_fingerprint[fp] = keyed
                used_keys.add(keyed.key)
                citekeys.append(keyed.key)
            else:
                shared += 1
            if all(r.key != keyed.key for r in records):
                records.append(keyed)
        packages.append(pkg.model_copy(update={"records": records}))

    logger.info(
        "Deduplication: %d packages, %d raw records → %d distinct (%d merged)",
        len(packages), raw_total, len(citekeys), shared,
    )

    return PackageTable(packages=packages, citekeys=citekeys, fallbacks=list(fallbacks))


# ── Keys ─────────────────────────────────────────────────────────────


def slugify(name: str) -> str:
    """Characters safe in a BibTeX key; never empty."""
    return _KEY_UNSAFE_RE.sub("", name) or "pkg"


def _next_key(package: str, used: set[str]) -> str:
    """slug, then slug2, slug3, ... until unused in this run."""
    base = slugify(package)
    key = base
    n = 2
    while key in used:
        key = f"{base}{n}"
        n += 1
    return key
