"""Shared fakes: injected scanner, session, dependency graph and metadata provider."""

from pathlib import Path

import pytest

from pkgcite.citations.models import Author, RawCitationEntry


class FakeScanner:
    def __init__(self, names):
        self.names = list(names)
        self.roots: list[Path] = []

    def scan(self, project_root):
        self.roots.append(Path(project_root))
        return list(self.names)


class FakeSession:
    def __init__(self, names):
        self.names = list(names)

    def loaded_packages(self):
        return list(self.names)


class FakeGraph:
    """Dependency lookups from a plain dict; names in ``failing`` raise."""

    def __init__(self, edges, failing=()):
        self.edges = edges
        self.failing = set(failing)
        self.calls: list[tuple[str, dict]] = []

    def dependencies_of(self, name, **options):
        self.calls.append((name, options))
        if name in self.failing:
            raise RuntimeError(f"metadata for {name} is broken")
        return set(self.edges.get(name, ()))


class FakeProvider:
    """Citations and versions from dicts; names in ``failing`` raise on lookup."""

    def __init__(self, entries=None, versions=None, failing=()):
        self.entries = entries or {}
        self.versions = versions or {}
        self.failing = set(failing)
        self.lookups: list[str] = []

    def citations_for(self, name):
        self.lookups.append(name)
        if name in self.failing:
            raise ConnectionError(f"lookup for {name} failed")
        return list(self.entries.get(name, []))

    def installed_version(self, name):
        return self.versions.get(name)


def article(title, *authors, year="2020", **fields):
    return RawCitationEntry(
        entry_type="article",
        title=title,
        authors=[Author.from_string(a) for a in authors],
        year=year,
        fields=fields,
    )


LME4 = article(
    "Fitting Linear Mixed-Effects Models Using lme4",
    "Bates, Douglas", "Mächler, Martin", "Bolker, Ben", "Walker, Steve",
    year="2015", journal="Journal of Statistical Software", volume="67", number="1",
    doi="10.18637/jss.v067.i01",
)
MGCV_BOOK = RawCitationEntry(
    entry_type="book",
    title="Generalized Additive Models: An Introduction with R",
    authors=[Author(family="Wood", given="S. N.")],
    year="2017",
    fields={"publisher": "Chapman and Hall/CRC"},
)
MGCV_PAPER = article(
    "Fast stable restricted maximum likelihood and marginal likelihood estimation",
    "Wood, S. N.", year="2011", journal="Journal of the Royal Statistical Society (B)",
)


@pytest.fixture()
def provider():
    return FakeProvider(
        entries={"lme4": [LME4], "mgcv": [MGCV_BOOK, MGCV_PAPER]},
        versions={"Python": "3.12.1", "lme4": "1.1.35", "mgcv": "1.9.1"},
    )
