"""Expand a package selection into the ordered list of packages to cite."""

import inspect
import logging
from collections import deque
from pathlib import Path
from typing import Sequence

from pkgcite.core.config import CitationGroup
from pkgcite.core.errors import ConfigurationError
from pkgcite.packages.environment import (
    DependencyGraph,
    DependencyScanner,
    DistributionGraph,
    ImportScanner,
    SessionPackages,
    SessionProvider,
)
from pkgcite.packages.models import PackageRequest

logger = logging.getLogger(__name__)

# ── Public API ───────────────────────────────────────────────────────


def expand(
    requested: str | Sequence[str],
    *,
    include_dependencies: bool = False,
    groups: Sequence[CitationGroup] = (),
    scanner: DependencyScanner | None = None,
    session: SessionProvider | None = None,
    graph: DependencyGraph | None = None,
    project_root: str | Path | None = None,
    runtime: str | None = "Python",
    ide: str | None = None,
    graph_options: dict | None = None,
) -> list[PackageRequest]:
    """Build the ordered package list for one run.

    ``requested`` is "All" (scan ``project_root``), "Session" (loaded
    packages) or an explicit list of names. The runtime entry comes first,
    then the IDE entry if requested, then packages in discovery order.
    """
    requests = _select(requested, scanner, session, project_root)
    logger.info("Selected %d packages (%s)", len(requests), _describe(requested))

    head: list[PackageRequest] = []
    if runtime:
        head.append(PackageRequest(name=runtime, kind="runtime"))
    if ide:
        head.append(PackageRequest(name=ide, kind="ide"))
    reserved = {h.name for h in head}
    requests = [r for r in requests if r.name not in reserved]

    if include_dependencies:
        requests = add_dependencies(requests, graph or DistributionGraph(), graph_options or {})
        requests = [r for r in requests if r.name not in reserved]

    if groups:
        requests = fold_groups(requests, groups)

    return head + requests


# ── Selection ────────────────────────────────────────────────────────


def _select(
    requested: str | Sequence[str],
    scanner: DependencyScanner | None,
    session: SessionProvider | None,
    project_root: str | Path | None,
) -> list[PackageRequest]:
    match requested:
        case "All":
            root = Path(project_root) if project_root is not None else Path.cwd()
            names = (scanner or ImportScanner()).scan(root)
            requests = [PackageRequest(name=n) for n in names]
        case "Session":
            names = (session or SessionPackages()).loaded_packages()
            requests = [PackageRequest(name=n) for n in names]
        case str():
            raise ConfigurationError(
                f"Unknown package selection {requested!r}: use 'All', 'Session' "
                "or a list of package names"
            )
        case list() | tuple():
            requests = [_parse_request(spec) for spec in requested]
        case _:
            raise ConfigurationError(
                f"Package selection must be 'All', 'Session' or a list of names, "
                f"not {type(requested).__name__}"
            )
    return _unique(requests)


def _parse_request(spec) -> PackageRequest:
    if not isinstance(spec, str):
        raise ConfigurationError(f"Package names must be strings, got {spec!r}")
    try:
        return PackageRequest.parse(spec)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc


def _unique(requests: list[PackageRequest]) -> list[PackageRequest]:
    """Drop repeated names; the first occurrence wins."""
    seen: set[str] = set()
    out = []
    for r in requests:
        if r.name not in seen:
            seen.add(r.name)
            out.append(r)
    return out


def _describe(requested) -> str:
    return requested if isinstance(requested, str) else "explicit"


# ── Dependencies ─────────────────────────────────────────────────────


def add_dependencies(
    requests: list[PackageRequest],
    graph: DependencyGraph,
    options: dict,
) -> list[PackageRequest]:
    """Append dependencies breadth-first; each lookup's new names are added sorted."""
    _check_options(graph, options)
    result = list(requests)
    names = {r.name for r in result}
    queue = deque(r.name for r in requests)

    while queue:
        name = queue.popleft()
        try:
            deps = graph.dependencies_of(name, **options)
        except Exception as exc:
            logger.warning("Dependency lookup failed for %s: %s", name, exc)
            continue
        for dep in sorted(deps):
            if dep not in names:
                names.add(dep)
                result.append(PackageRequest(name=dep))
                queue.append(dep)

    logger.info("Dependency expansion: %d → %d packages", len(requests), len(result))
    return result


def _check_options(graph: DependencyGraph, options: dict) -> None:
    try:
        inspect.signature(graph.dependencies_of).bind("", **options)
    except TypeError as exc:
        raise ConfigurationError(
            f"Invalid dependency option(s) {sorted(options)} for {type(graph).__name__}: {exc}"
        ) from exc


# ── Group Folding ────────────────────────────────────────────────────


def fold_groups(
    requests: list[PackageRequest], groups: Sequence[CitationGroup]
) -> list[PackageRequest]:
    """Replace the present members of each group with one group entry.

    The group entry takes the position of the first member; if the group
    name itself is already listed, that entry keeps its position instead.
    """
    result = list(requests)
    for group in groups:
        members = set(group.members)
        present = tuple(r.name for r in result if r.name in members and r.name != group.name)
        if not present:
            continue

        entry = PackageRequest(name=group.name, kind="group", members=present)
        listed = any(r.name == group.name for r in result)
        folded: list[PackageRequest] = []
        placed = False
        for r in result:
            is_slot = r.name == group.name if listed else r.name in members
            if is_slot and not placed:
                folded.append(entry)
                placed = True
            elif r.name not in members and r.name != group.name:
                folded.append(r)
        result = folded

        logger.info("Folded %d packages into '%s': %s", len(present), group.name, ", ".join(present))
    return result
