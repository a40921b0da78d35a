"""Package discovery backed by the installed Python environment.

Three collaborators feed the expander:

- ``ImportScanner`` walks a project tree (``*.py`` and ``*.ipynb``) and maps
  top-level imports to installed distributions.
- ``SessionPackages`` reports distributions behind the modules currently
  imported into this interpreter.
- ``DistributionGraph`` follows ``Requires-Dist`` metadata to list a
  distribution's dependencies.

Each has a ``Protocol`` so callers can inject their own implementation.
"""

import ast
import json
import logging
import sys
from collections import deque
from importlib import metadata
from pathlib import Path
from typing import Iterable, Protocol

from packaging.requirements import InvalidRequirement, Requirement

logger = logging.getLogger(__name__)

_SKIP_DIRS = {".git", ".hg", ".venv", "venv", "env", "__pycache__", "site-packages", "node_modules"}
_STDLIB = set(sys.stdlib_module_names) | {"__future__", "__main__"}


# ── Interfaces ───────────────────────────────────────────────────────


class DependencyScanner(Protocol):
    def scan(self, project_root: Path) -> list[str]: ...


class SessionProvider(Protocol):
    def loaded_packages(self) -> list[str]: ...


class DependencyGraph(Protocol):
    def dependencies_of(self, name: str, **options) -> set[str]: ...


# ── Project Scanner ──────────────────────────────────────────────────


class ImportScanner:
    """Find distributions imported by the source files of a project."""

    def __init__(self, exclude: Iterable[str] = ()):
        self.exclude = set(exclude)

    def scan(self, project_root: Path) -> list[str]:
        root = Path(project_root).resolve()
        if not root.is_dir():
            raise FileNotFoundError(f"Project root does not exist: {root}")

        roots = find_import_roots(root)
        # Top-level modules that live in the project itself are not dependencies
        local = [r for r in roots if (root / r).is_dir() or (root / f"{r}.py").is_file()]
        roots = [r for r in roots if r not in local and r not in self.exclude]

        dists = roots_to_distributions(roots)
        logger.info(
            "Scanned %s: %d import roots → %d distributions (%d local skipped)",
            root, len(roots), len(dists), len(local),
        )
        return dists


def find_import_roots(root: Path) -> list[str]:
    """Top-level imported module names, in first-seen order over sorted files."""
    roots: list[str] = []
    seen: set[str] = set()

    for path in _source_files(root):
        source = _read_source(path)
        if source is None:
            continue
        try:
            tree = ast.parse(source, filename=str(path))
        except SyntaxError as exc:
            logger.warning("Skipping %s: cannot parse (%s)", path, exc.msg)
            continue

        for name in _imported_modules(tree):
            top = name.split(".")[0]
            if top and top not in _STDLIB and top not in seen:
                seen.add(top)
                roots.append(top)

    return roots


def roots_to_distributions(roots: list[str]) -> list[str]:
    """Map import roots to installed distribution names (first candidate wins)."""
    pkg_map = metadata.packages_distributions()
    dists: list[str] = []
    for r in roots:
        candidates = pkg_map.get(r) or [r]
        dist = candidates[0]
        if dist not in dists:
            dists.append(dist)
    return dists


def _source_files(root: Path) -> list[Path]:
    files = []
    for pattern in ("*.py", "*.ipynb"):
        for path in root.rglob(pattern):
            if not _SKIP_DIRS.intersection(path.relative_to(root).parts):
                files.append(path)
    return sorted(files)


def _read_source(path: Path) -> str | None:
    try:
        text = path.read_text(encoding="utf-8", errors="ignore")
    except OSError as exc:
        logger.warning("Cannot read %s: %s", path, exc)
        return None

    if path.suffix != ".ipynb":
        return text

    try:
        notebook = json.loads(text)
    except json.JSONDecodeError:
        logger.warning("Skipping %s: not valid notebook JSON", path)
        return None

    lines = []
    for cell in notebook.get("cells", []):
        if cell.get("cell_type") != "code":
            continue
        src = cell.get("source", "")
        src = "".join(src) if isinstance(src, list) else src
        # Drop IPython magics and shell escapes
        lines.extend(
            line for line in src.splitlines() if not line.lstrip().startswith(("%", "!"))
        )
    return "\n".join(lines)


def _imported_modules(tree: ast.AST) -> list[str]:
    names = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            names.extend(alias.name for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.level == 0 and node.module:
            names.append(node.module)
    return names


# ── Session ──────────────────────────────────────────────────────────


class SessionPackages:
    """Distributions behind the modules imported in the running interpreter."""

    def __init__(self, exclude: Iterable[str] = ("pkgcite",)):
        self.exclude = set(exclude)

    def loaded_packages(self) -> list[str]:
        roots: list[str] = []
        for name in list(sys.modules):
            top = name.split(".")[0]
            if top.startswith("_") or top in _STDLIB or top in self.exclude or top in roots:
                continue
            roots.append(top)
        return [d for d in roots_to_distributions(roots) if d not in self.exclude]


# ── Dependency Graph ─────────────────────────────────────────────────


class DistributionGraph:
    """Dependency lookups over installed distributions' Requires-Dist."""

    def dependencies_of(
        self, name: str, include_extras: bool = False, recursive: bool = True
    ) -> set[str]:
        """Direct (and by default transitive) dependency names of ``name``."""
        found: set[str] = set()
        queue = deque([name])
        while queue:
            current = queue.popleft()
            for dep in _direct_requirements(current, include_extras):
                if dep == name or dep in found:
                    continue
                found.add(dep)
                if recursive:
                    queue.append(dep)
        return found


def _direct_requirements(name: str, include_extras: bool) -> list[str]:
    try:
        requires = metadata.requires(name) or []
    except metadata.PackageNotFoundError:
        logger.debug("No installed distribution for %s; no dependencies", name)
        return []

    # "" stands for the base install; markers mentioning extras only match a named extra
    extras = [""] + (_provided_extras(name) if include_extras else [])

    deps = []
    for line in requires:
        try:
            req = Requirement(line)
        except InvalidRequirement as exc:
            logger.warning("Skipping unparseable requirement of %s: %r (%s)", name, line, exc)
            continue
        if req.marker and not any(req.marker.evaluate({"extra": e}) for e in extras):
            continue
        deps.append(_canonical_name(req.name))
    return deps


def _provided_extras(name: str) -> list[str]:
    return metadata.metadata(name).get_all("Provides-Extra") or []


def _canonical_name(name: str) -> str:
    """Installed distribution's own spelling of its name, if available."""
    try:
        return metadata.metadata(name)["Name"] or name
    except metadata.PackageNotFoundError:
        return name
