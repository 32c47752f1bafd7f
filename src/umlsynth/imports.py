"""
Per-file import dependency graph.

Nodes are file ids; an edge A → B means file A imports something file B
defines. Targets that do not name a known file (libraries, unresolved paths)
are dropped, not reported as errors.
"""

import logging
import posixpath
from collections.abc import Iterable, Mapping

import networkx as nx

from .models import ImportEdge

log = logging.getLogger(__name__)

# Extensions tried, in order, when a relative specifier omits one
SOURCE_EXTENSIONS = (".ts", ".tsx", ".dart", ".py", ".java")


def _candidate_paths(base: str) -> list[str]:
    """
    "src/models"  → ["src/models", "src/models.ts", ..., "src/models/index.ts", ...]
    """
    candidates = [base]
    candidates.extend(f"{base}{ext}" for ext in SOURCE_EXTENSIONS)
    candidates.extend(f"{base}/index{ext}" for ext in SOURCE_EXTENSIONS)
    return candidates


def resolve_import_target(
    specifier: str,
    importer_path: str | None,
    path_to_id: Mapping[str, str],
) -> str | None:
    """
    Resolve an import specifier to a known file id, or None.

    Relative specifiers ("./models", "../shared/types") are resolved against the
    importer's directory. Anything else only resolves when it exactly names a
    known path; bare package names fall through as external.
    """
    spec = specifier.strip()
    if not spec:
        return None

    if spec.startswith("."):
        if importer_path is None:
            return None
        joined = posixpath.normpath(posixpath.join(posixpath.dirname(importer_path), spec))
        for candidate in _candidate_paths(joined):
            if candidate in path_to_id:
                return path_to_id[candidate]
        return None

    for candidate in _candidate_paths(spec):
        if candidate in path_to_id:
            return path_to_id[candidate]
    return None


def build_import_graph(
    imports: Mapping[str, Iterable[str]],
    known_files: Iterable[str] | None = None,
) -> nx.DiGraph:
    """
    Build the import graph from already-normalized targets.

    imports: {file_id → [imported file_id, ...]}
    known_files: every file id in the project (defaults to the keys of imports)
    """
    known = set(known_files) if known_files is not None else set(imports)
    g: nx.DiGraph = nx.DiGraph()
    # Sorted insertion keeps traversal order independent of dict order upstream
    g.add_nodes_from(sorted(known))

    dropped = 0
    for file_id in sorted(imports):
        if file_id not in known:
            log.debug("Import list for unknown file %s ignored", file_id)
            continue
        for target in imports[file_id]:
            if target not in known:
                dropped += 1
                log.debug("Unresolved import %s -> %s dropped", file_id, target)
                continue
            if target == file_id:
                continue
            g.add_edge(file_id, target)

    log.debug(
        "Import graph: %d files, %d edges (%d external targets dropped)",
        g.number_of_nodes(), g.number_of_edges(), dropped,
    )
    return g


def build_import_graph_from_paths(
    specifiers: Mapping[str, Iterable[str]],
    file_paths: Mapping[str, str],
) -> nx.DiGraph:
    """
    Build the import graph from raw specifiers plus a file id → path table.

    Specifiers that already are file ids pass through unchanged.
    """
    path_to_id = {path: file_id for file_id, path in file_paths.items()}
    known = set(file_paths) | set(specifiers)
    resolved: dict[str, list[str]] = {}
    for file_id, specs in specifiers.items():
        targets: list[str] = []
        for spec in specs:
            if spec in known:
                targets.append(spec)
                continue
            target = resolve_import_target(spec, file_paths.get(file_id), path_to_id)
            if target is not None:
                targets.append(target)
        resolved[file_id] = targets
    return build_import_graph(resolved, known)


def import_edges(g: nx.DiGraph) -> list[ImportEdge]:
    return [ImportEdge(source_file=u, target_file=v) for u, v in sorted(g.edges())]
