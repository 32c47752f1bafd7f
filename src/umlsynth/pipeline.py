"""
One regeneration cycle: imports → scope → relationships → diagram → diff/merge.

Pure and synchronous: the only state carried between cycles is the
``previous`` diagram the caller passes in.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

import networkx as nx

from .differ import compute_diff, has_significant_changes, merge_positions
from .generator import generate_diagram
from .imports import build_import_graph, build_import_graph_from_paths
from .models import (
    DiagramDiff,
    DiagramScope,
    DiagramState,
    EntityDescriptor,
    LayoutConfig,
    LayoutDirection,
    ScopeResult,
)
from .relationships import analyze_relationships
from .scope import resolve_scope

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectSnapshot:
    """Everything the parser collaborators produced for one cycle."""

    entities_by_file: Mapping[str, Sequence[EntityDescriptor]]
    imports_by_file: Mapping[str, Sequence[str]] = field(default_factory=dict)
    file_paths: Mapping[str, str] = field(default_factory=dict)   # file id → path

    def import_graph(self) -> nx.DiGraph:
        known = set(self.entities_by_file) | set(self.imports_by_file) | set(self.file_paths)
        if self.file_paths:
            paths = {file_id: self.file_paths.get(file_id, file_id) for file_id in known}
            return build_import_graph_from_paths(self.imports_by_file, paths)
        return build_import_graph(self.imports_by_file, known)


@dataclass(frozen=True)
class DiagramUpdate:
    state: DiagramState
    layout_direction: LayoutDirection
    significant: bool
    diff: DiagramDiff
    scope: ScopeResult
    used_fallback: bool = False


def regenerate(
    project: ProjectSnapshot,
    scope: DiagramScope,
    previous: DiagramState | None = None,
    config: LayoutConfig | None = None,
) -> DiagramUpdate:
    """
    Run the full synthesis pipeline for one scope selection.

    Relationships are recomputed against the scope-filtered entities so no
    edge points outside the visible set. With a previous state, surviving
    nodes keep their previous positions.
    """
    graph = project.import_graph()
    visible = resolve_scope(scope, project.entities_by_file, graph)
    relationships = analyze_relationships(visible.entities)
    result = generate_diagram(visible.entities, relationships, scope.mode, config)

    prev = previous or DiagramState()
    diff = compute_diff(prev.nodes, result.nodes, prev.edges, result.edges)
    significant = has_significant_changes(prev.nodes, result.nodes, prev.edges, result.edges)
    nodes = merge_positions(prev.nodes, result.nodes) if prev.nodes else result.nodes

    log.info(
        "Regenerated %s view: %d nodes, %d edges (significant=%s)",
        scope.mode.value, len(nodes), len(result.edges), significant,
    )
    return DiagramUpdate(
        state=DiagramState(nodes=nodes, edges=result.edges),
        layout_direction=result.layout_direction,
        significant=significant,
        diff=diff,
        scope=visible,
        used_fallback=result.used_fallback,
    )
