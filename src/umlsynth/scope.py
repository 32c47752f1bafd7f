"""
Scope resolution: which entities are visible in File view vs Project view.
"""

import logging
from collections import deque
from collections.abc import Mapping, Sequence

import networkx as nx

from .models import (
    DiagramScope,
    EntityDescriptor,
    EntityId,
    InclusionReason,
    ScopeMode,
    ScopeResult,
)

log = logging.getLogger(__name__)


def reachable_files(g: nx.DiGraph, start: str) -> list[str]:
    """
    Return start plus every file it transitively imports, in BFS order.

    Follows importer → imported edges only. The visited set makes this linear
    in the size of the graph and safe on import cycles. A start file that is
    not in the graph still yields [start].
    """
    order = [start]
    visited = {start}
    if start not in g:
        return order
    frontier = deque([start])
    while frontier:
        node = frontier.popleft()
        for succ in sorted(g.successors(node)):
            if succ not in visited:
                visited.add(succ)
                order.append(succ)
                frontier.append(succ)
    return order


def resolve_scope(
    scope: DiagramScope,
    entities_by_file: Mapping[str, Sequence[EntityDescriptor]],
    import_graph: nx.DiGraph | None = None,
) -> ScopeResult:
    """
    Compute the visible entity subset for the requested scope.

    Project view returns every entity of every file. File view returns the
    entities of the active file and of every file reachable from it through
    imports. A missing active file yields an empty (valid) result.
    """
    total = sum(len(v) for v in entities_by_file.values())
    reasons: dict[EntityId, InclusionReason] = {}
    entities: list[EntityDescriptor] = []

    if scope.mode is ScopeMode.PROJECT:
        file_ids = sorted(entities_by_file)
        for file_id in file_ids:
            for e in entities_by_file[file_id]:
                entities.append(e)
                reasons[e.id] = InclusionReason.PROJECT
        log.debug("Project scope: %d entities from %d files", len(entities), len(file_ids))
        return ScopeResult(
            file_ids=frozenset(file_ids),
            entities=tuple(entities),
            reasons=reasons,
            total_before_filter=total,
        )

    active = scope.active_file_id
    g = import_graph if import_graph is not None else nx.DiGraph()
    if not active or (active not in entities_by_file and active not in g):
        log.debug("File scope without a known active file (%r): empty result", active)
        return ScopeResult(file_ids=frozenset(), entities=(), total_before_filter=total)

    file_ids = reachable_files(g, active)
    for file_id in file_ids:
        reason = InclusionReason.LOCAL if file_id == active else InclusionReason.IMPORTED
        for e in entities_by_file.get(file_id, ()):
            entities.append(e)
            reasons[e.id] = reason

    log.debug(
        "File scope %s: %d files reachable, %d/%d entities visible",
        active, len(file_ids), len(entities), total,
    )
    return ScopeResult(
        file_ids=frozenset(file_ids),
        entities=tuple(entities),
        reasons=reasons,
        total_before_filter=total,
    )
