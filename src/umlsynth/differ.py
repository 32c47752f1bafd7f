"""
Diffing of successive diagram states and position-preserving merge.

Positions are the only state carried between regenerations: layout computes
a fresh position for every node, and the merge puts back the previous one for
every node that survived.
"""

import logging
from collections.abc import Sequence
from dataclasses import replace

from .models import DiagramDiff, DiagramEdge, DiagramNode

log = logging.getLogger(__name__)


def _node_content(n: DiagramNode) -> tuple:
    return (n.kind, n.display_name, n.stereotype, n.member_lines, n.file_id, n.width, n.height)


def _edge_content(e: DiagramEdge) -> tuple:
    return (e.source, e.target, e.kind, e.style)


def compute_diff(
    prev_nodes: Sequence[DiagramNode],
    new_nodes: Sequence[DiagramNode],
    prev_edges: Sequence[DiagramEdge],
    new_edges: Sequence[DiagramEdge],
) -> DiagramDiff:
    """Classify node and edge ids as added, removed, modified or unchanged."""
    old_n = {n.id: n for n in prev_nodes}
    new_n = {n.id: n for n in new_nodes}
    old_e = {e.id: e for e in prev_edges}
    new_e = {e.id: e for e in new_edges}

    nodes_added, nodes_modified, nodes_unchanged = [], [], []
    for n in new_nodes:
        old = old_n.get(n.id)
        if old is None:
            nodes_added.append(n.id)
        elif _node_content(old) != _node_content(n):
            nodes_modified.append(n.id)
        else:
            nodes_unchanged.append(n.id)

    edges_added, edges_modified, edges_unchanged = [], [], []
    for e in new_edges:
        old = old_e.get(e.id)
        if old is None:
            edges_added.append(e.id)
        elif _edge_content(old) != _edge_content(e):
            edges_modified.append(e.id)
        else:
            edges_unchanged.append(e.id)

    return DiagramDiff(
        nodes_added=tuple(nodes_added),
        nodes_removed=tuple(n.id for n in prev_nodes if n.id not in new_n),
        nodes_modified=tuple(nodes_modified),
        nodes_unchanged=tuple(nodes_unchanged),
        edges_added=tuple(edges_added),
        edges_removed=tuple(e.id for e in prev_edges if e.id not in new_e),
        edges_modified=tuple(edges_modified),
        edges_unchanged=tuple(edges_unchanged),
    )


def has_significant_changes(
    prev_nodes: Sequence[DiagramNode],
    new_nodes: Sequence[DiagramNode],
    prev_edges: Sequence[DiagramEdge],
    new_edges: Sequence[DiagramEdge],
) -> bool:
    """
    True iff the node count, edge count, or either id set differs.

    Content-only edits (a renamed member, a resized node) are not significant,
    so the caller can skip relayout and re-render for them.
    """
    if len(prev_nodes) != len(new_nodes) or len(prev_edges) != len(new_edges):
        return True
    if {n.id for n in prev_nodes} != {n.id for n in new_nodes}:
        return True
    return {e.id for e in prev_edges} != {e.id for e in new_edges}


def merge_positions(
    prev_nodes: Sequence[DiagramNode],
    new_nodes: Sequence[DiagramNode],
) -> tuple[DiagramNode, ...]:
    """
    Return new_nodes with previous positions restored for surviving ids.

    Nodes only in new_nodes keep their freshly computed layout position; ids
    only in prev_nodes are dropped.
    """
    previous = {n.id: n.position for n in prev_nodes}
    merged = tuple(
        replace(n, position=previous[n.id]) if n.id in previous else n
        for n in new_nodes
    )
    kept = sum(1 for n in new_nodes if n.id in previous)
    log.debug("Merged positions: %d kept, %d fresh", kept, len(new_nodes) - kept)
    return merged
