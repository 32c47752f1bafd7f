"""
Hierarchical (Sugiyama-style) layout on networkx, with a grid fallback.

The primary algorithm sits behind a narrow interface: sizes + edges + config
in, top-left positions out. Any exception it raises sends the engine to a
row-major grid, which always succeeds.

Pipeline: validate → break cycles → rank by longest path from sources →
insert virtual nodes on long edges → barycenter ordering sweeps → coordinates.
Relationship edges are layered as given, source → target, so a subtype sits
one rank above the supertype it points to.
"""

import logging
import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, replace

import networkx as nx

from .models import (
    DiagramEdge,
    DiagramNode,
    LayoutConfig,
    LayoutDirection,
    Position,
    ScopeMode,
)

log = logging.getLogger(__name__)

ORDERING_SWEEPS = 4

# Spacing profiles: project view is visibly looser than file view
_FILE_SPACING = (50.0, 100.0)       # (node_sep, rank_sep)
_PROJECT_SPACING = (80.0, 150.0)

Size = tuple[float, float]
LayoutAlgorithm = Callable[
    [Mapping[str, Size], Sequence[tuple[str, str]], LayoutConfig], dict[str, Position]
]


class LayoutError(RuntimeError):
    """The layered algorithm rejected its input."""


def layout_config_for(
    mode: ScopeMode,
    direction: LayoutDirection = LayoutDirection.TOP_BOTTOM,
) -> LayoutConfig:
    node_sep, rank_sep = _PROJECT_SPACING if mode is ScopeMode.PROJECT else _FILE_SPACING
    return LayoutConfig(direction=direction, node_sep=node_sep, rank_sep=rank_sep)


# ── layered algorithm ────────────────────────────────────────────────────────

def _build_layering_graph(
    sizes: Mapping[str, Size], edges: Sequence[tuple[str, str]], order: Mapping[str, int]
) -> nx.DiGraph:
    g: nx.DiGraph = nx.DiGraph()
    for node_id, (w, h) in sizes.items():
        if not (math.isfinite(w) and math.isfinite(h)) or w < 0 or h < 0:
            raise LayoutError(f"node {node_id} has invalid size {w}x{h}")
        g.add_node(node_id)
    for source, target in edges:
        if source not in sizes or target not in sizes:
            raise LayoutError(f"edge {source} -> {target} references an unknown node")
    # Insertion order fixes the DFS visiting order below
    g.add_edges_from(sorted(
        {(s, t) for s, t in edges if s != t}, key=lambda e: (order[e[0]], order[e[1]])
    ))
    return g


def _break_cycles(g: nx.DiGraph) -> nx.DiGraph:
    """Reverse every DFS back edge; the result is acyclic."""
    on_stack: set[str] = set()
    back_edges: list[tuple[str, str]] = []
    for u, v, label in nx.dfs_labeled_edges(g):
        if label == "forward":
            on_stack.add(v)
        elif label == "reverse":
            on_stack.discard(v)
        elif label == "nontree" and v in on_stack:
            back_edges.append((u, v))

    dag = g.copy()
    for u, v in back_edges:
        dag.remove_edge(u, v)
        if not dag.has_edge(v, u):
            dag.add_edge(v, u)
    if back_edges:
        log.debug("Reversed %d back edges to break cycles", len(back_edges))
    return dag


def _assign_ranks(dag: nx.DiGraph, order: Mapping[str, int]) -> dict[str, int]:
    """Longest path from sources: every node sits one rank below its deepest parent."""
    rank: dict[str, int] = {}
    for node in nx.lexicographical_topological_sort(dag, key=order.__getitem__):
        preds = [rank[p] for p in dag.predecessors(node)]
        rank[node] = max(preds) + 1 if preds else 0
    return rank


def _sort_and_count(seq: list[int]) -> tuple[list[int], int]:
    """Merge sort that also counts strict inversions."""
    if len(seq) < 2:
        return seq, 0
    mid = len(seq) // 2
    left, a = _sort_and_count(seq[:mid])
    right, b = _sort_and_count(seq[mid:])
    merged: list[int] = []
    inversions = a + b
    i = j = 0
    while i < len(left) and j < len(right):
        if left[i] <= right[j]:
            merged.append(left[i])
            i += 1
        else:
            merged.append(right[j])
            j += 1
            inversions += len(left) - i
    merged.extend(left[i:])
    merged.extend(right[j:])
    return merged, inversions


def _count_crossings(
    upper: list[str], lower: list[str], down: Mapping[str, list[str]]
) -> int:
    """Edge crossings between two adjacent ranks, in O(E log E)."""
    pos = {n: i for i, n in enumerate(lower)}
    # Segments sorted by (upper, lower) endpoint; crossings are inversions of the lower ends
    ends: list[int] = []
    for n in upper:
        ends.extend(sorted(pos[t] for t in down.get(n, ()) if t in pos))
    return _sort_and_count(ends)[1]


def _total_crossings(layers: list[list[str]], down: Mapping[str, list[str]]) -> int:
    return sum(_count_crossings(layers[r], layers[r + 1], down) for r in range(len(layers) - 1))


def _reorder(layer: list[str], fixed: list[str], neighbours: Mapping[str, list[str]]) -> list[str]:
    fixed_pos = {n: i for i, n in enumerate(fixed)}

    def key(item: tuple[int, str]) -> tuple[float, int]:
        idx, node = item
        linked = [fixed_pos[m] for m in neighbours.get(node, ()) if m in fixed_pos]
        # Nodes with no neighbour on the fixed layer keep their slot
        bary = sum(linked) / len(linked) if linked else float(idx)
        return bary, idx

    return [node for _, node in sorted(enumerate(layer), key=key)]


def layered_positions(
    sizes: Mapping[str, Size],
    edges: Sequence[tuple[str, str]],
    config: LayoutConfig,
) -> dict[str, Position]:
    """Top-left position for every node id in sizes."""
    order = {node_id: i for i, node_id in enumerate(sizes)}
    g = _build_layering_graph(sizes, edges, order)
    dag = _break_cycles(g)
    rank = _assign_ranks(dag, order)

    # Split edges spanning several ranks with zero-size virtual nodes
    down: dict[str, list[str]] = {n: [] for n in order}
    up: dict[str, list[str]] = {n: [] for n in order}
    extents: dict[str, Size] = dict(sizes)
    for u, v in sorted(dag.edges, key=lambda e: (order[e[0]], order[e[1]])):
        prev = u
        for step in range(rank[u] + 1, rank[v]):
            virtual = f"\x00{u}\x00{v}\x00{step}"
            rank[virtual] = step
            extents[virtual] = (0.0, 0.0)
            down[virtual], up[virtual] = [], []
            down[prev].append(virtual)
            up[virtual].append(prev)
            prev = virtual
        down[prev].append(v)
        up[v].append(prev)

    n_ranks = max(rank.values()) + 1 if rank else 0
    layers: list[list[str]] = [[] for _ in range(n_ranks)]
    # Real nodes in input order, then virtual nodes in creation order
    for node in sorted(rank, key=lambda n: (n not in order, order.get(n, 0))):
        layers[rank[node]].append(node)

    best = [list(layer) for layer in layers]
    best_crossings = _total_crossings(best, down)
    for sweep in range(ORDERING_SWEEPS):
        if best_crossings == 0:
            break
        if sweep % 2 == 0:
            for r in range(1, n_ranks):
                layers[r] = _reorder(layers[r], layers[r - 1], up)
        else:
            for r in range(n_ranks - 2, -1, -1):
                layers[r] = _reorder(layers[r], layers[r + 1], down)
        crossings = _total_crossings(layers, down)
        if crossings < best_crossings:
            best = [list(layer) for layer in layers]
            best_crossings = crossings
    layers = best

    horizontal = config.direction is LayoutDirection.TOP_BOTTOM

    def cross_extent(node: str) -> float:
        w, h = extents[node]
        return w if horizontal else h

    def rank_extent(node: str) -> float:
        w, h = extents[node]
        return h if horizontal else w

    centers: dict[str, tuple[float, float]] = {}
    rank_center = 0.0
    prev_thickness = 0.0
    for r, layer in enumerate(layers):
        thickness = max((rank_extent(n) for n in layer), default=0.0)
        if r == 0:
            rank_center = thickness / 2
        else:
            rank_center += prev_thickness / 2 + config.rank_sep + thickness / 2
        prev_thickness = thickness

        span = sum(cross_extent(n) for n in layer) + config.node_sep * (len(layer) - 1)
        cursor = -span / 2
        for node in layer:
            ext = cross_extent(node)
            centers[node] = (cursor + ext / 2, rank_center)
            cursor += ext + config.node_sep

    positions: dict[str, Position] = {}
    for node_id, (w, h) in sizes.items():
        cross, along = centers[node_id]
        cx, cy = (cross, along) if horizontal else (along, cross)
        # Centre → top-left
        positions[node_id] = Position(x=cx - w / 2, y=cy - h / 2)

    if positions:
        min_x = min(p.x for p in positions.values())
        min_y = min(p.y for p in positions.values())
        dx, dy = config.margin - min_x, config.margin - min_y
        positions = {k: Position(x=p.x + dx, y=p.y + dy) for k, p in positions.items()}
    return positions


def grid_positions(node_ids: Sequence[str], spacing: float) -> dict[str, Position]:
    """Row-major square-ish grid. Never fails, including for zero nodes."""
    if not node_ids:
        return {}
    columns = math.ceil(math.sqrt(len(node_ids)))
    return {
        node_id: Position(x=(i % columns) * spacing, y=(i // columns) * spacing)
        for i, node_id in enumerate(node_ids)
    }


# ── engine ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class LayoutOutcome:
    nodes: tuple[DiagramNode, ...]
    used_fallback: bool


class LayoutEngine:
    def __init__(
        self,
        config: LayoutConfig | None = None,
        algorithm: LayoutAlgorithm = layered_positions,
    ) -> None:
        self.config = config or LayoutConfig()
        self._algorithm = algorithm

    def apply(
        self, nodes: Sequence[DiagramNode], edges: Sequence[DiagramEdge]
    ) -> LayoutOutcome:
        if not nodes:
            return LayoutOutcome(nodes=(), used_fallback=False)

        try:
            sizes: dict[str, Size] = {}
            for n in nodes:
                if n.id in sizes:
                    raise LayoutError(f"duplicate node id {n.id}")
                sizes[n.id] = (float(n.width), float(n.height))
            positions = self._algorithm(sizes, [(e.source, e.target) for e in edges], self.config)
            placed = tuple(replace(n, position=positions[n.id]) for n in nodes)
            return LayoutOutcome(nodes=placed, used_fallback=False)
        except Exception as e:
            log.warning("Layered layout failed, using grid fallback: %s", e)

        grid = grid_positions([n.id for n in nodes], self.config.grid_spacing)
        # Duplicate ids share a slot rather than failing the fallback
        placed = tuple(replace(n, position=grid[n.id]) for n in nodes)
        return LayoutOutcome(nodes=placed, used_fallback=True)
