"""
Diagram construction: one sized node per entity, one styled edge per
relationship, positions from the layout engine.

Sizes are pure functions of the formatted text so a diagram can be reproduced
without any rendering surface.
"""

import logging
import time
from collections.abc import Sequence

from .formatting import display_name, member_lines, stereotype
from .layout import LayoutEngine, layout_config_for
from .models import (
    DiagramEdge,
    DiagramNode,
    DiagramResult,
    EdgeStyle,
    EntityDescriptor,
    LayoutConfig,
    RelationshipEdge,
    RelationshipKind,
    ScopeMode,
)

log = logging.getLogger(__name__)

MIN_WIDTH = 150
MIN_HEIGHT = 80
CHAR_WIDTH = 8              # approximate glyph width, px
PADDING = 40                # horizontal padding, both sides together
HEADER_HEIGHT = 60          # name + stereotype
MEMBER_HEIGHT = 20          # one member line

EDGE_STYLES: dict[RelationshipKind, EdgeStyle] = {
    RelationshipKind.INHERITANCE: EdgeStyle(stroke="#000", stroke_width=2.0, dashed=False, marker="triangle"),
    RelationshipKind.REALIZATION: EdgeStyle(stroke="#000", stroke_width=2.0, dashed=True, marker="triangle"),
    RelationshipKind.ASSOCIATION: EdgeStyle(stroke="#666", stroke_width=1.5, dashed=False, marker="arrow"),
    RelationshipKind.AGGREGATION: EdgeStyle(stroke="#666", stroke_width=1.5, dashed=False, marker="diamond"),
}


def node_width(name: str, lines: Sequence[str], stereotype_text: str | None = None) -> float:
    longest = max([len(name), len(stereotype_text or "")] + [len(line) for line in lines])
    return float(max(MIN_WIDTH, longest * CHAR_WIDTH + PADDING))


def node_height(member_count: int) -> float:
    return float(max(MIN_HEIGHT, HEADER_HEIGHT + member_count * MEMBER_HEIGHT))


def create_node(entity: EntityDescriptor) -> DiagramNode:
    lines = member_lines(entity)
    label = display_name(entity)
    tag = stereotype(entity)
    return DiagramNode(
        id=entity.id,
        kind=entity.kind,
        display_name=label,
        member_lines=lines,
        file_id=entity.file_id,
        width=node_width(label, lines, tag),
        height=node_height(len(lines)),
        stereotype=tag,
    )


def create_edge(rel: RelationshipEdge) -> DiagramEdge:
    return DiagramEdge(
        id=rel.id,
        source=rel.source_id,
        target=rel.target_id,
        kind=rel.kind,
        style=EDGE_STYLES[rel.kind],
    )


def generate_diagram(
    entities: Sequence[EntityDescriptor],
    relationships: Sequence[RelationshipEdge],
    mode: ScopeMode = ScopeMode.FILE,
    config: LayoutConfig | None = None,
) -> DiagramResult:
    """
    Build the positioned diagram for an already scope-filtered entity set.

    relationships should be computed against the same filtered set; any whose
    endpoints are not among the generated nodes is logged and skipped.
    """
    t0 = time.monotonic()
    layout_config = config or layout_config_for(mode)

    nodes = [create_node(e) for e in entities]
    node_ids = {n.id for n in nodes}

    edges: list[DiagramEdge] = []
    for rel in relationships:
        if rel.source_id in node_ids and rel.target_id in node_ids:
            edges.append(create_edge(rel))
        else:
            log.warning("Skipping relationship %s: missing source or target node", rel.id)

    outcome = LayoutEngine(layout_config).apply(nodes, edges)

    log.debug(
        "Generated diagram: %d nodes, %d edges in %.3fs%s",
        len(nodes), len(edges), time.monotonic() - t0,
        " (grid fallback)" if outcome.used_fallback else "",
    )
    return DiagramResult(
        nodes=outcome.nodes,
        edges=tuple(edges),
        layout_direction=layout_config.direction,
        used_fallback=outcome.used_fallback,
    )
