"""
JSON-shaped dict ⇄ model conversion for the CLI and HTTP surfaces.

Input is validated through the pydantic schemas in ``schemas``; output uses
the camelCase keys the renderer consumes. Malformed collaborator input raises
ContractError.
"""

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from .models import (
    ContractError,
    DiagramDiff,
    DiagramEdge,
    DiagramNode,
    DiagramScope,
    DiagramState,
    EntityDescriptor,
    EntityKind,
    LayoutDirection,
)
from .pipeline import DiagramUpdate, ProjectSnapshot
from .schemas import EntityIn, ProjectIn, ScopeIn, StateIn

log = logging.getLogger(__name__)


def describe_errors(errors: list[dict[str, Any]]) -> str:
    """One line per pydantic error: "files.a.ts: Input should be a valid dictionary"."""
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg', 'invalid')}" if loc else err.get("msg", "invalid"))
    return "; ".join(parts)


def _validate(schema: type[BaseModel], d: Any, where: str):
    try:
        return schema.model_validate(d)
    except ValidationError as e:
        raise ContractError(f"{where}: {describe_errors(e.errors())}") from None


# ── entities ─────────────────────────────────────────────────────────────────

def entity_from_dict(d: Mapping[str, Any], file_id: str) -> EntityDescriptor:
    return _validate(EntityIn, d, f"entity in {file_id}").to_entity(file_id)


def entity_to_dict(e: EntityDescriptor) -> dict:
    d: dict[str, Any] = {
        "id": e.id,
        "kind": e.kind.value,
        "name": e.name,
        "fileId": e.file_id,
        "members": [
            {
                "name": m.name,
                "type": m.type_text,
                "visibility": m.visibility.value,
                "modifiers": list(m.modifiers),
                "kind": m.kind.value,
                "parameters": [
                    {"name": p.name, "type": p.type_text, "optional": p.optional}
                    for p in m.parameters
                ],
            }
            for m in e.members
        ],
        "typeParams": list(e.type_params),
    }
    if e.kind is EntityKind.CLASS:
        d["extendsClass"] = e.extends_class
        d["implementsInterfaces"] = list(e.implements_interfaces)
        d["isAbstract"] = e.is_abstract
    else:
        d["extendsInterfaces"] = list(e.extends_interfaces)
    return d


def project_from_dict(d: Mapping[str, Any]) -> ProjectSnapshot:
    """
    {"files": {fileId: {"path": str?, "imports": [str], "entities": [...]}}}
    """
    project = _validate(ProjectIn, d, "project").to_snapshot()
    log.debug(
        "Decoded project: %d files, %d entities",
        len(project.entities_by_file), sum(len(v) for v in project.entities_by_file.values()),
    )
    return project


def scope_from_dict(d: Mapping[str, Any] | None) -> DiagramScope:
    return _validate(ScopeIn, d or {}, "scope").to_scope()


# ── diagram ──────────────────────────────────────────────────────────────────

def node_to_dict(n: DiagramNode) -> dict:
    return {
        "id": n.id,
        "type": n.kind.value,
        "data": {
            "name": n.display_name,
            "stereotype": n.stereotype,
            "members": list(n.member_lines),
            "fileId": n.file_id,
        },
        "position": {"x": n.position.x, "y": n.position.y},
        "width": n.width,
        "height": n.height,
    }


def edge_to_dict(e: DiagramEdge) -> dict:
    return {
        "id": e.id,
        "source": e.source,
        "target": e.target,
        "type": e.kind.value,
        "style": {
            "stroke": e.style.stroke,
            "strokeWidth": e.style.stroke_width,
            "dashed": e.style.dashed,
            "marker": e.style.marker,
        },
    }


def state_from_dict(d: Mapping[str, Any] | None) -> DiagramState:
    if not d:
        return DiagramState()
    return _validate(StateIn, d, "diagram").to_state()


def diagram_to_dict(state: DiagramState, direction: LayoutDirection) -> dict:
    return {
        "nodes": [node_to_dict(n) for n in state.nodes],
        "edges": [edge_to_dict(e) for e in state.edges],
        "layoutDirection": direction.value,
    }


def diff_to_dict(diff: DiagramDiff) -> dict:
    return {
        "nodesAdded": list(diff.nodes_added),
        "nodesRemoved": list(diff.nodes_removed),
        "nodesModified": list(diff.nodes_modified),
        "nodesUnchanged": list(diff.nodes_unchanged),
        "edgesAdded": list(diff.edges_added),
        "edgesRemoved": list(diff.edges_removed),
        "edgesModified": list(diff.edges_modified),
        "edgesUnchanged": list(diff.edges_unchanged),
    }


def update_to_dict(update: DiagramUpdate) -> dict:
    out = diagram_to_dict(update.state, update.layout_direction)
    out["significant"] = update.significant
    out["usedFallback"] = update.used_fallback
    out["diff"] = diff_to_dict(update.diff)
    out["scope"] = {
        "fileIds": sorted(update.scope.file_ids),
        "entityIds": [e.id for e in update.scope.entities],
        "totalBeforeFilter": update.scope.total_before_filter,
    }
    return out
