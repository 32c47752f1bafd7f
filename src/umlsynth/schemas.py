"""Request schemas for the HTTP and CLI surfaces.

Field names are snake_case; the wire format is camelCase. Every model
converts itself into the frozen domain dataclasses with a ``to_*`` method.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import (
    DiagramEdge,
    DiagramNode,
    DiagramScope,
    DiagramState,
    EdgeStyle,
    EntityDescriptor,
    EntityKind,
    MemberDescriptor,
    MemberKind,
    Parameter,
    Position,
    RelationshipKind,
    ScopeMode,
    Visibility,
    make_entity_id,
)
from .pipeline import ProjectSnapshot


class _Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── project snapshot ─────────────────────────────────────────────────────────

class ParameterIn(_Schema):
    name: str
    type_text: str = Field("", alias="type")
    optional: bool = False

    def to_parameter(self) -> Parameter:
        return Parameter(name=self.name, type_text=self.type_text, optional=self.optional)


class MemberIn(_Schema):
    name: str
    type_text: str = Field("", alias="type", description="Declared type, or return type for methods")
    visibility: Visibility = Visibility.PUBLIC
    modifiers: list[str] = Field(default_factory=list)
    kind: MemberKind = MemberKind.PROPERTY
    parameters: list[ParameterIn] = Field(default_factory=list)

    def to_member(self) -> MemberDescriptor:
        return MemberDescriptor(
            name=self.name,
            type_text=self.type_text,
            visibility=self.visibility,
            modifiers=tuple(self.modifiers),
            kind=self.kind,
            parameters=tuple(p.to_parameter() for p in self.parameters),
        )


class EntityIn(_Schema):
    kind: EntityKind = EntityKind.CLASS
    name: str
    id: str | None = Field(None, description="Defaults to '{fileId}::{name}'")
    members: list[MemberIn] = Field(default_factory=list)
    extends_class: str | None = None
    implements_interfaces: list[str] = Field(default_factory=list)
    extends_interfaces: list[str] = Field(default_factory=list)
    type_params: list[str] = Field(default_factory=list)
    is_abstract: bool = False

    def to_entity(self, file_id: str) -> EntityDescriptor:
        """Build the domain entity; kind-incompatible fields raise ContractError."""
        return EntityDescriptor(
            kind=self.kind,
            id=self.id or make_entity_id(file_id, self.name),
            name=self.name,
            file_id=file_id,
            members=tuple(m.to_member() for m in self.members),
            extends_class=self.extends_class or None,
            implements_interfaces=tuple(self.implements_interfaces),
            extends_interfaces=tuple(self.extends_interfaces),
            type_params=tuple(self.type_params),
            is_abstract=self.is_abstract,
        )


class FileIn(_Schema):
    path: str | None = None
    imports: list[str] = Field(default_factory=list)
    entities: list[EntityIn] = Field(default_factory=list)


class ProjectIn(_Schema):
    files: dict[str, FileIn]

    def to_snapshot(self) -> ProjectSnapshot:
        return ProjectSnapshot(
            entities_by_file={
                file_id: tuple(e.to_entity(file_id) for e in body.entities)
                for file_id, body in self.files.items()
            },
            imports_by_file={file_id: tuple(body.imports) for file_id, body in self.files.items()},
            file_paths={file_id: body.path for file_id, body in self.files.items() if body.path},
        )


class ScopeIn(_Schema):
    mode: ScopeMode = ScopeMode.FILE
    active_file_id: str | None = None

    def to_scope(self) -> DiagramScope:
        return DiagramScope(mode=self.mode, active_file_id=self.active_file_id)


# ── previous diagram state ───────────────────────────────────────────────────

class PositionIn(_Schema):
    x: float = 0.0
    y: float = 0.0


class NodeDataIn(_Schema):
    name: str = ""
    stereotype: str | None = None
    members: list[str] = Field(default_factory=list)
    file_id: str = ""


class NodeIn(_Schema):
    id: str
    kind: EntityKind = Field(EntityKind.CLASS, alias="type")
    data: NodeDataIn = Field(default_factory=NodeDataIn)
    position: PositionIn = Field(default_factory=PositionIn)
    width: float = 0.0
    height: float = 0.0

    def to_node(self) -> DiagramNode:
        return DiagramNode(
            id=self.id,
            kind=self.kind,
            display_name=self.data.name,
            member_lines=tuple(self.data.members),
            file_id=self.data.file_id,
            width=self.width,
            height=self.height,
            stereotype=self.data.stereotype,
            position=Position(x=self.position.x, y=self.position.y),
        )


class EdgeStyleIn(_Schema):
    stroke: str = "#000"
    stroke_width: float = 1.0
    dashed: bool = False
    marker: str = "arrow"


class EdgeIn(_Schema):
    id: str
    source: str
    target: str
    kind: RelationshipKind = Field(alias="type")
    style: EdgeStyleIn = Field(default_factory=EdgeStyleIn)

    def to_edge(self) -> DiagramEdge:
        return DiagramEdge(
            id=self.id,
            source=self.source,
            target=self.target,
            kind=self.kind,
            style=EdgeStyle(
                stroke=self.style.stroke,
                stroke_width=self.style.stroke_width,
                dashed=self.style.dashed,
                marker=self.style.marker,
            ),
        )


class StateIn(_Schema):
    nodes: list[NodeIn] = Field(default_factory=list)
    edges: list[EdgeIn] = Field(default_factory=list)

    def to_state(self) -> DiagramState:
        return DiagramState(
            nodes=tuple(n.to_node() for n in self.nodes),
            edges=tuple(e.to_edge() for e in self.edges),
        )


# ── request bodies ───────────────────────────────────────────────────────────

class DiagramRequest(_Schema):
    """POST /api/diagram body."""
    project: ProjectIn
    scope: ScopeIn = Field(default_factory=ScopeIn)
    previous: StateIn | None = Field(None, description="Diagram whose positions are kept")


class ScopeRequest(_Schema):
    """POST /api/scope body."""
    project: ProjectIn
    scope: ScopeIn = Field(default_factory=ScopeIn)
