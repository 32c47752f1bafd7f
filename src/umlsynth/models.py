"""Core data structures for umlsynth.

Everything here is an immutable value. Entities are rebuilt wholesale on every
parse cycle and compared across cycles by id, never by object identity.
"""

from dataclasses import dataclass, field
from enum import Enum

EntityId = str  # "{file_id}::{entity_name}"


class ContractError(ValueError):
    """A collaborator handed over data that breaks the entity model contract."""


def make_entity_id(file_id: str, name: str) -> EntityId:
    return f"{file_id}::{name}"


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    PROTECTED = "protected"


class MemberKind(str, Enum):
    PROPERTY = "property"
    METHOD = "method"


class EntityKind(str, Enum):
    CLASS = "class"
    INTERFACE = "interface"


class RelationshipKind(str, Enum):
    INHERITANCE = "inheritance"
    REALIZATION = "realization"
    ASSOCIATION = "association"
    AGGREGATION = "aggregation"


class LayoutDirection(str, Enum):
    TOP_BOTTOM = "TB"
    LEFT_RIGHT = "LR"


class ScopeMode(str, Enum):
    FILE = "file"
    PROJECT = "project"


class InclusionReason(str, Enum):
    LOCAL = "local"             # declared in the active file
    IMPORTED = "imported"       # declared in a file reachable through imports
    PROJECT = "project"         # project view includes everything


# ── entity model ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Parameter:
    name: str
    type_text: str
    optional: bool = False


@dataclass(frozen=True)
class MemberDescriptor:
    name: str
    type_text: str              # declared type, or return type for methods
    visibility: Visibility = Visibility.PUBLIC
    modifiers: tuple[str, ...] = ()   # "static" | "readonly" | "abstract" | "async" | "optional"
    kind: MemberKind = MemberKind.PROPERTY
    parameters: tuple[Parameter, ...] = ()

    @property
    def is_method(self) -> bool:
        return self.kind is MemberKind.METHOD


@dataclass(frozen=True)
class EntityDescriptor:
    """A parsed class or interface.

    ``kind`` is the discriminant: ``extends_class``, ``implements_interfaces``
    and ``is_abstract`` only apply to classes, ``extends_interfaces`` only to
    interfaces. Use :meth:`new_class` / :meth:`new_interface` to build one.
    """

    kind: EntityKind
    id: EntityId
    name: str
    file_id: str
    members: tuple[MemberDescriptor, ...] = ()
    extends_class: str | None = None
    implements_interfaces: tuple[str, ...] = ()
    extends_interfaces: tuple[str, ...] = ()
    type_params: tuple[str, ...] = ()
    is_abstract: bool = False

    def __post_init__(self) -> None:
        if not self.id or not self.name or not self.file_id:
            raise ContractError(
                f"entity requires id, name and file_id (got id={self.id!r}, "
                f"name={self.name!r}, file_id={self.file_id!r})"
            )
        if not isinstance(self.kind, EntityKind):
            raise ContractError(f"unknown entity kind: {self.kind!r}")
        if self.kind is EntityKind.INTERFACE:
            if self.extends_class or self.implements_interfaces or self.is_abstract:
                raise ContractError(f"interface {self.name} carries class-only fields")
        elif self.extends_interfaces:
            raise ContractError(f"class {self.name} carries extends_interfaces")

    @classmethod
    def new_class(
        cls,
        name: str,
        file_id: str,
        members: tuple[MemberDescriptor, ...] | list[MemberDescriptor] = (),
        extends_class: str | None = None,
        implements_interfaces: tuple[str, ...] | list[str] = (),
        type_params: tuple[str, ...] | list[str] = (),
        is_abstract: bool = False,
        id: EntityId | None = None,
    ) -> "EntityDescriptor":
        return cls(
            kind=EntityKind.CLASS,
            id=id or make_entity_id(file_id, name),
            name=name,
            file_id=file_id,
            members=tuple(members),
            extends_class=extends_class or None,
            implements_interfaces=tuple(implements_interfaces),
            type_params=tuple(type_params),
            is_abstract=is_abstract,
        )

    @classmethod
    def new_interface(
        cls,
        name: str,
        file_id: str,
        members: tuple[MemberDescriptor, ...] | list[MemberDescriptor] = (),
        extends_interfaces: tuple[str, ...] | list[str] = (),
        type_params: tuple[str, ...] | list[str] = (),
        id: EntityId | None = None,
    ) -> "EntityDescriptor":
        return cls(
            kind=EntityKind.INTERFACE,
            id=id or make_entity_id(file_id, name),
            name=name,
            file_id=file_id,
            members=tuple(members),
            extends_interfaces=tuple(extends_interfaces),
            type_params=tuple(type_params),
        )


@dataclass(frozen=True)
class RelationshipEdge:
    id: str                     # "{source_id}->{target_id}:{kind}"
    kind: RelationshipKind
    source_id: EntityId
    target_id: EntityId


@dataclass(frozen=True)
class ImportEdge:
    source_file: str            # the importing file
    target_file: str            # the file that defines what is imported


# ── scope ────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class DiagramScope:
    mode: ScopeMode = ScopeMode.FILE
    active_file_id: str | None = None


@dataclass(frozen=True)
class ScopeResult:
    file_ids: frozenset[str]
    entities: tuple[EntityDescriptor, ...]
    reasons: dict[EntityId, InclusionReason] = field(default_factory=dict, compare=False)
    total_before_filter: int = 0


# ── diagram ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Position:
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class EdgeStyle:
    stroke: str
    stroke_width: float
    dashed: bool
    marker: str                 # "triangle" | "arrow" | "diamond"


@dataclass(frozen=True)
class DiagramNode:
    id: EntityId
    kind: EntityKind
    display_name: str
    member_lines: tuple[str, ...]
    file_id: str
    width: float
    height: float
    stereotype: str | None = None
    position: Position = Position()


@dataclass(frozen=True)
class DiagramEdge:
    id: str
    source: EntityId
    target: EntityId
    kind: RelationshipKind
    style: EdgeStyle


@dataclass(frozen=True)
class DiagramState:
    nodes: tuple[DiagramNode, ...] = ()
    edges: tuple[DiagramEdge, ...] = ()


@dataclass(frozen=True)
class DiagramResult:
    nodes: tuple[DiagramNode, ...]
    edges: tuple[DiagramEdge, ...]
    layout_direction: LayoutDirection
    used_fallback: bool = False

    @property
    def state(self) -> DiagramState:
        return DiagramState(nodes=self.nodes, edges=self.edges)


@dataclass(frozen=True)
class DiagramDiff:
    nodes_added: tuple[EntityId, ...] = ()
    nodes_removed: tuple[EntityId, ...] = ()
    nodes_modified: tuple[EntityId, ...] = ()
    nodes_unchanged: tuple[EntityId, ...] = ()
    edges_added: tuple[str, ...] = ()
    edges_removed: tuple[str, ...] = ()
    edges_modified: tuple[str, ...] = ()
    edges_unchanged: tuple[str, ...] = ()


# ── configuration ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class LayoutConfig:
    direction: LayoutDirection = LayoutDirection.TOP_BOTTOM
    node_sep: float = 50.0      # gap between neighbours within a rank
    rank_sep: float = 100.0     # gap between consecutive ranks
    margin: float = 20.0
    grid_spacing: float = 300.0
