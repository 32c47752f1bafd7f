"""
Structural relationship inference between entities.

Matches supertype names and member type text against the set of known entity
names. Matching is by exact simple name only: there is no type resolution, so
two unrelated entities sharing a name can produce a false positive and an
aliased import can produce a false negative.
"""

import logging
import re
from collections.abc import Iterable

from .models import (
    ContractError,
    EntityDescriptor,
    EntityKind,
    MemberDescriptor,
    RelationshipEdge,
    RelationshipKind,
)

log = logging.getLogger(__name__)

# Names that never produce a relationship even if an entity happens to share them
BUILTIN_TYPES = frozenset({
    # TypeScript / JavaScript
    "string", "number", "boolean", "void", "null", "undefined", "any", "unknown",
    "never", "object", "symbol", "bigint", "Date", "Promise", "Array", "Map",
    "Set", "WeakMap", "WeakSet", "Error", "RegExp", "Function", "Record",
    "ReadonlyArray", "Partial", "Readonly",
    # Dart
    "String", "int", "double", "num", "bool", "dynamic", "Object", "Never",
    "Null", "List", "Iterable", "Iterator", "Future", "Stream", "DateTime",
    "Duration", "Uri", "Type",
})

# Wrappers whose element type is held as a collection → aggregation
_COLLECTION_WRAPPERS = frozenset({
    "Array", "ReadonlyArray", "List", "Set", "Iterable", "Collection",
})
_MAP_WRAPPERS = frozenset({"Map", "Record", "WeakMap"})

_NULLABLE_UNION = re.compile(r"\s*\|\s*(null|undefined)\b")
_GENERIC = re.compile(r"^([\w.$]+)\s*<(.*)>$", re.DOTALL)


def _split_type_args(args: str, separators: str = ",") -> list[str]:
    """Split "K, Map<A, B>" on top-level separators only."""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for i, ch in enumerate(args):
        if ch in "<(":
            depth += 1
        elif (ch == ">" and args[i - 1 : i] != "=") or ch == ")":
            depth -= 1
        elif ch in separators and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return parts


def strip_type(type_text: str) -> tuple[str, bool]:
    """
    Reduce declared-type text to a bare name and a collection flag.

    "Person"                  → ("Person", False)
    "Person[]"                → ("Person", True)
    "Array<Person>"           → ("Person", True)
    "List<Person?>"           → ("Person", True)
    "Map<string, Person>"     → ("Person", True)
    "Container<Person>"       → ("Container", False)
    "Person | null"           → ("Person", False)
    """
    text = _NULLABLE_UNION.sub("", type_text or "").strip().rstrip("?").strip()
    is_collection = False

    while text:
        if text.startswith("(") and text.endswith(")"):
            text = text[1:-1].strip()
            continue
        if text.endswith("[]"):
            text = text[:-2].strip()
            is_collection = True
            continue
        m = _GENERIC.match(text)
        if not m:
            break
        outer, inner = m.group(1), m.group(2)
        args = _split_type_args(inner)
        leaf = outer.split(".")[-1]
        if leaf in _COLLECTION_WRAPPERS and args:
            text = args[0].rstrip("?").strip()
            is_collection = True
        elif leaf in _MAP_WRAPPERS and args:
            text = args[-1].rstrip("?").strip()
            is_collection = True
        else:
            text = outer
            break

    return text.split(".")[-1], is_collection


def signature_type_names(type_text: str) -> list[str]:
    """
    Every non-builtin type name mentioned in a method signature type.

    "Promise<User>"            → ["User"]
    "User | Admin"             → ["User", "Admin"]
    "Map<string, Order[]>"     → ["Order"]
    "Page<User> & Auditable"   → ["Page", "User", "Auditable"]
    """
    names: list[str] = []
    pending = [type_text or ""]
    while pending:
        text = pending.pop(0).strip().rstrip("?").strip()
        if not text:
            continue
        parts = _split_type_args(text, ",|&")
        if len(parts) > 1:
            pending[:0] = parts
            continue
        if text.startswith("(") and text.endswith(")"):
            pending.insert(0, text[1:-1])
            continue
        if text.endswith("[]"):
            pending.insert(0, text[:-2])
            continue
        m = _GENERIC.match(text)
        if m:
            pending.insert(0, m.group(2))
            text = m.group(1)
        leaf = text.split(".")[-1]
        if leaf not in BUILTIN_TYPES and leaf not in names:
            names.append(leaf)
    return names


def _edge(kind: RelationshipKind, source_id: str, target_id: str) -> RelationshipEdge:
    return RelationshipEdge(
        id=f"{source_id}->{target_id}:{kind.value}",
        kind=kind,
        source_id=source_id,
        target_id=target_id,
    )


class RelationshipAnalyzer:
    def __init__(self, entities: Iterable[EntityDescriptor]) -> None:
        self._entities = list(entities)
        # First declaration wins on name collisions, per kind and overall
        self._by_name: dict[str, EntityDescriptor] = {}
        self._by_kind: dict[tuple[str, EntityKind], EntityDescriptor] = {}
        for e in self._entities:
            self._by_name.setdefault(e.name, e)
            self._by_kind.setdefault((e.name, e.kind), e)

    def _lookup(self, name: str, kind: EntityKind | None = None) -> EntityDescriptor | None:
        if not name or name in BUILTIN_TYPES:
            return None
        if kind is None:
            return self._by_name.get(name)
        return self._by_kind.get((name, kind))

    def analyze(self) -> list[RelationshipEdge]:
        edges: list[RelationshipEdge] = []
        for entity in self._entities:
            edges.extend(self._supertype_edges(entity))
            for member in entity.members:
                edges.extend(self._member_edges(entity, member))

        # Deduplicate on (source, target, kind); drop self edges
        seen: set[tuple[str, str, RelationshipKind]] = set()
        unique: list[RelationshipEdge] = []
        for e in edges:
            if e.source_id == e.target_id:
                continue
            key = (e.source_id, e.target_id, e.kind)
            if key not in seen:
                seen.add(key)
                unique.append(e)

        log.debug(
            "Inferred %d relationships (%d before dedup) over %d entities",
            len(unique), len(edges), len(self._entities),
        )
        return unique

    def _supertype_edges(self, entity: EntityDescriptor) -> list[RelationshipEdge]:
        edges: list[RelationshipEdge] = []
        if entity.kind is EntityKind.CLASS:
            if entity.extends_class:
                parent_name, _ = strip_type(entity.extends_class)
                parent = self._lookup(parent_name, EntityKind.CLASS)
                if parent:
                    edges.append(_edge(RelationshipKind.INHERITANCE, entity.id, parent.id))
            for iface_name in entity.implements_interfaces:
                name, _ = strip_type(iface_name)
                iface = self._lookup(name, EntityKind.INTERFACE)
                if iface:
                    edges.append(_edge(RelationshipKind.REALIZATION, entity.id, iface.id))
        elif entity.kind is EntityKind.INTERFACE:
            for parent_name in entity.extends_interfaces:
                name, _ = strip_type(parent_name)
                parent = self._lookup(name, EntityKind.INTERFACE)
                if parent:
                    edges.append(_edge(RelationshipKind.INHERITANCE, entity.id, parent.id))
        else:
            raise ContractError(f"unknown entity kind: {entity.kind!r}")
        return edges

    def _member_edges(
        self, entity: EntityDescriptor, member: MemberDescriptor
    ) -> list[RelationshipEdge]:
        edges: list[RelationshipEdge] = []
        if not member.is_method:
            name, is_collection = strip_type(member.type_text)
            target = self._lookup(name)
            if target:
                kind = RelationshipKind.AGGREGATION if is_collection else RelationshipKind.ASSOCIATION
                edges.append(_edge(kind, entity.id, target.id))
            return edges

        # Return and parameter types are uses, never ownership
        for type_text in [member.type_text, *(p.type_text for p in member.parameters)]:
            for name in signature_type_names(type_text):
                target = self._lookup(name)
                if target:
                    edges.append(_edge(RelationshipKind.ASSOCIATION, entity.id, target.id))
        return edges


def analyze_relationships(entities: Iterable[EntityDescriptor]) -> list[RelationshipEdge]:
    """Infer the deduplicated relationship list for a working set of entities."""
    return RelationshipAnalyzer(entities).analyze()
