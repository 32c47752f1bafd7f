"""Tests for relationship inference between entities."""

import pytest

from umlsynth.models import (
    ContractError,
    EntityDescriptor,
    EntityKind,
    MemberDescriptor,
    MemberKind,
    Parameter,
    RelationshipKind,
)
from umlsynth.relationships import analyze_relationships, signature_type_names, strip_type


def _prop(name: str, type_text: str) -> MemberDescriptor:
    return MemberDescriptor(name=name, type_text=type_text)


def _kinds(edges) -> list[tuple[str, str, RelationshipKind]]:
    return [(e.source_id, e.target_id, e.kind) for e in edges]


# =========================================================================
# Tests: type text stripping
# =========================================================================

class TestStripType:
    @pytest.mark.parametrize("text,expected", [
        ("Person", ("Person", False)),
        ("Person[]", ("Person", True)),
        ("Array<Person>", ("Person", True)),
        ("List<Person?>", ("Person", True)),
        ("Set<Person>", ("Person", True)),
        ("Map<string, Person>", ("Person", True)),
        ("Container<Person>", ("Container", False)),
        ("Person | null", ("Person", False)),
        ("Person?", ("Person", False)),
        ("models.Person", ("Person", False)),
        ("Array<Map<string, Person>>", ("Person", True)),
        ("", ("", False)),
    ])
    def test_strip(self, text, expected):
        assert strip_type(text) == expected


# =========================================================================
# Tests: supertype relationships
# =========================================================================

class TestInheritance:
    def test_class_extends_class(self):
        person = EntityDescriptor.new_class("Person", "person.ts")
        employee = EntityDescriptor.new_class("Employee", "employee.ts", extends_class="Person")

        edges = analyze_relationships([person, employee])

        assert len(edges) == 1
        edge = edges[0]
        assert edge.kind is RelationshipKind.INHERITANCE
        assert edge.source_id == employee.id
        assert edge.target_id == person.id
        assert edge.id == "employee.ts::Employee->person.ts::Person:inheritance"

    def test_unknown_parent_produces_no_edge(self):
        employee = EntityDescriptor.new_class("Employee", "e.ts", extends_class="Person")
        assert analyze_relationships([employee]) == []

    def test_class_cannot_extend_interface(self):
        shape = EntityDescriptor.new_interface("Shape", "s.ts")
        circle = EntityDescriptor.new_class("Circle", "c.ts", extends_class="Shape")
        assert analyze_relationships([shape, circle]) == []

    def test_interface_extends_interfaces(self):
        a = EntityDescriptor.new_interface("Readable", "io.ts")
        b = EntityDescriptor.new_interface("Writable", "io.ts")
        c = EntityDescriptor.new_interface("Stream", "io.ts", extends_interfaces=["Readable", "Writable"])

        edges = analyze_relationships([a, b, c])

        assert _kinds(edges) == [
            (c.id, a.id, RelationshipKind.INHERITANCE),
            (c.id, b.id, RelationshipKind.INHERITANCE),
        ]

    def test_generic_supertype_is_matched_by_bare_name(self):
        base = EntityDescriptor.new_class("Repository", "repo.ts", type_params=["T"])
        users = EntityDescriptor.new_class("UserRepository", "users.ts", extends_class="Repository<User>")
        edges = analyze_relationships([base, users])
        assert _kinds(edges) == [(users.id, base.id, RelationshipKind.INHERITANCE)]


class TestRealization:
    def test_one_edge_per_matched_interface(self):
        shape = EntityDescriptor.new_interface("Shape", "shape.ts")
        drawable = EntityDescriptor.new_interface("Drawable", "draw.ts")
        circle = EntityDescriptor.new_class(
            "Circle", "circle.ts", implements_interfaces=["Shape", "Drawable", "Serializable"],
        )

        edges = analyze_relationships([shape, drawable, circle])

        assert _kinds(edges) == [
            (circle.id, shape.id, RelationshipKind.REALIZATION),
            (circle.id, drawable.id, RelationshipKind.REALIZATION),
        ]

    def test_implementing_a_class_is_ignored(self):
        base = EntityDescriptor.new_class("Base", "b.ts")
        impl = EntityDescriptor.new_class("Impl", "i.ts", implements_interfaces=["Base"])
        assert analyze_relationships([base, impl]) == []


# =========================================================================
# Tests: member relationships
# =========================================================================

class TestMemberRelationships:
    def setup_method(self):
        self.address = EntityDescriptor.new_class("Address", "address.ts")

    def _owner(self, *members: MemberDescriptor) -> EntityDescriptor:
        return EntityDescriptor.new_class("Customer", "customer.ts", members=list(members))

    def test_plain_reference_is_association(self):
        owner = self._owner(_prop("home", "Address"))
        edges = analyze_relationships([owner, self.address])
        assert _kinds(edges) == [(owner.id, self.address.id, RelationshipKind.ASSOCIATION)]

    @pytest.mark.parametrize("type_text", [
        "Address[]", "Array<Address>", "List<Address>", "Map<string, Address>",
    ])
    def test_collection_wrapper_is_aggregation(self, type_text):
        owner = self._owner(_prop("addresses", type_text))
        edges = analyze_relationships([owner, self.address])
        assert _kinds(edges) == [(owner.id, self.address.id, RelationshipKind.AGGREGATION)]

    def test_nullable_union_is_association(self):
        owner = self._owner(_prop("billing", "Address | null"))
        edges = analyze_relationships([owner, self.address])
        assert edges[0].kind is RelationshipKind.ASSOCIATION

    def test_builtin_and_unknown_types_produce_nothing(self):
        owner = self._owner(_prop("name", "string"), _prop("geo", "GeoPoint"), _prop("at", "Date"))
        assert analyze_relationships([owner, self.address]) == []

    def test_builtin_name_never_matches_even_if_declared(self):
        date = EntityDescriptor.new_class("Date", "date.ts")
        owner = self._owner(_prop("created", "Date"))
        assert analyze_relationships([owner, date]) == []

    def test_self_reference_excluded(self):
        node = EntityDescriptor.new_class(
            "TreeNode", "tree.ts", members=[_prop("parent", "TreeNode"), _prop("children", "TreeNode[]")],
        )
        assert analyze_relationships([node]) == []

    def test_deduplicated_per_source_target_kind(self):
        owner = self._owner(
            _prop("home", "Address"),
            _prop("work", "Address"),
            _prop("history", "Address[]"),
        )
        edges = analyze_relationships([owner, self.address])
        assert _kinds(edges) == [
            (owner.id, self.address.id, RelationshipKind.ASSOCIATION),
            (owner.id, self.address.id, RelationshipKind.AGGREGATION),
        ]

    def test_method_parameters_are_associations(self):
        ship = MemberDescriptor(
            name="shipTo",
            type_text="void",
            kind=MemberKind.METHOD,
            parameters=(Parameter(name="targets", type_text="Address[]"),),
        )
        owner = self._owner(ship)
        edges = analyze_relationships([owner, self.address])
        assert _kinds(edges) == [(owner.id, self.address.id, RelationshipKind.ASSOCIATION)]

    def test_interface_members_participate(self):
        iface = EntityDescriptor.new_interface("HasAddress", "h.ts", members=[_prop("address", "Address")])
        edges = analyze_relationships([iface, self.address])
        assert _kinds(edges) == [(iface.id, self.address.id, RelationshipKind.ASSOCIATION)]


# =========================================================================
# Tests: name matching and ordering
# =========================================================================

class TestNameMatching:
    def test_first_declaration_wins_on_collision(self):
        first = EntityDescriptor.new_class("Config", "a/config.ts")
        second = EntityDescriptor.new_class("Config", "b/config.ts")
        app = EntityDescriptor.new_class("App", "app.ts", members=[_prop("config", "Config")])

        edges = analyze_relationships([first, second, app])

        assert [e.target_id for e in edges] == [first.id]

    def test_output_is_deterministic(self):
        person = EntityDescriptor.new_class("Person", "p.ts")
        team = EntityDescriptor.new_class(
            "Team", "t.ts", members=[_prop("lead", "Person"), _prop("members", "Person[]")],
        )
        assert analyze_relationships([person, team]) == analyze_relationships([person, team])

    def test_empty_input(self):
        assert analyze_relationships([]) == []


class TestContract:
    def test_missing_id_fields_rejected(self):
        with pytest.raises(ContractError):
            EntityDescriptor.new_class("", "a.ts")
        with pytest.raises(ContractError):
            EntityDescriptor.new_class("A", "")

    def test_interface_with_class_fields_rejected(self):
        with pytest.raises(ContractError):
            EntityDescriptor(
                kind=EntityKind.INTERFACE, id="a::I", name="I", file_id="a", extends_class="Base",
            )


# =========================================================================
# Tests: method signatures
# =========================================================================

class TestSignatureTypeNames:
    @pytest.mark.parametrize("text,expected", [
        ("Promise<User>", ["User"]),
        ("User | Admin", ["User", "Admin"]),
        ("Map<string, Order[]>", ["Order"]),
        ("Page<User> & Auditable", ["Page", "User", "Auditable"]),
        ("Future<List<Quest>>?", ["Quest"]),
        ("(User | null)[]", ["User"]),
        ("void", []),
        ("", []),
    ])
    def test_names(self, text, expected):
        assert signature_type_names(text) == expected


class TestMethodRelationships:
    def setup_method(self):
        self.user = EntityDescriptor.new_class("User", "user.ts")
        self.admin = EntityDescriptor.new_class("Admin", "admin.ts")

    def _repo(self, *methods: MemberDescriptor) -> EntityDescriptor:
        return EntityDescriptor.new_class("Repo", "repo.ts", members=list(methods))

    def test_generic_return_type(self):
        repo = self._repo(MemberDescriptor(name="load", type_text="Promise<User>", kind=MemberKind.METHOD))
        edges = analyze_relationships([repo, self.user])
        assert _kinds(edges) == [(repo.id, self.user.id, RelationshipKind.ASSOCIATION)]

    def test_union_return_type(self):
        repo = self._repo(MemberDescriptor(name="pick", type_text="User | Admin", kind=MemberKind.METHOD))
        edges = analyze_relationships([repo, self.user, self.admin])
        assert _kinds(edges) == [
            (repo.id, self.user.id, RelationshipKind.ASSOCIATION),
            (repo.id, self.admin.id, RelationshipKind.ASSOCIATION),
        ]

    def test_collection_return_is_association(self):
        repo = self._repo(MemberDescriptor(name="all", type_text="User[]", kind=MemberKind.METHOD))
        edges = analyze_relationships([repo, self.user])
        assert _kinds(edges) == [(repo.id, self.user.id, RelationshipKind.ASSOCIATION)]

    def test_wrapped_parameter_type(self):
        save = MemberDescriptor(
            name="save",
            type_text="Promise<void>",
            kind=MemberKind.METHOD,
            parameters=(Parameter(name="who", type_text="Partial<Admin>"),),
        )
        repo = self._repo(save)
        edges = analyze_relationships([repo, self.admin])
        assert _kinds(edges) == [(repo.id, self.admin.id, RelationshipKind.ASSOCIATION)]


class TestKindAwareLookup:
    def test_class_found_behind_same_named_interface(self):
        iface = EntityDescriptor.new_interface("Base", "a.ts")
        base = EntityDescriptor.new_class("Base", "b.ts")
        sub = EntityDescriptor.new_class("Sub", "c.ts", extends_class="Base")

        edges = analyze_relationships([iface, base, sub])

        assert _kinds(edges) == [(sub.id, base.id, RelationshipKind.INHERITANCE)]

    def test_interface_found_behind_same_named_class(self):
        base = EntityDescriptor.new_class("Shape", "a.ts")
        iface = EntityDescriptor.new_interface("Shape", "b.ts")
        circle = EntityDescriptor.new_class("Circle", "c.ts", implements_interfaces=["Shape"])
        ext = EntityDescriptor.new_interface("Solid", "d.ts", extends_interfaces=["Shape"])

        edges = analyze_relationships([base, iface, circle, ext])

        assert _kinds(edges) == [
            (circle.id, iface.id, RelationshipKind.REALIZATION),
            (ext.id, iface.id, RelationshipKind.INHERITANCE),
        ]

    def test_member_reference_takes_first_of_any_kind(self):
        iface = EntityDescriptor.new_interface("Base", "a.ts")
        base = EntityDescriptor.new_class("Base", "b.ts")
        holder = EntityDescriptor.new_class("Holder", "c.ts", members=[_prop("base", "Base")])
        edges = analyze_relationships([iface, base, holder])
        assert [e.target_id for e in edges] == [iface.id]
