"""End-to-end tests for one regeneration cycle, plus property tests."""

from dataclasses import replace

from hypothesis import given, settings
from hypothesis import strategies as st

from umlsynth.models import (
    DiagramScope,
    DiagramState,
    EntityDescriptor,
    MemberDescriptor,
    Position,
    RelationshipKind,
    ScopeMode,
)
from umlsynth.pipeline import ProjectSnapshot, regenerate

FILE = ScopeMode.FILE
PROJECT = ScopeMode.PROJECT


def _project() -> ProjectSnapshot:
    """
    app.ts imports models.ts; util.ts is imported by nobody.

    Employee (app) extends Person (models); Report (util) references Employee.
    """
    person = EntityDescriptor.new_class("Person", "models.ts", members=[
        MemberDescriptor(name="name", type_text="string"),
    ])
    employee = EntityDescriptor.new_class("Employee", "app.ts", extends_class="Person")
    report = EntityDescriptor.new_class("Report", "util.ts", members=[
        MemberDescriptor(name="authors", type_text="Employee[]"),
    ])
    return ProjectSnapshot(
        entities_by_file={
            "models.ts": (person,),
            "app.ts": (employee,),
            "util.ts": (report,),
        },
        imports_by_file={"app.ts": ("models.ts", "react"), "util.ts": ("app.ts",)},
    )


def _ids(update) -> list[str]:
    return [n.id for n in update.state.nodes]


# =========================================================================
# Tests: regeneration
# =========================================================================

class TestRegenerate:
    def test_file_view_follows_imports(self):
        update = regenerate(_project(), DiagramScope(FILE, "app.ts"))

        assert _ids(update) == ["app.ts::Employee", "models.ts::Person"]
        assert [(e.source, e.target, e.kind) for e in update.state.edges] == [
            ("app.ts::Employee", "models.ts::Person", RelationshipKind.INHERITANCE),
        ]
        assert update.significant
        assert update.diff.nodes_added == ("app.ts::Employee", "models.ts::Person")

    def test_relationships_recomputed_against_scope(self):
        update = regenerate(_project(), DiagramScope(FILE, "models.ts"))
        assert _ids(update) == ["models.ts::Person"]
        assert update.state.edges == ()

    def test_project_view_shows_everything(self):
        update = regenerate(_project(), DiagramScope(PROJECT))
        assert sorted(_ids(update)) == ["app.ts::Employee", "models.ts::Person", "util.ts::Report"]
        kinds = sorted(e.kind.value for e in update.state.edges)
        assert kinds == ["aggregation", "inheritance"]

    def test_missing_active_file_gives_empty_diagram(self):
        update = regenerate(_project(), DiagramScope(FILE, "gone.ts"))
        assert update.state == DiagramState()
        assert update.scope.total_before_filter == 3

    def test_unchanged_regeneration_is_not_significant(self):
        project = _project()
        scope = DiagramScope(FILE, "app.ts")
        first = regenerate(project, scope)

        second = regenerate(project, scope, previous=first.state)

        assert not second.significant
        assert second.state == first.state

    def test_dragged_positions_survive(self):
        project = _project()
        scope = DiagramScope(PROJECT)
        first = regenerate(project, scope)
        dragged = DiagramState(
            nodes=tuple(replace(n, position=Position(999.0, 999.0)) for n in first.state.nodes),
            edges=first.state.edges,
        )

        second = regenerate(project, scope, previous=dragged)

        assert {n.position for n in second.state.nodes} == {Position(999.0, 999.0)}

    def test_new_entity_is_significant_and_laid_out(self):
        project = _project()
        scope = DiagramScope(PROJECT)
        first = regenerate(project, scope)

        grown = replace(project, entities_by_file={
            **project.entities_by_file,
            "extra.ts": (EntityDescriptor.new_class("Extra", "extra.ts"),),
        })
        second = regenerate(grown, scope, previous=first.state)

        assert second.significant
        assert second.diff.nodes_added == ("extra.ts::Extra",)
        previous = {n.id: n.position for n in first.state.nodes}
        for n in second.state.nodes:
            if n.id in previous:
                assert n.position == previous[n.id]

    def test_paths_resolve_relative_imports(self):
        project = ProjectSnapshot(
            entities_by_file={
                "1": (EntityDescriptor.new_class("Shape", "1"),),
                "2": (EntityDescriptor.new_class("Circle", "2", extends_class="Shape"),),
            },
            imports_by_file={"2": ("./shape",)},
            file_paths={"1": "src/shape.ts", "2": "src/circle.ts"},
        )
        update = regenerate(project, DiagramScope(FILE, "2"))
        assert _ids(update) == ["2::Circle", "1::Shape"]
        assert len(update.state.edges) == 1


# =========================================================================
# Property tests
# =========================================================================

NAMES = ["Alpha", "Beta", "Gamma", "Delta", "Omega", "Sigma"]


@st.composite
def _snapshots(draw):
    n_files = draw(st.integers(min_value=1, max_value=4))
    files = [f"f{i}.ts" for i in range(n_files)]
    names = draw(st.lists(st.sampled_from(NAMES), unique=True, max_size=len(NAMES)))

    entities: dict[str, list[EntityDescriptor]] = {f: [] for f in files}
    for name in names:
        file_id = draw(st.sampled_from(files))
        parent = draw(st.none() | st.sampled_from(NAMES))
        refs = draw(st.lists(st.sampled_from(NAMES + ["string"]), max_size=3))
        members = [
            MemberDescriptor(name=f"m{i}", type_text=ref + ("[]" if i % 2 else ""))
            for i, ref in enumerate(refs)
        ]
        entities[file_id].append(
            EntityDescriptor.new_class(name, file_id, members=members, extends_class=parent)
        )

    imports = {
        f: tuple(draw(st.lists(st.sampled_from(files + ["external"]), max_size=3)))
        for f in files
    }
    active = draw(st.sampled_from(files))
    return ProjectSnapshot(
        entities_by_file={k: tuple(v) for k, v in entities.items()},
        imports_by_file=imports,
    ), active


class TestPipelineProperties:
    @settings(max_examples=50, deadline=None)
    @given(_snapshots(), st.sampled_from([FILE, PROJECT]))
    def test_deterministic(self, snapshot, mode):
        project, active = snapshot
        scope = DiagramScope(mode, active)
        assert regenerate(project, scope) == regenerate(project, scope)

    @settings(max_examples=50, deadline=None)
    @given(_snapshots(), st.sampled_from([FILE, PROJECT]))
    def test_regenerating_onto_itself_is_a_no_op(self, snapshot, mode):
        project, active = snapshot
        scope = DiagramScope(mode, active)
        first = regenerate(project, scope)
        second = regenerate(project, scope, previous=first.state)
        assert not second.significant
        assert second.state == first.state

    @settings(max_examples=50, deadline=None)
    @given(_snapshots())
    def test_project_view_is_complete(self, snapshot):
        project, _ = snapshot
        update = regenerate(project, DiagramScope(PROJECT))
        expected = {e.id for entities in project.entities_by_file.values() for e in entities}
        assert set(_ids(update)) == expected

    @settings(max_examples=50, deadline=None)
    @given(_snapshots())
    def test_file_view_contains_active_file(self, snapshot):
        project, active = snapshot
        update = regenerate(project, DiagramScope(FILE, active))
        assert {e.id for e in project.entities_by_file[active]} <= set(_ids(update))

    @settings(max_examples=50, deadline=None)
    @given(_snapshots(), st.sampled_from([FILE, PROJECT]))
    def test_edges_stay_inside_visible_set(self, snapshot, mode):
        project, active = snapshot
        update = regenerate(project, DiagramScope(mode, active))
        ids = set(_ids(update))
        for e in update.state.edges:
            assert e.source in ids and e.target in ids
            assert e.source != e.target
