import pytest

from rule_tree import ChildRef, ChildType, EntityStore, Group, NodeFlags, StateProjection, project
from exceptions import TreeIntegrityError


def indices(view):
    return [(node.node_id, node.display_index) for node in view.walk()]


def test_display_indices(nested_store):
    view = project(nested_store)

    assert indices(view) == [
        ("g1", "1"),
        ("f1", "1.1"),
        ("g2", "1.2"),
        ("f2", "1.2.1"),
        ("f3", "1.3"),
        ("g3", "2"),
        ("g4", "3"),
        ("g5", "4"),
    ]
    assert view.top_level_count == 4
    assert view.find("f2").depth == 2


def test_display_index_follows_reorder(nested_store, reorder):
    assert project(nested_store).find("g2").display_index == "1.2"

    moved = reorder.move(nested_store, 1, 0, scope="g1").store
    view = project(moved)

    assert view.find("g2").display_index == "1.1"
    assert view.find("f1").display_index == "1.2"
    assert view.find("f2").display_index == "1.1.1"


def test_blocked_cascades_two_levels(nested_store):
    view = project(nested_store, {"g1": NodeFlags(blocked=True), "f2": NodeFlags(blocked=False)})

    f2 = view.find("f2")
    assert f2.blocked is False
    assert f2.effective_blocked is True
    assert view.find("g2").effective_blocked is True
    assert view.find("g3").effective_blocked is False


def test_pause_cascades_independently_of_block(nested_store):
    view = project(nested_store, {"g2": NodeFlags(paused=True)})

    assert view.find("f2").effective_paused is True
    assert view.find("f2").effective_blocked is False
    assert view.find("g1").effective_paused is False
    assert view.find("f1").effective_paused is False


def test_blocked_ancestor_disables_descendant_controls(nested_store):
    view = project(nested_store, {"g1": NodeFlags(blocked=True)})

    g1 = view.find("g1").controls
    assert g1.can_drag and g1.can_toggle_block and g1.can_open_actions
    assert not g1.can_edit and not g1.can_add_children and not g1.can_toggle_logic

    g2 = view.find("g2").controls
    assert not any([g2.can_drag, g2.can_edit, g2.can_add_children, g2.can_toggle_block, g2.can_toggle_pause])

    f1 = view.find("f1").controls
    assert not f1.can_drag and not f1.can_edit


def test_paused_parent_locks_child_pause_toggle(nested_store):
    view = project(nested_store, {"g1": NodeFlags(paused=True)})

    assert view.find("g1").controls.can_toggle_pause
    assert not view.find("g2").controls.can_toggle_pause
    assert view.find("g2").controls.can_edit


def test_sibling_count_gates_reordering(nested_store):
    view = project(nested_store)

    f2 = view.find("f2")
    assert f2.sibling_count == 1
    assert f2.is_last
    assert not f2.controls.can_drag
    assert view.find("g2").sibling_count == 3
    assert view.find("g2").controls.can_drag

    strict = StateProjection(min_siblings_for_reorder=4).project(nested_store)
    assert not strict.find("g2").controls.can_drag
    assert strict.find("g3").controls.can_drag


def test_projection_does_not_touch_store(nested_store):
    groups, filters = dict(nested_store.groups), dict(nested_store.filters)
    project(nested_store, {"g1": NodeFlags(blocked=True, paused=True)})
    assert dict(nested_store.groups) == groups
    assert dict(nested_store.filters) == filters
    assert nested_store.top_level == ("g1", "g3", "g4", "g5")


def test_empty_and_lookup(nested_store):
    assert project(EntityStore()).is_empty
    view = project(nested_store)
    assert view.find_by_display_index("1.2.1").node_id == "f2"
    assert view.find_by_display_index("1.3.").node_id == "f3"
    assert view.find_by_display_index("9") is None
    assert view.find("g2").label == "Activity"
    assert view.find("f3").label == "country not equals FR"


def test_dangling_reference_raises():
    group = Group(group_id="g1", title="Broken", children=(ChildRef(type=ChildType.GROUP, id="ghost"),))
    store = EntityStore(groups={"g1": group}, top_level=("g1",))

    with pytest.raises(TreeIntegrityError):
        project(store)
