import pytest
from pydantic import ValidationError

from config import BuilderConfig
from rule_tree import (
    ChildRef,
    ChildType,
    CommandStatus,
    Filter,
    FilterCommand,
    Group,
    GroupCommand,
    LogicType,
    MoveRequest,
    RejectionKind,
    RuleBuilder
)
from rule_tree.models import FilterAction, GroupAction
from rule_tree.store import check_store


@pytest.fixture
def tree(builder):
    """Returns ids of: 1. a  (1.1 fa, 1.2 b (1.2.1 fb)), 2. c"""
    ids = {}
    ids["a"] = builder.create_group("A").node_id
    ids["fa"] = builder.create_filter("plan", "premium", "equals", ids["a"]).node_id
    ids["b"] = builder.create_group("B", "OR", parent_id=ids["a"]).node_id
    ids["fb"] = builder.create_filter("date", "2024-01-01", "is after", ids["b"]).node_id
    ids["c"] = builder.create_group("C").node_id
    return ids


def test_create_assigns_generated_ids(builder):
    result = builder.create_group("First")

    assert result.status == CommandStatus.APPLIED
    assert result.node_id == "node-1"
    assert builder.store.top_level == ("node-1",)
    assert builder.store.get_group("node-1").logic == LogicType.AND


def test_reveal_is_delivered_after_commit(builder):
    seen = []

    def listener(event):
        # the committed store already contains the revealed node
        seen.append((event.node_id, builder.store.has_id(event.node_id), event.ancestor_ids))

    builder.subscribe(listener)
    parent = builder.create_group("Parent").node_id
    child = builder.create_group("Child", parent_id=parent).node_id
    leaf = builder.create_filter("f", "v", "equals", child).node_id

    assert seen == [
        (parent, True, ()),
        (child, True, (parent,)),
        (leaf, True, (parent, child)),
    ]


def test_unsubscribe_and_failing_listener(builder):
    calls = []

    def broken(event):
        raise RuntimeError("listener bug")

    builder.subscribe(broken)
    unsubscribe = builder.subscribe(calls.append)

    result = builder.create_group("Still created")
    assert result.applied
    assert builder.store.has_id(result.node_id)
    assert len(calls) == 1

    unsubscribe()
    builder.create_group("Unseen")
    assert len(calls) == 1


def test_no_events_for_rejected_commands(builder):
    events = []
    builder.subscribe(events.append)

    result = builder.create_group("Orphan", parent_id="missing")

    assert result.rejection.kind == RejectionKind.NOT_FOUND
    assert events == []
    assert builder.store.is_empty


def test_invalid_input_is_rejected(builder, tree):
    store = builder.store

    blank = builder.create_group("   ")
    assert blank.rejection.kind == RejectionKind.INVALID_INPUT
    assert "Title is required" in blank.message

    bad_operator = builder.create_filter("f", "v", "contains", tree["a"])
    assert bad_operator.rejection.kind == RejectionKind.INVALID_INPUT

    bad_logic = builder.set_logic(tree["a"], "XOR")
    assert bad_logic.rejection.kind == RejectionKind.INVALID_INPUT

    assert builder.store is store


def test_edit_group_and_logic(builder, tree):
    builder.edit_group(tree["b"], "Renamed")
    group = builder.store.get_group(tree["b"])
    assert group.title == "Renamed"
    assert group.logic == LogicType.OR

    builder.set_logic(tree["b"], LogicType.AND)
    assert builder.store.get_group(tree["b"]).logic == LogicType.AND
    assert builder.store.get_group(tree["b"]).children == (ChildRef(type=ChildType.FILTER, id=tree["fb"]),)


def test_edit_missing_nodes(builder, tree):
    store = builder.store

    assert builder.edit_group("ghost", "Nope").rejection.kind == RejectionKind.NOT_FOUND
    assert builder.edit_filter("ghost", "f", "v", "equals").rejection.kind == RejectionKind.NOT_FOUND
    assert builder.store is store


def test_edit_filter(builder, tree):
    result = builder.edit_filter(tree["fb"], "date", "2023-06-01", "is before")

    flt = builder.store.get_filter(tree["fb"])
    assert result.applied
    assert flt.value == "2023-06-01"
    assert flt.parent_id == tree["b"]


def test_blocked_group_gates_nested_commands(builder, tree):
    builder.set_blocked(tree["a"])
    store = builder.store

    for result in (
        builder.create_group("Nested", parent_id=tree["a"]),
        builder.create_filter("f", "v", "equals", tree["b"]),
        builder.edit_group(tree["b"], "Blocked edit"),
        builder.edit_filter(tree["fa"], "f", "v", "equals"),
        builder.set_blocked(tree["b"]),
        builder.set_paused(tree["b"]),
        builder.move(0, 1, scope=tree["a"]),
    ):
        assert result.rejection.kind == RejectionKind.INTERACTION_DISABLED

    assert builder.store is store

    # the blocked group itself can still be unblocked and reordered
    assert builder.move(0, 1).applied
    assert builder.set_blocked(tree["a"], False).applied
    assert builder.create_filter("f", "v", "equals", tree["b"]).applied


def test_gates_can_be_disabled(id_factory):
    builder = RuleBuilder(BuilderConfig(enforce_interaction_gates=False), id_factory=id_factory)
    parent = builder.create_group("Parent").node_id
    builder.set_blocked(parent)

    assert builder.create_group("Child", parent_id=parent).applied
    assert builder.project().find(parent).effective_blocked


def test_toggles_live_outside_the_store(builder, tree):
    store = builder.store

    assert builder.set_paused(tree["a"]).applied
    assert builder.set_paused(tree["a"]).status == CommandStatus.NO_OP
    assert builder.store is store
    assert builder.flags_for(tree["a"]).paused

    view = builder.project()
    assert view.find(tree["fb"]).effective_paused
    assert not view.find(tree["c"]).effective_paused


def test_toggle_missing_group(builder):
    assert builder.set_blocked("ghost").rejection.kind == RejectionKind.NOT_FOUND


def test_move_and_display_index(builder, tree):
    view = builder.project()
    assert view.find(tree["b"]).display_index == "1.2"

    result = builder.move(1, 0, scope=tree["a"])

    assert result.applied
    view = builder.project()
    assert view.find(tree["b"]).display_index == "1.1"
    assert view.find(tree["fa"]).display_index == "1.2"


def test_move_scope_mismatch(builder, tree):
    store = builder.store

    result = builder.move(0, 1, scope=tree["a"], dragged_scope=None)

    assert result.rejection.kind == RejectionKind.SCOPE_MISMATCH
    assert "same parent" in result.message
    assert builder.store is store


def test_move_node_by_id(builder, tree):
    result = builder.move_node(tree["c"], 0)

    assert result.applied
    assert builder.store.top_level == (tree["c"], tree["a"])
    assert builder.move_node("ghost", 0).rejection.kind == RejectionKind.NOT_FOUND
    assert builder.move_node(tree["fa"], 3).rejection.kind == RejectionKind.OUT_OF_RANGE


def test_dispatch_command_objects(builder):
    builder.dispatch(GroupCommand(action=GroupAction.CREATE, group=Group(group_id="top", title="Top")))
    builder.dispatch(GroupCommand(
        action=GroupAction.SUB_CREATE, group=Group(group_id="sub", title="Sub"), parent_id="top"
    ))
    builder.dispatch(FilterCommand(
        action=FilterAction.CREATE,
        filter=Filter(filter_id="leaf", field="f", value="v", operator="equals", parent_id="top")
    ))
    result = builder.dispatch(MoveRequest(from_index=1, to_index=0, scope="top"))

    assert result.applied
    assert [ref.id for ref in builder.store.get_group("top").children] == ["leaf", "sub"]
    assert check_store(builder.store).valid


def test_many_commands_keep_store_consistent(builder):
    parents = [builder.create_group(f"Top {i}").node_id for i in range(3)]
    for i in range(12):
        parent = parents[i % len(parents)]
        if i % 2:
            builder.create_filter("field", str(i), "equals", parent)
        else:
            parents.append(builder.create_group(f"Sub {i}", parent_id=parent).node_id)
        builder.move(0, 1)
        builder.move_node(parents[-1], 0)

    assert check_store(builder.store).valid
    assert len(list(builder.project().walk())) == builder.store.group_count + builder.store.filter_count


def test_malformed_move_is_rejected(builder, tree):
    store = builder.store

    for result in (
        builder.move("x", 1),
        builder.move(0, None),
        builder.move(0, 1, draged_scope=None),
        builder.move_node(tree["c"], "first"),
    ):
        assert result.status == CommandStatus.REJECTED
        assert result.rejection.kind == RejectionKind.INVALID_INPUT

    assert builder.store is store


def test_same_position_move_is_a_no_op_for_locked_elements(builder):
    only = builder.create_group("Only").node_id
    store = builder.store

    result = builder.move(0, 0)

    assert result.status == CommandStatus.NO_OP
    assert result.ok
    assert result.node_id == only
    assert builder.store is store

    child = builder.create_group("Child", parent_id=only).node_id
    builder.create_group("Sibling", parent_id=only)
    builder.set_blocked(only)
    assert builder.move(0, 0, scope=only).status == CommandStatus.NO_OP
    assert builder.move(0, 1, scope=only).rejection.kind == RejectionKind.INTERACTION_DISABLED
    assert builder.store.get_group(only).children[0].id == child
    assert builder.move(5, 5).rejection.kind == RejectionKind.OUT_OF_RANGE


def test_create_command_cannot_nest_a_group(builder):
    parent = builder.create_group("Parent").node_id
    builder.set_blocked(parent)

    with pytest.raises(ValidationError):
        GroupCommand(
            action=GroupAction.CREATE,
            group=Group(group_id="nested", title="Nested", parent_id=parent)
        )

    result = builder.dispatch(GroupCommand(
        action=GroupAction.SUB_CREATE, group=Group(group_id="nested", title="Nested"), parent_id=parent
    ))
    assert result.rejection.kind == RejectionKind.INTERACTION_DISABLED
    assert builder.store.get_group(parent).children == ()
