import pytest
from pydantic import ValidationError

from rule_tree import ChildType, ChildRef, EntityStore, Group, Filter
from rule_tree.store import StoreIntegrityChecker, check_store
from exceptions import TreeIntegrityError


def test_empty_store():
    store = EntityStore()
    assert store.is_empty
    assert store.list(ChildType.GROUP) == []
    assert store.list(ChildType.FILTER) == []
    assert store.get(ChildType.GROUP, "missing") is None


def test_get_and_list_in_store_order(nested_store):
    assert nested_store.list(ChildType.GROUP) == ["g1", "g2", "g3", "g4", "g5"]
    assert nested_store.list(ChildType.FILTER) == ["f1", "f2", "f3"]
    assert nested_store.get(ChildType.GROUP, "g2").title == "Activity"
    assert nested_store.get(ChildType.FILTER, "f2").parent_id == "g2"
    # kinds are not interchangeable
    assert nested_store.get(ChildType.FILTER, "g1") is None


def test_top_level_order_tracks_only_top_level_groups(nested_store):
    assert nested_store.top_level == ("g1", "g3", "g4", "g5")


def test_ancestors_and_positions(nested_store):
    assert nested_store.ancestors("f2") == ["g1", "g2"]
    assert nested_store.ancestors("g1") == []
    assert nested_store.position_of("g2") == 1
    assert nested_store.position_of("g4") == 2
    assert nested_store.position_of("nope") is None
    assert nested_store.kind_of("f3") == ChildType.FILTER
    assert nested_store.parent_of("g2") == "g1"


def test_store_is_frozen(nested_store):
    with pytest.raises(ValidationError):
        nested_store.top_level = ()


def test_group_title_is_trimmed_and_required():
    assert Group(group_id="g", title="  Spaced  ").title == "Spaced"
    with pytest.raises(ValidationError):
        Group(group_id="g", title="   ")


def test_filter_rejects_unknown_operator():
    with pytest.raises(ValidationError):
        Filter(filter_id="f", field="a", value="b", operator="contains", parent_id="g")


def test_integrity_of_engine_built_store(nested_store):
    result = check_store(nested_store)
    assert result.valid
    assert result.errors == []


def test_integrity_detects_dangling_reference():
    group = Group(group_id="g1", title="Broken", children=(ChildRef(type=ChildType.FILTER, id="ghost"),))
    store = EntityStore(groups={"g1": group}, top_level=("g1",))

    result = check_store(store)
    assert not result.valid
    assert any("ghost" in error for error in result.errors)

    with pytest.raises(TreeIntegrityError):
        StoreIntegrityChecker().ensure_valid(store)


def test_integrity_detects_parent_cycle():
    a = Group(group_id="a", title="A", parent_id="b", children=(ChildRef(type=ChildType.GROUP, id="b"),))
    b = Group(group_id="b", title="B", parent_id="a", children=(ChildRef(type=ChildType.GROUP, id="a"),))
    store = EntityStore(groups={"a": a, "b": b})

    result = check_store(store)
    assert not result.valid
    assert any("cycle" in error for error in result.errors)


def test_snapshots_are_read_only(nested_store):
    with pytest.raises(TypeError):
        nested_store.groups["g9"] = Group(group_id="g9", title="Sneaky")
    with pytest.raises(TypeError):
        EntityStore().filters["f9"] = Filter(filter_id="f9", field="a", value="b", operator="equals", parent_id="g1")
    with pytest.raises(ValidationError):
        nested_store.top_level = ()

    updated = nested_store.replace(top_level=("g3", "g1", "g4", "g5"))

    assert updated.top_level == ("g3", "g1", "g4", "g5")
    assert nested_store.top_level == ("g1", "g3", "g4", "g5")
    assert updated.groups == nested_store.groups
    with pytest.raises(TypeError):
        updated.groups["g9"] = Group(group_id="g9", title="Sneaky")
