import itertools

import pytest
from config import BuilderConfig
from rule_tree import RuleBuilder, EntityStore, MutationEngine, ReorderEngine, Group, Filter


@pytest.fixture
def id_factory():
    """Deterministic identifiers: node-1, node-2, ..."""
    counter = itertools.count(1)
    return lambda: f"node-{next(counter)}"


@pytest.fixture
def builder(id_factory):
    return RuleBuilder(BuilderConfig(), id_factory=id_factory)


@pytest.fixture
def mutations():
    return MutationEngine()


@pytest.fixture
def reorder():
    return ReorderEngine()


@pytest.fixture
def empty_store():
    return EntityStore()


@pytest.fixture
def nested_store(mutations):
    """
    1. g1 (AND)
       1.1 f1
       1.2 g2 (OR)
           1.2.1 f2
       1.3 f3
    2. g3
    3. g4
    4. g5
    """
    store = EntityStore()
    store = mutations.create_group(store, Group(group_id="g1", title="Customers")).store
    store = mutations.create_filter(
        store, Filter(filter_id="f1", field="plan", value="premium", operator="equals", parent_id="g1")
    ).store
    store = mutations.create_group(store, Group(group_id="g2", title="Activity", logic="OR"), parent_id="g1").store
    store = mutations.create_filter(
        store, Filter(filter_id="f2", field="last_login", value="2024-01-01", operator="is after", parent_id="g2")
    ).store
    store = mutations.create_filter(
        store, Filter(filter_id="f3", field="country", value="FR", operator="not equals", parent_id="g1")
    ).store
    for group_id in ("g3", "g4", "g5"):
        store = mutations.create_group(store, Group(group_id=group_id, title=f"Group {group_id}")).store
    return store
