import io

import pytest
from rich.console import Console
from rich.panel import Panel
from rich.tree import Tree

from cli import RuleShell, build_demo
from rule_tree import EntityStore, project
from rule_tree.store import check_store
from rulecraft.ui import banner, render_tree


@pytest.fixture
def out():
    return Console(file=io.StringIO(), width=200, record=True)


@pytest.fixture
def shell(builder, out):
    return RuleShell(builder, out=out)


def test_compose_rule_through_shell(shell, builder, out):
    assert shell.execute("group Premium customers")
    shell.execute("filter 1 plan equals premium")
    shell.execute("group Recent activity --or --in 1")
    shell.execute('filter 1.2 last_login "is after" 2024-01-01')
    shell.execute("show")

    text = out.export_text()
    assert "1. Premium customers [AND]" in text
    assert "1.2. Recent activity [OR]" in text
    assert "1.2.1. last_login is after 2024-01-01" in text
    assert len(shell.reveals) == 4
    assert shell.reveals[-1].ancestor_ids == ("node-1", "node-3")


def test_shell_moves_by_position(shell, builder):
    shell.execute("group A")
    shell.execute("filter 1 x equals 1")
    shell.execute("filter 1 y not_equals 2")

    shell.execute("move 2 1 --in 1")

    children = builder.store.get_group("node-1").children
    assert [ref.id for ref in children] == ["node-3", "node-2"]
    assert builder.store.get_filter("node-3").operator.value == "not equals"


def test_shell_reports_rejections(shell, builder, out):
    shell.execute("group A")
    shell.execute("filter 1 x equals 1")
    shell.execute("filter 1 y equals 2")
    store = builder.store

    shell.execute("move 1 2 --in 1 --dragged-from root")
    shell.execute("edit-group 7 Missing")
    shell.execute("frobnicate")
    shell.execute("filter 1 only-three-args")

    text = out.export_text()
    assert "Error: Invalid move: different parent" in text
    assert "Group not found: 7" in text
    assert "Unknown command: frobnicate" in text
    assert "Usage: filter GROUP FIELD OPERATOR VALUE" in text
    assert builder.store is store


def test_shell_toggles(shell, builder):
    shell.execute("group A")
    shell.execute("group B --in 1")

    shell.execute("block 1")
    assert builder.flags_for("node-1").blocked
    shell.execute("pause 1.1 on")
    assert not builder.flags_for("node-2").paused

    shell.execute("block 1")
    assert not builder.flags_for("node-1").blocked
    shell.execute("pause 1.1 on")
    assert builder.flags_for("node-2").paused


def test_shell_edits_and_quit(shell, builder):
    shell.execute("group A")
    shell.execute("filter 1 x equals 1")

    shell.execute("edit-group 1 Renamed group --or")
    shell.execute('edit-filter 1.1 created "is before" 2024-05-01')
    shell.execute("logic 1 and")

    group = builder.store.get_group("node-1")
    assert group.title == "Renamed group"
    assert group.logic.value == "AND"
    assert builder.store.get_filter("node-2").label == "created is before 2024-05-01"
    assert shell.execute("quit") is False


def test_demo_tree_is_consistent(builder):
    build_demo(builder)

    view = builder.project()
    assert check_store(builder.store).valid
    assert view.find_by_display_index("1.2.2").label == "last_order is after 2024-03-01"
    assert view.find_by_display_index("2.1").effective_paused


def test_render_tree(builder):
    assert isinstance(render_tree(project(EntityStore())), Panel)

    build_demo(builder)
    assert isinstance(render_tree(builder.project()), Tree)


def test_setup_logging_installs_rich_handler():
    import logging
    from rich.logging import RichHandler

    from config import LoggingConfig
    from rulecraft.logging_setup import setup_logging

    root = logging.getLogger()
    previous_handlers, previous_level = list(root.handlers), root.level
    try:
        setup_logging(LoggingConfig(level="warning"))
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], RichHandler)
    finally:
        root.handlers[:] = previous_handlers
        root.setLevel(previous_level)


def test_banner_prints_to_given_console(out):
    banner("Rulecraft shell", "Type 'help' for commands.", out=out)
    banner("Error: boom", style="red", out=out)

    text = out.export_text()
    assert "Rulecraft shell" in text
    assert "Type 'help' for commands." in text
    assert "Error: boom" in text
