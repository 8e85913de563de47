#!/usr/bin/env python3
"""
Rulecraft CLI
Command line interface for composing a rule tree interactively.
"""
import sys
import shlex
import argparse
import logging
from typing import Callable, Dict, List, Optional, Tuple

from rich.console import Console
from rich.markup import escape

from config import load_config
from exceptions import ConfigurationError
from rule_tree import RuleBuilder, CommandResult, CommandStatus
from rule_tree.models import LogicType, RevealEvent
from rule_tree.reorder import TOP_LEVEL_SCOPE
from rulecraft.logging_setup import setup_logging
from rulecraft.ui import banner, render_tree


console = Console()

HELP_TEXT = """\
group TITLE [--or] [--in GROUP]          create a group (subgroup with --in)
filter GROUP FIELD OPERATOR VALUE        create a filter, quote multi-word operators
edit-group GROUP TITLE [--and|--or]      rename a group
edit-filter FILTER FIELD OPERATOR VALUE  change a filter
logic GROUP and|or                       switch group logic
move FROM TO [--in GROUP] [--dragged-from GROUP|root]
                                         reorder by 1-based position
move-node NODE POSITION                  move a node to a 1-based position
block GROUP [on|off]                     toggle blocked
pause GROUP [on|off]                     toggle draft
show                                     print the tree
help                                     this text
quit                                     leave the shell

Nodes are addressed by id or by display index (e.g. 1.2)."""


class ShellUsageError(ValueError):
    """Raised when a shell line cannot be parsed."""


class RuleShell:
    """
    Line-oriented front end over a RuleBuilder.
    """

    def __init__(self, builder: RuleBuilder, out: Optional[Console] = None):
        self.builder = builder
        self.console = out or console
        self.reveals: List[RevealEvent] = []
        self.handlers: Dict[str, Callable[[List[str]], Optional[CommandResult]]] = {
            "group": self._group,
            "filter": self._filter,
            "edit-group": self._edit_group,
            "edit-filter": self._edit_filter,
            "logic": self._logic,
            "move": self._move,
            "move-node": self._move_node,
            "block": self._block,
            "pause": self._pause,
        }
        builder.subscribe(self._on_reveal)

    def execute(self, line: str) -> bool:
        """
        Run one shell line.

        Returns:
            False when the shell should stop
        """
        try:
            tokens = shlex.split(line)
        except ValueError as e:
            self._error(f"Cannot parse line: {e}")
            return True

        if not tokens:
            return True

        command, args = tokens[0].lower(), tokens[1:]
        if command in ("quit", "exit"):
            return False
        if command == "help":
            self.console.print(HELP_TEXT)
            return True
        if command == "show":
            self.console.print(render_tree(self.builder.project()))
            return True

        handler = self.handlers.get(command)
        if handler is None:
            self._error(f"Unknown command: {command}. Type 'help' for the list of commands")
            return True

        try:
            result = handler(args)
        except ShellUsageError as e:
            self._error(str(e))
            return True

        self._report(result)
        return True

    def resolve(self, token: str) -> str:
        """Map a display index to a node id; other tokens are ids already."""
        node = self.builder.project().find_by_display_index(token)
        return node.node_id if node else token

    def run(self) -> None:
        banner("Rulecraft shell", "Type 'help' for commands.", out=self.console)
        while True:
            try:
                line = self.console.input("[bold cyan]rule>[/bold cyan] ")
            except (EOFError, KeyboardInterrupt):
                break
            if not self.execute(line):
                break

    # ------------------------------------------------------------------

    def _group(self, args: List[str]) -> CommandResult:
        args, is_or = self._take_flag(args, "--or")
        args, parent = self._take_option(args, "--in")
        title = " ".join(args)
        logic = LogicType.OR if is_or else LogicType.AND
        return self.builder.create_group(title, logic, parent_id=self.resolve(parent) if parent else None)

    def _filter(self, args: List[str]) -> CommandResult:
        parent, field, operator, value = self._exact(args, 4, "filter GROUP FIELD OPERATOR VALUE")
        return self.builder.create_filter(field, value, self._operator(operator), self.resolve(parent))

    def _edit_group(self, args: List[str]) -> CommandResult:
        args, is_or = self._take_flag(args, "--or")
        args, is_and = self._take_flag(args, "--and")
        if len(args) < 2:
            raise ShellUsageError("Usage: edit-group GROUP TITLE [--and|--or]")
        logic = LogicType.OR if is_or else LogicType.AND if is_and else None
        return self.builder.edit_group(self.resolve(args[0]), " ".join(args[1:]), logic)

    def _edit_filter(self, args: List[str]) -> CommandResult:
        node, field, operator, value = self._exact(args, 4, "edit-filter FILTER FIELD OPERATOR VALUE")
        return self.builder.edit_filter(self.resolve(node), field, value, self._operator(operator))

    def _logic(self, args: List[str]) -> CommandResult:
        node, logic = self._exact(args, 2, "logic GROUP and|or")
        return self.builder.set_logic(self.resolve(node), logic.upper())

    def _move(self, args: List[str]) -> CommandResult:
        args, scope = self._take_option(args, "--in")
        args, dragged = self._take_option(args, "--dragged-from")
        from_pos, to_pos = self._exact(args, 2, "move FROM TO [--in GROUP] [--dragged-from GROUP|root]")

        drop_scope = self._scope(scope)
        kwargs = {}
        if dragged is not None:
            kwargs["dragged_scope"] = self._scope(dragged)
        return self.builder.move(self._position(from_pos), self._position(to_pos), drop_scope, **kwargs)

    def _move_node(self, args: List[str]) -> CommandResult:
        node, position = self._exact(args, 2, "move-node NODE POSITION")
        return self.builder.move_node(self.resolve(node), self._position(position))

    def _block(self, args: List[str]) -> CommandResult:
        group_id, value = self._toggle_args(args, "block")
        current = self.builder.flags_for(group_id).blocked
        return self.builder.set_blocked(group_id, not current if value is None else value)

    def _pause(self, args: List[str]) -> CommandResult:
        group_id, value = self._toggle_args(args, "pause")
        current = self.builder.flags_for(group_id).paused
        return self.builder.set_paused(group_id, not current if value is None else value)

    # ------------------------------------------------------------------

    def _on_reveal(self, event: RevealEvent) -> None:
        self.reveals.append(event)
        node = self.builder.project().find(event.node_id)
        where = node.display_index if node else event.node_id
        self.console.print(f"[cyan]Revealed {event.node_type.value.lower()} {where}[/cyan]")

    def _report(self, result: Optional[CommandResult]) -> None:
        if result is None:
            return
        if result.status == CommandStatus.REJECTED:
            self._error(result.message)
        elif result.status == CommandStatus.NO_OP:
            self.console.print(f"[yellow]{escape(result.message)}[/yellow]")
        else:
            self.console.print(f"[green]{escape(result.message)}[/green]")

    def _error(self, message: str) -> None:
        banner(f"Error: {escape(message)}", style="red", out=self.console)

    def _scope(self, token: Optional[str]) -> Optional[str]:
        if token is None or token.lower() == TOP_LEVEL_SCOPE:
            return None
        return self.resolve(token)

    def _toggle_args(self, args: List[str], name: str) -> Tuple[str, Optional[bool]]:
        if len(args) not in (1, 2):
            raise ShellUsageError(f"Usage: {name} GROUP [on|off]")
        value = None
        if len(args) == 2:
            if args[1].lower() not in ("on", "off"):
                raise ShellUsageError(f"Usage: {name} GROUP [on|off]")
            value = args[1].lower() == "on"
        return self.resolve(args[0]), value

    @staticmethod
    def _operator(token: str) -> str:
        return token.replace("_", " ").lower()

    @staticmethod
    def _position(token: str) -> int:
        try:
            return int(token) - 1
        except ValueError:
            raise ShellUsageError(f"Position must be a number, got '{token}'")

    @staticmethod
    def _exact(args: List[str], count: int, usage: str) -> List[str]:
        if len(args) != count:
            raise ShellUsageError(f"Usage: {usage}")
        return args

    @staticmethod
    def _take_flag(args: List[str], flag: str) -> Tuple[List[str], bool]:
        if flag in args:
            return [a for a in args if a != flag], True
        return args, False

    @staticmethod
    def _take_option(args: List[str], option: str) -> Tuple[List[str], Optional[str]]:
        if option not in args:
            return args, None
        index = args.index(option)
        if index + 1 >= len(args):
            raise ShellUsageError(f"{option} needs a value")
        return args[:index] + args[index + 2:], args[index + 1]


def build_demo(builder: RuleBuilder) -> None:
    """Populate a builder with a small example rule."""
    premium = builder.create_group("Premium customers", "AND").node_id
    builder.create_filter("plan", "premium", "equals", premium)
    recent = builder.create_group("Recent activity", "OR", parent_id=premium).node_id
    builder.create_filter("last_login", "2024-01-01", "is after", recent)
    builder.create_filter("last_order", "2024-03-01", "is after", recent)
    builder.create_filter("country", "FR", "not equals", premium)

    churn = builder.create_group("Churn risk", "OR").node_id
    builder.create_filter("renewal_date", "2024-12-31", "is before", churn)
    builder.set_paused(churn)


def run_demo(config_path: Optional[str] = None) -> None:
    config = load_config(config_path)
    builder = RuleBuilder(config.builder)
    shell = RuleShell(builder)

    build_demo(builder)
    console.print(render_tree(builder.project()))

    banner("Moving '1.3' (country filter) to the first position", style="blue", out=console)
    shell.execute("move-node 1.3 1")
    banner("Blocking group 1", style="blue", out=console)
    shell.execute("block 1 on")
    console.print(render_tree(builder.project()))


def run_shell(config_path: Optional[str] = None) -> None:
    config = load_config(config_path)
    RuleShell(RuleBuilder(config.builder)).run()


def main():
    parser = argparse.ArgumentParser(description="Rulecraft CLI")
    parser.add_argument("--config", help="Path to a JSON configuration file")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("demo", help="Build and print an example rule")
    subparsers.add_parser("shell", help="Compose a rule interactively")

    args = parser.parse_args()

    try:
        setup_logging(load_config(args.config).logging)
    except ConfigurationError as e:
        banner(f"Configuration error: {escape(e.message)}", style="red", out=console)
        sys.exit(1)

    try:
        if args.command == "demo":
            run_demo(args.config)
        elif args.command == "shell":
            run_shell(args.config)
        else:
            parser.print_help()
    except Exception as e:
        logging.getLogger("RulecraftCLI").exception("CLI error")
        banner(f"Error: {escape(str(e))}", style="red", out=console)
        sys.exit(1)


if __name__ == "__main__":
    main()
