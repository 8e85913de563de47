"""
Rule Builder Main Class

Single-writer command surface over the rule tree.
"""

import logging
import uuid
from typing import Callable, Dict, Optional, Union

from pydantic import ValidationError

from config import BuilderConfig
from rule_tree.models import (
    ChildType,
    CommandResult,
    Filter,
    FilterAction,
    FilterCommand,
    Group,
    GroupAction,
    GroupCommand,
    LogicType,
    MoveRequest,
    NodeFlags,
    OperatorType,
    TreeView
)
from rule_tree.store import EntityStore
from rule_tree.mutations import MutationEngine
from rule_tree.reorder import ReorderEngine
from rule_tree.projection import StateProjection
from rule_tree.events import RevealDispatcher, RevealListener
from exceptions import (
    RuleTreeError,
    NodeNotFoundError,
    InvalidCommandError,
    InteractionDisabledError
)

Command = Union[GroupCommand, FilterCommand, MoveRequest]


def _uuid4() -> str:
    return str(uuid.uuid4())


class RuleBuilder:
    """
    Main rule builder orchestrator.

    Owns the current store snapshot and the live blocked/paused toggles.
    Each command runs to completion and is committed before the reveal
    events it produced are delivered to listeners.
    """

    def __init__(
        self,
        config: Optional[BuilderConfig] = None,
        store: Optional[EntityStore] = None,
        id_factory: Optional[Callable[[], str]] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize rule builder.

        Args:
            config: Builder settings
            store: Initial snapshot, empty by default
            id_factory: Generates identifiers for new nodes (uuid4 by default)
            logger: Optional logger instance
        """
        self.config = config or BuilderConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.id_factory = id_factory or _uuid4

        self.mutations = MutationEngine(reveal_on_create=self.config.reveal_on_create, logger=self.logger)
        self.reorder = ReorderEngine(logger=self.logger)
        self.projection = StateProjection(min_siblings_for_reorder=self.config.min_siblings_for_reorder)
        self.dispatcher = RevealDispatcher()

        self._store = store or EntityStore()
        self._flags: Dict[str, NodeFlags] = {}

    @property
    def store(self) -> EntityStore:
        """Current committed snapshot."""
        return self._store

    @property
    def flags(self) -> Dict[str, NodeFlags]:
        return dict(self._flags)

    def flags_for(self, node_id: str) -> NodeFlags:
        return self._flags.get(node_id, NodeFlags())

    def subscribe(self, listener: RevealListener) -> Callable[[], None]:
        """Register a reveal listener; returns an unsubscribe function."""
        return self.dispatcher.subscribe(listener)

    def project(self) -> TreeView:
        """Project the current store with the live toggles."""
        return self.projection.project(self._store, self._flags)

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def create_group(
        self,
        title: str,
        logic: Union[LogicType, str] = LogicType.AND,
        parent_id: Optional[str] = None
    ) -> CommandResult:
        """
        Create a top-level group, or a subgroup when ``parent_id`` is given.

        Returns:
            CommandResult whose node_id is the new group id
        """
        def apply() -> CommandResult:
            group = self._build(Group, group_id=self.id_factory(), title=title, logic=logic)
            if parent_id is not None:
                self._require_control(parent_id, "can_add_children", "add a subgroup to")
            return self.mutations.create_group(self._store, group, parent_id=parent_id)

        return self._execute("create_group", apply)

    def edit_group(
        self,
        group_id: str,
        title: str,
        logic: Optional[Union[LogicType, str]] = None
    ) -> CommandResult:
        """
        Change the title (and optionally the logic) of a group.
        """
        def apply() -> CommandResult:
            existing = self._require_node(ChildType.GROUP, group_id)
            group = self._build(
                Group,
                group_id=group_id,
                title=title,
                logic=existing.logic if logic is None else logic
            )
            self._require_control(group_id, "can_edit", "edit")
            return self.mutations.edit_group(self._store, group)

        return self._execute("edit_group", apply)

    def set_logic(self, group_id: str, logic: Union[LogicType, str]) -> CommandResult:
        """Switch a group between AND and OR."""
        def apply() -> CommandResult:
            existing = self._require_node(ChildType.GROUP, group_id)
            group = self._build(Group, group_id=group_id, title=existing.title, logic=logic)
            self._require_control(group_id, "can_toggle_logic", "change the logic of")
            return self.mutations.edit_group(self._store, group)

        return self._execute("set_logic", apply)

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    def create_filter(
        self,
        field: str,
        value: str,
        operator: Union[OperatorType, str],
        parent_id: str
    ) -> CommandResult:
        """
        Create a filter under ``parent_id``.

        Returns:
            CommandResult whose node_id is the new filter id
        """
        def apply() -> CommandResult:
            flt = self._build(
                Filter,
                filter_id=self.id_factory(),
                field=field,
                value=value,
                operator=operator,
                parent_id=parent_id
            )
            self._require_control(parent_id, "can_add_children", "add a filter to")
            return self.mutations.create_filter(self._store, flt, parent_id=parent_id)

        return self._execute("create_filter", apply)

    def edit_filter(
        self,
        filter_id: str,
        field: str,
        value: str,
        operator: Union[OperatorType, str]
    ) -> CommandResult:
        """Change field, value and operator of a filter."""
        def apply() -> CommandResult:
            existing = self._require_node(ChildType.FILTER, filter_id)
            flt = self._build(
                Filter,
                filter_id=filter_id,
                field=field,
                value=value,
                operator=operator,
                parent_id=existing.parent_id
            )
            self._require_control(filter_id, "can_edit", "edit")
            return self.mutations.edit_filter(self._store, flt)

        return self._execute("edit_filter", apply)

    # ------------------------------------------------------------------
    # Reordering
    # ------------------------------------------------------------------

    def move(self, from_index: int, to_index: int, scope: Optional[str] = None, **kwargs) -> CommandResult:
        """
        Reorder within ``scope`` (None for the top-level order).

        Pass ``dragged_scope`` with the parent captured at drag start; a
        different value rejects the move.
        """
        def apply() -> CommandResult:
            request = self._build(MoveRequest, from_index=from_index, to_index=to_index, scope=scope, **kwargs)
            return self._move(request)

        return self._execute("move", apply)

    def move_node(self, node_id: str, to_index: int) -> CommandResult:
        """Move a node, addressed by id, to ``to_index`` among its siblings."""
        def apply() -> CommandResult:
            if self._store.kind_of(node_id) is None:
                raise NodeNotFoundError(
                    f"Node not found: {node_id}",
                    component="RuleBuilder",
                    context={"node_id": node_id}
                )
            position = self._store.position_of(node_id)
            scope = self._store.parent_of(node_id)
            return self._move(self._build(MoveRequest, from_index=position, to_index=to_index, scope=scope))

        return self._execute("move_node", apply)

    # ------------------------------------------------------------------
    # Local toggles
    # ------------------------------------------------------------------

    def set_blocked(self, group_id: str, blocked: bool = True) -> CommandResult:
        """Set the local blocked toggle of a group."""
        return self._execute(
            "set_blocked",
            lambda: self._set_flag(group_id, "blocked", blocked, "can_toggle_block")
        )

    def set_paused(self, group_id: str, paused: bool = True) -> CommandResult:
        """Set the local paused (draft) toggle of a group."""
        return self._execute(
            "set_paused",
            lambda: self._set_flag(group_id, "paused", paused, "can_toggle_pause")
        )

    # ------------------------------------------------------------------
    # Generic dispatch
    # ------------------------------------------------------------------

    def dispatch(self, command: Command) -> CommandResult:
        """
        Apply a command object built by the presentation layer.

        Args:
            command: GroupCommand, FilterCommand or MoveRequest

        Returns:
            CommandResult
        """
        def apply() -> CommandResult:
            if isinstance(command, MoveRequest):
                return self._move(command)

            if isinstance(command, GroupCommand):
                if command.action == GroupAction.EDIT:
                    self._require_control(command.group.group_id, "can_edit", "edit")
                elif command.action == GroupAction.SUB_CREATE:
                    self._require_control(command.parent_id, "can_add_children", "add a subgroup to")
                return self.mutations.apply_group_command(self._store, command)

            if isinstance(command, FilterCommand):
                if command.action == FilterAction.EDIT:
                    self._require_control(command.filter.filter_id, "can_edit", "edit")
                else:
                    self._require_control(command.target_parent_id, "can_add_children", "add a filter to")
                return self.mutations.apply_filter_command(self._store, command)

            raise InvalidCommandError(
                f"Unsupported command: {type(command).__name__}",
                component="RuleBuilder"
            )

        return self._execute(type(command).__name__, apply)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _execute(self, operation: str, apply: Callable[[], CommandResult]) -> CommandResult:
        try:
            result = apply()
        except RuleTreeError as e:
            self.logger.warning(f"{operation} rejected: {e.message}", extra={"error": e.to_dict()})
            result = CommandResult.rejected(self._store, e)

        if result.applied:
            self._store = result.store
            self.logger.info(f"{operation}: {result.message}")

        self.dispatcher.publish(result.events)
        return result

    def _move(self, request: MoveRequest) -> CommandResult:
        # same-position drops are no-ops and skip the drag gate
        if request.source_scope == request.scope and request.from_index != request.to_index:
            dragged_id = self._element_at(request.scope, request.from_index)
            if dragged_id is not None:
                self._require_control(dragged_id, "can_drag", "reorder")
        return self.reorder.apply(self._store, request)

    def _element_at(self, scope: Optional[str], index: int) -> Optional[str]:
        if scope is None:
            collection = [group_id for group_id in self._store.top_level]
        else:
            collection = [ref.id for ref in self._store.children_of(scope)]
        if 0 <= index < len(collection):
            return collection[index]
        return None

    def _set_flag(self, group_id: str, name: str, value: bool, control: str) -> CommandResult:
        self._require_node(ChildType.GROUP, group_id)
        current = self.flags_for(group_id)
        if getattr(current, name) == value:
            return CommandResult.no_op(self._store, f"{name} already {value}", node_id=group_id)

        verb = "block" if name == "blocked" else "pause"
        self._require_control(group_id, control, f"{verb} or un{verb}")
        self._flags[group_id] = current.model_copy(update={name: value})
        return CommandResult.applied_to(self._store, f"Group {group_id} {name}={value}", node_id=group_id)

    def _require_node(self, kind: ChildType, node_id: str):
        node = self._store.get(kind, node_id)
        if node is None:
            raise NodeNotFoundError(
                f"{kind.value.capitalize()} not found: {node_id}",
                component="RuleBuilder",
                context={"node_id": node_id}
            )
        return node

    def _require_control(self, node_id: Optional[str], control: str, action: str) -> None:
        if not self.config.enforce_interaction_gates or node_id is None:
            return

        node = self.project().find(node_id)
        if node is None:
            return

        if not getattr(node.controls, control):
            raise InteractionDisabledError(
                f"Cannot {action} {node.display_index}. '{node.label}': the control is disabled",
                component="RuleBuilder",
                context={"node_id": node_id, "control": control}
            )

    @staticmethod
    def _build(model, **values):
        try:
            return model(**values)
        except ValidationError as e:
            messages = [error.get("msg", "invalid value") for error in e.errors()]
            raise InvalidCommandError(
                "; ".join(messages),
                component="RuleBuilder",
                context={"model": model.__name__}
            )
