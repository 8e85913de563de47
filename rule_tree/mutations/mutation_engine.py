"""
Mutation Engine

Applies create, edit and sub-create commands for groups and filters.
"""

import logging
from typing import Callable, List, Optional

from rule_tree.models import (
    ChildRef,
    ChildType,
    CommandResult,
    Filter,
    FilterAction,
    FilterCommand,
    Group,
    GroupAction,
    GroupCommand,
    RevealEvent
)
from rule_tree.store import EntityStore
from exceptions import (
    RuleTreeError,
    NodeNotFoundError,
    ParentNotFoundError,
    DuplicateIdentifierError,
    InvalidCommandError
)


class MutationEngine:
    """
    Transform a store by creating or editing groups and filters.

    Every operation returns a CommandResult holding a new store. A command
    that cannot be applied leaves the store untouched and reports why.
    """

    def __init__(self, reveal_on_create: bool = True, logger: Optional[logging.Logger] = None):
        """
        Initialize the mutation engine.

        Args:
            reveal_on_create: Emit a RevealEvent after each successful create
            logger: Optional logger instance
        """
        self.reveal_on_create = reveal_on_create
        self.logger = logger or logging.getLogger(__name__)

    def apply_group_command(self, store: EntityStore, command: GroupCommand) -> CommandResult:
        """
        Dispatch a group command.

        Args:
            store: Current snapshot
            command: CREATE, EDIT or SUB_CREATE command

        Returns:
            CommandResult
        """
        if command.action == GroupAction.EDIT:
            return self.edit_group(store, command.group)
        if command.action == GroupAction.SUB_CREATE:
            return self.create_group(store, command.group, parent_id=command.parent_id)
        return self.create_group(store, command.group)

    def apply_filter_command(self, store: EntityStore, command: FilterCommand) -> CommandResult:
        """Dispatch a filter command."""
        if command.action == FilterAction.EDIT:
            return self.edit_filter(store, command.filter)
        return self.create_filter(store, command.filter, parent_id=command.target_parent_id)

    def create_group(
        self,
        store: EntityStore,
        group: Group,
        parent_id: Optional[str] = None
    ) -> CommandResult:
        """
        Insert a group at the top level, or under ``parent_id``.

        Args:
            store: Current snapshot
            group: Group to insert, without children
            parent_id: Owning group, defaults to ``group.parent_id``; a group
                with neither is appended to the top-level order

        Returns:
            CommandResult carrying the new group id
        """
        return self._run(store, "create_group", lambda: self._create_group(store, group, parent_id))

    def edit_group(self, store: EntityStore, group: Group) -> CommandResult:
        """
        Replace the title and logic of an existing group.

        The stored id, parent and children are kept as they are.
        """
        return self._run(store, "edit_group", lambda: self._edit_group(store, group))

    def create_filter(
        self,
        store: EntityStore,
        flt: Filter,
        parent_id: Optional[str] = None
    ) -> CommandResult:
        """
        Insert a filter and append it to its parent's children.

        Args:
            store: Current snapshot
            flt: Filter to insert
            parent_id: Owning group, defaults to ``flt.parent_id``

        Returns:
            CommandResult carrying the new filter id
        """
        return self._run(store, "create_filter", lambda: self._create_filter(store, flt, parent_id))

    def edit_filter(self, store: EntityStore, flt: Filter) -> CommandResult:
        """Replace field, operator and value of an existing filter."""
        return self._run(store, "edit_filter", lambda: self._edit_filter(store, flt))

    def _run(
        self,
        store: EntityStore,
        operation: str,
        apply: Callable[[], CommandResult]
    ) -> CommandResult:
        try:
            result = apply()
        except RuleTreeError as e:
            self.logger.warning(f"{operation} rejected: {e.message}", extra={"error": e.to_dict()})
            return CommandResult.rejected(store, e)

        node = result.store.get_group(result.node_id) or result.store.get_filter(result.node_id)
        self.logger.debug(f"{operation} applied to {result.node_id}", extra={"node": node.to_dict()})
        return result

    def _create_group(self, store: EntityStore, group: Group, parent_id: Optional[str]) -> CommandResult:
        self._ensure_unused(store, group.group_id)

        if group.children:
            raise InvalidCommandError(
                "A new group cannot carry children",
                component="MutationEngine",
                context={"group_id": group.group_id}
            )

        if parent_id and group.parent_id and parent_id != group.parent_id:
            raise InvalidCommandError(
                f"Group declares parent '{group.parent_id}' but was created under '{parent_id}'",
                component="MutationEngine",
                context={"group_id": group.group_id}
            )

        parent_id = parent_id or group.parent_id
        groups = dict(store.groups)

        if parent_id is None:
            groups[group.group_id] = group.model_copy(update={"parent_id": None})
            new_store = store.replace(groups=groups, top_level=store.top_level + (group.group_id,))
            return CommandResult.applied_to(
                new_store,
                f"Group '{group.title}' created",
                node_id=group.group_id,
                events=self._reveal(new_store, ChildType.GROUP, group.group_id)
            )

        parent = self._require_parent(store, parent_id)
        groups[group.group_id] = group.model_copy(update={"parent_id": parent_id})
        groups[parent_id] = parent.model_copy(update={
            "children": parent.children + (ChildRef(type=ChildType.GROUP, id=group.group_id),)
        })
        new_store = store.replace(groups=groups)
        return CommandResult.applied_to(
            new_store,
            f"Subgroup '{group.title}' created",
            node_id=group.group_id,
            events=self._reveal(new_store, ChildType.GROUP, group.group_id)
        )

    def _edit_group(self, store: EntityStore, group: Group) -> CommandResult:
        existing = store.get_group(group.group_id)
        if existing is None:
            raise NodeNotFoundError(
                f"Group not found: {group.group_id}",
                component="MutationEngine",
                context={"group_id": group.group_id}
            )

        groups = dict(store.groups)
        groups[group.group_id] = existing.model_copy(update={
            "title": group.title,
            "logic": group.logic
        })
        new_store = store.replace(groups=groups)
        return CommandResult.applied_to(new_store, f"Group '{group.title}' updated", node_id=group.group_id)

    def _create_filter(self, store: EntityStore, flt: Filter, parent_id: Optional[str]) -> CommandResult:
        self._ensure_unused(store, flt.filter_id)

        parent_id = parent_id or flt.parent_id
        parent = self._require_parent(store, parent_id)

        filters = dict(store.filters)
        filters[flt.filter_id] = flt.model_copy(update={"parent_id": parent_id})
        groups = dict(store.groups)
        groups[parent_id] = parent.model_copy(update={
            "children": parent.children + (ChildRef(type=ChildType.FILTER, id=flt.filter_id),)
        })
        new_store = store.replace(groups=groups, filters=filters)
        return CommandResult.applied_to(
            new_store,
            f"Filter '{flt.label}' created",
            node_id=flt.filter_id,
            events=self._reveal(new_store, ChildType.FILTER, flt.filter_id)
        )

    def _edit_filter(self, store: EntityStore, flt: Filter) -> CommandResult:
        existing = store.get_filter(flt.filter_id)
        if existing is None:
            raise NodeNotFoundError(
                f"Filter not found: {flt.filter_id}",
                component="MutationEngine",
                context={"filter_id": flt.filter_id}
            )

        filters = dict(store.filters)
        filters[flt.filter_id] = existing.model_copy(update={
            "field": flt.field,
            "value": flt.value,
            "operator": flt.operator
        })
        new_store = store.replace(filters=filters)
        return CommandResult.applied_to(new_store, f"Filter '{flt.label}' updated", node_id=flt.filter_id)

    def _ensure_unused(self, store: EntityStore, node_id: str) -> None:
        if store.has_id(node_id):
            raise DuplicateIdentifierError(
                f"Identifier already in use: {node_id}",
                component="MutationEngine",
                context={"node_id": node_id}
            )

    def _require_parent(self, store: EntityStore, parent_id: str) -> Group:
        parent = store.get_group(parent_id)
        if parent is None:
            raise ParentNotFoundError(
                f"Parent group not found: {parent_id}",
                component="MutationEngine",
                context={"parent_id": parent_id}
            )
        return parent

    def _reveal(self, store: EntityStore, node_type: ChildType, node_id: str) -> List[RevealEvent]:
        if not self.reveal_on_create:
            return []
        ancestors = store.ancestors(node_id)
        return [RevealEvent(
            node_type=node_type,
            node_id=node_id,
            ancestor_ids=tuple(ancestors),
            scroll_to_end=not ancestors
        )]
