"""
Reorder Engine

Moves a node within one ordered collection: the top-level order or the
children of a single group.
"""

import logging
from typing import Optional, Sequence, Tuple, TypeVar

from pydantic import ValidationError

from rule_tree.models import CommandResult, MoveRequest
from rule_tree.store import EntityStore
from exceptions import (
    RuleTreeError,
    ParentNotFoundError,
    ScopeMismatchError,
    IndexOutOfRangeError,
    EmptyScopeError,
    InvalidCommandError
)

T = TypeVar("T")

TOP_LEVEL_SCOPE = "root"


def scope_name(scope: Optional[str]) -> str:
    """Readable name of a scope for messages."""
    return TOP_LEVEL_SCOPE if scope is None else scope


def splice(items: Sequence[T], from_index: int, to_index: int) -> Tuple[T, ...]:
    """
    Remove the element at ``from_index`` and insert it at ``to_index`` of
    the shortened sequence.

    Example:
        splice("ABCD", 0, 2) -> ("B", "C", "A", "D")
    """
    updated = list(items)
    moved = updated.pop(from_index)
    updated.insert(to_index, moved)
    return tuple(updated)


class ReorderEngine:
    """
    Apply move requests against a store.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize the reorder engine.

        Args:
            logger: Optional logger instance
        """
        self.logger = logger or logging.getLogger(__name__)

    def move(
        self,
        store: EntityStore,
        from_index: int,
        to_index: int,
        scope: Optional[str] = None,
        **kwargs
    ) -> CommandResult:
        """
        Move an element of ``scope`` from one position to another.

        Args:
            store: Current snapshot
            from_index: Position of the dragged element
            to_index: Position of the drop target
            scope: Parent group id, or None for the top-level order
            dragged_scope: Scope captured when the drag started (defaults to ``scope``)

        Returns:
            CommandResult with the reordered store, a no-op or a rejection
        """
        try:
            request = MoveRequest(from_index=from_index, to_index=to_index, scope=scope, **kwargs)
        except ValidationError as e:
            error = InvalidCommandError(
                "; ".join(err.get("msg", "invalid value") for err in e.errors()),
                component="ReorderEngine",
                context={"model": "MoveRequest"}
            )
            self.logger.warning(f"Move rejected: {error.message}", extra={"error": error.to_dict()})
            return CommandResult.rejected(store, error)

        return self.apply(store, request)

    def apply(self, store: EntityStore, request: MoveRequest) -> CommandResult:
        """Apply a MoveRequest."""
        try:
            result = self._apply(store, request)
        except RuleTreeError as e:
            self.logger.warning(f"Move rejected: {e.message}", extra={"error": e.to_dict()})
            return CommandResult.rejected(store, e)

        self.logger.debug(
            f"Move {request.from_index} -> {request.to_index} in {scope_name(request.scope)}: {result.status.value}"
        )
        return result

    def _apply(self, store: EntityStore, request: MoveRequest) -> CommandResult:
        if request.source_scope != request.scope:
            raise ScopeMismatchError(
                "Invalid move: different parent. You can only reorder elements within the same parent",
                component="ReorderEngine",
                context={
                    "dragged_scope": scope_name(request.source_scope),
                    "drop_scope": scope_name(request.scope)
                }
            )

        if request.scope is None:
            collection = store.top_level
        else:
            parent = store.get_group(request.scope)
            if parent is None:
                raise ParentNotFoundError(
                    f"Invalid child move: parent not found: {request.scope}",
                    component="ReorderEngine",
                    context={"scope": request.scope}
                )
            collection = parent.children

        self._check_bounds(collection, request)

        if request.from_index == request.to_index:
            return CommandResult.no_op(
                store,
                "Element dropped on its own position",
                node_id=self._node_id(collection[request.from_index])
            )

        reordered = splice(collection, request.from_index, request.to_index)
        moved_id = self._node_id(collection[request.from_index])

        if request.scope is None:
            new_store = store.replace(top_level=reordered)
        else:
            groups = dict(store.groups)
            groups[request.scope] = parent.model_copy(update={"children": reordered})
            new_store = store.replace(groups=groups)

        return CommandResult.applied_to(
            new_store,
            f"Moved element {request.from_index + 1} to position {request.to_index + 1}",
            node_id=moved_id
        )

    def _check_bounds(self, collection: Sequence, request: MoveRequest) -> None:
        size = len(collection)
        if size == 0:
            raise EmptyScopeError(
                f"Invalid move: {scope_name(request.scope)} has no children",
                component="ReorderEngine",
                context={"scope": scope_name(request.scope)}
            )

        for name, index in (("from_index", request.from_index), ("to_index", request.to_index)):
            if not 0 <= index < size:
                raise IndexOutOfRangeError(
                    f"Invalid move: {name} {index} is outside 0..{size - 1}",
                    component="ReorderEngine",
                    context={"scope": scope_name(request.scope), name: index, "size": size}
                )

    @staticmethod
    def _node_id(element) -> str:
        return element if isinstance(element, str) else element.id
