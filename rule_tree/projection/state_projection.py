"""
State Projection

Derives the view of a store: display indices, cascaded blocked/paused
flags and control availability. Nothing computed here is stored.
"""

from typing import List, Mapping, Optional, Set

from rule_tree.models import (
    ChildRef,
    ChildType,
    NodeControls,
    NodeFlags,
    ProjectedNode,
    TreeView
)
from rule_tree.store import EntityStore
from exceptions import TreeIntegrityError

_NO_FLAGS = NodeFlags()


class StateProjection:
    """
    Project a store into a TreeView.

    ``flags`` maps node ids to their live local toggles. A node's effective
    blocked state is its own state OR its parent's effective state; paused
    cascades the same way, independently of blocked.
    """

    def __init__(self, min_siblings_for_reorder: int = 2):
        """
        Initialize the projection.

        Args:
            min_siblings_for_reorder: Sibling count below which dragging is disabled
        """
        self.min_siblings_for_reorder = min_siblings_for_reorder

    def project(
        self,
        store: EntityStore,
        flags: Optional[Mapping[str, NodeFlags]] = None
    ) -> TreeView:
        """
        Build the tree view.

        Args:
            store: Snapshot to project
            flags: Local toggles per node id

        Returns:
            TreeView

        Raises:
            TreeIntegrityError: If a reference is dangling or a cycle is found
        """
        flags = flags or {}
        sibling_count = len(store.top_level)
        roots = []

        for position, group_id in enumerate(store.top_level):
            roots.append(self._project_node(
                store,
                flags,
                ChildRef(type=ChildType.GROUP, id=group_id),
                parent_id=None,
                prefix="",
                position=position,
                sibling_count=sibling_count,
                parent_blocked=False,
                parent_paused=False,
                visiting=set()
            ))

        return TreeView(roots=roots)

    def _project_node(
        self,
        store: EntityStore,
        flags: Mapping[str, NodeFlags],
        ref: ChildRef,
        parent_id: Optional[str],
        prefix: str,
        position: int,
        sibling_count: int,
        parent_blocked: bool,
        parent_paused: bool,
        visiting: Set[str]
    ) -> ProjectedNode:
        entity = store.get(ref.type, ref.id)
        if entity is None:
            raise TreeIntegrityError(
                f"Dangling {ref.type.value} reference: {ref.id}",
                component="StateProjection",
                context={"parent_id": parent_id, "node_id": ref.id}
            )
        if ref.id in visiting:
            raise TreeIntegrityError(
                f"Cycle detected at {ref.id}",
                component="StateProjection",
                context={"node_id": ref.id}
            )

        display_index = f"{prefix}.{position + 1}" if prefix else str(position + 1)
        own = flags.get(ref.id, _NO_FLAGS)
        effective_blocked = own.blocked or parent_blocked
        effective_paused = own.paused or parent_paused
        can_drag = sibling_count >= self.min_siblings_for_reorder and not parent_blocked

        if ref.type == ChildType.FILTER:
            return ProjectedNode(
                node_type=ChildType.FILTER,
                node_id=ref.id,
                label=entity.label,
                parent_id=parent_id,
                display_index=display_index,
                depth=display_index.count("."),
                position=position,
                sibling_count=sibling_count,
                is_last=position == sibling_count - 1,
                blocked=own.blocked,
                paused=own.paused,
                parent_blocked=parent_blocked,
                parent_paused=parent_paused,
                effective_blocked=effective_blocked,
                effective_paused=effective_paused,
                controls=NodeControls(
                    can_drag=can_drag,
                    can_open_actions=not parent_blocked,
                    can_edit=not parent_blocked
                )
            )

        children: List[ProjectedNode] = []
        visiting = visiting | {ref.id}
        for child_position, child in enumerate(entity.children):
            children.append(self._project_node(
                store,
                flags,
                child,
                parent_id=ref.id,
                prefix=display_index,
                position=child_position,
                sibling_count=len(entity.children),
                parent_blocked=effective_blocked,
                parent_paused=effective_paused,
                visiting=visiting
            ))

        return ProjectedNode(
            node_type=ChildType.GROUP,
            node_id=ref.id,
            label=entity.title,
            logic=entity.logic,
            parent_id=parent_id,
            display_index=display_index,
            depth=display_index.count("."),
            position=position,
            sibling_count=sibling_count,
            is_last=position == sibling_count - 1,
            blocked=own.blocked,
            paused=own.paused,
            parent_blocked=parent_blocked,
            parent_paused=parent_paused,
            effective_blocked=effective_blocked,
            effective_paused=effective_paused,
            controls=NodeControls(
                can_drag=can_drag,
                can_open_actions=not parent_blocked,
                can_edit=not effective_blocked,
                can_toggle_logic=not effective_blocked,
                can_toggle_block=not parent_blocked,
                can_toggle_pause=not effective_blocked and not parent_paused,
                can_add_children=not effective_blocked
            ),
            children=children
        )


def project(
    store: EntityStore,
    flags: Optional[Mapping[str, NodeFlags]] = None,
    min_siblings_for_reorder: int = 2
) -> TreeView:
    """Project a store with a default StateProjection."""
    return StateProjection(min_siblings_for_reorder).project(store, flags)
