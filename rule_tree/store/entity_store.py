"""
Entity Store

Immutable snapshot of every group and filter plus the top-level order.
"""

from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

from rule_tree.models import ChildRef, ChildType, Filter, Group

Node = Union[Group, Filter]


class EntityStore(BaseModel):
    """
    Holds all groups and filters keyed by identifier.

    A store is never modified in place: the mutation and reorder engines
    return a new instance through ``replace``, so snapshots captured by
    other components stay valid. The id maps are exposed read-only.
    """
    model_config = ConfigDict(frozen=True)

    groups: Mapping[str, Group] = Field(default_factory=dict, validate_default=True)
    filters: Mapping[str, Filter] = Field(default_factory=dict, validate_default=True)
    top_level: Tuple[str, ...] = Field(default=(), description="Top-level group ids in display order")

    @field_validator("groups", "filters", mode="after")
    @classmethod
    def freeze_mapping(cls, v: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(v))

    def replace(self, **changes: Any) -> "EntityStore":
        """
        Build the next snapshot.

        Args:
            **changes: New values for groups, filters or top_level

        Returns:
            A validated EntityStore; this one is left as it is
        """
        values = {"groups": dict(self.groups), "filters": dict(self.filters), "top_level": self.top_level}
        values.update(changes)
        return EntityStore(**values)

    def get(self, kind: ChildType, node_id: str) -> Optional[Node]:
        """
        Look up an entity.

        Args:
            kind: GROUP or FILTER
            node_id: Identifier of the entity

        Returns:
            The entity, or None when it does not exist
        """
        if kind == ChildType.GROUP:
            return self.groups.get(node_id)
        return self.filters.get(node_id)

    def list(self, kind: ChildType) -> List[str]:
        """Identifiers of the given kind in creation order."""
        if kind == ChildType.GROUP:
            return [group_id for group_id in self.groups]
        return [filter_id for filter_id in self.filters]

    def get_group(self, group_id: str) -> Optional[Group]:
        return self.groups.get(group_id)

    def get_filter(self, filter_id: str) -> Optional[Filter]:
        return self.filters.get(filter_id)

    def has_id(self, node_id: str) -> bool:
        """Whether the identifier is taken by any group or filter."""
        return node_id in self.groups or node_id in self.filters

    def kind_of(self, node_id: str) -> Optional[ChildType]:
        if node_id in self.groups:
            return ChildType.GROUP
        if node_id in self.filters:
            return ChildType.FILTER
        return None

    def parent_of(self, node_id: str) -> Optional[str]:
        node = self.groups.get(node_id) or self.filters.get(node_id)
        return node.parent_id if node else None

    def children_of(self, group_id: str) -> Tuple[ChildRef, ...]:
        group = self.groups.get(group_id)
        return group.children if group else ()

    def ancestors(self, node_id: str) -> List[str]:
        """
        Ancestor group ids of a node, outermost first.

        Args:
            node_id: Group or filter identifier

        Returns:
            List of group ids from the top-level group down to the parent
        """
        chain: List[str] = []
        seen = set()
        parent_id = self.parent_of(node_id)
        while parent_id is not None and parent_id not in seen:
            seen.add(parent_id)
            chain.append(parent_id)
            parent_id = self.parent_of(parent_id)
        chain.reverse()
        return chain

    def position_of(self, node_id: str) -> Optional[int]:
        """Position of a node among its siblings, or None if unknown."""
        kind = self.kind_of(node_id)
        if kind is None:
            return None
        parent_id = self.parent_of(node_id)
        if parent_id is None:
            return self.top_level.index(node_id) if node_id in self.top_level else None
        for position, ref in enumerate(self.children_of(parent_id)):
            if ref.id == node_id and ref.type == kind:
                return position
        return None

    @property
    def group_count(self) -> int:
        return len(self.groups)

    @property
    def filter_count(self) -> int:
        return len(self.filters)

    @property
    def is_empty(self) -> bool:
        return not self.groups and not self.filters
