"""
Rule Tree Models

Defines data models for visually composed rules: logical groups, filters
and the derived view of the tree.
"""

from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class LogicType(str, Enum):
    """Boolean logic applied by a group to its children."""
    AND = "AND"
    OR = "OR"


class OperatorType(str, Enum):
    """Operators a filter can apply to its field."""
    EQUALS = "equals"
    NOT_EQUALS = "not equals"
    IS_AFTER = "is after"
    IS_BEFORE = "is before"


class ChildType(str, Enum):
    """Kind of node a child reference points to."""
    GROUP = "GROUP"
    FILTER = "FILTER"


class GroupAction(str, Enum):
    """Commands accepted for groups."""
    CREATE = "CREATE"
    EDIT = "EDIT"
    SUB_CREATE = "SUB_CREATE"


class FilterAction(str, Enum):
    """Commands accepted for filters."""
    CREATE = "CREATE"
    EDIT = "EDIT"


def _require_text(value: str, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{name} is required")
    return value.strip()


class ChildRef(BaseModel):
    """Ordered reference from a group to one of its children."""
    model_config = ConfigDict(frozen=True)

    type: ChildType
    id: str


class Group(BaseModel):
    """
    A logical node.

    Example:
        group_id: "5d0c..."
        title: "Premium customers"
        logic: "AND"
    """
    model_config = ConfigDict(frozen=True)

    group_id: str = Field(..., description="Unique identifier, immutable once created")
    title: str = Field(..., description="Display label")
    logic: LogicType = Field(default=LogicType.AND, description="Logic applied to children")
    parent_id: Optional[str] = Field(None, description="Owning group; absent for top-level groups")
    children: Tuple[ChildRef, ...] = Field(default=(), description="Ordered child references")

    @field_validator('group_id')
    @classmethod
    def validate_group_id(cls, v: str) -> str:
        """Validate identifier."""
        return _require_text(v, "Group id")

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Trim title and reject blanks."""
        return _require_text(v, "Title")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "group_id": self.group_id,
            "title": self.title,
            "logic": self.logic.value,
            "parent_id": self.parent_id,
            "children": [{"type": c.type.value, "id": c.id} for c in self.children]
        }


class Filter(BaseModel):
    """
    A leaf predicate owned by exactly one group.

    Example:
        field: "country"
        operator: "equals"
        value: "FR"
    """
    model_config = ConfigDict(frozen=True)

    filter_id: str = Field(..., description="Unique identifier, immutable once created")
    field: str = Field(..., description="Field the predicate applies to")
    value: str = Field(..., description="Value to compare against")
    operator: OperatorType = Field(..., description="Comparison operator")
    parent_id: str = Field(..., description="Owning group")

    @field_validator('filter_id', 'parent_id')
    @classmethod
    def validate_ids(cls, v: str) -> str:
        return _require_text(v, "Identifier")

    @field_validator('field')
    @classmethod
    def validate_field(cls, v: str) -> str:
        """Trim field and reject blanks."""
        return _require_text(v, "Field")

    @field_validator('value')
    @classmethod
    def validate_value(cls, v: str) -> str:
        """Trim value and reject blanks."""
        return _require_text(v, "Value")

    @property
    def label(self) -> str:
        return f"{self.field} {self.operator.value} {self.value}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "filter_id": self.filter_id,
            "field": self.field,
            "value": self.value,
            "operator": self.operator.value,
            "parent_id": self.parent_id
        }


class GroupCommand(BaseModel):
    """
    Group command dispatched by the presentation layer.
    """
    action: GroupAction
    group: Group
    parent_id: Optional[str] = None

    @model_validator(mode='after')
    def validate_parent(self) -> "GroupCommand":
        """SUB_CREATE needs a parent, the other actions must not name one."""
        if self.action == GroupAction.SUB_CREATE and not self.parent_id:
            raise ValueError("SUB_CREATE requires a parent_id")
        if self.action != GroupAction.SUB_CREATE and self.parent_id:
            raise ValueError(f"{self.action.value} does not accept a parent_id")
        if self.action == GroupAction.CREATE and self.group.parent_id:
            raise ValueError("CREATE adds a top-level group; use SUB_CREATE to nest it")
        return self


class FilterCommand(BaseModel):
    """
    Filter command dispatched by the presentation layer.
    """
    action: FilterAction
    filter: Filter
    parent_id: Optional[str] = None

    @property
    def target_parent_id(self) -> str:
        return self.parent_id or self.filter.parent_id


class MoveRequest(BaseModel):
    """
    Reorder request resolved from a drag-and-drop gesture.

    ``scope`` is the drop target's parent group (None for the top-level
    order). ``dragged_scope`` is the parent captured when the drag started
    and defaults to ``scope`` when omitted.
    """
    model_config = ConfigDict(extra="forbid")

    from_index: int
    to_index: int
    scope: Optional[str] = None
    dragged_scope: Optional[str] = None

    @property
    def source_scope(self) -> Optional[str]:
        if 'dragged_scope' in self.model_fields_set:
            return self.dragged_scope
        return self.scope


class NodeFlags(BaseModel):
    """Live, local-only toggles of a node. Never stored in the tree."""
    model_config = ConfigDict(frozen=True)

    blocked: bool = False
    paused: bool = False


class NodeControls(BaseModel):
    """Which interactive controls are enabled for a node."""
    model_config = ConfigDict(frozen=True)

    can_drag: bool = False
    can_open_actions: bool = False
    can_edit: bool = False
    can_toggle_logic: bool = False
    can_toggle_block: bool = False
    can_toggle_pause: bool = False
    can_add_children: bool = False


class ProjectedNode(BaseModel):
    """
    A node of the derived tree view.
    """
    model_config = ConfigDict(frozen=True)

    node_type: ChildType
    node_id: str
    label: str
    logic: Optional[LogicType] = None
    parent_id: Optional[str] = None
    display_index: str
    depth: int
    position: int
    sibling_count: int
    is_last: bool

    blocked: bool = False
    paused: bool = False
    parent_blocked: bool = False
    parent_paused: bool = False
    effective_blocked: bool = False
    effective_paused: bool = False

    controls: NodeControls = Field(default_factory=NodeControls)
    children: List["ProjectedNode"] = Field(default_factory=list)

    def walk(self) -> Iterator["ProjectedNode"]:
        """Yield this node and its descendants depth-first."""
        yield self
        for child in self.children:
            yield from child.walk()


class TreeView(BaseModel):
    """
    Read-only projection of the whole rule tree.
    """
    model_config = ConfigDict(frozen=True)

    roots: List[ProjectedNode] = Field(default_factory=list)

    @property
    def top_level_count(self) -> int:
        return len(self.roots)

    @property
    def is_empty(self) -> bool:
        return not self.roots

    def walk(self) -> Iterator[ProjectedNode]:
        """Yield every node in display order."""
        for root in self.roots:
            yield from root.walk()

    def find(self, node_id: str) -> Optional[ProjectedNode]:
        for node in self.walk():
            if node.node_id == node_id:
                return node
        return None

    def find_by_display_index(self, display_index: str) -> Optional[ProjectedNode]:
        wanted = display_index.rstrip(".")
        for node in self.walk():
            if node.display_index == wanted:
                return node
        return None


class RevealEvent(BaseModel):
    """
    Emitted after a successful create so the presentation layer can open
    the ancestor chain and bring the new node into view.
    """
    model_config = ConfigDict(frozen=True)

    node_type: ChildType
    node_id: str
    ancestor_ids: Tuple[str, ...] = Field(default=(), description="Ancestor groups, outermost first")
    scroll_to_end: bool = Field(default=False, description="Node was appended to the top-level order")


class ValidationResult(BaseModel):
    """
    Result of validating a store.
    """
    valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
