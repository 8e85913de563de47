"""
Rule Tree Package

Visual rule builder core: groups, filters, mutations, reordering and the
derived tree view.
"""

from .rule_builder import RuleBuilder
from .models import (
    LogicType,
    OperatorType,
    ChildType,
    ChildRef,
    Group,
    Filter,
    GroupCommand,
    FilterCommand,
    MoveRequest,
    NodeFlags,
    TreeView,
    CommandResult,
    CommandStatus,
    RejectionKind
)
from .store import EntityStore
from .mutations import MutationEngine
from .reorder import ReorderEngine
from .projection import StateProjection, project

__all__ = [
    "RuleBuilder",
    "LogicType",
    "OperatorType",
    "ChildType",
    "ChildRef",
    "Group",
    "Filter",
    "GroupCommand",
    "FilterCommand",
    "MoveRequest",
    "NodeFlags",
    "TreeView",
    "CommandResult",
    "CommandStatus",
    "RejectionKind",
    "EntityStore",
    "MutationEngine",
    "ReorderEngine",
    "StateProjection",
    "project"
]
