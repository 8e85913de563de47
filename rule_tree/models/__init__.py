"""
Rule Tree Models Package

Exports all model classes for the rule tree.
"""

from .rule_tree import (
    LogicType,
    OperatorType,
    ChildType,
    GroupAction,
    FilterAction,
    ChildRef,
    Group,
    Filter,
    GroupCommand,
    FilterCommand,
    MoveRequest,
    NodeFlags,
    NodeControls,
    ProjectedNode,
    TreeView,
    RevealEvent,
    ValidationResult
)
from .results import (
    CommandStatus,
    RejectionKind,
    Rejection,
    CommandResult
)

__all__ = [
    "LogicType",
    "OperatorType",
    "ChildType",
    "GroupAction",
    "FilterAction",
    "ChildRef",
    "Group",
    "Filter",
    "GroupCommand",
    "FilterCommand",
    "MoveRequest",
    "NodeFlags",
    "NodeControls",
    "ProjectedNode",
    "TreeView",
    "RevealEvent",
    "ValidationResult",
    "CommandStatus",
    "RejectionKind",
    "Rejection",
    "CommandResult"
]
