"""
Command Results

Structured outcome of every command applied to the rule tree.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from rule_tree.models.rule_tree import RevealEvent
from exceptions import (
    RuleTreeError,
    NodeNotFoundError,
    ScopeMismatchError,
    IndexOutOfRangeError,
    DuplicateIdentifierError,
    InvalidCommandError,
    InteractionDisabledError
)

if TYPE_CHECKING:
    from rule_tree.store.entity_store import EntityStore


class CommandStatus(Enum):
    """Outcome of a command."""
    APPLIED = "applied"
    NO_OP = "no_op"
    REJECTED = "rejected"


class RejectionKind(Enum):
    """Why a command was rejected."""
    NOT_FOUND = "not_found"
    SCOPE_MISMATCH = "scope_mismatch"
    OUT_OF_RANGE = "out_of_range"
    DUPLICATE_ID = "duplicate_id"
    INVALID_INPUT = "invalid_input"
    INTERACTION_DISABLED = "interaction_disabled"


_KIND_BY_ERROR = [
    (NodeNotFoundError, RejectionKind.NOT_FOUND),
    (ScopeMismatchError, RejectionKind.SCOPE_MISMATCH),
    (IndexOutOfRangeError, RejectionKind.OUT_OF_RANGE),
    (DuplicateIdentifierError, RejectionKind.DUPLICATE_ID),
    (InvalidCommandError, RejectionKind.INVALID_INPUT),
    (InteractionDisabledError, RejectionKind.INTERACTION_DISABLED),
]


@dataclass(frozen=True)
class Rejection:
    """Recoverable condition reported to the caller."""
    kind: RejectionKind
    message: str
    context: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_error(cls, error: RuleTreeError) -> "Rejection":
        for error_type, kind in _KIND_BY_ERROR:
            if isinstance(error, error_type):
                return cls(kind=kind, message=error.message, context=dict(error.context))
        return cls(kind=RejectionKind.INVALID_INPUT, message=error.message, context=dict(error.context))


@dataclass(frozen=True)
class CommandResult:
    """
    Result of applying a command.

    ``store`` is the resulting snapshot. When the command is a no-op or is
    rejected it is the same instance that was passed in.
    """
    status: CommandStatus
    store: "EntityStore"
    message: str = ""
    node_id: Optional[str] = None
    rejection: Optional[Rejection] = None
    events: List[RevealEvent] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status != CommandStatus.REJECTED

    @property
    def applied(self) -> bool:
        return self.status == CommandStatus.APPLIED

    @classmethod
    def applied_to(
        cls,
        store: "EntityStore",
        message: str,
        node_id: Optional[str] = None,
        events: Optional[List[RevealEvent]] = None
    ) -> "CommandResult":
        return cls(
            status=CommandStatus.APPLIED,
            store=store,
            message=message,
            node_id=node_id,
            events=list(events or [])
        )

    @classmethod
    def no_op(cls, store: "EntityStore", message: str, node_id: Optional[str] = None) -> "CommandResult":
        return cls(status=CommandStatus.NO_OP, store=store, message=message, node_id=node_id)

    @classmethod
    def rejected(cls, store: "EntityStore", error: RuleTreeError) -> "CommandResult":
        return cls(
            status=CommandStatus.REJECTED,
            store=store,
            message=error.message,
            rejection=Rejection.from_error(error)
        )
