"""
Custom Exception Hierarchy for Rulecraft
Provides structured error handling with context preservation.
"""
from typing import Optional, Dict, Any


class RulecraftError(Exception):
    """Base exception for all Rulecraft errors."""

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.component = component
        self.context = context or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "component": self.component,
            "context": self.context
        }


# -------------------------------------------------------------------------
# CONFIGURATION ERRORS
# -------------------------------------------------------------------------

class ConfigurationError(RulecraftError):
    """Raised when configuration is invalid or missing."""
    pass


# -------------------------------------------------------------------------
# RULE TREE ERRORS
# -------------------------------------------------------------------------

class RuleTreeError(RulecraftError):
    """Base class for rule tree command errors (recoverable)."""
    pass


class NodeNotFoundError(RuleTreeError):
    """Raised when a command references a group or filter that does not exist."""
    pass


class ParentNotFoundError(NodeNotFoundError):
    """Raised when the parent group named by a command does not exist."""
    pass


class ScopeMismatchError(RuleTreeError):
    """Raised when a move's dragged scope differs from its drop scope."""
    pass


class IndexOutOfRangeError(RuleTreeError):
    """Raised when a move index lies outside the addressed collection."""
    pass


class EmptyScopeError(IndexOutOfRangeError):
    """Raised when a move addresses a collection with no elements."""
    pass


class DuplicateIdentifierError(RuleTreeError):
    """Raised when a create would reuse an existing identifier."""
    pass


class InvalidCommandError(RuleTreeError):
    """Raised when command input is malformed."""
    pass


class InteractionDisabledError(RuleTreeError):
    """Raised when the targeted control is disabled by a blocked ancestor."""
    pass


# -------------------------------------------------------------------------
# INTEGRITY ERRORS
# -------------------------------------------------------------------------

class TreeIntegrityError(RulecraftError):
    """Raised when a store violates its structural invariants."""
    pass
