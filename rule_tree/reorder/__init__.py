"""
Rule Tree Reorder Package

Exports the reorder engine.
"""

from .reorder_engine import ReorderEngine, splice, TOP_LEVEL_SCOPE

__all__ = ["ReorderEngine", "splice", "TOP_LEVEL_SCOPE"]
