"""
Rule Tree Store Package

Exports the entity store and its integrity checker.
"""

from .entity_store import EntityStore
from .integrity import StoreIntegrityChecker, check_store

__all__ = ["EntityStore", "StoreIntegrityChecker", "check_store"]
