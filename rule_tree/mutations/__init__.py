"""
Rule Tree Mutations Package

Exports the mutation engine.
"""

from .mutation_engine import MutationEngine

__all__ = ["MutationEngine"]
