"""
Rule Tree Projection Package

Exports the state projection.
"""

from .state_projection import StateProjection, project

__all__ = ["StateProjection", "project"]
