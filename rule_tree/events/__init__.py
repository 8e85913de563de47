"""
Rule Tree Events Package

Exports the reveal event dispatcher.
"""

from .reveal_dispatcher import RevealDispatcher, RevealListener

__all__ = ["RevealDispatcher", "RevealListener"]
