"""
hooktrace Utils
===============

Graph helpers shared by component definitions.
"""

from .cycle_detector import OrderedTopoSort

__all__ = ["OrderedTopoSort"]
