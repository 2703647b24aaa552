"""
attrflow utilities.
"""

from .graph import DependencyGraph

__all__ = ["DependencyGraph"]
