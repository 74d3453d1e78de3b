"""
Runtime package: stateful wrappers around the pure machine.
"""

from .interpreter import Interpreter, interpret

__all__ = ["Interpreter", "interpret"]
