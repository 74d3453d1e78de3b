"""
Core package: configuration nodes, transitions, the tree builder and the
machine.

Import order matters to avoid circular dependencies.
"""

from .types import NodeType
from .errors import ConfigurationError, InterpreterError, InvariantError, StatechartError
from .events import Event, to_event
from .transitions import MultiTransition, Transition, build_transition
from .states import (
    AtomicNode,
    CompoundNode,
    FinalNode,
    HistoryNode,
    ParallelNode,
    StateNode,
    TransitionResult,
    atomic_transition,
)
from .builder import NODE_TYPES, build_config, infer_node_type
from .machine import Machine, MachineState, machine

__all__ = [
    "NodeType",
    "StatechartError",
    "ConfigurationError",
    "InvariantError",
    "InterpreterError",
    "Event",
    "to_event",
    "Transition",
    "MultiTransition",
    "build_transition",
    "StateNode",
    "AtomicNode",
    "FinalNode",
    "CompoundNode",
    "ParallelNode",
    "HistoryNode",
    "TransitionResult",
    "atomic_transition",
    "NODE_TYPES",
    "build_config",
    "infer_node_type",
    "Machine",
    "MachineState",
    "machine",
]
