"""statechart: hierarchical and parallel state machines driven by declarative configuration

A machine is built once from nested dicts describing its states, events,
guarded transitions and entry/exit actions. Its transition function is pure:
given a state snapshot and an event it returns the next snapshot, working on a
private copy of the context.

Responsibilities:
    - Building configuration trees from dicts
    - Transition resolution across atomic, final, compound and parallel states
    - Transient ("always") transition chains
    - Shallow and deep history
    - A thin interpreter holding the current state and notifying listeners

Error Handling:
    - ConfigurationError for malformed configurations, raised while building
    - InvariantError for state values that do not fit the tree
    - Guard and action failures propagate unmodified

Logging:
    - Standard library logging under the ``statechart`` logger namespace
    - No handlers are installed by the library
"""

from statechart.core.errors import ConfigurationError, InterpreterError, InvariantError, StatechartError
from statechart.core.events import Event
from statechart.core.machine import Machine, MachineState, machine
from statechart.runtime.interpreter import Interpreter, interpret

__version__ = "0.1.0"

__all__ = [
    "machine",
    "interpret",
    "Machine",
    "MachineState",
    "Interpreter",
    "Event",
    "StatechartError",
    "ConfigurationError",
    "InvariantError",
    "InterpreterError",
]
