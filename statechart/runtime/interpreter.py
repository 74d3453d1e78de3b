# statechart/runtime/interpreter.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from statechart.core.errors import InterpreterError
from statechart.core.events import EventLike
from statechart.core.machine import Machine, MachineState

logger = logging.getLogger(__name__)

Listener = Callable[[MachineState], None]


class Interpreter:
    """
    Holds the current state of a machine and feeds it events, notifying
    listeners whenever an event actually changed something.
    """

    def __init__(self, machine: Machine) -> None:
        """
        :param machine: The machine to interpret.
        """
        self._machine = machine
        self._state: Optional[MachineState] = None
        self._listeners: List[Listener] = []

    @property
    def machine(self) -> Machine:
        return self._machine

    @property
    def state(self) -> Optional[MachineState]:
        """The current state, or None before :meth:`start`."""
        return self._state

    @property
    def started(self) -> bool:
        return self._state is not None

    def start(self, state: Optional[MachineState] = None) -> "Interpreter":
        """
        Set the current state, defaulting to the machine's initial state.

        :param state: A snapshot to resume from.
        :return: The interpreter, for chaining.
        """
        self._state = state if state is not None else self._machine.initial_state
        logger.debug("Started %s at %r", self._machine.id, self._state.value)
        return self

    def next(self, event: EventLike) -> MachineState:
        """
        Apply an event to the current state and notify listeners, in the order
        they subscribed, if it changed anything. A listener that raises stops
        the notification and the error reaches the caller.

        :param event: Event name, Event, or mapping with a ``type`` key.
        :return: The new current state.
        :raises InterpreterError: If the interpreter has not been started.
        """
        if self._state is None:
            raise InterpreterError(f"Interpreter for '{self._machine.id}' must be started before sending events")

        self._state = self._machine.transition(self._state, event)
        if self._state.changed:
            logger.debug("Notifying %d listener(s) of %r", len(self._listeners), self._state.value)
            for listener in list(self._listeners):
                listener(self._state)
        return self._state

    send = next

    def listen(self, listener: Listener) -> Listener:
        """
        Subscribe a callback receiving every changed state.

        :return: The listener, so this can be used as a decorator.
        """
        self._listeners.append(listener)
        return listener

    def unlisten(self, listener: Listener) -> None:
        """Remove a previously subscribed callback, if present."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def stop(self) -> None:
        """Drop all listeners. The current state is kept."""
        logger.debug("Stopped %s with %d listener(s)", self._machine.id, len(self._listeners))
        self._listeners.clear()


def interpret(machine: Machine) -> Interpreter:
    """Create an interpreter for ``machine``; call :meth:`Interpreter.start` before sending events."""
    return Interpreter(machine)
