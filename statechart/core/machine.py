# statechart/core/machine.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional, Union

from statechart.core.builder import build_config
from statechart.core.events import Event, EventLike, to_event
from statechart.core.states import StateNode
from statechart.core.types import DEFAULT_MAX_TRANSIENT_STEPS, INIT_EVENT, Context, HistoryRecord, StateValue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MachineState:
    """
    An immutable snapshot of a machine: which states are active, the context
    owned by this snapshot and the history recorded so far.

    :param value: The nested state value of the root node.
    :param context: Machine-wide data belonging to this snapshot.
    :param changed: Whether the event that produced this snapshot changed
        anything; None for an initial state.
    :param done: Whether the root node reports completion.
    :param event: The event that produced this snapshot, if any.
    :param history: History values recorded on exits, by history state path.
    """

    value: StateValue
    context: Context = field(default_factory=dict)
    changed: Optional[bool] = None
    done: bool = False
    event: Optional[Event] = None
    history: HistoryRecord = field(default_factory=dict)

    def matches(self, value: StateValue) -> bool:
        """
        Check whether a (possibly partial) state value is active.

        ``matches("loading")`` holds for ``"loading"`` and for
        ``{"loading": "fetching"}``.
        """
        return _contains(self.value, value)


def _contains(current: StateValue, expected: StateValue) -> bool:
    if isinstance(expected, str):
        if isinstance(current, str):
            return current == expected
        return isinstance(current, Mapping) and expected in current
    if isinstance(expected, Mapping):
        if not isinstance(current, Mapping):
            return False
        for key, sub in expected.items():
            if key not in current:
                return False
            if sub is not None and not _contains(current[key], sub):
                return False
        return True
    return current == expected


class Machine:
    """
    Pairs a built configuration tree with its initial state and exposes the
    pure transition function. A machine is immutable and may be shared.
    """

    def __init__(self, root: StateNode, context: Optional[Mapping[str, Any]] = None) -> None:
        """
        :param root: Root of the configuration tree.
        :param context: Declared initial context, copied for the initial state.
        """
        self._root = root
        self._initial_state = self._enter_root(copy.deepcopy(dict(context or {})))

    def _enter_root(self, context: Context) -> MachineState:
        # Runs entry actions and settles transient chains of the initial configuration.
        history: HistoryRecord = {}
        value = self._root.enter(context, Event(INIT_EVENT), history)
        logger.debug("%s: initial state %r", self._root.id, value)
        return MachineState(value=value, context=context, done=self._root.is_done(value), history=history)

    @property
    def id(self) -> str:
        return self._root.id

    @property
    def root(self) -> StateNode:
        return self._root

    @property
    def initial_state(self) -> MachineState:
        """A fresh copy of the settled initial snapshot; callers may not alter the machine's own."""
        return replace(
            self._initial_state,
            context=copy.deepcopy(self._initial_state.context),
            history=copy.deepcopy(self._initial_state.history),
        )

    def initial_value(self) -> StateValue:
        return copy.deepcopy(self._initial_state.value)

    def is_done(self, value: StateValue) -> bool:
        return self._root.is_done(value)

    def transition(self, state: Union[MachineState, StateValue], event: EventLike) -> MachineState:
        """
        Calculate the state that follows ``state`` on ``event``.

        The context and history of ``state`` are deep-copied before any guard
        or action runs, so the caller's snapshot is never modified, even when
        an action raises.

        :param state: The current snapshot, or a bare state value, in which
            case the machine's initial context is used.
        :param event: Event name, Event, or mapping with a ``type`` key.
        :return: The next snapshot.
        """
        if not isinstance(state, MachineState):
            state = MachineState(value=state, context=self._initial_state.context)
        event = to_event(event)

        context = copy.deepcopy(state.context)
        history = copy.deepcopy(state.history)
        result = self._root.transition(context, state.value, event, history)

        changed = result.changed
        if result.transition is not None:
            # Only internal transitions reach the root.
            result.transition.execute(context, event)
            changed = changed or bool(result.transition.actions)

        logger.debug("%s: %r --%s--> %r (changed=%s)", self._root.id, state.value, event.name, result.value, changed)
        return MachineState(
            value=result.value,
            context=context,
            changed=changed,
            done=self._root.is_done(result.value),
            event=event,
            history=history,
        )

    def __repr__(self) -> str:
        return f"Machine({self._root.id!r})"


def machine(config: Mapping[str, Any], max_transient_steps: int = DEFAULT_MAX_TRANSIENT_STEPS) -> Machine:
    """
    Build a machine from its configuration.

    Example:
        fetch = machine({
            "initial": "idle",
            "context": {"retries": 0},
            "states": {
                "idle": {"events": {"FETCH": "loading"}},
                "loading": {"events": {"RESOLVE": "success", "REJECT": "failure"}},
                "success": {},
                "failure": {"events": {"RETRY": {"target": "loading", "actions": retry}}},
            },
        })
        state = fetch.transition(fetch.initial_state, "FETCH")

    :param config: The root configuration mapping.
    :param max_transient_steps: Bound on chained ``always`` transitions before
        the machine reports a configuration error.
    :raises ConfigurationError: If the configuration is invalid.
    """
    root = build_config(config, max_transient_steps=max_transient_steps)
    return Machine(root, config.get("context"))
