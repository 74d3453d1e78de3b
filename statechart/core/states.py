# statechart/core/states.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
"""
Configuration nodes and the recursive transition algorithm.

A configuration tree is immutable once built. Every node answers the same
questions: what its initial value is, whether a value of it is done, and what
its next value is for an event. Entry and exit actions run while a compound
node applies a transition between two of its children.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence, Tuple

from statechart.core.errors import ConfigurationError, InvariantError
from statechart.core.events import Event
from statechart.core.transitions import Transition
from statechart.core.types import (
    DEFAULT_MAX_TRANSIENT_STEPS,
    WILDCARD,
    Action,
    Context,
    HistoryRecord,
    NodeType,
    StateID,
    StateValue,
)

logger = logging.getLogger(__name__)


@dataclass
class TransitionResult:
    """
    Outcome of dispatching one event to one node.

    :param value: The node's value after the event, possibly unchanged.
    :param changed: True if a change was already applied at or below this node.
    :param transition: A transition the parent still has to apply.
    :param done: True if the node reached completion during this step.
    """

    value: StateValue
    changed: bool = False
    transition: Optional[Transition] = None
    done: bool = False


def to_value(child_id: StateID, child_value: StateValue) -> StateValue:
    """Wrap a child's value under its id, collapsing leaf children to the bare id."""
    if child_value is None:
        return child_id
    return {child_id: child_value}


class StateNode:
    """
    Base class of the five node kinds. Holds what every node may declare:
    events, an eventless ``always`` transition and entry/exit actions.
    """

    node_type: NodeType

    def __init__(
        self,
        id: StateID,
        path: str,
        events: Optional[Dict[str, Transition]] = None,
        always: Optional[Transition] = None,
        entry: Optional[Sequence[Action]] = None,
        exit: Optional[Sequence[Action]] = None,
    ) -> None:
        """
        :param id: Identifier, unique among siblings.
        :param path: Dot-joined ids from the root to this node.
        :param events: Event name (or ``*``) to transition.
        :param always: Eventless transition evaluated after entry and after
            every event nothing else handled.
        :param entry: Actions run when the node is entered.
        :param exit: Actions run when the node is exited.
        """
        self._id = id
        self._path = path
        self._events: Dict[str, Transition] = dict(events or {})
        self._always = always
        self._entry: Tuple[Action, ...] = tuple(entry or ())
        self._exit: Tuple[Action, ...] = tuple(exit or ())

    @property
    def id(self) -> StateID:
        return self._id

    @property
    def path(self) -> str:
        return self._path

    @property
    def events(self) -> Mapping[str, Transition]:
        return self._events

    @property
    def always(self) -> Optional[Transition]:
        return self._always

    @property
    def entry(self) -> Tuple[Action, ...]:
        return self._entry

    @property
    def exit_actions(self) -> Tuple[Action, ...]:
        return self._exit

    @property
    def states(self) -> Mapping[StateID, "StateNode"]:
        """Child nodes by id; empty for leaves."""
        return {}

    def initial_value(self) -> StateValue:
        raise NotImplementedError()

    def is_done(self, value: StateValue) -> bool:
        raise NotImplementedError()

    def transition(self, context: Context, value: StateValue, event: Event, history: HistoryRecord) -> TransitionResult:
        """
        Calculate this node's next value for an event.

        :param context: Machine-wide data, owned by the current call.
        :param value: This node's current value.
        :param event: The event being dispatched.
        :param history: Recorded history values, owned by the current call.
        """
        raise NotImplementedError()

    def enter(self, context: Context, event: Event, history: HistoryRecord, value: StateValue = None) -> StateValue:
        """
        Run entry actions for this node and the subtree it activates.

        :param value: Configuration to restore instead of the initial one.
        :return: The node's value after entry.
        """
        self.run_entry(context, event)
        return None

    def exit(self, context: Context, event: Event, value: StateValue, history: HistoryRecord) -> None:
        """Run exit actions for the active subtree, deepest first, then this node."""
        self.run_exit(context, event)

    def run_entry(self, context: Context, event: Event) -> None:
        logger.debug("Entering '%s'", self._path)
        for action in self._entry:
            action(context, event)

    def run_exit(self, context: Context, event: Event) -> None:
        logger.debug("Exiting '%s'", self._path)
        for action in self._exit:
            action(context, event)

    def _check_leaf_value(self, value: StateValue, event: Event) -> None:
        if value is not None and value != self._id:
            raise InvariantError(f"Unexpected {self.node_type.value} state value", self._path, value, event.name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._path!r})"


def atomic_transition(node: StateNode, context: Context, value: StateValue, event: Event) -> TransitionResult:
    """
    Look for a transition declared on ``node`` itself: the event's entry, the
    wildcard entry when the event has none, then ``always``.

    Atomic nodes never change internally, so the result is never ``changed``;
    any fired transition is left for the parent to apply.
    """
    transition = None
    if node.events:
        candidate = node.events.get(event.name)
        if candidate is None:
            candidate = node.events.get(WILDCARD)
        if candidate is not None:
            transition = candidate.evaluate(context, event)

    if transition is None and node.always is not None:
        transition = node.always.evaluate(context, event)

    return TransitionResult(value, transition=transition)


class AtomicNode(StateNode):
    """
    The smallest state: no children and no internal value. Atomic states
    respond to events with transitions their parent applies.
    """

    node_type = NodeType.ATOMIC

    def initial_value(self) -> StateValue:
        return None

    def is_done(self, value: StateValue) -> bool:
        return False

    def transition(self, context: Context, value: StateValue, event: Event, history: HistoryRecord) -> TransitionResult:
        self._check_leaf_value(value, event)
        return atomic_transition(self, context, value, event)


class FinalNode(StateNode):
    """
    A final state terminates its parent region. It is always done and never
    responds to events.
    """

    node_type = NodeType.FINAL

    def initial_value(self) -> StateValue:
        return None

    def is_done(self, value: StateValue) -> bool:
        return True

    def transition(self, context: Context, value: StateValue, event: Event, history: HistoryRecord) -> TransitionResult:
        self._check_leaf_value(value, event)
        return TransitionResult(value)


class HistoryNode(StateNode):
    """
    A pseudo-state standing for the most recent configuration of its parent.
    It is never active: entering it restores the recorded configuration, or
    the default target on first entry. Resolution is done by the parent.
    """

    node_type = NodeType.HISTORY

    def __init__(self, id: StateID, path: str, deep: bool = False, default: Optional[StateID] = None) -> None:
        super().__init__(id, path)
        self._deep = deep
        self._default = default

    @property
    def deep(self) -> bool:
        return self._deep

    @property
    def default(self) -> Optional[StateID]:
        return self._default

    def initial_value(self) -> StateValue:
        raise InvariantError("History states have no value of their own", self._path)

    def is_done(self, value: StateValue) -> bool:
        return False

    def transition(self, context: Context, value: StateValue, event: Event, history: HistoryRecord) -> TransitionResult:
        raise InvariantError("History states are never active", self._path, value, event.name)

    def enter(self, context: Context, event: Event, history: HistoryRecord, value: StateValue = None) -> StateValue:
        raise InvariantError("History states are resolved by their parent", self._path, value, event.name)


class CompoundNode(StateNode):
    """
    A compound state is in exactly one of its child states at a time. It owns
    the exit/actions/entry sequence of transitions between its children.
    """

    node_type = NodeType.COMPOUND

    def __init__(
        self,
        id: StateID,
        path: str,
        states: Dict[StateID, StateNode],
        initial: StateID,
        done: bool = False,
        on_done: Optional[Transition] = None,
        max_transient_steps: int = DEFAULT_MAX_TRANSIENT_STEPS,
        **kwargs,
    ) -> None:
        super().__init__(id, path, **kwargs)
        self._states = dict(states)
        self._initial = initial
        self._done = done
        self._on_done = on_done
        self._max_transient_steps = max_transient_steps
        self._history_nodes = [node for node in self._states.values() if isinstance(node, HistoryNode)]

    @property
    def states(self) -> Mapping[StateID, StateNode]:
        return self._states

    @property
    def initial(self) -> StateID:
        return self._initial

    @property
    def done(self) -> bool:
        return self._done

    @property
    def on_done(self) -> Optional[Transition]:
        return self._on_done

    def _split(self, value: StateValue, event: Optional[Event] = None) -> Tuple[StateID, StateValue]:
        if isinstance(value, str):
            child_id, child_value = value, None
        elif isinstance(value, Mapping) and len(value) == 1:
            (child_id, child_value), = value.items()
        else:
            raise InvariantError(
                "Compound state value must be a child id or a single-entry mapping",
                self._path, value, event.name if event else None,
            )
        child = self._states.get(child_id)
        if child is None or isinstance(child, HistoryNode):
            raise InvariantError(
                f"Unknown active child '{child_id}'", self._path, value, event.name if event else None
            )
        return child_id, child_value

    def _initial_child(self) -> StateID:
        node = self._states[self._initial]
        if isinstance(node, HistoryNode):
            return node.default
        return self._initial

    def initial_value(self) -> StateValue:
        child_id = self._initial_child()
        return to_value(child_id, self._states[child_id].initial_value())

    def is_done(self, value: StateValue) -> bool:
        child_id, child_value = self._split(value)
        return self._states[child_id].is_done(child_value)

    def transition(self, context: Context, value: StateValue, event: Event, history: HistoryRecord) -> TransitionResult:
        child_id, child_value = self._split(value, event)
        result = self._states[child_id].transition(context, child_value, event, history)

        if result.transition is not None:
            pending = result.transition
            if pending.target is None:
                pending.execute(context, event)
                new_value = to_value(child_id, result.value)
                return self._complete(context, event, new_value, result.changed or bool(pending.actions))

            logger.debug("'%s': %s -> %s on %s", self._path, child_id, pending.target, event.name)
            self._states[child_id].exit(context, event, result.value, history)
            pending.execute(context, event)
            target_id, target_value = self._enter_child(context, event, history, pending.target)
            new_value = self._settle(context, event, history, target_id, target_value)
            return self._complete(context, event, new_value, True)

        if result.changed:
            return self._complete(context, event, to_value(child_id, result.value), True)

        return atomic_transition(self, context, value, event)

    def enter(self, context: Context, event: Event, history: HistoryRecord, value: StateValue = None) -> StateValue:
        self.run_entry(context, event)
        if value is None:
            child_id, child_value = self._enter_child(context, event, history, self._initial)
            return self._settle(context, event, history, child_id, child_value)
        child_id, child_value = self._split(value, event)
        return to_value(child_id, self._states[child_id].enter(context, event, history, child_value))

    def exit(self, context: Context, event: Event, value: StateValue, history: HistoryRecord) -> None:
        child_id, child_value = self._split(value, event)
        self._states[child_id].exit(context, event, child_value, history)
        for node in self._history_nodes:
            history[node.path] = copy.deepcopy(value) if node.deep else child_id
        self.run_exit(context, event)

    def _enter_child(
        self, context: Context, event: Event, history: HistoryRecord, child_id: StateID
    ) -> Tuple[StateID, StateValue]:
        node = self._states[child_id]
        if not isinstance(node, HistoryNode):
            return child_id, node.enter(context, event, history)

        recorded = history.get(node.path)
        if recorded is None:
            fallback = node.default or self._initial
            logger.debug("'%s': no history recorded, entering '%s'", node.path, fallback)
            return self._enter_child(context, event, history, fallback)

        logger.debug("'%s': restoring %r", node.path, recorded)
        if node.deep:
            restored_id, restored_value = self._split(recorded, event)
            return restored_id, self._states[restored_id].enter(context, event, history, restored_value)
        return recorded, self._states[recorded].enter(context, event, history)

    def _settle(
        self, context: Context, event: Event, history: HistoryRecord, child_id: StateID, child_value: StateValue
    ) -> StateValue:
        steps = 0
        while True:
            child = self._states[child_id]
            if child.always is None:
                break
            transition = child.always.evaluate(context, event)
            if transition is None:
                break

            steps += 1
            if steps > self._max_transient_steps:
                logger.error("'%s': transient transitions still firing after %d steps", self._path, steps - 1)
                raise ConfigurationError(
                    f"Transient transitions did not settle within {self._max_transient_steps} steps",
                    self._path,
                    child_id,
                )

            logger.debug("'%s': transient %s -> %s", self._path, child_id, transition.target)
            child.exit(context, event, child_value, history)
            transition.execute(context, event)
            child_id, child_value = self._enter_child(context, event, history, transition.target)
        return to_value(child_id, child_value)

    def _complete(self, context: Context, event: Event, value: StateValue, changed: bool) -> TransitionResult:
        if changed and self._done and self.is_done(value):
            logger.debug("'%s' is done", self._path)
            pending = self._on_done.evaluate(context, event) if self._on_done is not None else None
            return TransitionResult(value, changed, pending, done=True)
        return TransitionResult(value, changed)


class ParallelNode(StateNode):
    """
    A parallel state is in all of its child regions at once. Regions see the
    same event independently of one another.
    """

    node_type = NodeType.PARALLEL

    def __init__(
        self,
        id: StateID,
        path: str,
        states: Dict[StateID, StateNode],
        done: bool = False,
        on_done: Optional[Transition] = None,
        **kwargs,
    ) -> None:
        super().__init__(id, path, **kwargs)
        self._states = dict(states)
        self._done = done
        self._on_done = on_done

    @property
    def states(self) -> Mapping[StateID, StateNode]:
        return self._states

    @property
    def done(self) -> bool:
        return self._done

    @property
    def on_done(self) -> Optional[Transition]:
        return self._on_done

    def _check(self, value: StateValue, event: Optional[Event] = None) -> Mapping[StateID, StateValue]:
        if not isinstance(value, Mapping) or set(value) != set(self._states):
            raise InvariantError(
                f"Parallel state value must map every region {sorted(self._states)}",
                self._path, value, event.name if event else None,
            )
        return value

    def initial_value(self) -> StateValue:
        return {region_id: region.initial_value() for region_id, region in self._states.items()}

    def is_done(self, value: StateValue) -> bool:
        values = self._check(value)
        return all(region.is_done(values[region_id]) for region_id, region in self._states.items())

    def transition(self, context: Context, value: StateValue, event: Event, history: HistoryRecord) -> TransitionResult:
        values = self._check(value, event)
        new_value = {}
        any_changed = False

        for region_id, region in self._states.items():
            result = region.transition(context, values[region_id], event, history)
            if result.transition is not None:
                # Regions can only hand up internal transitions.
                result.transition.execute(context, event)
                any_changed = any_changed or bool(result.transition.actions)
            new_value[region_id] = result.value
            any_changed = any_changed or result.changed

        if any_changed:
            if self._done and self.is_done(new_value):
                logger.debug("'%s' is done", self._path)
                pending = self._on_done.evaluate(context, event) if self._on_done is not None else None
                return TransitionResult(new_value, True, pending, done=True)
            return TransitionResult(new_value, True)

        return atomic_transition(self, context, value, event)

    def enter(self, context: Context, event: Event, history: HistoryRecord, value: StateValue = None) -> StateValue:
        self.run_entry(context, event)
        values = self._check(value, event) if value is not None else {}
        return {
            region_id: region.enter(context, event, history, values.get(region_id))
            for region_id, region in self._states.items()
        }

    def exit(self, context: Context, event: Event, value: StateValue, history: HistoryRecord) -> None:
        values = self._check(value, event)
        for region_id, region in self._states.items():
            region.exit(context, event, values[region_id], history)
        self.run_exit(context, event)
