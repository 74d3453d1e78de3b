# statechart/core/transitions.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence, Tuple

from statechart.core.errors import ConfigurationError
from statechart.core.events import Event
from statechart.core.types import Action, Context, Guard, StateID

TRANSITION_KEYS = frozenset({"target", "guard", "actions"})


class Transition:
    """
    A candidate state change for a single event. The guard, if any, decides
    whether the candidate is eligible; the actions run when it fires.

    A transition without a target is internal: it runs its actions and leaves
    the active configuration alone.
    """

    def __init__(
        self,
        target: Optional[StateID] = None,
        guard: Optional[Guard] = None,
        actions: Optional[Sequence[Action]] = None,
    ) -> None:
        """
        :param target: Id of the sibling state to move to, or None to stay put.
        :param guard: Predicate ``(context, event) -> bool`` gating the transition.
        :param actions: Callables ``(context, event)`` run in order on firing.
        """
        self._target = target
        self._guard = guard
        self._actions: Tuple[Action, ...] = tuple(actions or ())

    @property
    def target(self) -> Optional[StateID]:
        """The id of the target state, or None for an internal transition."""
        return self._target

    @property
    def guard(self) -> Optional[Guard]:
        return self._guard

    @property
    def actions(self) -> Tuple[Action, ...]:
        return self._actions

    @property
    def candidates(self) -> Tuple["Transition", ...]:
        """Every concrete transition this object may select."""
        return (self,)

    def evaluate(self, context: Context, event: Event) -> Optional["Transition"]:
        """
        Check the guard against the current context and event.

        :return: This transition if there is no guard or the guard passes,
            otherwise None.
        """
        if _GuardEvaluator().evaluate(self._guard, context, event):
            return self
        return None

    def execute(self, context: Context, event: Event) -> None:
        """
        Run this transition's actions. Failures propagate to the caller as-is.
        """
        _ActionExecutor().execute(self._actions, context, event)

    def __repr__(self) -> str:
        return f"Transition(target={self._target!r}, guard={self._guard!r}, actions={len(self._actions)})"


class MultiTransition(Transition):
    """
    One or more candidate transitions for the same event. The first candidate,
    in declaration order, whose guard passes is selected.
    """

    def __init__(self, transitions: Sequence[Transition]) -> None:
        super().__init__()
        self._transitions: Tuple[Transition, ...] = tuple(transitions)

    @property
    def candidates(self) -> Tuple[Transition, ...]:
        return self._transitions

    def evaluate(self, context: Context, event: Event) -> Optional[Transition]:
        for transition in self._transitions:
            selected = transition.evaluate(context, event)
            if selected is not None:
                return selected
        return None

    def __repr__(self) -> str:
        return f"MultiTransition({list(self._transitions)!r})"


class _GuardEvaluator:
    """
    Internal helper evaluating an optional guard against context and event.
    """

    def evaluate(self, guard: Optional[Guard], context: Context, event: Event) -> bool:
        if guard is None:
            return True
        return bool(guard(context, event))


class _ActionExecutor:
    """
    Internal helper running a list of actions in declaration order.
    """

    def execute(self, actions: Sequence[Action], context: Context, event: Event) -> None:
        for action in actions:
            action(context, event)


def as_action_list(spec: Any, what: str, path: Optional[str] = None) -> List[Action]:
    """
    Normalize an action spec (a callable or a list of callables) to a list.

    :param spec: The configured action or actions; None means no actions.
    :param what: Name of the configuration key, used in error messages.
    :param path: Dotted path of the declaring node.
    :raises ConfigurationError: If any entry is not callable.
    """
    if spec is None:
        return []
    if callable(spec):
        return [spec]
    if isinstance(spec, (list, tuple)):
        for action in spec:
            if not callable(action):
                raise ConfigurationError(f"'{what}' entries must be callable", path, action)
        return list(spec)
    raise ConfigurationError(f"'{what}' must be a callable or a list of callables", path, spec)


def _build_single(spec: Any, path: Optional[str]) -> Transition:
    if isinstance(spec, str):
        return Transition(target=spec)
    if isinstance(spec, Mapping):
        unknown = set(spec) - TRANSITION_KEYS
        if unknown:
            raise ConfigurationError(f"Unknown transition keys {sorted(unknown)}", path, dict(spec))
        target = spec.get("target")
        if target is not None and (not isinstance(target, str) or not target):
            raise ConfigurationError("Transition target must be a non-empty string", path, dict(spec))
        guard = spec.get("guard")
        if guard is not None and not callable(guard):
            raise ConfigurationError("Transition guard must be callable", path, guard)
        return Transition(target=target, guard=guard, actions=as_action_list(spec.get("actions"), "actions", path))
    raise ConfigurationError(
        f"Expected string or mapping transition but got {type(spec).__name__}", path, spec
    )


def build_transition(spec: Any, path: Optional[str] = None) -> Transition:
    """
    Construct a concrete transition from its configuration.

    :param spec: A string (bare target), a mapping with ``target``/``guard``/
        ``actions``, or a list of those, which yields a MultiTransition.
    :param path: Dotted path of the declaring node, used in error messages.
    :raises ConfigurationError: If the spec is malformed.
    """
    if isinstance(spec, (list, tuple)):
        if not spec:
            raise ConfigurationError("A transition list must not be empty", path, spec)
        return MultiTransition([_build_single(item, path) for item in spec])
    return _build_single(spec, path)
