# statechart/core/builder.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
"""
Builds an immutable configuration tree from a nested-dict machine config.

The input is never modified. Node kinds are taken from an explicit ``type``
key, or inferred from the keys present.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type

from statechart.core.errors import ConfigurationError
from statechart.core.states import AtomicNode, CompoundNode, FinalNode, HistoryNode, ParallelNode, StateNode
from statechart.core.transitions import as_action_list, build_transition
from statechart.core.types import DEFAULT_MAX_TRANSIENT_STEPS, NodeType, StateID
from statechart.core.validations import HISTORY_KINDS, Validator

logger = logging.getLogger(__name__)

NODE_TYPES: Mapping[NodeType, Type[StateNode]] = MappingProxyType(
    {
        NodeType.ATOMIC: AtomicNode,
        NodeType.FINAL: FinalNode,
        NodeType.COMPOUND: CompoundNode,
        NodeType.PARALLEL: ParallelNode,
        NodeType.HISTORY: HistoryNode,
    }
)

DEFAULT_ROOT_ID = "machine"


def infer_node_type(cfg: Mapping[str, Any]) -> NodeType:
    """
    Work out the kind of node a configuration describes.

    ``states`` with ``initial`` is compound, ``states`` alone is parallel,
    ``events`` or ``always`` is atomic, ``history`` or ``default`` is a history
    state, and anything else is final.
    """
    if "type" in cfg:
        return NodeType(cfg["type"])
    if cfg.get("states"):
        if "initial" in cfg:
            return NodeType.COMPOUND
        return NodeType.PARALLEL
    if "events" in cfg or "always" in cfg:
        return NodeType.ATOMIC
    if "history" in cfg or "default" in cfg:
        return NodeType.HISTORY
    return NodeType.FINAL


class TreeBuilder:
    """
    Converts a machine configuration into a tree of configuration nodes,
    validating each fragment on the way down and each node on the way up.
    """

    def __init__(
        self, validator: Optional[Validator] = None, max_transient_steps: int = DEFAULT_MAX_TRANSIENT_STEPS
    ) -> None:
        """
        :param validator: Validator applied to every fragment and node.
        :param max_transient_steps: Bound on chained ``always`` transitions
            handed to every compound node.
        """
        if max_transient_steps < 1:
            raise ConfigurationError("max_transient_steps must be at least 1", fragment=max_transient_steps)
        self._validator = validator or Validator()
        self._max_transient_steps = max_transient_steps

    def build(self, config: Mapping[str, Any]) -> StateNode:
        """
        Build the root node of a machine.

        :param config: The root configuration mapping.
        :raises ConfigurationError: If any part of the configuration is invalid.
        """
        self._validator.validate_fragment(config, DEFAULT_ROOT_ID, is_root=True)
        root_id = config.get("id", DEFAULT_ROOT_ID)
        if not isinstance(root_id, str) or not root_id:
            raise ConfigurationError("Machine 'id' must be a non-empty string", DEFAULT_ROOT_ID, root_id)
        root = self._build_node(root_id, root_id, config)
        self._validator.validate_node(root, None)
        return root

    def _build_node(self, node_id: StateID, path: str, cfg: Mapping[str, Any]) -> StateNode:
        node_type = infer_node_type(cfg)
        self._validator.validate_kind(node_type, cfg, path)

        if node_type is NodeType.HISTORY:
            deep = HISTORY_KINDS[cfg.get("history", "shallow")]
            node = HistoryNode(node_id, path, deep=deep, default=cfg.get("default"))
            logger.debug("Built %s state '%s'", node_type.value, path)
            return node

        kwargs: Dict[str, Any] = {
            "events": self._build_events(cfg.get("events"), path),
            "always": build_transition(cfg["always"], path) if cfg.get("always") is not None else None,
            "entry": as_action_list(cfg.get("entry"), "entry", path),
            "exit": as_action_list(cfg.get("exit"), "exit", path),
        }

        if node_type in (NodeType.COMPOUND, NodeType.PARALLEL):
            kwargs["states"] = self._build_children(cfg["states"], path)
            kwargs["done"] = cfg.get("done", False)
            if cfg.get("on_done") is not None:
                kwargs["on_done"] = build_transition(cfg["on_done"], path)
            if node_type is NodeType.COMPOUND:
                kwargs["initial"] = cfg["initial"]
                kwargs["max_transient_steps"] = self._max_transient_steps

        node = NODE_TYPES[node_type](node_id, path, **kwargs)
        for child in node.states.values():
            self._validator.validate_node(child, node)
        logger.debug("Built %s state '%s'", node_type.value, path)
        return node

    def _build_events(self, events: Any, path: str) -> Dict[str, Any]:
        if events is None:
            return {}
        if not isinstance(events, Mapping):
            raise ConfigurationError("'events' must map event names to transitions", path, events)
        built = {}
        for name, spec in events.items():
            if not isinstance(name, str) or not name:
                raise ConfigurationError("Event names must be non-empty strings", path, name)
            built[name] = build_transition(spec, f"{path}.events.{name}")
        return built

    def _build_children(self, states: Any, path: str) -> Dict[StateID, StateNode]:
        children = {}
        for child_id, child_cfg in self._iter_children(states, path):
            child_path = f"{path}.{child_id}"
            self._validator.validate_fragment(child_cfg, child_path)
            children[child_id] = self._build_node(child_id, child_path, child_cfg)
        return children

    @staticmethod
    def _iter_children(states: Any, path: str) -> List[Tuple[StateID, Mapping[str, Any]]]:
        if isinstance(states, Mapping):
            entries = list(states.items())
        elif isinstance(states, (list, tuple)):
            entries = []
            for item in states:
                if not isinstance(item, Mapping) or not item.get("id"):
                    raise ConfigurationError("States given as a list need an 'id' each", path, item)
                entries.append((item["id"], {k: v for k, v in item.items() if k != "id"}))
        else:
            raise ConfigurationError("'states' must be a mapping or a list of states", path, states)

        seen = set()
        for child_id, _ in entries:
            if not isinstance(child_id, str) or not child_id or "." in child_id:
                raise ConfigurationError("State ids must be non-empty strings without '.'", path, child_id)
            if child_id in seen:
                raise ConfigurationError(f"Duplicate state id '{child_id}'", path)
            seen.add(child_id)
        return entries


def build_config(
    config: Mapping[str, Any], max_transient_steps: int = DEFAULT_MAX_TRANSIENT_STEPS
) -> StateNode:
    """
    Build a configuration tree from a machine configuration.

    :param config: The root configuration mapping.
    :param max_transient_steps: Bound on chained ``always`` transitions.
    :raises ConfigurationError: If the configuration is invalid.
    """
    return TreeBuilder(max_transient_steps=max_transient_steps).build(config)
