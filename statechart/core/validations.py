# statechart/core/validations.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from typing import Any, Mapping, Optional

from statechart.core.errors import ConfigurationError
from statechart.core.states import CompoundNode, FinalNode, HistoryNode, ParallelNode, StateNode
from statechart.core.types import NodeType

NODE_KEYS = frozenset(
    {"type", "initial", "states", "events", "always", "entry", "exit", "history", "default", "done", "on_done"}
)
ROOT_KEYS = NODE_KEYS | {"id", "context"}
HISTORY_KINDS = {"shallow": False, "deep": True, True: False}
NODE_TYPE_NAMES = tuple(node_type.value for node_type in NodeType)


class Validator:
    """
    Performs build-time validation of machine configurations, both of raw
    configuration fragments and of the nodes built from them.
    """

    def __init__(self) -> None:
        self._rules = _DefaultValidationRules

    def validate_fragment(self, cfg: Any, path: str, is_root: bool = False) -> None:
        """
        Check a raw node configuration before it is built.

        :param cfg: The node's configuration mapping.
        :param path: Dotted path of the node.
        :param is_root: Whether the node is the machine's root.
        :raises ConfigurationError: If validation fails.
        """
        self._rules.validate_fragment(cfg, path, is_root)

    def validate_kind(self, node_type: NodeType, cfg: Mapping[str, Any], path: str) -> None:
        """
        Check that the keys present in a fragment make sense for its node kind.

        :raises ConfigurationError: If validation fails.
        """
        self._rules.validate_kind(node_type, cfg, path)

    def validate_node(self, node: StateNode, parent: Optional[StateNode] = None) -> None:
        """
        Check a built node against its children and against its parent, which
        holds the ids its transitions may target.

        :param node: The node to validate.
        :param parent: The node's parent, or None for the root.
        :raises ConfigurationError: If validation fails.
        """
        self._rules.validate_children(node)
        self._rules.validate_targets(node, parent)


class _DefaultValidationRules:
    """
    Built-in rules covering the configuration format.
    """

    @staticmethod
    def validate_fragment(cfg: Any, path: str, is_root: bool) -> None:
        if not isinstance(cfg, Mapping):
            raise ConfigurationError(f"State configuration must be a mapping, got {type(cfg).__name__}", path, cfg)

        if "after" in cfg:
            raise ConfigurationError("Delayed transitions ('after') are not supported", path, cfg["after"])

        allowed = ROOT_KEYS if is_root else NODE_KEYS
        unknown = set(cfg) - allowed
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys {sorted(unknown)}", path)

        if "type" in cfg and cfg["type"] not in NODE_TYPE_NAMES:
            raise ConfigurationError(f"Unknown state type {cfg['type']!r}", path)

        if "history" in cfg and not (isinstance(cfg["history"], (str, bool)) and cfg["history"] in HISTORY_KINDS):
            raise ConfigurationError("'history' must be 'shallow' or 'deep'", path, cfg["history"])

        if "context" in cfg and not isinstance(cfg["context"], Mapping):
            raise ConfigurationError("'context' must be a mapping", path, cfg["context"])

        if "done" in cfg and not isinstance(cfg["done"], bool):
            raise ConfigurationError("'done' must be a boolean", path, cfg["done"])

    @staticmethod
    def validate_kind(node_type: NodeType, cfg: Mapping[str, Any], path: str) -> None:
        def forbid(*keys: str) -> None:
            present = sorted(key for key in keys if key in cfg)
            if present:
                raise ConfigurationError(f"{node_type.value} states cannot declare {present}", path)

        if "on_done" in cfg and not cfg.get("done") and node_type in (NodeType.COMPOUND, NodeType.PARALLEL):
            raise ConfigurationError("'on_done' requires 'done': true", path, cfg["on_done"])

        if node_type is NodeType.COMPOUND:
            if not cfg.get("states"):
                raise ConfigurationError("compound states need at least one child in 'states'", path)
            if not isinstance(cfg.get("initial"), str):
                raise ConfigurationError("compound states need an 'initial' child id", path, cfg.get("initial"))
            forbid("history", "default")
        elif node_type is NodeType.PARALLEL:
            if not cfg.get("states"):
                raise ConfigurationError("parallel states need at least one region in 'states'", path)
            forbid("initial", "history", "default")
        elif node_type is NodeType.ATOMIC:
            forbid("states", "initial", "history", "default", "done", "on_done")
        elif node_type is NodeType.FINAL:
            forbid("states", "initial", "history", "default", "done", "on_done", "events", "always")
        elif node_type is NodeType.HISTORY:
            forbid("states", "initial", "done", "on_done", "events", "always", "entry", "exit")
            if "default" in cfg and not isinstance(cfg["default"], str):
                raise ConfigurationError("history 'default' must be a sibling id", path, cfg["default"])

    @staticmethod
    def validate_children(node: StateNode) -> None:
        if isinstance(node, ParallelNode):
            for child in node.states.values():
                if isinstance(child, HistoryNode):
                    raise ConfigurationError("History states must belong to a compound state", child.path)

        if not isinstance(node, CompoundNode):
            return

        if node.initial not in node.states:
            raise ConfigurationError(f"Initial state '{node.initial}' is not a child", node.path)

        for child in node.states.values():
            if not isinstance(child, HistoryNode):
                continue
            if child.default is not None:
                target = node.states.get(child.default)
                if target is None or isinstance(target, HistoryNode):
                    raise ConfigurationError(
                        f"History default '{child.default}' must be a sibling state", child.path
                    )
            elif child.id == node.initial:
                raise ConfigurationError("A history state used as 'initial' needs a 'default'", child.path)

    @staticmethod
    def validate_targets(node: StateNode, parent: Optional[StateNode]) -> None:
        declared = [(f"events[{name!r}]", transition) for name, transition in node.events.items()]
        if node.always is not None:
            declared.append(("always", node.always))
            for candidate in node.always.candidates:
                if candidate.target is None:
                    raise ConfigurationError("'always' transitions need a target", node.path)
        on_done = getattr(node, "on_done", None)
        if on_done is not None:
            declared.append(("on_done", on_done))

        if isinstance(node, FinalNode) and declared:
            raise ConfigurationError("final states cannot declare transitions", node.path)

        for where, transition in declared:
            for candidate in transition.candidates:
                target = candidate.target
                if target is None:
                    continue
                if not isinstance(parent, CompoundNode):
                    raise ConfigurationError(
                        f"{where} targets '{target}' but only children of a compound state can change state",
                        node.path,
                    )
                if target not in parent.states:
                    raise ConfigurationError(f"{where} targets unknown sibling '{target}'", node.path)
