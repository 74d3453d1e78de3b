# statechart/core/errors.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from typing import Any, Optional


class StatechartError(Exception):
    """
    Base exception class for errors within the statechart library.
    """


class ConfigurationError(StatechartError):
    """
    Raised when a machine configuration is malformed or asks for something the
    engine cannot do. Detected while building, except for transient chains that
    never settle, which can only be seen while dispatching.
    """

    def __init__(self, message: str, path: Optional[str] = None, fragment: Any = None) -> None:
        """
        :param message: Human readable description of the problem.
        :param path: Dotted path of the node being built, if known.
        :param fragment: The offending piece of configuration.
        """
        if path:
            message = f"{message} (at '{path}')"
        if fragment is not None:
            message = f"{message}: {fragment!r}"
        super().__init__(message)
        self.path = path
        self.fragment = fragment


class InvariantError(StatechartError):
    """
    Raised when a state value handed to a node does not fit that node. This
    always means the value was produced or supplied incorrectly by the caller.
    """

    def __init__(self, message: str, path: Optional[str] = None, value: Any = None, event: Any = None) -> None:
        details = [message]
        if path:
            details.append(f"node='{path}'")
        details.append(f"value={value!r}")
        if event is not None:
            details.append(f"event={event!r}")
        super().__init__(", ".join(details))
        self.path = path
        self.value = value
        self.event = event


class InterpreterError(StatechartError):
    """
    Raised when an interpreter is driven in a way its lifecycle does not allow.
    """
