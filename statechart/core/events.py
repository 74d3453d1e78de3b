# statechart/core/events.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from typing import Any, Dict, Mapping, Optional, Union

from statechart.core.errors import StatechartError


class Event:
    """
    Represents a signal delivered to a machine. Guards and actions receive the
    event so they can inspect its name and payload.
    """

    __slots__ = ("_name", "_data")

    def __init__(self, name: str, data: Optional[Dict[str, Any]] = None) -> None:
        """
        Create an event identified by a name, with optional payload.

        :param name: A string identifying this event.
        :param data: Payload fields visible to guards and actions.
        """
        if not name or not isinstance(name, str):
            raise StatechartError(f"Event name must be a non-empty string, got {name!r}")
        self._name = name
        self._data = dict(data) if data else {}

    @property
    def name(self) -> str:
        """The name of the event."""
        return self._name

    @property
    def type(self) -> str:
        """Alias of :attr:`name` for events given as ``{"type": ...}`` records."""
        return self._name

    @property
    def data(self) -> Dict[str, Any]:
        """Payload fields of the event."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Event):
            return NotImplemented
        return self._name == other._name and self._data == other._data

    def __hash__(self) -> int:
        return hash(self._name)

    def __repr__(self) -> str:
        if self._data:
            return f"Event({self._name!r}, {self._data!r})"
        return f"Event({self._name!r})"


EventLike = Union[str, Event, Mapping[str, Any]]


def to_event(event: EventLike) -> Event:
    """
    Coerce the accepted event spellings into an :class:`Event`.

    :param event: An event name, an Event, or a mapping with a ``type`` key
        whose remaining keys become the payload.
    :raises StatechartError: If the input cannot be read as an event.
    """
    if isinstance(event, Event):
        return event
    if isinstance(event, str):
        return Event(event)
    if isinstance(event, Mapping):
        if "type" not in event:
            raise StatechartError(f"Event record must carry a 'type' field: {dict(event)!r}")
        data = {k: v for k, v in event.items() if k != "type"}
        return Event(event["type"], data)
    raise StatechartError(f"Expected an event name, Event or mapping but got {type(event).__name__}")
