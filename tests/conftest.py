# tests/conftest.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import pytest


@pytest.fixture
def trace():
    """A list that recording actions append to, in call order."""
    return []


@pytest.fixture
def record(trace):
    """Returns a factory of actions that append a label to the trace."""

    def _record(label):
        def action(context, event):
            trace.append(label)

        return action

    return _record


@pytest.fixture
def fetch_config():
    """The canonical fetch machine configuration."""

    def retry(context, event):
        context["retries"] += 1

    return {
        "id": "fetch",
        "initial": "idle",
        "context": {"retries": 0},
        "states": {
            "idle": {"events": {"FETCH": "loading"}},
            "loading": {"events": {"RESOLVE": "success", "REJECT": "failure"}},
            "success": {},
            "failure": {"events": {"RETRY": {"target": "loading", "actions": retry}}},
        },
    }


@pytest.fixture
def fetch_machine(fetch_config):
    from statechart import machine

    return machine(fetch_config)


@pytest.fixture
def dummy_event():
    """A generic Event for testing."""
    from statechart.core.events import Event

    return Event("TestEvent")


@pytest.fixture
def error_classes():
    """Provides a tuple of error classes for quick reference."""
    from statechart.core.errors import ConfigurationError, InterpreterError, InvariantError, StatechartError

    return (StatechartError, ConfigurationError, InvariantError, InterpreterError)
