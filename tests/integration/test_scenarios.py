# tests/integration/test_scenarios.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import pytest

from statechart import ConfigurationError, interpret, machine

pytestmark = pytest.mark.integration


class TestFetchScenario:
    def test_fetch_retry_resolve(self, fetch_machine):
        """Walk the canonical fetch machine through a failure and a retry."""
        state = fetch_machine.initial_state
        assert state.value == "idle"

        state = fetch_machine.transition(state, "FETCH")
        assert (state.value, state.changed) == ("loading", True)

        state = fetch_machine.transition(state, "REJECT")
        assert (state.value, state.changed) == ("failure", True)

        state = fetch_machine.transition(state, "RETRY")
        assert (state.value, state.changed) == ("loading", True)
        assert state.context["retries"] == 1

        state = fetch_machine.transition(state, "RESOLVE")
        assert (state.value, state.changed) == ("success", True)
        assert state.done is True

    def test_unrelated_event_is_a_no_op(self, fetch_machine):
        state = fetch_machine.transition(fetch_machine.initial_state, "RESOLVE")
        assert state.value == "idle"
        assert state.changed is False

    def test_interpreter_drives_fetch(self, fetch_machine):
        seen = []
        service = interpret(fetch_machine).start()
        service.listen(lambda state: seen.append(state.value))

        for event in ("FETCH", "REJECT", "RESOLVE", "RETRY", "RESOLVE"):
            service.next(event)

        assert seen == ["loading", "failure", "loading", "success"]
        assert service.state.context == {"retries": 1}


class TestGuards:
    def test_first_passing_candidate_wins(self, record, trace):
        m = machine(
            {
                "initial": "start",
                "states": {
                    "start": {
                        "events": {
                            "GO": [
                                {"target": "a", "guard": lambda c, e: False, "actions": record("a")},
                                {"target": "b", "guard": lambda c, e: True, "actions": record("b")},
                                {"target": "c", "guard": lambda c, e: True, "actions": record("c")},
                            ]
                        }
                    },
                    "a": {},
                    "b": {},
                    "c": {},
                },
            }
        )
        state = m.transition(m.initial_state, "GO")
        assert state.value == "b"
        assert trace == ["b"]

    def test_guard_reads_context_and_payload(self):
        m = machine(
            {
                "initial": "locked",
                "context": {"code": "1234"},
                "states": {
                    "locked": {
                        "events": {"ENTER": {"target": "open", "guard": lambda c, e: e.get("code") == c["code"]}}
                    },
                    "open": {},
                },
            }
        )
        assert m.transition(m.initial_state, {"type": "ENTER", "code": "0000"}).value == "locked"
        assert m.transition(m.initial_state, {"type": "ENTER", "code": "1234"}).value == "open"

    def test_wildcard_catches_unknown_events(self):
        m = machine(
            {
                "initial": "a",
                "states": {"a": {"events": {"KNOWN": "b", "*": "error"}}, "b": {}, "error": {}},
            }
        )
        assert m.transition(m.initial_state, "KNOWN").value == "b"
        assert m.transition(m.initial_state, "SURPRISE").value == "error"


class TestTransientTransitions:
    def _config(self, record):
        return {
            "initial": "start",
            "states": {
                "start": {"events": {"GO": "a"}, "exit": record("exit start")},
                "a": {"always": "b", "entry": record("enter a"), "exit": record("exit a")},
                "b": {"always": "c", "entry": record("enter b"), "exit": record("exit b")},
                "c": {"entry": record("enter c")},
            },
        }

    def test_chain_resolves_in_one_event(self, record, trace):
        m = machine(self._config(record))
        state = m.transition(m.initial_state, "GO")

        assert state.value == "c"
        assert state.changed is True
        assert trace == ["exit start", "enter a", "exit a", "enter b", "exit b", "enter c"]

    def test_guarded_always_waits_for_context(self):
        def bump(context, event):
            context["n"] += 1

        m = machine(
            {
                "initial": "counting",
                "context": {"n": 0},
                "states": {
                    "counting": {
                        "events": {"INC": {"actions": bump}},
                        "always": {"target": "full", "guard": lambda c, e: c["n"] >= 2},
                    },
                    "full": {},
                },
            }
        )
        state = m.transition(m.initial_state, "INC")
        assert state.value == "counting"
        state = m.transition(state, "INC")
        assert state.value == "counting"
        state = m.transition(state, "PING")
        assert state.value == "full"

    def test_transient_initial_child_settles_on_entry(self):
        m = machine(
            {
                "initial": "off",
                "states": {
                    "off": {"events": {"ON": "on"}},
                    "on": {
                        "initial": "check",
                        "states": {"check": {"always": "ready"}, "ready": {"events": {}}},
                    },
                },
            }
        )
        assert m.transition(m.initial_state, "ON").value == {"on": "ready"}

    def test_transient_initial_state_settles_at_start(self, record, trace):
        m = machine(
            {
                "initial": "check",
                "states": {
                    "check": {"always": "ready", "entry": record("enter check"), "exit": record("exit check")},
                    "ready": {"events": {}, "entry": record("enter ready")},
                },
            }
        )
        assert m.initial_state.value == "ready"
        assert m.initial_state.done is False
        assert trace == ["enter check", "exit check", "enter ready"]

        state = m.transition(m.initial_state, "ANY")
        assert state.value == "ready"
        assert state.changed is False

    def test_initial_entry_actions_update_context(self):
        def start(context, event):
            context["n"] = 1

        m = machine({"initial": "a", "context": {"n": 0}, "entry": start, "states": {"a": {"events": {}}}})
        assert m.initial_state.context == {"n": 1}

    def test_cycle_is_reported(self):
        m = machine(
            {
                "initial": "start",
                "states": {
                    "start": {"events": {"GO": "ping"}},
                    "ping": {"always": "pong"},
                    "pong": {"always": "ping"},
                },
            },
            max_transient_steps=10,
        )
        with pytest.raises(ConfigurationError, match="did not settle"):
            m.transition(m.initial_state, "GO")


class TestHierarchy:
    def _config(self, record):
        return {
            "initial": "off",
            "states": {
                "off": {"events": {"POWER": "on"}, "exit": record("exit off")},
                "on": {
                    "initial": "low",
                    "entry": record("enter on"),
                    "exit": record("exit on"),
                    "events": {"POWER": "off"},
                    "states": {
                        "low": {"events": {"UP": "high"}, "entry": record("enter low"), "exit": record("exit low")},
                        "high": {"events": {"DOWN": "low"}, "entry": record("enter high"), "exit": record("exit high")},
                    },
                },
            },
        }

    def test_entering_compound_enters_initial_child(self, record, trace):
        m = machine(self._config(record))
        state = m.transition(m.initial_state, "POWER")

        assert state.value == {"on": "low"}
        assert trace == ["exit off", "enter on", "enter low"]

    def test_inner_change_does_not_run_outer_actions(self, record, trace):
        m = machine(self._config(record))
        state = m.transition(m.initial_state, "POWER")
        del trace[:]

        state = m.transition(state, "UP")

        assert state.value == {"on": "high"}
        assert state.changed is True
        assert trace == ["exit low", "enter high"]

    def test_parent_event_exits_deepest_first(self, record, trace):
        m = machine(self._config(record))
        state = m.transition(m.transition(m.initial_state, "POWER"), "UP")
        del trace[:]

        state = m.transition(state, "POWER")

        assert state.value == "off"
        assert trace == ["exit high", "exit on"]


class TestParallel:
    def _machine(self):
        return machine(
            {
                "id": "editor",
                "states": {
                    "bold": {
                        "initial": "off",
                        "states": {"off": {"events": {"X": "on"}}, "on": {"events": {"X": "off"}}},
                    },
                    "italic": {"initial": "off", "states": {"off": {"events": {"Y": "on"}}, "on": {}}},
                },
            }
        )

    def test_regions_are_isolated(self):
        m = self._machine()
        before = m.initial_state
        assert before.value == {"bold": "off", "italic": "off"}

        after = m.transition(before, "X")

        assert after.changed is True
        assert after.value["bold"] == "on"
        assert after.value["italic"] == before.value["italic"]

    def test_no_region_handles_event(self):
        m = self._machine()
        state = m.transition(m.initial_state, "Z")
        assert state.value == {"bold": "off", "italic": "off"}
        assert state.changed is False

    def test_final_region_stays_done(self):
        m = self._machine()
        state = m.transition(m.initial_state, "Y")
        state = m.transition(state, "Y")
        assert state.value == {"bold": "off", "italic": "on"}
        assert state.changed is False

    def test_parallel_completion_propagates(self):
        m = machine(
            {
                "initial": "working",
                "states": {
                    "working": {
                        "done": True,
                        "on_done": "finished",
                        "states": {
                            "upload": {
                                "initial": "pending",
                                "states": {"pending": {"events": {"UPLOADED": "ok"}}, "ok": {}},
                            },
                            "scan": {
                                "initial": "pending",
                                "states": {"pending": {"events": {"SCANNED": "ok"}}, "ok": {}},
                            },
                        },
                    },
                    "finished": {},
                },
            }
        )
        state = m.transition(m.initial_state, "UPLOADED")
        assert state.value == {"working": {"upload": "ok", "scan": "pending"}}

        state = m.transition(state, "SCANNED")
        assert state.value == "finished"
        assert state.done is True


class TestCompletion:
    def test_compound_completion_moves_parent(self, record, trace):
        m = machine(
            {
                "initial": "task",
                "states": {
                    "task": {
                        "initial": "working",
                        "done": True,
                        "on_done": {"target": "finished", "actions": record("done")},
                        "exit": record("exit task"),
                        "states": {"working": {"events": {"FINISH": "complete"}}, "complete": {"type": "final"}},
                    },
                    "finished": {"type": "final", "entry": record("enter finished")},
                },
            }
        )
        state = m.transition(m.initial_state, "FINISH")

        assert state.value == "finished"
        assert state.done is True
        assert trace == ["exit task", "done", "enter finished"]

    def test_completion_without_on_done_stays_put(self):
        m = machine(
            {
                "initial": "task",
                "states": {
                    "task": {
                        "initial": "working",
                        "done": True,
                        "states": {"working": {"events": {"FINISH": "complete"}}, "complete": {}},
                    },
                },
            }
        )
        state = m.transition(m.initial_state, "FINISH")
        assert state.value == {"task": "complete"}
        assert state.done is True

        again = m.transition(state, "FINISH")
        assert again.value == state.value
        assert again.changed is False


class TestHistory:
    def _config(self, kind, record=None):
        entry = record("enter am") if record else None
        return {
            "initial": "off",
            "states": {
                "off": {"events": {"POWER": "on"}},
                "on": {
                    "initial": "hist",
                    "events": {"POWER": "off"},
                    "states": {
                        "hist": {"history": kind, "default": "radio"},
                        "radio": {
                            "initial": "fm",
                            "states": {
                                "fm": {"events": {"BAND": "am"}},
                                "am": {"events": {"BAND": "fm"}, "entry": entry or []},
                            },
                            "events": {"MODE": "tv"},
                        },
                        "tv": {"events": {"MODE": "radio"}},
                    },
                },
            },
        }

    def test_first_entry_uses_default(self):
        m = machine(self._config("shallow"))
        state = m.transition(m.initial_state, "POWER")
        assert state.value == {"on": {"radio": "fm"}}
        assert state.history == {}

    def test_shallow_history_restores_child_only(self):
        m = machine(self._config("shallow"))
        state = m.initial_state
        for event in ("POWER", "BAND", "POWER"):
            state = m.transition(state, event)
        assert state.value == "off"
        assert state.history == {"machine.on.hist": "radio"}

        state = m.transition(state, "POWER")
        assert state.value == {"on": {"radio": "fm"}}

    def test_shallow_history_remembers_sibling(self):
        m = machine(self._config("shallow"))
        state = m.initial_state
        for event in ("POWER", "MODE", "POWER", "POWER"):
            state = m.transition(state, event)
        assert state.value == {"on": "tv"}

    def test_deep_history_restores_subtree(self, record, trace):
        m = machine(self._config("deep", record))
        state = m.initial_state
        for event in ("POWER", "BAND", "POWER"):
            state = m.transition(state, event)
        assert state.history == {"machine.on.hist": {"radio": "am"}}
        del trace[:]

        state = m.transition(state, "POWER")

        assert state.value == {"on": {"radio": "am"}}
        assert trace == ["enter am"]

    def test_history_is_owned_by_each_state(self):
        m = machine(self._config("deep"))
        state = m.initial_state
        for event in ("POWER", "BAND", "POWER"):
            state = m.transition(state, event)

        fresh_off = m.transition(m.transition(m.initial_state, "POWER"), "POWER")
        assert m.transition(fresh_off, "POWER").value == {"on": {"radio": "fm"}}
        assert m.transition(state, "POWER").value == {"on": {"radio": "am"}}
