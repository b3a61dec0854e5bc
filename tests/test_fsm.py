"""Tests for taskmgr.workflow.fsm module.

Exercises the transitions-based machines directly. The guarded wrapper
functions are tested in test_state_machine.py.
"""

import logging

import pytest
from transitions import MachineError

from taskmgr.domain.models import Iteration, IterationStatus, Track, TrackStatus
from taskmgr.lib.errors import InvalidArgumentError
from taskmgr.workflow.fsm import (
    ITERATION_STATES,
    ITERATION_TRIGGER_FOR,
    TRACK_STATES,
    TRACK_TERMINAL,
    TRACK_TRIGGER_FOR,
    IterationFSM,
    TrackFSM,
)


def fixed_clock():
    return "2026-01-01T00:00:00+00:00"


class TestStatesAndTriggers:
    """Tests for the state and trigger tables."""

    def test_iteration_states_match_enum(self):
        assert set(ITERATION_STATES) == {s.value for s in IterationStatus}

    def test_track_states_match_enum(self):
        assert set(TRACK_STATES) == {s.value for s in TrackStatus}

    def test_iteration_trigger_lookup(self):
        assert ITERATION_TRIGGER_FOR == {
            ("planned", "current"): "start",
            ("current", "complete"): "finish",
        }

    def test_track_terminal_has_no_outgoing(self):
        assert not [k for k in TRACK_TRIGGER_FOR if k[0] == TRACK_TERMINAL]

    def test_track_open_states_reach_each_other(self):
        assert TRACK_TRIGGER_FOR[("blocked", "in-progress")] == "mark_in_progress"
        assert TRACK_TRIGGER_FOR[("in-progress", "complete")] == "mark_complete"
        assert ("waiting", "waiting") not in TRACK_TRIGGER_FOR


class TestIterationFSM:
    """Tests for IterationFSM."""

    def test_initial_state_from_iteration(self):
        fsm = IterationFSM(Iteration(number=1, name="one"))
        assert fsm.state == "planned"

    def test_unknown_initial_state(self):
        with pytest.raises(InvalidArgumentError, match="unknown status 'bogus'"):
            IterationFSM(Iteration(number=1, name="one", status="bogus"))

    def test_start_sets_started_at(self):
        iteration = Iteration(number=1, name="one")
        fsm = IterationFSM(iteration, clock=fixed_clock)
        fsm.start()
        assert iteration.status == "current"
        assert iteration.started_at == fixed_clock()
        assert iteration.completed_at is None

    def test_finish_sets_completed_at(self):
        iteration = Iteration(number=1, name="one")
        fsm = IterationFSM(iteration, clock=fixed_clock)
        fsm.start()
        fsm.finish()
        assert iteration.status == "complete"
        assert iteration.completed_at == fixed_clock()

    def test_finish_from_planned_rejected(self):
        fsm = IterationFSM(Iteration(number=1, name="one"))
        with pytest.raises(MachineError):
            fsm.finish()

    def test_no_auto_transitions(self):
        fsm = IterationFSM(Iteration(number=1, name="one"))
        assert not hasattr(fsm, "to_complete")

    def test_available_triggers(self):
        fsm = IterationFSM(Iteration(number=1, name="one"))
        assert fsm.can("start")
        assert not fsm.can("finish")
        assert fsm.get_available_triggers() == ["start"]

    def test_on_transition_callback(self):
        seen = []
        fsm = IterationFSM(
            Iteration(number=3, name="three"),
            on_transition=lambda f, t, trig: seen.append((f, t, trig)),
        )
        fsm.start()
        assert seen == [("planned", "current", "start")]

    def test_logs_transition(self, caplog):
        caplog.set_level(logging.INFO)
        IterationFSM(Iteration(number=2, name="two")).start()
        assert "[FSM] iteration 2: planned -> current (start)" in caplog.text


class TestTrackFSM:
    """Tests for TrackFSM."""

    def test_open_to_open(self):
        track = Track(id="TM-track-1", roadmap_id="roadmap-1", title="t")
        TrackFSM(track).mark_blocked()
        assert track.status == "blocked"

    def test_complete_is_terminal(self):
        track = Track(id="TM-track-1", roadmap_id="roadmap-1", title="t", status="complete")
        fsm = TrackFSM(track)
        assert fsm.get_available_triggers() == []
        with pytest.raises(MachineError):
            fsm.mark_in_progress()
