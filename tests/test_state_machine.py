"""Tests for taskmgr.workflow.state_machine module.

Tests the decision functions and transition wrappers around the FSMs.
The FSMs themselves are tested in test_fsm.py.
"""

import pytest

from taskmgr.domain.models import Iteration, Track
from taskmgr.lib.errors import InvalidArgumentError, NotFoundError
from taskmgr.workflow.state_machine import (
    InvalidTransition,
    IterationState,
    can_complete_iteration,
    can_start_iteration,
    parse_state,
    transition_iteration,
    transition_track,
)


def make_iteration(number=1, status="planned"):
    return Iteration(number=number, name=f"iteration {number}", status=status)


def no_current():
    return None


class TestParseState:
    """Tests for parse_state() function."""

    def test_parse_valid_state(self):
        assert parse_state("planned") == IterationState.PLANNED
        assert parse_state("current") == IterationState.CURRENT
        assert parse_state("complete") == IterationState.COMPLETE

    def test_parse_none(self):
        assert parse_state(None) is None

    def test_parse_unknown(self):
        assert parse_state("active") is None
        assert parse_state("") is None


class TestCanStartIteration:
    """Tests for can_start_iteration()."""

    def test_planned_with_no_current(self):
        can_start_iteration(make_iteration(), no_current)

    def test_not_found_means_no_current(self):
        """A lookup that signals NotFound is the normal 'nothing current' case."""
        def lookup():
            raise NotFoundError("no current iteration")

        can_start_iteration(make_iteration(), lookup)

    def test_other_iteration_current(self):
        with pytest.raises(InvalidArgumentError, match="iteration 1 is already current"):
            can_start_iteration(make_iteration(2), lambda: make_iteration(1, "current"))

    def test_already_current(self):
        with pytest.raises(InvalidTransition) as exc_info:
            can_start_iteration(make_iteration(1, "current"), no_current)
        assert exc_info.value.reason == "not-planned"
        assert "must be in planned status" in str(exc_info.value)

    def test_complete_is_terminal(self):
        with pytest.raises(InvalidTransition) as exc_info:
            can_start_iteration(make_iteration(1, "complete"), no_current)
        assert exc_info.value.reason == "terminal"

    def test_does_not_mutate(self):
        iteration = make_iteration()
        can_start_iteration(iteration, no_current)
        assert iteration.status == "planned"
        assert iteration.started_at is None


class TestCanCompleteIteration:
    """Tests for can_complete_iteration()."""

    def test_current(self):
        can_complete_iteration(make_iteration(1, "current"))

    def test_planned_skips_stage(self):
        with pytest.raises(InvalidTransition) as exc_info:
            can_complete_iteration(make_iteration(1, "planned"))
        assert exc_info.value.reason == "skip-stage"
        assert "must be in current status to complete" in str(exc_info.value)

    def test_complete_is_terminal(self):
        with pytest.raises(InvalidTransition) as exc_info:
            can_complete_iteration(make_iteration(1, "complete"))
        assert exc_info.value.reason == "terminal"

    def test_unknown_state(self):
        with pytest.raises(InvalidTransition) as exc_info:
            can_complete_iteration(make_iteration(1, "bogus"))
        assert exc_info.value.reason == "unknown-state"


class TestTransitionIteration:
    """Tests for transition_iteration()."""

    def clock(self):
        return "2026-03-01T09:00:00+00:00"

    def test_full_lifecycle(self):
        iteration = make_iteration()
        transition_iteration(iteration, IterationState.CURRENT, clock=self.clock)
        assert iteration.status == "current"
        assert iteration.started_at == self.clock()
        transition_iteration(iteration, IterationState.COMPLETE, clock=self.clock)
        assert iteration.status == "complete"
        assert iteration.completed_at == self.clock()

    @pytest.mark.parametrize("status", ["planned", "current", "complete"])
    def test_self_transition_is_noop(self, status):
        iteration = make_iteration(1, status)
        transition_iteration(iteration, IterationState(status))
        assert iteration.status == status
        assert iteration.started_at is None
        assert iteration.completed_at is None

    @pytest.mark.parametrize("from_state,to_state,reason", [
        ("planned", IterationState.COMPLETE, "skip-stage"),
        ("current", IterationState.PLANNED, "backward"),
        ("complete", IterationState.PLANNED, "terminal"),
        ("complete", IterationState.CURRENT, "terminal"),
    ])
    def test_illegal_hops(self, from_state, to_state, reason):
        iteration = make_iteration(1, from_state)
        with pytest.raises(InvalidTransition) as exc_info:
            transition_iteration(iteration, to_state)
        assert exc_info.value.reason == reason
        assert exc_info.value.from_state == from_state
        assert exc_info.value.to_state == to_state.value
        assert "iteration 1" in str(exc_info.value)
        assert iteration.status == from_state

    def test_unknown_current_state(self):
        with pytest.raises(InvalidTransition) as exc_info:
            transition_iteration(make_iteration(1, "bogus"), IterationState.CURRENT)
        assert exc_info.value.reason == "unknown-state"

    def test_invalid_transition_is_invalid_argument(self):
        with pytest.raises(InvalidArgumentError):
            transition_iteration(make_iteration(1, "planned"), IterationState.COMPLETE)


class TestTransitionTrack:
    """Tests for transition_track()."""

    def make_track(self, status="not-started"):
        return Track(id="TM-track-1", roadmap_id="roadmap-1", title="Storage", status=status)

    def test_open_statuses_move_freely(self):
        track = self.make_track()
        transition_track(track, "blocked")
        transition_track(track, "waiting")
        transition_track(track, "in-progress")
        transition_track(track, "complete")
        assert track.status == "complete"

    def test_same_status_is_noop(self):
        track = self.make_track("blocked")
        transition_track(track, "blocked")
        assert track.status == "blocked"

    def test_complete_is_terminal(self):
        track = self.make_track("complete")
        with pytest.raises(InvalidTransition) as exc_info:
            transition_track(track, "in-progress")
        assert exc_info.value.reason == "terminal"
        assert track.status == "complete"

    def test_unknown_status(self):
        with pytest.raises(InvalidArgumentError, match="invalid track status: done"):
            transition_track(self.make_track(), "done")
