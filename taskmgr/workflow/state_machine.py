"""Iteration and track status transitions with explicit guards.

Decision functions and the transition helpers live here; the machines
themselves are in fsm.py.

- can_start_iteration / can_complete_iteration: pure checks, no mutation
- transition_iteration / transition_track: validate, then drive the FSM,
  which updates the in-memory entity (persistence is up to the caller)

Usage:
    from taskmgr.workflow.state_machine import can_start_iteration, transition_iteration

    can_start_iteration(iteration, store.iterations.find_current)
    transition_iteration(iteration, IterationState.CURRENT)
"""

import logging
from enum import Enum
from typing import Callable, Optional

from transitions import MachineError

from taskmgr.domain.models import Iteration, Track
from taskmgr.lib.errors import InvalidArgumentError, NotFoundError

logger = logging.getLogger(__name__)


class IterationState(Enum):
    """Iteration states in lifecycle order."""

    PLANNED = "planned"
    CURRENT = "current"
    COMPLETE = "complete"


_ORDER = {state.value: i for i, state in enumerate(IterationState)}


class InvalidTransition(InvalidArgumentError):
    """Raised when attempting an invalid state transition."""

    def __init__(self, from_state: str, to_state: str, reason: str, entity: str = "", detail: str = ""):
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason
        self.entity = entity
        message = f"invalid transition {from_state} -> {to_state} ({reason})"
        if detail:
            message += f": {detail}"
        if entity:
            message += f" [{entity}]"
        super().__init__(message)


def parse_state(status_str: str | None) -> IterationState | None:
    """Parse a status string into IterationState enum.

    Returns None if status is unknown.
    """
    if status_str is None:
        return None
    for state in IterationState:
        if state.value == status_str:
            return state
    return None


def _rejection(from_state: str, to_state: str, entity: str) -> InvalidTransition:
    """Explain why from_state -> to_state is not a legal iteration hop."""
    if from_state == IterationState.COMPLETE.value:
        return InvalidTransition(
            from_state, to_state, "terminal", entity,
            "cannot transition from complete, complete is terminal",
        )
    if _ORDER[to_state] < _ORDER[from_state]:
        return InvalidTransition(
            from_state, to_state, "backward", entity,
            f"can only transition from {from_state} to complete",
        )
    return InvalidTransition(
        from_state, to_state, "skip-stage", entity,
        f"can only transition from {from_state} to current",
    )


def can_start_iteration(
    iteration: Iteration,
    lookup_current: Callable[[], Optional[Iteration]],
) -> None:
    """Check that iteration may move planned -> current.

    Args:
        iteration: Iteration to start
        lookup_current: Returns the project's current iteration, or None
            (raising NotFoundError is treated the same as None)

    Raises:
        InvalidTransition: iteration is not planned
        InvalidArgumentError: another iteration is already current
    """
    if iteration.status != IterationState.PLANNED.value:
        raise InvalidTransition(
            iteration.status, IterationState.CURRENT.value,
            "terminal" if iteration.status == IterationState.COMPLETE.value else "not-planned",
            f"iteration {iteration.number}",
            f"iteration must be in planned status to start (current: {iteration.status})",
        )

    try:
        current = lookup_current()
    except NotFoundError:
        current = None

    if current is not None and current.number != iteration.number:
        raise InvalidArgumentError(
            f"cannot start iteration {iteration.number}: iteration {current.number} is already current"
        )


def can_complete_iteration(iteration: Iteration) -> None:
    """Check that iteration may move current -> complete.

    Raises:
        InvalidTransition: iteration is not current
    """
    if iteration.status == IterationState.CURRENT.value:
        return

    entity = f"iteration {iteration.number}"
    if iteration.status not in _ORDER:
        raise InvalidTransition(iteration.status, IterationState.COMPLETE.value, "unknown-state", entity)
    if iteration.status == IterationState.COMPLETE.value:
        raise _rejection(iteration.status, IterationState.COMPLETE.value, entity)
    raise InvalidTransition(
        iteration.status, IterationState.COMPLETE.value, "skip-stage", entity,
        f"iteration must be in current status to complete (current: {iteration.status})",
    )


def transition_iteration(
    iteration: Iteration,
    to_state: IterationState,
    clock: Callable[[], str] | None = None,
) -> None:
    """Move iteration to to_state, updating status and timestamps in place.

    Does not check the single-current rule; use can_start_iteration first.

    Raises:
        InvalidTransition: If the transition is not allowed
    """
    from taskmgr.workflow.fsm import ITERATION_TRIGGER_FOR, IterationFSM

    entity = f"iteration {iteration.number}"
    current_state = iteration.status

    if parse_state(current_state) is None:
        raise InvalidTransition(current_state, to_state.value, "unknown-state", entity)

    # Self-transition is a no-op
    if current_state == to_state.value:
        logger.debug(f"[STATE] {entity}: already {current_state}, no-op")
        return

    trigger = ITERATION_TRIGGER_FOR.get((current_state, to_state.value))
    if trigger is None:
        raise _rejection(current_state, to_state.value, entity)

    fsm = IterationFSM(iteration, clock=clock) if clock else IterationFSM(iteration)
    try:
        getattr(fsm, trigger)()
    except MachineError as e:
        raise _rejection(current_state, to_state.value, entity) from e


def transition_track(track: Track, to_status: str) -> None:
    """Move track to to_status. complete is terminal; open statuses move freely.

    Raises:
        InvalidArgumentError: Unknown status
        InvalidTransition: Leaving complete
    """
    from taskmgr.workflow.fsm import TRACK_STATES, TRACK_TERMINAL, TRACK_TRIGGER_FOR, TrackFSM

    entity = f"track {track.id}"
    if to_status not in TRACK_STATES:
        raise InvalidArgumentError(f"invalid track status: {to_status} [{entity}]")

    if track.status == to_status:
        return

    trigger = TRACK_TRIGGER_FOR.get((track.status, to_status))
    if trigger is None:
        if track.status == TRACK_TERMINAL:
            raise InvalidTransition(
                track.status, to_status, "terminal", entity,
                "cannot transition from complete, complete is terminal",
            )
        raise InvalidTransition(track.status, to_status, "unknown-state", entity)

    fsm = TrackFSM(track)
    getattr(fsm, trigger)()
