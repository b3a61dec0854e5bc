"""Entity lifecycle state machines using the transitions library.

Two machines share one base:
- IterationFSM: planned -> current -> complete, nothing else
- TrackFSM: free movement between open statuses, complete is terminal

Each FSM wraps a domain object (Iteration or Track) and writes the new status
(and lifecycle timestamps) back to it after every transition. Persisting the
object is the caller's job.

Usage:
    from taskmgr.workflow.fsm import IterationFSM

    fsm = IterationFSM(iteration)
    fsm.start()    # planned -> current, sets iteration.started_at
    fsm.finish()   # current -> complete, sets iteration.completed_at
"""

import logging
from typing import Callable

from transitions import Machine

from taskmgr.domain.models import Iteration, IterationStatus, Track, TrackStatus, utc_now
from taskmgr.lib.errors import InvalidArgumentError

logger = logging.getLogger(__name__)

TransitionCallback = Callable[[str, str, str], None]


ITERATION_STATES = [s.value for s in IterationStatus]

ITERATION_TRANSITIONS = [
    {"trigger": "start", "source": "planned", "dest": "current"},
    {"trigger": "finish", "source": "current", "dest": "complete"},
]

TRACK_STATES = [s.value for s in TrackStatus]
TRACK_TERMINAL = TrackStatus.COMPLETE.value

# Every open status can move to every other status; complete has no way out
TRACK_TRANSITIONS = [
    {
        "trigger": "mark_" + dest.replace("-", "_"),
        "source": [s for s in TRACK_STATES if s not in (dest, TRACK_TERMINAL)],
        "dest": dest,
    }
    for dest in TRACK_STATES
]


def _build_trigger_lookup(transitions: list[dict]) -> dict[tuple[str, str], str]:
    """Build lookup from (source, dest) -> trigger name."""
    lookup: dict[tuple[str, str], str] = {}
    for t in transitions:
        sources = t["source"] if isinstance(t["source"], list) else [t["source"]]
        for source in sources:
            lookup.setdefault((source, t["dest"]), t["trigger"])
    return lookup


ITERATION_TRIGGER_FOR = _build_trigger_lookup(ITERATION_TRANSITIONS)
TRACK_TRIGGER_FOR = _build_trigger_lookup(TRACK_TRANSITIONS)


class EntityFSM:
    """Base wrapper around transitions.Machine for one domain object."""

    def __init__(
        self,
        label: str,
        states: list[str],
        transitions: list[dict],
        initial: str,
        on_transition: TransitionCallback | None = None,
    ):
        if initial not in states:
            raise InvalidArgumentError(f"{label}: unknown status '{initial}'")

        self.label = label
        self.on_transition = on_transition
        self.machine = Machine(
            model=self,
            states=states,
            transitions=transitions,
            initial=initial,
            auto_transitions=False,  # Only explicit transitions
            send_event=True,  # Pass EventData to callbacks
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        """Callback after any state transition."""
        from_state = event.transition.source
        to_state = event.transition.dest
        trigger = event.event.name

        logger.info(f"[FSM] {self.label}: {from_state} -> {to_state} ({trigger})")
        self._write_back(from_state, to_state)

        if self.on_transition:
            self.on_transition(from_state, to_state, trigger)

    def _write_back(self, from_state: str, to_state: str) -> None:
        raise NotImplementedError

    def can(self, trigger: str) -> bool:
        """Check if a trigger can be executed in current state."""
        return trigger in self.machine.get_triggers(self.state)

    def get_available_triggers(self) -> list[str]:
        """Get list of triggers available in current state."""
        return self.machine.get_triggers(self.state)


class IterationFSM(EntityFSM):
    """Iteration lifecycle. Stamps started_at/completed_at on entry."""

    def __init__(
        self,
        iteration: Iteration,
        clock: Callable[[], str] = utc_now,
        on_transition: TransitionCallback | None = None,
    ):
        self.iteration = iteration
        self.clock = clock
        super().__init__(
            f"iteration {iteration.number}",
            ITERATION_STATES,
            ITERATION_TRANSITIONS,
            iteration.status,
            on_transition,
        )

    def _write_back(self, from_state: str, to_state: str) -> None:
        now = self.clock()
        self.iteration.status = to_state
        self.iteration.updated_at = now
        if to_state == IterationStatus.CURRENT.value:
            self.iteration.started_at = now
        elif to_state == IterationStatus.COMPLETE.value:
            self.iteration.completed_at = now


class TrackFSM(EntityFSM):
    """Track status lifecycle."""

    def __init__(self, track: Track, on_transition: TransitionCallback | None = None):
        self.track = track
        super().__init__(
            f"track {track.id}",
            TRACK_STATES,
            TRACK_TRANSITIONS,
            track.status,
            on_transition,
        )

    def _write_back(self, from_state: str, to_state: str) -> None:
        self.track.status = to_state
        self.track.updated_at = utc_now()
