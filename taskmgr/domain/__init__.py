"""Planning entities and the track dependency validator."""

from taskmgr.domain.dependencies import validate_no_cycles, with_edge
from taskmgr.domain.models import (
    ADR,
    AcceptanceCriteria,
    Document,
    EntityType,
    Iteration,
    Roadmap,
    Task,
    Track,
)

__all__ = [
    # models
    "ADR",
    "AcceptanceCriteria",
    "Document",
    "EntityType",
    "Iteration",
    "Roadmap",
    "Task",
    "Track",
    # dependencies
    "validate_no_cycles",
    "with_edge",
]
