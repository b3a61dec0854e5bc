"""
Data models for the planning hierarchy.

roadmap -> track -> task -> acceptance criteria, plus iterations (groups of
tasks), ADRs (attached to tracks) and documents (attached to a track, an
iteration, or nothing).
"""

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from taskmgr.lib.constants import DEFAULT_RANK
from taskmgr.lib.errors import AlreadyExistsError, InvalidArgumentError, NotFoundError


def utc_now() -> str:
    """Current time as an ISO-8601 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat()


class TrackStatus(Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETE = "complete"
    BLOCKED = "blocked"
    WAITING = "waiting"


class TaskStatus(Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"


class IterationStatus(Enum):
    """Ordered: planned < current < complete."""
    PLANNED = "planned"
    CURRENT = "current"
    COMPLETE = "complete"


class ADRStatus(Enum):
    PROPOSED = "proposed"
    ACCEPTED = "accepted"
    DEPRECATED = "deprecated"
    SUPERSEDED = "superseded"


class ACStatus(Enum):
    NOT_STARTED = "not_started"
    AUTOMATICALLY_VERIFIED = "automatically_verified"
    PENDING_HUMAN_REVIEW = "pending_human_review"
    VERIFIED = "verified"
    FAILED = "failed"


class VerificationType(Enum):
    MANUAL = "manual"
    AUTOMATED = "automated"


class DocumentType(Enum):
    ADR = "adr"
    PLAN = "plan"
    RETROSPECTIVE = "retrospective"
    OTHER = "other"


class DocumentStatus(Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class EntityType(Enum):
    """Entity types that draw IDs from the sequence counter."""
    TASK = "task"
    TRACK = "track"
    ITERATION = "iter"
    ADR = "adr"
    AC = "ac"


_ENTITY_TYPE_ALIASES = {"iteration": EntityType.ITERATION}


def parse_entity_type(value: "str | EntityType") -> EntityType:
    """Parse an entity type name ("task", "iter"/"iteration", ...)."""
    if isinstance(value, EntityType):
        return value
    if value in _ENTITY_TYPE_ALIASES:
        return _ENTITY_TYPE_ALIASES[value]
    for et in EntityType:
        if et.value == value:
            return et
    valid = ", ".join(et.value for et in EntityType)
    raise InvalidArgumentError(f"invalid entity type: {value} (expected one of: {valid})")


class Record:
    """Mixin for dataclasses stored one-per-row."""

    @classmethod
    def from_row(cls, row, **extra):
        """Build an instance from a sqlite3.Row (or mapping); unknown columns are ignored."""
        names = {f.name for f in fields(cls)}
        values = {k: row[k] for k in row.keys() if k in names}
        values.update(extra)
        return cls(**values)


@dataclass
class Roadmap(Record):
    id: str                     # roadmap-<ns timestamp>
    vision: str
    success_criteria: str
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    def to_record(self) -> dict:
        return asdict(self)


@dataclass
class Track(Record):
    id: str                     # <CODE>-track-<n>
    roadmap_id: str
    title: str
    description: str = ""
    status: str = TrackStatus.NOT_STARTED.value
    rank: int = DEFAULT_RANK
    dependencies: list[str] = field(default_factory=list)   # track IDs this one depends on
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    def to_record(self) -> dict:
        record = asdict(self)
        record.pop("dependencies")
        return record


@dataclass
class Task(Record):
    id: str                     # <CODE>-task-<n>
    track_id: str
    title: str
    description: str = ""
    status: str = TaskStatus.TODO.value
    rank: int = DEFAULT_RANK
    branch: Optional[str] = None
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    def to_record(self) -> dict:
        return asdict(self)


@dataclass
class Iteration(Record):
    number: int                 # user-assigned, unique, > 0
    name: str
    goal: str = ""
    deliverable: str = ""
    status: str = IterationStatus.PLANNED.value
    rank: int = DEFAULT_RANK
    task_ids: list[str] = field(default_factory=list)
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    def to_record(self) -> dict:
        record = asdict(self)
        record.pop("task_ids")
        return record

    def has_task(self, task_id: str) -> bool:
        return task_id in self.task_ids

    def add_task(self, task_id: str) -> None:
        if task_id in self.task_ids:
            raise AlreadyExistsError(f"task {task_id} already in iteration {self.number}")
        self.task_ids.append(task_id)
        self.updated_at = utc_now()

    def remove_task(self, task_id: str) -> None:
        if task_id not in self.task_ids:
            raise NotFoundError(f"task {task_id} not in iteration {self.number}")
        self.task_ids.remove(task_id)
        self.updated_at = utc_now()


@dataclass
class AcceptanceCriteria(Record):
    id: str                     # <CODE>-ac-<n>
    task_id: str
    description: str
    verification_type: str = VerificationType.MANUAL.value
    status: str = ACStatus.NOT_STARTED.value
    notes: str = ""
    testing_instructions: str = ""
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    def to_record(self) -> dict:
        return asdict(self)


@dataclass
class ADR(Record):
    id: str                     # <CODE>-adr-<n>
    track_id: str
    title: str
    context: str
    decision: str
    consequences: str
    status: str = ADRStatus.PROPOSED.value
    alternatives: str = ""
    superseded_by: Optional[str] = None
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    def to_record(self) -> dict:
        return asdict(self)


@dataclass
class Document(Record):
    id: str                     # <CODE>-doc-<hex>
    title: str
    type: str
    content: str = ""
    status: str = DocumentStatus.DRAFT.value
    track_id: Optional[str] = None
    iteration_number: Optional[int] = None
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    def to_record(self) -> dict:
        return asdict(self)

    def is_attached(self) -> bool:
        return bool(self.track_id) or bool(self.iteration_number)

    def attach_to_track(self, track_id: str) -> None:
        if self.iteration_number:
            raise InvalidArgumentError(
                f"document {self.id} is already attached to iteration {self.iteration_number}"
            )
        self.track_id = track_id
        self.iteration_number = None
        self.updated_at = utc_now()

    def attach_to_iteration(self, iteration_number: int) -> None:
        if self.track_id:
            raise InvalidArgumentError(
                f"document {self.id} is already attached to track {self.track_id}"
            )
        self.iteration_number = iteration_number
        self.track_id = None
        self.updated_at = utc_now()

    def detach(self) -> None:
        self.track_id = None
        self.iteration_number = None
        self.updated_at = utc_now()
