"""
Error taxonomy for taskmgr.

Every failure raised by the consistency engine is one of four kinds:
NotFound, InvalidArgument, AlreadyExists or Internal. Callers tell them apart
with isinstance(); the CLI prints them verbatim.
"""


class TaskManagerError(Exception):
    """Base class for all domain and storage errors."""

    kind = "error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"{self.kind}: {message}")


class NotFoundError(TaskManagerError):
    """Referenced entity does not exist."""

    kind = "not found"


class InvalidArgumentError(TaskManagerError):
    """Structurally illegal request (cycle, illegal transition, XOR violation...)."""

    kind = "invalid argument"


class AlreadyExistsError(TaskManagerError):
    """Duplicate primary key or duplicate relationship."""

    kind = "already exists"


class InternalError(TaskManagerError):
    """Storage-layer failure unrelated to domain rules."""

    kind = "internal error"


class CycleDetectedError(InvalidArgumentError):
    """A track dependency edge would close a cycle."""

    def __init__(self, track_id: str, path: list[str]):
        self.track_id = track_id
        self.path = path
        super().__init__(
            f"circular dependency detected for track {track_id}: " + " -> ".join(path)
        )
