"""
RepositoryComposite: every repository on one shared connection.

This is the only object callers should hold. It owns the Database; closing it
closes the connection once, and further calls fail with InternalError.

Usage:
    with RepositoryComposite(db_path, project_code="DW") as store:
        roadmap = store.create_roadmap("Ship it", "Users can ship")
        a = store.create_track(roadmap.id, "Storage")
        b = store.create_track(roadmap.id, "API")
        store.add_track_dependency(b.id, a.id)
"""

import logging
import secrets
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterable, Optional

from taskmgr.domain.models import (
    ADR,
    AcceptanceCriteria,
    ADRStatus,
    Document,
    DocumentStatus,
    EntityType,
    Iteration,
    Roadmap,
    Task,
    TaskStatus,
    Track,
    TrackStatus,
    VerificationType,
    utc_now,
)
from taskmgr.lib.constants import DEFAULT_RANK

from .acceptance import AcceptanceCriteriaRepository
from .adrs import ADRRepository
from .aggregate import AggregateRepository
from .database import Database
from .documents import DocumentRepository
from .integrity import PROJECT_CODE_KEY, IntegrityAuthority
from .iterations import IterationRepository
from .roadmaps import RoadmapRepository
from .tasks import TaskRepository
from .tracks import TrackRepository

logger = logging.getLogger(__name__)


class RepositoryComposite:
    """Consistency facade over the SQLite store."""

    def __init__(
        self,
        db_path: str | Path,
        project_code: str | None = None,
        clock: Callable[[], str] = utc_now,
    ):
        self.db = Database(db_path)
        try:
            self.integrity = IntegrityAuthority(self.db, project_code)
            if project_code and self.db.scalar(
                "SELECT value FROM project_metadata WHERE key = ?", (PROJECT_CODE_KEY,)
            ) is None:
                self.integrity.project_code = project_code
        except Exception:
            self.db.close()
            raise

        self.roadmaps = RoadmapRepository(self.db, self.integrity)
        self.tracks = TrackRepository(self.db, self.integrity)
        self.tasks = TaskRepository(self.db, self.integrity)
        self.iterations = IterationRepository(self.db, self.integrity, clock=clock)
        self.acceptance_criteria = AcceptanceCriteriaRepository(self.db, self.integrity)
        self.adrs = ADRRepository(self.db, self.integrity)
        self.documents = DocumentRepository(self.db, self.integrity)
        self.aggregate = AggregateRepository(
            self.db, self.integrity, self.roadmaps, self.tracks, self.tasks, self.iterations
        )

    @property
    def project_code(self) -> str:
        return self.integrity.project_code

    @contextmanager
    def transaction(self):
        """Group several repository calls into one atomic unit."""
        with self.db.transaction() as conn:
            yield conn

    # -- sequences -----------------------------------------------------------

    def get_next_sequence_number(self, entity_type: "str | EntityType", project: str | None = None) -> int:
        return self.integrity.next_sequence_number(entity_type, project)

    # -- track dependencies --------------------------------------------------

    def add_track_dependency(self, track_id: str, depends_on_id: str) -> None:
        self.tracks.add_dependency(track_id, depends_on_id)

    def remove_track_dependency(self, track_id: str, depends_on_id: str) -> None:
        self.tracks.remove_dependency(track_id, depends_on_id)

    def get_track_dependencies(self, track_id: str) -> list[str]:
        return self.tracks.get_dependencies(track_id)

    def validate_no_cycles(self, track_id: str) -> None:
        self.tracks.validate_no_cycles(track_id)

    # -- iteration lifecycle -------------------------------------------------

    def start_iteration(self, number: int) -> Iteration:
        return self.iterations.start(number)

    def complete_iteration(self, number: int) -> Iteration:
        return self.iterations.complete(number)

    def get_current_iteration(self) -> Iteration:
        """Raises NotFoundError when no iteration is current."""
        return self.iterations.get_current()

    # -- creation with generated IDs ----------------------------------------

    def create_roadmap(self, vision: str, success_criteria: str) -> Roadmap:
        roadmap = Roadmap(id=f"roadmap-{time.time_ns()}", vision=vision, success_criteria=success_criteria)
        return self.roadmaps.save(roadmap)

    def create_track(
        self,
        roadmap_id: str,
        title: str,
        description: str = "",
        status: str = TrackStatus.NOT_STARTED.value,
        rank: int = DEFAULT_RANK,
        dependencies: Iterable[str] = (),
    ) -> Track:
        with self.db.transaction():
            track = Track(
                id=self.integrity.next_id(EntityType.TRACK),
                roadmap_id=roadmap_id,
                title=title,
                description=description,
                status=status,
                rank=rank,
                dependencies=list(dependencies),
            )
            return self.tracks.save(track)

    def create_task(
        self,
        track_id: str,
        title: str,
        description: str = "",
        status: str = TaskStatus.TODO.value,
        rank: int = DEFAULT_RANK,
        branch: str | None = None,
    ) -> Task:
        with self.db.transaction():
            task = Task(
                id=self.integrity.next_id(EntityType.TASK),
                track_id=track_id,
                title=title,
                description=description,
                status=status,
                rank=rank,
                branch=branch,
            )
            return self.tasks.save(task)

    def create_iteration(
        self,
        name: str,
        number: Optional[int] = None,
        goal: str = "",
        deliverable: str = "",
        rank: int = DEFAULT_RANK,
    ) -> Iteration:
        """Create a planned iteration; number defaults to the next iter sequence value."""
        with self.db.transaction():
            if number is None:
                number = self.integrity.next_sequence_number(EntityType.ITERATION)
            iteration = Iteration(number=number, name=name, goal=goal, deliverable=deliverable, rank=rank)
            return self.iterations.save(iteration)

    def create_ac(
        self,
        task_id: str,
        description: str,
        verification_type: str = VerificationType.MANUAL.value,
        testing_instructions: str = "",
    ) -> AcceptanceCriteria:
        with self.db.transaction():
            ac = AcceptanceCriteria(
                id=self.integrity.next_id(EntityType.AC),
                task_id=task_id,
                description=description,
                verification_type=verification_type,
                testing_instructions=testing_instructions,
            )
            return self.acceptance_criteria.save(ac)

    def create_adr(
        self,
        track_id: str,
        title: str,
        context: str,
        decision: str,
        consequences: str,
        alternatives: str = "",
        status: str = ADRStatus.PROPOSED.value,
    ) -> ADR:
        with self.db.transaction():
            adr = ADR(
                id=self.integrity.next_id(EntityType.ADR),
                track_id=track_id,
                title=title,
                context=context,
                decision=decision,
                consequences=consequences,
                alternatives=alternatives,
                status=status,
            )
            return self.adrs.save(adr)

    def create_document(
        self,
        title: str,
        doc_type: str,
        content: str = "",
        status: str = DocumentStatus.DRAFT.value,
        track_id: str | None = None,
        iteration_number: int | None = None,
    ) -> Document:
        doc = Document(
            id=f"{self.project_code}-doc-{secrets.token_hex(4)}",
            title=title,
            type=doc_type,
            content=content,
            status=status,
            track_id=track_id,
            iteration_number=iteration_number,
        )
        return self.documents.save(doc)

    # -- lifecycle -----------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self.db.closed

    def close(self) -> None:
        """Close the shared connection. Safe to call more than once."""
        self.db.close()

    def __enter__(self) -> "RepositoryComposite":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
