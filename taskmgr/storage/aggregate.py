"""Cross-entity reads and project metadata."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from taskmgr.domain.models import Iteration, Roadmap, Task, Track

from .database import Database
from .integrity import IntegrityAuthority
from .iterations import IterationRepository
from .roadmaps import RoadmapRepository
from .tasks import TaskRepository
from .tracks import TrackRepository

logger = logging.getLogger(__name__)


@dataclass
class RoadmapWithTracks:
    roadmap: Roadmap
    tracks: list[Track] = field(default_factory=list)


@dataclass
class TrackWithTasks:
    track: Track
    tasks: list[Task] = field(default_factory=list)


@dataclass
class IterationWithTasks:
    iteration: Iteration
    tasks: list[Task] = field(default_factory=list)


class AggregateRepository:
    """Queries that span several entity types."""

    def __init__(
        self,
        db: Database,
        integrity: IntegrityAuthority,
        roadmaps: RoadmapRepository,
        tracks: TrackRepository,
        tasks: TaskRepository,
        iterations: IterationRepository,
    ):
        self.db = db
        self.integrity = integrity
        self.roadmaps = roadmaps
        self.tracks = tracks
        self.tasks = tasks
        self.iterations = iterations

    def get_metadata(self, key: str) -> Optional[str]:
        return self.db.scalar("SELECT value FROM project_metadata WHERE key = ?", (key,))

    def set_metadata(self, key: str, value: str) -> None:
        self.db.execute(
            "INSERT INTO project_metadata (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value),
        )
        logger.debug(f"[DB] metadata {key}={value}")

    def get_project_code(self) -> str:
        return self.integrity.project_code

    def set_project_code(self, code: str) -> None:
        self.integrity.project_code = code

    def get_roadmap_with_tracks(self, roadmap_id: str) -> RoadmapWithTracks:
        roadmap = self.roadmaps.get(roadmap_id)
        return RoadmapWithTracks(roadmap, self.tracks.list(roadmap_id=roadmap_id))

    def get_track_with_tasks(self, track_id: str) -> TrackWithTasks:
        track = self.tracks.get(track_id)
        return TrackWithTasks(track, self.tasks.list(track_id=track_id))

    def get_iteration_with_tasks(self, number: int) -> IterationWithTasks:
        iteration = self.iterations.get(number)
        return IterationWithTasks(iteration, self.iterations.get_tasks(number))
