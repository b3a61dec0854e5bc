"""
Tracks and the track dependency graph.

Edges live in track_dependencies (track_id depends on depends_on_id). Every
edge insert runs inside one transaction: self-loop check, existence of both
ends, duplicate check, then cycle detection with the new edge included. The
edge is written only if all of them pass.
"""

import logging

from taskmgr.domain import dependencies
from taskmgr.domain.models import Track, utc_now
from taskmgr.lib.errors import AlreadyExistsError, InvalidArgumentError, NotFoundError
from taskmgr.workflow.state_machine import transition_track

from .base import Repository

logger = logging.getLogger(__name__)


class TrackRepository(Repository):
    table = "tracks"
    schema = "track"
    label = "track"

    def _edges(self, track_id: str) -> list[str]:
        rows = self.db.query(
            "SELECT depends_on_id FROM track_dependencies WHERE track_id = ? ORDER BY depends_on_id",
            (track_id,),
        )
        return [r["depends_on_id"] for r in rows]

    def _from_row(self, row) -> Track:
        return Track.from_row(row, dependencies=self._edges(row["id"]))

    def save(self, track: Track) -> Track:
        """Insert a track, then its initial dependencies (each fully checked)."""
        with self.db.transaction():
            self.integrity.require_roadmap(track.roadmap_id, f"track {track.id}")
            self._insert(track.to_record())
            for dep in track.dependencies:
                self._add_edge(track.id, dep)
        logger.info(f"[DB] created track {track.id}")
        return track

    def get(self, track_id: str) -> Track:
        return self._from_row(self._row(track_id))

    def update(self, track: Track) -> Track:
        """Update fields and status. Dependencies are changed with add/remove_dependency."""
        with self.db.transaction():
            stored = self.get(track.id)
            if track.roadmap_id != stored.roadmap_id:
                self.integrity.require_roadmap(track.roadmap_id, f"track {track.id}")
            if track.status != stored.status:
                transition_track(stored, track.status)
            track.updated_at = utc_now()
            self._update(track.to_record())
            track.dependencies = stored.dependencies
        logger.info(f"[DB] updated track {track.id}")
        return track

    def _add_edge(self, track_id: str, depends_on_id: str) -> None:
        if track_id == depends_on_id:
            logger.warning(f"[DEPS] rejected self-dependency on {track_id}")
            raise InvalidArgumentError(f"track {track_id} cannot depend on itself")

        self.integrity.require_track(track_id)
        self.integrity.require_track(depends_on_id, f"dependency of track {track_id}")

        if depends_on_id in self._edges(track_id):
            raise AlreadyExistsError(f"track {track_id} already depends on {depends_on_id}")

        dependencies.validate_no_cycles(
            track_id, dependencies.with_edge(self._edges, track_id, depends_on_id)
        )
        self.db.execute(
            "INSERT INTO track_dependencies (track_id, depends_on_id) VALUES (?, ?)",
            (track_id, depends_on_id),
        )

    def add_dependency(self, track_id: str, depends_on_id: str) -> None:
        """Record that track_id depends on depends_on_id.

        Raises:
            InvalidArgumentError: Self-dependency
            NotFoundError: Either track is missing
            AlreadyExistsError: Edge already present
            CycleDetectedError: Edge would close a cycle
        """
        with self.db.transaction():
            self._add_edge(track_id, depends_on_id)
        logger.info(f"[DEPS] {track_id} now depends on {depends_on_id}")

    def remove_dependency(self, track_id: str, depends_on_id: str) -> None:
        cursor = self.db.execute(
            "DELETE FROM track_dependencies WHERE track_id = ? AND depends_on_id = ?",
            (track_id, depends_on_id),
        )
        if cursor.rowcount == 0:
            raise NotFoundError(f"track {track_id} does not depend on {depends_on_id}")
        logger.info(f"[DEPS] {track_id} no longer depends on {depends_on_id}")

    def get_dependencies(self, track_id: str) -> list[str]:
        self.integrity.require_track(track_id)
        return self._edges(track_id)

    def get_dependents(self, track_id: str) -> list[str]:
        """Tracks that depend on track_id."""
        self.integrity.require_track(track_id)
        rows = self.db.query(
            "SELECT track_id FROM track_dependencies WHERE depends_on_id = ? ORDER BY track_id",
            (track_id,),
        )
        return [r["track_id"] for r in rows]

    def validate_no_cycles(self, track_id: str) -> None:
        """Check the stored graph reachable from track_id."""
        self.integrity.require_track(track_id)
        dependencies.validate_no_cycles(track_id, self._edges)

    def list(self, roadmap_id: str | None = None, status: str | None = None) -> list[Track]:
        """Tracks ordered by rank, then ID."""
        clauses, params = [], []
        if roadmap_id:
            clauses.append("roadmap_id = ?")
            params.append(roadmap_id)
        if status:
            clauses.append("status = ?")
            params.append(status)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self.db.query(f"SELECT * FROM tracks{where} ORDER BY rank, id", params)
        return [self._from_row(r) for r in rows]
