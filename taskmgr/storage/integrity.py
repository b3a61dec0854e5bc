"""
Sequence numbers and cross-entity reference checks.

IDs look like <CODE>-<type>-<n> (TM-track-3, DW-ac-12). The counter for each
(project code, entity type) pair lives in entity_sequences and only moves via
UPDATE ... RETURNING inside a transaction, so numbers survive restarts and are
never handed out twice.

Databases created before the counter table existed are seeded lazily: the
first request for a pair starts from the highest ID already stored.
"""

import logging

from taskmgr.domain.models import ADRStatus, EntityType, parse_entity_type
from taskmgr.lib.constants import FALLBACK_PROJECT_CODE, PROJECT_CODE_PATTERN, SEQUENCED_ID_PATTERN
from taskmgr.lib.errors import InvalidArgumentError, NotFoundError

from .database import Database

logger = logging.getLogger(__name__)

PROJECT_CODE_KEY = "project_code"

# Tables whose string IDs carry a sequence number
_ID_TABLES = {
    EntityType.TASK: "tasks",
    EntityType.TRACK: "tracks",
    EntityType.ADR: "adrs",
    EntityType.AC: "acceptance_criteria",
}


class IntegrityAuthority:
    """Issues IDs and verifies that referenced entities exist."""

    def __init__(self, db: Database, project_code: str | None = None):
        if project_code is not None and not PROJECT_CODE_PATTERN.match(project_code):
            raise InvalidArgumentError(f"invalid project code '{project_code}': must match [A-Z0-9]+")
        self.db = db
        self._project_code = project_code

    # -- project code --------------------------------------------------------

    @property
    def project_code(self) -> str:
        """Explicit code, else the one stored in project_metadata, else the fallback."""
        if self._project_code:
            return self._project_code
        stored = self.db.scalar(
            "SELECT value FROM project_metadata WHERE key = ?", (PROJECT_CODE_KEY,)
        )
        return stored or FALLBACK_PROJECT_CODE

    @project_code.setter
    def project_code(self, code: str) -> None:
        if not PROJECT_CODE_PATTERN.match(code or ""):
            raise InvalidArgumentError(f"invalid project code '{code}': must match [A-Z0-9]+")
        self.db.execute(
            "INSERT INTO project_metadata (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (PROJECT_CODE_KEY, code),
        )
        self._project_code = code
        logger.info(f"[INTEGRITY] project code set to {code}")

    # -- sequences -----------------------------------------------------------

    def _highest_issued(self, project: str, entity_type: EntityType) -> int:
        if entity_type is EntityType.ITERATION:
            return self.db.scalar("SELECT COALESCE(MAX(number), 0) FROM iterations") or 0

        table = _ID_TABLES[entity_type]
        highest = 0
        rows = self.db.query(
            f"SELECT id FROM {table} WHERE id LIKE ?", (f"{project}-{entity_type.value}-%",)
        )
        for row in rows:
            m = SEQUENCED_ID_PATTERN.match(row["id"])
            if m and m.group("code") == project and m.group("type") == entity_type.value:
                highest = max(highest, int(m.group("seq")))
        return highest

    def _ensure_counter(self, project: str, entity_type: EntityType) -> None:
        exists = self.db.scalar(
            "SELECT 1 FROM entity_sequences WHERE project = ? AND entity_type = ?",
            (project, entity_type.value),
        )
        if exists:
            return
        start = self._highest_issued(project, entity_type)
        self.db.execute(
            "INSERT INTO entity_sequences (project, entity_type, seq) VALUES (?, ?, ?)",
            (project, entity_type.value, start),
        )
        logger.debug(f"[SEQ] seeded {project}/{entity_type.value} at {start}")

    def next_sequence_number(self, entity_type: "str | EntityType", project: str | None = None) -> int:
        """Atomically increment and return the counter for (project, entity_type).

        Raises:
            InvalidArgumentError: Unknown entity type
        """
        et = parse_entity_type(entity_type)
        project = project or self.project_code

        with self.db.transaction():
            self._ensure_counter(project, et)
            rows = self.db.query(
                "UPDATE entity_sequences SET seq = seq + 1 "
                "WHERE project = ? AND entity_type = ? RETURNING seq",
                (project, et.value),
            )
        seq = rows[0]["seq"]
        logger.debug(f"[SEQ] {project}/{et.value} -> {seq}")
        return seq

    def note_iteration_number(self, number: int) -> None:
        """Raise the iter counter so it never issues a number at or below `number`."""
        project = self.project_code
        with self.db.transaction():
            self._ensure_counter(project, EntityType.ITERATION)
            self.db.execute(
                "UPDATE entity_sequences SET seq = MAX(seq, ?) WHERE project = ? AND entity_type = ?",
                (number, project, EntityType.ITERATION.value),
            )

    def make_id(self, entity_type: "str | EntityType", seq: int, project: str | None = None) -> str:
        et = parse_entity_type(entity_type)
        return f"{project or self.project_code}-{et.value}-{seq}"

    def next_id(self, entity_type: "str | EntityType") -> str:
        """Draw the next sequence number and format it as an ID."""
        project = self.project_code
        return self.make_id(entity_type, self.next_sequence_number(entity_type, project), project)

    # -- existence -----------------------------------------------------------

    def _require(self, label: str, table: str, column: str, value, referrer: str | None) -> None:
        found = self.db.scalar(f"SELECT 1 FROM {table} WHERE {column} = ?", (value,))
        if found is None:
            message = f"{label} {value} not found"
            if referrer:
                message += f" (referenced by {referrer})"
            logger.warning(f"[INTEGRITY] {message}")
            raise NotFoundError(message)

    def require_roadmap(self, roadmap_id: str, referrer: str | None = None) -> None:
        self._require("roadmap", "roadmaps", "id", roadmap_id, referrer)

    def require_track(self, track_id: str, referrer: str | None = None) -> None:
        self._require("track", "tracks", "id", track_id, referrer)

    def require_task(self, task_id: str, referrer: str | None = None) -> None:
        self._require("task", "tasks", "id", task_id, referrer)

    def require_iteration(self, number: int, referrer: str | None = None) -> None:
        self._require("iteration", "iterations", "number", number, referrer)

    def require_adr(self, adr_id: str, referrer: str | None = None) -> None:
        self._require("ADR", "adrs", "id", adr_id, referrer)

    # -- relationship rules --------------------------------------------------

    def check_document_attachment(
        self,
        track_id: str | None,
        iteration_number: int | None,
        document_id: str | None = None,
    ) -> None:
        """A document hangs off a track, an iteration, or nothing. Never both.

        Raises:
            InvalidArgumentError: Both targets set
            NotFoundError: The target does not exist
        """
        referrer = f"document {document_id}" if document_id else "document"
        if track_id and iteration_number is not None:
            raise InvalidArgumentError(
                f"{referrer} cannot be attached to both track {track_id} "
                f"and iteration {iteration_number}"
            )
        if track_id:
            self.require_track(track_id, referrer)
        elif iteration_number is not None:
            self.require_iteration(iteration_number, referrer)

    def check_adr_supersession(
        self,
        status: str,
        superseded_by: str | None,
        adr_id: str | None = None,
    ) -> None:
        """superseded_by must point at another existing ADR and needs status=superseded."""
        if not superseded_by:
            return
        label = f"ADR {adr_id}" if adr_id else "ADR"
        if status != ADRStatus.SUPERSEDED.value:
            raise InvalidArgumentError(
                f"{label} has superseded_by={superseded_by} but status is {status} (expected superseded)"
            )
        if adr_id and superseded_by == adr_id:
            raise InvalidArgumentError(f"{label} cannot supersede itself")
        self.require_adr(superseded_by, label)
