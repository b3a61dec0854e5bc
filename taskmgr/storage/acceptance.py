import logging

from taskmgr.domain.models import AcceptanceCriteria, utc_now

from .base import Repository

logger = logging.getLogger(__name__)


class AcceptanceCriteriaRepository(Repository):
    table = "acceptance_criteria"
    schema = "acceptance_criteria"
    label = "acceptance criterion"

    def save(self, ac: AcceptanceCriteria) -> AcceptanceCriteria:
        with self.db.transaction():
            self.integrity.require_task(ac.task_id, f"acceptance criterion {ac.id}")
            self._insert(ac.to_record())
        logger.info(f"[DB] created acceptance criterion {ac.id} for {ac.task_id}")
        return ac

    def get(self, ac_id: str) -> AcceptanceCriteria:
        return AcceptanceCriteria.from_row(self._row(ac_id))

    def update(self, ac: AcceptanceCriteria) -> AcceptanceCriteria:
        with self.db.transaction():
            stored = self.get(ac.id)
            if ac.task_id != stored.task_id:
                self.integrity.require_task(ac.task_id, f"acceptance criterion {ac.id}")
            ac.updated_at = utc_now()
            self._update(ac.to_record())
        logger.info(f"[DB] updated acceptance criterion {ac.id} ({ac.status})")
        return ac

    def list(
        self,
        task_id: str | None = None,
        track_id: str | None = None,
        iteration_number: int | None = None,
    ) -> list[AcceptanceCriteria]:
        """Criteria in creation order, optionally narrowed to a task, track or iteration."""
        clauses, params = [], []
        if task_id:
            clauses.append("ac.task_id = ?")
            params.append(task_id)
        if track_id:
            clauses.append("t.track_id = ?")
            params.append(track_id)
        if iteration_number is not None:
            clauses.append("ac.task_id IN (SELECT task_id FROM iteration_tasks WHERE iteration_number = ?)")
            params.append(iteration_number)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self.db.query(
            "SELECT ac.* FROM acceptance_criteria ac JOIN tasks t ON t.id = ac.task_id"
            f"{where} ORDER BY ac.created_at, ac.id",
            params,
        )
        return [AcceptanceCriteria.from_row(r) for r in rows]
