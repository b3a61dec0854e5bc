import logging

from taskmgr.domain.models import Task, utc_now

from .base import Repository

logger = logging.getLogger(__name__)


class TaskRepository(Repository):
    table = "tasks"
    schema = "task"
    label = "task"

    def save(self, task: Task) -> Task:
        with self.db.transaction():
            self.integrity.require_track(task.track_id, f"task {task.id}")
            self._insert(task.to_record())
        logger.info(f"[DB] created task {task.id} in {task.track_id}")
        return task

    def get(self, task_id: str) -> Task:
        return Task.from_row(self._row(task_id))

    def update(self, task: Task) -> Task:
        with self.db.transaction():
            stored = self.get(task.id)
            if task.track_id != stored.track_id:
                self.integrity.require_track(task.track_id, f"task {task.id}")
            task.updated_at = utc_now()
            self._update(task.to_record())
        logger.info(f"[DB] updated task {task.id}")
        return task

    def list(
        self,
        track_id: str | None = None,
        status: str | None = None,
        iteration_number: int | None = None,
    ) -> list[Task]:
        clauses, params = [], []
        if track_id:
            clauses.append("track_id = ?")
            params.append(track_id)
        if status:
            clauses.append("status = ?")
            params.append(status)
        if iteration_number is not None:
            clauses.append("id IN (SELECT task_id FROM iteration_tasks WHERE iteration_number = ?)")
            params.append(iteration_number)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self.db.query(f"SELECT * FROM tasks{where} ORDER BY rank, id", params)
        return [Task.from_row(r) for r in rows]
