"""
Iterations, their task membership, and the planned -> current -> complete lifecycle.

start() and complete() run the decision function, drive the FSM and persist
the new status inside one transaction. At most one iteration is current; the
partial unique index on iterations(status) backs that up at the storage level.
"""

import logging
from typing import Callable, Optional

from taskmgr.domain.models import Iteration, IterationStatus, Task, utc_now
from taskmgr.lib.errors import AlreadyExistsError, InvalidArgumentError, NotFoundError
from taskmgr.workflow.state_machine import (
    IterationState,
    can_complete_iteration,
    can_start_iteration,
    transition_iteration,
)

from .base import Repository
from .database import Database
from .integrity import IntegrityAuthority

logger = logging.getLogger(__name__)


class IterationRepository(Repository):
    table = "iterations"
    key = "number"
    schema = "iteration"
    label = "iteration"

    def __init__(
        self,
        db: Database,
        integrity: IntegrityAuthority,
        clock: Callable[[], str] = utc_now,
    ):
        super().__init__(db, integrity)
        self.clock = clock

    def _task_ids(self, number: int) -> list[str]:
        rows = self.db.query(
            "SELECT task_id FROM iteration_tasks WHERE iteration_number = ? ORDER BY task_id",
            (number,),
        )
        return [r["task_id"] for r in rows]

    def _from_row(self, row) -> Iteration:
        return Iteration.from_row(row, task_ids=self._task_ids(row["number"]))

    def save(self, iteration: Iteration) -> Iteration:
        """Insert a new planned iteration.

        Raises:
            InvalidArgumentError: Number < 1 or status other than planned
            AlreadyExistsError: Number already taken
            NotFoundError: A listed task does not exist
        """
        if iteration.status != IterationStatus.PLANNED.value:
            raise InvalidArgumentError(
                f"iteration {iteration.number} must be created as planned (got {iteration.status})"
            )

        with self.db.transaction():
            exists = self.db.scalar("SELECT 1 FROM iterations WHERE number = ?", (iteration.number,))
            if exists:
                raise AlreadyExistsError(f"iteration {iteration.number} already exists")
            self._insert(iteration.to_record())
            for task_id in iteration.task_ids:
                self.integrity.require_task(task_id, f"iteration {iteration.number}")
                self.db.execute(
                    "INSERT INTO iteration_tasks (iteration_number, task_id) VALUES (?, ?)",
                    (iteration.number, task_id),
                )
            self.integrity.note_iteration_number(iteration.number)
        logger.info(f"[DB] created iteration {iteration.number} ({iteration.name})")
        return iteration

    def get(self, number: int) -> Iteration:
        return self._from_row(self._row(number))

    def update(self, iteration: Iteration) -> Iteration:
        """Update name, goal, deliverable and rank. Status moves only via start/complete."""
        with self.db.transaction():
            stored = self.get(iteration.number)
            if iteration.status != stored.status:
                raise InvalidArgumentError(
                    f"iteration {iteration.number}: status changes go through start/complete "
                    f"({stored.status} -> {iteration.status})"
                )
            stored.name = iteration.name
            stored.goal = iteration.goal
            stored.deliverable = iteration.deliverable
            stored.rank = iteration.rank
            stored.updated_at = self.clock()
            self._update(stored.to_record())
        logger.info(f"[DB] updated iteration {iteration.number}")
        return stored

    def find_current(self) -> Optional[Iteration]:
        """The current iteration, or None when no iteration is current."""
        row = self.db.query_one("SELECT * FROM iterations WHERE status = ?", (IterationStatus.CURRENT.value,))
        return self._from_row(row) if row is not None else None

    def get_current(self) -> Iteration:
        """Like find_current, but NotFoundError when none is current."""
        current = self.find_current()
        if current is None:
            raise NotFoundError("no current iteration")
        return current

    def start(self, number: int) -> Iteration:
        """planned -> current, provided no other iteration is current."""
        with self.db.transaction():
            iteration = self.get(number)
            try:
                can_start_iteration(iteration, self.find_current)
            except InvalidArgumentError as e:
                logger.warning(f"[STATE] refused to start iteration {number}: {e.message}")
                raise
            transition_iteration(iteration, IterationState.CURRENT, clock=self.clock)
            self._update(iteration.to_record())
        logger.info(f"[STATE] iteration {number} started at {iteration.started_at}")
        return iteration

    def complete(self, number: int) -> Iteration:
        """current -> complete."""
        with self.db.transaction():
            iteration = self.get(number)
            try:
                can_complete_iteration(iteration)
            except InvalidArgumentError as e:
                logger.warning(f"[STATE] refused to complete iteration {number}: {e.message}")
                raise
            transition_iteration(iteration, IterationState.COMPLETE, clock=self.clock)
            self._update(iteration.to_record())
        logger.info(f"[STATE] iteration {number} completed at {iteration.completed_at}")
        return iteration

    def add_task(self, number: int, task_id: str) -> Iteration:
        """Raises AlreadyExistsError if the task is already a member."""
        with self.db.transaction():
            iteration = self.get(number)
            self.integrity.require_task(task_id, f"iteration {number}")
            iteration.add_task(task_id)
            self.db.execute(
                "INSERT INTO iteration_tasks (iteration_number, task_id) VALUES (?, ?)",
                (number, task_id),
            )
            self.db.execute(
                "UPDATE iterations SET updated_at = ? WHERE number = ?", (iteration.updated_at, number)
            )
        logger.info(f"[DB] added {task_id} to iteration {number}")
        return iteration

    def remove_task(self, number: int, task_id: str) -> Iteration:
        """Raises NotFoundError if the task is not a member."""
        with self.db.transaction():
            iteration = self.get(number)
            iteration.remove_task(task_id)
            self.db.execute(
                "DELETE FROM iteration_tasks WHERE iteration_number = ? AND task_id = ?",
                (number, task_id),
            )
            self.db.execute(
                "UPDATE iterations SET updated_at = ? WHERE number = ?", (iteration.updated_at, number)
            )
        logger.info(f"[DB] removed {task_id} from iteration {number}")
        return iteration

    def get_tasks(self, number: int) -> list[Task]:
        self.integrity.require_iteration(number)
        rows = self.db.query(
            "SELECT t.* FROM tasks t JOIN iteration_tasks it ON it.task_id = t.id "
            "WHERE it.iteration_number = ? ORDER BY t.rank, t.id",
            (number,),
        )
        return [Task.from_row(r) for r in rows]

    def list(self, status: str | None = None) -> list[Iteration]:
        if status:
            rows = self.db.query("SELECT * FROM iterations WHERE status = ? ORDER BY number", (status,))
        else:
            rows = self.db.query("SELECT * FROM iterations ORDER BY number")
        return [self._from_row(r) for r in rows]
