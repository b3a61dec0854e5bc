"""Tests for taskmgr.storage.iterations: lifecycle, single-current rule, membership."""

import pytest

from taskmgr.domain.models import Iteration
from taskmgr.lib.errors import AlreadyExistsError, InvalidArgumentError, NotFoundError
from taskmgr.storage.composite import RepositoryComposite
from taskmgr.workflow.state_machine import InvalidTransition


class TestIterationCrud:
    """Tests for create/get/list/update/delete."""

    def test_created_planned(self, store):
        iteration = store.create_iteration("Foundations", number=1, goal="Schema")
        loaded = store.iterations.get(1)
        assert loaded.status == "planned"
        assert loaded.goal == "Schema"
        assert loaded.started_at is None
        assert loaded.completed_at is None
        assert iteration.number == 1

    def test_number_defaults_to_next(self, store):
        assert store.create_iteration("one").number == 1
        assert store.create_iteration("two").number == 2

    def test_user_number_bumps_counter(self, store):
        store.create_iteration("five", number=5)
        assert store.create_iteration("next").number == 6

    def test_duplicate_number(self, store):
        store.create_iteration("one", number=1)
        with pytest.raises(AlreadyExistsError, match="iteration 1 already exists"):
            store.create_iteration("again", number=1)

    @pytest.mark.parametrize("number", [0, -3])
    def test_number_must_be_positive(self, store, number):
        with pytest.raises(InvalidArgumentError):
            store.create_iteration("bad", number=number)

    def test_cannot_create_current(self, store):
        with pytest.raises(InvalidArgumentError, match="must be created as planned"):
            store.iterations.save(Iteration(number=1, name="x", status="current"))

    def test_get_missing(self, store):
        with pytest.raises(NotFoundError, match="iteration 7 not found"):
            store.iterations.get(7)

    def test_list_by_number(self, store):
        store.create_iteration("three", number=3)
        store.create_iteration("one", number=1)
        assert [i.number for i in store.iterations.list()] == [1, 3]

    def test_update_fields(self, store):
        store.create_iteration("old", number=1)
        iteration = store.iterations.get(1)
        iteration.name = "new"
        iteration.deliverable = "Demo"
        store.iterations.update(iteration)
        loaded = store.iterations.get(1)
        assert (loaded.name, loaded.deliverable) == ("new", "Demo")

    def test_update_cannot_change_status(self, store):
        store.create_iteration("one", number=1)
        iteration = store.iterations.get(1)
        iteration.status = "complete"
        with pytest.raises(InvalidArgumentError, match="start/complete"):
            store.iterations.update(iteration)
        assert store.iterations.get(1).status == "planned"

    def test_delete(self, store):
        store.create_iteration("one", number=1)
        store.iterations.delete(1)
        with pytest.raises(NotFoundError):
            store.iterations.get(1)


class TestLifecycle:
    """Tests for start/complete and the single-current rule."""

    def test_concrete_scenario(self, store):
        store.create_iteration("one", number=1)
        started = store.start_iteration(1)
        assert started.status == "current"
        assert store.iterations.get(1).started_at is not None

        store.create_iteration("two", number=2)
        with pytest.raises(InvalidArgumentError, match="iteration 1 is already current"):
            store.start_iteration(2)
        assert store.iterations.get(1).status == "current"
        assert store.iterations.get(2).status == "planned"

        store.complete_iteration(1)
        store.start_iteration(2)
        assert store.get_current_iteration().number == 2

    def test_timestamps_from_clock(self, db_path):
        times = iter(["2026-05-01T09:00:00+00:00", "2026-05-14T17:00:00+00:00"])
        with RepositoryComposite(db_path, clock=lambda: next(times)) as store:
            store.create_iteration("one", number=1)
            store.start_iteration(1)
            store.complete_iteration(1)
            loaded = store.iterations.get(1)
        assert loaded.started_at == "2026-05-01T09:00:00+00:00"
        assert loaded.completed_at == "2026-05-14T17:00:00+00:00"

    def test_complete_from_planned(self, store):
        store.create_iteration("one", number=1)
        with pytest.raises(InvalidTransition) as exc_info:
            store.complete_iteration(1)
        assert exc_info.value.reason == "skip-stage"
        assert store.iterations.get(1).completed_at is None

    def test_nothing_leaves_complete(self, store):
        store.create_iteration("one", number=1)
        store.start_iteration(1)
        store.complete_iteration(1)
        with pytest.raises(InvalidTransition):
            store.start_iteration(1)
        with pytest.raises(InvalidTransition):
            store.complete_iteration(1)
        assert store.iterations.get(1).status == "complete"

    def test_start_already_current(self, store):
        store.create_iteration("one", number=1)
        store.start_iteration(1)
        with pytest.raises(InvalidTransition):
            store.start_iteration(1)

    def test_start_missing(self, store):
        with pytest.raises(NotFoundError):
            store.start_iteration(99)

    def test_get_current_none(self, store):
        assert store.iterations.find_current() is None
        with pytest.raises(NotFoundError, match="no current iteration"):
            store.get_current_iteration()

    def test_at_most_one_current_after_many_starts(self, store):
        for n in range(1, 6):
            store.create_iteration(f"it {n}", number=n)
        for n in range(1, 6):
            try:
                store.start_iteration(n)
            except InvalidArgumentError:
                pass
            current = store.iterations.list(status="current")
            assert len(current) == 1
        assert store.get_current_iteration().number == 1

    def test_storage_backs_single_current(self, store):
        """The partial unique index refuses a second current row written directly."""
        store.create_iteration("one", number=1)
        store.create_iteration("two", number=2)
        store.start_iteration(1)
        with pytest.raises(AlreadyExistsError):
            store.db.execute("UPDATE iterations SET status = 'current' WHERE number = 2")

    def test_refusal_logged(self, store, caplog):
        store.create_iteration("one", number=1)
        with pytest.raises(InvalidTransition):
            store.complete_iteration(1)
        assert "[STATE] refused to complete iteration 1" in caplog.text


class TestMembership:
    """Tests for add_task/remove_task/get_tasks."""

    def test_add_and_list(self, store, task):
        store.create_iteration("one", number=1)
        store.iterations.add_task(1, task.id)
        assert store.iterations.get(1).task_ids == [task.id]
        assert [t.id for t in store.iterations.get_tasks(1)] == [task.id]

    def test_add_twice(self, store, task):
        store.create_iteration("one", number=1)
        store.iterations.add_task(1, task.id)
        with pytest.raises(AlreadyExistsError, match="already in iteration 1"):
            store.iterations.add_task(1, task.id)

    def test_remove_absent(self, store, task):
        store.create_iteration("one", number=1)
        with pytest.raises(NotFoundError, match="not in iteration 1"):
            store.iterations.remove_task(1, task.id)

    def test_remove(self, store, task):
        store.create_iteration("one", number=1)
        store.iterations.add_task(1, task.id)
        store.iterations.remove_task(1, task.id)
        assert store.iterations.get(1).task_ids == []

    def test_add_missing_task(self, store):
        store.create_iteration("one", number=1)
        with pytest.raises(NotFoundError, match="task TM-task-404 not found"):
            store.iterations.add_task(1, "TM-task-404")

    def test_add_to_missing_iteration(self, store, task):
        with pytest.raises(NotFoundError):
            store.iterations.add_task(9, task.id)

    def test_aggregate_view(self, store, task):
        store.create_iteration("one", number=1)
        store.iterations.add_task(1, task.id)
        view = store.aggregate.get_iteration_with_tasks(1)
        assert view.iteration.number == 1
        assert [t.title for t in view.tasks] == ["Create schema"]
