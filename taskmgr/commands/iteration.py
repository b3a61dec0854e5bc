"""
tm iteration - Iteration lifecycle and membership commands.
"""

from taskmgr.domain.models import Iteration
from taskmgr.lib.constants import DEFAULT_RANK
from taskmgr.storage.composite import RepositoryComposite


def _print_iteration(iteration: Iteration) -> None:
    print(f"Iteration {iteration.number}: {iteration.name}")
    print("=" * 60)
    print(f"Status:      {iteration.status}")
    print(f"Rank:        {iteration.rank}")
    if iteration.goal:
        print(f"Goal:        {iteration.goal}")
    if iteration.deliverable:
        print(f"Deliverable: {iteration.deliverable}")
    if iteration.started_at:
        print(f"Started:     {iteration.started_at}")
    if iteration.completed_at:
        print(f"Completed:   {iteration.completed_at}")


def cmd_iteration_create(args, store: RepositoryComposite) -> int:
    iteration = store.create_iteration(
        args.name,
        number=args.number,
        goal=args.goal,
        deliverable=args.deliverable,
        rank=args.rank if args.rank is not None else DEFAULT_RANK,
    )
    print(f"Created iteration {iteration.number}: {iteration.name}")
    return 0


def cmd_iteration_show(args, store: RepositoryComposite) -> int:
    view = store.aggregate.get_iteration_with_tasks(args.number)
    _print_iteration(view.iteration)
    print()
    print(f"Tasks ({len(view.tasks)})")
    print("-" * 40)
    for task in view.tasks:
        print(f"  {task.id:<16} [{task.status}] {task.title}")
    return 0


def cmd_iteration_list(args, store: RepositoryComposite) -> int:
    iterations = store.iterations.list(status=args.status)
    if not iterations:
        print("No iterations.")
        return 0
    for iteration in iterations:
        marker = "*" if iteration.status == "current" else " "
        print(f"{marker} {iteration.number:>4}  [{iteration.status}] {iteration.name}  ({len(iteration.task_ids)} tasks)")
    return 0


def cmd_iteration_update(args, store: RepositoryComposite) -> int:
    iteration = store.iterations.get(args.number)
    for attr in ("name", "goal", "deliverable", "rank"):
        value = getattr(args, attr)
        if value is not None:
            setattr(iteration, attr, value)
    store.iterations.update(iteration)
    print(f"Updated iteration {iteration.number}")
    return 0


def cmd_iteration_delete(args, store: RepositoryComposite) -> int:
    store.iterations.delete(args.number)
    print(f"Deleted iteration {args.number}")
    return 0


def cmd_iteration_start(args, store: RepositoryComposite) -> int:
    iteration = store.start_iteration(args.number)
    print(f"Started iteration {iteration.number} at {iteration.started_at}")
    return 0


def cmd_iteration_complete(args, store: RepositoryComposite) -> int:
    iteration = store.complete_iteration(args.number)
    print(f"Completed iteration {iteration.number} at {iteration.completed_at}")
    return 0


def cmd_iteration_current(args, store: RepositoryComposite) -> int:
    current = store.iterations.find_current()
    if current is None:
        print("No current iteration. Use 'tm iteration start <number>' to start one.")
        return 0
    _print_iteration(current)
    return 0


def cmd_iteration_add_task(args, store: RepositoryComposite) -> int:
    # All or nothing
    with store.transaction():
        for task_id in args.task_ids:
            store.iterations.add_task(args.number, task_id)
    print(f"Added {len(args.task_ids)} task(s) to iteration {args.number}")
    return 0


def cmd_iteration_remove_task(args, store: RepositoryComposite) -> int:
    with store.transaction():
        for task_id in args.task_ids:
            store.iterations.remove_task(args.number, task_id)
    print(f"Removed {len(args.task_ids)} task(s) from iteration {args.number}")
    return 0
