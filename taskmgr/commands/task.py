"""
tm task - Task commands.
"""

from taskmgr.lib.constants import DEFAULT_RANK
from taskmgr.storage.composite import RepositoryComposite


def cmd_task_create(args, store: RepositoryComposite) -> int:
    task = store.create_task(
        args.track,
        args.title,
        description=args.description,
        rank=args.rank if args.rank is not None else DEFAULT_RANK,
        branch=args.branch,
    )
    print(f"Created task {task.id}: {task.title}")
    return 0


def cmd_task_show(args, store: RepositoryComposite) -> int:
    task = store.tasks.get(args.id)
    criteria = store.acceptance_criteria.list(task_id=task.id)

    print(f"Task: {task.id}")
    print("=" * 60)
    print(f"Title:       {task.title}")
    print(f"Track:       {task.track_id}")
    print(f"Status:      {task.status}")
    print(f"Rank:        {task.rank}")
    if task.branch:
        print(f"Branch:      {task.branch}")
    if task.description:
        print(f"Description: {task.description}")

    if criteria:
        print()
        print(f"Acceptance criteria ({len(criteria)})")
        print("-" * 40)
        for ac in criteria:
            print(f"  {ac.id:<14} [{ac.status}] {ac.description}")
    return 0


def cmd_task_list(args, store: RepositoryComposite) -> int:
    tasks = store.tasks.list(track_id=args.track, status=args.status, iteration_number=args.iteration)
    if not tasks:
        print("No tasks.")
        return 0
    for task in tasks:
        print(f"{task.id:<16} {task.track_id:<16} [{task.status}] {task.title}")
    return 0


def cmd_task_update(args, store: RepositoryComposite) -> int:
    task = store.tasks.get(args.id)
    for attr in ("title", "description", "status", "rank", "branch"):
        value = getattr(args, attr)
        if value is not None:
            setattr(task, attr, value)
    if args.track is not None:
        task.track_id = args.track
    store.tasks.update(task)
    print(f"Updated task {task.id}")
    return 0


def cmd_task_delete(args, store: RepositoryComposite) -> int:
    store.tasks.delete(args.id)
    print(f"Deleted task {args.id}")
    return 0
