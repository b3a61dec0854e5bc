"""
tm ac - Acceptance criteria commands.
"""

from taskmgr.storage.composite import RepositoryComposite


def cmd_ac_add(args, store: RepositoryComposite) -> int:
    ac = store.create_ac(
        args.task,
        args.description,
        verification_type=args.verification_type,
        testing_instructions=args.instructions,
    )
    print(f"Created acceptance criterion {ac.id} for {ac.task_id}")
    return 0


def cmd_ac_show(args, store: RepositoryComposite) -> int:
    ac = store.acceptance_criteria.get(args.id)
    print(f"Acceptance criterion: {ac.id}")
    print("=" * 60)
    print(f"Task:         {ac.task_id}")
    print(f"Description:  {ac.description}")
    print(f"Verification: {ac.verification_type}")
    print(f"Status:       {ac.status}")
    if ac.testing_instructions:
        print(f"Instructions: {ac.testing_instructions}")
    if ac.notes:
        print(f"Notes:        {ac.notes}")
    return 0


def cmd_ac_list(args, store: RepositoryComposite) -> int:
    criteria = store.acceptance_criteria.list(
        task_id=args.task, track_id=args.track, iteration_number=args.iteration
    )
    if not criteria:
        print("No acceptance criteria.")
        return 0
    for ac in criteria:
        print(f"{ac.id:<14} {ac.task_id:<16} [{ac.status}] {ac.description}")
    return 0


def cmd_ac_update(args, store: RepositoryComposite) -> int:
    ac = store.acceptance_criteria.get(args.id)
    if args.description is not None:
        ac.description = args.description
    if args.status is not None:
        ac.status = args.status
    if args.notes is not None:
        ac.notes = args.notes
    if args.instructions is not None:
        ac.testing_instructions = args.instructions
    store.acceptance_criteria.update(ac)
    print(f"Updated acceptance criterion {ac.id} ({ac.status})")
    return 0


def cmd_ac_delete(args, store: RepositoryComposite) -> int:
    store.acceptance_criteria.delete(args.id)
    print(f"Deleted acceptance criterion {args.id}")
    return 0
