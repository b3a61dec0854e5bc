"""
tm track - Track and dependency commands.
"""

from taskmgr.lib.constants import DEFAULT_RANK
from taskmgr.storage.composite import RepositoryComposite


def cmd_track_create(args, store: RepositoryComposite) -> int:
    roadmap_id = args.roadmap or store.roadmaps.get_active().id
    track = store.create_track(
        roadmap_id,
        args.title,
        description=args.description,
        rank=args.rank if args.rank is not None else DEFAULT_RANK,
        dependencies=args.depends_on,
    )
    print(f"Created track {track.id}: {track.title}")
    return 0


def cmd_track_show(args, store: RepositoryComposite) -> int:
    view = store.aggregate.get_track_with_tasks(args.id)
    track = view.track
    dependents = store.tracks.get_dependents(track.id)

    print(f"Track: {track.id}")
    print("=" * 60)
    print(f"Title:       {track.title}")
    print(f"Roadmap:     {track.roadmap_id}")
    print(f"Status:      {track.status}")
    print(f"Rank:        {track.rank}")
    if track.description:
        print(f"Description: {track.description}")
    print(f"Depends on:  {', '.join(track.dependencies) or '-'}")
    print(f"Blocks:      {', '.join(dependents) or '-'}")
    print()
    print(f"Tasks ({len(view.tasks)})")
    print("-" * 40)
    for task in view.tasks:
        print(f"  {task.id:<16} [{task.status}] {task.title}")
    return 0


def cmd_track_list(args, store: RepositoryComposite) -> int:
    tracks = store.tracks.list(roadmap_id=args.roadmap, status=args.status)
    if not tracks:
        print("No tracks.")
        return 0
    for track in tracks:
        print(f"{track.id:<16} {track.rank:>4}  [{track.status}] {track.title}")
    return 0


def cmd_track_update(args, store: RepositoryComposite) -> int:
    track = store.tracks.get(args.id)
    if args.title is not None:
        track.title = args.title
    if args.description is not None:
        track.description = args.description
    if args.status is not None:
        track.status = args.status
    if args.rank is not None:
        track.rank = args.rank
    store.tracks.update(track)
    print(f"Updated track {track.id}")
    return 0


def cmd_track_delete(args, store: RepositoryComposite) -> int:
    store.tracks.delete(args.id)
    print(f"Deleted track {args.id}")
    return 0


def cmd_track_depend(args, store: RepositoryComposite) -> int:
    store.add_track_dependency(args.id, args.depends_on)
    print(f"{args.id} now depends on {args.depends_on}")
    return 0


def cmd_track_undepend(args, store: RepositoryComposite) -> int:
    store.remove_track_dependency(args.id, args.depends_on)
    print(f"{args.id} no longer depends on {args.depends_on}")
    return 0


def cmd_track_deps(args, store: RepositoryComposite) -> int:
    deps = store.get_track_dependencies(args.id)
    dependents = store.tracks.get_dependents(args.id)

    print(f"Depends on ({len(deps)}):")
    for dep in deps:
        print(f"  {dep}")
    print(f"Depended on by ({len(dependents)}):")
    for dep in dependents:
        print(f"  {dep}")

    if args.check:
        store.validate_no_cycles(args.id)
        print("No cycles.")
    return 0
