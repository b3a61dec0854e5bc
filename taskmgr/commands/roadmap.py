"""
tm roadmap - Roadmap commands.
"""

from taskmgr.storage.composite import RepositoryComposite


def cmd_roadmap_create(args, store: RepositoryComposite) -> int:
    roadmap = store.create_roadmap(args.vision, args.success_criteria)
    print(f"Created roadmap {roadmap.id}")
    return 0


def cmd_roadmap_show(args, store: RepositoryComposite) -> int:
    roadmap_id = args.id or store.roadmaps.get_active().id
    view = store.aggregate.get_roadmap_with_tracks(roadmap_id)

    print(f"Roadmap: {view.roadmap.id}")
    print("=" * 60)
    print(f"Vision:           {view.roadmap.vision}")
    print(f"Success criteria: {view.roadmap.success_criteria}")
    print()
    print(f"Tracks ({len(view.tracks)})")
    print("-" * 40)
    for track in view.tracks:
        deps = f"  <- {', '.join(track.dependencies)}" if track.dependencies else ""
        print(f"  {track.id:<16} [{track.status}] {track.title}{deps}")
    return 0


def cmd_roadmap_update(args, store: RepositoryComposite) -> int:
    roadmap = store.roadmaps.get(args.id) if args.id else store.roadmaps.get_active()
    if args.vision is not None:
        roadmap.vision = args.vision
    if args.success_criteria is not None:
        roadmap.success_criteria = args.success_criteria
    store.roadmaps.update(roadmap)
    print(f"Updated roadmap {roadmap.id}")
    return 0


def cmd_roadmap_list(args, store: RepositoryComposite) -> int:
    roadmaps = store.roadmaps.list()
    if not roadmaps:
        print("No roadmaps. Run 'tm roadmap create' to create one.")
        return 0
    for roadmap in roadmaps:
        print(f"{roadmap.id}  {roadmap.vision}")
    return 0
