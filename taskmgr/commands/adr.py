"""
tm adr - Architecture decision record commands.
"""

from taskmgr.domain.models import ADRStatus
from taskmgr.storage.composite import RepositoryComposite


def cmd_adr_create(args, store: RepositoryComposite) -> int:
    adr = store.create_adr(
        args.track,
        args.title,
        context=args.context,
        decision=args.decision,
        consequences=args.consequences,
        alternatives=args.alternatives,
    )
    print(f"Created ADR {adr.id}: {adr.title}")
    return 0


def cmd_adr_show(args, store: RepositoryComposite) -> int:
    adr = store.adrs.get(args.id)
    print(f"ADR: {adr.id} - {adr.title}")
    print("=" * 60)
    print(f"Track:  {adr.track_id}")
    print(f"Status: {adr.status}")
    if adr.superseded_by:
        print(f"Superseded by: {adr.superseded_by}")
    for heading, body in (
        ("Context", adr.context),
        ("Decision", adr.decision),
        ("Consequences", adr.consequences),
        ("Alternatives", adr.alternatives),
    ):
        if body:
            print()
            print(heading)
            print("-" * 40)
            print(body)
    return 0


def cmd_adr_list(args, store: RepositoryComposite) -> int:
    adrs = store.adrs.list(track_id=args.track, status=args.status)
    if not adrs:
        print("No ADRs.")
        return 0
    for adr in adrs:
        print(f"{adr.id:<14} {adr.track_id:<16} [{adr.status}] {adr.title}")
    return 0


def cmd_adr_accept(args, store: RepositoryComposite) -> int:
    adr = store.adrs.get(args.id)
    adr.status = ADRStatus.ACCEPTED.value
    adr.superseded_by = None
    store.adrs.update(adr)
    print(f"Accepted ADR {adr.id}")
    return 0


def cmd_adr_supersede(args, store: RepositoryComposite) -> int:
    store.adrs.supersede(args.id, args.by)
    print(f"ADR {args.id} superseded by {args.by}")
    return 0


def cmd_adr_deprecate(args, store: RepositoryComposite) -> int:
    store.adrs.deprecate(args.id)
    print(f"Deprecated ADR {args.id}")
    return 0


def cmd_adr_delete(args, store: RepositoryComposite) -> int:
    store.adrs.delete(args.id)
    print(f"Deleted ADR {args.id}")
    return 0
