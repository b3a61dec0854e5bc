"""
tm doc - Document commands.
"""

from pathlib import Path

from taskmgr.lib.errors import InvalidArgumentError
from taskmgr.storage.composite import RepositoryComposite


def _read_content(args) -> str | None:
    if args.from_file:
        path = Path(args.from_file)
        if not path.exists():
            raise InvalidArgumentError(f"file not found: {path}")
        return path.read_text()
    return args.content


def cmd_doc_create(args, store: RepositoryComposite) -> int:
    doc = store.create_document(
        args.title,
        args.doc_type,
        content=_read_content(args) or "",
        track_id=args.track,
        iteration_number=args.iteration,
    )
    print(f"Created document {doc.id}: {doc.title}")
    return 0


def cmd_doc_show(args, store: RepositoryComposite) -> int:
    doc = store.documents.get(args.id)
    print(f"Document: {doc.id} - {doc.title}")
    print("=" * 60)
    print(f"Type:   {doc.type}")
    print(f"Status: {doc.status}")
    if doc.track_id:
        print(f"Track:  {doc.track_id}")
    elif doc.iteration_number is not None:
        print(f"Iteration: {doc.iteration_number}")
    else:
        print("Attached: (none)")
    if doc.content:
        print()
        print(doc.content)
    return 0


def cmd_doc_list(args, store: RepositoryComposite) -> int:
    docs = store.documents.list(track_id=args.track, iteration_number=args.iteration, doc_type=args.doc_type)
    if not docs:
        print("No documents.")
        return 0
    for doc in docs:
        if doc.track_id:
            target = doc.track_id
        elif doc.iteration_number is not None:
            target = f"iteration {doc.iteration_number}"
        else:
            target = "-"
        print(f"{doc.id:<20} {doc.type:<13} {target:<16} {doc.title}")
    return 0


def cmd_doc_update(args, store: RepositoryComposite) -> int:
    doc = store.documents.get(args.id)
    if args.title is not None:
        doc.title = args.title
    content = _read_content(args)
    if content is not None:
        doc.content = content
    if args.status is not None:
        doc.status = args.status
    store.documents.update(doc)
    print(f"Updated document {doc.id}")
    return 0


def cmd_doc_attach(args, store: RepositoryComposite) -> int:
    if args.track:
        store.documents.attach_to_track(args.id, args.track)
        print(f"Attached {args.id} to track {args.track}")
    else:
        store.documents.attach_to_iteration(args.id, args.iteration)
        print(f"Attached {args.id} to iteration {args.iteration}")
    return 0


def cmd_doc_detach(args, store: RepositoryComposite) -> int:
    store.documents.detach(args.id)
    print(f"Detached {args.id}")
    return 0


def cmd_doc_delete(args, store: RepositoryComposite) -> int:
    store.documents.delete(args.id)
    print(f"Deleted document {args.id}")
    return 0
