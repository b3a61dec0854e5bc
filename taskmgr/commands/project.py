"""
tm project - Project management commands.
"""

import time
from pathlib import Path

from taskmgr.lib.config import (
    ConfigError,
    clear_current_project,
    get_current_project,
    get_projects_dir,
    init_project,
    list_projects,
    resolve_project,
    set_current_project,
)
from taskmgr.storage.composite import RepositoryComposite


def _resolve(args, home: Path):
    return resolve_project(home, getattr(args, "project", None))


def cmd_project_init(args, home: Path) -> int:
    """Create project.env and an empty database, and make it the current project."""
    project_config = init_project(home, args.name, args.code)

    # Creates the schema and records the code in the database itself
    with RepositoryComposite(project_config.db_path, project_config.code):
        pass

    set_current_project(home, project_config.name)
    print(f"Created project {project_config.name} ({project_config.code})")
    print(f"  Database: {project_config.db_path}")
    return 0


def cmd_project_show(args, home: Path) -> int:
    """Display current project configuration."""
    project_config = _resolve(args, home)

    print(f"Project: {project_config.name}")
    print("=" * 60)
    print()
    print("Configuration (project.env)")
    print("-" * 40)
    print(f"  Code:            {project_config.code}")
    print(f"  Database:        {project_config.db_path}")

    with RepositoryComposite(project_config.db_path, project_config.code) as store:
        current = store.iterations.find_current()
        print()
        print("Contents")
        print("-" * 40)
        print(f"  Roadmaps:        {len(store.roadmaps.list())}")
        print(f"  Tracks:          {len(store.tracks.list())}")
        print(f"  Tasks:           {len(store.tasks.list())}")
        print(f"  Iterations:      {len(store.iterations.list())}")
        if current:
            print(f"  Current:         iteration {current.number} ({current.name})")
        else:
            print("  Current:         (none)")

    return 0


def cmd_project_list(args, home: Path) -> int:
    projects = list_projects(home)
    if not projects:
        print("No projects. Run 'tm project init <name>' to create one.")
        return 0

    current = get_current_project(home)
    for p in projects:
        marker = "*" if p.name == current else " "
        print(f"{marker} {p.name:<24} {p.code}")
    return 0


def cmd_project_use(args, home: Path) -> int:
    """Set, show, or clear the current project context."""
    if args.clear:
        clear_current_project(home)
        print("Cleared current project context.")
        return 0

    if not args.name:
        current = get_current_project(home)
        if current:
            print(f"Current project: {current}")
        else:
            print("No current project set. Use 'tm project use <name>' to set one.")
        return 0

    if not (get_projects_dir(home) / args.name / "project.env").exists():
        raise ConfigError(f"Project '{args.name}' not found.")

    set_current_project(home, args.name)
    print(f"Now using project: {args.name}")
    return 0


def cmd_project_backup(args, home: Path) -> int:
    """Copy the live project database with SQLite's online backup."""
    project_config = _resolve(args, home)

    if args.output:
        dest = Path(args.output)
    else:
        stamp = time.strftime("%Y%m%d-%H%M%S")
        dest = project_config.dir / "backups" / f"{project_config.db_path.stem}-{stamp}.db"

    with RepositoryComposite(project_config.db_path, project_config.code) as store:
        store.db.backup(dest)

    print(f"Backed up {project_config.name} to {dest}")
    return 0
