#!/usr/bin/env python3
"""tm CLI entrypoint."""

import argparse
import logging
import sys
from pathlib import Path

from taskmgr.lib.config import (
    ConfigError,
    ProjectConfig,
    get_home,
    resolve_project,
)
from taskmgr.lib.errors import InvalidArgumentError, TaskManagerError
from taskmgr.storage.composite import RepositoryComposite
from taskmgr.commands import ac as cmd_ac_module
from taskmgr.commands import adr as cmd_adr_module
from taskmgr.commands import doc as cmd_doc_module
from taskmgr.commands import iteration as cmd_iteration_module
from taskmgr.commands import project as cmd_project_module
from taskmgr.commands import roadmap as cmd_roadmap_module
from taskmgr.commands import task as cmd_task_module
from taskmgr.commands import track as cmd_track_module


def get_project_config(args, home: Path) -> ProjectConfig:
    """Load project config from --project, the current context, or the only project."""
    return resolve_project(home, getattr(args, 'project', None))


def with_store(handler):
    """Adapt a cmd_*(args, store) handler to cmd(args): open the project store, always close it."""

    def run(args):
        project_config = get_project_config(args, get_home())
        with RepositoryComposite(project_config.db_path, project_config.code) as store:
            return handler(args, store)

    return run


def with_home(handler):
    """Adapt a cmd_*(args, home) handler to cmd(args)."""

    def run(args):
        return handler(args, get_home())

    return run


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='tm', description='Roadmap, track and iteration manager')
    parser.add_argument('--project', '-p', help='Project name')
    parser.add_argument('--verbose', '-v', action='store_true', help='Log to stderr')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # tm project
    p_project = subparsers.add_parser('project', help='Manage projects')
    project_sub = p_project.add_subparsers(dest='project_cmd', required=True)

    p = project_sub.add_parser('init', help='Create a project')
    p.add_argument('name', help='Project name (letters, digits, - and _)')
    p.add_argument('--code', help='ID prefix, e.g. DW (default: derived from name)')
    p.set_defaults(func=with_home(cmd_project_module.cmd_project_init))

    p = project_sub.add_parser('show', help='Show project configuration and counts')
    p.set_defaults(func=with_home(cmd_project_module.cmd_project_show))

    p = project_sub.add_parser('list', help='List projects')
    p.set_defaults(func=with_home(cmd_project_module.cmd_project_list))

    p = project_sub.add_parser('use', help='Set/show current project')
    p.add_argument('name', nargs='?', help='Project name')
    p.add_argument('--clear', action='store_true', help='Clear current project')
    p.set_defaults(func=with_home(cmd_project_module.cmd_project_use))

    p = project_sub.add_parser('backup', help='Copy the project database')
    p.add_argument('--output', '-o', help='Destination file (default: <project>/backups/)')
    p.set_defaults(func=with_home(cmd_project_module.cmd_project_backup))

    # tm roadmap
    p_roadmap = subparsers.add_parser('roadmap', help='Manage the roadmap')
    roadmap_sub = p_roadmap.add_subparsers(dest='roadmap_cmd', required=True)

    p = roadmap_sub.add_parser('create', help='Create a roadmap')
    p.add_argument('--vision', required=True)
    p.add_argument('--success-criteria', required=True)
    p.set_defaults(func=with_store(cmd_roadmap_module.cmd_roadmap_create))

    p = roadmap_sub.add_parser('show', help='Show a roadmap and its tracks')
    p.add_argument('id', nargs='?', help='Roadmap ID (default: most recent)')
    p.set_defaults(func=with_store(cmd_roadmap_module.cmd_roadmap_show))

    p = roadmap_sub.add_parser('update', help='Update a roadmap')
    p.add_argument('id', nargs='?', help='Roadmap ID (default: most recent)')
    p.add_argument('--vision')
    p.add_argument('--success-criteria')
    p.set_defaults(func=with_store(cmd_roadmap_module.cmd_roadmap_update))

    p = roadmap_sub.add_parser('list', help='List roadmaps')
    p.set_defaults(func=with_store(cmd_roadmap_module.cmd_roadmap_list))

    # tm track
    p_track = subparsers.add_parser('track', help='Manage tracks and their dependencies')
    track_sub = p_track.add_subparsers(dest='track_cmd', required=True)

    p = track_sub.add_parser('create', help='Create a track')
    p.add_argument('title')
    p.add_argument('--roadmap', help='Roadmap ID (default: most recent)')
    p.add_argument('--description', default='')
    p.add_argument('--rank', type=int)
    p.add_argument('--depends-on', action='append', default=[], metavar='TRACK', help='Repeatable')
    p.set_defaults(func=with_store(cmd_track_module.cmd_track_create))

    p = track_sub.add_parser('show', help='Show a track')
    p.add_argument('id')
    p.set_defaults(func=with_store(cmd_track_module.cmd_track_show))

    p = track_sub.add_parser('list', help='List tracks')
    p.add_argument('--roadmap')
    p.add_argument('--status')
    p.set_defaults(func=with_store(cmd_track_module.cmd_track_list))

    p = track_sub.add_parser('update', help='Update a track')
    p.add_argument('id')
    p.add_argument('--title')
    p.add_argument('--description')
    p.add_argument('--status')
    p.add_argument('--rank', type=int)
    p.set_defaults(func=with_store(cmd_track_module.cmd_track_update))

    p = track_sub.add_parser('delete', help='Delete a track')
    p.add_argument('id')
    p.set_defaults(func=with_store(cmd_track_module.cmd_track_delete))

    p = track_sub.add_parser('depend', help='Make a track depend on another')
    p.add_argument('id')
    p.add_argument('depends_on')
    p.set_defaults(func=with_store(cmd_track_module.cmd_track_depend))

    p = track_sub.add_parser('undepend', help='Remove a dependency')
    p.add_argument('id')
    p.add_argument('depends_on')
    p.set_defaults(func=with_store(cmd_track_module.cmd_track_undepend))

    p = track_sub.add_parser('deps', help='Show dependencies and dependents')
    p.add_argument('id')
    p.add_argument('--check', action='store_true', help='Also verify no cycle is reachable')
    p.set_defaults(func=with_store(cmd_track_module.cmd_track_deps))

    # tm task
    p_task = subparsers.add_parser('task', help='Manage tasks')
    task_sub = p_task.add_subparsers(dest='task_cmd', required=True)

    p = task_sub.add_parser('create', help='Create a task')
    p.add_argument('track')
    p.add_argument('title')
    p.add_argument('--description', default='')
    p.add_argument('--rank', type=int)
    p.add_argument('--branch')
    p.set_defaults(func=with_store(cmd_task_module.cmd_task_create))

    p = task_sub.add_parser('show', help='Show a task')
    p.add_argument('id')
    p.set_defaults(func=with_store(cmd_task_module.cmd_task_show))

    p = task_sub.add_parser('list', help='List tasks')
    p.add_argument('--track')
    p.add_argument('--status')
    p.add_argument('--iteration', type=int)
    p.set_defaults(func=with_store(cmd_task_module.cmd_task_list))

    p = task_sub.add_parser('update', help='Update a task')
    p.add_argument('id')
    p.add_argument('--title')
    p.add_argument('--description')
    p.add_argument('--status')
    p.add_argument('--rank', type=int)
    p.add_argument('--branch')
    p.add_argument('--track', help='Move to another track')
    p.set_defaults(func=with_store(cmd_task_module.cmd_task_update))

    p = task_sub.add_parser('delete', help='Delete a task')
    p.add_argument('id')
    p.set_defaults(func=with_store(cmd_task_module.cmd_task_delete))

    # tm iteration
    p_iter = subparsers.add_parser('iteration', aliases=['iter'], help='Manage iterations')
    iter_sub = p_iter.add_subparsers(dest='iteration_cmd', required=True)

    p = iter_sub.add_parser('create', help='Create a planned iteration')
    p.add_argument('name')
    p.add_argument('--number', type=int, help='Iteration number (default: next)')
    p.add_argument('--goal', default='')
    p.add_argument('--deliverable', default='')
    p.add_argument('--rank', type=int)
    p.set_defaults(func=with_store(cmd_iteration_module.cmd_iteration_create))

    p = iter_sub.add_parser('show', help='Show an iteration and its tasks')
    p.add_argument('number', type=int)
    p.set_defaults(func=with_store(cmd_iteration_module.cmd_iteration_show))

    p = iter_sub.add_parser('list', help='List iterations')
    p.add_argument('--status')
    p.set_defaults(func=with_store(cmd_iteration_module.cmd_iteration_list))

    p = iter_sub.add_parser('update', help='Update name, goal, deliverable or rank')
    p.add_argument('number', type=int)
    p.add_argument('--name')
    p.add_argument('--goal')
    p.add_argument('--deliverable')
    p.add_argument('--rank', type=int)
    p.set_defaults(func=with_store(cmd_iteration_module.cmd_iteration_update))

    p = iter_sub.add_parser('delete', help='Delete an iteration')
    p.add_argument('number', type=int)
    p.set_defaults(func=with_store(cmd_iteration_module.cmd_iteration_delete))

    p = iter_sub.add_parser('start', help='planned -> current')
    p.add_argument('number', type=int)
    p.set_defaults(func=with_store(cmd_iteration_module.cmd_iteration_start))

    p = iter_sub.add_parser('complete', help='current -> complete')
    p.add_argument('number', type=int)
    p.set_defaults(func=with_store(cmd_iteration_module.cmd_iteration_complete))

    p = iter_sub.add_parser('current', help='Show the current iteration')
    p.set_defaults(func=with_store(cmd_iteration_module.cmd_iteration_current))

    p = iter_sub.add_parser('add-task', help='Add tasks to an iteration')
    p.add_argument('number', type=int)
    p.add_argument('task_ids', nargs='+')
    p.set_defaults(func=with_store(cmd_iteration_module.cmd_iteration_add_task))

    p = iter_sub.add_parser('remove-task', help='Remove tasks from an iteration')
    p.add_argument('number', type=int)
    p.add_argument('task_ids', nargs='+')
    p.set_defaults(func=with_store(cmd_iteration_module.cmd_iteration_remove_task))

    # tm ac
    p_ac = subparsers.add_parser('ac', help='Manage acceptance criteria')
    ac_sub = p_ac.add_subparsers(dest='ac_cmd', required=True)

    p = ac_sub.add_parser('add', help='Add an acceptance criterion to a task')
    p.add_argument('task')
    p.add_argument('description')
    p.add_argument('--type', dest='verification_type', default='manual', choices=['manual', 'automated'])
    p.add_argument('--instructions', default='', help='Testing instructions')
    p.set_defaults(func=with_store(cmd_ac_module.cmd_ac_add))

    p = ac_sub.add_parser('show', help='Show an acceptance criterion')
    p.add_argument('id')
    p.set_defaults(func=with_store(cmd_ac_module.cmd_ac_show))

    p = ac_sub.add_parser('list', help='List acceptance criteria')
    p.add_argument('--task')
    p.add_argument('--track')
    p.add_argument('--iteration', type=int)
    p.set_defaults(func=with_store(cmd_ac_module.cmd_ac_list))

    p = ac_sub.add_parser('update', help='Update an acceptance criterion')
    p.add_argument('id')
    p.add_argument('--description')
    p.add_argument('--status')
    p.add_argument('--notes')
    p.add_argument('--instructions')
    p.set_defaults(func=with_store(cmd_ac_module.cmd_ac_update))

    p = ac_sub.add_parser('delete', help='Delete an acceptance criterion')
    p.add_argument('id')
    p.set_defaults(func=with_store(cmd_ac_module.cmd_ac_delete))

    # tm adr
    p_adr = subparsers.add_parser('adr', help='Manage architecture decision records')
    adr_sub = p_adr.add_subparsers(dest='adr_cmd', required=True)

    p = adr_sub.add_parser('create', help='Record a decision on a track')
    p.add_argument('track')
    p.add_argument('title')
    p.add_argument('--context', required=True)
    p.add_argument('--decision', required=True)
    p.add_argument('--consequences', required=True)
    p.add_argument('--alternatives', default='')
    p.set_defaults(func=with_store(cmd_adr_module.cmd_adr_create))

    p = adr_sub.add_parser('show', help='Show an ADR')
    p.add_argument('id')
    p.set_defaults(func=with_store(cmd_adr_module.cmd_adr_show))

    p = adr_sub.add_parser('list', help='List ADRs')
    p.add_argument('--track')
    p.add_argument('--status')
    p.set_defaults(func=with_store(cmd_adr_module.cmd_adr_list))

    p = adr_sub.add_parser('accept', help='Mark an ADR accepted')
    p.add_argument('id')
    p.set_defaults(func=with_store(cmd_adr_module.cmd_adr_accept))

    p = adr_sub.add_parser('supersede', help='Mark an ADR superseded by another')
    p.add_argument('id')
    p.add_argument('--by', required=True, help='Superseding ADR ID')
    p.set_defaults(func=with_store(cmd_adr_module.cmd_adr_supersede))

    p = adr_sub.add_parser('deprecate', help='Mark an ADR deprecated')
    p.add_argument('id')
    p.set_defaults(func=with_store(cmd_adr_module.cmd_adr_deprecate))

    p = adr_sub.add_parser('delete', help='Delete an ADR')
    p.add_argument('id')
    p.set_defaults(func=with_store(cmd_adr_module.cmd_adr_delete))

    # tm doc
    p_doc = subparsers.add_parser('doc', help='Manage documents')
    doc_sub = p_doc.add_subparsers(dest='doc_cmd', required=True)

    p = doc_sub.add_parser('create', help='Create a document')
    p.add_argument('title')
    p.add_argument('--type', dest='doc_type', default='other', choices=['adr', 'plan', 'retrospective', 'other'])
    p.add_argument('--content', default='')
    p.add_argument('--from-file', help='Read content from a file')
    p.add_argument('--track')
    p.add_argument('--iteration', type=int)
    p.set_defaults(func=with_store(cmd_doc_module.cmd_doc_create))

    p = doc_sub.add_parser('show', help='Show a document')
    p.add_argument('id')
    p.set_defaults(func=with_store(cmd_doc_module.cmd_doc_show))

    p = doc_sub.add_parser('list', help='List documents')
    p.add_argument('--track')
    p.add_argument('--iteration', type=int)
    p.add_argument('--type', dest='doc_type')
    p.set_defaults(func=with_store(cmd_doc_module.cmd_doc_list))

    p = doc_sub.add_parser('update', help='Update a document')
    p.add_argument('id')
    p.add_argument('--title')
    p.add_argument('--content')
    p.add_argument('--from-file')
    p.add_argument('--status', choices=['draft', 'published', 'archived'])
    p.set_defaults(func=with_store(cmd_doc_module.cmd_doc_update))

    p = doc_sub.add_parser('attach', help='Attach to a track or an iteration')
    p.add_argument('id')
    target = p.add_mutually_exclusive_group(required=True)
    target.add_argument('--track')
    target.add_argument('--iteration', type=int)
    p.set_defaults(func=with_store(cmd_doc_module.cmd_doc_attach))

    p = doc_sub.add_parser('detach', help='Detach from its track or iteration')
    p.add_argument('id')
    p.set_defaults(func=with_store(cmd_doc_module.cmd_doc_detach))

    p = doc_sub.add_parser('delete', help='Delete a document')
    p.add_argument('id')
    p.set_defaults(func=with_store(cmd_doc_module.cmd_doc_delete))

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        return args.func(args)
    except ConfigError as e:
        print(f"ERROR: {e}")
        return 2
    except TaskManagerError as e:
        print(f"ERROR: {e}")
        return 2 if isinstance(e, InvalidArgumentError) else 1


if __name__ == '__main__':
    sys.exit(main())
