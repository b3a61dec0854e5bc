"""
Cycle detection for the track dependency graph.

The graph is an adjacency list keyed by track ID; edges are fetched lazily
through an edge_lookup callable so the same validator runs against SQLite or
a plain dict in tests:

    validate_no_cycles("TM-track-1", lambda tid: graph.get(tid, []))

A node counts as a cycle only when it is reached again while it is still on
the active DFS path. Nodes reached through two different paths (diamonds)
are explored once and are not cycles.
"""

import logging
from typing import Callable, Iterable

from taskmgr.lib.errors import CycleDetectedError

logger = logging.getLogger(__name__)

EdgeLookup = Callable[[str], Iterable[str]]


def validate_no_cycles(start_track_id: str, edge_lookup: EdgeLookup) -> None:
    """Raise CycleDetectedError if a cycle is reachable from start_track_id.

    Args:
        start_track_id: Track to start the traversal from
        edge_lookup: Returns the track IDs a given track depends on

    Raises:
        CycleDetectedError: The first cycle found, with its path
    """
    on_path: set[str] = set()
    explored: set[str] = set()
    path: list[str] = [start_track_id]
    stack = [(start_track_id, iter(edge_lookup(start_track_id)))]
    on_path.add(start_track_id)

    while stack:
        node, deps = stack[-1]
        dep = next(deps, None)

        if dep is None:
            # All dependencies of node explored
            stack.pop()
            path.pop()
            on_path.discard(node)
            explored.add(node)
            continue

        if dep in on_path:
            cycle = path[path.index(dep):] + [dep]
            logger.warning(f"[DEPS] cycle from {start_track_id}: {' -> '.join(cycle)}")
            raise CycleDetectedError(start_track_id, cycle)

        if dep in explored:
            continue

        on_path.add(dep)
        path.append(dep)
        stack.append((dep, iter(edge_lookup(dep))))

    logger.debug(f"[DEPS] {start_track_id}: no cycles ({len(explored)} tracks explored)")


def with_edge(edge_lookup: EdgeLookup, track_id: str, depends_on_id: str) -> EdgeLookup:
    """Wrap edge_lookup so it also reports the not-yet-stored edge track_id -> depends_on_id."""

    def lookup(tid: str) -> list[str]:
        deps = list(edge_lookup(tid))
        if tid == track_id and depends_on_id not in deps:
            deps.append(depends_on_id)
        return deps

    return lookup
