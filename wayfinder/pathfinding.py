"""A* pathfinding over navigation graphs.

Purpose:
- Compute minimum-hop walkable routes between two graph nodes.
- Report invalid endpoints, unreachable goals and aborted searches as distinct
  outcomes instead of exceptions.

Every edge costs one hop. The heuristic is Manhattan distance divided by the
graph's longest single-hop span, which keeps it admissible and consistent for
any edge geometry, so routes are as short as a breadth-first search would find.

Usage example:
    >>> from wayfinder.pathfinding import find_path
    >>> result = find_path(graph, "0_0", "30_45")
    >>> result.status, result.path[0], result.path[-1]
    (<PathStatus.FOUND: 'found'>, (0, 0), (30, 45))
"""

from __future__ import annotations

import heapq
import logging
from dataclasses import dataclass, field
from enum import Enum

from wayfinder.graph import Coordinate, SpatialGraph

logger = logging.getLogger(__name__)


class PathStatus(str, Enum):
    """Outcome of a path search."""

    FOUND = "found"
    NO_PATH = "no_path"
    INVALID_ENDPOINTS = "invalid_endpoints"
    ABORTED = "aborted"


@dataclass(slots=True)
class PathResult:
    """Structured path search result; `path` runs from start to end inclusive."""

    status: PathStatus
    path: list[Coordinate] = field(default_factory=list)
    node_ids: list[str] = field(default_factory=list)
    expansions: int = 0
    reason: str | None = None

    @property
    def found(self) -> bool:
        return self.status is PathStatus.FOUND

    @property
    def hops(self) -> int:
        return max(0, len(self.node_ids) - 1)


def _heuristic(graph: SpatialGraph, row: int, goal_row: int) -> float:
    """Manhattan distance in hops between two node rows."""
    dx = abs(graph.xs[row] - graph.xs[goal_row])
    dy = abs(graph.ys[row] - graph.ys[goal_row])
    return float(dx + dy) / graph.hop_length


def _reconstruct(came_from: dict[int, int], current: int) -> list[int]:
    rows = [current]
    while current in came_from:
        current = came_from[current]
        rows.append(current)
    rows.reverse()
    return rows


def find_path(
    graph: SpatialGraph,
    start_id: str,
    end_id: str,
    max_expansions: int | None = None,
) -> PathResult:
    """Compute the shortest hop path between two nodes via A*.

    Args:
        graph: Navigation graph to search.
        start_id: Id of the start node.
        end_id: Id of the goal node.
        max_expansions: Optional cap on expanded nodes; exceeding it aborts the search.

    Returns:
        `PathResult` with status FOUND (path of `(x, y)` pairs, a single point when
        `start_id == end_id`), NO_PATH, INVALID_ENDPOINTS or ABORTED.

    Raises:
        ValueError: If `max_expansions` is given and not positive.
    """
    if max_expansions is not None and max_expansions < 1:
        raise ValueError("max_expansions must be >= 1")

    missing: list[str] = []
    if start_id not in graph:
        missing.append(f"unknown start node '{start_id}'")
    if end_id not in graph:
        missing.append(f"unknown end node '{end_id}'")
    if missing:
        reason = ", ".join(missing)
        logger.warning("Path search rejected: %s", reason)
        return PathResult(status=PathStatus.INVALID_ENDPOINTS, reason=reason)

    start = graph.row_of(start_id)
    goal = graph.row_of(end_id)
    ids = graph.ids

    open_heap: list[tuple[float, str, int]] = []
    heapq.heappush(open_heap, (_heuristic(graph, start, goal), start_id, start))

    came_from: dict[int, int] = {}
    g_score: dict[int, int] = {start: 0}
    closed: set[int] = set()
    expansions = 0

    while open_heap:
        _, _, current = heapq.heappop(open_heap)

        if current in closed:
            continue

        if current == goal:
            rows = _reconstruct(came_from, current)
            node_ids = [ids[r] for r in rows]
            logger.debug("Path %s -> %s found: %d hops, %d expansions", start_id, end_id, len(rows) - 1, expansions)
            return PathResult(
                status=PathStatus.FOUND,
                path=[graph.position(node_id) for node_id in node_ids],
                node_ids=node_ids,
                expansions=expansions,
            )

        if max_expansions is not None and expansions >= max_expansions:
            logger.warning("Path search %s -> %s aborted after %d expansions", start_id, end_id, expansions)
            return PathResult(
                status=PathStatus.ABORTED,
                expansions=expansions,
                reason=f"search exceeded {max_expansions} expansions",
            )

        closed.add(current)
        expansions += 1

        tentative_g = g_score[current] + 1
        for neighbor in graph.neighbor_rows(current).tolist():
            if neighbor in closed:
                continue

            if tentative_g < g_score.get(neighbor, float("inf")):
                came_from[neighbor] = current
                g_score[neighbor] = tentative_g
                f = tentative_g + _heuristic(graph, neighbor, goal)
                heapq.heappush(open_heap, (f, ids[neighbor], neighbor))

    logger.debug("No path %s -> %s after %d expansions", start_id, end_id, expansions)
    return PathResult(status=PathStatus.NO_PATH, expansions=expansions, reason="endpoints are not connected")
