"""Snap arbitrary map coordinates to the nearest navigation graph node."""

from __future__ import annotations

import numpy as np

from wayfinder.graph import SpatialGraph


class NearestNodeLocator:
    """Nearest-node lookup over one immutable graph.

    Distances are Euclidean in map units. A node only qualifies when its distance is
    strictly below `max_distance`; exact ties resolve to the lowest node id.
    """

    def __init__(self, graph: SpatialGraph) -> None:
        self.graph = graph

    def locate_with_distance(self, x: float, y: float, max_distance: float) -> tuple[str, float] | None:
        """Return `(node_id, distance)` for the closest node, or None if none is close enough."""
        graph = self.graph
        if len(graph) == 0 or max_distance <= 0:
            return None

        dist = np.hypot(graph.xs - float(x), graph.ys - float(y))
        best = float(dist.min())
        if not best < max_distance:
            return None

        # ids are sorted, so the first tied row holds the lowest id.
        row = int(np.flatnonzero(dist == best)[0])
        return graph.ids[row], best

    def locate(self, x: float, y: float, max_distance: float) -> str | None:
        """Return the id of the closest node within `max_distance`, or None."""
        found = self.locate_with_distance(x, y, max_distance)
        return found[0] if found else None


def locate_nearest_node(graph: SpatialGraph, x: float, y: float, max_distance: float) -> str | None:
    """Functional form of `NearestNodeLocator.locate`."""
    return NearestNodeLocator(graph).locate(x, y, max_distance)
