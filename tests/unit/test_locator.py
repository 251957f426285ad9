"""Unit tests for wayfinder.locator."""

from __future__ import annotations

import math

import numpy as np
import pytest

from wayfinder.graph import SpatialGraph
from wayfinder.locator import NearestNodeLocator, locate_nearest_node
from wayfinder.raster_builder import build_graph_from_image


def test_far_query_returns_none() -> None:
    """Nearest node 50 units away is rejected with a tolerance of 5."""
    graph = SpatialGraph.from_adjacency({"950_1000": (950, 1000)}, {})
    assert locate_nearest_node(graph, 1000, 1000, 5) is None
    assert locate_nearest_node(graph, 1000, 1000, 51) == "950_1000"


def test_distance_bound_is_strict() -> None:
    """A node exactly at max_distance does not qualify."""
    graph = SpatialGraph.from_adjacency({"3_4": (3, 4)}, {})
    locator = NearestNodeLocator(graph)
    assert locator.locate(0, 0, 5) is None
    assert locator.locate_with_distance(0, 0, 5.0001) == ("3_4", 5.0)


def test_ties_resolve_to_lowest_id() -> None:
    """Equidistant candidates resolve deterministically."""
    graph = SpatialGraph.from_adjacency({"2_0": (2, 0), "0_0": (0, 0), "1_1": (1, 1)}, {})
    assert locate_nearest_node(graph, 1, 0, 10) == "0_0"


def test_returns_global_minimum(corridor_image: np.ndarray) -> None:
    """The located node is the closest of all nodes, not just the first in range."""
    graph = build_graph_from_image(corridor_image, grid_step=10)
    x, y = 47.0, 27.0

    found = NearestNodeLocator(graph).locate_with_distance(x, y, 100)
    assert found is not None
    node_id, distance = found
    best = min(math.hypot(node.x - x, node.y - y) for node in graph.values())

    assert node_id == "50_30"
    assert distance == pytest.approx(best)
    assert distance < 100


def test_empty_graph_and_non_positive_tolerance() -> None:
    """Nothing can be located in an empty graph or with zero tolerance."""
    assert locate_nearest_node(SpatialGraph([]), 0, 0, 10) is None

    graph = SpatialGraph.from_adjacency({"0_0": (0, 0)}, {})
    assert locate_nearest_node(graph, 0, 0, 0) is None
