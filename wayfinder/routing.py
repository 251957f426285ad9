"""POI snapping and route summaries on top of the graph engine.

A POI is associated to its nearest graph node once, when created or edited. The
cached `node_id` is only recomputed when the POI's coordinates change; a POI that
cannot be snapped keeps `node_id=None` and cannot be routed.
"""

from __future__ import annotations

import dataclasses
import math
from collections.abc import Sequence
from dataclasses import dataclass

from shapely.geometry import LineString

from wayfinder.graph import Coordinate, SpatialGraph, round_half_up
from wayfinder.locator import NearestNodeLocator
from wayfinder.pathfinding import PathResult, PathStatus, find_path

AVERAGE_WALKING_SPEED_MPS = 1.4


@dataclass(frozen=True, slots=True)
class PointOfInterest:
    """Venue location supplied by the UI layer, in graph coordinates."""

    id: str
    name: str
    x: float
    y: float
    node_id: str | None = None

    @property
    def connected(self) -> bool:
        return self.node_id is not None


def attach_nearest_node(poi: PointOfInterest, locator: NearestNodeLocator, max_distance: float) -> PointOfInterest:
    """Return a copy of `poi` with `node_id` set to its nearest node (or None)."""
    return dataclasses.replace(poi, node_id=locator.locate(poi.x, poi.y, max_distance))


def move_poi(
    poi: PointOfInterest,
    x: float,
    y: float,
    locator: NearestNodeLocator,
    max_distance: float,
) -> PointOfInterest:
    """Update POI coordinates, re-snapping only when the position actually changed."""
    if (x, y) == (poi.x, poi.y):
        return poi
    return attach_nearest_node(dataclasses.replace(poi, x=x, y=y), locator, max_distance)


def route_between(
    graph: SpatialGraph,
    origin: PointOfInterest,
    destination: PointOfInterest,
    max_expansions: int | None = None,
) -> PathResult:
    """Search a route between two distinct, snapped POIs.

    Routing a POI to itself is refused as `INVALID_ENDPOINTS`; `find_path` with
    equal node ids still yields the single-point path.
    """
    if origin.id == destination.id:
        return PathResult(
            status=PathStatus.INVALID_ENDPOINTS,
            reason=f"origin and destination must differ: {origin.id}",
        )
    unsnapped = [poi.id for poi in (origin, destination) if poi.node_id is None]
    if unsnapped:
        return PathResult(
            status=PathStatus.INVALID_ENDPOINTS,
            reason=f"POI not connected to the route network: {', '.join(unsnapped)}",
        )
    return find_path(graph, origin.node_id, destination.node_id, max_expansions=max_expansions)


@dataclass(frozen=True, slots=True)
class RouteSummary:
    """Walking distance and time for one route."""

    length_units: float
    distance_m: float
    eta_minutes: float
    distance_label: str
    eta_label: str


def path_length(path: Sequence[Coordinate]) -> float:
    """Polyline length in map units."""
    if len(path) < 2:
        return 0.0
    return float(LineString(path).length)


def format_distance_label(meters: float) -> str:
    """Human-readable distance, rounded to 5 m below one kilometre."""
    if not math.isfinite(meters) or meters <= 0:
        return "0 m"
    if meters >= 1000:
        return f"{meters / 1000:.1f} km"
    return f"{max(5, round_half_up(meters / 5) * 5)} m"


def format_walking_time_label(minutes: float) -> str:
    """Human-readable walking time."""
    if not math.isfinite(minutes) or minutes <= 0.45:
        return "< 1 min"
    rounded = max(1, round_half_up(minutes))
    if rounded >= 60:
        hours, rest = divmod(rounded, 60)
        return f"{hours}h {rest}min" if rest else f"{hours}h"
    return f"{rounded} min"


def summarize_route(
    path: Sequence[Coordinate],
    meters_per_unit: float,
    walking_speed_mps: float = AVERAGE_WALKING_SPEED_MPS,
) -> RouteSummary:
    """Compute length, metric distance and walking ETA for a path.

    Raises:
        ValueError: If the scale or walking speed is not positive.
    """
    if meters_per_unit <= 0:
        raise ValueError("meters_per_unit must be > 0")
    if walking_speed_mps <= 0:
        raise ValueError("walking_speed_mps must be > 0")

    length = path_length(path)
    distance_m = length * meters_per_unit
    eta_minutes = distance_m / (walking_speed_mps * 60)
    return RouteSummary(
        length_units=length,
        distance_m=distance_m,
        eta_minutes=eta_minutes,
        distance_label=format_distance_label(distance_m),
        eta_label=format_walking_time_label(eta_minutes),
    )
