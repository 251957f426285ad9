"""FastAPI routes for venue graph lookup, routing and graph generation.

Endpoints:
- `/health`, `/graph`: service and loaded-graph metadata
- `/nearest-node`: snap a map coordinate to the navigation graph
- `/find-path`: A* route between two node ids
- `/route`: snap two coordinates, then route between them
- `/build-graph`: build and serve a graph from an uploaded floor-plan image
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

from wayfinder.config import Settings, load_settings
from wayfinder.errors import GraphBuildError
from wayfinder.graph import SpatialGraph, load_graph, save_graph
from wayfinder.locator import NearestNodeLocator
from wayfinder.pathfinding import PathResult, PathStatus, find_path
from wayfinder.raster_builder import build_graph_from_image, decode_floorplan
from wayfinder.routing import summarize_route
from wayfinder.utils import ensure_directories, graph_summary, to_serializable_path

logger = logging.getLogger(__name__)


@dataclass
class ServingState:
    """Graph currently served; replaced as a whole, never mutated."""

    graph: SpatialGraph | None = None
    locator: NearestNodeLocator | None = None
    graph_url: str | None = None

    def swap(self, graph: SpatialGraph, graph_url: str | None = None) -> None:
        self.locator = NearestNodeLocator(graph)
        self.graph = graph
        self.graph_url = graph_url


STATE = ServingState()


class MapPoint(BaseModel):
    """Map coordinate in graph units."""

    x: float
    y: float


class NearestNodeRequest(MapPoint):
    """Request payload for nearest-node snapping."""

    max_distance: float | None = Field(default=None, gt=0)


class NearestNodeResponse(BaseModel):
    node_id: str
    x: float
    y: float
    distance: float


class PathRequest(BaseModel):
    """Request payload for node-to-node A* path computation."""

    start_id: str
    end_id: str


class RouteRequest(BaseModel):
    """Request payload for coordinate-to-coordinate routing."""

    start: MapPoint
    goal: MapPoint
    max_distance: float | None = Field(default=None, gt=0)


class RouteSummaryPayload(BaseModel):
    length_units: float
    distance_m: float
    eta_minutes: float
    distance_label: str
    eta_label: str


class PathResponse(BaseModel):
    """Response payload for routing requests."""

    start_id: str
    end_id: str
    path: list[dict[str, float]]
    node_ids: list[str]
    hops: int
    summary: RouteSummaryPayload


def _graph_or_400() -> tuple[SpatialGraph, NearestNodeLocator]:
    """Get the served graph or raise 400."""
    if STATE.graph is None or STATE.locator is None:
        raise HTTPException(status_code=400, detail="No navigation graph loaded yet")
    return STATE.graph, STATE.locator


def _path_response(result: PathResult, start_id: str, end_id: str, settings: Settings) -> PathResponse:
    """Map a search result to a response, raising for non-route outcomes."""
    if result.status is PathStatus.INVALID_ENDPOINTS:
        raise HTTPException(status_code=400, detail=f"Invalid path query: {result.reason}")
    if result.status is PathStatus.NO_PATH:
        raise HTTPException(status_code=404, detail="No walkable route found")
    if result.status is PathStatus.ABORTED:
        raise HTTPException(status_code=503, detail=f"Path search aborted: {result.reason}")

    summary = summarize_route(result.path, settings.meters_per_unit, settings.walking_speed_mps)
    return PathResponse(
        start_id=start_id,
        end_id=end_id,
        path=to_serializable_path(result.path),
        node_ids=result.node_ids,
        hops=result.hops,
        summary=RouteSummaryPayload(
            length_units=summary.length_units,
            distance_m=summary.distance_m,
            eta_minutes=summary.eta_minutes,
            distance_label=summary.distance_label,
            eta_label=summary.eta_label,
        ),
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Loads `settings.graph_path` once if set and no graph is served yet; a graph file
    that cannot be loaded stops startup.
    """
    settings = settings or load_settings()
    ensure_directories(settings.generated_dir)

    if settings.graph_path is not None and STATE.graph is None:
        graph = load_graph(settings.graph_path)
        STATE.swap(graph)
        logger.info("Loaded graph %s: %d nodes, %d edges", settings.graph_path, len(graph), graph.edge_count)

    app = FastAPI(title="Wayfinder API", version="1.0.0")

    allow_credentials = settings.cors_origins != ("*",)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.mount("/generated", StaticFiles(directory=str(settings.generated_dir)), name="generated")

    @app.get("/health")
    def health() -> dict[str, Any]:
        """Health endpoint with served-graph status."""
        return {
            "status": "ok",
            "version": app.version,
            "graph_loaded": STATE.graph is not None,
            "node_count": len(STATE.graph) if STATE.graph is not None else 0,
        }

    @app.get("/graph")
    async def get_graph() -> dict[str, Any]:
        """Return metadata of the served graph."""
        graph, _ = _graph_or_400()
        return {**graph_summary(graph), "graph_url": STATE.graph_url}

    @app.post("/nearest-node", response_model=NearestNodeResponse)
    async def nearest_node(payload: NearestNodeRequest) -> NearestNodeResponse:
        """Snap a coordinate to the closest node within tolerance."""
        graph, locator = _graph_or_400()
        max_distance = payload.max_distance or settings.snap_distance

        found = locator.locate_with_distance(payload.x, payload.y, max_distance)
        if found is None:
            raise HTTPException(status_code=404, detail="No walkable node within tolerance")

        node_id, distance = found
        x, y = graph.position(node_id)
        return NearestNodeResponse(node_id=node_id, x=x, y=y, distance=distance)

    @app.post("/find-path", response_model=PathResponse)
    async def find_path_route(payload: PathRequest) -> PathResponse:
        """Compute an A* route between two node ids."""
        graph, _ = _graph_or_400()
        result = find_path(graph, payload.start_id, payload.end_id, max_expansions=settings.max_expansions)
        return _path_response(result, payload.start_id, payload.end_id, settings)

    @app.post("/route", response_model=PathResponse)
    async def route(payload: RouteRequest) -> PathResponse:
        """Snap start and goal coordinates, then compute the route between them."""
        graph, locator = _graph_or_400()
        max_distance = payload.max_distance or settings.snap_distance

        start_id = locator.locate(payload.start.x, payload.start.y, max_distance)
        if start_id is None:
            raise HTTPException(status_code=400, detail="Invalid route query: start is too far from any walkable node")
        goal_id = locator.locate(payload.goal.x, payload.goal.y, max_distance)
        if goal_id is None:
            raise HTTPException(status_code=400, detail="Invalid route query: goal is too far from any walkable node")

        result = find_path(graph, start_id, goal_id, max_expansions=settings.max_expansions)
        return _path_response(result, start_id, goal_id, settings)

    @app.post("/build-graph")
    async def build_graph(
        file: UploadFile = File(...),
        grid_step: int = Form(default=settings.grid_step, gt=0),
        threshold: int = Form(default=settings.walkable_threshold, ge=0, le=255),
    ) -> dict[str, Any]:
        """Build a graph from an uploaded floor plan and serve it."""
        if not file.filename:
            raise HTTPException(status_code=400, detail="No file name provided")

        try:
            image = decode_floorplan(await file.read())
            graph = build_graph_from_image(image, grid_step=grid_step, walkable_threshold=threshold)
        except (GraphBuildError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=f"Graph construction failed: {exc}") from exc

        ts = int(time.time() * 1000)
        graph_path = settings.graphs_dir / f"graph_{ts}.json"
        save_graph(graph_path, graph)
        graph_url = f"/generated/graphs/{Path(graph_path).name}"
        STATE.swap(graph, graph_url)

        return {
            "message": "Graph built successfully",
            **graph_summary(graph),
            "graph_url": graph_url,
        }

    return app
