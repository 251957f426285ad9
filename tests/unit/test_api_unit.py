"""Unit-level API tests for direct endpoint behavior and error handling."""

from __future__ import annotations

from dataclasses import replace

from fastapi.testclient import TestClient

from wayfinder.api import STATE, create_app
from wayfinder.config import Settings
from wayfinder.graph import SpatialGraph
from wayfinder.vector_builder import build_graph_from_polylines


def _line_graph() -> SpatialGraph:
    """Twenty nodes on a horizontal corridor plus one detached kiosk."""
    return build_graph_from_polylines([[(x * 10.0, 0.0) for x in range(20)], [(500.0, 500.0), (510.0, 500.0)]])


def test_health_endpoint(settings: Settings) -> None:
    """Health endpoint should report API availability."""
    client = TestClient(create_app(settings))
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"
    assert res.json()["graph_loaded"] is False


def test_endpoints_without_graph_return_400(settings: Settings) -> None:
    """Lookups and routing should reject requests before a graph is loaded."""
    client = TestClient(create_app(settings))

    res = client.post("/find-path", json={"start_id": "0_0", "end_id": "10_0"})
    assert res.status_code == 400
    assert "No navigation graph" in res.json()["detail"]

    assert client.post("/nearest-node", json={"x": 0, "y": 0}).status_code == 400
    assert client.get("/graph").status_code == 400


def test_find_path_returns_route_and_summary(settings: Settings) -> None:
    STATE.swap(_line_graph())
    client = TestClient(create_app(settings))

    res = client.post("/find-path", json={"start_id": "0_0", "end_id": "30_0"})

    assert res.status_code == 200
    body = res.json()
    assert body["hops"] == 3
    assert body["node_ids"] == ["0_0", "10_0", "20_0", "30_0"]
    assert body["path"][0] == {"x": 0.0, "y": 0.0}
    assert body["path"][-1] == {"x": 30.0, "y": 0.0}
    assert body["summary"]["length_units"] == 30.0


def test_find_path_error_statuses(settings: Settings) -> None:
    """Invalid endpoints, no path and aborted searches map to distinct statuses."""
    STATE.swap(_line_graph())
    client = TestClient(create_app(settings))

    invalid = client.post("/find-path", json={"start_id": "0_0", "end_id": "nowhere"})
    assert invalid.status_code == 400
    assert invalid.json()["detail"].startswith("Invalid path query")

    no_path = client.post("/find-path", json={"start_id": "0_0", "end_id": "500_500"})
    assert no_path.status_code == 404
    assert no_path.json()["detail"] == "No walkable route found"

    capped = TestClient(create_app(replace(settings, max_expansions=2)))
    aborted = capped.post("/find-path", json={"start_id": "0_0", "end_id": "190_0"})
    assert aborted.status_code == 503


def test_nearest_node_snaps_within_tolerance(settings: Settings) -> None:
    STATE.swap(_line_graph())
    client = TestClient(create_app(settings))

    res = client.post("/nearest-node", json={"x": 41, "y": 3, "max_distance": 10})
    assert res.status_code == 200
    assert res.json()["node_id"] == "40_0"
    assert res.json()["distance"] > 0

    far = client.post("/nearest-node", json={"x": 1000, "y": 1000, "max_distance": 5})
    assert far.status_code == 404

    bad = client.post("/nearest-node", json={"x": 0, "y": 0, "max_distance": -1})
    assert bad.status_code == 422


def test_route_snaps_coordinates_then_searches(settings: Settings) -> None:
    STATE.swap(_line_graph())
    client = TestClient(create_app(settings))

    res = client.post("/route", json={"start": {"x": 1, "y": 2}, "goal": {"x": 52, "y": -3}})
    assert res.status_code == 200
    assert res.json()["start_id"] == "0_0"
    assert res.json()["end_id"] == "50_0"
    assert res.json()["hops"] == 5

    off_map = client.post("/route", json={"start": {"x": 1, "y": 2}, "goal": {"x": 9000, "y": 9000}})
    assert off_map.status_code == 400
    assert "goal is too far" in off_map.json()["detail"]


def test_graph_metadata_endpoint(settings: Settings) -> None:
    STATE.swap(_line_graph())
    client = TestClient(create_app(settings))

    body = client.get("/graph").json()
    assert body["node_count"] == 22
    assert body["edge_count"] == 20
    assert body["metadata"]["source"] == "vector"
