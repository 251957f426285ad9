"""Integration tests for graph generation, loading and routing over HTTP."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import cv2
import numpy as np
import pytest
from fastapi.testclient import TestClient

from wayfinder.api import create_app
from wayfinder.config import Settings
from wayfinder.errors import GraphFormatError
from wayfinder.graph import load_graph, save_graph
from wayfinder.raster_builder import build_graph_from_image


def _png_bytes(image: np.ndarray) -> bytes:
    ok, buf = cv2.imencode(".png", image)
    assert ok
    return buf.tobytes()


def test_build_graph_upload_then_route(settings: Settings, corridor_image: np.ndarray) -> None:
    """POST /build-graph should persist and serve a graph usable for routing."""
    client = TestClient(create_app(settings))

    files = {"file": ("floor.png", _png_bytes(corridor_image), "image/png")}
    res = client.post("/build-graph", files=files, data={"grid_step": "10", "threshold": "200"})

    assert res.status_code == 200
    body = res.json()
    assert body["node_count"] == 10
    assert body["edge_count"] == 8
    assert body["isolated_count"] == 1
    assert body["graph_url"].startswith("/generated/graphs/graph_")

    saved = settings.graphs_dir / Path(body["graph_url"]).name
    assert load_graph(saved) == build_graph_from_image(corridor_image, grid_step=10)

    route = client.post("/route", json={"start": {"x": 2, "y": 3}, "goal": {"x": 48, "y": 33}})
    assert route.status_code == 200
    payload = route.json()
    assert payload["hops"] == 8
    assert payload["path"][0] == {"x": 0.0, "y": 0.0}
    assert payload["path"][-1] == {"x": 50.0, "y": 30.0}

    pocket = client.post("/find-path", json={"start_id": "0_0", "end_id": "20_20"})
    assert pocket.status_code == 404

    static = client.get(body["graph_url"])
    assert static.status_code == 200
    assert static.json()["schema_version"] == 1


def test_build_graph_rejects_corrupt_upload(settings: Settings) -> None:
    """Undecodable uploads fail with 400 and leave no graph served."""
    client = TestClient(create_app(settings))

    files = {"file": ("floor.png", b"not an image", "image/png")}
    res = client.post("/build-graph", files=files)

    assert res.status_code == 400
    assert "Graph construction failed" in res.json()["detail"]
    assert client.get("/health").json()["graph_loaded"] is False
    assert list(settings.graphs_dir.iterdir()) == []


def test_graph_loaded_at_startup(tmp_path: Path, settings: Settings, corridor_image: np.ndarray) -> None:
    """A configured graph file is served from the first request."""
    graph_path = Path(save_graph(tmp_path / "venue.json", build_graph_from_image(corridor_image, grid_step=10)))
    client = TestClient(create_app(replace(settings, graph_path=graph_path)))

    health = client.get("/health").json()
    assert health["graph_loaded"] is True
    assert health["node_count"] == 10

    res = client.post("/find-path", json={"start_id": "50_30", "end_id": "0_0"})
    assert res.status_code == 200
    assert res.json()["path"][0] == {"x": 50.0, "y": 30.0}


def test_missing_graph_file_stops_startup(tmp_path: Path, settings: Settings) -> None:
    """An unreadable configured graph is fatal instead of serving nothing."""
    with pytest.raises(GraphFormatError):
        create_app(replace(settings, graph_path=tmp_path / "missing.json"))
