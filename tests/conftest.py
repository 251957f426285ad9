"""Pytest global fixtures and test isolation hooks."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from wayfinder.api import STATE
from wayfinder.config import Settings
from wayfinder.graph import SpatialGraph


@pytest.fixture(autouse=True)
def reset_serving_state() -> None:
    """Reset the in-memory served graph before each test."""
    STATE.graph = None
    STATE.locator = None
    STATE.graph_url = None


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Settings writing generated artifacts into a temporary directory."""
    return Settings(generated_dir=tmp_path / "generated")


@pytest.fixture()
def square_graph() -> SpatialGraph:
    """Four nodes on a step-2 square, connected as a cycle."""
    return SpatialGraph.from_adjacency(
        {"0_0": (0, 0), "0_2": (0, 2), "2_0": (2, 0), "2_2": (2, 2)},
        {"0_0": ["0_2", "2_0"], "2_2": ["0_2", "2_0"]},
    )


@pytest.fixture()
def corridor_image() -> np.ndarray:
    """Black 60x40 BGR floor plan with a white L-shaped corridor and a white pocket.

    Corridor: row band y in [0, 10) for x in [0, 60), then column band x in [50, 60)
    down to y = 40. Pocket: isolated white square at x, y in [20, 30) x [20, 30).
    """
    image = np.zeros((40, 60, 3), dtype=np.uint8)
    image[0:10, 0:60] = 255
    image[0:40, 50:60] = 255
    image[20:30, 20:30] = 255
    return image

