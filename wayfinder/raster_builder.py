"""Navigation graph generation from rasterized floor-plan images.

Purpose:
- Load floor-plan images from disk or uploaded bytes.
- Sample the image on a regular grid and classify bright cells as walkable.
- Connect walkable samples to their 4-way grid neighbours.

Usage example:
    >>> image = load_floorplan("assets/venue_floor.png")
    >>> graph = build_graph_from_image(image, grid_step=15, walkable_threshold=200)
    >>> save_graph("generated/graphs/venue.json", graph)
"""

from __future__ import annotations

import logging
from pathlib import Path

import cv2
import numpy as np

from wayfinder.errors import GraphBuildError
from wayfinder.graph import Coordinate, SpatialGraph, node_id_for

logger = logging.getLogger(__name__)

DEFAULT_GRID_STEP = 15
DEFAULT_WALKABLE_THRESHOLD = 200


def _validate_params(grid_step: int, walkable_threshold: float) -> None:
    """Validate sampling parameters."""
    if isinstance(grid_step, bool) or not isinstance(grid_step, (int, np.integer)):
        raise ValueError("grid_step must be an integer")
    if grid_step <= 0:
        raise ValueError("grid_step must be > 0")
    if not 0 <= walkable_threshold <= 255:
        raise ValueError("walkable_threshold must be within [0, 255]")


def _color_channels(image: np.ndarray) -> np.ndarray:
    """Return an `(H, W, C)` view holding only colour channels (alpha dropped)."""
    if not isinstance(image, np.ndarray):
        raise ValueError("Floor-plan image must be a numpy array")
    if image.size == 0:
        raise ValueError("Floor-plan image is empty")
    if image.ndim == 2:
        return image[:, :, np.newaxis]
    if image.ndim == 3 and image.shape[2] in (3, 4):
        return image[:, :, :3]
    raise ValueError("Floor-plan image must have shape (H, W), (H, W, 3) or (H, W, 4)")


def load_floorplan(path: str | Path) -> np.ndarray:
    """Load a floor-plan image from disk as a BGR numpy array.

    Raises:
        GraphBuildError: If the path is empty or the file cannot be decoded.
    """
    if not path or not str(path).strip():
        raise GraphBuildError("Floor-plan path is required")

    image = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if image is None:
        raise GraphBuildError(f"Unable to load floor plan from path: {path}")
    return image


def decode_floorplan(raw_bytes: bytes) -> np.ndarray:
    """Decode uploaded bytes into a BGR floor-plan image."""
    if not raw_bytes:
        raise GraphBuildError("Uploaded file is empty")

    np_buf = np.frombuffer(raw_bytes, dtype=np.uint8)
    image = cv2.imdecode(np_buf, cv2.IMREAD_COLOR)
    if image is None:
        raise GraphBuildError("Unsupported or corrupted image format")
    return image


def walkable_samples(image: np.ndarray, grid_step: int, walkable_threshold: float) -> np.ndarray:
    """Classify grid samples of an image.

    Returns:
        Boolean array of shape `(ceil(H / step), ceil(W / step))`; entry `[r, c]` is
        the sample at pixel `(x=c * step, y=r * step)` and is True when every colour
        channel is strictly brighter than `walkable_threshold`.
    """
    _validate_params(grid_step, walkable_threshold)
    channels = _color_channels(image)
    sampled = channels[::grid_step, ::grid_step, :]
    return np.all(sampled > walkable_threshold, axis=2)


def build_graph_from_image(
    image: np.ndarray,
    grid_step: int = DEFAULT_GRID_STEP,
    walkable_threshold: float = DEFAULT_WALKABLE_THRESHOLD,
) -> SpatialGraph:
    """Build a 4-connected navigation graph from a floor-plan image.

    Args:
        image: Floor-plan pixels, `(H, W)`, `(H, W, 3)` or `(H, W, 4)`.
        grid_step: Sampling spacing in pixels along both axes.
        walkable_threshold: Channel value every colour channel must exceed.

    Returns:
        Graph whose node ids are `"{x}_{y}"` in pixel coordinates.

    Raises:
        ValueError: If the image or parameters are invalid.
    """
    mask = walkable_samples(image, grid_step, walkable_threshold)
    step = int(grid_step)

    positions: dict[str, Coordinate] = {}
    for r, c in np.argwhere(mask):
        x, y = int(c) * step, int(r) * step
        positions[node_id_for(x, y)] = (x, y)

    adjacency: dict[str, list[str]] = {}

    # Only right and down links; from_adjacency mirrors them.
    right = mask[:, :-1] & mask[:, 1:]
    for r, c in np.argwhere(right):
        x, y = int(c) * step, int(r) * step
        adjacency.setdefault(node_id_for(x, y), []).append(node_id_for(x + step, y))

    down = mask[:-1, :] & mask[1:, :]
    for r, c in np.argwhere(down):
        x, y = int(c) * step, int(r) * step
        adjacency.setdefault(node_id_for(x, y), []).append(node_id_for(x, y + step))

    height, width = image.shape[:2]
    graph = SpatialGraph.from_adjacency(
        positions,
        adjacency,
        metadata={
            "source": "raster",
            "grid_step": step,
            "walkable_threshold": walkable_threshold,
            "width": int(width),
            "height": int(height),
        },
    )
    logger.info(
        "Raster graph built: %d nodes, %d edges (grid_step=%d, threshold=%s, image=%dx%d)",
        len(graph),
        graph.edge_count,
        step,
        walkable_threshold,
        width,
        height,
    )
    return graph


def build_graph_from_file(
    path: str | Path,
    grid_step: int = DEFAULT_GRID_STEP,
    walkable_threshold: float = DEFAULT_WALKABLE_THRESHOLD,
) -> SpatialGraph:
    """Load a floor-plan image from disk and build its navigation graph."""
    return build_graph_from_image(load_floorplan(path), grid_step, walkable_threshold)
