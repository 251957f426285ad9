"""Utility helpers shared across wayfinder modules.

Purpose:
- Create runtime output folders.
- Convert paths and graph summaries to JSON-safe payload types.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

from wayfinder.graph import SpatialGraph


def ensure_directories(generated_dir: Path) -> None:
    """Create runtime output directories if they do not already exist."""
    (generated_dir / "graphs").mkdir(parents=True, exist_ok=True)


def to_serializable_path(path: Iterable[tuple[float, float]]) -> list[dict[str, float]]:
    """Convert `(x, y)` tuples to JSON-friendly dictionary objects."""
    return [{"x": float(x), "y": float(y)} for x, y in path]


def graph_summary(graph: SpatialGraph) -> dict[str, Any]:
    """Describe a graph without listing its nodes."""
    degrees = [len(node.neighbors) for node in graph.values()]
    return {
        "node_count": len(graph),
        "edge_count": graph.edge_count,
        "isolated_count": sum(1 for d in degrees if d == 0),
        "hop_length": graph.hop_length,
        "metadata": dict(graph.metadata),
    }
