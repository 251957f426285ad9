"""Spatial navigation graph and its JSON persistence.

Purpose:
- Hold walkable positions as immutable node records keyed by coordinate ids.
- Enforce symmetric, loop-free adjacency at construction time.
- Lay nodes out as flat numpy arrays plus a CSR neighbour index for traversal.
- Read and write the versioned JSON interchange document.

Coordinates are always `(x, y)`: x grows to the right, y grows downward, in
source-map units (image pixels for raster graphs).

Usage example:
    >>> graph = SpatialGraph.from_adjacency({"0_0": (0, 0), "1_0": (1, 0)}, {"0_0": {"1_0"}})
    >>> save_graph("generated/graphs/venue.json", graph)
    >>> load_graph("generated/graphs/venue.json")["0_0"].neighbors
    ('1_0',)
"""

from __future__ import annotations

import json
import math
import os
import tempfile
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any

import numpy as np

from wayfinder.errors import GraphFormatError, GraphIntegrityError

SCHEMA_VERSION = 1

Coordinate = tuple[float, float]


def round_half_up(value: float) -> int:
    """Round halves toward +infinity (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(float(value) + 0.5))


def node_id_for(x: float, y: float) -> str:
    """Derive the stable node id for a position by rounding to integers."""
    return f"{round_half_up(x)}_{round_half_up(y)}"


@dataclass(frozen=True, slots=True)
class Node:
    """One walkable position; neighbours are ids looked up in the owning graph."""

    id: str
    x: float
    y: float
    neighbors: tuple[str, ...] = ()

    @property
    def position(self) -> Coordinate:
        return self.x, self.y


class SpatialGraph(Mapping[str, Node]):
    """Read-only mapping from node id to `Node` with a compact traversal index.

    Raises:
        GraphIntegrityError: On self-loops, dangling or one-way neighbour references,
            or a node stored under an id other than its own.
    """

    def __init__(self, nodes: Iterable[Node], metadata: Mapping[str, Any] | None = None) -> None:
        by_id: dict[str, Node] = {}
        for node in nodes:
            if node.id in by_id:
                raise GraphIntegrityError(f"Duplicate node id: {node.id}")
            by_id[node.id] = Node(
                id=node.id,
                x=node.x,
                y=node.y,
                neighbors=tuple(sorted(set(node.neighbors))),
            )

        _check_integrity(by_id)

        self._ids: tuple[str, ...] = tuple(sorted(by_id))
        self._nodes: dict[str, Node] = {node_id: by_id[node_id] for node_id in self._ids}
        self._row: dict[str, int] = {node_id: i for i, node_id in enumerate(self._ids)}
        self._metadata = MappingProxyType(dict(metadata or {}))

        count = len(self._ids)
        self._xs = np.fromiter((self._nodes[i].x for i in self._ids), dtype=np.float64, count=count)
        self._ys = np.fromiter((self._nodes[i].y for i in self._ids), dtype=np.float64, count=count)

        offsets = np.zeros(count + 1, dtype=np.int64)
        targets: list[int] = []
        for i, node_id in enumerate(self._ids):
            targets.extend(self._row[n] for n in self._nodes[node_id].neighbors)
            offsets[i + 1] = len(targets)
        self._offsets = offsets
        self._targets = np.asarray(targets, dtype=np.int64)

        for arr in (self._xs, self._ys, self._offsets, self._targets):
            arr.setflags(write=False)

        self._edge_count = len(targets) // 2
        self._hop_length = _longest_hop(self._xs, self._ys, offsets, self._targets)

    @classmethod
    def from_adjacency(
        cls,
        positions: Mapping[str, Coordinate],
        adjacency: Mapping[str, Iterable[str]],
        metadata: Mapping[str, Any] | None = None,
    ) -> "SpatialGraph":
        """Build a graph from `id -> (x, y)` and `id -> neighbour ids` mappings.

        Adjacency may be given in one direction only; the reverse edges are added.
        """
        neighbors: dict[str, set[str]] = {node_id: set() for node_id in positions}
        for node_id, linked in adjacency.items():
            for other in linked:
                if node_id not in neighbors or other not in neighbors:
                    raise GraphIntegrityError(f"Edge references unknown node: {node_id} -> {other}")
                neighbors[node_id].add(other)
                neighbors[other].add(node_id)

        nodes = (
            Node(id=node_id, x=pos[0], y=pos[1], neighbors=tuple(neighbors[node_id]))
            for node_id, pos in positions.items()
        )
        return cls(nodes, metadata=metadata)

    def __getitem__(self, node_id: str) -> Node:
        return self._nodes[node_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __repr__(self) -> str:
        return f"SpatialGraph(nodes={len(self)}, edges={self._edge_count})"

    @property
    def metadata(self) -> Mapping[str, Any]:
        return self._metadata

    @property
    def edge_count(self) -> int:
        return self._edge_count

    @property
    def hop_length(self) -> float:
        """Longest Manhattan length covered by a single edge (1.0 without edges)."""
        return self._hop_length

    @property
    def ids(self) -> tuple[str, ...]:
        return self._ids

    @property
    def xs(self) -> np.ndarray:
        return self._xs

    @property
    def ys(self) -> np.ndarray:
        return self._ys

    def row_of(self, node_id: str) -> int:
        """Row of a node in the flat arrays. Raises KeyError for unknown ids."""
        return self._row[node_id]

    def neighbor_rows(self, row: int) -> np.ndarray:
        return self._targets[self._offsets[row] : self._offsets[row + 1]]

    def position(self, node_id: str) -> Coordinate:
        node = self._nodes[node_id]
        return node.x, node.y

    def edges(self) -> Iterator[tuple[str, str]]:
        """Yield every undirected edge once as `(lower_id, higher_id)`."""
        for node_id in self._ids:
            for other in self._nodes[node_id].neighbors:
                if node_id < other:
                    yield node_id, other


def _check_integrity(nodes: Mapping[str, Node]) -> None:
    for node_id, node in nodes.items():
        for other in node.neighbors:
            if other == node_id:
                raise GraphIntegrityError(f"Node {node_id} lists itself as a neighbor")
            if other not in nodes:
                raise GraphIntegrityError(f"Node {node_id} references unknown neighbor {other}")
            if node_id not in nodes[other].neighbors:
                raise GraphIntegrityError(f"Edge {node_id} -> {other} is not symmetric")


def _longest_hop(xs: np.ndarray, ys: np.ndarray, offsets: np.ndarray, targets: np.ndarray) -> float:
    if targets.size == 0:
        return 1.0
    sources = np.repeat(np.arange(xs.size), np.diff(offsets))
    spans = np.abs(xs[sources] - xs[targets]) + np.abs(ys[sources] - ys[targets])
    longest = float(spans.max())
    return longest if longest > 0 else 1.0


def graph_to_payload(graph: SpatialGraph) -> dict[str, Any]:
    """Convert a graph to the versioned JSON document structure."""
    return {
        "schema_version": SCHEMA_VERSION,
        "metadata": dict(graph.metadata),
        "nodes": {
            node_id: {"x": node.x, "y": node.y, "neighbors": list(node.neighbors)}
            for node_id, node in graph.items()
        },
    }


def _parse_coordinate(node_id: str, record: Mapping[str, Any], key: str) -> float | int:
    value = record.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise GraphFormatError(f"Node {node_id} has invalid '{key}' coordinate")
    return value


def _parse_nodes(raw_nodes: Any) -> list[Node]:
    if not isinstance(raw_nodes, dict):
        raise GraphFormatError("Graph nodes must be a JSON object keyed by node id")

    nodes: list[Node] = []
    for node_id, record in raw_nodes.items():
        if not isinstance(record, dict):
            raise GraphFormatError(f"Node {node_id} must be an object")
        neighbors = record.get("neighbors", [])
        if not isinstance(neighbors, list) or not all(isinstance(n, str) for n in neighbors):
            raise GraphFormatError(f"Node {node_id} neighbors must be a list of ids")
        nodes.append(
            Node(
                id=str(node_id),
                x=_parse_coordinate(node_id, record, "x"),
                y=_parse_coordinate(node_id, record, "y"),
                neighbors=tuple(neighbors),
            )
        )
    return nodes


def graph_from_payload(payload: Any) -> SpatialGraph:
    """Build a graph from a parsed JSON document.

    Accepts the versioned form (`schema_version`, `metadata`, `nodes`) and the legacy
    unversioned form whose top-level keys are node ids.

    Raises:
        GraphFormatError: If the document shape or schema version is not supported.
        GraphIntegrityError: If the adjacency is not symmetric.
    """
    if not isinstance(payload, dict):
        raise GraphFormatError("Graph document must be a JSON object")

    if "schema_version" not in payload:
        return SpatialGraph(_parse_nodes(payload), metadata={"source": "legacy"})

    version = payload["schema_version"]
    if version != SCHEMA_VERSION:
        raise GraphFormatError(f"Unsupported graph schema_version: {version!r}")

    metadata = payload.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise GraphFormatError("Graph metadata must be a JSON object")

    return SpatialGraph(_parse_nodes(payload.get("nodes")), metadata=metadata)


def save_graph(output_path: str | Path, graph: SpatialGraph) -> str:
    """Write a graph as JSON, replacing the destination only once fully written.

    Returns:
        String path to the written JSON file.
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{output.name}.", suffix=".tmp", dir=output.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(graph_to_payload(graph), f, sort_keys=True, separators=(",", ":"))
        os.replace(tmp_name, output)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    return str(output)


def load_graph(path: str | Path) -> SpatialGraph:
    """Load a graph JSON file written by `save_graph` or the legacy tooling.

    Raises:
        GraphFormatError: If the file is missing or unreadable, not UTF-8 JSON, or not
            a graph document.
    """
    source = Path(path)
    try:
        with source.open("r", encoding="utf-8") as f:
            payload = json.load(f)
    except FileNotFoundError as exc:
        raise GraphFormatError(f"Graph file not found: {source}") from exc
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise GraphFormatError(f"Graph file is not valid JSON: {source}") from exc
    except OSError as exc:
        raise GraphFormatError(f"Graph file could not be read: {source}: {exc.strerror or exc}") from exc

    return graph_from_payload(payload)
