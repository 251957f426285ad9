"""Navigation graph generation from hand-authored corridor polylines.

Input is a GeoJSON FeatureCollection whose positions are `[x, y]` in source-map
units. Features are validated at the boundary; only `LineString` and
`MultiLineString` geometries contribute corridors, every other geometry kind is
accepted and skipped.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from pathlib import Path
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, ValidationError

from wayfinder.errors import FeatureValidationError, GraphBuildError
from wayfinder.graph import Coordinate, SpatialGraph, node_id_for

logger = logging.getLogger(__name__)

Ordinate = Annotated[float, Field(allow_inf_nan=False)]
Position = Annotated[list[Ordinate], Field(min_length=2)]
LineCoordinates = Annotated[list[Position], Field(min_length=2)]


class PointGeometry(BaseModel):
    type: Literal["Point"]
    coordinates: Position


class MultiPointGeometry(BaseModel):
    type: Literal["MultiPoint"]
    coordinates: list[Position]


class LineStringGeometry(BaseModel):
    type: Literal["LineString"]
    coordinates: LineCoordinates


class MultiLineStringGeometry(BaseModel):
    type: Literal["MultiLineString"]
    coordinates: list[LineCoordinates]


class PolygonGeometry(BaseModel):
    type: Literal["Polygon"]
    coordinates: list[list[Position]]


class MultiPolygonGeometry(BaseModel):
    type: Literal["MultiPolygon"]
    coordinates: list[list[list[Position]]]


class GeometryCollectionGeometry(BaseModel):
    type: Literal["GeometryCollection"]
    geometries: list[Any]


Geometry = Annotated[
    Union[
        PointGeometry,
        MultiPointGeometry,
        LineStringGeometry,
        MultiLineStringGeometry,
        PolygonGeometry,
        MultiPolygonGeometry,
        GeometryCollectionGeometry,
    ],
    Field(discriminator="type"),
]


class Feature(BaseModel):
    """GeoJSON feature; `geometry` may be null."""

    type: Literal["Feature"]
    geometry: Geometry | None = None
    properties: dict[str, Any] | None = None


class FeatureCollection(BaseModel):
    """GeoJSON feature collection of corridor drawings."""

    type: Literal["FeatureCollection"]
    features: list[Feature]


def parse_feature_collection(data: Mapping[str, Any] | str | bytes) -> FeatureCollection:
    """Validate raw GeoJSON (parsed dict or JSON text).

    Raises:
        FeatureValidationError: If the document is not a valid FeatureCollection.
    """
    try:
        if isinstance(data, (str, bytes)):
            return FeatureCollection.model_validate_json(data)
        return FeatureCollection.model_validate(data)
    except ValidationError as exc:
        raise FeatureValidationError(
            f"Invalid GeoJSON feature collection ({exc.error_count()} error(s)): {exc.errors()[0]['msg']}"
        ) from exc


def load_feature_collection(path: str | Path) -> FeatureCollection:
    """Read and validate a GeoJSON file.

    Raises:
        GraphBuildError: If the file cannot be read.
        FeatureValidationError: If its content is not a valid FeatureCollection.
    """
    try:
        raw = Path(path).read_bytes()
    except OSError as exc:
        raise GraphBuildError(f"Unable to read features from path: {path}") from exc
    return parse_feature_collection(raw)


def iter_polylines(collection: FeatureCollection) -> Iterator[list[Coordinate]]:
    """Yield each corridor polyline as a list of `(x, y)` pairs."""
    for feature in collection.features:
        geometry = feature.geometry
        if isinstance(geometry, LineStringGeometry):
            yield [(p[0], p[1]) for p in geometry.coordinates]
        elif isinstance(geometry, MultiLineStringGeometry):
            for part in geometry.coordinates:
                yield [(p[0], p[1]) for p in part]


def build_graph_from_polylines(
    polylines: Iterable[Sequence[Coordinate]],
    metadata: Mapping[str, Any] | None = None,
) -> SpatialGraph:
    """Connect consecutive vertices of each polyline into an undirected graph.

    Vertices from different polylines that round to the same integer position share
    one node; the first vertex seen for a node fixes its stored coordinates.
    """
    positions: dict[str, Coordinate] = {}
    adjacency: dict[str, set[str]] = {}
    polyline_count = 0

    for polyline in polylines:
        polyline_count += 1
        for (x1, y1), (x2, y2) in zip(polyline, polyline[1:]):
            id_a = node_id_for(x1, y1)
            id_b = node_id_for(x2, y2)
            positions.setdefault(id_a, (x1, y1))
            positions.setdefault(id_b, (x2, y2))
            if id_a != id_b:
                adjacency.setdefault(id_a, set()).add(id_b)

    graph = SpatialGraph.from_adjacency(
        positions,
        adjacency,
        metadata={"source": "vector", **(metadata or {})},
    )
    logger.info(
        "Vector graph built: %d nodes, %d edges from %d polylines",
        len(graph),
        graph.edge_count,
        polyline_count,
    )
    return graph


def build_graph_from_features(features: FeatureCollection | Mapping[str, Any] | str | bytes) -> SpatialGraph:
    """Build a navigation graph from a GeoJSON FeatureCollection.

    Raises:
        FeatureValidationError: If the input fails boundary validation.
    """
    collection = features if isinstance(features, FeatureCollection) else parse_feature_collection(features)
    return build_graph_from_polylines(iter_polylines(collection))
