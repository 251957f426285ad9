"""Command-line interface for building navigation graph JSON files."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from wayfinder.config import load_settings
from wayfinder.errors import WayfinderError
from wayfinder.graph import save_graph
from wayfinder.logging_config import LOG_DIR, setup_logging
from wayfinder.raster_builder import build_graph_from_file
from wayfinder.vector_builder import build_graph_from_features, load_feature_collection

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """CLI args. Unset raster options fall back to the WAYFINDER_* settings in `main`."""
    parser = argparse.ArgumentParser(
        description="Build a venue navigation graph from a floor-plan image or corridor GeoJSON",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Sample a floor plan every 15 px, bright pixels are walkable
  python -m wayfinder.cli raster assets/floor.png generated/graphs/floor.json --grid-step 15

  # Connect hand-drawn corridors
  python -m wayfinder.cli vector assets/corridors.geojson generated/graphs/corridors.json
        """,
    )
    parser.add_argument("--log-dir", type=Path, default=LOG_DIR, help="Directory for rotating log files")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to the console")

    sub = parser.add_subparsers(dest="source", required=True)

    raster = sub.add_parser("raster", help="Build from a rasterized floor-plan image")
    raster.add_argument("input", type=Path, help="Floor-plan image path")
    raster.add_argument("output", type=Path, help="Destination graph JSON path")
    raster.add_argument("--grid-step", type=int, default=None, help="Sampling spacing in pixels")
    raster.add_argument(
        "--threshold",
        type=int,
        default=None,
        help="Every colour channel must exceed this value for a walkable cell",
    )

    vector = sub.add_parser("vector", help="Build from a GeoJSON FeatureCollection of corridor lines")
    vector.add_argument("input", type=Path, help="GeoJSON file path")
    vector.add_argument("output", type=Path, help="Destination graph JSON path")

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Build a graph and write it to disk. Returns the process exit status."""
    args = parse_args(argv)
    setup_logging(console_level=logging.DEBUG if args.verbose else logging.INFO, log_dir=args.log_dir)

    try:
        settings = load_settings()
        if args.source == "raster":
            grid_step = settings.grid_step if args.grid_step is None else args.grid_step
            threshold = settings.walkable_threshold if args.threshold is None else args.threshold
            graph = build_graph_from_file(args.input, grid_step, threshold)
        else:
            graph = build_graph_from_features(load_feature_collection(args.input))
    except (WayfinderError, ValueError) as exc:
        logger.error("Graph construction failed for %s: %s", args.input, exc)
        return 1

    try:
        output = save_graph(args.output, graph)
    except OSError as exc:
        logger.error("Could not write graph to %s: %s", args.output, exc)
        return 1
    logger.info("Graph saved to %s (%d nodes, %d edges)", output, len(graph), graph.edge_count)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
