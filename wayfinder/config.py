"""Runtime settings read from environment variables.

Variables (defaults in parentheses):
- WAYFINDER_GRAPH_PATH: graph JSON loaded at API startup (unset = none)
- WAYFINDER_GENERATED_DIR: output folder for graphs built by the API (generated)
- WAYFINDER_GRID_STEP: raster sampling spacing in pixels (15)
- WAYFINDER_WALKABLE_THRESHOLD: minimum channel value for open floor (200)
- WAYFINDER_SNAP_DISTANCE: default nearest-node tolerance in map units (50)
- WAYFINDER_MAX_EXPANSIONS: A* expansion cap, 0 disables it (0)
- WAYFINDER_METERS_PER_UNIT: map unit to metre scale for route summaries (0.05)
- WAYFINDER_WALKING_SPEED_MPS: walking speed used for ETAs (1.4)
- WAYFINDER_CORS_ORIGINS: comma-separated origins or "*" (*)
- WAYFINDER_LOG_LEVEL: console log level (INFO)
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class Settings:
    """Resolved runtime configuration."""

    graph_path: Path | None = None
    generated_dir: Path = Path("generated")
    grid_step: int = 15
    walkable_threshold: int = 200
    snap_distance: float = 50.0
    max_expansions: int | None = None
    meters_per_unit: float = 0.05
    walking_speed_mps: float = 1.4
    cors_origins: tuple[str, ...] = ("*",)
    log_level: str = "INFO"

    @property
    def graphs_dir(self) -> Path:
        return self.generated_dir / "graphs"


def _read_int(env: Mapping[str, str], key: str, default: int, minimum: int) -> int:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ValueError(f"{key} must be >= {minimum}")
    return value


def _read_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be a number, got {raw!r}") from exc
    if not value > 0:
        raise ValueError(f"{key} must be > 0")
    return value


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build `Settings` from environment variables.

    Raises:
        ValueError: If a numeric variable cannot be parsed or is out of range.
    """
    env = os.environ if env is None else env

    graph_path = env.get("WAYFINDER_GRAPH_PATH", "").strip()
    threshold = _read_int(env, "WAYFINDER_WALKABLE_THRESHOLD", 200, minimum=0)
    if threshold > 255:
        raise ValueError("WAYFINDER_WALKABLE_THRESHOLD must be <= 255")
    max_expansions = _read_int(env, "WAYFINDER_MAX_EXPANSIONS", 0, minimum=0)

    raw_origins = env.get("WAYFINDER_CORS_ORIGINS", "*").strip()
    if raw_origins == "*" or not raw_origins:
        origins: tuple[str, ...] = ("*",)
    else:
        origins = tuple(origin.strip() for origin in raw_origins.split(",") if origin.strip())

    return Settings(
        graph_path=Path(graph_path) if graph_path else None,
        generated_dir=Path(env.get("WAYFINDER_GENERATED_DIR", "").strip() or "generated"),
        grid_step=_read_int(env, "WAYFINDER_GRID_STEP", 15, minimum=1),
        walkable_threshold=threshold,
        snap_distance=_read_float(env, "WAYFINDER_SNAP_DISTANCE", 50.0),
        max_expansions=max_expansions or None,
        meters_per_unit=_read_float(env, "WAYFINDER_METERS_PER_UNIT", 0.05),
        walking_speed_mps=_read_float(env, "WAYFINDER_WALKING_SPEED_MPS", 1.4),
        cors_origins=origins,
        log_level=env.get("WAYFINDER_LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
