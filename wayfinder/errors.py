"""Exception types raised by graph construction and persistence.

Search and lookup outcomes (no path, unknown endpoints, nothing nearby) are not
exceptions; they come back as values from `find_path` and the locator.
"""

from __future__ import annotations


class WayfinderError(Exception):
    """Base class for navigation graph errors."""


class GraphBuildError(WayfinderError):
    """Source map could not be read, so no graph was produced."""


class GraphFormatError(WayfinderError, ValueError):
    """Persisted graph document is malformed or has an unsupported schema."""


class GraphIntegrityError(WayfinderError, ValueError):
    """Node records violate edge symmetry or reference unknown nodes."""


class FeatureValidationError(WayfinderError, ValueError):
    """Vector input was rejected at the boundary."""
