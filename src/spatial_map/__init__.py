"""
spatial-map: Static geospatial feature storage for fast intersection queries.

Features (points, lines, polygons, and their multi-variants) are indexed on a
fixed grid. Queries find every stored feature that intersects a geometry.

Supports:
- Local storage: single-owner, unsynchronized dicts
- Shared storage: thread-safe named tables with concurrent readers
"""

from spatial_map.core.feature import Feature, FeatureId
from spatial_map.core.frames import features_to_geodataframe
from spatial_map.core.geometry import (
    Envelope,
    InvalidGeometryError,
    as_geometry,
    envelope_of,
    intersects,
)
from spatial_map.core.grid import (
    GridAxis,
    GridConfigurationError,
    GridDefinition,
    cells_in_range,
    hash_range,
    world_grid,
)
from spatial_map.core.spatial_map import LARGE_FEATURE_CELLS, MapClosedError, MapStats, SpatialMap
from spatial_map.storage import (
    AccessMode,
    StorageType,
    TableAccessError,
    TableExistsError,
    TableNotFoundError,
    TableRegistry,
)

__version__ = "0.1.0"
__all__ = [
    # Main API
    "SpatialMap",
    "Feature",
    "FeatureId",
    "MapStats",
    "StorageType",
    "LARGE_FEATURE_CELLS",
    # Grid
    "GridAxis",
    "GridDefinition",
    "world_grid",
    "hash_range",
    "cells_in_range",
    # Geometry
    "Envelope",
    "as_geometry",
    "envelope_of",
    "intersects",
    "features_to_geodataframe",
    # Shared storage
    "AccessMode",
    "TableRegistry",
    # Exceptions
    "GridConfigurationError",
    "InvalidGeometryError",
    "MapClosedError",
    "TableAccessError",
    "TableExistsError",
    "TableNotFoundError",
]
