"""Core functionality for spatial-map."""

from spatial_map.core.feature import Feature, FeatureId
from spatial_map.core.geometry import Envelope, InvalidGeometryError
from spatial_map.core.grid import GridAxis, GridConfigurationError, GridDefinition
from spatial_map.core.spatial_map import MapStats, SpatialMap

__all__ = [
    "SpatialMap",
    "MapStats",
    "Feature",
    "FeatureId",
    "Envelope",
    "GridAxis",
    "GridDefinition",
    "GridConfigurationError",
    "InvalidGeometryError",
]
