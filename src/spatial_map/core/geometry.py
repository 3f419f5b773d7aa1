"""Geometry coercion, bounding envelopes, and exact intersection tests."""

import math
from dataclasses import dataclass
from typing import Any, Mapping, Sequence, Tuple, Union

from shapely import wkt
from shapely.errors import ShapelyError
from shapely.geometry import Point, shape
from shapely.geometry.base import BaseGeometry

GeometryLike = Union[BaseGeometry, Tuple[float, float], Mapping[str, Any], str]


class InvalidGeometryError(ValueError):
    """A geometry could not be interpreted or measured."""

    def __init__(self, geometry: Any, reason: str):
        self.geometry = geometry
        self.reason = reason
        super().__init__(f"Invalid geometry {_describe(geometry)}: {reason}")


def _describe(geometry: Any) -> str:
    text = repr(geometry)
    return text if len(text) <= 80 else text[:77] + "..."


@dataclass(frozen=True)
class Envelope:
    """
    Axis-aligned bounding box of a geometry.

    A point geometry yields a degenerate envelope (min == max on both axes).
    The empty envelope has min > max and covers nothing.
    """

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @classmethod
    def empty(cls) -> "Envelope":
        """Return the envelope of an empty geometry."""
        return cls(math.inf, math.inf, -math.inf, -math.inf)

    @classmethod
    def from_bounds(cls, bounds: Sequence[float]) -> "Envelope":
        """Create from a shapely-style ``(minx, miny, maxx, maxy)`` tuple."""
        min_x, min_y, max_x, max_y = bounds
        return cls(float(min_x), float(min_y), float(max_x), float(max_y))

    @property
    def is_empty(self) -> bool:
        return self.min_x > self.max_x or self.min_y > self.max_y

    @property
    def axes(self) -> Tuple[Tuple[float, float], Tuple[float, float]]:
        """Per-axis ``(min, max)`` pairs, x axis first."""
        return ((self.min_x, self.max_x), (self.min_y, self.max_y))

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        return (self.min_x, self.min_y, self.max_x, self.max_y)

    def intersects(self, other: "Envelope") -> bool:
        """Check whether two envelopes overlap (touching counts)."""
        if self.is_empty or other.is_empty:
            return False
        return (
            self.min_x <= other.max_x
            and other.min_x <= self.max_x
            and self.min_y <= other.max_y
            and other.min_y <= self.max_y
        )


def as_geometry(value: GeometryLike) -> BaseGeometry:
    """
    Coerce supported inputs into a shapely geometry.

    Accepts shapely geometries, ``(x, y)`` pairs, GeoJSON-like mappings,
    and WKT strings.

    Raises:
        InvalidGeometryError: If the value cannot be converted
    """
    if isinstance(value, BaseGeometry):
        return value

    try:
        if isinstance(value, str):
            return wkt.loads(value)
        if isinstance(value, Mapping):
            if "type" not in value:
                raise InvalidGeometryError(value, "mapping has no 'type' key")
            return shape(value)
        if isinstance(value, (tuple, list)) and len(value) == 2:
            x, y = value
            return Point(float(x), float(y))
    except InvalidGeometryError:
        raise
    except (ShapelyError, ValueError, TypeError, KeyError, IndexError, AttributeError) as e:
        raise InvalidGeometryError(value, str(e) or type(e).__name__) from e

    raise InvalidGeometryError(value, f"unsupported geometry type {type(value).__name__}")


def envelope_of(geometry: BaseGeometry) -> Envelope:
    """
    Compute the bounding envelope of a geometry.

    Raises:
        InvalidGeometryError: If a non-empty geometry has non-finite bounds
    """
    if geometry.is_empty:
        return Envelope.empty()

    bounds = geometry.bounds
    if not all(math.isfinite(v) for v in bounds):
        raise InvalidGeometryError(geometry, "bounds are not finite")
    return Envelope.from_bounds(bounds)


def intersects(a: BaseGeometry, b: BaseGeometry) -> bool:
    """
    Exact intersection test between two geometries.

    Polygon holes are not part of the polygon, so a point inside a hole
    does not intersect it.

    Raises:
        InvalidGeometryError: If GEOS cannot evaluate the predicate
    """
    try:
        return bool(a.intersects(b))
    except ShapelyError as e:
        raise InvalidGeometryError(b, str(e)) from e
